from typing import Dict, Optional
from urllib.parse import urlparse

from aiohttp import web

from ng.commu.api.app.config import SettingsAppKey

ALLOWED_METHODS = "GET, POST, PUT, DELETE, PATCH, OPTIONS"
ALLOWED_HEADERS = "Content-Type, Authorization, X-Requested-With"


def is_allowed_origin(origin_value: str, console_domain: str) -> bool:
    """The console domain and every subdomain of it may call the API with credentials."""
    parsed = urlparse(origin_value)
    if parsed.scheme not in ("http", "https") or not parsed.hostname:
        return False
    console_domain = console_domain.lower()
    return parsed.hostname == console_domain or parsed.hostname.endswith(
        "." + console_domain
    )


def get_cors_headers(origin_value: Optional[str], console_domain: str) -> Dict[str, str]:
    """Return CORS headers for a request from `origin_value`."""
    headers = {"Vary": "Origin"}

    if origin_value and is_allowed_origin(origin_value, console_domain):
        headers.update(
            {
                "Access-Control-Allow-Origin": origin_value,
                "Access-Control-Allow-Credentials": "true",
                "Access-Control-Allow-Methods": ALLOWED_METHODS,
                "Access-Control-Allow-Headers": ALLOWED_HEADERS,
            }
        )

    return headers


@web.middleware
async def cors_middleware(request: web.Request, handler):
    settings = request.app[SettingsAppKey]
    headers = get_cors_headers(request.headers.get("Origin"), settings.console_domain)

    if request.method == "OPTIONS" and "Access-Control-Request-Method" in request.headers:
        return web.Response(status=204, headers=headers)

    try:
        response = await handler(request)
    except web.HTTPException as e:
        e.headers.update(headers)
        raise
    response.headers.update(headers)
    return response
