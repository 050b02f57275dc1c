"""
Cross-domain SSO Handlers

A user signs in once on the console domain. To act on a community domain the
browser is walked through a one-time credential hand-off:

1. The community frontend sends the browser to `GET /auth/sso?return_to=<url>`
   on the console domain.
2. Without a console session the browser is sent to the console login page,
   which resumes the flow through the `next` parameter once the user signs in.
3. With a console session, an exchange token bound to the `return_to` hostname
   is minted and the browser is redirected to
   `https://<hostname>/auth/callback?token=...&return_path=...`.
4. The community frontend posts the token and its own hostname to
   `POST /auth/callback` and receives a community-scoped session token.

The handlers in this module provide the following endpoints:
- GET /auth/sso - Start the hand-off
- POST /auth/callback - Redeem an exchange token
- POST /auth/logout - Invalidate a session
"""

import logging
from urllib.parse import quote, urlencode, urlparse

from aiohttp import web
from pydantic import BaseModel, Field, ValidationError

from ng.commu.api.app.config import (
    DatabaseSessionMakerAppKey,
    ExchangeTokenStoreAppKey,
    SessionStoreAppKey,
    SettingsAppKey,
    TelegrafStatsdClientAppKey,
)
from ng.commu.api.app.handlers.helpers import SessionScope, extract_token, optional_auth
from ng.commu.api.auth.communities import resolve_community
from ng.commu.api.auth.errors import AuthError

logger = logging.getLogger(__name__)


class TokenExchangeRequest(BaseModel):
    token: str = Field(min_length=1, max_length=64)
    domain: str = Field(min_length=1, max_length=253)


def login_redirect_url(console_domain: str, request_url: str) -> str:
    return f"https://{console_domain}/login?" + urlencode({"next": request_url})


def callback_redirect_url(target_domain: str, token: str, return_path: str) -> str:
    return f"https://{target_domain}/auth/callback?" + urlencode(
        {"token": token, "return_path": return_path}, quote_via=quote
    )


def return_path_of(url: str) -> str:
    """Path, query and fragment of `url`; an empty path becomes `/`."""
    parsed = urlparse(url)
    return_path = parsed.path or "/"
    if parsed.query:
        return_path += "?" + parsed.query
    if parsed.fragment:
        return_path += "#" + parsed.fragment
    return return_path


def parse_return_to(return_to: str) -> str:
    """
    Validate `return_to` and return its lower-cased hostname.

    Raises:
        AuthError: invalid_request when it is missing or not an absolute http(s) URL
    """
    if not return_to:
        raise AuthError.invalid_request("return_to is required")
    try:
        parsed = urlparse(return_to)
        hostname = parsed.hostname
    except ValueError:
        raise AuthError.invalid_request("return_to must be a valid URL")
    if parsed.scheme not in ("http", "https") or not hostname:
        raise AuthError.invalid_request("return_to must be a valid URL")
    return hostname


async def handle_sso(request: web.Request):
    """
    Start the SSO hand-off towards the community named by `return_to`.

    Query Parameters:
        return_to: Absolute URL on the community domain to land on afterwards

    Returns:
        302 to the console login page when the caller has no console session,
        otherwise 302 to the community's callback page

    Raises:
        AuthError: invalid_request for a bad `return_to`, invalid_domain when
            its hostname is not a community
    """
    settings = request.app[SettingsAppKey]
    statsd_client = request.app[TelegrafStatsdClientAppKey]

    return_to: str = request.query.get("return_to", "")
    target_domain = parse_return_to(return_to)

    auth_context = await optional_auth(request, SessionScope.CONSOLE)
    if auth_context is None:
        statsd_client.increment("commung.auth.sso.login_redirect", 1)
        raise web.HTTPFound(login_redirect_url(settings.console_domain, str(request.url)))

    async with request.app[DatabaseSessionMakerAppKey]() as database_session:
        community = await resolve_community(
            database_session, target_domain, settings.console_domain
        )

    exchange_token = await request.app[ExchangeTokenStoreAppKey].create(
        auth_context.user.id, target_domain
    )
    logger.info(
        "issued exchange token for user %s to community %s",
        auth_context.user.id,
        community.id,
    )
    statsd_client.increment("commung.auth.sso.issued", 1)

    raise web.HTTPFound(
        callback_redirect_url(
            exchange_token.target_domain, exchange_token.token, return_path_of(return_to)
        )
    )


async def handle_callback(request: web.Request):
    """
    Redeem an exchange token for a session scoped to the community on `domain`.

    `domain` is the hostname the frontend is served from. It is taken from the
    body rather than the Host header, which the API would have to trust.

    Request Body:
        {"token": str, "domain": str}

    Returns:
        200 {"message": str, "session_token": str}
    """
    statsd_client = request.app[TelegrafStatsdClientAppKey]

    try:
        data = await request.read()
        exchange_request = TokenExchangeRequest.model_validate_json(data)
    except (OSError, ValidationError):
        raise AuthError.invalid_request("Body must be JSON with non-empty token and domain")

    try:
        session = await request.app[ExchangeTokenStoreAppKey].redeem(
            exchange_request.token, exchange_request.domain
        )
    except AuthError as e:
        statsd_client.increment(
            "commung.auth.exchange.failure", 1, tag_dict={"code": e.kind.code}
        )
        raise

    statsd_client.increment("commung.auth.exchange.success", 1)
    return web.json_response({"message": "SSO complete", "session_token": session.token})


async def handle_logout(request: web.Request):
    """
    Invalidate the presented session.

    Always succeeds once a token is supplied, whether or not it was still
    valid, and clears the session cookie.
    """
    settings = request.app[SettingsAppKey]

    token = extract_token(request)
    if token is None:
        raise AuthError.missing_credential()

    await request.app[SessionStoreAppKey].delete(token)

    response = web.json_response({"message": "Logged out"})
    response.del_cookie(settings.session_cookie_name)
    return response
