import asyncio
import contextlib
import json
import logging
from time import time
from typing import (
    Optional,
)
from aio_statsd import TelegrafStatsdClient
from aiohttp import web
import redis.asyncio as redis
from sqlalchemy.ext.asyncio import (
    create_async_engine,
    async_sessionmaker,
    AsyncSession,
)
import sentry_sdk
from sentry_sdk.integrations.aiohttp import AioHttpIntegration

from ng.commu.api.app.config import (
    CleanupTaskAppKey,
    DatabaseAppKey,
    DatabaseSessionMakerAppKey,
    ErrorWindowAppKey,
    ExchangeTokenStoreAppKey,
    PruneErrorsTaskAppKey,
    RedisClientAppKey,
    SessionStoreAppKey,
    Settings,
    SettingsAppKey,
    TelegrafStatsdClientAppKey,
)
from ng.commu.api.app.cors import cors_middleware
from ng.commu.api.app.handlers.account import (
    handle_app_me,
    handle_console_change_password,
    handle_console_login,
    handle_console_me,
    handle_console_signup,
)
from ng.commu.api.app.handlers.auth import (
    handle_callback,
    handle_logout,
    handle_sso,
)
from ng.commu.api.app.handlers.internal import (
    handle_internal_alive,
    handle_internal_ready,
)
from ng.commu.api.app.health import ErrorWindow
from ng.commu.api.app.tasks import cleanup_task, prune_errors_task
from ng.commu.api.auth.errors import AuthError
from ng.commu.api.auth.exchange import ExchangeTokenStore
from ng.commu.api.auth.sessions import SessionStore

logger = logging.getLogger(__name__)


def install_stores(app: web.Application) -> None:
    """Build the session and exchange token stores from resources already on `app`."""
    settings = app[SettingsAppKey]
    session_store = SessionStore(
        app[DatabaseSessionMakerAppKey],
        app[RedisClientAppKey],
        settings.session_duration,
        settings.session_cache_seconds,
    )
    app[SessionStoreAppKey] = session_store
    app[ExchangeTokenStoreAppKey] = ExchangeTokenStore(
        app[DatabaseSessionMakerAppKey],
        session_store,
        settings.console_domain,
        settings.exchange_token_duration,
    )


async def background_tasks(app):
    logger.info("Starting up")
    settings: Settings = app[SettingsAppKey]

    engine = create_async_engine(str(settings.pg_dsn))
    app[DatabaseAppKey] = engine
    database_session = async_sessionmaker(
        engine, class_=AsyncSession, expire_on_commit=False
    )
    app[DatabaseSessionMakerAppKey] = database_session

    app[RedisClientAppKey] = redis.Redis(
        connection_pool=redis.ConnectionPool.from_url(str(settings.redis_dsn))
    )

    statsd_client = TelegrafStatsdClient(
        host=settings.statsd_host, port=settings.statsd_port, debug=settings.debug
    )
    await statsd_client.connect()
    app[TelegrafStatsdClientAppKey] = statsd_client

    install_stores(app)

    logger.info("Startup complete")

    app[PruneErrorsTaskAppKey] = asyncio.create_task(prune_errors_task(app))
    app[CleanupTaskAppKey] = asyncio.create_task(cleanup_task(app))

    yield

    logger.info("Shutting down background tasks")

    app[PruneErrorsTaskAppKey].cancel()
    app[CleanupTaskAppKey].cancel()

    with contextlib.suppress(asyncio.exceptions.CancelledError):
        await app[PruneErrorsTaskAppKey]

    with contextlib.suppress(asyncio.exceptions.CancelledError):
        await app[CleanupTaskAppKey]

    await app[DatabaseAppKey].dispose()
    await app[RedisClientAppKey].aclose()
    await app[TelegrafStatsdClientAppKey].close()


@web.middleware
async def error_middleware(request: web.Request, handler):
    """
    Turn failures into JSON responses.

    AuthError becomes its own status and `{"error", "code"}` body. aiohttp's
    HTTP exceptions (redirects included) pass through untouched. Anything else
    is a fault: it is reported to Sentry, counted on the error window and
    answered with a 500.
    """
    try:
        return await handler(request)
    except AuthError as e:
        logger.debug("%s %s: %s", request.method, request.path, e)
        return web.json_response(e.to_dict(), status=e.status)
    except web.HTTPException:
        raise
    except Exception as e:
        logger.exception("Unhandled error in %s %s", request.method, request.path)
        sentry_sdk.capture_exception(e)
        request.app[ErrorWindowAppKey].record()

        settings = request.app[SettingsAppKey]
        body = {"error": "Internal Server Error"}
        if settings.debug:
            body["error_type"] = type(e).__name__
        raise web.HTTPInternalServerError(
            text=json.dumps(body),
            content_type="application/json",
        )


@web.middleware
async def statsd_middleware(request: web.Request, handler):
    statsd_client = request.app[TelegrafStatsdClientAppKey]
    request_method: str = request.method
    request_path = request.path

    start_time: float = time()
    response_status_code = 0

    try:
        response = await handler(request)
        response_status_code = response.status
        return response
    except web.HTTPException as e:
        response_status_code = e.status
        raise e
    except Exception as e:
        statsd_client.increment(
            "commung.server.request.exception",
            1,
            tag_dict={
                "exception": type(e).__name__,
                "path": request_path,
                "method": request_method,
            },
        )
        raise e
    finally:
        statsd_client.timer(
            "commung.server.request.time",
            time() - start_time,
            tag_dict={"path": request_path, "method": request_method},
        )
        statsd_client.increment(
            "commung.server.request.count",
            1,
            tag_dict={
                "path": request_path,
                "method": request_method,
                "status": response_status_code,
            },
        )


def build_app(settings: Settings) -> web.Application:
    """Create the application with routes and middleware but no external resources."""
    app = web.Application(
        middlewares=[cors_middleware, statsd_middleware, error_middleware]
    )

    app[SettingsAppKey] = settings
    app[ErrorWindowAppKey] = ErrorWindow()

    app.add_routes(
        [
            web.get("/auth/sso", handle_sso),
            web.post("/auth/callback", handle_callback),
            web.post("/auth/logout", handle_logout),
        ]
    )

    app.add_routes(
        [
            web.post("/console/login", handle_console_login),
            web.post("/console/signup", handle_console_signup),
            web.get("/console/me", handle_console_me),
            web.post("/console/change-password", handle_console_change_password),
            web.get("/app/me", handle_app_me),
        ]
    )

    app.add_routes(
        [
            web.get("/health", handle_internal_alive),
            web.get("/internal/alive", handle_internal_alive),
            web.get("/internal/ready", handle_internal_ready),
        ]
    )

    return app


async def start_web_server(settings: Optional[Settings] = None):

    if settings is None:
        settings = Settings()  # type: ignore
    if settings.sentry_dsn:
        sentry_sdk.init(
            dsn=settings.sentry_dsn,
            send_default_pii=True,
            integrations=[AioHttpIntegration()]
        )

    app = build_app(settings)
    app.cleanup_ctx.append(background_tasks)

    return app
