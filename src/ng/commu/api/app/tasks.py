import asyncio
from datetime import datetime, timezone
import logging
from time import time
from typing import NoReturn, Optional, Tuple

from aio_statsd import TelegrafStatsdClient
from aiohttp import web
import sentry_sdk

from ng.commu.api.app.config import (
    ErrorWindowAppKey,
    ExchangeTokenStoreAppKey,
    SessionStoreAppKey,
    SettingsAppKey,
    TelegrafStatsdClientAppKey,
)
from ng.commu.api.auth.exchange import ExchangeTokenStore
from ng.commu.api.auth.sessions import SessionStore

logger = logging.getLogger(__name__)


async def prune_errors_task(app: web.Application) -> NoReturn:
    """Drop errors that have aged out of the window every 30 seconds."""
    logger.info("Starting error window task")

    error_window = app[ErrorWindowAppKey]
    while True:
        error_window.prune()
        await asyncio.sleep(30)


async def purge_expired(
    session_store: SessionStore,
    exchange_token_store: ExchangeTokenStore,
    metrics_client: Optional[TelegrafStatsdClient],
    now: datetime,
) -> Tuple[int, int]:
    """
    Delete sessions and exchange tokens whose expiry has passed.

    Consumed exchange tokens are kept until they expire so that a replay
    still reports "already used" rather than "invalid".

    Counts and timing are reported to `metrics_client` when one is given.

    Returns (sessions_deleted, exchange_tokens_deleted).
    """
    start_time = time()
    sessions_deleted = await session_store.purge_expired(now)
    exchange_tokens_deleted = await exchange_token_store.purge_expired(now)

    if metrics_client is not None:
        metrics_client.increment("commung.task.cleanup.sessions", sessions_deleted)
        metrics_client.increment(
            "commung.task.cleanup.exchange_tokens", exchange_tokens_deleted
        )
        metrics_client.timer("commung.task.cleanup.time", time() - start_time)

    if sessions_deleted or exchange_tokens_deleted:
        logger.info(
            "Purged %d expired sessions and %d expired exchange tokens",
            sessions_deleted,
            exchange_tokens_deleted,
        )
    return sessions_deleted, exchange_tokens_deleted


async def cleanup_task(app: web.Application) -> NoReturn:
    """
    Background process that garbage-collects expired sessions and exchange tokens.

    Failures are reported and counted on the error window; the loop keeps going.
    """
    logger.info("Starting cleanup task")

    settings = app[SettingsAppKey]
    session_store = app[SessionStoreAppKey]
    exchange_token_store = app[ExchangeTokenStoreAppKey]
    error_window = app[ErrorWindowAppKey]
    metrics_client = app[TelegrafStatsdClientAppKey]

    while True:
        await asyncio.sleep(settings.cleanup_interval)
        try:
            await purge_expired(
                session_store,
                exchange_token_store,
                metrics_client,
                datetime.now(timezone.utc),
            )
        except Exception as e:
            sentry_sdk.capture_exception(e)
            logger.exception("error purging expired credentials")
            error_window.record()
            metrics_client.increment(
                "commung.task.cleanup.exception",
                1,
                tag_dict={"exception": type(e).__name__},
            )
