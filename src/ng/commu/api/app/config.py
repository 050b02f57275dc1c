"""
Configuration Module for the Commu-ng API

Settings are loaded from environment variables through Pydantic, and shared
resources are published on the aiohttp application through typed AppKeys so
that handlers receive them by dependency injection instead of module globals.

Key configuration areas include:
- Service identification and networking
- Database and cache connections
- Session and exchange token lifetimes
- Monitoring and error reporting
"""

import asyncio
from datetime import timedelta
from typing import Final, Optional
import logging
from aio_statsd import TelegrafStatsdClient
from pydantic import (
    AliasChoices,
    Field,
    PostgresDsn,
    RedisDsn,
)
from pydantic_settings import BaseSettings
from aiohttp import web
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    async_sessionmaker,
    AsyncSession,
)
from redis import asyncio as redis

from ng.commu.api.app.health import ErrorWindow
from ng.commu.api.auth.exchange import ExchangeTokenStore
from ng.commu.api.auth.sessions import SessionStore


logger = logging.getLogger(__name__)


class Settings(BaseSettings):
    """
    Application settings for the Commu-ng API.

    Values are read from environment variables of the same (upper-cased)
    name. The database connection string can be set with either PG_DSN or
    DATABASE_URL, and the Redis one with REDIS_DSN or REDIS_URL.
    """

    debug: bool = False
    """
    Enable debug mode: verbose logging and exception types in 500 responses.
    Set with DEBUG=true environment variable.
    """

    http_port: int = Field(alias="port", default=3000)
    """
    HTTP port for the service to listen on.
    Set with PORT environment variable.
    """

    console_domain: str
    """
    The console hostname (required, no default). Community subdomains hang off
    it, unauthenticated SSO requests are sent to its login page, and CORS
    accepts it and its subdomains.
    Set with CONSOLE_DOMAIN environment variable.
    """

    sentry_dsn: Optional[str] = None
    """
    Sentry DSN for error reporting. Optional, no error reporting if not set.
    Set with SENTRY_DSN environment variable.
    """

    redis_dsn: RedisDsn = Field(
        "redis://valkey:6379/1?decode_responses=True",
        validation_alias=AliasChoices("redis_dsn", "redis_url"),
    )  # type: ignore
    """
    Redis connection string for the session lookup cache.
    Set with REDIS_DSN or REDIS_URL environment variables.
    """

    pg_dsn: PostgresDsn = Field(
        "postgresql+asyncpg://postgres:password@db/commung",
        validation_alias=AliasChoices("pg_dsn", "database_url"),
    )  # type: ignore
    """
    PostgreSQL connection string for database access.
    Set with PG_DSN or DATABASE_URL environment variables.
    """

    session_duration_days: int = 30
    """Lifetime of a session token. Set with SESSION_DURATION_DAYS."""

    exchange_token_duration_minutes: int = 5
    """Lifetime of an SSO exchange token. Set with EXCHANGE_TOKEN_DURATION_MINUTES."""

    session_cache_seconds: int = 300
    """Upper bound on how long a session lookup stays cached in Redis. Set with SESSION_CACHE_SECONDS."""

    session_cookie_name: str = "session_token"
    """Name of the cookie carrying the session token on the console domain."""

    bcrypt_rounds: int = 10
    """bcrypt cost factor for new password hashes. Set with BCRYPT_ROUNDS."""

    cleanup_interval: int = 60
    """Seconds between sweeps of expired sessions and exchange tokens. Set with CLEANUP_INTERVAL."""

    statsd_host: str = Field(alias="TELEGRAF_HOST", default="telegraf")
    """
    StatsD/Telegraf host for metrics collection.
    Set with TELEGRAF_HOST environment variable.
    """

    statsd_port: int = Field(alias="TELEGRAF_PORT", default=8125)
    """
    StatsD/Telegraf port for metrics collection.
    Set with TELEGRAF_PORT environment variable.
    """

    @property
    def session_duration(self) -> timedelta:
        return timedelta(days=self.session_duration_days)

    @property
    def exchange_token_duration(self) -> timedelta:
        return timedelta(minutes=self.exchange_token_duration_minutes)


SettingsAppKey: Final = web.AppKey("settings", Settings)
"""AppKey for accessing the application settings"""

DatabaseAppKey: Final = web.AppKey("database", AsyncEngine)
"""AppKey for accessing the SQLAlchemy async database engine"""

DatabaseSessionMakerAppKey: Final = web.AppKey(
    "database_session_maker", async_sessionmaker[AsyncSession]
)
"""AppKey for accessing the SQLAlchemy async session factory"""

RedisClientAppKey: Final = web.AppKey("redis_client", redis.Redis)
"""AppKey for accessing the Redis client"""

SessionStoreAppKey: Final = web.AppKey("session_store", SessionStore)
"""AppKey for the session store"""

ExchangeTokenStoreAppKey: Final = web.AppKey("exchange_token_store", ExchangeTokenStore)
"""AppKey for the exchange token store"""

ErrorWindowAppKey: Final = web.AppKey("error_window", ErrorWindow)
"""AppKey for the recent-error window behind readiness"""

CleanupTaskAppKey: Final = web.AppKey("cleanup_task", asyncio.Task[None])
"""AppKey for the background task that deletes expired sessions and exchange tokens"""

PruneErrorsTaskAppKey: Final = web.AppKey("prune_errors_task", asyncio.Task[None])
"""AppKey for the background task that ages out old errors"""

TelegrafStatsdClientAppKey: Final = web.AppKey(
    "telegraf_statsd_client", TelegrafStatsdClient
)
"""AppKey for the Telegraf/StatsD metrics client"""
