"""Session store.

Sessions live in the database. Lookups are cached in Redis under
`auth_session:{token}` for a short while; the cache entry never outlives the
session and is evicted on delete.
"""
from datetime import datetime, timedelta, timezone
import logging
import secrets
from typing import Any, Optional

from pydantic import BaseModel
from redis import asyncio as redis
from redis.exceptions import RedisError
from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from ng.commu.api.model.base import as_utc, new_id
from ng.commu.api.model.session import Session

logger = logging.getLogger(__name__)

SESSION_CACHE_PREFIX = "auth_session:"


def generate_token() -> str:
    return secrets.token_urlsafe(32)


class ActiveSession(BaseModel):
    """A live session as seen by request handlers."""

    token: str
    user_id: str
    community_id: Optional[str] = None
    created_at: datetime
    expires_at: datetime

    @property
    def is_console(self) -> bool:
        return self.community_id is None

    @staticmethod
    def from_model(session: Session) -> "ActiveSession":
        return ActiveSession(
            token=session.token,
            user_id=session.user_id,
            community_id=session.community_id,
            created_at=as_utc(session.created_at),
            expires_at=as_utc(session.expires_at),
        )


class SessionStore:
    """
    Create, look up and delete sessions.

    Constructed once at startup and shared by all request handlers. Holds no
    per-request state.
    """

    def __init__(
        self,
        database_session_maker: async_sessionmaker[AsyncSession],
        redis_client: redis.Redis,
        session_duration: timedelta,
        cache_seconds: int = 300,
    ) -> None:
        self.database_session_maker = database_session_maker
        self.redis_client = redis_client
        self.session_duration = session_duration
        self.cache_seconds = cache_seconds

    def add(
        self,
        database_session: AsyncSession,
        user_id: str,
        community_id: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> Session:
        """Stage a new session on a session the caller is already using, inside its transaction."""
        if now is None:
            now = datetime.now(timezone.utc)
        session = Session(
            id=new_id(),
            token=generate_token(),
            user_id=user_id,
            community_id=community_id,
            created_at=now,
            expires_at=now + self.session_duration,
        )
        database_session.add(session)
        return session

    async def create(
        self, user_id: str, community_id: Optional[str] = None
    ) -> ActiveSession:
        async with self.database_session_maker() as database_session:
            async with database_session.begin():
                session = self.add(database_session, user_id, community_id)
                await database_session.flush()
                return ActiveSession.from_model(session)

    async def lookup(self, token: str) -> Optional[ActiveSession]:
        """Return the live session for `token`, or None when it is unknown or expired."""
        now = datetime.now(timezone.utc)

        cached = await self._cache_get(token)
        if cached is not None:
            if cached.expires_at > now:
                return cached
            await self._cache_evict(token)
            return None

        async with self.database_session_maker() as database_session:
            stmt = select(Session).where(
                Session.token == token, Session.expires_at > now
            )
            session: Optional[Session] = (await database_session.scalars(stmt)).first()

        if session is None:
            return None

        active_session = ActiveSession.from_model(session)
        await self._cache_put(active_session, now)
        return active_session

    async def delete(self, token: str) -> None:
        """Delete the session for `token`. Unknown tokens are ignored."""
        async with self.database_session_maker() as database_session:
            async with database_session.begin():
                await database_session.execute(
                    delete(Session).where(Session.token == token)
                )
        await self._cache_evict(token)

    async def delete_for_user(self, user_id: str) -> int:
        """Delete every session of `user_id`, console and community alike."""
        async with self.database_session_maker() as database_session:
            async with database_session.begin():
                tokens = (
                    await database_session.scalars(
                        select(Session.token).where(Session.user_id == user_id)
                    )
                ).all()
                await database_session.execute(
                    delete(Session).where(Session.user_id == user_id)
                )
        for token in tokens:
            await self._cache_evict(token)
        logger.info("revoked %d sessions for user %s", len(tokens), user_id)
        return len(tokens)

    async def purge_expired(self, now: Optional[datetime] = None) -> int:
        if now is None:
            now = datetime.now(timezone.utc)
        async with self.database_session_maker() as database_session:
            async with database_session.begin():
                result = await database_session.execute(
                    delete(Session).where(Session.expires_at <= now)
                )
        return result.rowcount or 0

    async def _cache_get(self, token: str) -> Optional[ActiveSession]:
        try:
            value: Any = await self.redis_client.get(SESSION_CACHE_PREFIX + token)
        except RedisError:
            logger.exception("session cache read failed")
            return None
        if value is None:
            return None
        return ActiveSession.model_validate_json(value)

    async def _cache_put(self, active_session: ActiveSession, now: datetime) -> None:
        ttl = min(
            self.cache_seconds, int((active_session.expires_at - now).total_seconds())
        )
        if ttl <= 0:
            return
        try:
            await self.redis_client.set(
                SESSION_CACHE_PREFIX + active_session.token,
                active_session.model_dump_json(),
                ex=ttl,
            )
        except RedisError:
            logger.exception("session cache write failed")

    async def _cache_evict(self, token: str) -> None:
        try:
            await self.redis_client.delete(SESSION_CACHE_PREFIX + token)
        except RedisError:
            logger.exception("session cache evict failed")
