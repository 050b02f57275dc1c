"""Single-use exchange tokens for the cross-domain SSO hand-off.

Lifecycle of a token:

    Issued --(redeemed before expiry)--> Consumed
    Issued --(expiry passes)-----------> Expired

Both end states are terminal. Redemption consumes the token with one
conditional UPDATE that only matches an unconsumed, unexpired row and creates
the community session in the same transaction, so two concurrent redemptions
of the same token (in one process or across several) cannot both succeed.
"""
from datetime import datetime, timedelta, timezone
import logging
from typing import Optional

from sqlalchemy import delete, select, update
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from ng.commu.api.auth.communities import resolve_community
from ng.commu.api.auth.errors import AuthError
from ng.commu.api.auth.sessions import ActiveSession, SessionStore, generate_token
from ng.commu.api.model.base import as_utc, new_id
from ng.commu.api.model.community import normalize_domain
from ng.commu.api.model.session import ExchangeToken

logger = logging.getLogger(__name__)


class ExchangeTokenStore:

    def __init__(
        self,
        database_session_maker: async_sessionmaker[AsyncSession],
        session_store: SessionStore,
        main_domain: str,
        token_duration: timedelta,
    ) -> None:
        self.database_session_maker = database_session_maker
        self.session_store = session_store
        self.main_domain = main_domain
        self.token_duration = token_duration

    async def create(self, user_id: str, target_domain: str) -> ExchangeToken:
        """Mint a token that `user_id` can redeem once on `target_domain`."""
        now = datetime.now(timezone.utc)
        exchange_token = ExchangeToken(
            id=new_id(),
            token=generate_token(),
            user_id=user_id,
            target_domain=normalize_domain(target_domain),
            created_at=now,
            expires_at=now + self.token_duration,
            consumed_at=None,
        )
        async with self.database_session_maker() as database_session:
            async with database_session.begin():
                database_session.add(exchange_token)
        return exchange_token

    async def redeem(self, token: str, domain: str) -> ActiveSession:
        """
        Consume `token` and create a session scoped to the community on `domain`.

        Checks run in a fixed order and each failure is reported distinctly:
        unknown token, expired, already consumed, wrong domain. A domain
        mismatch leaves the token unconsumed.

        Raises:
            AuthError: invalid_token, token_expired, token_already_used,
                domain_mismatch or invalid_domain
        """
        domain = normalize_domain(domain)
        now = datetime.now(timezone.utc)

        async with self.database_session_maker() as database_session:
            async with database_session.begin():
                stmt = select(ExchangeToken).where(ExchangeToken.token == token)
                exchange_token: Optional[ExchangeToken] = (
                    await database_session.scalars(stmt)
                ).first()

                if exchange_token is None:
                    raise AuthError.invalid_token()

                if as_utc(exchange_token.expires_at) <= now:
                    raise AuthError.token_expired()

                if exchange_token.consumed_at is not None:
                    raise AuthError.token_already_used()

                if exchange_token.target_domain != domain:
                    raise AuthError.domain_mismatch()

                community = await resolve_community(
                    database_session, domain, self.main_domain
                )

                consume_stmt = (
                    update(ExchangeToken)
                    .where(
                        ExchangeToken.id == exchange_token.id,
                        ExchangeToken.consumed_at.is_(None),
                        ExchangeToken.expires_at > now,
                    )
                    .values(consumed_at=now)
                    .execution_options(synchronize_session=False)
                )
                result = await database_session.execute(consume_stmt)
                if result.rowcount != 1:
                    logger.info("exchange token %s lost a redemption race", exchange_token.id)
                    raise AuthError.token_already_used()

                session = self.session_store.add(
                    database_session, exchange_token.user_id, community.id, now
                )
                await database_session.flush()
                return ActiveSession.from_model(session)

    async def purge_expired(self, now: Optional[datetime] = None) -> int:
        if now is None:
            now = datetime.now(timezone.utc)
        async with self.database_session_maker() as database_session:
            async with database_session.begin():
                result = await database_session.execute(
                    delete(ExchangeToken).where(ExchangeToken.expires_at <= now)
                )
        return result.rowcount or 0
