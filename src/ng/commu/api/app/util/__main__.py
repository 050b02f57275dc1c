import argparse
import asyncio
from datetime import datetime, timezone
import logging
from typing import Optional

import redis.asyncio as redis
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from ng.commu.api.app.config import Settings
from ng.commu.api.app.tasks import purge_expired
from ng.commu.api.auth.accounts import signup_user
from ng.commu.api.auth.exchange import ExchangeTokenStore
from ng.commu.api.auth.sessions import SessionStore
from ng.commu.api.model.base import new_id
from ng.commu.api.model.community import Community, normalize_domain

logger = logging.getLogger(__name__)


async def createUser(
    database_session_maker: async_sessionmaker[AsyncSession],
    login_name: str,
    password: str,
    rounds: int,
) -> None:
    user = await signup_user(database_session_maker, login_name, password, rounds)
    print(f"user {user.login_name} created: {user.id}")


async def createCommunity(
    database_session_maker: async_sessionmaker[AsyncSession],
    name: str,
    slug: str,
    custom_domain: Optional[str],
    verified: bool,
) -> None:
    now = datetime.now(timezone.utc)
    community = Community(
        id=new_id(),
        name=name,
        slug=slug,
        custom_domain=normalize_domain(custom_domain) if custom_domain else None,
        domain_verified_at=now if custom_domain and verified else None,
        created_at=now,
        deleted_at=None,
    )
    async with database_session_maker() as database_session:
        async with database_session.begin():
            database_session.add(community)
    print(f"community {community.slug} created: {community.id}")


async def purgeExpired(
    settings: Settings, database_session_maker: async_sessionmaker[AsyncSession]
) -> None:
    redis_client = redis.Redis.from_url(str(settings.redis_dsn))
    try:
        session_store = SessionStore(
            database_session_maker, redis_client, settings.session_duration
        )
        exchange_token_store = ExchangeTokenStore(
            database_session_maker,
            session_store,
            settings.console_domain,
            settings.exchange_token_duration,
        )
        sessions_deleted, exchange_tokens_deleted = await purge_expired(
            session_store,
            exchange_token_store,
            None,
            datetime.now(timezone.utc),
        )
    finally:
        await redis_client.aclose()
    print(f"deleted {sessions_deleted} sessions and {exchange_tokens_deleted} exchange tokens")


async def realMain() -> None:
    parser = argparse.ArgumentParser(prog="commung-util", description="Commu-ng API utilities")

    subparsers = parser.add_subparsers(dest="command", required=True)

    create_user = subparsers.add_parser("create-user", help="Create a console user")
    create_user.add_argument("login_name", help="The login name of the new user.")
    create_user.add_argument("password", help="The password of the new user.")

    create_community = subparsers.add_parser(
        "create-community", help="Create a community"
    )
    create_community.add_argument("name", help="Display name of the community.")
    create_community.add_argument("slug", help="Subdomain label of the community.")
    create_community.add_argument(
        "--custom-domain", default=None, help="Custom hostname serving the community."
    )
    create_community.add_argument(
        "--verified",
        action="store_true",
        help="Mark the custom domain as verified.",
    )

    _ = subparsers.add_parser(
        "purge-expired", help="Delete expired sessions and exchange tokens"
    )

    args = vars(parser.parse_args())
    command = args.get("command", None)

    settings = Settings()  # type: ignore
    engine = create_async_engine(str(settings.pg_dsn))
    database_session_maker = async_sessionmaker(
        engine, class_=AsyncSession, expire_on_commit=False
    )

    try:
        if command == "create-user":
            await createUser(
                database_session_maker,
                args["login_name"],
                args["password"],
                settings.bcrypt_rounds,
            )
        elif command == "create-community":
            await createCommunity(
                database_session_maker,
                args["name"],
                args["slug"],
                args["custom_domain"],
                args["verified"],
            )
        elif command == "purge-expired":
            await purgeExpired(settings, database_session_maker)
    finally:
        await engine.dispose()


def main() -> None:
    logging.basicConfig(level=logging.INFO)
    asyncio.run(realMain())


if __name__ == "__main__":
    main()
