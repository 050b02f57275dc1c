"""
Unit tests for the ORM models in ng.commu.api.model

Cover the uniqueness constraints the auth flow relies on and timestamp
handling.
"""

import pytest
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError

from ng.commu.api.model.base import as_utc, new_id
from ng.commu.api.model.community import Community
from ng.commu.api.model.session import ExchangeToken, Session
from ng.commu.api.model.user import User
from tests.test_helpers import generate_test_datetime


def make_user(login_name: str) -> User:
    return User(
        id=new_id(),
        login_name=login_name,
        email=None,
        password_hash="$2b$04$" + "x" * 53,
        is_admin=False,
        created_at=generate_test_datetime(),
        deleted_at=None,
    )


class TestIds:

    def test_new_id_is_ulid_string(self):
        first = new_id()
        second = new_id()

        assert len(first) == 26
        assert first != second

    def test_as_utc(self):
        aware = generate_test_datetime()

        assert as_utc(aware) is aware
        assert as_utc(aware.replace(tzinfo=None)) == aware


class TestUser:

    async def test_login_name_is_unique(self, session):
        session.add(make_user("alice"))
        await session.commit()

        session.add(make_user("alice"))
        with pytest.raises(IntegrityError):
            await session.commit()
        await session.rollback()


class TestCommunity:

    async def test_slug_is_unique(self, session):
        for _ in range(2):
            session.add(
                Community(
                    id=new_id(),
                    name="Alpha",
                    slug="alpha",
                    custom_domain=None,
                    domain_verified_at=None,
                    created_at=generate_test_datetime(),
                    deleted_at=None,
                )
            )
        with pytest.raises(IntegrityError):
            await session.commit()
        await session.rollback()


class TestSession:

    async def test_token_is_unique(self, session):
        user = make_user("alice")
        session.add(user)
        await session.commit()

        for _ in range(2):
            session.add(
                Session(
                    id=new_id(),
                    token="same-token",
                    user_id=user.id,
                    community_id=None,
                    created_at=generate_test_datetime(),
                    expires_at=generate_test_datetime(60),
                )
            )
        with pytest.raises(IntegrityError):
            await session.commit()
        await session.rollback()

    async def test_timestamps_round_trip(self, session):
        user = make_user("alice")
        session.add(user)
        created_at = generate_test_datetime()
        expires_at = generate_test_datetime(5)
        session.add(
            ExchangeToken(
                id=new_id(),
                token="exchange-token",
                user_id=user.id,
                target_domain="alpha.example.com",
                created_at=created_at,
                expires_at=expires_at,
                consumed_at=None,
            )
        )
        await session.commit()
        session.expunge_all()

        stored = (
            await session.scalars(
                select(ExchangeToken).where(ExchangeToken.token == "exchange-token")
            )
        ).one()
        assert as_utc(stored.created_at) == created_at
        assert as_utc(stored.expires_at) == expires_at
        assert stored.consumed_at is None
