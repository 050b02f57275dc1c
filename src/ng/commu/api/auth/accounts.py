"""Console accounts: signup, login, password changes and password hashing.

bcrypt is CPU bound, so hashing and verification run in the default executor
to keep the event loop responsive.
"""
import asyncio
from datetime import datetime, timezone
import logging
import re
import secrets
from typing import Optional

import bcrypt
from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from ng.commu.api.auth.errors import AuthError
from ng.commu.api.model.base import new_id
from ng.commu.api.model.user import User

logger = logging.getLogger(__name__)

MIN_PASSWORD_LENGTH = 8
# bcrypt only reads the first 72 bytes
MAX_PASSWORD_BYTES = 72
MAX_LOGIN_NAME_LENGTH = 100

LOGIN_NAME_PATTERN = re.compile(r"^[a-z0-9]([a-z0-9_-]*[a-z0-9])?$")

_dummy_hash: Optional[bytes] = None


def hash_password(password: str, rounds: int = 10) -> str:
    return bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt(rounds)).decode("utf-8")


def verify_password(password: str, password_hash: str) -> bool:
    return bcrypt.checkpw(password.encode("utf-8"), password_hash.encode("utf-8"))


def dummy_hash(rounds: int = 10) -> str:
    """A hash of a random secret, compared against when the login name is unknown."""
    global _dummy_hash
    if _dummy_hash is None:
        _dummy_hash = bcrypt.hashpw(
            secrets.token_bytes(16), bcrypt.gensalt(rounds)
        )
    return _dummy_hash.decode("utf-8")


def validate_login_name(login_name: str) -> None:
    if not (0 < len(login_name) <= MAX_LOGIN_NAME_LENGTH):
        raise AuthError.invalid_request("Login name must be between 1 and 100 characters")
    if LOGIN_NAME_PATTERN.match(login_name) is None:
        raise AuthError.invalid_request(
            "Login name may only contain lowercase letters, digits, '-' and '_'"
        )


def validate_password(password: str) -> None:
    if len(password) < MIN_PASSWORD_LENGTH:
        raise AuthError.invalid_request("Password must be at least 8 characters long")
    if len(password.encode("utf-8")) > MAX_PASSWORD_BYTES:
        raise AuthError.invalid_request("Password must be at most 72 bytes long")


async def find_user(database_session: AsyncSession, user_id: str) -> Optional[User]:
    """Return the live (not deleted) user with `user_id`."""
    stmt = select(User).where(User.id == user_id, User.deleted_at.is_(None))
    return (await database_session.scalars(stmt)).first()


async def signup_user(
    database_session_maker: async_sessionmaker[AsyncSession],
    login_name: str,
    password: str,
    rounds: int = 10,
) -> User:
    validate_login_name(login_name)
    validate_password(password)

    loop = asyncio.get_running_loop()
    password_hash = await loop.run_in_executor(None, hash_password, password, rounds)

    user = User(
        id=new_id(),
        login_name=login_name,
        email=None,
        password_hash=password_hash,
        is_admin=False,
        created_at=datetime.now(timezone.utc),
        deleted_at=None,
    )
    try:
        async with database_session_maker() as database_session:
            async with database_session.begin():
                existing = (
                    await database_session.scalars(
                        select(User.id).where(User.login_name == login_name)
                    )
                ).first()
                if existing is not None:
                    raise AuthError.login_name_taken()
                database_session.add(user)
    except IntegrityError:
        raise AuthError.login_name_taken()

    logger.info("created user %s", user.id)
    return user


async def authenticate_user(
    database_session_maker: async_sessionmaker[AsyncSession],
    login_name: str,
    password: str,
    rounds: int = 10,
) -> User:
    """
    Check a login name and password.

    The password is always compared against some bcrypt hash, even for unknown
    login names, so response time does not reveal which accounts exist.

    Raises:
        AuthError: invalid_request for malformed input, invalid_credentials otherwise
    """
    if not (0 < len(login_name) <= MAX_LOGIN_NAME_LENGTH):
        raise AuthError.invalid_request("Login name must be between 1 and 100 characters")
    validate_password(password)

    async with database_session_maker() as database_session:
        stmt = select(User).where(
            User.login_name == login_name, User.deleted_at.is_(None)
        )
        user: Optional[User] = (await database_session.scalars(stmt)).first()

    password_hash = user.password_hash if user is not None else dummy_hash(rounds)

    loop = asyncio.get_running_loop()
    valid = await loop.run_in_executor(None, verify_password, password, password_hash)

    if user is None or not valid:
        raise AuthError.invalid_credentials()
    return user


async def change_password(
    database_session_maker: async_sessionmaker[AsyncSession],
    user_id: str,
    current_password: str,
    new_password: str,
    rounds: int = 10,
) -> None:
    """
    Replace a user's password after checking the current one.

    Callers are expected to revoke the user's sessions afterwards.

    Raises:
        AuthError: unauthenticated when the user is gone, invalid_credentials
            when `current_password` does not match, invalid_request when
            `new_password` is unacceptable
    """
    validate_password(new_password)

    async with database_session_maker() as database_session:
        user = await find_user(database_session, user_id)
    if user is None:
        raise AuthError.unauthenticated()
    if len(current_password.encode("utf-8")) > MAX_PASSWORD_BYTES:
        raise AuthError.invalid_credentials()

    loop = asyncio.get_running_loop()
    valid = await loop.run_in_executor(
        None, verify_password, current_password, user.password_hash
    )
    if not valid:
        raise AuthError.invalid_credentials()

    password_hash = await loop.run_in_executor(None, hash_password, new_password, rounds)

    async with database_session_maker() as database_session:
        async with database_session.begin():
            await database_session.execute(
                update(User).where(User.id == user_id).values(password_hash=password_hash)
            )

    logger.info("changed password for user %s", user_id)
