from dataclasses import dataclass
from enum import Enum
import logging
from typing import Optional

from aiohttp import web

from ng.commu.api.app.config import (
    DatabaseSessionMakerAppKey,
    SessionStoreAppKey,
    SettingsAppKey,
)
from ng.commu.api.auth.accounts import find_user
from ng.commu.api.auth.errors import AuthError
from ng.commu.api.auth.sessions import ActiveSession
from ng.commu.api.model.user import User

logger = logging.getLogger(__name__)


class SessionScope(Enum):
    """Which kind of session an endpoint accepts."""

    CONSOLE = "console"
    COMMUNITY = "community"


@dataclass(repr=False, eq=False)
class AuthContext:
    """
    The authenticated caller of a request.

    Attributes:
        session: The live session the request presented
        user: The session's (not deleted) user
    """
    session: ActiveSession
    user: User

    @property
    def community_id(self) -> Optional[str]:
        return self.session.community_id


def extract_token(request: web.Request) -> Optional[str]:
    """
    Return the session token a request carries, if any.

    The `session_token` cookie wins; otherwise an `Authorization: Bearer`
    header is used. Browsers on the console domain send the cookie, app and
    mobile clients send the header.
    """
    settings = request.app[SettingsAppKey]
    cookie_token = request.cookies.get(settings.session_cookie_name)
    if cookie_token:
        return cookie_token

    authorization: Optional[str] = request.headers.get("Authorization")
    if authorization is None or not authorization.startswith("Bearer "):
        return None
    bearer_token = authorization[7:].strip()
    if len(bearer_token) == 0:
        return None
    return bearer_token


async def auth_context_helper(
    request: web.Request, scope: SessionScope
) -> Optional[AuthContext]:
    """
    Authenticate a request for an endpoint that accepts `scope` sessions.

    Returns None when the request carries no usable session: no token, an
    unknown or expired token, or a token whose user was deleted.

    Raises:
        AuthError: wrong_session_scope when the session is live but belongs to the other scope
    """
    token = extract_token(request)
    if token is None:
        return None

    session = await request.app[SessionStoreAppKey].lookup(token)
    if session is None:
        return None

    async with request.app[DatabaseSessionMakerAppKey]() as database_session:
        user = await find_user(database_session, session.user_id)
    if user is None:
        logger.info("session for missing or deleted user %s", session.user_id)
        return None

    if scope is SessionScope.CONSOLE and not session.is_console:
        raise AuthError.wrong_session_scope("Community sessions cannot be used on the console")
    if scope is SessionScope.COMMUNITY and session.is_console:
        raise AuthError.wrong_session_scope("Console sessions cannot be used in a community")

    return AuthContext(session=session, user=user)


async def require_auth(request: web.Request, scope: SessionScope) -> AuthContext:
    auth_context = await auth_context_helper(request, scope)
    if auth_context is None:
        raise AuthError.unauthenticated()
    return auth_context


async def optional_auth(
    request: web.Request, scope: SessionScope
) -> Optional[AuthContext]:
    """Like `auth_context_helper`, but a session of the other scope counts as anonymous."""
    try:
        return await auth_context_helper(request, scope)
    except AuthError:
        return None
