import logging
from typing import Any, Dict

from aiohttp import web
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from ng.commu.api.app.config import (
    DatabaseSessionMakerAppKey,
    SessionStoreAppKey,
    SettingsAppKey,
    TelegrafStatsdClientAppKey,
)
from ng.commu.api.app.handlers.helpers import SessionScope, require_auth
from ng.commu.api.auth.accounts import authenticate_user, change_password, signup_user
from ng.commu.api.auth.errors import AuthError
from ng.commu.api.model.base import as_utc
from ng.commu.api.model.user import User

logger = logging.getLogger(__name__)


class CredentialsRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    login_name: str = Field(alias="loginName", min_length=1)
    password: str = Field(min_length=1)


class PasswordChangeRequest(BaseModel):
    current_password: str = Field(min_length=1)
    new_password: str = Field(min_length=1)


def user_body(user: User) -> Dict[str, Any]:
    return {
        "id": user.id,
        "loginName": user.login_name,
        "createdAt": as_utc(user.created_at).isoformat(),
    }


async def read_credentials(request: web.Request) -> CredentialsRequest:
    try:
        data = await request.read()
        return CredentialsRequest.model_validate_json(data)
    except (OSError, ValidationError):
        raise AuthError.invalid_request("Body must be JSON with loginName and password")


async def start_console_session(
    request: web.Request, user: User, status: int
) -> web.Response:
    """Create a console session for `user` and return it as both cookie and body."""
    settings = request.app[SettingsAppKey]
    session = await request.app[SessionStoreAppKey].create(user.id)

    response = web.json_response(
        {**user_body(user), "sessionToken": session.token}, status=status
    )
    response.set_cookie(
        settings.session_cookie_name,
        session.token,
        max_age=int(settings.session_duration.total_seconds()),
        httponly=True,
        samesite="Lax",
    )
    return response


async def handle_console_signup(request: web.Request):
    settings = request.app[SettingsAppKey]
    credentials = await read_credentials(request)

    user = await signup_user(
        request.app[DatabaseSessionMakerAppKey],
        credentials.login_name,
        credentials.password,
        settings.bcrypt_rounds,
    )
    request.app[TelegrafStatsdClientAppKey].increment("commung.auth.signup", 1)
    return await start_console_session(request, user, 201)


async def handle_console_login(request: web.Request):
    settings = request.app[SettingsAppKey]
    statsd_client = request.app[TelegrafStatsdClientAppKey]
    credentials = await read_credentials(request)

    try:
        user = await authenticate_user(
            request.app[DatabaseSessionMakerAppKey],
            credentials.login_name,
            credentials.password,
            settings.bcrypt_rounds,
        )
    except AuthError as e:
        statsd_client.increment("commung.auth.login.failure", 1, tag_dict={"code": e.kind.code})
        raise

    statsd_client.increment("commung.auth.login.success", 1)
    return await start_console_session(request, user, 200)


async def handle_console_me(request: web.Request):
    auth_context = await require_auth(request, SessionScope.CONSOLE)
    user = auth_context.user
    return web.json_response(
        {
            **user_body(user),
            "email": user.email,
            "isAdmin": user.is_admin,
        }
    )


async def handle_app_me(request: web.Request):
    auth_context = await require_auth(request, SessionScope.COMMUNITY)
    return web.json_response(
        {
            **user_body(auth_context.user),
            "communityId": auth_context.community_id,
        }
    )


async def handle_console_change_password(request: web.Request):
    """Change the caller's password and sign them out everywhere."""
    auth_context = await require_auth(request, SessionScope.CONSOLE)
    settings = request.app[SettingsAppKey]

    try:
        data = await request.read()
        body = PasswordChangeRequest.model_validate_json(data)
    except (OSError, ValidationError):
        raise AuthError.invalid_request(
            "Body must be JSON with current_password and new_password"
        )

    await change_password(
        request.app[DatabaseSessionMakerAppKey],
        auth_context.user.id,
        body.current_password,
        body.new_password,
        settings.bcrypt_rounds,
    )
    await request.app[SessionStoreAppKey].delete_for_user(auth_context.user.id)
    request.app[TelegrafStatsdClientAppKey].increment("commung.auth.password_changed", 1)

    response = web.json_response({"message": "Password changed"})
    response.del_cookie(settings.session_cookie_name)
    return response
