"""
Tests for the application factory, error middleware and health endpoints in
ng.commu.api.app.server
"""

from aiohttp import web
import pytest

from ng.commu.api.app.config import ErrorWindowAppKey
from ng.commu.api.app.health import ErrorWindow
from ng.commu.api.auth.errors import AuthError, AuthErrorKind


async def handle_boom(request: web.Request):
    raise RuntimeError("boom")


async def handle_not_found(request: web.Request):
    raise web.HTTPNotFound()


@pytest.fixture
def faulty_app(app):
    app.router.add_get("/test/boom", handle_boom)
    app.router.add_get("/test/not-found", handle_not_found)
    return app


class TestAuthErrors:

    @pytest.mark.parametrize(
        "kind,status",
        [
            (AuthErrorKind.UNAUTHENTICATED, 401),
            (AuthErrorKind.WRONG_SESSION_SCOPE, 403),
            (AuthErrorKind.INVALID_DOMAIN, 404),
            (AuthErrorKind.INVALID_TOKEN, 401),
            (AuthErrorKind.TOKEN_EXPIRED, 401),
            (AuthErrorKind.TOKEN_ALREADY_USED, 401),
            (AuthErrorKind.DOMAIN_MISMATCH, 400),
            (AuthErrorKind.MISSING_CREDENTIAL, 400),
            (AuthErrorKind.INVALID_REQUEST, 400),
            (AuthErrorKind.INVALID_CREDENTIALS, 401),
            (AuthErrorKind.LOGIN_NAME_TAKEN, 400),
            (AuthErrorKind.INTERNAL, 500),
        ],
    )
    def test_status_mapping(self, kind, status):
        assert AuthError(kind).status == status

    def test_body(self):
        error = AuthError.token_expired()

        assert error.to_dict() == {
            "error": "Exchange token has expired",
            "code": "token_expired",
        }

    def test_custom_message(self):
        error = AuthError.invalid_request("return_to is required")

        assert error.to_dict()["error"] == "return_to is required"
        assert error.kind is AuthErrorKind.INVALID_REQUEST


class TestErrorMiddleware:

    async def test_unhandled_exception(self, aiohttp_client, faulty_app, mock_statsd):
        client = await aiohttp_client(faulty_app)

        response = await client.get("/test/boom")

        assert response.status == 500
        assert await response.json() == {"error": "Internal Server Error"}
        assert faulty_app[ErrorWindowAppKey].recent == 1
        assert (
            mock_statsd.count(
                "commung.server.request.count",
                method="GET",
                path="/test/boom",
                status=500,
            )
            == 1
        )

    async def test_debug_includes_exception_type(
        self, aiohttp_client, faulty_app, settings
    ):
        settings.debug = True
        client = await aiohttp_client(faulty_app)

        response = await client.get("/test/boom")

        assert response.status == 500
        assert (await response.json())["error_type"] == "RuntimeError"

    async def test_http_exceptions_pass_through(self, aiohttp_client, faulty_app):
        client = await aiohttp_client(faulty_app)

        response = await client.get("/test/not-found")

        assert response.status == 404
        assert faulty_app[ErrorWindowAppKey].recent == 0

    async def test_request_metrics(self, client, mock_statsd):
        await client.get("/health")

        assert (
            mock_statsd.count(
                "commung.server.request.count", method="GET", path="/health", status=200
            )
            == 1
        )
        assert "commung.server.request.time" in mock_statsd.timers


class TestHealthEndpoints:

    @pytest.mark.parametrize("path", ["/health", "/internal/alive"])
    async def test_alive(self, client, path):
        response = await client.get(path)

        assert response.status == 200
        assert await response.text() == "OK"

    async def test_ready(self, client):
        response = await client.get("/internal/ready")

        assert response.status == 200

    async def test_not_ready_after_error_burst(self, client, app):
        app[ErrorWindowAppKey].record(101)

        response = await client.get("/internal/ready")

        assert response.status == 503


class FakeClock:

    def __init__(self):
        self.now = 1000.0

    def __call__(self) -> float:
        return self.now


class TestErrorWindow:

    def test_limit(self):
        error_window = ErrorWindow(limit=2)

        assert error_window.is_ready()
        assert error_window.record() == 1
        assert error_window.record() == 2
        assert error_window.is_ready()
        error_window.record()
        assert not error_window.is_ready()

    def test_errors_age_out(self):
        clock = FakeClock()
        error_window = ErrorWindow(limit=1, window_seconds=60, clock=clock)

        error_window.record(2)
        clock.now += 30
        error_window.record()
        assert error_window.recent == 3
        assert not error_window.is_ready()

        clock.now += 30
        assert error_window.recent == 1
        assert error_window.is_ready()

        clock.now += 30
        error_window.prune()
        assert error_window.recent == 0

    def test_zero_weight_is_not_recorded(self):
        error_window = ErrorWindow()

        assert error_window.record(0) == 0
        assert error_window.recent == 0
