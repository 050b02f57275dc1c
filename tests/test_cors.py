"""
Tests for CORS handling in ng.commu.api.app.cors
"""

import pytest

from ng.commu.api.app.cors import get_cors_headers, is_allowed_origin


class TestIsAllowedOrigin:

    @pytest.mark.parametrize(
        "origin",
        [
            "https://example.com",
            "https://alpha.example.com",
            "http://alpha.example.com:8080",
            "https://a.b.example.com",
        ],
    )
    def test_allowed(self, origin):
        assert is_allowed_origin(origin, "example.com")

    @pytest.mark.parametrize(
        "origin",
        [
            "https://evilexample.com",
            "https://example.com.evil.org",
            "https://beta.example.org",
            "null",
            "ftp://example.com",
            "",
        ],
    )
    def test_rejected(self, origin):
        assert not is_allowed_origin(origin, "example.com")


class TestGetCorsHeaders:

    def test_allowed_origin_is_reflected(self):
        headers = get_cors_headers("https://alpha.example.com", "example.com")

        assert headers["Access-Control-Allow-Origin"] == "https://alpha.example.com"
        assert headers["Access-Control-Allow-Credentials"] == "true"
        assert headers["Vary"] == "Origin"

    def test_rejected_origin_gets_no_allow_headers(self):
        headers = get_cors_headers("https://evil.org", "example.com")

        assert headers == {"Vary": "Origin"}

    def test_no_origin(self):
        assert get_cors_headers(None, "example.com") == {"Vary": "Origin"}


class TestCorsMiddleware:

    async def test_preflight(self, client):
        response = await client.options(
            "/auth/callback",
            headers={
                "Origin": "https://alpha.example.com",
                "Access-Control-Request-Method": "POST",
            },
        )

        assert response.status == 204
        assert response.headers["Access-Control-Allow-Origin"] == "https://alpha.example.com"
        assert "POST" in response.headers["Access-Control-Allow-Methods"]
        assert "Authorization" in response.headers["Access-Control-Allow-Headers"]

    async def test_preflight_from_foreign_origin(self, client):
        response = await client.options(
            "/auth/callback",
            headers={
                "Origin": "https://evil.org",
                "Access-Control-Request-Method": "POST",
            },
        )

        assert response.status == 204
        assert "Access-Control-Allow-Origin" not in response.headers

    async def test_headers_on_success(self, client):
        response = await client.get(
            "/health", headers={"Origin": "https://example.com"}
        )

        assert response.status == 200
        assert response.headers["Access-Control-Allow-Origin"] == "https://example.com"
        assert response.headers["Access-Control-Allow-Credentials"] == "true"

    async def test_headers_on_auth_error(self, client):
        response = await client.get(
            "/console/me", headers={"Origin": "https://example.com"}
        )

        assert response.status == 401
        assert response.headers["Access-Control-Allow-Origin"] == "https://example.com"

    async def test_headers_on_redirect(self, client):
        response = await client.get(
            "/auth/sso",
            params={"return_to": "https://alpha.example.com/"},
            headers={"Origin": "https://alpha.example.com"},
            allow_redirects=False,
        )

        assert response.status == 302
        assert response.headers["Access-Control-Allow-Origin"] == "https://alpha.example.com"
