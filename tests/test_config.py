"""
Tests for environment-driven settings in ng.commu.api.app.config
"""

from datetime import timedelta

from ng.commu.api.app.config import Settings


class TestSettings:

    def test_defaults(self, monkeypatch):
        monkeypatch.setenv("CONSOLE_DOMAIN", "example.com")

        settings = Settings()  # type: ignore

        assert settings.console_domain == "example.com"
        assert settings.session_duration == timedelta(days=30)
        assert settings.exchange_token_duration == timedelta(minutes=5)
        assert settings.session_cookie_name == "session_token"

    def test_metrics_target_from_environment(self, monkeypatch):
        monkeypatch.setenv("CONSOLE_DOMAIN", "example.com")
        monkeypatch.setenv("TELEGRAF_HOST", "metrics.internal")
        monkeypatch.setenv("TELEGRAF_PORT", "9125")

        settings = Settings()  # type: ignore

        assert settings.statsd_host == "metrics.internal"
        assert settings.statsd_port == 9125
        assert not hasattr(settings, "statsd_prefix")

    def test_aliases(self, monkeypatch):
        monkeypatch.setenv("CONSOLE_DOMAIN", "example.com")
        monkeypatch.setenv("PORT", "8080")
        monkeypatch.delenv("PG_DSN", raising=False)
        monkeypatch.setenv("DATABASE_URL", "postgresql+asyncpg://u:p@db.internal/commung")
        monkeypatch.setenv("SESSION_DURATION_DAYS", "7")

        settings = Settings()  # type: ignore

        assert settings.http_port == 8080
        assert "db.internal" in str(settings.pg_dsn)
        assert settings.session_duration == timedelta(days=7)
