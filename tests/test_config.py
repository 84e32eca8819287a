"""Tests for settings loaded from the environment."""

from tenant_schema.config import Settings, get_settings


class TestSettings:
    def test_defaults(self, monkeypatch):
        for name in ("DISABLE_SCHEMA_CHECKS", "SCHEMA_CHECK_INTERVAL_SECONDS", "TENANT_SCHEMA_NAME"):
            monkeypatch.delenv(name, raising=False)
        settings = Settings(_env_file=None)

        assert settings.tenant_schema_name == "public"
        assert settings.disable_schema_checks is False
        assert settings.schema_check_interval_seconds == 3600
        assert settings.race_retry_attempts == 3

    def test_environment_overrides(self, monkeypatch):
        monkeypatch.setenv("DISABLE_SCHEMA_CHECKS", "true")
        monkeypatch.setenv("SCHEMA_CHECK_INTERVAL_SECONDS", "60")
        monkeypatch.setenv("SCHEMA_VERSION", "2.1.0")
        monkeypatch.setenv("RACE_RETRY_DELAY_SECONDS", "0.5")
        settings = Settings(_env_file=None)

        assert settings.disable_schema_checks is True
        assert settings.schema_check_interval_seconds == 60
        assert settings.schema_version == "2.1.0"
        assert settings.race_retry_delay_seconds == 0.5

    def test_global_settings(self):
        assert isinstance(get_settings(), Settings)
        assert get_settings() is get_settings()
