"""Unit tests for environment-driven settings."""

import pytest
from pydantic import ValidationError

from sidecar_injector.settings import Settings


@pytest.fixture(autouse=True)
def clean_env(monkeypatch, tmp_path):
    """Isolate from the developer's environment and any .env file."""
    monkeypatch.chdir(tmp_path)
    for name in (
        "WEBHOOK_PORT",
        "WEBHOOK_PATH",
        "HEALTH_CHECK_FILE",
        "HEALTH_CHECK_INTERVAL_SECONDS",
        "RELOAD_DEBOUNCE_SECONDS",
        "TLS_CERT_FILE",
    ):
        monkeypatch.delenv(name, raising=False)


class TestSettings:
    def test_defaults(self):
        settings = Settings()
        assert settings.webhook_port == 8443
        assert settings.webhook_path == "/webhookmutation"
        assert settings.reload_debounce_seconds == 0.1
        assert settings.health_check_enabled is False

    def test_environment_overrides(self, monkeypatch):
        monkeypatch.setenv("WEBHOOK_PORT", "9443")
        monkeypatch.setenv("TLS_CERT_FILE", "/certs/tls.crt")
        monkeypatch.setenv("RELOAD_DEBOUNCE_SECONDS", "0.5")

        settings = Settings()
        assert settings.webhook_port == 9443
        assert settings.cert_file == "/certs/tls.crt"
        assert settings.reload_debounce_seconds == 0.5

    @pytest.mark.parametrize(
        "interval,path,enabled",
        [("10", "/tmp/health", True), ("0", "/tmp/health", False), ("10", "", False)],
    )
    def test_health_check_enabled(self, monkeypatch, interval, path, enabled):
        monkeypatch.setenv("HEALTH_CHECK_INTERVAL_SECONDS", interval)
        monkeypatch.setenv("HEALTH_CHECK_FILE", path)
        assert Settings().health_check_enabled is enabled

    def test_debounce_must_be_positive(self, monkeypatch):
        monkeypatch.setenv("RELOAD_DEBOUNCE_SECONDS", "0")
        with pytest.raises(ValidationError):
            Settings()
