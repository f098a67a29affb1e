"""
Unit tests for exporter configuration (ExporterSettings, CollectionConfig).

Tests verify:
- Config loads from EYEM4_* environment variables with correct defaults.
- Numeric constraints are enforced (ports, timeouts).
- CollectionConfig is built per request and timeout_ms=0 disables the deadline.

CHANGELOG:
- 2026-10-12: Initial creation (STORY-001)

TODO:
- None
"""

import pytest
from exporter.src.config import ExporterSettings
from exporter.src.models import CollectionConfig
from pydantic import ValidationError


class TestExporterSettingsLoadsFromEnv:
    """Config loads all values from environment variables."""

    def test_loads_all_env_vars(self, monkeypatch: pytest.MonkeyPatch) -> None:
        env = {
            "EYEM4_IP": "192.168.1.175",
            "EYEM4_LISTEN_HOST": "127.0.0.1",
            "EYEM4_LISTEN_PORT": "9100",
            "EYEM4_TIMEOUT_MS": "5000",
            "EYEM4_WS_PORT": "443",
            "EYEM4_USERNAME": "user",
            "EYEM4_PASSWORD": "pw1111",
            "EYEM4_REQUEST_TIMEOUT_S": "2.5",
        }
        for key, value in env.items():
            monkeypatch.setenv(key, value)

        settings = ExporterSettings()

        assert settings.ip == "192.168.1.175"
        assert settings.listen_host == "127.0.0.1"
        assert settings.listen_port == 9100
        assert settings.timeout_ms == 5000
        assert settings.ws_port == 443
        assert settings.username == "user"
        assert settings.password == "pw1111"
        assert settings.request_timeout_s == 2.5

    def test_defaults(self) -> None:
        settings = ExporterSettings()

        assert settings.ip == ""
        assert settings.listen_host == "0.0.0.0"
        assert settings.listen_port == 8080
        assert settings.timeout_ms == 10000
        assert settings.ws_port == 8082
        assert settings.username == "admin"
        assert settings.password == "pw8888"
        assert settings.request_timeout_s == 10.0

    def test_ip_is_stripped(self) -> None:
        assert ExporterSettings(ip="  10.0.0.5 ").ip == "10.0.0.5"


class TestExporterSettingsValidation:
    """Numeric constraints are enforced."""

    @pytest.mark.parametrize("port", [0, 65536, -1])
    def test_listen_port_out_of_range(self, port: int) -> None:
        with pytest.raises(ValidationError):
            ExporterSettings(listen_port=port)

    def test_ws_port_out_of_range(self) -> None:
        with pytest.raises(ValidationError):
            ExporterSettings(ws_port=0)

    def test_non_numeric_listen_port_from_env(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("EYEM4_LISTEN_PORT", "abc")

        with pytest.raises(ValidationError) as exc_info:
            ExporterSettings()
        assert "listen_port" in str(exc_info.value)

    def test_negative_timeout_rejected(self) -> None:
        with pytest.raises(ValidationError):
            ExporterSettings(timeout_ms=-1)

    def test_zero_request_timeout_rejected(self) -> None:
        with pytest.raises(ValidationError):
            ExporterSettings(request_timeout_s=0)


class TestCollectionConfig:
    """Per-request collection config."""

    def test_from_settings(self) -> None:
        config = CollectionConfig.from_settings(ExporterSettings(ip="10.0.0.5", timeout_ms=2500))

        assert config.endpoint == "10.0.0.5"
        assert config.timeout_ms == 2500
        assert config.timeout_s == 2.5

    def test_zero_timeout_disables_deadline(self) -> None:
        config = CollectionConfig.from_settings(ExporterSettings(ip="10.0.0.5", timeout_ms=0))

        assert config.timeout_ms is None
        assert config.timeout_s is None

    def test_default_timeout(self) -> None:
        assert CollectionConfig(endpoint="10.0.0.5").timeout_ms == 10000

    def test_is_immutable(self) -> None:
        config = CollectionConfig(endpoint="10.0.0.5")

        with pytest.raises(ValidationError):
            config.endpoint = "10.0.0.6"  # type: ignore[misc]
