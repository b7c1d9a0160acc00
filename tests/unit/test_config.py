"""Unit tests for environment-driven configuration."""

from __future__ import annotations

import os

import pytest

from ordertrack.config import load_config
from ordertrack.models.config import DEFAULT_ORDERS_URL


class TestDefaults:
    def test_defaults_without_environment(self, monkeypatch: pytest.MonkeyPatch) -> None:
        for key in list(os.environ):
            if key.startswith("ORDERTRACK_"):
                monkeypatch.delenv(key)
        config = load_config()
        assert config.store.backend == "file"
        assert config.store.key_prefix == "order-history-"
        assert config.source.orders_url == DEFAULT_ORDERS_URL
        assert config.source.access_token == ""
        assert config.refresh.enabled is False
        assert config.refresh.interval_seconds == 300
        assert config.api.port == 8080
        assert config.log.level == "info"


class TestOverrides:
    def test_values_read_from_environment(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("ORDERTRACK_STORE_BACKEND", "MEMORY")
        monkeypatch.setenv("ORDERTRACK_STORE_PATH", "/var/lib/ordertrack")
        monkeypatch.setenv("ORDERTRACK_SOURCE_ACCESS_TOKEN", "tok")
        monkeypatch.setenv("ORDERTRACK_REFRESH_ENABLED", "yes")
        monkeypatch.setenv("ORDERTRACK_LOG_LEVEL", "DEBUG")
        config = load_config()
        assert config.store.backend == "memory"
        assert config.store.path == "/var/lib/ordertrack"
        assert config.source.access_token == "tok"
        assert config.refresh.enabled is True
        assert config.log.level == "debug"

    def test_integers_are_clamped(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("ORDERTRACK_REFRESH_INTERVAL", "1")
        monkeypatch.setenv("ORDERTRACK_API_PORT", "80")
        monkeypatch.setenv("ORDERTRACK_SOURCE_TIMEOUT", "999")
        config = load_config()
        assert config.refresh.interval_seconds == 30
        assert config.api.port == 1024
        assert config.source.timeout_seconds == 120


class TestValidation:
    def test_invalid_log_level(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("ORDERTRACK_LOG_LEVEL", "chatty")
        with pytest.raises(ValueError, match="Invalid log level"):
            load_config()

    def test_invalid_backend(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("ORDERTRACK_STORE_BACKEND", "redis")
        with pytest.raises(ValueError, match="Invalid store backend"):
            load_config()

    def test_details_template_needs_placeholder(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("ORDERTRACK_SOURCE_DETAILS_URL_TEMPLATE", "https://example.test/tasks")
        with pytest.raises(ValueError, match="reference_number"):
            load_config()

    def test_non_numeric_integer(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("ORDERTRACK_API_PORT", "eighty")
        with pytest.raises(ValueError):
            load_config()
