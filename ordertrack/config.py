"""Configuration loading from environment variables."""

from __future__ import annotations

import os

from ordertrack.models.config import (
    DEFAULT_DETAILS_URL_TEMPLATE,
    DEFAULT_ORDERS_URL,
    APIConfig,
    LogConfig,
    OrderTrackConfig,
    RefreshConfig,
    SourceConfig,
    StoreConfig,
)


def _env(key: str, default: str = "") -> str:
    return os.environ.get(f"ORDERTRACK_{key}", default)


def _env_bool(key: str, default: bool = False) -> bool:
    val = _env(key, str(default).lower())
    return val.lower() in ("true", "1", "yes")


def _env_int(key: str, default: int, min_val: int | None = None, max_val: int | None = None) -> int:
    val = int(_env(key, str(default)))
    if min_val is not None:
        val = max(val, min_val)
    if max_val is not None:
        val = min(val, max_val)
    return val


def _validate_log_level(value: str) -> str:
    valid = {"debug", "info", "warning", "error"}
    if value.lower() not in valid:
        raise ValueError(f"Invalid log level: {value}. Must be one of {valid}")
    return value.lower()


def _validate_store_backend(value: str) -> str:
    valid = {"file", "memory"}
    if value.lower() not in valid:
        raise ValueError(f"Invalid store backend: {value}. Must be one of {valid}")
    return value.lower()


def _validate_details_template(value: str) -> str:
    if "{reference_number}" not in value:
        raise ValueError(f"Details URL template must contain '{{reference_number}}': {value}")
    return value


def load_config() -> OrderTrackConfig:
    """Load configuration from ORDERTRACK_* environment variables."""
    return OrderTrackConfig(
        store=StoreConfig(
            backend=_validate_store_backend(_env("STORE_BACKEND", "file")),
            path=_env("STORE_PATH", ".ordertrack"),
            key_prefix=_env("STORE_KEY_PREFIX", "order-history-"),
        ),
        source=SourceConfig(
            orders_url=_env("SOURCE_ORDERS_URL", DEFAULT_ORDERS_URL),
            details_url_template=_validate_details_template(
                _env("SOURCE_DETAILS_URL_TEMPLATE", DEFAULT_DETAILS_URL_TEMPLATE)
            ),
            access_token=_env("SOURCE_ACCESS_TOKEN", ""),
            timeout_seconds=_env_int("SOURCE_TIMEOUT", 30, min_val=5, max_val=120),
        ),
        refresh=RefreshConfig(
            enabled=_env_bool("REFRESH_ENABLED", False),
            interval_seconds=_env_int("REFRESH_INTERVAL", 300, min_val=30, max_val=86400),
        ),
        api=APIConfig(
            port=_env_int("API_PORT", 8080, min_val=1024, max_val=65535),
        ),
        log=LogConfig(
            level=_validate_log_level(_env("LOG_LEVEL", "info")),
        ),
    )
