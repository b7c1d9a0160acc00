"""Configuration data structures."""

from __future__ import annotations

from dataclasses import dataclass, field

DEFAULT_ORDERS_URL = "https://owner-api.teslamotors.com/api/1/users/orders"
DEFAULT_DETAILS_URL_TEMPLATE = (
    "https://akamai-apigateway-vfx.tesla.com/tasks"
    "?deviceLanguage=en&deviceCountry=US&referenceNumber={reference_number}&appVersion=9.99.9-9999"
)


@dataclass
class StoreConfig:
    """Snapshot store configuration."""

    backend: str = "file"
    path: str = ".ordertrack"
    key_prefix: str = "order-history-"


@dataclass
class SourceConfig:
    """Upstream order source configuration."""

    orders_url: str = DEFAULT_ORDERS_URL
    details_url_template: str = DEFAULT_DETAILS_URL_TEMPLATE
    access_token: str = ""
    timeout_seconds: int = 30


@dataclass
class RefreshConfig:
    """Periodic refresh loop configuration."""

    enabled: bool = False
    interval_seconds: int = 300


@dataclass
class APIConfig:
    """REST API configuration."""

    port: int = 8080


@dataclass
class LogConfig:
    """Logging configuration."""

    level: str = "info"


@dataclass
class OrderTrackConfig:
    """Top-level ordertrack configuration."""

    store: StoreConfig = field(default_factory=StoreConfig)
    source: SourceConfig = field(default_factory=SourceConfig)
    refresh: RefreshConfig = field(default_factory=RefreshConfig)
    api: APIConfig = field(default_factory=APIConfig)
    log: LogConfig = field(default_factory=LogConfig)
