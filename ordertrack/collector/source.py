"""Record sources: where the latest order records come from.

``HttpOrderSource`` fetches the order list, then each order's task details,
and combines them into one record per order::

    {"order": {...}, "details": {...}}

Failures are raised, never swallowed: callers must be able to tell "no
changes" apart from "could not fetch".
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any

import httpx
import structlog

from ordertrack.models.history import Record
from ordertrack.observability.metrics import upstream_fetch_failures_total

_log = structlog.get_logger(component="collector.source")


class UpstreamFetchError(Exception):
    """Raised when the upstream service cannot supply records."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class UnauthorizedError(UpstreamFetchError):
    """Upstream rejected the credentials (HTTP 401); the session is over."""


class RecordSource(ABC):
    """Supplies the latest full record for every tracked order."""

    @abstractmethod
    async def fetch_records(self) -> list[Record]:
        """Return one record per order.

        Raises:
            UnauthorizedError:   credentials rejected.
            UpstreamFetchError:  any other fetch failure.
        """


class HttpOrderSource(RecordSource):
    """Fetches orders and their details over HTTPS with a bearer token.

    Args:
        orders_url:            Endpoint returning ``{"response": [order, ...]}``.
        details_url_template:  Details endpoint; ``{reference_number}`` is
                               substituted per order.
        access_token:          Bearer token sent with every request.
        timeout:               Per-request timeout in seconds.
        transport:             Optional httpx transport (tests inject a
                               ``MockTransport``).
    """

    def __init__(
        self,
        orders_url: str,
        details_url_template: str,
        access_token: str,
        timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        if not access_token:
            raise ValueError("access_token must not be empty")
        self._orders_url = orders_url
        self._details_url_template = details_url_template
        self._headers = {"Authorization": f"Bearer {access_token}", "Accept": "application/json"}
        self._timeout = timeout
        self._transport = transport

    async def fetch_records(self) -> list[Record]:
        async with httpx.AsyncClient(timeout=self._timeout, transport=self._transport) as client:
            orders_payload = await self._get_json(client, self._orders_url)
            orders = orders_payload.get("response") if isinstance(orders_payload, dict) else None
            if not isinstance(orders, list):
                upstream_fetch_failures_total.labels(reason="malformed").inc()
                raise UpstreamFetchError("orders response has no 'response' list")

            records: list[Record] = []
            for order in orders:
                reference_number = order.get("referenceNumber") if isinstance(order, dict) else None
                if not reference_number:
                    _log.warning("order_without_reference_number_skipped")
                    continue
                details_url = self._details_url_template.format(reference_number=reference_number)
                details = await self._get_json(client, details_url)
                records.append({"order": order, "details": details})

        _log.info("records_fetched", count=len(records))
        return records

    async def _get_json(self, client: httpx.AsyncClient, url: str) -> Any:
        try:
            response = await client.get(url, headers=self._headers)
        except httpx.TimeoutException as exc:
            upstream_fetch_failures_total.labels(reason="timeout").inc()
            _log.warning("upstream_request_timeout", url=url)
            raise UpstreamFetchError(f"request to {url} timed out") from exc
        except httpx.HTTPError as exc:
            upstream_fetch_failures_total.labels(reason="transport").inc()
            _log.warning("upstream_http_error", url=url, error=str(exc))
            raise UpstreamFetchError(f"request to {url} failed: {exc}") from exc

        if response.status_code == 401:
            upstream_fetch_failures_total.labels(reason="unauthorized").inc()
            _log.warning("upstream_unauthorized", url=url)
            raise UnauthorizedError("upstream returned 401 Unauthorized", status_code=401)
        if not response.is_success:
            upstream_fetch_failures_total.labels(reason="http_status").inc()
            _log.warning(
                "upstream_non_2xx_response",
                url=url,
                status_code=response.status_code,
                body=response.text[:200],
            )
            raise UpstreamFetchError(
                f"upstream returned HTTP {response.status_code}",
                status_code=response.status_code,
            )

        try:
            return response.json()
        except ValueError as exc:
            upstream_fetch_failures_total.labels(reason="malformed").inc()
            raise UpstreamFetchError(f"response from {url} is not valid JSON") from exc
