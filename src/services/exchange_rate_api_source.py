from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any

import requests
from requests import Response
from requests.adapters import HTTPAdapter
from urllib3.util import Retry

from .rate_sources import RateSource

logger = logging.getLogger(__name__)


# API docs: https://www.exchangerate-api.com/docs/free
class ExchangeRateAPIError(RuntimeError):
    def __init__(self, message: str, *, status_code: int | None = None, payload: Any | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.payload = payload


@dataclass(frozen=True)
class LatestRates:
    timestamp: datetime
    base: str
    rates: dict[str, float]


class _ExchangeRateApiClient:
    """Client for the keyless ``open.er-api.com`` endpoints.

    Every response, success or failure, is a JSON envelope carrying
    ``result`` ("success" or "error") and, on failure, an ``error-type``.
    """

    def __init__(
        self,
        base_url: str = "https://open.er-api.com/v6",
        timeout: float = 10.0,
        session: requests.Session | None = None,
        retry_attempts: int = 3,
        retry_backoff_seconds: float = 0.5,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._session = session or requests.Session()

        retries = Retry(
            total=retry_attempts,
            backoff_factor=retry_backoff_seconds,
            status_forcelist=[429, 500, 502, 503, 504],
            allowed_methods=frozenset({"GET"}),
            raise_on_status=False,
        )
        adapter = HTTPAdapter(max_retries=retries)
        for prefix in ("https://", "http://"):
            self._session.mount(prefix, adapter)

    def get_latest_rates(self, *, base: str) -> LatestRates:
        envelope = self._get(f"/latest/{base.upper()}")

        timestamp_raw = envelope.get("time_last_update_unix")
        base_currency = envelope.get("base_code")
        rates_raw = envelope.get("rates")
        if timestamp_raw is None or base_currency is None or not isinstance(rates_raw, dict):
            raise ExchangeRateAPIError("ExchangeRate-API payload missing required fields", payload=envelope)

        try:
            parsed_rates = {str(code).upper(): float(rate) for code, rate in rates_raw.items()}
        except (TypeError, ValueError) as exc:
            raise ExchangeRateAPIError("ExchangeRate-API payload contains non-numeric rates", payload=envelope) from exc

        return LatestRates(
            timestamp=datetime.fromtimestamp(int(timestamp_raw), tz=timezone.utc),
            base=str(base_currency).upper(),
            rates=parsed_rates,
        )

    def _get(self, path: str) -> dict[str, Any]:
        try:
            response = self._session.request("GET", f"{self.base_url}{path}", timeout=self.timeout)
        except requests.RequestException as exc:
            raise ExchangeRateAPIError("ExchangeRate-API request failed") from exc

        envelope = self._decode(response)
        result = envelope.get("result")
        if result == "success" and response.status_code < 400:
            return envelope

        error_type = envelope.get("error-type") or f"unexpected result {result!r}"
        raise ExchangeRateAPIError(str(error_type), status_code=response.status_code, payload=envelope)

    @staticmethod
    def _decode(response: Response) -> dict[str, Any]:
        try:
            envelope = response.json()
        except ValueError as exc:
            raise ExchangeRateAPIError(
                "ExchangeRate-API returned a non-JSON response",
                status_code=response.status_code,
                payload=response.text,
            ) from exc

        if not isinstance(envelope, dict):
            raise ExchangeRateAPIError(
                "ExchangeRate-API returned unexpected payload type",
                status_code=response.status_code,
                payload=envelope,
            )
        return envelope


class ExchangeRateApiSource(RateSource):
    def __init__(self, *, client: _ExchangeRateApiClient | None = None) -> None:
        self.client = client or _ExchangeRateApiClient()
        self._snapshots: dict[str, LatestRates] = {}

    def fetch_rate(self, base: str, quote: str) -> float:
        base = base.upper()
        quote = quote.upper()
        if base == quote:
            return 1.0

        snapshot = self._snapshot(base)
        try:
            return snapshot.rates[quote]
        except KeyError as exc:
            msg = f"Currency {quote} not available in ExchangeRate-API data for {base}"
            raise ExchangeRateAPIError(msg, payload=snapshot.rates) from exc

    def _snapshot(self, base: str) -> LatestRates:
        snapshot = self._snapshots.get(base)
        if snapshot is None:
            logger.info("Fetching latest rates for %s", base)
            snapshot = self.client.get_latest_rates(base=base)
            self._snapshots[base] = snapshot
        return snapshot


__all__ = ["ExchangeRateAPIError", "ExchangeRateApiSource", "LatestRates"]
