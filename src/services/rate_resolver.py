from __future__ import annotations

import logging
import math
from datetime import datetime, timedelta
from typing import Callable

from domain.rates import CurrencyCode, ExchangeRate, utc_now

from .currency_registry import CurrencyRegistry
from .errors import ExternalServiceUnavailableError, UnknownCurrencyError
from .rate_sources import RateSource
from .rate_store import RateStore

logger = logging.getLogger(__name__)

DEFAULT_FRESHNESS_WINDOW = timedelta(weeks=1)


class RateResolver:
    """Resolves exchange rates from the store, falling back to a live source.

    Passing ``freshness_window=None`` disables the cache lookup: every rate is
    fetched, and the fetched pair replaces whatever the store held for it.
    """

    def __init__(
        self,
        store: RateStore,
        source: RateSource,
        registry: CurrencyRegistry,
        *,
        freshness_window: timedelta | None = DEFAULT_FRESHNESS_WINDOW,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self.store = store
        self.source = source
        self.registry = registry
        self.freshness_window = freshness_window
        self.clock = clock

    def get_rate(self, from_currency: str, to_currency: str) -> float:
        base = self._normalize(from_currency)
        quote = self._normalize(to_currency)
        for code in (base, quote):
            if not self.registry.is_known(code):
                raise UnknownCurrencyError(code, suggestion=self.registry.suggest(code))

        window = self.freshness_window
        if window is not None:
            cached = self.store.find(base, quote)
            if cached is not None:
                now = self.clock()
                if cached.age(now) < window:
                    logger.debug("Using cached %s->%s rate %s", base, quote, cached.rate)
                    return cached.rate
                logger.info("Cached %s->%s rate from %s is stale", base, quote, cached.obtained_at.isoformat())
                self._evict_stale(cached, now, window)

        rate = self._fetch(base, quote)
        if window is None:
            self._evict_pair(base, quote)
        self.store.add(
            ExchangeRate(
                from_currency=CurrencyCode(base),
                to_currency=CurrencyCode(quote),
                rate=rate,
                obtained_at=self.clock(),
            )
        )
        return rate

    def convert(self, from_currency: str, to_currency: str, amount: float) -> float:
        if self._normalize(from_currency) == self._normalize(to_currency):
            return amount
        return amount * self.get_rate(from_currency, to_currency)

    def _fetch(self, base: str, quote: str) -> float:
        try:
            rate = float(self.source.fetch_rate(base, quote))
        except Exception as exc:
            logger.warning("Fetching %s->%s failed: %s", base, quote, exc)
            raise ExternalServiceUnavailableError(base, quote) from exc

        if not math.isfinite(rate) or rate <= 0:
            logger.warning("Rate source returned unusable %s->%s rate %r", base, quote, rate)
            raise ExternalServiceUnavailableError(base, quote)
        return rate

    def _evict_stale(self, record: ExchangeRate, now: datetime, window: timedelta) -> None:
        self.store.remove(record.from_currency, record.to_currency)
        # The flipped record was stored alongside and is usually just as old.
        reverse = self.store.find(record.to_currency, record.from_currency)
        if reverse is not None and reverse.age(now) >= window:
            self.store.remove(reverse.from_currency, reverse.to_currency)

    def _evict_pair(self, base: str, quote: str) -> None:
        # Without lookups nothing ever expires, so keep one record per direction.
        while self.store.remove(base, quote):
            pass
        while self.store.remove(quote, base):
            pass

    @staticmethod
    def _normalize(code: str) -> str:
        return code.strip().upper()


__all__ = ["DEFAULT_FRESHNESS_WINDOW", "RateResolver"]
