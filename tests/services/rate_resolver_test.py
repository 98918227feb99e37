from __future__ import annotations

from datetime import timedelta

import pytest
import requests

from domain.rates import CurrencyCode, ExchangeRate
from services.currency_registry import CurrencyRegistry
from services.errors import ExternalServiceUnavailableError, UnknownCurrencyError
from services.rate_resolver import RateResolver
from services.rate_store import RateStore
from tests.helpers.fakes import CountingRateStore, FakeClock, StubRateSource


def _resolver(
    registry: CurrencyRegistry,
    source: StubRateSource,
    clock: FakeClock,
    *,
    store: RateStore | None = None,
    freshness_window: timedelta | None = timedelta(weeks=1),
) -> RateResolver:
    store = store if store is not None else RateStore()
    return RateResolver(store, source, registry, freshness_window=freshness_window, clock=clock)


def test_get_rate_fetches_and_stores_both_directions(
    registry: CurrencyRegistry, rate_source: StubRateSource, clock: FakeClock
) -> None:
    resolver = _resolver(registry, rate_source, clock)

    rate = resolver.get_rate("usd", "eur")

    assert rate == 0.5
    assert rate_source.calls == [("USD", "EUR")]
    forward = resolver.store.find("USD", "EUR")
    backward = resolver.store.find("EUR", "USD")
    assert forward is not None and forward.obtained_at == clock.now
    assert backward is not None and backward.rate == pytest.approx(2.0)


def test_cached_rate_is_reused_within_window(
    registry: CurrencyRegistry, rate_source: StubRateSource, clock: FakeClock
) -> None:
    resolver = _resolver(registry, rate_source, clock)

    first = resolver.get_rate("USD", "EUR")
    clock.advance(timedelta(days=6, hours=23))
    second = resolver.get_rate("USD", "EUR")

    assert first == second
    assert rate_source.calls == [("USD", "EUR")]


def test_round_trip_uses_flipped_rate(
    registry: CurrencyRegistry, rate_source: StubRateSource, clock: FakeClock
) -> None:
    resolver = _resolver(registry, rate_source, clock)

    converted = resolver.convert("USD", "EUR", 42.0)
    back = resolver.convert("EUR", "USD", converted)

    assert back == pytest.approx(42.0)
    assert rate_source.calls == [("USD", "EUR")]


def test_stale_rate_is_replaced_by_single_fetch(
    registry: CurrencyRegistry, rate_source: StubRateSource, clock: FakeClock
) -> None:
    resolver = _resolver(registry, rate_source, clock)
    resolver.get_rate("USD", "EUR")
    clock.advance(timedelta(weeks=1))
    rate_source.rates[("USD", "EUR")] = 0.6

    rate = resolver.get_rate("USD", "EUR")

    assert rate == 0.6
    assert rate_source.calls == [("USD", "EUR"), ("USD", "EUR")]
    assert len(resolver.store) == 2
    assert all(record.obtained_at == clock.now for record in resolver.store)
    backward = resolver.store.find("EUR", "USD")
    assert backward is not None and backward.rate == pytest.approx(1 / 0.6)


def test_identity_conversion_skips_store_and_source(registry: CurrencyRegistry, clock: FakeClock) -> None:
    source = StubRateSource()
    store = CountingRateStore()
    resolver = _resolver(registry, source, clock, store=store)

    assert resolver.convert("USD", "usd", 12.5) == 12.5
    assert store.find_calls == 0
    assert source.calls == []
    assert len(store) == 0


def test_unknown_currency_names_code_and_suggestion(
    registry: CurrencyRegistry, rate_source: StubRateSource, clock: FakeClock
) -> None:
    resolver = _resolver(registry, rate_source, clock)

    with pytest.raises(UnknownCurrencyError) as excinfo:
        resolver.convert("USD", "zzz", 1.0)

    error = excinfo.value
    assert error.code == "ZZZ"
    assert error.suggestion is not None
    assert error.suggestion.code in registry.codes
    assert "ZZZ isn't a real currency! Did you mean" in str(error)
    assert rate_source.calls == []


def test_source_failure_maps_to_service_unavailable(registry: CurrencyRegistry, clock: FakeClock) -> None:
    failure = requests.ConnectionError("offline")
    source = StubRateSource(error=failure)
    resolver = _resolver(registry, source, clock)

    with pytest.raises(ExternalServiceUnavailableError) as excinfo:
        resolver.get_rate("USD", "EUR")

    assert excinfo.value.__cause__ is failure
    assert (excinfo.value.from_currency, excinfo.value.to_currency) == ("USD", "EUR")
    assert str(excinfo.value) == "Something went wrong with the internet!"
    assert len(resolver.store) == 0


def test_unexpected_source_crash_is_contained(registry: CurrencyRegistry, clock: FakeClock) -> None:
    source = StubRateSource()
    resolver = _resolver(registry, source, clock)

    # The stub raises KeyError for pairs it does not know.
    with pytest.raises(ExternalServiceUnavailableError):
        resolver.get_rate("USD", "JPY")


@pytest.mark.parametrize("bad_rate", [0.0, -1.0, float("nan"), float("inf")])
def test_unusable_rate_maps_to_service_unavailable(
    registry: CurrencyRegistry, clock: FakeClock, bad_rate: float
) -> None:
    source = StubRateSource({("USD", "EUR"): bad_rate})
    resolver = _resolver(registry, source, clock)

    with pytest.raises(ExternalServiceUnavailableError):
        resolver.get_rate("USD", "EUR")
    assert len(resolver.store) == 0


def test_disabled_freshness_always_fetches(
    registry: CurrencyRegistry, rate_source: StubRateSource, clock: FakeClock
) -> None:
    resolver = _resolver(registry, rate_source, clock, freshness_window=None)

    resolver.get_rate("USD", "EUR")
    resolver.get_rate("USD", "EUR")

    assert rate_source.calls == [("USD", "EUR"), ("USD", "EUR")]


def test_disabled_freshness_replaces_pair_instead_of_appending(
    registry: CurrencyRegistry, rate_source: StubRateSource, clock: FakeClock
) -> None:
    store = RateStore()
    resolver = _resolver(registry, rate_source, clock, store=store, freshness_window=None)

    for _ in range(5):
        resolver.get_rate("USD", "EUR")
        clock.advance(timedelta(days=3))

    assert len(store) == 2
    assert len(rate_source.calls) == 5

    clock.advance(timedelta(weeks=2))
    rate_source.rates[("USD", "EUR")] = 0.6
    fresh = _resolver(registry, rate_source, clock, store=store)
    assert fresh.get_rate("USD", "EUR") == 0.6
    assert fresh.get_rate("EUR", "USD") == pytest.approx(1 / 0.6)
    assert len(rate_source.calls) == 6
    assert len(store) == 2
    assert all(record.obtained_at == clock.now for record in store)


def test_stale_rate_keeps_fresh_reverse_record(
    registry: CurrencyRegistry, rate_source: StubRateSource, clock: FakeClock
) -> None:
    stale = ExchangeRate(
        from_currency=CurrencyCode("USD"),
        to_currency=CurrencyCode("EUR"),
        rate=0.4,
        obtained_at=clock.now - timedelta(weeks=2),
    )
    recent = ExchangeRate(
        from_currency=CurrencyCode("EUR"),
        to_currency=CurrencyCode("USD"),
        rate=2.1,
        obtained_at=clock.now - timedelta(days=1),
    )
    store = RateStore([stale, recent])
    resolver = _resolver(registry, rate_source, clock, store=store)

    assert resolver.get_rate("USD", "EUR") == 0.5

    assert rate_source.calls == [("USD", "EUR")]
    assert len(store) == 3
    assert recent in store.records
    assert stale not in store.records
    assert resolver.get_rate("EUR", "USD") == 2.1
    assert rate_source.calls == [("USD", "EUR")]
