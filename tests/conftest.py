from __future__ import annotations

import pytest

from services.currency_registry import CurrencyRegistry
from tests.helpers.fakes import FakeClock, StubRateSource


@pytest.fixture(scope="session")
def registry() -> CurrencyRegistry:
    return CurrencyRegistry(locale="en_US")


@pytest.fixture(scope="function")
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture(scope="function")
def rate_source() -> StubRateSource:
    return StubRateSource({("USD", "EUR"): 0.5, ("EUR", "GBP"): 0.8, ("GBP", "USD"): 1.25})
