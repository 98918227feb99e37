from __future__ import annotations

import argparse
import logging
import sys
from dataclasses import dataclass, field
from datetime import timedelta
from pathlib import Path
from typing import Sequence

from config import AppSettings, config, default_cache_path
from services.currency_registry import CurrencyRegistry
from services.errors import ConversionError, UnknownCurrencyError
from services.exchange_rate_api_source import ExchangeRateApiSource, _ExchangeRateApiClient
from services.rate_resolver import RateResolver
from services.rate_sources import RateSource
from services.rate_store import RateCacheFile, RateStore
from utils.conversion_table import compute_conversion_table, render_conversion_table

logger = logging.getLogger(__name__)


@dataclass
class ConversionRequest:
    currencies: list[str] = field(default_factory=list)
    prices: list[float] = field(default_factory=list)


def parse_values(values: Sequence[str], registry: CurrencyRegistry) -> ConversionRequest:
    """Split positional arguments into prices and currency codes.

    Anything that parses as a number is a price; everything else must be a
    known currency code. Without prices a single price of 1 is implied.
    """
    request = ConversionRequest()
    for value in values:
        # float() accepts digit separators ("1_000"); prices are plain numbers only.
        if "_" not in value:
            try:
                request.prices.append(float(value))
                continue
            except ValueError:
                pass
        code = value.strip().upper()
        if not registry.is_known(code):
            raise UnknownCurrencyError(code, suggestion=registry.suggest(code))
        request.currencies.append(code)

    if not request.prices:
        request.prices.append(1.0)
    return request


def build_rate_source(settings: AppSettings) -> RateSource:
    client = _ExchangeRateApiClient(
        base_url=settings.rates_api_base_url,
        timeout=settings.request_timeout,
        retry_attempts=settings.retry_attempts,
        retry_backoff_seconds=settings.retry_backoff_seconds,
    )
    return ExchangeRateApiSource(client=client)


def run(
    request: ConversionRequest,
    *,
    registry: CurrencyRegistry,
    source: RateSource,
    cache_file: RateCacheFile | None,
    freshness_window: timedelta | None,
) -> None:
    store = cache_file.load() if cache_file is not None else RateStore()
    resolver = RateResolver(store, source, registry, freshness_window=freshness_window)

    table = compute_conversion_table(resolver, request.currencies, request.prices)
    # Print before saving so a failed save still leaves the user with an answer.
    print(render_conversion_table(table, registry))

    if cache_file is not None and store.modified:
        cache_file.save(store)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="curr",
        description="Convert prices between currencies. The first currency code is the base for every row.",
    )
    parser.add_argument("values", nargs="+", metavar="CODE|PRICE", help="Currency codes and prices, in any order.")
    parser.add_argument("--cache-file", type=Path, default=None, help="Rate cache location (default: ~/.curr-cache).")
    parser.add_argument("--no-cache", action="store_true", help="Neither read nor write the rate cache.")
    parser.add_argument(
        "--max-age-days",
        type=int,
        default=None,
        help="Reuse cached rates younger than this many days; 0 always refetches (default: 7).",
    )
    parser.add_argument("--locale", default=None, help="Locale for currency names and amounts (default: en_US).")
    parser.add_argument("-v", "--verbose", action="store_true", help="Log cache and fetch activity to stderr.")
    return parser


def main(argv: Sequence[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    settings = config()

    if args.verbose:
        logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s %(message)s")

    registry = CurrencyRegistry(locale=args.locale or settings.locale)
    try:
        request = parse_values(args.values, registry)
    except UnknownCurrencyError as exc:
        print(exc, file=sys.stderr)
        return 1
    if not request.currencies:
        parser.error("at least one currency code is required")

    max_age_days = settings.freshness_days if args.max_age_days is None else args.max_age_days
    if max_age_days < 0:
        parser.error("--max-age-days must be >= 0")
    freshness_window = timedelta(days=max_age_days) if max_age_days > 0 else None

    cache_file: RateCacheFile | None = None
    if settings.use_cache and not args.no_cache:
        cache_file = RateCacheFile(args.cache_file or settings.cache_file or default_cache_path())

    try:
        run(
            request,
            registry=registry,
            source=build_rate_source(settings),
            cache_file=cache_file,
            freshness_window=freshness_window,
        )
    except ConversionError as exc:
        logger.debug("Conversion failed", exc_info=exc)
        print(exc, file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
