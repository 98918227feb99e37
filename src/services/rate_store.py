from __future__ import annotations

import logging
from pathlib import Path
from typing import Iterable, Iterator

from pydantic import TypeAdapter, ValidationError

from domain.rates import ExchangeRate

from .errors import RateCacheError

logger = logging.getLogger(__name__)

_RECORDS_ADAPTER: TypeAdapter[list[ExchangeRate]] = TypeAdapter(list[ExchangeRate])


class RateStore:
    """Insertion-ordered collection of directional exchange rates.

    Rates are always added as flipped pairs, so once ``(A, B)`` has been
    fetched both ``find(A, B)`` and ``find(B, A)`` succeed. Lookups are exact
    matches; callers are expected to pass uppercase codes.
    """

    def __init__(self, records: Iterable[ExchangeRate] | None = None) -> None:
        self._records: list[ExchangeRate] = list(records or ())
        self.modified = False

    def __len__(self) -> int:
        return len(self._records)

    def __iter__(self) -> Iterator[ExchangeRate]:
        return iter(self._records)

    @property
    def records(self) -> list[ExchangeRate]:
        return list(self._records)

    def find(self, from_currency: str, to_currency: str) -> ExchangeRate | None:
        for record in self._records:
            if record.from_currency == from_currency and record.to_currency == to_currency:
                return record
        return None

    def remove(self, from_currency: str, to_currency: str) -> bool:
        for index, record in enumerate(self._records):
            if record.from_currency == from_currency and record.to_currency == to_currency:
                # Swap with the last record and pop; order of the rest is not kept.
                self._records[index] = self._records[-1]
                self._records.pop()
                self.modified = True
                return True
        return False

    def add(self, record: ExchangeRate) -> None:
        self._records.append(record.flip())
        self._records.append(record)
        self.modified = True

    def to_bytes(self) -> bytes:
        return _RECORDS_ADAPTER.dump_json(self._records)

    @classmethod
    def from_bytes(cls, data: bytes) -> RateStore:
        if not data.strip():
            return cls()
        return cls(_RECORDS_ADAPTER.validate_json(data))


class RateCacheFile:
    """Loads and saves a ``RateStore`` snapshot at a fixed path."""

    def __init__(self, path: Path) -> None:
        self.path = path

    def load(self) -> RateStore:
        try:
            data = self.path.read_bytes()
        except FileNotFoundError:
            logger.debug("No rate cache at %s, starting empty", self.path)
            return RateStore()
        except OSError as exc:
            raise RateCacheError(self.path, f"cannot be read ({exc.strerror or exc})") from exc

        try:
            store = RateStore.from_bytes(data)
        except ValidationError as exc:
            raise RateCacheError(self.path, "contains invalid data") from exc

        logger.debug("Loaded %d cached rates from %s", len(store), self.path)
        return store

    def save(self, store: RateStore) -> None:
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            self.path.write_bytes(store.to_bytes())
        except OSError as exc:
            raise RateCacheError(self.path, f"cannot be written ({exc.strerror or exc})") from exc
        store.modified = False
        logger.debug("Saved %d rates to %s", len(store), self.path)


__all__ = ["RateCacheFile", "RateStore"]
