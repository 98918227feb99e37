from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path


@dataclass(frozen=True)
class Currency:
    code: str
    name: str


class ConversionError(Exception):
    """Base class for errors reported to the user by the CLI."""


class UnknownCurrencyError(ConversionError):
    def __init__(self, code: str, *, suggestion: Currency | None = None) -> None:
        super().__init__(code)
        self.code = code
        self.suggestion = suggestion

    def __str__(self) -> str:
        if self.suggestion is None:
            return f"{self.code} isn't a real currency!"
        return f"{self.code} isn't a real currency! Did you mean {self.suggestion.code} ({self.suggestion.name})?"


class ExternalServiceUnavailableError(ConversionError):
    def __init__(self, from_currency: str, to_currency: str) -> None:
        super().__init__(from_currency, to_currency)
        self.from_currency = from_currency
        self.to_currency = to_currency

    def __str__(self) -> str:
        return "Something went wrong with the internet!"


class RateCacheError(ConversionError):
    def __init__(self, path: Path, reason: str) -> None:
        super().__init__(path, reason)
        self.path = path
        self.reason = reason

    def __str__(self) -> str:
        return f"Rate cache {self.path}: {self.reason}"


__all__ = [
    "ConversionError",
    "Currency",
    "ExternalServiceUnavailableError",
    "RateCacheError",
    "UnknownCurrencyError",
]
