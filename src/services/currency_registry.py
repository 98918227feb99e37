from __future__ import annotations

from babel import Locale
from babel.numbers import format_currency, get_currency_name, get_territory_currencies
from rapidfuzz.distance import Levenshtein

from .errors import Currency


def _tender_currencies() -> frozenset[str]:
    # Withdrawn currencies and the ISO X* placeholders are tender nowhere.
    codes: set[str] = set()
    for territory in Locale.parse("en").territories:
        codes.update(get_territory_currencies(territory, tender=True, non_tender=False))
    return frozenset(code.upper() for code in codes)


class CurrencyRegistry:
    """ISO 4217 currencies currently in legal tender, from the CLDR data shipped with Babel."""

    def __init__(self, *, locale: str = "en_US") -> None:
        self.locale = locale
        self._codes = tuple(sorted(_tender_currencies()))
        self._known = frozenset(self._codes)

    @property
    def codes(self) -> tuple[str, ...]:
        return self._codes

    def is_known(self, code: str) -> bool:
        return code.upper() in self._known

    def name(self, code: str) -> str | None:
        code = code.upper()
        if code not in self._known:
            return None
        return get_currency_name(code, locale=self.locale)

    def suggest(self, code: str) -> Currency:
        """Return the known currency closest to ``code`` by edit distance."""
        query = code.upper()
        best = min(self._codes, key=lambda candidate: Levenshtein.distance(query, candidate))
        return Currency(code=best, name=get_currency_name(best, locale=self.locale))

    def format_amount(self, code: str, amount: float) -> str:
        code = code.upper()
        if code not in self._known:
            return str(amount)
        return format_currency(amount, code, locale=self.locale)


__all__ = ["CurrencyRegistry"]
