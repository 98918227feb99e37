from __future__ import annotations

from typing import Protocol


class RateSource(Protocol):
    """Live spot rate lookup: value of one unit of ``base`` expressed in ``quote``."""

    def fetch_rate(self, base: str, quote: str) -> float: ...


__all__ = ["RateSource"]
