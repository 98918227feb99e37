from __future__ import annotations

import math
from datetime import datetime, timedelta, timezone
from typing import NewType

from pydantic import BaseModel, Field, field_validator, model_validator

CurrencyCode = NewType("CurrencyCode", str)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class ExchangeRate(BaseModel):
    """Directional spot rate: ``amount_in_to = amount_in_from * rate``."""

    from_currency: CurrencyCode
    to_currency: CurrencyCode
    rate: float
    obtained_at: datetime = Field(default_factory=utc_now)

    @field_validator("obtained_at")
    @classmethod
    def _assume_utc(cls, value: datetime) -> datetime:
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc)

    @model_validator(mode="after")
    def _validate_fields(self) -> ExchangeRate:
        if self.from_currency == self.to_currency:
            raise ValueError("from_currency and to_currency must differ")
        if not math.isfinite(self.rate) or self.rate <= 0:
            raise ValueError("rate must be a finite number > 0")
        return self

    def flip(self) -> ExchangeRate:
        return ExchangeRate(
            from_currency=self.to_currency,
            to_currency=self.from_currency,
            rate=1.0 / self.rate,
            obtained_at=self.obtained_at,
        )

    def age(self, now: datetime) -> timedelta:
        return now - self.obtained_at


__all__ = ["CurrencyCode", "ExchangeRate", "utc_now"]
