from __future__ import annotations

from dataclasses import dataclass, field
from typing import Sequence

from services.currency_registry import CurrencyRegistry
from services.rate_resolver import RateResolver


@dataclass
class ConversionRow:
    price: float
    amounts: list[float]


@dataclass
class ConversionTable:
    base: str
    currencies: list[str]
    rows: list[ConversionRow] = field(default_factory=list)


def compute_conversion_table(
    resolver: RateResolver,
    currencies: Sequence[str],
    prices: Sequence[float],
) -> ConversionTable:
    if not currencies:
        raise ValueError("at least one currency is required")

    base = currencies[0]
    rows = [
        ConversionRow(
            price=price,
            amounts=[resolver.convert(base, code, price) for code in currencies],
        )
        for price in prices
    ]
    return ConversionTable(base=base, currencies=list(currencies), rows=rows)


def render_conversion_table(table: ConversionTable, registry: CurrencyRegistry) -> str:
    headers = [registry.name(code) or code for code in table.currencies]
    cells = [
        [registry.format_amount(code, amount) for code, amount in zip(table.currencies, row.amounts)]
        for row in table.rows
    ]

    widths = [
        max(len(header), max((len(line[column]) for line in cells), default=0))
        for column, header in enumerate(headers)
    ]

    header = " | ".join(f"{text:>{width}}" for text, width in zip(headers, widths))
    lines = [header, "-" * len(header)]
    for line in cells:
        lines.append(" | ".join(f"{text:>{width}}" for text, width in zip(line, widths)))
    lines.append("-" * len(header))
    return "\n".join(lines)


__all__ = ["ConversionRow", "ConversionTable", "compute_conversion_table", "render_conversion_table"]
