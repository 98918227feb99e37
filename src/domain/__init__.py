"""Domain models for the currency converter.

Exchange rates are plain (Pydantic) models so that the rate store can
serialize them without a separate persistence layer.
"""

__all__ = [
    "rates",
]
