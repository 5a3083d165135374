# src/models/price_sample.py

"""A single observed price in a product's history."""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import Decimal


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class PriceSample:
    """One price observation; history order is insertion order."""

    price: Decimal
    observed_at: datetime = field(default_factory=_utcnow)

    def __post_init__(self) -> None:
        if not isinstance(self.price, Decimal):
            object.__setattr__(self, "price", Decimal(str(self.price)))
        if self.price < 0:
            msg = f"Price must be non-negative, got {self.price}"
            raise ValueError(msg)
