# src/models/product.py

"""Product data models shared by the fetcher, store and services."""

from dataclasses import dataclass, field
from decimal import Decimal

from src.models.price_sample import PriceSample


@dataclass(frozen=True)
class ProductSnapshot:
    """Latest observed state of a product page, as returned by a fetcher."""

    locator: str
    title: str
    current_price: Decimal
    currency: str = ""
    image_url: str = ""
    is_available: bool = True
    original_price: Decimal = Decimal("0")
    discount_rate: int = 0
    description: str = ""
    category: str = ""
    source: str = ""


@dataclass
class TrackedProduct:
    """A persisted product with its price history and derived statistics."""

    locator: str
    title: str
    current_price: Decimal
    price_history: list[PriceSample] = field(
        default_factory=lambda: list[PriceSample]()
    )
    lowest_price: Decimal = Decimal("0")
    highest_price: Decimal = Decimal("0")
    average_price: Decimal = Decimal("0")
    subscribers: frozenset[str] = frozenset()
    currency: str = ""
    image_url: str = ""
    is_available: bool = True
    original_price: Decimal = Decimal("0")
    discount_rate: int = 0
    description: str = ""
    category: str = ""
    source: str = ""
    target_price: Decimal | None = None

    def to_dict(self) -> dict[str, object]:
        """Serialise to plain JSON-friendly types."""
        return {
            "url": self.locator,
            "title": self.title,
            "currency": self.currency,
            "currentPrice": str(self.current_price),
            "originalPrice": str(self.original_price),
            "discountRate": self.discount_rate,
            "lowestPrice": str(self.lowest_price),
            "highestPrice": str(self.highest_price),
            "averagePrice": str(self.average_price),
            "isAvailable": self.is_available,
            "image": self.image_url,
            "category": self.category,
            "targetPrice": (
                str(self.target_price)
                if self.target_price is not None
                else None
            ),
            "priceHistory": [
                {
                    "price": str(s.price),
                    "date": s.observed_at.isoformat(),
                }
                for s in self.price_history
            ],
            "subscriberCount": len(self.subscribers),
        }
