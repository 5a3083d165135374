# src/services/notification_classifier.py

"""Decide whether a refreshed product warrants a notification.

Rules are evaluated in priority order and the first match wins, so at
most one notification kind is produced per refresh:

1. ``BACK_IN_STOCK``      previously unavailable, now available.
2. ``PRICE_DROP``         price fell (policy decides how far).
3. ``THRESHOLD_REACHED``  the price crossed down to the product's target
                          price, or the advertised discount crossed up to
                          the configured percentage.
"""

from dataclasses import dataclass
from decimal import Decimal
from enum import Enum

from src.config.settings import Settings
from src.models.notification import NotificationKind
from src.models.product import ProductSnapshot, TrackedProduct


class PriceDropPolicy(str, Enum):
    """Which decreases count as a price drop."""

    ANY_DECREASE = "any_decrease"
    NEW_LOW = "new_low"


@dataclass(frozen=True)
class ClassifierConfig:
    """Rule constants for :func:`classify`."""

    drop_policy: PriceDropPolicy = PriceDropPolicy.ANY_DECREASE
    discount_threshold_percent: int | None = None

    @classmethod
    def from_settings(cls) -> "ClassifierConfig":
        """Build the config from :class:`Settings`."""
        return cls(
            drop_policy=PriceDropPolicy(Settings.PRICE_DROP_POLICY),
            discount_threshold_percent=(
                Settings.DISCOUNT_THRESHOLD_PERCENT
            ),
        )


DEFAULT_CONFIG = ClassifierConfig()


def _is_price_drop(
    previous: TrackedProduct,
    fresh_price: Decimal,
    policy: PriceDropPolicy,
) -> bool:
    if fresh_price >= previous.current_price:
        return False
    if policy is PriceDropPolicy.NEW_LOW:
        return fresh_price <= previous.lowest_price
    return True


def _is_threshold_reached(
    previous: TrackedProduct,
    fresh: ProductSnapshot,
    config: ClassifierConfig,
) -> bool:
    # Crossings only
    target = previous.target_price
    if target is not None:
        if fresh.current_price <= target < previous.current_price:
            return True
    threshold = config.discount_threshold_percent
    if threshold is not None:
        return previous.discount_rate < threshold <= fresh.discount_rate
    return False


def classify(
    previous: TrackedProduct,
    fresh: ProductSnapshot,
    config: ClassifierConfig = DEFAULT_CONFIG,
) -> NotificationKind | None:
    """Map (pre-refresh product, fresh snapshot) to a notification kind.

    ``previous`` must be the product as it was *before* the fresh price
    was appended.  Returns ``None`` when nobody should be emailed.
    """
    if not previous.is_available and fresh.is_available:
        return NotificationKind.BACK_IN_STOCK

    # An unparsed price (0) is never a drop or a threshold hit
    if fresh.current_price <= 0:
        return None

    if _is_price_drop(previous, fresh.current_price, config.drop_policy):
        return NotificationKind.PRICE_DROP

    if _is_threshold_reached(previous, fresh, config):
        return NotificationKind.THRESHOLD_REACHED

    return None
