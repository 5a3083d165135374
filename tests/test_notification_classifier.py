# tests/test_notification_classifier.py

"""Tests for the notification classification rules."""

import unittest
from dataclasses import replace
from decimal import Decimal

from src.models.notification import NotificationKind
from src.models.price_sample import PriceSample
from src.models.product import ProductSnapshot, TrackedProduct
from src.services import stat_aggregator
from src.services.notification_classifier import (
    ClassifierConfig,
    PriceDropPolicy,
    classify,
)

URL = "https://www.amazon.com/dp/B000TEST01"


def _product(
    *prices: str,
    available: bool = True,
    target: str | None = None,
    discount: int = 0,
) -> TrackedProduct:
    """Build a tracked product whose current price is the last sample."""
    history = [PriceSample(price=Decimal(p)) for p in prices]
    low, high, avg = stat_aggregator.summarize(history)
    return TrackedProduct(
        locator=URL,
        title="Acme Headphones",
        current_price=history[-1].price,
        price_history=history,
        lowest_price=low,
        highest_price=high,
        average_price=avg,
        is_available=available,
        discount_rate=discount,
        target_price=Decimal(target) if target is not None else None,
    )


def _snapshot(
    price: str, available: bool = True, discount: int = 0,
) -> ProductSnapshot:
    """Build a fetched snapshot for the test product."""
    return ProductSnapshot(
        locator=URL,
        title="Acme Headphones",
        current_price=Decimal(price),
        is_available=available,
        discount_rate=discount,
    )


NEW_LOW = ClassifierConfig(drop_policy=PriceDropPolicy.NEW_LOW)


class TestBackInStock(unittest.TestCase):
    """BACK_IN_STOCK has the highest priority."""

    def test_unavailable_to_available(self) -> None:
        """Restocking fires BACK_IN_STOCK."""
        previous = _product("10", available=False)
        self.assertEqual(
            classify(previous, _snapshot("10")),
            NotificationKind.BACK_IN_STOCK,
        )

    def test_wins_over_price_drop(self) -> None:
        """A restock with a lower price is still BACK_IN_STOCK."""
        previous = _product("10", available=False)
        self.assertEqual(
            classify(previous, _snapshot("5")),
            NotificationKind.BACK_IN_STOCK,
        )

    def test_wins_with_zero_price(self) -> None:
        """Restock fires even when no price is shown."""
        previous = _product("10", available=False)
        self.assertEqual(
            classify(previous, _snapshot("0")),
            NotificationKind.BACK_IN_STOCK,
        )

    def test_still_unavailable(self) -> None:
        """Staying out of stock is not a restock."""
        previous = _product("10", available=False)
        self.assertIsNone(
            classify(previous, _snapshot("10", available=False))
        )

    def test_going_out_of_stock_is_silent(self) -> None:
        """Becoming unavailable does not notify."""
        self.assertIsNone(
            classify(_product("10"), _snapshot("10", available=False))
        )


class TestPriceDrop(unittest.TestCase):
    """PRICE_DROP under both policies."""

    def test_new_low_scenario(self) -> None:
        """History [10, 8, 8] and fresh 7 is a price drop."""
        previous = _product("10", "8", "8")
        self.assertEqual(
            classify(previous, _snapshot("7")),
            NotificationKind.PRICE_DROP,
        )
        self.assertEqual(
            classify(previous, _snapshot("7"), NEW_LOW),
            NotificationKind.PRICE_DROP,
        )

    def test_any_decrease_default(self) -> None:
        """Default policy: any strict decrease qualifies."""
        previous = _product("5", "10")
        self.assertEqual(
            classify(previous, _snapshot("9")),
            NotificationKind.PRICE_DROP,
        )

    def test_new_low_policy_ignores_small_decrease(self) -> None:
        """NEW_LOW policy ignores decreases above the historic low."""
        previous = _product("5", "10")
        self.assertIsNone(classify(previous, _snapshot("9"), NEW_LOW))

    def test_new_low_policy_accepts_equal_low(self) -> None:
        """Returning to the historic low counts under NEW_LOW."""
        previous = _product("5", "10")
        self.assertEqual(
            classify(previous, _snapshot("5"), NEW_LOW),
            NotificationKind.PRICE_DROP,
        )

    def test_increase_is_silent(self) -> None:
        """A price increase never notifies."""
        self.assertIsNone(classify(_product("10"), _snapshot("12")))

    def test_unchanged_price_is_silent(self) -> None:
        """A stable price never notifies."""
        self.assertIsNone(classify(_product("10", "8"), _snapshot("8")))

    def test_zero_price_is_not_a_drop(self) -> None:
        """An unparsed price of 0 is not treated as a drop."""
        self.assertIsNone(classify(_product("10"), _snapshot("0")))


class TestThresholdReached(unittest.TestCase):
    """THRESHOLD_REACHED for target prices and discount rates."""

    def test_target_crossed(self) -> None:
        """Crossing the target under NEW_LOW reports the threshold."""
        previous = _product("5", "12", target="10")
        self.assertEqual(
            classify(previous, _snapshot("9.50"), NEW_LOW),
            NotificationKind.THRESHOLD_REACHED,
        )

    def test_price_drop_outranks_threshold(self) -> None:
        """Under the default policy the drop rule matches first."""
        previous = _product("12", target="10")
        self.assertEqual(
            classify(previous, _snapshot("9.50")),
            NotificationKind.PRICE_DROP,
        )

    def test_resting_below_target_is_silent(self) -> None:
        """A price already below target does not re-notify."""
        previous = _product("9", target="10")
        self.assertIsNone(classify(previous, _snapshot("9")))

    def test_no_target_skips_rule(self) -> None:
        """Without a target price the rule is skipped."""
        previous = _product("5", "12")
        self.assertIsNone(classify(previous, _snapshot("12")))

    def test_discount_threshold_crossed(self) -> None:
        """A discount reaching the configured percentage fires."""
        config = ClassifierConfig(discount_threshold_percent=40)
        previous = _product("100", discount=10)
        self.assertEqual(
            classify(previous, _snapshot("100", discount=45), config),
            NotificationKind.THRESHOLD_REACHED,
        )

    def test_discount_already_above_threshold(self) -> None:
        """A discount that was already deep does not re-notify."""
        config = ClassifierConfig(discount_threshold_percent=40)
        previous = _product("100", discount=50)
        self.assertIsNone(
            classify(previous, _snapshot("100", discount=50), config)
        )

    def test_discount_rule_off_by_default(self) -> None:
        """The default config has no discount threshold."""
        previous = _product("100")
        self.assertIsNone(classify(previous, _snapshot("100", discount=90)))


class TestClassifierContract(unittest.TestCase):
    """Determinism and config construction."""

    def test_deterministic(self) -> None:
        """Identical inputs give identical outputs."""
        previous = _product("10", "8", "8")
        fresh = _snapshot("7")
        results = {classify(previous, fresh) for _ in range(5)}
        self.assertEqual(results, {NotificationKind.PRICE_DROP})

    def test_inputs_not_mutated(self) -> None:
        """classify() leaves the product untouched."""
        previous = _product("10", "8", "8")
        before = replace(
            previous, price_history=list(previous.price_history)
        )
        classify(previous, _snapshot("7"))
        self.assertEqual(previous, before)

    def test_from_settings(self) -> None:
        """from_settings() yields a valid drop policy."""
        config = ClassifierConfig.from_settings()
        self.assertIsInstance(config.drop_policy, PriceDropPolicy)


if __name__ == "__main__":
    unittest.main()
