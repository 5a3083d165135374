# src/services/stat_aggregator.py

"""Lowest / highest / average price over a price history."""

from collections.abc import Sequence
from decimal import ROUND_HALF_EVEN, Decimal, localcontext

from src.config.settings import Settings
from src.models.price_sample import PriceSample
from src.services.errors import InvalidArgument


def _prices(history: Sequence[PriceSample]) -> list[Decimal]:
    if not history:
        msg = "Price history must contain at least one sample"
        raise InvalidArgument(msg)
    return [s.price for s in history]


def lowest(history: Sequence[PriceSample]) -> Decimal:
    """Return the minimum price across all samples."""
    return min(_prices(history))


def highest(history: Sequence[PriceSample]) -> Decimal:
    """Return the maximum price across all samples."""
    return max(_prices(history))


def average(
    history: Sequence[PriceSample],
    decimals: int | None = None,
) -> Decimal:
    """Return the arithmetic mean, rounded half-to-even.

    The sum is taken in a wide decimal context so it is exact for any
    realistic history; only the final quotient is rounded to the
    currency's minor unit.
    """
    prices = _prices(history)
    places = Settings.PRICE_DECIMALS if decimals is None else decimals
    quantum = Decimal(1).scaleb(-places)
    with localcontext() as ctx:
        ctx.prec = 60
        mean = sum(prices, Decimal(0)) / len(prices)
        return mean.quantize(quantum, rounding=ROUND_HALF_EVEN)


def summarize(
    history: Sequence[PriceSample],
) -> tuple[Decimal, Decimal, Decimal]:
    """Return ``(lowest, highest, average)`` in one call."""
    return lowest(history), highest(history), average(history)
