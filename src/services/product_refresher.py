# src/services/product_refresher.py

"""Bring one tracked product up to date and notify its subscribers."""

import asyncio
import logging
from dataclasses import dataclass
from typing import Any

from src.models.notification import NotificationEvent, NotificationKind
from src.models.price_sample import PriceSample
from src.models.product import ProductSnapshot, TrackedProduct
from src.notifications.email_dispatcher import EmailDispatcher
from src.notifications.templates import render_message
from src.scrapers.fetcher import SnapshotFetcher
from src.services import stat_aggregator
from src.services.errors import (
    DispatchError,
    DispatchFailed,
    FetchError,
    FetchFailed,
    PersistFailed,
    StoreError,
)
from src.services.notification_classifier import (
    ClassifierConfig,
    classify,
)
from src.storage.product_store import ProductStore

logger = logging.getLogger("price_tracker.refresher")


@dataclass
class RefreshOutcome:
    """Result of a successful refresh."""

    product: TrackedProduct
    notification: NotificationKind | None = None
    recipients: int = 0
    dispatch_error: DispatchFailed | None = None


def updated_fields(
    product: TrackedProduct,
    snapshot: ProductSnapshot,
) -> dict[str, Any]:
    """Return the store fields for *product* after observing *snapshot*.

    The product itself is not modified.  A snapshot without a price
    (an unavailable listing that shows none) repeats the last known
    price so the statistics are not dragged to zero.
    """
    price = (
        snapshot.current_price
        if snapshot.current_price > 0
        else product.current_price
    )
    history = [*product.price_history, PriceSample(price=price)]
    low, high, avg = stat_aggregator.summarize(history)
    return {
        "title": snapshot.title or product.title,
        "source": snapshot.source or product.source,
        "currency": snapshot.currency or product.currency,
        "image_url": snapshot.image_url or product.image_url,
        "description": snapshot.description or product.description,
        "category": snapshot.category or product.category,
        "is_available": snapshot.is_available,
        "current_price": price,
        "original_price": snapshot.original_price or price,
        "discount_rate": snapshot.discount_rate,
        "price_history": history,
        "lowest_price": low,
        "highest_price": high,
        "average_price": avg,
    }


class ProductRefresher:
    """Fetch, update history and stats, persist, classify, notify."""

    def __init__(
        self,
        fetcher: SnapshotFetcher,
        store: ProductStore,
        dispatcher: EmailDispatcher,
        config: ClassifierConfig | None = None,
    ) -> None:
        self.fetcher = fetcher
        self.store = store
        self.dispatcher = dispatcher
        self.config = config or ClassifierConfig.from_settings()
        self._locks: dict[str, asyncio.Lock] = {}

    def _lock_for(self, locator: str) -> asyncio.Lock:
        return self._locks.setdefault(locator, asyncio.Lock())

    async def refresh(self, product: TrackedProduct) -> RefreshOutcome:
        """Refresh *product*; raise ``FetchFailed`` or ``PersistFailed``.

        Refreshes of the same locator through this refresher run one
        at a time, each building on the document the previous one
        stored.
        """
        async with self._lock_for(product.locator):
            return await self._refresh(product)

    async def _refresh(self, product: TrackedProduct) -> RefreshOutcome:
        locator = product.locator

        try:
            snapshot: ProductSnapshot = await asyncio.to_thread(
                self.fetcher.fetch, locator
            )
        except FetchError as exc:
            logger.error("Fetch failed for %s: %s", locator, exc)
            raise FetchFailed(locator, str(exc)) from exc

        # A refresh queued behind another one for the same locator must
        # build on the document that one stored
        try:
            stored: TrackedProduct | None = await asyncio.to_thread(
                self.store.get, locator
            )
        except StoreError as exc:
            logger.error("Reload failed for %s: %s", locator, exc)
            raise PersistFailed(locator, str(exc)) from exc
        if stored is not None:
            product = stored

        fields = updated_fields(product, snapshot)

        try:
            saved: TrackedProduct = await asyncio.to_thread(
                self.store.upsert_by_locator, locator, fields
            )
        except StoreError as exc:
            logger.error("Persist failed for %s: %s", locator, exc)
            raise PersistFailed(locator, str(exc)) from exc

        # Classification compares against the pre-refresh product
        kind = classify(product, snapshot, self.config)
        outcome = RefreshOutcome(product=saved, notification=kind)
        if kind is None:
            return outcome

        logger.info("%s: %s", kind.value, locator)
        if not saved.subscribers:
            return outcome

        event = NotificationEvent(
            kind=kind, locator=saved.locator, title=saved.title,
        )
        message = render_message(event)
        recipients = sorted(saved.subscribers)
        try:
            await asyncio.to_thread(
                self.dispatcher.send, message, recipients
            )
        except DispatchError as exc:
            # The persisted price update stands
            logger.error(
                "Dispatch of %s failed for %s: %s",
                kind.value,
                locator,
                exc,
            )
            outcome.dispatch_error = DispatchFailed(locator, str(exc))
        else:
            outcome.recipients = len(recipients)
        return outcome
