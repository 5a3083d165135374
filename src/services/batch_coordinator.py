# src/services/batch_coordinator.py

"""Run the product refresher over every tracked product concurrently."""

import asyncio
import logging
from dataclasses import dataclass, field

from src.config.settings import Settings
from src.models.notification import NotificationKind
from src.models.product import TrackedProduct
from src.services.errors import (
    NoProductsTracked,
    RefreshError,
    StoreError,
    StoreUnreachable,
)
from src.services.product_refresher import ProductRefresher, RefreshOutcome
from src.storage.product_store import ProductStore

logger = logging.getLogger("price_tracker.batch")

DEADLINE_REASON = "deadline exceeded"


@dataclass(frozen=True)
class BatchFailure:
    """A product that could not be refreshed, and why."""

    locator: str
    reason: str


@dataclass
class BatchResult:
    """Partitioned outcome of one batch run.

    A refresh abandoned at the deadline is listed in ``failed`` with
    reason ``"deadline exceeded"`` even if its worker thread was already
    inside the store write; that write can still land, but no
    notification is sent for it.
    """

    succeeded: list[TrackedProduct] = field(
        default_factory=lambda: list[TrackedProduct]()
    )
    failed: list[BatchFailure] = field(
        default_factory=lambda: list[BatchFailure]()
    )
    notifications: list[tuple[str, NotificationKind]] = field(
        default_factory=lambda: list[tuple[str, NotificationKind]]()
    )
    dispatch_failures: list[BatchFailure] = field(
        default_factory=lambda: list[BatchFailure]()
    )
    timed_out: bool = False

    def record(self, outcome: RefreshOutcome) -> None:
        """Add a successful refresh to the result."""
        locator = outcome.product.locator
        self.succeeded.append(outcome.product)
        if outcome.notification is not None:
            self.notifications.append((locator, outcome.notification))
        if outcome.dispatch_error is not None:
            self.dispatch_failures.append(
                BatchFailure(locator, str(outcome.dispatch_error))
            )

    def to_payload(self) -> dict[str, object]:
        """Summary payload for the entry point: ``{message, data}``."""
        message = "Ok" if not self.failed else (
            f"Ok ({len(self.succeeded)} updated, "
            f"{len(self.failed)} failed)"
        )
        return {
            "message": message,
            "data": [p.to_dict() for p in self.succeeded],
            "failed": [
                {"url": f.locator, "reason": f.reason}
                for f in self.failed
            ],
        }


class BatchCoordinator:
    """Scatter one refresh per product, gather into a :class:`BatchResult`.

    Every per-product exception is caught here and recorded in
    ``BatchResult.failed``; only :class:`NoProductsTracked` and
    :class:`StoreUnreachable` escape :meth:`run_batch`.

    When the deadline expires, refreshes still in flight are cancelled
    and recorded as failed with reason ``"deadline exceeded"``.
    Refreshes that finished before the deadline are kept.  A store
    write already running in a worker thread is not interrupted.
    """

    def __init__(
        self,
        store: ProductStore,
        refresher: ProductRefresher,
        max_concurrency: int | None = None,
        deadline: float | None = None,
    ) -> None:
        self.store = store
        self.refresher = refresher
        self.max_concurrency = (
            max_concurrency or Settings.MAX_CONCURRENT_REFRESHES
        )
        self.deadline = (
            Settings.BATCH_DEADLINE_SECONDS if deadline is None else deadline
        )

    async def _load_products(self) -> list[TrackedProduct]:
        try:
            products: list[TrackedProduct] = await asyncio.to_thread(
                self.store.list_all
            )
        except StoreError as exc:
            logger.critical("Cannot load tracked products: %s", exc)
            raise StoreUnreachable(str(exc)) from exc
        if not products:
            msg = "No products found in the product store"
            logger.critical(msg)
            raise NoProductsTracked(msg)
        return products

    async def run_batch(self) -> BatchResult:
        """Refresh every tracked product and partition the outcomes."""
        products = await self._load_products()
        logger.info(
            "Refreshing %d products (concurrency=%d, deadline=%ss)",
            len(products),
            self.max_concurrency,
            self.deadline or "none",
        )

        semaphore = asyncio.Semaphore(self.max_concurrency)

        async def run_one(product: TrackedProduct) -> RefreshOutcome:
            async with semaphore:
                return await self.refresher.refresh(product)

        tasks = {
            asyncio.create_task(
                run_one(p), name=f"refresh:{p.locator}"
            ): p
            for p in products
        }
        _, pending = await asyncio.wait(
            tasks, timeout=self.deadline or None,
        )

        result = BatchResult(timed_out=bool(pending))
        for task in pending:
            task.cancel()
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)
            logger.warning(
                "Deadline of %ss hit; abandoned %d refreshes",
                self.deadline,
                len(pending),
            )

        # Keep the original product order in the result
        for task, product in tasks.items():
            if task.cancelled():
                result.failed.append(
                    BatchFailure(product.locator, DEADLINE_REASON)
                )
                continue
            exc = task.exception()
            if exc is None:
                result.record(task.result())
            elif isinstance(exc, RefreshError):
                result.failed.append(
                    BatchFailure(product.locator, str(exc))
                )
            else:
                logger.error(
                    "Unexpected error refreshing %s: %s",
                    product.locator,
                    exc,
                    exc_info=exc,
                )
                result.failed.append(
                    BatchFailure(
                        product.locator,
                        f"unexpected error: {type(exc).__name__}: {exc}",
                    )
                )

        logger.info(
            "Batch finished: %d updated, %d failed, %d notifications",
            len(result.succeeded),
            len(result.failed),
            len(result.notifications),
        )
        return result
