# src/services/errors.py

"""Exception hierarchy for the refresh-and-notify pipeline.

Collaborator errors (``FetchError``, ``StoreError``, ``DispatchError``)
are raised by the fetcher, the store and the email dispatcher.  The
services translate them into the pipeline taxonomy:

* ``BatchError`` subclasses abort a whole run and reach the caller.
* ``RefreshError`` subclasses fail one product and are recorded by
  the batch coordinator.
* ``DispatchFailed`` never fails a refresh; it is reported as data.
"""


class PriceTrackerError(Exception):
    """Base class for all price_tracker errors."""


class InvalidArgument(PriceTrackerError, ValueError):
    """A pure function received input outside its domain."""


# ── Collaborator errors ──────────────────────────────────


class FetchError(PriceTrackerError):
    """The source page could not be fetched or parsed."""


class StoreError(PriceTrackerError):
    """The product store rejected a read or write."""


class DispatchError(PriceTrackerError):
    """A notification could not be delivered."""


# ── Batch-fatal ──────────────────────────────────────────


class BatchError(PriceTrackerError):
    """A failure that aborts the whole batch run."""


class NoProductsTracked(BatchError):
    """The store holds no tracked products."""


class StoreUnreachable(BatchError):
    """The initial product list could not be loaded."""


# ── Per-product ──────────────────────────────────────────


class RefreshError(PriceTrackerError):
    """Refreshing a single product failed; siblings are unaffected."""

    reason = "refresh failed"

    def __init__(self, locator: str, detail: str = "") -> None:
        self.locator = locator
        self.detail = detail
        message = f"{self.reason}: {locator}"
        if detail:
            message = f"{message} ({detail})"
        super().__init__(message)


class FetchFailed(RefreshError):
    """The fetcher returned no usable snapshot."""

    reason = "fetch failed"


class PersistFailed(RefreshError):
    """The store write for the refreshed product failed."""

    reason = "persist failed"


class DispatchFailed(RefreshError):
    """Notification delivery failed after the price was persisted."""

    reason = "dispatch failed"
