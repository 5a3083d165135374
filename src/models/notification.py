# src/models/notification.py

"""Notification kinds and the ephemeral event passed to the dispatcher."""

from dataclasses import dataclass
from enum import Enum


class NotificationKind(str, Enum):
    """Why subscribers of a product are being emailed."""

    WELCOME = "welcome"
    BACK_IN_STOCK = "back_in_stock"
    PRICE_DROP = "price_drop"
    THRESHOLD_REACHED = "threshold_reached"


@dataclass(frozen=True)
class NotificationEvent:
    """A classified event for one product; never persisted."""

    kind: NotificationKind
    locator: str
    title: str
