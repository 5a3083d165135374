# src/notifications/templates.py

"""Plain-text message bodies for each notification kind."""

from dataclasses import dataclass

from src.config.settings import Settings
from src.models.notification import NotificationEvent, NotificationKind


@dataclass(frozen=True)
class RenderedMessage:
    """Subject and plain-text body ready for the dispatcher."""

    subject: str
    body: str


_HEADINGS: dict[NotificationKind, str] = {
    NotificationKind.WELCOME: "Now tracking",
    NotificationKind.BACK_IN_STOCK: "Back in stock",
    NotificationKind.PRICE_DROP: "Price drop",
    NotificationKind.THRESHOLD_REACHED: "Target reached",
}


def _shorten(title: str, limit: int = 40) -> str:
    return title if len(title) <= limit else f"{title[:limit]}..."


def _lines(event: NotificationEvent) -> list[str]:
    if event.kind is NotificationKind.WELCOME:
        return [
            f"You are now tracking {event.title}.",
            "We will email you whenever its price or stock changes "
            "in a way worth knowing about.",
        ]
    if event.kind is NotificationKind.BACK_IN_STOCK:
        return [
            f"{event.title} is available again.",
            "Popular items sell out quickly, so grab it while you can.",
        ]
    if event.kind is NotificationKind.PRICE_DROP:
        return [
            f"The price of {event.title} just dropped.",
            "Check the product page for the current offer.",
        ]
    return [
        f"{event.title} has reached the price or discount you were "
        "waiting for.",
    ]


def render_message(event: NotificationEvent) -> RenderedMessage:
    """Render the email for *event* from its title and locator."""
    heading = _HEADINGS[event.kind]
    subject = (
        f"{Settings.EMAIL_SUBJECT_PREFIX} {heading}: "
        f"{_shorten(event.title)}"
    ).strip()
    body = (
        "\n".join(_lines(event))
        + f"\n\nProduct page: {event.locator}\n"
    )
    return RenderedMessage(subject=subject, body=body)
