# src/scrapers/fetcher.py

"""Route a product locator to the scraper registered for its host."""

import importlib
import logging
from typing import Any, cast
from urllib.parse import urlparse

from src.config.settings import Settings
from src.models.product import ProductSnapshot
from src.scrapers.base_scraper import BaseScraper
from src.services.errors import FetchError

logger = logging.getLogger("price_tracker.fetcher")


def _load_scraper_class(dotted_path: str) -> type[Any]:
    """Dynamically import a scraper class from its dotted module path."""
    module_path, class_name = dotted_path.rsplit(".", 1)
    module = importlib.import_module(module_path)
    cls: type[Any] = getattr(module, class_name)
    return cls


def find_source(locator: str) -> dict[str, object] | None:
    """Return the registry entry whose domains match the locator's host."""
    host = (urlparse(locator).hostname or "").lower()
    if not host:
        return None
    for source in Settings.AVAILABLE_SOURCES:
        domains = cast(list[str], source.get("domains", []))
        for domain in domains:
            if host == domain or host.endswith(f".{domain}"):
                return source
    return None


class SnapshotFetcher:
    """Fetcher facade: ``fetch(locator) -> ProductSnapshot``.

    Scraper instances are created per call.  A curl_cffi session is
    not safe to share between the worker threads the batch runs
    fetches on.
    """

    def fetch(self, locator: str) -> ProductSnapshot:
        """Fetch a fresh snapshot or raise :class:`FetchError`."""
        source = find_source(locator)
        if source is None:
            msg = f"No scraper registered for {locator}"
            raise FetchError(msg)

        scraper_cls = _load_scraper_class(str(source["scraper"]))
        scraper: BaseScraper = scraper_cls()
        try:
            return scraper.fetch(locator)
        except FetchError:
            raise
        except Exception as exc:
            logger.error(
                "Scraper %s crashed on %s: %s",
                source["id"],
                locator,
                exc,
                exc_info=True,
            )
            msg = f"{source['id']} scraper error: {exc}"
            raise FetchError(msg) from exc
