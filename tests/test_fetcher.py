# tests/test_fetcher.py

"""Tests for locator-to-scraper routing."""

import unittest
from decimal import Decimal
from unittest.mock import patch

from src.models.product import ProductSnapshot
from src.scrapers.fetcher import SnapshotFetcher, find_source
from src.services.errors import FetchError

LOAD_PATH = "src.scrapers.fetcher._load_scraper_class"


def _make_ok_cls() -> type[object]:
    """Build a fake scraper class returning a fixed snapshot."""

    class OkScraper:
        """Stub scraper returning a snapshot."""

        def fetch(self, locator: str) -> ProductSnapshot:
            """Return a canned snapshot."""
            return ProductSnapshot(
                locator=locator, title="Ok", current_price=Decimal("5"),
            )

    return OkScraper


def _make_crashing_cls(exc: Exception) -> type[object]:
    """Build a fake scraper class whose fetch raises *exc*."""

    class CrashingScraper:
        """Stub scraper that raises on fetch."""

        def fetch(self, locator: str) -> ProductSnapshot:
            """Raise the configured exception."""
            raise exc

    return CrashingScraper


class TestFindSource(unittest.TestCase):
    """Host matching against Settings.AVAILABLE_SOURCES."""

    def test_matches_storefronts(self) -> None:
        """Amazon storefront hosts map to the amazon source."""
        for url in (
            "https://www.amazon.com/dp/B0001",
            "https://amazon.co.uk/dp/B0001",
            "https://smile.amazon.de/dp/B0001",
        ):
            source = find_source(url)
            with self.subTest(url=url):
                assert source is not None
                self.assertEqual(source["id"], "amazon")

    def test_lookalike_host_rejected(self) -> None:
        """A host merely ending in the same letters does not match."""
        self.assertIsNone(find_source("https://notamazon.com/dp/B0001"))

    def test_unknown_host(self) -> None:
        """Unsupported shops return None."""
        self.assertIsNone(find_source("https://shop.example.org/item/1"))

    def test_not_a_url(self) -> None:
        """Strings without a host return None."""
        self.assertIsNone(find_source("B0001"))


class TestSnapshotFetcher(unittest.TestCase):
    """SnapshotFetcher.fetch error translation."""

    def test_unsupported_host_raises(self) -> None:
        """Unknown hosts raise FetchError."""
        with self.assertRaises(FetchError):
            SnapshotFetcher().fetch("https://shop.example.org/item/1")

    @patch(LOAD_PATH, return_value=_make_ok_cls())
    def test_returns_snapshot(self, _mock_load: object) -> None:
        """The registered scraper's snapshot is returned."""
        snapshot = SnapshotFetcher().fetch("https://www.amazon.com/dp/B1")
        self.assertEqual(snapshot.title, "Ok")

    @patch(
        LOAD_PATH,
        return_value=_make_crashing_cls(FetchError("no title")),
    )
    def test_fetch_error_passes_through(self, _mock_load: object) -> None:
        """FetchError from the scraper is re-raised unchanged."""
        with self.assertRaisesRegex(FetchError, "no title"):
            SnapshotFetcher().fetch("https://www.amazon.com/dp/B1")

    @patch(
        LOAD_PATH,
        return_value=_make_crashing_cls(AttributeError("NoneType")),
    )
    def test_unexpected_error_wrapped(self, _mock_load: object) -> None:
        """Other scraper exceptions are wrapped in FetchError."""
        with self.assertRaises(FetchError) as ctx:
            SnapshotFetcher().fetch("https://www.amazon.com/dp/B1")
        self.assertIsInstance(ctx.exception.__cause__, AttributeError)


if __name__ == "__main__":
    unittest.main()
