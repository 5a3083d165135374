# src/scrapers/amazon_scraper.py

"""Product-page scraper for Amazon storefronts."""

import json
import re
from decimal import Decimal
from urllib.parse import urlparse

from bs4 import BeautifulSoup, Tag

from src.models.product import ProductSnapshot
from src.scrapers.base_scraper import BaseScraper
from src.services.errors import FetchError

_UNAVAILABLE_PHRASES: tuple[str, ...] = (
    "currently unavailable",
    "out of stock",
    "temporarily out of stock",
)


class AmazonScraper(BaseScraper):
    """Product-page scraper for Amazon storefronts."""

    def __init__(self) -> None:
        super().__init__("amazon")
        self._homepage = "https://www.amazon.com/"

    def _get_homepage(self) -> str:
        """Return the storefront homepage for the Referer header."""
        return self._homepage

    def _first(self, soup: BeautifulSoup, key: str) -> Tag | None:
        """Return the first element matched by any selector for *key*."""
        for selector in self.selectors.get(key, []):
            el = soup.select_one(selector)
            if el is not None:
                return el
        return None

    def _text(self, soup: BeautifulSoup, key: str) -> str:
        el = self._first(soup, key)
        return el.get_text(strip=True) if el else ""

    def _price(self, soup: BeautifulSoup, key: str) -> Decimal:
        """Return the first non-zero price matched for *key*."""
        for selector in self.selectors.get(key, []):
            for el in soup.select(selector):
                price = self.extract_price(el.get_text(strip=True))
                if price > 0:
                    return price
        return Decimal("0")

    def _image(self, soup: BeautifulSoup) -> str:
        """Pick the main image, preferring the dynamic-image map."""
        el = self._first(soup, "image")
        if el is None:
            return ""
        dynamic = el.get("data-a-dynamic-image")
        if isinstance(dynamic, str) and dynamic:
            try:
                urls = list(json.loads(dynamic))
            except json.JSONDecodeError:
                urls = []
            if urls:
                return str(urls[0])
        src = el.get("src")
        return str(src) if src else ""

    def _is_available(self, soup: BeautifulSoup) -> bool:
        text = self._text(soup, "availability").lower()
        return not any(p in text for p in _UNAVAILABLE_PHRASES)

    def _discount(self, soup: BeautifulSoup) -> int:
        match = re.search(r"\d+", self._text(soup, "discount"))
        return int(match.group()) if match else 0

    def _description(self, soup: BeautifulSoup) -> str:
        bullets: list[str] = []
        for selector in self.selectors.get("description", []):
            bullets.extend(
                el.get_text(strip=True) for el in soup.select(selector)
            )
        return "\n".join(b for b in bullets if b)

    def parse(self, locator: str, soup: BeautifulSoup) -> ProductSnapshot:
        """Build a snapshot from a product page; raise if unusable."""
        title = self._text(soup, "title")
        if not title:
            msg = f"No product title on page {locator}"
            raise FetchError(msg)

        available = self._is_available(soup)
        current = self._price(soup, "current_price")
        original = self._price(soup, "original_price")
        if current <= 0 and available:
            msg = f"No price on page {locator}"
            raise FetchError(msg)

        return ProductSnapshot(
            locator=locator,
            title=title,
            current_price=current or original,
            currency=self._text(soup, "currency"),
            image_url=self._image(soup),
            is_available=available,
            original_price=original or current,
            discount_rate=self._discount(soup),
            description=self._description(soup),
            category=self._text(soup, "category"),
            source=self.source_name,
        )

    def fetch(self, locator: str) -> ProductSnapshot:
        """Fetch and parse one Amazon product page."""
        parsed = urlparse(locator)
        self._homepage = f"{parsed.scheme}://{parsed.netloc}/"
        self.logger.info("[amazon] Fetching %s", locator)

        soup = self._get_page(locator)
        if soup is None:
            msg = f"Could not load {locator}"
            raise FetchError(msg)
        return self.parse(locator, soup)
