# src/scrapers/base_scraper.py

"""Abstract base class for product-page scrapers."""

import json
import logging
import re
import time
from abc import ABC, abstractmethod
from decimal import Decimal, InvalidOperation
from typing import Any

import cloudscraper  # type: ignore[import-untyped]
from bs4 import BeautifulSoup
from curl_cffi import requests as curl_requests

from src.config.settings import Settings
from src.models.product import ProductSnapshot


class BaseScraper(ABC):
    """Fetch and parse one product page per call.

    A fetch is a single attempt: no retry loop and no backoff.  When
    the browser-impersonating request yields nothing usable, the page
    is requested once through ``cloudscraper`` before giving up.
    """

    def __init__(self, source_name: str) -> None:
        self.source_name = source_name
        self.logger = logging.getLogger(
            f"price_tracker.scraper.{source_name}"
        )
        self.settings = Settings()
        self.selectors: dict[str, Any] = self._load_selectors()
        self.session = curl_requests.Session(
            impersonate=self.settings.IMPERSONATE_BROWSER
        )
        self._request_timeout: int = self.settings.REQUEST_TIMEOUT

    def _load_selectors(self) -> dict[str, Any]:
        """Load CSS selectors for this source from selectors.json."""
        with open(self.settings.SELECTORS_PATH, encoding="utf-8") as f:
            all_selectors: dict[str, Any] = json.load(f)
        result: dict[str, Any] = all_selectors.get(
            self.source_name, {}
        )
        return result

    def _wait(self) -> None:
        """Pause before hitting the source."""
        time.sleep(self.settings.REQUEST_DELAY)

    # Cloudflare challenge page markers (checked before keyword scan)
    _CF_CHALLENGE_MARKERS: list[str] = [
        "challenges.cloudflare.com",
        "cdn-cgi/challenge-platform",
        "just a moment",
        "cf-turnstile",
        "cf_chl_opt",
    ]

    def _validate_response(self, text: str) -> bool:
        """Reject Cloudflare challenge pages and CAPTCHA walls."""
        lower = text.lower()

        for marker in self._CF_CHALLENGE_MARKERS:
            if marker in lower:
                self.logger.warning(
                    "[%s] Cloudflare challenge detected "
                    "(marker: '%s')",
                    self.source_name,
                    marker,
                )
                return False

        # Real product pages are large; only small pages are scanned
        has_body_content = "<body" in lower and len(text) > 5000
        if not has_body_content:
            for keyword in self.settings.CAPTCHA_KEYWORDS:
                if keyword in lower:
                    self.logger.warning(
                        "[%s] CAPTCHA keyword '%s' detected",
                        self.source_name,
                        keyword,
                    )
                    return False
        return True

    def _fetch_get(
        self,
        url: str,
        headers: dict[str, str],
    ) -> str | None:
        """GET the page once; return its HTML or ``None``."""
        try:
            resp = self.session.get(
                url,
                headers=headers,
                timeout=self._request_timeout,
            )
        except Exception as exc:
            self.logger.warning(
                "[%s] Request error for %s: %s",
                self.source_name,
                url,
                exc,
                exc_info=True,
            )
            return None

        if resp.status_code != 200:
            self.logger.warning(
                "[%s] HTTP %d for %s",
                self.source_name,
                resp.status_code,
                url,
            )
            return None
        if not self._validate_response(resp.text):
            return None
        return resp.text

    def _fetch_fallback(
        self,
        url: str,
        headers: dict[str, str],
    ) -> str | None:
        """GET the page through cloudscraper's JS challenge solver."""
        try:
            _cs: Any = cloudscraper
            scraper: Any = _cs.create_scraper()
            resp: Any = scraper.get(
                url,
                headers=headers,
                timeout=self._request_timeout,
            )
        except Exception as exc:
            self.logger.error(
                "[%s] cloudscraper fallback failed: %s",
                self.source_name,
                exc,
                exc_info=True,
            )
            return None
        if resp.status_code != 200:
            return None
        text = str(resp.text)
        return text if self._validate_response(text) else None

    def _get_page(self, url: str) -> BeautifulSoup | None:
        """Fetch a page and parse it, or return ``None``."""
        headers: dict[str, str] = {
            **self.settings.DEFAULT_HEADERS,
            "Referer": self._get_homepage(),
        }
        self._wait()

        html = self._fetch_get(url, headers)
        if html is None and self.settings.CLOUDSCRAPER_FALLBACK:
            self.logger.info(
                "[%s] curl_cffi gave no page, trying cloudscraper",
                self.source_name,
            )
            html = self._fetch_fallback(url, headers)
        if html is None:
            return None
        return BeautifulSoup(html, "lxml")

    @staticmethod
    def extract_price(text: str | None) -> Decimal:
        """Extract a price from a string like '$1,299.00' or 'AED 89'."""
        if not text:
            return Decimal("0")
        cleaned = text.replace(",", "")
        numbers = re.findall(r"\d+(?:\.\d+)?", cleaned)
        if not numbers:
            return Decimal("0")
        try:
            return Decimal(numbers[0])
        except InvalidOperation:
            return Decimal("0")

    @abstractmethod
    def _get_homepage(self) -> str:
        """Return the homepage URL for the Referer header."""
        ...

    @abstractmethod
    def fetch(self, locator: str) -> ProductSnapshot:
        """Fetch one product page; raise ``FetchError`` on failure."""
        ...
