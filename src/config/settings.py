# src/config/settings.py

"""Central configuration for the price_tracker refresh job."""

import os
from pathlib import Path

from curl_cffi.requests import BrowserTypeLiteral
from dotenv import load_dotenv

load_dotenv()


def _env_bool(name: str, default: bool) -> bool:
    """Read a boolean flag from the environment."""
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in ("1", "true", "yes", "on")


class Settings:
    """Central configuration for the price_tracker refresh job."""

    # --- Fetching ---
    REQUEST_DELAY: float = 1.0          # Politeness pause before a page fetch
    REQUEST_TIMEOUT: int = 15           # Seconds before a request times out
    CLOUDSCRAPER_FALLBACK: bool = True  # Second transport for JS challenges
    CAPTCHA_KEYWORDS: list[str] = [
        "captcha",
        "verify you are human",
        "unusual traffic",
        "automated requests",
    ]

    # --- Batch ---
    MAX_CONCURRENT_REFRESHES: int = int(
        os.getenv("MAX_CONCURRENT_REFRESHES", "8")
    )
    BATCH_DEADLINE_SECONDS: float = float(
        os.getenv("BATCH_DEADLINE_SECONDS", "300")
    )                                   # 0 disables the deadline

    # --- Notification rules ---
    PRICE_DROP_POLICY: str = os.getenv(
        "PRICE_DROP_POLICY", "any_decrease"
    )                                   # "any_decrease" | "new_low"
    DISCOUNT_THRESHOLD_PERCENT: int | None = (
        int(os.getenv("DISCOUNT_THRESHOLD_PERCENT", "40")) or None
    )

    # --- Statistics ---
    PRICE_DECIMALS: int = 2             # Currency minor-unit precision

    # --- Browser Impersonation ---
    IMPERSONATE_BROWSER: BrowserTypeLiteral = "chrome131"
    DEFAULT_HEADERS: dict[str, str] = {
        "Accept": (
            "text/html,application/xhtml+xml,"
            "application/xml;q=0.9,image/avif,"
            "image/webp,image/apng,*/*;q=0.8"
        ),
        "Accept-Language": "en-US,en;q=0.9",
        "sec-ch-ua": (
            '"Google Chrome";v="131", '
            '"Chromium";v="131", '
            '"Not_A Brand";v="24"'
        ),
        "sec-ch-ua-mobile": "?0",
        "sec-ch-ua-platform": '"Windows"',
        "sec-fetch-dest": "document",
        "sec-fetch-mode": "navigate",
        "sec-fetch-site": "none",
        "sec-fetch-user": "?1",
        "Upgrade-Insecure-Requests": "1",
    }

    # --- Email ---
    EMAIL_ENABLED: bool = _env_bool("EMAIL_ENABLED", True)
    SMTP_HOST: str = os.getenv("SMTP_HOST", "smtp.gmail.com")
    SMTP_PORT: int = int(os.getenv("SMTP_PORT", "587"))
    SMTP_USE_TLS: bool = _env_bool("SMTP_USE_TLS", True)
    SMTP_USERNAME: str = os.getenv("SMTP_USERNAME", "")
    SMTP_PASSWORD: str = os.getenv("SMTP_PASSWORD", "")
    SMTP_TIMEOUT: int = 20
    EMAIL_FROM: str = os.getenv("EMAIL_FROM", "")
    EMAIL_SUBJECT_PREFIX: str = os.getenv(
        "EMAIL_SUBJECT_PREFIX", "[Price Tracker]"
    )

    # --- Paths ---
    BASE_DIR: Path = Path(__file__).resolve().parent.parent.parent
    SELECTORS_PATH: Path = BASE_DIR / "src" / "config" / "selectors.json"
    LOGS_DIR: Path = BASE_DIR / "logs"
    PRODUCT_DB_PATH: Path = Path(
        os.getenv(
            "PRODUCT_DB_PATH",
            str(BASE_DIR / "data" / "products.db"),
        )
    )

    # --- Sources (host -> fetcher registry) ---
    AVAILABLE_SOURCES: list[dict[str, object]] = [
        {
            "id": "amazon",
            "label": "Amazon",
            "domains": [
                "amazon.com",
                "amazon.ae",
                "amazon.co.uk",
                "amazon.de",
                "amazon.in",
                "amzn.eu",
            ],
            "scraper": "src.scrapers.amazon_scraper.AmazonScraper",
        },
    ]
