# src/storage/product_store.py

"""SQLite-backed document store for tracked products.

Each product is one logical document keyed by its normalised URL
(the *locator*): the ``products`` row, its ordered ``price_samples``
and its ``subscribers``.  Writes to one document happen inside a
single transaction.
"""

import logging
import re
import sqlite3
import threading
from collections.abc import Callable
from datetime import datetime, timezone
from decimal import Decimal
from pathlib import Path
from typing import Any
from urllib.parse import parse_qs, urlencode, urlparse, urlunparse

from src.config.settings import Settings
from src.models.price_sample import PriceSample
from src.models.product import ProductSnapshot, TrackedProduct
from src.services.errors import StoreError

logger = logging.getLogger("price_tracker.store")

# Amazon tracking params that vary per session
_TRACKING_PARAMS: frozenset[str] = frozenset({
    "ref", "ref_", "dib", "dib_tag", "qid", "sr", "spc",
    "sp_csd", "xpid", "aref", "sp_cr", "psc", "crid",
    "sprefix", "keywords", "pd_rd_i", "pd_rd_r", "pd_rd_w",
    "pd_rd_wg", "pf_rd_i", "pf_rd_m", "pf_rd_p",
    "pf_rd_r", "pf_rd_s", "pf_rd_t", "th", "content-id",
})

_SCHEMA = """\
CREATE TABLE IF NOT EXISTS products (
    id             INTEGER PRIMARY KEY AUTOINCREMENT,
    url            TEXT    NOT NULL UNIQUE,
    title          TEXT    NOT NULL,
    source         TEXT    NOT NULL DEFAULT '',
    currency       TEXT    NOT NULL DEFAULT '',
    image_url      TEXT    NOT NULL DEFAULT '',
    description    TEXT    NOT NULL DEFAULT '',
    category       TEXT    NOT NULL DEFAULT '',
    is_available   INTEGER NOT NULL DEFAULT 1,
    current_price  TEXT    NOT NULL DEFAULT '0',
    original_price TEXT    NOT NULL DEFAULT '0',
    discount_rate  INTEGER NOT NULL DEFAULT 0,
    lowest_price   TEXT    NOT NULL DEFAULT '0',
    highest_price  TEXT    NOT NULL DEFAULT '0',
    average_price  TEXT    NOT NULL DEFAULT '0',
    target_price   TEXT,
    first_seen     TEXT    NOT NULL,
    updated_at     TEXT    NOT NULL
);

CREATE TABLE IF NOT EXISTS price_samples (
    id          INTEGER PRIMARY KEY AUTOINCREMENT,
    product_id  INTEGER NOT NULL
                REFERENCES products(id) ON DELETE CASCADE,
    price       TEXT    NOT NULL,
    observed_at TEXT    NOT NULL
);

CREATE INDEX IF NOT EXISTS idx_samples_product
    ON price_samples(product_id, id);

CREATE TABLE IF NOT EXISTS subscribers (
    id         INTEGER PRIMARY KEY AUTOINCREMENT,
    product_id INTEGER NOT NULL
               REFERENCES products(id) ON DELETE CASCADE,
    email      TEXT    NOT NULL,
    UNIQUE (product_id, email)
);
"""

_PRODUCT_COLUMNS = (
    "id, url, title, source, currency, image_url, description, "
    "category, is_available, current_price, original_price, "
    "discount_rate, lowest_price, highest_price, average_price, "
    "target_price"
)


def _dec(value: Any) -> str:
    return str(value)


def _opt_dec(value: Any) -> str | None:
    return None if value is None else str(value)


# TrackedProduct field -> (column, converter)
_WRITABLE: dict[str, tuple[str, Callable[[Any], Any]]] = {
    "title": ("title", str),
    "source": ("source", str),
    "currency": ("currency", str),
    "image_url": ("image_url", str),
    "description": ("description", str),
    "category": ("category", str),
    "is_available": ("is_available", int),
    "current_price": ("current_price", _dec),
    "original_price": ("original_price", _dec),
    "discount_rate": ("discount_rate", int),
    "lowest_price": ("lowest_price", _dec),
    "highest_price": ("highest_price", _dec),
    "average_price": ("average_price", _dec),
    "target_price": ("target_price", _opt_dec),
}


def normalize_url(raw_url: str) -> str:
    """Strip tracking/session query params to get a stable product URL."""
    parsed = urlparse(raw_url.strip())

    # Strip Amazon path-based tracking (e.g. /ref=sr_1_243)
    path = re.sub(r"/ref=[^/]*", "", parsed.path)

    params = parse_qs(parsed.query, keep_blank_values=True)
    cleaned = {
        k: v for k, v in params.items()
        if k.lower() not in _TRACKING_PARAMS
    }
    new_query = urlencode(cleaned, doseq=True) if cleaned else ""
    return urlunparse((
        parsed.scheme,
        parsed.netloc.lower(),
        path,
        parsed.params,
        new_query,
        "",  # drop fragment
    ))


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


class ProductStore:
    """Tracked-product documents keyed by locator."""

    def __init__(
        self, db_path: Path | None = None,
    ) -> None:
        path = db_path or Settings.PRODUCT_DB_PATH
        # Shared across worker threads; _lock serialises access
        self._lock = threading.Lock()
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            self._conn = sqlite3.connect(
                str(path), check_same_thread=False,
            )
            self._conn.execute("PRAGMA journal_mode=WAL")
            self._conn.execute("PRAGMA foreign_keys=ON")
            self._conn.executescript(_SCHEMA)
        except (sqlite3.Error, OSError) as exc:
            msg = f"Cannot open product store at {path}: {exc}"
            raise StoreError(msg) from exc
        logger.debug("ProductStore opened at %s", path)

    def close(self) -> None:
        """Close the database connection."""
        self._conn.close()

    # ── Reading ──────────────────────────────────────────

    def _row_to_product(
        self,
        row: tuple[Any, ...],
        history: list[PriceSample],
        subscribers: frozenset[str],
    ) -> TrackedProduct:
        return TrackedProduct(
            locator=row[1],
            title=row[2],
            source=row[3],
            currency=row[4],
            image_url=row[5],
            description=row[6],
            category=row[7],
            is_available=bool(row[8]),
            current_price=Decimal(row[9]),
            original_price=Decimal(row[10]),
            discount_rate=row[11],
            lowest_price=Decimal(row[12]),
            highest_price=Decimal(row[13]),
            average_price=Decimal(row[14]),
            target_price=(
                Decimal(row[15]) if row[15] is not None else None
            ),
            price_history=history,
            subscribers=subscribers,
        )

    def _history(self, product_id: int) -> list[PriceSample]:
        rows = self._conn.execute(
            "SELECT price, observed_at FROM price_samples "
            "WHERE product_id = ? ORDER BY id ASC",
            (product_id,),
        ).fetchall()
        return [
            PriceSample(
                price=Decimal(r[0]),
                observed_at=datetime.fromisoformat(r[1]),
            )
            for r in rows
        ]

    def _subscribers(self, product_id: int) -> frozenset[str]:
        rows = self._conn.execute(
            "SELECT email FROM subscribers WHERE product_id = ?",
            (product_id,),
        ).fetchall()
        return frozenset(r[0] for r in rows)

    def _load(self, locator: str) -> TrackedProduct | None:
        row = self._conn.execute(
            f"SELECT {_PRODUCT_COLUMNS} FROM products WHERE url = ?",
            (locator,),
        ).fetchone()
        if row is None:
            return None
        return self._row_to_product(
            row, self._history(row[0]), self._subscribers(row[0]),
        )

    def get(self, locator: str) -> TrackedProduct | None:
        """Return one product document, or ``None`` if unknown."""
        try:
            with self._lock:
                return self._load(locator)
        except sqlite3.Error as exc:
            raise StoreError(f"Read failed for {locator}: {exc}") from exc

    def list_all(self) -> list[TrackedProduct]:
        """Return every tracked product, oldest first."""
        try:
            with self._lock:
                rows = self._conn.execute(
                    f"SELECT {_PRODUCT_COLUMNS} FROM products "
                    "ORDER BY id ASC",
                ).fetchall()
                return [
                    self._row_to_product(
                        r, self._history(r[0]), self._subscribers(r[0]),
                    )
                    for r in rows
                ]
        except sqlite3.Error as exc:
            raise StoreError(f"Listing products failed: {exc}") from exc

    # ── Writing ──────────────────────────────────────────

    def upsert_by_locator(
        self,
        locator: str,
        fields: dict[str, Any],
    ) -> TrackedProduct:
        """Write *fields* onto the product document and return it.

        ``price_history`` in *fields* is the full ordered history; only
        the samples beyond what is already stored are appended, so a
        stored history never shrinks.  Subscribers are not writable
        here.
        """
        unknown = set(fields) - set(_WRITABLE) - {"price_history"}
        if unknown:
            msg = f"Unknown product fields: {', '.join(sorted(unknown))}"
            raise StoreError(msg)

        columns = [
            (col, conv(fields[name]))
            for name, (col, conv) in _WRITABLE.items()
            if name in fields
        ]
        # A brand-new document still needs its NOT NULL title
        insert_columns = list(columns)
        if "title" not in fields:
            insert_columns.insert(0, ("title", ""))
        names = ", ".join(c for c, _ in insert_columns)
        marks = ", ".join("?" for _ in insert_columns)
        updates = "".join(f"{c}=excluded.{c}, " for c, _ in columns)
        history: list[PriceSample] = list(fields.get("price_history", []))
        ts = _now()

        try:
            with self._lock, self._conn:
                self._conn.execute(
                    f"INSERT INTO products "
                    f"(url, {names}, first_seen, updated_at) "
                    f"VALUES (?, {marks}, ?, ?) "
                    f"ON CONFLICT(url) DO UPDATE SET "
                    f"{updates}updated_at=excluded.updated_at",
                    (locator, *(v for _, v in insert_columns), ts, ts),
                )
                product_id: int = self._conn.execute(
                    "SELECT id FROM products WHERE url = ?",
                    (locator,),
                ).fetchone()[0]
                stored: int = self._conn.execute(
                    "SELECT COUNT(id) FROM price_samples "
                    "WHERE product_id = ?",
                    (product_id,),
                ).fetchone()[0]
                self._conn.executemany(
                    "INSERT INTO price_samples "
                    "(product_id, price, observed_at) VALUES (?, ?, ?)",
                    [
                        (product_id, str(s.price), s.observed_at.isoformat())
                        for s in history[stored:]
                    ],
                )
                product = self._load(locator)
        except sqlite3.Error as exc:
            raise StoreError(f"Write failed for {locator}: {exc}") from exc

        if product is None:
            raise StoreError(f"Write for {locator} left no document")
        logger.debug(
            "Upserted %s (%d samples)",
            locator,
            len(product.price_history),
        )
        return product

    def add_product(
        self,
        snapshot: ProductSnapshot,
        target_price: Decimal | None = None,
    ) -> TrackedProduct:
        """Start tracking a product from its first snapshot.

        An already tracked locator is returned as stored, apart from
        *target_price* which is updated when given.
        """
        locator = normalize_url(snapshot.locator)
        existing = self.get(locator)
        if existing is not None:
            if target_price is None:
                return existing
            return self.upsert_by_locator(
                locator, {"target_price": target_price},
            )

        price = snapshot.current_price
        fields: dict[str, Any] = {
            "title": snapshot.title,
            "source": snapshot.source,
            "currency": snapshot.currency,
            "image_url": snapshot.image_url,
            "description": snapshot.description,
            "category": snapshot.category,
            "is_available": snapshot.is_available,
            "current_price": price,
            "original_price": snapshot.original_price,
            "discount_rate": snapshot.discount_rate,
            "lowest_price": price,
            "highest_price": price,
            "average_price": price,
            "target_price": target_price,
            "price_history": [PriceSample(price=price)],
        }
        product = self.upsert_by_locator(locator, fields)
        logger.info("Now tracking %s (%s)", product.title, locator)
        return product

    def add_subscriber(self, locator: str, email: str) -> bool:
        """Subscribe *email* to a product; False if already subscribed."""
        address = email.strip().lower()
        try:
            with self._lock, self._conn:
                row = self._conn.execute(
                    "SELECT id FROM products WHERE url = ?",
                    (locator,),
                ).fetchone()
                if row is None:
                    raise StoreError(f"Unknown product: {locator}")
                cur = self._conn.execute(
                    "INSERT OR IGNORE INTO subscribers "
                    "(product_id, email) VALUES (?, ?)",
                    (row[0], address),
                )
        except sqlite3.Error as exc:
            raise StoreError(
                f"Subscribing {address} to {locator} failed: {exc}"
            ) from exc
        return cur.rowcount > 0
