"""Discount catalog sources.

Both catalogs apply the same rules as the hosted catalog they stand in for:

- regular discounts exclude coupon-tagged and customer-specific entries,
- only live entries (``active`` and inside their date window) are returned,
- coupon lookup matches codes case-insensitively and requires a live entry.

File format (TOML)::

    [[discounts]]
    id = "pasta-bulk"
    percent_off = 20
    category_ref = "pasta"
    min_quantity = 3

    [[discounts]]
    id = "welcome"
    percent_off = 10
    coupon_code = "SAVE10"

JSON files hold either a bare list of entries or ``{"discounts": [...]}``.
"""

from __future__ import annotations

import json
import logging
import threading
import tomllib
from collections.abc import Callable, Iterable
from datetime import UTC, date, datetime
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from cartctl.domain.errors import CatalogError
from cartctl.domain.models import Discount

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]


def _utc_now() -> datetime:
    return datetime.now(UTC)


class StaticDiscountCatalog:
    """In-memory catalog over a fixed list of discounts.

    Parameters:
        discounts: Catalog entries in catalog order.
        clock: Returns "now" for date-window checks.
    """

    def __init__(self, discounts: Iterable[Discount] = (), *, clock: Clock | None = None) -> None:
        self._discounts = list(discounts)
        self._clock = clock or _utc_now

    @property
    def discounts(self) -> list[Discount]:
        return list(self._discounts)

    def get_active_regular_discounts(self) -> list[Discount]:
        return regular_discounts(self._discounts, self._clock())

    def validate_coupon(self, code: str) -> Discount | None:
        return find_coupon(self._discounts, code, self._clock())


class FileDiscountCatalog:
    """Catalog read from a TOML or JSON file, reloaded when the file changes.

    Raises:
        CatalogError: from either lookup when the file is missing or unparseable.
    """

    def __init__(self, path: Path, *, clock: Clock | None = None) -> None:
        self._path = path
        self._clock = clock or _utc_now
        self._mtime: float | None = None
        self._discounts: list[Discount] = []
        self._reload_lock = threading.Lock()

    @property
    def path(self) -> Path:
        return self._path

    def get_active_regular_discounts(self) -> list[Discount]:
        return regular_discounts(self._entries(), self._clock())

    def validate_coupon(self, code: str) -> Discount | None:
        return find_coupon(self._entries(), code, self._clock())

    def _entries(self) -> list[Discount]:
        # Coupon workers and the writer thread may reload concurrently.
        with self._reload_lock:
            try:
                mtime = self._path.stat().st_mtime
            except OSError as exc:
                raise CatalogError(f"Discount catalog not found: {self._path}") from exc
            if mtime != self._mtime:
                self._discounts = load_catalog_file(self._path)
                self._mtime = mtime
            return self._discounts


def regular_discounts(discounts: Iterable[Discount], now: datetime) -> list[Discount]:
    """Live discounts that are not coupons, in catalog order."""
    return [d for d in discounts if not d.is_coupon and d.is_live(now)]


def find_coupon(discounts: Iterable[Discount], code: str, now: datetime) -> Discount | None:
    """The first live discount whose coupon code matches *code* (case-insensitive)."""
    wanted = code.strip().casefold()
    if not wanted:
        return None
    for discount in discounts:
        if not discount.coupon_code or discount.coupon_code.casefold() != wanted:
            continue
        if discount.is_live(now):
            return discount
    return None


def load_catalog_file(path: Path) -> list[Discount]:
    """Parse a TOML or JSON catalog file, skipping invalid entries.

    Raises:
        CatalogError: The file cannot be read or parsed.
    """
    try:
        raw = path.read_text(encoding="utf-8")
    except OSError as exc:
        raise CatalogError(f"Cannot read discount catalog {path}: {exc}") from exc

    try:
        if path.suffix.lower() == ".json":
            data: Any = json.loads(raw)
        else:
            data = tomllib.loads(raw)
    except (json.JSONDecodeError, tomllib.TOMLDecodeError) as exc:
        raise CatalogError(f"Invalid discount catalog {path}: {exc}") from exc

    entries = data.get("discounts", []) if isinstance(data, dict) else data
    if not isinstance(entries, list):
        raise CatalogError(f"Invalid discount catalog {path}: 'discounts' must be a list")
    return parse_entries(entries, source=str(path))


def parse_entries(entries: Iterable[Any], *, source: str = "<catalog>") -> list[Discount]:
    """Validate raw catalog entries into Discounts, skipping invalid ones."""
    discounts: list[Discount] = []
    for index, entry in enumerate(entries):
        if not isinstance(entry, dict):
            logger.warning("Skipping catalog entry #%d in %s: not a table", index, source)
            continue
        try:
            discounts.append(Discount.model_validate(_coerce_entry(entry)))
        except ValidationError as exc:
            logger.warning(
                "Skipping catalog entry #%d (%r) in %s: %s",
                index,
                entry.get("id"),
                source,
                exc.errors()[0]["msg"] if exc.errors() else exc,
            )
    return discounts


def _coerce_entry(entry: dict[str, Any]) -> dict[str, Any]:
    """Normalize file-native types the models do not accept directly."""
    data = dict(entry)
    if isinstance(data.get("percent_off"), float):
        data["percent_off"] = str(data["percent_off"])
    for key in ("start_date", "end_date"):
        value = data.get(key)
        if isinstance(value, date) and not isinstance(value, datetime):
            data[key] = datetime(value.year, value.month, value.day)
    if "id" in data:
        data["id"] = str(data["id"])
    return data
