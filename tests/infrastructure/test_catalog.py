"""Tests for the static and file-backed discount catalogs."""

from __future__ import annotations

import json
import logging
import os
import threading
import time
from concurrent.futures import ThreadPoolExecutor
from datetime import UTC, datetime
from decimal import Decimal
from pathlib import Path

import pytest

import cartctl.infrastructure.catalog as catalog_module
from cartctl.domain.errors import CatalogError
from cartctl.infrastructure.catalog import (
    FileDiscountCatalog,
    StaticDiscountCatalog,
    load_catalog_file,
    parse_entries,
)
from tests.conftest import make_discount

NOW = datetime(2026, 6, 1, tzinfo=UTC)

TOML_CATALOG = """\
[[discounts]]
id = "pasta-bulk"
percent_off = 20
category_ref = "pasta"
min_quantity = 3

[[discounts]]
id = "penne-12"
percent_off = 12.5
specific_product_refs = ["penne"]
end_date = 2026-12-31

[[discounts]]
id = "welcome"
percent_off = 10
coupon_code = "SAVE10"

[[discounts]]
id = "expired"
percent_off = 50
category_ref = "pasta"
end_date = 2020-01-01
"""


def _clock() -> datetime:
    return NOW


class TestStaticCatalog:
    def test_regular_excludes_coupons_and_targeted(self) -> None:
        catalog = StaticDiscountCatalog(
            [
                make_discount("a", 10, category_ref="pasta"),
                make_discount("b", 10, coupon_code="B"),
                make_discount("c", 10, customer_specific=True),
            ],
            clock=_clock,
        )
        assert [d.id for d in catalog.get_active_regular_discounts()] == ["a"]

    def test_regular_excludes_inactive_and_out_of_window(self) -> None:
        catalog = StaticDiscountCatalog(
            [
                make_discount("off", 10, active=False),
                make_discount("future", 10, start_date=datetime(2027, 1, 1, tzinfo=UTC)),
                make_discount("live", 10),
            ],
            clock=_clock,
        )
        assert [d.id for d in catalog.get_active_regular_discounts()] == ["live"]

    def test_validate_coupon_case_insensitive(self) -> None:
        catalog = StaticDiscountCatalog([make_discount("b", 10, coupon_code="Save10")])
        found = catalog.validate_coupon("SAVE10")
        assert found is not None
        assert found.id == "b"

    def test_expired_coupon_not_found(self) -> None:
        catalog = StaticDiscountCatalog(
            [make_discount("b", 10, coupon_code="OLD", end_date=datetime(2020, 1, 1))],
            clock=_clock,
        )
        assert catalog.validate_coupon("OLD") is None

    def test_blank_code_not_found(self) -> None:
        catalog = StaticDiscountCatalog([make_discount("b", 10, coupon_code="X")])
        assert catalog.validate_coupon("  ") is None


class TestFileCatalog:
    def test_toml(self, tmp_path: Path) -> None:
        path = tmp_path / "discounts.toml"
        path.write_text(TOML_CATALOG, encoding="utf-8")
        catalog = FileDiscountCatalog(path, clock=_clock)
        regular = catalog.get_active_regular_discounts()
        assert [d.id for d in regular] == ["pasta-bulk", "penne-12"]
        assert regular[1].percent_off == Decimal("12.5")
        assert regular[1].specific_product_refs == frozenset({"penne"})
        coupon = catalog.validate_coupon("save10")
        assert coupon is not None
        assert coupon.id == "welcome"

    def test_json_bare_list(self, tmp_path: Path) -> None:
        path = tmp_path / "discounts.json"
        path.write_text(
            json.dumps([{"id": 7, "percent_off": "15", "category_ref": "pasta"}]),
            encoding="utf-8",
        )
        [discount] = FileDiscountCatalog(path).get_active_regular_discounts()
        assert discount.id == "7"
        assert discount.percent_off == Decimal("15")

    def test_json_object(self, tmp_path: Path) -> None:
        path = tmp_path / "discounts.json"
        path.write_text(json.dumps({"discounts": [{"id": "a", "percent_off": 5}]}), "utf-8")
        assert len(load_catalog_file(path)) == 1

    def test_missing_file(self, tmp_path: Path) -> None:
        catalog = FileDiscountCatalog(tmp_path / "nope.toml")
        with pytest.raises(CatalogError):
            catalog.get_active_regular_discounts()
        with pytest.raises(CatalogError):
            catalog.validate_coupon("X")

    def test_invalid_toml(self, tmp_path: Path) -> None:
        path = tmp_path / "bad.toml"
        path.write_text("[[discounts]\nid=", encoding="utf-8")
        with pytest.raises(CatalogError, match="Invalid discount catalog"):
            load_catalog_file(path)

    def test_discounts_must_be_list(self, tmp_path: Path) -> None:
        path = tmp_path / "bad.json"
        path.write_text(json.dumps({"discounts": {"id": "a"}}), encoding="utf-8")
        with pytest.raises(CatalogError, match="must be a list"):
            load_catalog_file(path)

    def test_reloads_when_file_changes(self, tmp_path: Path) -> None:
        path = tmp_path / "discounts.toml"
        path.write_text("discounts = []\n", encoding="utf-8")
        catalog = FileDiscountCatalog(path, clock=_clock)
        assert catalog.get_active_regular_discounts() == []
        path.write_text(TOML_CATALOG, encoding="utf-8")
        os.utime(path, (1, 1))
        assert len(catalog.get_active_regular_discounts()) == 2

    def test_concurrent_readers_parse_once(
        self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        path = tmp_path / "discounts.toml"
        path.write_text(TOML_CATALOG, encoding="utf-8")
        calls: list[Path] = []

        def slow_load(p: Path) -> list:
            calls.append(p)
            time.sleep(0.05)
            return load_catalog_file(p)

        monkeypatch.setattr(catalog_module, "load_catalog_file", slow_load)
        catalog = FileDiscountCatalog(path, clock=_clock)
        barrier = threading.Barrier(6)

        def read() -> int:
            barrier.wait(timeout=5)
            return len(catalog.get_active_regular_discounts())

        with ThreadPoolExecutor(max_workers=6) as pool:
            counts = list(pool.map(lambda _: read(), range(6)))
        assert counts == [2] * 6
        assert len(calls) == 1


class TestParseEntries:
    def test_invalid_entries_skipped(self, caplog: pytest.LogCaptureFixture) -> None:
        entries = [
            {"id": "ok", "percent_off": 10},
            {"id": "no-percent"},
            "not a table",
            {"id": "bad-percent", "percent_off": "lots"},
        ]
        with caplog.at_level(logging.WARNING, logger="cartctl.infrastructure.catalog"):
            discounts = parse_entries(entries, source="test")
        assert [d.id for d in discounts] == ["ok"]
        assert caplog.text.count("Skipping catalog entry") == 3

    def test_toml_date_becomes_datetime(self) -> None:
        from datetime import date

        [discount] = parse_entries([{"id": "d", "percent_off": 5, "end_date": date(2026, 1, 2)}])
        assert discount.end_date == datetime(2026, 1, 2)
