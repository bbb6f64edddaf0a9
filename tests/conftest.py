"""Shared pytest fixtures and test helpers for cartctl tests."""

from __future__ import annotations

import threading
from collections.abc import Generator, Sequence
from decimal import Decimal
from pathlib import Path
from typing import Any

import pytest
from click.testing import CliRunner
from sqlalchemy.engine import Engine

from cartctl.domain.errors import CatalogError, PersistenceError
from cartctl.domain.models import Discount, LineItem
from cartctl.infrastructure.catalog import StaticDiscountCatalog
from cartctl.infrastructure.database.engine import init_database
from cartctl.services.session import CartSession


@pytest.fixture
def cli_runner() -> CliRunner:
    """Provide a Click CLI test runner."""
    return CliRunner()


@pytest.fixture
def db_engine(tmp_path: Path) -> Generator[Engine]:
    """Initialized SQLite engine with all tables created."""
    engine = init_database(tmp_path)
    try:
        yield engine
    finally:
        engine.dispose()


@pytest.fixture
def memory_persistence() -> MemoryPersistence:
    return MemoryPersistence()


@pytest.fixture
def pasta_catalog() -> StaticDiscountCatalog:
    """Bulk pasta discount plus the SAVE10 coupon."""
    return StaticDiscountCatalog(
        [
            make_discount("pasta-bulk", 20, category_ref="pasta", min_quantity=3),
            make_discount("save10", 10, coupon_code="SAVE10"),
        ]
    )


@pytest.fixture
def session(
    memory_persistence: MemoryPersistence, pasta_catalog: StaticDiscountCatalog
) -> Generator[CartSession]:
    """Synchronous session over in-memory persistence and the pasta catalog."""
    s = CartSession(memory_persistence, pasta_catalog, sync=True)
    try:
        yield s
    finally:
        s.close()


@pytest.fixture
def _isolated_cart(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    """Change CWD to a temp directory so the CLI creates an isolated cart.

    Use via ``@pytest.mark.usefixtures("_isolated_cart")`` on command test
    classes.
    """
    monkeypatch.delenv("CARTCTL_CONFIG", raising=False)
    monkeypatch.chdir(tmp_path)


# ---------------------------------------------------------------------------
# Shared test helpers (used across test modules)
# ---------------------------------------------------------------------------


def make_discount(discount_id: str, percent_off: Any, **kwargs: Any) -> Discount:
    """Build a Discount with a Decimal percentage."""
    return Discount(id=discount_id, percent_off=Decimal(str(percent_off)), **kwargs)


def make_item(product_ref: str, price: str, qty: int = 1, **kwargs: Any) -> LineItem:
    return LineItem(product_ref=product_ref, unit_price=Decimal(price), quantity=qty, **kwargs)


class MemoryPersistence:
    """In-memory CartPersistence that records calls and can be told to fail."""

    def __init__(self, items: Sequence[LineItem] = ()) -> None:
        self.items: list[LineItem] = list(items)
        self.calls: list[str] = []
        self.fail_on: set[str] = set()

    def save(self, items: Sequence[LineItem]) -> None:
        self.calls.append("save")
        if "save" in self.fail_on:
            raise PersistenceError("disk full")
        self.items = list(items)

    def load(self) -> list[LineItem]:
        self.calls.append("load")
        if "load" in self.fail_on:
            raise PersistenceError("corrupt backup")
        return list(self.items)

    def clear(self) -> None:
        self.calls.append("clear")
        if "clear" in self.fail_on:
            raise PersistenceError("locked")
        self.items = []


class GatedCatalog(StaticDiscountCatalog):
    """Catalog whose coupon lookups block until released, per code."""

    def __init__(self, discounts: Sequence[Discount] = ()) -> None:
        super().__init__(discounts)
        self.gates: dict[str, threading.Event] = {}
        self.started: dict[str, threading.Event] = {}

    def hold(self, code: str) -> threading.Event:
        self.started[code] = threading.Event()
        gate = self.gates[code] = threading.Event()
        return gate

    def validate_coupon(self, code: str) -> Discount | None:
        if code in self.started:
            self.started[code].set()
        gate = self.gates.get(code)
        if gate is not None:
            gate.wait(timeout=5)
        return super().validate_coupon(code)


class BrokenCatalog:
    """Catalog that is always unreachable."""

    def get_active_regular_discounts(self) -> list[Discount]:
        raise CatalogError("catalog offline")

    def validate_coupon(self, code: str) -> Discount | None:
        raise CatalogError("catalog offline")
