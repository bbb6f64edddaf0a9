"""SQLite-backed cart persistence.

Implements the ``CartPersistence`` protocol with whole-list semantics:
``save`` replaces every row in one transaction, ``load`` reads them back
in insertion order, ``clear`` deletes them. All three are idempotent.
The applied coupon code lives in its own one-row table and is left alone
by ``clear``; the session forgets it explicitly.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from datetime import UTC, datetime
from decimal import InvalidOperation
from typing import TYPE_CHECKING

from pydantic import ValidationError
from sqlalchemy import delete, insert, select
from sqlalchemy.exc import SQLAlchemyError

from cartctl.domain.errors import PersistenceError
from cartctl.domain.models import LineItem
from cartctl.domain.money import to_decimal
from cartctl.infrastructure.database.schema import cart_coupon, cart_items

if TYPE_CHECKING:
    from sqlalchemy.engine import Engine

logger = logging.getLogger(__name__)


class SqlCartPersistence:
    """Stores line items in the ``cart_items`` table.

    Discount annotations are derived state and are not stored.
    """

    def __init__(self, engine: Engine) -> None:
        self._engine = engine

    @property
    def engine(self) -> Engine:
        return self._engine

    def save(self, items: Sequence[LineItem]) -> None:
        saved = datetime.now(UTC).isoformat()
        rows = [
            {
                "product_ref": item.product_ref,
                "position": position,
                "unit_price": str(item.unit_price),
                "category_ref": item.category_ref,
                "quantity": item.quantity,
                "notes": item.notes,
                "name": item.name,
                "saved": saved,
            }
            for position, item in enumerate(_dedupe(items))
        ]
        try:
            with self._engine.begin() as conn:
                conn.execute(delete(cart_items))
                if rows:
                    conn.execute(insert(cart_items), rows)
        except SQLAlchemyError as exc:
            raise PersistenceError(f"Failed to save cart: {exc}") from exc
        logger.debug("Saved %d cart items", len(rows))

    def load(self) -> list[LineItem]:
        try:
            with self._engine.connect() as conn:
                rows = conn.execute(select(cart_items).order_by(cart_items.c.position)).fetchall()
        except SQLAlchemyError as exc:
            raise PersistenceError(f"Failed to load cart: {exc}") from exc

        items: list[LineItem] = []
        for row in rows:
            try:
                items.append(
                    LineItem(
                        product_ref=row.product_ref,
                        unit_price=to_decimal(row.unit_price),
                        category_ref=row.category_ref,
                        quantity=row.quantity,
                        notes=row.notes,
                        name=row.name,
                    )
                )
            except (ValidationError, InvalidOperation):
                logger.warning("Skipping unreadable cart row %r", row.product_ref)
        logger.debug("Loaded %d cart items", len(items))
        return items

    def clear(self) -> None:
        try:
            with self._engine.begin() as conn:
                conn.execute(delete(cart_items))
        except SQLAlchemyError as exc:
            raise PersistenceError(f"Failed to clear cart: {exc}") from exc
        logger.debug("Cleared persisted cart")

    def save_coupon(self, code: str | None) -> None:
        """Remember the applied coupon code; None forgets it."""
        try:
            with self._engine.begin() as conn:
                conn.execute(delete(cart_coupon))
                if code:
                    conn.execute(
                        insert(cart_coupon).values(
                            id=1, code=code, saved=datetime.now(UTC).isoformat()
                        )
                    )
        except SQLAlchemyError as exc:
            raise PersistenceError(f"Failed to save coupon: {exc}") from exc
        logger.debug("Saved coupon %r", code)

    def load_coupon(self) -> str | None:
        try:
            with self._engine.connect() as conn:
                return conn.execute(select(cart_coupon.c.code)).scalar_one_or_none()
        except SQLAlchemyError as exc:
            raise PersistenceError(f"Failed to load coupon: {exc}") from exc


def _dedupe(items: Sequence[LineItem]) -> list[LineItem]:
    """Merge repeated products so the primary key holds (quantities summed)."""
    merged: dict[str, LineItem] = {}
    for item in items:
        existing = merged.get(item.product_ref)
        if existing is None:
            merged[item.product_ref] = item
        else:
            merged[item.product_ref] = existing.model_copy(
                update={"quantity": existing.quantity + item.quantity}
            )
    return list(merged.values())
