"""Collaborator protocols and typed payload contracts.

The cart core consumes two collaborators it does not own: a persistence
backend for the item list and a discount catalog. Both are structural
protocols, so tests and hosts can pass any object with the right methods.

The payload models at the bottom fix the shape of snapshot data that
leaves the service layer for the CLI.
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import Any, Literal, Protocol, runtime_checkable

from pydantic import BaseModel, ConfigDict

from cartctl.domain.models import CartSnapshot, Discount, LineItem


@runtime_checkable
class CartPersistence(Protocol):
    """Local backup of the canonical item list.

    Implementations raise :class:`~cartctl.domain.errors.PersistenceError`
    on failure. The store logs it and carries on.
    """

    def save(self, items: Sequence[LineItem]) -> None: ...

    def load(self) -> list[LineItem]: ...

    def clear(self) -> None: ...


@runtime_checkable
class CouponPersistence(Protocol):
    """Optional companion to :class:`CartPersistence` remembering the coupon.

    Only the code is stored; it is validated again against the catalog
    when the cart is restored.
    """

    def save_coupon(self, code: str | None) -> None: ...

    def load_coupon(self) -> str | None: ...


@runtime_checkable
class DiscountCatalog(Protocol):
    """Source of active discounts and coupon lookups.

    Implementations raise :class:`~cartctl.domain.errors.CatalogError`
    when the catalog cannot be reached or read.
    """

    def get_active_regular_discounts(self) -> list[Discount]:
        """Live discounts with no coupon code, in catalog order."""
        ...

    def validate_coupon(self, code: str) -> Discount | None:
        """The live coupon discount for *code*, or None if unknown/expired."""
        ...


def dump_validated[T: BaseModel](model_cls: type[T], data: dict[str, Any]) -> dict[str, Any]:
    """Validate *data* against *model_cls* and return a JSON-safe payload dict."""
    model = model_cls.model_validate(data)
    return model.model_dump(mode="json")


class SnapshotItemData(BaseModel):
    """One line of a snapshot payload."""

    model_config = ConfigDict(extra="allow")

    product_ref: str
    name: str
    category_ref: str
    quantity: int
    unit_price: str
    effective_unit_price: str
    notes: str
    discount: str | None = None
    discount_id: str | None = None


class SnapshotData(BaseModel):
    """Payload contract for commands that report the cart."""

    version: int
    item_count: int
    items: list[SnapshotItemData]
    subtotal: str
    item_discount_total: str
    coupon_discount_total: str
    grand_total: str
    coupon_code: str | None = None
    coupon_status: Literal["idle", "validating", "applied", "error"]
    coupon_error: str | None = None


def snapshot_payload(snapshot: CartSnapshot) -> dict[str, Any]:
    """Flatten a snapshot into the validated CLI payload shape."""
    items = [
        {
            "product_ref": item.product_ref,
            "name": item.name,
            "category_ref": item.category_ref,
            "quantity": item.quantity,
            "unit_price": str(item.unit_price),
            "effective_unit_price": str(item.effective_unit_price),
            "notes": item.notes,
            "discount": item.applied_discount.message if item.applied_discount else None,
            "discount_id": item.applied_discount.discount_id if item.applied_discount else None,
        }
        for item in snapshot.items
    ]
    return dump_validated(
        SnapshotData,
        {
            "version": snapshot.version,
            "item_count": snapshot.item_count,
            "items": items,
            "subtotal": str(snapshot.subtotal),
            "item_discount_total": str(snapshot.item_discount_total),
            "coupon_discount_total": str(snapshot.coupon_discount_total),
            "grand_total": str(snapshot.grand_total),
            "coupon_code": snapshot.coupon.code,
            "coupon_status": snapshot.coupon.status,
            "coupon_error": snapshot.coupon.error,
        },
    )
