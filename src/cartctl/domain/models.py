"""Pydantic models for cart contents, discount rules, and published snapshots.

Every model is frozen. Mutation happens by building a new instance with
``model_copy(update=...)`` so a published snapshot can never change under
a subscriber's feet.
"""

from __future__ import annotations

from datetime import UTC, datetime
from decimal import Decimal
from typing import Literal

from pydantic import BaseModel, Field, field_validator

from cartctl.domain.money import ZERO

DiscountScope = Literal["product-specific", "category-wide"]
CouponStatus = Literal["idle", "validating", "applied", "error"]


def _as_utc(value: datetime) -> datetime:
    """Treat naive datetimes as UTC so catalog dates compare safely."""
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value


class DiscountAnnotation(BaseModel):
    """The discount resolved onto a line item. Derived, never authoritative."""

    model_config = {"frozen": True}

    discounted_unit_price: Decimal
    percent_off: Decimal
    message: str
    end_date: datetime | None = None
    discount_id: str = ""
    scope: DiscountScope = "category-wide"


class LineItem(BaseModel):
    """One product in the cart. Identity is ``product_ref``."""

    model_config = {"frozen": True}

    product_ref: str
    unit_price: Decimal
    category_ref: str = ""
    quantity: int = Field(default=1, ge=1)
    notes: str = ""
    name: str = ""
    applied_discount: DiscountAnnotation | None = None

    @property
    def effective_unit_price(self) -> Decimal:
        """Discounted unit price if annotated, otherwise the list price."""
        if self.applied_discount is None:
            return self.unit_price
        return self.applied_discount.discounted_unit_price

    @property
    def line_total(self) -> Decimal:
        return self.unit_price * self.quantity


class Discount(BaseModel):
    """A promotional rule from the catalog.

    Fields are unconstrained. Catalog entries are external input and the
    resolver skips the ones it cannot use.

    Attributes:
        category_ref: Category the rule targets; empty means none.
        specific_product_refs: Products the rule names. ``None`` or empty
            means the rule covers the whole category.
        min_quantity: Aggregate cart quantity needed to unlock the rule.
            Zero means no threshold.
        coupon_code: Non-empty marks a checkout-only coupon.
        customer_specific: Targeted coupons are never regular discounts.
    """

    model_config = {"frozen": True}

    id: str
    name: str = ""
    description: str = ""
    percent_off: Decimal
    category_ref: str = ""
    specific_product_refs: frozenset[str] | None = None
    min_quantity: int = 0
    active: bool = True
    start_date: datetime | None = None
    end_date: datetime | None = None
    coupon_code: str | None = None
    customer_specific: bool = False

    @field_validator("coupon_code")
    @classmethod
    def _strip_code(cls, value: str | None) -> str | None:
        if value is None:
            return None
        return value.strip() or None

    @property
    def is_coupon(self) -> bool:
        return bool(self.coupon_code) or self.customer_specific

    @property
    def targets_products(self) -> bool:
        return bool(self.specific_product_refs)

    def names_product(self, product_ref: str) -> bool:
        return bool(self.specific_product_refs) and product_ref in self.specific_product_refs

    def is_live(self, now: datetime) -> bool:
        """Active and inside its optional ``[start_date, end_date]`` window."""
        if not self.active:
            return False
        now = _as_utc(now)
        if self.start_date is not None and _as_utc(self.start_date) > now:
            return False
        if self.end_date is not None and _as_utc(self.end_date) < now:
            return False
        return True


class CouponState(BaseModel):
    """The checkout coupon. At most one discount is applied at a time."""

    model_config = {"frozen": True}

    code: str | None = None
    discount: Discount | None = None
    error: str | None = None
    validating: bool = False

    @property
    def status(self) -> CouponStatus:
        if self.validating:
            return "validating"
        if self.discount is not None:
            return "applied"
        if self.error:
            return "error"
        return "idle"


class Totals(BaseModel):
    """Money totals for one pricing pass."""

    model_config = {"frozen": True}

    subtotal: Decimal = ZERO
    item_discount_total: Decimal = ZERO
    coupon_discount_total: Decimal = ZERO
    grand_total: Decimal = ZERO


class CartSnapshot(BaseModel):
    """Immutable, fully recomputed view of the cart published to observers.

    ``items`` and the totals always come from the same pricing pass.
    """

    model_config = {"frozen": True}

    version: int = 0
    items: tuple[LineItem, ...] = ()
    subtotal: Decimal = ZERO
    item_discount_total: Decimal = ZERO
    coupon_discount_total: Decimal = ZERO
    grand_total: Decimal = ZERO
    coupon: CouponState = Field(default_factory=CouponState)

    @property
    def item_count(self) -> int:
        return sum(item.quantity for item in self.items)

    @property
    def quantities(self) -> dict[str, int]:
        """Aggregate quantity per product across all lines."""
        result: dict[str, int] = {}
        for item in self.items:
            result[item.product_ref] = result.get(item.product_ref, 0) + item.quantity
        return result

    @property
    def totals(self) -> Totals:
        return Totals(
            subtotal=self.subtotal,
            item_discount_total=self.item_discount_total,
            coupon_discount_total=self.coupon_discount_total,
            grand_total=self.grand_total,
        )

    def item(self, product_ref: str) -> LineItem | None:
        for item in self.items:
            if item.product_ref == product_ref:
                return item
        return None
