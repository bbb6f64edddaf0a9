"""Discount resolution: at most one catalog discount per line item.

Pipeline per item: SCOPE → GATE → SELECT → ANNOTATE

- **Scope**: product-specific discounts shadow every category discount
  for that product, even a larger one.
- **Gate**: ``min_quantity`` is checked against the product's aggregate
  quantity across the whole cart, not the single line.
- **Select**: lowest resulting unit price wins. Ties go to the smaller
  discount id, then to catalog order.
- **Annotate**: the winner is copied onto the item as a
  :class:`DiscountAnnotation`; items with no winner lose any annotation.

INVARIANT: ``resolve`` is total and idempotent. Unusable catalog entries
are skipped with a warning, never raised.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Sequence
from decimal import Decimal
from typing import NamedTuple

from cartctl.domain.models import Discount, DiscountAnnotation, DiscountScope, LineItem
from cartctl.domain.money import apply_percent, format_percent, quantize, valid_percent

logger = logging.getLogger(__name__)


class _Candidate(NamedTuple):
    position: int
    discount: Discount


def resolve(
    items: Sequence[LineItem],
    catalog: Iterable[Discount],
    *,
    places: int = 2,
) -> list[LineItem]:
    """Annotate each line item with its best applicable discount.

    Args:
        items: Cart lines. Existing annotations are ignored and replaced.
        catalog: Active regular discounts, in catalog order.
        places: Decimal places for ``discounted_unit_price``.

    Returns a new list; the inputs are not modified.
    """
    candidates = usable_discounts(catalog)
    quantities = aggregate_quantities(items)
    resolved: list[LineItem] = []
    for item in items:
        winner = _select(item, candidates, quantities.get(item.product_ref, 0))
        if winner is None:
            if item.applied_discount is not None:
                item = item.model_copy(update={"applied_discount": None})
            resolved.append(item)
            continue
        annotation = annotate(item, winner, places=places)
        resolved.append(item.model_copy(update={"applied_discount": annotation}))
    return resolved


def aggregate_quantities(items: Iterable[LineItem]) -> dict[str, int]:
    """Sum quantities per product across every line."""
    totals: dict[str, int] = {}
    for item in items:
        totals[item.product_ref] = totals.get(item.product_ref, 0) + item.quantity
    return totals


def usable_discounts(catalog: Iterable[Discount]) -> list[_Candidate]:
    """Filter the catalog down to entries the resolver may apply.

    Skips (with a warning) coupon-tagged entries, percentages outside
    ``(0, 100]``, negative thresholds, and repeated ids after the first.
    """
    seen: set[str] = set()
    usable: list[_Candidate] = []
    for position, discount in enumerate(catalog):
        reason = _anomaly(discount, seen)
        if reason is not None:
            logger.warning("Skipping discount %r: %s", discount.id, reason)
            continue
        seen.add(discount.id)
        usable.append(_Candidate(position, discount))
    return usable


def _anomaly(discount: Discount, seen: set[str]) -> str | None:
    if discount.is_coupon:
        return "coupon discounts are checkout-only"
    if not valid_percent(discount.percent_off):
        return f"percent_off {discount.percent_off} outside (0, 100]"
    if discount.min_quantity < 0:
        return f"negative min_quantity {discount.min_quantity}"
    if discount.id in seen:
        return "duplicate discount id"
    return None


def eligible_discounts(
    item: LineItem,
    candidates: Sequence[_Candidate],
    aggregate_quantity: int,
) -> list[_Candidate]:
    """Discounts in scope for *item* that its aggregate quantity unlocks."""
    specific = [c for c in candidates if c.discount.names_product(item.product_ref)]
    if specific:
        scoped = specific
    else:
        scoped = [
            c
            for c in candidates
            if c.discount.category_ref
            and c.discount.category_ref == item.category_ref
            and not c.discount.targets_products
        ]
    return [c for c in scoped if c.discount.min_quantity <= aggregate_quantity]


def _select(
    item: LineItem,
    candidates: Sequence[_Candidate],
    aggregate_quantity: int,
) -> Discount | None:
    eligible = eligible_discounts(item, candidates, aggregate_quantity)
    if not eligible:
        return None
    best = min(
        eligible,
        key=lambda c: (
            apply_percent(item.unit_price, c.discount.percent_off),
            c.discount.id,
            c.position,
        ),
    )
    return best.discount


def discount_scope(discount: Discount, product_ref: str) -> DiscountScope:
    return "product-specific" if discount.names_product(product_ref) else "category-wide"


def discount_message(discount: Discount) -> str:
    """Shopper-facing label, e.g. ``"Buy 3+ for 20% off"``."""
    pct = format_percent(discount.percent_off)
    if discount.min_quantity > 0:
        return f"Buy {discount.min_quantity}+ for {pct}% off"
    return f"{pct}% off"


def annotate(item: LineItem, discount: Discount, *, places: int = 2) -> DiscountAnnotation:
    price: Decimal = quantize(apply_percent(item.unit_price, discount.percent_off), places)
    return DiscountAnnotation(
        discounted_unit_price=price,
        percent_off=discount.percent_off,
        message=discount_message(discount),
        end_date=discount.end_date,
        discount_id=discount.id,
        scope=discount_scope(discount, item.product_ref),
    )
