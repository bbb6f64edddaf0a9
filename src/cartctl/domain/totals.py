"""Totals calculation for one pricing pass.

The coupon applies to the running total *after* item discounts and never
touches per-item prices. Each component is rounded on its own and the
grand total is derived from the rounded components, so

    grand_total == max(0, subtotal - item_discount_total - coupon_discount_total)

holds exactly on every snapshot.
"""

from __future__ import annotations

from collections.abc import Iterable

from cartctl.domain.models import CouponState, LineItem, Totals
from cartctl.domain.money import HUNDRED, ZERO, quantize


def compute_totals(
    items: Iterable[LineItem],
    coupon: CouponState | None = None,
    *,
    places: int = 2,
) -> Totals:
    """Derive subtotal, item discounts, coupon discount, and grand total."""
    subtotal = ZERO
    item_discounts = ZERO
    for item in items:
        subtotal += item.unit_price * item.quantity
        item_discounts += (item.unit_price - item.effective_unit_price) * item.quantity

    subtotal = quantize(subtotal, places)
    item_discounts = quantize(item_discounts, places)
    running = subtotal - item_discounts

    coupon_discount = quantize(ZERO, places)
    if coupon is not None and coupon.discount is not None:
        coupon_discount = quantize(running * coupon.discount.percent_off / HUNDRED, places)

    return Totals(
        subtotal=subtotal,
        item_discount_total=item_discounts,
        coupon_discount_total=coupon_discount,
        grand_total=quantize(max(ZERO, running - coupon_discount), places),
    )
