"""CheckoutService — CLI-facing cart operations returning ServiceResult.

Wraps a :class:`CartSession`: validate input → mutate → respond with the
published snapshot. Cart rules themselves live in the session's
components; this layer only translates outcomes into results.
"""

from __future__ import annotations

import logging
from concurrent.futures import TimeoutError as FutureTimeoutError
from decimal import Decimal, InvalidOperation
from typing import TYPE_CHECKING, Any

from cartctl.domain.money import format_percent, to_decimal
from cartctl.services.contracts import snapshot_payload
from cartctl.services.result import ServiceError, ServiceResult

if TYPE_CHECKING:
    from cartctl.domain.models import Discount
    from cartctl.services.session import CartSession

logger = logging.getLogger(__name__)


def parse_price(value: str | int | float | Decimal) -> Decimal | None:
    """A finite, non-negative price, or None."""
    try:
        price = to_decimal(value)
    except (InvalidOperation, ValueError, TypeError):
        return None
    if not price.is_finite() or price < 0:
        return None
    return price


class CheckoutService:
    """Cart operations for the command line.

    Parameters:
        session: The cart session to operate on.
        validation_timeout: Seconds to wait for a coupon to settle.
    """

    def __init__(self, session: CartSession, *, validation_timeout: float = 10.0) -> None:
        self._session = session
        self._timeout = validation_timeout

    # ------------------------------------------------------------------
    # Items
    # ------------------------------------------------------------------

    def add_item(
        self,
        product_ref: str,
        price: str,
        *,
        category_ref: str = "",
        quantity: int = 1,
        notes: str = "",
        name: str = "",
    ) -> ServiceResult:
        op = "add_item"
        unit_price = parse_price(price)
        if unit_price is None:
            return ServiceResult(
                ok=False,
                op=op,
                error=ServiceError(
                    code="INVALID_PRICE",
                    message=f"Invalid price: {price!r} (expected a non-negative number)",
                    detail={"product_ref": product_ref, "price": price},
                ),
            )
        warnings: list[str] = []
        if quantity < 1:
            warnings.append(f"Quantity {quantity} raised to 1")
        self._session.add_item(product_ref, unit_price, category_ref, quantity, notes, name=name)
        return self._cart_result(op, warnings)

    def remove_item(self, product_ref: str) -> ServiceResult:
        warnings = self._missing(product_ref)
        self._session.remove_item(product_ref)
        return self._cart_result("remove_item", warnings)

    def update_quantity(self, product_ref: str, quantity: int) -> ServiceResult:
        warnings = self._missing(product_ref)
        self._session.update_quantity(product_ref, quantity)
        return self._cart_result("update_quantity", warnings)

    def update_notes(self, product_ref: str, note: str) -> ServiceResult:
        warnings = self._missing(product_ref)
        self._session.update_notes(product_ref, note)
        return self._cart_result("update_notes", warnings)

    def clear(self) -> ServiceResult:
        self._session.clear()
        return self._cart_result("clear")

    def show(self, *, coupon: str | None = None) -> ServiceResult:
        """Report the cart, applying *coupon* first when given."""
        if coupon is None:
            return self._cart_result("show")
        result = self.apply_coupon(coupon)
        if result.ok:
            return result.model_copy(update={"op": "show"})
        # A rejected code still shows the cart; the rejection becomes a warning.
        message = result.error.message if result.error else "Coupon rejected"
        return self._cart_result("show", [message])

    # ------------------------------------------------------------------
    # Coupon
    # ------------------------------------------------------------------

    def apply_coupon(self, code: str) -> ServiceResult:
        op = "apply_coupon"
        future = self._session.apply_coupon(code)
        try:
            state = future.result(timeout=self._timeout)
        except FutureTimeoutError:
            self._session.remove_coupon()
            return ServiceResult(
                ok=False,
                op=op,
                error=ServiceError(
                    code="COUPON_REJECTED",
                    message=f"Coupon validation timed out after {self._timeout:g}s",
                    detail={"code": code},
                ),
            )

        if state.status != "applied" or state.error:
            return ServiceResult(
                ok=False,
                op=op,
                error=ServiceError(
                    code="COUPON_REJECTED",
                    message=state.error or "Coupon was not applied",
                    detail={"code": code},
                ),
            )
        return self._cart_result(op)

    def remove_coupon(self) -> ServiceResult:
        self._session.remove_coupon()
        return self._cart_result("remove_coupon")

    # ------------------------------------------------------------------
    # Catalog
    # ------------------------------------------------------------------

    def list_discounts(self) -> ServiceResult:
        """List the live regular discounts, in catalog order."""
        op = "discounts"
        try:
            discounts = self._session.catalog.get_active_regular_discounts()
        except Exception as exc:
            logger.debug("Catalog listing failed", exc_info=True)
            return ServiceResult(
                ok=False,
                op=op,
                error=ServiceError(
                    code="CATALOG_UNAVAILABLE",
                    message=str(exc) or "Discount catalog unavailable",
                ),
            )
        items = [_discount_row(d) for d in discounts]
        return ServiceResult(ok=True, op=op, data={"count": len(items), "items": items})

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    def _missing(self, product_ref: str) -> list[str]:
        if self._session.snapshot.item(product_ref) is None:
            return [f"Product {product_ref!r} is not in the cart"]
        return []

    def _cart_result(self, op: str, warnings: list[str] | None = None) -> ServiceResult:
        """Report the cart once a restored coupon has had the chance to settle."""
        self._session.settle_coupon(self._timeout)
        return ServiceResult(
            ok=True,
            op=op,
            data=snapshot_payload(self._session.snapshot),
            warnings=warnings or [],
        )


def _discount_row(discount: Discount) -> dict[str, Any]:
    return {
        "id": discount.id,
        "name": discount.name,
        "description": discount.description,
        "percent_off": format_percent(discount.percent_off),
        "category_ref": discount.category_ref,
        "products": sorted(discount.specific_product_refs or ()),
        "min_quantity": discount.min_quantity,
        "end_date": discount.end_date.date().isoformat() if discount.end_date else None,
    }
