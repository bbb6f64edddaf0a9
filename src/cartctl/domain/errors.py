"""Exception types raised at collaborator boundaries.

INVARIANT: None of these escape the cart API. The store, coupon
coordinator, and aggregator catch them and degrade to an explicit state
(empty cart, coupon error field, last good catalog).
"""

from __future__ import annotations


class CartError(Exception):
    """Base class for cartctl errors."""


class PersistenceError(CartError):
    """A cart persistence load, save, or clear failed."""


class CatalogError(CartError):
    """The discount catalog could not be read or queried."""


class errmsg:
    """User-facing coupon messages surfaced on ``CouponState.error``."""

    COUPON_BLANK = "Please enter a valid coupon code"
    COUPON_INVALID = "Invalid or expired coupon code"
    COUPON_LOOKUP_FAILED = "Failed to validate coupon: {reason}"
