"""Pluggy hook specifications for cart lifecycle events.

Two events are dispatched synchronously from the writer context:
snapshot publication and coupon validation outcomes.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import pluggy

if TYPE_CHECKING:
    from cartctl.domain.models import CartSnapshot

hookspec = pluggy.HookspecMarker("cartctl")


class CartctlHookSpec:
    """Hook specifications for the cartctl plugin system."""

    @hookspec
    def cart_snapshot_published(self, snapshot: CartSnapshot, reason: str) -> None:
        """Called after every recompute with the snapshot just published."""

    @hookspec
    def coupon_resolved(self, code: str, status: str, error: str | None) -> None:
        """Called when a coupon validation settles (applied or error)."""
