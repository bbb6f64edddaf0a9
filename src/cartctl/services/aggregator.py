"""ReactiveAggregator — one atomic snapshot per triggering event.

The store and the coupon coordinator call :meth:`recompute` after every
change. Recompute fetches the regular catalog, resolves item discounts,
computes totals against the current coupon state, and broadcasts a single
frozen :class:`CartSnapshot`, all under the writer lock, so subscribers
never see items from one pass next to totals from another.

INVARIANT: Subscriber and plugin failures are warnings, never errors.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable
from typing import TYPE_CHECKING

from cartctl.domain.models import CartSnapshot, Discount
from cartctl.domain.resolver import resolve
from cartctl.domain.totals import compute_totals

if TYPE_CHECKING:
    from cartctl.plugins.manager import PluginManager
    from cartctl.services.cart import CartStore
    from cartctl.services.contracts import DiscountCatalog
    from cartctl.services.coupon import CouponCoordinator

logger = logging.getLogger(__name__)

Subscriber = Callable[[CartSnapshot], object]


class ReactiveAggregator:
    """Recomputes and broadcasts cart snapshots.

    Parameters:
        store: Source of canonical line items.
        coupons: Source of the current coupon state.
        catalog: Source of active regular discounts.
        lock: Writer lock shared with store and coupons.
        places: Decimal places for money rounding.
        plugins: Optional plugin manager receiving every snapshot.
    """

    def __init__(
        self,
        store: CartStore,
        coupons: CouponCoordinator,
        catalog: DiscountCatalog,
        lock: threading.RLock | None = None,
        *,
        places: int = 2,
        plugins: PluginManager | None = None,
    ) -> None:
        self._store = store
        self._coupons = coupons
        self._catalog = catalog
        self._lock = lock if lock is not None else threading.RLock()
        self._places = places
        self._plugins = plugins
        self._subscribers: list[Subscriber] = []
        self._latest = CartSnapshot()
        self._last_catalog: list[Discount] = []

    @property
    def latest(self) -> CartSnapshot:
        with self._lock:
            return self._latest

    def subscribe(self, callback: Subscriber, *, replay: bool = True) -> Callable[[], None]:
        """Add *callback*; returns a function that unsubscribes it.

        With *replay*, the callback immediately receives the latest snapshot.
        """
        with self._lock:
            self._subscribers.append(callback)
            if replay:
                self._deliver(callback, self._latest)

        def unsubscribe() -> None:
            with self._lock:
                if callback in self._subscribers:
                    self._subscribers.remove(callback)

        return unsubscribe

    def recompute(self, reason: str = "manual") -> CartSnapshot:
        """Run one resolve + totals pass and publish the result."""
        with self._lock:
            catalog = self._fetch_catalog()
            items = resolve(self._store.items(), catalog, places=self._places)
            coupon = self._coupons.state
            totals = compute_totals(items, coupon, places=self._places)
            snapshot = CartSnapshot(
                version=self._latest.version + 1,
                items=tuple(items),
                subtotal=totals.subtotal,
                item_discount_total=totals.item_discount_total,
                coupon_discount_total=totals.coupon_discount_total,
                grand_total=totals.grand_total,
                coupon=coupon,
            )
            self._latest = snapshot
            logger.debug(
                "Published snapshot v%d (%s): %d lines, grand total %s",
                snapshot.version,
                reason,
                len(snapshot.items),
                snapshot.grand_total,
            )
            for subscriber in list(self._subscribers):
                self._deliver(subscriber, snapshot)
            if self._plugins is not None:
                self._plugins.dispatch("cart_snapshot_published", snapshot=snapshot, reason=reason)
            return snapshot

    def _fetch_catalog(self) -> list[Discount]:
        """Current regular discounts, falling back to the last good fetch."""
        try:
            catalog = list(self._catalog.get_active_regular_discounts())
        except Exception:
            logger.warning(
                "Discount catalog unavailable; reusing %d cached discounts",
                len(self._last_catalog),
                exc_info=True,
            )
            return self._last_catalog
        self._last_catalog = catalog
        return catalog

    @staticmethod
    def _deliver(subscriber: Subscriber, snapshot: CartSnapshot) -> None:
        try:
            subscriber(snapshot)
        except Exception:
            logger.warning("Snapshot subscriber %r failed", subscriber, exc_info=True)
