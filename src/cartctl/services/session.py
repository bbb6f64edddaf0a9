"""CartSession — wires store, coupons and aggregator around one writer lock.

The session is the single entry point hosts use. Every mutation goes
through it, the aggregator publishes exactly one snapshot per change, and
``snapshot`` always returns the most recently published one.

Lifecycle: construct (loads the persisted cart and re-validates its
coupon) → mutate → ``close()``.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable
from concurrent.futures import CancelledError, Future
from concurrent.futures import TimeoutError as FutureTimeoutError
from decimal import Decimal
from typing import TYPE_CHECKING, Any

from cartctl.domain.models import CartSnapshot, CouponState
from cartctl.services.aggregator import ReactiveAggregator
from cartctl.services.cart import CartStore
from cartctl.services.coupon import CouponCoordinator

if TYPE_CHECKING:
    from cartctl.config.settings import CartSettings
    from cartctl.plugins.manager import PluginManager
    from cartctl.services.contracts import CartPersistence, DiscountCatalog

logger = logging.getLogger(__name__)


class CartSession:
    """One shopping cart with live discounts and a checkout coupon.

    Parameters:
        persistence: Backend for the item list.
        catalog: Source of regular discounts and coupon lookups.
        sync: Run persistence and coupon validation inline.
        places: Decimal places for money rounding.
        plugins: Optional plugin manager receiving lifecycle hooks.
    """

    def __init__(
        self,
        persistence: CartPersistence,
        catalog: DiscountCatalog,
        *,
        sync: bool = False,
        places: int = 2,
        plugins: PluginManager | None = None,
    ) -> None:
        self._lock = threading.RLock()
        self._catalog = catalog
        self._plugins = plugins
        self.store = CartStore(persistence, self._lock, sync=sync)
        self.coupons = CouponCoordinator(catalog, self._lock, sync=sync, plugins=plugins)
        self.aggregator = ReactiveAggregator(
            self.store, self.coupons, catalog, self._lock, places=places, plugins=plugins
        )
        self._saved_coupon: str | None = None
        self.store.add_listener(self.aggregator.recompute)
        self.coupons.add_listener(self.aggregator.recompute)
        self.coupons.add_listener(self._remember_coupon)
        self.store.load_from_persistence()
        self._restore_coupon()

    @classmethod
    def from_settings(
        cls,
        settings: CartSettings,
        *,
        catalog: DiscountCatalog | None = None,
        plugins: PluginManager | None = None,
    ) -> CartSession:
        """Build a session backed by the SQLite cart and the configured catalog file."""
        from cartctl.infrastructure.catalog import FileDiscountCatalog, StaticDiscountCatalog
        from cartctl.infrastructure.database.engine import init_database
        from cartctl.infrastructure.persistence import SqlCartPersistence

        engine = init_database(settings.data_dir, settings.storage.db_name)
        if catalog is None:
            catalog_path = settings.resolved_catalog_path()
            # An explicit --catalog is always honored so a missing file is reported.
            if catalog_path is not None and (settings.catalog_path or catalog_path.exists()):
                catalog = FileDiscountCatalog(catalog_path)
            else:
                logger.debug("No discount catalog at %s; using an empty one", catalog_path)
                catalog = StaticDiscountCatalog()
        return cls(
            SqlCartPersistence(engine),
            catalog,
            sync=settings.sync,
            places=settings.pricing.currency_places,
            plugins=plugins,
        )

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    @property
    def snapshot(self) -> CartSnapshot:
        return self.aggregator.latest

    @property
    def coupon(self) -> CouponState:
        return self.coupons.state

    @property
    def catalog(self) -> DiscountCatalog:
        return self._catalog

    def subscribe(
        self, callback: Callable[[CartSnapshot], Any], *, replay: bool = True
    ) -> Callable[[], None]:
        return self.aggregator.subscribe(callback, replay=replay)

    # ------------------------------------------------------------------
    # Cart mutations
    # ------------------------------------------------------------------

    def add_item(
        self,
        product_ref: str,
        unit_price: Decimal | int | float | str,
        category_ref: str = "",
        quantity: int = 1,
        notes: str = "",
        *,
        name: str = "",
    ) -> CartSnapshot:
        self.store.add(product_ref, unit_price, category_ref, quantity, notes, name=name)
        return self.snapshot

    def remove_item(self, product_ref: str) -> CartSnapshot:
        self.store.remove(product_ref)
        return self.snapshot

    def update_quantity(self, product_ref: str, new_quantity: int) -> CartSnapshot:
        self.store.update_quantity(product_ref, new_quantity)
        return self.snapshot

    def update_notes(self, product_ref: str, note: str) -> CartSnapshot:
        self.store.update_notes(product_ref, note)
        return self.snapshot

    def clear(self) -> CartSnapshot:
        """Empty the cart and drop the coupon, publishing a single snapshot."""
        with self._lock:
            self.coupons.reset(notify=False)
            self._remember_coupon("clear")
            self.store.clear()
            return self.snapshot

    # ------------------------------------------------------------------
    # Coupon
    # ------------------------------------------------------------------

    def apply_coupon(self, code: str) -> Future[CouponState]:
        return self.coupons.apply(code)

    def remove_coupon(self) -> CartSnapshot:
        self.coupons.remove()
        return self.snapshot

    def settle_coupon(self, timeout: float | None = None) -> CouponState:
        """Wait up to *timeout* for an in-flight validation, then return the state."""
        future = self.coupons.pending
        if future is not None:
            try:
                future.result(timeout=timeout)
            except (FutureTimeoutError, CancelledError):
                logger.debug("Coupon validation still unsettled after %ss", timeout)
        return self.coupons.state

    def force_recompute(self) -> CartSnapshot:
        """Re-read the catalog and publish a fresh snapshot."""
        return self.aggregator.recompute("refresh")

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def flush(self, timeout: float | None = 30) -> None:
        self.store.flush(timeout)

    def close(self) -> None:
        """Stop coupon validation, then drain pending persistence writes."""
        self.coupons.shutdown()
        self.store.shutdown()

    def __enter__(self) -> CartSession:
        return self

    def __exit__(self, *exc: object) -> None:
        self.close()

    # ------------------------------------------------------------------
    # Coupon backup
    # ------------------------------------------------------------------

    def _restore_coupon(self) -> None:
        """Re-apply the remembered coupon; the catalog decides if it still holds."""
        code = self.store.load_coupon()
        if not code:
            return
        logger.debug("Restoring coupon %r", code)
        self._saved_coupon = code
        self.coupons.apply(code)

    def _remember_coupon(self, _reason: str) -> None:
        """Back up the applied code whenever the settled coupon changes."""
        state = self.coupons.state
        if state.validating:
            return
        code = state.code if state.discount is not None else None
        if code != self._saved_coupon:
            self._saved_coupon = code
            self.store.save_coupon(code)
