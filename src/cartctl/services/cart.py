"""CartStore — the canonical, mutable list of line items.

Every mutation runs under the session's writer lock, writes the new item
list to persistence, and notifies listeners (the aggregator) so a fresh
snapshot is published before the call returns.

Persistence writes go through a single-worker executor: saves are
fire-and-forget but applied in order. ``clear()`` queues its persistence
clear behind any pending saves and waits for it, so an earlier save can
never bring cleared items back.

INVARIANT: No method raises for ordinary user input. Quantities below 1
are normalized, unknown products are no-ops, persistence failures are
logged.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable
from concurrent.futures import Future, ThreadPoolExecutor
from decimal import Decimal
from typing import TYPE_CHECKING, Any

from cartctl.domain.models import LineItem
from cartctl.domain.money import to_decimal
from cartctl.services._helpers import completed
from cartctl.services.contracts import CouponPersistence

if TYPE_CHECKING:
    from cartctl.services.contracts import CartPersistence

logger = logging.getLogger(__name__)

Listener = Callable[[str], Any]


class CartStore:
    """Owns the cart's line items and their persisted backup.

    Parameters:
        persistence: Backend implementing the CartPersistence protocol.
        lock: Writer lock shared with the coupon coordinator.
        sync: Run persistence writes inline instead of on a worker thread.
    """

    def __init__(
        self,
        persistence: CartPersistence,
        lock: threading.RLock | None = None,
        *,
        sync: bool = False,
    ) -> None:
        self._persistence = persistence
        self._lock = lock if lock is not None else threading.RLock()
        self._items: list[LineItem] = []
        self._listeners: list[Listener] = []
        self._executor: ThreadPoolExecutor | None = (
            None
            if sync
            else ThreadPoolExecutor(max_workers=1, thread_name_prefix="cartctl-persist")
        )
        self._futures: list[Future[None]] = []

    # ------------------------------------------------------------------
    # Read access
    # ------------------------------------------------------------------

    def items(self) -> tuple[LineItem, ...]:
        with self._lock:
            return tuple(self._items)

    def quantities(self) -> dict[str, int]:
        """Aggregate quantity per product."""
        with self._lock:
            totals: dict[str, int] = {}
            for item in self._items:
                totals[item.product_ref] = totals.get(item.product_ref, 0) + item.quantity
            return totals

    def add_listener(self, listener: Listener) -> None:
        """Register a callback invoked with a reason string after each change."""
        self._listeners.append(listener)

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def add(
        self,
        product_ref: str,
        unit_price: Decimal | int | float | str,
        category_ref: str = "",
        quantity: int = 1,
        notes: str = "",
        *,
        name: str = "",
    ) -> None:
        """Add *quantity* of a product, merging into its existing line.

        On merge, quantities are summed and notes are replaced only when
        the new note is non-empty. The stored unit price is kept.
        """
        quantity = max(1, quantity)
        price = to_decimal(unit_price)
        with self._lock:
            index = self._index_of(product_ref)
            if index is None:
                self._items.append(
                    LineItem(
                        product_ref=product_ref,
                        unit_price=price,
                        category_ref=category_ref,
                        quantity=quantity,
                        notes=notes,
                        name=name,
                    )
                )
                logger.debug("Added %s x%d", product_ref, quantity)
            else:
                existing = self._items[index]
                self._items[index] = existing.model_copy(
                    update={
                        "quantity": existing.quantity + quantity,
                        "notes": notes or existing.notes,
                    }
                )
                logger.debug(
                    "Merged %s, quantity now %d", product_ref, self._items[index].quantity
                )
            self._changed("add")

    def remove(self, product_ref: str) -> None:
        """Delete the product's line. No-op if it is not in the cart."""
        with self._lock:
            before = len(self._items)
            self._items = [i for i in self._items if i.product_ref != product_ref]
            if len(self._items) == before:
                return
            logger.debug("Removed %s", product_ref)
            self._changed("remove")

    def update_quantity(self, product_ref: str, new_quantity: int) -> None:
        """Set the line's quantity; zero or below removes the line."""
        if new_quantity <= 0:
            self.remove(product_ref)
            return
        with self._lock:
            index = self._index_of(product_ref)
            if index is None:
                return
            self._items[index] = self._items[index].model_copy(update={"quantity": new_quantity})
            logger.debug("Set %s quantity to %d", product_ref, new_quantity)
            self._changed("update_quantity")

    def update_notes(self, product_ref: str, note: str) -> None:
        """Replace the line's notes. No-op if the product is absent."""
        with self._lock:
            index = self._index_of(product_ref)
            if index is None:
                return
            self._items[index] = self._items[index].model_copy(update={"notes": note})
            self._changed("update_notes")

    def clear(self) -> None:
        """Empty the cart and wait until the persisted copy is cleared too."""
        with self._lock:
            self._items = []
            self._submit(self._clear_persisted).result()
            logger.debug("Cart cleared")
            self._notify("clear")

    def load_from_persistence(self) -> None:
        """Replace in-memory items with the persisted set, then recompute once.

        A failed load leaves the cart empty.
        """
        try:
            loaded = self._persistence.load()
        except Exception:
            logger.warning("Failed to load persisted cart; starting empty", exc_info=True)
            loaded = []

        with self._lock:
            if loaded:
                self._items = [
                    item.model_copy(update={"applied_discount": None}) for item in loaded
                ]
                logger.debug("Loaded %d items from persistence", len(self._items))
            self._notify("load")

    # ------------------------------------------------------------------
    # Coupon backup
    # ------------------------------------------------------------------

    def save_coupon(self, code: str | None) -> None:
        """Queue the coupon code behind pending item writes. None forgets it."""
        if not isinstance(self._persistence, CouponPersistence):
            return
        with self._lock:
            self._submit(self._save_coupon, code)

    def load_coupon(self) -> str | None:
        """The remembered coupon code, or None if there is none or it is unreadable."""
        if not isinstance(self._persistence, CouponPersistence):
            return None
        try:
            return self._persistence.load_coupon()
        except Exception:
            logger.warning("Failed to load persisted coupon", exc_info=True)
            return None

    # ------------------------------------------------------------------
    # Persistence lifecycle
    # ------------------------------------------------------------------

    def flush(self, timeout: float | None = 30) -> None:
        """Wait for every queued persistence write to finish."""
        with self._lock:
            pending = list(self._futures)
            self._futures.clear()
        for future in pending:
            future.result(timeout=timeout)

    def shutdown(self) -> None:
        """Flush pending writes and stop the persistence worker."""
        self.flush()
        if self._executor is not None:
            self._executor.shutdown(wait=True)
            self._executor = None

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    def _index_of(self, product_ref: str) -> int | None:
        for index, item in enumerate(self._items):
            if item.product_ref == product_ref:
                return index
        return None

    def _changed(self, reason: str) -> None:
        """Persist the current list and notify listeners. Caller holds the lock."""
        snapshot = tuple(self._items)
        self._submit(self._save, snapshot)
        self._notify(reason)

    def _notify(self, reason: str) -> None:
        for listener in self._listeners:
            listener(reason)

    def _submit(self, fn: Callable[..., None], *args: Any) -> Future[None]:
        if self._executor is None:
            fn(*args)
            return completed(None)
        self._futures = [f for f in self._futures if not f.done()]
        future = self._executor.submit(fn, *args)
        self._futures.append(future)
        return future

    def _save(self, items: tuple[LineItem, ...]) -> None:
        try:
            self._persistence.save(list(items))
        except Exception:
            logger.warning("Failed to persist cart (%d items)", len(items), exc_info=True)

    def _clear_persisted(self) -> None:
        try:
            self._persistence.clear()
        except Exception:
            logger.warning("Failed to clear persisted cart", exc_info=True)

    def _save_coupon(self, code: str | None) -> None:
        assert isinstance(self._persistence, CouponPersistence)
        try:
            self._persistence.save_coupon(code)
        except Exception:
            logger.warning("Failed to persist coupon %r", code, exc_info=True)
