"""CouponCoordinator — the single checkout coupon and its validation lifecycle.

States: idle → validating → {applied | error} → idle

Validation calls the catalog on a worker thread. Each ``apply`` bumps a
generation counter; a result whose generation is no longer current was
superseded by a newer ``apply`` or a ``remove`` and is dropped.

INVARIANT: The coordinator never touches line items. It only changes
``CouponState`` and asks listeners to recompute.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable
from concurrent.futures import Future, ThreadPoolExecutor
from typing import TYPE_CHECKING, Any

from cartctl.domain.errors import errmsg
from cartctl.domain.models import CouponState, Discount
from cartctl.domain.money import valid_percent
from cartctl.services._helpers import completed

if TYPE_CHECKING:
    from cartctl.plugins.manager import PluginManager
    from cartctl.services.contracts import DiscountCatalog

logger = logging.getLogger(__name__)

Listener = Callable[[str], Any]


class CouponCoordinator:
    """Owns at most one applied coupon.

    Parameters:
        catalog: Collaborator used for ``validate_coupon``.
        lock: Writer lock shared with the cart store.
        sync: Validate inline instead of on a worker thread.
        plugins: Optional plugin manager notified of validation outcomes.
    """

    def __init__(
        self,
        catalog: DiscountCatalog,
        lock: threading.RLock | None = None,
        *,
        sync: bool = False,
        plugins: PluginManager | None = None,
    ) -> None:
        self._catalog = catalog
        self._lock = lock if lock is not None else threading.RLock()
        self._plugins = plugins
        self._state = CouponState()
        self._generation = 0
        self._pending: Future[CouponState] | None = None
        self._listeners: list[Listener] = []
        self._executor: ThreadPoolExecutor | None = None
        if not sync:
            self._executor = ThreadPoolExecutor(max_workers=2, thread_name_prefix="cartctl-coupon")

    @property
    def state(self) -> CouponState:
        with self._lock:
            return self._state

    @property
    def pending(self) -> Future[CouponState] | None:
        """The validation still in flight, if any."""
        with self._lock:
            return self._pending

    def add_listener(self, listener: Listener) -> None:
        """Register a callback invoked with a reason string after each change."""
        self._listeners.append(listener)

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def apply(self, code: str) -> Future[CouponState]:
        """Start validating *code*; the returned future yields the settled state.

        A blank code is rejected locally without a catalog call and leaves
        any applied coupon in place. A non-blank code supersedes any
        validation still in flight.
        """
        submitted = (code or "").strip()
        with self._lock:
            if not submitted:
                self._set_state(
                    self._state.model_copy(update={"error": errmsg.COUPON_BLANK}),
                    "coupon_rejected",
                )
                return completed(self._state)

            self._generation += 1
            generation = self._generation
            if self._pending is not None:
                self._pending.cancel()
                self._pending = None

            self._set_state(
                self._state.model_copy(update={"validating": True, "error": None}),
                "coupon_validating",
            )
            logger.debug("Validating coupon %r (generation %d)", submitted, generation)

            if self._executor is None:
                return completed(self._validate_and_settle(generation, submitted))

            future = self._executor.submit(self._validate_and_settle, generation, submitted)
            self._pending = future
            return future

    def remove(self) -> None:
        """Drop the applied coupon and any validation in flight."""
        self.reset(reason="coupon_removed")

    def reset(self, *, reason: str = "coupon_reset", notify: bool = True) -> None:
        """Return to idle. Late validation results are discarded afterwards."""
        with self._lock:
            self._generation += 1
            if self._pending is not None:
                self._pending.cancel()
                self._pending = None
            if notify:
                self._set_state(CouponState(), reason)
            else:
                self._state = CouponState()

    def shutdown(self) -> None:
        """Stop the validation worker, abandoning queued requests."""
        with self._lock:
            self._generation += 1
            executor, self._executor = self._executor, None
        if executor is not None:
            executor.shutdown(wait=True, cancel_futures=True)

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    def _validate_and_settle(self, generation: int, code: str) -> CouponState:
        """Call the catalog outside the lock, then settle under it."""
        discount, error = self._lookup(code)
        with self._lock:
            if generation != self._generation:
                logger.debug("Discarding superseded coupon result for %r", code)
                return self._state
            self._pending = None
            if error is not None:
                logger.info("Coupon %r rejected: %s", code, error)
                self._set_state(CouponState(error=error), "coupon_rejected")
            else:
                logger.info("Coupon %r applied", code)
                self._set_state(CouponState(code=code, discount=discount), "coupon_applied")
            state = self._state
        if self._plugins is not None:
            self._plugins.dispatch(
                "coupon_resolved", code=code, status=state.status, error=state.error
            )
        return state

    def _lookup(self, code: str) -> tuple[Discount | None, str | None]:
        try:
            discount = self._catalog.validate_coupon(code)
        except Exception as exc:
            logger.warning("Coupon lookup for %r failed", code, exc_info=True)
            reason = str(exc) or type(exc).__name__
            return None, errmsg.COUPON_LOOKUP_FAILED.format(reason=reason)

        if discount is None or not matches_code(discount, code):
            return None, errmsg.COUPON_INVALID
        if not valid_percent(discount.percent_off):
            logger.warning(
                "Rejecting coupon %r: percent_off %s outside (0, 100]",
                code,
                discount.percent_off,
            )
            return None, errmsg.COUPON_INVALID
        return discount, None

    def _set_state(self, state: CouponState, reason: str) -> None:
        """Swap state and notify listeners. Caller holds the lock."""
        self._state = state
        for listener in self._listeners:
            listener(reason)


def matches_code(discount: Discount, code: str) -> bool:
    """True if *discount* is a coupon whose code equals *code*, ignoring case."""
    if not discount.coupon_code:
        return False
    return discount.coupon_code.casefold() == code.strip().casefold()
