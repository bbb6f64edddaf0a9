"""Shared service-layer helper functions."""

from __future__ import annotations

from concurrent.futures import Future


def completed[T](value: T) -> Future[T]:
    """Return an already-resolved Future holding *value*."""
    future: Future[T] = Future()
    future.set_result(value)
    return future
