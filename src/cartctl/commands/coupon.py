"""Command group: coupon apply / remove."""

from __future__ import annotations

from typing import TYPE_CHECKING

import click

from cartctl.commands._base import CartGroup

if TYPE_CHECKING:
    from cartctl.commands._context import AppContext


@click.group(
    cls=CartGroup,
    examples="""\
  cartctl coupon apply SAVE10
  cartctl coupon remove""",
)
def coupon() -> None:
    """Apply or remove the checkout coupon."""


@coupon.command(
    examples="""\
  cartctl coupon apply SAVE10
  cartctl --json coupon apply save10""",
)
@click.argument("code")
@click.pass_obj
def apply(app: AppContext, code: str) -> None:
    """Validate CODE against the catalog and apply it to the cart total."""
    app.emit(app.checkout.apply_coupon(code))


@coupon.command(
    examples="""\
  cartctl coupon remove""",
)
@click.pass_obj
def remove(app: AppContext) -> None:
    """Drop the applied coupon."""
    app.emit(app.checkout.remove_coupon())
