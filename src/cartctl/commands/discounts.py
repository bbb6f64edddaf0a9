"""Command: list the live regular discounts."""

from __future__ import annotations

from typing import TYPE_CHECKING

import click

from cartctl.commands._base import CartCommand

if TYPE_CHECKING:
    from cartctl.commands._context import AppContext


@click.command(
    cls=CartCommand,
    examples="""\
  cartctl discounts
  cartctl --catalog promos.json discounts
  cartctl -q discounts         # IDs only""",
)
@click.pass_obj
def discounts(app: AppContext) -> None:
    """List active discounts (coupons excluded)."""
    app.emit(app.checkout.list_discounts())
