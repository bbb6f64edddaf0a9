"""Subcommand modules for cartctl.

Provides register_commands() which uses deferred imports to keep
``cartctl --help`` fast.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    import click


def register_commands(cli: click.Group) -> None:
    """Register the coupon group and the standalone cart commands on the root group."""
    # --- Groups ---
    from cartctl.commands.coupon import coupon

    cli.add_command(coupon)

    # --- Standalone commands ---
    from cartctl.commands.cart import add, clear, note, remove, set_qty, show
    from cartctl.commands.discounts import discounts

    cli.add_command(add)
    cli.add_command(remove)
    cli.add_command(set_qty)
    cli.add_command(note)
    cli.add_command(clear)
    cli.add_command(show)
    cli.add_command(discounts)
