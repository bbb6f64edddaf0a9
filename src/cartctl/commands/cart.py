"""Commands: add, remove, set-qty, note, clear, show."""

from __future__ import annotations

from typing import TYPE_CHECKING

import click

from cartctl.commands._base import CartCommand

if TYPE_CHECKING:
    from cartctl.commands._context import AppContext


@click.command(
    cls=CartCommand,
    examples="""\
  cartctl add spaghetti 4.50 --category pasta
  cartctl --json add sku-1001 19.99 --name "Olive oil 1L"
  cartctl add penne 3.20 --category pasta --qty 3 --notes "gluten free""",
)
@click.argument("product_ref")
@click.argument("price")
@click.option("--category", "category_ref", default="", help="Category the product belongs to.")
@click.option("--qty", "quantity", type=int, default=1, show_default=True, help="Units to add.")
@click.option("--notes", default="", help="Free-text note for the line.")
@click.option("--name", default="", help="Display name for the product.")
@click.pass_obj
def add(
    app: AppContext,
    product_ref: str,
    price: str,
    category_ref: str,
    quantity: int,
    notes: str,
    name: str,
) -> None:
    """Add PRODUCT_REF at PRICE, merging into an existing line."""
    app.emit(
        app.checkout.add_item(
            product_ref,
            price,
            category_ref=category_ref,
            quantity=quantity,
            notes=notes,
            name=name,
        )
    )


@click.command(
    cls=CartCommand,
    examples="""\
  cartctl remove spaghetti""",
)
@click.argument("product_ref")
@click.pass_obj
def remove(app: AppContext, product_ref: str) -> None:
    """Remove a product's line from the cart."""
    app.emit(app.checkout.remove_item(product_ref))


@click.command(
    "set-qty",
    cls=CartCommand,
    examples="""\
  cartctl set-qty penne 5
  cartctl set-qty penne 0     # removes the line""",
)
@click.argument("product_ref")
@click.argument("quantity", type=int)
@click.pass_obj
def set_qty(app: AppContext, product_ref: str, quantity: int) -> None:
    """Set a line's quantity; zero or below removes it."""
    app.emit(app.checkout.update_quantity(product_ref, quantity))


@click.command(
    cls=CartCommand,
    examples="""\
  cartctl note penne "no substitutions"
  cartctl note penne ''       # clears the note""",
)
@click.argument("product_ref")
@click.argument("text")
@click.pass_obj
def note(app: AppContext, product_ref: str, text: str) -> None:
    """Replace the notes on a line."""
    app.emit(app.checkout.update_notes(product_ref, text))


@click.command(
    cls=CartCommand,
    examples="""\
  cartctl clear""",
)
@click.pass_obj
def clear(app: AppContext) -> None:
    """Empty the cart, including its saved copy."""
    app.emit(app.checkout.clear())


@click.command(
    cls=CartCommand,
    examples="""\
  cartctl show
  cartctl show --coupon SAVE10
  cartctl -q show              # grand total only""",
)
@click.option("--coupon", "coupon_code", default=None, help="Apply a coupon before showing.")
@click.pass_obj
def show(app: AppContext, coupon_code: str | None) -> None:
    """Show line items, discounts and totals."""
    app.emit(app.checkout.show(coupon=coupon_code))
