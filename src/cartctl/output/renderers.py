"""Operation-specific Rich renderers for ServiceResult.

Each renderer writes to a Rich Console (backed by StringIO). The caller
extracts the rendered text via ``get_output(console)``.

Renderers are dispatched by ``result.op`` in :func:`render_result`.
Unknown ops fall through to a generic key-value renderer.
"""

from __future__ import annotations

import json
from typing import TYPE_CHECKING, Any

from rich.table import Table
from rich.text import Text

from cartctl.output.console import create_console, get_output, style_for_coupon

if TYPE_CHECKING:
    from rich.console import Console

    from cartctl.services.result import ServiceResult


# ── Public API ────────────────────────────────────────────────────────


def render_result(result: ServiceResult, *, verbose: bool = False) -> str:
    """Render a ServiceResult to a styled string via Rich.

    Returns plain text (no ANSI) when Rich detects no terminal,
    which is the case inside Click's CliRunner and piped output.
    """
    console = create_console()

    if result.ok:
        renderer = _OP_RENDERERS.get(result.op, _render_generic)
        renderer(result, console, verbose=verbose)
    else:
        _render_error(result, console, verbose=verbose)

    return get_output(console).rstrip("\n")


def render_quiet(result: ServiceResult) -> str:
    """Render minimal output for ``--quiet`` mode."""
    if not result.ok:
        msg = result.error.message if result.error else "Unknown error"
        return f"ERROR: {result.op}: {msg}"

    if "grand_total" in result.data:
        return str(result.data["grand_total"])
    items = result.data.get("items")
    if result.op == "discounts" and isinstance(items, list):
        return "\n".join(str(item.get("id", "")) for item in items)
    return f"OK: {result.op}"


# ── Helpers ───────────────────────────────────────────────────────────


def _status_line(console: Console, result: ServiceResult) -> None:
    label = Text("OK", style="cart.ok")
    op = Text(f"  {result.op}", style="cart.op")
    console.print(label, op, end="")
    console.print()


def _field(console: Console, key: str, value: Any, style: str = "") -> None:
    """Print a single indented key-value field."""
    k = Text(f"  {key}: ", style="cart.key")
    v = Text(str(value), style=style)
    console.print(k, v, end="")
    console.print()


def _render_error(result: ServiceResult, console: Console, *, verbose: bool = False) -> None:
    err = result.error
    msg = err.message if err else "Unknown error"
    label = Text("ERROR", style="cart.error")
    op = Text(f"  {result.op}: ", style="cart.op")
    console.print(label, op, msg, sep="")

    if verbose and err and err.detail:
        console.print(Text("  detail:", style="dim"))
        for k, v in err.detail.items():
            console.print(f"    {k}: {v}")


# ── Cart renderers ────────────────────────────────────────────────────


def _line_table(items: list[dict[str, Any]], *, verbose: bool = False) -> Table:
    table = Table(show_header=True, show_lines=False, pad_edge=False, expand=False)
    table.add_column("Product", style="cart.product", no_wrap=True)
    table.add_column("Qty", justify="right")
    table.add_column("Price", justify="right")
    table.add_column("Effective", justify="right")
    table.add_column("Discount", style="cart.discount")
    table.add_column("Notes")
    if verbose:
        table.add_column("Category", style="dim")

    for item in items:
        label = item.get("name") or item.get("product_ref", "")
        effective = str(item.get("effective_unit_price", ""))
        discounted = effective != str(item.get("unit_price", ""))
        row: list[Any] = [
            str(label),
            str(item.get("quantity", "")),
            str(item.get("unit_price", "")),
            Text(effective, style="cart.money" if discounted else ""),
            str(item.get("discount") or ""),
            str(item.get("notes") or ""),
        ]
        if verbose:
            row.append(str(item.get("category_ref", "")))
        table.add_row(*row)
    return table


def _render_cart(result: ServiceResult, console: Console, *, verbose: bool = False) -> None:
    """Render any result whose data is a cart snapshot payload."""
    d = result.data
    _status_line(console, result)

    items = d.get("items", [])
    if items:
        console.print(_line_table(items, verbose=verbose))
    else:
        console.print("  [dim]Cart is empty[/dim]")

    console.print()
    _field(console, "subtotal", d.get("subtotal", "0.00"))
    _field(console, "item discounts", d.get("item_discount_total", "0.00"))
    _field(console, "coupon discount", d.get("coupon_discount_total", "0.00"))
    _field(console, "grand total", d.get("grand_total", "0.00"), style="cart.money")

    status = str(d.get("coupon_status", "idle"))
    coupon = d.get("coupon_code")
    if status == "applied" and coupon:
        _field(console, "coupon", f"{coupon} (applied)", style=style_for_coupon(status))
    elif status != "idle":
        _field(console, "coupon", status, style=style_for_coupon(status))
    if d.get("coupon_error"):
        _field(console, "coupon error", d["coupon_error"], style="cart.coupon.error")

    if verbose:
        _field(console, "version", d.get("version", 0), style="dim")
        _field(console, "items", d.get("item_count", 0), style="dim")


def _render_discounts(result: ServiceResult, console: Console, *, verbose: bool = False) -> None:
    """Render the live regular discount catalog."""
    items = result.data.get("items", [])
    if not items:
        console.print("No active discounts.")
        return

    table = Table(show_header=True, show_lines=False, pad_edge=False, expand=False)
    table.add_column("ID", style="cart.product", no_wrap=True)
    table.add_column("Off", style="cart.discount", justify="right")
    table.add_column("Applies to")
    table.add_column("Min qty", justify="right")
    table.add_column("Ends", style="dim")
    if verbose:
        table.add_column("Description")

    for item in items:
        products = item.get("products")
        target = ", ".join(products) if products else f"category {item.get('category_ref', '')}"
        row = [
            str(item.get("id", "")),
            f"{item.get('percent_off', '')}%",
            target,
            str(item.get("min_quantity") or ""),
            str(item.get("end_date") or ""),
        ]
        if verbose:
            row.append(str(item.get("description") or ""))
        table.add_row(*row)

    console.print(table)
    console.print(f"\n{result.data.get('count', len(items))} discounts")


# ── Generic fallback ──────────────────────────────────────────────────


def _render_generic(result: ServiceResult, console: Console, *, verbose: bool = False) -> None:
    _status_line(console, result)
    for key, value in result.data.items():
        if isinstance(value, (dict, list)):
            _field(console, key, json.dumps(value, separators=(",", ":")))
        else:
            _field(console, key, value)


_OP_RENDERERS = {
    "add_item": _render_cart,
    "remove_item": _render_cart,
    "update_quantity": _render_cart,
    "update_notes": _render_cart,
    "clear": _render_cart,
    "show": _render_cart,
    "apply_coupon": _render_cart,
    "remove_coupon": _render_cart,
    "discounts": _render_discounts,
}
