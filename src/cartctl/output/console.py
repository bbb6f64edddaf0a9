"""Rich Console factory and theme for cartctl output.

Creates Console instances that render to a StringIO buffer, preserving
the ``format_result() -> str`` contract. In non-TTY environments
(tests, pipes) Rich automatically disables color codes.
"""

from __future__ import annotations

from io import StringIO

from rich.console import Console
from rich.theme import Theme

CART_THEME = Theme(
    {
        "cart.ok": "bold green",
        "cart.error": "bold red",
        "cart.warning": "bold yellow",
        "cart.op": "bold cyan",
        "cart.key": "dim",
        "cart.product": "bold blue",
        "cart.money": "bold",
        "cart.discount": "magenta",
        "cart.coupon.applied": "green",
        "cart.coupon.validating": "yellow",
        "cart.coupon.error": "red",
        "cart.coupon.idle": "dim",
    }
)


def create_console(*, no_color: bool = False, width: int | None = None) -> Console:
    """Create a Console that renders to a StringIO buffer."""
    return Console(
        file=StringIO(),
        theme=CART_THEME,
        no_color=no_color,
        highlight=False,
        width=width or 120,
    )


def get_output(console: Console) -> str:
    """Extract rendered text from a StringIO-backed Console."""
    assert isinstance(console.file, StringIO)
    return console.file.getvalue()


def style_for_coupon(status: str) -> str:
    return f"cart.coupon.{status}" if status in {"applied", "validating", "error", "idle"} else ""
