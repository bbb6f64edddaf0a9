"""Human/JSON output helpers.

The CLI renders ServiceResult for humans (Rich tables) or machines
(--json). This module picks the mode; :mod:`cartctl.output.renderers`
does the drawing.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from pydantic import BaseModel

if TYPE_CHECKING:
    from cartctl.services.result import ServiceResult


class OutputSettings(BaseModel):
    """Output-mode flags copied from CartSettings."""

    model_config = {"frozen": True}

    json_output: bool = False
    quiet: bool = False
    verbose: bool = False


def format_result(result: ServiceResult, *, settings: OutputSettings | None = None) -> str:
    """Format a ServiceResult for display."""
    settings = settings or OutputSettings()
    if settings.json_output:
        return result.model_dump_json(indent=2)

    from cartctl.output.renderers import render_quiet, render_result

    if settings.quiet:
        return render_quiet(result)
    return render_result(result, verbose=settings.verbose)
