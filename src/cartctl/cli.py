"""Root CLI group for cartctl with global flags and command registration."""

from __future__ import annotations

import click
from pydantic import ValidationError

from cartctl import __version__
from cartctl.commands import register_commands
from cartctl.commands._base import CartGroup
from cartctl.commands._context import AppContext
from cartctl.config.logging import bind_command
from cartctl.config.settings import CartSettings
from cartctl.services.result import ServiceError, ServiceResult


@click.group(
    cls=CartGroup,
    invoke_without_command=True,
    examples="""\
  cartctl add penne 3.20 --category pasta --qty 3
  cartctl coupon apply SAVE10
  cartctl --json show""",
)
@click.version_option(version=__version__, prog_name="cartctl")
@click.option("--json", "json_output", is_flag=True, help="Structured JSON output.")
@click.option("-q", "--quiet", is_flag=True, help="Minimal output.")
@click.option("-v", "--verbose", is_flag=True, help="Detailed output with debug info.")
@click.option("--log-json", is_flag=True, help="Structured JSON log output to stderr.")
@click.option("-c", "--config", "config_path", default=None, help="Override config file path.")
@click.option("--sync", is_flag=True, help="Persist and validate coupons inline.")
@click.option(
    "--catalog",
    "catalog_path",
    type=click.Path(dir_okay=False),
    default=None,
    help="Discount catalog file (TOML or JSON).",
)
@click.pass_context
def cli(
    ctx: click.Context,
    json_output: bool,
    quiet: bool,
    verbose: bool,
    log_json: bool,
    config_path: str | None,
    sync: bool,
    catalog_path: str | None,
) -> None:
    """cartctl: shopping cart with live discounts and checkout coupons."""
    ctx.ensure_object(dict)
    try:
        settings = CartSettings.from_cli(
            config_path=config_path,
            json_output=json_output,
            quiet=quiet,
            verbose=verbose,
            log_json=log_json,
            sync=sync,
            catalog_path=catalog_path,
        )
    except ValidationError as exc:
        result = ServiceResult(
            ok=False,
            op="config",
            error=ServiceError(
                code="INVALID_CONFIG",
                message=f"Invalid configuration: {exc.error_count()} error(s)",
                detail={".".join(str(p) for p in e["loc"]): e["msg"] for e in exc.errors()},
            ),
        )
        output = result.model_dump_json(indent=2) if json_output else _config_error(result)
        click.echo(output, err=True)
        raise SystemExit(1) from exc

    app = AppContext(settings)
    bind_command(ctx.invoked_subcommand)
    ctx.obj = app
    ctx.call_on_close(app.close)
    if ctx.invoked_subcommand is None:
        click.echo(ctx.get_help())


def _config_error(result: ServiceResult) -> str:
    assert result.error is not None
    lines = [f"ERROR: {result.op}: {result.error.message}"]
    lines.extend(f"  {key}: {msg}" for key, msg in result.error.detail.items())
    return "\n".join(lines)


register_commands(cli)
