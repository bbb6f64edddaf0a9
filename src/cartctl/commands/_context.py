"""AppContext — shared Click context for all commands.

Created once by the root CLI group and flows to all subcommands via
``@click.pass_obj``. Provides lazy CartSession initialization and
centralized result emission (stdout/stderr routing + exit codes).
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import click

from cartctl.output.formatters import OutputSettings, format_result

if TYPE_CHECKING:
    from cartctl.config.settings import CartSettings
    from cartctl.services.checkout import CheckoutService
    from cartctl.services.result import ServiceResult
    from cartctl.services.session import CartSession


class AppContext:
    """Shared context flowing through Click's command hierarchy.

    The session is created on first use so ``--help``, ``--version`` and
    ``--examples`` never touch the database.
    """

    def __init__(self, settings: CartSettings) -> None:
        self.settings = settings
        self._session: CartSession | None = None

        from cartctl.config.logging import configure_logging

        configure_logging(verbose=settings.verbose, log_json=settings.log_json)

    @property
    def session(self) -> CartSession:
        """The cart session (created lazily on first access)."""
        if self._session is None:
            from cartctl.plugins import PluginManager
            from cartctl.services.session import CartSession

            plugins = PluginManager()
            plugins.discover_and_load()
            self._session = CartSession.from_settings(self.settings, plugins=plugins)
        return self._session

    @property
    def checkout(self) -> CheckoutService:
        from cartctl.services.checkout import CheckoutService

        return CheckoutService(
            self.session, validation_timeout=self.settings.coupon.validation_timeout
        )

    def close(self) -> None:
        """Drain pending writes and stop worker threads, if a session was opened."""
        if self._session is not None:
            self._session.close()
            self._session = None

    def emit(self, result: ServiceResult) -> None:
        """Format and output a ServiceResult with correct exit semantics.

        * Success (``result.ok``): writes to stdout, returns normally.
          Warnings are emitted to stderr so they don't pollute piped output.
        * Failure: writes to stderr, exits with code 1.
        """
        settings = OutputSettings(
            json_output=self.settings.json_output,
            quiet=self.settings.quiet,
            verbose=self.settings.verbose,
        )
        output = format_result(result, settings=settings)
        if result.ok:
            click.echo(output)
            # In JSON mode, warnings are already in the serialized payload.
            if not settings.json_output:
                for warning in result.warnings:
                    click.echo(f"WARNING: {warning}", err=True)
        else:
            click.echo(output, err=True)
            raise SystemExit(1)
