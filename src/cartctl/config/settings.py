"""Unified settings — CLI flags, env vars, and TOML config in one object.

Priority chain (highest to lowest):
  1. Init kwargs  — CLI flags passed by Click
  2. Env vars     — ``CARTCTL_*`` prefix
  3. TOML file    — ``cartctl.toml`` discovered via walk-up
  4. Code defaults — baked into the section models

Uses Pydantic Settings v2 with a custom :class:`TomlSettingsSource` that
reuses the ``find_config`` walk-up discovery from
:mod:`cartctl.config.discovery`.
"""

from __future__ import annotations

import threading
import tomllib
from pathlib import Path
from typing import Any

import click
from pydantic import Field
from pydantic_settings import BaseSettings, PydanticBaseSettingsSource

from cartctl.config.discovery import find_config, read_config
from cartctl.config.models import CatalogConfig, CouponConfig, PricingConfig, StorageConfig


class TomlSettingsSource(PydanticBaseSettingsSource):
    """Read settings from a ``cartctl.toml`` file discovered via walk-up."""

    def __init__(self, settings_cls: type[BaseSettings], toml_path: Path | None) -> None:
        super().__init__(settings_cls)
        self._data: dict[str, Any] = {}
        if toml_path and toml_path.is_file():
            try:
                self._data = read_config(toml_path)
            except tomllib.TOMLDecodeError as exc:
                msg = f"Invalid TOML in {toml_path}: {exc}"
                raise click.ClickException(msg) from exc

    def get_field_value(self, field: Any, field_name: str) -> tuple[Any, str, bool]:
        """Return ``(value, field_name, value_is_complex)``."""
        val = self._data.get(field_name)
        return val, field_name, field_name in self._data

    def __call__(self) -> dict[str, Any]:
        return self._data


# Thread-local storage for TOML path during construction.
_tls = threading.local()


class CartSettings(BaseSettings):
    """Unified settings for the cartctl CLI.

    Attributes:
        data_dir: Directory holding ``.cartctl/`` (parent of ``cartctl.toml``,
            or CWD if no config found).
        config_path: The config file actually read, or None.
        catalog_path: ``--catalog`` override for ``[catalog] path``.
    """

    model_config = {
        "frozen": True,
        "env_prefix": "CARTCTL_",
        "env_nested_delimiter": "__",
    }

    data_dir: Path = Field(default_factory=Path.cwd)
    config_path: Path | None = None

    # --- CLI flags ---
    json_output: bool = False
    quiet: bool = False
    verbose: bool = False
    log_json: bool = False
    sync: bool = False
    catalog_path: Path | None = None

    # --- TOML sections ---
    storage: StorageConfig = Field(default_factory=StorageConfig)
    catalog: CatalogConfig = Field(default_factory=CatalogConfig)
    pricing: PricingConfig = Field(default_factory=PricingConfig)
    coupon: CouponConfig = Field(default_factory=CouponConfig)

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        """Insert TOML source between env vars and defaults."""
        toml_path = getattr(_tls, "toml_path", None)
        return (
            init_settings,
            env_settings,
            TomlSettingsSource(settings_cls, toml_path),
        )

    def resolved_catalog_path(self) -> Path | None:
        """The catalog file to read; relative paths resolve against ``data_dir``."""
        path = self.catalog_path or (Path(self.catalog.path) if self.catalog.path else None)
        if path is None:
            return None
        return path if path.is_absolute() else self.data_dir / path

    @classmethod
    def from_cli(
        cls,
        *,
        config_path: str | None = None,
        data_dir: Path | None = None,
        **cli_flags: Any,
    ) -> CartSettings:
        """Construct settings from a CLI invocation.

        Discovers ``cartctl.toml`` via walk-up (or explicit *config_path*),
        resolves *data_dir* from the config file's parent directory (falling
        back to ``CARTCTL_DATA_DIR`` or the CWD), and merges CLI flags as
        highest-priority overrides. Flags passed as None or False are
        dropped so env vars and TOML still apply.
        """
        toml_path: Path | None = None
        if config_path:
            p = Path(config_path)
            if not p.is_file():
                raise click.ClickException(f"Config file not found: {config_path}")
            toml_path = p
        else:
            toml_path = find_config(data_dir)

        init: dict[str, Any] = {
            k: v for k, v in cli_flags.items() if v is not None and v is not False
        }
        init["config_path"] = toml_path
        if data_dir is not None:
            init["data_dir"] = data_dir
        elif toml_path is not None:
            init["data_dir"] = toml_path.parent

        _tls.toml_path = toml_path
        try:
            return cls(**init)
        finally:
            _tls.toml_path = None
