"""Locate and read ``cartctl.toml``.

The nearest ``cartctl.toml`` at or above the working directory wins, the
same way git finds ``.git/``. ``CARTCTL_CONFIG`` names a file directly and
disables the walk.
"""

from __future__ import annotations

import os
import tomllib
from collections.abc import Iterator
from pathlib import Path
from typing import Any

CONFIG_FILENAME = "cartctl.toml"
CONFIG_ENV_VAR = "CARTCTL_CONFIG"


def _search_dirs(start: Path | None) -> Iterator[Path]:
    current = (start or Path.cwd()).resolve()
    yield current
    yield from current.parents


def find_config(start: Path | None = None) -> Path | None:
    """Path of the config file that applies to *start* (default: cwd), or None.

    A ``CARTCTL_CONFIG`` pointing at a missing file yields None rather
    than falling back to the walk.
    """
    env_path = os.environ.get(CONFIG_ENV_VAR)
    if env_path:
        explicit = Path(env_path)
        return explicit if explicit.is_file() else None

    for directory in _search_dirs(start):
        candidate = directory / CONFIG_FILENAME
        if candidate.is_file():
            return candidate
    return None


def read_config(path: Path) -> dict[str, Any]:
    """Parse *path* into its raw table. Raises ``tomllib.TOMLDecodeError``."""
    with path.open("rb") as fh:
        return tomllib.load(fh)
