"""Extension layer — plugin system via pluggy.

Discovery: entry_points (pip-installed) via pluggy setuptools entrypoints.
INVARIANT: Plugin failures are warnings, never errors.
"""

import pluggy

from cartctl.plugins.manager import PluginManager

hookimpl = pluggy.HookimplMarker("cartctl")

__all__ = ["PluginManager", "hookimpl"]
