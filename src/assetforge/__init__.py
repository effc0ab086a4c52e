"""
assetforge - dual-target asset compilation for server-rendered Svelte apps.

Compiles the same component sources into a hydratable browser bundle and a
server-rendering bundle, and generates icon utility classes from SVG files.
"""

from __future__ import annotations

from importlib.metadata import PackageNotFoundError
from importlib.metadata import version as _metadata_version

from .errors import (
    AssetForgeError,
    CompileError,
    ConfigError,
    SetupError,
)


def _get_version() -> str:
    try:
        return _metadata_version("assetforge")
    except PackageNotFoundError:
        return "0.1.0"


__version__ = _get_version()

__all__ = [
    "__version__",
    "AssetForgeError",
    "CompileError",
    "ConfigError",
    "SetupError",
]
