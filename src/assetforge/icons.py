"""
Icon asset index.

Scans a heroicons-style directory tree and maps utility names to the raw SVG
markup of each icon. Four variants are expected, each in its own
subdirectory::

    24/outline  -> "home"
    24/solid    -> "home-solid"
    20/solid    -> "home-mini"
    16/solid    -> "home-micro"

The index is rebuilt from disk on every call; nothing is cached between
builds.
"""

from __future__ import annotations

import logging
import re
from enum import StrEnum
from pathlib import Path

from pydantic import BaseModel, ConfigDict

from assetforge.errors import IconCollisionError, IconDirectoryError

logger = logging.getLogger(__name__)

_LINE_BREAKS = re.compile(r"\r?\n|\r")


class IconVariant(StrEnum):
    """Size/weight variant of an icon."""

    OUTLINE = "outline"
    SOLID = "solid"
    MINI = "mini"
    MICRO = "micro"


class VariantSpec(BaseModel):
    """Fixed on-disk location and rendered size of a variant."""

    variant: IconVariant
    suffix: str
    subdirectory: str
    pixel_size: int

    model_config = ConfigDict(frozen=True)


# Scan order matters: on a name collision the later variant wins.
ICON_VARIANTS: tuple[VariantSpec, ...] = (
    VariantSpec(variant=IconVariant.OUTLINE, suffix="", subdirectory="24/outline", pixel_size=24),
    VariantSpec(variant=IconVariant.SOLID, suffix="-solid", subdirectory="24/solid", pixel_size=24),
    VariantSpec(variant=IconVariant.MINI, suffix="-mini", subdirectory="20/solid", pixel_size=20),
    VariantSpec(variant=IconVariant.MICRO, suffix="-micro", subdirectory="16/solid", pixel_size=16),
)


class IconUtility(BaseModel):
    """One icon file, ready to be turned into a utility class."""

    name: str
    variant: IconVariant
    markup: str
    pixel_size: int
    path: Path

    model_config = ConfigDict(frozen=True)


def strip_line_breaks(markup: str) -> str:
    """Remove line breaks so the markup fits in a single-line CSS value."""
    return _LINE_BREAKS.sub("", markup)


def variant_directories(root: Path) -> list[tuple[VariantSpec, Path]]:
    """
    Resolve the four variant subdirectories under ``root``.

    Raises:
        IconDirectoryError: If the root or any variant subdirectory is missing.
    """
    if not root.is_dir():
        raise IconDirectoryError(f"Icon directory not found: {root}")

    resolved: list[tuple[VariantSpec, Path]] = []
    for spec in ICON_VARIANTS:
        directory = root / spec.subdirectory
        if not directory.is_dir():
            raise IconDirectoryError(
                f"Icon variant '{spec.variant}' directory not found: {directory}"
            )
        resolved.append((spec, directory))
    return resolved


def scan_icons(root: Path, on_collision: str = "overwrite") -> dict[str, IconUtility]:
    """
    Build the icon index for ``root``.

    Args:
        root: Icon root containing the four variant subdirectories.
        on_collision: ``"overwrite"`` keeps the last scanned icon for a name
            and logs a warning; ``"error"`` raises instead.

    Returns:
        Mapping of utility name to IconUtility.

    Raises:
        IconDirectoryError: If a directory is missing or a file cannot be read.
        IconCollisionError: On a name collision when ``on_collision="error"``.
    """
    index: dict[str, IconUtility] = {}

    for spec, directory in variant_directories(root):
        try:
            files = sorted(p for p in directory.iterdir() if p.is_file())
        except OSError as e:
            raise IconDirectoryError(f"Cannot read icon directory {directory}: {e}") from e

        for file_path in files:
            name = file_path.stem + spec.suffix
            try:
                content = file_path.read_text(encoding="utf-8")
            except (OSError, UnicodeDecodeError) as e:
                raise IconDirectoryError(f"Cannot read icon {file_path}: {e}") from e

            previous = index.get(name)
            if previous is not None:
                if on_collision == "error":
                    raise IconCollisionError(
                        f"Icon name '{name}' produced by both {previous.path} and {file_path}"
                    )
                logger.warning(
                    "Icon name '%s' from %s overrides %s", name, file_path, previous.path
                )

            index[name] = IconUtility(
                name=name,
                variant=spec.variant,
                markup=strip_line_breaks(content),
                pixel_size=spec.pixel_size,
                path=file_path,
            )

    logger.debug("Indexed %d icons under %s", len(index), root)
    return index


def icon_files(root: Path) -> list[Path]:
    """List every icon file the index would read (used by watch mode)."""
    files: list[Path] = []
    for spec in ICON_VARIANTS:
        directory = root / spec.subdirectory
        if directory.is_dir():
            files.extend(p for p in directory.iterdir() if p.is_file())
    return files
