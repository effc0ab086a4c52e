"""
Resolution of the external binaries the build drives.

Lookup order for esbuild and tailwindcss:

1. ``PATH``
2. the project's ``node_modules/.bin``
3. a versioned copy in the cache directory, downloaded on first use

``node`` is only looked up on ``PATH``. Resolvers return ``None`` when a
binary is unavailable; callers decide whether that is fatal.
"""

from __future__ import annotations

import io
import logging
import os
import platform
import shutil
import stat
import tarfile
from pathlib import Path

logger = logging.getLogger(__name__)

_TAILWIND_BASE_URL = "https://github.com/tailwindlabs/tailwindcss/releases/download/v{version}"
_ESBUILD_BASE_URL = "https://registry.npmjs.org/@esbuild/{package}/-/{package}-{version}.tgz"

# Standalone Tailwind CLI asset names by platform
_TAILWIND_BINARIES: dict[tuple[str, str], str] = {
    ("darwin", "arm64"): "tailwindcss-macos-arm64",
    ("darwin", "x86_64"): "tailwindcss-macos-x64",
    ("linux", "x86_64"): "tailwindcss-linux-x64",
    ("linux", "aarch64"): "tailwindcss-linux-arm64",
}

# esbuild platform package names by platform
_ESBUILD_PACKAGES: dict[tuple[str, str], str] = {
    ("darwin", "arm64"): "darwin-arm64",
    ("darwin", "x86_64"): "darwin-x64",
    ("linux", "x86_64"): "linux-x64",
    ("linux", "aarch64"): "linux-arm64",
}


def _cache_dir() -> Path:
    """Return the cache directory for downloaded binaries."""
    cache = Path(os.environ.get("ASSETFORGE_CACHE_DIR", Path.home() / ".assetforge" / "cache"))
    cache.mkdir(parents=True, exist_ok=True)
    return cache


def _get_platform_key() -> tuple[str, str]:
    """Get the (system, machine) key for the current platform."""
    system = platform.system().lower()
    machine = platform.machine()
    if machine == "AMD64":
        machine = "x86_64"
    elif machine == "arm64" and system == "linux":
        machine = "aarch64"
    return (system, machine)


def _local_binary(name: str, project_root: Path | None) -> Path | None:
    """Find ``name`` on PATH or in the project's node_modules/.bin."""
    system_bin = shutil.which(name)
    if system_bin:
        return Path(system_bin)
    if project_root is not None:
        candidate = project_root / "node_modules" / ".bin" / name
        if candidate.exists():
            return candidate
    return None


def _cached_binary(name: str, version: str) -> Path | None:
    """Return the cached binary if its recorded version matches."""
    cached = _cache_dir() / name
    version_file = _cache_dir() / f"{name}.version"
    if cached.exists() and version_file.exists():
        if version_file.read_text().strip() == version:
            return cached
    return None


def _download(url: str) -> bytes:
    import urllib.request

    with urllib.request.urlopen(url, timeout=60) as resp:
        data: bytes = resp.read()
    return data


def _store_binary(name: str, version: str, data: bytes) -> Path:
    cached = _cache_dir() / name
    cached.write_bytes(data)
    cached.chmod(cached.stat().st_mode | stat.S_IEXEC)
    (_cache_dir() / f"{name}.version").write_text(version)
    logger.info("%s cached at %s", name, cached)
    return cached


def get_tailwind_binary(version: str, project_root: Path | None = None) -> Path | None:
    """Get the Tailwind CSS CLI, downloading the standalone build if needed.

    Returns:
        Path to the binary, or None if unavailable.
    """
    local = _local_binary("tailwindcss", project_root)
    if local:
        return local

    key = _get_platform_key()
    asset = _TAILWIND_BINARIES.get(key)
    if asset is None:
        logger.warning(
            "Tailwind CSS standalone CLI not available for %s/%s. "
            "Install it with `npm install tailwindcss @tailwindcss/cli`.",
            key[0],
            key[1],
        )
        return None

    cached = _cached_binary("tailwindcss", version)
    if cached:
        return cached

    url = f"{_TAILWIND_BASE_URL.format(version=version)}/{asset}"
    logger.info("Downloading Tailwind CSS CLI v%s for %s/%s...", version, *key)
    try:
        return _store_binary("tailwindcss", version, _download(url))
    except Exception as e:
        logger.error("Failed to download Tailwind CSS CLI: %s", e)
        return None


def extract_esbuild(archive: bytes) -> bytes:
    """Pull ``package/bin/esbuild`` out of an npm package tarball."""
    with tarfile.open(fileobj=io.BytesIO(archive), mode="r:gz") as tar:
        member = tar.extractfile("package/bin/esbuild")
        if member is None:
            raise ValueError("esbuild binary missing from package archive")
        return member.read()


def get_esbuild_binary(version: str, project_root: Path | None = None) -> Path | None:
    """Get the esbuild CLI, downloading the platform package if needed.

    Returns:
        Path to the binary, or None if unavailable.
    """
    local = _local_binary("esbuild", project_root)
    if local:
        return local

    key = _get_platform_key()
    package = _ESBUILD_PACKAGES.get(key)
    if package is None:
        logger.warning(
            "esbuild binary not available for %s/%s. Install it with `npm install esbuild`.",
            key[0],
            key[1],
        )
        return None

    cached = _cached_binary("esbuild", version)
    if cached:
        return cached

    url = _ESBUILD_BASE_URL.format(package=package, version=version)
    logger.info("Downloading esbuild v%s for %s/%s...", version, *key)
    try:
        return _store_binary("esbuild", version, extract_esbuild(_download(url)))
    except Exception as e:
        logger.error("Failed to download esbuild: %s", e)
        return None


def get_node_binary() -> Path | None:
    """Get the Node.js executable that hosts the component compiler."""
    node = shutil.which("node")
    return Path(node) if node else None
