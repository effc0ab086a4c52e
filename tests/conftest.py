"""Shared pytest fixtures for assetforge tests."""

from __future__ import annotations

from pathlib import Path

import pytest

from assetforge.config import IconsConfig, ProjectConfig

SVG = '<svg xmlns="http://www.w3.org/2000/svg" viewBox="0 0 24 24">\n  <path d="M0 0h24v24H0z"/>\n</svg>\n'

VARIANT_DIRS = ["24/outline", "24/solid", "20/solid", "16/solid"]


def write_icons(root: Path, names: dict[str, list[str]]) -> Path:
    """Create the four variant directories and the given files in each."""
    for subdir in VARIANT_DIRS:
        (root / subdir).mkdir(parents=True, exist_ok=True)
    for subdir, files in names.items():
        for filename in files:
            (root / subdir / filename).write_text(SVG)
    return root


@pytest.fixture
def icon_root(tmp_path: Path) -> Path:
    """Icon tree with 'home' in every variant and 'bolt' outline only."""
    return write_icons(
        tmp_path / "icons",
        {
            "24/outline": ["home.svg", "bolt.svg"],
            "24/solid": ["home.svg"],
            "20/solid": ["home.svg"],
            "16/solid": ["home.svg"],
        },
    )


@pytest.fixture
def project(tmp_path: Path, icon_root: Path) -> ProjectConfig:
    """A minimal assets project with both entry points and one component."""
    root = tmp_path / "assets"
    (root / "js").mkdir(parents=True)
    (root / "svelte").mkdir()
    (root / "js" / "app.js").write_text('import Button from "../svelte/Button.svelte";\n')
    (root / "js" / "server.js").write_text('export { default } from "../svelte/Button.svelte";\n')
    (root / "svelte" / "Button.svelte").write_text('<button class="hero-home">ok</button>\n')
    (root / "tsconfig.json").write_text("{}\n")

    return ProjectConfig(
        project_root=root,
        icons=IconsConfig(root=str(icon_root)),
    )


@pytest.fixture
def make_icons():
    """Factory fixture: ``make_icons(root, {"24/outline": ["a.svg"]})``."""
    return write_icons
