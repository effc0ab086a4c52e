"""Tests for the icon asset index."""

from __future__ import annotations

import logging
from pathlib import Path

import pytest

from assetforge.errors import IconCollisionError, IconDirectoryError
from assetforge.icons import (
    ICON_VARIANTS,
    IconVariant,
    icon_files,
    scan_icons,
    strip_line_breaks,
)


class TestVariantTable:
    def test_suffixes(self) -> None:
        assert [v.suffix for v in ICON_VARIANTS] == ["", "-solid", "-mini", "-micro"]

    def test_sizes_decrease(self) -> None:
        sizes = {v.variant: v.pixel_size for v in ICON_VARIANTS}
        assert sizes[IconVariant.OUTLINE] == sizes[IconVariant.SOLID] == 24
        assert sizes[IconVariant.SOLID] > sizes[IconVariant.MINI] > sizes[IconVariant.MICRO]


class TestScanIcons:
    def test_names_get_variant_suffix(self, icon_root: Path) -> None:
        index = scan_icons(icon_root)
        assert set(index) == {"home", "bolt", "home-solid", "home-mini", "home-micro"}

    def test_size_matches_total_file_count(self, icon_root: Path) -> None:
        index = scan_icons(icon_root)
        assert len(index) == len(icon_files(icon_root)) == 5

    def test_pixel_sizes(self, icon_root: Path) -> None:
        index = scan_icons(icon_root)
        assert index["home"].pixel_size == 24
        assert index["home-solid"].pixel_size == 24
        assert index["home-mini"].pixel_size == 20
        assert index["home-micro"].pixel_size == 16
        assert index["home-mini"].variant is IconVariant.MINI

    def test_markup_has_no_line_breaks(self, icon_root: Path) -> None:
        markup = scan_icons(icon_root)["home"].markup
        assert "\n" not in markup
        assert markup.startswith("<svg")
        assert markup.endswith("</svg>")

    def test_picks_up_new_files(self, icon_root: Path) -> None:
        assert "star" not in scan_icons(icon_root)
        (icon_root / "24/outline" / "star.svg").write_text("<svg/>")
        assert "star" in scan_icons(icon_root)

    def test_missing_root(self, tmp_path: Path) -> None:
        with pytest.raises(IconDirectoryError):
            scan_icons(tmp_path / "nope")

    def test_missing_variant_directory(self, tmp_path: Path, make_icons) -> None:
        root = make_icons(tmp_path / "icons", {})
        (root / "16/solid").rmdir()
        with pytest.raises(IconDirectoryError, match="micro"):
            scan_icons(root)


class TestCollisions:
    @pytest.fixture
    def colliding_root(self, tmp_path: Path, make_icons) -> Path:
        # outline "x-solid" and solid "x" both become "x-solid"
        return make_icons(
            tmp_path / "icons",
            {"24/outline": ["x-solid.svg"], "24/solid": ["x.svg"]},
        )

    def test_last_scanned_wins(self, colliding_root: Path, caplog: pytest.LogCaptureFixture) -> None:
        with caplog.at_level(logging.WARNING, logger="assetforge.icons"):
            index = scan_icons(colliding_root)

        assert len(index) == 1
        assert index["x-solid"].variant is IconVariant.SOLID
        assert "overrides" in caplog.text

    def test_error_policy(self, colliding_root: Path) -> None:
        with pytest.raises(IconCollisionError, match="x-solid"):
            scan_icons(colliding_root, on_collision="error")


def test_strip_line_breaks() -> None:
    assert strip_line_breaks("<svg>\r\n<path/>\r</svg>\n") == "<svg><path/></svg>"
