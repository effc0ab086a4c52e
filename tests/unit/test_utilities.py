"""Tests for icon utility rule generation."""

from __future__ import annotations

from pathlib import Path

import pytest

from assetforge.icons import IconUtility, IconVariant, scan_icons
from assetforge.utilities import (
    compile_icon_rule,
    compile_icon_rules,
    encode_data_uri,
    render_rules,
)


def _icon(name: str = "home", pixel_size: int = 24, markup: str = "<svg/>") -> IconUtility:
    return IconUtility(
        name=name,
        variant=IconVariant.OUTLINE,
        markup=markup,
        pixel_size=pixel_size,
        path=Path(f"/icons/{name}.svg"),
    )


class TestCompileIconRule:
    def test_class_name(self) -> None:
        rule = compile_icon_rule(_icon("arrow-left-solid"))
        assert rule.class_name == "hero-arrow-left-solid"
        assert rule.name == "arrow-left-solid"

    def test_declarations(self) -> None:
        decls = dict(compile_icon_rule(_icon()).declarations)
        assert decls["--hero-home"] == "url('data:image/svg+xml;utf8,<svg/>')"
        assert decls["-webkit-mask"] == "var(--hero-home)"
        assert decls["mask"] == "var(--hero-home)"
        assert decls["mask-repeat"] == "no-repeat"
        assert decls["background-color"] == "currentColor"
        assert decls["display"] == "inline-block"
        assert decls["vertical-align"] == "middle"

    @pytest.mark.parametrize(
        ("pixels", "size"),
        [(24, "1.5rem"), (20, "1.25rem"), (16, "1rem")],
    )
    def test_size_follows_variant(self, pixels: int, size: str) -> None:
        decls = dict(compile_icon_rule(_icon(pixel_size=pixels)).declarations)
        assert decls["width"] == size
        assert decls["height"] == size

    def test_custom_property_comes_first(self) -> None:
        rule = compile_icon_rule(_icon())
        assert rule.declarations[0][0] == "--hero-home"

    def test_render(self) -> None:
        css = compile_icon_rule(_icon()).render()
        assert css.startswith("@utility hero-home {\n")
        assert "  mask-repeat: no-repeat;\n" in css
        assert css.endswith("}")


class TestEncodeDataUri:
    def test_plain_markup_kept(self) -> None:
        assert encode_data_uri('<svg fill="none"/>') == 'data:image/svg+xml;utf8,<svg fill="none"/>'

    def test_escapes_uri_breaking_characters(self) -> None:
        uri = encode_data_uri("<svg fill='#000' width='100%'/>")
        assert "#" not in uri
        assert "'" not in uri
        assert "%23000" in uri
        assert "100%25" in uri


class TestCompileIconRules:
    def test_one_rule_per_icon(self, icon_root: Path) -> None:
        index = scan_icons(icon_root)
        rules = compile_icon_rules(index)
        assert set(rules) == set(index)

    def test_sorted_by_name(self, icon_root: Path) -> None:
        rules = compile_icon_rules(scan_icons(icon_root))
        assert list(rules) == sorted(rules)

    def test_idempotent(self, icon_root: Path) -> None:
        first = render_rules(compile_icon_rules(scan_icons(icon_root)))
        second = render_rules(compile_icon_rules(scan_icons(icon_root)))
        assert first == second

    def test_variant_sizes_from_disk(self, icon_root: Path) -> None:
        rules = compile_icon_rules(scan_icons(icon_root))
        assert dict(rules["home-solid"].declarations)["width"] == "1.5rem"
        assert dict(rules["home-mini"].declarations)["width"] == "1.25rem"
        assert dict(rules["home-micro"].declarations)["width"] == "1rem"
