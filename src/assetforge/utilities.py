"""
Utility rule compiler: icon index -> ``hero-*`` utility classes.

Each icon becomes a class that masks a ``currentColor`` box with the icon
shape, so one SVG renders in any text colour::

    @utility hero-home {
      --hero-home: url('data:image/svg+xml;utf8,<svg ...>');
      -webkit-mask: var(--hero-home);
      mask: var(--hero-home);
      ...
    }
"""

from __future__ import annotations

from collections.abc import Mapping

from pydantic import BaseModel, ConfigDict

from assetforge.icons import IconUtility
from assetforge.theme import spacing_for_pixels

CLASS_PREFIX = "hero"

# Characters that would terminate or corrupt a single-quoted data URI.
_URI_ESCAPES = {"%": "%25", "#": "%23", "'": "%27"}


class UtilityRule(BaseModel):
    """A generated utility class and its ordered declarations."""

    name: str
    class_name: str
    declarations: tuple[tuple[str, str], ...]

    model_config = ConfigDict(frozen=True)

    def render(self) -> str:
        """Render as a Tailwind ``@utility`` block."""
        body = "\n".join(f"  {prop}: {value};" for prop, value in self.declarations)
        return f"@utility {self.class_name} {{\n{body}\n}}"


def encode_data_uri(markup: str) -> str:
    """Return a ``data:`` URI embedding the SVG markup."""
    encoded = "".join(_URI_ESCAPES.get(ch, ch) for ch in markup)
    return f"data:image/svg+xml;utf8,{encoded}"


def compile_icon_rule(icon: IconUtility) -> UtilityRule:
    """Build the utility rule for a single icon."""
    prop = f"--{CLASS_PREFIX}-{icon.name}"
    size = spacing_for_pixels(icon.pixel_size)
    return UtilityRule(
        name=icon.name,
        class_name=f"{CLASS_PREFIX}-{icon.name}",
        declarations=(
            (prop, f"url('{encode_data_uri(icon.markup)}')"),
            ("-webkit-mask", f"var({prop})"),
            ("mask", f"var({prop})"),
            ("mask-repeat", "no-repeat"),
            ("background-color", "currentColor"),
            ("vertical-align", "middle"),
            ("display", "inline-block"),
            ("width", size),
            ("height", size),
        ),
    )


def compile_icon_rules(index: Mapping[str, IconUtility]) -> dict[str, UtilityRule]:
    """Compile every icon in the index, ordered by name."""
    return {name: compile_icon_rule(index[name]) for name in sorted(index)}


def render_rules(rules: Mapping[str, UtilityRule]) -> str:
    return "\n\n".join(rule.render() for rule in rules.values())
