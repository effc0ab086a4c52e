"""
Static design tokens and framework variants for the utility stylesheet.

Rendered into Tailwind v4 CSS-first configuration: an ``@theme`` block for
tokens, ``@custom-variant`` rules for LiveView loading/feedback states and a
centred ``container`` utility.
"""

from __future__ import annotations

# Spacing scale (0.25rem steps); icon sizes are looked up here.
SPACING: dict[str, str] = {
    "4": "1rem",
    "5": "1.25rem",
    "6": "1.5rem",
}

SCREENS: dict[str, str] = {
    "sm": "640px",
    "md": "768px",
    "lg": "1024px",
    "xl": "1280px",
    "2xl": "1536px",
}

CONTAINER = {
    "padding": "2rem",
    "max_width": "1400px",
}

COLORS: dict[str, str] = {
    "border": "hsl(226 2% 92%)",
    "input": "hsl(226 2% 92%)",
    "ring": "hsl(226 83% 42%)",
    "background": "hsl(226 55% 98%)",
    "foreground": "hsl(226 61% 4%)",
    "primary": "hsl(226 83% 42%)",
    "primary-foreground": "hsl(0 0% 100%)",
    "secondary": "hsl(226 43% 92%)",
    "secondary-foreground": "hsl(226 5% 3%)",
    "destructive": "hsl(0 86% 40%)",
    "destructive-foreground": "hsl(3 0% 100%)",
    "muted": "hsl(224 100% 93%)",
    "muted-foreground": "hsl(228 5.9% 16.7%)",
    "accent": "hsl(220.2 62.6% 61.2%)",
    "accent-foreground": "hsl(218.4 37.3% 86.9%)",
    "popover": "hsl(226 55% 98%)",
    "popover-foreground": "hsl(226 61% 4%)",
    "card": "hsl(226 55% 97%)",
    "card-foreground": "hsl(226 61% 3%)",
}

RADII: dict[str, str] = {
    "xl": "5px",
    "lg": "3px",
    "md": "2px",
    "sm": "1px",
}

KEYFRAMES: dict[str, dict[str, dict[str, str]]] = {
    "accordion-down": {
        "from": {"height": "0"},
        "to": {"height": "var(--bits-accordion-content-height)"},
    },
    "accordion-up": {
        "from": {"height": "var(--bits-accordion-content-height)"},
        "to": {"height": "0"},
    },
    "caret-blink": {
        "0%,70%,100%": {"opacity": "1"},
        "20%,50%": {"opacity": "0"},
    },
}

ANIMATIONS: dict[str, str] = {
    "accordion-down": "accordion-down 0.2s ease-out",
    "accordion-up": "accordion-up 0.2s ease-out",
    "caret-blink": "caret-blink 1.25s ease-out infinite",
}

# Phoenix LiveView adds these classes while events are in flight.
FRAMEWORK_VARIANTS: tuple[str, ...] = (
    "phx-no-feedback",
    "phx-click-loading",
    "phx-submit-loading",
    "phx-change-loading",
)


def spacing_for_pixels(pixels: int) -> str:
    """Map a pixel size to the spacing token value (24px -> spacing 6 -> 1.5rem)."""
    key = str(pixels // 4)
    try:
        return SPACING[key]
    except KeyError:
        raise ValueError(f"No spacing token for {pixels}px") from None


def generate_theme_css() -> str:
    """Render the ``@theme`` block for all static tokens."""
    lines: list[str] = ["@theme {"]

    for name, value in COLORS.items():
        lines.append(f"  --color-{name}: {value};")
    for name, value in RADII.items():
        lines.append(f"  --radius-{name}: {value};")
    for name, value in SCREENS.items():
        lines.append(f"  --breakpoint-{name}: {value};")
    for name, value in ANIMATIONS.items():
        lines.append(f"  --animate-{name}: {value};")

    for name, frames in KEYFRAMES.items():
        lines.append("")
        lines.append(f"  @keyframes {name} {{")
        for selector, declarations in frames.items():
            body = " ".join(f"{prop}: {val};" for prop, val in declarations.items())
            lines.append(f"    {selector} {{ {body} }}")
        lines.append("  }")

    lines.append("}")
    return "\n".join(lines)


def generate_container_css() -> str:
    """Render the centred container utility."""
    return "\n".join(
        [
            "@utility container {",
            "  width: 100%;",
            "  margin-inline: auto;",
            f"  padding-inline: {CONTAINER['padding']};",
            f"  @media (width >= {CONTAINER['max_width']}) {{",
            f"    max-width: {CONTAINER['max_width']};",
            "  }",
            "}",
        ]
    )


def variant_selector(name: str) -> str:
    """Selector list matching the element itself or any descendant of it."""
    return f"&.{name}, .{name} &"


def generate_variants_css() -> str:
    """Render one ``@custom-variant`` per framework state class."""
    return "\n".join(
        f"@custom-variant {name} ({variant_selector(name)});" for name in FRAMEWORK_VARIANTS
    )
