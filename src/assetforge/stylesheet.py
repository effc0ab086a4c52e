"""
Utility stylesheet assembly and compilation.

Generates the Tailwind v4 input stylesheet (theme tokens, framework variants
and icon utilities read fresh from disk) and compiles it with the Tailwind
CLI. Only classes used in the configured content files end up in the output.

Usage::

    from assetforge.stylesheet import assemble_stylesheet
    print(assemble_stylesheet(config))
"""

from __future__ import annotations

import glob
import logging
import os
import re
import tempfile
from dataclasses import dataclass, field
from pathlib import Path

from assetforge.config import ProjectConfig
from assetforge.errors import StylesheetError
from assetforge.icons import icon_files, scan_icons
from assetforge.process import run_process
from assetforge.theme import generate_container_css, generate_theme_css, generate_variants_css
from assetforge.utilities import compile_icon_rules, render_rules

logger = logging.getLogger(__name__)

_BRACES = re.compile(r"\{([^{}]*)\}")


@dataclass
class StylesheetOutput:
    path: Path
    inputs: set[Path] = field(default_factory=set)


def expand_braces(pattern: str) -> list[str]:
    """Expand ``{a,b}`` alternatives, which the glob module does not support."""
    match = _BRACES.search(pattern)
    if match is None:
        return [pattern]
    head, tail = pattern[: match.start()], pattern[match.end() :]
    expanded: list[str] = []
    for option in match.group(1).split(","):
        expanded.extend(expand_braces(head + option + tail))
    return expanded


def content_globs(config: ProjectConfig) -> list[str]:
    """Content globs as absolute, normalised paths."""
    return [
        Path(os.path.normpath(config.project_root / pattern)).as_posix()
        for pattern in config.stylesheet.content
    ]


def content_files(config: ProjectConfig) -> set[Path]:
    """Files currently matched by the content globs."""
    files: set[Path] = set()
    for pattern in content_globs(config):
        for expanded in expand_braces(pattern):
            files.update(Path(p) for p in glob.glob(expanded, recursive=True) if os.path.isfile(p))
    return files


def assemble_stylesheet(config: ProjectConfig) -> str:
    """
    Build the Tailwind input stylesheet.

    The icon index is rescanned on every call so the result always reflects
    the icon directory as it is on disk now.

    Raises:
        IconDirectoryError: If the icon directory is incomplete.
    """
    icons = scan_icons(config.icons_root, on_collision=config.icons.on_collision)
    rules = compile_icon_rules(icons)

    sections: list[str] = [
        "/* Generated by assetforge - do not edit */",
        '@import "tailwindcss" source(none);',
    ]
    if config.stylesheet.extra:
        sections.append(f'@import "{config.resolve(config.stylesheet.extra).as_posix()}";')

    sections.append("\n".join(f'@source "{pattern}";' for pattern in content_globs(config)))
    sections.append(generate_theme_css())
    sections.append(generate_container_css())
    sections.append(generate_variants_css())
    if rules:
        sections.append(render_rules(rules))

    logger.debug("Assembled stylesheet with %d icon utilities", len(rules))
    return "\n\n".join(sections) + "\n"


def stylesheet_inputs(config: ProjectConfig) -> set[Path]:
    """Every file whose change should regenerate the stylesheet."""
    inputs = content_files(config)
    inputs.update(icon_files(config.icons_root))
    if config.stylesheet.extra:
        inputs.add(config.resolve(config.stylesheet.extra))
    return inputs


async def build_stylesheet(
    config: ProjectConfig,
    binary: Path,
    outdir: Path,
    *,
    minify: bool,
    timeout: float = 120,
) -> StylesheetOutput:
    """
    Compile the assembled stylesheet into ``outdir``.

    Raises:
        StylesheetError: If the Tailwind CLI fails.
    """
    output_path = outdir / config.stylesheet.output
    output_path.parent.mkdir(parents=True, exist_ok=True)
    source = assemble_stylesheet(config)

    with tempfile.TemporaryDirectory() as tmp:
        input_css = Path(tmp) / "input.css"
        input_css.write_text(source, encoding="utf-8")

        cmd = [str(binary), "--input", str(input_css), "--output", str(output_path)]
        if minify:
            cmd.append("--minify")

        result = await run_process(cmd, cwd=config.project_root, timeout=timeout)

    if not result.ok:
        raise StylesheetError(
            f"Tailwind CSS exited with status {result.returncode}", output=result.stderr
        )

    size_kb = output_path.stat().st_size / 1024
    logger.info("Stylesheet built: %s (%.1f KB)", output_path.name, size_kb)
    return StylesheetOutput(path=output_path, inputs=stylesheet_inputs(config))
