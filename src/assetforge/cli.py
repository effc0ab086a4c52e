"""
assetforge command line.

    assetforge build [--watch] [--deploy]
    assetforge icons
    assetforge stylesheet [--out FILE]
"""

from __future__ import annotations

import asyncio
import logging
import os
import platform
from pathlib import Path

import typer
from rich.console import Console
from rich.table import Table

from assetforge import __version__
from assetforge.config import ProjectConfig, load_config
from assetforge.errors import ConfigError, SetupError

console = Console()

app = typer.Typer(
    help="Build the client and server-rendering bundles for Svelte components.",
    no_args_is_help=True,
)


def configure_logging(verbose: bool = False) -> None:
    """Configure root logging from LOG_LEVEL (or DEBUG with --verbose)."""
    level_name = "DEBUG" if verbose else os.getenv("LOG_LEVEL", "INFO").upper()
    logging.basicConfig(
        level=getattr(logging, level_name, logging.INFO),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )


def version_callback(value: bool) -> None:
    if value:
        typer.echo(f"assetforge {__version__}")
        typer.echo(f"Python {platform.python_version()} ({platform.python_implementation()})")
        raise typer.Exit()


@app.callback()
def main_callback(
    version: bool | None = typer.Option(
        None,
        "--version",
        "-V",
        callback=version_callback,
        is_eager=True,
        help="Show version information",
    ),
) -> None:
    """assetforge CLI main callback for global options."""
    pass


def _load(config_path: Path | None, project_root: Path | None) -> ProjectConfig:
    try:
        return load_config(config_path, project_root)
    except ConfigError as e:
        typer.echo(f"Configuration error: {e}", err=True)
        raise typer.Exit(code=1)


@app.command()
def build(
    watch: bool = typer.Option(False, "--watch", help="Rebuild targets when their sources change"),
    deploy: bool = typer.Option(
        False, "--deploy", help="Production build: minify the client, drop development conditions"
    ),
    config_path: Path = typer.Option(  # noqa: B008
        None, "--config", "-c", help="Path to assetforge.toml"
    ),
    project_root: Path = typer.Option(  # noqa: B008
        None, "--project-root", help="Directory relative paths are resolved against"
    ),
    verbose: bool = typer.Option(False, "--verbose", help="Debug logging"),
) -> None:
    """
    Build the client and server bundles.

    Examples:
        assetforge build                  # one-shot development build
        assetforge build --deploy         # production build
        assetforge build --watch          # rebuild on change
    """
    from assetforge.driver import run_build

    configure_logging(verbose)
    config = _load(config_path, project_root)

    try:
        code = asyncio.run(run_build(config, deploy=deploy, watch=watch))
    except KeyboardInterrupt:
        typer.echo("\nWatch session stopped.")
        code = 0

    if code:
        raise typer.Exit(code=code)


@app.command()
def icons(
    config_path: Path = typer.Option(None, "--config", "-c"),  # noqa: B008
    project_root: Path = typer.Option(None, "--project-root"),  # noqa: B008
) -> None:
    """List the icon utilities generated from the icon directory."""
    from assetforge.icons import scan_icons
    from assetforge.theme import spacing_for_pixels

    config = _load(config_path, project_root)
    try:
        index = scan_icons(config.icons_root, on_collision=config.icons.on_collision)
    except SetupError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(code=1)

    table = Table(title=f"Icons in {config.icons_root}")
    table.add_column("Class", style="cyan")
    table.add_column("Variant")
    table.add_column("Size", justify="right")
    for name in sorted(index):
        icon = index[name]
        table.add_row(f"hero-{name}", icon.variant.value, spacing_for_pixels(icon.pixel_size))
    console.print(table)
    console.print(f"[bold]{len(index)}[/bold] icon utilities")


@app.command()
def stylesheet(
    out: Path = typer.Option(None, "--out", "-o", help="Write to a file instead of stdout"),  # noqa: B008
    config_path: Path = typer.Option(None, "--config", "-c"),  # noqa: B008
    project_root: Path = typer.Option(None, "--project-root"),  # noqa: B008
) -> None:
    """Print the generated Tailwind input stylesheet."""
    from assetforge.stylesheet import assemble_stylesheet

    config = _load(config_path, project_root)
    try:
        source = assemble_stylesheet(config)
    except SetupError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(code=1)

    if out is None:
        typer.echo(source, nl=False)
    else:
        out.parent.mkdir(parents=True, exist_ok=True)
        out.write_text(source, encoding="utf-8")
        typer.echo(f"✓ Wrote {out}")


def main() -> None:
    app()


if __name__ == "__main__":
    main()
