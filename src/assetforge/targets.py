"""
Build target definitions.

The client and server bundles are compiled from the same sources. Both are
produced by :func:`make_target` from one template so shared settings cannot
drift apart; only the fields below differ per kind:

============  ==================  ==================
field         client              server
============  ==================  ==================
platform      browser             node
outdir        [client] outdir     [server] outdir
minify        deploy              never
conditions    svelte, browser,    svelte
              (development), style  (development)
generate      client              server
stylesheet    yes                 no
============  ==================  ==================
"""

from __future__ import annotations

from enum import StrEnum
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field

from assetforge.config import ProjectConfig

DEVELOPMENT_CONDITION = "development"


class TargetKind(StrEnum):
    CLIENT = "client"
    SERVER = "server"


class Platform(StrEnum):
    BROWSER = "browser"
    NODE = "node"


class GenerateMode(StrEnum):
    """Component compiler output mode."""

    CLIENT = "client"
    SERVER = "server"


class BuildTarget(BaseModel):
    """
    Immutable configuration of one compilation target.

    Paths are absolute; entry points are relative to the project root so they
    can be mapped into the staging tree.
    """

    kind: TargetKind
    entry_points: tuple[str, ...]
    outdir: Path
    platform: Platform
    minify: bool
    sourcemap: str | None = None  # "inline" in watch mode
    conditions: tuple[str, ...]
    generate: GenerateMode
    dev: bool
    emit_stylesheet: bool = False

    # Shared across targets
    tsconfig: str
    es_target: str
    define: dict[str, str] = Field(default_factory=dict)
    loaders: dict[str, str] = Field(default_factory=dict)
    aliases: dict[str, str] = Field(default_factory=dict)

    model_config = ConfigDict(frozen=True)

    @property
    def name(self) -> str:
        return self.kind.value


def module_conditions(kind: TargetKind, deploy: bool) -> tuple[str, ...]:
    """
    Resolution conditions for a target.

    The client adds ``browser`` and the style condition; development builds
    of both targets add ``development``.
    """
    conditions = ["svelte"]
    if kind is TargetKind.CLIENT:
        conditions.append("browser")
    if not deploy:
        conditions.append(DEVELOPMENT_CONDITION)
    if kind is TargetKind.CLIENT:
        conditions.append("style")
    return tuple(conditions)


def make_target(kind: TargetKind, config: ProjectConfig, *, deploy: bool, watch: bool) -> BuildTarget:
    """Build the configuration of one target from the shared template."""
    target_config = config.client if kind is TargetKind.CLIENT else config.server
    is_client = kind is TargetKind.CLIENT

    return BuildTarget(
        kind=kind,
        entry_points=tuple(target_config.entry_points),
        outdir=config.resolve(target_config.outdir),
        platform=Platform.BROWSER if is_client else Platform.NODE,
        minify=deploy and is_client,
        sourcemap="inline" if watch else None,
        conditions=module_conditions(kind, deploy),
        generate=GenerateMode.CLIENT if is_client else GenerateMode.SERVER,
        dev=not deploy,
        emit_stylesheet=is_client,
        tsconfig=config.build.tsconfig,
        es_target=config.build.target,
        define={"process.env.NODE_ENV": '"production"' if deploy else '"development"'},
        loaders={".js": "jsx", ".svelte": "js"},
        aliases=dict(config.build.aliases),
    )


def make_targets(
    config: ProjectConfig, *, deploy: bool, watch: bool
) -> tuple[BuildTarget, BuildTarget]:
    """Return the (client, server) pair for one build or watch session."""
    return (
        make_target(TargetKind.CLIENT, config, deploy=deploy, watch=watch),
        make_target(TargetKind.SERVER, config, deploy=deploy, watch=watch),
    )
