"""
Per-target build pipeline.

One pass for a target runs strictly in order:

1. stage components (compile ``.svelte`` for the target's generation mode)
2. client only: scan icons, compile utility rules, build the stylesheet
3. bundle with esbuild
4. publish the scratch output into the target's ``outdir``

Steps 1-3 write only to scratch space, so a failed or cancelled pass leaves the
previously published artifacts untouched.
"""

from __future__ import annotations

import logging
import shutil
import tempfile
import time
from dataclasses import dataclass, field
from pathlib import Path

from assetforge.bundler import EsbuildBundler
from assetforge.components import ComponentStager, SvelteCompiler
from assetforge.config import ProjectConfig
from assetforge.errors import ToolNotFoundError
from assetforge.icons import scan_icons
from assetforge.stylesheet import build_stylesheet, stylesheet_inputs
from assetforge.targets import BuildTarget, TargetKind
from assetforge.tools import get_esbuild_binary, get_node_binary, get_tailwind_binary

logger = logging.getLogger(__name__)


@dataclass
class BuildResult:
    """Outcome of one successful pass for a target."""

    target: TargetKind
    outputs: list[Path] = field(default_factory=list)
    inputs: set[Path] = field(default_factory=set)
    elapsed: float = 0.0
    # a glob import can pick up files that do not exist yet
    expanded_globs: bool = False


def publish(scratch: Path, outdir: Path) -> list[Path]:
    """Move every file under ``scratch`` into ``outdir``, keeping relative paths."""
    published: list[Path] = []
    for source in sorted(p for p in scratch.rglob("*") if p.is_file()):
        dest = outdir / source.relative_to(scratch)
        dest.parent.mkdir(parents=True, exist_ok=True)
        shutil.move(str(source), str(dest))
        published.append(dest)
    return published


class Pipeline:
    """Builds targets for one project; shared by both targets."""

    def __init__(
        self,
        config: ProjectConfig,
        stager: ComponentStager,
        bundler: EsbuildBundler,
        tailwind: Path | None,
    ):
        self.config = config
        self.stager = stager
        self.bundler = bundler
        self.tailwind = tailwind

    @classmethod
    def from_config(cls, config: ProjectConfig) -> Pipeline:
        """
        Resolve the external tools and assemble a pipeline.

        Raises:
            ToolNotFoundError: If node, esbuild or tailwindcss is unavailable.
        """
        node = get_node_binary()
        if node is None:
            raise ToolNotFoundError("Node.js not found on PATH; it is required to compile components")

        esbuild = get_esbuild_binary(config.tools.esbuild_version, config.project_root)
        if esbuild is None:
            raise ToolNotFoundError("esbuild not available. Install it with: npm install esbuild")

        tailwind = get_tailwind_binary(config.tools.tailwind_version, config.project_root)
        if tailwind is None:
            raise ToolNotFoundError(
                "Tailwind CSS CLI not available. Install it with: npm install @tailwindcss/cli"
            )

        stager = ComponentStager(config, SvelteCompiler(node, config.project_root))
        return cls(config, stager, EsbuildBundler(esbuild), tailwind)

    def preflight(self, targets: tuple[BuildTarget, ...]) -> None:
        """
        Check everything a build needs before any target starts.

        Raises:
            SetupError: Missing entry point, incomplete icon directory,
                icon name collision (when fatal) or missing Tailwind CLI.
        """
        for target in targets:
            self.stager.validate(target)

        if any(t.emit_stylesheet for t in targets):
            if self.tailwind is None:
                raise ToolNotFoundError("Tailwind CSS CLI not available")
            icons = scan_icons(self.config.icons_root, on_collision=self.config.icons.on_collision)
            logger.info("Found %d icons in %s", len(icons), self.config.icons_root)

        self.config.staging_root.mkdir(parents=True, exist_ok=True)

    async def build(self, target: BuildTarget) -> BuildResult:
        """
        Run one full pass for ``target``.

        Raises:
            CompileError: If staging, the stylesheet or bundling fails.
            IconDirectoryError: If the icon directory became unreadable.
        """
        started = time.monotonic()
        logger.info("[%s] building", target.name)

        tree = await self.stager.stage(target)

        self.config.staging_root.mkdir(parents=True, exist_ok=True)
        scratch = Path(
            tempfile.mkdtemp(prefix=f"{target.name}-", dir=self.config.staging_root)
        )
        try:
            outdir = scratch / "out"
            outdir.mkdir()
            inputs: set[Path] = set()

            if target.emit_stylesheet:
                if self.tailwind is None:
                    raise ToolNotFoundError("Tailwind CSS CLI not available")
                css = await build_stylesheet(
                    self.config, self.tailwind, outdir, minify=target.minify
                )
                inputs |= css.inputs

            bundle = await self.bundler.bundle(target, tree, outdir)
            inputs |= bundle.inputs

            outputs = publish(outdir, target.outdir)
        finally:
            shutil.rmtree(scratch, ignore_errors=True)

        elapsed = time.monotonic() - started
        logger.info(
            "[%s] wrote %d file(s) to %s in %.2fs", target.name, len(outputs), target.outdir, elapsed
        )
        return BuildResult(
            target=target.kind,
            outputs=outputs,
            inputs=inputs,
            elapsed=elapsed,
            expanded_globs=bool(tree.glob_modules),
        )

    def watch_paths(
        self, target: BuildTarget, last: BuildResult | None, failed: bool
    ) -> set[Path]:
        """
        Files whose change should rebuild ``target``.

        After a successful pass only its recorded inputs are tracked. Before
        the first success, after a failure, or when the pass expanded a glob
        import, every file under the component roots is tracked as well, so
        that creating a missing or newly matching module triggers a rebuild.
        """
        paths: set[Path] = set(last.inputs) if last else set()
        if last is None or failed or last.expanded_globs:
            paths.update(self.stager.source_files())
            paths.update(self.config.resolve(entry) for entry in target.entry_points)
        if target.emit_stylesheet:
            paths.update(stylesheet_inputs(self.config))
        return paths
