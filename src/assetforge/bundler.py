"""
esbuild invocation for one target.

The bundler runs from the target's staging tree and writes into a scratch
output directory together with a metafile. Input paths from the metafile are
mapped back to source paths so watch mode knows what each target depends on.
"""

from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass, field
from pathlib import Path

from assetforge.components import StagedTree
from assetforge.errors import BundleError
from assetforge.process import run_process
from assetforge.targets import BuildTarget

logger = logging.getLogger(__name__)

METAFILE_NAME = "meta.json"

_ERROR_LINE = re.compile(r"^\s*(?:✘\s*)?\[ERROR\]\s*(.+)$")


@dataclass
class BundleOutput:
    """Files produced by one esbuild run."""

    outdir: Path
    inputs: set[Path] = field(default_factory=set)


def build_args(
    target: BuildTarget, tree: StagedTree, outdir: Path, metafile: Path
) -> list[str]:
    """Translate a BuildTarget into esbuild command-line arguments."""
    args = [tree.staged_path(entry).as_posix() for entry in target.entry_points]
    args += [
        "--bundle",
        f"--outdir={outdir}",
        f"--platform={target.platform.value}",
        f"--target={target.es_target}",
        f"--conditions={','.join(target.conditions)}",
        f"--metafile={metafile}",
        "--log-level=warning",
        "--color=false",
    ]

    tsconfig = tree.staged_path(target.tsconfig)
    if tsconfig.is_file():
        args.append(f"--tsconfig={tsconfig}")

    for name, value in target.define.items():
        args.append(f"--define:{name}={value}")
    for ext, loader in target.loaders.items():
        args.append(f"--loader:{ext}={loader}")
    for name, value in target.aliases.items():
        args.append(f"--alias:{name}={value}")

    if target.minify:
        args.append("--minify")
    if target.sourcemap:
        args.append(f"--sourcemap={target.sourcemap}")

    return args


def parse_errors(stderr: str) -> list[str]:
    """Extract the ``[ERROR]`` headlines from esbuild's log output."""
    errors = []
    for line in stderr.splitlines():
        match = _ERROR_LINE.match(line)
        if match:
            errors.append(match.group(1).strip())
    return errors


def read_metafile(metafile: Path, tree: StagedTree) -> set[Path]:
    """Return the source inputs recorded in an esbuild metafile."""
    data = json.loads(metafile.read_text(encoding="utf-8"))
    cwd = tree.root
    return {
        tree.source_for((cwd / name).resolve())
        for name in data.get("inputs", {})
        if ":" not in name  # skip namespaced virtual modules
    }


class EsbuildBundler:
    """Runs the esbuild CLI for a target."""

    def __init__(self, binary: Path, timeout: float = 300):
        self.binary = binary
        self.timeout = timeout

    async def bundle(self, target: BuildTarget, tree: StagedTree, outdir: Path) -> BundleOutput:
        """
        Bundle the staged entry points into ``outdir``.

        Raises:
            BundleError: If esbuild reports errors.
        """
        outdir.mkdir(parents=True, exist_ok=True)
        metafile = outdir.parent / f"{target.name}-{METAFILE_NAME}"
        cmd = [str(self.binary), *build_args(target, tree, outdir, metafile)]

        result = await run_process(cmd, cwd=tree.root, timeout=self.timeout)
        if not result.ok:
            errors = parse_errors(result.stderr)
            summary = errors[0] if errors else f"esbuild exited with status {result.returncode}"
            if len(errors) > 1:
                summary += f" (and {len(errors) - 1} more)"
            raise BundleError(summary, output=result.stderr)

        if result.stderr.strip():
            logger.warning("[%s] esbuild:\n%s", target.name, result.stderr.rstrip())

        return BundleOutput(outdir=outdir, inputs=read_metafile(metafile, tree))
