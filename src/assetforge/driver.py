"""
Build driver: turns the ``--deploy``/``--watch`` switches into a one-shot
build or a watch session.

Exit codes:
    0  both targets built (one-shot), or watch session stopped by the user
    1  setup failure (any mode) or a target failed to build (one-shot)
"""

from __future__ import annotations

import asyncio
import logging

from assetforge.config import ProjectConfig
from assetforge.errors import AssetForgeError, CompileError, SetupError
from assetforge.pipeline import Pipeline
from assetforge.targets import BuildTarget, make_targets
from assetforge.watch import WatchSession

logger = logging.getLogger(__name__)


def _report_failure(target: BuildTarget, error: BaseException) -> None:
    if isinstance(error, AssetForgeError):
        logger.error("[%s] build failed: %s", target.name, error)
        if isinstance(error, CompileError) and error.output:
            logger.error("%s", error.output.rstrip())
    else:
        logger.error("[%s] unexpected error", target.name, exc_info=error)


async def build_once(pipeline: Pipeline, targets: tuple[BuildTarget, ...]) -> bool:
    """
    Build every target concurrently.

    A failure in one target does not stop the others.

    Returns:
        True if every target built.
    """
    results = await asyncio.gather(
        *(pipeline.build(target) for target in targets), return_exceptions=True
    )
    ok = True
    for target, result in zip(targets, results):
        if isinstance(result, BaseException):
            ok = False
            _report_failure(target, result)
    return ok


async def run_build(
    config: ProjectConfig,
    *,
    deploy: bool = False,
    watch: bool = False,
    pipeline: Pipeline | None = None,
) -> int:
    """
    Build both targets once, or watch them until cancelled.

    Args:
        config: Project configuration.
        deploy: Production mode (minified client, no development conditions).
        watch: Keep rebuilding targets as their sources change.
        pipeline: Pre-built pipeline; resolved from ``config`` when omitted.

    Returns:
        Process exit code.
    """
    targets = make_targets(config, deploy=deploy, watch=watch)
    mode = "production" if deploy else "development"

    try:
        if pipeline is None:
            pipeline = Pipeline.from_config(config)
        pipeline.preflight(targets)
    except SetupError as e:
        logger.error("Setup failed: %s", e)
        return 1

    if watch:
        logger.info("Starting watch session (%s)", mode)
        session = WatchSession(targets, pipeline, config.watch)
        await session.run()
        return 0

    logger.info("Building %s (%s)", ", ".join(t.name for t in targets), mode)
    return 0 if await build_once(pipeline, targets) else 1
