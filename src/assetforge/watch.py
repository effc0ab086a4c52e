"""
Watch mode: one long-lived task per target.

Each TargetWatcher polls the files its target depends on and rebuilds only
that target when one of them changes. A change that arrives while a rebuild
is still running cancels it (killing its subprocesses) before the new
rebuild starts, so a stale pass can never publish over a fresher one.
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Iterable
from pathlib import Path

from assetforge.config import WatchConfig
from assetforge.errors import AssetForgeError, CompileError
from assetforge.pipeline import BuildResult, Pipeline
from assetforge.targets import BuildTarget

logger = logging.getLogger(__name__)

Snapshot = dict[Path, tuple[int, int]]


def take_snapshot(paths: Iterable[Path]) -> Snapshot:
    """Record (mtime_ns, size) for each existing path."""
    snapshot: Snapshot = {}
    for path in paths:
        try:
            st = path.stat()
        except OSError:
            continue
        snapshot[path] = (st.st_mtime_ns, st.st_size)
    return snapshot


def diff_snapshots(previous: Snapshot, current: Snapshot, since_ns: int) -> set[Path]:
    """
    Paths that changed between two snapshots.

    A path tracked in both is changed if its stat differs; a path that was
    deleted is changed; a newly tracked path only counts if it was modified
    after ``since_ns`` (otherwise it merely joined the tracked set after a
    build). Paths that just left the tracked set are ignored.
    """
    changed = {p for p, stat in current.items() if p in previous and previous[p] != stat}
    changed.update(p for p in previous if p not in current and not p.exists())
    changed.update(
        p for p, (mtime_ns, _size) in current.items() if p not in previous and mtime_ns > since_ns
    )
    return changed


class TargetWatcher:
    """Keeps one target rebuilt while its sources change."""

    def __init__(self, target: BuildTarget, pipeline: Pipeline, settings: WatchConfig):
        self.target = target
        self.pipeline = pipeline
        self.poll_interval = settings.poll_interval
        self.debounce = settings.debounce

        self.last_result: BuildResult | None = None
        self.failed = False
        self.builds_started = 0
        self.builds_succeeded = 0

        self._task: asyncio.Task[None] | None = None
        self._snapshot: Snapshot = {}
        self._scanned_at_ns = 0

    def tracked_paths(self) -> set[Path]:
        return self.pipeline.watch_paths(self.target, self.last_result, self.failed)

    async def _scan(self) -> Snapshot:
        self._scanned_at_ns = time.time_ns()
        return await asyncio.to_thread(lambda: take_snapshot(self.tracked_paths()))

    async def _build(self) -> None:
        self.builds_started += 1
        try:
            result = await self.pipeline.build(self.target)
        except asyncio.CancelledError:
            logger.info("[%s] build superseded by a newer change", self.target.name)
            raise
        except AssetForgeError as e:
            self.failed = True
            logger.error("[%s] build failed: %s", self.target.name, e)
            if isinstance(e, CompileError) and e.output:
                logger.error("%s", e.output.rstrip())
        except Exception:
            self.failed = True
            logger.exception("[%s] unexpected error during build", self.target.name)
        else:
            self.failed = False
            self.last_result = result
            self.builds_succeeded += 1

    async def rebuild(self) -> asyncio.Task[None]:
        """Cancel any in-flight build of this target and start a new one."""
        previous = self._task
        if previous is not None and not previous.done():
            previous.cancel()
            await asyncio.wait([previous])
        self._task = asyncio.create_task(self._build())
        return self._task

    async def poll_once(self) -> set[Path]:
        """Check for changes once; start a rebuild if anything changed."""
        since = self._scanned_at_ns
        current = await self._scan()
        changed = diff_snapshots(self._snapshot, current, since)
        if changed:
            if self.debounce:
                await asyncio.sleep(self.debounce)
                current = await self._scan()
            names = ", ".join(sorted(p.name for p in changed)[:3])
            logger.info("[%s] change detected: %s", self.target.name, names)
            await self.rebuild()
        self._snapshot = current
        return changed

    async def run(self) -> None:
        """Initial build, then poll until cancelled."""
        self._snapshot = await self._scan()
        task = await self.rebuild()
        await asyncio.wait([task])
        try:
            while True:
                await asyncio.sleep(self.poll_interval)
                await self.poll_once()
        finally:
            await self.close()

    async def close(self) -> None:
        if self._task is not None and not self._task.done():
            self._task.cancel()
            await asyncio.wait([self._task])


class WatchSession:
    """Owns the watchers of both targets for the lifetime of the process."""

    def __init__(
        self, targets: tuple[BuildTarget, ...], pipeline: Pipeline, settings: WatchConfig
    ):
        self.watchers = [TargetWatcher(t, pipeline, settings) for t in targets]
        self._tasks: list[asyncio.Task[None]] = []

    async def run(self) -> None:
        """Run every watcher until the session is cancelled."""
        logger.info(
            "Watching %s for changes (Ctrl-C to stop)",
            ", ".join(w.target.name for w in self.watchers),
        )
        self._tasks = [asyncio.create_task(w.run()) for w in self.watchers]
        try:
            await asyncio.gather(*self._tasks)
        finally:
            await self.close()

    async def close(self) -> None:
        for task in self._tasks:
            task.cancel()
        if self._tasks:
            await asyncio.wait(self._tasks)
        self._tasks = []
