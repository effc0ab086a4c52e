"""Tests for the build driver."""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path
from unittest.mock import patch

import pytest

from assetforge.config import ProjectConfig, WatchConfig
from assetforge.driver import build_once, run_build
from assetforge.errors import BundleError, IconDirectoryError
from assetforge.pipeline import BuildResult
from assetforge.targets import BuildTarget, TargetKind, make_targets


class FakePipeline:
    def __init__(self, fail: set[TargetKind] | None = None, preflight_error: Exception | None = None):
        self.fail = fail or set()
        self.preflight_error = preflight_error
        self.built: list[BuildTarget] = []

    def preflight(self, targets) -> None:
        if self.preflight_error:
            raise self.preflight_error

    async def build(self, target: BuildTarget) -> BuildResult:
        await asyncio.sleep(0)
        if target.kind in self.fail:
            raise BundleError('Could not resolve "./missing"', output="✘ [ERROR] ...")
        self.built.append(target)
        return BuildResult(target=target.kind)

    def watch_paths(self, target, last, failed):
        return set()


@pytest.fixture
def config(tmp_path: Path) -> ProjectConfig:
    return ProjectConfig(project_root=tmp_path, watch=WatchConfig(poll_interval=0.01, debounce=0))


class TestBuildOnce:
    @pytest.mark.asyncio
    async def test_all_succeed(self, config: ProjectConfig) -> None:
        pipeline = FakePipeline()
        targets = make_targets(config, deploy=False, watch=False)
        assert await build_once(pipeline, targets) is True  # type: ignore[arg-type]
        assert {t.kind for t in pipeline.built} == {TargetKind.CLIENT, TargetKind.SERVER}

    @pytest.mark.asyncio
    async def test_one_failure_does_not_stop_other(
        self, config: ProjectConfig, caplog: pytest.LogCaptureFixture
    ) -> None:
        pipeline = FakePipeline(fail={TargetKind.CLIENT})
        targets = make_targets(config, deploy=False, watch=False)

        with caplog.at_level(logging.ERROR, logger="assetforge.driver"):
            ok = await build_once(pipeline, targets)  # type: ignore[arg-type]

        assert ok is False
        assert [t.kind for t in pipeline.built] == [TargetKind.SERVER]
        assert "[client] build failed" in caplog.text


class TestRunBuild:
    @pytest.mark.asyncio
    async def test_success_exit_code(self, config: ProjectConfig) -> None:
        assert await run_build(config, pipeline=FakePipeline()) == 0  # type: ignore[arg-type]

    @pytest.mark.asyncio
    async def test_failure_exit_code(self, config: ProjectConfig) -> None:
        pipeline = FakePipeline(fail={TargetKind.SERVER})
        assert await run_build(config, pipeline=pipeline) == 1  # type: ignore[arg-type]

    @pytest.mark.asyncio
    async def test_setup_error_exit_code(self, config: ProjectConfig) -> None:
        pipeline = FakePipeline(preflight_error=IconDirectoryError("Icon directory not found"))
        assert await run_build(config, pipeline=pipeline) == 1  # type: ignore[arg-type]
        assert pipeline.built == []

    @pytest.mark.asyncio
    async def test_setup_error_in_watch_mode(self, config: ProjectConfig) -> None:
        pipeline = FakePipeline(preflight_error=IconDirectoryError("Icon directory not found"))
        assert await run_build(config, watch=True, pipeline=pipeline) == 1  # type: ignore[arg-type]

    @pytest.mark.asyncio
    async def test_tool_resolution_failure(self, config: ProjectConfig) -> None:
        with patch("assetforge.pipeline.get_node_binary", return_value=None):
            assert await run_build(config) == 1

    @pytest.mark.asyncio
    async def test_watch_mode_survives_build_errors(self, config: ProjectConfig) -> None:
        pipeline = FakePipeline(fail={TargetKind.CLIENT, TargetKind.SERVER})
        task = asyncio.create_task(run_build(config, watch=True, pipeline=pipeline))  # type: ignore[arg-type]
        await asyncio.sleep(0.05)

        assert not task.done()
        task.cancel()
        await asyncio.wait([task])
