"""Tests for the esbuild wrapper."""

from __future__ import annotations

import json
from pathlib import Path
from unittest.mock import AsyncMock, patch

import pytest

from assetforge.bundler import EsbuildBundler, build_args, parse_errors, read_metafile
from assetforge.components import StagedTree
from assetforge.config import ProjectConfig
from assetforge.errors import BundleError
from assetforge.process import ProcessResult
from assetforge.targets import TargetKind, make_target

ESBUILD_FAILURE = """\
✘ [ERROR] Could not resolve "./missing"

    js/app.js:1:7:
      1 │ import "./missing";
        ╵        ~~~~~~~~~~~

1 error
"""


@pytest.fixture
def config(tmp_path: Path) -> ProjectConfig:
    return ProjectConfig(project_root=tmp_path)


@pytest.fixture
def tree(tmp_path: Path) -> StagedTree:
    root = tmp_path / ".assetforge" / "client"
    root.mkdir(parents=True)
    return StagedTree(root=root, project_root=tmp_path)


class TestBuildArgs:
    def test_client_deploy(self, config: ProjectConfig, tree: StagedTree, tmp_path: Path) -> None:
        target = make_target(TargetKind.CLIENT, config, deploy=True, watch=False)
        args = build_args(target, tree, tmp_path / "out", tmp_path / "meta.json")

        assert args[0] == (tree.root / "js" / "app.js").as_posix()
        assert "--bundle" in args
        assert "--platform=browser" in args
        assert "--target=es2020" in args
        assert "--conditions=svelte,browser,style" in args
        assert '--define:process.env.NODE_ENV="production"' in args
        assert "--loader:.js=jsx" in args
        assert "--loader:.svelte=js" in args
        assert "--alias:svelte=svelte" in args
        assert "--minify" in args
        assert not any(a.startswith("--sourcemap") for a in args)

    def test_server_development(self, config: ProjectConfig, tree: StagedTree, tmp_path: Path) -> None:
        target = make_target(TargetKind.SERVER, config, deploy=False, watch=False)
        args = build_args(target, tree, tmp_path / "out", tmp_path / "meta.json")

        assert args[0].endswith("js/server.js")
        assert "--platform=node" in args
        assert "--conditions=svelte,development" in args
        assert "--minify" not in args

    def test_server_deploy_not_minified(self, config: ProjectConfig, tree: StagedTree, tmp_path: Path) -> None:
        target = make_target(TargetKind.SERVER, config, deploy=True, watch=False)
        assert "--minify" not in build_args(target, tree, tmp_path / "o", tmp_path / "m.json")

    def test_watch_adds_inline_sourcemap(self, config: ProjectConfig, tree: StagedTree, tmp_path: Path) -> None:
        target = make_target(TargetKind.CLIENT, config, deploy=False, watch=True)
        assert "--sourcemap=inline" in build_args(target, tree, tmp_path / "o", tmp_path / "m.json")

    def test_tsconfig_only_when_staged(self, config: ProjectConfig, tree: StagedTree, tmp_path: Path) -> None:
        target = make_target(TargetKind.CLIENT, config, deploy=False, watch=False)
        assert not any(a.startswith("--tsconfig") for a in build_args(target, tree, tmp_path, tmp_path / "m"))

        (tree.root / "tsconfig.json").write_text("{}")
        assert f"--tsconfig={tree.root / 'tsconfig.json'}" in build_args(target, tree, tmp_path, tmp_path / "m")


def test_parse_errors() -> None:
    assert parse_errors(ESBUILD_FAILURE) == ['Could not resolve "./missing"']
    assert parse_errors("") == []


def test_read_metafile(tree: StagedTree, tmp_path: Path) -> None:
    (tmp_path / "node_modules" / "svelte").mkdir(parents=True)
    metafile = tmp_path / "meta.json"
    metafile.write_text(
        json.dumps(
            {
                "inputs": {
                    "js/app.js": {},
                    "svelte/Button.svelte": {},
                    "../../node_modules/svelte/index.js": {},
                    "svelte-internal:virtual": {},
                },
                "outputs": {"../../out/app.js": {}},
            }
        )
    )

    inputs = read_metafile(metafile, tree)

    assert inputs == {
        tmp_path / "js" / "app.js",
        tmp_path / "svelte" / "Button.svelte",
        tmp_path / "node_modules" / "svelte" / "index.js",
    }


class TestEsbuildBundler:
    @pytest.mark.asyncio
    async def test_success(self, config: ProjectConfig, tree: StagedTree, tmp_path: Path) -> None:
        target = make_target(TargetKind.CLIENT, config, deploy=False, watch=False)
        outdir = tmp_path / "scratch" / "out"

        async def fake_run(cmd, **kwargs):
            metafile = next(a.split("=", 1)[1] for a in cmd if a.startswith("--metafile="))
            Path(metafile).write_text(json.dumps({"inputs": {"js/app.js": {}}, "outputs": {}}))
            (outdir / "app.js").write_text("bundle")
            assert kwargs["cwd"] == tree.root
            return ProcessResult(0, "", "")

        bundler = EsbuildBundler(Path("/bin/esbuild"))
        with patch("assetforge.bundler.run_process", side_effect=fake_run):
            result = await bundler.bundle(target, tree, outdir)

        assert result.inputs == {tmp_path / "js" / "app.js"}
        assert (outdir / "app.js").exists()
        # the metafile is kept outside the published directory
        assert [p.name for p in outdir.iterdir()] == ["app.js"]

    @pytest.mark.asyncio
    async def test_failure(self, config: ProjectConfig, tree: StagedTree, tmp_path: Path) -> None:
        target = make_target(TargetKind.CLIENT, config, deploy=False, watch=False)
        run = AsyncMock(return_value=ProcessResult(1, "", ESBUILD_FAILURE))

        with patch("assetforge.bundler.run_process", run):
            with pytest.raises(BundleError, match="Could not resolve") as exc_info:
                await EsbuildBundler(Path("/bin/esbuild")).bundle(target, tree, tmp_path / "o" / "out")

        assert exc_info.value.output == ESBUILD_FAILURE
