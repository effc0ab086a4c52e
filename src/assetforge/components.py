"""
Component compilation and staging.

esbuild cannot compile ``.svelte`` files by itself, so each target gets a
staging tree: a mirror of the component roots (and of any ``node_modules``
packages that publish raw ``.svelte`` sources) in which every component has
been replaced by the compiler's JavaScript output for that target's
generation mode. Relative glob imports in project scripts are expanded into
generated modules along the way. The bundler then runs against the staging
tree.

Staged paths mirror source paths: ``<staging>/<kind>/svelte/Button.svelte``
is the compiled form of ``<project>/svelte/Button.svelte``.
"""

from __future__ import annotations

import glob
import hashlib
import json
import logging
import os
import re
import shutil
from collections.abc import Iterable
from dataclasses import dataclass, field
from pathlib import Path

from assetforge.config import ProjectConfig
from assetforge.errors import ComponentCompileError, ErrorContext, SetupError
from assetforge.process import run_process
from assetforge.targets import BuildTarget, GenerateMode

logger = logging.getLogger(__name__)

SVELTE_RUNTIME_PACKAGES = frozenset({"svelte"})

# Staged scripts whose relative glob imports are expanded
SCRIPT_SUFFIXES = frozenset({".js", ".mjs", ".cjs", ".jsx", ".ts", ".tsx"})

GLOB_MODULE_DIR = "__globs__"

_GLOB_IMPORT = re.compile(
    r"""(?P<head>\b(?:import|export)\s+(?:[\w$*{},\s]+?\s+from\s+)?)"""
    r"""(?P<quote>["'])(?P<pattern>\.{1,2}/[^"'\n]*\*[^"'\n]*)(?P=quote)"""
)

# Reads {"options": {...}, "files": [...]} on stdin, writes one result per file.
_DRIVER_SCRIPT = """\
const fs = require("fs");
const svelte = require("svelte/compiler");
let input = "";
process.stdin.setEncoding("utf8");
process.stdin.on("data", (chunk) => { input += chunk; });
process.stdin.on("end", () => {
  const request = JSON.parse(input);
  const position = (p) => (p ? [p.line, p.column + 1] : [null, null]);
  const results = request.files.map((filename) => {
    try {
      const source = fs.readFileSync(filename, "utf8");
      const isModule = filename.endsWith(".svelte.js");
      const result = isModule
        ? svelte.compileModule(source, { generate: request.options.generate, dev: request.options.dev, filename })
        : svelte.compile(source, { ...request.options, filename });
      return {
        filename,
        code: result.js.code,
        warnings: (result.warnings || []).map((w) => {
          const [line, column] = position(w.start);
          return { code: w.code, message: w.message, filename: w.filename || filename, line, column };
        }),
      };
    } catch (e) {
      const [line, column] = position(e.start);
      return { filename, error: { message: e.message, line, column, frame: e.frame || null } };
    }
  });
  process.stdout.write(JSON.stringify(results));
});
"""


@dataclass(frozen=True)
class CompilerWarning:
    """A non-fatal diagnostic reported by the component compiler."""

    code: str
    message: str
    filename: str | None = None
    line: int | None = None
    column: int | None = None

    def format(self) -> str:
        location = self.filename or "<unknown>"
        if self.line is not None:
            location += f":{self.line}:{self.column or 1}"
        return f"{location}: {self.message} ({self.code})"


@dataclass(frozen=True)
class CompiledComponent:
    source: Path
    code: str
    warnings: tuple[CompilerWarning, ...] = ()


class WarningFilter:
    """
    Drops compiler warnings whose filename contains an ignored substring.

    Warnings without a filename are always kept.
    """

    def __init__(self, ignored: Iterable[str]):
        self.ignored = tuple(ignored)

    def keep(self, warning: CompilerWarning) -> bool:
        if not warning.filename:
            return True
        return not any(fragment in warning.filename for fragment in self.ignored)

    def apply(self, warnings: Iterable[CompilerWarning]) -> list[CompilerWarning]:
        return [w for w in warnings if self.keep(w)]


def is_component(path: Path) -> bool:
    return path.suffix == ".svelte" or path.name.endswith(".svelte.js")


class SvelteCompiler:
    """Runs the Svelte compiler under Node.js, one process per batch of files."""

    def __init__(self, node: Path, project_root: Path, timeout: float = 120):
        self.node = node
        self.project_root = project_root
        self.timeout = timeout

    def _options(self, generate: GenerateMode, dev: bool) -> dict[str, object]:
        return {"generate": generate.value, "dev": dev, "css": "injected"}

    async def compile(
        self, files: list[Path], *, generate: GenerateMode, dev: bool
    ) -> list[CompiledComponent]:
        """
        Compile a batch of components.

        Raises:
            ComponentCompileError: If the compiler rejects any file or the
                Node process itself fails.
        """
        if not files:
            return []

        request = json.dumps(
            {"options": self._options(generate, dev), "files": [str(f) for f in files]}
        )
        result = await run_process(
            [str(self.node), "-e", _DRIVER_SCRIPT],
            cwd=self.project_root,
            input=request,
            timeout=self.timeout,
        )
        if not result.ok:
            raise ComponentCompileError(
                f"Component compiler exited with status {result.returncode}",
                output=result.stderr,
            )

        try:
            payload = json.loads(result.stdout)
        except json.JSONDecodeError as e:
            raise ComponentCompileError(
                f"Component compiler returned invalid output: {e}", output=result.stdout
            ) from e

        return [self._parse_result(item) for item in payload]

    def _parse_result(self, item: dict) -> CompiledComponent:
        source = Path(item["filename"])
        error = item.get("error")
        if error:
            context = None
            if error.get("line") is not None:
                context = ErrorContext(
                    file=source,
                    line=error["line"],
                    column=error.get("column") or 1,
                    snippet=error.get("frame"),
                )
            raise ComponentCompileError(error.get("message", "compile failed"), context)

        warnings = tuple(
            CompilerWarning(
                code=w.get("code", ""),
                message=w.get("message", ""),
                filename=w.get("filename"),
                line=w.get("line"),
                column=w.get("column"),
            )
            for w in item.get("warnings", [])
        )
        return CompiledComponent(source=source, code=item["code"], warnings=warnings)


@dataclass
class StagedTree:
    """Result of staging one target's sources."""

    root: Path
    project_root: Path
    sources: set[Path] = field(default_factory=set)
    # generated modules standing in for glob imports
    glob_modules: set[Path] = field(default_factory=set)

    def staged_path(self, relative: str | Path) -> Path:
        return self.root / relative

    def source_for(self, path: Path) -> Path:
        """Map a staged path back to the file it was produced from."""
        try:
            return self.project_root / path.relative_to(self.root)
        except ValueError:
            return path


def _has_condition(exports: object, condition: str) -> bool:
    if isinstance(exports, dict):
        return any(
            key == condition or _has_condition(value, condition) for key, value in exports.items()
        )
    if isinstance(exports, list):
        return any(_has_condition(item, condition) for item in exports)
    return False


def discover_svelte_packages(node_modules: Path) -> list[str]:
    """
    Names of installed packages that ship Svelte sources.

    A package qualifies when its ``package.json`` has a ``svelte`` field or a
    ``svelte`` export condition. The ``svelte`` runtime itself is plain
    JavaScript and is left to the bundler.
    """
    if not node_modules.is_dir():
        return []

    manifests = [*node_modules.glob("*/package.json"), *node_modules.glob("@*/*/package.json")]
    found: list[str] = []
    for manifest in sorted(manifests):
        name = manifest.parent.relative_to(node_modules).as_posix()
        if name in SVELTE_RUNTIME_PACKAGES:
            continue
        try:
            data = json.loads(manifest.read_text(encoding="utf-8"))
        except (OSError, ValueError) as e:
            logger.debug("Skipping unreadable %s: %s", manifest, e)
            continue
        if not isinstance(data, dict):
            continue
        if "svelte" in data or _has_condition(data.get("exports"), "svelte"):
            found.append(name)
    return found


def _relative_specifier(from_dir: Path, target: Path) -> str:
    spec = Path(os.path.relpath(target, from_dir)).as_posix()
    return spec if spec.startswith(".") else f"./{spec}"


def expand_glob_imports(code: str, source: Path, tree: StagedTree) -> tuple[str, dict[Path, str]]:
    """
    Replace relative glob import specifiers with generated modules.

    ``import * as Components from "../svelte/**/*.svelte"`` is rewritten to
    import a module in ``<staging>/<kind>/__globs__/`` whose default export is
    the array of matched modules and whose ``filenames`` export lists their
    paths relative to the importing file, in the same order.

    Returns:
        The rewritten code and a mapping of generated module path to its code.
    """
    modules: dict[Path, str] = {}
    staged_dir = tree.staged_path(source.relative_to(tree.project_root)).parent

    def replace(match: re.Match[str]) -> str:
        pattern = match["pattern"]
        matches = sorted(
            Path(os.path.normpath(p))
            for p in glob.glob(str(source.parent / pattern), recursive=True)
        )
        matches = [p for p in matches if p.is_file() and p != source]

        digest = hashlib.sha1(f"{source}\0{pattern}".encode()).hexdigest()[:12]
        module_path = tree.root / GLOB_MODULE_DIR / f"{digest}.js"

        lines = []
        for i, path in enumerate(matches):
            if path in tree.sources:
                path = tree.staged_path(path.relative_to(tree.project_root))
            spec = _relative_specifier(module_path.parent, path)
            lines.append(f'import * as module{i} from "{spec}";')
        filenames = [_relative_specifier(source.parent, p) for p in matches]
        lines.append(f"const modules = [{', '.join(f'module{i}' for i in range(len(matches)))}];")
        lines.append("export default modules;")
        lines.append(f"export const filenames = {json.dumps(filenames)};")
        modules[module_path] = "\n".join(lines) + "\n"

        quote = match["quote"]
        return f"{match['head']}{quote}{_relative_specifier(staged_dir, module_path)}{quote}"

    return _GLOB_IMPORT.sub(replace, code), modules


class ComponentStager:
    """
    Mirrors component sources into a per-target staging tree.

    Compiled output is cached per (source, generate, dev) together with the
    size and mtime the source had when it was sent to the compiler, so a
    rebuild in watch mode only recompiles components that changed.
    """

    def __init__(self, config: ProjectConfig, compiler: SvelteCompiler):
        self.config = config
        self.compiler = compiler
        self.warning_filter = WarningFilter(config.components.ignore_warnings)
        self._cache: dict[tuple[Path, str, bool], tuple[tuple[int, int], str]] = {}
        self._packages: list[str] | None = None

    def packages(self) -> list[str]:
        """``node_modules`` packages mirrored into the staging tree."""
        if self._packages is None:
            names = list(self.config.components.packages)
            if self.config.components.discover_packages:
                node_modules = self.config.project_root.resolve() / "node_modules"
                names += [n for n in discover_svelte_packages(node_modules) if n not in names]
            if names:
                logger.info("Staging Svelte packages: %s", ", ".join(names))
            self._packages = names
        return self._packages

    def mirror_roots(self) -> list[Path]:
        """Source directories that are mirrored into the staging tree."""
        roots = [self.config.resolve(r) for r in self.config.components.roots]
        # kept unresolved so pnpm symlinks stay under the project root
        node_modules = self.config.project_root.resolve() / "node_modules"
        roots.extend(Path(os.path.normpath(node_modules / pkg)) for pkg in self.packages())
        return roots

    def validate(self, target: BuildTarget) -> None:
        """
        Check that every entry point exists and lives under a component root.

        Raises:
            SetupError: On a missing entry point or one outside the roots.
        """
        project_root = self.config.project_root.resolve()
        roots = self.mirror_roots()
        for root in roots:
            if not root.is_relative_to(project_root):
                raise SetupError(f"Component root {root} is outside the project root")

        for entry in target.entry_points:
            entry_path = self.config.resolve(entry)
            if not entry_path.is_file():
                raise SetupError(f"Entry point not found for {target.name} target: {entry_path}")
            if not any(entry_path.is_relative_to(root) for root in roots):
                raise SetupError(
                    f"Entry point {entry} is not inside a component root "
                    f"({', '.join(self.config.components.roots)})"
                )

    def source_files(self) -> list[Path]:
        files: list[Path] = []
        for root in self.mirror_roots():
            if root.is_dir():
                files.extend(p for p in root.rglob("*") if p.is_file())
        tsconfig = self.config.resolve(self.config.build.tsconfig)
        if tsconfig.is_file():
            files.append(tsconfig)
        return sorted(files)

    async def _compile_pending(self, target: BuildTarget, components: list[Path]) -> None:
        mode = (target.generate.value, target.dev)
        # stat once, before compiling: a save during compilation must not be
        # cached under the newer mtime
        signatures = {path: _signature(path) for path in components}
        pending = [
            path
            for path, signature in signatures.items()
            if self._cache.get((path, *mode), (None, ""))[0] != signature
        ]

        live = set(components)
        for key in [k for k in self._cache if k[1:] == mode and k[0] not in live]:
            del self._cache[key]

        if not pending:
            return

        logger.info("[%s] compiling %d component(s)", target.name, len(pending))
        compiled = await self.compiler.compile(pending, generate=target.generate, dev=target.dev)
        for path, component in zip(pending, compiled):
            for warning in self.warning_filter.apply(component.warnings):
                logger.warning("[%s] %s", target.name, warning.format())
            self._cache[(path, *mode)] = (signatures[path], component.code)

    async def stage(self, target: BuildTarget) -> StagedTree:
        """
        Build the staging tree for ``target``.

        Raises:
            ComponentCompileError: If any component fails to compile.
        """
        project_root = self.config.project_root.resolve()
        tree = StagedTree(root=self.config.staging_root / target.name, project_root=project_root)
        sources = self.source_files()
        tree.sources = set(sources)

        components = [p for p in sources if is_component(p)]
        await self._compile_pending(target, components)
        mode = (target.generate.value, target.dev)

        expected: set[Path] = set()
        for source in sources:
            relative = source.relative_to(project_root)
            staged = tree.root / relative
            expected.add(staged)
            staged.parent.mkdir(parents=True, exist_ok=True)
            if is_component(source):
                _write_if_changed(staged, self._cache[(source, *mode)][1])
                continue

            expanded = None
            if source.suffix in SCRIPT_SUFFIXES and "node_modules" not in relative.parts:
                expanded = self._expand_globs(source, tree)
            if expanded is not None:
                _write_if_changed(staged, expanded)
            elif _needs_copy(source, staged):
                shutil.copy2(source, staged)

        expected |= tree.glob_modules
        _remove_stale(tree.root, expected)
        return tree

    def _expand_globs(self, source: Path, tree: StagedTree) -> str | None:
        try:
            code = source.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError):
            return None
        if not _GLOB_IMPORT.search(code):
            return None

        expanded, modules = expand_glob_imports(code, source, tree)
        for path, module in modules.items():
            path.parent.mkdir(parents=True, exist_ok=True)
            _write_if_changed(path, module)
            tree.glob_modules.add(path)
        return expanded


def _signature(path: Path) -> tuple[int, int]:
    st = path.stat()
    return (st.st_size, st.st_mtime_ns)


def _write_if_changed(path: Path, text: str) -> None:
    if not path.exists() or path.read_text(encoding="utf-8") != text:
        path.write_text(text, encoding="utf-8")


def _needs_copy(source: Path, staged: Path) -> bool:
    if not staged.exists():
        return True
    src, dst = source.stat(), staged.stat()
    return src.st_size != dst.st_size or src.st_mtime_ns != dst.st_mtime_ns


def _remove_stale(root: Path, expected: set[Path]) -> None:
    """Delete staged files whose source no longer exists."""
    if not root.is_dir():
        return
    for path in root.rglob("*"):
        if path.is_file() and path not in expected:
            path.unlink()
