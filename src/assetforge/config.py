"""
Project configuration loaded from ``assetforge.toml``.

Every key is optional; the defaults describe the conventional layout of an
``assets/`` directory sitting next to a Phoenix application::

    assets/
      assetforge.toml
      js/app.js          client entry
      js/server.js       server-rendering entry
      svelte/            components
      node_modules/
    deps/heroicons/optimized/
    priv/static/assets/  client output
    priv/svelte/         server output
"""

from __future__ import annotations

import tomllib
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from assetforge.errors import ConfigError

CONFIG_FILENAME = "assetforge.toml"

DEFAULT_IGNORED_WARNINGS = [
    "bits-ui/dist/internal/floating-svelte",
    "runed/dist/utilities/is-idle",
]

DEFAULT_CONTENT = [
    "js/**/*.js",
    "../lib/*_web.ex",
    "../lib/*_web/**/*.*ex",
    "svelte/**/*.svelte",
]

COLLISION_POLICIES = ("overwrite", "error")


@dataclass
class BuildConfig:
    """Settings shared by both targets."""

    staging_dir: str = ".assetforge"
    tsconfig: str = "tsconfig.json"
    target: str = "es2020"
    aliases: dict[str, str] = field(default_factory=lambda: {"svelte": "svelte"})


@dataclass
class TargetConfig:
    """Entry points and output directory of one target."""

    entry_points: list[str]
    outdir: str


@dataclass
class ComponentsConfig:
    """Where component sources live and which compiler warnings to drop."""

    roots: list[str] = field(default_factory=lambda: ["js", "svelte"])
    # extra node_modules packages that publish uncompiled .svelte files
    packages: list[str] = field(default_factory=list)
    # also stage every installed package whose package.json declares "svelte"
    discover_packages: bool = True
    ignore_warnings: list[str] = field(default_factory=lambda: list(DEFAULT_IGNORED_WARNINGS))


@dataclass
class IconsConfig:
    """Icon directory and name-collision policy."""

    root: str = "../deps/heroicons/optimized"
    on_collision: str = "overwrite"  # "overwrite" | "error"


@dataclass
class StylesheetConfig:
    """Utility stylesheet output and content scan list."""

    output: str = "app.css"
    content: list[str] = field(default_factory=lambda: list(DEFAULT_CONTENT))
    extra: str = ""  # optional project stylesheet appended to the generated input


@dataclass
class ToolsConfig:
    """Pinned versions of downloaded binaries."""

    tailwind_version: str = "4.1.11"
    esbuild_version: str = "0.25.5"


@dataclass
class WatchConfig:
    """Polling settings for watch mode."""

    poll_interval: float = 0.5
    debounce: float = 0.2


@dataclass
class ProjectConfig:
    """Complete configuration for one assets project."""

    project_root: Path
    build: BuildConfig = field(default_factory=BuildConfig)
    client: TargetConfig = field(
        default_factory=lambda: TargetConfig(
            entry_points=["js/app.js"], outdir="../priv/static/assets"
        )
    )
    server: TargetConfig = field(
        default_factory=lambda: TargetConfig(entry_points=["js/server.js"], outdir="../priv/svelte")
    )
    components: ComponentsConfig = field(default_factory=ComponentsConfig)
    icons: IconsConfig = field(default_factory=IconsConfig)
    stylesheet: StylesheetConfig = field(default_factory=StylesheetConfig)
    tools: ToolsConfig = field(default_factory=ToolsConfig)
    watch: WatchConfig = field(default_factory=WatchConfig)

    def resolve(self, relative: str | Path) -> Path:
        """Resolve a configured path against the project root."""
        return (self.project_root / relative).resolve()

    @property
    def staging_root(self) -> Path:
        return self.resolve(self.build.staging_dir)

    @property
    def icons_root(self) -> Path:
        return self.resolve(self.icons.root)


def _section(data: dict[str, Any], name: str) -> dict[str, Any]:
    value = data.get(name, {})
    if not isinstance(value, dict):
        raise ConfigError(f"[{name}] must be a table, got {type(value).__name__}")
    return value


def _str_list(section: dict[str, Any], key: str, default: list[str], table: str) -> list[str]:
    value = section.get(key, default)
    if not isinstance(value, list) or not all(isinstance(v, str) for v in value):
        raise ConfigError(f"[{table}] {key} must be a list of strings")
    return list(value)


def _str(section: dict[str, Any], key: str, default: str, table: str) -> str:
    value = section.get(key, default)
    if not isinstance(value, str):
        raise ConfigError(f"[{table}] {key} must be a string, got {type(value).__name__}")
    return value


def _bool(section: dict[str, Any], key: str, default: bool, table: str) -> bool:
    value = section.get(key, default)
    if not isinstance(value, bool):
        raise ConfigError(f"[{table}] {key} must be true or false")
    return value


def _str_table(
    section: dict[str, Any], key: str, default: dict[str, str], table: str
) -> dict[str, str]:
    value = section.get(key, default)
    if not isinstance(value, dict) or not all(isinstance(v, str) for v in value.values()):
        raise ConfigError(f"[{table}] {key} must be a table of strings")
    return dict(value)


def _target(data: dict[str, Any], name: str, default: TargetConfig) -> TargetConfig:
    section = _section(data, name)
    entry_points = _str_list(section, "entry_points", default.entry_points, name)
    if not entry_points:
        raise ConfigError(f"[{name}] entry_points must not be empty")
    return TargetConfig(
        entry_points=entry_points,
        outdir=_str(section, "outdir", default.outdir, name),
    )


def parse_config(data: dict[str, Any], project_root: Path) -> ProjectConfig:
    """Build a ProjectConfig from already-parsed TOML data."""
    defaults = ProjectConfig(project_root=project_root)

    build_data = _section(data, "build")
    build = BuildConfig(
        staging_dir=_str(build_data, "staging_dir", defaults.build.staging_dir, "build"),
        tsconfig=_str(build_data, "tsconfig", defaults.build.tsconfig, "build"),
        target=_str(build_data, "target", defaults.build.target, "build"),
        aliases=_str_table(build_data, "aliases", defaults.build.aliases, "build"),
    )

    components_data = _section(data, "components")
    components = ComponentsConfig(
        roots=_str_list(components_data, "roots", defaults.components.roots, "components"),
        packages=_str_list(components_data, "packages", [], "components"),
        discover_packages=_bool(
            components_data, "discover_packages", defaults.components.discover_packages, "components"
        ),
        ignore_warnings=_str_list(
            components_data,
            "ignore_warnings",
            defaults.components.ignore_warnings,
            "components",
        ),
    )

    icons_data = _section(data, "icons")
    icons = IconsConfig(
        root=_str(icons_data, "root", defaults.icons.root, "icons"),
        on_collision=_str(icons_data, "on_collision", defaults.icons.on_collision, "icons"),
    )
    if icons.on_collision not in COLLISION_POLICIES:
        raise ConfigError(
            f"[icons] on_collision must be one of {', '.join(COLLISION_POLICIES)}, "
            f"got {icons.on_collision!r}"
        )

    stylesheet_data = _section(data, "stylesheet")
    stylesheet = StylesheetConfig(
        output=_str(stylesheet_data, "output", defaults.stylesheet.output, "stylesheet"),
        content=_str_list(stylesheet_data, "content", defaults.stylesheet.content, "stylesheet"),
        extra=_str(stylesheet_data, "extra", "", "stylesheet"),
    )

    tools_data = _section(data, "tools")
    tools = ToolsConfig(
        tailwind_version=_str(
            tools_data, "tailwind_version", defaults.tools.tailwind_version, "tools"
        ),
        esbuild_version=_str(tools_data, "esbuild_version", defaults.tools.esbuild_version, "tools"),
    )

    watch_data = _section(data, "watch")
    try:
        watch = WatchConfig(
            poll_interval=float(watch_data.get("poll_interval", defaults.watch.poll_interval)),
            debounce=float(watch_data.get("debounce", defaults.watch.debounce)),
        )
    except (TypeError, ValueError) as e:
        raise ConfigError(f"[watch] invalid number: {e}") from e

    return ProjectConfig(
        project_root=project_root,
        build=build,
        client=_target(data, "client", defaults.client),
        server=_target(data, "server", defaults.server),
        components=components,
        icons=icons,
        stylesheet=stylesheet,
        tools=tools,
        watch=watch,
    )


def load_config(path: Path | None = None, project_root: Path | None = None) -> ProjectConfig:
    """
    Load project configuration.

    Args:
        path: Explicit config file. When omitted, ``assetforge.toml`` in the
            project root is used if it exists, otherwise defaults apply.
        project_root: Directory that relative paths are resolved against.
            Defaults to the config file's directory, or the current directory.

    Returns:
        ProjectConfig

    Raises:
        ConfigError: If an explicit file is missing or the TOML is invalid.
    """
    if path is None:
        root = (project_root or Path.cwd()).resolve()
        candidate = root / CONFIG_FILENAME
        if not candidate.exists():
            return ProjectConfig(project_root=root)
        path = candidate
    elif not path.exists():
        raise ConfigError(f"Config file not found: {path}")

    root = (project_root or path.parent).resolve()

    try:
        data = tomllib.loads(path.read_text(encoding="utf-8"))
    except tomllib.TOMLDecodeError as e:
        raise ConfigError(f"Invalid TOML in {path}: {e}") from e
    except OSError as e:
        raise ConfigError(f"Cannot read {path}: {e}") from e

    return parse_config(data, root)
