"""
Error types for asset compilation: configuration, setup and compile failures.
"""

from dataclasses import dataclass
from pathlib import Path
from typing import Optional


class AssetForgeError(Exception):
    """Base exception for all assetforge errors."""

    def __init__(self, message: str, context: Optional["ErrorContext"] = None):
        self.message = message
        self.context = context
        super().__init__(self._format_message())

    def _format_message(self) -> str:
        """Format error message with context if available."""
        if self.context:
            return f"{self.context.format()}\n{self.message}"
        return self.message


class ConfigError(AssetForgeError):
    """
    Raised when assetforge.toml cannot be read or holds invalid values.
    """

    pass


class SetupError(AssetForgeError):
    """
    Raised when a build cannot start at all.

    Examples:
    - Missing entry point
    - Missing or unreadable icon directory
    - Required external tool not available

    Setup errors are fatal for the whole process, in one-shot and watch mode.
    """

    pass


class IconDirectoryError(SetupError):
    """Raised when the icon root or one of its variant subdirectories is missing."""

    pass


class IconCollisionError(SetupError):
    """Raised when two icon files map to the same utility name and collisions are fatal."""

    pass


class ToolNotFoundError(SetupError):
    """Raised when an external binary (node, esbuild, tailwindcss) cannot be resolved."""

    pass


class CompileError(AssetForgeError):
    """
    Raised when a target fails to compile.

    Fatal for a one-shot build; in watch mode it is logged and the target
    waits for the next change.
    """

    def __init__(
        self,
        message: str,
        context: Optional["ErrorContext"] = None,
        output: str | None = None,
    ):
        self.output = output
        super().__init__(message, context)


class ComponentCompileError(CompileError):
    """Raised when the component compiler rejects a source file."""

    pass


class BundleError(CompileError):
    """Raised when the bundler fails (syntax error, unresolved import)."""

    pass


class StylesheetError(CompileError):
    """Raised when the utility-class generator fails."""

    pass


@dataclass
class ErrorContext:
    """
    Source location attached to an error.

    Attributes:
        file: Path to the source file where the error occurred
        line: Line number (1-indexed)
        column: Column number (1-indexed)
        snippet: Optional code frame returned by the compiler
    """

    file: Path
    line: int
    column: int
    snippet: str | None = None

    def format(self) -> str:
        """
        Format error context as a human-readable string.

        Returns:
            Formatted string like: "svelte/Button.svelte:10:5"
        """
        location = f"{self.file}:{self.line}:{self.column}"
        if self.snippet:
            return f"{location}\n{self.snippet}"
        return location
