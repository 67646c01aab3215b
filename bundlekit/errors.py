"""Error taxonomy.

Fatal errors derive from :class:`BundlekitError` and abort the current
command with exit status 1. :class:`BuildFailure` is recoverable: it is
captured per build task and reported alongside sibling results.
"""

from __future__ import annotations

from pathlib import Path


class BundlekitError(Exception):
    """Base class for errors that abort a command."""


class DescriptorNotFound(BundlekitError):
    def __init__(self, start: Path) -> None:
        super().__init__(f"No package.json found in {start} or any parent directory")
        self.start = start


class MalformedConfig(BundlekitError):
    def __init__(self, path: Path, detail: str) -> None:
        super().__init__(f"Malformed config {path}: {detail}")
        self.path = path
        self.detail = detail


class ConfigNotFound(BundlekitError):
    def __init__(self, path: Path) -> None:
        super().__init__(f"Config file does not exist: {path}")
        self.path = path


class AmbiguousVersionRange(BundlekitError):
    def __init__(self, version_range: str) -> None:
        super().__init__(
            "Unable to determine the oldest version in the range in your package.json "
            f'at engines.node: "{version_range}". Please attempt to make it less ambiguous.'
        )
        self.version_range = version_range


class ToolNotFound(BundlekitError):
    def __init__(self, executable: str) -> None:
        super().__init__(
            f"Could not find executable '{executable}' in node_modules/.bin or on PATH"
        )
        self.executable = executable


class BuildFailure(Exception):
    """A single task or file failed to build.

    ``plugin`` names the bundler plugin that raised, when known; ``frame``
    is the source snippet printed by the tool, kept verbatim.
    """

    def __init__(self, message: str, plugin: str | None = None, frame: str | None = None):
        super().__init__(message)
        self.message = message
        self.plugin = plugin
        self.frame = frame

    def describe(self) -> str:
        return f"({self.plugin}) {self.message}" if self.plugin else self.message


class InvalidOption(BundlekitError):
    def __init__(self, option: str, detail: str) -> None:
        super().__init__(f"Invalid value for {option}: {detail}")
        self.option = option
