"""Shared models for config resolution and builds."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict

from bundlekit.environment import BuildEnvironment
from bundlekit.errors import BuildFailure


class ConfigSource(str, Enum):
    BUILT_IN = "built-in"
    PROJECT_FILE = "project-file"
    INLINE_OVERRIDE = "inline-override"


class ResolvedConfig(BaseModel):
    """The config chosen for one tool invocation.

    Attributes
    ----------
    tool: str
        Tool key ("bundler", "transpiler", "linter", ...).
    source: ConfigSource
        Where the config came from.
    path: Path | None
        File handed to the external tool. For built-in configs this is the
        materialized JSON file; for descriptor-embedded configs it is the
        package.json itself.
    payload: dict | None
        Parsed config object, when known (built-in, JSON files, descriptor).
    descriptor_property: str | None
        Set when the config lives inside package.json.
    environment_targets: dict | None
        Targets given to the environment preset (transpiler only).
    """

    model_config = ConfigDict(frozen=True)

    tool: str
    source: ConfigSource
    path: Path | None = None
    payload: dict[str, Any] | None = None
    descriptor_property: str | None = None
    environment_targets: dict[str, Any] | None = None

    @property
    def builtin(self) -> bool:
        return self.source is ConfigSource.BUILT_IN


@dataclass
class BuildTask:
    """One requested output format.

    ``config`` is filled in by the orchestrator once, before any build runs.
    """

    spec: str
    format: str
    minify: bool
    environment: BuildEnvironment
    config: ResolvedConfig | None = None


@dataclass
class BuildResult:
    task: BuildTask
    error: BuildFailure | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass(frozen=True)
class WatchEvent:
    code: Literal["START", "ERROR", "END"]
    error: BuildFailure | None = None
    count: int = 0
