"""Project introspection: the nearest package.json and the files around it.

Everything here is read-only. The descriptor is loaded once per start
directory and reused for the rest of the process.
"""

from __future__ import annotations

import os
from collections.abc import Sequence
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from bundlekit.errors import DescriptorNotFound
from bundlekit.logging import get_logger
from bundlekit.validator import read_json, validate_descriptor

DESCRIPTOR_FILENAME = "package.json"

log = get_logger(__name__)


class ProjectDescriptor(BaseModel):
    """Immutable snapshot of package.json.

    Only the fields bundlekit branches on are typed; ``raw`` keeps the whole
    document for property lookups.
    """

    model_config = ConfigDict(frozen=True)

    name: str = ""
    version: str = "0.0.0"
    dependencies: dict[str, str] = Field(default_factory=dict)
    devDependencies: dict[str, str] = Field(default_factory=dict)
    peerDependencies: dict[str, str] = Field(default_factory=dict)
    scripts: dict[str, str] = Field(default_factory=dict)
    engines: dict[str, str] = Field(default_factory=dict)
    raw: dict[str, Any] = Field(default_factory=dict)

    @classmethod
    def from_mapping(cls, data: dict[str, Any]) -> ProjectDescriptor:
        fields = {k: data[k] for k in cls.model_fields if k != "raw" and k in data}
        return cls(**fields, raw=data)


@dataclass(frozen=True)
class Project:
    root: Path
    descriptor: ProjectDescriptor

    @property
    def descriptor_path(self) -> Path:
        return self.root / DESCRIPTOR_FILENAME

    def from_root(self, *parts: str) -> Path:
        return self.root.joinpath(*parts)

    def file_exists(self, relative_path: str) -> bool:
        return self.from_root(relative_path).exists()

    def get_property(self, path: str | Sequence[str], default: Any = None) -> Any:
        node: Any = self.descriptor.raw
        for segment in _segments(path):
            if not isinstance(node, dict) or segment not in node:
                return default
            node = node[segment]
        return node

    def has_property(self, path: str | Sequence[str]) -> bool:
        """True when *path* exists in package.json.

        *path* is either dotted (``"dependencies.react"``) or a sequence of
        segments, which is how names containing dots are looked up.
        """
        sentinel = object()
        return self.get_property(path, sentinel) is not sentinel

    def has_dependency(self, name: str) -> bool:
        return name in self.descriptor.dependencies

    def has_dev_dependency(self, name: str) -> bool:
        return name in self.descriptor.devDependencies

    def has_peer_dependency(self, name: str) -> bool:
        return name in self.descriptor.peerDependencies

    def has_any_dependency(self, name: str) -> bool:
        return (
            self.has_dependency(name)
            or self.has_dev_dependency(name)
            or self.has_peer_dependency(name)
        )

    @property
    def is_typescript(self) -> bool:
        return self.file_exists("tsconfig.json")

    @property
    def uses_react(self) -> bool:
        return self.has_any_dependency("react")


def _segments(path: str | Sequence[str]) -> list[str]:
    if isinstance(path, str):
        return path.split(".")
    return list(path)


def find_descriptor(start: Path) -> Path:
    """Walk upward from *start* to the nearest package.json."""
    current = start
    while True:
        candidate = current / DESCRIPTOR_FILENAME
        if candidate.is_file():
            return candidate
        if current.parent == current:
            raise DescriptorNotFound(start)
        current = current.parent


@lru_cache(maxsize=None)
def _load(start: Path) -> Project:
    path = find_descriptor(start)
    data = read_json(path)
    validate_descriptor(data, path)
    log.debug("loaded descriptor", extra={"context": {"path": str(path)}})
    return Project(root=path.parent, descriptor=ProjectDescriptor.from_mapping(data))


def load_project(start: Path | None = None) -> Project:
    """Return the project containing *start* (default: the current directory)."""
    origin = Path(os.path.realpath(start if start is not None else Path.cwd()))
    return _load(origin)
