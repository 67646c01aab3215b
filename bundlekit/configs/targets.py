"""Compilation targets for the environment preset.

* test runs target the running node (``{"node": "current"}``)
* bundler builds target a browser list (browserslist config or a default)
* everything else targets the oldest node allowed by ``engines.node``
"""

from __future__ import annotations

import re
from typing import Any

from bundlekit.detect.project import Project
from bundlekit.environment import BuildEnvironment
from bundlekit.errors import AmbiguousVersionRange

DEFAULT_BROWSERS = ["ie 10", "ios 7"]
DEFAULT_NODE_RANGE = "8"

_WILDCARDS = {"x", "X", "*"}
_COMPARATOR = re.compile(
    r"^(?P<op><=|>=|<|>|=|\^|~>|~)?v?"
    r"(?P<major>\d+|[xX*])"
    r"(?:\.(?P<minor>\d+|[xX*]))?"
    r"(?:\.(?P<patch>\d+|[xX*]))?"
    r"(?:-[0-9A-Za-z.-]+)?(?:\+[0-9A-Za-z.-]+)?$"
)
_HYPHEN = re.compile(r"^(\S+)\s+-\s+(\S+)$")
_OP_SPACE = re.compile(r"(<=|>=|<|>|=|\^|~>|~)\s+")

Version = tuple[int, int, int]


def _part(value: str | None) -> int | None:
    if value is None or value in _WILDCARDS:
        return None
    return int(value)


def _comparator_floor(token: str, source: str) -> Version | None:
    """Lowest version admitted by one comparator, or None when unbounded below."""
    match = _COMPARATOR.match(token)
    if match is None:
        raise AmbiguousVersionRange(source)
    op = match["op"] or ""
    major, minor, patch = _part(match["major"]), _part(match["minor"]), _part(match["patch"])
    if op in ("<", "<="):
        return None
    if major is None:
        # "*", "x", ">=*": anything goes
        return None
    if op == ">":
        if minor is None:
            return (major + 1, 0, 0)
        if patch is None:
            return (major, minor + 1, 0)
        return (major, minor, patch + 1)
    return (major, minor or 0, patch or 0)


def _alternative_floor(alternative: str, source: str) -> Version | None:
    hyphen = _HYPHEN.match(alternative)
    if hyphen:
        return _comparator_floor(f">={hyphen.group(1)}", source)
    floors = [
        _comparator_floor(token, source)
        for token in _OP_SPACE.sub(r"\1", alternative).split()
    ]
    bounded = [f for f in floors if f is not None]
    return max(bounded) if bounded else None


def oldest_version(version_range: str) -> str:
    """Return the lowest concrete version satisfying an npm semver range.

    >>> oldest_version("^10.13.0 || >=12")
    '10.13.0'

    Raises :class:`AmbiguousVersionRange` when any alternative has no lower
    bound (``*``, ``<9``, an empty string) or the range does not parse.
    """
    floors: list[Version] = []
    for alternative in version_range.split("||"):
        floor = _alternative_floor(alternative.strip(), version_range)
        if floor is None:
            raise AmbiguousVersionRange(version_range)
        floors.append(floor)
    return ".".join(str(n) for n in min(floors))


def _parse_browserslist_file(text: str, env: str) -> list[str]:
    sections: dict[str, list[str]] = {"defaults": []}
    current = ["defaults"]
    for line in text.splitlines():
        line = line.split("#", 1)[0].strip()
        if not line:
            continue
        if line.startswith("[") and line.endswith("]"):
            current = [name.strip() for name in line[1:-1].split()]
            for name in current:
                sections.setdefault(name, [])
            continue
        for name in current:
            sections[name].append(line)
    return sections.get(env) or sections["defaults"]


def _from_property(value: Any, env: str) -> list[str] | None:
    if isinstance(value, str):
        return [q.strip() for q in value.split(",") if q.strip()]
    if isinstance(value, list):
        return [str(q) for q in value]
    if isinstance(value, dict):
        chosen = value.get(env) or value.get("defaults")
        return _from_property(chosen, env) if chosen else None
    return None


def browser_targets(project: Project, node_env: str | None = None) -> list[str]:
    """Browser queries from package.json or a browserslist file, else the default list."""
    env = node_env or "production"
    queries = _from_property(project.get_property("browserslist"), env)
    if queries:
        return queries
    for filename in (".browserslistrc", "browserslist"):
        path = project.from_root(filename)
        if path.is_file():
            queries = _parse_browserslist_file(path.read_text(encoding="utf-8"), env)
            if queries:
                return queries
    return list(DEFAULT_BROWSERS)


def environment_targets(project: Project, env: BuildEnvironment) -> dict[str, Any]:
    if env.test:
        return {"node": "current"}
    if env.bundler:
        return {"browsers": browser_targets(project, env.node_env)}
    node_range = project.descriptor.engines.get("node", DEFAULT_NODE_RANGE)
    return {"node": oldest_version(node_range)}
