"""Locating and running the wrapped node tools.

Tools are looked up in the project's ``node_modules/.bin`` first, then on
``PATH``. Synchronous runs inherit stdio so the tool's own diagnostics reach
the terminal untouched; async runs capture output so a failed bundle can be
reported next to its format.
"""

from __future__ import annotations

import asyncio
import os
import re
import shutil
import subprocess
import sys
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from pathlib import Path

from bundlekit.detect.project import Project
from bundlekit.errors import ToolNotFound
from bundlekit.logging import get_logger

log = get_logger(__name__)

_SCOPE = r"@[a-z\d][\w\-.]+/"


def remove_package_scope(name: str, exact: bool = False) -> str:
    """``@scope/tool`` -> ``tool``."""
    if exact:
        return re.sub(rf"^{_SCOPE}$", "", name, flags=re.IGNORECASE)
    return re.sub(_SCOPE, "", name, flags=re.IGNORECASE)


def resolve_bin(project: Project, package: str, executable: str | None = None) -> str:
    exe = executable or remove_package_scope(package)
    bin_dir = project.from_root("node_modules", ".bin")
    names = [exe, f"{exe}.cmd"] if sys.platform == "win32" else [exe]
    for name in names:
        local = bin_dir / name
        if local.is_file():
            return str(local)
    found = shutil.which(exe)
    if found:
        return found
    raise ToolNotFound(exe)


def _has(cmd: str) -> bool:
    return shutil.which(cmd) is not None


@dataclass(frozen=True)
class PackageManager:
    cmd: str
    add: list[str]
    dev: str


def package_manager() -> PackageManager:
    """Prefer yarn when it is installed and answers, else npm."""
    if _has("yarnpkg"):
        result = subprocess.run(["yarnpkg", "--version"], capture_output=True, check=False)
        if result.returncode == 0:
            return PackageManager("yarn", ["add"], "--dev")
    return PackageManager("npm", ["install"], "--save-dev")


def _child_env(env: Mapping[str, str] | None) -> dict[str, str]:
    merged = os.environ.copy()
    if env:
        merged.update(env)
    return merged


def run_tool(
    argv: Sequence[str],
    *,
    cwd: Path | None = None,
    env: Mapping[str, str] | None = None,
    quiet: bool = False,
) -> int:
    """Run *argv* to completion and return its exit status."""
    log.info("run", extra={"context": {"argv": list(argv), "cwd": str(cwd or "")}})
    stream = subprocess.DEVNULL if quiet else None
    try:
        result = subprocess.run(
            list(argv), cwd=cwd, env=_child_env(env), stdout=stream, stderr=stream, check=False
        )
    except FileNotFoundError as e:
        raise ToolNotFound(argv[0]) from e
    return result.returncode


@dataclass(frozen=True)
class ToolOutput:
    returncode: int
    stdout: str
    stderr: str


async def run_tool_async(
    argv: Sequence[str],
    *,
    cwd: Path | None = None,
    env: Mapping[str, str] | None = None,
) -> ToolOutput:
    """Run *argv* without blocking the event loop, capturing its output."""
    log.info("spawn", extra={"context": {"argv": list(argv), "cwd": str(cwd or "")}})
    try:
        proc = await asyncio.create_subprocess_exec(
            *argv,
            cwd=cwd,
            env=_child_env(env),
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
        )
    except FileNotFoundError as e:
        raise ToolNotFound(argv[0]) from e
    out, err = await proc.communicate()
    return ToolOutput(
        returncode=proc.returncode if proc.returncode is not None else 1,
        stdout=out.decode("utf-8", errors="replace"),
        stderr=err.decode("utf-8", errors="replace"),
    )
