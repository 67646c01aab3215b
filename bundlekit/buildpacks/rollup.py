"""Rollup bundler: one CLI run per build task.

Built-in configs run through the bundled ES-module loader, which reads the
task's JSON payload named by ``BUNDLEKIT_ROLLUP_OPTIONS``. Project configs are
passed with ``--config`` and read their parameters from the ``BUILD_*``
variables of the task. A non-zero exit becomes a :class:`BuildFailure`
parsed from rollup's ``[!]`` error block, with the code frame kept verbatim.
"""

from __future__ import annotations

import re
from typing import Protocol

from bundlekit import tools
from bundlekit.detect.project import Project
from bundlekit.errors import BuildFailure
from bundlekit.resolve import materialize_loader
from bundlekit.types import BuildTask, ResolvedConfig

_ANSI = re.compile(r"\x1b\[[0-9;]*[A-Za-z]")
_HEADER = re.compile(r"^\[!\]\s+(?:\(plugin (?P<plugin>[^)]+)\)\s+)?(?P<message>.+)$")
_STACK = re.compile(r"^\s+at\s")

OPTIONS_VARIABLE = "BUNDLEKIT_ROLLUP_OPTIONS"


class Bundler(Protocol):
    async def build(self, task: BuildTask) -> None:
        """Build *task*, raising :class:`BuildFailure` when the bundle fails."""
        ...


def parse_failure(output: str, returncode: int) -> BuildFailure:
    lines = _ANSI.sub("", output).splitlines()
    for index, line in enumerate(lines):
        header = _HEADER.match(line.strip())
        if header is None:
            continue
        frame: list[str] = []
        for rest in lines[index + 1 :]:
            if _STACK.match(rest):
                break
            frame.append(rest)
        return BuildFailure(
            header["message"].strip(),
            plugin=header["plugin"],
            frame="\n".join(frame).strip() or None,
        )
    tail = next((line.strip() for line in reversed(lines) if line.strip()), None)
    return BuildFailure(tail or f"rollup exited with status {returncode}")


class RollupBundler:
    def __init__(self, project: Project) -> None:
        self.project = project
        self.executable = tools.resolve_bin(project, "rollup")

    def _config(self, task: BuildTask) -> ResolvedConfig:
        if task.config is None or task.config.path is None:
            raise RuntimeError(f"task {task.spec} has no resolved config file")
        return task.config

    def argv(self, task: BuildTask) -> list[str]:
        config = self._config(task)
        if config.builtin:
            return [self.executable, "--config", str(materialize_loader(self.project))]
        return [self.executable, "--config", str(config.path)]

    def environ(self, task: BuildTask) -> dict[str, str]:
        config = self._config(task)
        env = task.environment.to_environ()
        if config.builtin:
            env[OPTIONS_VARIABLE] = str(config.path)
        return env

    async def build(self, task: BuildTask) -> None:
        result = await tools.run_tool_async(self.argv(task), cwd=self.project.root, env=self.environ(task))
        if result.returncode != 0:
            raise parse_failure(result.stderr or result.stdout, result.returncode)
