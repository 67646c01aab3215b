"""``bundlekit test``: jest with the test environment set for the child."""

from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass, field

from bundlekit import messages, tools
from bundlekit.detect.project import Project
from bundlekit.environment import BuildEnvironment, env_get
from bundlekit.resolve import config_flag, resolve_jest


@dataclass
class JestOptions:
    config: str | None = None
    watch: bool = False
    passthrough: list[str] = field(default_factory=list)


def is_ci(environ: Mapping[str, str] | None = None) -> bool:
    value = env_get("CI", False, os.environ if environ is None else environ)
    return value not in (False, 0, "false", "0")


def jest_argv(
    project: Project,
    options: JestOptions,
    environment: BuildEnvironment,
    environ: Mapping[str, str] | None = None,
) -> list[str]:
    argv = config_flag(resolve_jest(project, environment, options.config))
    if options.watch and not is_ci(environ):
        argv.append("--watchAll")
    argv.append("--passWithNoTests")
    return argv + options.passthrough


def run_tests(project: Project, options: JestOptions) -> int:
    messages.welcome("test")

    environment = BuildEnvironment(test=True, node_env="test")
    jest = tools.resolve_bin(project, "jest")
    status = tools.run_tool(
        [jest, *jest_argv(project, options, environment)],
        cwd=project.root,
        env=environment.to_environ(),
    )
    messages.test_finished(status)
    return status
