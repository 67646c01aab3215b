"""``bundlekit pre-commit``: lint-staged over the staged files."""

from __future__ import annotations

from bundlekit import messages, tools
from bundlekit.detect.project import Project
from bundlekit.resolve import config_flag, resolve_precommit


def pre_commit(project: Project, config: str | None = None, passthrough: list[str] | None = None) -> int:
    argv = config_flag(resolve_precommit(project, config))
    lint_staged = tools.resolve_bin(project, "lint-staged")
    status = tools.run_tool([lint_staged, *argv, *(passthrough or [])], cwd=project.root)
    messages.precommit_finished(status)
    return status
