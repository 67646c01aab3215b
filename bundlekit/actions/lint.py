"""``bundlekit lint``: type check (TypeScript projects), then eslint."""

from __future__ import annotations

import re
from dataclasses import dataclass, field

from bundlekit import messages, tools
from bundlekit.buildpacks.tsc import type_check
from bundlekit.configs.lint import DEFAULT_EXTENSIONS
from bundlekit.detect.project import Project
from bundlekit.resolve import config_flag, resolve_lint, resolve_lint_ignore

CACHE_LOCATION = ("node_modules", ".cache", ".eslintcache")


@dataclass
class LintOptions:
    config: str | None = None
    ignore_path: str | None = None
    cache: bool = True
    ext: str = DEFAULT_EXTENSIONS
    files: list[str] = field(default_factory=list)
    passthrough: list[str] = field(default_factory=list)


def lintable(files: list[str], ext: str) -> list[str]:
    """Keep only files with one of the comma separated extensions in *ext*."""
    suffixes = [e.strip().lstrip(".") for e in ext.split(",") if e.strip()]
    pattern = re.compile(rf"\.+({'|'.join(map(re.escape, suffixes))})$")
    return [f for f in files if pattern.search(f)]


def lint_argv(project: Project, options: LintOptions) -> list[str]:
    argv = config_flag(resolve_lint(project, options.config))
    argv += config_flag(resolve_lint_ignore(project, options.ignore_path), "--ignore-path")
    if options.cache:
        argv += ["--cache", "--cache-location", str(project.from_root(*CACHE_LOCATION))]
    argv += ["--ext", options.ext]
    argv += options.passthrough
    if options.files:
        argv += lintable(options.files, options.ext)
    else:
        argv.append(".")
    return argv


def lint(project: Project, options: LintOptions) -> int:
    messages.welcome("lint")

    if project.is_typescript:
        type_check(project)

    eslint = tools.resolve_bin(project, "eslint")
    status = tools.run_tool([eslint, *lint_argv(project, options)])
    if status == 0:
        messages.lint_success()
    else:
        messages.lint_error()
    return status
