"""``bundlekit format``: prettier over the default glob or the given files."""

from __future__ import annotations

import os
from dataclasses import dataclass, field

from bundlekit import messages, tools
from bundlekit.configs.format import DEFAULT_PATTERN
from bundlekit.detect.project import Project
from bundlekit.resolve import config_flag, resolve_format, resolve_format_ignore


@dataclass
class FormatOptions:
    config: str | None = None
    ignore_path: str | None = None
    write: bool = True
    files: list[str] = field(default_factory=list)
    passthrough: list[str] = field(default_factory=list)


def _relative(path: str, cwd: str) -> str:
    # Absolute paths (as handed over by pre-commit hooks) would bypass the ignore file.
    prefix = cwd.rstrip(os.sep) + os.sep
    return path[len(prefix) :] if path.startswith(prefix) else path


def format_argv(project: Project, options: FormatOptions, cwd: str | None = None) -> list[str]:
    cwd = cwd or os.getcwd()
    argv = config_flag(resolve_format(project, options.config))
    argv += config_flag(resolve_format_ignore(project, options.ignore_path), "--ignore-path")
    if options.write:
        argv.append("--write")
    argv += options.passthrough
    if options.files:
        argv += [_relative(f, cwd) for f in options.files]
    else:
        argv.append(DEFAULT_PATTERN)
    return argv


def format_sources(project: Project, options: FormatOptions) -> int:
    messages.welcome("format")

    prettier = tools.resolve_bin(project, "prettier")
    status = tools.run_tool([prettier, *format_argv(project, options)])
    if status == 0:
        messages.format_success()
    else:
        messages.format_error()
    return status
