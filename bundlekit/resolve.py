"""Config resolution: which config each wrapped tool should use.

Every tool follows the same precedence, first match wins:

1. an explicit ``--config`` path
2. a dedicated config file in the project root
3. a property embedded in package.json
4. the built-in default, constructed fresh for this invocation

Built-in payloads that a tool reads from disk are written to
``node_modules/.cache/bundlekit/`` and passed by path.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from importlib import resources
from pathlib import Path
from typing import Any, Literal

from bundlekit.configs.bundle import bundle_config
from bundlekit.configs.format import DEFAULT_IGNORE as FORMAT_IGNORE
from bundlekit.configs.format import prettier_options
from bundlekit.configs.jest import jest_config
from bundlekit.configs.lint import DEFAULT_IGNORE as LINT_IGNORE
from bundlekit.configs.lint import lint_config
from bundlekit.configs.precommit import lintstaged_config
from bundlekit.configs.transpile import transpile_config
from bundlekit.detect.project import Project
from bundlekit.environment import BuildEnvironment
from bundlekit.errors import ConfigNotFound, MalformedConfig
from bundlekit.logging import get_logger
from bundlekit.types import ConfigSource, ResolvedConfig
from bundlekit.validator import read_json

CACHE_DIR = ("node_modules", ".cache", "bundlekit")
BUNDLER_LOADER = "rollup.config.mjs"

log = get_logger(__name__)


@dataclass(frozen=True)
class ToolSpec:
    key: str
    filenames: tuple[str, ...]
    descriptor_property: str | None
    cache_name: str
    kind: Literal["json", "ignore"] = "json"
    # the tool itself rejects anything but plain JSON in its .json files
    strict_json: bool = False


BUNDLER = ToolSpec("bundler", ("rollup.config.js", "rollup.config.mjs"), None, "rollup.json")
TRANSPILER = ToolSpec(
    "transpiler",
    (".babelrc", ".babelrc.js", ".babelrc.json", "babel.config.js", "babel.config.json"),
    "babel",
    "babelrc.json",
)
LINTER = ToolSpec("linter", (".eslintrc", ".eslintrc.js", ".eslintrc.json"), "eslintConfig", "eslintrc.json")
LINT_IGNORE_SPEC = ToolSpec("lint-ignore", (".eslintignore",), "eslintIgnore", "eslintignore", "ignore")
FORMATTER = ToolSpec(
    "formatter",
    (".prettierrc", ".prettierrc.json", ".prettierrc.js", "prettier.config.js"),
    "prettier",
    "prettierrc.json",
    strict_json=True,
)
FORMAT_IGNORE_SPEC = ToolSpec("format-ignore", (".prettierignore",), None, "prettierignore", "ignore")
TEST_RUNNER = ToolSpec("test-runner", ("jest.config.js", "jest.config.json"), "jest", "jest.config.json")
PRE_COMMIT = ToolSpec("pre-commit", (".lintstagedrc", "lint-staged.config.js"), "lint-staged", "lintstagedrc.json")


def _load_payload(path: Path, spec: ToolSpec) -> dict[str, Any] | None:
    """Parse strict JSON configs eagerly so a broken file fails before the tool runs.

    Everything else is opaque: JavaScript and YAML configs, and JSON the tool
    reads leniently (comments in .eslintrc.json and jest.config.json, JSON5 in
    .babelrc). Those are validated by the tool itself.
    """
    if spec.kind != "json" or not spec.strict_json or path.suffix != ".json":
        return None
    data = read_json(path)
    if not isinstance(data, dict):
        raise MalformedConfig(path, "expected a JSON object")
    return data


def locate(project: Project, spec: ToolSpec, explicit: str | None = None) -> ResolvedConfig | None:
    """Steps 1-3 of the precedence; None means the built-in default applies."""
    if explicit:
        path = Path(explicit).expanduser()
        if not path.is_absolute():
            path = Path.cwd() / path
        if not path.is_file():
            raise ConfigNotFound(path)
        log.info("config", extra={"context": {"tool": spec.key, "source": "option", "path": str(path)}})
        return ResolvedConfig(
            tool=spec.key,
            source=ConfigSource.INLINE_OVERRIDE,
            path=path,
            payload=_load_payload(path, spec),
        )
    for filename in spec.filenames:
        path = project.from_root(filename)
        if path.is_file():
            log.info("config", extra={"context": {"tool": spec.key, "source": "file", "path": str(path)}})
            return ResolvedConfig(
                tool=spec.key,
                source=ConfigSource.PROJECT_FILE,
                path=path,
                payload=_load_payload(path, spec),
            )
    prop = spec.descriptor_property
    if prop and project.has_property([prop]):
        value = project.get_property([prop])
        log.info("config", extra={"context": {"tool": spec.key, "source": "descriptor", "property": prop}})
        return ResolvedConfig(
            tool=spec.key,
            source=ConfigSource.PROJECT_FILE,
            path=project.descriptor_path,
            payload=value if isinstance(value, dict) else None,
            descriptor_property=prop,
        )
    return None


def _cache(project: Project) -> Path:
    cache = project.from_root(*CACHE_DIR)
    cache.mkdir(parents=True, exist_ok=True)
    return cache


def materialize(project: Project, name: str, payload: dict[str, Any], kind: str = "json") -> Path:
    """Write a built-in payload where the external tool can read it."""
    path = _cache(project) / name
    if kind == "ignore":
        path.write_text("\n".join(payload["patterns"]) + "\n", encoding="utf-8")
    else:
        path.write_text(json.dumps(payload, indent=2), encoding="utf-8")
    return path


def materialize_loader(project: Project) -> Path:
    """Copy the ES-module config that loads a built-in bundler payload."""
    text = resources.files("bundlekit.configs").joinpath(BUNDLER_LOADER).read_text(encoding="utf-8")
    path = _cache(project) / BUNDLER_LOADER
    path.write_text(text, encoding="utf-8")
    return path


def builtin(
    project: Project,
    spec: ToolSpec,
    payload: dict[str, Any],
    *,
    targets: dict[str, Any] | None = None,
    write: bool = True,
    cache_name: str | None = None,
) -> ResolvedConfig:
    path = materialize(project, cache_name or spec.cache_name, payload, spec.kind) if write else None
    log.info("config", extra={"context": {"tool": spec.key, "source": "built-in", "path": str(path)}})
    return ResolvedConfig(
        tool=spec.key,
        source=ConfigSource.BUILT_IN,
        path=path,
        payload=payload,
        environment_targets=targets,
    )


# --- Per-tool resolution -----------------------------------------------------


def resolve_transpile(
    project: Project,
    env: BuildEnvironment,
    *,
    write: bool = True,
    cache_name: str | None = None,
) -> ResolvedConfig:
    found = locate(project, TRANSPILER)
    if found is not None:
        return found
    payload, targets = transpile_config(project, env)
    return builtin(project, TRANSPILER, payload, targets=targets, write=write, cache_name=cache_name)


def resolve_bundle(
    project: Project,
    env: BuildEnvironment,
    explicit: str | None = None,
    *,
    write: bool = True,
) -> ResolvedConfig:
    """Bundler config for one task. Built-in payloads get one file per format."""
    found = locate(project, BUNDLER, explicit)
    if found is not None:
        return found
    transpile = resolve_transpile(project, env, write=False)
    return builtin(
        project,
        BUNDLER,
        bundle_config(project, env, transpile),
        targets=transpile.environment_targets,
        write=write,
        cache_name=f"rollup.{env.format}{'.min' if env.minify else ''}.json",
    )


def resolve_lint(project: Project, explicit: str | None = None) -> ResolvedConfig:
    return locate(project, LINTER, explicit) or builtin(project, LINTER, lint_config(project))


def resolve_lint_ignore(project: Project, explicit: str | None = None) -> ResolvedConfig:
    return locate(project, LINT_IGNORE_SPEC, explicit) or builtin(
        project, LINT_IGNORE_SPEC, {"patterns": LINT_IGNORE}
    )


def resolve_format(project: Project, explicit: str | None = None) -> ResolvedConfig:
    return locate(project, FORMATTER, explicit) or builtin(project, FORMATTER, prettier_options())


def resolve_format_ignore(project: Project, explicit: str | None = None) -> ResolvedConfig:
    return locate(project, FORMAT_IGNORE_SPEC, explicit) or builtin(
        project, FORMAT_IGNORE_SPEC, {"patterns": FORMAT_IGNORE}
    )


def resolve_jest(project: Project, env: BuildEnvironment, explicit: str | None = None) -> ResolvedConfig:
    found = locate(project, TEST_RUNNER, explicit)
    if found is not None:
        return found
    transpile = resolve_transpile(project, env, cache_name="babel-jest.json")
    # babel-jest discovers project configs on its own
    transform_config = transpile.path if transpile.builtin else None
    return builtin(project, TEST_RUNNER, jest_config(project, transform_config))


def resolve_precommit(project: Project, explicit: str | None = None) -> ResolvedConfig:
    return locate(project, PRE_COMMIT, explicit) or builtin(project, PRE_COMMIT, lintstaged_config())


def config_flag(resolved: ResolvedConfig, flag: str = "--config") -> list[str]:
    """CLI flag pointing a tool at *resolved*. Project files are found by the tool itself."""
    if resolved.source is ConfigSource.PROJECT_FILE or resolved.path is None:
        return []
    return [flag, str(resolved.path)]
