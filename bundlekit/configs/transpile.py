"""Built-in babel config.

Presets and plugins are listed in a fixed order and the disabled ones are
dropped afterwards. Order matters to babel: plugins run before presets, in
list order, and presets run last-to-first.
"""

from __future__ import annotations

from typing import Any

from bundlekit.configs.targets import environment_targets
from bundlekit.detect.project import Project
from bundlekit.environment import BuildEnvironment

Entry = list[Any]

UI_FRAMEWORK = "react"


def _compact(entries: list[Entry | None]) -> list[Entry]:
    return [entry for entry in entries if entry]


def presets(project: Project, env: BuildEnvironment, targets: dict[str, Any]) -> list[Entry]:
    return _compact(
        [
            ["@babel/preset-env", {"modules": False, "loose": True, "targets": targets}],
            ["@babel/preset-react"] if project.has_any_dependency(UI_FRAMEWORK) else None,
            ["@babel/preset-typescript"] if env.typescript else None,
        ]
    )


def plugins(project: Project, env: BuildEnvironment) -> list[Entry]:
    treeshake = env.tree_shaking
    return _compact(
        [
            ["@babel/plugin-transform-runtime", {"useESModules": treeshake and not env.is_cjs}],
            ["babel-plugin-macros"],
            ["@babel/plugin-proposal-class-properties", {"loose": True}],
            ["@babel/plugin-proposal-object-rest-spread"],
            ["babel-plugin-minify-dead-code-elimination"],
            ["@babel/plugin-proposal-optional-chaining"] if env.typescript else None,
            (
                ["babel-plugin-module-resolver", {"root": ["./src"], "alias": env.alias}]
                if env.alias
                else None
            ),
            (
                ["babel-plugin-transform-react-remove-prop-types", {"mode": "unsafe-wrap"}]
                if project.has_any_dependency(UI_FRAMEWORK)
                else None
            ),
            (
                [
                    "babel-plugin-transform-rename-import",
                    {"replacements": [{"original": "lodash", "replacement": "lodash-es"}]},
                ]
                if treeshake and not env.is_cjs
                else None
            ),
            ["babel-plugin-transform-inline-environment-variables"] if env.is_umd else None,
            ["@babel/plugin-transform-modules-commonjs"] if not treeshake else None,
        ]
    )


def transpile_config(project: Project, env: BuildEnvironment) -> tuple[dict[str, Any], dict[str, Any]]:
    """Return ``(config, environment_targets)`` for *env*.

    Raises :class:`~bundlekit.errors.AmbiguousVersionRange` when node targets
    are needed and ``engines.node`` has no usable lower bound.
    """
    targets = environment_targets(project, env)
    config = {
        "babelrc": False,
        "presets": presets(project, env, targets),
        "plugins": plugins(project, env),
    }
    return config, targets
