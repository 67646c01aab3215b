from __future__ import annotations

import json
from pathlib import Path

import pytest

from bundlekit.detect.project import Project, load_project
from bundlekit.environment import BuildEnvironment
from bundlekit.errors import ConfigNotFound, MalformedConfig
from bundlekit.resolve import (
    CACHE_DIR,
    config_flag,
    resolve_bundle,
    resolve_format,
    resolve_jest,
    resolve_lint,
    resolve_lint_ignore,
    resolve_precommit,
    resolve_transpile,
)
from bundlekit.types import ConfigSource


def _project(root: Path, **fields) -> Project:
    data = {"name": "resolve-lib", **fields}
    (root / "package.json").write_text(json.dumps(data), encoding="utf-8")
    return load_project(root)


def _task_env(fmt: str, minify: bool = False) -> BuildEnvironment:
    return BuildEnvironment().with_task(
        format=fmt, minify=minify, watch=False, typescript=False, input="src/index.js", output="dist"
    )


def test_built_in_config_is_materialized_in_the_cache(tmp_path: Path) -> None:
    project = _project(tmp_path)

    resolved = resolve_lint(project)

    assert resolved.source is ConfigSource.BUILT_IN
    assert resolved.path == tmp_path.resolve().joinpath(*CACHE_DIR, "eslintrc.json")
    written = json.loads(resolved.path.read_text(encoding="utf-8"))
    assert written == resolved.payload
    # no react dependency, no react rules
    assert not any(rule.startswith("react/") for rule in written["rules"])
    assert config_flag(resolved) == ["--config", str(resolved.path)]


def test_dedicated_file_wins_over_descriptor_property(tmp_path: Path) -> None:
    project = _project(tmp_path, eslintConfig={"extends": ["from-package-json"]})
    (tmp_path / ".eslintrc.json").write_text('{"extends": ["from-file"]}', encoding="utf-8")

    resolved = resolve_lint(project)

    assert resolved.source is ConfigSource.PROJECT_FILE
    assert resolved.path == project.from_root(".eslintrc.json")
    assert resolved.descriptor_property is None
    assert resolved.payload is None
    assert config_flag(resolved) == []


def test_descriptor_property_is_used_when_no_file_exists(tmp_path: Path) -> None:
    project = _project(tmp_path, eslintConfig={"extends": ["from-package-json"]})

    resolved = resolve_lint(project)

    assert resolved.source is ConfigSource.PROJECT_FILE
    assert resolved.descriptor_property == "eslintConfig"
    assert resolved.path == project.descriptor_path
    assert resolved.payload == {"extends": ["from-package-json"]}


def test_explicit_config_wins_over_everything(tmp_path: Path, monkeypatch) -> None:
    monkeypatch.chdir(tmp_path)
    project = _project(tmp_path, eslintConfig={})
    (tmp_path / ".eslintrc.json").write_text("{}", encoding="utf-8")
    (tmp_path / "custom.json").write_text('{"root": true}', encoding="utf-8")

    resolved = resolve_lint(project, "custom.json")

    assert resolved.source is ConfigSource.INLINE_OVERRIDE
    assert resolved.path.resolve() == (tmp_path / "custom.json").resolve()
    flag, path = config_flag(resolved)
    assert flag == "--config"
    assert Path(path).resolve() == (tmp_path / "custom.json").resolve()


def test_missing_explicit_config_is_fatal(tmp_path: Path) -> None:
    project = _project(tmp_path)
    with pytest.raises(ConfigNotFound):
        resolve_lint(project, str(tmp_path / "nope.json"))


def test_malformed_strict_json_config_is_fatal(tmp_path: Path) -> None:
    project = _project(tmp_path)
    (tmp_path / ".prettierrc.json").write_text('{"semi": false,}', encoding="utf-8")

    with pytest.raises(MalformedConfig) as info:
        resolve_format(project)

    assert ".prettierrc.json" in str(info.value)


def test_strict_json_config_is_parsed(tmp_path: Path) -> None:
    project = _project(tmp_path)
    (tmp_path / ".prettierrc.json").write_text('{"semi": false}', encoding="utf-8")

    assert resolve_format(project).payload == {"semi": False}


def test_commented_eslint_config_is_left_to_eslint(tmp_path: Path) -> None:
    project = _project(tmp_path)
    (tmp_path / ".eslintrc.json").write_text('{ // house rules\n "root": true }', encoding="utf-8")

    resolved = resolve_lint(project)

    assert resolved.source is ConfigSource.PROJECT_FILE
    assert resolved.path == project.from_root(".eslintrc.json")
    assert resolved.payload is None


def test_json5_babelrc_does_not_abort_bundle_resolution(tmp_path: Path) -> None:
    project = _project(tmp_path)
    (tmp_path / ".babelrc").write_text('{"presets": ["@babel/preset-env",],}', encoding="utf-8")

    transpile = resolve_transpile(project, BuildEnvironment())
    bundle = resolve_bundle(project, _task_env("esm"))

    assert transpile.source is ConfigSource.PROJECT_FILE
    assert transpile.payload is None
    babel = dict((name, options) for name, options in bundle.payload["plugins"])["babel"]
    assert babel["babelrc"] is True


def test_javascript_configs_are_passed_through_unparsed(tmp_path: Path) -> None:
    project = _project(tmp_path)
    (tmp_path / "rollup.config.js").write_text("export default {}\n", encoding="utf-8")

    resolved = resolve_bundle(project, _task_env("esm"))

    assert resolved.source is ConfigSource.PROJECT_FILE
    assert resolved.payload is None


def test_built_in_bundle_config_is_fresh_per_task(tmp_path: Path) -> None:
    project = _project(tmp_path)

    esm = resolve_bundle(project, _task_env("esm"))
    umd = resolve_bundle(project, _task_env("umd", minify=True))

    assert esm.builtin and umd.builtin
    assert esm.path.name == "rollup.esm.json"
    assert umd.path.name == "rollup.umd.min.json"
    assert json.loads(esm.path.read_text(encoding="utf-8")) == esm.payload
    assert esm.payload["output"]["dir"] == "dist/esm"
    assert umd.payload["output"]["dir"] == "dist/umd"
    assert umd.payload["output"]["sourcemap"] is True
    assert esm.environment_targets == {"browsers": ["ie 10", "ios 7"]}


def test_jest_uses_built_in_transform_only_without_project_babel_config(tmp_path: Path) -> None:
    project = _project(tmp_path)
    env = BuildEnvironment(test=True, node_env="test")

    built_in = resolve_jest(project, env)
    transform = next(iter(built_in.payload["transform"].values()))
    assert transform[0] == "babel-jest"
    assert Path(transform[1]["configFile"]).name == "babel-jest.json"

    (tmp_path / "babel.config.json").write_text("{}", encoding="utf-8")
    with_project_babel = resolve_jest(project, env)
    assert next(iter(with_project_babel.payload["transform"].values())) == "babel-jest"


def test_ignore_files_and_precommit_defaults(tmp_path: Path) -> None:
    project = _project(tmp_path)

    ignore = resolve_lint_ignore(project)
    staged = resolve_precommit(project)

    assert "node_modules/" in ignore.path.read_text(encoding="utf-8").splitlines()
    assert config_flag(ignore, "--ignore-path") == ["--ignore-path", str(ignore.path)]
    commands = next(iter(staged.payload.values()))
    assert commands == ["bundlekit format", "bundlekit lint"]

    (tmp_path / ".eslintignore").write_text("build/\n", encoding="utf-8")
    assert resolve_lint_ignore(project).source is ConfigSource.PROJECT_FILE
