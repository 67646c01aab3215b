from __future__ import annotations

import json
from pathlib import Path

import pytest

from bundlekit.configs.bundle import (
    NODE_BUILTINS,
    bundle_config,
    camel_case,
    default_external,
    get_watch_include,
    external_pattern,
    is_external,
    parse_formats,
)
from bundlekit.detect.project import Project, load_project
from bundlekit.environment import BuildEnvironment
from bundlekit.errors import InvalidOption
from bundlekit.resolve import resolve_transpile


def _project(root: Path, **fields) -> Project:
    data = {"name": "@acme/my-widget", **fields}
    (root / "package.json").write_text(json.dumps(data), encoding="utf-8")
    return load_project(root)


def _env(fmt: str, minify: bool = False, **overrides: str) -> BuildEnvironment:
    return BuildEnvironment.from_environ({}, overrides).with_task(
        format=fmt, minify=minify, watch=False, typescript=False, input="src/index.js", output="dist"
    )


def _config(project: Project, env: BuildEnvironment) -> dict:
    return bundle_config(project, env, resolve_transpile(project, env, write=False))


def test_parse_formats_default_list() -> None:
    assert parse_formats("esm,cjs,umd,umd.min") == [
        ("esm", "esm", False),
        ("cjs", "cjs", False),
        ("umd", "umd", False),
        ("umd.min", "umd", True),
    ]


@pytest.mark.parametrize("formats", ["", "esm,webpack", "umd.max", " , "])
def test_parse_formats_rejects_bad_input(formats: str) -> None:
    with pytest.raises(InvalidOption):
        parse_formats(formats)


def test_watch_include_covers_input_directories() -> None:
    assert get_watch_include("deeply/nested/index.ts") == ["deeply/nested/**"]
    assert get_watch_include("index.ts") == ["./**"]
    assert get_watch_include(["src/a.ts", "lib/b.ts"]) == ["src/**", "lib/**"]


def test_names_are_camel_cased() -> None:
    assert camel_case("react-dom") == "reactDom"
    assert camel_case("@acme/my-widget") == "acmeMyWidget"


def test_umd_only_externalizes_peers(tmp_path: Path) -> None:
    project = _project(
        tmp_path, dependencies={"lodash": "^4.0.0"}, peerDependencies={"react": ">=16.8"}
    )

    assert default_external(project, _env("umd")) == ["react"]
    cjs = default_external(project, _env("cjs"))
    assert cjs[:2] == ["lodash", "react"]
    assert "fs" in cjs and len(cjs) == 2 + len(NODE_BUILTINS)


def test_esm_bundle_config(tmp_path: Path) -> None:
    project = _project(tmp_path, peerDependencies={"react-dom": ">=16.8"})
    (tmp_path / "src").mkdir()
    (tmp_path / "src" / "index.js").write_text("export default 1;\n", encoding="utf-8")

    config = _config(project, _env("esm"))

    assert config["input"] == ["src/index.js"]
    assert config["output"]["dir"] == "dist/esm"
    assert config["output"]["name"] == "AcmeMyWidget"
    assert config["output"]["entryFileNames"] == "[name].[format].js"
    assert config["output"]["exports"] == "named"
    assert config["output"]["globals"] == {"react-dom": "Reactdom"}
    assert config["output"]["sourcemap"] is False
    assert [name for name, _ in config["plugins"]] == [
        "node-resolve",
        "commonjs",
        "json",
        "eslint",
        "babel",
        "replace",
    ]
    assert "watch" not in config


def test_minified_umd_bundle_config(tmp_path: Path) -> None:
    project = _project(tmp_path)

    config = _config(project, _env("umd", minify=True, BUILD_NAME="Widget"))
    plugins = dict((name, options) for name, options in config["plugins"])

    assert config["output"]["name"] == "Widget"
    assert config["output"]["entryFileNames"] == "[name].[format].min.js"
    assert config["output"]["sourcemap"] is True
    assert plugins["terser"]["toplevel"] is False
    values = plugins["replace"]["values"]
    assert values["process.env.BUILD_FORMAT"] == '"umd"'
    assert values["process.env.NODE_ENV"] == '"production"'
    assert values["process.env.BUILD_MINIFY"] == "true"


def test_node_env_is_not_inlined_outside_umd(tmp_path: Path) -> None:
    project = _project(tmp_path)
    config = _config(project, _env("cjs"))
    replace = dict((name, options) for name, options in config["plugins"])["replace"]
    assert "process.env.NODE_ENV" not in replace["values"]


def test_external_override_and_filename_affixes(tmp_path: Path) -> None:
    project = _project(tmp_path, dependencies={"lodash": "^4.0.0"})
    env = _env(
        "esm",
        BUILD_EXTERNAL='["lodash","lodash"]',
        BUILD_FILENAME_PREFIX="packages",
        BUILD_FILENAME_SUFFIX=".browser",
    )

    config = _config(project, env)

    assert config["external"] == ["lodash"]
    assert config["output"]["dir"] == "packages/dist/esm"
    assert config["output"]["entryFileNames"] == "[name].browser.[format].js"


def test_watch_section_only_in_watch_mode(tmp_path: Path) -> None:
    project = _project(tmp_path)
    env = BuildEnvironment().with_task(
        format="esm", minify=False, watch=True, typescript=False, input="src/index.js", output="dist"
    )
    assert _config(project, env)["watch"] == {"include": ["src/**"], "exclude": ["node_modules/**"]}


def test_umd_keeps_peer_subpaths_external(tmp_path: Path) -> None:
    project = _project(
        tmp_path, dependencies={"lodash": "^4.0.0"}, peerDependencies={"react-dom": ">=16.8"}
    )

    config = _config(project, _env("umd"))

    assert config["externalizeBareImports"] is False
    assert is_external(config, "react-dom")
    assert is_external(config, "react-dom/client")
    assert not is_external(config, "react-domino")
    assert not is_external(config, "lodash/debounce")
    assert not is_external(config, "./local")


def test_esm_leaves_every_bare_import_external(tmp_path: Path) -> None:
    project = _project(tmp_path)

    config = _config(project, _env("esm"))

    assert config["externalizeBareImports"] is True
    assert is_external(config, "some-pkg/sub")
    assert is_external(config, "fs")
    assert is_external(config, "/repo/node_modules/some-pkg/index.js")
    assert not is_external(config, "./util")
    assert not is_external(config, "/repo/src/util.js")


def test_external_pattern_escapes_package_names() -> None:
    pattern = external_pattern(["lodash.debounce", "@acme/ui"])

    assert pattern == r"^(lodash\.debounce|@acme/ui)($|/)"
    assert external_pattern([]) is None
    config = {"externalPattern": pattern, "externalizeBareImports": False}
    assert is_external(config, "@acme/ui/button")
    assert not is_external(config, "lodashXdebounce")
