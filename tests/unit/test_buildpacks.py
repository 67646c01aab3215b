from __future__ import annotations

import asyncio
import json
from pathlib import Path

import pytest

from bundlekit import tools
from bundlekit.buildpacks import babel
from bundlekit.buildpacks.babel import (
    TranspileOptions,
    build_transpiled,
    collect_sources,
    is_copied,
    output_path,
)
from bundlekit.buildpacks.rollup import OPTIONS_VARIABLE, RollupBundler, parse_failure
from bundlekit.core import derive_tasks, resolve_tasks
from bundlekit.detect.project import Project, load_project
from bundlekit.environment import BuildEnvironment
from bundlekit.errors import BuildFailure
from bundlekit.tools import ToolOutput

ROLLUP_ERROR = """\
\x1b[36msrc/index.ts → dist/esm...\x1b[39m
\x1b[1m\x1b[31m[!] (plugin babel) SyntaxError: src/index.ts: Unexpected token (3:6)\x1b[39m\x1b[22m
src/index.ts (3:6)
  1 | export const a = 1;
> 3 | const = 2;
    |       ^
    at Parser._raise (node_modules/@babel/parser/lib/index.js:1:1)
    at Parser.raise (node_modules/@babel/parser/lib/index.js:1:1)
"""


def _project(root: Path, *bins: str, **fields) -> Project:
    data = {"name": "buildpacks", **fields}
    (root / "package.json").write_text(json.dumps(data), encoding="utf-8")
    bin_dir = root / "node_modules" / ".bin"
    bin_dir.mkdir(parents=True, exist_ok=True)
    for name in bins:
        (bin_dir / name).write_text("#!/bin/sh\n", encoding="utf-8")
    return load_project(root)


def test_parse_failure_extracts_plugin_message_and_frame() -> None:
    failure = parse_failure(ROLLUP_ERROR, 1)

    assert failure.plugin == "babel"
    assert failure.message == "SyntaxError: src/index.ts: Unexpected token (3:6)"
    assert failure.frame is not None
    assert "> 3 | const = 2;" in failure.frame
    assert "Parser._raise" not in failure.frame
    assert failure.describe().startswith("(babel) SyntaxError")


def test_parse_failure_without_header_uses_last_line() -> None:
    failure = parse_failure("something odd\nError: rollup crashed\n", 2)
    assert failure.message == "Error: rollup crashed"
    assert failure.plugin is None

    assert parse_failure("", 7).message == "rollup exited with status 7"


def test_rollup_argv_for_built_in_and_project_configs(tmp_path: Path) -> None:
    project = _project(tmp_path, "rollup")
    tasks = derive_tasks("esm", BuildEnvironment.from_environ({}), input="src/index.js", out_dir="dist")
    resolve_tasks(project, tasks)
    bundler = RollupBundler(project)

    argv = bundler.argv(tasks[0])
    assert Path(argv[0]).name == "rollup"
    loader = Path(argv[argv.index("--config") + 1])
    assert loader.name == "rollup.config.mjs"
    assert "externalPattern" in loader.read_text(encoding="utf-8")
    options = Path(bundler.environ(tasks[0])[OPTIONS_VARIABLE])
    assert options.name == "rollup.esm.json"
    assert json.loads(options.read_text(encoding="utf-8"))["output"]["format"] == "esm"

    (tmp_path / "rollup.config.js").write_text("export default {}\n", encoding="utf-8")
    resolve_tasks(project, tasks)
    assert bundler.argv(tasks[0])[1:] == ["--config", str(project.from_root("rollup.config.js"))]
    assert OPTIONS_VARIABLE not in bundler.environ(tasks[0])


@pytest.mark.timeout(10)
def test_rollup_build_passes_task_environment_and_raises_on_failure(tmp_path, monkeypatch) -> None:
    project = _project(tmp_path, "rollup")
    tasks = derive_tasks("esm,cjs", BuildEnvironment.from_environ({}), input="src/index.js", out_dir="dist")
    resolve_tasks(project, tasks)
    seen: dict[str, dict[str, str]] = {}

    async def fake_run(argv, *, cwd=None, env=None):
        fmt = env["BUILD_FORMAT"]
        seen[fmt] = dict(env)
        if fmt == "cjs":
            return ToolOutput(1, "", ROLLUP_ERROR)
        return ToolOutput(0, "", "")

    monkeypatch.setattr(tools, "run_tool_async", fake_run)
    bundler = RollupBundler(project)

    asyncio.run(bundler.build(tasks[0]))
    with pytest.raises(BuildFailure) as info:
        asyncio.run(bundler.build(tasks[1]))

    assert info.value.plugin == "babel"
    assert Path(seen["esm"][OPTIONS_VARIABLE]).name == "rollup.esm.json"
    assert Path(seen["cjs"][OPTIONS_VARIABLE]).name == "rollup.cjs.json"


@pytest.mark.parametrize(
    ("source", "expected"),
    [
        ("src/index.ts", "index.js"),
        ("src/components/Button.tsx", "components/Button.js"),
        ("src/module.mjs", "module.js"),
        ("src/view.jsx", "view.js"),
        ("src/styles.css", "styles.css"),
        ("index.js", "index.js"),
    ],
)
def test_output_path(source: str, expected: str) -> None:
    assert output_path(source) == expected


def test_collect_sources_skips_declarations_readmes_and_ignored(tmp_path: Path) -> None:
    for name in [
        "src/index.ts",
        "src/types.d.ts",
        "src/README.md",
        "src/__tests__/index.test.ts",
        "src/lib/util.js",
    ]:
        path = tmp_path / name
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text("", encoding="utf-8")

    found = collect_sources("src/**/*", ["**/__tests__/**"], tmp_path)

    assert found == ["src/index.ts", "src/lib/util.js"]


def test_files_without_extension_are_copied() -> None:
    assert is_copied("src/LICENSE", [])
    assert is_copied("src/data/en.json", ["**/*.json"])
    assert not is_copied("src/index.ts", ["**/*.json"])


@pytest.mark.timeout(20)
def test_transpile_build_continues_past_failing_files(tmp_path, monkeypatch, capsys) -> None:
    project = _project(tmp_path, "babel")
    monkeypatch.chdir(tmp_path)
    src = tmp_path / "src"
    (src / "nested").mkdir(parents=True)
    (src / "good.ts").write_text("export const a: number = 1;\n", encoding="utf-8")
    (src / "nested" / "bad.ts").write_text("const = ;\n", encoding="utf-8")
    (src / "VERSION").write_text("1.0.0\n", encoding="utf-8")
    calls: list[list[str]] = []

    async def fake_run(argv, *, cwd=None, env=None):
        calls.append(list(argv))
        source, dest = argv[1], Path(argv[argv.index("--out-file") + 1])
        assert env["NODE_ENV"] == "production"
        if source.endswith("bad.ts"):
            return ToolOutput(1, "", "SyntaxError: src/nested/bad.ts: Unexpected token (1:6)\n> 1 | const = ;\n")
        dest.write_text("compiled", encoding="utf-8")
        return ToolOutput(0, "", "")

    monkeypatch.setattr(tools, "run_tool_async", fake_run)

    status = build_transpiled(project, TranspileOptions(input="src/**/*", out_dir="lib"))

    out = capsys.readouterr().out
    assert status == 1
    assert (tmp_path / "lib" / "good.js").read_text(encoding="utf-8") == "compiled"
    assert (tmp_path / "lib" / "VERSION").read_text(encoding="utf-8") == "1.0.0\n"
    assert not (tmp_path / "lib" / "nested" / "bad.js").exists()
    assert len(calls) == 2
    assert all("--config-file" in argv for argv in calls)
    assert "Unexpected token" in out
    assert "1 file(s) failed" in out


@pytest.mark.timeout(10)
def test_transpile_build_warns_on_empty_glob(tmp_path, monkeypatch, capsys) -> None:
    project = _project(tmp_path, "babel", dependencies={"@babel/runtime": "^7.0.0"})
    monkeypatch.chdir(tmp_path)

    status = build_transpiled(project, TranspileOptions(input="nothing/**/*.ts"))

    out = capsys.readouterr().out
    assert status == 0
    assert "does not match any files" in out
    assert "@babel/runtime" not in out


@pytest.mark.timeout(10)
def test_transpile_build_emits_declarations_for_typescript(tmp_path, monkeypatch) -> None:
    project = _project(tmp_path, "babel")
    monkeypatch.chdir(tmp_path)
    (tmp_path / "tsconfig.json").write_text("{}", encoding="utf-8")
    emitted: list[str] = []
    monkeypatch.setattr(babel, "emit_declarations", lambda p, out: emitted.append(out) or False)

    status = build_transpiled(project, TranspileOptions(input="src/**/*", out_dir="dist"))

    assert emitted == ["dist"]
    assert status == 1


@pytest.mark.timeout(10)
def test_transpile_build_reports_copy_failures_per_file(tmp_path, monkeypatch, capsys) -> None:
    project = _project(tmp_path, "babel", dependencies={"@babel/runtime": "^7.0.0"})
    monkeypatch.chdir(tmp_path)
    (tmp_path / "src").mkdir()
    (tmp_path / "src" / "index.js").write_text("export default 1;\n", encoding="utf-8")
    (tmp_path / "src" / "VERSION").write_text("1.0.0\n", encoding="utf-8")
    # a directory in the way makes the copy fail
    (tmp_path / "lib" / "VERSION").mkdir(parents=True)

    async def fake_run(argv, *, cwd=None, env=None):
        Path(argv[argv.index("--out-file") + 1]).write_text("compiled", encoding="utf-8")
        return ToolOutput(0, "", "")

    monkeypatch.setattr(tools, "run_tool_async", fake_run)

    status = build_transpiled(project, TranspileOptions(input="src/**/*", out_dir="lib"))

    out = capsys.readouterr().out
    assert status == 1
    assert (tmp_path / "lib" / "index.js").read_text(encoding="utf-8") == "compiled"
    assert "Could not copy src/VERSION" in out
    assert "1 file(s) failed" in out
