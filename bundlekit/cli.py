"""bundlekit CLI: build, lint, format and test JavaScript/TypeScript packages.

Options bundlekit does not know are collected from the Typer context and
forwarded to the wrapped tool untouched, e.g.::

    bundlekit lint --max-warnings=0 src/index.ts
    bundlekit test --coverage
"""

from __future__ import annotations

from collections.abc import Callable
from enum import Enum
from pathlib import Path

import typer

from bundlekit import messages
from bundlekit.actions.clean import clean as clean_project
from bundlekit.actions.format import FormatOptions, format_sources
from bundlekit.actions.jest import JestOptions, run_tests
from bundlekit.actions.lint import LintOptions
from bundlekit.actions.lint import lint as lint_sources
from bundlekit.actions.precommit import pre_commit as run_pre_commit
from bundlekit.actions.setup import setup as setup_project
from bundlekit.buildpacks.babel import DEFAULT_IGNORE, DEFAULT_INPUT, TranspileOptions, build_transpiled
from bundlekit.configs.bundle import DEFAULT_FORMATS
from bundlekit.configs.lint import DEFAULT_EXTENSIONS
from bundlekit.core import BundleOptions, build_bundles
from bundlekit.detect.project import load_project
from bundlekit.errors import BundlekitError

PASSTHROUGH = {"allow_extra_args": True, "ignore_unknown_options": True}

app = typer.Typer(add_completion=False, help="Build, lint, format and test JavaScript packages")
build_app = typer.Typer(help="Build bundles or transpiled files")
app.add_typer(build_app, name="build")


def _run(action: Callable[[], int]) -> None:
    try:
        status = action()
    except BundlekitError as e:
        messages.fatal(e)
        raise typer.Exit(code=1) from e
    raise typer.Exit(code=status)


def split_args(args: list[str]) -> tuple[list[str], list[str]]:
    """Separate pass-through flags from positional file arguments.

    Flags that take a value must use the ``--flag=value`` form.
    """
    flags = [a for a in args if a.startswith("-")]
    files = [a for a in args if not a.startswith("-")]
    return flags, files


def _split_list(value: str | None) -> list[str]:
    return [item.strip() for item in (value or "").split(",") if item.strip()]


class Template(str, Enum):
    empty = "empty"
    javascript = "javascript"
    typescript = "typescript"
    react_ts = "react-ts"
    react_js = "react-js"


@app.command()
def setup(
    template: Template = typer.Option(
        Template.empty, "--template", "-t", prompt="Pick a starter template", help="Starter template"
    ),
) -> None:
    """Prepare the package in the current directory for bundlekit."""
    _run(lambda: setup_project(Path.cwd(), template.value))


@build_app.command("bundler")
def build_bundler(
    input: str = typer.Argument(..., help="Entry file, e.g. src/index.ts"),
    config: str | None = typer.Option(
        None, "--config", help="Config file (defaults to rollup.config.js or the built-in config)"
    ),
    watch: bool = typer.Option(False, "--watch", "-w", help="Rebuild on changes"),
    out_dir: str = typer.Option("dist", "--dir", "-d", help="Output directory"),
    formats: str = typer.Option(
        DEFAULT_FORMATS, "--format", "-f", help="Comma separated output formats (esm, cjs, umd, ...)"
    ),
    environment: str | None = typer.Option(
        None, "--environment", "-e", help="Build settings, KEY:value,OTHER_KEY:value"
    ),
    clean: bool = typer.Option(False, "--clean", "-c", help="Empty the output directory first"),
) -> None:
    """Bundle the package into one file per format."""
    options = BundleOptions(
        input=input,
        formats=formats,
        out_dir=out_dir,
        watch=watch,
        config=config,
        environment=environment,
        clean=clean,
    )
    try:
        _run(lambda: build_bundles(load_project(), options))
    except KeyboardInterrupt:
        raise typer.Exit(code=0) from None


@build_app.command("transpiler")
def build_transpiler(
    input: str = typer.Argument(DEFAULT_INPUT, help="Glob of source files"),
    out_dir: str = typer.Option("dist", "--out-dir", "-d", help="Output directory"),
    ignore: str = typer.Option(DEFAULT_IGNORE, "--ignore", help="Comma separated globs to skip"),
    copy_files: str | None = typer.Option(
        None, "--copy-files", help="Comma separated globs copied to the output as-is"
    ),
    clean: bool = typer.Option(False, "--clean", "-c", help="Empty the output directory first"),
) -> None:
    """Transpile every source file on its own."""
    options = TranspileOptions(
        input=input,
        out_dir=out_dir,
        ignore=_split_list(ignore),
        copy_files=_split_list(copy_files),
        clean=clean,
    )
    _run(lambda: build_transpiled(load_project(), options))


@app.command(context_settings=PASSTHROUGH)
def lint(
    ctx: typer.Context,
    config: str | None = typer.Option(None, "--config", help="eslint config file"),
    ignore_path: str | None = typer.Option(None, "--ignore-path", help="eslint ignore file"),
    cache: bool = typer.Option(True, "--cache/--no-cache", help="Use the eslint cache"),
    ext: str = typer.Option(DEFAULT_EXTENSIONS, "--ext", help="File extensions to lint"),
) -> None:
    """Type check (TypeScript) and lint the sources."""
    flags, files = split_args(ctx.args)
    options = LintOptions(
        config=config, ignore_path=ignore_path, cache=cache, ext=ext, files=files, passthrough=flags
    )
    _run(lambda: lint_sources(load_project(), options))


@app.command(context_settings=PASSTHROUGH)
def format(
    ctx: typer.Context,
    config: str | None = typer.Option(None, "--config", help="prettier config file"),
    ignore_path: str | None = typer.Option(None, "--ignore-path", help="prettier ignore file"),
    write: bool = typer.Option(True, "--write/--no-write", help="Rewrite files in place"),
) -> None:
    """Format the sources with prettier."""
    flags, files = split_args(ctx.args)
    options = FormatOptions(
        config=config, ignore_path=ignore_path, write=write, files=files, passthrough=flags
    )
    _run(lambda: format_sources(load_project(), options))


@app.command(context_settings=PASSTHROUGH)
def test(
    ctx: typer.Context,
    config: str | None = typer.Option(None, "--config", help="jest config file"),
    watch: bool = typer.Option(False, "--watch", "-w", help="Run jest in watch mode"),
) -> None:
    """Run the test suite with jest."""
    options = JestOptions(config=config, watch=watch, passthrough=list(ctx.args))
    _run(lambda: run_tests(load_project(), options))


@app.command()
def clean(
    patterns: list[str] | None = typer.Argument(None, help="Extra globs to remove"),
) -> None:
    """Remove node_modules, lock files and any extra globs."""
    _run(lambda: clean_project(load_project(), patterns or []))


@app.command("pre-commit", context_settings=PASSTHROUGH)
def pre_commit(
    ctx: typer.Context,
    config: str | None = typer.Option(None, "--config", help="lint-staged config file"),
) -> None:
    """Run lint-staged over the staged files."""
    _run(lambda: run_pre_commit(load_project(), config, list(ctx.args)))


if __name__ == "__main__":
    app()
