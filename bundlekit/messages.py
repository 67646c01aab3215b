"""Console status lines shown to the user.

Every line starts with a dim ``[HH:MM:SS]`` UTC timestamp. Tool output is
passed through untouched; these helpers only frame it.
"""

from __future__ import annotations

from datetime import UTC, datetime
from importlib import metadata

from rich.console import Console
from rich.markup import escape

from bundlekit.errors import BuildFailure

console = Console(highlight=False)

OK = "[green]✓[/green]"
FAIL = "[red]✗[/red]"


def _version() -> str:
    try:
        return metadata.version("bundlekit")
    except metadata.PackageNotFoundError:
        return "0.0.0"


def _stamp() -> str:
    return f"[dim]\\[{datetime.now(UTC).strftime('%H:%M:%S')}][/dim]"


def _line(text: str = "") -> None:
    if text:
        console.print(f"{_stamp()} {text}")
    else:
        console.print()


def _failure_lines(error: BuildFailure | BaseException) -> None:
    if isinstance(error, BuildFailure):
        _line(f"  {escape(error.describe())}")
        if error.frame:
            _line(f"  {escape(error.frame)}")
    else:
        _line(f"  {escape(str(error))}")


def welcome(command: str) -> None:
    _line(f"[bold cyan]bundlekit[/bold cyan] {command} [dim]v{_version()}[/dim]")
    _line()


def warning(*lines: str) -> None:
    _line("[bold black on yellow] WARNING [/bold black on yellow]")
    for text in lines:
        _line(f"  {text}")
    _line()


def runtime_helper_warning() -> None:
    warning(
        "You should add [magenta]@babel/runtime[/magenta] as dependency to your package",
        'when building your bundles. It will allow reusing "babel"',
        "helpers from node_modules rather than bundling their copies",
        "into your files.",
    )


def fatal(error: BaseException) -> None:
    _line("[bold white on red] ERROR [/bold white on red]")
    _failure_lines(error)


# --- bundler ---------------------------------------------------------------


def chunk_success(fmt: str) -> None:
    _line(f"{OK} Successfully compiled {fmt} bundle")


def chunk_error(fmt: str, error: BuildFailure) -> None:
    _line(f"{FAIL} Error(s) compiling {fmt} bundle:")
    _failure_lines(error)


def bundle_summary(succeeded: int, total: int) -> None:
    _line()
    if succeeded == total:
        _line(f"{OK} Successfully compiled {total} bundle(s)")
    else:
        _line(f"{FAIL} {total - succeeded} of {total} bundle(s) failed")


def watch_started() -> None:
    _line("Watching for changes... [dim](ctrl+c to exit)[/dim]")
    _line()


def watch_build_start() -> None:
    _line("Compiling...")


def watch_error(code: str, error: BuildFailure) -> None:
    _line(f"[bold white on red] {code} [/bold white on red]")
    _failure_lines(error)
    _line()


def watch_build_success(count: int) -> None:
    _line(f"{OK} Successfully compiled {count} files with Rollup.")


# --- transpiler ------------------------------------------------------------


def glob_warning(pattern: str) -> None:
    warning(
        f'"[magenta]{escape(pattern)}[/magenta]" does not match any files.',
        "Try checking your glob with https://globster.xyz/",
    )


def wrote_file(dest: str) -> None:
    _line(f"{OK} Created {escape(dest)}")


def transpile_summary(count: int, failed: int) -> None:
    _line()
    if failed:
        _line(f"{FAIL} {failed} file(s) failed to compile, {count} written with Babel")
    else:
        _line(f"{OK} Successfully compiled {count} file(s) with Babel")


def transpile_error(source: str, error: BuildFailure) -> None:
    _line(f"{FAIL} Error(s) compiling {escape(source)}:")
    _failure_lines(error)


# --- declarations / type check ---------------------------------------------


def typedefs_success() -> None:
    _line(f"{OK} Successfully generated type definitions")


def typedefs_error() -> None:
    _line(f"{FAIL} Error(s) while generating type definitions")


def typecheck_success() -> None:
    _line(f"{OK} Successfully type-checked sources")


def typecheck_error() -> None:
    _line(f"{FAIL} Error(s) while type-checking sources")


# --- lint / format / clean -------------------------------------------------


def lint_success() -> None:
    _line(f"{OK} Successfully linted sources")


def lint_error() -> None:
    _line(f"{FAIL} Error(s) while linting sources")


def format_success() -> None:
    _line(f"{OK} Successfully formatted sources")


def format_error() -> None:
    _line(f"{FAIL} Error(s) while formatting sources")


def test_finished(status: int) -> None:
    if status == 0:
        _line(f"{OK} Test run finished")
    else:
        _line(f"{FAIL} Test run failed")


def precommit_finished(status: int) -> None:
    if status == 0:
        _line(f"{OK} Pre-commit tasks passed")
    else:
        _line(f"{FAIL} Pre-commit tasks failed")


def removed(path: str) -> None:
    _line(f"{OK} Removed {escape(path)}")


def remove_failed(path: str, reason: str) -> None:
    _line(f"{FAIL} Could not remove {escape(path)}: {escape(reason)}")


def clean_summary(ok: bool) -> None:
    _line()
    if ok:
        _line(f"{OK} Successfully cleaned working directory")
    else:
        _line(f"{FAIL} Error(s) while cleaning the working directory")


# --- setup -----------------------------------------------------------------


def setup_step(ok: bool, text: str) -> None:
    _line(f"{OK if ok else FAIL} {escape(text)}")


def setup_summary(errors: int) -> None:
    _line()
    if errors == 0:
        _line(f"{OK} Successfully setup project")
    else:
        _line(f"{FAIL} {errors} error(s) while setting up project")


