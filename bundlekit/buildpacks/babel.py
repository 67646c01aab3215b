"""Per-file transpiler build: every matched source becomes one ``.js`` file.

Files are transpiled concurrently with the babel CLI; a file that fails is
reported and the batch carries on.
"""

from __future__ import annotations

import asyncio
import fnmatch
import glob
import os
import shutil
from dataclasses import dataclass, field
from pathlib import Path, PurePosixPath

from bundlekit import messages, tools
from bundlekit.buildpacks.tsc import emit_declarations
from bundlekit.detect.project import Project
from bundlekit.environment import BuildEnvironment
from bundlekit.errors import BuildFailure
from bundlekit.logging import get_logger
from bundlekit.resolve import resolve_transpile

DEFAULT_INPUT = "src/**/*"
DEFAULT_IGNORE = "**/node_modules/**,**/__mocks__/**,**/__tests__/**,**/__fixtures__/**,**/__coverage__/**"
SOURCE_SUFFIXES = (".ts", ".tsx", ".jsx", ".mjs")
MAX_PARALLEL = 8

log = get_logger(__name__)


@dataclass
class TranspileOptions:
    input: str = DEFAULT_INPUT
    out_dir: str = "dist"
    ignore: list[str] = field(default_factory=list)
    copy_files: list[str] = field(default_factory=list)
    clean: bool = False


def _matches(path: str, pattern: str) -> bool:
    if fnmatch.fnmatch(path, pattern):
        return True
    # "**/" also matches zero directories
    return pattern.startswith("**/") and fnmatch.fnmatch(path, pattern[3:])


def collect_sources(pattern: str, ignore: list[str], root: Path | None = None) -> list[str]:
    """Files matched by *pattern*, minus ignored ones, declarations and READMEs."""
    matched = glob.glob(pattern, root_dir=root, recursive=True)
    files: list[str] = []
    for name in sorted(matched):
        if not (Path(root or ".") / name).is_file():
            continue
        posix = PurePosixPath(Path(name).as_posix()).as_posix()
        if posix.endswith(".d.ts") or "README" in posix:
            continue
        if any(_matches(posix, p) for p in ignore):
            continue
        files.append(posix)
    return files


def output_path(source: str) -> str:
    """``src/a/b.tsx`` -> ``a/b.js``; the first path segment is dropped."""
    path = PurePosixPath(source)
    if path.suffix in SOURCE_SUFFIXES:
        path = path.with_suffix(".js")
    parts = path.parts
    return "/".join(parts[1:]) if len(parts) > 1 else path.name


def is_copied(source: str, copy_files: list[str]) -> bool:
    return not PurePosixPath(source).suffix or any(_matches(source, p) for p in copy_files)


def _failure(stderr: str, returncode: int) -> BuildFailure:
    lines = stderr.strip().splitlines()
    if not lines:
        return BuildFailure(f"babel exited with status {returncode}")
    return BuildFailure(lines[0].strip(), frame="\n".join(lines[1:]).strip() or None)


async def _transpile_one(
    babel: str,
    source: str,
    dest: Path,
    *,
    root: Path,
    config: Path | None,
    env: dict[str, str],
    limit: asyncio.Semaphore,
) -> None:
    argv = [babel, source, "--out-file", str(dest)]
    if config is not None:
        argv += ["--config-file", str(config)]
    async with limit:
        dest.parent.mkdir(parents=True, exist_ok=True)
        result = await tools.run_tool_async(argv, cwd=root, env=env)
    if result.returncode != 0:
        raise _failure(result.stderr or result.stdout, result.returncode)


async def transpile_all(
    project: Project,
    sources: list[str],
    options: TranspileOptions,
    environment: BuildEnvironment,
    *,
    root: Path,
) -> list[tuple[str, Path, BuildFailure | None]]:
    """Transpile or copy every source; results keep the order of *sources*."""
    if not sources:
        return []
    resolved = resolve_transpile(project, environment)
    config = resolved.path if resolved.builtin else None
    babel = tools.resolve_bin(project, "@babel/cli", executable="babel")
    env = environment.to_environ()
    limit = asyncio.Semaphore(MAX_PARALLEL)
    out_dir = Path(options.out_dir)
    if not out_dir.is_absolute():
        out_dir = root / out_dir

    async def one(source: str) -> tuple[str, Path, BuildFailure | None]:
        dest = out_dir / output_path(source)
        if is_copied(source, options.copy_files):
            try:
                dest.parent.mkdir(parents=True, exist_ok=True)
                shutil.copyfile(root / source, dest)
            except OSError as e:
                return source, dest, BuildFailure(f"Could not copy {source}: {e.strerror or e}")
            return source, dest, None
        try:
            await _transpile_one(babel, source, dest, root=root, config=config, env=env, limit=limit)
        except BuildFailure as e:
            return source, dest, e
        return source, dest, None

    return list(await asyncio.gather(*(one(s) for s in sources)))


def build_transpiled(project: Project, options: TranspileOptions) -> int:
    messages.welcome("build transpiler")

    if not project.has_dependency("@babel/runtime"):
        messages.runtime_helper_warning()

    typescript = project.is_typescript
    environment = BuildEnvironment(typescript=typescript, node_env="production")
    root = Path(os.getcwd())

    sources = collect_sources(options.input, options.ignore, root)
    if not sources:
        messages.glob_warning(options.input)

    if options.clean:
        shutil.rmtree(project.from_root(options.out_dir), ignore_errors=True)

    log.info("transpile", extra={"context": {"files": len(sources), "out_dir": options.out_dir}})
    results = asyncio.run(transpile_all(project, sources, options, environment, root=root))

    failed = 0
    for source, dest, error in results:
        if error is None:
            messages.wrote_file(os.path.relpath(dest, root))
        else:
            failed += 1
            messages.transpile_error(source, error)

    ok = failed == 0
    if typescript:
        ok = emit_declarations(project, options.out_dir) and ok
    messages.transpile_summary(len(results) - failed, failed)
    return 0 if ok else 1
