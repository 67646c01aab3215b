"""Bundle build orchestration: formats → tasks → configs → concurrent builds.

Configs are resolved one task at a time, each from that task's own frozen
:class:`BuildEnvironment`, before any build starts. Builds then run
concurrently; results are reported in request order and a failed format
never cancels its siblings.
"""

from __future__ import annotations

import asyncio
import shutil
from collections.abc import AsyncIterable, AsyncIterator
from dataclasses import dataclass
from pathlib import Path

from watchfiles import DefaultFilter, awatch

from bundlekit import messages
from bundlekit.buildpacks.rollup import Bundler, RollupBundler
from bundlekit.buildpacks.tsc import emit_declarations
from bundlekit.configs.bundle import DEFAULT_FORMATS, get_watch_include, parse_formats
from bundlekit.detect.project import Project
from bundlekit.environment import BuildEnvironment, parse_environment_option
from bundlekit.errors import BuildFailure
from bundlekit.logging import get_logger
from bundlekit.resolve import resolve_bundle
from bundlekit.types import BuildResult, BuildTask, WatchEvent

RUNTIME_HELPERS = "@babel/runtime"

log = get_logger(__name__)


@dataclass
class BundleOptions:
    input: str
    formats: str = DEFAULT_FORMATS
    out_dir: str = "dist"
    watch: bool = False
    config: str | None = None
    environment: str | None = None
    clean: bool = False


def derive_tasks(
    formats: str,
    base: BuildEnvironment,
    *,
    input: str,
    out_dir: str,
    watch: bool = False,
    typescript: bool = False,
) -> list[BuildTask]:
    """One task per requested format, e.g. ``"esm,cjs,umd.min"`` -> 3 tasks."""
    return [
        BuildTask(
            spec=spec,
            format=name,
            minify=minify,
            environment=base.with_task(
                format=name,
                minify=minify,
                watch=watch,
                typescript=typescript,
                input=input,
                output=out_dir,
            ),
        )
        for spec, name, minify in parse_formats(formats)
    ]


def resolve_tasks(project: Project, tasks: list[BuildTask], explicit: str | None = None) -> None:
    """Attach a config to every task, strictly in order."""
    for task in tasks:
        task.config = resolve_bundle(project, task.environment, explicit)
        log.debug("resolved", extra={"context": {"task": task.spec, "source": task.config.source.value}})


async def _build_one(bundler: Bundler, task: BuildTask) -> BuildResult:
    try:
        await bundler.build(task)
    except BuildFailure as e:
        return BuildResult(task=task, error=e)
    return BuildResult(task=task)


async def build_all(bundler: Bundler, tasks: list[BuildTask]) -> list[BuildResult]:
    return list(await asyncio.gather(*(_build_one(bundler, task) for task in tasks)))


async def run_bundles(
    project: Project,
    tasks: list[BuildTask],
    bundler: Bundler,
    *,
    declarations_dir: str | None = None,
) -> int:
    """Build every task once; 0 when all formats (and declarations) succeed."""
    results = await build_all(bundler, tasks)
    for result in results:
        if result.error is None:
            messages.chunk_success(result.task.spec)
        else:
            messages.chunk_error(result.task.spec, result.error)
    succeeded = sum(1 for r in results if r.ok)
    ok = succeeded == len(results)
    if declarations_dir is not None:
        ok = await asyncio.to_thread(emit_declarations, project, declarations_dir) and ok
    messages.bundle_summary(succeeded, len(results))
    return 0 if ok else 1


async def _cycle(bundler: Bundler, tasks: list[BuildTask]) -> AsyncIterator[WatchEvent]:
    yield WatchEvent("START")
    results = await build_all(bundler, tasks)
    for result in results:
        if result.error is not None:
            yield WatchEvent("ERROR", error=result.error)
    yield WatchEvent("END", count=sum(1 for r in results if r.ok))


async def watch_events(
    bundler: Bundler, tasks: list[BuildTask], changes: AsyncIterable[object]
) -> AsyncIterator[WatchEvent]:
    """Initial build, then one rebuild per batch of *changes*."""
    async for event in _cycle(bundler, tasks):
        yield event
    async for _ in changes:
        async for event in _cycle(bundler, tasks):
            yield event


def watch_paths(project: Project, tasks: list[BuildTask]) -> list[Path]:
    include: list[str] = []
    for task in tasks:
        payload = task.config.payload if task.config is not None else None
        watch = (payload or {}).get("watch") or {}
        include += watch.get("include") or get_watch_include(task.environment.input)
    paths: list[Path] = []
    for pattern in dict.fromkeys(include):
        directory = project.from_root(pattern.removesuffix("**").rstrip("/") or ".").resolve()
        if directory.is_dir() and directory not in paths:
            paths.append(directory)
    return paths or [project.root]


def _watch_filter(project: Project, out_dir: str) -> DefaultFilter:
    return DefaultFilter(
        ignore_dirs=(*DefaultFilter.ignore_dirs, "node_modules"),
        ignore_paths=(project.from_root(out_dir).resolve(),),
    )


async def watch_bundles(
    project: Project,
    tasks: list[BuildTask],
    bundler: Bundler,
    *,
    out_dir: str = "dist",
    changes: AsyncIterable[object] | None = None,
) -> int:
    """Rebuild on every change until interrupted. Build errors are reported, never fatal."""
    messages.watch_started()
    if changes is None:
        changes = awatch(*watch_paths(project, tasks), watch_filter=_watch_filter(project, out_dir))
    async for event in watch_events(bundler, tasks, changes):
        if event.code == "START":
            messages.watch_build_start()
        elif event.code == "ERROR" and event.error is not None:
            messages.watch_error(event.code, event.error)
        elif event.code == "END":
            messages.watch_build_success(event.count)
    return 0


def build_bundles(project: Project, options: BundleOptions, bundler: Bundler | None = None) -> int:
    messages.welcome("build bundler")

    typescript = project.is_typescript
    parsed = parse_formats(options.formats)
    if any(not name.startswith("umd") for _, name, _ in parsed) and not project.has_dependency(
        RUNTIME_HELPERS
    ):
        messages.runtime_helper_warning()

    if options.clean:
        shutil.rmtree(project.from_root(options.out_dir), ignore_errors=True)

    base = BuildEnvironment.from_environ(overrides=parse_environment_option(options.environment))
    tasks = derive_tasks(
        options.formats,
        base,
        input=options.input,
        out_dir=options.out_dir,
        watch=options.watch,
        typescript=typescript,
    )
    resolve_tasks(project, tasks, options.config)
    bundler = bundler or RollupBundler(project)

    if options.watch:
        return asyncio.run(watch_bundles(project, tasks, bundler, out_dir=options.out_dir))
    return asyncio.run(
        run_bundles(
            project,
            tasks,
            bundler,
            declarations_dir=options.out_dir if typescript else None,
        )
    )
