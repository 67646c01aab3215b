"""TypeScript compiler passes: declaration output and type checking."""

from __future__ import annotations

from bundlekit import messages, tools
from bundlekit.detect.project import Project


def emit_declarations(project: Project, out_dir: str) -> bool:
    """Write ``.d.ts`` files to ``<out_dir>/types``. Runs once per build, after bundling."""
    tsc = tools.resolve_bin(project, "typescript", executable="tsc")
    status = tools.run_tool(
        [tsc, "--declaration", "--emitDeclarationOnly", "--declarationDir", f"{out_dir}/types"],
        cwd=project.root,
        quiet=True,
    )
    if status == 0:
        messages.typedefs_success()
    else:
        messages.typedefs_error()
    return status == 0


def type_check(project: Project) -> bool:
    tsc = tools.resolve_bin(project, "typescript", executable="tsc")
    status = tools.run_tool([tsc, "--noEmit"], cwd=project.root)
    if status == 0:
        messages.typecheck_success()
    else:
        messages.typecheck_error()
    return status == 0
