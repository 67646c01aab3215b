"""``bundlekit clean``: remove installed modules, lock files and extra globs."""

from __future__ import annotations

import glob
import shutil
from pathlib import Path

from bundlekit import messages
from bundlekit.detect.project import Project
from bundlekit.logging import get_logger

ALWAYS_REMOVED = ("node_modules", "package-lock.json", "yarn.lock")

log = get_logger(__name__)


def targets(project: Project, patterns: list[str]) -> list[Path]:
    found: list[Path] = []
    for pattern in (*ALWAYS_REMOVED, *patterns):
        for name in sorted(glob.glob(pattern, root_dir=project.root, recursive=True)):
            path = project.from_root(name)
            if path not in found:
                found.append(path)
    return found


def _remove(path: Path) -> None:
    if path.is_dir() and not path.is_symlink():
        shutil.rmtree(path)
    else:
        path.unlink()


def clean(project: Project, patterns: list[str]) -> int:
    messages.welcome("clean")

    ok = True
    for path in targets(project, patterns):
        shown = str(path.relative_to(project.root))
        try:
            _remove(path)
        except OSError as e:
            log.warning("remove failed", extra={"context": {"path": str(path), "error": str(e)}})
            messages.remove_failed(shown, e.strerror or str(e))
            ok = False
        else:
            messages.removed(shown)
    messages.clean_summary(ok)
    return 0 if ok else 1
