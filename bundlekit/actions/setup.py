"""``bundlekit setup``: prepare a package for bundlekit.

Writes editor/tool config files, points package.json at the build outputs
and scripts, installs the dev dependencies the chosen template needs and
initializes a git repository. Every step is attempted; failures are counted
and reported at the end.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

from bundlekit import messages, tools
from bundlekit.configs.format import prettier_options
from bundlekit.configs.lint import lint_config
from bundlekit.detect.project import DESCRIPTOR_FILENAME, Project, ProjectDescriptor
from bundlekit.errors import BundlekitError
from bundlekit.logging import get_logger
from bundlekit.validator import read_json, validate_descriptor

GITIGNORE = """\
node_modules/
dist/
coverage/
.DS_Store
*.log
.env
"""

TSCONFIG: dict[str, Any] = {
    "compilerOptions": {
        "target": "es2018",
        "module": "esnext",
        "moduleResolution": "node",
        "lib": ["dom", "esnext"],
        "jsx": "react",
        "declaration": True,
        "strict": True,
        "esModuleInterop": True,
        "skipLibCheck": True,
        "forceConsistentCasingInFileNames": True,
        "resolveJsonModule": True,
        "isolatedModules": True,
    },
    "include": ["src"],
    "exclude": ["node_modules", "dist"],
}

REACT_PEERS = {"react": ">=16.8", "react-dom": ">=16.8"}

log = get_logger(__name__)


def is_typescript(template: str) -> bool:
    return template in ("typescript", "react-ts")


def is_react(template: str) -> bool:
    return template.startswith("react")


def updated_descriptor(data: dict[str, Any], template: str) -> dict[str, Any]:
    """package.json with entry points, scripts and peers for *template*."""
    entry = "src/index.tsx" if template == "react-ts" else "src/index.ts"
    if not is_typescript(template):
        entry = "src/index.jsx" if template == "react-js" else "src/index.js"
    out = dict(data)
    out.setdefault("version", "0.0.0")
    out["main"] = "dist/cjs/index.cjs.js"
    out["module"] = "dist/esm/index.es.js"
    if is_typescript(template):
        out["typings"] = "dist/types/index.d.ts"
    out["files"] = ["dist"]
    out["scripts"] = {
        **data.get("scripts", {}),
        "build": f"bundlekit build bundler {entry}",
        "lint": "bundlekit lint",
        "format": "bundlekit format",
        "test": "bundlekit test",
        "pre-commit": "bundlekit pre-commit",
    }
    if is_react(template):
        out["peerDependencies"] = {**data.get("peerDependencies", {}), **REACT_PEERS}
    return out


def missing_dev_dependencies(project: Project, template: str) -> list[str]:
    wanted: list[str] = []
    if is_typescript(template):
        wanted += ["@types/jest", "typescript"]
    if is_react(template):
        wanted += ["react", "react-dom"]
        if is_typescript(template):
            wanted += ["@types/react", "@types/react-dom"]
    return sorted(
        name
        for name in wanted
        if not (project.has_dependency(name) or project.has_dev_dependency(name))
    )


def config_files(project: Project, template: str) -> dict[str, str]:
    files = {
        ".gitignore": GITIGNORE,
        ".prettierrc.json": json.dumps(prettier_options(), indent=2) + "\n",
        ".eslintrc.json": json.dumps(lint_config(project), indent=2) + "\n",
    }
    if is_typescript(template):
        files["tsconfig.json"] = json.dumps(TSCONFIG, indent=2) + "\n"
    return files


def _load_or_new(root: Path) -> dict[str, Any]:
    path = root / DESCRIPTOR_FILENAME
    if path.is_file():
        data = read_json(path)
        validate_descriptor(data, path)
        return data
    return {"name": root.name}


def setup(root: Path, template: str) -> int:
    messages.welcome("setup")
    errors = 0

    data = updated_descriptor(_load_or_new(root), template)
    project = Project(root=root, descriptor=ProjectDescriptor.from_mapping(data))

    for name, content in config_files(project, template).items():
        try:
            (root / name).write_text(content, encoding="utf-8")
        except OSError as e:
            errors += 1
            log.warning("write failed", extra={"context": {"file": name, "error": str(e)}})
            messages.setup_step(False, f"Could not write {name}: {e.strerror or e}")
        else:
            messages.setup_step(True, f"Created {name}")

    descriptor_path = root / DESCRIPTOR_FILENAME
    try:
        descriptor_path.write_text(json.dumps(data, indent=2) + "\n", encoding="utf-8")
    except OSError as e:
        errors += 1
        messages.setup_step(False, f"Could not update {DESCRIPTOR_FILENAME}: {e.strerror or e}")
    else:
        messages.setup_step(True, f"Updated {DESCRIPTOR_FILENAME}")

    dev = missing_dev_dependencies(project, template)
    if dev:
        manager = tools.package_manager()
        try:
            status = tools.run_tool([manager.cmd, *manager.add, *dev, manager.dev], cwd=root)
        except BundlekitError:
            status = 1
        if status == 0:
            messages.setup_step(True, f"Installed {', '.join(dev)}")
        else:
            errors += 1
            messages.setup_step(False, "Could not install dev dependencies")

    try:
        status = tools.run_tool(["git", "init"], cwd=root, quiet=True)
    except BundlekitError:
        status = 1
    if status == 0:
        messages.setup_step(True, f"Initialized git repository in {root}")
    else:
        errors += 1
        messages.setup_step(False, f"Could not initialize git repository in {root}")

    messages.setup_summary(errors)
    return 0 if errors == 0 else 1
