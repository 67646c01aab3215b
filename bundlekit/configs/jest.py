"""Built-in jest config."""

from __future__ import annotations

from pathlib import Path
from typing import Any

from bundlekit.detect.project import Project

SOURCE_PATTERN = "js|jsx|ts|tsx"


def jest_config(project: Project, transpile_config: Path | None) -> dict[str, Any]:
    """Jest options; sources go through babel-jest with *transpile_config* when given."""
    roots = ["<rootDir>/src"] if project.file_exists("src") else ["<rootDir>"]
    transformer: Any = (
        ["babel-jest", {"configFile": str(transpile_config)}] if transpile_config else "babel-jest"
    )
    return {
        "rootDir": str(project.root),
        "roots": roots,
        "testEnvironment": "jsdom" if project.uses_react else "node",
        "moduleFileExtensions": ["js", "jsx", "json", "ts", "tsx"],
        "testMatch": [
            f"**/__tests__/**/*.+({SOURCE_PATTERN})",
            f"**/*.(test|spec).+({SOURCE_PATTERN})",
        ],
        "testPathIgnorePatterns": ["/node_modules/", "/dist/", "/__fixtures__/"],
        "collectCoverageFrom": [f"src/**/*.+({SOURCE_PATTERN})", "!src/**/*.d.ts"],
        "coveragePathIgnorePatterns": ["/node_modules/", "/__tests__/", "/__mocks__/"],
        "transform": {f"^.+\\.({SOURCE_PATTERN})$": transformer},
    }
