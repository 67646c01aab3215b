"""Built-in prettier options and ignore list."""

from __future__ import annotations

from typing import Any

DEFAULT_PATTERN = "**/*.+(js|json|less|css|ts|tsx|md)"
DEFAULT_IGNORE = ["node_modules/", "dist/", "coverage/", "package.json", "*.min.js"]


def prettier_options() -> dict[str, Any]:
    return {
        "arrowParens": "avoid",
        "bracketSpacing": True,
        "printWidth": 80,
        "semi": True,
        "singleQuote": True,
        "tabWidth": 2,
        "trailingComma": "all",
        "useTabs": False,
    }
