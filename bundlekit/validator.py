"""Schema validation and JSON loading helpers."""

from __future__ import annotations

import json
from importlib import resources
from pathlib import Path
from typing import Any

from jsonschema import Draft202012Validator
from jsonschema.exceptions import best_match

from bundlekit.errors import MalformedConfig

# --- Schema loaders ---------------------------------------------------------


def _load_schema(package: str, resource_name: str) -> dict:
    with resources.files(package).joinpath(resource_name).open("r", encoding="utf-8") as f:
        return json.load(f)


def _package_schema() -> dict:
    return _load_schema("bundlekit.schema", "package.schema.json")


# --- Public helpers ---------------------------------------------------------


def read_json(path: Path) -> Any:
    """Parse *path* as JSON, raising :class:`MalformedConfig` with the parser message."""
    try:
        return json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as e:
        raise MalformedConfig(path, f"{e.msg} (line {e.lineno}, column {e.colno})") from e


def validate_descriptor(data: Any, path: Path) -> None:
    """Check the package.json fields bundlekit relies on.

    Only the most relevant violation is reported, with its JSON path, e.g.
    ``dependencies.react: 16 is not of type 'string'``.
    """
    validator = Draft202012Validator(_package_schema())
    error = best_match(validator.iter_errors(data))
    if error is not None:
        where = ".".join(str(p) for p in error.absolute_path) or "<root>"
        raise MalformedConfig(path, f"{where}: {error.message}")
