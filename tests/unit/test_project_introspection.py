from __future__ import annotations

import json
from pathlib import Path

import pytest

from bundlekit.detect.project import find_descriptor, load_project
from bundlekit.errors import DescriptorNotFound, MalformedConfig


def _write_package(root: Path, data: dict) -> Path:
    root.mkdir(parents=True, exist_ok=True)
    path = root / "package.json"
    path.write_text(json.dumps(data), encoding="utf-8")
    return path


def test_descriptor_is_found_from_a_nested_directory(tmp_path: Path) -> None:
    _write_package(tmp_path, {"name": "nested-lib"})
    nested = tmp_path / "src" / "components"
    nested.mkdir(parents=True)

    project = load_project(nested)

    assert project.root == Path(tmp_path).resolve()
    assert project.descriptor.name == "nested-lib"
    assert project.descriptor_path == project.root / "package.json"


def test_missing_descriptor_raises(tmp_path: Path) -> None:
    with pytest.raises(DescriptorNotFound):
        find_descriptor(tmp_path / "nowhere")


def test_malformed_descriptor_reports_position(tmp_path: Path) -> None:
    (tmp_path / "package.json").write_text('{"name": "broken",', encoding="utf-8")

    with pytest.raises(MalformedConfig) as info:
        load_project(tmp_path)

    assert "package.json" in str(info.value)
    assert "line 1" in str(info.value)


def test_descriptor_with_wrong_dependency_type_is_rejected(tmp_path: Path) -> None:
    _write_package(tmp_path, {"name": "typed", "dependencies": {"react": 16}})

    with pytest.raises(MalformedConfig) as info:
        load_project(tmp_path)

    assert "dependencies.react" in str(info.value)


def test_property_and_dependency_queries(tmp_path: Path) -> None:
    _write_package(
        tmp_path,
        {
            "name": "queries",
            "dependencies": {"lodash": "^4.17.0"},
            "devDependencies": {"typescript": "^5.0.0"},
            "peerDependencies": {"react": ">=16.8"},
            "babel": {"presets": []},
            "exports": {"./package.json": "./package.json"},
        },
    )
    project = load_project(tmp_path)

    assert project.has_property("babel.presets")
    assert not project.has_property("babel.plugins")
    # names containing dots need the segment form
    assert project.has_property(["exports", "./package.json"])
    assert project.get_property("dependencies.lodash") == "^4.17.0"
    assert project.get_property("engines.node", "8") == "8"

    assert project.has_dependency("lodash")
    assert not project.has_dependency("typescript")
    assert project.has_dev_dependency("typescript")
    assert project.has_peer_dependency("react")
    assert project.has_any_dependency("react")
    assert project.uses_react


def test_typescript_detection_follows_tsconfig(tmp_path: Path) -> None:
    _write_package(tmp_path, {"name": "ts-lib"})
    project = load_project(tmp_path)
    assert not project.is_typescript

    (tmp_path / "tsconfig.json").write_text("{}", encoding="utf-8")
    assert project.is_typescript
    assert project.file_exists("tsconfig.json")
    assert not project.uses_react
