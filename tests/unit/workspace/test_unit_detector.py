# tests/unit/workspace/test_unit_detector.py - v1
"""Tests for workspace/detector.py."""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from compforge.workspace.detector import (
    WorkspaceDetector,
    classify_package,
    detect_current_package,
    read_json,
)
from compforge.workspace.models import PackageKind, WorkspaceType


def _write_json(path: Path, data) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(data))


def _package(root: Path, rel: str, name: str, **extra) -> Path:
    pkg = root / rel
    _write_json(pkg / "package.json", {"name": name, **extra})
    return pkg


@pytest.fixture
def detector() -> WorkspaceDetector:
    return WorkspaceDetector()


class TestDetectTypes:
    def test_single_project(self, tmp_path, detector):
        _write_json(tmp_path / "package.json", {"name": "my-app"})
        info = detector.detect(tmp_path, ceiling=tmp_path)
        assert info.type is WorkspaceType.SINGLE
        assert not info.is_monorepo
        assert info.root == tmp_path.resolve()
        assert info.current_package.name == "my-app"
        assert info.current_package.kind is PackageKind.APP

    def test_pnpm(self, tmp_path, detector):
        (tmp_path / "pnpm-workspace.yaml").write_text("packages:\n  - 'apps/*'\n  - 'packages/*'\n")
        info = detector.detect(tmp_path, ceiling=tmp_path)
        assert info.type is WorkspaceType.PNPM
        assert info.package_patterns == ("apps/*", "packages/*")

    def test_yarn_needs_lockfile(self, tmp_path, detector):
        _write_json(tmp_path / "package.json", {"workspaces": ["packages/*"]})
        (tmp_path / "yarn.lock").write_text("")
        info = detector.detect(tmp_path, ceiling=tmp_path)
        assert info.type is WorkspaceType.YARN

    def test_npm_workspaces(self, tmp_path, detector):
        _write_json(tmp_path / "package.json", {"workspaces": {"packages": ["libs/*"]}})
        info = detector.detect(tmp_path, ceiling=tmp_path)
        assert info.type is WorkspaceType.NPM
        assert info.package_patterns == ("libs/*",)

    def test_nx_default_patterns(self, tmp_path, detector):
        _write_json(tmp_path / "nx.json", {})
        info = detector.detect(tmp_path, ceiling=tmp_path)
        assert info.type is WorkspaceType.NX
        assert info.package_patterns == ("apps/*", "libs/*", "packages/*")

    def test_nx_projects_from_workspace_json(self, tmp_path, detector):
        _write_json(tmp_path / "nx.json", {})
        _write_json(tmp_path / "workspace.json", {
            "projects": {"web": "apps/web", "ui": {"root": "libs/ui"}},
        })
        info = detector.detect(tmp_path, ceiling=tmp_path)
        assert info.package_patterns == ("apps/web", "libs/ui")

    def test_lerna(self, tmp_path, detector):
        _write_json(tmp_path / "lerna.json", {"version": "1.0.0"})
        info = detector.detect(tmp_path, ceiling=tmp_path)
        assert info.type is WorkspaceType.LERNA
        assert info.package_patterns == ("packages/*",)

    def test_rush_with_comments(self, tmp_path, detector):
        (tmp_path / "rush.json").write_text(
            "// rush config\n"
            '{\n  /* projects */\n  "projects": [{"packageName": "ui", "projectFolder": "libs/ui"}]\n}\n'
        )
        info = detector.detect(tmp_path, ceiling=tmp_path)
        assert info.type is WorkspaceType.RUSH
        assert info.package_patterns == ("libs/ui",)

    def test_pnpm_checked_before_npm(self, tmp_path, detector):
        (tmp_path / "pnpm-workspace.yaml").write_text("packages: ['a/*']\n")
        _write_json(tmp_path / "package.json", {"workspaces": ["b/*"]})
        assert detector.detect(tmp_path, ceiling=tmp_path).type is WorkspaceType.PNPM

    def test_malformed_pnpm_yaml_gives_no_patterns(self, tmp_path, detector):
        (tmp_path / "pnpm-workspace.yaml").write_text("packages: [unclosed\n")
        info = detector.detect(tmp_path, ceiling=tmp_path)
        assert info.type is WorkspaceType.PNPM
        assert info.package_patterns == ()


class TestWalkUp:
    def test_detects_from_nested_package(self, tmp_path, detector):
        (tmp_path / "pnpm-workspace.yaml").write_text("packages:\n  - 'apps/*'\n")
        web = _package(tmp_path, "apps/web", "@acme/web", dependencies={"next": "14"})
        info = detector.detect(web / "src", ceiling=tmp_path)
        assert info.root == tmp_path.resolve()
        assert info.current_package.name == "@acme/web"
        assert info.current_package.path == web.resolve()
        assert info.current_package.kind is PackageKind.APP

    def test_ceiling_stops_walk(self, tmp_path, detector):
        (tmp_path / "pnpm-workspace.yaml").write_text("packages: ['*']\n")
        inner = tmp_path / "inner"
        inner.mkdir()
        info = detector.detect(inner, ceiling=inner)
        assert info.type is WorkspaceType.SINGLE

    def test_result_memoized(self, tmp_path, detector):
        first = detector.detect(tmp_path, ceiling=tmp_path)
        (tmp_path / "nx.json").write_text("{}")
        assert detector.detect(tmp_path, ceiling=tmp_path) is first


class TestCurrentPackage:
    def test_pattern_match(self, tmp_path):
        pkg = _package(tmp_path, "packages/ui", "@acme/ui")
        ref = detect_current_package(tmp_path, pkg, ["packages/*"])
        assert ref.name == "@acme/ui"
        assert ref.kind is PackageKind.UI

    def test_at_root_is_none(self, tmp_path):
        _write_json(tmp_path / "package.json", {"name": "root"})
        assert detect_current_package(tmp_path, tmp_path, ["packages/*"]) is None

    def test_nearest_manifest_fallback(self, tmp_path):
        pkg = _package(tmp_path, "tools/cli", "cli-tool")
        deep = pkg / "src" / "cmd"
        deep.mkdir(parents=True)
        ref = detect_current_package(tmp_path, deep, ["packages/*"])
        assert ref.path == pkg


class TestClassifyPackage:
    @pytest.mark.parametrize(
        ("manifest", "rel", "kind"),
        [
            ({"name": "@acme/ui"}, "packages/x", PackageKind.UI),
            ({"name": "design-components"}, "x", PackageKind.UI),
            ({"name": "@acme/utils"}, "x", PackageKind.LIB),
            ({"name": "web"}, "x", PackageKind.APP),
            ({"name": "thing"}, "apps/thing", PackageKind.APP),
            ({"name": "thing"}, "packages/thing", PackageKind.LIB),
            ({"name": "thing", "dependencies": {"react-dom": "18"}}, "x", PackageKind.APP),
            ({"name": "thing", "main": "index.js"}, "x", PackageKind.LIB),
            ({"name": "thing"}, "x", PackageKind.UNKNOWN),
            ({"name": "build-tools"}, "x", PackageKind.UNKNOWN),
        ],
    )
    def test_heuristics(self, manifest, rel, kind):
        assert classify_package(manifest, rel) is kind


class TestFindUiPackages:
    def test_finds_ui_library(self, tmp_path, detector):
        (tmp_path / "pnpm-workspace.yaml").write_text("packages:\n  - 'apps/*'\n  - 'packages/*'\n")
        _package(tmp_path, "apps/web", "web")
        ui = _package(tmp_path, "packages/ui", "@acme/ui")
        _package(tmp_path, "packages/config", "@acme/config")
        info = detector.detect(tmp_path, ceiling=tmp_path)
        assert detector.find_ui_packages(info) == [ui.resolve()]

    def test_negated_patterns_ignored(self, tmp_path, detector):
        _write_json(tmp_path / "package.json", {"workspaces": ["packages/*", "!packages/ui"]})
        _package(tmp_path, "packages/ui", "ui")
        info = detector.detect(tmp_path, ceiling=tmp_path)
        assert len(detector.expand_patterns(info)) == 1


class TestReadJson:
    def test_missing_is_none(self, tmp_path):
        assert read_json(tmp_path / "nope.json") is None

    def test_malformed_is_none(self, tmp_path):
        (tmp_path / "bad.json").write_text("{")
        assert read_json(tmp_path / "bad.json") is None

    def test_non_object_is_none(self, tmp_path):
        (tmp_path / "list.json").write_text("[1]")
        assert read_json(tmp_path / "list.json") is None
