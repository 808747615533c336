# tests/unit/core/test_models.py - v1
"""Tests for core/models.py and core/errors.py."""

from __future__ import annotations

from pathlib import Path

import pytest
from pydantic import ValidationError

from compforge.core.errors import (
    CompforgeError,
    ComponentNotFoundError,
    FetchFailedError,
    TargetFileExistsError,
    WorkspaceWriteError,
)
from compforge.core.models import (
    Component,
    ComponentFile,
    ComponentState,
    ComponentSummary,
    FailedComponent,
    InstallOptions,
    InstallOutcome,
    SearchFilter,
)


class TestComponent:
    def test_defaults(self):
        c = ComponentSummary(name="button")
        assert c.version == "latest"
        assert c.category == "uncategorized"
        assert c.dependencies == []

    def test_self_dependency_rejected(self):
        with pytest.raises(ValidationError, match="itself"):
            Component(name="a", dependencies=["b", "a"])

    def test_empty_name_rejected(self):
        with pytest.raises(ValidationError):
            ComponentSummary(name="")

    def test_file_type_default(self):
        assert ComponentFile(path="a.tsx", content="x").type == "component"

    def test_summary_drops_files(self):
        c = Component(name="a", files=[ComponentFile(path="a.tsx", content="x")])
        assert not hasattr(c.summary(), "files")
        assert c.summary().name == "a"

    @pytest.mark.parametrize("key", ["npm_dependencies", "npmDependencies", "devDependencies"])
    def test_npm_dependencies_keys(self, key):
        c = ComponentSummary.model_validate({"name": "chart", key: ["recharts"]})
        assert c.npm_dependencies == ["recharts"]

    def test_npm_dependencies_survive_dump(self):
        c = Component(name="chart", npm_dependencies=["recharts"])
        assert ComponentSummary.model_validate(c.model_dump()).npm_dependencies == ["recharts"]
        assert c.summary().npm_dependencies == ["recharts"]


class TestSearchFilter:
    ROWS = [
        ComponentSummary(name="Button", category="form", frameworks={"react"}),
        ComponentSummary(name="table", category="data", frameworks={"vue"}),
        ComponentSummary(name="icon-button", category="Form", description="small"),
    ]

    def test_name_case_insensitive(self):
        assert [c.name for c in SearchFilter(name="button").apply(self.ROWS)] == [
            "Button", "icon-button",
        ]

    def test_category_exact_ignoring_case(self):
        assert len(SearchFilter(category="form").apply(self.ROWS)) == 2

    def test_framework_membership(self):
        assert [c.name for c in SearchFilter(framework="vue").apply(self.ROWS)] == ["table"]

    def test_search_covers_description(self):
        assert [c.name for c in SearchFilter(search="SMALL").apply(self.ROWS)] == ["icon-button"]

    def test_pagination(self):
        assert [c.name for c in SearchFilter(offset=1, limit=1).apply(self.ROWS)] == ["table"]

    def test_limit_must_be_positive(self):
        with pytest.raises(ValidationError):
            SearchFilter(limit=0)


class TestInstallOptions:
    def test_defaults(self):
        opts = InstallOptions()
        assert (opts.overwrite, opts.path, opts.dry_run) == (False, None, False)

    def test_unknown_field_rejected(self):
        with pytest.raises(ValidationError):
            InstallOptions(force=True)

    def test_blank_path_rejected(self):
        with pytest.raises(ValidationError):
            InstallOptions(path="  ")

    def test_path_coerced(self):
        assert InstallOptions(path="src/ui").path == Path("src/ui")

    def test_frozen(self):
        with pytest.raises(ValidationError):
            InstallOptions().overwrite = True


class TestInstallOutcome:
    def test_exit_code(self):
        assert InstallOutcome(succeeded=["a"]).exit_code == 0
        failed = InstallOutcome(failed=[FailedComponent(name="b", error="x", code="FETCH_FAILED")])
        assert failed.exit_code == 1
        assert not failed.ok
        assert failed.failed_names() == ["b"]

    def test_npm_dependencies_default_empty(self):
        assert InstallOutcome().npm_dependencies == []


class TestComponentState:
    def test_terminal_states(self):
        assert {s for s in ComponentState if s.is_terminal} == {
            ComponentState.INSTALLED, ComponentState.FAILED,
        }


class TestErrors:
    def test_codes(self):
        assert ComponentNotFoundError(["a"]).code == "COMPONENT_NOT_FOUND"
        assert TargetFileExistsError("a", ["/x"]).code == "FILE_EXISTS"
        assert FetchFailedError("a", 3, OSError("x")).code == "FETCH_FAILED"
        assert WorkspaceWriteError("/x", "permission", OSError()).code == "WRITE_FAILED"

    def test_all_share_base(self):
        assert isinstance(FetchFailedError("a", 1, OSError()), CompforgeError)

    def test_fetch_failed_message(self):
        err = FetchFailedError("button", 4, ConnectionError("reset"))
        assert str(err) == "Fetching 'button' failed after 4 attempt(s): reset"
