# src/core/models.py - v1
"""Shared Pydantic domain models used across modules.

Components, install options and outcomes, progress events. Workspace and
cache models live next to their stores (workspace.models, cache.models).
"""

from __future__ import annotations

from enum import Enum
from pathlib import Path
from typing import Literal

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator, model_validator


# === COMPONENTS ===


class ComponentFile(BaseModel):
    """One file shipped by a component, with its registry-relative path."""

    path: str
    content: str
    type: Literal["component", "style", "test", "story", "doc"] = "component"


class ComponentSummary(BaseModel):
    """Registry metadata for a component, without file payloads."""

    name: str = Field(min_length=1)
    version: str = "latest"
    description: str = ""
    category: str = "uncategorized"
    frameworks: set[str] = Field(default_factory=set)
    dependencies: list[str] = Field(default_factory=list)
    # npm packages the component imports; registries publish these under
    # either key
    npm_dependencies: list[str] = Field(
        default_factory=list,
        validation_alias=AliasChoices("npm_dependencies", "npmDependencies", "devDependencies"),
    )

    @model_validator(mode="after")
    def _no_self_dependency(self) -> ComponentSummary:
        if self.name in self.dependencies:
            raise ValueError(f"component '{self.name}' lists itself as a dependency")
        return self


class Component(ComponentSummary):
    """Full component: metadata plus the files to materialize."""

    files: list[ComponentFile] = Field(default_factory=list)

    def summary(self) -> ComponentSummary:
        return ComponentSummary(**self.model_dump(exclude={"files"}))


class SearchFilter(BaseModel):
    """Structured registry query. Hashed into a stable cache key."""

    model_config = ConfigDict(frozen=True)

    name: str | None = None
    category: str | None = None
    framework: str | None = None
    search: str | None = None
    limit: int | None = Field(default=None, ge=1)
    offset: int = Field(default=0, ge=0)

    def apply(self, components: list[ComponentSummary]) -> list[ComponentSummary]:
        """Filter and paginate a list of summaries."""
        result = components
        if self.name:
            needle = self.name.lower()
            result = [c for c in result if needle in c.name.lower()]
        if self.category:
            wanted = self.category.lower()
            result = [c for c in result if c.category.lower() == wanted]
        if self.framework:
            result = [c for c in result if self.framework in c.frameworks]
        if self.search:
            text = self.search.lower()
            result = [
                c for c in result
                if text in c.name.lower() or text in c.description.lower()
            ]
        if self.offset:
            result = result[self.offset:]
        if self.limit is not None:
            result = result[: self.limit]
        return result


# === INSTALLATION ===


class ComponentState(str, Enum):
    """Per-component install lifecycle."""

    PENDING = "pending"
    RESOLVING = "resolving"
    CACHE_HIT = "cache_hit"
    FETCHING = "fetching"
    WRITING = "writing"
    INSTALLED = "installed"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (ComponentState.INSTALLED, ComponentState.FAILED)


class InstallOptions(BaseModel):
    """Closed option set for a single install call."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    overwrite: bool = False
    path: Path | None = None
    dry_run: bool = False

    @field_validator("path", mode="before")
    @classmethod
    def _path_not_blank(cls, v: object) -> object:
        if isinstance(v, str) and not v.strip():
            raise ValueError("path must not be blank")
        return v


class PlannedFile(BaseModel):
    """A file the installer will write (or would write, for dry runs)."""

    model_config = ConfigDict(frozen=True)

    component: str
    source_path: str
    target_path: Path
    exists: bool = False


class FailedComponent(BaseModel):
    """A component that reached the failed state, with a readable reason."""

    model_config = ConfigDict(frozen=True)

    name: str
    error: str
    code: str = "INSTALL_ERROR"


class InstallOutcome(BaseModel):
    """Terminal summary of an install call. Never mutated after construction."""

    model_config = ConfigDict(frozen=True)

    succeeded: list[str] = Field(default_factory=list)
    failed: list[FailedComponent] = Field(default_factory=list)
    duration_s: float = 0.0
    dry_run: bool = False
    planned_files: list[PlannedFile] = Field(default_factory=list)
    npm_dependencies: list[str] = Field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.failed

    @property
    def exit_code(self) -> int:
        return 0 if self.ok else 1

    def failed_names(self) -> list[str]:
        return [f.name for f in self.failed]


class ProgressEvent(BaseModel):
    """Progress notification emitted at every component state transition."""

    model_config = ConfigDict(frozen=True)

    current: int
    total: int
    component: str
    phase: ComponentState
