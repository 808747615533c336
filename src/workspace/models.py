# src/workspace/models.py - v1
"""Workspace layout models. Built once per command, never persisted."""

from __future__ import annotations

from enum import Enum
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field


class WorkspaceType(str, Enum):
    SINGLE = "single"
    NPM = "npm"
    YARN = "yarn"
    PNPM = "pnpm"
    NX = "nx"
    LERNA = "lerna"
    RUSH = "rush"


class PackageKind(str, Enum):
    APP = "app"
    LIB = "lib"
    UI = "ui"
    UNKNOWN = "unknown"


class PackageRef(BaseModel):
    """The package the command was started from."""

    model_config = ConfigDict(frozen=True)

    name: str
    path: Path
    kind: PackageKind = PackageKind.UNKNOWN


class WorkspaceInfo(BaseModel):
    """Detected layout: monorepo flavour, root and package globs."""

    model_config = ConfigDict(frozen=True)

    type: WorkspaceType
    root: Path
    package_patterns: tuple[str, ...] = Field(default_factory=tuple)
    current_package: PackageRef | None = None

    @property
    def is_monorepo(self) -> bool:
        return self.type is not WorkspaceType.SINGLE
