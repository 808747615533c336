# src/installer/transform.py - v1
"""Content rewriting applied to component files before they are written."""

from __future__ import annotations

import re

from compforge.core.models import ComponentFile
from compforge.workspace.models import PackageKind, WorkspaceInfo

# from './components/x' | from "../../components/x"
_RELATIVE_COMPONENT_IMPORT = re.compile(
    r"""(\bfrom\s+)(['"])(?:\.{1,2}/)+components/"""
)

_REWRITTEN_TYPES = {"component", "test", "story"}


def rewrite_imports(content: str, package_name: str) -> str:
    """Point relative ``components/`` imports at ``package_name``."""
    return _RELATIVE_COMPONENT_IMPORT.sub(
        lambda m: f"{m.group(1)}{m.group(2)}{package_name}/components/", content
    )


def needs_import_rewrite(workspace: WorkspaceInfo) -> bool:
    current = workspace.current_package
    return workspace.is_monorepo and current is not None and current.kind is PackageKind.APP


def prepare_content(file: ComponentFile, workspace: WorkspaceInfo) -> str:
    """Final text for ``file`` in ``workspace``."""
    if file.type in _REWRITTEN_TYPES and needs_import_rewrite(workspace):
        return rewrite_imports(file.content, workspace.current_package.name)
    return file.content
