# src/workspace/paths.py - v1
"""Target path computation for component files.

Rules, first match wins:
    explicit --path          -> <path>/<file.path>  (relative to root)
    monorepo, UI package     -> <ui pkg>/src/components/<file.path minus components/ui/>
    monorepo, current ui pkg -> <current>/src/components/...
    monorepo, current app    -> <current>/src/components/ui/...
    otherwise                -> <root>/src/<file.path>
"""

from __future__ import annotations

from pathlib import Path, PurePosixPath

from compforge.workspace.detector import WorkspaceDetector
from compforge.workspace.models import PackageKind, WorkspaceInfo

_STRIP_PREFIXES = ("components/ui/", "components/")


class TargetPathResolver:
    """Maps registry-relative file paths onto the detected workspace.

    The UI package lookup runs once per resolver, so one resolver should be
    used per install batch.
    """

    def __init__(self, workspace: WorkspaceInfo, detector: WorkspaceDetector) -> None:
        self._workspace = workspace
        self._detector = detector
        self._components_dir: Path | None = None

    @property
    def workspace(self) -> WorkspaceInfo:
        return self._workspace

    def target_for(self, file_path: str, explicit_path: Path | None = None) -> Path:
        """Absolute target for one registry file."""
        rel = PurePosixPath(file_path)
        if explicit_path is not None:
            base = explicit_path.expanduser()
            if not base.is_absolute():
                base = self._workspace.root / base
            return base.joinpath(*rel.parts)

        if not self._workspace.is_monorepo:
            return self._workspace.root.joinpath("src", *rel.parts)

        return self.components_dir().joinpath(*PurePosixPath(_strip_prefix(file_path)).parts)

    def components_dir(self) -> Path:
        """Directory component files land in when no explicit path is given."""
        if self._components_dir is None:
            self._components_dir = self._pick_components_dir()
        return self._components_dir

    def _pick_components_dir(self) -> Path:
        ws = self._workspace
        if ws.is_monorepo:
            ui_packages = self._detector.find_ui_packages(ws)
            if ui_packages:
                return ui_packages[0] / "src" / "components"
            current = ws.current_package
            if current is not None and current.kind is PackageKind.UI:
                return current.path / "src" / "components"
            if current is not None and current.kind is PackageKind.APP:
                return current.path / "src" / "components" / "ui"
        return ws.root / "src" / "components" / "ui"


def _strip_prefix(file_path: str) -> str:
    normalized = file_path.replace("\\", "/").lstrip("./")
    for prefix in _STRIP_PREFIXES:
        if normalized.startswith(prefix):
            return normalized[len(prefix):]
    return normalized
