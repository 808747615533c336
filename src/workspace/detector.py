# src/workspace/detector.py - v1
"""Monorepo layout detection by walking up the directory tree.

Markers checked at each level, in order:
    pnpm-workspace.yaml            -> pnpm
    yarn.lock + package.json       -> yarn   (package.json has "workspaces")
    nx.json                        -> nx
    lerna.json                     -> lerna
    rush.json                      -> rush
    package.json with "workspaces" -> npm

No marker up to the filesystem root (or ``ceiling``) means a single
project rooted at the start directory. Detection is read-only.
"""

from __future__ import annotations

import fnmatch
import json
import logging
import re
from pathlib import Path
from typing import Any

import yaml

from compforge.workspace.models import PackageKind, PackageRef, WorkspaceInfo, WorkspaceType

logger = logging.getLogger(__name__)

NX_DEFAULT_PATTERNS = ("apps/*", "libs/*", "packages/*")
LERNA_DEFAULT_PATTERNS = ("packages/*",)
NX_CONFIG_FILES = ("workspace.json", "angular.json", "project.json")

_TOKEN_SPLIT = re.compile(r"[^a-z0-9]+")
_JSONC_BLOCK = re.compile(r"/\*.*?\*/", re.DOTALL)
_JSONC_LINE = re.compile(r"^\s*//.*$", re.MULTILINE)


class WorkspaceDetector:
    """Detect the workspace containing a start directory.

    Results are memoized per (start, ceiling) for the detector's lifetime,
    which is expected to be a single command.
    """

    def __init__(self) -> None:
        self._cache: dict[tuple[Path, Path | None], WorkspaceInfo] = {}

    def detect(self, start: Path | str, ceiling: Path | str | None = None) -> WorkspaceInfo:
        """Detect the workspace for ``start``.

        Args:
            start: Directory the command runs against (explicit, never cwd).
            ceiling: Optional directory above which the walk stops.
        """
        start_path = Path(start).expanduser().resolve()
        ceiling_path = Path(ceiling).expanduser().resolve() if ceiling else None
        key = (start_path, ceiling_path)
        if key not in self._cache:
            info = self._detect(start_path, ceiling_path)
            logger.info(
                "Detected %s workspace at %s (%d package pattern(s))",
                info.type.value, info.root, len(info.package_patterns),
            )
            self._cache[key] = info
        return self._cache[key]

    def find_ui_packages(self, info: WorkspaceInfo) -> list[Path]:
        """Package directories classified as UI libraries, in pattern order."""
        found: list[Path] = []
        for pkg_dir in self.expand_patterns(info):
            manifest = read_json(pkg_dir / "package.json")
            if manifest is None:
                continue
            rel = _relative(pkg_dir, info.root)
            if classify_package(manifest, rel) is PackageKind.UI and pkg_dir not in found:
                found.append(pkg_dir)
        return found

    def expand_patterns(self, info: WorkspaceInfo) -> list[Path]:
        """Directories matched by the workspace package globs."""
        dirs: list[Path] = []
        for pattern in info.package_patterns:
            pattern = _normalize_pattern(pattern)
            if not pattern or pattern.startswith("!"):
                continue
            if pattern == ".":
                candidates = [info.root]
            else:
                candidates = sorted(info.root.glob(pattern))
            for path in candidates:
                if path.is_dir() and path not in dirs:
                    dirs.append(path)
        return dirs

    # --- detection ---

    def _detect(self, start: Path, ceiling: Path | None) -> WorkspaceInfo:
        current = start
        while True:
            info = self._detect_at(current, start)
            if info is not None:
                return info
            if current == ceiling or current.parent == current:
                break
            current = current.parent
        return self._single(start)

    def _detect_at(self, root: Path, start: Path) -> WorkspaceInfo | None:
        if (root / "pnpm-workspace.yaml").is_file():
            return self._build(WorkspaceType.PNPM, root, start, _pnpm_patterns(root))

        manifest = read_json(root / "package.json")
        workspaces = _workspaces_field(manifest) if manifest else None

        if (root / "yarn.lock").is_file() and workspaces is not None:
            return self._build(WorkspaceType.YARN, root, start, workspaces)

        if (root / "nx.json").is_file():
            return self._build(WorkspaceType.NX, root, start, _nx_patterns(root))

        if (root / "lerna.json").is_file():
            lerna = read_json(root / "lerna.json") or {}
            patterns = _str_list(lerna.get("packages")) or list(LERNA_DEFAULT_PATTERNS)
            return self._build(WorkspaceType.LERNA, root, start, patterns)

        if (root / "rush.json").is_file():
            rush = read_json(root / "rush.json", allow_comments=True) or {}
            projects = rush.get("projects") if isinstance(rush.get("projects"), list) else []
            patterns = [
                p["projectFolder"] for p in projects
                if isinstance(p, dict) and isinstance(p.get("projectFolder"), str)
            ]
            return self._build(WorkspaceType.RUSH, root, start, patterns)

        if workspaces is not None:
            return self._build(WorkspaceType.NPM, root, start, workspaces)

        return None

    def _build(
        self, wtype: WorkspaceType, root: Path, start: Path, patterns: list[str]
    ) -> WorkspaceInfo:
        return WorkspaceInfo(
            type=wtype,
            root=root,
            package_patterns=tuple(patterns),
            current_package=detect_current_package(root, start, patterns),
        )

    def _single(self, start: Path) -> WorkspaceInfo:
        manifest = read_json(start / "package.json") or {}
        name = manifest.get("name") if isinstance(manifest.get("name"), str) else "app"
        return WorkspaceInfo(
            type=WorkspaceType.SINGLE,
            root=start,
            package_patterns=(".",),
            current_package=PackageRef(name=name, path=start, kind=PackageKind.APP),
        )


def detect_current_package(root: Path, start: Path, patterns: list[str]) -> PackageRef | None:
    """Identify the package ``start`` belongs to, if any.

    First tries the workspace globs against ``start`` and its ancestors
    below ``root``, innermost first, then falls back to the nearest
    package.json between ``start`` and ``root`` (exclusive).
    """
    rel = _relative(start, root)
    parts = rel.split("/") if rel else []
    for i in range(len(parts), 0, -1):
        candidate = "/".join(parts[:i])
        if not any(_matches(candidate, p) for p in patterns):
            continue
        manifest = read_json(root / candidate / "package.json")
        if manifest is not None:
            return PackageRef(
                name=manifest.get("name") or candidate,
                path=root / candidate,
                kind=classify_package(manifest, candidate),
            )

    current = start
    while current != root and current.parent != current:
        manifest = read_json(current / "package.json")
        if manifest is not None:
            return PackageRef(
                name=manifest.get("name") or "app",
                path=current,
                kind=classify_package(manifest, _relative(current, root)),
            )
        current = current.parent
    return None


def classify_package(manifest: dict[str, Any], rel_path: str) -> PackageKind:
    """Heuristic package kind from name tokens, path segments, then fields."""
    name = manifest.get("name") if isinstance(manifest.get("name"), str) else ""
    for tokens in (_tokens(name), _tokens(rel_path)):
        if tokens & {"ui", "components"}:
            return PackageKind.UI
        if tokens & {"lib", "libs", "utils", "packages"}:
            return PackageKind.LIB
        if tokens & {"app", "apps", "web"}:
            return PackageKind.APP

    deps = manifest.get("dependencies")
    if isinstance(deps, dict) and ("next" in deps or "react-dom" in deps):
        return PackageKind.APP
    if any(manifest.get(k) for k in ("main", "module", "exports")):
        return PackageKind.LIB
    return PackageKind.UNKNOWN


def read_json(path: Path, allow_comments: bool = False) -> dict[str, Any] | None:
    """Read a JSON object file; None when missing or unreadable."""
    try:
        text = path.read_text(encoding="utf-8")
    except (FileNotFoundError, NotADirectoryError):
        return None
    except OSError as e:
        logger.warning("Cannot read %s: %s", path, e)
        return None
    if allow_comments:
        text = _JSONC_LINE.sub("", _JSONC_BLOCK.sub("", text))
    try:
        data = json.loads(text)
    except ValueError as e:
        logger.warning("Ignoring malformed JSON in %s: %s", path, e)
        return None
    return data if isinstance(data, dict) else None


def _pnpm_patterns(root: Path) -> list[str]:
    path = root / "pnpm-workspace.yaml"
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    except (OSError, yaml.YAMLError) as e:
        logger.warning("Ignoring unreadable %s: %s", path, e)
        return []
    return _str_list(data.get("packages")) if isinstance(data, dict) else []


def _nx_patterns(root: Path) -> list[str]:
    for filename in NX_CONFIG_FILES:
        config = read_json(root / filename)
        if config is None:
            continue
        projects = config.get("projects")
        if isinstance(projects, dict) and projects:
            patterns = []
            for key, value in projects.items():
                if isinstance(value, str):
                    patterns.append(value)
                elif isinstance(value, dict) and isinstance(value.get("root"), str):
                    patterns.append(value["root"])
                else:
                    patterns.append(key)
            return patterns
    return list(NX_DEFAULT_PATTERNS)


def _workspaces_field(manifest: dict[str, Any]) -> list[str] | None:
    """``workspaces`` as a list (array form or ``{"packages": [...]}`` form)."""
    value = manifest.get("workspaces")
    if value is None:
        return None
    if isinstance(value, dict):
        value = value.get("packages")
    return _str_list(value)


def _str_list(value: Any) -> list[str]:
    if not isinstance(value, list):
        return []
    return [v for v in value if isinstance(v, str)]


def _normalize_pattern(pattern: str) -> str:
    pattern = pattern.strip().replace("\\", "/")
    while pattern.startswith("./"):
        pattern = pattern[2:]
    return pattern.rstrip("/") or "."


def _matches(rel_path: str, pattern: str) -> bool:
    pattern = _normalize_pattern(pattern)
    if pattern.startswith("!"):
        return False
    return fnmatch.fnmatchcase(rel_path, pattern)


def _relative(path: Path, root: Path) -> str:
    try:
        rel = path.relative_to(root).as_posix()
    except ValueError:
        return path.as_posix()
    return "" if rel == "." else rel


def _tokens(text: str) -> set[str]:
    return {t for t in _TOKEN_SPLIT.split(text.lower()) if t}
