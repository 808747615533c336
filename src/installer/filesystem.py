# src/installer/filesystem.py - v1
"""Workspace filesystem abstraction used by the installer.

The installer never touches the disk directly, so dry runs and tests can
swap in a recording implementation.
"""

from __future__ import annotations

import errno
import logging
import os
import tempfile
from abc import ABC, abstractmethod
from pathlib import Path

from compforge.core.errors import WorkspaceWriteError

logger = logging.getLogger(__name__)

_NOT_FOUND = {errno.ENOENT, errno.ENOTDIR}
_PERMISSION = {errno.EACCES, errno.EPERM, errno.EROFS}


def classify_os_error(error: OSError) -> str:
    """Bucket an OSError into ``not_found``, ``permission`` or ``other``."""
    if isinstance(error, (FileNotFoundError, NotADirectoryError)) or error.errno in _NOT_FOUND:
        return "not_found"
    if isinstance(error, PermissionError) or error.errno in _PERMISSION:
        return "permission"
    return "other"


class Filesystem(ABC):
    """Minimal async filesystem surface the installer needs."""

    @abstractmethod
    async def exists(self, path: Path) -> bool:
        """True if ``path`` exists (file or directory)."""

    @abstractmethod
    async def read_text(self, path: Path) -> str:
        """Read a UTF-8 file."""

    @abstractmethod
    async def write_text_atomic(self, path: Path, content: str) -> None:
        """Create parents, then write ``content`` to ``path`` atomically.

        Raises:
            WorkspaceWriteError: On any OS-level failure.
        """


class LocalFilesystem(Filesystem):
    """Filesystem backed by the local disk."""

    async def exists(self, path: Path) -> bool:
        return path.exists()

    async def read_text(self, path: Path) -> str:
        try:
            return path.read_text(encoding="utf-8")
        except OSError as e:
            raise WorkspaceWriteError(str(path), classify_os_error(e), e) from e

    async def write_text_atomic(self, path: Path, content: str) -> None:
        tmp: str | None = None
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.", suffix=".tmp")
            with os.fdopen(fd, "w", encoding="utf-8", newline="") as f:
                f.write(content)
            os.replace(tmp, path)
            tmp = None
        except OSError as e:
            raise WorkspaceWriteError(str(path), classify_os_error(e), e) from e
        finally:
            if tmp is not None:
                Path(tmp).unlink(missing_ok=True)
        logger.debug("Wrote %s (%d chars)", path, len(content))
