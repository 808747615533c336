# src/registry/validation.py - v1
"""Shape and safety validation for untrusted registry payloads."""

from __future__ import annotations

from pathlib import PurePosixPath, PureWindowsPath
from typing import Any

from pydantic import TypeAdapter, ValidationError

from compforge.core.errors import InvalidComponentError
from compforge.core.models import ComponentFile, ComponentSummary

_file_list = TypeAdapter(list[ComponentFile])


def validate_summaries(raw: Any) -> list[ComponentSummary]:
    """Parse a search response into summaries.

    Raises:
        InvalidComponentError: If the payload is not a list of valid
            summaries (names the offending record where possible).
    """
    if not isinstance(raw, list):
        raise InvalidComponentError("<search>", f"expected a list, got {type(raw).__name__}")
    summaries: list[ComponentSummary] = []
    for record in raw:
        name = record.get("name", "<unnamed>") if isinstance(record, dict) else "<non-object>"
        try:
            summaries.append(ComponentSummary.model_validate(record))
        except ValidationError as e:
            raise InvalidComponentError(str(name), _first_error(e)) from e
    return summaries


def validate_files(name: str, raw: Any) -> list[ComponentFile]:
    """Parse a file payload and check every path is safe to materialize.

    Raises:
        InvalidComponentError: On shape errors, an empty file list, or
            absolute / parent-traversing paths.
    """
    try:
        files = _file_list.validate_python(raw)
    except ValidationError as e:
        raise InvalidComponentError(name, _first_error(e)) from e
    if not files:
        raise InvalidComponentError(name, "component has no files")
    for f in files:
        check_relative_path(name, f.path)
    return files


def check_relative_path(name: str, path: str) -> None:
    """Reject absolute paths and any ``..`` segment (POSIX or Windows form)."""
    if not path or not path.strip():
        raise InvalidComponentError(name, "file path is empty")
    posix = PurePosixPath(path)
    windows = PureWindowsPath(path)
    if posix.is_absolute() or windows.is_absolute() or windows.drive:
        raise InvalidComponentError(name, f"file path must be relative: {path}")
    if ".." in posix.parts or ".." in windows.parts:
        raise InvalidComponentError(name, f"file path escapes the target: {path}")


def _first_error(e: ValidationError) -> str:
    err = e.errors()[0]
    loc = ".".join(str(p) for p in err.get("loc", ()))
    return f"{loc}: {err.get('msg', 'invalid')}" if loc else err.get("msg", "invalid")
