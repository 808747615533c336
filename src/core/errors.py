# src/core/errors.py - v1
"""Error taxonomy for resolution and installation.

Every error carries a machine-readable ``code`` so the CLI and the install
outcome can report failures without string matching.

Resolution-phase errors (raised before any write) abort the whole batch.
Installation-phase errors are isolated to the component that raised them.
"""

from __future__ import annotations


class CompforgeError(Exception):
    """Base class for all compforge errors."""

    code: str = "UNKNOWN"

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class ComponentNotFoundError(CompforgeError):
    """A requested or transitively required component is absent from the registry."""

    code = "COMPONENT_NOT_FOUND"

    def __init__(self, names: list[str], required_by: str | None = None) -> None:
        self.names = list(names)
        self.required_by = required_by
        joined = ", ".join(self.names)
        if required_by:
            message = f"Component(s) not found in registry: {joined} (required by '{required_by}')"
        else:
            message = f"Component(s) not found in registry: {joined}"
        super().__init__(message)


class InvalidComponentError(CompforgeError):
    """Registry payload failed shape or safety validation."""

    code = "INVALID_COMPONENT"

    def __init__(self, name: str, reason: str) -> None:
        self.name = name
        self.reason = reason
        super().__init__(f"Invalid component '{name}': {reason}")


class TargetFileExistsError(CompforgeError):
    """Overwrite guard tripped: a target file already exists."""

    code = "FILE_EXISTS"

    def __init__(self, component: str, paths: list[str]) -> None:
        self.component = component
        self.paths = list(paths)
        super().__init__(
            f"Target file(s) already exist for '{component}': {', '.join(self.paths)} "
            "(use --overwrite to replace)"
        )


class OperationTimeoutError(CompforgeError):
    """An awaited operation did not settle before its deadline."""

    code = "TIMEOUT"


class FetchFailedError(CompforgeError):
    """Registry fetch failed after all retries were exhausted."""

    code = "FETCH_FAILED"

    def __init__(self, target: str, attempts: int, last_error: BaseException) -> None:
        self.target = target
        self.attempts = attempts
        self.last_error = last_error
        super().__init__(
            f"Fetching '{target}' failed after {attempts} attempt(s): {last_error}"
        )


class WorkspaceWriteError(CompforgeError):
    """Writing a component file into the workspace failed."""

    code = "WRITE_FAILED"

    def __init__(self, path: str, kind: str, cause: BaseException) -> None:
        self.path = path
        self.kind = kind
        self.cause = cause
        super().__init__(f"Cannot write {path} ({kind}): {cause}")
