# src/logging/context.py - v1
"""Contextual logging support: attach run_id, component and phase to log records.

Context variables are task-local under asyncio, so concurrent component
installs each carry their own component/phase without interfering.
"""

from __future__ import annotations

import contextvars
from dataclasses import dataclass
from typing import Any

_run_id: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "run_id", default=None
)
_component: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "component", default=None
)
_phase: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "phase", default=None
)


@dataclass
class LogContext:
    """Immutable snapshot of current logging context."""

    run_id: str | None = None
    component: str | None = None
    phase: str | None = None

    def as_dict(self) -> dict[str, Any]:
        """Return non-None fields as dict for JSON log injection."""
        return {k: v for k, v in self.__dict__.items() if v is not None}


def get_context() -> LogContext:
    """Snapshot current context variables."""
    return LogContext(
        run_id=_run_id.get(),
        component=_component.get(),
        phase=_phase.get(),
    )


def set_run_context(run_id: str) -> contextvars.Token:
    """Set install-run context (called once per install call).

    Returns:
        Token for reset_run_context() once the run is over.
    """
    return _run_id.set(run_id)


def reset_run_context(token: contextvars.Token) -> None:
    """Restore the run id that was active before set_run_context()."""
    _run_id.reset(token)


def set_component_context(component: str, phase: str | None = None) -> None:
    """Set component-level context (called per state transition)."""
    _component.set(component)
    _phase.set(phase)


def clear_context() -> None:
    """Reset all context variables."""
    _run_id.set(None)
    _component.set(None)
    _phase.set(None)
