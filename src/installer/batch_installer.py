# src/installer/batch_installer.py - v1
"""Batch installer: resolve, fetch and materialize components into a workspace.

Workflow:
    1. Load the registry graph, overlay any local definitions, and compute
       the dependency closure. Any error here aborts the batch before a
       single fetch or write.
    2. Detect the workspace once for the whole batch.
    3. Per component, through the bounded executor:
       resolving -> (cache_hit | fetching) -> writing -> installed | failed
       Every target is checked before the first write; an existing file, or
       one already claimed by another component of the batch, fails the
       component unless ``overwrite`` is set.
    4. Collect successes and failures into an InstallOutcome.

Dry runs stop before step 3's writes but perform the same checks, so the
outcome predicts what a real run would do.
"""

from __future__ import annotations

import asyncio
import inspect
import logging
import time
import uuid
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Mapping

from pydantic import BaseModel, ConfigDict, Field

from compforge.concurrency.bounded import run_bounded
from compforge.config.settings import ConfigurationError, Settings
from compforge.core.errors import OperationTimeoutError, TargetFileExistsError
from compforge.core.models import (
    Component,
    ComponentFile,
    ComponentState,
    ComponentSummary,
    FailedComponent,
    InstallOptions,
    InstallOutcome,
    PlannedFile,
    ProgressEvent,
)
from compforge.installer.filesystem import Filesystem, LocalFilesystem
from compforge.installer.transform import prepare_content
from compforge.logging.context import (
    reset_run_context,
    set_component_context,
    set_run_context,
)
from compforge.registry.client import RegistryClient
from compforge.resolver.dependency_resolver import dependency_order, resolve
from compforge.workspace.detector import WorkspaceDetector
from compforge.workspace.models import WorkspaceInfo
from compforge.workspace.paths import TargetPathResolver

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[ProgressEvent], Any]


class InstallPlan(BaseModel):
    """Closure to install (BFS discovery order) and the workspace it targets."""

    model_config = ConfigDict(frozen=True)

    requested: list[str]
    components: list[str]
    workspace: WorkspaceInfo
    summaries: dict[str, ComponentSummary] = Field(default_factory=dict)
    definitions: dict[str, Component] = Field(default_factory=dict)

    def version_of(self, name: str) -> str:
        summary = self.summaries.get(name)
        return summary.version if summary is not None else "latest"

    def npm_dependencies(self) -> list[str]:
        """npm packages needed by the closure, first-seen order, no duplicates."""
        deps: dict[str, None] = {}
        for name in self.components:
            summary = self.summaries.get(name)
            if summary is not None:
                deps.update(dict.fromkeys(summary.npm_dependencies))
        return list(deps)


@dataclass
class _BatchState:
    plan: InstallPlan
    options: InstallOptions
    paths: TargetPathResolver
    planned: dict[str, list[PlannedFile]] = field(default_factory=dict)
    terminal: set[str] = field(default_factory=set)
    # target path -> component that will write it
    claimed: dict[Path, str] = field(default_factory=dict)

    @property
    def settled(self) -> int:
        return len(self.terminal)


class BatchInstaller:
    """Installs a set of components and their dependencies.

    Args:
        registry: Cache-first registry client. May be None when every
            component comes from a local definition.
        detector: Workspace detector (one per command).
        filesystem: Workspace filesystem. Defaults to the local disk.
        settings: Concurrency and timeout settings.
        progress: Optional callback (sync or async) receiving ProgressEvents.
            It is never awaited by the installer.
    """

    def __init__(
        self,
        registry: RegistryClient | None,
        detector: WorkspaceDetector | None = None,
        filesystem: Filesystem | None = None,
        settings: Settings | None = None,
        progress: ProgressCallback | None = None,
    ) -> None:
        self._registry = registry
        self._detector = detector or WorkspaceDetector()
        self._fs = filesystem or LocalFilesystem()
        self._settings = settings or Settings()
        self._progress = progress
        self._pending_callbacks: set[asyncio.Task] = set()

    async def plan(
        self,
        requested: list[str],
        root: Path | str,
        definitions: list[Component] | None = None,
    ) -> InstallPlan:
        """Compute the closure and detect the workspace. No writes.

        Local definitions are requested implicitly and take precedence over
        registry entries of the same name. The registry is only consulted
        when something outside the definitions is needed.

        Raises:
            ComponentNotFoundError: A requested or required component is missing.
            FetchFailedError: The registry graph could not be loaded.
            InvalidComponentError: The registry returned malformed data.
            ConfigurationError: The registry is needed but none was given.
        """
        local = {d.name: d for d in definitions or []}
        names = list(dict.fromkeys(
            [*local, *(n.strip() for n in requested if n and n.strip())]
        ))
        graph: dict[str, ComponentSummary] = {}
        wanted = set(names)
        for definition in local.values():
            wanted.update(definition.dependencies)
        if not wanted <= local.keys():
            if self._registry is None:
                raise ConfigurationError(
                    "No registry source: pass one explicitly or set REGISTRY_FILE"
                )
            graph = await self._registry.load_graph()
        graph.update({name: d.summary() for name, d in local.items()})
        closure = resolve(names, graph)
        workspace = self._detector.detect(root)
        added = len(closure) - len(names)
        logger.info(
            "Resolved %d component(s) (%d requested, %d dependencies)",
            len(closure), len(names), added,
        )
        logger.debug("Dependency order: %s", ", ".join(dependency_order(closure, graph)))
        return InstallPlan(
            requested=names,
            components=closure,
            workspace=workspace,
            summaries={name: graph[name] for name in closure},
            definitions=local,
        )

    async def install(
        self,
        requested: list[str],
        options: InstallOptions | Mapping[str, Any] | None = None,
        root: Path | str = ".",
        definitions: list[Component] | None = None,
    ) -> InstallOutcome:
        """Install ``requested`` and their transitive dependencies into ``root``.

        Args:
            requested: Component names as typed by the user.
            options: InstallOptions, or a plain mapping validated into one.
            root: Directory the command targets (never implied from cwd).
            definitions: Components read from local definition files.

        Returns:
            InstallOutcome summarizing every component.
        """
        if not isinstance(options, InstallOptions):
            options = InstallOptions.model_validate(dict(options or {}))

        token = set_run_context(uuid.uuid4().hex[:12])
        try:
            return await self._run(requested, options, root, definitions)
        finally:
            reset_run_context(token)

    async def _run(
        self,
        requested: list[str],
        options: InstallOptions,
        root: Path | str,
        definitions: list[Component] | None,
    ) -> InstallOutcome:
        start = time.monotonic()
        plan = await self.plan(requested, root, definitions)
        state = _BatchState(
            plan=plan,
            options=options,
            paths=TargetPathResolver(plan.workspace, self._detector),
        )
        for name in plan.components:
            self._emit(state, name, ComponentState.PENDING)

        async def worker(name: str, index: int) -> str:
            return await self._install_one(state, name)

        result = await run_bounded(
            plan.components,
            worker,
            concurrency=self._settings.install_concurrency,
            stop_on_error=False,
            task_timeout_s=self._settings.install_task_timeout_s,
        )

        failed: list[FailedComponent] = []
        for task_error in result.errors:
            name = plan.components[task_error.index]
            error = task_error.error
            # timed-out workers are abandoned before they can report
            self._enter(state, name, ComponentState.FAILED, bind_context=False)
            failed.append(FailedComponent(
                name=name,
                error=str(error) or type(error).__name__,
                code=getattr(error, "code", "INSTALL_ERROR"),
            ))
        failed_indices = result.failed_indices
        succeeded = [n for i, n in enumerate(plan.components) if i not in failed_indices]

        outcome = InstallOutcome(
            succeeded=succeeded,
            failed=failed,
            duration_s=time.monotonic() - start,
            dry_run=options.dry_run,
            planned_files=[
                pf for name in plan.components for pf in state.planned.get(name, [])
            ],
            npm_dependencies=plan.npm_dependencies(),
        )
        logger.info(
            "%s complete: %d succeeded, %d failed in %.2fs",
            "Dry run" if options.dry_run else "Install",
            len(outcome.succeeded), len(outcome.failed), outcome.duration_s,
        )
        return outcome

    # --- per component ---

    async def _install_one(self, state: _BatchState, name: str) -> str:
        # run_bounded abandons the task at this point; nothing may be written after it
        deadline = time.monotonic() + self._settings.install_task_timeout_s
        try:
            self._enter(state, name, ComponentState.RESOLVING)
            files = await self._load_files(state, name)

            planned = await self._plan_files(state, name, files)
            state.planned[name] = planned
            conflicts = [
                str(pf.target_path) for pf in planned
                if pf.exists or state.claimed.get(pf.target_path, name) != name
            ]
            if conflicts and not state.options.overwrite:
                raise TargetFileExistsError(name, conflicts)
            for pf in planned:
                state.claimed.setdefault(pf.target_path, name)

            if not state.options.dry_run:
                self._enter(state, name, ComponentState.WRITING)
                by_source = {f.path: f for f in files}
                for pf in planned:
                    if name in state.terminal or time.monotonic() >= deadline:
                        raise OperationTimeoutError(
                            f"Component '{name}' ran past its deadline before writing "
                            f"{pf.target_path}"
                        )
                    content = prepare_content(by_source[pf.source_path], state.plan.workspace)
                    await self._fs.write_text_atomic(pf.target_path, content)
        except Exception as exc:
            self._enter(state, name, ComponentState.FAILED)
            logger.warning("Component '%s' failed: %s", name, exc)
            raise

        self._enter(state, name, ComponentState.INSTALLED)
        logger.info(
            "%s '%s' (%d file(s))",
            "Planned" if state.options.dry_run else "Installed", name, len(planned),
        )
        return name

    async def _load_files(self, state: _BatchState, name: str) -> list[ComponentFile]:
        definition = state.plan.definitions.get(name)
        if definition is not None:
            self._enter(state, name, ComponentState.FETCHING)
            return definition.files

        assert self._registry is not None  # plan() loaded the graph through it
        version = state.plan.version_of(name)
        files = await self._registry.cached_files(name, version)
        if files is not None:
            self._enter(state, name, ComponentState.CACHE_HIT)
            return files
        self._enter(state, name, ComponentState.FETCHING)
        return await self._registry.fetch_files(name, version)

    async def _plan_files(
        self, state: _BatchState, name: str, files: list[ComponentFile]
    ) -> list[PlannedFile]:
        planned = []
        for f in files:
            target = state.paths.target_for(f.path, state.options.path)
            planned.append(PlannedFile(
                component=name,
                source_path=f.path,
                target_path=target,
                exists=await self._fs.exists(target),
            ))
        return planned

    # --- progress ---

    def _enter(
        self,
        state: _BatchState,
        name: str,
        phase: ComponentState,
        bind_context: bool = True,
    ) -> None:
        if name in state.terminal:
            return
        if phase.is_terminal:
            state.terminal.add(name)
        if bind_context:
            set_component_context(name, phase.value)
        logger.debug("Component '%s' -> %s", name, phase.value)
        self._emit(state, name, phase)

    def _emit(self, state: _BatchState, name: str, phase: ComponentState) -> None:
        if self._progress is None:
            return
        event = ProgressEvent(
            current=state.settled,
            total=len(state.plan.components),
            component=name,
            phase=phase,
        )
        try:
            outcome = self._progress(event)
        except Exception as e:
            logger.warning("Progress callback failed: %s", e)
            return
        if inspect.isawaitable(outcome):
            task = asyncio.ensure_future(outcome)
            self._pending_callbacks.add(task)
            task.add_done_callback(self._callback_done)

    def _callback_done(self, task: asyncio.Task) -> None:
        self._pending_callbacks.discard(task)
        if not task.cancelled() and task.exception() is not None:
            logger.warning("Progress callback failed: %s", task.exception())
