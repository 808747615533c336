# src/resolver/dependency_resolver.py - v1
"""Transitive-closure dependency gathering (no version constraint solving).

Breadth-first over the declared ``dependencies`` edges. A name is added to
the result set before it is enqueued and never enqueued twice, which makes
the walk terminate on cyclic graphs without any visiting/visited marking.
"""

from __future__ import annotations

import logging
from collections import deque
from typing import Iterable, Mapping

from compforge.core.errors import ComponentNotFoundError
from compforge.core.models import ComponentSummary

logger = logging.getLogger(__name__)

Graph = Mapping[str, ComponentSummary]


def resolve(requested: Iterable[str], graph: Graph) -> list[str]:
    """Return the closure of ``requested`` in breadth-first discovery order.

    The result starts with the requested names (duplicates removed, order
    kept), followed by dependencies in the order they were discovered.

    Raises:
        ComponentNotFoundError: If a requested name, or a dependency of any
            component in the closure, is missing from ``graph``. No partial
            closure is returned.
    """
    requested = list(dict.fromkeys(requested))
    missing = [name for name in requested if name not in graph]
    if missing:
        raise ComponentNotFoundError(missing)

    result: dict[str, None] = dict.fromkeys(requested)
    queue: deque[str] = deque(requested)

    while queue:
        name = queue.popleft()
        deps = graph[name].dependencies
        absent = [dep for dep in deps if dep not in graph]
        if absent:
            raise ComponentNotFoundError(absent, required_by=name)
        for dep in deps:
            if dep not in result:
                result[dep] = None
                queue.append(dep)

    closure = list(result)
    logger.debug(
        "Resolved %d requested -> %d components: %s",
        len(requested), len(closure), ", ".join(closure),
    )
    return closure


def dependency_order(closure: Iterable[str], graph: Graph) -> list[str]:
    """Order ``closure`` so each component follows its dependencies.

    Depth-first post-order; a back edge of a cycle is ignored, so members
    of a cycle keep their discovery order relative to each other.
    Dependencies outside ``closure`` are skipped.
    """
    members = list(dict.fromkeys(closure))
    wanted = set(members)
    ordered: list[str] = []
    placed: set[str] = set()
    on_path: set[str] = set()

    def visit(name: str) -> None:
        if name in placed or name in on_path:
            return
        on_path.add(name)
        node = graph.get(name)
        for dep in node.dependencies if node is not None else ():
            if dep in wanted:
                visit(dep)
        on_path.discard(name)
        placed.add(name)
        ordered.append(name)

    for name in members:
        visit(name)
    return ordered
