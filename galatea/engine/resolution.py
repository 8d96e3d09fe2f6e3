"""Dependency graph construction and execution plan resolution.

The graph has one node per task or stack. Edges point from a node to what it
depends on:

- a task depends on its declared dependencies (tasks or stacks)
- a stack depends on its members and on its own declared dependencies
- a member of a stack in the graph also depends on that stack's dependencies

Stacks take part in cycle detection but never appear in waves: a stack is
satisfied exactly when all of its members are.
"""

import logging
from collections.abc import Iterable

from galatea.errors import ResolutionError, ResolutionErrorKind

from .models import Direction, ExecutionPlan
from .store import DefinitionStore

_logging = logging.getLogger(__name__)


def _direct_edges(store: DefinitionStore, name: str) -> list[str]:
    if store.is_stack(name):
        stack = store.get_stack(name)
        return list(stack.members) + list(stack.dependencies)
    return list(store.get_task(name).dependencies)


def _closure(store: DefinitionStore, roots: Iterable[str]) -> set[str]:
    seen: set[str] = set()
    frontier = list(roots)
    while frontier:
        name = frontier.pop()
        if name in seen:
            continue
        if not store.has(name):
            raise ResolutionError(ResolutionErrorKind.UNKNOWN_TARGET, [name])
        seen.add(name)
        frontier.extend(_direct_edges(store, name))
    return seen


def _build_graph(store: DefinitionStore, nodes: set[str]) -> dict[str, list[str]]:
    """Edges for every node of ``nodes``, including implicit member edges."""
    graph = {name: _direct_edges(store, name) for name in nodes}
    for name in nodes:
        if not store.is_stack(name):
            continue
        stack = store.get_stack(name)
        for member in stack.members:
            if member in graph:
                graph[member].extend(
                    d for d in stack.dependencies if d not in graph[member]
                )
    return graph


def find_cycle(graph: dict[str, list[str]]) -> list[str] | None:
    """Return a cycle as a closed chain (first name repeated last), or None.

    Nodes and neighbours are visited in sorted order so the reported chain is
    the same for identical inputs.
    """
    white, grey, black = 0, 1, 2
    color = {name: white for name in graph}
    stack_path: list[str] = []

    def visit(name: str) -> list[str] | None:
        color[name] = grey
        stack_path.append(name)
        for dep in sorted(set(graph.get(name, []))):
            if dep not in color:
                continue
            if color[dep] == grey:
                start = stack_path.index(dep)
                return stack_path[start:] + [dep]
            if color[dep] == white:
                found = visit(dep)
                if found:
                    return found
        stack_path.pop()
        color[name] = black
        return None

    for name in sorted(graph):
        if color[name] == white:
            found = visit(name)
            if found:
                return found
    return None


def _task_dependencies(
    store: DefinitionStore, graph: dict[str, list[str]], name: str
) -> set[str]:
    """Tasks reachable from ``name`` by passing only through stack nodes."""
    found: set[str] = set()
    seen: set[str] = set()
    frontier = list(graph.get(name, []))
    while frontier:
        dep = frontier.pop()
        if dep in seen:
            continue
        seen.add(dep)
        if store.is_stack(dep):
            frontier.extend(graph.get(dep, []))
        else:
            found.add(dep)
    found.discard(name)
    return found


def _waves(nodes: set[str], dependencies: dict[str, set[str]]) -> list[list[str]]:
    """Kahn's algorithm, one wave per round of zero in-degree extraction."""
    remaining = set(nodes)
    waves = []
    while remaining:
        wave = sorted(n for n in remaining if not (dependencies[n] & remaining))
        if not wave:
            cycle = find_cycle({n: sorted(dependencies[n] & remaining) for n in remaining})
            raise ResolutionError(ResolutionErrorKind.CYCLE, cycle or sorted(remaining))
        waves.append(wave)
        remaining.difference_update(wave)
    return waves


def _check_targets(store: DefinitionStore, targets: Iterable[str], known: set[str] | None = None):
    missing = sorted(
        t for t in targets if not store.has(t) and (known is None or t not in known)
    )
    if missing:
        raise ResolutionError(ResolutionErrorKind.UNKNOWN_TARGET, missing)


def resolve(
    store: DefinitionStore,
    targets: Iterable[str],
    already_satisfied: Iterable[str] = (),
) -> ExecutionPlan:
    """Build the install plan for ``targets``.

    Args:
        store: Definition catalog
        targets: Task or stack names to install
        already_satisfied: Task names the ledger records as installed; they
            are skipped but still satisfy their dependents

    Returns:
        ExecutionPlan whose waves form a topological order of the unsatisfied
        part of the targets' dependency closure

    Raises:
        ResolutionError: On unknown targets or a dependency cycle
    """
    targets = sorted(set(targets))
    _check_targets(store, targets)

    closure = _closure(store, targets)
    graph = _build_graph(store, closure)

    cycle = find_cycle(graph)
    if cycle:
        raise ResolutionError(ResolutionErrorKind.CYCLE, cycle)

    task_nodes = {n for n in closure if not store.is_stack(n)}
    satisfied = task_nodes & set(already_satisfied)
    pending = task_nodes - satisfied

    dependencies = {
        name: _task_dependencies(store, graph, name) & pending for name in pending
    }
    waves = _waves(pending, dependencies)

    tasks = store.tasks()
    reboot_stacks = {}
    for name in sorted(closure):
        if store.is_stack(name):
            stack = store.get_stack(name)
            if stack.requires_reboot:
                reboot_stacks[name] = list(stack.members)

    plan = ExecutionPlan(
        targets=targets,
        waves=waves,
        skipped=sorted(satisfied),
        dependencies=dependencies,
        reboot_tasks={n for n in pending if tasks[n].requires_reboot},
        reboot_stacks=reboot_stacks,
        direction=Direction.INSTALL,
    )
    _logging.debug(
        f"Resolved {targets}: {len(waves)} waves, {len(plan.skipped)} already satisfied"
    )
    return plan


def resolve_uninstall(
    store: DefinitionStore,
    installed: Iterable[str],
    targets: Iterable[str],
) -> ExecutionPlan:
    """Build the teardown plan for ``targets`` with edges reversed.

    Stacks expand to their members only; dependencies of the targets are
    left installed. A target that depends on another target (directly or
    through tasks outside the target set) is torn down first.

    Args:
        store: Definition catalog
        installed: Task names that have a ledger record
        targets: Task or stack names to uninstall

    Returns:
        ExecutionPlan in uninstall direction; targets without a ledger record
        are listed in ``skipped``

    Raises:
        ResolutionError: On unknown targets or a dependency cycle
    """
    installed = set(installed)
    targets = sorted(set(targets))
    _check_targets(store, targets, known=installed)

    expanded = _expand_stacks(store, targets)
    active = expanded & installed
    defined = {n for n in active if store.has(n)}

    graph = _build_graph(store, _closure(store, defined)) if defined else {}
    cycle = find_cycle(graph)
    if cycle:
        raise ResolutionError(ResolutionErrorKind.CYCLE, cycle)

    # waits_for[b] holds the targets that must be torn down before b.
    waits_for: dict[str, set[str]] = {name: set() for name in active}
    for name in defined:
        for dep in _transitive_tasks(store, graph, name) & active:
            waits_for[dep].add(name)

    plan = ExecutionPlan(
        targets=targets,
        waves=_waves(active, waits_for),
        skipped=sorted(expanded - installed),
        dependencies=waits_for,
        direction=Direction.UNINSTALL,
    )
    _logging.debug(f"Resolved uninstall of {targets}: {len(plan.waves)} waves")
    return plan


def _expand_stacks(store: DefinitionStore, targets: Iterable[str]) -> set[str]:
    expanded: set[str] = set()
    for target in targets:
        if store.is_stack(target):
            expanded.update(store.get_stack(target).members)
        else:
            expanded.add(target)
    return expanded


def resolve_maintenance(
    store: DefinitionStore,
    installed: Iterable[str],
    targets: Iterable[str],
    direction: Direction,
) -> ExecutionPlan:
    """Build a reset or remediate plan for the installed members of ``targets``.

    Tasks run in install order, but a failure never blocks another task, so
    the plan carries no dependency edges.

    Args:
        store: Definition catalog
        installed: Task names with a successful ledger record
        targets: Task or stack names
        direction: RESET or REMEDIATE

    Raises:
        ResolutionError: On unknown targets or a dependency cycle
    """
    if not direction.is_maintenance:
        raise ValueError(f"not a maintenance direction: {direction.value}")
    installed = set(installed)
    targets = sorted(set(targets))
    _check_targets(store, targets, known=installed)

    expanded = _expand_stacks(store, targets)
    active = expanded & installed
    defined = {n for n in active if store.has(n)}

    graph = _build_graph(store, _closure(store, defined)) if defined else {}
    cycle = find_cycle(graph)
    if cycle:
        raise ResolutionError(ResolutionErrorKind.CYCLE, cycle)

    after: dict[str, set[str]] = {name: set() for name in active}
    for name in defined:
        after[name] = _transitive_tasks(store, graph, name) & active

    plan = ExecutionPlan(
        targets=targets,
        waves=_waves(active, after),
        skipped=sorted(expanded - installed),
        dependencies={name: set() for name in active},
        direction=direction,
    )
    _logging.debug(f"Resolved {direction.value} of {targets}: {len(plan.waves)} waves")
    return plan


def _transitive_tasks(
    store: DefinitionStore, graph: dict[str, list[str]], name: str
) -> set[str]:
    found: set[str] = set()
    frontier = list(graph.get(name, []))
    while frontier:
        dep = frontier.pop()
        if dep in found:
            continue
        found.add(dep)
        frontier.extend(graph.get(dep, []))
    found.discard(name)
    return {n for n in found if not store.is_stack(n)}


def dependency_order(plan: ExecutionPlan) -> list[str]:
    """Flatten a plan's waves into a single execution order."""
    return plan.nodes()


__all__ = [
    "find_cycle",
    "resolve",
    "resolve_uninstall",
    "resolve_maintenance",
    "dependency_order",
]
