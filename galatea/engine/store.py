"""In-memory catalog of task and stack definitions."""

import logging

from galatea.errors import DefinitionError, DefinitionErrorKind, NotFoundError

from .models import Stack, Task

_logging = logging.getLogger(__name__)


class DefinitionStore:
    """Catalog of loaded definitions keyed by unique name.

    Tasks and stacks share one namespace, since either can be named as a
    dependency. ``revision`` changes whenever the catalog does.
    """

    def __init__(self):
        self._tasks: dict[str, Task] = {}
        self._stacks: dict[str, Stack] = {}
        self.revision = 0

    def load(
        self,
        tasks: list[Task] | None = None,
        stacks: list[Stack] | None = None,
    ) -> list[DefinitionError]:
        """Merge a batch of definitions into the catalog.

        Definitions are accepted or rejected one by one. A rejected definition
        never aborts the rest of the batch or anything loaded before.

        Args:
            tasks: Task definitions to merge
            stacks: Stack definitions to merge

        Returns:
            The errors for every rejected definition (empty when all loaded)
        """
        errors: list[DefinitionError] = []
        candidates: dict[str, Task | Stack] = {}

        for definition in list(tasks or []) + list(stacks or []):
            name = definition.name
            if self.has(name) or name in candidates:
                errors.append(
                    DefinitionError(DefinitionErrorKind.DUPLICATE_NAME, name)
                )
                continue
            if name in _references(definition):
                errors.append(
                    DefinitionError(
                        DefinitionErrorKind.SELF_CYCLE,
                        name,
                        "definition references itself",
                    )
                )
                continue
            candidates[name] = definition

        # Reject dangling references until nothing else drops out, so that a
        # definition relying on a rejected one is rejected as well.
        changed = True
        while changed:
            changed = False
            for name in sorted(candidates):
                error = self._check_references(candidates[name], candidates)
                if error:
                    errors.append(error)
                    del candidates[name]
                    changed = True

        for name, definition in candidates.items():
            if isinstance(definition, Task):
                self._tasks[name] = definition
            else:
                self._stacks[name] = definition

        if candidates:
            self.revision += 1

        for error in errors:
            _logging.warning(f"Rejected definition: {error}")
        _logging.debug(
            f"Loaded {len(candidates)} definitions, rejected {len(errors)}"
        )
        return errors

    def _check_references(
        self, definition: Task | Stack, candidates: dict[str, Task | Stack]
    ) -> DefinitionError | None:
        for dep in definition.dependencies:
            if not (self.has(dep) or dep in candidates):
                return DefinitionError(
                    DefinitionErrorKind.UNKNOWN_DEPENDENCY,
                    definition.name,
                    f"unknown dependency '{dep}'",
                )
        if isinstance(definition, Stack):
            for member in definition.members:
                if member in self._tasks or isinstance(candidates.get(member), Task):
                    continue
                detail = (
                    f"member '{member}' is not a task"
                    if self.has(member) or member in candidates
                    else f"unknown member '{member}'"
                )
                return DefinitionError(
                    DefinitionErrorKind.UNKNOWN_DEPENDENCY, definition.name, detail
                )
        return None

    def has(self, name: str) -> bool:
        return name in self._tasks or name in self._stacks

    def is_stack(self, name: str) -> bool:
        return name in self._stacks

    def get_task(self, name: str) -> Task:
        try:
            return self._tasks[name]
        except KeyError:
            raise NotFoundError(f"task '{name}' not found") from None

    def get_stack(self, name: str) -> Stack:
        try:
            return self._stacks[name]
        except KeyError:
            raise NotFoundError(f"stack '{name}' not found") from None

    def tasks(self) -> dict[str, Task]:
        return dict(self._tasks)

    def stacks(self) -> dict[str, Stack]:
        return dict(self._stacks)

    def task_names(self) -> list[str]:
        return sorted(self._tasks)

    def stack_names(self) -> list[str]:
        return sorted(self._stacks)

    def stack_status(self, name: str, satisfied: set[str]) -> str:
        """Return 'installed', 'partial' or 'missing' for a stack."""
        stack = self.get_stack(name)
        done = sum(1 for m in stack.members if m in satisfied)
        if stack.members and done == len(stack.members):
            return "installed"
        if done:
            return "partial"
        return "missing"

    def stack_needs_reboot(self, name: str) -> bool:
        return self.get_stack(name).needs_reboot(self._tasks)

    def __len__(self) -> int:
        return len(self._tasks) + len(self._stacks)


def _references(definition: Task | Stack) -> list[str]:
    refs = list(definition.dependencies)
    if isinstance(definition, Stack):
        refs.extend(definition.members)
    return refs


__all__ = ["DefinitionStore"]
