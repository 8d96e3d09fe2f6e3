"""Single entry point tying the store, resolver, ledger and executor together."""

import logging
from collections.abc import Awaitable, Callable, Iterable
from contextlib import ExitStack

from galatea.config import Config, ensure_directories
from galatea.errors import LedgerError

from .executor import EventCallback, Executor, ExecutorSettings, Fetcher, Runner
from .ledger import Ledger
from .models import Direction, ExecutionPlan, InstallationRecord, RunMode, RunReport
from .resolution import resolve, resolve_maintenance, resolve_uninstall
from .store import DefinitionStore

_logging = logging.getLogger(__name__)


class Orchestrator:
    def __init__(
        self,
        store: DefinitionStore,
        ledger: Ledger,
        runner: Runner,
        fetcher: Fetcher,
        settings: ExecutorSettings | None = None,
    ):
        self.store = store
        self.ledger = ledger
        self.executor = Executor(store, ledger, runner, fetcher, settings)

    @classmethod
    def from_config(cls, config: Config, debug: bool = False) -> "Orchestrator":
        """Build an orchestrator from a loaded configuration.

        Creates the configured directories, loads every definition file and
        opens the ledger. Rejected definitions are logged, not raised.

        Raises:
            ConfigError: If a directory cannot be created
            LedgerError: If the ledger journal is corrupt
        """
        from galatea.data_loader import load_definitions
        from galatea.execution import ScriptRunner
        from galatea.fetcher import SourceFetcher

        ensure_directories(config)

        store = DefinitionStore()
        tasks, stacks = load_definitions(config)
        for error in store.load(tasks, stacks):
            _logging.warning(f"Rejected definition: {error}")

        settings = ExecutorSettings(
            concurrency=config.concurrency,
            retries=config.retries,
            retry_delay=config.retry_delay,
            task_timeout=config.task_timeout,
            rollback_failed=config.rollback_failed,
        )
        return cls(
            store,
            Ledger(config.ledger_path),
            ScriptRunner(debug=debug),
            SourceFetcher(config.cache_dir, timeout=config.download_timeout),
            settings,
        )

    @property
    def settings(self) -> ExecutorSettings:
        return self.executor.settings

    def plan(self, targets: Iterable[str], force: bool = False) -> ExecutionPlan:
        """Resolve an install plan; ``force`` ignores the ledger."""
        satisfied = set() if force else self.ledger.satisfied()
        return resolve(self.store, targets, already_satisfied=satisfied)

    def plan_uninstall(self, targets: Iterable[str]) -> ExecutionPlan:
        return resolve_uninstall(self.store, self.ledger.installed(), targets)

    def plan_maintenance(self, targets: Iterable[str], direction: Direction) -> ExecutionPlan:
        """Resolve a reset or remediate plan over successfully installed tasks."""
        return resolve_maintenance(self.store, self.ledger.satisfied(), targets, direction)

    async def _run_locked(
        self,
        plan: ExecutionPlan,
        mode: RunMode,
        run: Callable[[ExecutionPlan], Awaitable[RunReport]],
        on_event: EventCallback | None,
        replan: Callable[[], ExecutionPlan] | None = None,
    ) -> RunReport:
        """Run ``plan`` holding the ledger lock.

        A ledger that is locked by another run or fails to reload yields an
        aborted report instead of an exception. ``replan`` re-resolves the
        plan once the lock is held and the journal is fresh.
        """
        if mode == RunMode.SIMULATED:
            return await run(plan)
        with ExitStack() as stack:
            try:
                stack.enter_context(self.ledger.exclusive())
            except LedgerError as e:
                _logging.error(f"Run not started: {e}")
                return self.executor.abort(plan, mode, e, on_event)
            if replan is not None:
                plan = replan()
            return await run(plan)

    async def execute(
        self,
        plan: ExecutionPlan,
        mode: RunMode = RunMode.REAL,
        force: bool = False,
        on_event: EventCallback | None = None,
    ) -> RunReport:
        return await self._run_locked(
            plan, mode, lambda p: self.executor.execute(p, mode, force, on_event), on_event
        )

    async def uninstall(
        self,
        targets: Iterable[str],
        mode: RunMode = RunMode.REAL,
        on_event: EventCallback | None = None,
    ) -> RunReport:
        targets = list(targets)
        return await self._run_locked(
            self.plan_uninstall(targets),
            mode,
            lambda p: self.executor.uninstall(p, mode, on_event),
            on_event,
            replan=lambda: self.plan_uninstall(targets),
        )

    async def maintain(
        self,
        targets: Iterable[str],
        direction: Direction,
        mode: RunMode = RunMode.REAL,
        on_event: EventCallback | None = None,
    ) -> RunReport:
        """Reset or remediate the installed members of ``targets``."""
        targets = list(targets)
        return await self._run_locked(
            self.plan_maintenance(targets, direction),
            mode,
            lambda p: self.executor.maintain(p, mode, on_event),
            on_event,
            replan=lambda: self.plan_maintenance(targets, direction),
        )

    def status(self) -> list[InstallationRecord]:
        """Installed tasks in the order they were recorded."""
        return self.ledger.list()

    def stack_status(self, name: str) -> str:
        return self.store.stack_status(name, self.ledger.satisfied())

    def cancel(self) -> None:
        self.executor.cancel()


__all__ = ["Orchestrator"]
