"""Plan execution: wave scheduling, per-task state machine and ledger updates.

Waves run strictly one after another. Inside a wave, tasks are dispatched to a
worker pool bounded by ``ExecutorSettings.concurrency`` and the wave is awaited
until every member is terminal before the next one starts.
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from pathlib import Path
from typing import Protocol

from galatea.errors import FetchError, LedgerError, StateTransitionError

from .ledger import Ledger
from .models import (
    CleanupRef,
    CommandResult,
    Direction,
    ExecutionPlan,
    ExecutionUnit,
    InstallationRecord,
    Outcome,
    ProgressEvent,
    Reason,
    RunMode,
    RunReport,
    RunStatus,
    ScriptKind,
    Task,
    TaskRun,
    TaskState,
)
from .store import DefinitionStore
from .validation import validate_content

_logging = logging.getLogger(__name__)

S = TaskState

# Reset and remediate runs walk the same states as an install.
INSTALL_TRANSITIONS: dict[TaskState, set[TaskState]] = {
    S.PENDING: {S.READY, S.SKIPPED},
    S.READY: {S.DOWNLOADING, S.VALIDATING, S.SKIPPED, S.FAILED},
    S.DOWNLOADING: {S.DOWNLOADING, S.VALIDATING, S.FAILED},
    S.VALIDATING: {S.RUNNING, S.FAILED},
    S.RUNNING: {S.RUNNING, S.SUCCEEDED, S.FAILED},
}

# Uninstall starts from the ledger: a recorded task is Succeeded, and only a
# Succeeded task can be rolled back.
UNINSTALL_TRANSITIONS: dict[TaskState, set[TaskState]] = {
    S.PENDING: {S.SUCCEEDED, S.SKIPPED},
    S.SUCCEEDED: {S.RUNNING, S.SKIPPED},
    S.RUNNING: {S.RUNNING, S.ROLLED_BACK, S.FAILED},
}


class Runner(Protocol):
    async def run(self, unit: ExecutionUnit, timeout: int) -> CommandResult: ...

    async def run_command(self, command: str, timeout: int) -> CommandResult: ...


class Fetcher(Protocol):
    def is_cached(self, name: str, locator: str) -> bool: ...

    async def fetch(self, name: str, locator: str) -> Path: ...


EventCallback = Callable[[ProgressEvent], None]


@dataclass
class ExecutorSettings:
    concurrency: int = 4
    retries: int = 2
    retry_delay: float = 2.0
    task_timeout: int = 600
    rollback_failed: bool = False

    def backoff(self, attempt: int) -> float:
        return self.retry_delay * (2 ** (attempt - 1))


class _RunContext:
    """Mutable state of one execute/uninstall invocation."""

    def __init__(
        self,
        plan: ExecutionPlan,
        report: RunReport,
        transitions: dict[TaskState, set[TaskState]],
        on_event: EventCallback | None,
    ):
        self.plan = plan
        self.report = report
        self.transitions = transitions
        self.on_event = on_event
        self.error: LedgerError | None = None

    def add(self, name: str) -> TaskRun:
        run = TaskRun(name=name)
        self.report.tasks[name] = run
        return run

    def run(self, name: str) -> TaskRun:
        return self.report.tasks[name]

    def state(self, name: str) -> TaskState:
        return self.report.tasks[name].state

    def satisfied(self, name: str) -> bool:
        run = self.report.tasks.get(name)
        if run is None:
            return False
        return run.state == S.SUCCEEDED or (
            run.state == S.SKIPPED and run.reason == Reason.ALREADY_INSTALLED
        )

    def transition(
        self,
        name: str,
        state: TaskState,
        reason: Reason | None = None,
        message: str = "",
    ) -> None:
        run = self.report.tasks[name]
        previous = run.state
        if state not in self.transitions.get(previous, set()):
            raise StateTransitionError(
                f"{name}: illegal transition {previous.value} -> {state.value}"
            )
        run.state = state
        if reason is not None:
            run.reason = reason
        if message:
            run.message = message
        event = ProgressEvent(
            sequence=len(self.report.events) + 1,
            task_name=name,
            previous=previous,
            state=state,
            reason=reason,
            attempt=run.attempts,
            message=message,
        )
        self.report.events.append(event)
        _logging.debug(
            f"{name}: {previous.value} -> {state.value}"
            + (f" ({reason.value})" if reason else "")
        )
        if self.on_event:
            self.on_event(event)

    def skip_pending(self, names, reason: Reason, message: str = "") -> list[str]:
        skipped = []
        for name in sorted(names):
            if self.state(name) in (S.PENDING, S.READY):
                self.transition(name, S.SKIPPED, reason, message)
                skipped.append(name)
        return skipped


class Executor:
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
        self.runner = runner
        self.fetcher = fetcher
        self.settings = settings or ExecutorSettings()
        self._cancelled = False

    def cancel(self) -> None:
        """Stop dispatching new work; in-flight tasks run to completion."""
        _logging.warning("Cancellation requested, no further tasks will start")
        self._cancelled = True

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    async def execute(
        self,
        plan: ExecutionPlan,
        mode: RunMode = RunMode.REAL,
        force: bool = False,
        on_event: EventCallback | None = None,
    ) -> RunReport:
        """Install every node of ``plan``.

        Args:
            plan: An install-direction plan from ``resolve``
            mode: REAL runs scripts and writes the ledger; SIMULATED does neither
            force: Re-run tasks the ledger already records as installed
            on_event: Called with each state change as it happens

        Returns:
            RunReport describing every node's final state
        """
        if plan.direction != Direction.INSTALL:
            raise ValueError("execute() needs an install plan")

        self._cancelled = False
        report = RunReport(mode=mode, direction=Direction.INSTALL)
        ctx = _RunContext(plan, report, INSTALL_TRANSITIONS, on_event)

        for name in plan.skipped:
            ctx.add(name)
            ctx.transition(name, S.SKIPPED, Reason.ALREADY_INSTALLED)
        for name in plan.nodes():
            ctx.add(name)

        semaphore = asyncio.Semaphore(self.settings.concurrency)

        for index, wave in enumerate(plan.waves):
            if ctx.error or self._cancelled:
                break

            ready = self._prepare_install_wave(ctx, wave, mode, force)
            _logging.info(f"Wave {index + 1}/{len(plan.waves)}: {', '.join(ready) or 'nothing to run'}")
            await asyncio.gather(
                *(self._install_one(ctx, name, mode, semaphore) for name in ready)
            )

            if self._crossed_reboot_boundary(ctx, wave):
                report.reboot_required = True
                later = [n for w in plan.waves[index + 1:] for n in w]
                deferred = ctx.skip_pending(
                    later, Reason.REBOOT_PENDING, "deferred until after reboot"
                )
                report.deferred.extend(deferred)
                if deferred:
                    _logging.warning(
                        f"Reboot required, deferring {len(deferred)} task(s)"
                    )
                    break

        self._finish(ctx)
        return report

    def _prepare_install_wave(
        self, ctx: _RunContext, wave: list[str], mode: RunMode, force: bool
    ) -> list[str]:
        ready = []
        for name in wave:
            if ctx.state(name) != S.PENDING:
                continue
            if self._cancelled:
                ctx.transition(name, S.SKIPPED, Reason.USER_CANCELLED)
                continue
            blocked = sorted(
                d for d in ctx.plan.dependencies.get(name, ()) if not ctx.satisfied(d)
            )
            if blocked:
                ctx.transition(
                    name,
                    S.SKIPPED,
                    Reason.UPSTREAM_FAILURE,
                    f"blocked by {', '.join(blocked)}",
                )
                continue
            if not force and self.ledger.is_satisfied(name):
                ctx.transition(name, S.SKIPPED, Reason.ALREADY_INSTALLED)
                continue
            ctx.transition(name, S.READY)
            ready.append(name)
        return ready

    async def _install_one(
        self, ctx: _RunContext, name: str, mode: RunMode, semaphore: asyncio.Semaphore
    ) -> None:
        async with semaphore:
            if self._cancelled or ctx.error:
                reason = Reason.USER_CANCELLED if self._cancelled else Reason.RUN_ABORTED
                ctx.transition(name, S.SKIPPED, reason)
                return
            try:
                await self._install_task(ctx, self.store.get_task(name), mode)
            except LedgerError as e:
                self._ledger_failed(ctx, name, e)
            except StateTransitionError:
                raise
            except Exception as e:
                self._crashed(ctx, name, e)

    def _ledger_failed(self, ctx: _RunContext, name: str, error: LedgerError) -> None:
        _logging.error(f"Ledger failure while finalizing {name}: {error}")
        ctx.error = ctx.error or error
        if not ctx.state(name).is_terminal:
            ctx.transition(name, S.FAILED, Reason.RUN_ABORTED, str(error))

    def _crashed(self, ctx: _RunContext, name: str, error: Exception) -> None:
        """Fail one task on an unexpected error, leaving its peers running.

        Re-raises when the task is in a state that cannot move to Failed.
        """
        if S.FAILED not in ctx.transitions.get(ctx.state(name), set()):
            raise error
        _logging.exception(f"Unexpected error while processing {name}")
        self._fail(ctx, name, Reason.EXECUTION_ERROR, f"{type(error).__name__}: {error}")

    async def _install_task(self, ctx: _RunContext, task: Task, mode: RunMode) -> None:
        name = task.name
        content = await self._obtain_content(ctx, task)
        if content is None:
            return

        ctx.transition(name, S.VALIDATING)
        problem = validate_content(task.kind, content)
        if problem:
            self._fail(ctx, name, Reason.VALIDATION_FAILED, problem)
            return

        unit = ExecutionUnit(kind=task.kind, path=content, args=["install"])
        ctx.transition(name, S.RUNNING)
        result = await self._invoke(
            ctx, name, mode, lambda: self.runner.run(unit, timeout=self.settings.task_timeout)
        )

        run = ctx.run(name)
        run.exit_code = result.exit_code
        run.output = result.output
        cleanup = self._cleanup_ref(task, content)

        if result.ok:
            if mode == RunMode.REAL:
                self.ledger.record(
                    name, Outcome.SUCCESS, cleanup, result.exit_code, result.output,
                    kind=task.kind, content_path=str(content),
                )
            ctx.transition(name, S.SUCCEEDED)
            _logging.info(f"Task {name} installed successfully")
            return

        reason = Reason.TIMEOUT if result.timed_out else Reason.RUNNER_NON_ZERO_EXIT
        if mode == RunMode.REAL:
            outcome = Outcome.FAILED
            if self.settings.rollback_failed and await self._rollback(name, cleanup):
                outcome = Outcome.ROLLED_BACK
            self.ledger.record(
                name, outcome, cleanup, result.exit_code, result.output,
                kind=task.kind, content_path=str(content),
            )
        self._fail(ctx, name, reason, result.stderr or f"exit code {result.exit_code}")

    async def _obtain_content(self, ctx: _RunContext, task: Task) -> Path | None:
        name = task.name
        if self.fetcher.is_cached(name, task.source):
            try:
                return await self.fetcher.fetch(name, task.source)
            except FetchError as e:
                ctx.transition(name, S.DOWNLOADING)
                self._fail(ctx, name, Reason.FETCH_FAILED, str(e))
                return None

        ctx.transition(name, S.DOWNLOADING)
        run = ctx.run(name)
        attempt = 1
        while True:
            try:
                return await self.fetcher.fetch(name, task.source)
            except FetchError as e:
                if attempt > self.settings.retries or self._cancelled:
                    self._fail(ctx, name, Reason.FETCH_FAILED, str(e))
                    return None
                delay = self.settings.backoff(attempt)
                _logging.warning(f"Download of {name} failed ({e}), retrying in {delay:.1f}s")
                await asyncio.sleep(delay)
                attempt += 1
                run.attempts = attempt
                ctx.transition(name, S.DOWNLOADING, message=f"retry {attempt - 1}: {e}")

    async def _invoke(
        self,
        ctx: _RunContext,
        name: str,
        mode: RunMode,
        call: Callable[[], Awaitable[CommandResult]],
    ) -> CommandResult:
        """Run ``call`` with retries; SIMULATED mode never calls it."""
        run = ctx.run(name)
        run.attempts = 1
        if mode == RunMode.SIMULATED:
            return CommandResult(exit_code=0, stdout="simulated")

        while True:
            result = await call()
            ctx.report.runner_invocations += 1
            if result.ok or result.timed_out or not result.retryable:
                return result
            if run.attempts > self.settings.retries or self._cancelled:
                return result
            delay = self.settings.backoff(run.attempts)
            _logging.warning(
                f"{name} exited with {result.exit_code}, retrying in {delay:.1f}s"
            )
            await asyncio.sleep(delay)
            run.attempts += 1
            ctx.transition(
                name, S.RUNNING, message=f"retry {run.attempts - 1}: exit code {result.exit_code}"
            )

    def _fail(self, ctx: _RunContext, name: str, reason: Reason, message: str) -> None:
        ctx.transition(name, S.FAILED, reason, message)
        _logging.error(f"Task {name} failed ({reason.value}): {message}")
        downstream = ctx.skip_pending(
            ctx.plan.dependents_of(name), Reason.UPSTREAM_FAILURE, f"{name} failed"
        )
        if downstream:
            _logging.warning(f"Skipping {', '.join(downstream)} because {name} failed")

    @staticmethod
    def _cleanup_ref(task: Task, content: Path) -> CleanupRef:
        if task.cleanup_command:
            return CleanupRef(command=task.cleanup_command)
        return CleanupRef(kind=task.kind, path=str(content), args=("uninstall",))

    async def _run_cleanup(self, cleanup: CleanupRef | None) -> CommandResult:
        timeout = self.settings.task_timeout
        if cleanup is None:
            return CommandResult(exit_code=0, stdout="no cleanup recorded")
        if cleanup.command is not None:
            return await self.runner.run_command(cleanup.command, timeout=timeout)
        path = Path(cleanup.path) if cleanup.path else None
        if cleanup.kind is None or path is None or not path.exists():
            return CommandResult(
                exit_code=1, stderr=f"cleanup content missing: {cleanup.path}"
            )
        unit = ExecutionUnit(kind=cleanup.kind, path=path, args=list(cleanup.args))
        return await self.runner.run(unit, timeout=timeout)

    async def _rollback(self, name: str, cleanup: CleanupRef) -> bool:
        _logging.info(f"Rolling back failed task {name}")
        result = await self._run_cleanup(cleanup)
        if not result.ok:
            _logging.error(f"Rollback of {name} failed: {result.output}")
        return result.ok

    def _crossed_reboot_boundary(self, ctx: _RunContext, wave: list[str]) -> bool:
        plan = ctx.plan
        succeeded_now = {n for n in wave if ctx.state(n) == S.SUCCEEDED}
        if succeeded_now & plan.reboot_tasks:
            return True
        for stack, members in plan.reboot_stacks.items():
            if succeeded_now & set(members) and all(ctx.satisfied(m) for m in members):
                _logging.info(f"Stack {stack} completed and requires a reboot")
                return True
        return False

    async def uninstall(
        self,
        plan: ExecutionPlan,
        mode: RunMode = RunMode.REAL,
        on_event: EventCallback | None = None,
    ) -> RunReport:
        """Tear down every node of an uninstall-direction ``plan``.

        Each task's cleanup comes from its ledger record, not from the
        current definition. A successful cleanup removes the record.
        """
        if plan.direction != Direction.UNINSTALL:
            raise ValueError("uninstall() needs an uninstall plan")

        self._cancelled = False
        report = RunReport(mode=mode, direction=Direction.UNINSTALL)
        ctx = _RunContext(plan, report, UNINSTALL_TRANSITIONS, on_event)

        for name in plan.skipped:
            ctx.add(name)
            ctx.transition(name, S.SKIPPED, Reason.NOT_INSTALLED)
        for name in plan.nodes():
            ctx.add(name)

        semaphore = asyncio.Semaphore(self.settings.concurrency)

        for wave in plan.waves:
            if ctx.error or self._cancelled:
                break
            ready = []
            for name in wave:
                if ctx.state(name) != S.PENDING:
                    continue
                if self._cancelled:
                    ctx.transition(name, S.SKIPPED, Reason.USER_CANCELLED)
                    continue
                record = self.ledger.get(name)
                if record is None:
                    ctx.transition(name, S.SKIPPED, Reason.NOT_INSTALLED)
                    continue
                if record.outcome != Outcome.SUCCESS:
                    self._clear_unsuccessful(ctx, record, mode)
                    continue
                ctx.transition(name, S.SUCCEEDED, message=f"installed {record.timestamp}")
                ready.append((name, record))
            await asyncio.gather(
                *(self._uninstall_one(ctx, name, record, mode, semaphore) for name, record in ready)
            )

        self._finish(ctx)
        return report

    def _clear_unsuccessful(
        self, ctx: _RunContext, record: InstallationRecord, mode: RunMode
    ) -> None:
        """Drop a failed or rolled-back record without running any cleanup.

        A rolled-back task was already cleaned up when its install failed, and
        a failed install never reached the state its cleanup undoes.
        """
        name = record.task_name
        try:
            if mode == RunMode.REAL:
                self.ledger.remove(name)
        except LedgerError as e:
            _logging.error(f"Ledger failure while removing {name}: {e}")
            ctx.error = ctx.error or e
            ctx.transition(name, S.SKIPPED, Reason.RUN_ABORTED, str(e))
            return
        _logging.info(f"Cleared {record.outcome.value} record for {name}")
        ctx.transition(
            name,
            S.SKIPPED,
            Reason.NOT_INSTALLED,
            f"{record.outcome.value} record cleared without cleanup",
        )

    async def _uninstall_one(
        self,
        ctx: _RunContext,
        name: str,
        record: InstallationRecord,
        mode: RunMode,
        semaphore: asyncio.Semaphore,
    ) -> None:
        async with semaphore:
            if self._cancelled or ctx.error:
                reason = Reason.USER_CANCELLED if self._cancelled else Reason.RUN_ABORTED
                ctx.transition(name, S.SKIPPED, reason)
                return
            ctx.transition(name, S.RUNNING)
            try:
                await self._uninstall_task(ctx, name, record, mode)
            except LedgerError as e:
                self._ledger_failed(ctx, name, e)
            except StateTransitionError:
                raise
            except Exception as e:
                self._crashed(ctx, name, e)

    async def _uninstall_task(
        self, ctx: _RunContext, name: str, record: InstallationRecord, mode: RunMode
    ) -> None:
        result = await self._invoke(
            ctx, name, mode, lambda: self._run_cleanup(record.cleanup)
        )
        run = ctx.run(name)
        run.exit_code = result.exit_code
        run.output = result.output

        if not result.ok:
            reason = Reason.TIMEOUT if result.timed_out else Reason.RUNNER_NON_ZERO_EXIT
            self._fail(ctx, name, reason, result.stderr or f"exit code {result.exit_code}")
            return
        if mode == RunMode.REAL:
            self.ledger.remove(name)
        ctx.transition(name, S.ROLLED_BACK)
        _logging.info(f"Task {name} uninstalled successfully")

    async def maintain(
        self,
        plan: ExecutionPlan,
        mode: RunMode = RunMode.REAL,
        on_event: EventCallback | None = None,
    ) -> RunReport:
        """Run the reset or remediate action of every installed task in ``plan``.

        Only tasks with a successful ledger record are touched. The script is
        taken from the recorded content path and fetched again from the
        current definition if that path is gone. A failure never skips the
        other tasks, and the ledger is not written.
        """
        if not plan.direction.is_maintenance:
            raise ValueError("maintain() needs a reset or remediate plan")

        self._cancelled = False
        report = RunReport(mode=mode, direction=plan.direction)
        ctx = _RunContext(plan, report, INSTALL_TRANSITIONS, on_event)

        for name in plan.skipped:
            ctx.add(name)
            ctx.transition(name, S.SKIPPED, Reason.NOT_INSTALLED)
        for name in plan.nodes():
            ctx.add(name)

        semaphore = asyncio.Semaphore(self.settings.concurrency)

        for wave in plan.waves:
            if ctx.error or self._cancelled:
                break
            ready = []
            for name in wave:
                if self._cancelled:
                    ctx.transition(name, S.SKIPPED, Reason.USER_CANCELLED)
                    continue
                record = self.ledger.get(name)
                if record is None or record.outcome != Outcome.SUCCESS:
                    ctx.transition(name, S.SKIPPED, Reason.NOT_INSTALLED)
                    continue
                ctx.transition(name, S.READY)
                ready.append((name, record))
            await asyncio.gather(
                *(self._maintain_one(ctx, name, record, mode, semaphore) for name, record in ready)
            )

        self._finish(ctx)
        return report

    async def _maintain_one(
        self,
        ctx: _RunContext,
        name: str,
        record: InstallationRecord,
        mode: RunMode,
        semaphore: asyncio.Semaphore,
    ) -> None:
        async with semaphore:
            if self._cancelled:
                ctx.transition(name, S.SKIPPED, Reason.USER_CANCELLED)
                return
            try:
                await self._maintain_task(ctx, name, record, mode)
            except StateTransitionError:
                raise
            except Exception as e:
                self._crashed(ctx, name, e)

    async def _maintain_task(
        self, ctx: _RunContext, name: str, record: InstallationRecord, mode: RunMode
    ) -> None:
        action = ctx.plan.direction.value
        kind, content = self._recorded_content(record)
        if content is None:
            if not self.store.has(name) or self.store.is_stack(name):
                self._fail(
                    ctx, name, Reason.FETCH_FAILED,
                    "recorded content is gone and the task is no longer defined",
                )
                return
            task = self.store.get_task(name)
            kind = kind or task.kind
            content = await self._obtain_content(ctx, task)
            if content is None:
                return

        if kind is None:
            self._fail(
                ctx, name, Reason.VALIDATION_FAILED, "script kind of the recorded content is unknown"
            )
            return

        ctx.transition(name, S.VALIDATING)
        problem = validate_content(kind, content)
        if problem:
            self._fail(ctx, name, Reason.VALIDATION_FAILED, problem)
            return

        unit = ExecutionUnit(kind=kind, path=content, args=[action])
        ctx.transition(name, S.RUNNING)
        result = await self._invoke(
            ctx, name, mode, lambda: self.runner.run(unit, timeout=self.settings.task_timeout)
        )
        run = ctx.run(name)
        run.exit_code = result.exit_code
        run.output = result.output

        if not result.ok:
            reason = Reason.TIMEOUT if result.timed_out else Reason.RUNNER_NON_ZERO_EXIT
            self._fail(ctx, name, reason, result.stderr or f"exit code {result.exit_code}")
            return
        ctx.transition(name, S.SUCCEEDED)
        _logging.info(f"Task {name}: {action} completed")

    def _recorded_content(
        self, record: InstallationRecord
    ) -> tuple[ScriptKind | None, Path | None]:
        kind = record.kind
        path = record.content_path
        if path is None and record.cleanup is not None and record.cleanup.path:
            kind = kind or record.cleanup.kind
            path = record.cleanup.path
        name = record.task_name
        if kind is None and self.store.has(name) and not self.store.is_stack(name):
            kind = self.store.get_task(name).kind
        if path is None or not Path(path).exists():
            return kind, None
        return kind, Path(path)

    def abort(
        self,
        plan: ExecutionPlan,
        mode: RunMode,
        error: LedgerError,
        on_event: EventCallback | None = None,
    ) -> RunReport:
        """Report a run that could not start because the ledger was unusable.

        Every node of ``plan`` ends as skipped with reason run_aborted.
        """
        transitions = (
            UNINSTALL_TRANSITIONS if plan.direction == Direction.UNINSTALL else INSTALL_TRANSITIONS
        )
        self._cancelled = False
        report = RunReport(mode=mode, direction=plan.direction)
        ctx = _RunContext(plan, report, transitions, on_event)
        ctx.error = error
        for name in list(plan.skipped) + plan.nodes():
            ctx.add(name)
        self._finish(ctx)
        return report

    def _finish(self, ctx: _RunContext) -> None:
        report = ctx.report
        leftover = [n for n, r in report.tasks.items() if not r.state.is_terminal]
        if ctx.error:
            ctx.skip_pending(leftover, Reason.RUN_ABORTED, str(ctx.error))
            report.error = str(ctx.error)
        elif self._cancelled:
            ctx.skip_pending(leftover, Reason.USER_CANCELLED)
        report.status = self._overall_status(ctx)
        _logging.info(f"Run finished: {report.status.value}")

    def _overall_status(self, ctx: _RunContext) -> RunStatus:
        report = ctx.report
        if ctx.error or self._cancelled:
            return RunStatus.ABORTED
        if report.deferred:
            return RunStatus.RESUME_PENDING
        if any(
            r.state == S.FAILED
            or (r.state == S.SKIPPED and r.reason == Reason.UPSTREAM_FAILURE)
            for r in report.tasks.values()
        ):
            return RunStatus.PARTIALLY_FAILED
        return RunStatus.COMPLETED


__all__ = [
    "INSTALL_TRANSITIONS",
    "UNINSTALL_TRANSITIONS",
    "Executor",
    "ExecutorSettings",
    "Fetcher",
    "Runner",
]
