"""Data models for the orchestration engine."""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import Any


class ScriptKind(Enum):
    SHELL = "shell"
    PLAYBOOK = "playbook"
    MIXED = "mixed"

    @classmethod
    def parse(cls, value: str) -> "ScriptKind":
        aliases = {
            "shell": cls.SHELL,
            "bash": cls.SHELL,
            "b": cls.SHELL,
            "playbook": cls.PLAYBOOK,
            "ansible": cls.PLAYBOOK,
            "a": cls.PLAYBOOK,
            "mixed": cls.MIXED,
            "m": cls.MIXED,
        }
        try:
            return aliases[value.strip().lower()]
        except KeyError:
            raise ValueError(
                f"Unknown script type '{value}'. Must be one of: shell, playbook, mixed"
            ) from None

    @property
    def letter(self) -> str:
        return {"shell": "S", "playbook": "P", "mixed": "M"}[self.value]


@dataclass
class ExecutionUnit:
    """One invocation handed to the runner.

    ``path`` is the task's local content (a directory or the script itself);
    ``args`` are passed to shell scripts, and the first one doubles as the
    playbook tag (install, uninstall, reset, remediate).
    """
    kind: ScriptKind
    path: Path
    args: list[str] = field(default_factory=lambda: ["install"])

    @property
    def action(self) -> str:
        return self.args[0] if self.args else "install"


@dataclass
class CommandResult:
    exit_code: int
    stdout: str = ""
    stderr: str = ""
    timed_out: bool = False
    retryable: bool = False

    @property
    def ok(self) -> bool:
        return self.exit_code == 0

    @property
    def output(self) -> str:
        return "\n".join(part for part in (self.stdout, self.stderr) if part)


@dataclass
class Task:
    name: str
    kind: ScriptKind
    source: str
    description: str = ""
    dependencies: list[str] = field(default_factory=list)
    tags: list[str] = field(default_factory=list)
    requires_reboot: bool = False
    cleanup_command: str | None = None


@dataclass
class Stack:
    name: str
    members: list[str]
    description: str = ""
    dependencies: list[str] = field(default_factory=list)
    tags: list[str] = field(default_factory=list)
    requires_reboot: bool = False

    def needs_reboot(self, tasks: dict[str, Task]) -> bool:
        """True if the stack itself or any known member requires a reboot."""
        if self.requires_reboot:
            return True
        return any(
            tasks[m].requires_reboot for m in self.members if m in tasks
        )


class Outcome(Enum):
    SUCCESS = "success"
    FAILED = "failed"
    ROLLED_BACK = "rolled_back"


@dataclass(frozen=True)
class CleanupRef:
    """How to undo an installed task, captured when it was installed.

    Either ``command`` (run through the shell) or a runner unit described by
    ``kind``/``path``/``args``.
    """
    command: str | None = None
    kind: ScriptKind | None = None
    path: str | None = None
    args: tuple[str, ...] = ()

    def to_dict(self) -> dict[str, Any]:
        if self.command is not None:
            return {"command": self.command}
        return {
            "kind": self.kind.value if self.kind else None,
            "path": self.path,
            "args": list(self.args),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "CleanupRef":
        if data.get("command") is not None:
            return cls(command=str(data["command"]))
        kind = data.get("kind")
        return cls(
            kind=ScriptKind(kind) if kind else None,
            path=data.get("path"),
            args=tuple(data.get("args") or ()),
        )


def utc_now() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds")


@dataclass
class InstallationRecord:
    task_name: str
    outcome: Outcome
    timestamp: str = field(default_factory=utc_now)
    exit_code: int | None = None
    output: str = ""
    cleanup: CleanupRef | None = None
    kind: ScriptKind | None = None
    content_path: str | None = None
    sequence: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "task_name": self.task_name,
            "timestamp": self.timestamp,
            "outcome": self.outcome.value,
            "exit_code": self.exit_code,
            "output": self.output,
            "cleanup": self.cleanup.to_dict() if self.cleanup else None,
            "kind": self.kind.value if self.kind else None,
            "content_path": self.content_path,
            "sequence": self.sequence,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "InstallationRecord":
        cleanup = data.get("cleanup")
        kind = data.get("kind")
        return cls(
            task_name=data["task_name"],
            outcome=Outcome(data["outcome"]),
            timestamp=data["timestamp"],
            exit_code=data.get("exit_code"),
            output=data.get("output", ""),
            cleanup=CleanupRef.from_dict(cleanup) if cleanup else None,
            kind=ScriptKind(kind) if kind else None,
            content_path=data.get("content_path"),
            sequence=int(data.get("sequence", 0)),
        )


class Direction(Enum):
    INSTALL = "install"
    UNINSTALL = "uninstall"
    RESET = "reset"
    REMEDIATE = "remediate"

    @property
    def is_maintenance(self) -> bool:
        return self in (Direction.RESET, Direction.REMEDIATE)


@dataclass
class ExecutionPlan:
    targets: list[str]
    waves: list[list[str]] = field(default_factory=list)
    skipped: list[str] = field(default_factory=list)
    dependencies: dict[str, set[str]] = field(default_factory=dict)
    reboot_tasks: set[str] = field(default_factory=set)
    reboot_stacks: dict[str, list[str]] = field(default_factory=dict)
    direction: Direction = Direction.INSTALL

    def is_empty(self) -> bool:
        return not self.waves

    def nodes(self) -> list[str]:
        return [name for wave in self.waves for name in wave]

    def dependents_of(self, name: str) -> set[str]:
        """Transitive in-plan dependents of ``name``."""
        found: set[str] = set()
        frontier = [name]
        while frontier:
            current = frontier.pop()
            for node, deps in self.dependencies.items():
                if current in deps and node not in found:
                    found.add(node)
                    frontier.append(node)
        return found


class TaskState(Enum):
    PENDING = "pending"
    READY = "ready"
    DOWNLOADING = "downloading"
    VALIDATING = "validating"
    RUNNING = "running"
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    SKIPPED = "skipped"
    ROLLED_BACK = "rolled_back"

    @property
    def is_terminal(self) -> bool:
        return self in (
            TaskState.SUCCEEDED,
            TaskState.FAILED,
            TaskState.SKIPPED,
            TaskState.ROLLED_BACK,
        )


class Reason(Enum):
    ALREADY_INSTALLED = "already_installed"
    NOT_INSTALLED = "not_installed"
    UPSTREAM_FAILURE = "upstream_failure"
    USER_CANCELLED = "user_cancelled"
    REBOOT_PENDING = "reboot_pending"
    RUN_ABORTED = "run_aborted"
    FETCH_FAILED = "fetch_failed"
    VALIDATION_FAILED = "validation_failed"
    RUNNER_NON_ZERO_EXIT = "runner_non_zero_exit"
    TIMEOUT = "timeout"
    EXECUTION_ERROR = "execution_error"


@dataclass
class TaskRun:
    name: str
    state: TaskState = TaskState.PENDING
    reason: Reason | None = None
    attempts: int = 0
    exit_code: int | None = None
    output: str = ""
    message: str = ""


@dataclass(frozen=True)
class ProgressEvent:
    sequence: int
    task_name: str
    previous: TaskState
    state: TaskState
    reason: Reason | None = None
    attempt: int = 0
    message: str = ""
    timestamp: str = field(default_factory=utc_now)


class RunMode(Enum):
    REAL = "real"
    SIMULATED = "simulated"


class RunStatus(Enum):
    COMPLETED = "completed"
    PARTIALLY_FAILED = "partially_failed"
    RESUME_PENDING = "resume_pending"
    ABORTED = "aborted"


@dataclass
class RunReport:
    mode: RunMode
    direction: Direction
    status: RunStatus = RunStatus.COMPLETED
    tasks: dict[str, TaskRun] = field(default_factory=dict)
    events: list[ProgressEvent] = field(default_factory=list)
    reboot_required: bool = False
    deferred: list[str] = field(default_factory=list)
    error: str | None = None
    runner_invocations: int = 0

    def states(self) -> dict[str, TaskState]:
        return {name: run.state for name, run in self.tasks.items()}


__all__ = [
    "ScriptKind",
    "ExecutionUnit",
    "CommandResult",
    "Task",
    "Stack",
    "Outcome",
    "CleanupRef",
    "InstallationRecord",
    "Direction",
    "ExecutionPlan",
    "TaskState",
    "Reason",
    "TaskRun",
    "ProgressEvent",
    "RunMode",
    "RunStatus",
    "RunReport",
    "utc_now",
]
