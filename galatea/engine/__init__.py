"""Orchestration engine: definitions, resolution, ledger and execution."""

from .executor import (
    INSTALL_TRANSITIONS,
    UNINSTALL_TRANSITIONS,
    Executor,
    ExecutorSettings,
)
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
    Stack,
    Task,
    TaskRun,
    TaskState,
)
from .orchestrator import Orchestrator
from .planning import render_plan, render_report
from .resolution import (
    dependency_order,
    find_cycle,
    resolve,
    resolve_maintenance,
    resolve_uninstall,
)
from .store import DefinitionStore
from .validation import validate_content

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
    "DefinitionStore",
    "Ledger",
    "Executor",
    "ExecutorSettings",
    "INSTALL_TRANSITIONS",
    "UNINSTALL_TRANSITIONS",
    "Orchestrator",
    "find_cycle",
    "resolve",
    "resolve_uninstall",
    "resolve_maintenance",
    "dependency_order",
    "render_plan",
    "render_report",
    "validate_content",
]
