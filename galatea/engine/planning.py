"""Human-readable rendering of plans and run reports."""

from .models import (
    Direction,
    ExecutionPlan,
    Reason,
    RunReport,
    RunMode,
    RunStatus,
    TaskState,
)
from .store import DefinitionStore

STATE_ICONS = {
    TaskState.PENDING: "⏳",
    TaskState.READY: "⏳",
    TaskState.DOWNLOADING: "⬇️ ",
    TaskState.VALIDATING: "🔎",
    TaskState.RUNNING: "⚙️ ",
    TaskState.SUCCEEDED: "✅",
    TaskState.FAILED: "❌",
    TaskState.SKIPPED: "⏭️ ",
    TaskState.ROLLED_BACK: "↩️ ",
}

STATUS_LABELS = {
    RunStatus.COMPLETED: "✅ Completed",
    RunStatus.PARTIALLY_FAILED: "⚠️  Partially failed",
    RunStatus.RESUME_PENDING: "🔄 Reboot required, run again to resume",
    RunStatus.ABORTED: "❌ Aborted",
}

PLAN_VERBS = {
    Direction.INSTALL: "Installation",
    Direction.UNINSTALL: "Uninstallation",
    Direction.RESET: "Reset",
    Direction.REMEDIATE: "Remediation",
}


def render_plan(plan: ExecutionPlan, store: DefinitionStore | None = None) -> str:
    verb = PLAN_VERBS[plan.direction]
    lines = [f"{verb} Plan: {', '.join(plan.targets)}", ""]

    if plan.skipped:
        label = (
            "Already installed"
            if plan.direction == Direction.INSTALL
            else "Not installed"
        )
        lines.append(f"⏭️  {label}:")
        for name in plan.skipped:
            lines.append(f"   • {name}")
        lines.append("")

    if plan.direction == Direction.INSTALL and (plan.reboot_tasks or plan.reboot_stacks):
        lines.append("⚠️  The following require a reboot when done:")
        for name in sorted(plan.reboot_tasks | set(plan.reboot_stacks)):
            lines.append(f"   • {name}")
        lines.append("")

    if plan.is_empty():
        lines.append("Nothing to do.")
        return "\n".join(lines)

    lines.append("Waves:")
    for i, wave in enumerate(plan.waves, 1):
        lines.append(f"  {i}. {', '.join(wave)}")
        if store is None:
            continue
        for name in wave:
            if not store.has(name) or store.is_stack(name):
                continue
            task = store.get_task(name)
            reboot = " 🔄" if task.requires_reboot else ""
            lines.append(f"     [{task.kind.letter}] {name}{reboot}  {task.source}")

    return "\n".join(lines)


def _reason_text(reason: Reason | None, message: str) -> str:
    if reason is None:
        return message
    text = reason.value.replace("_", " ")
    return f"{text}: {message}" if message else text


def render_report(report: RunReport, verbose: bool = False) -> str:
    """Summarize a finished run, one line per task."""
    mode = " (simulated)" if report.mode == RunMode.SIMULATED else ""
    lines = [f"Run {report.direction.value}{mode}: {STATUS_LABELS[report.status]}", ""]

    for name in sorted(report.tasks):
        run = report.tasks[name]
        icon = STATE_ICONS[run.state]
        line = f"  {icon} {name}: {run.state.value}"
        detail = _reason_text(run.reason, run.message if run.state != TaskState.SUCCEEDED else "")
        if detail:
            line += f" ({detail})"
        if run.attempts > 1:
            line += f" after {run.attempts} attempts"
        lines.append(line)
        if verbose and run.output:
            for out in run.output.splitlines():
                lines.append(f"       {out}")

    if report.deferred:
        lines.append("")
        lines.append(f"Deferred until after reboot: {', '.join(report.deferred)}")
    elif report.reboot_required:
        lines.append("")
        lines.append("🔄 A reboot is required to finish the installation.")

    if report.error:
        lines.append("")
        lines.append(f"Error: {report.error}")

    return "\n".join(lines)


__all__ = [
    "STATE_ICONS",
    "render_plan",
    "render_report",
]
