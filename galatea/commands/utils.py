"""Shared helpers for commands."""

import asyncio
import logging
import signal
import sys
from collections.abc import Awaitable

import click

from galatea import log_file_path, setup_logging
from galatea.config import Config, load_config
from galatea.engine import (
    Orchestrator,
    ProgressEvent,
    Reason,
    RunReport,
    RunStatus,
    TaskState,
)
from galatea.engine.planning import STATE_ICONS
from galatea.errors import (
    ConfigError,
    GalateaError,
    ResolutionError,
    ResolutionErrorKind,
    format_error,
    format_suggestion,
)

_logging = logging.getLogger(__name__)

# Transitions worth a line of progress output.
_ECHOED_STATES = {
    TaskState.DOWNLOADING,
    TaskState.RUNNING,
    TaskState.SUCCEEDED,
    TaskState.FAILED,
    TaskState.SKIPPED,
    TaskState.ROLLED_BACK,
}


def load_context_config(ctx: click.Context) -> Config:
    """Load the configuration named by ``--config`` and set up logging.

    Exits with status 1 on a configuration error.
    """
    debug = ctx.obj.get("debug", False)
    try:
        config = load_config(ctx.obj.get("config_path"))
    except ConfigError as e:
        setup_logging(debug)
        click.echo(format_error(str(e)), err=True)
        sys.exit(1)
    log_file = log_file_path(config.log_dir) if config.log_dir else None
    setup_logging(debug, log_file)
    return config


def get_orchestrator(ctx: click.Context) -> Orchestrator:
    config = load_context_config(ctx)
    try:
        return Orchestrator.from_config(config, debug=ctx.obj.get("debug", False))
    except GalateaError as e:
        click.echo(format_error(str(e)), err=True)
        sys.exit(1)


def echo_resolution_error(error: ResolutionError) -> None:
    if error.kind == ResolutionErrorKind.UNKNOWN_TARGET:
        click.echo(
            format_suggestion(str(error), "run 'galatea list' to see available tasks and stacks"),
            err=True,
        )
    else:
        click.echo(format_error(str(error)), err=True)


def echo_progress(event: ProgressEvent) -> None:
    if event.state not in _ECHOED_STATES:
        return
    if event.state == TaskState.SKIPPED and event.reason == Reason.ALREADY_INSTALLED:
        return
    icon = STATE_ICONS[event.state]
    line = f"{icon} {event.task_name}: {event.state.value}"
    if event.previous == event.state:
        line = f"🔁 {event.task_name}: attempt {event.attempt}"
    elif event.reason is not None:
        line += f" ({event.reason.value.replace('_', ' ')})"
    click.echo(line)


def _on_interrupt(orchestrator: Orchestrator) -> None:
    if orchestrator.executor.cancelled:
        return
    click.echo("\n⚠️  Interrupted: waiting for running tasks to finish...", err=True)
    orchestrator.cancel()


async def run_cancellable(
    orchestrator: Orchestrator, operation: Awaitable[RunReport]
) -> RunReport:
    """Await ``operation`` with Ctrl-C mapped to a graceful cancel."""
    loop = asyncio.get_running_loop()
    installed = False
    try:
        loop.add_signal_handler(signal.SIGINT, _on_interrupt, orchestrator)
        installed = True
    except (NotImplementedError, RuntimeError) as e:
        _logging.debug(f"Cannot install SIGINT handler: {e}")
    try:
        return await operation
    finally:
        if installed:
            loop.remove_signal_handler(signal.SIGINT)


def exit_code_for(report: RunReport) -> int:
    if report.status in (RunStatus.COMPLETED, RunStatus.RESUME_PENDING):
        return 0
    return 1


__all__ = [
    "echo_progress",
    "echo_resolution_error",
    "exit_code_for",
    "get_orchestrator",
    "load_context_config",
    "run_cancellable",
]
