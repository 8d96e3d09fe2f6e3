"""Install and uninstall command implementations."""

import asyncio
import logging
import sys

import click

from galatea.commands.utils import (
    echo_progress,
    echo_resolution_error,
    exit_code_for,
    get_orchestrator,
    run_cancellable,
)
from galatea.engine import Orchestrator, RunMode, render_plan, render_report
from galatea.errors import ResolutionError

_logging = logging.getLogger(__name__)


@click.command()
@click.argument("targets", nargs=-1, required=True)
@click.option("--force", "-f", is_flag=True, help="Re-run tasks that are already installed")
@click.option(
    "--simulate", "-n", is_flag=True, help="Walk the plan without running anything"
)
@click.option(
    "--concurrency", "-j", type=click.IntRange(min=1), default=None,
    help="Maximum tasks running at once (default: from config)",
)
@click.option("--yes", "-y", is_flag=True, help="Skip the confirmation prompt")
@click.pass_context
def install(ctx, targets: tuple[str, ...], force: bool, simulate: bool, concurrency: int | None, yes: bool):
    """Install TARGETS (tasks or stacks) and their dependencies."""
    orchestrator = get_orchestrator(ctx)
    if concurrency is not None:
        orchestrator.settings.concurrency = concurrency
    sys.exit(run_install(orchestrator, list(targets), force, simulate, yes))


def run_install(
    orchestrator: Orchestrator,
    targets: list[str],
    force: bool = False,
    simulate: bool = False,
    yes: bool = False,
    show_plan: bool = True,
) -> int:
    """Plan, confirm and execute an installation; returns the exit code."""
    try:
        plan = orchestrator.plan(targets, force=force)
    except ResolutionError as e:
        echo_resolution_error(e)
        return 1

    if show_plan:
        click.echo(render_plan(plan, orchestrator.store))
    if plan.is_empty():
        return 0

    mode = RunMode.SIMULATED if simulate else RunMode.REAL
    if mode == RunMode.REAL and not yes:
        click.echo("")
        if not click.confirm("Proceed with installation?", default=False):
            click.echo("Installation cancelled.")
            return 0

    click.echo("")
    report = asyncio.run(
        run_cancellable(
            orchestrator,
            orchestrator.execute(plan, mode, force=force, on_event=echo_progress),
        )
    )

    click.echo("")
    click.echo(render_report(report))
    return exit_code_for(report)


@click.command()
@click.argument("targets", nargs=-1, required=True)
@click.option(
    "--simulate", "-n", is_flag=True, help="Walk the plan without running anything"
)
@click.option("--yes", "-y", is_flag=True, help="Skip the confirmation prompt")
@click.pass_context
def uninstall(ctx, targets: tuple[str, ...], simulate: bool, yes: bool):
    """Uninstall TARGETS using the cleanup recorded at install time."""
    orchestrator = get_orchestrator(ctx)
    try:
        plan = orchestrator.plan_uninstall(targets)
    except ResolutionError as e:
        echo_resolution_error(e)
        sys.exit(1)

    click.echo(render_plan(plan, orchestrator.store))
    if plan.is_empty():
        return

    mode = RunMode.SIMULATED if simulate else RunMode.REAL
    if mode == RunMode.REAL and not yes:
        click.echo("")
        if not click.confirm("Proceed with uninstallation?", default=False):
            click.echo("Uninstallation cancelled.")
            return

    click.echo("")
    try:
        report = asyncio.run(
            run_cancellable(
                orchestrator,
                orchestrator.uninstall(targets, mode, on_event=echo_progress),
            )
        )
    except ResolutionError as e:
        echo_resolution_error(e)
        sys.exit(1)

    click.echo("")
    click.echo(render_report(report))
    sys.exit(exit_code_for(report))
