"""Reset and remediate command implementations."""

import asyncio
import sys

import click

from galatea.commands.utils import (
    echo_progress,
    echo_resolution_error,
    exit_code_for,
    get_orchestrator,
    run_cancellable,
)
from galatea.engine import Direction, Orchestrator, RunMode, render_plan, render_report
from galatea.errors import ResolutionError


def run_maintenance(
    orchestrator: Orchestrator,
    targets: list[str],
    direction: Direction,
    simulate: bool = False,
    yes: bool = False,
) -> int:
    """Plan, confirm and run a reset or remediation; returns the exit code."""
    try:
        plan = orchestrator.plan_maintenance(targets, direction)
    except ResolutionError as e:
        echo_resolution_error(e)
        return 1

    click.echo(render_plan(plan, orchestrator.store))
    if plan.is_empty():
        return 0

    mode = RunMode.SIMULATED if simulate else RunMode.REAL
    if mode == RunMode.REAL and not yes:
        click.echo("")
        if not click.confirm(f"Proceed with {direction.value}?", default=False):
            click.echo("Cancelled.")
            return 0

    click.echo("")
    try:
        report = asyncio.run(
            run_cancellable(
                orchestrator,
                orchestrator.maintain(targets, direction, mode, on_event=echo_progress),
            )
        )
    except ResolutionError as e:
        echo_resolution_error(e)
        return 1

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
def reset(ctx, targets: tuple[str, ...], simulate: bool, yes: bool):
    """Run the reset action of installed TARGETS."""
    orchestrator = get_orchestrator(ctx)
    sys.exit(run_maintenance(orchestrator, list(targets), Direction.RESET, simulate, yes))


@click.command()
@click.argument("targets", nargs=-1, required=True)
@click.option(
    "--simulate", "-n", is_flag=True, help="Walk the plan without running anything"
)
@click.option("--yes", "-y", is_flag=True, help="Skip the confirmation prompt")
@click.pass_context
def remediate(ctx, targets: tuple[str, ...], simulate: bool, yes: bool):
    """Run the remediate action of installed TARGETS."""
    orchestrator = get_orchestrator(ctx)
    sys.exit(run_maintenance(orchestrator, list(targets), Direction.REMEDIATE, simulate, yes))


__all__ = ["remediate", "reset", "run_maintenance"]
