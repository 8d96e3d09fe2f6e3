"""Plan command implementation."""

import sys

import click

from galatea.commands.utils import echo_resolution_error, get_orchestrator
from galatea.engine import render_plan
from galatea.errors import ResolutionError


@click.command()
@click.argument("targets", nargs=-1, required=True)
@click.option("--force", "-f", is_flag=True, help="Plan as if nothing were installed")
@click.option("--uninstall", "-u", is_flag=True, help="Show the uninstall plan instead")
@click.pass_context
def plan(ctx, targets: tuple[str, ...], force: bool, uninstall: bool):
    """Show the execution plan for TARGETS without running anything."""
    orchestrator = get_orchestrator(ctx)
    try:
        if uninstall:
            execution_plan = orchestrator.plan_uninstall(targets)
        else:
            execution_plan = orchestrator.plan(targets, force=force)
    except ResolutionError as e:
        echo_resolution_error(e)
        sys.exit(1)
    click.echo(render_plan(execution_plan, orchestrator.store))
