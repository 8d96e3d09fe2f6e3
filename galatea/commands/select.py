"""Interactive selection command implementation."""

import sys

import click

from galatea.commands.install import run_install
from galatea.commands.utils import echo_resolution_error, get_orchestrator
from galatea.engine import render_plan
from galatea.errors import ResolutionError, format_error
from galatea.tui import confirm_plan_interactive, select_targets_interactive


@click.command()
@click.option("--tags", "-t", multiple=True, help="Only offer definitions with this tag")
@click.option("--simulate", "-n", is_flag=True, help="Walk the plan without running anything")
@click.pass_context
def select(ctx, tags: tuple[str, ...], simulate: bool):
    """Pick stacks and tasks interactively, then install them."""
    orchestrator = get_orchestrator(ctx)
    try:
        targets = select_targets_interactive(
            orchestrator.store, orchestrator.ledger.satisfied(), list(tags) or None
        )
        if not targets:
            click.echo("Nothing selected.")
            return

        try:
            plan = orchestrator.plan(targets)
        except ResolutionError as e:
            echo_resolution_error(e)
            sys.exit(1)
        if plan.is_empty():
            click.echo(render_plan(plan, orchestrator.store))
            return

        confirmed = simulate or confirm_plan_interactive(render_plan(plan, orchestrator.store))
    except RuntimeError as e:
        click.echo(format_error(str(e)), err=True)
        click.echo("Use 'galatea install TARGET...' in non-interactive environments.", err=True)
        sys.exit(1)

    if not confirmed:
        click.echo("Installation cancelled.")
        return
    sys.exit(run_install(orchestrator, targets, simulate=simulate, yes=True, show_plan=simulate))
