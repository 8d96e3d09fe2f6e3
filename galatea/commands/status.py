"""Status command implementation."""

import click

from galatea.commands.utils import get_orchestrator
from galatea.engine import Outcome

OUTCOME_ICONS = {
    Outcome.SUCCESS: "✅",
    Outcome.FAILED: "❌",
    Outcome.ROLLED_BACK: "↩️ ",
}


@click.command()
@click.option("--verbose", "-v", is_flag=True, help="Show recorded output and cleanup")
@click.pass_context
def status(ctx, verbose: bool):
    """Show what the ledger records as installed."""
    orchestrator = get_orchestrator(ctx)
    records = orchestrator.status()
    if not records:
        click.echo("Nothing installed.")
        return

    for record in records:
        icon = OUTCOME_ICONS[record.outcome]
        code = f" (exit {record.exit_code})" if record.exit_code not in (None, 0) else ""
        click.echo(f"{icon} {record.task_name}: {record.outcome.value} at {record.timestamp}{code}")
        if verbose:
            if record.cleanup:
                if record.cleanup.command:
                    click.echo(f"     Cleanup: {record.cleanup.command}")
                else:
                    click.echo(f"     Cleanup: {' '.join(record.cleanup.args)} in {record.cleanup.path}")
            for line in record.output.splitlines():
                click.echo(f"     | {line}")

    stacks = orchestrator.store.stack_names()
    if stacks:
        click.echo("")
        for name in stacks:
            click.echo(f"Stack {name}: {orchestrator.stack_status(name)}")
