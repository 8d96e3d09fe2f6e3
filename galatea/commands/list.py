"""List command implementation."""

import click

from galatea.commands.utils import get_orchestrator

STATUS_ICONS = {
    "installed": "✅",
    "partial": "⚠️ ",
    "missing": "⬜",
}


def _matches(tags: tuple[str, ...], definition) -> bool:
    return not tags or bool(set(tags) & set(definition.tags))


@click.command(name="list")
@click.option("--tags", "-t", multiple=True, help="Only show definitions with this tag")
@click.option(
    "--verbose", "-v", is_flag=True, help="Show descriptions, sources and dependencies"
)
@click.pass_context
def list_definitions(ctx, tags: tuple[str, ...], verbose: bool):
    """List tasks and stacks with their install status."""
    orchestrator = get_orchestrator(ctx)
    store = orchestrator.store
    satisfied = orchestrator.ledger.satisfied()

    if not len(store):
        click.echo("No tasks or stacks defined.")
        click.echo("Run 'galatea sources sync' or add definition files to the tasks directory.")
        return

    stacks = [store.get_stack(n) for n in store.stack_names()]
    stacks = [s for s in stacks if _matches(tags, s)]
    if stacks:
        click.echo("Stacks:")
        for stack in stacks:
            status = orchestrator.stack_status(stack.name)
            reboot = " 🔄" if store.stack_needs_reboot(stack.name) else ""
            click.echo(f"  {STATUS_ICONS[status]} {stack.name}{reboot}: {status}")
            if verbose:
                if stack.description:
                    click.echo(f"     {stack.description}")
                click.echo(f"     Tasks: {', '.join(stack.members)}")
        click.echo("")

    tasks = [store.get_task(n) for n in store.task_names()]
    tasks = [t for t in tasks if _matches(tags, t)]
    if tasks:
        click.echo("Tasks:")
        for task in tasks:
            status = "installed" if task.name in satisfied else "missing"
            reboot = " 🔄" if task.requires_reboot else ""
            click.echo(f"  {STATUS_ICONS[status]} [{task.kind.letter}] {task.name}{reboot}")
            if verbose:
                if task.description:
                    click.echo(f"     {task.description}")
                click.echo(f"     Source: {task.source}")
                if task.dependencies:
                    click.echo(f"     Depends on: {', '.join(task.dependencies)}")

    if not stacks and not tasks:
        click.echo(f"No definitions tagged {', '.join(tags)}.")
