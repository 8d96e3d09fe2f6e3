"""Definition source management commands."""

import asyncio
import sys
from pathlib import Path

import click

from galatea.commands.utils import load_context_config
from galatea.config import save_config
from galatea.errors import ConfigError, FetchError, format_error
from galatea.fetcher import SourceFetcher

KIND_CHOICE = click.Choice(["task", "stack"])


@click.group()
def sources():
    """Manage remote task and stack definition sources."""
    pass


@sources.command(name="add")
@click.argument("url")
@click.option("--kind", "-k", type=KIND_CHOICE, default="task", show_default=True)
@click.pass_context
def sources_add(ctx, url: str, kind: str):
    """Add a definition source URL."""
    config = load_context_config(ctx)
    changed = config.add_task_source(url) if kind == "task" else config.add_stack_source(url)
    if not changed:
        click.echo(f"{kind.capitalize()} source already configured: {url}")
        return
    try:
        path = save_config(config)
    except ConfigError as e:
        click.echo(format_error(str(e)), err=True)
        sys.exit(1)
    click.echo(f"✅ Added {kind} source {url} ({path})")


@sources.command(name="remove")
@click.argument("url")
@click.option("--kind", "-k", type=KIND_CHOICE, default="task", show_default=True)
@click.pass_context
def sources_remove(ctx, url: str, kind: str):
    """Remove a definition source URL."""
    config = load_context_config(ctx)
    changed = (
        config.remove_task_source(url) if kind == "task" else config.remove_stack_source(url)
    )
    if not changed:
        click.echo(format_error(f"{kind} source not configured: {url}"), err=True)
        sys.exit(1)
    try:
        save_config(config)
    except ConfigError as e:
        click.echo(format_error(str(e)), err=True)
        sys.exit(1)
    click.echo(f"✅ Removed {kind} source {url}")


@sources.command(name="list")
@click.pass_context
def sources_list(ctx):
    """List configured definition sources."""
    config = load_context_config(ctx)
    if not config.has_sources():
        click.echo("No sources configured.")
        return
    for label, urls in (("Task sources", config.task_sources), ("Stack sources", config.stack_sources)):
        if urls:
            click.echo(f"{label}:")
            for url in urls:
                click.echo(f"  • {url}")


@sources.command(name="sync")
@click.pass_context
def sources_sync(ctx):
    """Download configured sources into the definition directories."""
    config = load_context_config(ctx)
    if not config.has_sources():
        click.echo("No sources configured.")
        return

    fetcher = SourceFetcher(config.cache_dir, timeout=config.download_timeout)
    try:
        fetched = asyncio.run(_sync(fetcher, config.task_sources, config.stack_sources,
                                    Path(config.tasks_dir), Path(config.stacks_dir)))
    except FetchError as e:
        click.echo(format_error(str(e)), err=True)
        sys.exit(1)

    if fetched:
        click.echo(f"✅ Fetched {len(fetched)} source(s)")
    else:
        click.echo("All sources already present.")


async def _sync(
    fetcher: SourceFetcher,
    task_sources: list[str],
    stack_sources: list[str],
    tasks_dir: Path,
    stacks_dir: Path,
) -> list[Path]:
    fetched = await fetcher.sync_sources(task_sources, tasks_dir)
    fetched += await fetcher.sync_sources(stack_sources, stacks_dir)
    return fetched
