"""Initialize config command implementation."""

import sys
from pathlib import Path

import click

from galatea.config import create_example_config, ensure_directories, load_config
from galatea.data_loader import create_example_stacks, create_example_tasks
from galatea.errors import ConfigError, format_error
from galatea.paths import get_user_config_path


@click.command(name="init")
@click.option(
    "--path",
    "-p",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="Where to write the config (default: ~/.config/galatea/galatea.yaml)",
)
@click.option(
    "--force",
    "-f",
    is_flag=True,
    help="Force re-initialization, overwriting existing config",
)
@click.option(
    "--examples/--no-examples",
    default=True,
    help="Also write example task and stack definitions",
)
@click.pass_context
def config_init(ctx, path: Path | None, force: bool, examples: bool):
    """Write an example configuration file.

    An existing config is backed up to *.yaml.bak when --force is given.
    """
    config_path = path or ctx.obj.get("config_path") or get_user_config_path()
    config_path = Path(config_path)

    if config_path.exists() and not force:
        click.echo(f"Config file already exists: {config_path}")
        click.echo("Use --force to re-initialize (creates backup first).")
        sys.exit(1)

    try:
        if config_path.exists():
            backup_path = config_path.with_suffix(".yaml.bak")
            click.echo(f"Backing up existing config to {backup_path}...")
            config_path.rename(backup_path)

        click.echo(f"Initializing config at {config_path}...")
        create_example_config(config_path)

        if examples:
            config = load_config(config_path)
            ensure_directories(config)
            for written in (
                create_example_tasks(Path(config.tasks_dir)),
                create_example_stacks(Path(config.stacks_dir)),
            ):
                if written:
                    click.echo(f"📋 Wrote example definitions: {written}")
    except (ConfigError, OSError) as e:
        click.echo(format_error(f"initialization failed: {e}"), err=True)
        sys.exit(1)

    click.echo("✅ Config initialized successfully")
