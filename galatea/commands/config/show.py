"""Show config command implementation."""

import click
import yaml

from galatea.commands.utils import load_context_config


@click.command(name="show")
@click.pass_context
def config_show(ctx):
    """Print the effective configuration."""
    config = load_context_config(ctx)
    if config.config_file_path:
        click.echo(f"# {config.config_file_path}")
    click.echo(yaml.safe_dump(config.to_dict(), default_flow_style=False, sort_keys=False).rstrip())
