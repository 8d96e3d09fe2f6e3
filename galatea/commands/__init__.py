"""CLI command definitions for galatea."""

import click

from galatea import __version__
from galatea.commands.config import config
from galatea.commands.install import install, uninstall
from galatea.commands.ledger import ledger
from galatea.commands.list import list_definitions as list_command
from galatea.commands.maintain import remediate, reset
from galatea.commands.plan import plan
from galatea.commands.select import select
from galatea.commands.sources import sources
from galatea.commands.status import status


@click.group()
@click.option("--debug", is_flag=True, help="Enable debug output for troubleshooting")
@click.option(
    "--config",
    "config_path",
    type=click.Path(dir_okay=False),
    default=None,
    help="Path to galatea.yaml (default: $GALATEA_CONFIG, then system and user config)",
)
@click.version_option(__version__, prog_name="galatea")
@click.pass_context
def cli(ctx, debug, config_path):
    """Install shell and Ansible tasks in dependency order."""
    ctx.ensure_object(dict)
    ctx.obj["debug"] = debug
    ctx.obj["config_path"] = config_path


cli.add_command(list_command, name="list")
cli.add_command(plan)
cli.add_command(install)
cli.add_command(uninstall)
cli.add_command(reset)
cli.add_command(remediate)
cli.add_command(status)
cli.add_command(select)
cli.add_command(sources)
cli.add_command(config)
cli.add_command(ledger)

__all__ = ["cli"]


if __name__ == "__main__":
    cli()
