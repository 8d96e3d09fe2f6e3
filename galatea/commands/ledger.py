"""Ledger maintenance commands."""

import sys

import click

from galatea.commands.utils import load_context_config
from galatea.engine import Ledger
from galatea.errors import LedgerError, format_error


@click.group()
def ledger():
    """Installation ledger maintenance."""
    pass


@ledger.command(name="compact")
@click.pass_context
def ledger_compact(ctx):
    """Rewrite the ledger journal keeping only active records."""
    config = load_context_config(ctx)
    try:
        journal = Ledger(config.ledger_path)
        with journal.exclusive():
            journal.compact()
    except LedgerError as e:
        click.echo(format_error(str(e)), err=True)
        sys.exit(1)
    click.echo(f"✅ Ledger compacted: {len(journal)} active record(s)")
