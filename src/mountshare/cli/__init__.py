import logging

import click

from mountshare.cli.backups import backups
from mountshare.cli.setup import apply, plan, setup
from mountshare.cli.shares import shares
from mountshare.cli.system import disks

@click.group()
@click.option("--verbose", "-v", is_flag=True, help="Log every step.")
@click.pass_context
def main(ctx, verbose):
    """Mount a block device and share it over Samba."""
    ctx.ensure_object(dict)
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

main.add_command(setup)
main.add_command(apply)
main.add_command(plan)
main.add_command(disks)
main.add_command(shares)
main.add_command(backups)

@main.command()
def version():
    """Show the mountshare version."""
    from mountshare.version import get_version
    click.echo(get_version())
