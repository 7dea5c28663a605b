import click


def print_disks(show_all=False):
    from mountshare.storage.devices import list_block_devices
    from mountshare.cli.utils import human_size

    devices = list_block_devices()
    if not show_all:
        devices = [d for d in devices if d.fstype]

    if not devices:
        click.echo("No block devices found.")
        return

    click.echo(f"{'NAME':<12} {'SIZE':>8} {'FSTYPE':<8} {'LABEL':<16} MOUNTPOINT")
    for d in devices:
        name = f"  {d.name}" if d.parent else d.name
        click.echo(f"{name:<12} {human_size(d.size):>8} {d.fstype or '':<8} {d.label or '':<16} {d.mountpoint or ''}")


@click.command(name='disks')
@click.option('--all', 'show_all', is_flag=True, help='Include devices without a filesystem.')
def disks(show_all):
    """Show block devices available for mounting."""
    print_disks(show_all)
