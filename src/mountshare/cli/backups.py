from datetime import datetime

import click

STORES = {
    "fstab": "fstab_path",
    "smb": "smb_conf_path",
}

@click.group()
def backups():
    """Inspect configuration backups."""
    pass

@backups.command(name="list")
@click.argument("store", default="fstab")
def list_store_backups(store):
    """List backups of STORE (fstab, smb or a file path), newest first."""
    from mountshare.backups.writer import list_backups
    from mountshare.config.settings import config

    store_path = getattr(config, STORES[store]) if store in STORES else store
    entries = list_backups(store_path)
    if not entries:
        click.echo(f"No backups of {store_path} found.")
        return

    for entry in entries:
        taken = datetime.strptime(entry["timestamp"], "%Y%m%d%H%M%S")
        click.echo(f"{entry['path']}  {taken:%Y-%m-%d %H:%M:%S} UTC  {entry['size']} bytes")
