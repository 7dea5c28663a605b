import click

@click.group()
def shares():
    """Manage Samba shares."""
    pass

@shares.command(name="list")
def list_samba_shares():
    """List Samba shares."""
    from mountshare.config.settings import config
    from mountshare.orchestrator import read_store
    from mountshare.shares.smb import list_shares

    shares = list_shares(read_store(config.smb_conf_path))
    if not shares:
        click.echo("No shares found.")
        return

    for share in shares:
        click.echo(f"Name: {share.name}")
        click.echo(f"  Path: {share.path}")
        click.echo(f"  Valid users: {share.valid_users or 'any'}")
        click.echo(f"  Read Only: {share.read_only}")
        click.echo("-" * 20)

@shares.command(name="check")
def check_samba():
    """Check if Samba is installed."""
    from mountshare.shares.smb import SMBManager
    manager = SMBManager()
    if manager.check_installed():
        click.echo("Samba is installed.")
    else:
        click.echo("Samba is NOT installed.")

@shares.command(name="install")
def install_samba():
    """Install Samba."""
    from mountshare.cli.utils import fail
    from mountshare.exceptions import MountShareError
    from mountshare.shares.smb import SMBManager
    manager = SMBManager()
    try:
        if manager.install():
            click.echo("Samba installed successfully.")
        else:
            click.echo("Samba is already installed.")
    except MountShareError as e:
        fail(e)

@shares.command(name="validate")
@click.option("--path", "conf_path", help="Configuration file to check (defaults to smb.conf).")
def validate_samba(conf_path):
    """Check the Samba configuration with testparm."""
    from mountshare.config.settings import config
    from mountshare.shares.smb import SMBManager
    conf_path = conf_path or config.smb_conf_path
    ok, reason = SMBManager().validate(conf_path)
    if ok:
        click.secho(f"{conf_path} is valid.", fg="green")
    else:
        click.secho(f"ERROR: {conf_path} is invalid: {reason}", fg="red", err=True)
        raise SystemExit(1)

@shares.command(name="status")
def status_samba():
    """Get the status of the Samba service."""
    from mountshare.shares.smb import SMBManager
    manager = SMBManager()
    status = manager.get_status()
    click.echo(f"Samba service status: {status}")
