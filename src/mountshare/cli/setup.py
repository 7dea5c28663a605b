import os
import subprocess

import click
import yaml
from pydantic import ValidationError

from mountshare.cli.utils import MutuallyExclusiveOption, echo_report, fail, make_decider
from mountshare.exceptions import MountShareError, UserInputError


def _prompt_request(device, mount_name, share_name, user):
    from mountshare.orchestrator import SetupRequest

    if device is None:
        from mountshare.cli.system import print_disks
        click.echo("Available drives:")
        try:
            print_disks()
        except (subprocess.CalledProcessError, FileNotFoundError) as e:
            echo_report(f"Could not list block devices: {e}", "warning")
        click.echo()
        device = click.prompt("Enter the device name to mount (e.g., sdb1 or /dev/sdb1)", default="", show_default=False)
    if mount_name is None:
        mount_name = click.prompt("Enter a short name for the mount point (e.g., media)", default="", show_default=False)
    if share_name is None:
        share_name = click.prompt("Enter a name for the Samba share (e.g., media)", default="", show_default=False)
    if user is None:
        user = click.prompt("Enter the Linux username to grant access (e.g., jdoe)", default="", show_default=False)
    return SetupRequest(device=device, mount_name=mount_name, share_name=share_name, user=user)


def _print_summary(result):
    click.echo("")
    click.echo("============================================")
    click.secho("SUCCESS! Setup complete.", fg="green")
    click.echo("============================================")
    click.echo(f"Mount point: {result.mount_path}")
    click.echo(f"Samba share: [{result.share_name}]")
    click.echo("")
    click.echo("Access from other computers:")
    windows = [u for u in result.access_urls if u.startswith("\\\\")]
    others = [u for u in result.access_urls if u.startswith("smb://")]
    if windows:
        click.echo("Windows (File Explorer):")
        for url in windows:
            click.echo(f"  {url}")
        click.echo("Linux/Mac (File Manager or Terminal):")
        for url in others:
            click.echo(f"  {url}")
    else:
        click.echo(f"Windows: \\\\<server-ip>\\{result.share_name}")
        click.echo(f"Linux/Mac: smb://<server-ip>/{result.share_name}")
        echo_report("Could not detect IP address automatically.", "warning")
    click.echo("")
    click.echo(f"Username: {result.user}")
    click.echo("Password: (the one you just set)")
    click.echo("============================================")


def _run(request, decide):
    from mountshare.orchestrator import ShareSetupOrchestrator

    orchestrator = ShareSetupOrchestrator(decide=decide, report=echo_report)
    try:
        result = orchestrator.run(request)
    except MountShareError as e:
        fail(e)
    _print_summary(result)


@click.command()
@click.option("--device", help="Device to mount, e.g. sdb1 or /dev/sdb1.")
@click.option("--mount-name", help="Mount point name under the mount root.")
@click.option("--share-name", help="Samba share name.")
@click.option("--user", help="Linux user granted access to the share.")
@click.option("--yes", "-y", "assume_yes", is_flag=True, cls=MutuallyExclusiveOption,
              mutually_exclusive=["assume_no"], help="Answer yes to every confirmation.")
@click.option("--no", "-n", "assume_no", is_flag=True, cls=MutuallyExclusiveOption,
              mutually_exclusive=["assume_yes"], help="Answer no to every confirmation.")
def setup(device, mount_name, share_name, user, assume_yes, assume_no):
    """Mount a block device persistently and share it over Samba."""
    request = _prompt_request(device, mount_name, share_name, user)
    _run(request, make_decider(assume_yes, assume_no))


@click.command()
@click.option("--device", help="Device to mount, e.g. sdb1 or /dev/sdb1.")
@click.option("--mount-name", help="Mount point name under the mount root.")
@click.option("--share-name", help="Samba share name.")
@click.option("--user", help="Linux user granted access to the share.")
def plan(device, mount_name, share_name, user):
    """Show the fstab and smb.conf edits a setup would make."""
    from mountshare.orchestrator import ShareSetupOrchestrator

    request = _prompt_request(device, mount_name, share_name, user)
    orchestrator = ShareSetupOrchestrator(report=echo_report)
    try:
        setup_plan = orchestrator.plan(request)
    except MountShareError as e:
        fail(e)

    identity = setup_plan.identity
    click.echo(f"Device: {identity.device} (UUID={identity.volume_id}, {identity.fstype})")
    if identity.current_mountpoint:
        echo_report(f"{identity.device} is mounted at {identity.current_mountpoint} and would be unmounted.", "warning")

    mount_plan = setup_plan.mount_plan
    click.echo(f"fstab: {mount_plan.kind.value} ({mount_plan.match.value})")
    if mount_plan.existing_line:
        click.echo(f"  - {mount_plan.existing_line}")
    if mount_plan.new_line and mount_plan.changes_store:
        click.echo(f"  + {mount_plan.new_line}")

    share_plan = setup_plan.share_plan
    click.echo(f"smb.conf: {share_plan.kind.value}")
    for block in share_plan.existing_blocks:
        for line in block.text.splitlines():
            click.echo(f"  - {line}")
    for line in share_plan.new_block.splitlines():
        click.echo(f"  + {line}")


def find_config_file(path=None):
    from mountshare.config.settings import config

    if path:
        if not os.path.exists(path):
            raise click.FileError(path, hint="Configuration file not found.")
        return path
    for candidate in config.config_search_paths:
        if os.path.exists(candidate):
            return candidate
    raise click.FileError("mountshare.yaml", hint="Configuration file not found.")


def load_request(config_path):
    """Read a setup declaration from YAML. Returns (request, assume_yes)."""
    from mountshare.orchestrator import SetupRequest

    try:
        with open(config_path, "r") as f:
            data = yaml.safe_load(f) or {}
    except yaml.YAMLError as e:
        raise UserInputError(f"Could not parse {config_path}: {e}") from e
    except OSError as e:
        raise UserInputError(f"Could not read {config_path}: {e}") from e
    if not isinstance(data, dict):
        raise UserInputError(f"{config_path} must contain a mapping.")

    assume_yes = bool(data.pop("assume_yes", False))
    try:
        request = SetupRequest(**{k: str(v) for k, v in data.items() if v is not None})
    except ValidationError as e:
        raise UserInputError(f"Invalid configuration in {config_path}: {e}") from e
    return request, assume_yes


@click.command()
@click.option("--config", "config_path", help="Path to the YAML setup declaration.")
def apply(config_path):
    """Run a non-interactive setup from a configuration file."""
    from mountshare.orchestrator import always

    config_path = find_config_file(config_path)
    try:
        request, assume_yes = load_request(config_path)
    except MountShareError as e:
        fail(e)
    click.echo(f"Applying {config_path}...")
    _run(request, always(assume_yes))
