import configparser
import logging
import shutil
import subprocess
from enum import Enum
from typing import List, Optional, Tuple

from pydantic import BaseModel

from mountshare.exceptions import ExternalToolFailure, StalePlan
from mountshare.shares.models import SMBShare, ShareBlock, ShareDeclaration
from mountshare.systemd.manager import SystemdManager

logger = logging.getLogger(__name__)

# Fixed access settings written into every share block
SHARE_SETTINGS = [
    ("available", "yes"),
    ("read only", "no"),
    ("browsable", "yes"),
    ("writable", "yes"),
    ("directory mask", "0775"),
    ("create mask", "0664"),
]


def compose_block(declaration: ShareDeclaration) -> str:
    """Render a share section, ending with a newline."""
    lines = [
        f"[{declaration.share_name}]",
        f"  path = {declaration.path}",
        f"  {SHARE_SETTINGS[0][0]} = {SHARE_SETTINGS[0][1]}",
        f"  valid users = {declaration.permitted_user}",
    ]
    lines += [f"  {key} = {value}" for key, value in SHARE_SETTINGS[1:]]
    return "\n".join(lines) + "\n"


def _is_header(line: str) -> bool:
    stripped = line.strip()
    return stripped.startswith("[") and "]" in stripped


def find_blocks(store_text: str, name: str) -> List[ShareBlock]:
    """
    Locate every `[name]` section. A section runs from its header through
    the next blank line, or up to the next section header or end of file.
    """
    lines = store_text.splitlines(keepends=True)
    header = f"[{name}]"
    blocks = []
    i = 0
    while i < len(lines):
        if lines[i].strip() != header:
            i += 1
            continue
        start = i
        i += 1
        while i < len(lines):
            if not lines[i].strip():
                i += 1
                break
            if _is_header(lines[i]):
                break
            i += 1
        blocks.append(ShareBlock(name=name, start=start, end=i, text="".join(lines[start:i])))
    return blocks


class SharePlanKind(str, Enum):
    APPEND_ONLY = "append_only"
    REMOVE_THEN_APPEND = "remove_then_append"


class ShareReconciliationPlan(BaseModel):
    kind: SharePlanKind
    share_name: str
    existing_blocks: List[ShareBlock] = []
    new_block: str

    @property
    def changes_store(self) -> bool:
        return True

    @property
    def requires_confirmation(self) -> bool:
        return self.kind == SharePlanKind.REMOVE_THEN_APPEND

    def describe(self) -> str:
        if self.kind == SharePlanKind.REMOVE_THEN_APPEND:
            return f"A Samba share named [{self.share_name}] already exists in smb.conf."
        return f"Adding share [{self.share_name}] to smb.conf."

    def render(self, text: str) -> str:
        lines = text.splitlines(keepends=True)
        if self.existing_blocks:
            # Remove from the bottom up so earlier indexes stay valid
            for block in sorted(self.existing_blocks, key=lambda b: b.start, reverse=True):
                if "".join(lines[block.start:block.end]) != block.text:
                    raise StalePlan(None, block.text)
                del lines[block.start:block.end]
            text = "".join(lines).rstrip("\n")
            text = text + "\n" if text else ""
        elif text and not text.endswith("\n"):
            text += "\n"

        separator = "\n" if text else ""
        return text + separator + self.new_block


def reconcile(desired: ShareDeclaration, store_text: str) -> ShareReconciliationPlan:
    """
    An existing share of the same name is always replaced as a whole: share
    sections are free-form key/value lists with no normal form to diff.
    """
    blocks = find_blocks(store_text, desired.share_name)
    if blocks:
        logger.info(f"Share [{desired.share_name}] exists ({len(blocks)} section(s)), will be replaced")
    return ShareReconciliationPlan(
        kind=SharePlanKind.REMOVE_THEN_APPEND if blocks else SharePlanKind.APPEND_ONLY,
        share_name=desired.share_name,
        existing_blocks=blocks,
        new_block=compose_block(desired),
    )


def _str_to_bool(val: str) -> bool:
    return val.lower() in ('yes', 'true', '1', 'on')


def list_shares(store_text: str) -> List[SMBShare]:
    """List the share sections of an smb.conf text."""
    config = configparser.ConfigParser(strict=False, interpolation=None, comment_prefixes=('#', ';'))
    try:
        config.read_string(store_text)
    except configparser.Error as e:
        logger.warning(f"Could not parse smb.conf: {e}")
        return []

    shares = []
    for section in config.sections():
        # global, printers and print$ are not user shares
        if section.lower() in ('global', 'printers', 'print$'):
            continue

        writable = config[section].get('writable')
        read_only = config[section].get('read only')
        if read_only is None:
            read_only = 'no' if writable and _str_to_bool(writable) else 'yes'
        shares.append(SMBShare(
            name=section,
            path=config[section].get('path', 'N/A'),
            comment=config[section].get('comment', ''),
            valid_users=config[section].get('valid users'),
            read_only=_str_to_bool(read_only),
            browsable=_str_to_bool(config[section].get('browsable', 'yes')),
        ))
    return shares


class SMBManager:
    def __init__(self, systemd: Optional[SystemdManager] = None):
        self.systemd = systemd or SystemdManager()

    def check_installed(self) -> bool:
        """Check if samba is installed."""
        return shutil.which("smbd") is not None or shutil.which("samba") is not None

    def install(self) -> bool:
        """Install samba. Returns False when it was already present."""
        if self.check_installed():
            return False

        from mountshare.pkgs.manager import get_package_manager
        try:
            pm = get_package_manager()
            pm.install("samba")
        except subprocess.CalledProcessError as e:
            raise ExternalToolFailure("Samba installation failed.", command=" ".join(e.cmd)) from e
        except Exception as e:
            raise ExternalToolFailure(f"Samba installation failed: {e}") from e
        return True

    def validate(self, conf_path: str) -> Tuple[bool, Optional[str]]:
        """Run testparm against a configuration file."""
        try:
            result = subprocess.run(
                ["testparm", "-s", conf_path],
                capture_output=True, text=True
            )
        except FileNotFoundError:
            return False, "testparm not found"
        except (OSError, subprocess.SubprocessError) as e:
            return False, f"testparm could not run: {e}"
        if result.returncode != 0:
            return False, (result.stderr or result.stdout).strip() or f"testparm exited with {result.returncode}"
        return True, None

    def set_password(self, user: str) -> None:
        """Prompt for and set the user's Samba password (smbpasswd reads the terminal)."""
        try:
            subprocess.run(["smbpasswd", "-a", user], check=True)
        except (subprocess.CalledProcessError, FileNotFoundError) as e:
            raise ExternalToolFailure(f"Setting the Samba password for {user} failed.", command=f"smbpasswd -a {user}") from e

    def restart_service(self) -> str:
        """Restart the samba service."""
        return self.systemd.restart("samba")

    def get_status(self) -> str:
        """Get the status of the samba service."""
        return self.systemd.get_active_state("samba")
