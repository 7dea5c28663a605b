"""
Provision a mount table entry for a block device and share it over Samba.

One run walks the whole chain: device identity, mount table reconcile and
write, mount, Samba install, ownership, share reconcile, validated write,
password and service restart. Anything destructive is put to the `decide`
callback first; a declined decision ends the run with AbortedByUser. Without
a `decide` callback any such edit ends it with ConflictRequiresConfirmation.

The mount table is not rolled back when the share configuration later fails
validation. A mounted, working volume stays as it is.
"""
import logging
import os
from enum import Enum
from typing import Callable, List, Optional

from pydantic import BaseModel

from mountshare.backups.writer import TransactionalConfigWriter, WriteResult, utc_timestamp
from mountshare.config.settings import config
from mountshare.exceptions import (
    AbortedByUser,
    ConflictRequiresConfirmation,
    ExternalToolFailure,
    UnknownUser,
    UserInputError,
    ValidationFailure,
)
from mountshare.hwosinfo.hw import get_host_ips
from mountshare.shares import smb
from mountshare.shares.models import ShareDeclaration
from mountshare.shares.smb import SMBManager, ShareReconciliationPlan
from mountshare.storage import fstab
from mountshare.storage.devices import DeviceInspector
from mountshare.storage.fstab import PlanKind, ReconciliationPlan
from mountshare.storage.models import DeviceIdentity, MountDeclaration
from mountshare.storage.options import forbids_owner_options, options_for, parse_base_options
from mountshare.system import mount as mount_ops
from mountshare.system import users as user_ops
from mountshare.systemd.manager import SystemdManager

logger = logging.getLogger(__name__)


class DecisionKind(str, Enum):
    UNMOUNT_DEVICE = "unmount_device"
    STRIP_INVALID_OPTIONS = "strip_invalid_options"
    REPLACE_MOUNT_ENTRY = "replace_mount_entry"
    TAKE_OWNERSHIP = "take_ownership"
    REPLACE_SHARE = "replace_share"


class Decision(BaseModel):
    kind: DecisionKind
    message: str
    question: str


Decide = Callable[[Decision], bool]
Report = Callable[[str, str], None]


def always(answer: bool) -> Decide:
    """A non-interactive policy answering every decision the same way."""
    return lambda decision: answer


def _log_report(message: str, level: str = "info") -> None:
    logger.log(logging.WARNING if level == "warning" else logging.INFO, message)


class SetupRequest(BaseModel):
    device: str
    mount_name: str
    share_name: str
    user: str


class SetupPlan(BaseModel):
    identity: DeviceIdentity
    mount: MountDeclaration
    mount_plan: ReconciliationPlan
    share: ShareDeclaration
    share_plan: ShareReconciliationPlan


class SetupResult(BaseModel):
    identity: DeviceIdentity
    mount_path: str
    share_name: str
    user: str
    fstab: WriteResult
    share: WriteResult
    service_unit: Optional[str] = None
    access_urls: List[str] = []


def read_store(path: str) -> str:
    try:
        with open(path, "r", encoding="utf-8", errors="surrogateescape", newline="") as f:
            return f.read()
    except FileNotFoundError:
        return ""
    except OSError as e:
        raise ExternalToolFailure(f"Could not read {path}: {e}") from e


def access_urls(share_name: str, ips: List[str]) -> List[str]:
    urls = [f"\\\\{ip}\\{share_name}" for ip in ips]
    urls += [f"smb://{ip}/{share_name}" for ip in ips]
    return urls


class ShareSetupOrchestrator:
    def __init__(
        self,
        decide: Optional[Decide] = None,
        report: Optional[Report] = None,
        devices: Optional[DeviceInspector] = None,
        writer: Optional[TransactionalConfigWriter] = None,
        samba: Optional[SMBManager] = None,
        systemd: Optional[SystemdManager] = None,
        settings=config,
    ):
        self.decide = decide
        self.report = report or _log_report
        self.devices = devices or DeviceInspector()
        self.writer = writer or TransactionalConfigWriter()
        self.systemd = systemd or SystemdManager()
        self.samba = samba or SMBManager(self.systemd)
        self.settings = settings

    def _confirm(self, kind: DecisionKind, message: str, question: str) -> bool:
        # Without a policy nothing destructive may happen
        if self.decide is None:
            raise ConflictRequiresConfirmation(message)
        answer = bool(self.decide(Decision(kind=kind, message=message, question=question)))
        logger.info(f"Decision {kind.value}: {'yes' if answer else 'no'}")
        return answer

    def validate_request(self, request: SetupRequest) -> None:
        """Reject bad names and unknown users before anything is touched."""
        if not request.mount_name.strip():
            raise UserInputError("Mount name cannot be empty.")
        if "/" in request.mount_name or any(c.isspace() for c in request.mount_name) or request.mount_name in (".", ".."):
            raise UserInputError(f"Invalid mount name '{request.mount_name}': use a single path component without spaces.")
        if not request.share_name.strip():
            raise UserInputError("Share name cannot be empty.")
        if any(c in request.share_name for c in "[]\n\r"):
            raise UserInputError(f"Invalid share name '{request.share_name}'.")
        if not request.user.strip():
            raise UserInputError("User name cannot be empty.")
        if not user_ops.user_exists(request.user):
            raise UnknownUser(request.user)

    def mount_path_for(self, request: SetupRequest) -> str:
        return os.path.join(self.settings.mount_root, request.mount_name)

    def declare_mount(self, identity: DeviceIdentity, mount_path: str) -> MountDeclaration:
        options = options_for(
            identity.filesystem_kind,
            self.settings.owner_uid,
            self.settings.owner_gid,
            parse_base_options(self.settings.base_options),
        )
        return MountDeclaration(
            volume_id=identity.volume_id,
            target_path=mount_path,
            fstype=identity.fstype,
            options=options,
        )

    def declare_share(self, request: SetupRequest, mount_path: str) -> ShareDeclaration:
        return ShareDeclaration(share_name=request.share_name, path=mount_path, permitted_user=request.user)

    def plan(self, request: SetupRequest) -> SetupPlan:
        """Compute both edits without changing anything on the host."""
        self.validate_request(request)
        identity = self.devices.inspect(self.devices.resolve(request.device))
        mount_path = self.mount_path_for(request)
        mount = self.declare_mount(identity, mount_path)
        share = self.declare_share(request, mount_path)
        return SetupPlan(
            identity=identity,
            mount=mount,
            mount_plan=fstab.reconcile(mount, read_store(self.settings.fstab_path)),
            share=share,
            share_plan=smb.reconcile(share, read_store(self.settings.smb_conf_path)),
        )

    def run(self, request: SetupRequest) -> SetupResult:
        self.validate_request(request)
        timestamp = utc_timestamp()

        device = self.devices.resolve(request.device)
        identity = self.devices.inspect(device)
        self._release_device(identity)

        mount_path = self.mount_path_for(request)
        self.report(f"Creating mount point at {mount_path}...", "info")
        mount_ops.ensure_mount_point(mount_path)

        fstab_result = self._provision_mount(identity, mount_path, timestamp)

        if mount_ops.is_mounted(mount_path):
            self.report(f"{mount_path} is already mounted.", "info")
        else:
            self.report("Mounting...", "info")
            mount_ops.mount(mount_path)

        if self.samba.install():
            self.report("Samba installed.", "ok")

        self._fix_ownership(identity, mount_path, request.user)

        share_result = self._provision_share(request, mount_path, timestamp)

        self.report(f"Setting Samba password for user {request.user}...", "info")
        self.samba.set_password(request.user)
        self.report("Restarting Samba...", "info")
        unit = self.samba.restart_service()

        return SetupResult(
            identity=identity,
            mount_path=mount_path,
            share_name=request.share_name,
            user=request.user,
            fstab=fstab_result,
            share=share_result,
            service_unit=unit,
            access_urls=access_urls(request.share_name, get_host_ips()),
        )

    def _release_device(self, identity: DeviceIdentity) -> None:
        """An already mounted device is unmounted or the run stops."""
        if not identity.current_mountpoint:
            return
        mountpoint = identity.current_mountpoint
        if not self._confirm(
            DecisionKind.UNMOUNT_DEVICE,
            f"{identity.device} is already mounted at {mountpoint}",
            "Do you want to unmount it first?",
        ):
            raise AbortedByUser("Cannot proceed with device already mounted.")
        mount_ops.unmount(mountpoint)
        self.report("Unmounted successfully.", "ok")

    def _provision_mount(self, identity: DeviceIdentity, mount_path: str, timestamp: str) -> WriteResult:
        declaration = self.declare_mount(identity, mount_path)
        plan = fstab.reconcile(declaration, read_store(self.settings.fstab_path))
        if not plan.requires_confirmation:
            self.report(plan.describe(), "info")

        if plan.kind == PlanKind.STRIP_INVALID_OPTIONS:
            if not self._confirm(DecisionKind.STRIP_INVALID_OPTIONS, plan.describe(),
                                 "Update the entry to remove invalid options?"):
                self.report("Keeping the existing entry; mounting may fail with uid/gid options.", "warning")
                plan = ReconciliationPlan(kind=PlanKind.NOOP, match=plan.match,
                                          line_index=plan.line_index, existing_line=plan.existing_line)
        elif plan.kind == PlanKind.REPLACE_LINE:
            if not self._confirm(DecisionKind.REPLACE_MOUNT_ENTRY, plan.describe(),
                                 f"Replace it with: {plan.new_line}?"):
                raise AbortedByUser(f"Please resolve the conflict manually in {self.settings.fstab_path}.")

        result = self.writer.apply(self.settings.fstab_path, plan, timestamp=timestamp, confirmed=True)
        if result.committed:
            self.report(f"Updated {self.settings.fstab_path} (backup: {result.backup_path}).", "ok")
            self.systemd.daemon_reload()
        return result

    def _fix_ownership(self, identity: DeviceIdentity, mount_path: str, user: str) -> None:
        # Owner options cover the other filesystems at mount time
        if not forbids_owner_options(identity.filesystem_kind):
            return
        owner = user_ops.owner_of(mount_path)
        if owner == user:
            self.report("Ownership is already correct.", "ok")
            return
        if self._confirm(DecisionKind.TAKE_OWNERSHIP, f"Current owner of {mount_path} is {owner}.",
                         f"Set ownership of {mount_path} to {user}?"):
            user_ops.take_ownership(mount_path, user)
            self.report("Ownership updated.", "ok")
        else:
            self.report("You may need to manually adjust permissions for Samba to work correctly.", "warning")

    def _provision_share(self, request: SetupRequest, mount_path: str, timestamp: str) -> WriteResult:
        declaration = self.declare_share(request, mount_path)
        conf_path = self.settings.smb_conf_path
        plan = smb.reconcile(declaration, read_store(conf_path))

        if plan.requires_confirmation:
            if not self._confirm(DecisionKind.REPLACE_SHARE, plan.describe(), "Do you want to update it?"):
                raise AbortedByUser(f"Please choose a different share name or edit {conf_path} manually.")

        result = self.writer.apply(conf_path, plan, validate=self.samba.validate, timestamp=timestamp,
                                   confirmed=True)
        if result.rolled_back:
            raise ValidationFailure(
                "Samba configuration is invalid. Configuration rolled back.",
                store_path=conf_path,
                reason=result.reason,
            )
        self.report("Samba configuration is valid.", "ok")
        return result
