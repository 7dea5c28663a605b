import logging
import os
import stat
import subprocess
from typing import List

from mountshare.exceptions import IdentityUnavailable, NotABlockDevice, UserInputError
from mountshare.hwosinfo.hw import get_device_info, get_disks as get_raw_disks
from mountshare.storage.models import BlockDevice, DeviceIdentity

logger = logging.getLogger(__name__)

class DeviceInspector:
    def resolve(self, token: str) -> str:
        """
        Normalize 'sdb1' or '/dev/sdb1' to a device path and make sure it is a
        block device.
        """
        token = (token or "").strip()
        if not token:
            raise UserInputError("Device name cannot be empty.")

        device = token if token.startswith("/dev/") else f"/dev/{token}"
        try:
            mode = os.stat(device).st_mode
        except OSError:
            raise NotABlockDevice(device)
        if not stat.S_ISBLK(mode):
            raise NotABlockDevice(device)
        return device

    def inspect(self, device: str) -> DeviceIdentity:
        """Read the volume UUID, filesystem type and current mountpoint of a device."""
        try:
            info = get_device_info(device)
        except (subprocess.CalledProcessError, FileNotFoundError) as e:
            raise IdentityUnavailable(device, {"error": str(e)}) from e

        uuid = info.get("uuid")
        fstype = info.get("fstype")
        logger.debug(f"lsblk reported {device}: uuid={uuid} fstype={fstype}")
        if not uuid or not fstype:
            raise IdentityUnavailable(device, {"uuid": uuid, "fstype": fstype})

        return DeviceIdentity(
            device=device,
            volume_id=uuid,
            fstype=fstype,
            current_mountpoint=info.get("mountpoint") or None,
        )


def list_block_devices() -> List[BlockDevice]:
    """
    Flatten lsblk's device tree for display. Partitions keep the name of the
    disk they belong to in `parent`.
    """
    devices = []

    def visit(raw, parent=None):
        # Skip loop devices and ram disks
        name = raw.get("name", "")
        if name.startswith("loop") or name.startswith("ram"):
            return
        devices.append(BlockDevice(
            name=name,
            path=raw.get("path") or f"/dev/{name}",
            size=int(raw.get("size") or 0),
            fstype=raw.get("fstype"),
            label=raw.get("label"),
            uuid=raw.get("uuid"),
            mountpoint=raw.get("mountpoint"),
            type=raw.get("type"),
            parent=parent,
        ))
        for child in raw.get("children", []):
            visit(child, name)

    for raw in get_raw_disks():
        visit(raw)
    return devices
