from enum import Enum
from typing import List, Optional
from pydantic import BaseModel

class FilesystemKind(str, Enum):
    EXT4 = "ext4"
    XFS = "xfs"
    BTRFS = "btrfs"
    VFAT = "vfat"
    EXFAT = "exfat"
    NTFS = "ntfs"
    OTHER = "other"

    @classmethod
    def parse(cls, fstype: Optional[str]) -> "FilesystemKind":
        """Map an lsblk/fstab filesystem name onto a known kind, or OTHER."""
        try:
            return cls((fstype or "").lower())
        except ValueError:
            return cls.OTHER

class DeviceIdentity(BaseModel):
    device: str
    volume_id: str
    fstype: str  # raw name as reported by lsblk, e.g. "ext4" or "f2fs"
    current_mountpoint: Optional[str] = None

    @property
    def filesystem_kind(self) -> FilesystemKind:
        return FilesystemKind.parse(self.fstype)

class MountDeclaration(BaseModel):
    volume_id: str
    target_path: str
    fstype: str
    options: List[str] = ["defaults"]

    @property
    def filesystem_kind(self) -> FilesystemKind:
        return FilesystemKind.parse(self.fstype)

    @property
    def volume_token(self) -> str:
        return f"UUID={self.volume_id}"

class BlockDevice(BaseModel):
    name: str
    path: str
    size: int
    fstype: Optional[str] = None
    label: Optional[str] = None
    uuid: Optional[str] = None
    mountpoint: Optional[str] = None
    type: Optional[str] = None
    parent: Optional[str] = None
