"""
Mount options per filesystem kind.

This mapping is consulted both when composing a new mount table entry and when
checking an existing one, so the two can never disagree.
"""
from typing import Iterable, List, Sequence

from mountshare.storage.models import FilesystemKind

# Filesystems without POSIX ownership; files get the owner from mount options.
OWNER_OPTION_KINDS = frozenset({FilesystemKind.VFAT, FilesystemKind.EXFAT, FilesystemKind.NTFS})

# POSIX filesystems refuse uid=/gid= at mount time.
OWNER_OPTION_FORBIDDEN_KINDS = frozenset({FilesystemKind.EXT4, FilesystemKind.XFS, FilesystemKind.BTRFS})

OWNER_OPTION_KEYS = ("uid", "gid")


def options_for(kind: FilesystemKind, uid: int, gid: int, base: Sequence[str] = ("defaults",)) -> List[str]:
    """Return the ordered mount options for a filesystem kind."""
    options = list(base)
    if accepts_owner_options(kind):
        options += [f"uid={uid}", f"gid={gid}"]
    return options


def accepts_owner_options(kind: FilesystemKind) -> bool:
    return kind in OWNER_OPTION_KINDS


def forbids_owner_options(kind: FilesystemKind) -> bool:
    return kind in OWNER_OPTION_FORBIDDEN_KINDS


def is_owner_option(token: str) -> bool:
    key, sep, _ = token.partition("=")
    return bool(sep) and key in OWNER_OPTION_KEYS


def strip_owner_options(options: Iterable[str]) -> List[str]:
    return [o for o in options if not is_owner_option(o)]


def parse_base_options(value: str) -> List[str]:
    """Split a comma separated option string from configuration."""
    return [o.strip() for o in value.split(",") if o.strip()] or ["defaults"]
