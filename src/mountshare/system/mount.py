import logging
import os
import subprocess

import psutil

from mountshare.exceptions import ExternalToolFailure

logger = logging.getLogger(__name__)


def _run(cmd, message):
    try:
        subprocess.run(cmd, check=True, capture_output=True, text=True)
    except subprocess.CalledProcessError as e:
        raise ExternalToolFailure(message, command=" ".join(cmd), stderr=e.stderr) from e
    except FileNotFoundError as e:
        raise ExternalToolFailure(f"{cmd[0]} not found.", command=" ".join(cmd)) from e


def is_mounted(path: str) -> bool:
    """True if something is mounted exactly at `path`."""
    target = os.path.normpath(path)
    return any(part.mountpoint == target for part in psutil.disk_partitions(all=True))


def ensure_mount_point(path: str) -> None:
    try:
        os.makedirs(path, exist_ok=True)
    except OSError as e:
        raise ExternalToolFailure(f"Could not create mount point {path}: {e}") from e


def mount(path: str) -> None:
    """Mount `path` using its mount table entry."""
    logger.info(f"Mounting {path}")
    _run(["mount", path], f"Mount of {path} failed.")


def unmount(path: str) -> None:
    logger.info(f"Unmounting {path}")
    _run(["umount", path], f"Unmount of {path} failed.")
