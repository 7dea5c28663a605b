import json
import socket
import subprocess
from typing import Any, Dict, List

import psutil

LSBLK_COLUMNS = "NAME,PATH,SIZE,TYPE,FSTYPE,LABEL,UUID,MOUNTPOINT"

def get_disks() -> List[Dict[str, Any]]:
    """Return lsblk's block device tree (partitions nested under 'children')."""
    # -J: JSON output
    # -b: Bytes
    # -o: Specific columns
    cmd = ["lsblk", "-J", "-b", "-o", LSBLK_COLUMNS]
    output = subprocess.check_output(cmd).decode()
    data = json.loads(output)
    return data["blockdevices"]


def get_device_info(device: str) -> Dict[str, Any]:
    """Return the lsblk record of a single device, without its children."""
    cmd = ["lsblk", "-J", "-b", "-d", "-o", LSBLK_COLUMNS, device]
    result = subprocess.run(cmd, capture_output=True, text=True, check=True)
    devices = json.loads(result.stdout).get("blockdevices", [])
    return devices[0] if devices else {}


def get_host_ips() -> List[str]:
    """Non-loopback IPv4 addresses of all interfaces, used for share URLs."""
    ips = []
    for interface, addrs in psutil.net_if_addrs().items():
        if interface == 'lo':
            continue
        for addr in addrs:
            if addr.family == socket.AF_INET and not addr.address.startswith('127.'):
                ips.append(addr.address)
    return ips
