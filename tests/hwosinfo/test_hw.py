import json
import socket
from unittest.mock import MagicMock, patch

from mountshare.hwosinfo.hw import get_device_info, get_host_ips

@patch('subprocess.run')
def test_get_device_info(mock_run):
    """Test that a single lsblk record is returned."""
    mock_run.return_value = MagicMock(stdout=json.dumps({
        "blockdevices": [{"name": "sdb1", "uuid": "ABCD-1234", "fstype": "ext4", "mountpoint": None}]
    }))

    info = get_device_info("/dev/sdb1")

    assert info["uuid"] == "ABCD-1234"
    assert mock_run.call_args[0][0][-1] == "/dev/sdb1"

@patch('psutil.net_if_addrs')
def test_get_host_ips_skips_loopback(mock_addrs):
    """Test that only non-loopback IPv4 addresses are returned."""
    def addr(family, address):
        return MagicMock(family=family, address=address)

    mock_addrs.return_value = {
        "lo": [addr(socket.AF_INET, "127.0.0.1")],
        "eth0": [addr(socket.AF_INET, "192.168.1.10"), addr(socket.AF_INET6, "fe80::1")],
        "docker0": [addr(socket.AF_INET, "172.17.0.1")],
    }

    assert get_host_ips() == ["192.168.1.10", "172.17.0.1"]
