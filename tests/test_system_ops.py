import subprocess
from unittest.mock import MagicMock, patch

import pytest

from mountshare.exceptions import ExternalToolFailure
from mountshare.system import mount as mount_ops
from mountshare.system import users as user_ops


@patch('psutil.disk_partitions')
def test_is_mounted_matches_exact_path(mock_partitions):
    mock_partitions.return_value = [
        MagicMock(mountpoint="/"),
        MagicMock(mountpoint="/mnt/media2"),
    ]

    assert not mount_ops.is_mounted("/mnt/media")
    assert mount_ops.is_mounted("/mnt/media2/")


@patch('subprocess.run')
def test_mount_failure_is_wrapped(mock_run):
    mock_run.side_effect = subprocess.CalledProcessError(32, ["mount", "/mnt/media"], stderr="wrong fs type\n")

    with pytest.raises(ExternalToolFailure) as excinfo:
        mount_ops.mount("/mnt/media")

    assert excinfo.value.command == "mount /mnt/media"
    assert "wrong fs type" in str(excinfo.value)


@patch('subprocess.run')
def test_take_ownership(mock_run):
    user_ops.take_ownership("/mnt/media", "jdoe")

    calls = [c.args[0] for c in mock_run.call_args_list]
    assert calls == [
        ["chown", "-R", "jdoe:jdoe", "/mnt/media"],
        ["chmod", "-R", "775", "/mnt/media"],
    ]


@patch('pwd.getpwnam', side_effect=KeyError("ghost"))
def test_user_exists_unknown(mock_getpwnam):
    assert not user_ops.user_exists("ghost")


def test_ensure_mount_point(tmp_path):
    target = tmp_path / "mnt" / "media"

    mount_ops.ensure_mount_point(str(target))
    mount_ops.ensure_mount_point(str(target))

    assert target.is_dir()


def test_ensure_mount_point_under_a_file(tmp_path):
    blocker = tmp_path / "mnt"
    blocker.write_text("")

    with pytest.raises(ExternalToolFailure) as excinfo:
        mount_ops.ensure_mount_point(str(blocker / "media"))

    assert "Could not create mount point" in str(excinfo.value)


def test_owner_of_missing_path(tmp_path):
    with pytest.raises(ExternalToolFailure):
        user_ops.owner_of(str(tmp_path / "missing"))
