import pytest
from unittest.mock import patch
from mountshare.pkgs.manager import get_package_manager
from mountshare.pkgs.arch import ArchPackageManager
from mountshare.pkgs.debian import DebianPackageManager


@patch('mountshare.pkgs.manager.get_os_info', return_value={"id": "ubuntu"})
def test_debian_family(mock_os):
    assert isinstance(get_package_manager(), DebianPackageManager)


@patch('mountshare.pkgs.manager.get_os_info', return_value={"id": "arch"})
def test_arch(mock_os):
    assert isinstance(get_package_manager(), ArchPackageManager)


@patch('mountshare.pkgs.manager.get_os_info', return_value={"id": "plan9"})
def test_unsupported_distribution(mock_os):
    with pytest.raises(Exception, match="Unsupported distribution"):
        get_package_manager()


@patch('subprocess.run')
def test_debian_install_is_noninteractive(mock_run):
    DebianPackageManager().install("samba")

    calls = [c.args[0] for c in mock_run.call_args_list]
    assert calls == [["apt-get", "update"], ["apt-get", "install", "-y", "samba"]]
    assert mock_run.call_args.kwargs["env"]["DEBIAN_FRONTEND"] == "noninteractive"
