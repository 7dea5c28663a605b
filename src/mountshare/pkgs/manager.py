from mountshare.hwosinfo.os import get_os_info
from mountshare.pkgs.arch import ArchPackageManager
from mountshare.pkgs.debian import DebianPackageManager
from mountshare.pkgs.fedora import FedoraPackageManager


def get_package_manager():
    os_info = get_os_info()
    distro = os_info.get('id')
    if distro in ["arch", "manjaro"]:
        return ArchPackageManager()
    elif distro in ["debian", "ubuntu", "raspbian"]:
        return DebianPackageManager()
    elif distro in ["fedora", "centos", "rhel", "rocky", "almalinux"]:
        return FedoraPackageManager()
    else:
        raise Exception(f"Unsupported distribution: {distro}")
