import subprocess

from mountshare.pkgs.base import PackageManager


class ArchPackageManager(PackageManager):
    def install(self, package):
        subprocess.run(["pacman", "-S", "--noconfirm", package], check=True)
