import shutil
import subprocess

from mountshare.pkgs.base import PackageManager


class FedoraPackageManager(PackageManager):
    def __init__(self):
        if shutil.which("dnf"):
            self.pm = "dnf"
        elif shutil.which("yum"):
            self.pm = "yum"
        else:
            raise Exception("No package manager found (dnf or yum)")

    def install(self, package):
        subprocess.run([self.pm, "install", "-y", package], check=True)
