import os
import subprocess

from mountshare.pkgs.base import PackageManager


class DebianPackageManager(PackageManager):
    # Non-interactive installs
    env = dict(os.environ, DEBIAN_FRONTEND="noninteractive")

    def update(self):
        subprocess.run(["apt-get", "update"], check=True, env=self.env)

    def install(self, package):
        self.update()
        subprocess.run(["apt-get", "install", "-y", package], check=True, env=self.env)
