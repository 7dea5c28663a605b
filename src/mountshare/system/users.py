import logging
import os
import pwd
import subprocess

from mountshare.exceptions import ExternalToolFailure

logger = logging.getLogger(__name__)


def user_exists(name: str) -> bool:
    try:
        pwd.getpwnam(name)
    except KeyError:
        return False
    return True


def owner_of(path: str) -> str:
    """Name of the user owning `path`, or the numeric uid if it has no account."""
    try:
        uid = os.stat(path).st_uid
    except OSError as e:
        raise ExternalToolFailure(f"Could not read the owner of {path}: {e}") from e
    try:
        return pwd.getpwuid(uid).pw_name
    except KeyError:
        return str(uid)


def take_ownership(path: str, user: str) -> None:
    """chown -R user:user and chmod -R 775 on a mounted share directory."""
    for cmd in (["chown", "-R", f"{user}:{user}", path], ["chmod", "-R", "775", path]):
        logger.info(f"Running {' '.join(cmd)}")
        try:
            subprocess.run(cmd, check=True, capture_output=True, text=True)
        except subprocess.CalledProcessError as e:
            raise ExternalToolFailure(f"Setting ownership of {path} failed.", command=" ".join(cmd), stderr=e.stderr) from e
        except FileNotFoundError as e:
            raise ExternalToolFailure(f"{cmd[0]} not found.", command=" ".join(cmd)) from e
