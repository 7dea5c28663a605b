import subprocess

# This variable is intended to be overwritten during the build/release process
__version__ = "dev"

def get_version() -> str:
    """
    Returns the current version of mountshare.
    Priorities:
    1. Explicitly set __version__ (if not "dev")
    2. Git commit hash (if running from a git checkout)
    3. Fallback "dev"
    """
    if __version__ != "dev":
        return __version__

    try:
        cmd = ["git", "rev-parse", "--short", "HEAD"]
        result = subprocess.run(cmd, capture_output=True, text=True, check=True)
        return result.stdout.strip()
    except (subprocess.CalledProcessError, FileNotFoundError):
        pass

    return "dev"
