from typing import Dict

OS_RELEASE_PATH = "/etc/os-release"

def get_os_info(path: str = OS_RELEASE_PATH) -> Dict[str, str]:
    """Parse /etc/os-release into a dict with lowercase keys (id, version_id, ...)."""
    info = {}
    try:
        with open(path, "r") as f:
            for line in f:
                line = line.strip()
                if not line or line.startswith("#") or "=" not in line:
                    continue
                key, value = line.split("=", 1)
                info[key.lower()] = value.strip().strip('"\'')
    except FileNotFoundError:
        pass
    return info
