import logging
logger = logging.getLogger(__name__)
import subprocess
from typing import List, Optional
from mountshare.exceptions import ExternalToolFailure
from mountshare.systemd.registry import MANAGED_SERVICES

class SystemdManager:
    def _resolve_service_name(self, service_key: str) -> Optional[str]:
        """Resolves the actual systemd unit name from the registry list."""
        if service_key not in MANAGED_SERVICES:
            logger.info(f"Service {service_key} not found in registry, candidates: {list(MANAGED_SERVICES.keys())}")
            return None

        for unit in MANAGED_SERVICES[service_key]:
            try:
                # 'systemctl show' reports LoadState even for inactive units
                res = subprocess.run(
                    ["systemctl", "show", "-p", "LoadState", unit],
                    capture_output=True, text=True
                )
            except FileNotFoundError:
                return None

            logger.debug(f"Probed unit {unit} for {service_key}: {res.stdout.strip()}")
            if "LoadState=loaded" in res.stdout:
                return unit
        return None

    def _systemctl(self, args: List[str]) -> None:
        cmd = ["systemctl"] + args
        try:
            subprocess.run(cmd, check=True, capture_output=True, text=True)
        except subprocess.CalledProcessError as e:
            raise ExternalToolFailure(f"'{' '.join(cmd)}' failed.", command=" ".join(cmd), stderr=e.stderr) from e
        except FileNotFoundError as e:
            raise ExternalToolFailure("systemctl not found.", command=" ".join(cmd)) from e

    def daemon_reload(self) -> None:
        """Regenerate mount units after the mount table changed."""
        logger.info("Reloading systemd daemon")
        self._systemctl(["daemon-reload"])

    def restart(self, service_key: str) -> str:
        """Restart a managed service. Returns the unit name that was restarted."""
        unit = self._resolve_service_name(service_key)
        if not unit:
            raise ExternalToolFailure(f"No systemd unit found for service '{service_key}'.")
        logger.info(f"Restarting {unit}")
        self._systemctl(["restart", unit])
        return unit

    def get_active_state(self, service_key: str) -> str:
        unit = self._resolve_service_name(service_key)
        if not unit:
            return "not found"
        result = subprocess.run(
            ["systemctl", "is-active", unit],
            stdout=subprocess.PIPE, stderr=subprocess.DEVNULL, text=True
        )
        return result.stdout.strip() or "unknown"
