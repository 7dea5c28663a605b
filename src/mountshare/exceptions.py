"""
Exceptions raised by mountshare.

Every failure a run can end with is a MountShareError subclass so the CLI can
turn it into a diagnostic and a non-zero exit status.
"""

from typing import Any, Dict, Optional


class MountShareError(Exception):
    """Base exception for all mountshare errors."""

    exit_code = 1

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None) -> None:
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def __str__(self) -> str:
        if self.details:
            return f"{self.message} - Details: {self.details}"
        return self.message


# Input errors. Raised before anything on the host is touched.

class UserInputError(MountShareError):
    """Empty or invalid names, missing devices or users."""

    exit_code = 2


class NotABlockDevice(UserInputError):
    """The resolved device path is missing or is not a block device."""

    def __init__(self, device: str) -> None:
        self.device = device
        super().__init__(
            f"Device {device} does not exist or is not a block device.",
            {"device": device},
        )


class UnknownUser(UserInputError):
    """The principal to grant share access to has no local account."""

    def __init__(self, user: str) -> None:
        self.user = user
        super().__init__(
            f"Linux user '{user}' does not exist. Create the user first or choose another user.",
            {"user": user},
        )


class IdentityUnavailable(MountShareError):
    """The volume id or the filesystem kind of a device could not be read."""

    def __init__(self, device: str, details: Optional[Dict[str, Any]] = None) -> None:
        self.device = device
        super().__init__(f"Failed to detect UUID or filesystem type of {device}.", details)


# Decisions

class ConflictRequiresConfirmation(MountShareError):
    """A destructive edit was computed but the caller has not approved it."""

    def __init__(self, message: str, plan: Any = None) -> None:
        self.plan = plan
        super().__init__(message)


class AbortedByUser(MountShareError):
    """The caller declined a confirmation; nothing further was changed."""


# Commit failures

class ValidationFailure(MountShareError):
    """A written configuration store failed its external check."""

    def __init__(
        self,
        message: str,
        store_path: Optional[str] = None,
        reason: Optional[str] = None,
    ) -> None:
        self.store_path = store_path
        self.reason = reason
        details = {}
        if store_path:
            details["store"] = store_path
        if reason:
            details["reason"] = reason
        super().__init__(message, details)


class BackupFailure(MountShareError):
    """The pre-mutation backup could not be written. The store is untouched."""

    def __init__(self, store_path: str, cause: Optional[BaseException] = None) -> None:
        self.store_path = store_path
        super().__init__(
            f"Could not back up {store_path}; refusing to modify it.",
            {"cause": str(cause)} if cause else None,
        )


class ExternalToolFailure(MountShareError):
    """An OS command (mount, package install, daemon restart...) failed."""

    def __init__(
        self,
        message: str,
        command: Optional[str] = None,
        stderr: Optional[str] = None,
    ) -> None:
        self.command = command
        self.stderr = stderr
        details = {}
        if command:
            details["command"] = command
        if stderr:
            details["stderr"] = stderr.strip()
        super().__init__(message, details)


class StalePlan(MountShareError):
    """A store no longer holds the line a plan was computed against."""

    def __init__(self, store_path: Optional[str], expected: str) -> None:
        self.store_path = store_path
        super().__init__(
            "Configuration changed since the edit was planned; re-run to plan again.",
            {"store": store_path, "expected": expected},
        )
