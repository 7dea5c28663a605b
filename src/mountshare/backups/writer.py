import glob
import logging
import os
import shutil
import tempfile
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Callable, Dict, List, Optional, Tuple

from pydantic import BaseModel

from mountshare.exceptions import BackupFailure, ConflictRequiresConfirmation, ExternalToolFailure, ValidationFailure

logger = logging.getLogger(__name__)

BACKUP_TIMESTAMP_FORMAT = "%Y%m%d%H%M%S"

# Called with the store path after the new content is in place.
Validator = Callable[[str], Tuple[bool, Optional[str]]]


class WriteOutcome(str, Enum):
    UNCHANGED = "unchanged"
    COMMITTED = "committed"
    ROLLED_BACK = "rolled_back"


class WriteResult(BaseModel):
    outcome: WriteOutcome
    store_path: str
    backup_path: Optional[str] = None
    reason: Optional[str] = None

    @property
    def committed(self) -> bool:
        return self.outcome == WriteOutcome.COMMITTED

    @property
    def rolled_back(self) -> bool:
        return self.outcome == WriteOutcome.ROLLED_BACK


def utc_timestamp(now: Optional[datetime] = None) -> str:
    return (now or datetime.now(timezone.utc)).strftime(BACKUP_TIMESTAMP_FORMAT)


def _decode(data: bytes) -> str:
    # surrogateescape keeps undecodable bytes so unchanged lines round-trip exactly
    return data.decode("utf-8", errors="surrogateescape")


def _encode(text: str) -> bytes:
    return text.encode("utf-8", errors="surrogateescape")


def _fsync_dir(path: str) -> None:
    fd = os.open(os.path.dirname(os.path.abspath(path)), os.O_RDONLY)
    try:
        os.fsync(fd)
    finally:
        os.close(fd)


class TransactionalConfigWriter:
    """
    Applies a reconciliation plan to a configuration file.

    The unmodified file is always copied to `<store>.bak.<UTC timestamp>`
    first, and the new content replaces the file atomically through a sibling
    temporary file. When a validator rejects the result the backup content is
    put back. Backups are never removed.
    """

    def __init__(self, clock: Optional[Callable[[], datetime]] = None):
        self.clock = clock or (lambda: datetime.now(timezone.utc))

    def apply(self, store_path: str, plan: Any, validate: Optional[Validator] = None,
              timestamp: Optional[str] = None, confirmed: bool = False) -> WriteResult:
        """
        Back up, write and optionally validate one store.

        Args:
            store_path: The configuration file to edit.
            plan: A reconciliation plan exposing `changes_store`,
                `requires_confirmation` and `render(text)`.
            validate: Optional check run against the written file.
            timestamp: Backup suffix; defaults to the current UTC second.
            confirmed: Whether the caller approved a plan that replaces or
                removes existing content.

        Returns:
            WriteResult with COMMITTED, ROLLED_BACK (and the validator's reason)
            or UNCHANGED for plans that edit nothing.

        Raises:
            ConflictRequiresConfirmation: The plan needs approval and
                `confirmed` is False. Nothing is written.
        """
        if not plan.changes_store:
            logger.debug(f"Nothing to write to {store_path}")
            return WriteResult(outcome=WriteOutcome.UNCHANGED, store_path=store_path)

        if plan.requires_confirmation and not confirmed:
            raise ConflictRequiresConfirmation(plan.describe(), plan)

        original = self._read(store_path)
        backup_path = self.backup(store_path, original, timestamp)

        new_text = plan.render(_decode(original))
        self._replace(store_path, _encode(new_text))
        logger.info(f"Wrote {store_path} (backup: {backup_path})")

        if validate is not None:
            try:
                ok, reason = validate(store_path)
            except ValidationFailure as e:
                ok, reason = False, e.reason or e.message
            except BaseException:
                logger.warning(f"Validation of {store_path} did not complete, restoring {backup_path}")
                self._replace(store_path, original)
                raise
            if not ok:
                logger.warning(f"Validation of {store_path} failed, restoring {backup_path}: {reason}")
                self._replace(store_path, original)
                return WriteResult(
                    outcome=WriteOutcome.ROLLED_BACK,
                    store_path=store_path,
                    backup_path=backup_path,
                    reason=reason,
                )

        return WriteResult(outcome=WriteOutcome.COMMITTED, store_path=store_path, backup_path=backup_path)

    def backup(self, store_path: str, content: bytes, timestamp: Optional[str] = None) -> str:
        """Write `content` to a new backup file. Existing backups are never overwritten."""
        timestamp = timestamp or utc_timestamp(self.clock())
        base = f"{store_path}.bak.{timestamp}"
        candidate = base
        counter = 0
        while True:
            try:
                with open(candidate, "xb") as f:
                    f.write(content)
                    f.flush()
                    os.fsync(f.fileno())
                break
            except FileExistsError:
                # Same second as an earlier backup of this store
                counter += 1
                candidate = f"{base}.{counter}"
            except OSError as e:
                raise BackupFailure(store_path, e) from e

        try:
            if os.path.exists(store_path):
                shutil.copymode(store_path, candidate)
            _fsync_dir(candidate)
        except OSError as e:
            raise BackupFailure(store_path, e) from e
        return candidate

    def _read(self, store_path: str) -> bytes:
        try:
            with open(store_path, "rb") as f:
                return f.read()
        except FileNotFoundError:
            logger.info(f"{store_path} does not exist yet, starting from an empty file")
            return b""
        except OSError as e:
            raise ExternalToolFailure(f"Could not read {store_path}: {e}") from e

    def _replace(self, store_path: str, data: bytes) -> None:
        """Atomically replace the store with `data`, keeping its mode and owner."""
        directory = os.path.dirname(os.path.abspath(store_path))
        try:
            fd, tmp_path = tempfile.mkstemp(dir=directory, prefix=f".{os.path.basename(store_path)}.")
        except OSError as e:
            raise ExternalToolFailure(f"Could not write {store_path}: {e}") from e
        try:
            with os.fdopen(fd, "wb") as f:
                f.write(data)
                f.flush()
                os.fsync(f.fileno())
            if os.path.exists(store_path):
                st = os.stat(store_path)
                os.chmod(tmp_path, st.st_mode & 0o7777)
                if (st.st_uid, st.st_gid) != (os.getuid(), os.getgid()):
                    os.chown(tmp_path, st.st_uid, st.st_gid)
            else:
                os.chmod(tmp_path, 0o644)
            os.replace(tmp_path, store_path)
            _fsync_dir(store_path)
        except BaseException as e:
            if os.path.exists(tmp_path):
                os.remove(tmp_path)
            if isinstance(e, OSError):
                raise ExternalToolFailure(f"Could not write {store_path}: {e}") from e
            raise


def list_backups(store_path: str) -> List[Dict[str, Any]]:
    """
    Lists the audit backups of a store, newest first.

    Returns:
        List of dicts with path, filename, timestamp, size and mtime.
    """
    backups = []
    prefix = f"{store_path}.bak."
    for f in glob.glob(glob.escape(prefix) + "*"):
        if not os.path.isfile(f):
            continue
        suffix = f[len(prefix):]
        timestamp, _, counter = suffix.partition(".")
        try:
            datetime.strptime(timestamp, BACKUP_TIMESTAMP_FORMAT)
        except ValueError:
            continue
        backups.append({
            "path": f,
            "filename": os.path.basename(f),
            "timestamp": timestamp,
            "size": os.path.getsize(f),
            "mtime": os.path.getmtime(f),
            "sequence": int(counter) if counter.isdigit() else 0,
        })

    backups.sort(key=lambda x: (x["timestamp"], x["sequence"]), reverse=True)
    return backups
