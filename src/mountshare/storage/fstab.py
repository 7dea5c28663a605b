"""
Reconciliation of a mount declaration against the persistent mount table.

`reconcile` is pure: it takes the table text as a snapshot and returns a plan
describing the single-line edit that brings the table in line with the
declaration. Plans are applied with `ReconciliationPlan.render`, usually via
the transactional writer so the table is backed up first.

Only the first matching record is considered, in this order:

1. same UUID and same mount path (exact match, maybe with stale uid/gid)
2. same UUID, different mount path (the volume moved)
3. same mount path, different device (the path belongs to another volume)
4. nothing matches, append a new line
"""
import logging
import re
from enum import Enum
from typing import List, Optional, Tuple

from pydantic import BaseModel

from mountshare.exceptions import StalePlan
from mountshare.storage.models import MountDeclaration
from mountshare.storage.options import forbids_owner_options, is_owner_option, strip_owner_options

logger = logging.getLogger(__name__)

# Keeps the whitespace between fields so untouched fields keep their layout.
FIELD_SPLIT_RE = re.compile(r"(\s+)")


class MountTableEntry(BaseModel):
    spec: str
    target_path: str
    fstype: str
    options: List[str] = ["defaults"]
    dump: str = "0"
    passno: str = "0"

    @property
    def volume_id(self) -> Optional[str]:
        if self.spec.startswith("UUID="):
            return self.spec[len("UUID="):]
        return None

    @classmethod
    def parse(cls, line: str) -> Optional["MountTableEntry"]:
        """Parse one table line. Comments, blank and truncated lines give None."""
        stripped = line.strip()
        if not stripped or stripped.startswith("#"):
            return None

        parts = stripped.split()
        # Expecting: device mount_path fstype [options [dump [pass]]]
        if len(parts) < 3:
            return None

        return cls(
            spec=parts[0],
            target_path=parts[1],
            fstype=parts[2],
            options=parts[3].split(",") if len(parts) > 3 else ["defaults"],
            dump=parts[4] if len(parts) > 4 else "0",
            passno=parts[5] if len(parts) > 5 else "0",
        )

    def format(self) -> str:
        return f"{self.spec} {self.target_path} {self.fstype} {','.join(self.options)} {self.dump} {self.passno}"


class PlanKind(str, Enum):
    NOOP = "noop"
    STRIP_INVALID_OPTIONS = "strip_invalid_options"
    REPLACE_LINE = "replace_line"
    APPEND_LINE = "append_line"


class MatchKind(str, Enum):
    EXACT_MATCH = "exact_match"
    VOLUME_MOVED_PATH = "volume_moved_path"
    PATH_OCCUPIED_BY_OTHER_VOLUME = "path_occupied_by_other_volume"
    NO_EXISTING_RECORD = "no_existing_record"


class ReconciliationPlan(BaseModel):
    kind: PlanKind
    match: MatchKind
    line_index: Optional[int] = None
    existing_line: Optional[str] = None
    new_line: Optional[str] = None

    @property
    def changes_store(self) -> bool:
        return self.kind != PlanKind.NOOP

    @property
    def requires_confirmation(self) -> bool:
        return self.kind in (PlanKind.REPLACE_LINE, PlanKind.STRIP_INVALID_OPTIONS)

    def describe(self) -> str:
        if self.match == MatchKind.VOLUME_MOVED_PATH:
            return f"An fstab entry for this device exists with a different mount path: {self.existing_line}"
        if self.match == MatchKind.PATH_OCCUPIED_BY_OTHER_VOLUME:
            return f"An fstab entry for this mount path exists with a different device: {self.existing_line}"
        if self.kind == PlanKind.STRIP_INVALID_OPTIONS:
            return f"Found invalid uid/gid options in the existing entry: {self.existing_line}"
        if self.kind == PlanKind.NOOP:
            return "An fstab entry for this device and mount path already exists."
        return f"Adding to fstab: {self.new_line}"

    def render(self, text: str) -> str:
        """Return the table text with this plan applied."""
        if self.kind == PlanKind.NOOP:
            return text

        if self.kind == PlanKind.APPEND_LINE:
            if text and not text.endswith("\n"):
                text += "\n"
            return text + self.new_line + "\n"

        lines = text.splitlines(keepends=True)
        if self.line_index is None or self.line_index >= len(lines):
            raise StalePlan(None, self.existing_line or "")
        current = lines[self.line_index]
        body = current.rstrip("\r\n")
        if body != self.existing_line:
            raise StalePlan(None, self.existing_line or "")

        lines[self.line_index] = self.new_line + current[len(body):]
        return "".join(lines)


def compose_line(declaration: MountDeclaration) -> str:
    """UUID=<id> <path> <fstype> <options> 0 0"""
    return (
        f"{declaration.volume_token} {declaration.target_path} "
        f"{declaration.fstype} {','.join(declaration.options)} 0 0"
    )


def parse_table(text: str) -> List[Tuple[int, MountTableEntry]]:
    """Return (line index, entry) for every record line of the table."""
    records = []
    for index, line in enumerate(text.splitlines()):
        entry = MountTableEntry.parse(line)
        if entry is not None:
            records.append((index, entry))
    return records


def strip_owner_options_from_line(line: str) -> str:
    """
    Remove uid=/gid= tokens from the options field of a raw line. Every other
    field and the whitespace between fields are left as they are.
    """
    pieces = FIELD_SPLIT_RE.split(line)
    field = 0
    for i, piece in enumerate(pieces):
        if not piece or piece.isspace():
            continue
        if field == 3:
            kept = strip_owner_options(piece.split(","))
            pieces[i] = ",".join(kept) if kept else "defaults"
            break
        field += 1
    return "".join(pieces)


def reconcile(desired: MountDeclaration, table_text: str) -> ReconciliationPlan:
    """Compute the minimal edit that makes the table declare `desired`."""
    lines = table_text.splitlines()
    records = parse_table(table_text)
    token = desired.volume_token

    for index, entry in records:
        if entry.spec == token and entry.target_path == desired.target_path:
            line = lines[index]
            if forbids_owner_options(desired.filesystem_kind) and any(is_owner_option(o) for o in entry.options):
                logger.info(f"Entry for {desired.target_path} carries uid/gid options invalid for {desired.fstype}")
                return ReconciliationPlan(
                    kind=PlanKind.STRIP_INVALID_OPTIONS,
                    match=MatchKind.EXACT_MATCH,
                    line_index=index,
                    existing_line=line,
                    new_line=strip_owner_options_from_line(line),
                )
            return ReconciliationPlan(
                kind=PlanKind.NOOP,
                match=MatchKind.EXACT_MATCH,
                line_index=index,
                existing_line=line,
            )

    new_line = compose_line(desired)

    for index, entry in records:
        if entry.spec == token:
            logger.info(f"Volume {desired.volume_id} is declared at {entry.target_path}, wanted {desired.target_path}")
            return ReconciliationPlan(
                kind=PlanKind.REPLACE_LINE,
                match=MatchKind.VOLUME_MOVED_PATH,
                line_index=index,
                existing_line=lines[index],
                new_line=new_line,
            )

    for index, entry in records:
        if entry.target_path == desired.target_path:
            logger.info(f"Mount path {desired.target_path} is declared for {entry.spec}")
            return ReconciliationPlan(
                kind=PlanKind.REPLACE_LINE,
                match=MatchKind.PATH_OCCUPIED_BY_OTHER_VOLUME,
                line_index=index,
                existing_line=lines[index],
                new_line=new_line,
            )

    return ReconciliationPlan(
        kind=PlanKind.APPEND_LINE,
        match=MatchKind.NO_EXISTING_RECORD,
        new_line=new_line,
    )
