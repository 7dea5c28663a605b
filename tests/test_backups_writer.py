import os
from datetime import datetime, timezone
from unittest.mock import patch

import pytest

from mountshare.backups.writer import (
    TransactionalConfigWriter,
    WriteOutcome,
    list_backups,
    utc_timestamp,
)
from mountshare.exceptions import (
    BackupFailure,
    ConflictRequiresConfirmation,
    ExternalToolFailure,
    ValidationFailure,
)
from mountshare.shares import smb
from mountshare.shares.models import ShareDeclaration
from mountshare.storage import fstab
from mountshare.storage.models import MountDeclaration

FIXED_NOW = datetime(2024, 1, 2, 3, 4, 5, tzinfo=timezone.utc)

ORIGINAL_FSTAB = "UUID=1111-ROOT / ext4 errors=remount-ro 0 1\n"


@pytest.fixture
def writer():
    return TransactionalConfigWriter(clock=lambda: FIXED_NOW)


@pytest.fixture
def store(tmp_path):
    path = tmp_path / "fstab"
    path.write_text(ORIGINAL_FSTAB)
    return path


def append_plan(table=ORIGINAL_FSTAB):
    declaration = MountDeclaration(volume_id="ABCD-1234", target_path="/mnt/backup", fstype="ext4")
    return fstab.reconcile(declaration, table)


def test_utc_timestamp_format():
    assert utc_timestamp(FIXED_NOW) == "20240102030405"


def test_commit_writes_backup_then_new_content(writer, store):
    result = writer.apply(str(store), append_plan())

    assert result.outcome == WriteOutcome.COMMITTED
    assert result.backup_path == f"{store}.bak.20240102030405"
    with open(result.backup_path) as f:
        assert f.read() == ORIGINAL_FSTAB
    assert store.read_text() == ORIGINAL_FSTAB + "UUID=ABCD-1234 /mnt/backup ext4 defaults 0 0\n"


def test_validation_failure_restores_original(writer, tmp_path):
    conf = tmp_path / "smb.conf"
    original = "[global]\n  workgroup = WORKGROUP\n"
    conf.write_text(original)
    plan = smb.reconcile(ShareDeclaration(share_name="media", path="/mnt/media", permitted_user="jdoe"), original)

    seen = []

    def validate(path):
        seen.append(open(path).read())
        return False, "Unknown parameter"

    result = writer.apply(str(conf), plan, validate=validate)

    assert result.outcome == WriteOutcome.ROLLED_BACK
    assert result.reason == "Unknown parameter"
    # The validator saw the new content, the store is back to the old one
    assert "[media]" in seen[0]
    assert conf.read_bytes() == original.encode()
    assert os.path.exists(result.backup_path)


def test_validator_raising_validation_failure_rolls_back(writer, store):
    def validate(path):
        raise ValidationFailure("bad", store_path=path, reason="testparm exploded")

    result = writer.apply(str(store), append_plan(), validate=validate)

    assert result.rolled_back
    assert result.reason == "testparm exploded"
    assert store.read_text() == ORIGINAL_FSTAB


def test_passing_validation_commits(writer, store):
    result = writer.apply(str(store), append_plan(), validate=lambda path: (True, None))

    assert result.committed
    assert "ABCD-1234" in store.read_text()


def test_noop_plan_writes_nothing(writer, store):
    table = ORIGINAL_FSTAB + "UUID=ABCD-1234 /mnt/backup ext4 defaults 0 0\n"
    store.write_text(table)

    result = writer.apply(str(store), append_plan(table))

    assert result.outcome == WriteOutcome.UNCHANGED
    assert result.backup_path is None
    assert list_backups(str(store)) == []


def test_backup_failure_leaves_store_untouched(writer, store):
    with patch("mountshare.backups.writer.os.fsync", side_effect=OSError("No space left on device")):
        with pytest.raises(BackupFailure):
            writer.apply(str(store), append_plan())

    assert store.read_text() == ORIGINAL_FSTAB


def test_backups_in_the_same_second_do_not_overwrite(writer, store):
    first = writer.apply(str(store), append_plan())
    table = store.read_text()
    moved = MountDeclaration(volume_id="ABCD-1234", target_path="/mnt/moved", fstype="ext4")
    second = writer.apply(str(store), fstab.reconcile(moved, table), confirmed=True)

    assert second.backup_path == first.backup_path + ".1"
    with open(first.backup_path) as f:
        assert f.read() == ORIGINAL_FSTAB
    with open(second.backup_path) as f:
        assert f.read() == table


def test_failed_replace_keeps_store_and_cleans_temp_file(writer, store, tmp_path):
    with patch("mountshare.backups.writer.os.replace", side_effect=OSError("interrupted")):
        with pytest.raises(ExternalToolFailure):
            writer.apply(str(store), append_plan())

    assert store.read_text() == ORIGINAL_FSTAB
    leftovers = sorted(p.name for p in tmp_path.iterdir())
    assert leftovers == ["fstab", "fstab.bak.20240102030405"]


def test_file_mode_is_preserved(writer, store):
    os.chmod(store, 0o600)

    writer.apply(str(store), append_plan())

    assert os.stat(store).st_mode & 0o777 == 0o600


def test_untouched_bytes_survive(writer, tmp_path):
    store = tmp_path / "fstab"
    original = b"# caf\xe9 latin-1 comment\r\nUUID=1111-ROOT / ext4 defaults 0 1\r\n"
    store.write_bytes(original)
    table = original.decode("utf-8", errors="surrogateescape")

    writer.apply(str(store), append_plan(table))

    content = store.read_bytes()
    assert content.startswith(original)
    assert content[len(original):] == b"UUID=ABCD-1234 /mnt/backup ext4 defaults 0 0\n"


def test_missing_store_starts_empty(writer, tmp_path):
    store = tmp_path / "smb.conf"
    plan = smb.reconcile(ShareDeclaration(share_name="media", path="/mnt/media", permitted_user="jdoe"), "")

    result = writer.apply(str(store), plan)

    assert result.committed
    assert store.read_text().startswith("[media]\n")
    with open(result.backup_path, "rb") as f:
        assert f.read() == b""


def test_list_backups_newest_first(tmp_path):
    store = tmp_path / "fstab"
    store.write_text("")
    (tmp_path / "fstab.bak.20230101120000").write_text("a")
    (tmp_path / "fstab.bak.20240101120000").write_text("bb")
    (tmp_path / "fstab.bak.20240101120000.1").write_text("ccc")
    (tmp_path / "fstab.bak.not-a-timestamp").write_text("x")

    backups = list_backups(str(store))

    assert [b["filename"] for b in backups] == [
        "fstab.bak.20240101120000.1",
        "fstab.bak.20240101120000",
        "fstab.bak.20230101120000",
    ]
    assert backups[-1]["size"] == 1


def test_unconfirmed_replace_is_refused(writer, store):
    table = ORIGINAL_FSTAB + "UUID=ABCD-1234 /mnt/old ext4 defaults 0 0\n"
    store.write_text(table)

    with pytest.raises(ConflictRequiresConfirmation) as excinfo:
        writer.apply(str(store), append_plan(table))

    assert excinfo.value.plan.kind == fstab.PlanKind.REPLACE_LINE
    assert store.read_text() == table
    assert list_backups(str(store)) == []


def test_validator_crash_restores_original(writer, tmp_path):
    conf = tmp_path / "smb.conf"
    original = "[global]\n  workgroup = WORKGROUP\n"
    conf.write_text(original)
    plan = smb.reconcile(ShareDeclaration(share_name="media", path="/mnt/media", permitted_user="jdoe"), original)

    def validate(path):
        raise RuntimeError("testparm hung")

    with pytest.raises(RuntimeError):
        writer.apply(str(conf), plan, validate=validate)

    assert conf.read_bytes() == original.encode()
    assert len(list_backups(str(conf))) == 1


def test_unreadable_store_is_reported(writer, store):
    with patch("mountshare.backups.writer.open", create=True, side_effect=PermissionError(13, "Permission denied")):
        with pytest.raises(ExternalToolFailure) as excinfo:
            writer.apply(str(store), append_plan())

    assert "Could not read" in str(excinfo.value)
