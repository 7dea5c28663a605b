from unittest.mock import patch

from click.testing import CliRunner
from mountshare.cli import main

def test_list_backups(tmp_path):
    store = tmp_path / "fstab"
    store.write_text("")
    (tmp_path / "fstab.bak.20240102030405").write_text("UUID=1111-ROOT / ext4 defaults 0 1\n")

    with patch('mountshare.config.settings.config.fstab_path', str(store)):
        runner = CliRunner()
        result = runner.invoke(main, ['backups', 'list'])

    assert result.exit_code == 0
    assert "fstab.bak.20240102030405" in result.output
    assert "2024-01-02 03:04:05 UTC" in result.output

def test_list_backups_of_path(tmp_path):
    store = tmp_path / "smb.conf"

    runner = CliRunner()
    result = runner.invoke(main, ['backups', 'list', str(store)])

    assert result.exit_code == 0
    assert f"No backups of {store} found." in result.output
