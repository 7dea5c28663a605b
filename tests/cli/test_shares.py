from unittest.mock import patch

from click.testing import CliRunner
from mountshare.cli import main

SMB_CONF = (
    "[global]\n"
    "  workgroup = WORKGROUP\n"
    "\n"
    "[media]\n"
    "  path = /mnt/media\n"
    "  valid users = jdoe\n"
    "  read only = no\n"
)

def test_shares_help():
    runner = CliRunner()
    result = runner.invoke(main, ['shares', '--help'])
    assert result.exit_code == 0
    assert "Manage Samba shares." in result.output

def test_list_shares(tmp_path):
    conf = tmp_path / "smb.conf"
    conf.write_text(SMB_CONF)

    with patch('mountshare.config.settings.config.smb_conf_path', str(conf)):
        runner = CliRunner()
        result = runner.invoke(main, ['shares', 'list'])

    assert result.exit_code == 0
    assert "Name: media" in result.output
    assert "Path: /mnt/media" in result.output
    assert "global" not in result.output

def test_list_without_config(tmp_path):
    with patch('mountshare.config.settings.config.smb_conf_path', str(tmp_path / "smb.conf")):
        runner = CliRunner()
        result = runner.invoke(main, ['shares', 'list'])

    assert result.exit_code == 0
    assert "No shares found." in result.output

@patch('mountshare.shares.smb.SMBManager.validate', return_value=(False, "Unknown parameter encountered"))
def test_validate_invalid(mock_validate):
    runner = CliRunner()
    result = runner.invoke(main, ['shares', 'validate', '--path', '/tmp/smb.conf'])

    assert result.exit_code == 1
    assert "Unknown parameter encountered" in result.output

@patch('mountshare.shares.smb.SMBManager.validate', return_value=(True, None))
def test_validate_ok(mock_validate):
    runner = CliRunner()
    result = runner.invoke(main, ['shares', 'validate', '--path', '/tmp/smb.conf'])

    assert result.exit_code == 0
    assert "/tmp/smb.conf is valid." in result.output
