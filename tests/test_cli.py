from click.testing import CliRunner

from complaint_desk.cli import cli

def test_seed_rejects_invalid_account_before_touching_database():
    result = CliRunner().invoke(cli, ["seed", "--admin-email", "not-an-email"])
    assert result.exit_code == 2
    assert "Invalid value" in result.output

def test_seed_rejects_short_password():
    result = CliRunner().invoke(cli, ["seed", "--viewer-password", "short"])
    assert result.exit_code == 2
