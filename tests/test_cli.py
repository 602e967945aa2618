"""Tests for the jellos-secrets command line."""

import pytest

from jellos_secrets import cli
from jellos_secrets.interface import SecretProviderType

from .conftest import FakeProvider


@pytest.fixture
def fake_manager(monkeypatch):
    """Route the CLI to a manager over an in-memory env provider."""
    from jellos_secrets.manager import create_secret_manager

    provider = FakeProvider(SecretProviderType.ENV, {"prod/GITHUB_TOKEN": "ghp_abcdefghijklmnop"})

    async def create():
        return await create_secret_manager({}, providers=[provider])

    monkeypatch.setattr(cli, "create_secret_manager", create)
    return provider


class TestCli:
    """Tests for subcommand dispatch and output."""

    def test_requires_command(self):
        with pytest.raises(SystemExit):
            cli.main([])

    def test_get_prints_masked(self, fake_manager, capsys):
        assert cli.main(["get", "GITHUB_TOKEN", "-n", "prod"]) == 0
        output = capsys.readouterr().out
        assert "ghp_" + "*" * 16 in output
        assert "ghp_abcdefghijklmnop" not in output

    def test_get_missing(self, fake_manager, capsys):
        assert cli.main(["get", "NOPE"]) == 1
        assert "Secret not found: dev/NOPE" in capsys.readouterr().out

    def test_health(self, fake_manager, capsys):
        assert cli.main(["health"]) == 0
        assert "✅ env: healthy" in capsys.readouterr().out

    def test_validate(self, fake_manager, tmp_path, capsys):
        path = tmp_path / "config.yml"
        path.write_text("token: ${secret:prod/GITHUB_TOKEN}\nother: ${secret:MISSING}\n")
        assert cli.main(["validate", str(path)]) == 1
        output = capsys.readouterr().out
        assert "1 unresolved" in output
        assert "${secret:MISSING}" in output

    def test_validate_unreadable(self, fake_manager, tmp_path, capsys):
        assert cli.main(["validate", str(tmp_path / "missing.yml")]) == 1
        assert "Cannot read" in capsys.readouterr().out

    def test_load_env(self, fake_manager, tmp_path, monkeypatch, capsys):
        monkeypatch.chdir(tmp_path)
        monkeypatch.setenv("CLI_TOKEN", "")
        monkeypatch.delenv("CLI_TOKEN")
        (tmp_path / ".env").write_text("CLI_TOKEN=${secret:GITHUB_TOKEN}\n")

        assert cli.main(["load-env", "-e", "prod"]) == 0
        output = capsys.readouterr().out
        assert "Loaded 1 variable(s), 1 tracked for masking" in output
        assert "CLI_TOKEN" in output
