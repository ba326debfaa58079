"""
Tests for the command line, driven through click's CliRunner.

Prompts are answered through the runner's input; storage and keychain are
the in-memory fixtures.
"""
import pytest
from click.testing import CliRunner

from envkeep.cli import Context, cli
from envkeep.restore import SelectionSet
from envkeep.vault.file import EncryptionMode, VaultFile

from conftest import CONFIG_PATH, VARIABLES_PATH


@pytest.fixture
def runner():
    return CliRunner()


@pytest.fixture
def obj(config, storage, keychain):
    return Context(config=config, storage=storage, keychain=keychain)


@pytest.fixture
def shell(monkeypatch, tmp_path):
    """Run from an empty directory with API_URL set to the staging value."""
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("API_URL", "https://staging.example.com")
    monkeypatch.delenv("TOKEN", raising=False)
    monkeypatch.delenv("ENVKEEP_PASSWORD", raising=False)


class TestSubcommands:
    """Tests for encrypt/decrypt/rotate/restore/version."""

    def test_version(self, runner):
        result = runner.invoke(cli, ["version"])
        assert result.exit_code == 0
        assert "envkeep 0.3.0" in result.output

    def test_encrypt_with_password(self, runner, obj, storage, plain_vault):
        result = runner.invoke(cli, ["encrypt"], obj=obj, input="p\npw\npw\n")
        assert result.exit_code == 0, result.output
        assert "Encrypted 3 variables" in result.output
        vault = VaultFile.load(storage, VARIABLES_PATH)
        assert vault.encryption.mode == EncryptionMode.PASSWORD

    def test_encrypt_invalid_choice(self, runner, obj, storage, plain_vault):
        before = storage.files[VARIABLES_PATH]
        result = runner.invoke(cli, ["encrypt"], obj=obj, input="z\n")
        assert result.exit_code == 2
        assert storage.files[VARIABLES_PATH] == before

    def test_encrypt_empty_vault_exits_cleanly(self, runner, obj):
        result = runner.invoke(cli, ["encrypt"], obj=obj)
        assert result.exit_code == 0
        assert "no variables to encrypt" in result.output

    def test_decrypt_plain_vault_fails(self, runner, obj, plain_vault):
        result = runner.invoke(cli, ["decrypt"], obj=obj)
        assert result.exit_code == 1
        assert "vault is not encrypted" in result.output

    def test_decrypt(self, runner, obj, storage, password_vault):
        result = runner.invoke(cli, ["decrypt"], obj=obj, input="hunter2\n\n")
        assert result.exit_code == 0, result.output
        assert VaultFile.load(storage, VARIABLES_PATH).encrypted is False

    def test_rotate_to_keychain(self, runner, obj, storage, keychain, password_vault):
        result = runner.invoke(cli, ["rotate"], obj=obj, input="hunter2\nk\n")
        assert result.exit_code == 0, result.output
        vault = VaultFile.load(storage, VARIABLES_PATH)
        assert vault.encryption.mode == EncryptionMode.KEYCHAIN
        assert keychain.key is not None

    def test_restore(self, runner, obj, storage, plain_vault):
        SelectionSet(selected=["TOKEN"]).save(storage, CONFIG_PATH)
        result = runner.invoke(cli, ["restore"], obj=obj)
        assert result.exit_code == 0
        assert "export TOKEN='s3cret'" in result.output


class TestInteractive:
    """Tests for the default interactive command."""

    def test_toggle_and_apply(self, runner, obj, storage, plain_vault, shell):
        result = runner.invoke(cli, [], obj=obj, input="x\n\n")
        assert result.exit_code == 0, result.output
        assert "export API_URL='https://prod.example.com'" in result.output
        assert SelectionSet.load(storage, CONFIG_PATH).selected == ["API_URL[0]"]

    def test_quit(self, runner, obj, storage, plain_vault, shell):
        result = runner.invoke(cli, [], obj=obj, input="x\nq\n")
        assert result.exit_code == 0, result.output
        assert "export" not in result.output
        assert CONFIG_PATH not in storage.files

    def test_add_entry(self, runner, obj, storage, plain_vault, shell):
        result = runner.invoke(cli, [], obj=obj, input="+\nDEBUG\n1\nlocal\nq\n")
        assert result.exit_code == 0, result.output
        names = [e.name for e in VaultFile.load(storage, VARIABLES_PATH).entries]
        assert "DEBUG" in names

    def test_wrong_env_password(self, runner, obj, password_vault, shell):
        obj.config = obj.config.model_copy(update={"password": "nope"})
        result = runner.invoke(cli, [], obj=obj)
        assert result.exit_code == 1
        assert "ENVKEEP_PASSWORD" in result.output
