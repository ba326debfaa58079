"""Shared fixtures: in-memory storage, fake keychain and scripted prompts."""
from collections import deque
from typing import Optional

import pytest

from envkeep.entries import Provenance, RuntimeEntry
from envkeep.exceptions import KeychainError
from envkeep.prompt import Prompter
from envkeep.vault import crypto
from envkeep.vault.config import VaultConfig
from envkeep.vault.file import Entry, VaultFile
from envkeep.vault.keychain import Keychain
from envkeep.vault.storage import MemoryStorage

VARIABLES_PATH = "/vault/variables.json"
CONFIG_PATH = "/vault/config.json"


class FakeKeychain(Keychain):
    """Keychain holding at most one key in memory."""

    def __init__(self, key: Optional[bytes] = None):
        self.key = key
        self.stored: list[bytes] = []
        self.deleted = 0
        self.fail_store = False

    def store(self, key: bytes) -> None:
        if self.fail_store:
            raise KeychainError("keychain locked")
        self.key = key
        self.stored.append(key)

    def retrieve(self) -> bytes:
        if self.key is None:
            raise KeychainError("failed to retrieve key from keychain: item not found")
        return self.key

    def delete(self) -> None:
        self.deleted += 1
        self.key = None


class ScriptedPrompter(Prompter):
    """Prompter answering from pre-recorded lists instead of the terminal."""

    def __init__(self, passwords=(), choices=()):
        self.passwords = deque(passwords)
        self.choices = deque(choices)
        self.prompts: list[str] = []
        self.messages: list[str] = []

    def password(self, prompt: str) -> str:
        self.prompts.append(prompt)
        if not self.passwords:
            raise AssertionError(f"unexpected password prompt: {prompt}")
        return self.passwords.popleft()

    def choice(self, prompt, choices, default=None):
        self.prompts.append(prompt)
        if not self.choices:
            raise AssertionError(f"unexpected choice prompt: {prompt}")
        answer = self.choices.popleft()
        if not answer:
            return default
        return choices[answer[0].lower()]

    def notify(self, message: str) -> None:
        self.messages.append(message)


@pytest.fixture(autouse=True)
def fast_kdf(request, monkeypatch):
    """Cheap Argon2id parameters; derivation stays deterministic.

    Tests marked ``real_kdf`` keep the production parameters.
    """
    if request.node.get_closest_marker("real_kdf"):
        return
    monkeypatch.setattr(crypto, "ARGON2_MEMORY_COST", 1024)
    monkeypatch.setattr(crypto, "ARGON2_TIME_COST", 1)
    monkeypatch.setattr(crypto, "ARGON2_PARALLELISM", 1)


@pytest.fixture
def storage():
    return MemoryStorage()


@pytest.fixture
def keychain():
    return FakeKeychain()


@pytest.fixture
def config():
    return VaultConfig(variables_file=VARIABLES_PATH, config_file=CONFIG_PATH)


@pytest.fixture
def plain_entries():
    return [
        Entry(name="API_URL", value="https://prod.example.com", label="prod"),
        Entry(name="API_URL", value="https://staging.example.com", label="staging"),
        Entry(name="TOKEN", value="s3cret"),
    ]


@pytest.fixture
def plain_vault(storage, plain_entries):
    """Unencrypted vault written to storage."""
    vault = VaultFile(entries=plain_entries)
    vault.save(storage, VARIABLES_PATH)
    return vault


@pytest.fixture
def password_vault(storage, plain_entries):
    """Vault encrypted with the password "hunter2"; returns its key."""
    vault = VaultFile(entries=plain_entries)
    key = vault.set_password_mode("hunter2")
    vault.encrypt_values(key)
    vault.save(storage, VARIABLES_PATH)
    return key


@pytest.fixture
def keychain_vault(storage, keychain, plain_entries):
    """Vault encrypted with a key held by the fake keychain; returns the key."""
    vault = VaultFile(entries=plain_entries)
    key = crypto.generate_key()
    keychain.store(key)
    vault.set_keychain_mode()
    vault.encrypt_values(key)
    vault.save(storage, VARIABLES_PATH)
    return key


def external(name: str, value: str, source: str = "/work/project/.env") -> RuntimeEntry:
    """A read-only entry as loaded from a ``.env`` file."""
    return RuntimeEntry(
        name=name, value=value, label="from project/.env",
        provenance=Provenance.EXTERNAL_FILE, source_file=source,
    )
