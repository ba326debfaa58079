"""
Vault Keychain: store the random vault key in the OS credential store.

The key is kept base64-encoded under a fixed service/account pair.
Access may trigger OS-level authentication (Touch ID, keyring unlock);
calls block until the platform tool returns.
"""
import sys
import base64
import binascii
import logging
import shlex
import subprocess
from abc import ABC, abstractmethod
from typing import Optional

from ..exceptions import KeychainError
from .crypto import KEY_LENGTH

logger = logging.getLogger("envkeep.vault")

SERVICE_NAME = "envkeep"
ACCOUNT_NAME = "encryption-key"

# `security` exit status when the item does not exist
_MACOS_ITEM_NOT_FOUND = 44


def _check_key(key: bytes) -> None:
    if len(key) != KEY_LENGTH:
        raise KeychainError(
            f"invalid key size: expected {KEY_LENGTH} bytes, got {len(key)}"
        )


class Keychain(ABC):
    """Abstract store/retrieve/delete capability for the vault key."""

    @abstractmethod
    def store(self, key: bytes) -> None:
        """Store a 32-byte key, replacing any previous one."""

    @abstractmethod
    def retrieve(self) -> bytes:
        """Return the stored 32-byte key."""

    @abstractmethod
    def delete(self) -> None:
        """Remove the stored key. Missing items are not an error."""


class SystemKeychain(Keychain):
    """Keychain backed by the platform credential tool.

    macOS uses ``security`` (login keychain); Linux uses ``secret-tool``
    (Secret Service: GNOME Keyring / KWallet).
    """

    def __init__(
        self,
        service: str = SERVICE_NAME,
        account: str = ACCOUNT_NAME,
        platform: Optional[str] = None,
    ):
        self.service = service
        self.account = account
        self.platform = platform or sys.platform

    def _run(self, args: list[str], stdin: Optional[str] = None) -> subprocess.CompletedProcess:
        try:
            return subprocess.run(
                args, input=stdin, capture_output=True, text=True,
            )
        except FileNotFoundError as err:
            raise KeychainError(f"credential tool not available: {args[0]}") from err

    def _attributes(self) -> list[str]:
        return ["service", self.service, "account", self.account]

    def store(self, key: bytes) -> None:
        _check_key(key)
        encoded = base64.b64encode(key).decode("ascii")
        if self.platform == "darwin":
            # `security -i` reads the command from stdin, keeping the key off argv
            command = shlex.join([
                "add-generic-password", "-U",
                "-s", self.service,
                "-a", self.account,
                "-w", encoded,
            ])
            result = self._run(["security", "-i"], stdin=command + "\n")
        elif self.platform.startswith("linux"):
            result = self._run(
                ["secret-tool", "store", f"--label={self.service} vault key"]
                + self._attributes(),
                stdin=encoded,
            )
        else:
            raise KeychainError(f"keychain not supported on {self.platform}")
        if result.returncode != 0:
            raise KeychainError(
                f"failed to store key in keychain: {result.stderr.strip()}"
            )
        logger.debug("Stored vault key in %s keychain", self.platform)

    def retrieve(self) -> bytes:
        if self.platform == "darwin":
            result = self._run([
                "security", "find-generic-password",
                "-s", self.service,
                "-a", self.account,
                "-w",
            ])
        elif self.platform.startswith("linux"):
            result = self._run(["secret-tool", "lookup"] + self._attributes())
        else:
            raise KeychainError(f"keychain not supported on {self.platform}")
        if result.returncode != 0 or not result.stdout.strip():
            raise KeychainError(
                "failed to retrieve key from keychain: "
                f"{result.stderr.strip() or 'item not found'}"
            )
        try:
            key = base64.b64decode(result.stdout.strip(), validate=True)
        except (binascii.Error, ValueError) as err:
            raise KeychainError(f"failed to decode key: {err}") from err
        _check_key(key)
        return key

    def delete(self) -> None:
        if self.platform == "darwin":
            result = self._run([
                "security", "delete-generic-password",
                "-s", self.service,
                "-a", self.account,
            ])
            if result.returncode in (0, _MACOS_ITEM_NOT_FOUND):
                return
        elif self.platform.startswith("linux"):
            result = self._run(["secret-tool", "clear"] + self._attributes())
            # secret-tool clear succeeds when nothing matches
            if result.returncode == 0:
                return
        else:
            raise KeychainError(f"keychain not supported on {self.platform}")
        raise KeychainError(
            f"failed to delete keychain item: {result.stderr.strip()}"
        )
