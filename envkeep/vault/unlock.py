"""
Vault Unlock — obtain the vault key from a password or the OS keychain.

Two retry policies coexist:
- ``open_vault`` (interactive session, restore) honours ENVKEEP_PASSWORD and
  allows a bounded number of prompts, then fails with TooManyAttempts.
- the standalone encrypt/decrypt/rotate commands prompt until the password
  is right.

Security Note:
    Never log passwords or keys.
"""
import logging
from typing import Optional

from ..exceptions import (
    NotEncrypted,
    UnknownMode,
    TooManyAttempts,
    WrongPassword,
)
from ..prompt import Prompter
from ..conf import ENV_PASSWORD
from .config import VaultConfig
from .file import EncryptionMode, VaultFile
from .keychain import Keychain
from .storage import Storage

logger = logging.getLogger("envkeep.vault")


def unlock(
    file: VaultFile,
    prompter: Prompter,
    keychain: Keychain,
    max_attempts: Optional[int] = None,
    password: Optional[str] = None,
    prompt: str = "Enter password:",
) -> bytes:
    """Return the key of an encrypted vault.

    Args:
        file: Loaded (still encrypted) vault.
        prompter: Source of interactive passwords.
        keychain: OS credential store (keychain mode).
        max_attempts: Prompts allowed before TooManyAttempts; None retries forever.
        password: Non-interactive password override; a wrong one is fatal.
        prompt: Prompt text for interactive entry.

    Raises:
        NotEncrypted: The vault has no encryption header.
        UnknownMode: The header names an unsupported mode.
        WrongPassword: The override password is wrong.
        TooManyAttempts: Every allowed prompt got a wrong password.
        KeychainError: The keychain key cannot be retrieved.
    """
    mode = file.encryption.mode
    if not file.encrypted:
        raise NotEncrypted("vault is not encrypted")

    if mode == EncryptionMode.PASSWORD:
        if password:
            try:
                return file.verify_password(password)
            except WrongPassword as err:
                raise WrongPassword(
                    f"invalid password from {ENV_PASSWORD}: {err}"
                ) from err

        attempts = 0
        while True:
            candidate = prompter.password(prompt)
            try:
                key = file.verify_password(candidate)
            except WrongPassword:
                attempts += 1
                prompter.notify("Wrong password.")
                logger.debug("Wrong password (attempt %d)", attempts)
                if max_attempts is not None and attempts >= max_attempts:
                    raise TooManyAttempts("too many wrong password attempts") from None
                continue
            return key

    if mode == EncryptionMode.KEYCHAIN:
        prompter.notify("Unlocking variables with keychain...")
        return keychain.retrieve()

    raise UnknownMode(f"unknown encryption mode: {mode!r}")


def open_vault(
    config: VaultConfig,
    storage: Storage,
    prompter: Prompter,
    keychain: Keychain,
) -> tuple[VaultFile, Optional[bytes]]:
    """Load the vault for a session and decrypt its values in memory.

    Returns:
        Tuple of (decrypted vault, key). The key is None for plain vaults.
    """
    file = VaultFile.load(storage, config.variables_file)
    if not file.encrypted:
        return file, None
    key = unlock(
        file, prompter, keychain,
        max_attempts=config.unlock_attempts,
        password=config.password,
    )
    file.decrypt_values(key)
    logger.info(
        "Unlocked %d entr%s (%s mode)",
        len(file.entries), "y" if len(file.entries) == 1 else "ies",
        file.encryption.mode,
    )
    return file, key
