"""
Vault Mode Transitions — plaintext ↔ password ↔ keychain.

Every transition works on a clone of the loaded vault and writes once at the
end: a failure at any step leaves the file on disk untouched.
"""
import logging

from ..exceptions import AlreadyEncrypted, NoEntries, NotEncrypted, PasswordMismatch
from ..prompt import Prompter
from . import crypto
from .file import EncryptionMode, VaultFile
from .keychain import Keychain
from .storage import PathLike, Storage
from .unlock import unlock

logger = logging.getLogger("envkeep.vault")

MODE_CHOICES = {
    "p": EncryptionMode.PASSWORD.value,
    "k": EncryptionMode.KEYCHAIN.value,
}


def choose_mode(prompter: Prompter) -> str:
    return prompter.choice(
        "Lock variables with [p]assword or [k]eychain?", MODE_CHOICES,
    )


def read_new_password(prompter: Prompter, new: bool = False) -> str:
    """Prompt twice for a password.

    Raises:
        PasswordMismatch: If the confirmation differs.
    """
    qualifier = "new " if new else ""
    password = prompter.password(f"Enter {qualifier}password:")
    confirm = prompter.password(f"Confirm {qualifier}password:")
    if password != confirm:
        raise PasswordMismatch("passwords do not match")
    return password


def establish_key(
    file: VaultFile,
    mode: str,
    prompter: Prompter,
    keychain: Keychain,
    new: bool = False,
) -> bytes:
    """Create key material for ``mode`` and adopt the matching header.

    Password mode derives the key from a freshly chosen password and salt;
    keychain mode generates a random key and stores it in the keychain.
    """
    if mode == EncryptionMode.PASSWORD:
        password = read_new_password(prompter, new=new)
        return file.set_password_mode(password)
    if mode == EncryptionMode.KEYCHAIN:
        key = crypto.generate_key()
        keychain.store(key)
        file.set_keychain_mode()
        return key
    raise ValueError(f"invalid unlock method: {mode!r}")


def encrypt_vault(
    storage: Storage,
    path: PathLike,
    prompter: Prompter,
    keychain: Keychain,
) -> int:
    """Encrypt a plaintext vault with a password or a keychain key.

    Returns:
        Number of encrypted entries.

    Raises:
        AlreadyEncrypted: The vault, or one of its values, is already encrypted.
        NoEntries: The vault is empty.
    """
    loaded = VaultFile.load(storage, path)
    if loaded.encrypted:
        raise AlreadyEncrypted(
            "vault is already encrypted, use `envkeep rotate` to rotate the encryption key"
        )
    if not loaded.entries:
        raise NoEntries("no variables to encrypt")
    for entry in loaded.entries:
        if crypto.is_encrypted(entry.value):
            raise AlreadyEncrypted(f"variable {entry.name!r} is already encrypted")

    mode = choose_mode(prompter)
    candidate = loaded.clone()
    key = establish_key(candidate, mode, prompter, keychain)
    candidate.encrypt_values(key)
    candidate.save(storage, path)

    prompter.notify(f"✓ Encrypted {len(candidate.entries)} variables.")
    logger.info("Encrypted vault %s with %s mode", path, mode)
    return len(candidate.entries)


def decrypt_vault(
    storage: Storage,
    path: PathLike,
    prompter: Prompter,
    keychain: Keychain,
) -> int:
    """Decrypt an encrypted vault back to plaintext.

    Returns:
        Number of decrypted entries; 0 if the user declined.

    Raises:
        NotEncrypted: The vault, or one of its values, is not encrypted.
        NoEntries: The vault is empty.
    """
    loaded = VaultFile.load(storage, path)
    if not loaded.encrypted:
        raise NotEncrypted("vault is not encrypted")
    if not loaded.entries:
        raise NoEntries("no variables to decrypt")

    key = unlock(loaded, prompter, keychain)

    confirm = prompter.choice(
        "Values will be stored in plaintext. Continue? [Y/n]",
        {"y": "yes", "n": "no"},
        default="yes",
    )
    if confirm == "no":
        return 0

    candidate = loaded.clone()
    candidate.decrypt_values(key)
    candidate.clear_encryption()
    candidate.save(storage, path)

    prompter.notify(
        f"✓ Decrypted {len(candidate.entries)} variables. "
        "Values are now stored in plaintext."
    )
    logger.info("Decrypted vault %s", path)
    return len(candidate.entries)
