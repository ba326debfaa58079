"""
Vault Key Rotation — re-encrypt every entry under new key material.

Unlocks with the current key, decrypts all values in memory, establishes the
new mode and key, re-encrypts and writes once. Nothing is written before
re-encryption has succeeded for every entry, so an interrupted rotation
leaves the vault file byte-identical.

Security Note:
    Plaintext exists in memory only for the duration of the rotation.
    Never log plaintext or ciphertext values.
"""
import logging

from ..exceptions import NoEntries, NotEncrypted
from ..prompt import Prompter
from .file import EncryptionMode, VaultFile
from .keychain import Keychain
from .modes import choose_mode, establish_key
from .storage import PathLike, Storage
from .unlock import unlock

logger = logging.getLogger("envkeep.vault")


def rotate_vault(
    storage: Storage,
    path: PathLike,
    prompter: Prompter,
    keychain: Keychain,
) -> dict:
    """Rotate the vault key, optionally switching between password and keychain.

    Args:
        storage: Storage holding the vault.
        path: Vault file path.
        prompter: Source of passwords and the new mode.
        keychain: OS credential store.

    Returns:
        Stats dict with keys: total, old_mode, new_mode.

    Raises:
        NotEncrypted: The vault is not encrypted.
        NoEntries: The vault is empty.
    """
    loaded = VaultFile.load(storage, path)
    if not loaded.encrypted:
        raise NotEncrypted("vault is not encrypted")
    if not loaded.entries:
        raise NoEntries("no variables to re-encrypt")

    old_mode = loaded.encryption.mode
    old_key = unlock(loaded, prompter, keychain, prompt="Enter current password:")

    working = loaded.clone()
    working.decrypt_values(old_key)

    new_mode = choose_mode(prompter)
    replaces_keychain_key = (
        old_mode == EncryptionMode.KEYCHAIN and new_mode == EncryptionMode.KEYCHAIN
    )

    logger.info("Starting key rotation from %s to %s mode", old_mode, new_mode)
    try:
        if new_mode == EncryptionMode.KEYCHAIN:
            keychain.delete()
        new_key = establish_key(working, new_mode, prompter, keychain, new=True)
        working.encrypt_values(new_key)
        working.save(storage, path)
    except Exception:
        if replaces_keychain_key:
            # The file on disk still needs the previous key.
            keychain.store(old_key)
        raise

    stats = {"total": len(working.entries), "old_mode": old_mode, "new_mode": new_mode}
    prompter.notify(f"✓ Re-encrypted {stats['total']} variables.")
    logger.info("Key rotation complete: %s", stats)
    return stats
