"""Vault — Encrypted storage for environment variable entries.

Security Note (Threat Model):
    Entry values are decrypted into process memory for the duration of a
    session. A memory dump of the process exposes the plaintext values and
    the vault key. This is an accepted limitation.
    The vault file is assumed to be owned by a single process at a time;
    concurrent writers are not detected.
"""

from .crypto import encrypt, decrypt, is_encrypted, derive_key, verify_password
from .file import Entry, EncryptionHeader, EncryptionMode, VaultFile
from .storage import Storage, LocalStorage, MemoryStorage
from .keychain import Keychain, SystemKeychain
from .config import VaultConfig
from .unlock import unlock, open_vault
from .modes import encrypt_vault, decrypt_vault
from .key_rotation import rotate_vault

__all__ = [
    "encrypt",
    "decrypt",
    "is_encrypted",
    "derive_key",
    "verify_password",
    "Entry",
    "EncryptionHeader",
    "EncryptionMode",
    "VaultFile",
    "Storage",
    "LocalStorage",
    "MemoryStorage",
    "Keychain",
    "SystemKeychain",
    "VaultConfig",
    "unlock",
    "open_vault",
    "encrypt_vault",
    "decrypt_vault",
    "rotate_vault",
]
