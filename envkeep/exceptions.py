"""
envkeep Exception Classes
"""


class EnvkeepError(Exception):
    """Base exception for envkeep operations"""
    pass


class EntropyError(EnvkeepError):
    """Raised when the platform random generator fails or returns short"""
    pass


# ---------------------------------------------------------------------------
# Crypto
# ---------------------------------------------------------------------------

class CryptoError(EnvkeepError):
    """Base exception for envelope encryption failures"""
    pass


class InvalidKeySize(CryptoError):
    """Raised when an encryption key is not exactly 32 bytes"""
    pass


class MalformedEnvelope(CryptoError):
    """Raised when a value is not a well-formed ciphertext envelope"""
    pass


class AuthenticationFailure(CryptoError):
    """Raised when GCM authentication fails (wrong key or tampered data)"""
    pass


# ---------------------------------------------------------------------------
# Vault state
# ---------------------------------------------------------------------------

class VaultStateError(EnvkeepError):
    """Base exception for vault precondition violations"""
    pass


class AlreadyEncrypted(VaultStateError):
    """Raised when encrypting a vault or value that is already encrypted"""
    pass


class NotEncrypted(VaultStateError):
    """Raised when decrypting a vault or value that is not encrypted"""
    pass


class UnknownMode(VaultStateError):
    """Raised when the vault header names an unsupported encryption mode"""
    pass


class NoEntries(VaultStateError):
    """Raised when a vault operation needs entries and there are none"""
    pass


class VaultFormatError(VaultStateError):
    """Raised when a vault or selection file cannot be parsed"""
    pass


# ---------------------------------------------------------------------------
# Authentication
# ---------------------------------------------------------------------------

class AuthError(EnvkeepError):
    """Base exception for unlock failures"""
    pass


class WrongPassword(AuthError):
    """Raised when a password does not match the vault verifier"""
    pass


class TooManyAttempts(AuthError):
    """Raised when the session unlock runs out of password attempts"""
    pass


class PasswordMismatch(AuthError):
    """Raised when a new password and its confirmation differ"""
    pass


# ---------------------------------------------------------------------------
# Collaborators and persistence
# ---------------------------------------------------------------------------

class KeychainError(EnvkeepError):
    """Raised when the OS credential store cannot store or return the key"""
    pass


class PersistError(EnvkeepError):
    """Raised when saving session changes to the vault fails"""
    pass


class ReadOnlyEntry(EnvkeepError):
    """Raised when editing or deleting an entry that the vault does not own"""
    pass
