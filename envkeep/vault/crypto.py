"""
Vault Crypto Core — Key derivation, password verification, envelope encryption.

- Password layer: Argon2id(password, salt) → 32-byte key; HMAC-SHA256(key, salt)
  is stored as a verifier so a password can be checked without touching
  any entry ciphertext.
- Value layer: AES-256-GCM → "enc:v1:" + base64([nonce 12B][payload + tag 16B])

Security Note:
    Never log plaintext, keys or ciphertext values.
    Nonces are random 96-bit; a fresh nonce per call is the only protection
    against nonce reuse under one key.
"""
import os
import base64
import binascii
import logging

from argon2.low_level import hash_secret_raw, Type
from cryptography.exceptions import InvalidSignature, InvalidTag
from cryptography.hazmat.primitives import hashes, hmac
from cryptography.hazmat.primitives.ciphers.aead import AESGCM

from ..exceptions import (
    EntropyError,
    InvalidKeySize,
    MalformedEnvelope,
    AuthenticationFailure,
)

logger = logging.getLogger("envkeep.vault")

SALT_SIZE = 16
KEY_LENGTH = 32  # AES-256
NONCE_SIZE = 12  # 96-bit nonce
TAG_SIZE = 16

# Argon2id parameters
ARGON2_MEMORY_COST = 64 * 1024  # KiB → 64 MiB
ARGON2_TIME_COST = 3
ARGON2_PARALLELISM = 4

ENVELOPE_PREFIX = "enc:v1:"

# Values come from os.environ, which decodes undecodable bytes as surrogates.
_TEXT_ERRORS = "surrogateescape"


# ---------------------------------------------------------------------------
# Random material
# ---------------------------------------------------------------------------

def _random_bytes(size: int, what: str) -> bytes:
    try:
        data = os.urandom(size)
    except (OSError, NotImplementedError) as err:
        raise EntropyError(f"failed to generate {what}: {err}") from err
    if len(data) != size:
        raise EntropyError(
            f"failed to generate {what}: expected {size} bytes, got {len(data)}"
        )
    return data


def generate_salt() -> bytes:
    """Generate a random 16-byte salt for Argon2id key derivation."""
    return _random_bytes(SALT_SIZE, "salt")


def generate_key() -> bytes:
    """Generate a random 32-byte encryption key (keychain mode)."""
    return _random_bytes(KEY_LENGTH, "key")


# ---------------------------------------------------------------------------
# Key derivation
# ---------------------------------------------------------------------------

def derive_key(password: str, salt: bytes) -> bytes:
    """Derive a 32-byte encryption key from a password using Argon2id.

    Deterministic for a given (password, salt) pair and deliberately slow.

    Args:
        password: User password.
        salt: 16-byte salt stored in the vault header.

    Returns:
        32-byte derived key.
    """
    return hash_secret_raw(
        secret=password.encode("utf-8", _TEXT_ERRORS),
        salt=salt,
        time_cost=ARGON2_TIME_COST,
        memory_cost=ARGON2_MEMORY_COST,
        parallelism=ARGON2_PARALLELISM,
        hash_len=KEY_LENGTH,
        type=Type.ID,
    )


def compute_verifier(key: bytes, salt: bytes) -> bytes:
    """Compute the password verifier, HMAC-SHA256(key, salt)."""
    mac = hmac.HMAC(key, hashes.SHA256())
    mac.update(salt)
    return mac.finalize()


def verify_password(password: str, salt: bytes, verifier: bytes) -> bool:
    """Check a password against a stored verifier in constant time.

    Args:
        password: Candidate password.
        salt: Salt used when the verifier was produced.
        verifier: Stored HMAC-SHA256(key, salt).

    Returns:
        True only if both password and salt match the verifier.
    """
    return check_verifier(derive_key(password, salt), salt, verifier)


def check_verifier(key: bytes, salt: bytes, verifier: bytes) -> bool:
    """Compare HMAC-SHA256(key, salt) with a stored verifier in constant time."""
    mac = hmac.HMAC(key, hashes.SHA256())
    mac.update(salt)
    try:
        mac.verify(verifier)
    except InvalidSignature:
        return False
    return True


# ---------------------------------------------------------------------------
# Envelope encryption
# ---------------------------------------------------------------------------

def _check_key(key: bytes) -> None:
    if len(key) != KEY_LENGTH:
        raise InvalidKeySize(
            f"invalid key size: expected {KEY_LENGTH} bytes, got {len(key)}"
        )


def is_encrypted(value: str) -> bool:
    """Return True if the value carries the envelope prefix.

    This is a format check only: a plaintext that happens to start with
    the prefix is misclassified.
    """
    return value.startswith(ENVELOPE_PREFIX)


def encrypt(key: bytes, plaintext: str) -> str:
    """Encrypt a value with AES-256-GCM.

    Format: "enc:v1:" + base64([nonce 12B][encrypted_payload + GCM_tag 16B])

    Args:
        key: Raw 32-byte key.
        plaintext: Value to encrypt.

    Returns:
        Envelope string.

    Raises:
        InvalidKeySize: If the key is not 32 bytes.
    """
    _check_key(key)
    cipher = AESGCM(key)
    nonce = _random_bytes(NONCE_SIZE, "nonce")
    ct = cipher.encrypt(nonce, plaintext.encode("utf-8", _TEXT_ERRORS), None)
    return ENVELOPE_PREFIX + base64.b64encode(nonce + ct).decode("ascii")


def decrypt(key: bytes, envelope: str) -> str:
    """Decrypt an envelope produced by :func:`encrypt`.

    Args:
        key: Raw 32-byte key.
        envelope: "enc:v1:..." string.

    Returns:
        Decrypted plaintext.

    Raises:
        InvalidKeySize: If the key is not 32 bytes.
        MalformedEnvelope: If the prefix, base64 or payload length is wrong.
        AuthenticationFailure: If GCM authentication fails.
    """
    _check_key(key)
    if not is_encrypted(envelope):
        raise MalformedEnvelope("invalid encryption format")
    try:
        data = base64.b64decode(envelope[len(ENVELOPE_PREFIX):], validate=True)
    except (binascii.Error, ValueError) as err:
        raise MalformedEnvelope(f"failed to decode base64: {err}") from err
    _min = NONCE_SIZE + TAG_SIZE
    if len(data) < _min:
        raise MalformedEnvelope(
            f"envelope too short: {len(data)} bytes (minimum {_min})"
        )
    cipher = AESGCM(key)
    nonce = data[:NONCE_SIZE]
    ct = data[NONCE_SIZE:]
    try:
        plaintext = cipher.decrypt(nonce, ct, None)
    except InvalidTag as err:
        raise AuthenticationFailure("failed to decrypt: authentication failed") from err
    return plaintext.decode("utf-8", _TEXT_ERRORS)
