"""
Vault File — on-disk entry store and its encryption header.

The header and the entries change together: a header with a mode means every
value is an envelope, an empty header means none is. Bulk transforms build a
new entry list and assign it only once every value has converted, so a
failure leaves the in-memory file as it was.
"""
import base64
import binascii
import logging
from enum import Enum
from typing import Any, Optional

import orjson
from pydantic import (
    BaseModel,
    Field,
    ValidationError,
    ValidationInfo,
    field_validator,
    model_validator,
)

from ..exceptions import (
    AlreadyEncrypted,
    NotEncrypted,
    VaultFormatError,
    WrongPassword,
)
from . import crypto
from .storage import PathLike, Storage

logger = logging.getLogger("envkeep.vault")


class EncryptionMode(str, Enum):
    NONE = ""
    PASSWORD = "password"
    KEYCHAIN = "keychain"


class Entry(BaseModel):
    """Serializable vault entry (no session state)."""

    name: str
    value: str  # plaintext or "enc:v1:..." envelope
    label: str = ""

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str) -> str:
        if not v:
            raise ValueError("entry name cannot be empty")
        return v


class EncryptionHeader(BaseModel):
    """Encryption metadata. An empty mode means the vault is unencrypted."""

    mode: str = ""
    salt: str = ""  # base64, password mode only
    verifier: str = ""  # base64, password mode only

    @model_validator(mode="after")
    def validate_password_material(self) -> "EncryptionHeader":
        """Salt and verifier are present iff the mode is password."""
        has_material = bool(self.salt) or bool(self.verifier)
        if self.mode == EncryptionMode.PASSWORD:
            if not (self.salt and self.verifier):
                raise ValueError("password mode requires salt and verifier")
        elif self.mode in (EncryptionMode.NONE, EncryptionMode.KEYCHAIN) and has_material:
            raise ValueError(
                f"salt and verifier are only allowed in password mode (mode={self.mode!r})"
            )
        return self

    @property
    def enabled(self) -> bool:
        return self.mode != EncryptionMode.NONE

    def decoded_material(self) -> tuple[bytes, bytes]:
        """Return the raw (salt, verifier) pair."""
        try:
            return (
                base64.b64decode(self.salt, validate=True),
                base64.b64decode(self.verifier, validate=True),
            )
        except (binascii.Error, ValueError) as err:
            raise VaultFormatError(f"invalid salt or verifier: {err}") from err


class VaultFile(BaseModel):
    """The vault: encryption header plus entries."""

    encryption: EncryptionHeader = Field(default_factory=EncryptionHeader)
    entries: list[Entry] = Field(default_factory=list)

    @field_validator("encryption", "entries", mode="before")
    @classmethod
    def null_as_empty(cls, v: Any, info: ValidationInfo) -> Any:
        if v is None:
            return {} if info.field_name == "encryption" else []
        return v

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    @classmethod
    def load(cls, storage: Storage, path: PathLike) -> "VaultFile":
        """Read and parse the vault. Missing or empty files give an empty vault.

        Raises:
            VaultFormatError: If the file is not a valid vault document.
        """
        data = storage.read(path)
        if not data or not data.strip():
            logger.debug("No vault at %s, starting empty", path)
            return cls()
        try:
            return cls.model_validate(orjson.loads(data))
        except orjson.JSONDecodeError as err:
            raise VaultFormatError(f"failed to parse {path}: {err}") from err
        except ValidationError as err:
            raise VaultFormatError(f"invalid vault file {path}: {err}") from err

    def to_json(self) -> bytes:
        doc = {
            "encryption": self.encryption.model_dump(exclude_defaults=True),
            "entries": [e.model_dump(exclude_defaults=True) for e in self.entries],
        }
        return orjson.dumps(doc, option=orjson.OPT_INDENT_2)

    def save(self, storage: Storage, path: PathLike) -> None:
        """Serialize and write the vault."""
        storage.write(path, self.to_json())
        logger.info(
            "Saved %d entr%s to %s (encryption=%s)",
            len(self.entries), "y" if len(self.entries) == 1 else "ies",
            path, self.encryption.mode or "none",
        )

    def clone(self) -> "VaultFile":
        return self.model_copy(deep=True)

    # ------------------------------------------------------------------
    # Bulk value transforms
    # ------------------------------------------------------------------

    @property
    def encrypted(self) -> bool:
        return self.encryption.enabled

    def encrypt_values(self, key: bytes) -> None:
        """Encrypt every value with ``key``.

        Raises:
            AlreadyEncrypted: If any value is already an envelope; checked
                before anything is encrypted.
        """
        for entry in self.entries:
            if crypto.is_encrypted(entry.value):
                raise AlreadyEncrypted(f"variable {entry.name!r} is already encrypted")
        self.entries = [
            entry.model_copy(update={"value": crypto.encrypt(key, entry.value)})
            for entry in self.entries
        ]

    def decrypt_values(self, key: bytes) -> None:
        """Decrypt every value with ``key``.

        Raises:
            NotEncrypted: If any value lacks the envelope prefix.
            CryptoError: If a value fails to decrypt.
        """
        decrypted = []
        for entry in self.entries:
            if not crypto.is_encrypted(entry.value):
                raise NotEncrypted(f"variable {entry.name!r} is not encrypted")
            decrypted.append(
                entry.model_copy(update={"value": crypto.decrypt(key, entry.value)})
            )
        self.entries = decrypted

    # ------------------------------------------------------------------
    # Header state machine
    # ------------------------------------------------------------------

    def verify_password(self, password: str) -> bytes:
        """Check ``password`` against the header and return the derived key.

        Raises:
            NotEncrypted: If the vault is not password-protected.
            WrongPassword: If the password does not match the verifier.
        """
        if self.encryption.mode != EncryptionMode.PASSWORD:
            raise NotEncrypted("vault is not password-protected")
        salt, verifier = self.encryption.decoded_material()
        key = crypto.derive_key(password, salt)
        if not crypto.check_verifier(key, salt, verifier):
            raise WrongPassword("wrong password")
        return key

    def set_password_mode(self, password: str, salt: Optional[bytes] = None) -> bytes:
        """Adopt a password header with a fresh salt; return the derived key."""
        salt = salt or crypto.generate_salt()
        key = crypto.derive_key(password, salt)
        verifier = crypto.compute_verifier(key, salt)
        self.encryption = EncryptionHeader(
            mode=EncryptionMode.PASSWORD.value,
            salt=base64.b64encode(salt).decode("ascii"),
            verifier=base64.b64encode(verifier).decode("ascii"),
        )
        return key

    def set_keychain_mode(self) -> None:
        self.encryption = EncryptionHeader(mode=EncryptionMode.KEYCHAIN.value)

    def clear_encryption(self) -> None:
        self.encryption = EncryptionHeader()
