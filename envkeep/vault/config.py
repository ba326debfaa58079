"""
Vault Configuration — file locations and unlock settings.

Resolution order for each path: explicit value (command-line flag), then
environment variable, then the default under ``~/.envkeep``:
    ENVKEEP_FILE     = <path to variables file>
    ENVKEEP_CONFIG   = <path to selection file>
    ENVKEEP_PASSWORD = <vault password, session unlock only>

Security Note:
    Never log the password. Only log paths and modes.
"""
import os
import logging
from collections.abc import Mapping
from pathlib import Path
from typing import Optional

from pydantic import BaseModel, Field, field_validator

from ..conf import (
    ENV_VARIABLES_FILE,
    ENV_CONFIG_FILE,
    ENV_PASSWORD,
    DEFAULT_VARIABLES_FILE,
    DEFAULT_CONFIG_FILE,
    SESSION_UNLOCK_ATTEMPTS,
    DEFAULT_WINDOW_HEIGHT,
)

logger = logging.getLogger("envkeep.vault")


def resolve_path(
    explicit: Optional[str],
    env_name: str,
    default: Path,
    environ: Optional[Mapping[str, str]] = None,
) -> Path:
    """Pick a file path: explicit value, then ``env_name``, then ``default``."""
    environ = os.environ if environ is None else environ
    if explicit:
        return Path(explicit).expanduser()
    from_env = environ.get(env_name)
    if from_env:
        return Path(from_env).expanduser()
    return default.expanduser()


class VaultConfig(BaseModel):
    """Validated envkeep configuration."""

    variables_file: Path
    config_file: Path
    password: Optional[str] = Field(default=None, repr=False)
    unlock_attempts: int = Field(default=SESSION_UNLOCK_ATTEMPTS, ge=1)
    window_height: int = Field(default=DEFAULT_WINDOW_HEIGHT, ge=1)

    @field_validator("password")
    @classmethod
    def empty_password_is_unset(cls, v: Optional[str]) -> Optional[str]:
        """An empty ENVKEEP_PASSWORD does not count as an override."""
        return v or None

    @classmethod
    def from_env(
        cls,
        variables_file: Optional[str] = None,
        config_file: Optional[str] = None,
        environ: Optional[Mapping[str, str]] = None,
    ) -> "VaultConfig":
        """Create VaultConfig from explicit values and the environment.

        Returns:
            Populated VaultConfig instance.
        """
        environ = os.environ if environ is None else environ
        config = cls(
            variables_file=resolve_path(
                variables_file, ENV_VARIABLES_FILE, DEFAULT_VARIABLES_FILE, environ,
            ),
            config_file=resolve_path(
                config_file, ENV_CONFIG_FILE, DEFAULT_CONFIG_FILE, environ,
            ),
            password=environ.get(ENV_PASSWORD),
        )
        logger.debug(
            "Resolved variables file %s, selection file %s",
            config.variables_file, config.config_file,
        )
        return config
