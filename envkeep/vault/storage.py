"""
Vault Storage — byte-level persistence injected into vault and selection files.

``LocalStorage`` writes through a temporary file and ``os.replace`` so a
failed write never leaves a partially written vault behind.
``MemoryStorage`` keeps files in a dict; it backs tests and dry runs.
"""
import os
import logging
import tempfile
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Optional, Union

logger = logging.getLogger("envkeep.vault")

PathLike = Union[str, os.PathLike]


class Storage(ABC):
    """Abstract byte store addressed by path."""

    @abstractmethod
    def read(self, path: PathLike) -> Optional[bytes]:
        """Return the file contents, or None if the file does not exist."""

    @abstractmethod
    def write(self, path: PathLike, data: bytes) -> None:
        """Replace the file contents atomically."""


class LocalStorage(Storage):
    """Filesystem storage; parent directories are created on demand."""

    def __init__(self, dir_mode: int = 0o755, file_mode: int = 0o644):
        self._dir_mode = dir_mode
        self._file_mode = file_mode

    def read(self, path: PathLike) -> Optional[bytes]:
        path = Path(path)
        path.parent.mkdir(mode=self._dir_mode, parents=True, exist_ok=True)
        try:
            return path.read_bytes()
        except FileNotFoundError:
            return None

    def write(self, path: PathLike, data: bytes) -> None:
        path = Path(path)
        path.parent.mkdir(mode=self._dir_mode, parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(
            prefix=f".{path.name}.", suffix=".tmp", dir=path.parent,
        )
        try:
            with os.fdopen(fd, "wb") as fh:
                fh.write(data)
                fh.flush()
                os.fsync(fh.fileno())
            os.chmod(tmp_name, self._file_mode)
            os.replace(tmp_name, path)
        except BaseException:
            try:
                os.unlink(tmp_name)
            except FileNotFoundError:
                pass
            raise
        logger.debug("Wrote %d bytes to %s", len(data), path)


class MemoryStorage(Storage):
    """In-memory storage keyed by the string form of the path."""

    def __init__(self, files: Optional[dict[str, bytes]] = None):
        self.files: dict[str, bytes] = dict(files or {})

    def read(self, path: PathLike) -> Optional[bytes]:
        return self.files.get(os.fspath(path))

    def write(self, path: PathLike, data: bytes) -> None:
        self.files[os.fspath(path)] = bytes(data)
