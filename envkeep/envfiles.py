"""
Read-only entries from ``.env`` files found above the working directory.

These entries can be selected like vault entries but are never written back;
editing one promotes a copy into the vault.
"""
import os
import logging
from pathlib import Path
from typing import Optional, Union

from dotenv import dotenv_values

from .entries import Provenance, RuntimeEntry

logger = logging.getLogger("envkeep.envfiles")


def find_dotenv_files(start_dir: Union[str, os.PathLike]) -> list[Path]:
    """Collect ``.env`` and ``.env.*`` files from ``start_dir`` up to the root.

    Returns:
        Absolute paths, deepest directory first, sorted by name within a directory.
    """
    files: list[Path] = []
    directory = Path(start_dir).resolve()
    while True:
        try:
            children = sorted(directory.iterdir())
        except OSError as err:
            logger.debug("Stopping .env search at %s: %s", directory, err)
            break
        for child in children:
            name = child.name
            if (name == ".env" or name.startswith(".env.")) and child.is_file():
                files.append(child)
        if directory.parent == directory:
            break
        directory = directory.parent
    return files


def parse_dotenv_file(path: Union[str, os.PathLike]) -> list[RuntimeEntry]:
    """Parse one ``.env`` file into external entries labelled ``from dir/file``."""
    path = Path(path)
    label = f"from {path.parent.name}/{path.name}"
    entries = []
    for name, value in dotenv_values(path).items():
        if not name:
            continue
        entries.append(RuntimeEntry(
            name=name,
            value=value or "",
            label=label,
            provenance=Provenance.EXTERNAL_FILE,
            source_file=str(path),
        ))
    return entries


def load_dotenv_entries(start_dir: Optional[Union[str, os.PathLike]] = None) -> list[RuntimeEntry]:
    """Entries from every ``.env`` file above ``start_dir`` (default: cwd).

    Unreadable files are skipped with a warning.
    """
    start_dir = os.getcwd() if start_dir is None else start_dir
    result: list[RuntimeEntry] = []
    for path in find_dotenv_files(start_dir):
        try:
            entries = parse_dotenv_file(path)
        except (OSError, UnicodeDecodeError) as err:
            logger.warning("Skipping %s: %s", path, err)
            continue
        logger.debug("Loaded %d variable(s) from %s", len(entries), path)
        result.extend(entries)
    return result
