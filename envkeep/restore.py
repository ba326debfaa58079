"""
Selection file and restore — re-export the last applied selection.

The selection file lists EntryIDs of vault entries that were selected when a
session was last applied. ``restore`` turns it back into ``export`` lines
without running the interactive session, e.g. from a shell startup file.
"""
import logging
from collections.abc import Sequence

import orjson
from pydantic import BaseModel, Field, ValidationError, field_validator

from .entries import RuntimeEntry, entry_id, sort_entries, vault_entries
from .exceptions import VaultFormatError
from .prompt import Prompter
from .selection import shell_quote
from .vault.config import VaultConfig
from .vault.keychain import Keychain
from .vault.storage import PathLike, Storage
from .vault.unlock import open_vault

logger = logging.getLogger("envkeep.restore")


class SelectionSet(BaseModel):
    """Persisted set of selected EntryIDs, kept sorted and unique."""

    selected: list[str] = Field(default_factory=list)

    @field_validator("selected", mode="before")
    @classmethod
    def sorted_unique(cls, v):
        if v is None:
            return []
        return sorted(set(v))

    def __contains__(self, item: object) -> bool:
        return item in self.selected

    @classmethod
    def from_entries(cls, entries: Sequence[RuntimeEntry]) -> "SelectionSet":
        """IDs of the selected vault entries, computed over the sorted vault list."""
        persisted = vault_entries(entries)
        sort_entries(persisted)
        return cls(selected=[
            entry_id(persisted, i) for i, e in enumerate(persisted) if e.selected
        ])

    @classmethod
    def load(cls, storage: Storage, path: PathLike) -> "SelectionSet":
        data = storage.read(path)
        if not data or not data.strip():
            return cls()
        try:
            return cls.model_validate(orjson.loads(data))
        except orjson.JSONDecodeError as err:
            raise VaultFormatError(f"failed to parse {path}: {err}") from err
        except ValidationError as err:
            raise VaultFormatError(f"invalid selection file {path}: {err}") from err

    def save(self, storage: Storage, path: PathLike) -> None:
        storage.write(path, orjson.dumps(self.model_dump(), option=orjson.OPT_INDENT_2))
        logger.debug("Saved %d selected id(s) to %s", len(self.selected), path)


def restore(
    config: VaultConfig,
    storage: Storage,
    prompter: Prompter,
    keychain: Keychain,
) -> str:
    """Export lines for every vault entry recorded in the selection file.

    Returns:
        Newline-joined ``export`` commands; empty if nothing is selected.
    """
    selection = SelectionSet.load(storage, config.config_file)
    if not selection.selected:
        return ""
    file, _key = open_vault(config, storage, prompter, keychain)
    if not file.entries:
        return ""

    entries = [RuntimeEntry.from_vault(e) for e in file.entries]
    sort_entries(entries)
    commands = [
        f"export {entry.name}={shell_quote(entry.value)}"
        for i, entry in enumerate(entries)
        if entry_id(entries, i) in selection
    ]
    logger.info("Restored %d of %d selected variable(s)", len(commands), len(selection.selected))
    return "\n".join(commands)
