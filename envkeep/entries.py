"""
Runtime entries: vault entries plus session state (selection and origin).

Ordering is a correctness requirement, not cosmetics: EntryIDs and the
"first match wins" rule of environment sync both rely on the stable
``(name.lower(), label.lower())`` sort.
"""
import os
from enum import Enum
from collections.abc import Sequence
from typing import Optional

from pydantic import model_validator

from .vault.file import Entry


class Provenance(str, Enum):
    VAULT = "vault"
    EXTERNAL_FILE = "external_file"
    ENVIRONMENT = "environment"


class RuntimeEntry(Entry):
    """Entry shown in a session. Only VAULT entries are ever persisted."""

    selected: bool = False
    provenance: Provenance = Provenance.VAULT
    source_file: Optional[str] = None

    @model_validator(mode="after")
    def validate_source(self) -> "RuntimeEntry":
        if (self.provenance == Provenance.EXTERNAL_FILE) != bool(self.source_file):
            raise ValueError("source_file is required for, and only for, external entries")
        return self

    @classmethod
    def from_vault(cls, entry: Entry) -> "RuntimeEntry":
        return cls(name=entry.name, value=entry.value, label=entry.label)

    def to_vault(self) -> Entry:
        return Entry(name=self.name, value=self.value, label=self.label)

    @property
    def persisted(self) -> bool:
        return self.provenance == Provenance.VAULT

    @property
    def origin(self) -> str:
        """``dirname/filename`` of the source file; empty for other entries."""
        if not self.source_file:
            return ""
        dirname = os.path.basename(os.path.dirname(self.source_file))
        return f"{dirname}/{os.path.basename(self.source_file)}"


def sort_key(entry: Entry) -> tuple[str, str]:
    return (entry.name.lower(), entry.label.lower())


def sort_entries(entries: list) -> None:
    """Sort in place by (name, label), case-insensitive. ``list.sort`` is stable."""
    entries.sort(key=sort_key)


def entry_id(entries: Sequence[Entry], index: int) -> str:
    """Identifier of ``entries[index]`` in the selection file.

    A unique name is its own ID; names shared by several entries become
    ``NAME[i]`` where ``i`` is the position among same-named entries.
    Returns an empty string for an out-of-range index.
    """
    if index < 0 or index >= len(entries):
        return ""
    name = entries[index].name
    same_name = [i for i, e in enumerate(entries) if e.name == name]
    if len(same_name) == 1:
        return name
    return f"{name}[{same_name.index(index)}]"


def vault_entries(entries: Sequence[RuntimeEntry]) -> list[RuntimeEntry]:
    return [e for e in entries if e.persisted]
