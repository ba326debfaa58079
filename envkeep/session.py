"""
Session — interactive selection state over vault and ``.env`` entries.

Provides the operations the interactive driver maps keys to:
- ``toggle()`` — select/deselect the entry under the cursor (radio groups)
- ``add_entry()`` / ``edit_entry()`` / ``delete_entry()`` — change vault entries
- ``promote_entry()`` — copy a read-only ``.env`` entry into the vault
- ``begin_import()`` / ``confirm_import()`` / ``cancel_import()`` — pick
  variables from the live environment and add them to the vault
- ``apply()`` / ``abort()`` — finish the session

Every change to vault entries is staged: a candidate entry list is built,
converted to a candidate vault file, re-encrypted when needed and written.
Only after the write succeeds does the session adopt the candidate. On any
failure the candidate is dropped, ``error`` holds a message for the user and
the session carries on with its previous state.

Security Note:
    Never log entry values. Only log names, counts and paths.
"""
import os
import logging
from collections.abc import Mapping
from enum import Enum
from typing import Optional

from .conf import IMPORTED_LABEL
from .entries import Provenance, RuntimeEntry, sort_entries, vault_entries
from .envfiles import load_dotenv_entries
from .exceptions import EnvkeepError, PersistError, ReadOnlyEntry
from .filter import FilterView
from .prompt import Prompter
from .restore import SelectionSet
from .selection import (
    capture_environment,
    generate_shell_commands,
    load_environment_entries,
    select_exclusive,
    sync_with_environment,
    toggle_selection,
)
from .vault.config import VaultConfig
from .vault.file import VaultFile
from .vault.keychain import Keychain
from .vault.storage import Storage
from .vault.unlock import open_vault

logger = logging.getLogger("envkeep.session")


class SessionMode(str, Enum):
    LIST = "list"
    IMPORT = "import"


class Session:
    """Selection session bound to one vault file and one environment snapshot."""

    def __init__(
        self,
        vault: VaultFile,
        key: Optional[bytes],
        storage: Storage,
        config: VaultConfig,
        entries: list[RuntimeEntry],
        snapshot: dict[str, str],
        environ: Optional[Mapping[str, str]] = None,
    ):
        self.vault = vault  # decrypted, in memory
        self._key = key
        self.storage = storage
        self.config = config
        self.entries = entries
        sort_entries(self.entries)
        self.snapshot = snapshot
        self._environ = os.environ if environ is None else environ
        self.mode = SessionMode.LIST
        self.view = FilterView(self.entries, height=config.window_height)
        self.error: Optional[str] = None
        self.applied = False
        self.aborted = False
        self._original_entries: Optional[list[RuntimeEntry]] = None

    # ------------------------------------------------------------------
    # Factory
    # ------------------------------------------------------------------

    @classmethod
    def open(
        cls,
        config: VaultConfig,
        storage: Storage,
        prompter: Prompter,
        keychain: Keychain,
        environ: Optional[Mapping[str, str]] = None,
        external: Optional[list[RuntimeEntry]] = None,
    ) -> "Session":
        """Unlock the vault, merge ``.env`` entries and sync with the environment.

        Args:
            config: Resolved configuration.
            storage: Storage holding the vault and selection files.
            prompter: Password prompts for unlocking.
            keychain: OS credential store.
            environ: Environment to snapshot; defaults to ``os.environ``.
            external: Read-only entries; defaults to ``.env`` files above cwd.

        Returns:
            Session with selections reflecting the current environment.
        """
        environ = os.environ if environ is None else environ
        file, key = open_vault(config, storage, prompter, keychain)
        entries = [RuntimeEntry.from_vault(e) for e in file.entries]
        entries.extend(load_dotenv_entries() if external is None else external)
        sort_entries(entries)
        snapshot = capture_environment(entries, environ)
        sync_with_environment(entries, snapshot)
        logger.info(
            "Session opened with %d entr%s (%d from the vault)",
            len(entries), "y" if len(entries) == 1 else "ies", len(file.entries),
        )
        return cls(file, key, storage, config, entries, snapshot, environ=environ)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    @property
    def current(self) -> Optional[int]:
        """Absolute index of the entry under the cursor."""
        return self.view.current

    def _resolve(self, index: Optional[int]) -> int:
        index = self.current if index is None else index
        if index is None or not 0 <= index < len(self.entries):
            raise IndexError("no entry at cursor")
        return index

    def _require_list_mode(self) -> None:
        if self.mode != SessionMode.LIST:
            raise ValueError("not available while importing")

    def _set_entries(self, entries: list[RuntimeEntry]) -> None:
        self.entries = entries
        self.view.set_entries(entries)

    def _snapshot_entries(self) -> list[RuntimeEntry]:
        return [e.model_copy() for e in self.entries]

    @staticmethod
    def _validate_entry(name: str, value: str) -> str:
        """Validate form input.

        Raises:
            ValueError: If name or value is empty.
        """
        name = name.strip()
        if not name:
            raise ValueError("name cannot be empty")
        if not value:
            raise ValueError("value cannot be empty")
        return name

    # ------------------------------------------------------------------
    # Transactional persistence
    # ------------------------------------------------------------------

    def persist(self, candidate: list[RuntimeEntry]) -> VaultFile:
        """Write the vault entries of ``candidate``; the session is not touched.

        Returns:
            The staged vault, still decrypted.

        Raises:
            PersistError: If re-encryption or the write fails.
        """
        staged = self.vault.clone()
        staged.entries = [e.to_vault() for e in vault_entries(candidate)]
        on_disk = staged.clone()
        try:
            if on_disk.encrypted:
                if self._key is None:
                    raise PersistError("vault key is not available")
                on_disk.encrypt_values(self._key)
            on_disk.save(self.storage, self.config.variables_file)
        except PersistError:
            raise
        except (EnvkeepError, OSError) as err:
            raise PersistError(f"Failed to save variables: {err}") from err
        return staged

    def _commit(self, candidate: list[RuntimeEntry]) -> bool:
        """Persist ``candidate`` and adopt it, or keep the current state."""
        try:
            staged = self.persist(candidate)
        except PersistError as err:
            self.error = str(err)
            logger.error("Could not save %s: %s", self.config.variables_file, err)
            return False
        self.vault = staged
        self._set_entries(candidate)
        self.error = None
        return True

    def dismiss_error(self) -> None:
        self.error = None

    # ------------------------------------------------------------------
    # Navigation and selection
    # ------------------------------------------------------------------

    def set_query(self, query: str) -> None:
        self.view.set_query(query)

    def move_up(self) -> None:
        self.view.move_up()

    def move_down(self) -> None:
        self.view.move_down()

    def toggle(self, index: Optional[int] = None) -> bool:
        """Toggle selection; exclusive per name except while importing."""
        index = self._resolve(index)
        return toggle_selection(
            self.entries, index, exclusive=self.mode == SessionMode.LIST,
        )

    # ------------------------------------------------------------------
    # Entry editing
    # ------------------------------------------------------------------

    def _focus_entry(self, entry: RuntimeEntry) -> None:
        self.view.clear()
        for i, e in enumerate(self.entries):
            if e is entry:
                self.view.focus(i)
                return

    def add_entry(self, name: str, value: str, label: str = "") -> bool:
        """Add a vault entry. Returns False (with ``error`` set) if saving failed."""
        self._require_list_mode()
        name = self._validate_entry(name, value)
        entry = RuntimeEntry(name=name, value=value, label=label.strip())
        candidate = self._snapshot_entries() + [entry]
        sort_entries(candidate)
        if not self._commit(candidate):
            return False
        logger.debug("Added entry %s", name)
        self._focus_entry(entry)
        return True

    def edit_entry(
        self, index: Optional[int], name: str, value: str, label: str = "",
    ) -> bool:
        """Replace a vault entry, keeping its selection state.

        Raises:
            ReadOnlyEntry: If the entry comes from a ``.env`` file.
        """
        self._require_list_mode()
        index = self._resolve(index)
        if not self.entries[index].persisted:
            raise ReadOnlyEntry("entries from .env files cannot be edited, promote them instead")
        name = self._validate_entry(name, value)
        candidate = self._snapshot_entries()
        edited = RuntimeEntry(
            name=name, value=value, label=label.strip(),
            selected=candidate[index].selected,
        )
        candidate[index] = edited
        sort_entries(candidate)
        if edited.selected:
            select_exclusive(candidate, next(i for i, e in enumerate(candidate) if e is edited))
        if not self._commit(candidate):
            return False
        logger.debug("Edited entry %s", name)
        self._focus_entry(edited)
        return True

    def promote_entry(
        self,
        index: Optional[int] = None,
        name: Optional[str] = None,
        value: Optional[str] = None,
        label: Optional[str] = None,
    ) -> bool:
        """Copy a ``.env`` entry into the vault as a new entry.

        Omitted fields default to those of the source entry.

        Raises:
            ValueError: If the entry already belongs to the vault.
        """
        self._require_list_mode()
        index = self._resolve(index)
        source = self.entries[index]
        if source.provenance != Provenance.EXTERNAL_FILE:
            raise ValueError(f"{source.name} is already a vault entry")
        return self.add_entry(
            source.name if name is None else name,
            source.value if value is None else value,
            source.label if label is None else label,
        )

    def delete_entry(self, index: Optional[int] = None) -> bool:
        """Delete a vault entry.

        Raises:
            ReadOnlyEntry: If the entry comes from a ``.env`` file.
        """
        self._require_list_mode()
        index = self._resolve(index)
        if not self.entries[index].persisted:
            raise ReadOnlyEntry("entries from .env files cannot be deleted")
        name = self.entries[index].name
        candidate = self._snapshot_entries()
        del candidate[index]
        if not self._commit(candidate):
            return False
        logger.debug("Deleted entry %s", name)
        return True

    # ------------------------------------------------------------------
    # Import from environment
    # ------------------------------------------------------------------

    def begin_import(self, environ: Optional[Mapping[str, str]] = None) -> None:
        """Switch to a multi-select list of the live environment variables."""
        self._require_list_mode()
        environ = self._environ if environ is None else environ
        self._original_entries = self.entries
        self.mode = SessionMode.IMPORT
        self.view.query = ""
        self.view.cursor = None
        self._set_entries(load_environment_entries(environ))

    def cancel_import(self) -> None:
        """Leave the import list without saving anything."""
        if self.mode != SessionMode.IMPORT:
            return
        self.mode = SessionMode.LIST
        self.view.query = ""
        self._set_entries(self._original_entries or [])
        self._original_entries = None

    def confirm_import(self) -> int:
        """Add the selected environment variables to the vault.

        Imported entries are labelled "imported from environment" and
        selected. If saving fails the import list stays open for a retry.
        The environment snapshot is left as it was captured at open.

        Returns:
            Number of imported entries; 0 when nothing was selected or the
            save failed.
        """
        if self.mode != SessionMode.IMPORT:
            raise ValueError("no import in progress")
        picked = [e for e in self.entries if e.selected]
        if not picked:
            return 0

        imported = [
            RuntimeEntry(name=e.name, value=e.value, label=IMPORTED_LABEL, selected=True)
            for e in picked
        ]
        candidate = [e.model_copy() for e in self._original_entries or []] + imported
        sort_entries(candidate)
        for entry in imported:
            select_exclusive(candidate, next(i for i, e in enumerate(candidate) if e is entry))

        try:
            staged = self.persist(candidate)
        except PersistError as err:
            self.error = str(err)
            logger.error("Could not save imported variables: %s", err)
            return 0

        self.vault = staged
        self.mode = SessionMode.LIST
        self._original_entries = None
        self.view.query = ""
        self.view.cursor = None
        self._set_entries(candidate)
        self.error = None
        logger.info("Imported %d variable(s) from the environment", len(imported))
        return len(imported)

    # ------------------------------------------------------------------
    # Finish
    # ------------------------------------------------------------------

    def apply(self) -> str:
        """Finish the session and return the shell commands to evaluate.

        Also records the selected vault entries in the selection file so
        ``restore`` can replay them later.
        """
        self._require_list_mode()
        commands = generate_shell_commands(self.entries, self.snapshot)
        selection = SelectionSet.from_entries(self.entries)
        try:
            selection.save(self.storage, self.config.config_file)
        except OSError as err:
            logger.warning("Could not save selection to %s: %s", self.config.config_file, err)
        self.applied = True
        return commands

    def abort(self) -> str:
        """Finish without writing anything."""
        self.aborted = True
        return ""
