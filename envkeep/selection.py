"""
Selection engine — radio groups, environment snapshot and shell diff.

Entries sharing a name form a radio group: at most one of them is exported.
The environment is read once per session into a snapshot; every diff is
computed against that snapshot, never against the live environment.
"""
import os
import logging
from collections.abc import Mapping, Sequence
from typing import Optional

from .entries import Provenance, RuntimeEntry, sort_entries, sort_key

logger = logging.getLogger("envkeep.selection")


def name_groups(entries: Sequence[RuntimeEntry]) -> dict[str, list[int]]:
    """Map each name to the indices of its entries, in list order."""
    groups: dict[str, list[int]] = {}
    for i, entry in enumerate(entries):
        groups.setdefault(entry.name, []).append(i)
    return groups


def select_exclusive(entries: Sequence[RuntimeEntry], index: int) -> None:
    """Select ``entries[index]`` and deselect the other members of its group."""
    name = entries[index].name
    for i, entry in enumerate(entries):
        if entry.name == name:
            entry.selected = i == index


def toggle_selection(
    entries: Sequence[RuntimeEntry], index: int, exclusive: bool = True,
) -> bool:
    """Flip the selection of ``entries[index]``.

    With ``exclusive`` (the main list), selecting an entry clears every other
    entry of the same name; other groups are left alone. The import list
    passes ``exclusive=False`` for free multi-select.

    Returns:
        The new selection state.
    """
    entry = entries[index]
    if entry.selected:
        entry.selected = False
    elif exclusive:
        select_exclusive(entries, index)
    else:
        entry.selected = True
    return entry.selected


def capture_environment(
    entries: Sequence[RuntimeEntry],
    environ: Optional[Mapping[str, str]] = None,
) -> dict[str, str]:
    """Snapshot the current value of every entry name ("" when unset)."""
    environ = os.environ if environ is None else environ
    snapshot: dict[str, str] = {}
    for entry in entries:
        if entry.name not in snapshot:
            snapshot[entry.name] = environ.get(entry.name, "")
    return snapshot


def sync_with_environment(
    entries: Sequence[RuntimeEntry], snapshot: Mapping[str, str],
) -> None:
    """Select, per name, the first entry whose value matches the snapshot.

    Names that are unset in the snapshot, or whose value matches no entry,
    end up with nothing selected.
    """
    matched: set[str] = set()
    for entry in entries:
        current = snapshot.get(entry.name, "")
        if not current or entry.name in matched or entry.value != current:
            entry.selected = False
            continue
        entry.selected = True
        matched.add(entry.name)


def shell_quote(value: str) -> str:
    """Wrap in single quotes, escaping embedded quotes as '\\''."""
    return "'" + value.replace("'", "'\\''") + "'"


def generate_shell_commands(
    entries: Sequence[RuntimeEntry], snapshot: Mapping[str, str],
) -> str:
    """Return the export/unset lines that move the shell to the selection.

    Each name is considered once, in sorted order. Nothing is emitted for a
    name whose selected value equals the snapshot, so applying an unchanged
    selection yields an empty script.
    """
    ordered = sorted(entries, key=sort_key)
    selected_by_name: dict[str, RuntimeEntry] = {}
    for entry in ordered:
        if entry.selected:
            selected_by_name.setdefault(entry.name, entry)

    commands: list[str] = []
    handled: set[str] = set()
    for entry in ordered:
        if entry.name in handled:
            continue
        handled.add(entry.name)
        original = snapshot.get(entry.name, "")
        selected = selected_by_name.get(entry.name)
        if selected is not None:
            if selected.value != original:
                commands.append(f"export {selected.name}={shell_quote(selected.value)}")
        elif original:
            commands.append(f"unset {entry.name}")

    logger.debug("Generated %d shell command(s)", len(commands))
    return "\n".join(commands)


def load_environment_entries(
    environ: Optional[Mapping[str, str]] = None,
) -> list[RuntimeEntry]:
    """One unselected entry per live environment variable, sorted.

    The label repeats the value so it can be seen and searched in the list.
    """
    environ = os.environ if environ is None else environ
    result = [
        RuntimeEntry(
            name=name, value=value, label=value, provenance=Provenance.ENVIRONMENT,
        )
        for name, value in environ.items()
        if name
    ]
    sort_entries(result)
    return result
