"""
Tests for runtime entries and the selection engine.

Tests cover:
- Stable (name, label) ordering and EntryIDs
- Radio group selection
- Environment snapshot and sync
- Shell command generation
"""
import pytest

from envkeep.entries import (
    Provenance,
    RuntimeEntry,
    entry_id,
    sort_entries,
    vault_entries,
)
from envkeep.selection import (
    capture_environment,
    generate_shell_commands,
    load_environment_entries,
    name_groups,
    shell_quote,
    sync_with_environment,
    toggle_selection,
)

from conftest import external


def make(name, value="v", label="", selected=False):
    return RuntimeEntry(name=name, value=value, label=label, selected=selected)


class TestOrdering:
    """Tests for sorting and EntryIDs."""

    def test_sort_is_case_insensitive(self):
        entries = [make("b"), make("A", label="z"), make("a", label="Y")]
        sort_entries(entries)
        assert [(e.name, e.label) for e in entries] == [("a", "Y"), ("A", "z"), ("b", "")]

    def test_sort_is_stable(self):
        first = make("A", value="1")
        second = make("A", value="2")
        entries = [first, make("B"), second]
        sort_entries(entries)
        assert entries[0] is first
        assert entries[1] is second

    def test_entry_ids(self):
        entries = [make("A", label="1"), make("B"), make("A", label="2"), make("A", label="3"), make("C")]
        sort_entries(entries)
        ids = [entry_id(entries, i) for i in range(len(entries))]
        assert ids == ["A[0]", "A[1]", "A[2]", "B", "C"]

    def test_entry_id_out_of_range(self):
        assert entry_id([make("A")], 1) == ""
        assert entry_id([make("A")], -1) == ""

    def test_external_entry_requires_source(self):
        with pytest.raises(ValueError):
            RuntimeEntry(name="A", value="v", provenance=Provenance.EXTERNAL_FILE)
        with pytest.raises(ValueError):
            RuntimeEntry(name="A", value="v", source_file="/x/.env")

    def test_vault_entries_and_origin(self):
        ext = external("A", "x", source="/home/me/app/.env.local")
        assert ext.origin == "app/.env.local"
        assert ext.persisted is False
        assert vault_entries([ext, make("B")])[0].name == "B"

    def test_to_vault_drops_session_state(self):
        entry = make("A", label="l", selected=True).to_vault()
        assert entry.model_dump() == {"name": "A", "value": "v", "label": "l"}


class TestRadioGroups:
    """Tests for exclusive selection within a name group."""

    @pytest.fixture
    def entries(self):
        return [make("A", "1"), make("A", "2"), make("A", "3"), make("B", "1", selected=True)]

    def test_select_deselects_siblings(self, entries):
        toggle_selection(entries, 0)
        assert toggle_selection(entries, 2) is True
        assert [e.selected for e in entries] == [False, False, True, True]

    def test_toggle_off(self, entries):
        toggle_selection(entries, 1)
        assert toggle_selection(entries, 1) is False
        assert not any(e.selected for e in entries[:3])

    def test_non_exclusive(self, entries):
        toggle_selection(entries, 0, exclusive=False)
        toggle_selection(entries, 1, exclusive=False)
        assert [e.selected for e in entries[:2]] == [True, True]

    def test_name_groups(self, entries):
        assert name_groups(entries) == {"A": [0, 1, 2], "B": [3]}


class TestEnvironmentSync:
    """Tests for the snapshot and sync."""

    def test_capture_environment(self):
        entries = [make("A"), make("A"), make("B")]
        assert capture_environment(entries, {"A": "x", "OTHER": "y"}) == {"A": "x", "B": ""}

    def test_matching_entry_selected(self):
        entries = [make("A", "x"), make("A", "y")]
        sync_with_environment(entries, {"A": "y"})
        assert [e.selected for e in entries] == [False, True]

    def test_no_match(self):
        entries = [make("A", "x", selected=True), make("A", "y")]
        sync_with_environment(entries, {"A": "z"})
        assert not any(e.selected for e in entries)

    def test_first_match_wins(self):
        entries = [make("A", "x", label="one"), make("A", "x", label="two")]
        sync_with_environment(entries, {"A": "x"})
        assert [e.selected for e in entries] == [True, False]

    def test_unset_name(self):
        entries = [make("A", "x")]
        sync_with_environment(entries, {"A": ""})
        assert entries[0].selected is False

    def test_load_environment_entries(self):
        entries = load_environment_entries({"b": "2", "A": "1"})
        assert [(e.name, e.label) for e in entries] == [("A", "1"), ("b", "2")]
        assert all(e.provenance == Provenance.ENVIRONMENT for e in entries)
        assert not any(e.selected for e in entries)


class TestShellCommands:
    """Tests for export/unset generation."""

    def test_export_new_value(self):
        entries = [make("A", "v1", selected=True)]
        assert generate_shell_commands(entries, {"A": ""}) == "export A='v1'"

    def test_unset_deselected(self):
        entries = [make("A", "v1")]
        assert generate_shell_commands(entries, {"A": "old"}) == "unset A"

    def test_unchanged_selection_is_empty(self):
        entries = [make("A", "v1", selected=True)]
        assert generate_shell_commands(entries, {"A": "v1"}) == ""

    def test_unselected_and_unset(self):
        assert generate_shell_commands([make("A", "v1")], {"A": ""}) == ""

    def test_one_command_per_name_sorted(self):
        entries = [
            make("b", "2", selected=True),
            make("A", "1"),
            make("A", "3", label="x", selected=True),
        ]
        commands = generate_shell_commands(entries, {"A": "1", "b": ""})
        assert commands == "export A='3'\nexport b='2'"

    def test_quoting(self):
        assert shell_quote("it's") == "'it'\\''s'"
        entries = [make("A", "a'b $HOME", selected=True)]
        assert generate_shell_commands(entries, {}) == "export A='a'\\''b $HOME'"

    def test_external_entries_are_exported(self):
        entries = [external("A", "from-file")]
        entries[0].selected = True
        assert generate_shell_commands(entries, {"A": ""}) == "export A='from-file'"
