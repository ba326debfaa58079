"""
Tests for the filter engine.

Tests cover:
- Fuzzy subsequence matching, match positions and ranking
- Cursor stability while the query changes
- Viewport scrolling and wrap-around navigation
"""
import pytest

from envkeep.entries import RuntimeEntry
from envkeep.filter import FilterView, find_matches, fuzzy_target, match_positions, match_score

from conftest import external


def make(name, label=""):
    return RuntimeEntry(name=name, value="v", label=label)


class TestFuzzyMatch:
    """Tests for subsequence matching and ranking."""

    def test_subsequence(self):
        assert match_positions("bna", "Banana") == [0, 2, 3]
        assert match_positions("xyz", "Banana") is None
        assert match_positions("ab", "ba") is None

    def test_case_insensitive(self):
        assert match_positions("API", "api_url") == [0, 1, 2]
        assert match_positions("api", "API_URL") == [0, 1, 2]

    def test_positions_are_leftmost(self):
        assert match_positions("an", "Banana") == [1, 2]
        assert match_positions("", "x") == []
        assert match_positions("q", "x") is None

    def test_tight_match_ranks_first(self):
        matches = find_matches("abc", ["xaxbxc", "abc"])
        assert [m.index for m in matches] == [1, 0]
        assert matches[0].score > matches[1].score

    def test_first_char_ranks_first(self):
        matches = find_matches("a", ["Cherry", "Banana", "Aardvark"])
        assert [m.index for m in matches] == [2, 1]

    def test_word_start_ranks_first(self):
        matches = find_matches("url", ["CURLY", "API_URL"])
        assert [m.index for m in matches] == [1, 0]

    def test_camel_case_bonus(self):
        assert match_score("fooBar", [3]) > match_score("foobar", [3])

    def test_leading_penalty_is_capped(self):
        assert match_score("xxxxa", [4]) == match_score("xxxa", [3]) - 1

    def test_equal_scores_keep_order(self):
        matches = find_matches("VAR", ["VAR_2", "VAR_1", "VAR_3"])
        assert [m.index for m in matches] == [0, 1, 2]

    def test_targets(self):
        assert fuzzy_target(make("A")) == "A"
        assert fuzzy_target(make("A", "prod")) == "A prod"
        ext = external("A", "x", source="/srv/app/.env")
        assert fuzzy_target(ext) == "A app/.env"


class TestCursorStability:
    """Tests for keeping the cursor on the same entry."""

    @pytest.fixture
    def view(self):
        return FilterView([make("Aardvark"), make("Banana"), make("Cherry")])

    def test_starts_on_first(self, view):
        assert view.current == 0
        assert len(view) == 3

    def test_query_keeps_cursor_on_entry(self, view):
        view.move_down()
        assert view.current == 1
        view.set_query("an")
        # Aardvark no longer matches; Banana moves to display index 0
        assert view.indices == [1]
        assert view.cursor == 0
        assert view.current == 1

    def test_filtered_out_moves_to_nearest_earlier(self, view):
        view.move_down()
        view.move_down()
        view.set_query("a")
        # Cherry is gone; Banana is the nearest earlier visible entry
        assert view.current == 1

    def test_falls_back_to_first_visible(self, view):
        view.set_query("ch")
        assert view.current == 2

    def test_no_matches(self, view):
        view.set_query("zzz")
        assert view.cursor is None
        assert view.current is None
        view.move_down()
        assert view.current is None

    def test_clear_restores_entry(self, view):
        view.move_down()
        view.set_query("ban")
        view.clear()
        assert view.current == 1
        assert view.cursor == 1

    def test_focus(self, view):
        assert view.focus(2) is True
        view.set_query("aar")
        assert view.focus(2) is False
        assert view.current == 0


class TestNavigation:
    """Tests for movement and the viewport window."""

    @pytest.fixture
    def view(self):
        return FilterView([make(f"VAR_{i:02d}") for i in range(10)], height=4)

    def test_wrap_around(self, view):
        view.move_up()
        assert view.cursor == 9
        view.move_down()
        assert view.cursor == 0

    def test_viewport_scrolls_only_when_needed(self, view):
        for _ in range(3):
            view.move_down()
        assert view.viewport_start == 0
        view.move_down()
        assert view.viewport_start == 1
        view.move_up()
        assert view.viewport_start == 1

    def test_viewport_follows_wrap(self, view):
        view.move_up()
        assert view.viewport_start == 6
        assert view.has_above and not view.has_below
        assert [abs_idx for _, abs_idx in view.visible()] == [6, 7, 8, 9]

    def test_viewport_clamped_after_filter(self, view):
        view.move_up()
        view.set_query("VAR_0")
        assert view.viewport_start == 6
        view.set_query("VAR_09")
        assert view.viewport_start == 0
        assert list(view.visible()) == [(0, 9)]


class TestRankedView:
    """Tests for the cursor when ranking reorders the list."""

    @pytest.fixture
    def view(self):
        return FilterView([make("XAXBXC"), make("ABC"), make("CHERRY")])

    def test_cursor_follows_entry_across_reorder(self, view):
        assert view.current == 0
        view.set_query("abc")
        # ABC now displays above XAXBXC; the cursor stays on XAXBXC
        assert view.indices == [1, 0]
        assert view.cursor == 1
        assert view.current == 0
        view.clear()
        assert view.cursor == 0
        assert view.current == 0

    def test_backtracks_by_entry_position(self, view):
        view.focus(2)
        view.set_query("abc")
        # CHERRY is gone; ABC is the nearest earlier entry
        assert view.current == 1
        assert view.cursor == 0
