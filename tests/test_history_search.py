"""Tests for shline.history_search."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from shline.history_search import (
    HISTORY_HELP_TEXT,
    HistoryFilterMode,
    HistoryItem,
    HistorySearch,
    HistorySortMode,
    compute_window,
)

NOW = datetime(2026, 1, 10, 12, 0, 0)


def _items(*specs: tuple[str, str]) -> list[HistoryItem]:
    return [HistoryItem(command, directory, NOW) for command, directory in specs]


def _search(*commands: str, **kwargs) -> HistorySearch:
    search = HistorySearch(_items(*[(c, "/") for c in commands]), **kwargs)
    search.start()
    return search


class TestComputeWindow:
    def test_everything_fits(self) -> None:
        assert compute_window(3, 2, 5) == (0, 3)

    def test_centred_on_selection(self) -> None:
        assert compute_window(20, 10, 4) == (8, 12)

    def test_clamped_at_top(self) -> None:
        assert compute_window(20, 1, 4) == (0, 4)

    def test_clamped_at_bottom(self) -> None:
        assert compute_window(20, 19, 4) == (16, 20)

    def test_zero_height_shows_one_row(self) -> None:
        assert compute_window(5, 3, 0) == (3, 4)


class TestFiltering:
    def test_directory_filter_dedups_filtered_items(self) -> None:
        search = HistorySearch(
            _items(("cmd1", "/a"), ("cmd2", "/b"), ("cmd1", "/a")),
            current_directory="/a",
            filter_mode=HistoryFilterMode.DIRECTORY,
        )
        search.start()
        assert [i.command for i in search.matches] == ["cmd1"]
        assert search.filtered_indices == [0]

    def test_all_filter_dedups_keeping_newest(self) -> None:
        search = _search("ls", "pwd", "ls")
        assert search.filtered_indices == [0, 1]

    def test_directory_filter_without_directory_keeps_all(self) -> None:
        search = HistorySearch(
            _items(("a", "/x"), ("b", "/y")), filter_mode=HistoryFilterMode.DIRECTORY
        )
        search.start()
        assert len(search.matches) == 2

    def test_session_behaves_like_all(self) -> None:
        search = HistorySearch(
            _items(("a", "/x"), ("b", "/y")),
            current_directory="/x",
            filter_mode=HistoryFilterMode.SESSION,
        )
        search.start()
        assert len(search.matches) == 2

    def test_toggle_filter(self) -> None:
        search = HistorySearch(_items(("a", "/x"), ("b", "/y")), current_directory="/x")
        search.start()
        search.toggle_filter()
        assert search.filter_mode is HistoryFilterMode.DIRECTORY
        assert [i.command for i in search.matches] == ["a"]
        search.toggle_filter()
        assert search.filter_mode is HistoryFilterMode.ALL
        assert len(search.matches) == 2


class TestQueryAndSort:
    def test_empty_query_keeps_recent_order(self) -> None:
        search = _search("zeta", "alpha", "mid")
        assert [i.command for i in search.matches] == ["zeta", "alpha", "mid"]

    def test_empty_query_alphabetical(self) -> None:
        search = _search("zeta", "alpha", "mid", sort_mode=HistorySortMode.ALPHABETICAL)
        assert [i.command for i in search.matches] == ["alpha", "mid", "zeta"]

    def test_query_recent_keeps_history_order(self) -> None:
        search = _search("git status", "echo hi", "git stash")
        search.set_query("gst")
        assert [i.command for i in search.matches] == ["git status", "git stash"]

    def test_query_relevance_ranks_by_score(self) -> None:
        search = _search("make x test", "test", sort_mode=HistorySortMode.RELEVANCE)
        search.set_query("test")
        assert [i.command for i in search.matches] == ["test", "make x test"]

    def test_query_alphabetical(self) -> None:
        search = _search("git stash", "git status", sort_mode=HistorySortMode.ALPHABETICAL)
        search.set_query("git")
        assert [i.command for i in search.matches] == ["git stash", "git status"]

    def test_toggle_sort_cycles(self) -> None:
        search = _search("a")
        modes = []
        for _ in range(3):
            search.toggle_sort()
            modes.append(search.sort_mode)
        assert modes == [
            HistorySortMode.RELEVANCE,
            HistorySortMode.ALPHABETICAL,
            HistorySortMode.RECENT,
        ]

    def test_query_resets_selection(self) -> None:
        search = _search("ls -a", "ls -l", "ls")
        search.down()
        search.down()
        search.append_query("l")
        assert search.selected == 0

    def test_backspace_query(self) -> None:
        search = _search("ls", "cd")
        search.set_query("cx")
        assert search.matches == []
        search.backspace_query()
        assert search.query == "c"
        assert [i.command for i in search.matches] == ["cd"]
        search.backspace_query()
        search.backspace_query()
        assert search.query == ""


class TestNavigation:
    def test_up_down_clamp(self) -> None:
        search = _search("a", "b")
        search.up()
        assert search.selected == 0
        search.down()
        search.down()
        assert search.selected == 1

    def test_accept_returns_selected_and_ends(self) -> None:
        search = _search("first", "second")
        search.down()
        assert search.accept() == "second"
        assert not search.active
        assert search.query == ""

    def test_accept_without_match(self) -> None:
        search = _search("first")
        search.set_query("zzz")
        assert search.accept() is None

    def test_cancel(self) -> None:
        search = _search("first")
        search.set_query("f")
        search.cancel()
        assert not search.active
        assert search.filtered_indices == []

    def test_set_items_while_active_recomputes(self) -> None:
        search = _search("a")
        search.set_items(_items(("b", "/"), ("c", "/")))
        assert [i.command for i in search.matches] == ["b", "c"]


class TestRendering:
    def test_prompt_line(self) -> None:
        search = _search("git status")
        search.set_query("git")
        assert search.prompt_line() == "(reverse-i-search)`git': git status"

    def test_prompt_line_failed(self) -> None:
        search = _search("git status")
        search.set_query("xyz")
        assert search.prompt_line() == "(failed reverse-i-search)`xyz': "

    def test_prompt_line_empty_query(self) -> None:
        assert _search().prompt_line() == "(reverse-i-search)`': "

    def test_render_box_rows(self) -> None:
        items = [
            HistoryItem("git status", "/", NOW - timedelta(hours=2)),
            HistoryItem("ls", "/", NOW - timedelta(minutes=1)),
        ]
        search = HistorySearch(items)
        search.start()
        lines = search.render_box(10, 40, now=NOW)
        assert lines[0] == "Filter: All | Sort: Recent | 2 matches"
        assert lines[1] == "> git status" + " " * 11 + "  " + "2 hours ago    "
        assert lines[2] == "  ls" + " " * 19 + "  " + "a minute ago   "
        assert lines[-1] == HISTORY_HELP_TEXT

    def test_render_box_aware_timestamps(self) -> None:
        when = (NOW - timedelta(hours=2)).astimezone(timezone.utc)
        search = HistorySearch([HistoryItem("make", "/", when)])
        search.start()
        assert search.render_box(10, 40, now=NOW)[1].endswith("2 hours ago    ")

    def test_render_box_truncates_long_commands(self) -> None:
        search = HistorySearch([HistoryItem("x" * 50, "/", NOW)])
        search.start()
        row = search.render_box(10, 40, now=NOW)[1]
        assert row.startswith("> " + "x" * 20 + "…")

    def test_render_box_empty(self) -> None:
        search = _search("ls")
        search.set_query("zzz")
        lines = search.render_box(10, 40, now=NOW)
        assert lines == [
            "Filter: All | Sort: Recent | 0 matches",
            " No history matches found ",
            HISTORY_HELP_TEXT,
        ]

    def test_render_box_windows_long_lists(self) -> None:
        search = _search(*[f"cmd{i}" for i in range(20)])
        lines = search.render_box(6, 40, now=NOW)
        assert len(lines) == 6

    def test_inactive_renders_nothing(self) -> None:
        assert HistorySearch(_items(("a", "/"))).render_box(10, 40) == []


@pytest.mark.parametrize("mode", list(HistoryFilterMode))
def test_filter_labels_are_display_text(mode: HistoryFilterMode) -> None:
    assert mode.value[0].isupper()
