"""Reverse-incremental history search with filtering, sorting and fuzzy ranking."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Callable, Protocol, Sequence

from shline.fuzzy import fuzzy_find
from shline.utils import format_relative_time, truncate_to_width, visible_width

logger = logging.getLogger(__name__)

DEFAULT_HISTORY_BOX_HEIGHT = 10

HISTORY_HELP_TEXT = "Ctrl+F: Filter | Ctrl+O: Sort | Enter: Select | Esc: Cancel"
NO_MATCHES_TEXT = "No history matches found"

_TIME_WIDTH = 15
_MIN_COMMAND_WIDTH = 10


@dataclass(frozen=True)
class HistoryItem:
    command: str
    directory: str = ""
    timestamp: datetime = field(default_factory=datetime.now)


class HistoryFilterMode(str, Enum):
    ALL = "All"
    DIRECTORY = "Directory"
    # No session tracking exists; behaves like ALL
    SESSION = "Session"


class HistorySortMode(str, Enum):
    RECENT = "Recent"
    RELEVANCE = "Relevance"
    ALPHABETICAL = "Alphabetical"


_NEXT_FILTER = {
    HistoryFilterMode.ALL: HistoryFilterMode.DIRECTORY,
    HistoryFilterMode.DIRECTORY: HistoryFilterMode.ALL,
    HistoryFilterMode.SESSION: HistoryFilterMode.ALL,
}

_NEXT_SORT = {
    HistorySortMode.RECENT: HistorySortMode.RELEVANCE,
    HistorySortMode.RELEVANCE: HistorySortMode.ALPHABETICAL,
    HistorySortMode.ALPHABETICAL: HistorySortMode.RECENT,
}


class HistoryBoxTheme(Protocol):
    header: Callable[[str], str]
    selected_text: Callable[[str], str]
    dim: Callable[[str], str]
    help: Callable[[str], str]


def compute_window(total: int, selected: int, height: int) -> tuple[int, int]:
    """``[start, end)`` of rows to show: all rows if they fit, otherwise a
    window centred on *selected* and clamped to the list bounds."""
    height = max(1, height)
    if total <= height:
        return 0, total

    selected = max(0, min(selected, total - 1))
    start = max(0, selected - height // 2)
    end = min(total, start + height)
    start = max(0, end - height)
    return start, end


class HistorySearch:
    """Search state over an externally supplied, newest-first history list."""

    def __init__(
        self,
        items: Sequence[HistoryItem] = (),
        *,
        current_directory: str = "",
        filter_mode: HistoryFilterMode = HistoryFilterMode.ALL,
        sort_mode: HistorySortMode = HistorySortMode.RECENT,
    ) -> None:
        self.items: list[HistoryItem] = list(items)
        self.current_directory = current_directory
        self.filter_mode = filter_mode
        self.sort_mode = sort_mode

        self.active = False
        self.query = ""
        self.filtered_indices: list[int] = []
        self.selected = 0

    # -- Lifecycle -----------------------------------------------------------

    def set_items(self, items: Sequence[HistoryItem]) -> None:
        self.items = list(items)
        if self.active:
            self.recompute()

    def set_current_directory(self, directory: str) -> None:
        self.current_directory = directory
        if self.active:
            self.recompute()

    def start(self) -> None:
        self.active = True
        self.query = ""
        self.recompute()

    def accept(self) -> str | None:
        """End the search and return the selected command, if any."""
        item = self.selected_item
        self._end()
        return item.command if item else None

    def cancel(self) -> None:
        self._end()

    def _end(self) -> None:
        self.active = False
        self.query = ""
        self.filtered_indices = []
        self.selected = 0

    # -- Query editing -------------------------------------------------------

    def set_query(self, query: str) -> None:
        self.query = query
        self.recompute()

    def append_query(self, text: str) -> None:
        self.set_query(self.query + text)

    def backspace_query(self) -> None:
        if self.query:
            self.set_query(self.query[:-1])

    # -- Navigation ----------------------------------------------------------

    def up(self) -> None:
        if self.selected > 0:
            self.selected -= 1

    def down(self) -> None:
        if self.selected < len(self.filtered_indices) - 1:
            self.selected += 1

    def toggle_filter(self) -> None:
        self.filter_mode = _NEXT_FILTER[self.filter_mode]
        self.recompute()

    def toggle_sort(self) -> None:
        self.sort_mode = _NEXT_SORT[self.sort_mode]
        self.recompute()

    @property
    def selected_item(self) -> HistoryItem | None:
        if 0 <= self.selected < len(self.filtered_indices):
            return self.items[self.filtered_indices[self.selected]]
        return None

    @property
    def matches(self) -> list[HistoryItem]:
        return [self.items[i] for i in self.filtered_indices]

    # -- Core ----------------------------------------------------------------

    def _passes_filter(self, item: HistoryItem) -> bool:
        if self.filter_mode is HistoryFilterMode.DIRECTORY and self.current_directory:
            return item.directory == self.current_directory
        return True

    def _candidates(self) -> list[int]:
        """Indices of filtered items, keeping the first occurrence of each command."""
        seen: set[str] = set()
        candidates: list[int] = []
        for i, item in enumerate(self.items):
            if item.command in seen or not self._passes_filter(item):
                continue
            seen.add(item.command)
            candidates.append(i)
        return candidates

    def recompute(self) -> None:
        """Rebuild ``filtered_indices`` for the current query, filter and sort."""
        candidates = self._candidates()

        if not self.query:
            if self.sort_mode is HistorySortMode.ALPHABETICAL:
                candidates.sort(key=lambda i: self.items[i].command)
            self.filtered_indices = candidates
        else:
            ranked = fuzzy_find(self.query, [self.items[i].command for i in candidates])
            if self.sort_mode is HistorySortMode.RECENT:
                ranked.sort(key=lambda m: m.index)
            elif self.sort_mode is HistorySortMode.ALPHABETICAL:
                ranked.sort(key=lambda m: m.text)
            self.filtered_indices = [candidates[m.index] for m in ranked]

        self.selected = 0
        logger.debug(
            "history search %r: %d of %d items (%s, %s)",
            self.query,
            len(self.filtered_indices),
            len(self.items),
            self.filter_mode.value,
            self.sort_mode.value,
        )

    def visible_window(self, list_height: int) -> tuple[int, int]:
        return compute_window(len(self.filtered_indices), self.selected, list_height)

    # -- Rendering -----------------------------------------------------------

    def prompt_line(self) -> str:
        item = self.selected_item
        prefix = "(reverse-i-search)"
        if item is None and self.query:
            prefix = "(failed reverse-i-search)"
        return f"{prefix}`{self.query}': {item.command if item else ''}"

    def render_box(
        self,
        height: int,
        width: int,
        theme: HistoryBoxTheme | None = None,
        now: datetime | None = None,
    ) -> list[str]:
        """Header, a window of matches and a key-help footer."""
        if not self.active:
            return []

        if height <= 0:
            height = DEFAULT_HISTORY_BOX_HEIGHT
        list_height = max(1, height - 2)

        header_style = theme.header if theme else _identity
        selected_style = theme.selected_text if theme else _identity
        dim_style = theme.dim if theme else _identity
        help_style = theme.help if theme else _identity

        total = len(self.filtered_indices)
        lines = [
            header_style(
                f"Filter: {self.filter_mode.value} | Sort: {self.sort_mode.value} | {total} matches"
            )
        ]

        if total == 0:
            lines.append(dim_style(f" {NO_MATCHES_TEXT} "))
            lines.append(help_style(HISTORY_HELP_TEXT))
            return lines

        command_width = max(_MIN_COMMAND_WIDTH, width - 2 - _TIME_WIDTH - 2)
        start, end = self.visible_window(list_height)

        for i in range(start, end):
            item = self.items[self.filtered_indices[i]]
            is_selected = i == self.selected
            prefix = "> " if is_selected else "  "

            command = item.command
            if visible_width(command) > command_width:
                command = truncate_to_width(command, command_width)
            else:
                command = truncate_to_width(command, command_width, pad=True)

            when = format_relative_time(item.timestamp, now)[:_TIME_WIDTH]
            when = when.ljust(_TIME_WIDTH)

            row = prefix + command
            lines.append((selected_style(row) if is_selected else row) + "  " + dim_style(when))

        lines.append(help_style(HISTORY_HELP_TEXT))
        return lines


def _identity(text: str) -> str:
    return text
