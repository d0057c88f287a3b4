"""Tab-completion engine: candidate cycling, common-prefix extension, info box.

The engine has two states. *Inactive* until the first Tab returns candidates;
*Active* while the user cycles with Tab / Shift-Tab. While active,
``start_pos`` is fixed at the span computed on activation and only
``end_pos`` follows the length of whatever was last inserted, so switching
from a long candidate to a short one never leaves stale characters behind.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Callable, Protocol, Sequence

from shline.buffer import TextBuffer
from shline.utils import (
    is_whitespace_char,
    truncate_to_width,
    visible_width,
    word_end,
    word_start,
)

logger = logging.getLogger(__name__)

DEFAULT_WHOLE_LINE_PREFIXES: tuple[str, ...] = ("#/", "#!")
DEFAULT_COMPLETION_BOX_HEIGHT = 4

# Per-item padding: selection marker plus column gap
_ITEM_PADDING = 4
_MIN_ITEM_WIDTH = 10


# ---------------------------------------------------------------------------
# Candidates and sources
# ---------------------------------------------------------------------------


@dataclass
class CompletionCandidate:
    value: str
    display: str | None = None
    description: str | None = None
    suffix: str | None = None

    @property
    def label(self) -> str:
        """Text shown in the completion box."""
        return self.display or self.value


class CompletionSource(Protocol):
    """Supplies candidates and help text for the line being edited."""

    def get_completions(self, line: str, cursor: int) -> list[CompletionCandidate]: ...

    def get_help(self, line: str, cursor: int) -> str: ...


def longest_common_prefix(candidates: Sequence[CompletionCandidate]) -> str:
    """Longest code-point prefix shared by every candidate value."""
    if not candidates:
        return ""

    prefix = candidates[0].value
    for candidate in candidates[1:]:
        limit = min(len(prefix), len(candidate.value))
        i = 0
        while i < limit and prefix[i] == candidate.value[i]:
            i += 1
        prefix = prefix[:i]
        if not prefix:
            break
    return prefix


# ---------------------------------------------------------------------------
# State
# ---------------------------------------------------------------------------


@dataclass
class CompletionState:
    active: bool = False
    suggestions: list[CompletionCandidate] = field(default_factory=list)
    selected: int = -1
    prefix: str = ""
    start_pos: int = 0
    end_pos: int = 0
    original_text: str = ""
    original_cursor: int = 0
    show_info_box: bool = False
    help_text: str = ""

    def reset(self) -> None:
        self.active = False
        self.suggestions = []
        self.selected = -1
        self.prefix = ""
        self.start_pos = 0
        self.end_pos = 0
        self.original_text = ""
        self.original_cursor = 0
        self.show_info_box = False

    @property
    def current(self) -> CompletionCandidate | None:
        if not self.active or not 0 <= self.selected < len(self.suggestions):
            return None
        return self.suggestions[self.selected]

    @property
    def info_box_visible(self) -> bool:
        return self.active and self.show_info_box and len(self.suggestions) > 1

    def next_index(self) -> int:
        self.selected = (self.selected + 1) % len(self.suggestions)
        return self.selected

    def prev_index(self) -> int:
        self.selected -= 1
        if self.selected < 0:
            self.selected = len(self.suggestions) - 1
        return self.selected


# ---------------------------------------------------------------------------
# Engine
# ---------------------------------------------------------------------------


class CompletionEngine:
    """Drives Tab / Shift-Tab completion against a :class:`TextBuffer`."""

    def __init__(
        self,
        source: CompletionSource | None = None,
        *,
        whole_line_prefixes: Sequence[str] = DEFAULT_WHOLE_LINE_PREFIXES,
    ) -> None:
        self.source = source
        self.whole_line_prefixes = tuple(whole_line_prefixes)
        self.state = CompletionState()

    @property
    def active(self) -> bool:
        return self.state.active

    def complete(self, buffer: TextBuffer) -> bool:
        """Handle Tab. Returns ``True`` if the buffer changed."""
        if self.source is None:
            return False
        if not self.state.active:
            return self._activate(buffer)
        if not self.state.suggestions:
            return False
        self.state.next_index()
        return self._apply_selected(buffer)

    def complete_previous(self, buffer: TextBuffer) -> bool:
        """Handle Shift-Tab. Only meaningful while active."""
        if self.source is None or not self.state.active or not self.state.suggestions:
            return False
        self.state.prev_index()
        return self._apply_selected(buffer)

    def cancel(self, buffer: TextBuffer) -> None:
        """Restore the text captured on activation and reset."""
        if self.state.active:
            text = self.state.original_text
            cursor = self.state.original_cursor
            buffer.set_value(text)
            buffer.set_cursor(cursor)
        self.reset()

    def accept(self) -> bool:
        """Commit the highlighted candidate from the info box.

        The candidate is already in the buffer; this only ends completion.
        Returns ``False`` when no specific candidate is highlighted.
        """
        if self.state.info_box_visible and self.state.selected >= 0:
            self.reset()
            return True
        return False

    def reset(self) -> None:
        self.state.reset()

    # -- Help ----------------------------------------------------------------

    def update_help(self, line: str, cursor: int) -> str:
        """Refresh help text: for the highlighted candidate, else for the line."""
        if self.source is None:
            self.state.help_text = ""
            return ""

        current = self.state.current
        if current is not None:
            help_text = self.source.get_help(current.value, len(current.value))
        else:
            help_text = self.source.get_help(line, cursor)
        self.state.help_text = help_text or ""
        return self.state.help_text

    # -- Internals -----------------------------------------------------------

    def _activate(self, buffer: TextBuffer) -> bool:
        assert self.source is not None
        line = buffer.value
        cursor = buffer.position

        start = word_start(line, cursor)
        end = word_end(line, cursor)

        candidates = list(self.source.get_completions(line, cursor))
        if not candidates:
            self.reset()
            return False

        if line[:2] in self.whole_line_prefixes:
            start = 0

        # Widening runs after the whole-line prefix and may move start off 0
        if any(" " in c.value for c in candidates):
            start = self._widen_for_phrase(line, cursor, candidates, start)

        state = self.state
        state.active = True
        state.suggestions = candidates
        state.selected = -1
        state.prefix = line[start:cursor]
        state.start_pos = start
        state.end_pos = end
        state.original_text = line
        state.original_cursor = cursor
        state.show_info_box = len(candidates) > 1

        logger.debug(
            "completion activated: %d candidates, span [%d, %d)",
            len(candidates),
            start,
            end,
        )

        if len(candidates) == 1:
            state.selected = 0
            return self._apply(buffer, candidates[0].value)

        common = longest_common_prefix(candidates)
        if len(common) > len(state.prefix):
            state.prefix = common
            return self._apply(buffer, common)
        return False

    @staticmethod
    def _widen_for_phrase(
        line: str,
        cursor: int,
        candidates: Sequence[CompletionCandidate],
        start: int,
    ) -> int:
        """Extend *start* back over one whitespace run and one word when the
        first candidate begins with that text."""
        command_start = word_start(line, cursor)
        if command_start == 0:
            return start

        prev = command_start - 1
        while prev > 0 and is_whitespace_char(line[prev - 1]):
            prev -= 1
        while prev > 0 and not is_whitespace_char(line[prev - 1]):
            prev -= 1

        if candidates[0].value.startswith(line[prev:command_start]):
            return prev
        return start

    def _apply_selected(self, buffer: TextBuffer) -> bool:
        current = self.state.current
        if current is None:
            return False
        return self._apply(buffer, current.value)

    def _apply(self, buffer: TextBuffer, text: str) -> bool:
        value = buffer.value
        start = self.state.start_pos
        if start > len(value):
            return False
        end = min(self.state.end_pos, len(value))

        before = value
        buffer.set_value(value[:start] + text + value[end:])
        buffer.set_cursor(start + len(text))
        self.state.end_pos = start + len(text)
        return buffer.value != before


# ---------------------------------------------------------------------------
# Info box layout and rendering
# ---------------------------------------------------------------------------


@dataclass
class CompletionBoxLayout:
    item_width: int
    columns: int
    rows: int
    start: int
    # rows x columns grid of candidate indices (None = empty cell)
    cells: list[list[int | None]]


class CompletionBoxTheme(Protocol):
    selected_text: Callable[[str], str]
    description: Callable[[str], str]


def layout_completion_box(
    candidates: Sequence[CompletionCandidate],
    selected: int,
    height: int,
    width: int,
) -> CompletionBoxLayout:
    """Compute the column-major page of candidates visible for *selected*."""
    if height <= 0:
        height = DEFAULT_COMPLETION_BOX_HEIGHT

    total = len(candidates)
    item_width = max(
        [visible_width(c.label) + _ITEM_PADDING for c in candidates] + [_MIN_ITEM_WIDTH]
    )

    columns = max(1, width // item_width) if width > 0 else 1
    if total <= height or any(c.description for c in candidates):
        columns = 1

    capacity = height * columns
    start = (max(0, selected) // capacity) * capacity

    cells: list[list[int | None]] = []
    for r in range(height):
        row: list[int | None] = []
        for c in range(columns):
            idx = start + c * height + r
            row.append(idx if idx < total else None)
        cells.append(row)

    return CompletionBoxLayout(
        item_width=item_width,
        columns=columns,
        rows=height,
        start=start,
        cells=cells,
    )


def render_completion_box(
    state: CompletionState,
    height: int,
    width: int,
    theme: CompletionBoxTheme | None = None,
) -> list[str]:
    """Render the info box as lines. Empty when the box is hidden."""
    if not state.info_box_visible:
        return []

    candidates = state.suggestions
    layout = layout_completion_box(candidates, state.selected, height, width)
    selected_style = theme.selected_text if theme else _identity
    description_style = theme.description if theme else _identity

    lines: list[str] = []
    for row in layout.cells:
        parts: list[str] = []
        for c, idx in enumerate(row):
            if idx is None:
                continue
            candidate = candidates[idx]
            is_selected = idx == state.selected
            item = (" > " if is_selected else "   ") + candidate.label

            if candidate.description and layout.columns == 1:
                item = item + " " * max(2, layout.item_width - visible_width(item))
                if width > 0:
                    remaining = width - visible_width(item)
                    desc = truncate_to_width(candidate.description, remaining) if remaining > 0 else ""
                else:
                    desc = candidate.description
                parts.append(selected_style(item) if is_selected else item)
                if desc:
                    parts.append(description_style(desc))
                continue

            if c < layout.columns - 1:
                pad = layout.item_width - visible_width(item)
                item += " " * pad if pad > 0 else "  "
            parts.append(selected_style(item) if is_selected else item)
        lines.append("".join(parts))
    return lines


def _identity(text: str) -> str:
    return text
