"""Single-line text buffer with history values, cursor motion and a kill ring."""

from __future__ import annotations

from typing import Callable, Literal

from shline.kill_ring import DEFAULT_KILL_RING_SIZE, KillDirection, KillRing
from shline.utils import is_whitespace_char, sanitize_single_line

ValidateFunc = Callable[[str], "Exception | None"]


class TextBuffer:
    """Editable draft plus a read-only stack of prior values.

    ``values[0]`` is the live draft; ``values[1:]`` are history entries,
    newest first. ``selected_index`` points at the value on display. Every
    edit operates on the displayed value but writes the result into
    ``values[0]`` and resets ``selected_index`` to 0, so history entries are
    never modified.

    Offsets are code point (rune) offsets. All operations are no-ops at
    boundaries.
    """

    def __init__(
        self,
        *,
        char_limit: int = 0,
        kill_ring_size: int = DEFAULT_KILL_RING_SIZE,
        validate: ValidateFunc | None = None,
    ) -> None:
        self._values: list[str] = [""]
        self._selected_index = 0
        self._pos = 0

        self.char_limit = char_limit
        self.validate = validate
        self.err: Exception | None = None

        # Kill ring
        self._kill_ring = KillRing(kill_ring_size)
        self._last_action: Literal["kill", "yank"] | None = None
        self._yank_span: tuple[int, int] | None = None

        # Ghost suggestions are hidden while the user is killing text
        self.suppress_suggestions = False

    # -- Accessors -----------------------------------------------------------

    @property
    def value(self) -> str:
        return self._values[self._selected_index]

    @property
    def draft(self) -> str:
        return self._values[0]

    @property
    def position(self) -> int:
        return self._pos

    @property
    def selected_index(self) -> int:
        return self._selected_index

    @property
    def values(self) -> list[str]:
        return list(self._values)

    @property
    def kill_ring(self) -> KillRing:
        return self._kill_ring

    @property
    def last_command_was_kill(self) -> bool:
        return self._last_action == "kill"

    @property
    def yank_span(self) -> tuple[int, int] | None:
        return self._yank_span if self._last_action == "yank" else None

    # -- Whole-value operations ----------------------------------------------

    def set_value(self, text: str) -> None:
        """Replace the draft. Tabs/newlines become spaces; the char limit truncates."""
        runes = sanitize_single_line(text)
        was_empty = len(self.value) == 0
        self._write(runes)
        if (self._pos == 0 and was_empty) or self._pos > len(self._values[0]):
            self.set_cursor(len(self._values[0]))

    def replace(self, start: int, end: int, text: str) -> None:
        """Replace ``[start, end)`` of the displayed value and put the cursor after *text*."""
        value = self.value
        start = max(0, min(start, len(value)))
        end = max(start, min(end, len(value)))
        self._write(value[:start] + text + value[end:])
        self.set_cursor(start + len(text))

    def set_cursor(self, pos: int) -> None:
        """Move the cursor, clamping to ``[0, len(value)]``."""
        self._pos = max(0, min(pos, len(self.value)))

    def reset(self) -> None:
        """Clear the draft and history selection. The kill ring survives."""
        self._values = [""]
        self._selected_index = 0
        self._pos = 0
        self.err = None
        self._last_action = None
        self._yank_span = None
        self.suppress_suggestions = False

    def set_history_values(self, history: list[str]) -> None:
        """Install history entries (newest first) behind the current draft."""
        self._values = [self._values[0]] + [sanitize_single_line(h) for h in history]
        if self._selected_index >= len(self._values):
            self._selected_index = 0
        self.set_cursor(self._pos)

    # -- Insertion -----------------------------------------------------------

    def insert_text(self, text: str) -> None:
        """Insert *text* at the cursor, truncated to the available char limit."""
        self._touch()
        paste = sanitize_single_line(text)
        if not paste:
            return

        value = self.value
        if self.char_limit > 0:
            avail = self.char_limit - len(value)
            if avail <= 0:
                return
            paste = paste[:avail]

        self._write(value[: self._pos] + paste + value[self._pos :])
        self._pos += len(paste)

    # -- Character deletion --------------------------------------------------

    def delete_char_backward(self) -> None:
        self._touch()
        if self._pos == 0:
            return
        value = self.value
        self._write(value[: self._pos - 1] + value[self._pos :])
        self._pos -= 1

    def delete_char_forward(self) -> None:
        self._touch()
        value = self.value
        if self._pos >= len(value):
            return
        self._write(value[: self._pos] + value[self._pos + 1 :])

    # -- Killing -------------------------------------------------------------

    def delete_word_backward(self) -> None:
        """Kill from the start of the previous word up to the cursor."""
        if self._pos == 0:
            return
        value = self.value
        start = self._scan_word_backward(self._pos)
        self._record_kill(value[start : self._pos], "backward")
        self._write(value[:start] + value[self._pos :])
        self._pos = start

    def delete_word_forward(self) -> None:
        """Kill from the cursor to the end of the next word."""
        value = self.value
        if self._pos >= len(value):
            return
        end = self._scan_word_forward(self._pos)
        self._record_kill(value[self._pos : end], "forward")
        self._write(value[: self._pos] + value[end:])

    def delete_to_line_start(self) -> None:
        if self._pos == 0:
            return
        value = self.value
        self._record_kill(value[: self._pos], "backward")
        self._write(value[self._pos :])
        self._pos = 0

    def delete_to_line_end(self) -> None:
        value = self.value
        if self._pos >= len(value):
            return
        self._record_kill(value[self._pos :], "forward")
        self._write(value[: self._pos])

    def _record_kill(self, text: str, direction: KillDirection) -> None:
        self._kill_ring.push(
            text,
            direction=direction,
            accumulate=self._last_action == "kill",
        )
        self._last_action = "kill"
        self._yank_span = None
        self.suppress_suggestions = True

    # -- Yanking -------------------------------------------------------------

    def yank(self) -> None:
        """Insert the newest kill at the cursor."""
        self._kill_ring.reset_index()
        text = self._kill_ring.peek()
        if not text:
            self._touch()
            return

        value = self.value
        if self.char_limit > 0:
            text = text[: max(0, self.char_limit - len(value))]

        start = self._pos
        self._write(value[:start] + text + value[start:])
        self._pos = start + len(text)
        self._yank_span = (start, self._pos)
        self._last_action = "yank"
        self.suppress_suggestions = False

    def yank_pop(self) -> None:
        """Replace the text inserted by the last yank with the next older kill.

        Only valid directly after a yank or another yank-pop.
        """
        if self._last_action != "yank" or self._yank_span is None:
            return
        if self._kill_ring.length <= 1:
            return

        start, end = self._yank_span
        self._kill_ring.rotate()
        text = self._kill_ring.peek() or ""

        value = self.value
        self._write(value[:start] + text + value[end:])
        self._pos = start + len(text)
        self._yank_span = (start, self._pos)

    # -- Cursor motion -------------------------------------------------------

    def move_char_left(self) -> None:
        self._touch()
        if self._pos > 0:
            self._pos -= 1

    def move_char_right(self) -> None:
        self._touch()
        if self._pos < len(self.value):
            self._pos += 1

    def move_word_left(self) -> None:
        self._touch()
        self._pos = self._scan_word_backward(self._pos)

    def move_word_right(self) -> None:
        self._touch()
        self._pos = self._scan_word_forward(self._pos)

    def move_to_line_start(self) -> None:
        self._touch()
        self._pos = 0

    def move_to_line_end(self) -> None:
        self._touch()
        self._pos = len(self.value)

    # -- History navigation --------------------------------------------------

    def history_older(self) -> None:
        """Show the next older history value, cursor at its end."""
        self._touch()
        if len(self._values) == 1:
            return
        self._selected_index = min(self._selected_index + 1, len(self._values) - 1)
        self._pos = len(self.value)

    def history_newer(self) -> None:
        """Show the next newer value (eventually the draft), cursor at its end."""
        self._touch()
        if len(self._values) == 1:
            return
        self._selected_index = max(self._selected_index - 1, 0)
        self._pos = len(self.value)

    # -- Internal helpers ----------------------------------------------------

    def _touch(self) -> None:
        """Mark a non-kill, non-yank command."""
        self._last_action = None
        self._yank_span = None
        self.suppress_suggestions = False

    def _write(self, new_value: str) -> None:
        if self.char_limit > 0 and len(new_value) > self.char_limit:
            new_value = new_value[: self.char_limit]
        self.err = self.validate(new_value) if self.validate else None
        self._values[0] = new_value
        self._selected_index = 0
        self._pos = min(self._pos, len(new_value))

    def _scan_word_backward(self, pos: int) -> int:
        value = self.value
        while pos > 0 and is_whitespace_char(value[pos - 1]):
            pos -= 1
        while pos > 0 and not is_whitespace_char(value[pos - 1]):
            pos -= 1
        return pos

    def _scan_word_forward(self, pos: int) -> int:
        value = self.value
        while pos < len(value) and is_whitespace_char(value[pos]):
            pos += 1
        while pos < len(value) and not is_whitespace_char(value[pos]):
            pos += 1
        return pos
