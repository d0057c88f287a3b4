"""Bounded ring buffer for Emacs/bash-style kill and yank operations."""

from __future__ import annotations

from typing import Literal

KillDirection = Literal["forward", "backward"]

DEFAULT_KILL_RING_SIZE = 30


class KillRing:
    """Tracks killed (deleted) text entries, newest first.

    Successive kills in the same direction accumulate into the newest entry:
    forward kills append, backward kills prepend. ``rotate`` advances the
    yank-pop index circularly; recording a new kill resets it.
    """

    def __init__(self, max_size: int = DEFAULT_KILL_RING_SIZE) -> None:
        self._entries: list[str] = []
        self._max_size = max(1, max_size)
        self._index = 0
        self._last_direction: KillDirection | None = None

    def push(
        self,
        text: str,
        *,
        direction: KillDirection,
        accumulate: bool = False,
    ) -> None:
        """Record killed text.

        Args:
            text: The killed text.
            direction: ``"forward"`` (text after the cursor) or ``"backward"``.
            accumulate: The previous command was a kill. Merges with the newest
                entry only when the direction also matches the previous kill.
        """
        if not text:
            return

        if accumulate and self._entries and direction == self._last_direction:
            newest = self._entries[0]
            self._entries[0] = text + newest if direction == "backward" else newest + text
        else:
            self._entries.insert(0, text)
            del self._entries[self._max_size :]

        self._last_direction = direction
        self._index = 0

    def peek(self) -> str | None:
        """Entry at the current yank index without modifying the ring."""
        if not self._entries:
            return None
        return self._entries[self._index]

    def rotate(self) -> None:
        """Advance the yank-pop index to the next older entry, wrapping around."""
        if len(self._entries) > 1:
            self._index = (self._index + 1) % len(self._entries)

    def reset_index(self) -> None:
        self._index = 0

    @property
    def entries(self) -> list[str]:
        return list(self._entries)

    @property
    def index(self) -> int:
        return self._index

    @property
    def length(self) -> int:
        return len(self._entries)
