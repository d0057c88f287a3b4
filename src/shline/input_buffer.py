"""Split raw terminal input into key sequences and pasted text.

A single read from the terminal may hold several key presses ("ls\\r"), part
of an escape sequence, or a bracketed paste spread over many reads. The
:class:`InputBuffer` keeps partial sequences between calls and hands out one
complete chunk per key press.
"""

from __future__ import annotations

from dataclasses import dataclass

ESC = "\x1b"
BRACKETED_PASTE_START = "\x1b[200~"
BRACKETED_PASTE_END = "\x1b[201~"

_COMPLETE = "complete"
_INCOMPLETE = "incomplete"
_NOT_ESCAPE = "not-escape"


@dataclass
class InputChunk:
    """One key sequence, or the full text of a bracketed paste."""

    text: str
    paste: bool = False


def _sequence_status(data: str) -> str:
    """Classify *data* as a complete, incomplete or non-escape sequence."""
    if not data.startswith(ESC):
        return _NOT_ESCAPE
    if len(data) == 1:
        return _INCOMPLETE

    intro = data[1]
    if intro == "[":
        return _csi_status(data)
    if intro in "]P_":
        # OSC, DCS and APC strings end with ST; OSC may also end with BEL
        if data.endswith(ESC + "\\") or (intro == "]" and data.endswith("\x07")):
            return _COMPLETE
        return _INCOMPLETE
    if intro == "O":
        # SS3: ESC O <final>
        return _COMPLETE if len(data) >= 3 else _INCOMPLETE
    # Meta: ESC followed by one character
    return _COMPLETE


def _csi_status(data: str) -> str:
    if len(data) < 3:
        return _INCOMPLETE
    # X10 mouse reports carry three raw bytes after "ESC [ M"
    if data[2] == "M":
        return _COMPLETE if len(data) >= 6 else _INCOMPLETE
    if 0x40 <= ord(data[-1]) <= 0x7E:
        return _COMPLETE
    return _INCOMPLETE


def split_sequences(buffer: str) -> tuple[list[str], str]:
    """Split *buffer* into complete sequences.

    Returns ``(sequences, remainder)`` where the remainder is a trailing
    escape sequence still waiting for more input.
    """
    sequences: list[str] = []
    pos = 0
    while pos < len(buffer):
        if buffer[pos] != ESC:
            sequences.append(buffer[pos])
            pos += 1
            continue

        end = pos + 1
        while True:
            if end > len(buffer):
                return sequences, buffer[pos:]
            status = _sequence_status(buffer[pos:end])
            if status == _INCOMPLETE:
                end += 1
                continue
            sequences.append(buffer[pos:end])
            pos = end
            break

    return sequences, ""


class InputBuffer:
    """Accumulates terminal input across reads.

    :meth:`feed` returns every chunk completed by the new data. A lone
    trailing ESC is emitted straight away as the escape key, since there is
    no timer to wait for a follower; longer partial sequences stay pending
    until the next :meth:`feed` or an explicit :meth:`flush`.
    """

    def __init__(self) -> None:
        self._buffer = ""
        self._paste_mode = False
        self._paste_buffer = ""

    @property
    def pending(self) -> str:
        return self._buffer

    @property
    def in_paste(self) -> bool:
        return self._paste_mode

    def feed(self, data: str) -> list[InputChunk]:
        chunks: list[InputChunk] = []
        self._feed(data, chunks)
        return chunks

    def _feed(self, data: str, chunks: list[InputChunk]) -> None:
        if self._paste_mode:
            self._paste_buffer += data
            self._finish_paste(chunks)
            return

        self._buffer += data
        start = self._buffer.find(BRACKETED_PASTE_START)
        if start != -1:
            before = self._buffer[:start]
            self._paste_buffer = self._buffer[start + len(BRACKETED_PASTE_START) :]
            self._buffer = ""
            self._paste_mode = True
            self._emit_keys(before, chunks, final=True)
            self._finish_paste(chunks)
            return

        buffer, self._buffer = self._buffer, ""
        self._emit_keys(buffer, chunks, final=False)

    def _emit_keys(self, data: str, chunks: list[InputChunk], *, final: bool) -> None:
        sequences, remainder = split_sequences(data)
        chunks.extend(InputChunk(seq) for seq in sequences)
        if remainder == ESC or (final and remainder):
            chunks.append(InputChunk(remainder))
        elif remainder:
            self._buffer = remainder

    def _finish_paste(self, chunks: list[InputChunk]) -> None:
        end = self._paste_buffer.find(BRACKETED_PASTE_END)
        if end == -1:
            return
        content = self._paste_buffer[:end]
        remaining = self._paste_buffer[end + len(BRACKETED_PASTE_END) :]
        self._paste_mode = False
        self._paste_buffer = ""
        chunks.append(InputChunk(content, paste=True))
        if remaining:
            self._feed(remaining, chunks)

    def flush(self) -> list[InputChunk]:
        """Emit whatever partial key sequence is pending as-is."""
        if not self._buffer:
            return []
        chunk = InputChunk(self._buffer)
        self._buffer = ""
        return [chunk]

    def clear(self) -> None:
        self._buffer = ""
        self._paste_mode = False
        self._paste_buffer = ""
