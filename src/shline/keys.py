"""Keyboard input decoding for legacy (xterm-style) terminal sequences.

``parse_key`` turns one chunk of raw terminal input into a key identifier
such as ``"tab"``, ``"shift+tab"``, ``"ctrl+w"`` or ``"alt+y"``. Printable
text is returned unchanged so the editor can insert it.
"""

from __future__ import annotations

# ---------------------------------------------------------------------------
# Type alias
# ---------------------------------------------------------------------------

KeyId = str


class Key:
    """Key id constants plus helpers that prefix a modifier."""

    escape = "escape"
    enter = "enter"
    tab = "tab"
    space = "space"
    backspace = "backspace"
    delete = "delete"
    home = "home"
    end = "end"
    page_up = "pageUp"
    page_down = "pageDown"
    up = "up"
    down = "down"
    left = "left"
    right = "right"

    @staticmethod
    def ctrl(key: str) -> str:
        return f"ctrl+{key}"

    @staticmethod
    def alt(key: str) -> str:
        return f"alt+{key}"

    @staticmethod
    def shift(key: str) -> str:
        return f"shift+{key}"


# Unmodified xterm and vt100 sequences
LEGACY_KEY_SEQUENCES: dict[str, str] = {
    "\x1b[A": "up",
    "\x1b[B": "down",
    "\x1b[C": "right",
    "\x1b[D": "left",
    "\x1b[H": "home",
    "\x1b[F": "end",
    "\x1bOA": "up",
    "\x1bOB": "down",
    "\x1bOC": "right",
    "\x1bOD": "left",
    "\x1bOH": "home",
    "\x1bOF": "end",
    "\x1b[1~": "home",
    "\x1b[4~": "end",
    "\x1b[7~": "home",
    "\x1b[8~": "end",
    "\x1b[3~": "delete",
    "\x1b[5~": "pageUp",
    "\x1b[6~": "pageDown",
    "\x1b[Z": "shift+tab",
}

# CSI 1;<mod><letter> and CSI <n>;<mod>~ forms
_CSI_LETTER_KEYS: dict[str, str] = {
    "A": "up",
    "B": "down",
    "C": "right",
    "D": "left",
    "H": "home",
    "F": "end",
}

_CSI_TILDE_KEYS: dict[str, str] = {
    "1": "home",
    "3": "delete",
    "4": "end",
    "5": "pageUp",
    "6": "pageDown",
}

# xterm modifier parameter is 1 + bitmask(shift=1, alt=2, ctrl=4)
_MOD_SHIFT = 1
_MOD_ALT = 2
_MOD_CTRL = 4


def _modifier_prefix(param: int) -> str:
    mask = max(0, param - 1)
    prefix = ""
    if mask & _MOD_CTRL:
        prefix += "ctrl+"
    if mask & _MOD_SHIFT:
        prefix += "shift+"
    if mask & _MOD_ALT:
        prefix += "alt+"
    return prefix


def _parse_modified_csi(data: str) -> str | None:
    """Parse ``ESC [ 1 ; m X`` and ``ESC [ n ; m ~`` sequences."""
    if not data.startswith("\x1b[") or ";" not in data:
        return None

    body = data[2:]
    final = body[-1:]
    params = body[:-1].split(";")
    if len(params) != 2 or not all(p.isdigit() for p in params):
        return None

    prefix = _modifier_prefix(int(params[1]))
    if final == "~":
        name = _CSI_TILDE_KEYS.get(params[0])
    else:
        name = _CSI_LETTER_KEYS.get(final) if params[0] == "1" else None

    if name is None:
        return None
    return prefix + name


def parse_key(data: str) -> KeyId | None:
    """Decode one chunk of raw input into a key id, or ``None`` if unknown.

    Multi-character printable input (a typed burst or paste without bracketed
    paste markers) is returned as-is.
    """
    if not data:
        return None

    if data in LEGACY_KEY_SEQUENCES:
        return LEGACY_KEY_SEQUENCES[data]

    modified = _parse_modified_csi(data)
    if modified is not None:
        return modified

    if data == "\x1b":
        return "escape"
    if data in ("\r", "\n"):
        return "enter"
    if data == "\t":
        return "tab"
    if data == "\x7f":
        return "backspace"
    if data == "\x08":
        return "ctrl+h"
    if data == "\x00":
        return "ctrl+space"
    if data == "\x1f":
        return "ctrl+-"

    # C0 controls 0x01-0x1a are ctrl+a..ctrl+z
    if len(data) == 1 and 1 <= ord(data) <= 26:
        return "ctrl+" + chr(ord(data) + ord("a") - 1)

    # ESC followed by one key means alt
    if len(data) == 2 and data[0] == "\x1b":
        ch = data[1]
        if ch in ("\x7f", "\x08"):
            return "alt+backspace"
        if ch in ("\r", "\n"):
            return "alt+enter"
        if 1 <= ord(ch) <= 26:
            return "ctrl+alt+" + chr(ord(ch) + ord("a") - 1)
        if ch.isprintable():
            return "alt+" + ch.lower()
        return None

    if data.isprintable():
        return data

    return None
