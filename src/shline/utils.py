"""Text utilities: whitespace classification, terminal widths, truncation.

Widths are measured per grapheme cluster using ``grapheme`` for segmentation
and ``wcwidth`` for East Asian / emoji widths. All buffer offsets elsewhere in
the package are code point (rune) offsets; only rendering cares about columns.
"""

from __future__ import annotations

import re
import unicodedata
from datetime import datetime

import grapheme
import humanize
import wcwidth as _wcwidth

# CSI sequences (SGR and friends) that carry no printable width
_ANSI_RE = re.compile(r"\x1b\[[0-9;]*[mGKHJ]")

# ---------------------------------------------------------------------------
# Width cache
# ---------------------------------------------------------------------------

_width_cache: dict[str, int] = {}
_WIDTH_CACHE_MAX = 512


def _cache_width(key: str, value: int) -> int:
    if len(_width_cache) >= _WIDTH_CACHE_MAX:
        _width_cache.clear()
    _width_cache[key] = value
    return value


# ---------------------------------------------------------------------------
# Character classification
# ---------------------------------------------------------------------------


def is_whitespace_char(char: str) -> bool:
    """Return ``True`` if *char* is Unicode whitespace."""
    return char.isspace()


def sanitize_single_line(text: str) -> str:
    """Collapse tabs and line breaks to single spaces.

    The editor holds one line, so pasted tabs/newlines become spaces.
    """
    return text.replace("\r\n", " ").replace("\r", " ").replace("\n", " ").replace("\t", " ")


def word_start(text: str, pos: int) -> int:
    """Scan backward from *pos* over non-whitespace and return the word start."""
    start = pos
    while start > 0 and not is_whitespace_char(text[start - 1]):
        start -= 1
    return start


def word_end(text: str, pos: int) -> int:
    """Scan forward from *pos* over non-whitespace and return the word end."""
    end = pos
    while end < len(text) and not is_whitespace_char(text[end]):
        end += 1
    return end


# ---------------------------------------------------------------------------
# Grapheme width
# ---------------------------------------------------------------------------


def _grapheme_width(g: str) -> int:
    """Return the terminal display width of a single grapheme cluster."""
    if not g:
        return 0

    if len(g) == 1:
        cp = ord(g)
        if cp < 0x20 or (0x7F <= cp <= 0x9F):
            return 0
        return max(_wcwidth.wcwidth(g), 0)

    for ch in g:
        cp = ord(ch)
        # VS16, ZWJ, skin tone modifiers, regional indicators
        if cp in (0xFE0F, 0x200D) or 0x1F3FB <= cp <= 0x1F3FF or 0x1F1E6 <= cp <= 0x1F1FF:
            return 2

    first = g[0]
    if ord(first) >= 0x1F000:
        return 2

    cat = unicodedata.category(first)
    if cat.startswith("M") or cat == "Cf":
        return 0

    return max(_wcwidth.wcwidth(first), 0)


def visible_width(text: str) -> int:
    """Number of terminal columns *text* occupies.

    ANSI SGR codes are ignored. ASCII strings take a fast path; other strings
    are measured per grapheme cluster and cached.
    """
    if not text:
        return 0

    stripped = _ANSI_RE.sub("", text)
    if not stripped:
        return 0

    if all(0x20 <= ord(ch) <= 0x7E for ch in stripped):
        return len(stripped)

    cached = _width_cache.get(stripped)
    if cached is not None:
        return cached

    total = sum(_grapheme_width(g) for g in grapheme.graphemes(stripped))
    return _cache_width(stripped, total)


def truncate_to_width(
    text: str,
    max_width: int,
    ellipsis: str = "…",
    pad: bool = False,
) -> str:
    """Cut *text* down to at most *max_width* columns, ending with *ellipsis*.

    The ellipsis counts towards the width. With *pad* the result is
    right-padded with spaces to exactly *max_width*.
    """
    if max_width <= 0:
        return ""

    text_width = visible_width(text)
    if text_width <= max_width:
        if pad:
            return text + " " * (max_width - text_width)
        return text

    target_width = max_width - visible_width(ellipsis)
    if target_width <= 0:
        return _take_columns(ellipsis, max_width)

    result = _take_columns(text, target_width) + ellipsis

    if pad:
        result_width = visible_width(result)
        if result_width < max_width:
            result += " " * (max_width - result_width)

    return result


def _take_columns(text: str, max_cols: int) -> str:
    """Return a prefix of *text* that fits within *max_cols* columns, cut at grapheme boundaries."""
    result: list[str] = []
    cols = 0
    for g in grapheme.graphemes(text):
        w = _grapheme_width(g)
        if cols + w > max_cols:
            break
        result.append(g)
        cols += w
    return "".join(result)


# ---------------------------------------------------------------------------
# Relative time
# ---------------------------------------------------------------------------


def _local_naive(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value
    return datetime.fromtimestamp(value.timestamp())


def format_relative_time(when: datetime, now: datetime | None = None) -> str:
    """Format *when* relative to *now*, e.g. ``"2 hours ago"`` or ``"now"``.

    Either side may be timezone-aware; aware values are compared in local
    time.
    """
    reference = _local_naive(now) if now is not None else datetime.now()
    return humanize.naturaltime(_local_naive(when), when=reference)
