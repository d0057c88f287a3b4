"""Tests for shline.input_buffer."""

from __future__ import annotations

from shline.input_buffer import (
    BRACKETED_PASTE_END,
    BRACKETED_PASTE_START,
    ESC,
    InputBuffer,
    InputChunk,
    split_sequences,
)


def _keys(chunks: list[InputChunk]) -> list[str]:
    assert not any(c.paste for c in chunks)
    return [c.text for c in chunks]


# ---------------------------------------------------------------------------
# split_sequences
# ---------------------------------------------------------------------------


class TestSplitSequences:
    def test_plain_characters_one_at_a_time(self) -> None:
        assert split_sequences("ls\r") == (["l", "s", "\r"], "")

    def test_csi_sequences(self) -> None:
        assert split_sequences("\x1b[A\x1b[1;5C") == (["\x1b[A", "\x1b[1;5C"], "")

    def test_ss3_sequence(self) -> None:
        assert split_sequences("\x1bOPx") == (["\x1bOP", "x"], "")

    def test_meta_key(self) -> None:
        assert split_sequences("\x1byz") == (["\x1by", "z"], "")

    def test_partial_csi_is_remainder(self) -> None:
        assert split_sequences("a\x1b[1;") == (["a"], "\x1b[1;")

    def test_lone_escape_is_remainder(self) -> None:
        assert split_sequences("a" + ESC) == (["a"], ESC)

    def test_x10_mouse_needs_three_bytes(self) -> None:
        assert split_sequences("\x1b[M a") == ([], "\x1b[M a")
        assert split_sequences("\x1b[M abc") == (["\x1b[M ab", "c"], "")

    def test_osc_ends_with_bel(self) -> None:
        assert split_sequences("\x1b]0;title\x07q") == (["\x1b]0;title\x07", "q"], "")


# ---------------------------------------------------------------------------
# InputBuffer
# ---------------------------------------------------------------------------


class TestInputBuffer:
    def test_several_keys_in_one_read(self) -> None:
        assert _keys(InputBuffer().feed("ls\r")) == ["l", "s", "\r"]

    def test_sequence_split_across_reads(self) -> None:
        buf = InputBuffer()
        assert buf.feed("\x1b[") == []
        assert buf.pending == "\x1b["
        assert _keys(buf.feed("Cx")) == ["\x1b[C", "x"]
        assert buf.pending == ""

    def test_lone_escape_emitted_immediately(self) -> None:
        buf = InputBuffer()
        assert _keys(buf.feed(ESC)) == [ESC]
        assert buf.pending == ""

    def test_flush_emits_partial_sequence(self) -> None:
        buf = InputBuffer()
        buf.feed("\x1b[1;")
        assert _keys(buf.flush()) == ["\x1b[1;"]
        assert buf.flush() == []

    def test_paste_with_keys_around_it(self) -> None:
        chunks = InputBuffer().feed(
            "a" + BRACKETED_PASTE_START + "x\x1b[Ay" + BRACKETED_PASTE_END + "b"
        )
        assert chunks == [
            InputChunk("a"),
            InputChunk("x\x1b[Ay", paste=True),
            InputChunk("b"),
        ]

    def test_paste_across_reads(self) -> None:
        buf = InputBuffer()
        assert buf.feed(BRACKETED_PASTE_START + "hel") == []
        assert buf.in_paste
        assert buf.feed("lo" + BRACKETED_PASTE_END) == [InputChunk("hello", paste=True)]
        assert not buf.in_paste

    def test_paste_start_split_across_reads(self) -> None:
        buf = InputBuffer()
        assert buf.feed("\x1b[20") == []
        assert buf.feed("0~hi" + BRACKETED_PASTE_END) == [InputChunk("hi", paste=True)]

    def test_clear(self) -> None:
        buf = InputBuffer()
        buf.feed(BRACKETED_PASTE_START + "abc")
        buf.clear()
        assert not buf.in_paste
        assert _keys(buf.feed("z")) == ["z"]
