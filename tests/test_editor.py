"""Tests for shline.editor.LineEditor -- raw input routed through the editor."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timedelta

from shline.completion import CompletionCandidate
from shline.editor import KeyEvent, LineEditor, PasteEvent, RenderEffects
from shline.history_search import HistoryItem
from shline.settings import SettingsManager
from shline.source import SpecCompletionSource
from shline.specs import CompletionKind, CompletionSpec, CompletionSpecRegistry

TAB = "\t"
SHIFT_TAB = "\x1b[Z"
ESC = "\x1b"
ENTER = "\r"
RIGHT = "\x1b[C"
UP = "\x1b[A"
CTRL_A = "\x01"
CTRL_K = "\x0b"
CTRL_L = "\x0c"
CTRL_R = "\x12"
CTRL_W = "\x17"
CTRL_Y = "\x19"
ALT_Y = "\x1by"
BACKSPACE = "\x7f"


@dataclass
class FakeSource:
    values: list[str] = field(default_factory=list)
    help: dict[str, str] = field(default_factory=dict)

    def get_completions(self, line: str, cursor: int) -> list[CompletionCandidate]:
        return [CompletionCandidate(value=v) for v in self.values]

    def get_help(self, line: str, cursor: int) -> str:
        return self.help.get(line.split(" ")[0], "")


class SuffixSource:
    def get_completions(self, line: str, cursor: int) -> list[CompletionCandidate]:
        return [CompletionCandidate(value="echo", suffix=" <text>")]

    def get_help(self, line: str, cursor: int) -> str:
        return ""


def _type(editor: LineEditor, text: str) -> None:
    for ch in text:
        editor.handle_input(ch)


def _editor(values: list[str] | None = None, **kwargs) -> LineEditor:
    return LineEditor(source=FakeSource(values or []), **kwargs)


class TestKeyEvent:
    def test_printable(self):
        assert KeyEvent.from_data("a") == KeyEvent(key="a", text="a")

    def test_control(self):
        assert KeyEvent.from_data(TAB) == KeyEvent(key="tab")


class TestTyping:
    def test_insert_characters(self):
        editor = _editor()
        effects = editor.handle_input("h")
        _type(editor, "i")
        assert editor.value == "hi"
        assert editor.cursor == 2
        assert effects.changed

    def test_char_limit(self):
        editor = _editor(char_limit=3)
        _type(editor, "abcdef")
        assert editor.value == "abc"

    def test_validation_error_is_exposed(self):
        def no_digits(text: str) -> Exception | None:
            return ValueError("digits") if any(c.isdigit() for c in text) else None

        editor = _editor(validate=no_digits)
        _type(editor, "a1")
        assert isinstance(editor.err, ValueError)

    def test_backspace_and_motion(self):
        editor = _editor()
        _type(editor, "abc")
        editor.handle_input(CTRL_A)
        assert editor.cursor == 0
        editor.handle_input("\x1b[F")
        editor.handle_input(BACKSPACE)
        assert editor.value == "ab"


class TestMultiKeyReads:
    def test_keys_and_enter_in_one_read(self):
        editor = _editor()
        effects = editor.handle_input("ls\r")
        assert editor.value == "ls"
        assert effects.submitted == "ls"
        assert effects.changed

    def test_escape_sequence_split_across_reads(self):
        editor = _editor()
        _type(editor, "ab")
        editor.handle_input(CTRL_A)
        assert editor.handle_input("\x1b[") == RenderEffects()
        editor.handle_input("Cx")
        assert editor.value == "axb"

    def test_sequences_in_one_read(self):
        editor = _editor()
        editor.handle_input("abc\x1b[D\x1b[D" + BACKSPACE)
        assert editor.value == "bc"


class TestSubmitCancel:
    def test_enter_submits_without_clearing(self):
        editor = _editor()
        _type(editor, "ls -la")
        effects = editor.handle_input(ENTER)
        assert effects.submitted == "ls -la"
        assert editor.value == "ls -la"

    def test_escape_cancels(self):
        editor = _editor()
        assert editor.handle_input(ESC).cancelled

    def test_clear_screen(self):
        editor = _editor()
        effects = editor.handle_input(CTRL_L)
        assert effects.clear_screen
        assert not effects.changed

    def test_reset_keeps_history(self):
        editor = _editor()
        editor.set_history([HistoryItem("make")])
        _type(editor, "abc")
        editor.reset()
        assert editor.value == ""
        editor.handle_input(UP)
        assert editor.value == "make"


class TestCompletionFlow:
    def test_tab_cycles(self):
        editor = _editor(["git", "gist"])
        _type(editor, "gi")
        editor.handle_input(TAB)
        assert editor.value == "gi"
        assert editor.completion.active
        editor.handle_input(TAB)
        assert editor.value == "git"
        editor.handle_input(SHIFT_TAB)
        assert editor.value == "gist"

    def test_escape_restores_without_cancelling_line(self):
        editor = _editor(["git", "gist"])
        _type(editor, "gi")
        editor.handle_input(TAB)
        editor.handle_input(TAB)
        effects = editor.handle_input(ESC)
        assert editor.value == "gi"
        assert not effects.cancelled
        assert not editor.completion.active

    def test_enter_accepts_selection_first(self):
        editor = _editor(["git", "gist"])
        _type(editor, "gi")
        editor.handle_input(TAB)
        editor.handle_input(TAB)
        assert editor.handle_input(ENTER).submitted is None
        assert editor.value == "git"
        assert editor.handle_input(ENTER).submitted == "git"

    def test_enter_without_selection_submits(self):
        editor = _editor(["git", "gist"])
        _type(editor, "gi")
        editor.handle_input(TAB)
        effects = editor.handle_input(ENTER)
        assert effects.submitted == "gi"
        assert not editor.completion.active

    def test_other_key_ends_completion(self):
        editor = _editor(["git", "gist"])
        _type(editor, "gi")
        editor.handle_input(TAB)
        editor.handle_input(TAB)
        editor.handle_input(" ")
        assert not editor.completion.active
        assert editor.value == "git "

    def test_completion_box_view(self):
        editor = _editor(["git", "gist"])
        _type(editor, "gi")
        editor.handle_input(TAB)
        editor.handle_input(TAB)
        lines = editor.completion_box_view(height=2, width=40)
        assert lines == [" > git", "   gist"]

    def test_suffix_shown_in_view(self):
        editor = LineEditor(source=SuffixSource())
        _type(editor, "ec")
        editor.handle_input(TAB)
        assert editor.value == "echo"
        assert editor.view() == "> echo <text>"

    def test_help_box(self):
        editor = LineEditor(source=FakeSource(help={"git": "version control"}))
        _type(editor, "git")
        assert editor.help_box_view() == "version control"
        _type(editor, "x")
        assert editor.help_box_view() == ""


class TestKillRing:
    def test_kill_and_yank(self):
        editor = _editor()
        _type(editor, "git commit")
        editor.handle_input(CTRL_W)
        assert editor.value == "git "
        editor.handle_input(CTRL_Y)
        assert editor.value == "git commit"

    def test_yank_pop(self):
        editor = _editor()
        editor.set_value("alpha beta")
        editor.handle_input(CTRL_W)
        editor.handle_input(CTRL_A)
        editor.handle_input(CTRL_K)
        assert editor.value == ""
        editor.handle_input(CTRL_Y)
        assert editor.value == "alpha "
        editor.handle_input(ALT_Y)
        assert editor.value == "beta"

    def test_kill_suppresses_ghost(self):
        editor = _editor()
        editor.set_suggestions(["git status"])
        _type(editor, "git st")
        editor.handle_input(BACKSPACE)
        assert editor.ghost_suggestion() == "git status"
        editor.handle_input(CTRL_W)
        assert editor.value == "git "
        assert editor.ghost_suggestion() is None


class TestGhostSuggestion:
    def test_ghost_rendered_and_accepted(self):
        editor = _editor()
        editor.set_suggestions(["git status"])
        _type(editor, "git s")
        assert editor.view() == "> git status"
        editor.handle_input(RIGHT)
        assert editor.value == "git status"
        assert editor.cursor == len("git status")

    def test_case_insensitive_prefix(self):
        editor = _editor()
        editor.set_suggestions(["Makefile"])
        _type(editor, "make")
        assert editor.ghost_suggestion() == "Makefile"

    def test_right_moves_cursor_when_not_at_end(self):
        editor = _editor()
        editor.set_suggestions(["git status"])
        _type(editor, "git s")
        editor.handle_input(CTRL_A)
        editor.handle_input(RIGHT)
        assert editor.value == "git s"
        assert editor.cursor == 1


class TestBracketedPaste:
    def test_paste_in_one_chunk(self):
        editor = _editor()
        editor.handle_input("\x1b[200~hello\tworld\x1b[201~")
        assert editor.value == "hello world"

    def test_paste_split_across_chunks(self):
        editor = _editor()
        assert editor.handle_input("\x1b[200~hel") == RenderEffects()
        assert editor.value == ""
        editor.handle_input("lo\x1b[201~x")
        assert editor.value == "hellox"

    def test_paste_event(self):
        editor = _editor()
        effects = editor.apply_event(PasteEvent("a\nb"))
        assert editor.value == "a b"
        assert effects.changed


class TestHistorySearchFlow:
    def _editor(self) -> LineEditor:
        editor = _editor()
        editor.set_history(
            [
                HistoryItem("git status", "/a"),
                HistoryItem("ls -la", "/b"),
                HistoryItem("git stash", "/a"),
            ],
            current_directory="/a",
        )
        return editor

    def test_search_and_accept(self):
        editor = self._editor()
        editor.handle_input(CTRL_R)
        assert editor.in_history_search
        _type(editor, "ls")
        assert editor.view() == "(reverse-i-search)`ls': ls -la"
        editor.handle_input(ENTER)
        assert not editor.in_history_search
        assert editor.value == "ls -la"
        assert editor.cursor == len("ls -la")

    def test_cancel_keeps_line(self):
        editor = self._editor()
        _type(editor, "abc")
        editor.handle_input(CTRL_R)
        _type(editor, "git")
        editor.handle_input(ESC)
        assert not editor.in_history_search
        assert editor.value == "abc"

    def test_repeat_ctrl_r_moves_down(self):
        editor = self._editor()
        editor.handle_input(CTRL_R)
        _type(editor, "git")
        editor.handle_input(CTRL_R)
        assert editor.history_search.selected_item.command == "git stash"

    def test_backspace_edits_query(self):
        editor = self._editor()
        editor.handle_input(CTRL_R)
        _type(editor, "lx")
        assert editor.reverse_search_prompt_view().startswith("(failed")
        editor.handle_input(BACKSPACE)
        assert editor.history_search.query == "l"

    def test_toggle_filter(self):
        editor = self._editor()
        editor.handle_input(CTRL_R)
        editor.handle_input("\x06")
        assert [i.command for i in editor.history_search.matches] == ["git status", "git stash"]

    def test_box_view(self):
        editor = self._editor()
        now = datetime.now()
        editor.handle_input(CTRL_R)
        lines = editor.history_search_box_view(width=60, now=now + timedelta(hours=1))
        assert lines[0] == "Filter: All | Sort: Recent | 3 matches"
        assert lines[1].startswith("> git status")

    def test_views_empty_outside_search(self):
        editor = self._editor()
        assert editor.reverse_search_prompt_view() == ""
        assert editor.history_search_box_view() == []


class TestFromSettings:
    def test_builds_spec_source(self):
        registry = CompletionSpecRegistry()
        registry.add(CompletionSpec("svc", CompletionKind.WORD_LIST, "start stop"))
        settings = SettingsManager.in_memory({"prompt": "$ ", "keybindings": {"submit": "ctrl+s"}})

        editor = LineEditor.from_settings(settings, registry=registry)
        assert isinstance(editor.completion.source, SpecCompletionSource)
        assert editor.view() == "$ "

        _type(editor, "svc sta")
        editor.handle_input(TAB)
        assert editor.value == "svc start"
        assert editor.handle_input(ENTER).submitted is None
        assert editor.handle_input("\x13").submitted == "svc start"

    def test_explicit_source_wins(self):
        source = FakeSource(["x"])
        editor = LineEditor.from_settings(
            SettingsManager.in_memory(), source=source, registry=CompletionSpecRegistry()
        )
        assert editor.completion.source is source
