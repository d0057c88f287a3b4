"""Line editor: routes input events to the buffer, completion and history search."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Protocol, Sequence, Union

from shline.buffer import TextBuffer, ValidateFunc
from shline.completion import (
    DEFAULT_COMPLETION_BOX_HEIGHT,
    DEFAULT_WHOLE_LINE_PREFIXES,
    CompletionEngine,
    CompletionSource,
    render_completion_box,
)
from shline.external import SubprocessCompleterRunner
from shline.history_search import DEFAULT_HISTORY_BOX_HEIGHT, HistoryItem, HistorySearch
from shline.input_buffer import InputBuffer
from shline.keybindings import EditorKeybindingsConfig, EditorKeybindingsManager
from shline.keys import KeyId, parse_key
from shline.kill_ring import DEFAULT_KILL_RING_SIZE
from shline.settings import DEFAULT_PROMPT, SettingsManager
from shline.source import SpecCompletionSource
from shline.specs import CompletionSpecRegistry, ShellFunctionRunner

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Events and effects
# ---------------------------------------------------------------------------


@dataclass
class KeyEvent:
    """A decoded key press. ``text`` is set for printable input."""

    key: KeyId | None
    text: str = ""

    @classmethod
    def from_data(cls, data: str) -> KeyEvent:
        if data and data.isprintable():
            return cls(key=data, text=data)
        return cls(key=parse_key(data))


@dataclass
class PasteEvent:
    text: str


InputEvent = Union[KeyEvent, PasteEvent]


@dataclass
class RenderEffects:
    """What the host should do after an event."""

    changed: bool = False
    submitted: str | None = None
    cancelled: bool = False
    clear_screen: bool = False

    def merge(self, other: RenderEffects) -> RenderEffects:
        return RenderEffects(
            changed=self.changed or other.changed,
            submitted=other.submitted if other.submitted is not None else self.submitted,
            cancelled=self.cancelled or other.cancelled,
            clear_screen=self.clear_screen or other.clear_screen,
        )


class EditorTheme(Protocol):
    prompt: Callable[[str], str]
    ghost: Callable[[str], str]
    selected_text: Callable[[str], str]
    description: Callable[[str], str]
    header: Callable[[str], str]
    dim: Callable[[str], str]
    help: Callable[[str], str]


# ---------------------------------------------------------------------------
# Editor
# ---------------------------------------------------------------------------


class LineEditor:
    """Single-line shell editor.

    One instance owns the text buffer, kill ring, completion state and history
    search state and is driven by one event at a time through
    :meth:`apply_event` (or :meth:`handle_input` for raw terminal data). The
    ``*_view`` methods are pure reads of that state.

    Submitting does not clear the line; call :meth:`reset` before the next
    prompt.
    """

    def __init__(
        self,
        *,
        source: CompletionSource | None = None,
        keybindings: EditorKeybindingsConfig | None = None,
        char_limit: int = 0,
        kill_ring_size: int = DEFAULT_KILL_RING_SIZE,
        whole_line_prefixes: Sequence[str] = DEFAULT_WHOLE_LINE_PREFIXES,
        validate: ValidateFunc | None = None,
        prompt: str = DEFAULT_PROMPT,
        completion_box_height: int = DEFAULT_COMPLETION_BOX_HEIGHT,
        history_box_height: int = DEFAULT_HISTORY_BOX_HEIGHT,
        theme: EditorTheme | None = None,
    ) -> None:
        self.buffer = TextBuffer(
            char_limit=char_limit,
            kill_ring_size=kill_ring_size,
            validate=validate,
        )
        self.completion = CompletionEngine(source, whole_line_prefixes=whole_line_prefixes)
        self.history_search = HistorySearch()
        self.keybindings = EditorKeybindingsManager(keybindings)

        self.prompt = prompt
        self.completion_box_height = completion_box_height
        self.history_box_height = history_box_height
        self.theme = theme

        self._suggestions: list[str] = []

        # Partial escape sequences and pastes carried between reads
        self._input = InputBuffer()

    @classmethod
    def from_settings(
        cls,
        settings: SettingsManager,
        *,
        source: CompletionSource | None = None,
        registry: CompletionSpecRegistry | None = None,
        functions: ShellFunctionRunner | None = None,
        validate: ValidateFunc | None = None,
        theme: EditorTheme | None = None,
    ) -> LineEditor:
        """Build an editor from settings.

        Without an explicit *source*, a registry yields a
        :class:`~shline.source.SpecCompletionSource` using the configured
        completer timeout and global completer.
        """
        if source is None and registry is not None:
            source = SpecCompletionSource(
                registry,
                completer=SubprocessCompleterRunner(settings.get_completer_timeout()),
                functions=functions,
                global_completer=settings.get_global_completer(),
            )

        return cls(
            source=source,
            keybindings=settings.get_keybindings(),  # type: ignore[arg-type]
            char_limit=settings.get_char_limit(),
            kill_ring_size=settings.get_kill_ring_size(),
            whole_line_prefixes=settings.get_whole_line_prefixes(),
            validate=validate,
            prompt=settings.get_prompt(),
            completion_box_height=settings.get_completion_box_height(),
            history_box_height=settings.get_history_box_height(),
            theme=theme,
        )

    # -- State accessors -----------------------------------------------------

    @property
    def value(self) -> str:
        return self.buffer.value

    @property
    def cursor(self) -> int:
        return self.buffer.position

    @property
    def err(self) -> Exception | None:
        return self.buffer.err

    @property
    def in_history_search(self) -> bool:
        return self.history_search.active

    def set_value(self, text: str) -> None:
        self.buffer.set_value(text)

    def set_history(self, items: Sequence[HistoryItem], current_directory: str = "") -> None:
        """Supply history (newest first) for Up/Down and reverse search."""
        self.buffer.set_history_values([item.command for item in items])
        self.history_search.set_items(items)
        self.history_search.set_current_directory(current_directory)

    def set_suggestions(self, suggestions: Sequence[str]) -> None:
        """Candidates for the inline ghost suggestion."""
        self._suggestions = list(suggestions)

    def reset(self) -> None:
        """Clear the line and any completion or search state. History stays."""
        values = self.buffer.values[1:]
        self.buffer.reset()
        self.buffer.set_history_values(values)
        self.completion.reset()
        self.completion.state.help_text = ""
        if self.history_search.active:
            self.history_search.cancel()

    # -- Input ---------------------------------------------------------------

    def handle_input(self, data: str) -> RenderEffects:
        """Feed raw terminal data, which may hold several keys or part of one."""
        effects = RenderEffects()
        for chunk in self._input.feed(data):
            event = PasteEvent(chunk.text) if chunk.paste else KeyEvent.from_data(chunk.text)
            effects = effects.merge(self.apply_event(event))
        return effects

    def apply_event(self, event: InputEvent) -> RenderEffects:
        """Apply one input event and report what the host should do."""
        if self.history_search.active:
            return self._handle_search_event(event)

        before = (self.buffer.value, self.buffer.position)

        if isinstance(event, PasteEvent):
            self.completion.reset()
            self.buffer.insert_text(event.text)
            effects = RenderEffects()
        else:
            effects = self._handle_key(event)

        self.completion.update_help(self.buffer.value, self.buffer.position)
        effects.changed = effects.changed or before != (self.buffer.value, self.buffer.position)
        return effects

    def _handle_key(self, event: KeyEvent) -> RenderEffects:
        kb = self.keybindings
        key = event.key

        if self.completion.active:
            if kb.matches(key, "cancel"):
                self.completion.cancel(self.buffer)
                return RenderEffects(changed=True)
            if kb.matches(key, "submit"):
                if self.completion.accept():
                    return RenderEffects(changed=True)
                self.completion.reset()
            elif not (kb.matches(key, "complete") or kb.matches(key, "completePrevious")):
                self.completion.reset()

        if kb.matches(key, "complete"):
            self.completion.complete(self.buffer)
            return RenderEffects()

        if kb.matches(key, "completePrevious"):
            self.completion.complete_previous(self.buffer)
            return RenderEffects()

        if kb.matches(key, "submit"):
            return RenderEffects(submitted=self.buffer.value)

        if kb.matches(key, "cancel"):
            return RenderEffects(cancelled=True)

        if kb.matches(key, "clearScreen"):
            return RenderEffects(clear_screen=True)

        if kb.matches(key, "reverseSearch"):
            self.history_search.start()
            return RenderEffects(changed=True)

        if self._handle_edit_action(key):
            return RenderEffects()

        if event.text:
            self.buffer.insert_text(event.text)

        return RenderEffects()

    def _handle_edit_action(self, key: KeyId | None) -> bool:
        kb = self.keybindings
        buf = self.buffer

        if kb.matches(key, "cursorRight"):
            if buf.position == len(buf.value) and self.ghost_suggestion() is not None:
                self._accept_ghost()
            else:
                buf.move_char_right()
            return True

        actions: tuple[tuple[str, Callable[[], None]], ...] = (
            ("deleteCharBackward", buf.delete_char_backward),
            ("deleteCharForward", buf.delete_char_forward),
            ("deleteWordBackward", buf.delete_word_backward),
            ("deleteWordForward", buf.delete_word_forward),
            ("deleteToLineStart", buf.delete_to_line_start),
            ("deleteToLineEnd", buf.delete_to_line_end),
            ("yank", buf.yank),
            ("yankPop", buf.yank_pop),
            ("cursorLeft", buf.move_char_left),
            ("cursorWordLeft", buf.move_word_left),
            ("cursorWordRight", buf.move_word_right),
            ("cursorLineStart", buf.move_to_line_start),
            ("cursorLineEnd", buf.move_to_line_end),
            ("historyOlder", buf.history_older),
            ("historyNewer", buf.history_newer),
        )
        for action, handler in actions:
            if kb.matches(key, action):  # type: ignore[arg-type]
                handler()
                return True
        return False

    def _handle_search_event(self, event: InputEvent) -> RenderEffects:
        search = self.history_search
        kb = self.keybindings

        if isinstance(event, PasteEvent):
            search.append_query(event.text)
            return RenderEffects(changed=True)

        key = event.key
        if kb.matches(key, "searchAccept"):
            command = search.accept()
            if command is not None:
                self.buffer.set_value(command)
                self.buffer.set_cursor(len(self.buffer.value))
        elif kb.matches(key, "searchCancel"):
            search.cancel()
        elif kb.matches(key, "searchUp"):
            search.up()
        elif kb.matches(key, "searchDown") or kb.matches(key, "reverseSearch"):
            search.down()
        elif kb.matches(key, "searchToggleFilter"):
            search.toggle_filter()
        elif kb.matches(key, "searchToggleSort"):
            search.toggle_sort()
        elif kb.matches(key, "deleteCharBackward"):
            search.backspace_query()
        elif event.text:
            search.append_query(event.text)
        else:
            return RenderEffects()
        return RenderEffects(changed=True)

    # -- Ghost suggestions ---------------------------------------------------

    def ghost_suggestion(self) -> str | None:
        """The first suggestion extending the draft, ignoring case."""
        value = self.buffer.value
        if not value or self.buffer.suppress_suggestions or self.completion.active:
            return None
        lowered = value.lower()
        for suggestion in self._suggestions:
            if len(suggestion) > len(value) and suggestion.lower().startswith(lowered):
                return suggestion
        return None

    def _accept_ghost(self) -> None:
        suggestion = self.ghost_suggestion()
        if suggestion is None:
            return
        value = self.buffer.value
        self.buffer.insert_text(suggestion[len(value) :])

    # -- Views ---------------------------------------------------------------

    def view(self) -> str:
        """The prompt line: prompt, text, then any ghost or suffix hint."""
        if self.history_search.active:
            return self.reverse_search_prompt_view()

        prompt_style = self.theme.prompt if self.theme else _identity
        ghost_style = self.theme.ghost if self.theme else _identity

        value = self.buffer.value
        line = prompt_style(self.prompt) + value

        current = self.completion.state.current
        if current is not None and current.suffix:
            line += ghost_style(current.suffix)
        elif self.buffer.position == len(value):
            ghost = self.ghost_suggestion()
            if ghost is not None:
                line += ghost_style(ghost[len(value) :])
        return line

    def completion_box_view(self, height: int | None = None, width: int = 0) -> list[str]:
        return render_completion_box(
            self.completion.state,
            height if height is not None else self.completion_box_height,
            width,
            self.theme,
        )

    def help_box_view(self) -> str:
        return self.completion.state.help_text

    def reverse_search_prompt_view(self) -> str:
        if not self.history_search.active:
            return ""
        return self.history_search.prompt_line()

    def history_search_box_view(
        self,
        height: int | None = None,
        width: int = 80,
        now: datetime | None = None,
    ) -> list[str]:
        return self.history_search.render_box(
            height if height is not None else self.history_box_height,
            width,
            self.theme,
            now,
        )


def _identity(text: str) -> str:
    return text
