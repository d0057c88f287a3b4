"""Editor keybindings manager."""

from __future__ import annotations

from typing import Literal

from shline.keys import KeyId

EditorAction = Literal[
    # Cursor movement
    "cursorLeft",
    "cursorRight",
    "cursorWordLeft",
    "cursorWordRight",
    "cursorLineStart",
    "cursorLineEnd",
    # History navigation
    "historyOlder",
    "historyNewer",
    # Deletion
    "deleteCharBackward",
    "deleteCharForward",
    "deleteWordBackward",
    "deleteWordForward",
    "deleteToLineStart",
    "deleteToLineEnd",
    # Kill ring
    "yank",
    "yankPop",
    # Completion
    "complete",
    "completePrevious",
    # Submission / cancel
    "submit",
    "cancel",
    "clearScreen",
    # Reverse history search
    "reverseSearch",
    "searchUp",
    "searchDown",
    "searchToggleFilter",
    "searchToggleSort",
    "searchAccept",
    "searchCancel",
]

EditorKeybindingsConfig = dict[EditorAction, KeyId | list[KeyId]]

DEFAULT_EDITOR_KEYBINDINGS: dict[EditorAction, KeyId | list[KeyId]] = {
    # Cursor movement
    "cursorLeft": ["left", "ctrl+b"],
    "cursorRight": ["right", "ctrl+f"],
    "cursorWordLeft": ["alt+left", "ctrl+left", "alt+b"],
    "cursorWordRight": ["alt+right", "ctrl+right", "alt+f"],
    "cursorLineStart": ["home", "ctrl+a"],
    "cursorLineEnd": ["end", "ctrl+e"],
    # History navigation
    "historyOlder": ["up", "ctrl+p"],
    "historyNewer": ["down", "ctrl+n"],
    # Deletion
    "deleteCharBackward": ["backspace", "ctrl+h"],
    "deleteCharForward": ["delete", "ctrl+d"],
    "deleteWordBackward": ["ctrl+w", "alt+backspace"],
    "deleteWordForward": ["alt+d", "alt+delete"],
    "deleteToLineStart": "ctrl+u",
    "deleteToLineEnd": "ctrl+k",
    # Kill ring
    "yank": "ctrl+y",
    "yankPop": "alt+y",
    # Completion
    "complete": "tab",
    "completePrevious": "shift+tab",
    # Submission / cancel
    "submit": "enter",
    "cancel": "escape",
    "clearScreen": "ctrl+l",
    # Reverse history search
    "reverseSearch": "ctrl+r",
    "searchUp": ["up", "ctrl+p"],
    "searchDown": ["down", "ctrl+n"],
    "searchToggleFilter": "ctrl+f",
    "searchToggleSort": "ctrl+o",
    "searchAccept": ["enter", "left", "right"],
    "searchCancel": ["escape", "ctrl+g", "ctrl+c"],
}


def _as_list(keys: KeyId | list[KeyId]) -> list[KeyId]:
    return list(keys) if isinstance(keys, list) else [keys]


class EditorKeybindingsManager:
    """Resolves key ids to editor actions.

    A user config entry replaces every default key of that action; actions it
    does not mention keep their defaults.
    """

    def __init__(self, config: EditorKeybindingsConfig | None = None) -> None:
        self._keys: dict[EditorAction, list[KeyId]] = {}
        self.set_config(config or {})

    def set_config(self, config: EditorKeybindingsConfig) -> None:
        merged = {**DEFAULT_EDITOR_KEYBINDINGS, **config}
        self._keys = {action: _as_list(keys) for action, keys in merged.items()}

    def matches(self, key: KeyId | None, action: EditorAction) -> bool:
        """Whether *key* triggers *action*, ignoring case."""
        if not key:
            return False
        wanted = key.lower()
        return any(k.lower() == wanted for k in self._keys.get(action, ()))

    def get_keys(self, action: EditorAction) -> list[KeyId]:
        return list(self._keys.get(action, []))
