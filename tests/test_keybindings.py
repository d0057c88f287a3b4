"""Tests for shline.keybindings -- action lookup and user overrides."""

from __future__ import annotations

from shline.keybindings import DEFAULT_EDITOR_KEYBINDINGS, EditorKeybindingsManager


class TestDefaultEditorKeybindings:
    def test_completion_actions(self):
        assert DEFAULT_EDITOR_KEYBINDINGS["complete"] == "tab"
        assert DEFAULT_EDITOR_KEYBINDINGS["completePrevious"] == "shift+tab"

    def test_kill_ring_actions(self):
        assert DEFAULT_EDITOR_KEYBINDINGS["yank"] == "ctrl+y"
        assert DEFAULT_EDITOR_KEYBINDINGS["yankPop"] == "alt+y"

    def test_search_actions_present(self):
        for action in [
            "reverseSearch", "searchUp", "searchDown",
            "searchToggleFilter", "searchToggleSort",
            "searchAccept", "searchCancel",
        ]:
            assert action in DEFAULT_EDITOR_KEYBINDINGS, f"Missing action: {action}"


class TestEditorKeybindingsManager:
    def test_default_matches(self):
        kb = EditorKeybindingsManager()
        assert kb.matches("ctrl+w", "deleteWordBackward")
        assert kb.matches("alt+backspace", "deleteWordBackward")
        assert not kb.matches("ctrl+w", "deleteWordForward")

    def test_matching_is_case_insensitive(self):
        assert EditorKeybindingsManager().matches("CTRL+Y", "yank")

    def test_none_key_never_matches(self):
        assert not EditorKeybindingsManager().matches(None, "submit")

    def test_override_replaces_keys(self):
        kb = EditorKeybindingsManager({"submit": "ctrl+j"})
        assert kb.matches("ctrl+j", "submit")
        assert not kb.matches("enter", "submit")
        assert kb.matches("tab", "complete")

    def test_override_accepts_list(self):
        kb = EditorKeybindingsManager({"cancel": ["ctrl+g", "escape"]})
        assert kb.get_keys("cancel") == ["ctrl+g", "escape"]

    def test_set_config_rebuilds_from_defaults(self):
        kb = EditorKeybindingsManager({"yank": "ctrl+v"})
        kb.set_config({})
        assert kb.get_keys("yank") == ["ctrl+y"]

    def test_unknown_action(self):
        kb = EditorKeybindingsManager()
        assert kb.get_keys("nonexistent") == []  # type: ignore[arg-type]
        assert not kb.matches("tab", "nonexistent")  # type: ignore[arg-type]
