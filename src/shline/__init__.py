"""shline: line editing and completion core for interactive shells."""

# Text buffer
from shline.buffer import TextBuffer

# Completion engine
from shline.completion import (
    CompletionBoxLayout,
    CompletionCandidate,
    CompletionEngine,
    CompletionSource,
    CompletionState,
    layout_completion_box,
    longest_common_prefix,
    render_completion_box,
)

# Line editor
from shline.editor import (
    EditorTheme,
    KeyEvent,
    LineEditor,
    PasteEvent,
    RenderEffects,
)

# External completers
from shline.external import (
    ExternalCompleterRunner,
    SubprocessCompleterRunner,
    build_completer_args,
    build_completer_env,
    parse_completer_output,
)

# Fuzzy matching
from shline.fuzzy import FuzzyMatch, RankedMatch, fuzzy_find, fuzzy_match

# History search
from shline.history_search import (
    HistoryFilterMode,
    HistoryItem,
    HistorySearch,
    HistorySortMode,
)

# Raw input splitting
from shline.input_buffer import InputBuffer, InputChunk, split_sequences

# Keybindings
from shline.keybindings import (
    DEFAULT_EDITOR_KEYBINDINGS,
    EditorAction,
    EditorKeybindingsManager,
)

# Keyboard input handling
from shline.keys import Key, KeyId, parse_key

# Kill ring
from shline.kill_ring import KillRing

# Settings
from shline.settings import SettingsManager, deep_merge_settings

# Spec-backed completion source
from shline.source import SpecCompletionSource, split_preserving_quotes

# Completion specs
from shline.specs import (
    CompleteCommandError,
    CompletionKind,
    CompletionSpec,
    CompletionSpecRegistry,
    ShellFunctionError,
    ShellFunctionRunner,
    compgen_command,
    complete_command,
    evaluate_spec,
    format_spec,
    run_compgen_command,
    run_complete_command,
)

# Utilities
from shline.utils import truncate_to_width, visible_width

__all__ = [
    # Buffer
    "TextBuffer",
    # Completion
    "CompletionBoxLayout",
    "CompletionCandidate",
    "CompletionEngine",
    "CompletionSource",
    "CompletionState",
    "layout_completion_box",
    "longest_common_prefix",
    "render_completion_box",
    # Editor
    "EditorTheme",
    "KeyEvent",
    "LineEditor",
    "PasteEvent",
    "RenderEffects",
    # External completers
    "ExternalCompleterRunner",
    "SubprocessCompleterRunner",
    "build_completer_args",
    "build_completer_env",
    "parse_completer_output",
    # Fuzzy
    "FuzzyMatch",
    "RankedMatch",
    "fuzzy_find",
    "fuzzy_match",
    # History search
    "HistoryFilterMode",
    "HistoryItem",
    "HistorySearch",
    "HistorySortMode",
    # Input buffer
    "InputBuffer",
    "InputChunk",
    "split_sequences",
    # Keybindings
    "DEFAULT_EDITOR_KEYBINDINGS",
    "EditorAction",
    "EditorKeybindingsManager",
    # Keys
    "Key",
    "KeyId",
    "parse_key",
    # Kill ring
    "KillRing",
    # Settings
    "SettingsManager",
    "deep_merge_settings",
    # Source
    "SpecCompletionSource",
    "split_preserving_quotes",
    # Specs
    "CompleteCommandError",
    "CompletionKind",
    "CompletionSpec",
    "CompletionSpecRegistry",
    "ShellFunctionError",
    "ShellFunctionRunner",
    "compgen_command",
    "complete_command",
    "evaluate_spec",
    "format_spec",
    "run_compgen_command",
    "run_complete_command",
    # Utilities
    "truncate_to_width",
    "visible_width",
]
