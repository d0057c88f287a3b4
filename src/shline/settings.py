"""Hierarchical editor settings loaded from JSON files.

Precedence: overrides > project settings > global settings.
"""

from __future__ import annotations

import json
import logging
import os
from pathlib import Path
from typing import Any

from shline.completion import DEFAULT_COMPLETION_BOX_HEIGHT, DEFAULT_WHOLE_LINE_PREFIXES
from shline.external import DEFAULT_COMPLETER_TIMEOUT
from shline.history_search import DEFAULT_HISTORY_BOX_HEIGHT
from shline.kill_ring import DEFAULT_KILL_RING_SIZE

logger = logging.getLogger(__name__)

CONFIG_DIR_NAME = ".shline"
GLOBAL_COMPLETER_ENV = "SHLINE_COMPLETION_COMMAND"
DEFAULT_PROMPT = "> "


def deep_merge_settings(base: dict[str, Any], overrides: dict[str, Any]) -> dict[str, Any]:
    """Return *base* updated with *overrides*, merging nested dicts key by key.

    Lists and scalars are replaced wholesale; ``None`` in *overrides* means
    "not set" and leaves the base value alone.
    """
    result = dict(base)
    for key, override in overrides.items():
        if override is None:
            continue
        current = result.get(key)
        if isinstance(current, dict) and isinstance(override, dict):
            override = deep_merge_settings(current, override)
        result[key] = override
    return result


class SettingsManager:
    """Editor settings merged from a global and a per-project JSON file.

    Build instances with :meth:`create` or :meth:`in_memory`. A file that
    cannot be read leaves its layer empty and is reported via
    :attr:`load_error`; it never raises.
    """

    def __init__(
        self,
        *,
        settings_path: str | None,
        project_settings_path: str | None,
        initial_settings: dict[str, Any],
        load_error: Exception | None = None,
    ) -> None:
        self._settings_path = settings_path
        self._project_settings_path = project_settings_path
        self._global_settings = dict(initial_settings)
        self._load_error = load_error

        project = self._load_project_settings()
        self._settings = deep_merge_settings(self._global_settings, project)

    # -- Construction --

    @classmethod
    def create(cls, cwd: str, config_dir: str | None = None) -> SettingsManager:
        """Load ``<config_dir>/settings.json`` and ``<cwd>/.shline/settings.json``."""
        cdir = config_dir or _default_config_dir()
        settings_path = os.path.join(cdir, "settings.json")
        project_settings_path = os.path.join(cwd, CONFIG_DIR_NAME, "settings.json")

        settings, error = _load_from_file(settings_path)
        return cls(
            settings_path=settings_path,
            project_settings_path=project_settings_path,
            initial_settings=settings,
            load_error=error,
        )

    @classmethod
    def in_memory(cls, settings: dict[str, Any] | None = None) -> SettingsManager:
        """Settings that never touch the filesystem."""
        return cls(
            settings_path=None,
            project_settings_path=None,
            initial_settings=settings or {},
        )

    # -- Loading --

    def reload(self) -> None:
        """Re-read both settings files."""
        if self._settings_path:
            self._global_settings, self._load_error = _load_from_file(self._settings_path)
        project = self._load_project_settings()
        self._settings = deep_merge_settings(self._global_settings, project)

    def apply_overrides(self, overrides: dict[str, Any]) -> None:
        self._settings = deep_merge_settings(self._settings, overrides)

    @property
    def settings(self) -> dict[str, Any]:
        """The merged settings dict. Treat as read-only."""
        return self._settings

    @property
    def load_error(self) -> Exception | None:
        return self._load_error

    def _load_project_settings(self) -> dict[str, Any]:
        if not self._project_settings_path:
            return {}
        settings, _ = _load_from_file(self._project_settings_path)
        return settings

    # -- Typed accessors --

    def get_char_limit(self) -> int:
        return int(self._settings.get("charLimit", 0))

    def get_kill_ring_size(self) -> int:
        return int(self._settings.get("killRingSize", DEFAULT_KILL_RING_SIZE))

    def get_completer_timeout(self) -> float:
        return float(self._settings.get("completerTimeout", DEFAULT_COMPLETER_TIMEOUT))

    def get_whole_line_prefixes(self) -> list[str]:
        return list(self._settings.get("wholeLinePrefixes", DEFAULT_WHOLE_LINE_PREFIXES))

    def get_completion_box_height(self) -> int:
        return int(self._settings.get("completionBoxHeight", DEFAULT_COMPLETION_BOX_HEIGHT))

    def get_history_box_height(self) -> int:
        return int(self._settings.get("historyBoxHeight", DEFAULT_HISTORY_BOX_HEIGHT))

    def get_global_completer(self) -> str | None:
        """Fallback completer command; the environment variable wins."""
        return os.environ.get(GLOBAL_COMPLETER_ENV) or self._settings.get("globalCompleter")

    def get_keybindings(self) -> dict[str, str | list[str]]:
        return dict(self._settings.get("keybindings") or {})

    def get_prompt(self) -> str:
        return self._settings.get("prompt", DEFAULT_PROMPT)


# -- Helpers --


def _load_from_file(path: str) -> tuple[dict[str, Any], Exception | None]:
    """Read one JSON settings file as ``(settings, error)``; a missing file is
    ``({}, None)``."""
    if not os.path.exists(path):
        return {}, None
    try:
        data = json.loads(Path(path).read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as e:
        logger.warning("could not load settings from %s: %s", path, e)
        return {}, e
    if not isinstance(data, dict):
        error = ValueError(f"settings file {path} must contain a JSON object")
        logger.warning("%s", error)
        return {}, error
    return data, None


def _default_config_dir() -> str:
    """Default config directory (~/.shline)."""
    return os.path.join(os.path.expanduser("~"), CONFIG_DIR_NAME)
