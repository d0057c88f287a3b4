"""External completer protocol.

An external completer is an arbitrary program run through ``sh -c`` with a
bash/zsh-compatible context:

* ``$1`` is the command being completed, ``$2`` the word under the cursor and
  ``$3`` the word before it (empty when there is none).
* ``COMP_LINE``, ``COMP_POINT``, ``COMP_KEY=9`` and ``COMP_TYPE=9`` for bash
  style consumers; ``BUFFER``, ``CURSOR``, ``LBUFFER`` and ``RBUFFER`` for zsh
  style ones.

Any failure (spawn error, non-zero exit, timeout) yields no candidates.
Output is parsed by :func:`parse_completer_output`, which never raises.
"""

from __future__ import annotations

import asyncio
import contextlib
import json
import logging
import os
import signal
import subprocess
from typing import Any, Callable, Protocol, Sequence

from shline.completion import CompletionCandidate

logger = logging.getLogger(__name__)

DEFAULT_COMPLETER_TIMEOUT = 2.0
_REAP_TIMEOUT = 0.5

# ASCII TAB, the key that triggered completion
_COMP_KEY_TAB = "9"


# ---------------------------------------------------------------------------
# Invocation contract
# ---------------------------------------------------------------------------


def build_completer_args(command: str, args: Sequence[str]) -> list[str]:
    """Build the argv for running *command* with positional completion args."""
    arg1 = arg2 = arg3 = ""
    if args:
        arg1 = args[0]
        arg2 = args[-1]
        if len(args) > 1:
            arg3 = args[-2]
    return ["sh", "-c", f'{command} "$@"', "--", arg1, arg2, arg3]


def build_completer_env(
    line: str,
    cursor: int,
    base: dict[str, str] | None = None,
) -> dict[str, str]:
    """Environment for an external completer: *base* (default ``os.environ``)
    plus the completion variables."""
    env = dict(os.environ if base is None else base)
    env.update(
        {
            "COMP_LINE": line,
            "COMP_POINT": str(cursor),
            "COMP_KEY": _COMP_KEY_TAB,
            "COMP_TYPE": _COMP_KEY_TAB,
            "BUFFER": line,
            "CURSOR": str(cursor),
        }
    )
    if cursor <= len(line):
        env["LBUFFER"] = line[:cursor]
    if cursor < len(line):
        env["RBUFFER"] = line[cursor:]
    return env


# ---------------------------------------------------------------------------
# Output parsing
# ---------------------------------------------------------------------------

ParseAttempt = Callable[[str], "list[CompletionCandidate] | None"]


def _loads(text: str) -> Any:
    try:
        return json.loads(text)
    except json.JSONDecodeError:
        return None


def _candidate_from_object(obj: Any) -> CompletionCandidate | None:
    if not isinstance(obj, dict):
        return None
    value = obj.get("Value", "")
    display = obj.get("Display")
    description = obj.get("Description")
    if not isinstance(value, str):
        return None
    return CompletionCandidate(
        value=value,
        display=display if isinstance(display, str) and display else None,
        description=description if isinstance(description, str) and description else None,
    )


def _parse_string_list(text: str) -> list[CompletionCandidate] | None:
    data = _loads(text)
    if not isinstance(data, list) or not all(isinstance(s, str) for s in data):
        return None
    return [CompletionCandidate(value=s) for s in data]


def _parse_object_list(text: str) -> list[CompletionCandidate] | None:
    data = _loads(text)
    if not isinstance(data, list):
        return None
    candidates = [_candidate_from_object(o) for o in data]
    if any(c is None for c in candidates):
        return None
    return [c for c in candidates if c is not None]


def _parse_object(text: str) -> list[CompletionCandidate] | None:
    candidate = _candidate_from_object(_loads(text))
    if candidate is None or not candidate.value:
        return None
    return [candidate]


def _non_empty(attempt: ParseAttempt) -> ParseAttempt:
    def wrapped(text: str) -> list[CompletionCandidate] | None:
        result = attempt(text)
        return result if result else None

    return wrapped


# Whole-output attempts (carapace style JSON)
WHOLE_OUTPUT_ATTEMPTS: tuple[ParseAttempt, ...] = (
    _parse_string_list,
    _parse_object_list,
)

# Per-line JSON attempts; a line that fails all of them is parsed as plain text
LINE_JSON_ATTEMPTS: tuple[ParseAttempt, ...] = (
    _parse_object,
    _non_empty(_parse_object_list),
    _non_empty(_parse_string_list),
)


def _first_success(
    attempts: Sequence[ParseAttempt], text: str
) -> list[CompletionCandidate] | None:
    for attempt in attempts:
        result = attempt(text)
        if result is not None:
            return result
    return None


def parse_completer_line(line: str) -> list[CompletionCandidate]:
    """Parse one trimmed, non-blank output line."""
    if line.startswith(("{", "[")):
        parsed = _first_success(LINE_JSON_ATTEMPTS, line)
        if parsed is not None:
            return parsed

    if "\t" in line:
        value, description = line.split("\t", 1)
    elif ":" in line:
        value, description = line.split(":", 1)
    else:
        return [CompletionCandidate(value=line)]
    return [CompletionCandidate(value=value, description=description or None)]


def parse_completer_output(output: str) -> list[CompletionCandidate]:
    """Parse external completer stdout into candidates.

    Whole-output JSON (array of strings, then array of objects) wins; otherwise
    each non-blank line is parsed on its own, so a malformed line degrades to
    a plain value instead of failing the batch.
    """
    trimmed = output.strip()
    if not trimmed:
        return []

    if trimmed.startswith(("[", "{")):
        parsed = _first_success(WHOLE_OUTPUT_ATTEMPTS, trimmed)
        if parsed is not None:
            return parsed

    candidates: list[CompletionCandidate] = []
    for raw in output.split("\n"):
        line = raw.strip()
        if line:
            candidates.extend(parse_completer_line(line))
    return candidates


# ---------------------------------------------------------------------------
# Runners
# ---------------------------------------------------------------------------


class ExternalCompleterRunner(Protocol):
    """Runs an external completer and returns its parsed candidates."""

    def run(
        self, command: str, args: Sequence[str], line: str, cursor: int
    ) -> list[CompletionCandidate]: ...


class SubprocessCompleterRunner:
    """Runs external completers with a bounded timeout.

    ``run`` blocks (``subprocess.run``); ``run_async`` is for hosts driven by
    an asyncio loop and kills the completer's process group on timeout or
    cancellation.
    """

    def __init__(self, timeout: float = DEFAULT_COMPLETER_TIMEOUT) -> None:
        self.timeout = timeout

    def run(
        self, command: str, args: Sequence[str], line: str, cursor: int
    ) -> list[CompletionCandidate]:
        argv = build_completer_args(command, args)
        logger.debug("running completer: %s", argv)
        try:
            result = subprocess.run(
                argv,
                capture_output=True,
                env=build_completer_env(line, cursor),
                timeout=self.timeout,
            )
        except subprocess.TimeoutExpired:
            logger.warning("completer %r timed out after %ss", command, self.timeout)
            return []
        except OSError as e:
            logger.warning("completer %r failed to start: %s", command, e)
            return []

        if result.returncode != 0:
            logger.warning("completer %r exited with status %d", command, result.returncode)
            return []
        return parse_completer_output(result.stdout.decode("utf-8", errors="replace"))

    async def run_async(
        self, command: str, args: Sequence[str], line: str, cursor: int
    ) -> list[CompletionCandidate]:
        argv = build_completer_args(command, args)
        logger.debug("running completer: %s", argv)
        try:
            process = await asyncio.create_subprocess_exec(
                *argv,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.DEVNULL,
                env=build_completer_env(line, cursor),
                start_new_session=True,
            )
        except OSError as e:
            logger.warning("completer %r failed to start: %s", command, e)
            return []

        try:
            stdout, _ = await asyncio.wait_for(process.communicate(), timeout=self.timeout)
        except asyncio.TimeoutError:
            await _kill_process_group(process)
            logger.warning("completer %r timed out after %ss", command, self.timeout)
            return []
        except asyncio.CancelledError:
            await _kill_process_group(process)
            raise

        if process.returncode != 0:
            logger.warning("completer %r exited with status %s", command, process.returncode)
            return []
        return parse_completer_output(stdout.decode("utf-8", errors="replace"))


async def _kill_process_group(process: asyncio.subprocess.Process) -> None:
    # The completer may have forked children that still hold the pipes.
    with contextlib.suppress(ProcessLookupError, PermissionError):
        os.killpg(process.pid, signal.SIGKILL)
    with contextlib.suppress(asyncio.TimeoutError):
        await asyncio.wait_for(process.wait(), timeout=_REAP_TIMEOUT)
