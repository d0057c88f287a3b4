"""Completion spec registry and the ``complete`` / ``compgen`` builtins."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Protocol, Sequence

from shline.completion import CompletionCandidate
from shline.external import ExternalCompleterRunner

logger = logging.getLogger(__name__)


class CompletionKind(str, Enum):
    WORD_LIST = "W"
    FUNCTION = "F"
    COMMAND = "C"


@dataclass
class CompletionSpec:
    command: str
    kind: CompletionKind
    value: str
    options: list[str] = field(default_factory=list)


class CompleteCommandError(ValueError):
    """Bad usage of ``complete`` or ``compgen``."""


class ShellFunctionError(RuntimeError):
    """A shell completion function could not be run."""


class ShellFunctionRunner(Protocol):
    """Runs a shell completion function and returns its reply words."""

    def call(self, function: str, args: Sequence[str]) -> list[str]: ...


# ---------------------------------------------------------------------------
# Registry
# ---------------------------------------------------------------------------


class CompletionSpecRegistry:
    """Mapping of command name to completion spec. Last write wins."""

    def __init__(self) -> None:
        self._specs: dict[str, CompletionSpec] = {}

    def add(self, spec: CompletionSpec) -> None:
        self._specs[spec.command] = spec

    def remove(self, command: str) -> None:
        self._specs.pop(command, None)

    def get(self, command: str) -> tuple[CompletionSpec | None, bool]:
        spec = self._specs.get(command)
        return spec, spec is not None

    def list(self) -> list[CompletionSpec]:
        return list(self._specs.values())

    def __len__(self) -> int:
        return len(self._specs)


# ---------------------------------------------------------------------------
# Evaluation
# ---------------------------------------------------------------------------


def filter_by_prefix(words: Sequence[str], prefix: str) -> list[str]:
    """Words starting with *prefix*; an empty prefix keeps everything."""
    if not prefix:
        return list(words)
    return [w for w in words if w.startswith(prefix)]


def evaluate_spec(
    spec: CompletionSpec,
    args: Sequence[str],
    line: str,
    cursor: int,
    *,
    functions: ShellFunctionRunner | None = None,
    completer: ExternalCompleterRunner | None = None,
) -> list[CompletionCandidate]:
    """Produce candidates for *spec*.

    ``args`` are the words of the line up to the cursor; the last one is the
    word being completed. Function output is returned as the function gave it,
    without prefix filtering.

    Raises:
        ShellFunctionError: the function runner failed.
    """
    logger.debug("evaluating %s spec for %r", spec.kind.name, spec.command)

    if spec.kind is CompletionKind.WORD_LIST:
        current = args[-1] if args else ""
        return [CompletionCandidate(value=w) for w in filter_by_prefix(spec.value.split(), current)]

    if spec.kind is CompletionKind.FUNCTION:
        if functions is None:
            raise ShellFunctionError(f"no shell available to run {spec.value}")
        return [CompletionCandidate(value=w) for w in functions.call(spec.value, args)]

    if completer is None:
        return []
    return completer.run(spec.value, args, line, cursor)


# ---------------------------------------------------------------------------
# complete / compgen
# ---------------------------------------------------------------------------

_OPERAND_ERRORS = {
    "-W": "option -W requires a word list",
    "-F": "option -F requires a function name",
    "-C": "option -C requires a command",
}


def quote(value: str) -> str:
    """Double-quote *value* with backslash escapes, re-enterable by the shell."""
    return json.dumps(value, ensure_ascii=False)


def format_spec(spec: CompletionSpec) -> str:
    """Render *spec* as the ``complete`` command that recreates it."""
    if spec.kind is CompletionKind.WORD_LIST:
        return f"complete -W {quote(spec.value)} {spec.command}"
    if spec.kind is CompletionKind.FUNCTION:
        return f"complete -F {spec.value} {spec.command}"
    return f"complete -C {quote(spec.value)} {spec.command}"


def _print_specs(registry: CompletionSpecRegistry, command: str) -> str:
    if command:
        spec, found = registry.get(command)
        return format_spec(spec) + "\n" if found and spec else ""
    return "".join(format_spec(s) + "\n" for s in registry.list())


def complete_command(registry: CompletionSpecRegistry, args: Sequence[str]) -> str:
    """Run the ``complete`` builtin with *args* (without the command name).

    Returns the text to print.

    Raises:
        CompleteCommandError: on bad usage; the registry is left untouched.
    """
    if not args:
        return _print_specs(registry, "")

    print_mode = False
    remove_mode = False
    operands: dict[str, str] = {}
    command = ""

    i = 0
    while i < len(args):
        arg = args[i]
        if arg == "-p":
            print_mode = True
        elif arg == "-r":
            remove_mode = True
        elif arg in _OPERAND_ERRORS:
            if i + 1 >= len(args):
                raise CompleteCommandError(_OPERAND_ERRORS[arg])
            i += 1
            operands[arg] = args[i]
        elif not arg.startswith("-"):
            command = arg
        else:
            raise CompleteCommandError(f"unknown option: {arg}")
        i += 1

    if not command and not print_mode:
        raise CompleteCommandError("no command specified")

    if print_mode:
        return _print_specs(registry, command)

    if remove_mode:
        registry.remove(command)
        return ""

    for flag, kind in (
        ("-W", CompletionKind.WORD_LIST),
        ("-F", CompletionKind.FUNCTION),
        ("-C", CompletionKind.COMMAND),
    ):
        if operands.get(flag):
            registry.add(CompletionSpec(command=command, kind=kind, value=operands[flag]))
            return ""

    raise CompleteCommandError("invalid complete command usage")


def compgen_command(
    args: Sequence[str],
    functions: ShellFunctionRunner | None = None,
) -> str:
    """Run the ``compgen`` builtin: print matches for ``-W`` or ``-F``, one per line.

    Raises:
        CompleteCommandError: on bad usage or when the function fails.
    """
    if not args:
        raise CompleteCommandError("compgen: no options specified")

    word_list = ""
    function = ""
    word = ""

    i = 0
    while i < len(args):
        arg = args[i]
        if arg in ("-W", "-F"):
            if i + 1 >= len(args):
                raise CompleteCommandError(_OPERAND_ERRORS[arg])
            i += 1
            if arg == "-W":
                word_list = args[i]
            else:
                function = args[i]
        elif not arg.startswith("-"):
            word = arg
        else:
            raise CompleteCommandError(f"unknown option: {arg}")
        i += 1

    if word_list:
        matches = filter_by_prefix(word_list.split(), word)
    elif function:
        if functions is None:
            raise CompleteCommandError(f"compgen: no shell available to run {function}")
        try:
            replies = functions.call(function, [word])
        except ShellFunctionError as e:
            raise CompleteCommandError(f"failed to execute completion function: {e}") from e
        matches = filter_by_prefix(replies, word)
    else:
        raise CompleteCommandError("compgen: no completion type specified")

    return "".join(m + "\n" for m in matches)


def run_complete_command(
    registry: CompletionSpecRegistry, args: Sequence[str]
) -> tuple[str, str | None]:
    """``complete`` with errors returned as text: ``(output, error)``."""
    try:
        return complete_command(registry, args), None
    except CompleteCommandError as e:
        return "", str(e)


def run_compgen_command(
    args: Sequence[str],
    functions: ShellFunctionRunner | None = None,
) -> tuple[str, str | None]:
    """``compgen`` with errors returned as text: ``(output, error)``."""
    try:
        return compgen_command(args, functions), None
    except CompleteCommandError as e:
        return "", str(e)
