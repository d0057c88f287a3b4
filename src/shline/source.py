"""Completion source backed by the spec registry."""

from __future__ import annotations

import logging
from typing import Mapping

from shline.completion import CompletionCandidate
from shline.external import ExternalCompleterRunner
from shline.specs import (
    CompletionKind,
    CompletionSpec,
    CompletionSpecRegistry,
    ShellFunctionError,
    ShellFunctionRunner,
    evaluate_spec,
)
from shline.utils import is_whitespace_char

logger = logging.getLogger(__name__)


def split_preserving_quotes(text: str) -> list[str]:
    """Split *text* on whitespace outside single/double quotes.

    Quote characters stay in the words. Trailing whitespace yields a final
    empty word, the word about to be typed.
    """
    words: list[str] = []
    current: list[str] = []
    quote: str | None = None
    in_word = False

    for ch in text:
        if quote is not None:
            current.append(ch)
            if ch == quote:
                quote = None
        elif ch in ("'", '"'):
            quote = ch
            current.append(ch)
            in_word = True
        elif is_whitespace_char(ch):
            if in_word:
                words.append("".join(current))
                current = []
                in_word = False
        else:
            current.append(ch)
            in_word = True

    if in_word:
        words.append("".join(current))
    elif words and text and is_whitespace_char(text[-1]):
        words.append("")
    return words


class SpecCompletionSource:
    """:class:`~shline.completion.CompletionSource` over registered specs.

    Looks up the first word in the registry and evaluates its spec. When there
    is no spec, or it yields nothing, the optional global completer command is
    tried as an ad-hoc ``-C`` spec.
    """

    def __init__(
        self,
        registry: CompletionSpecRegistry,
        *,
        completer: ExternalCompleterRunner | None = None,
        functions: ShellFunctionRunner | None = None,
        global_completer: str | None = None,
        help_texts: Mapping[str, str] | None = None,
    ) -> None:
        self.registry = registry
        self.completer = completer
        self.functions = functions
        self.global_completer = global_completer
        self.help_texts = dict(help_texts or {})

    def get_completions(self, line: str, cursor: int) -> list[CompletionCandidate]:
        before = line[:cursor]
        words = split_preserving_quotes(before)
        if not words:
            return []

        command = words[0]
        spec, found = self.registry.get(command)
        if found and spec is not None:
            candidates = self._evaluate(spec, words, before, cursor)
            if candidates:
                return candidates

        if self.global_completer:
            fallback = CompletionSpec(
                command=command,
                kind=CompletionKind.COMMAND,
                value=self.global_completer,
            )
            return self._evaluate(fallback, words, before, cursor)

        return []

    def get_help(self, line: str, cursor: int) -> str:
        words = split_preserving_quotes(line[:cursor])
        if not words:
            return ""
        return self.help_texts.get(words[0], "")

    def _evaluate(
        self, spec: CompletionSpec, words: list[str], line: str, cursor: int
    ) -> list[CompletionCandidate]:
        try:
            return evaluate_spec(
                spec,
                words,
                line,
                cursor,
                functions=self.functions,
                completer=self.completer,
            )
        except ShellFunctionError as e:
            logger.warning("completion function %r failed: %s", spec.value, e)
            return []
