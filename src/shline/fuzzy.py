"""Fuzzy subsequence matching for history search.

A query matches when its characters occur in the text in order, ignoring
case. Scores are costs: the lower, the better the match.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Sequence

_BOUNDARY_RE = re.compile(r"[\s\-_./:]")

# Scoring weights
_RUN_BONUS = 5
_GAP_COST = 2
_BOUNDARY_BONUS = 10
_POSITION_COST = 0.1


@dataclass
class FuzzyMatch:
    matches: bool
    score: float
    positions: list[int] = field(default_factory=list)


@dataclass
class RankedMatch:
    index: int
    text: str
    score: float
    positions: list[int]


def _no_match() -> FuzzyMatch:
    return FuzzyMatch(matches=False, score=0)


def fuzzy_match(query: str, text: str) -> FuzzyMatch:
    """Case-insensitive subsequence match.

    Each further character of a contiguous run earns a growing bonus, and so
    does a hit right after a word boundary. Skipped characters between hits
    and hits far from the start add cost.
    """
    needle = query.lower()
    haystack = text.lower()

    if not needle:
        return FuzzyMatch(matches=True, score=0)
    if len(needle) > len(haystack):
        return _no_match()

    score: float = 0
    positions: list[int] = []
    run = 0

    for i, ch in enumerate(haystack):
        if len(positions) == len(needle):
            break
        if ch != needle[len(positions)]:
            continue

        prev = positions[-1] if positions else -1
        if prev == i - 1 and positions:
            run += 1
            score -= run * _RUN_BONUS
        else:
            run = 0
            if positions:
                score += (i - prev - 1) * _GAP_COST

        if i == 0 or _BOUNDARY_RE.match(haystack[i - 1]):
            score -= _BOUNDARY_BONUS
        score += i * _POSITION_COST
        positions.append(i)

    if len(positions) < len(needle):
        return _no_match()
    return FuzzyMatch(matches=True, score=score, positions=positions)


def fuzzy_find(query: str, texts: Sequence[str]) -> list[RankedMatch]:
    """Match *query* against every text and rank the hits best first.

    Equal scores keep their input order.
    """
    ranked: list[RankedMatch] = []
    for index, text in enumerate(texts):
        m = fuzzy_match(query, text)
        if m.matches:
            ranked.append(RankedMatch(index, text, m.score, m.positions))

    ranked.sort(key=lambda r: (r.score, r.index))
    return ranked

