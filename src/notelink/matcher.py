"""Fuzzy relevance scoring for completion candidates.

Scores are tiered; the first tier that applies decides the score and lower
tiers are never blended in:

=============  ==================================================
exact          1000
prefix         900 - len(target) + len(query) * 10
word boundary  700 - len(target) + len(query) * 5
subsequence    per-character points, bonuses and gap penalties
=============  ==================================================

A score of 0 means "exclude". Prefix and word-boundary matches score at least
MIN_MATCH_SCORE however long the target. Comparison is case-insensitive.
"""

from __future__ import annotations

import re

EXACT_SCORE = 1000.0
PREFIX_BASE = 900
WORD_BOUNDARY_BASE = 700
MIN_MATCH_SCORE = 1.0

MATCH_POINTS = 10
CONSECUTIVE_STEP = 5
SHORT_TARGET_BASE = 100
COVERAGE_WEIGHT = 50

# The query must start right after a character that is not a letter or digit
_BOUNDARY_PREFIX = r"(?<![^\W_])"


def _subsequence_score(query: str, target: str) -> float:
    score = 0.0
    resume = 0  # Index where the search for the next character starts
    last_match = -1
    consecutive_bonus = 0

    for char in query:
        match = target.find(char, resume)
        if match == -1:
            return 0.0

        score += MATCH_POINTS
        if match == last_match + 1:
            consecutive_bonus += CONSECUTIVE_STEP
            score += consecutive_bonus
        else:
            consecutive_bonus = 0

        score -= match - resume
        resume = match + 1
        last_match = match

    score += SHORT_TARGET_BASE - len(target)
    if target:
        score += len(query) / len(target) * COVERAGE_WEIGHT
    return score


def score(query: str, target: str) -> float:
    """Score how well query matches target; 0 means no match.

    Examples:
        >>> score("alpha", "Alpha")
        1000.0
        >>> score("alp", "alpha")
        925.0
        >>> score("xyz", "alpha")
        0.0
    """
    q = query.lower()
    t = target.lower()

    if q and q == t:
        return EXACT_SCORE

    if not q:
        # No characters to match: only the length and coverage terms remain
        return max(0.0, _subsequence_score(q, t))

    if t.startswith(q):
        return max(MIN_MATCH_SCORE, float(PREFIX_BASE - len(t) + len(q) * 10))

    if re.search(_BOUNDARY_PREFIX + re.escape(q), t):
        return max(MIN_MATCH_SCORE, float(WORD_BOUNDARY_BASE - len(t) + len(q) * 5))

    return max(0.0, _subsequence_score(q, t))


def best_match(query: str, candidates: list[tuple[str, str]]) -> tuple[float, str, str] | None:
    """Pick the highest scoring candidate.

    Args:
        query: Text typed by the user.
        candidates: ``(text, kind)`` pairs in preference order; on equal scores
            the earlier pair wins.

    Returns:
        ``(score, text, kind)`` for the winner, or None when candidates is empty.
    """
    best: tuple[float, str, str] | None = None
    for text, kind in candidates:
        value = score(query, text)
        if best is None or value > best[0]:
            best = (value, text, kind)
    return best
