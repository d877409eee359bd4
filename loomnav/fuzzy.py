"""Fuzzy scoring for command-palette labels.

Scoring is total: every ``(query, label)`` pair yields an integer score or
``None`` for no match. Ranking is a stable sort so equal scores keep the
original command order.
"""

from __future__ import annotations

from collections.abc import Sequence

SUBSTRING_BASE_SCORE = 10_000
WORD_BOUNDARY_CHARS = "/_- .:"


def fuzzy_score(query: str, candidate: str) -> int | None:
    """Score an in-order subsequence match of ``query`` inside ``candidate``."""
    if not query:
        return 0
    query_folded = query.casefold()
    candidate_folded = candidate.casefold()

    score = 0
    prev_idx = -1
    run = 0
    for needle in query_folded:
        idx = candidate_folded.find(needle, prev_idx + 1)
        if idx < 0:
            return None
        if idx == prev_idx + 1:
            run += 1
            score += 20 + min(16, run * 4)
        else:
            gap = idx - prev_idx - 1
            run = 0
            score -= min(40, gap * 2)
        if idx == 0 or candidate_folded[idx - 1] in WORD_BOUNDARY_CHARS:
            score += 35
        prev_idx = idx

    score -= len(candidate_folded) // 5
    return score


def label_score(query: str, label: str) -> int | None:
    """Score one label; contiguous substring hits always outrank subsequences."""
    if not query:
        return 0
    substr_idx = label.casefold().find(query.casefold())
    if substr_idx >= 0:
        return SUBSTRING_BASE_SCORE - (substr_idx * 50) - len(label)
    return fuzzy_score(query, label)


def rank_labels(query: str, labels: Sequence[str]) -> list[int]:
    """Return every label index, matches first by descending score.

    Non-matching labels trail in original order; an empty query keeps the
    original order.
    """
    if not query:
        return list(range(len(labels)))
    matched: list[tuple[int, int]] = []
    unmatched: list[int] = []
    for idx, label in enumerate(labels):
        score = label_score(query, label)
        if score is None:
            unmatched.append(idx)
        else:
            matched.append((score, idx))
    matched.sort(key=lambda item: -item[0])
    return [idx for _, idx in matched] + unmatched
