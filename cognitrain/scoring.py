"""Pure score conversions for assessment stages and games.

Every function here is stateless: raw trial data in, a number out. Stage
scores are on a 0-100 scale; raw game scores are unbounded integers.
"""

from __future__ import annotations

import re
from collections.abc import Mapping, Sequence

REACTION_SCALE_MS = 500.0
EARLY_CLICK_PENALTY_MS = 1000.0

MATCH_SCORE = 100
QUICK_MATH_CORRECT_SCORE = 100
QUICK_MATH_INCORRECT_PENALTY = -50

AREA_LABELS: dict[str, str] = {
    "memoryNumbers": "Memory (Numbers)",
    "memoryWords": "Memory (Words)",
    "speed": "Speed",
    "logic": "Logic",
    "workingMemory": "Working Memory",
}

_WORD_SPLIT = re.compile(r"[,\s]+")


def proportion_score(correct: int, total: int) -> float:
    if total <= 0:
        return 0.0
    return (float(correct) / float(total)) * 100.0


def recalled_digits(raw: str) -> list[str]:
    return [ch for ch in str(raw) if ch.isdigit()]


def number_recall_score(expected: Sequence[str], raw: str) -> float:
    """Positionally-correct digits over digits shown. Non-digits are ignored."""

    user = recalled_digits(raw)
    correct = sum(1 for i, digit in enumerate(expected) if i < len(user) and user[i] == digit)
    return proportion_score(correct, len(expected))


def recalled_words(raw: str) -> list[str]:
    return [w for w in _WORD_SPLIT.split(str(raw).lower()) if w]


def word_recall_matches(expected: Sequence[str], raw: str) -> int:
    """Count recalled words; each remembered word can be matched once."""

    remaining = {w.lower() for w in expected}
    matches = 0
    for word in recalled_words(raw):
        if word in remaining:
            remaining.discard(word)
            matches += 1
    return matches


def word_recall_score(expected: Sequence[str], raw: str) -> float:
    return proportion_score(word_recall_matches(expected, raw), len(expected))


def reaction_time_score(samples_ms: Sequence[float]) -> float:
    """``max(0, 100 * (1 - avg / 500))``; no samples scores 0."""

    if not samples_ms:
        return 0.0
    avg = sum(float(s) for s in samples_ms) / len(samples_ms)
    return max(0.0, min(100.0, 100.0 * (1.0 - avg / REACTION_SCALE_MS)))


def memory_match_score(matched_pairs: int) -> int:
    return int(matched_pairs) * MATCH_SCORE


def memory_match_accuracy(matched_pairs: int, total_cards: int) -> float:
    return proportion_score(int(matched_pairs) * 2, total_cards)


def quick_math_delta(is_correct: bool) -> int:
    return QUICK_MATH_CORRECT_SCORE if is_correct else QUICK_MATH_INCORRECT_PENALTY


def quick_math_accuracy(correct: int, total_problems: int) -> float:
    return proportion_score(correct, total_problems)


def rank_areas(scores: Mapping[str, float]) -> list[tuple[str, float]]:
    """Areas as (label, score), strongest first. Ties keep stage order."""

    ranked = [(AREA_LABELS[key], float(scores.get(key, 0.0))) for key in AREA_LABELS]
    ranked.sort(key=lambda item: item[1], reverse=True)
    return ranked


def strongest_and_weakest(scores: Mapping[str, float]) -> tuple[str, str]:
    ranked = rank_areas(scores)
    return ranked[0][0], ranked[-1][0]
