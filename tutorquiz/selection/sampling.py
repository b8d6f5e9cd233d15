"""
Sampling helpers shared by the selection strategies.

Every function that draws randomness takes the caller's ``random.Random`` so
selection can be made reproducible with a seeded generator.
"""

from __future__ import annotations

import math
import random
from collections.abc import Sequence
from typing import TypeVar

from tutorquiz.models import DifficultyDistribution, DifficultyLevel, QuestionSpec

T = TypeVar("T")


def shuffle(items: Sequence[T], rng: random.Random) -> list[T]:
    """Fisher-Yates shuffle into a new list."""
    result = list(items)
    for i in range(len(result) - 1, 0, -1):
        j = rng.randint(0, i)
        result[i], result[j] = result[j], result[i]
    return result


def random_select(items: Sequence[T], count: int, rng: random.Random) -> list[T]:
    """Sample up to ``count`` items without replacement."""
    if count <= 0:
        return []
    return shuffle(items, rng)[: min(count, len(items))]


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def topic_targets(topic_weightage: dict[str, float], total_questions: int) -> dict[str, int]:
    """
    Target question count per topic, proportional to its weight.

    Targets are rounded independently, so their sum may differ from
    ``total_questions`` by a question or two; callers cap and fill.
    """
    total_weight = sum(topic_weightage.values())
    if total_weight <= 0:
        return {}
    return {
        topic: round_half_up((weight / total_weight) * total_questions)
        for topic, weight in topic_weightage.items()
    }


def filter_by_difficulty(
    questions: Sequence[QuestionSpec],
    primary: DifficultyLevel,
    distribution: DifficultyDistribution | None = None,
) -> list[QuestionSpec]:
    """
    Keep questions at the primary difficulty, falling back gracefully.

    Order of preference: the primary level, then the two adjacent levels,
    then any level. A custom difficulty distribution accepts every level.
    Input order is preserved.
    """
    if distribution is not None and distribution.is_custom:
        return list(questions)

    primary_matches = [q for q in questions if q.difficulty_level == primary]
    if primary_matches:
        return primary_matches

    adjacent = set(primary.adjacent())
    adjacent_matches = [q for q in questions if q.difficulty_level in adjacent]
    if adjacent_matches:
        return adjacent_matches

    return list(questions)
