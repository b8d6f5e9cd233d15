"""
Adaptive Selection Strategy.

Ranks candidate questions by a fitness score built from the student's
per-topic accuracy, the target difficulty and each question's history,
then applies the usual topic distribution over the ranked list.

Score components:
    base               100
    difficulty match   +25 on target, 25 - 10 per step away otherwise
    topic weakness     (100 - accuracy) * 0.3, or +15 for an unknown topic
    success rate       max(0, 20 - 0.4 * |rate - 65|), rate defaults to 50
    variety            max(0, 15 - 0.5 * usage_count)
    noise              random() * 10
"""

from __future__ import annotations

from collections.abc import Sequence

from loguru import logger

from tutorquiz.models import (
    DifficultyLevel,
    QuestionSpec,
    SelectionCriteria,
    StudentPerformance,
)
from tutorquiz.selection.base import SelectionStrategy, StrategyName

BASE_SCORE = 100.0
DIFFICULTY_MATCH_BONUS = 25.0
DIFFICULTY_STEP_PENALTY = 10.0
WEAKNESS_FACTOR = 0.3
UNKNOWN_TOPIC_BONUS = 15.0
OPTIMAL_SUCCESS_RATE = 65.0
UNATTEMPTED_SUCCESS_RATE = 50.0
SUCCESS_RATE_BONUS = 20.0
SUCCESS_RATE_FACTOR = 0.4
VARIETY_BONUS = 15.0
USAGE_FACTOR = 0.5
NOISE_RANGE = 10.0


def adaptive_score(
    question: QuestionSpec,
    target: DifficultyLevel,
    performance: StudentPerformance | None = None,
) -> float:
    """Deterministic part of the fitness score (everything except noise)."""
    score = BASE_SCORE

    if question.difficulty_level == target:
        score += DIFFICULTY_MATCH_BONUS
    else:
        steps = abs(target.rank - question.difficulty_level.rank)
        score += DIFFICULTY_MATCH_BONUS - DIFFICULTY_STEP_PENALTY * steps

    accuracy = performance.topic_accuracy.get(question.topic) if performance else None
    if accuracy is None:
        score += UNKNOWN_TOPIC_BONUS
    else:
        score += (100 - accuracy) * WEAKNESS_FACTOR

    if question.total_attempts > 0:
        success_rate = question.success_rate
    else:
        success_rate = UNATTEMPTED_SUCCESS_RATE
    deviation = abs(success_rate - OPTIMAL_SUCCESS_RATE)
    score += max(0.0, SUCCESS_RATE_BONUS - deviation * SUCCESS_RATE_FACTOR)

    score += max(0.0, VARIETY_BONUS - question.usage_count * USAGE_FACTOR)
    return score


class AdaptiveSelectionStrategy(SelectionStrategy):
    """
    Performance-driven selection.

    Identical output to the default strategy, but questions are taken in
    descending fitness order instead of being sampled at random.
    """

    name = StrategyName.ADAPTIVE
    algorithm_version = "v2.0-adaptive"

    @staticmethod
    def _top(pool: Sequence[QuestionSpec], count: int) -> list[QuestionSpec]:
        return list(pool[: max(0, count)])

    def rank(
        self,
        candidates: Sequence[QuestionSpec],
        criteria: SelectionCriteria,
    ) -> list[tuple[QuestionSpec, float]]:
        """Score every candidate and sort best first."""
        scored = [
            (
                question,
                adaptive_score(question, criteria.difficulty_level, criteria.student_performance)
                + self.rng.random() * NOISE_RANGE,
            )
            for question in candidates
        ]
        scored.sort(key=lambda item: item[1], reverse=True)
        return scored

    def _choose(
        self,
        candidates: list[QuestionSpec],
        criteria: SelectionCriteria,
    ) -> list[QuestionSpec]:
        config = criteria.question_config
        ranked = self.rank(candidates, criteria)
        ordered = [question for question, _ in ranked]

        if ranked:
            logger.debug(
                f"Adaptive ranking for student {criteria.student_id}: "
                f"top score {ranked[0][1]:.1f}, lowest {ranked[-1][1]:.1f}"
            )

        if not config.topic_weightage:
            return ordered[: config.total_questions]

        selected = self._distribute_by_topic(ordered, criteria, self._top)
        return self._fill_remaining(selected, ordered, criteria, self._top)
