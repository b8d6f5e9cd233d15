"""
Default Selection Strategy.

Random selection with topic weightage, difficulty balancing and avoidance
of questions seen in previous attempts.
"""

from __future__ import annotations

from collections.abc import Sequence

from tutorquiz.models import QuestionSpec, SelectionCriteria
from tutorquiz.selection.base import SelectionStrategy, StrategyName
from tutorquiz.selection.sampling import filter_by_difficulty, random_select


class DefaultSelectionStrategy(SelectionStrategy):
    """
    Weighted random selection.

    - Topic weightage sets a target count per topic
    - Difficulty falls back primary -> adjacent -> any
    - Short selections are topped up, exact difficulty first
    - Type distribution orders the result (soft preference)
    """

    name = StrategyName.DEFAULT
    algorithm_version = "v1.0"

    def _pick(self, pool: Sequence[QuestionSpec], count: int) -> list[QuestionSpec]:
        return random_select(pool, count, self.rng)

    def _choose(
        self,
        candidates: list[QuestionSpec],
        criteria: SelectionCriteria,
    ) -> list[QuestionSpec]:
        config = criteria.question_config

        if config.topic_weightage:
            selected = self._distribute_by_topic(candidates, criteria, self._pick)
        else:
            pool = filter_by_difficulty(
                candidates, criteria.difficulty_level, config.difficulty_distribution
            )
            selected = self._pick(pool, config.total_questions)

        selected = self._fill_remaining(selected, candidates, criteria, self._pick)

        if config.type_distribution:
            weights = config.type_distribution
            # Stable: equal weights keep their selection order
            selected.sort(key=lambda q: weights.get(q.type, 0), reverse=True)

        return selected
