"""
Base Selection Strategy.

Provides the abstract base for question selection strategies and the
registry used to look them up by name.
"""

from __future__ import annotations

import random
from abc import ABC, abstractmethod
from collections.abc import Callable, Mapping, Sequence
from enum import Enum
from typing import Any, ClassVar

from loguru import logger
from pydantic import ValidationError

from tutorquiz.errors import InvalidCriteria, NoQuestionsAvailable, UnknownStrategy
from tutorquiz.models import (
    QuestionSnapshot,
    QuestionSpec,
    QuizSettings,
    SelectedQuestion,
    SelectionCriteria,
)
from tutorquiz.repository import QuestionRepository
from tutorquiz.selection.sampling import filter_by_difficulty, shuffle, topic_targets

# pick(pool, count) -> chosen questions, in the order they were chosen
Picker = Callable[[Sequence[QuestionSpec], int], list[QuestionSpec]]


class StrategyName(str, Enum):
    """Registered selection strategies."""

    DEFAULT = "default"
    ADAPTIVE = "adaptive"


def coerce_criteria(criteria: SelectionCriteria | Mapping[str, Any]) -> SelectionCriteria:
    """Validate raw criteria, reporting problems as InvalidCriteria."""
    if isinstance(criteria, SelectionCriteria):
        return criteria
    try:
        return SelectionCriteria.model_validate(criteria)
    except ValidationError as e:
        raise InvalidCriteria(str(e)) from e


# =============================================================================
# Base Selection Strategy
# =============================================================================


class SelectionStrategy(ABC):
    """
    Abstract base class for question selection strategies.

    A strategy turns SelectionCriteria into an ordered list of
    SelectedQuestion records. The shared pipeline is:
    1. Load candidates (relaxing exclusions when the pool is short)
    2. Choose questions (strategy specific)
    3. Shuffle questions and options, then freeze snapshots

    Subclasses must implement:
    - _choose(): Pick and order questions from the candidate pool
    """

    name: ClassVar[StrategyName] = StrategyName.DEFAULT
    algorithm_version: ClassVar[str] = "v1.0"

    def __init__(self, repository: QuestionRepository, rng: random.Random | None = None):
        """
        Initialize strategy.

        Args:
            repository: Source of candidate questions
            rng: Random source (inject a seeded generator for reproducibility)
        """
        self.repository = repository
        self.rng = rng or random.Random()

    def select(self, criteria: SelectionCriteria | Mapping[str, Any]) -> list[SelectedQuestion]:
        """
        Select questions for one attempt.

        Args:
            criteria: Selection criteria (model or raw mapping)

        Returns:
            SelectedQuestion list in display order

        Raises:
            InvalidCriteria: Criteria failed validation
            NoQuestionsAvailable: The course has no active questions at all
        """
        criteria = coerce_criteria(criteria)
        candidates = self._load_candidates(criteria)
        chosen = self._choose(candidates, criteria)

        total = criteria.question_config.total_questions
        if len(chosen) < total:
            logger.warning(
                f"Course {criteria.course_id}: only {len(chosen)} of {total} questions available"
            )

        return self._finalize(chosen, criteria.settings)

    @abstractmethod
    def _choose(
        self,
        candidates: list[QuestionSpec],
        criteria: SelectionCriteria,
    ) -> list[QuestionSpec]:
        """Choose and order up to total_questions questions from the candidates."""
        ...

    # ----------------------------------------
    # Shared pipeline steps
    # ----------------------------------------

    def _load_candidates(self, criteria: SelectionCriteria) -> list[QuestionSpec]:
        """Active questions for the course, without previously seen ones when possible."""
        excluded = criteria.exclude_question_ids
        candidates = self.repository.find_active(criteria.course_id, exclude_ids=excluded)

        total = criteria.question_config.total_questions
        if len(candidates) < total and excluded:
            logger.warning(
                f"Course {criteria.course_id}: {len(candidates)} unseen questions for "
                f"{total} slots, including {len(excluded)} previously seen"
            )
            candidates = self.repository.find_active(criteria.course_id)

        if not candidates:
            raise NoQuestionsAvailable(criteria.course_id)

        logger.debug(f"Course {criteria.course_id}: {len(candidates)} candidate questions")
        return candidates

    def _distribute_by_topic(
        self,
        candidates: Sequence[QuestionSpec],
        criteria: SelectionCriteria,
        pick: Picker,
    ) -> list[QuestionSpec]:
        """Fill per-topic targets from topic weightage, never exceeding the total."""
        config = criteria.question_config
        targets = topic_targets(config.topic_weightage, config.total_questions)

        selected: list[QuestionSpec] = []
        used: set[str] = set()

        for topic, target in targets.items():
            room = config.total_questions - len(selected)
            if room <= 0:
                break

            pool = [q for q in candidates if q.topic == topic and q.id not in used]
            pool = filter_by_difficulty(
                pool, criteria.difficulty_level, config.difficulty_distribution
            )
            chosen = pick(pool, min(target, room))
            if len(chosen) < target:
                logger.debug(f"Topic {topic}: {len(chosen)} of {target} targeted questions")

            selected.extend(chosen)
            used.update(q.id for q in chosen)

        return selected

    def _fill_remaining(
        self,
        selected: list[QuestionSpec],
        candidates: Sequence[QuestionSpec],
        criteria: SelectionCriteria,
        pick: Picker,
    ) -> list[QuestionSpec]:
        """Top up a short selection, preferring the primary difficulty."""
        remaining = criteria.question_config.total_questions - len(selected)
        if remaining <= 0:
            return selected

        used = {q.id for q in selected}
        unused = [q for q in candidates if q.id not in used]
        exact = [q for q in unused if q.difficulty_level == criteria.difficulty_level]
        others = [q for q in unused if q.difficulty_level != criteria.difficulty_level]

        filled = pick(exact, remaining)
        filled.extend(pick(others, remaining - len(filled)))

        if filled:
            logger.debug(f"Filled {len(filled)} remaining slots from the leftover pool")
        return selected + filled

    def _finalize(
        self,
        chosen: list[QuestionSpec],
        settings: QuizSettings,
    ) -> list[SelectedQuestion]:
        """Assign display order and freeze each question into a snapshot."""
        order = list(range(len(chosen)))
        if settings.shuffle_questions:
            order = shuffle(order, self.rng)

        result = []
        for display_order, original_order in enumerate(order):
            question = chosen[original_order]
            options = question.options
            if settings.shuffle_options and options:
                options = shuffle(options, self.rng)

            result.append(
                SelectedQuestion(
                    question_id=question.id,
                    original_order=original_order,
                    display_order=display_order,
                    snapshot=QuestionSnapshot.from_question(question, options),
                )
            )
        return result


# =============================================================================
# Strategy Registry
# =============================================================================


class SelectionRegistry:
    """
    Registry of selection strategies keyed by StrategyName.

    Built once at startup (see ``build_registry``) and passed to callers.

    Example:
        registry = build_registry()
        strategy = registry.create("adaptive", repository, rng=random.Random(7))
        selected = strategy.select(criteria)
    """

    def __init__(self, default: StrategyName = StrategyName.DEFAULT):
        self._strategies: dict[StrategyName, type[SelectionStrategy]] = {}
        self._default = default

    @staticmethod
    def _resolve(name: str | StrategyName) -> StrategyName:
        try:
            return StrategyName(name)
        except ValueError:
            raise UnknownStrategy(str(name)) from None

    def register(self, name: str | StrategyName, strategy_class: type[SelectionStrategy]) -> None:
        """Register a strategy class under a name."""
        key = self._resolve(name)
        self._strategies[key] = strategy_class
        logger.debug(f"Registered selection strategy: {key.value} -> {strategy_class.__name__}")

    def get(self, name: str | StrategyName | None = None) -> type[SelectionStrategy]:
        """Get strategy class by name (registry default when None)."""
        key = self._resolve(name) if name is not None else self._default
        if key not in self._strategies:
            raise UnknownStrategy(key.value)
        return self._strategies[key]

    def create(
        self,
        name: str | StrategyName | None,
        repository: QuestionRepository,
        rng: random.Random | None = None,
    ) -> SelectionStrategy:
        """Instantiate a strategy bound to a repository."""
        return self.get(name)(repository, rng=rng)

    def available(self) -> list[str]:
        return [key.value for key in self._strategies]

    @property
    def default(self) -> StrategyName:
        return self._default

    def set_default(self, name: str | StrategyName) -> None:
        key = self._resolve(name)
        if key not in self._strategies:
            raise UnknownStrategy(key.value)
        self._default = key
