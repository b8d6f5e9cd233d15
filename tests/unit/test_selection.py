"""
Unit tests for question selection (default strategy and registry).
"""

import random
from collections import Counter

import pytest

from tutorquiz.errors import InvalidCriteria, NoQuestionsAvailable, UnknownStrategy
from tutorquiz.models import QuizSettings, SelectionCriteria
from tutorquiz.repository import InMemoryQuestionRepository
from tutorquiz.selection import (
    AdaptiveSelectionStrategy,
    DefaultSelectionStrategy,
    StrategyName,
    build_registry,
)


def criteria(total, difficulty="medium", course_id="course-1", **config):
    settings = config.pop("settings", QuizSettings())
    exclude = config.pop("exclude", set())
    return SelectionCriteria(
        course_id=course_id,
        difficulty_level=difficulty,
        question_config={"total_questions": total, **config},
        exclude_question_ids=exclude,
        settings=settings,
    )


def topics_of(selected):
    return Counter(sq.snapshot.topic for sq in selected)


# =============================================================================
# Default strategy
# =============================================================================


class TestDefaultSelection:
    """Test weighted random selection."""

    @pytest.fixture
    def strategy(self, question_repo, rng):
        return DefaultSelectionStrategy(question_repo, rng=rng)

    def test_topic_weightage_targets(self, strategy):
        """60/40 weightage over 10 questions gives 6 Algebra and 4 Geometry."""
        selected = strategy.select(
            criteria(10, topic_weightage={"Algebra": 60, "Geometry": 40})
        )

        assert len(selected) == 10
        assert topics_of(selected) == {"Algebra": 6, "Geometry": 4}
        assert all(sq.snapshot.difficulty_level.value == "medium" for sq in selected)

    @pytest.mark.parametrize("total", [1, 5, 10, 21])
    @pytest.mark.parametrize("weighted", [True, False])
    @pytest.mark.parametrize("seed", [0, 1, 2])
    def test_exact_count_without_duplicates(self, question_repo, total, weighted, seed):
        config = {"topic_weightage": {"Algebra": 60, "Geometry": 40}} if weighted else {}
        strategy = DefaultSelectionStrategy(question_repo, rng=random.Random(seed))

        selected = strategy.select(criteria(total, **config))
        ids = [sq.question_id for sq in selected]

        assert len(ids) == total
        assert len(set(ids)) == total

    def test_short_pool_returns_what_exists(self, strategy):
        selected = strategy.select(criteria(50))
        assert len(selected) == 21

    def test_difficulty_falls_back_to_adjacent(self, make_question, rng):
        repo = InMemoryQuestionRepository(
            [make_question(f"e{i}", difficulty="easy") for i in range(3)]
            + [make_question(f"m{i}", difficulty="medium") for i in range(3)]
        )
        selected = DefaultSelectionStrategy(repo, rng=rng).select(criteria(3, difficulty="hard"))

        assert {sq.snapshot.difficulty_level.value for sq in selected} == {"medium"}

    def test_fill_prefers_exact_difficulty(self, make_question, rng):
        repo = InMemoryQuestionRepository(
            [
                make_question("alg-hard", "Algebra", difficulty="hard"),
                *[make_question(f"alg-easy-{i}", "Algebra", difficulty="easy") for i in range(3)],
                *[make_question(f"geo-hard-{i}", "Geometry", difficulty="hard") for i in range(2)],
                *[make_question(f"geo-easy-{i}", "Geometry", difficulty="easy") for i in range(2)],
            ]
        )
        selected = DefaultSelectionStrategy(repo, rng=rng).select(
            criteria(4, difficulty="hard", topic_weightage={"Algebra": 100})
        )
        ids = {sq.question_id for sq in selected}

        assert {"alg-hard", "geo-hard-0", "geo-hard-1"} <= ids
        assert len(ids) == 4

    def test_excluded_questions_skipped(self, strategy, question_bank):
        excluded = {q.id for q in question_bank[:8]}
        selected = strategy.select(criteria(10, exclude=excluded))

        assert not excluded & {sq.question_id for sq in selected}

    def test_exclusions_relaxed_when_pool_too_small(self, strategy, question_bank):
        excluded = {q.id for q in question_bank[3:]}
        selected = strategy.select(criteria(5, exclude=excluded))

        assert len(selected) == 5

    def test_no_questions_for_course(self, strategy):
        with pytest.raises(NoQuestionsAvailable):
            strategy.select(criteria(5, course_id="unknown"))

    def test_inactive_questions_ignored(self, make_question, rng):
        repo = InMemoryQuestionRepository(
            [make_question("active"), make_question("retired", is_active=False)]
        )
        selected = DefaultSelectionStrategy(repo, rng=rng).select(criteria(2))
        assert [sq.question_id for sq in selected] == ["active"]

    def test_type_distribution_orders_result(self, make_question, rng):
        repo = InMemoryQuestionRepository(
            [make_question(f"mcq-{i}") for i in range(3)]
            + [make_question(f"tf-{i}", qtype="true-false") for i in range(3)]
        )
        selected = DefaultSelectionStrategy(repo, rng=rng).select(
            criteria(
                6,
                type_distribution={"true-false": 2, "mcq-single": 1},
                settings=QuizSettings(shuffle_questions=False),
            )
        )
        types = [sq.snapshot.type.value for sq in selected]

        assert types == ["true-false"] * 3 + ["mcq-single"] * 3

    def test_same_seed_same_selection(self, question_repo):
        first = DefaultSelectionStrategy(question_repo, rng=random.Random(7)).select(criteria(8))
        second = DefaultSelectionStrategy(question_repo, rng=random.Random(7)).select(criteria(8))

        assert [sq.question_id for sq in first] == [sq.question_id for sq in second]

    def test_algorithm_version(self, strategy):
        assert strategy.algorithm_version == "v1.0"


class TestSelectionOrdering:
    """Test display order, option shuffling and snapshots."""

    def test_no_shuffle_keeps_selection_order(self, question_repo, rng):
        settings = QuizSettings(shuffle_questions=False, shuffle_options=False)
        selected = DefaultSelectionStrategy(question_repo, rng=rng).select(
            criteria(5, settings=settings)
        )

        for sq in selected:
            assert sq.display_order == sq.original_order
            assert [opt.display_order for opt in sq.snapshot.options] == [0, 1, 2]

    def test_shuffle_assigns_display_positions(self, question_repo, rng):
        selected = DefaultSelectionStrategy(question_repo, rng=rng).select(criteria(10))

        assert [sq.display_order for sq in selected] == list(range(10))
        assert sorted(sq.original_order for sq in selected) == list(range(10))

    def test_shuffled_options_keep_ids(self, question_repo, question_bank, rng):
        selected = DefaultSelectionStrategy(question_repo, rng=rng).select(criteria(10))
        by_id = {q.id: q for q in question_bank}

        for sq in selected:
            original = {opt.id for opt in by_id[sq.question_id].options}
            assert {opt.id for opt in sq.snapshot.options} == original
            assert [opt.display_order for opt in sq.snapshot.options] == [0, 1, 2]

    def test_snapshot_unaffected_by_later_edits(self, question_repo, rng):
        selected = DefaultSelectionStrategy(question_repo, rng=rng).select(criteria(1))
        question = question_repo.get(selected[0].question_id)

        question.text = "Edited after selection"
        question.marks = 99

        assert selected[0].snapshot.text != "Edited after selection"
        assert selected[0].snapshot.marks == 1


class TestCriteriaValidation:
    """Test rejection of invalid criteria before sampling."""

    @pytest.fixture
    def strategy(self, question_repo, rng):
        return DefaultSelectionStrategy(question_repo, rng=rng)

    def test_unknown_difficulty(self, strategy):
        with pytest.raises(InvalidCriteria):
            strategy.select(
                {
                    "course_id": "course-1",
                    "difficulty_level": "extreme",
                    "question_config": {"total_questions": 5},
                }
            )

    def test_non_positive_total(self, strategy):
        with pytest.raises(InvalidCriteria):
            strategy.select(
                {
                    "course_id": "course-1",
                    "difficulty_level": "easy",
                    "question_config": {"total_questions": 0},
                }
            )

    def test_negative_topic_weight(self, strategy):
        with pytest.raises(InvalidCriteria):
            strategy.select(
                {
                    "course_id": "course-1",
                    "difficulty_level": "easy",
                    "question_config": {"total_questions": 5, "topic_weightage": {"Algebra": -1}},
                }
            )

    def test_unknown_question_type(self, strategy):
        with pytest.raises(InvalidCriteria):
            strategy.select(
                {
                    "course_id": "course-1",
                    "difficulty_level": "easy",
                    "question_config": {"total_questions": 5, "type_distribution": {"essay": 1}},
                }
            )

    def test_mapping_criteria_accepted(self, strategy):
        selected = strategy.select(
            {
                "course_id": "course-1",
                "difficulty_level": "easy",
                "question_config": {"total_questions": 3},
            }
        )
        assert len(selected) == 3


# =============================================================================
# Registry
# =============================================================================


class TestSelectionRegistry:
    """Test strategy registration and lookup."""

    def test_builtin_strategies(self):
        assert build_registry().available() == ["default", "adaptive"]

    def test_create_by_name(self, question_repo):
        strategy = build_registry().create("adaptive", question_repo)
        assert isinstance(strategy, AdaptiveSelectionStrategy)

    def test_default_used_when_name_missing(self, question_repo):
        registry = build_registry()
        assert isinstance(registry.create(None, question_repo), DefaultSelectionStrategy)

        registry.set_default(StrategyName.ADAPTIVE)
        assert isinstance(registry.create(None, question_repo), AdaptiveSelectionStrategy)

    def test_unknown_strategy(self, question_repo):
        with pytest.raises(UnknownStrategy):
            build_registry().create("genetic", question_repo)

    def test_set_default_unknown(self):
        with pytest.raises(UnknownStrategy):
            build_registry().set_default("genetic")
