"""
Unit tests for the sampling helpers used by selection strategies.
"""

import random

import pytest

from tutorquiz.models import DifficultyDistribution, DifficultyLevel
from tutorquiz.selection.sampling import (
    filter_by_difficulty,
    random_select,
    round_half_up,
    shuffle,
    topic_targets,
)


class TestShuffle:
    """Test Fisher-Yates shuffle and sampling."""

    def test_shuffle_keeps_all_items(self, rng):
        items = list(range(20))
        result = shuffle(items, rng)

        assert sorted(result) == items
        assert items == list(range(20))  # input untouched

    def test_shuffle_is_reproducible_with_seed(self):
        a = shuffle(list(range(10)), random.Random(99))
        b = shuffle(list(range(10)), random.Random(99))
        assert a == b

    def test_random_select_caps_at_pool_size(self, rng):
        assert len(random_select([1, 2, 3], 5, rng)) == 3

    def test_random_select_zero_count(self, rng):
        assert random_select([1, 2, 3], 0, rng) == []

    def test_random_select_without_replacement(self, rng):
        result = random_select(list(range(10)), 6, rng)
        assert len(result) == len(set(result)) == 6


class TestTopicTargets:
    """Test per-topic target counts."""

    def test_proportional_targets(self):
        assert topic_targets({"Algebra": 60, "Geometry": 40}, 10) == {"Algebra": 6, "Geometry": 4}

    def test_half_rounds_up(self):
        assert topic_targets({"A": 1, "B": 1}, 3) == {"A": 2, "B": 2}

    def test_zero_weights_give_no_targets(self):
        assert topic_targets({}, 10) == {}

    @pytest.mark.parametrize(
        "value,expected",
        [(0.5, 1), (1.4, 1), (2.5, 3), (3.0, 3)],
    )
    def test_round_half_up(self, value, expected):
        assert round_half_up(value) == expected


class TestDifficultyFilter:
    """Test primary -> adjacent -> any fallback."""

    def test_primary_level_only(self, make_question):
        questions = [
            make_question("e1", difficulty="easy"),
            make_question("m1", difficulty="medium"),
            make_question("h1", difficulty="hard"),
        ]
        result = filter_by_difficulty(questions, DifficultyLevel.MEDIUM)
        assert [q.id for q in result] == ["m1"]

    def test_falls_back_to_adjacent_level(self, make_question):
        questions = [
            make_question("e1", difficulty="easy"),
            make_question("m1", difficulty="medium"),
        ]
        result = filter_by_difficulty(questions, DifficultyLevel.HARD)
        assert [q.id for q in result] == ["m1"]

    def test_medium_has_two_adjacent_levels(self, make_question):
        questions = [
            make_question("e1", difficulty="easy"),
            make_question("h1", difficulty="hard"),
        ]
        result = filter_by_difficulty(questions, DifficultyLevel.MEDIUM)
        assert {q.id for q in result} == {"e1", "h1"}

    def test_falls_back_to_any_level(self, make_question):
        questions = [make_question("h1", difficulty="hard"), make_question("h2", difficulty="hard")]
        result = filter_by_difficulty(questions, DifficultyLevel.EASY)
        assert [q.id for q in result] == ["h1", "h2"]

    def test_custom_distribution_accepts_every_level(self, make_question):
        questions = [
            make_question("e1", difficulty="easy"),
            make_question("m1", difficulty="medium"),
            make_question("h1", difficulty="hard"),
        ]
        distribution = DifficultyDistribution(easy=30, medium=50, hard=20)
        result = filter_by_difficulty(questions, DifficultyLevel.MEDIUM, distribution)
        assert len(result) == 3

    def test_empty_pool(self):
        assert filter_by_difficulty([], DifficultyLevel.EASY) == []
