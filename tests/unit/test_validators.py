"""
Unit tests for answer validators.
"""

import pytest

from tutorquiz.grading import VALIDATORS, is_blank, validate
from tutorquiz.models import (
    NumericalAnswer,
    QuestionOption,
    QuestionSnapshot,
    QuestionType,
)


@pytest.fixture
def snapshot_of(make_question):
    def factory(qtype, **kwargs):
        return QuestionSnapshot.from_question(make_question("q1", qtype=qtype, **kwargs))

    return factory


class TestRegistry:
    """Every question type has a validator."""

    def test_all_types_registered(self):
        assert set(VALIDATORS) == set(QuestionType)

    @pytest.mark.parametrize(
        "answer,expected",
        [(None, True), ("", True), ("   ", True), ([], True), (0, False), (False, False), ("a", False)],
    )
    def test_is_blank(self, answer, expected):
        assert is_blank(answer) is expected


class TestMcqSingle:
    def test_correct_option(self, snapshot_of):
        assert validate(snapshot_of("mcq-single"), "q1-a") is True

    def test_wrong_option(self, snapshot_of):
        assert validate(snapshot_of("mcq-single"), "q1-b") is False

    def test_single_item_list(self, snapshot_of):
        assert validate(snapshot_of("mcq-single"), ["q1-a"]) is True

    def test_two_item_list(self, snapshot_of):
        assert validate(snapshot_of("mcq-single"), ["q1-a", "q1-b"]) is False

    def test_blank(self, snapshot_of):
        assert validate(snapshot_of("mcq-single"), None) is False

    def test_ambiguous_key_never_correct(self, snapshot_of):
        snapshot = snapshot_of(
            "mcq-single",
            options=[
                QuestionOption(id="x", text="X", is_correct=True),
                QuestionOption(id="y", text="Y", is_correct=True),
            ],
        )
        assert validate(snapshot, "x") is False


class TestMcqMultiple:
    """Exact set match, no partial credit."""

    def test_exact_set(self, snapshot_of):
        assert validate(snapshot_of("mcq-multiple"), ["q1-b", "q1-a"]) is True

    def test_subset(self, snapshot_of):
        assert validate(snapshot_of("mcq-multiple"), ["q1-a"]) is False

    def test_superset(self, snapshot_of):
        assert validate(snapshot_of("mcq-multiple"), ["q1-a", "q1-b", "q1-c"]) is False

    def test_empty(self, snapshot_of):
        assert validate(snapshot_of("mcq-multiple"), []) is False


class TestTrueFalse:
    @pytest.mark.parametrize("answer", ["true", "TRUE", " True ", True])
    def test_matches_case_insensitively(self, snapshot_of, answer):
        assert validate(snapshot_of("true-false"), answer) is True

    @pytest.mark.parametrize("answer", ["false", False, "yes"])
    def test_wrong_answer(self, snapshot_of, answer):
        assert validate(snapshot_of("true-false"), answer) is False

    def test_blank(self, snapshot_of):
        assert validate(snapshot_of("true-false"), "") is False


class TestNumerical:
    """Expected 10 with tolerance 0.5 unless noted."""

    @pytest.mark.parametrize("answer", [10, 10.5, 9.5, "10.5", " 9.75 "])
    def test_within_tolerance(self, snapshot_of, answer):
        assert validate(snapshot_of("numerical"), answer) is True

    @pytest.mark.parametrize("answer", [10.51, 9.49, "abc", None, True, float("nan")])
    def test_rejected(self, snapshot_of, answer):
        assert validate(snapshot_of("numerical"), answer) is False

    @pytest.mark.parametrize("answer", ["5 kg", "5kg", "5 KG", "5"])
    def test_unit_suffix_stripped(self, snapshot_of, answer):
        snapshot = snapshot_of("numerical", numerical_answer=NumericalAnswer(5, 0, "kg"))
        assert validate(snapshot, answer) is True

    def test_missing_expected_value(self, snapshot_of):
        snapshot = snapshot_of("numerical", numerical_answer=None)
        # make_question fills a default only when the key is absent
        assert snapshot.numerical_answer is None
        assert validate(snapshot, 10) is False


class TestFreeText:
    """Free-text types always go to a tutor."""

    @pytest.mark.parametrize("qtype", ["short-answer", "long-answer"])
    @pytest.mark.parametrize("answer", ["Photosynthesis", "", None])
    def test_needs_manual_evaluation(self, snapshot_of, qtype, answer):
        assert validate(snapshot_of(qtype), answer) is None

    def test_case_based(self, snapshot_of):
        assert validate(snapshot_of("case-based"), "q1-a") is None
