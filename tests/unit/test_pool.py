"""
Unit tests for question pool statistics.
"""

import pytest

from tutorquiz.pool import coverage_recommendations, pool_statistics


class TestPoolStatistics:
    def test_distributions(self, question_bank):
        stats = pool_statistics("course-1", question_bank, min_questions=10)

        assert stats.total_questions == 21
        assert stats.active_questions == 21
        assert stats.total_marks == 21
        assert stats.difficulty_distribution == {"easy": 6, "medium": 11, "hard": 4}
        assert stats.type_distribution == {"mcq-single": 21}
        assert stats.topic_distribution == {"Algebra": 12, "Geometry": 9}
        assert stats.has_sufficient_questions is True

    def test_inactive_questions_excluded(self, make_question):
        questions = [
            make_question("q1", difficulty="easy"),
            make_question("q2", qtype="true-false", is_active=False),
        ]
        stats = pool_statistics("course-1", questions, min_questions=2)

        assert stats.total_questions == 2
        assert stats.active_questions == 1
        assert stats.type_distribution == {"mcq-single": 1}
        assert stats.has_sufficient_questions is False

    def test_success_rate_from_attempted_only(self, make_question):
        questions = [
            make_question("q1", correct_attempts=3, total_attempts=4),
            make_question("q2", correct_attempts=1, total_attempts=4),
            make_question("q3"),
        ]
        stats = pool_statistics("course-1", questions)

        assert stats.average_success_rate == pytest.approx(50)

    def test_no_history(self, make_question):
        assert pool_statistics("course-1", [make_question("q1")]).average_success_rate is None

    def test_empty_pool(self):
        stats = pool_statistics("course-1", [], min_questions=5)

        assert stats.active_questions == 0
        assert stats.difficulty_distribution == {"easy": 0, "medium": 0, "hard": 0}
        assert stats.has_sufficient_questions is False


class TestCoverageRecommendations:
    def test_gap_reported(self):
        recommendations = coverage_recommendations(10, 4, {"Algebra": 2, "Geometry": 2})

        assert recommendations[0] == "Add 6 more questions to reach minimum requirement"

    def test_unbalanced_topics(self):
        recommendations = coverage_recommendations(5, 30, {"Algebra": 25, "Geometry": 5})

        assert recommendations == ["Balance question counts across topics for better variety"]

    def test_multiple_attempts(self):
        recommendations = coverage_recommendations(10, 15, {"Algebra": 8, "Geometry": 7})

        assert recommendations == [
            "Consider adding more questions to support multiple unique attempts"
        ]

    def test_healthy_pool(self):
        assert coverage_recommendations(10, 40, {"Algebra": 20, "Geometry": 20}) == []
