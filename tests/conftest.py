"""
Pytest Configuration and Fixtures.

This file configures pytest and provides shared fixtures for all tests.
"""
import random
import sys
from pathlib import Path

import pytest

# Add project root to path
PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from tutorquiz.models import (  # noqa: E402
    NumericalAnswer,
    QuestionOption,
    QuestionSnapshot,
    QuestionSpec,
    QuizSession,
    SelectedQuestion,
)
from tutorquiz.repository import InMemoryQuestionRepository  # noqa: E402


def pytest_configure(config):
    """Configure pytest markers."""
    config.addinivalue_line("markers", "unit: Unit tests")
    config.addinivalue_line("markers", "integration: Integration tests (SQLite database)")
    config.addinivalue_line("markers", "smoke: Smoke tests for CLI commands")
    config.addinivalue_line("markers", "slow: Slow tests")


def pytest_collection_modifyitems(config, items):
    """Automatically mark tests based on their location."""
    for item in items:
        # Mark based on test file location
        if "unit" in str(item.fspath):
            item.add_marker(pytest.mark.unit)
        elif "integration" in str(item.fspath):
            item.add_marker(pytest.mark.integration)
        elif "smoke" in str(item.fspath):
            item.add_marker(pytest.mark.smoke)


@pytest.fixture(scope="session")
def project_root():
    """Return the project root directory."""
    return PROJECT_ROOT


@pytest.fixture
def rng():
    """Seeded random source for deterministic selection."""
    return random.Random(1234)


def _make_question(
    qid,
    topic="Algebra",
    qtype="mcq-single",
    difficulty="medium",
    course_id="course-1",
    marks=1.0,
    negative_marks=0.0,
    **kwargs,
):
    if "options" not in kwargs:
        if qtype in ("mcq-single", "case-based"):
            kwargs["options"] = [
                QuestionOption(id=f"{qid}-a", text="Option A", is_correct=True),
                QuestionOption(id=f"{qid}-b", text="Option B"),
                QuestionOption(id=f"{qid}-c", text="Option C"),
            ]
        elif qtype == "mcq-multiple":
            kwargs["options"] = [
                QuestionOption(id=f"{qid}-a", text="Option A", is_correct=True),
                QuestionOption(id=f"{qid}-b", text="Option B", is_correct=True),
                QuestionOption(id=f"{qid}-c", text="Option C"),
            ]
        elif qtype == "true-false":
            kwargs["options"] = [
                QuestionOption(id=f"{qid}-t", text="True", is_correct=True),
                QuestionOption(id=f"{qid}-f", text="False"),
            ]
    if qtype == "numerical" and "numerical_answer" not in kwargs:
        kwargs["numerical_answer"] = NumericalAnswer(value=10, tolerance=0.5)

    return QuestionSpec(
        id=qid,
        course_id=course_id,
        topic=topic,
        type=qtype,
        difficulty_level=difficulty,
        text=f"Question {qid}",
        marks=marks,
        negative_marks=negative_marks,
        **kwargs,
    )


@pytest.fixture
def make_question():
    """Factory for QuestionSpec with sensible defaults per type."""
    return _make_question


@pytest.fixture
def make_session():
    """Factory for a QuizSession over the given questions, snapshots frozen in order."""

    def factory(questions, total_marks=None, passing_percentage=40, negative_marking=False, **kwargs):
        selected = [
            SelectedQuestion(
                question_id=q.id,
                original_order=i,
                display_order=i,
                snapshot=QuestionSnapshot.from_question(q),
            )
            for i, q in enumerate(questions)
        ]
        if total_marks is None:
            total_marks = sum(q.marks for q in questions)
        params = {
            "quiz_id": "quiz-1",
            "student_id": "student-1",
            "course_id": "course-1",
            "attempt_number": 1,
            "duration_minutes": 30,
        }
        params.update(kwargs)
        return QuizSession(
            total_marks=total_marks,
            passing_percentage=passing_percentage,
            negative_marking=negative_marking,
            selected_questions=selected,
            **params,
        )

    return factory


@pytest.fixture
def question_bank():
    """
    Course bank with two topics across all difficulties.

    Algebra: 4 easy, 6 medium, 2 hard
    Geometry: 2 easy, 5 medium, 2 hard
    """
    questions = []
    layout = {
        "Algebra": {"easy": 4, "medium": 6, "hard": 2},
        "Geometry": {"easy": 2, "medium": 5, "hard": 2},
    }
    for topic, levels in layout.items():
        for level, count in levels.items():
            for i in range(count):
                questions.append(_make_question(f"{topic[:3].lower()}-{level}-{i}", topic, difficulty=level))
    return questions


@pytest.fixture
def question_repo(question_bank):
    """In-memory repository over the shared question bank."""
    return InMemoryQuestionRepository(question_bank)
