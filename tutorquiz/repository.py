"""
Repository interfaces and in-memory implementations.

The engine only talks to these protocols. SQL-backed implementations live
in ``tutorquiz.db.repository``; the in-memory ones here back the tests and
dry-run tooling.
"""

from __future__ import annotations

import threading
from collections.abc import Iterable
from typing import TYPE_CHECKING, Protocol, runtime_checkable

from tutorquiz.errors import SessionNotFound
from tutorquiz.models import QuestionSpec, QuizSession, SessionStatus

if TYPE_CHECKING:
    from tutorquiz.evaluation.models import EvaluationResult


# =============================================================================
# Protocols
# =============================================================================


@runtime_checkable
class QuestionRepository(Protocol):
    """Source of candidate questions and owner of their lifetime counters."""

    def find_active(
        self, course_id: str, exclude_ids: Iterable[str] | None = None
    ) -> list[QuestionSpec]: ...

    def list_for_course(self, course_id: str) -> list[QuestionSpec]: ...

    def get(self, question_id: str) -> QuestionSpec | None: ...

    def add(self, question: QuestionSpec) -> None: ...

    def increment_usage(self, question_ids: Iterable[str]) -> None: ...

    def record_attempt(self, question_id: str, correct: bool) -> None: ...


@runtime_checkable
class SessionRepository(Protocol):
    """Persistence for quiz sessions."""

    def get(self, session_id: str) -> QuizSession: ...

    def save(self, session: QuizSession) -> None: ...

    def find_for_student(self, quiz_id: str, student_id: str) -> list[QuizSession]: ...

    def find_by_status(self, status: SessionStatus) -> list[QuizSession]: ...


@runtime_checkable
class EvaluationRepository(Protocol):
    """Persistence for evaluation results (one per session)."""

    def get_for_session(self, session_id: str) -> EvaluationResult | None: ...

    def save(self, result: EvaluationResult) -> None: ...

    def find_for_student(self, student_id: str) -> list[EvaluationResult]: ...

    def find_for_quiz(self, quiz_id: str) -> list[EvaluationResult]: ...


def previous_completed(
    sessions: SessionRepository,
    session: QuizSession,
    limit: int = 5,
) -> list[QuizSession]:
    """Most recent completed attempts of the same quiz by the same student."""
    history = [
        other
        for other in sessions.find_for_student(session.quiz_id, session.student_id)
        if other.session_id != session.session_id and other.status == SessionStatus.COMPLETED
    ]
    history.sort(key=lambda s: s.submitted_at or s.started_at, reverse=True)
    return history[:limit]


# =============================================================================
# In-memory implementations
# =============================================================================


class InMemoryQuestionRepository:
    """Dict-backed question bank. Counter updates are serialized with a lock."""

    def __init__(self, questions: Iterable[QuestionSpec] = ()):
        self._questions: dict[str, QuestionSpec] = {}
        self._lock = threading.Lock()
        for question in questions:
            self.add(question)

    def __len__(self) -> int:
        return len(self._questions)

    def add(self, question: QuestionSpec) -> None:
        self._questions[question.id] = question

    def get(self, question_id: str) -> QuestionSpec | None:
        return self._questions.get(question_id)

    def list_for_course(self, course_id: str) -> list[QuestionSpec]:
        return [q for q in self._questions.values() if q.course_id == course_id]

    def find_active(
        self, course_id: str, exclude_ids: Iterable[str] | None = None
    ) -> list[QuestionSpec]:
        excluded = set(exclude_ids or ())
        return [
            q
            for q in self._questions.values()
            if q.course_id == course_id and q.is_active and q.id not in excluded
        ]

    def increment_usage(self, question_ids: Iterable[str]) -> None:
        with self._lock:
            for question_id in question_ids:
                question = self._questions.get(question_id)
                if question is not None:
                    question.usage_count += 1

    def record_attempt(self, question_id: str, correct: bool) -> None:
        with self._lock:
            question = self._questions.get(question_id)
            if question is None:
                return
            question.total_attempts += 1
            if correct:
                question.correct_attempts += 1


class InMemorySessionRepository:
    def __init__(self):
        self._sessions: dict[str, QuizSession] = {}

    def get(self, session_id: str) -> QuizSession:
        try:
            return self._sessions[session_id]
        except KeyError:
            raise SessionNotFound(session_id) from None

    def save(self, session: QuizSession) -> None:
        self._sessions[session.session_id] = session

    def find_for_student(self, quiz_id: str, student_id: str) -> list[QuizSession]:
        return [
            s
            for s in self._sessions.values()
            if s.quiz_id == quiz_id and s.student_id == student_id
        ]

    def find_by_status(self, status: SessionStatus) -> list[QuizSession]:
        return [s for s in self._sessions.values() if s.status == status]


class InMemoryEvaluationRepository:
    def __init__(self):
        self._results: dict[str, EvaluationResult] = {}

    def get_for_session(self, session_id: str) -> EvaluationResult | None:
        return self._results.get(session_id)

    def save(self, result: EvaluationResult) -> None:
        self._results[result.session_id] = result

    def find_for_student(self, student_id: str) -> list[EvaluationResult]:
        return [r for r in self._results.values() if r.student_id == student_id]

    def find_for_quiz(self, quiz_id: str) -> list[EvaluationResult]:
        return [r for r in self._results.values() if r.quiz_id == quiz_id]
