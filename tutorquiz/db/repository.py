"""
SQLAlchemy-backed repositories.

Each repository works inside the caller's Session; transactions are the
caller's concern (see ``session_scope``).
"""
from __future__ import annotations

from collections.abc import Iterable
from typing import Any

from loguru import logger
from sqlalchemy import select, update
from sqlalchemy.orm import Session

from tutorquiz.db.models import EvaluationRecord, QuestionRecord, SessionRecord
from tutorquiz.db.serialization import (
    question_from_dict,
    result_from_payload,
    result_to_payload,
    session_from_payload,
    session_to_payload,
)
from tutorquiz.errors import SessionNotFound
from tutorquiz.evaluation.models import EvaluationResult
from tutorquiz.models import QuestionSpec, QuizSession, SessionStatus

_CONTENT_FIELDS = (
    "options",
    "numerical_answer",
    "expected_answer",
    "keywords",
    "case_study",
    "explanation",
)


def _to_spec(record: QuestionRecord) -> QuestionSpec:
    data: dict[str, Any] = {
        "id": record.id,
        "course_id": record.course_id,
        "topic": record.topic,
        "type": record.question_type,
        "difficulty_level": record.difficulty_level,
        "text": record.text,
        "marks": record.marks,
        "negative_marks": record.negative_marks,
        "is_active": record.is_active,
        "usage_count": record.usage_count,
        "correct_attempts": record.correct_attempts,
        "total_attempts": record.total_attempts,
    }
    for name in _CONTENT_FIELDS:
        if name in (record.content or {}):
            data[name] = record.content[name]
    return question_from_dict(data)


class SqlQuestionRepository:
    """Question bank on the ``questions`` table."""

    def __init__(self, session: Session):
        self.session = session

    def add(self, question: QuestionSpec) -> None:
        content = {
            "options": [
                {"id": o.id, "text": o.text, "is_correct": o.is_correct, "explanation": o.explanation}
                for o in question.options
            ],
            "numerical_answer": (
                {
                    "value": question.numerical_answer.value,
                    "tolerance": question.numerical_answer.tolerance,
                    "unit": question.numerical_answer.unit,
                }
                if question.numerical_answer
                else None
            ),
            "expected_answer": question.expected_answer,
            "keywords": list(question.keywords),
            "case_study": question.case_study,
            "explanation": question.explanation,
        }
        self.session.merge(
            QuestionRecord(
                id=question.id,
                course_id=question.course_id,
                topic=question.topic,
                question_type=question.type.value,
                difficulty_level=question.difficulty_level.value,
                text=question.text,
                marks=question.marks,
                negative_marks=question.negative_marks,
                content=content,
                is_active=question.is_active,
                usage_count=question.usage_count,
                correct_attempts=question.correct_attempts,
                total_attempts=question.total_attempts,
            )
        )
        self.session.flush()

    def get(self, question_id: str) -> QuestionSpec | None:
        record = self.session.get(QuestionRecord, question_id)
        return _to_spec(record) if record else None

    def list_for_course(self, course_id: str) -> list[QuestionSpec]:
        stmt = (
            select(QuestionRecord)
            .where(QuestionRecord.course_id == course_id)
            .order_by(QuestionRecord.id)
        )
        return [_to_spec(r) for r in self.session.scalars(stmt)]

    def find_active(
        self, course_id: str, exclude_ids: Iterable[str] | None = None
    ) -> list[QuestionSpec]:
        stmt = select(QuestionRecord).where(
            QuestionRecord.course_id == course_id,
            QuestionRecord.is_active.is_(True),
        )
        excluded = list(exclude_ids or ())
        if excluded:
            stmt = stmt.where(QuestionRecord.id.not_in(excluded))
        stmt = stmt.order_by(QuestionRecord.id)
        return [_to_spec(r) for r in self.session.scalars(stmt)]

    def increment_usage(self, question_ids: Iterable[str]) -> None:
        ids = list(question_ids)
        if not ids:
            return
        self.session.execute(
            update(QuestionRecord)
            .where(QuestionRecord.id.in_(ids))
            .values(usage_count=QuestionRecord.usage_count + 1)
            .execution_options(synchronize_session="fetch")
        )
        logger.debug(f"Usage incremented for {len(ids)} questions")

    def record_attempt(self, question_id: str, correct: bool) -> None:
        values: dict[str, Any] = {"total_attempts": QuestionRecord.total_attempts + 1}
        if correct:
            values["correct_attempts"] = QuestionRecord.correct_attempts + 1
        self.session.execute(
            update(QuestionRecord)
            .where(QuestionRecord.id == question_id)
            .values(**values)
            .execution_options(synchronize_session="fetch")
        )


class SqlSessionRepository:
    """Quiz sessions on the ``quiz_sessions`` table."""

    def __init__(self, session: Session):
        self.session = session

    def get(self, session_id: str) -> QuizSession:
        record = self.session.get(SessionRecord, session_id)
        if record is None:
            raise SessionNotFound(session_id)
        return session_from_payload(record.payload)

    def save(self, quiz_session: QuizSession) -> None:
        self.session.merge(
            SessionRecord(
                id=quiz_session.session_id,
                quiz_id=quiz_session.quiz_id,
                student_id=quiz_session.student_id,
                course_id=quiz_session.course_id,
                status=quiz_session.status.value,
                attempt_number=quiz_session.attempt_number,
                started_at=quiz_session.started_at,
                submitted_at=quiz_session.submitted_at,
                payload=session_to_payload(quiz_session),
            )
        )
        self.session.flush()

    def find_for_student(self, quiz_id: str, student_id: str) -> list[QuizSession]:
        stmt = (
            select(SessionRecord)
            .where(SessionRecord.quiz_id == quiz_id, SessionRecord.student_id == student_id)
            .order_by(SessionRecord.attempt_number)
        )
        return [session_from_payload(r.payload) for r in self.session.scalars(stmt)]

    def find_by_status(self, status: SessionStatus) -> list[QuizSession]:
        stmt = (
            select(SessionRecord)
            .where(SessionRecord.status == SessionStatus(status).value)
            .order_by(SessionRecord.started_at)
        )
        return [session_from_payload(r.payload) for r in self.session.scalars(stmt)]


class SqlEvaluationRepository:
    """Evaluation results on the ``evaluation_results`` table."""

    def __init__(self, session: Session):
        self.session = session

    def get_for_session(self, session_id: str) -> EvaluationResult | None:
        record = self.session.get(EvaluationRecord, session_id)
        return result_from_payload(record.payload) if record else None

    def save(self, result: EvaluationResult) -> None:
        self.session.merge(
            EvaluationRecord(
                session_id=result.session_id,
                quiz_id=result.quiz_id,
                student_id=result.student_id,
                percentage=result.percentage,
                grade=result.grade,
                generated_at=result.generated_at,
                payload=result_to_payload(result),
            )
        )
        self.session.flush()

    def find_for_student(self, student_id: str) -> list[EvaluationResult]:
        stmt = select(EvaluationRecord).where(EvaluationRecord.student_id == student_id)
        return [result_from_payload(r.payload) for r in self.session.scalars(stmt)]

    def find_for_quiz(self, quiz_id: str) -> list[EvaluationResult]:
        stmt = select(EvaluationRecord).where(EvaluationRecord.quiz_id == quiz_id)
        return [result_from_payload(r.payload) for r in self.session.scalars(stmt)]
