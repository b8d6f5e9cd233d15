"""
Database models for the question bank, quiz sessions and evaluation results.

Implements:
- QuestionRecord: Question bank row with lifetime usage/attempt counters
- SessionRecord: One quiz attempt, full state in a JSON payload
- EvaluationRecord: Evaluation result for a completed session

Queryable fields (course, topic, status, student) are real columns; the
rest of each record is a JSON payload (JSONB on PostgreSQL).
"""
from __future__ import annotations

from datetime import datetime
from typing import Any

from sqlalchemy import JSON, Boolean, DateTime, Float, Integer, String, Text, func
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

JsonPayload = JSON().with_variant(JSONB(), "postgresql")


class Base(DeclarativeBase):
    """Declarative base for all tutorquiz tables."""


class QuestionRecord(Base):
    """
    Question in the bank.

    Content that only grading needs (options, numerical answer, keywords)
    lives in ``content``:
        {
            "options": [{"id": "a", "text": "...", "is_correct": true}],
            "numerical_answer": {"value": 10, "tolerance": 0.5, "unit": "m"},
            "expected_answer": "...",
            "keywords": ["..."],
            "case_study": "...",
            "explanation": "..."
        }
    """

    __tablename__ = "questions"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    course_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    topic: Mapped[str] = mapped_column(Text, nullable=False)
    question_type: Mapped[str] = mapped_column(String(32), nullable=False)
    difficulty_level: Mapped[str] = mapped_column(String(16), nullable=False)
    text: Mapped[str] = mapped_column(Text, nullable=False)
    marks: Mapped[float] = mapped_column(Float, default=1.0)
    negative_marks: Mapped[float] = mapped_column(Float, default=0.0)
    content: Mapped[dict[str, Any]] = mapped_column(JsonPayload, default=dict)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, index=True)

    # Lifetime counters (incremented atomically in SQL)
    usage_count: Mapped[int] = mapped_column(Integer, default=0)
    correct_attempts: Mapped[int] = mapped_column(Integer, default=0)
    total_attempts: Mapped[int] = mapped_column(Integer, default=0)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())

    def __repr__(self) -> str:
        return f"<QuestionRecord(id={self.id}, topic='{self.topic}', type={self.question_type})>"


class SessionRecord(Base):
    """Quiz attempt."""

    __tablename__ = "quiz_sessions"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    quiz_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    student_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    course_id: Mapped[str] = mapped_column(String(64), nullable=False)
    status: Mapped[str] = mapped_column(String(32), nullable=False, index=True)
    attempt_number: Mapped[int] = mapped_column(Integer, nullable=False)
    started_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    submitted_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    payload: Mapped[dict[str, Any]] = mapped_column(JsonPayload, nullable=False)

    def __repr__(self) -> str:
        return f"<SessionRecord(id={self.id}, status={self.status})>"


class EvaluationRecord(Base):
    """Evaluation result, one per session."""

    __tablename__ = "evaluation_results"

    session_id: Mapped[str] = mapped_column(String(64), primary_key=True)
    quiz_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    student_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    percentage: Mapped[float] = mapped_column(Float, default=0.0)
    grade: Mapped[str] = mapped_column(String(4), nullable=False)
    generated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    payload: Mapped[dict[str, Any]] = mapped_column(JsonPayload, nullable=False)
