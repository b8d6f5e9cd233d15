"""Persistence: SQLAlchemy engine, tables and repositories."""

from tutorquiz.db.database import configure, get_engine, init_db, reset, session_scope
from tutorquiz.db.models import Base, EvaluationRecord, QuestionRecord, SessionRecord
from tutorquiz.db.repository import (
    SqlEvaluationRepository,
    SqlQuestionRepository,
    SqlSessionRepository,
)

__all__ = [
    "Base",
    "EvaluationRecord",
    "QuestionRecord",
    "SessionRecord",
    "SqlEvaluationRepository",
    "SqlQuestionRepository",
    "SqlSessionRepository",
    "configure",
    "get_engine",
    "init_db",
    "reset",
    "session_scope",
]
