"""
JSON payload conversion for the engine dataclasses.

pydantic TypeAdapters validate and dump the dataclasses, including enums,
datetimes and nested snapshots.
"""

from __future__ import annotations

from typing import Any

from pydantic import TypeAdapter

from tutorquiz.evaluation.models import EvaluationResult
from tutorquiz.models import QuestionSpec, QuizSession

_session_adapter = TypeAdapter(QuizSession)
_result_adapter = TypeAdapter(EvaluationResult)
_question_adapter = TypeAdapter(QuestionSpec)


def session_to_payload(session: QuizSession) -> dict[str, Any]:
    return _session_adapter.dump_python(session, mode="json")


def session_from_payload(payload: dict[str, Any]) -> QuizSession:
    return _session_adapter.validate_python(payload)


def result_to_payload(result: EvaluationResult) -> dict[str, Any]:
    return _result_adapter.dump_python(result, mode="json")


def result_from_payload(payload: dict[str, Any]) -> EvaluationResult:
    return _result_adapter.validate_python(payload)


def question_from_dict(data: dict[str, Any]) -> QuestionSpec:
    """Validate a question from an import file or API payload."""
    return _question_adapter.validate_python(data)


def question_to_dict(question: QuestionSpec) -> dict[str, Any]:
    return _question_adapter.dump_python(question, mode="json")
