"""
Answer validator registry.

A validator takes a question snapshot and the submitted answer and returns
``True`` (correct), ``False`` (incorrect) or ``None`` (needs a human).
"""

from __future__ import annotations

from collections.abc import Callable

from loguru import logger

from tutorquiz.models import AnswerValue, QuestionSnapshot, QuestionType

Validator = Callable[[QuestionSnapshot, AnswerValue], "bool | None"]

# Validator registry - populated by @register decorator
VALIDATORS: dict[QuestionType, Validator] = {}


def register(question_type: QuestionType):
    """Decorator to register a validator for a question type."""

    def decorator(func: Validator) -> Validator:
        VALIDATORS[question_type] = func
        logger.debug(f"Registered validator: {question_type.value} -> {func.__name__}")
        return func

    return decorator


def is_blank(answer: AnswerValue) -> bool:
    """No answer given (``0`` and ``False`` are real answers)."""
    if answer is None:
        return True
    if isinstance(answer, str):
        return answer.strip() == ""
    if isinstance(answer, list):
        return len(answer) == 0
    return False
