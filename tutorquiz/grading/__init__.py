"""
Answer validation.

Usage:
    from tutorquiz.grading import validate

    outcome = validate(selected.snapshot, answer.answer)
    # True / False, or None when a tutor has to grade it
"""

from tutorquiz.grading.base import VALIDATORS, Validator, is_blank, register
from tutorquiz.models import AnswerValue, QuestionSnapshot

# Import validators to trigger registration
from tutorquiz.grading import validators  # noqa: E402,F401


def validate(snapshot: QuestionSnapshot, answer: AnswerValue) -> bool | None:
    """Grade an answer against a snapshot."""
    try:
        validator = VALIDATORS[snapshot.type]
    except KeyError:
        raise ValueError(f"No validator registered for question type: {snapshot.type}") from None
    return validator(snapshot, answer)


__all__ = [
    "VALIDATORS",
    "Validator",
    "is_blank",
    "register",
    "validate",
]
