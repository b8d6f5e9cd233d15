"""
Validators for each question type.

Free-text types are never graded automatically; they always come back as
``None`` and go to manual evaluation.
"""

from __future__ import annotations

import math

from tutorquiz.grading.base import is_blank, register
from tutorquiz.models import AnswerValue, QuestionSnapshot, QuestionType

# Absorbs float representation error at the tolerance boundary
FLOAT_EPSILON = 1e-9


@register(QuestionType.MCQ_SINGLE)
def validate_mcq_single(snapshot: QuestionSnapshot, answer: AnswerValue) -> bool:
    correct = snapshot.correct_option_ids()
    if len(correct) != 1:
        return False

    if isinstance(answer, list):
        if len(answer) != 1:
            return False
        answer = answer[0]
    if is_blank(answer) or isinstance(answer, bool):
        return False

    return str(answer) in correct


@register(QuestionType.MCQ_MULTIPLE)
def validate_mcq_multiple(snapshot: QuestionSnapshot, answer: AnswerValue) -> bool:
    """Exact set match: no partial credit for subsets or supersets."""
    if is_blank(answer):
        return False
    submitted = answer if isinstance(answer, list) else [answer]
    return {str(option_id) for option_id in submitted} == snapshot.correct_option_ids()


@register(QuestionType.TRUE_FALSE)
def validate_true_false(snapshot: QuestionSnapshot, answer: AnswerValue) -> bool:
    if is_blank(answer):
        return False
    correct = next((opt for opt in snapshot.options if opt.is_correct), None)
    if correct is None:
        return False

    if isinstance(answer, bool):
        submitted = "true" if answer else "false"
    else:
        submitted = str(answer).strip().lower()
    return submitted == correct.text.strip().lower()


def _parse_number(answer: AnswerValue, unit: str | None) -> float | None:
    if isinstance(answer, bool):
        return None
    if isinstance(answer, (int, float)):
        value = float(answer)
    elif isinstance(answer, str):
        text = answer.strip()
        if unit and text.lower().endswith(unit.lower()):
            text = text[: -len(unit)].strip()
        try:
            value = float(text)
        except ValueError:
            return None
    else:
        return None
    return None if math.isnan(value) else value


@register(QuestionType.NUMERICAL)
def validate_numerical(snapshot: QuestionSnapshot, answer: AnswerValue) -> bool:
    expected = snapshot.numerical_answer
    if expected is None or is_blank(answer):
        return False

    value = _parse_number(answer, expected.unit)
    if value is None:
        return False
    return abs(value - expected.value) <= expected.tolerance + FLOAT_EPSILON


@register(QuestionType.SHORT_ANSWER)
@register(QuestionType.LONG_ANSWER)
@register(QuestionType.CASE_BASED)
def requires_manual_evaluation(snapshot: QuestionSnapshot, answer: AnswerValue) -> None:
    return None
