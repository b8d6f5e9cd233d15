"""
Session Scorer.

Turns validator outcomes into session scores:
- Auto-grading against the frozen snapshots
- Manual evaluation of free-text answers (single and bulk)
- Score overrides on already scored sessions

Score bookkeeping is always derived from the answers:
    auto_score   = max(0, sum of auto-graded marks - negative marks)
    manual_score = sum of marks on answers a tutor has evaluated
    total_score  = max(0, auto_score + manual_score)
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from loguru import logger

from tutorquiz.errors import AnswerNotFound, MarksOutOfRange, QuizEngineError, SessionStateError
from tutorquiz.grading import validate
from tutorquiz.models import (
    SCORED_STATUSES,
    Answer,
    QuestionSnapshot,
    QuizSession,
    SessionStatus,
    utcnow,
)
from tutorquiz.repository import QuestionRepository


@dataclass
class ManualEvaluation:
    """Marks supplied by a tutor for one question."""

    question_id: str
    marks: float
    feedback: str | None = None


@dataclass
class BulkEvaluationError:
    question_id: str
    error: str


@dataclass
class BulkEvaluationReport:
    """Outcome of a bulk manual evaluation."""

    evaluated: list[ManualEvaluation] = field(default_factory=list)
    errors: list[BulkEvaluationError] = field(default_factory=list)
    pending: list[str] = field(default_factory=list)
    completed: bool = False


# =============================================================================
# Auto scoring
# =============================================================================


def calculate_auto_score(
    session: QuizSession,
    repository: QuestionRepository | None = None,
) -> QuizSession:
    """
    Grade every recorded answer against its snapshot.

    Correct answers earn the question's marks. Incorrect ones earn nothing
    and, with negative marking on, lose the question's negative marks.
    Free-text answers are queued for manual evaluation.

    Args:
        session: Submitted session
        repository: When given, lifetime attempt counters are updated

    Returns:
        The same session, now ``completed`` or ``evaluating``

    Raises:
        SessionStateError: The session was already scored
    """
    if session.status in SCORED_STATUSES:
        raise SessionStateError(
            f"Session {session.session_id} is already scored ({session.status.value})"
        )

    pending: list[str] = []

    for answer in session.answers:
        snapshot = session.snapshot_for(answer.question_id)
        if snapshot is None:
            logger.warning(
                f"Session {session.session_id}: answer for unknown question "
                f"{answer.question_id} skipped"
            )
            continue

        outcome = validate(snapshot, answer.answer)
        answer.is_correct = outcome
        answer.marks_awarded = 0.0
        answer.negative_marks_applied = 0.0

        if outcome is None:
            pending.append(answer.question_id)
            continue

        if outcome:
            answer.marks_awarded = snapshot.marks
        elif session.negative_marking and snapshot.negative_marks > 0:
            answer.negative_marks_applied = snapshot.negative_marks

        if repository is not None:
            repository.record_attempt(answer.question_id, outcome)

    session.questions_for_manual_evaluation = pending
    session.pending_manual_evaluation = bool(pending)
    recompute_totals(session)

    if pending:
        session.status = SessionStatus.EVALUATING
        logger.info(
            f"Session {session.session_id}: auto score {session.auto_score}, "
            f"{len(pending)} answers pending manual evaluation"
        )
    else:
        session.status = SessionStatus.COMPLETED
        logger.info(
            f"Session {session.session_id}: completed with {session.total_score}/"
            f"{session.total_marks} ({session.percentage:.1f}%)"
        )
    return session


def recompute_totals(session: QuizSession) -> QuizSession:
    """
    Re-derive scores from the answers.

    Totals, percentage and pass/fail are only final once nothing is
    pending; while answers wait for a tutor they are left as they are.
    A session in ``evaluating`` with nothing pending becomes ``completed``.
    """
    auto = 0.0
    manual = 0.0
    for answer in session.answers:
        if session.snapshot_for(answer.question_id) is None:
            continue
        if answer.evaluated_by is not None:
            manual += answer.marks_awarded
        elif answer.is_correct is not None:
            auto += answer.marks_awarded - answer.negative_marks_applied

    session.auto_score = max(0.0, auto)
    session.manual_score = manual

    if not session.questions_for_manual_evaluation:
        session.pending_manual_evaluation = False
        session.apply_totals(session.auto_score + session.manual_score)
        if session.status == SessionStatus.EVALUATING:
            session.status = SessionStatus.COMPLETED
    return session


# =============================================================================
# Manual evaluation
# =============================================================================


def _require_scored(session: QuizSession) -> None:
    if session.status not in SCORED_STATUSES:
        raise SessionStateError(
            f"Session {session.session_id} cannot be evaluated while {session.status.value}"
        )


def _answer_and_snapshot(session: QuizSession, question_id: str) -> tuple[Answer, QuestionSnapshot]:
    answer = session.answer_for(question_id)
    snapshot = session.snapshot_for(question_id)
    if answer is None or snapshot is None:
        raise AnswerNotFound(question_id)
    return answer, snapshot


def _check_marks(question_id: str, marks: float, snapshot: QuestionSnapshot) -> None:
    if marks < 0 or marks > snapshot.marks:
        raise MarksOutOfRange(question_id, marks, snapshot.marks)


def _apply_manual(
    session: QuizSession,
    question_id: str,
    marks: float,
    feedback: str | None,
    evaluator_id: str,
    now: datetime,
) -> None:
    answer, snapshot = _answer_and_snapshot(session, question_id)
    _check_marks(question_id, marks, snapshot)

    answer.marks_awarded = marks
    answer.negative_marks_applied = 0.0
    answer.manual_feedback = feedback
    answer.evaluated_by = evaluator_id
    answer.evaluated_at = now
    answer.is_correct = marks > 0

    session.questions_for_manual_evaluation = [
        qid for qid in session.questions_for_manual_evaluation if qid != question_id
    ]


def submit_manual_evaluation(
    session: QuizSession,
    question_id: str,
    marks: float,
    feedback: str | None = None,
    evaluator_id: str = "tutor",
    now: datetime | None = None,
) -> QuizSession:
    """
    Record a tutor's marks for one answer.

    Completes the session once no answers are pending.

    Raises:
        SessionStateError: Session has not been scored yet
        AnswerNotFound: No answer recorded for the question
        MarksOutOfRange: Marks outside 0..question marks (session untouched)
    """
    _require_scored(session)
    _apply_manual(session, question_id, marks, feedback, evaluator_id, now or utcnow())
    recompute_totals(session)

    logger.info(
        f"Manual evaluation: question {question_id} in session {session.session_id} "
        f"-> {marks} by {evaluator_id} "
        f"({len(session.questions_for_manual_evaluation)} pending)"
    )
    return session


def submit_bulk_manual_evaluation(
    session: QuizSession,
    evaluations: Iterable[ManualEvaluation | Mapping[str, Any]],
    evaluator_id: str = "tutor",
    now: datetime | None = None,
) -> BulkEvaluationReport:
    """
    Record marks for several answers at once.

    Invalid entries are collected in the report instead of aborting the
    batch; valid entries are applied.
    """
    _require_scored(session)
    now = now or utcnow()
    report = BulkEvaluationReport()

    for entry in evaluations:
        try:
            if isinstance(entry, Mapping):
                entry = ManualEvaluation(**entry)
            _apply_manual(session, entry.question_id, entry.marks, entry.feedback, evaluator_id, now)
        except TypeError as e:
            question_id = (
                entry.get("question_id") if isinstance(entry, Mapping) else entry.question_id
            )
            report.errors.append(
                BulkEvaluationError(str(question_id), f"Malformed evaluation entry: {e}")
            )
            continue
        except QuizEngineError as e:
            report.errors.append(BulkEvaluationError(entry.question_id, str(e)))
            continue
        report.evaluated.append(entry)

    recompute_totals(session)
    report.pending = list(session.questions_for_manual_evaluation)
    report.completed = session.status == SessionStatus.COMPLETED

    logger.info(
        f"Bulk manual evaluation: {len(report.evaluated)} applied, {len(report.errors)} "
        f"rejected in session {session.session_id} by {evaluator_id}"
    )
    return report


# =============================================================================
# Overrides
# =============================================================================


def override_score(
    session: QuizSession,
    question_id: str,
    new_marks: float,
    reason: str,
    evaluator_id: str = "tutor",
    now: datetime | None = None,
) -> QuizSession:
    """
    Replace the marks of an already graded answer.

    Any negative marks previously applied to the answer are lifted, and the
    answer counts as tutor-evaluated from then on.

    Raises:
        SessionStateError: Session is not scored, or the answer is still pending
        AnswerNotFound: No answer recorded for the question
        MarksOutOfRange: Marks outside 0..question marks (session untouched)
    """
    _require_scored(session)
    answer, snapshot = _answer_and_snapshot(session, question_id)
    _check_marks(question_id, new_marks, snapshot)
    if question_id in session.questions_for_manual_evaluation:
        raise SessionStateError(
            f"Question {question_id} is pending manual evaluation; evaluate it instead"
        )

    old_marks = answer.marks_awarded
    note = f" [Override by {evaluator_id}: {reason}]"

    answer.marks_awarded = new_marks
    answer.negative_marks_applied = 0.0
    answer.is_correct = new_marks > 0
    answer.manual_feedback = (answer.manual_feedback or "") + note
    answer.evaluated_by = evaluator_id
    answer.evaluated_at = now or utcnow()

    recompute_totals(session)

    logger.info(
        f"Score override: question {question_id}, {old_marks} -> {new_marks} in session "
        f"{session.session_id} by {evaluator_id} (total {session.total_score})"
    )
    return session
