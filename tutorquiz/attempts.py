"""
Quiz attempt lifecycle.

Wires selection, answer recording, scoring and evaluation together:

    start_attempt -> save_answer / mark_for_review -> submit
        -> (evaluating) evaluate_manually / evaluate_bulk -> completed
        -> override (corrections on scored sessions)

Quiz definitions are owned by the caller; their running stats are updated
in place and persisting them is the caller's job.
"""

from __future__ import annotations

import random
from collections.abc import Iterable, Mapping
from datetime import datetime
from typing import Any

from loguru import logger

from tutorquiz.errors import (
    AnswerNotFound,
    AttemptsExhausted,
    SessionExpired,
    SessionStateError,
)
from tutorquiz.evaluation import (
    EvaluationGenerator,
    EvaluationResult,
    ManualEvaluationRecord,
    refresh_scores,
)
from tutorquiz.models import (
    FINISHED_STATUSES,
    Answer,
    AnswerValue,
    QuizDefinition,
    QuizSession,
    SelectionCriteria,
    SessionStatus,
    StudentPerformance,
    utcnow,
)
from tutorquiz.repository import EvaluationRepository, QuestionRepository, SessionRepository
from tutorquiz.scoring import (
    BulkEvaluationReport,
    ManualEvaluation,
    calculate_auto_score,
    override_score,
    submit_bulk_manual_evaluation,
    submit_manual_evaluation,
)
from tutorquiz.selection import SelectionRegistry, StrategyName, build_registry


class QuizAttemptService:
    """
    Runs quiz attempts against the repositories.

    Handles:
    - Starting or resuming attempts, with attempt limits
    - Recording answers while the attempt is open
    - Submission, auto-scoring and evaluation
    - Manual evaluation and overrides
    """

    def __init__(
        self,
        questions: QuestionRepository,
        sessions: SessionRepository,
        evaluations: EvaluationRepository,
        registry: SelectionRegistry | None = None,
        generator: EvaluationGenerator | None = None,
        rng: random.Random | None = None,
    ):
        self.questions = questions
        self.sessions = sessions
        self.evaluations = evaluations
        self.registry = registry or build_registry()
        self.generator = generator or EvaluationGenerator(sessions=sessions)
        self.rng = rng or random.Random()

    # ========================================
    # START
    # ========================================

    def start_attempt(
        self,
        quiz: QuizDefinition,
        student_id: str,
        strategy: str | StrategyName | None = None,
        student_performance: StudentPerformance | None = None,
        now: datetime | None = None,
    ) -> QuizSession:
        """
        Start a new attempt, or resume the student's open one.

        Raises:
            AttemptsExhausted: Every allowed attempt has been used
            SessionStateError: An attempt is open but the quiz disallows resuming
            NoQuestionsAvailable: The course has no active questions
        """
        now = now or utcnow()
        history = self.sessions.find_for_student(quiz.quiz_id, student_id)

        for session in history:
            if session.status != SessionStatus.IN_PROGRESS:
                continue
            if session.is_expired(now):
                session.status = SessionStatus.EXPIRED
                self.sessions.save(session)
                logger.info(f"Session {session.session_id} expired before resume")
                continue
            if not quiz.settings.allow_resume:
                raise SessionStateError(
                    f"Student {student_id} already has quiz {quiz.quiz_id} in progress"
                )
            logger.info(f"Resuming session {session.session_id} for student {student_id}")
            return session

        finished = [s for s in history if s.status in FINISHED_STATUSES]
        if len(finished) >= quiz.attempts_allowed:
            raise AttemptsExhausted(
                f"Student {student_id} has used all {quiz.attempts_allowed} attempts "
                f"of quiz {quiz.quiz_id}"
            )

        seen = {sq.question_id for s in finished for sq in s.selected_questions}
        criteria = SelectionCriteria(
            course_id=quiz.course_id,
            difficulty_level=quiz.difficulty_level,
            question_config=quiz.question_config,
            exclude_question_ids=seen,
            settings=quiz.settings,
            student_id=student_id,
            student_performance=student_performance,
        )

        selector = self.registry.create(
            strategy or quiz.selection_strategy, self.questions, rng=self.rng
        )
        selected = selector.select(criteria)

        total_marks = quiz.total_marks
        if total_marks is None:
            total_marks = sum(sq.snapshot.marks for sq in selected if sq.snapshot)

        session = QuizSession(
            quiz_id=quiz.quiz_id,
            student_id=student_id,
            course_id=quiz.course_id,
            attempt_number=len(finished) + 1,
            total_marks=total_marks,
            passing_percentage=quiz.passing_percentage,
            duration_minutes=quiz.duration_minutes,
            selected_questions=selected,
            negative_marking=quiz.settings.negative_marking,
            started_at=now,
            last_active_at=now,
            algorithm_version=selector.algorithm_version,
            selection_summary={
                "strategy": selector.name.value,
                "requested": quiz.question_config.total_questions,
                "selected": len(selected),
                "excluded": len(seen),
            },
        )

        self.questions.increment_usage(sq.question_id for sq in selected)
        self.sessions.save(session)

        logger.info(
            f"Started session {session.session_id}: student {student_id}, quiz {quiz.quiz_id}, "
            f"attempt {session.attempt_number}, {len(selected)} questions"
        )
        return session

    # ========================================
    # ANSWERS
    # ========================================

    def _open_session(self, session_id: str, now: datetime) -> QuizSession:
        session = self.sessions.get(session_id)
        if session.status != SessionStatus.IN_PROGRESS:
            raise SessionStateError(
                f"Session {session_id} is {session.status.value}, answers are closed"
            )
        if session.is_expired(now):
            session.status = SessionStatus.EXPIRED
            self.sessions.save(session)
            raise SessionExpired(f"Session {session_id} expired at {session.expires_at}")
        return session

    @staticmethod
    def _answer_slot(session: QuizSession, question_id: str) -> Answer:
        if session.selected_question(question_id) is None:
            raise AnswerNotFound(question_id)
        answer = session.answer_for(question_id)
        if answer is None:
            answer = Answer(question_id=question_id)
            session.answers.append(answer)
        return answer

    def save_answer(
        self,
        session_id: str,
        question_id: str,
        answer: AnswerValue,
        time_spent: float = 0.0,
        now: datetime | None = None,
    ) -> Answer:
        """Record (or replace) an answer; time spent accumulates across saves."""
        now = now or utcnow()
        session = self._open_session(session_id, now)

        slot = self._answer_slot(session, question_id)
        slot.answer = answer
        slot.time_spent += time_spent
        slot.is_visited = True
        session.last_active_at = now

        self.sessions.save(session)
        return slot

    def mark_for_review(
        self,
        session_id: str,
        question_id: str,
        marked: bool = True,
        now: datetime | None = None,
    ) -> Answer:
        now = now or utcnow()
        session = self._open_session(session_id, now)

        slot = self._answer_slot(session, question_id)
        slot.is_marked_for_review = marked
        session.last_active_at = now

        self.sessions.save(session)
        return slot

    # ========================================
    # SUBMIT
    # ========================================

    def submit(
        self,
        quiz: QuizDefinition,
        session_id: str,
        answers: Mapping[str, AnswerValue] | None = None,
        now: datetime | None = None,
    ) -> QuizSession:
        """
        Close the attempt, score it and evaluate it if nothing is pending.

        Answers arriving after expiry are dropped; a late attempt passes
        through auto-submitted on its way to scoring.
        """
        now = now or utcnow()
        session = self.sessions.get(session_id)
        if session.status not in (SessionStatus.IN_PROGRESS, SessionStatus.EXPIRED):
            raise SessionStateError(f"Session {session_id} is already {session.status.value}")

        late = session.status == SessionStatus.EXPIRED or session.is_expired(now)
        if answers and late:
            logger.warning(f"Session {session_id}: {len(answers)} answers after expiry dropped")
        elif answers:
            for question_id, value in answers.items():
                slot = self._answer_slot(session, question_id)
                slot.answer = value
                slot.is_visited = True

        session.status = SessionStatus.AUTO_SUBMITTED if late else SessionStatus.SUBMITTED
        session.submitted_at = now
        session.time_spent = max(0.0, (now - session.started_at).total_seconds())

        calculate_auto_score(session, self.questions)

        if session.status == SessionStatus.COMPLETED:
            self._store_evaluation(quiz, session, evaluator_id=None, records=[], now=now)

        self.sessions.save(session)
        logger.info(
            f"Session {session_id} submitted ({'auto' if late else 'manual'}): "
            f"status {session.status.value}"
        )
        return session

    # ========================================
    # EVALUATION
    # ========================================

    def evaluate_manually(
        self,
        session_id: str,
        question_id: str,
        marks: float,
        feedback: str | None = None,
        evaluator_id: str = "tutor",
        quiz: QuizDefinition | None = None,
        now: datetime | None = None,
    ) -> QuizSession:
        """Record a tutor's marks; finishing the last pending answer completes the session."""
        now = now or utcnow()
        session = self.sessions.get(session_id)
        was_completed = session.status == SessionStatus.COMPLETED

        submit_manual_evaluation(session, question_id, marks, feedback, evaluator_id, now)
        record = ManualEvaluationRecord(
            question_id=question_id,
            evaluator_id=evaluator_id,
            marks_awarded=marks,
            feedback=feedback,
            evaluated_at=now,
        )
        self._after_evaluation(quiz, session, was_completed, evaluator_id, [record], now)
        return session

    def evaluate_bulk(
        self,
        session_id: str,
        evaluations: Iterable[ManualEvaluation | Mapping[str, Any]],
        evaluator_id: str = "tutor",
        quiz: QuizDefinition | None = None,
        now: datetime | None = None,
    ) -> BulkEvaluationReport:
        now = now or utcnow()
        session = self.sessions.get(session_id)
        was_completed = session.status == SessionStatus.COMPLETED

        report = submit_bulk_manual_evaluation(session, evaluations, evaluator_id, now)
        records = [
            ManualEvaluationRecord(
                question_id=entry.question_id,
                evaluator_id=evaluator_id,
                marks_awarded=entry.marks,
                feedback=entry.feedback,
                evaluated_at=now,
            )
            for entry in report.evaluated
        ]
        self._after_evaluation(quiz, session, was_completed, evaluator_id, records, now)
        return report

    def override(
        self,
        session_id: str,
        question_id: str,
        new_marks: float,
        reason: str,
        evaluator_id: str = "tutor",
        now: datetime | None = None,
    ) -> QuizSession:
        now = now or utcnow()
        session = self.sessions.get(session_id)
        override_score(session, question_id, new_marks, reason, evaluator_id, now)

        result = self.evaluations.get_for_session(session_id)
        if result is not None:
            refresh_scores(result, session, evaluator_id, now=now)
            self.evaluations.save(result)
        self.sessions.save(session)
        return session

    def pending_sessions(self) -> list[QuizSession]:
        """Sessions waiting for a tutor."""
        return self.sessions.find_by_status(SessionStatus.EVALUATING)

    def result_for(self, session_id: str) -> EvaluationResult | None:
        return self.evaluations.get_for_session(session_id)

    # ----------------------------------------
    # Helpers
    # ----------------------------------------

    def _after_evaluation(
        self,
        quiz: QuizDefinition | None,
        session: QuizSession,
        was_completed: bool,
        evaluator_id: str,
        records: list[ManualEvaluationRecord],
        now: datetime,
    ) -> None:
        if session.status == SessionStatus.COMPLETED:
            if was_completed:
                result = self.evaluations.get_for_session(session.session_id)
                if result is not None:
                    refresh_scores(result, session, evaluator_id, records, now)
                    self.evaluations.save(result)
            else:
                self._store_evaluation(quiz, session, evaluator_id, records, now)
        self.sessions.save(session)

    def _store_evaluation(
        self,
        quiz: QuizDefinition | None,
        session: QuizSession,
        evaluator_id: str | None,
        records: list[ManualEvaluationRecord],
        now: datetime,
    ) -> EvaluationResult:
        """Generate the result for a session that just completed."""
        result = self.generator.generate(session, now=now)

        # Earlier evaluations of this session only live on the answers
        logged = {record.question_id for record in records}
        history = [
            ManualEvaluationRecord(
                question_id=answer.question_id,
                evaluator_id=answer.evaluated_by,
                marks_awarded=answer.marks_awarded,
                feedback=answer.manual_feedback,
                evaluated_at=answer.evaluated_at or now,
            )
            for answer in session.answers
            if answer.evaluated_by is not None and answer.question_id not in logged
        ]
        if evaluator_id is not None or history or records:
            refresh_scores(result, session, evaluator_id, history + records, now)
        self.evaluations.save(result)

        if quiz is not None:
            quiz.stats.record(session.total_score, session.time_spent / 60, session.passed)
        return result
