"""
Evaluation Analytics Generator.

Builds an EvaluationResult from a completed session:
- Overall, per-topic, per-difficulty and per-type aggregates
- Time utilization and a time management rating
- Weak/strong areas and improvement suggestions
- Trend against the student's previous attempts of the same quiz

The session is only read, never modified, so generating twice from the
same session yields the same aggregates.
"""

from __future__ import annotations

from collections.abc import Sequence
from datetime import datetime

from loguru import logger

from tutorquiz.errors import SessionStateError
from tutorquiz.evaluation.models import (
    AccuracyStats,
    Comparison,
    EvaluationResult,
    ManualEvaluationRecord,
    OverallAnalysis,
    Priority,
    StrongArea,
    Suggestion,
    SuggestionType,
    TimeAnalysis,
    TimeRating,
    TopicAnalysis,
    Trend,
    WeakArea,
    empty_difficulty_stats,
)
from tutorquiz.models import (
    DifficultyLevel,
    QuestionType,
    QuizSession,
    SessionStatus,
    percentage_of,
    utcnow,
)
from tutorquiz.repository import SessionRepository, previous_completed

GRADE_BOUNDARIES = (
    (95, "A+"),
    (85, "A"),
    (75, "B+"),
    (65, "B"),
    (55, "C+"),
    (45, "C"),
    (35, "D"),
)


def grade_for(percentage: float) -> str:
    """Letter grade for a percentage score."""
    for threshold, grade in GRADE_BOUNDARIES:
        if percentage >= threshold:
            return grade
    return "F"


def rate_time_management(utilization: float, accuracy: float) -> TimeRating:
    if 80 <= utilization <= 100 and accuracy >= 70:
        return TimeRating.EXCELLENT
    if 60 <= utilization <= 100 and accuracy >= 50:
        return TimeRating.GOOD
    if utilization < 50 or utilization > 100:
        return TimeRating.POOR
    return TimeRating.AVERAGE


class EvaluationGenerator:
    """
    Generates evaluation results for completed sessions.

    Example:
        generator = EvaluationGenerator(sessions=session_repo)
        result = generator.generate(session)
        print(result.grade, result.comparison.trend)
    """

    def __init__(
        self,
        sessions: SessionRepository | None = None,
        history_window: int = 5,
        weak_area_threshold: float = 50,
        strong_area_threshold: float = 80,
        weak_area_min_questions: int = 2,
    ):
        self.sessions = sessions
        self.history_window = history_window
        self.weak_area_threshold = weak_area_threshold
        self.strong_area_threshold = strong_area_threshold
        self.weak_area_min_questions = weak_area_min_questions

    def generate(
        self,
        session: QuizSession,
        previous_sessions: Sequence[QuizSession] | None = None,
        now: datetime | None = None,
    ) -> EvaluationResult:
        """
        Analyze a completed session.

        Args:
            session: Completed session
            previous_sessions: Prior completed attempts, most recent first.
                Looked up in the session repository when omitted.
            now: Timestamp for the result

        Raises:
            SessionStateError: Session is not completed
        """
        if session.status != SessionStatus.COMPLETED:
            raise SessionStateError(
                f"Session {session.session_id} is {session.status.value}, not completed"
            )

        overall, topics, difficulty, types = self._aggregate(session)
        time_analysis = self._analyze_time(session, overall)
        weak_areas, strong_areas = self._classify_topics(topics)
        suggestions = self._suggest(weak_areas, time_analysis, difficulty)

        if previous_sessions is None:
            previous_sessions = self._history(session)
        comparison = self._compare(session, previous_sessions)

        result = EvaluationResult(
            session_id=session.session_id,
            quiz_id=session.quiz_id,
            student_id=session.student_id,
            course_id=session.course_id,
            auto_score=session.auto_score,
            manual_score=session.manual_score,
            final_score=session.total_score,
            total_marks=session.total_marks,
            percentage=session.percentage,
            passed=session.passed,
            grade=grade_for(session.percentage),
            overall=overall,
            topic_analysis=topics,
            difficulty_analysis=difficulty,
            question_type_analysis=types,
            time_analysis=time_analysis,
            weak_areas=weak_areas,
            strong_areas=strong_areas,
            suggestions=suggestions,
            comparison=comparison,
            generated_at=now or utcnow(),
        )

        logger.info(
            f"Evaluation generated for session {session.session_id}: grade {result.grade}, "
            f"{len(weak_areas)} weak areas, trend {comparison.trend.value}"
        )
        return result

    # ----------------------------------------
    # Aggregation
    # ----------------------------------------

    def _aggregate(
        self, session: QuizSession
    ) -> tuple[
        OverallAnalysis,
        list[TopicAnalysis],
        dict[DifficultyLevel, AccuracyStats],
        dict[QuestionType, AccuracyStats],
    ]:
        overall = OverallAnalysis()
        topics: dict[str, TopicAnalysis] = {}
        difficulty = empty_difficulty_stats()
        types: dict[QuestionType, AccuracyStats] = {}

        for selected in session.selected_questions:
            snapshot = selected.snapshot
            if snapshot is None:
                logger.warning(
                    f"Session {session.session_id}: no snapshot for question "
                    f"{selected.question_id}, skipped"
                )
                continue

            answer = session.answer_for(selected.question_id)
            correct = answer is not None and answer.is_correct is True

            topic = topics.setdefault(snapshot.topic, TopicAnalysis(topic=snapshot.topic))
            topic.total_questions += 1
            topic.total_marks += snapshot.marks
            topic.difficulty[snapshot.difficulty_level].add(correct)
            difficulty[snapshot.difficulty_level].add(correct)
            types.setdefault(snapshot.type, AccuracyStats()).add(correct)
            overall.total_questions += 1

            time_spent = answer.time_spent if answer is not None else 0.0
            topic.time_spent += time_spent
            overall.total_time_spent += time_spent

            if answer is None or answer.is_blank:
                topic.unattempted += 1
                overall.unattempted += 1
                continue

            overall.attempted += 1
            if answer.is_correct is True:
                overall.correct += 1
                topic.correct_answers += 1
                topic.marks_obtained += answer.marks_awarded
            elif answer.is_correct is False:
                overall.wrong += 1
                topic.wrong_answers += 1
                topic.marks_obtained += answer.marks_awarded
            else:
                overall.pending += 1

        overall.accuracy = percentage_of(overall.correct, overall.attempted)
        if overall.total_questions:
            overall.average_time_per_question = overall.total_time_spent / overall.total_questions

        for topic in topics.values():
            topic.accuracy = percentage_of(topic.correct_answers, topic.total_questions)
            if topic.total_questions:
                topic.average_time_per_question = topic.time_spent / topic.total_questions
            topic.is_weak_area = topic.accuracy < self.weak_area_threshold
            for stats in topic.difficulty.values():
                stats.finalize()
        for stats in difficulty.values():
            stats.finalize()
        for stats in types.values():
            stats.finalize()

        return overall, list(topics.values()), difficulty, types

    def _analyze_time(self, session: QuizSession, overall: OverallAnalysis) -> TimeAnalysis:
        allowed = session.duration_minutes * 60
        utilization = percentage_of(overall.total_time_spent, allowed)

        timed = [
            answer
            for answer in session.answers
            if answer.time_spent > 0 and session.snapshot_for(answer.question_id) is not None
        ]
        fastest = min(timed, key=lambda a: a.time_spent, default=None)
        slowest = max(timed, key=lambda a: a.time_spent, default=None)

        return TimeAnalysis(
            total_time_allowed=allowed,
            total_time_used=overall.total_time_spent,
            time_utilization=utilization,
            average_time_per_question=overall.average_time_per_question,
            time_management_rating=rate_time_management(utilization, overall.accuracy),
            fastest_question_id=fastest.question_id if fastest else None,
            slowest_question_id=slowest.question_id if slowest else None,
        )

    def _classify_topics(
        self, topics: list[TopicAnalysis]
    ) -> tuple[list[WeakArea], list[StrongArea]]:
        weak: list[WeakArea] = []
        strong: list[StrongArea] = []
        for topic in topics:
            # A single question is not enough signal for a weak area
            if (
                topic.accuracy < self.weak_area_threshold
                and topic.total_questions >= self.weak_area_min_questions
            ):
                weak.append(
                    WeakArea(
                        topic=topic.topic,
                        accuracy=topic.accuracy,
                        recommendation=f"Focus on revising {topic.topic}. Practice more questions.",
                    )
                )
            elif topic.accuracy >= self.strong_area_threshold:
                strong.append(StrongArea(topic=topic.topic, accuracy=topic.accuracy))
        return weak, strong

    def _suggest(
        self,
        weak_areas: list[WeakArea],
        time_analysis: TimeAnalysis,
        difficulty: dict[DifficultyLevel, AccuracyStats],
    ) -> list[Suggestion]:
        suggestions = [
            Suggestion(
                type=SuggestionType.TOPIC_REVISION,
                priority=Priority.HIGH if weak.accuracy < 30 else Priority.MEDIUM,
                topic=weak.topic,
                message=(
                    f"Your accuracy in {weak.topic} is {weak.accuracy:.1f}%. "
                    "This topic needs more attention."
                ),
                action_items=[
                    f"Review the fundamentals of {weak.topic}",
                    "Practice more questions on this topic",
                    "Watch related video materials",
                ],
                recommended_quiz_level=DifficultyLevel.EASY,
            )
            for weak in weak_areas
        ]

        if time_analysis.time_management_rating == TimeRating.POOR:
            suggestions.append(
                Suggestion(
                    type=SuggestionType.TIME_MANAGEMENT,
                    priority=Priority.HIGH,
                    message="Your time management needs improvement.",
                    action_items=[
                        "Practice with timed quizzes",
                        "Allocate time per question before starting",
                        "Don't spend too much time on difficult questions",
                    ],
                )
            )

        easy = difficulty[DifficultyLevel.EASY]
        medium = difficulty[DifficultyLevel.MEDIUM]
        hard = difficulty[DifficultyLevel.HARD]
        if easy.total and easy.accuracy < 70:
            suggestions.append(
                Suggestion(
                    type=SuggestionType.DIFFICULTY_ADJUSTMENT,
                    priority=Priority.HIGH,
                    message="Focus on mastering easier concepts before moving to harder ones.",
                    action_items=[
                        "Start with easy level quizzes",
                        "Build strong foundation in basics",
                    ],
                    recommended_quiz_level=DifficultyLevel.EASY,
                )
            )
        elif medium.total and medium.accuracy >= 80 and hard.accuracy < 50:
            suggestions.append(
                Suggestion(
                    type=SuggestionType.DIFFICULTY_ADJUSTMENT,
                    priority=Priority.MEDIUM,
                    message="You're ready to challenge yourself with harder questions.",
                    action_items=[
                        "Attempt more hard level questions",
                        "Focus on advanced concepts",
                    ],
                    recommended_quiz_level=DifficultyLevel.HARD,
                )
            )
        return suggestions

    # ----------------------------------------
    # History
    # ----------------------------------------

    def _history(self, session: QuizSession) -> list[QuizSession]:
        if self.sessions is None:
            return []
        return previous_completed(self.sessions, session, limit=self.history_window)

    def _compare(self, session: QuizSession, previous: Sequence[QuizSession]) -> Comparison:
        previous = list(previous)[: self.history_window]
        if not previous:
            return Comparison()

        last = previous[0]
        score_improvement = session.total_score - last.total_score
        accuracy_improvement = session.percentage - percentage_of(
            last.total_score, last.total_marks
        )

        if score_improvement > 0:
            trend = Trend.IMPROVING
        elif score_improvement < 0:
            trend = Trend.DECLINING
        else:
            trend = Trend.STABLE

        return Comparison(
            previous_attempts=len(previous),
            score_improvement=score_improvement,
            accuracy_improvement=accuracy_improvement,
            trend=trend,
        )


def refresh_scores(
    result: EvaluationResult,
    session: QuizSession,
    evaluator_id: str | None = None,
    manual_evaluations: Sequence[ManualEvaluationRecord] = (),
    now: datetime | None = None,
) -> EvaluationResult:
    """
    Amend an existing result after manual evaluation or an override.

    Only the score fields, grade and audit log change; the aggregates stay
    as generated.
    """
    result.auto_score = session.auto_score
    result.manual_score = session.manual_score
    result.final_score = session.total_score
    result.total_marks = session.total_marks
    result.percentage = session.percentage
    result.passed = session.passed
    result.grade = grade_for(session.percentage)
    result.manual_evaluations.extend(manual_evaluations)
    if evaluator_id is not None:
        result.evaluated_by = evaluator_id
        result.evaluated_at = now or utcnow()

    logger.info(
        f"Evaluation for session {session.session_id} refreshed: "
        f"{result.final_score}/{result.total_marks}, grade {result.grade}"
    )
    return result
