"""
Evaluation result models.

An EvaluationResult is derived from exactly one completed QuizSession.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum

from tutorquiz.models import DIFFICULTY_ORDER, DifficultyLevel, QuestionType, utcnow


class TimeRating(str, Enum):
    EXCELLENT = "excellent"
    GOOD = "good"
    AVERAGE = "average"
    POOR = "poor"


class Trend(str, Enum):
    FIRST_ATTEMPT = "first-attempt"
    IMPROVING = "improving"
    DECLINING = "declining"
    STABLE = "stable"


class SuggestionType(str, Enum):
    TOPIC_REVISION = "topic-revision"
    TIME_MANAGEMENT = "time-management"
    DIFFICULTY_ADJUSTMENT = "difficulty-adjustment"


class Priority(str, Enum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


@dataclass
class AccuracyStats:
    """Correct vs total counter with its accuracy in percent."""

    total: int = 0
    correct: int = 0
    accuracy: float = 0.0

    def add(self, correct: bool) -> None:
        self.total += 1
        if correct:
            self.correct += 1

    def finalize(self) -> None:
        self.accuracy = (self.correct / self.total) * 100 if self.total else 0.0


def empty_difficulty_stats() -> dict[DifficultyLevel, AccuracyStats]:
    return {level: AccuracyStats() for level in DIFFICULTY_ORDER}


@dataclass
class TopicAnalysis:
    topic: str
    total_questions: int = 0
    correct_answers: int = 0
    wrong_answers: int = 0
    unattempted: int = 0
    marks_obtained: float = 0.0
    total_marks: float = 0.0
    time_spent: float = 0.0
    difficulty: dict[DifficultyLevel, AccuracyStats] = field(default_factory=empty_difficulty_stats)
    accuracy: float = 0.0
    average_time_per_question: float = 0.0
    is_weak_area: bool = False


@dataclass
class OverallAnalysis:
    total_questions: int = 0
    attempted: int = 0
    correct: int = 0
    wrong: int = 0
    unattempted: int = 0
    pending: int = 0
    accuracy: float = 0.0  # correct / attempted
    total_time_spent: float = 0.0
    average_time_per_question: float = 0.0


@dataclass
class TimeAnalysis:
    total_time_allowed: float = 0.0  # seconds
    total_time_used: float = 0.0
    time_utilization: float = 0.0  # percent of allowed
    average_time_per_question: float = 0.0
    time_management_rating: TimeRating = TimeRating.AVERAGE
    fastest_question_id: str | None = None
    slowest_question_id: str | None = None


@dataclass
class WeakArea:
    topic: str
    accuracy: float
    recommendation: str


@dataclass
class StrongArea:
    topic: str
    accuracy: float


@dataclass
class Suggestion:
    type: SuggestionType
    priority: Priority
    message: str
    action_items: list[str] = field(default_factory=list)
    topic: str | None = None
    recommended_quiz_level: DifficultyLevel | None = None


@dataclass
class Comparison:
    previous_attempts: int = 0
    score_improvement: float = 0.0
    accuracy_improvement: float = 0.0
    trend: Trend = Trend.FIRST_ATTEMPT


@dataclass
class ManualEvaluationRecord:
    """Audit entry for marks supplied by a tutor."""

    question_id: str
    evaluator_id: str
    marks_awarded: float
    feedback: str | None = None
    evaluated_at: datetime = field(default_factory=utcnow)


@dataclass
class EvaluationResult:
    """Post-hoc analytics for one completed session."""

    session_id: str
    quiz_id: str
    student_id: str
    course_id: str
    auto_score: float
    manual_score: float
    final_score: float
    total_marks: float
    percentage: float
    passed: bool
    grade: str
    overall: OverallAnalysis = field(default_factory=OverallAnalysis)
    topic_analysis: list[TopicAnalysis] = field(default_factory=list)
    difficulty_analysis: dict[DifficultyLevel, AccuracyStats] = field(
        default_factory=empty_difficulty_stats
    )
    question_type_analysis: dict[QuestionType, AccuracyStats] = field(default_factory=dict)
    time_analysis: TimeAnalysis = field(default_factory=TimeAnalysis)
    weak_areas: list[WeakArea] = field(default_factory=list)
    strong_areas: list[StrongArea] = field(default_factory=list)
    suggestions: list[Suggestion] = field(default_factory=list)
    comparison: Comparison = field(default_factory=Comparison)
    manual_evaluations: list[ManualEvaluationRecord] = field(default_factory=list)
    evaluated_by: str | None = None
    evaluated_at: datetime | None = None
    generated_at: datetime = field(default_factory=utcnow)

    @property
    def pass_fail(self) -> str:
        return "pass" if self.passed else "fail"

    def topic(self, name: str) -> TopicAnalysis | None:
        for analysis in self.topic_analysis:
            if analysis.topic == name:
                return analysis
        return None
