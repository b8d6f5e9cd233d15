"""
Quiz Engine Data Models.

Question bank records, selection criteria, frozen question snapshots and
quiz session state shared by selection, grading, scoring and evaluation.

Configuration inputs (quiz definition, question config, selection criteria)
are pydantic models so they are validated at the boundary. Everything the
engine produces or mutates is a plain dataclass.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Any, Union
from uuid import uuid4

from pydantic import BaseModel, Field, field_validator


# =============================================================================
# Enums
# =============================================================================


class QuestionType(str, Enum):
    """Question types supported by the quiz engine."""

    MCQ_SINGLE = "mcq-single"
    MCQ_MULTIPLE = "mcq-multiple"
    TRUE_FALSE = "true-false"
    NUMERICAL = "numerical"
    SHORT_ANSWER = "short-answer"
    LONG_ANSWER = "long-answer"
    CASE_BASED = "case-based"


# Types graded by a human tutor
MANUAL_TYPES = frozenset(
    {QuestionType.SHORT_ANSWER, QuestionType.LONG_ANSWER, QuestionType.CASE_BASED}
)


class DifficultyLevel(str, Enum):
    """Difficulty levels, ordered easy < medium < hard."""

    EASY = "easy"
    MEDIUM = "medium"
    HARD = "hard"

    @property
    def rank(self) -> int:
        return DIFFICULTY_ORDER.index(self)

    def adjacent(self) -> list[DifficultyLevel]:
        """Levels one step away in the ordered sequence."""
        i = self.rank
        return [DIFFICULTY_ORDER[j] for j in (i - 1, i + 1) if 0 <= j < len(DIFFICULTY_ORDER)]


DIFFICULTY_ORDER = (DifficultyLevel.EASY, DifficultyLevel.MEDIUM, DifficultyLevel.HARD)


class SessionStatus(str, Enum):
    """Lifecycle of a quiz attempt."""

    IN_PROGRESS = "in-progress"
    SUBMITTED = "submitted"
    AUTO_SUBMITTED = "auto-submitted"
    EXPIRED = "expired"
    EVALUATING = "evaluating"
    COMPLETED = "completed"


# Statuses that consume an attempt
FINISHED_STATUSES = frozenset(
    {
        SessionStatus.SUBMITTED,
        SessionStatus.AUTO_SUBMITTED,
        SessionStatus.EVALUATING,
        SessionStatus.COMPLETED,
    }
)

# Statuses whose scores have been computed
SCORED_STATUSES = frozenset({SessionStatus.EVALUATING, SessionStatus.COMPLETED})


AnswerValue = Union[str, list[str], float, int, bool, None]


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def percentage_of(score: float, total: float) -> float:
    """Score as a percentage of total (0 when there is nothing to score)."""
    if total <= 0:
        return 0.0
    return (score / total) * 100


# =============================================================================
# Question Bank
# =============================================================================


@dataclass(frozen=True)
class QuestionOption:
    """A single answer option (correct or distractor)."""

    id: str
    text: str
    is_correct: bool = False
    explanation: str | None = None


@dataclass(frozen=True)
class NumericalAnswer:
    """Expected value for numerical questions, with an inclusive tolerance."""

    value: float
    tolerance: float = 0.0
    unit: str | None = None


@dataclass
class QuestionSpec:
    """
    A question in the bank, as supplied by the question repository.

    ``usage_count``, ``correct_attempts`` and ``total_attempts`` are shared
    lifetime counters updated by selection and scoring.
    """

    id: str
    course_id: str
    topic: str
    type: QuestionType
    difficulty_level: DifficultyLevel
    text: str
    marks: float = 1.0
    negative_marks: float = 0.0
    options: list[QuestionOption] = field(default_factory=list)
    numerical_answer: NumericalAnswer | None = None
    expected_answer: str | None = None
    keywords: list[str] = field(default_factory=list)
    case_study: str | None = None
    explanation: str | None = None
    is_active: bool = True
    usage_count: int = 0
    correct_attempts: int = 0
    total_attempts: int = 0

    def __post_init__(self) -> None:
        self.type = QuestionType(self.type)
        self.difficulty_level = DifficultyLevel(self.difficulty_level)
        if self.marks < 0 or self.negative_marks < 0:
            raise ValueError(f"Question {self.id}: marks must be non-negative")

    @property
    def success_rate(self) -> float:
        """Historical success rate in percent (0 if never attempted)."""
        if self.total_attempts == 0:
            return 0.0
        return (self.correct_attempts / self.total_attempts) * 100


# =============================================================================
# Snapshots
# =============================================================================


@dataclass(frozen=True)
class OptionSnapshot:
    """Option as frozen into a session, with its position after shuffling."""

    id: str
    text: str
    is_correct: bool = False
    display_order: int = 0


@dataclass(frozen=True)
class QuestionSnapshot:
    """
    Immutable copy of a question's gradable fields, taken at selection time.

    Grading always reads the snapshot, never the live question, so later
    edits to the bank cannot change an in-progress or completed attempt.
    """

    text: str
    type: QuestionType
    topic: str
    difficulty_level: DifficultyLevel
    marks: float
    negative_marks: float = 0.0
    case_study: str | None = None
    options: tuple[OptionSnapshot, ...] = ()
    numerical_answer: NumericalAnswer | None = None
    expected_answer: str | None = None
    keywords: tuple[str, ...] = ()

    @classmethod
    def from_question(
        cls,
        question: QuestionSpec,
        options: list[QuestionOption] | None = None,
    ) -> QuestionSnapshot:
        """Freeze a question, optionally with a reordered option list."""
        ordered = question.options if options is None else options
        return cls(
            text=question.text,
            type=question.type,
            topic=question.topic,
            difficulty_level=question.difficulty_level,
            marks=question.marks,
            negative_marks=question.negative_marks,
            case_study=question.case_study,
            options=tuple(
                OptionSnapshot(
                    id=opt.id,
                    text=opt.text,
                    is_correct=opt.is_correct,
                    display_order=position,
                )
                for position, opt in enumerate(ordered)
            ),
            numerical_answer=question.numerical_answer,
            expected_answer=question.expected_answer,
            keywords=tuple(question.keywords),
        )

    def correct_option_ids(self) -> set[str]:
        return {opt.id for opt in self.options if opt.is_correct}

    def student_view(self) -> dict[str, Any]:
        """Snapshot fields safe to show while the attempt is running."""
        return {
            "text": self.text,
            "type": self.type.value,
            "case_study": self.case_study,
            "options": [
                {"id": opt.id, "text": opt.text, "display_order": opt.display_order}
                for opt in self.options
            ],
            "marks": self.marks,
            "negative_marks": self.negative_marks,
            "topic": self.topic,
            "difficulty_level": self.difficulty_level.value,
            "unit": self.numerical_answer.unit if self.numerical_answer else None,
        }


@dataclass(frozen=True)
class SelectedQuestion:
    """A question chosen for an attempt, in display order."""

    question_id: str
    original_order: int
    display_order: int
    snapshot: QuestionSnapshot | None


# =============================================================================
# Quiz Configuration
# =============================================================================


class DifficultyDistribution(BaseModel):
    """Optional per-level distribution; any non-zero level disables difficulty filtering."""

    easy: float = Field(default=0, ge=0)
    medium: float = Field(default=0, ge=0)
    hard: float = Field(default=0, ge=0)

    @property
    def is_custom(self) -> bool:
        return bool(self.easy or self.medium or self.hard)


class QuestionConfig(BaseModel):
    """How many questions to select and how to balance them."""

    total_questions: int = Field(..., ge=1, description="Questions per attempt")
    topic_weightage: dict[str, float] = Field(default_factory=dict)
    type_distribution: dict[QuestionType, float] = Field(default_factory=dict)
    difficulty_distribution: DifficultyDistribution = Field(default_factory=DifficultyDistribution)

    @field_validator("topic_weightage", "type_distribution")
    @classmethod
    def _weights_non_negative(cls, value: dict) -> dict:
        if any(weight < 0 for weight in value.values()):
            raise ValueError("weights must be non-negative")
        if value and sum(value.values()) <= 0:
            raise ValueError("weights must not all be zero")
        return value


class QuizSettings(BaseModel):
    """Per-quiz behaviour toggles."""

    shuffle_questions: bool = True
    shuffle_options: bool = True
    negative_marking: bool = False
    show_correct_answers: bool = True
    show_explanations: bool = True
    allow_review: bool = True
    allow_resume: bool = True


class StudentPerformance(BaseModel):
    """Past performance used by adaptive selection (topic -> accuracy 0-100)."""

    topic_accuracy: dict[str, float] = Field(default_factory=dict)

    @field_validator("topic_accuracy")
    @classmethod
    def _accuracy_in_range(cls, value: dict[str, float]) -> dict[str, float]:
        for topic, accuracy in value.items():
            if not 0 <= accuracy <= 100:
                raise ValueError(f"accuracy for {topic} must be within 0-100")
        return value


class SelectionCriteria(BaseModel):
    """Everything a selection strategy needs to choose questions for one attempt."""

    course_id: str
    difficulty_level: DifficultyLevel
    question_config: QuestionConfig
    exclude_question_ids: set[str] = Field(default_factory=set)
    settings: QuizSettings = Field(default_factory=QuizSettings)
    student_id: str | None = None
    student_performance: StudentPerformance | None = None


class QuizStats(BaseModel):
    """Running aggregates over completed attempts of a quiz."""

    total_attempts: int = 0
    average_score: float = 0.0
    pass_rate: float = 0.0
    average_time_spent: float = 0.0  # minutes

    def record(self, score: float, time_spent_minutes: float, passed: bool) -> None:
        """Fold one attempt into the running averages."""
        old_total = self.total_attempts
        new_total = old_total + 1

        self.average_score = ((self.average_score * old_total) + score) / new_total
        self.average_time_spent = (
            (self.average_time_spent * old_total) + time_spent_minutes
        ) / new_total

        pass_count = round((self.pass_rate / 100) * old_total) + (1 if passed else 0)
        self.pass_rate = (pass_count / new_total) * 100
        self.total_attempts = new_total


class QuizDefinition(BaseModel):
    """A published quiz as configured by the tutor."""

    quiz_id: str
    course_id: str
    difficulty_level: DifficultyLevel
    duration_minutes: int = Field(default=30, ge=1, le=300)
    total_marks: float | None = Field(default=None, ge=0)
    passing_percentage: float = Field(default=40, ge=0, le=100)
    attempts_allowed: int = Field(default=1, ge=1, le=10)
    question_config: QuestionConfig
    settings: QuizSettings = Field(default_factory=QuizSettings)
    selection_strategy: str | None = None
    stats: QuizStats = Field(default_factory=QuizStats)


# =============================================================================
# Quiz Session
# =============================================================================


@dataclass
class Answer:
    """A student's answer to one selected question, plus its grading outcome."""

    question_id: str
    answer: AnswerValue = None
    is_correct: bool | None = None  # None = not graded / pending manual evaluation
    marks_awarded: float = 0.0
    negative_marks_applied: float = 0.0
    time_spent: float = 0.0  # seconds
    manual_feedback: str | None = None
    evaluated_by: str | None = None
    evaluated_at: datetime | None = None
    is_visited: bool = False
    is_marked_for_review: bool = False

    @property
    def is_blank(self) -> bool:
        return self.answer is None or self.answer == "" or self.answer == []


@dataclass
class QuizSession:
    """
    One student's attempt at a quiz.

    Owned by a single student while in progress; scoring fields become final
    once the status reaches ``completed`` (manual overrides excepted).
    """

    quiz_id: str
    student_id: str
    course_id: str
    attempt_number: int
    total_marks: float
    passing_percentage: float
    duration_minutes: int
    selected_questions: list[SelectedQuestion] = field(default_factory=list)
    answers: list[Answer] = field(default_factory=list)
    session_id: str = field(default_factory=lambda: uuid4().hex)
    status: SessionStatus = SessionStatus.IN_PROGRESS
    negative_marking: bool = False
    auto_score: float = 0.0
    manual_score: float = 0.0
    total_score: float = 0.0
    percentage: float = 0.0
    passed: bool = False
    pending_manual_evaluation: bool = False
    questions_for_manual_evaluation: list[str] = field(default_factory=list)
    started_at: datetime = field(default_factory=utcnow)
    expires_at: datetime | None = None
    submitted_at: datetime | None = None
    last_active_at: datetime | None = None
    time_spent: float = 0.0  # seconds
    current_question_index: int = 0
    algorithm_version: str = "v1.0"
    selection_summary: dict[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        self.status = SessionStatus(self.status)
        if self.attempt_number < 1:
            raise ValueError("attempt_number must be at least 1")
        if self.expires_at is None:
            self.expires_at = self.started_at + timedelta(minutes=self.duration_minutes)

    def selected_question(self, question_id: str) -> SelectedQuestion | None:
        for selected in self.selected_questions:
            if selected.question_id == question_id:
                return selected
        return None

    def snapshot_for(self, question_id: str) -> QuestionSnapshot | None:
        selected = self.selected_question(question_id)
        return selected.snapshot if selected else None

    def answer_for(self, question_id: str) -> Answer | None:
        for answer in self.answers:
            if answer.question_id == question_id:
                return answer
        return None

    def is_expired(self, now: datetime | None = None) -> bool:
        return (now or utcnow()) > self.expires_at

    def remaining_time(self, now: datetime | None = None) -> int:
        """Seconds left for an in-progress attempt."""
        if self.status != SessionStatus.IN_PROGRESS:
            return 0
        remaining = (self.expires_at - (now or utcnow())).total_seconds()
        return max(0, int(remaining))

    def apply_totals(self, total_score: float) -> None:
        """Set total score (clamped at 0) and derive percentage and pass/fail."""
        self.total_score = max(0.0, total_score)
        self.percentage = percentage_of(self.total_score, self.total_marks)
        self.passed = self.percentage >= self.passing_percentage
