"""
Evaluation analytics for completed quiz sessions.

Usage:
    from tutorquiz.evaluation import EvaluationGenerator

    result = EvaluationGenerator(sessions=session_repo).generate(session)
"""

from tutorquiz.evaluation.generator import EvaluationGenerator, grade_for, refresh_scores
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
)
from tutorquiz.evaluation.reports import (
    QuizAnalytics,
    StudentAnalytics,
    quiz_analytics,
    student_analytics,
)

__all__ = [
    "AccuracyStats",
    "Comparison",
    "EvaluationGenerator",
    "EvaluationResult",
    "ManualEvaluationRecord",
    "OverallAnalysis",
    "Priority",
    "QuizAnalytics",
    "StrongArea",
    "StudentAnalytics",
    "Suggestion",
    "SuggestionType",
    "TimeAnalysis",
    "TimeRating",
    "TopicAnalysis",
    "Trend",
    "WeakArea",
    "grade_for",
    "quiz_analytics",
    "refresh_scores",
    "student_analytics",
]
