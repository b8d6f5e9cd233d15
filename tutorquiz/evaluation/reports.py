"""
Roll-up analytics over many evaluation results.

- student_analytics(): one student's performance across attempts
- quiz_analytics(): class performance on one quiz
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import datetime

from tutorquiz.evaluation.models import AccuracyStats, EvaluationResult, empty_difficulty_stats
from tutorquiz.models import DifficultyLevel

TREND_LENGTH = 10
TOP_N = 5

SCORE_BUCKETS = (
    (20, "0-20"),
    (40, "21-40"),
    (60, "41-60"),
    (80, "61-80"),
    (100, "81-100"),
)


@dataclass
class TopicPerformance:
    total_questions: int = 0
    correct: int = 0
    attempts: int = 0  # evaluations that covered the topic
    accuracy: float = 0.0


@dataclass
class TrendPoint:
    generated_at: datetime
    quiz_id: str
    percentage: float
    passed: bool


@dataclass
class WeakTopic:
    topic: str
    accuracy: float
    attempts: int


@dataclass
class StudentAnalytics:
    total_attempts: int = 0
    average_score: float = 0.0
    pass_rate: float = 0.0
    topic_performance: dict[str, TopicPerformance] = field(default_factory=dict)
    difficulty_performance: dict[DifficultyLevel, AccuracyStats] = field(
        default_factory=empty_difficulty_stats
    )
    trend: list[TrendPoint] = field(default_factory=list)
    weak_areas: list[WeakTopic] = field(default_factory=list)


@dataclass
class TopicDifficulty:
    average_accuracy: float
    count: int
    difficulty: DifficultyLevel


@dataclass
class TopPerformer:
    student_id: str
    percentage: float
    grade: str
    time_taken: float


@dataclass
class QuizAnalytics:
    total_attempts: int = 0
    average_score: float = 0.0
    pass_rate: float = 0.0
    score_distribution: dict[str, int] = field(default_factory=dict)
    topic_difficulty: dict[str, TopicDifficulty] = field(default_factory=dict)
    top_performers: list[TopPerformer] = field(default_factory=list)


def _averages(results: list[EvaluationResult]) -> tuple[float, float]:
    average = sum(r.percentage for r in results) / len(results)
    pass_rate = sum(1 for r in results if r.passed) / len(results) * 100
    return round(average, 2), round(pass_rate, 2)


def _newest_first(results: Iterable[EvaluationResult]) -> list[EvaluationResult]:
    return sorted(results, key=lambda r: r.generated_at, reverse=True)


def student_analytics(results: Iterable[EvaluationResult]) -> StudentAnalytics:
    """Aggregate one student's evaluation results."""
    results = _newest_first(results)
    if not results:
        return StudentAnalytics()

    analytics = StudentAnalytics(total_attempts=len(results))
    analytics.average_score, analytics.pass_rate = _averages(results)

    for result in results:
        for topic in result.topic_analysis:
            perf = analytics.topic_performance.setdefault(topic.topic, TopicPerformance())
            perf.total_questions += topic.total_questions
            perf.correct += topic.correct_answers
            perf.attempts += 1
        for level, stats in result.difficulty_analysis.items():
            rollup = analytics.difficulty_performance[level]
            rollup.total += stats.total
            rollup.correct += stats.correct

    for perf in analytics.topic_performance.values():
        if perf.total_questions:
            perf.accuracy = perf.correct / perf.total_questions * 100
    for stats in analytics.difficulty_performance.values():
        stats.finalize()

    # Oldest to newest over the most recent attempts
    analytics.trend = [
        TrendPoint(
            generated_at=r.generated_at,
            quiz_id=r.quiz_id,
            percentage=r.percentage,
            passed=r.passed,
        )
        for r in reversed(results[:TREND_LENGTH])
    ]

    weak = sorted(
        (
            (topic, perf)
            for topic, perf in analytics.topic_performance.items()
            if perf.accuracy < 50
        ),
        key=lambda item: item[1].accuracy,
    )
    analytics.weak_areas = [
        WeakTopic(topic=topic, accuracy=perf.accuracy, attempts=perf.attempts)
        for topic, perf in weak[:TOP_N]
    ]
    return analytics


def _bucket(percentage: float) -> str:
    for upper, label in SCORE_BUCKETS:
        if percentage <= upper:
            return label
    return SCORE_BUCKETS[-1][1]


def _class_difficulty(average_accuracy: float) -> DifficultyLevel:
    if average_accuracy < 40:
        return DifficultyLevel.HARD
    if average_accuracy < 70:
        return DifficultyLevel.MEDIUM
    return DifficultyLevel.EASY


def quiz_analytics(results: Iterable[EvaluationResult]) -> QuizAnalytics:
    """Aggregate all evaluation results of one quiz."""
    results = list(results)
    if not results:
        return QuizAnalytics()

    analytics = QuizAnalytics(
        total_attempts=len(results),
        score_distribution={label: 0 for _, label in SCORE_BUCKETS},
    )
    analytics.average_score, analytics.pass_rate = _averages(results)

    accuracy_sums: dict[str, list[float]] = {}
    for result in results:
        analytics.score_distribution[_bucket(result.percentage)] += 1
        for topic in result.topic_analysis:
            accuracy_sums.setdefault(topic.topic, []).append(topic.accuracy)

    for topic, accuracies in accuracy_sums.items():
        average = sum(accuracies) / len(accuracies)
        analytics.topic_difficulty[topic] = TopicDifficulty(
            average_accuracy=average,
            count=len(accuracies),
            difficulty=_class_difficulty(average),
        )

    best = sorted(results, key=lambda r: r.percentage, reverse=True)[:TOP_N]
    analytics.top_performers = [
        TopPerformer(
            student_id=r.student_id,
            percentage=r.percentage,
            grade=r.grade,
            time_taken=r.overall.total_time_spent,
        )
        for r in best
    ]
    return analytics
