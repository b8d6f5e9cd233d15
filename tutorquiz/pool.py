"""
Question pool statistics for quiz planning.

Summarizes a course's question bank and recommends where it needs more
questions before a quiz can offer unique attempts.
"""
from __future__ import annotations

from collections import Counter
from dataclasses import dataclass
from typing import Dict, Iterable, List

from tutorquiz.models import DIFFICULTY_ORDER, QuestionSpec


@dataclass
class PoolStatistics:
    """Statistics for a course's question pool."""
    course_id: str
    total_questions: int
    active_questions: int
    total_marks: float
    difficulty_distribution: Dict[str, int]  # 'easy', 'medium', 'hard'
    type_distribution: Dict[str, int]  # question type -> count
    topic_distribution: Dict[str, int]  # topic -> active count
    average_success_rate: float | None
    has_sufficient_questions: bool
    min_questions_required: int


def pool_statistics(
    course_id: str,
    questions: Iterable[QuestionSpec],
    min_questions: int = 0,
) -> PoolStatistics:
    """
    Get comprehensive statistics for a course's questions.

    Distributions count active questions only.

    Args:
        course_id: Course the questions belong to
        questions: All questions of the course (inactive included)
        min_questions: Active questions needed for one attempt
    """
    questions = list(questions)
    active = [q for q in questions if q.is_active]

    difficulty_dist = {level.value: 0 for level in DIFFICULTY_ORDER}
    for q in active:
        difficulty_dist[q.difficulty_level.value] += 1

    type_dist = dict(Counter(q.type.value for q in active))
    topic_dist = dict(Counter(q.topic for q in active))

    # Only questions with history say anything about success rate
    rates = [q.success_rate for q in active if q.total_attempts > 0]
    avg_rate = sum(rates) / len(rates) if rates else None

    return PoolStatistics(
        course_id=course_id,
        total_questions=len(questions),
        active_questions=len(active),
        total_marks=sum(q.marks for q in active),
        difficulty_distribution=difficulty_dist,
        type_distribution=type_dist,
        topic_distribution=topic_dist,
        average_success_rate=avg_rate,
        has_sufficient_questions=len(active) >= min_questions,
        min_questions_required=min_questions,
    )


def coverage_recommendations(
    required: int,
    available: int,
    topic_counts: Dict[str, int],
) -> List[str]:
    """Generate recommendations for improving pool coverage."""
    recommendations = []

    if available < required:
        gap = required - available
        recommendations.append(
            f"Add {gap} more questions to reach minimum requirement"
        )

    # Check for unbalanced topics
    if topic_counts:
        counts = list(topic_counts.values())
        if max(counts) > 0 and min(counts) / max(counts) < 0.5:
            recommendations.append(
                "Balance question counts across topics for better variety"
            )

    # Previously seen questions are only excluded while enough unseen ones remain
    if available < required * 2:
        recommendations.append(
            "Consider adding more questions to support multiple unique attempts"
        )

    return recommendations
