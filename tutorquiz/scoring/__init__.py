"""Session scoring: auto-grading, manual evaluation and overrides."""

from tutorquiz.scoring.session_scorer import (
    BulkEvaluationError,
    BulkEvaluationReport,
    ManualEvaluation,
    calculate_auto_score,
    override_score,
    recompute_totals,
    submit_bulk_manual_evaluation,
    submit_manual_evaluation,
)

__all__ = [
    "BulkEvaluationError",
    "BulkEvaluationReport",
    "ManualEvaluation",
    "calculate_auto_score",
    "override_score",
    "recompute_totals",
    "submit_bulk_manual_evaluation",
    "submit_manual_evaluation",
]
