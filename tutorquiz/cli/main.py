"""
Typer CLI for the tutorquiz engine.

Commands:
    tutorquiz db init                      - Initialize database tables
    tutorquiz questions import FILE        - Load questions from a JSON file
    tutorquiz questions stats COURSE_ID    - Question pool statistics
    tutorquiz quiz preview COURSE_ID       - Dry-run question selection
    tutorquiz sessions pending             - Sessions waiting for manual evaluation
    tutorquiz sessions evaluate SID QID N  - Submit marks for one answer
    tutorquiz sessions report SID          - Show a session's evaluation result

Usage:
    tutorquiz --help
    tutorquiz questions import bank.json
    tutorquiz quiz preview maths-101 --total 10 --difficulty medium --topic Algebra=60 --topic Geometry=40
    tutorquiz sessions evaluate 3f2a... q-17 4 --feedback "Good reasoning" --evaluator tutor-1
"""

from __future__ import annotations

import json
import random
import sys
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path

import typer
from loguru import logger
from pydantic import ValidationError
from rich import print as rprint
from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from config import get_settings
from tutorquiz.attempts import QuizAttemptService
from tutorquiz.db import (
    SqlEvaluationRepository,
    SqlQuestionRepository,
    SqlSessionRepository,
    init_db,
    session_scope,
)
from tutorquiz.db.serialization import question_from_dict
from tutorquiz.errors import QuizEngineError
from tutorquiz.evaluation import EvaluationGenerator
from tutorquiz.models import DifficultyLevel, QuestionConfig, QuizSettings, SelectionCriteria
from tutorquiz.pool import coverage_recommendations, pool_statistics
from tutorquiz.selection import build_registry

app = typer.Typer(
    help="tutorquiz CLI: question bank, quiz selection and evaluation",
    no_args_is_help=True,
)

console = Console()


@contextmanager
def _engine_errors() -> Iterator[None]:
    """Report engine errors and exit non-zero."""
    try:
        yield
    except QuizEngineError as e:
        rprint(f"[red]✗[/red] {escape(str(e))}")
        raise typer.Exit(code=1)


def _build_service(db) -> QuizAttemptService:
    """Wire the attempt service to SQL repositories on one database session."""
    settings = get_settings()
    sessions = SqlSessionRepository(db)
    generator = EvaluationGenerator(
        sessions=sessions,
        history_window=settings.history_window,
        weak_area_threshold=settings.weak_area_threshold,
        strong_area_threshold=settings.strong_area_threshold,
        weak_area_min_questions=settings.weak_area_min_questions,
    )
    return QuizAttemptService(
        questions=SqlQuestionRepository(db),
        sessions=sessions,
        evaluations=SqlEvaluationRepository(db),
        registry=build_registry(settings.selection_strategy),
        generator=generator,
        rng=random.Random(settings.selection_seed),
    )


# ========================================
# DB COMMANDS
# ========================================

db_app = typer.Typer(help="Database management")
app.add_typer(db_app, name="db")


@db_app.command("init")
def db_init() -> None:
    """
    Initialize database tables.

    Safe to run multiple times (idempotent).
    """
    logger.info("Initializing database tables...")
    init_db()
    rprint("[green]✓[/green] Database initialized!")


# ========================================
# QUESTION COMMANDS
# ========================================

questions_app = typer.Typer(help="Question bank")
app.add_typer(questions_app, name="questions")


@questions_app.command("import")
def questions_import(
    file: Path = typer.Argument(..., exists=True, dir_okay=False, help="JSON list of questions"),
) -> None:
    """
    Import questions from a JSON file.

    Existing questions with the same id are replaced.
    """
    raw = json.loads(file.read_text(encoding="utf-8"))
    if not isinstance(raw, list):
        rprint("[red]✗[/red] Expected a JSON list of questions")
        raise typer.Exit(code=1)

    try:
        questions = [question_from_dict(item) for item in raw]
    except ValidationError as e:
        rprint(f"[red]✗[/red] Invalid question data:\n{escape(str(e))}")
        raise typer.Exit(code=1)

    init_db()
    with session_scope() as db:
        repo = SqlQuestionRepository(db)
        for question in questions:
            repo.add(question)

    logger.info(f"Imported {len(questions)} questions from {file}")
    rprint(f"[green]✓[/green] Imported {len(questions)} questions")


@questions_app.command("stats")
def questions_stats(
    course_id: str = typer.Argument(..., help="Course to summarize"),
    required: int = typer.Option(10, "--required", "-r", help="Questions needed per attempt"),
) -> None:
    """Show pool statistics and coverage recommendations for a course."""
    with session_scope() as db:
        questions = SqlQuestionRepository(db).list_for_course(course_id)

    stats = pool_statistics(course_id, questions, min_questions=required)

    table = Table(title=f"Question Pool: {course_id}", show_header=True)
    table.add_column("Metric", style="cyan")
    table.add_column("Value", justify="right")
    table.add_row("Total questions", str(stats.total_questions))
    table.add_row("Active questions", str(stats.active_questions))
    table.add_row("Total marks", f"{stats.total_marks:g}")
    for level, count in stats.difficulty_distribution.items():
        table.add_row(f"Difficulty: {level}", str(count))
    for qtype, count in sorted(stats.type_distribution.items()):
        table.add_row(f"Type: {qtype}", str(count))
    for topic, count in sorted(stats.topic_distribution.items()):
        table.add_row(f"Topic: {topic}", str(count))
    if stats.average_success_rate is not None:
        table.add_row("Average success rate", f"{stats.average_success_rate:.1f}%")
    console.print(table)

    status = "[green]sufficient[/green]" if stats.has_sufficient_questions else "[red]insufficient[/red]"
    rprint(f"\nPool is {status} for {required} questions per attempt")

    for recommendation in coverage_recommendations(
        required, stats.active_questions, stats.topic_distribution
    ):
        rprint(f"  [yellow]•[/yellow] {recommendation}")


# ========================================
# QUIZ COMMANDS
# ========================================

quiz_app = typer.Typer(help="Quiz selection")
app.add_typer(quiz_app, name="quiz")


def _parse_topics(values: list[str]) -> dict[str, float]:
    weightage: dict[str, float] = {}
    for value in values:
        name, sep, weight = value.rpartition("=")
        if not sep or not name:
            raise typer.BadParameter(f"Expected NAME=WEIGHT, got '{value}'", param_hint="--topic")
        try:
            weightage[name] = float(weight)
        except ValueError:
            raise typer.BadParameter(f"Weight must be a number: '{value}'", param_hint="--topic")
    return weightage


@quiz_app.command("preview")
def quiz_preview(
    course_id: str = typer.Argument(..., help="Course to select from"),
    total: int = typer.Option(10, "--total", "-n", help="Questions to select"),
    difficulty: DifficultyLevel = typer.Option(
        DifficultyLevel.MEDIUM, "--difficulty", "-d", help="Primary difficulty"
    ),
    strategy: str | None = typer.Option(None, "--strategy", "-s", help="default or adaptive"),
    seed: int | None = typer.Option(None, "--seed", help="Seed for reproducible selection"),
    topic: list[str] = typer.Option([], "--topic", "-t", help="Topic weight as NAME=WEIGHT"),
    no_shuffle: bool = typer.Option(False, "--no-shuffle", help="Keep selection order"),
) -> None:
    """
    Dry-run question selection without creating a session.

    Examples:
        tutorquiz quiz preview maths-101 --total 5
        tutorquiz quiz preview maths-101 -n 10 -t Algebra=60 -t Geometry=40 --seed 7
    """
    settings = get_settings()
    weightage = _parse_topics(topic)

    try:
        criteria = SelectionCriteria(
            course_id=course_id,
            difficulty_level=difficulty,
            question_config=QuestionConfig(total_questions=total, topic_weightage=weightage),
            settings=QuizSettings(shuffle_questions=not no_shuffle, shuffle_options=not no_shuffle),
        )
    except ValidationError as e:
        rprint(f"[red]✗[/red] Invalid selection criteria:\n{escape(str(e))}")
        raise typer.Exit(code=1)

    rng = random.Random(seed if seed is not None else settings.selection_seed)
    registry = build_registry(settings.selection_strategy)

    with _engine_errors(), session_scope() as db:
        selector = registry.create(strategy, SqlQuestionRepository(db), rng=rng)
        selected = selector.select(criteria)

    table = Table(
        title=f"Selection preview ({selector.name.value}, {selector.algorithm_version})",
        show_header=True,
    )
    table.add_column("#", justify="right", style="dim")
    table.add_column("Question", style="cyan")
    table.add_column("Topic")
    table.add_column("Type")
    table.add_column("Difficulty")
    table.add_column("Marks", justify="right")
    for sq in selected:
        snapshot = sq.snapshot
        table.add_row(
            str(sq.display_order + 1),
            sq.question_id,
            snapshot.topic,
            snapshot.type.value,
            snapshot.difficulty_level.value,
            f"{snapshot.marks:g}",
        )
    console.print(table)
    rprint(f"\n{len(selected)} of {total} questions selected")


# ========================================
# SESSION COMMANDS
# ========================================

sessions_app = typer.Typer(help="Quiz sessions and manual evaluation")
app.add_typer(sessions_app, name="sessions")


@sessions_app.command("pending")
def sessions_pending() -> None:
    """List sessions waiting for manual evaluation."""
    with session_scope() as db:
        pending = _build_service(db).pending_sessions()

    if not pending:
        rprint("[dim]No sessions pending manual evaluation[/dim]")
        return

    table = Table(title="Pending Manual Evaluation", show_header=True)
    table.add_column("Session", style="cyan")
    table.add_column("Quiz")
    table.add_column("Student")
    table.add_column("Auto score", justify="right")
    table.add_column("Pending questions")
    for session in pending:
        table.add_row(
            session.session_id,
            session.quiz_id,
            session.student_id,
            f"{session.auto_score:g}/{session.total_marks:g}",
            ", ".join(session.questions_for_manual_evaluation),
        )
    console.print(table)


@sessions_app.command("evaluate")
def sessions_evaluate(
    session_id: str = typer.Argument(..., help="Session to evaluate"),
    question_id: str = typer.Argument(..., help="Question being marked"),
    marks: float = typer.Argument(..., help="Marks awarded"),
    feedback: str | None = typer.Option(None, "--feedback", "-f", help="Feedback for the student"),
    evaluator: str = typer.Option("tutor", "--evaluator", "-e", help="Evaluator id"),
) -> None:
    """Submit marks for one pending answer."""
    with _engine_errors(), session_scope() as db:
        session = _build_service(db).evaluate_manually(
            session_id, question_id, marks, feedback=feedback, evaluator_id=evaluator
        )

    remaining = len(session.questions_for_manual_evaluation)
    rprint(f"[green]✓[/green] Marks recorded for {question_id}")
    if remaining:
        rprint(f"  {remaining} answers still pending")
    else:
        rprint(
            f"  Session completed: {session.total_score:g}/{session.total_marks:g} "
            f"({session.percentage:.1f}%) - {'passed' if session.passed else 'failed'}"
        )


@sessions_app.command("report")
def sessions_report(
    session_id: str = typer.Argument(..., help="Session to report on"),
) -> None:
    """Show the evaluation result of a completed session."""
    with session_scope() as db:
        result = _build_service(db).result_for(session_id)

    if result is None:
        rprint(f"[yellow]No evaluation result for session {session_id}[/yellow]")
        raise typer.Exit(code=1)

    console.print(
        Panel(
            f"Score: {result.final_score:g}/{result.total_marks:g} ({result.percentage:.1f}%)\n"
            f"Grade: [bold]{result.grade}[/bold]   Result: {result.pass_fail}\n"
            f"Accuracy: {result.overall.accuracy:.1f}%   "
            f"Time: {result.time_analysis.time_management_rating.value}\n"
            f"Trend: {result.comparison.trend.value}",
            title=f"Session {session_id}",
            border_style="cyan",
        )
    )

    table = Table(title="Topics", show_header=True)
    table.add_column("Topic", style="cyan")
    table.add_column("Correct", justify="right")
    table.add_column("Accuracy", justify="right")
    table.add_column("Weak", justify="center")
    for topic in result.topic_analysis:
        table.add_row(
            topic.topic,
            f"{topic.correct_answers}/{topic.total_questions}",
            f"{topic.accuracy:.1f}%",
            "[red]yes[/red]" if topic.is_weak_area else "",
        )
    console.print(table)

    for suggestion in result.suggestions:
        label = escape(f"[{suggestion.priority.value}]")
        rprint(f"  [yellow]•[/yellow] {label} {escape(suggestion.message)}")


def main() -> None:
    """Entry point for the CLI."""
    settings = get_settings()
    logger.remove()
    logger.add(
        sys.stderr,
        level=settings.log_level,
        format="<green>{time:HH:mm:ss}</green> | <level>{level: <8}</level> | {message}",
    )
    if settings.log_file:
        logger.add(settings.log_file, level=settings.log_level, rotation="10 MB")
    app()


if __name__ == "__main__":
    main()
