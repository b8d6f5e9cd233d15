"""
Smoke Tests for CLI Commands.

These tests verify that CLI commands run without errors and produce output.
They don't validate correctness deeply - just that commands work.

Usage:
    pytest tests/smoke/test_cli_commands.py -v
    pytest tests/smoke/test_cli_commands.py -v -m smoke
"""

import json
import os
import random
import shlex
import subprocess
import sys
from pathlib import Path

import pytest

from tutorquiz import db
from tutorquiz.attempts import QuizAttemptService
from tutorquiz.db import SqlEvaluationRepository, SqlQuestionRepository, SqlSessionRepository
from tutorquiz.models import QuizDefinition

# Mark all tests in this module as smoke tests
pytestmark = pytest.mark.smoke

# Project root
PROJECT_ROOT = Path(__file__).parent.parent.parent

QUESTIONS = [
    {
        "id": f"q-{topic.lower()}-{i}",
        "course_id": "maths-101",
        "topic": topic,
        "type": "mcq-single",
        "difficulty_level": "medium",
        "text": f"{topic} question {i}",
        "marks": 1,
        "options": [
            {"id": "a", "text": "Right", "is_correct": True},
            {"id": "b", "text": "Wrong"},
        ],
    }
    for topic in ("Algebra", "Geometry")
    for i in range(3)
]


def run_cli_command(command: str, database_url: str, timeout: int = 60) -> tuple[int, str, str]:
    """
    Run a CLI command and return exit code, stdout, stderr.

    Args:
        command: The command to run (after 'python -m tutorquiz.cli.main')
        database_url: Database the command should use
        timeout: Maximum time to wait

    Returns:
        Tuple of (exit_code, stdout, stderr)
    """
    env = {
        **os.environ,
        "DATABASE_URL": database_url,
        "PYTHONIOENCODING": "utf-8",
        "COLUMNS": "200",
    }
    result = subprocess.run(
        [sys.executable, "-m", "tutorquiz.cli.main", *shlex.split(command)],
        cwd=PROJECT_ROOT,
        capture_output=True,
        text=True,
        encoding="utf-8",
        timeout=timeout,
        env=env,
    )

    return result.returncode, result.stdout, result.stderr


@pytest.fixture(scope="module")
def database_url(tmp_path_factory):
    """SQLite file seeded with a small question bank."""
    workdir = tmp_path_factory.mktemp("cli")
    url = f"sqlite:///{workdir / 'smoke.db'}"
    bank = workdir / "questions.json"
    bank.write_text(json.dumps(QUESTIONS), encoding="utf-8")

    code, stdout, stderr = run_cli_command(f"questions import {shlex.quote(str(bank))}", url)
    assert code == 0, f"Import failed: {stderr}"
    assert "Imported 6 questions" in stdout
    return url


@pytest.fixture
def graded_session(tmp_path):
    """Completed attempt with every answer wrong, stored in its own database."""
    url = f"sqlite:///{tmp_path / 'report.db'}"
    bank = tmp_path / "questions.json"
    bank.write_text(json.dumps(QUESTIONS), encoding="utf-8")
    code, _, stderr = run_cli_command(f"questions import {shlex.quote(str(bank))}", url)
    assert code == 0, f"Import failed: {stderr}"

    quiz = QuizDefinition(
        quiz_id="quiz-1",
        course_id="maths-101",
        difficulty_level="medium",
        question_config={"total_questions": 6, "topic_weightage": {"Algebra": 50, "Geometry": 50}},
    )
    db.configure(url)
    try:
        with db.session_scope() as session:
            service = QuizAttemptService(
                SqlQuestionRepository(session),
                SqlSessionRepository(session),
                SqlEvaluationRepository(session),
                rng=random.Random(3),
            )
            started = service.start_attempt(quiz, "student-1")
            service.submit(quiz, started.session_id, {sq.question_id: "b" for sq in started.selected_questions})
    finally:
        db.reset()
    return url, started.session_id


class TestCLIHelp:
    """Test that help commands work."""

    def test_main_help(self, tmp_path):
        """Main help should display without errors."""
        code, stdout, stderr = run_cli_command("--help", f"sqlite:///{tmp_path / 'help.db'}")

        assert code == 0, f"Help failed: {stderr}"
        assert "questions" in stdout
        assert "sessions" in stdout

    @pytest.mark.parametrize("group", ["db", "questions", "quiz", "sessions"])
    def test_group_help(self, tmp_path, group):
        code, stdout, stderr = run_cli_command(f"{group} --help", f"sqlite:///{tmp_path / 'help.db'}")

        assert code == 0, f"{group} help failed: {stderr}"


class TestCLIDatabase:
    def test_db_init_is_idempotent(self, tmp_path):
        url = f"sqlite:///{tmp_path / 'init.db'}"

        for _ in range(2):
            code, stdout, stderr = run_cli_command("db init", url)
            assert code == 0, f"db init failed: {stderr}"
            assert "Database initialized" in stdout

    def test_import_rejects_invalid_question(self, tmp_path):
        bad = tmp_path / "bad.json"
        bad.write_text(json.dumps([{"id": "x", "type": "essay"}]), encoding="utf-8")

        code, stdout, _ = run_cli_command(f"questions import {bad}", f"sqlite:///{tmp_path / 'bad.db'}")

        assert code == 1
        assert "Invalid question data" in stdout


class TestCLIQuestions:
    def test_stats(self, database_url):
        code, stdout, stderr = run_cli_command("questions stats maths-101 --required 4", database_url)

        assert code == 0, f"Stats failed: {stderr}"
        assert "Active questions" in stdout
        assert "sufficient" in stdout


class TestCLIQuiz:
    def test_preview(self, database_url):
        code, stdout, stderr = run_cli_command(
            "quiz preview maths-101 -n 4 -t Algebra=50 -t Geometry=50 --seed 7", database_url
        )

        assert code == 0, f"Preview failed: {stderr}"
        assert "4 of 4 questions selected" in stdout

    def test_preview_adaptive(self, database_url):
        code, stdout, stderr = run_cli_command(
            "quiz preview maths-101 -n 3 --strategy adaptive --seed 7", database_url
        )

        assert code == 0, f"Adaptive preview failed: {stderr}"
        assert "v2.0-adaptive" in stdout

    def test_preview_unknown_course(self, database_url):
        code, stdout, _ = run_cli_command("quiz preview physics-201 -n 3", database_url)

        assert code == 1
        assert "No questions available" in stdout

    def test_preview_unknown_strategy(self, database_url):
        code, stdout, _ = run_cli_command("quiz preview maths-101 --strategy genetic", database_url)

        assert code == 1
        assert "Unknown question selection strategy" in stdout


class TestCLISessions:
    def test_pending_empty(self, database_url):
        code, stdout, stderr = run_cli_command("sessions pending", database_url)

        assert code == 0, f"Pending failed: {stderr}"
        assert "No sessions pending" in stdout

    def test_report_missing_session(self, database_url):
        code, stdout, _ = run_cli_command("sessions report does-not-exist", database_url)

        assert code == 1
        assert "No evaluation result" in stdout

    def test_evaluate_missing_session(self, database_url):
        code, stdout, _ = run_cli_command("sessions evaluate does-not-exist q-1 1", database_url)

        assert code == 1
        assert "Session not found" in stdout

    def test_report_completed_session(self, graded_session):
        """Every answer wrong: both topics are weak and flagged high priority."""
        url, session_id = graded_session
        code, stdout, stderr = run_cli_command(f"sessions report {session_id}", url)

        assert code == 0, f"Report failed: {stderr}"
        assert "Grade:" in stdout
        assert "[high] Your accuracy in Algebra is 0.0%" in stdout
        assert "[high] Your accuracy in Geometry is 0.0%" in stdout
