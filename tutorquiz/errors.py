"""
Engine exceptions.

Pending manual evaluation is not an error: validators report it as
``None`` and the scorer turns it into session status.
"""

from __future__ import annotations


class QuizEngineError(Exception):
    """Base class for all quiz engine errors."""


class NoQuestionsAvailable(QuizEngineError):
    """No candidate questions exist for the course, even without exclusions."""

    def __init__(self, course_id: str):
        super().__init__(f"No questions available for course {course_id}")
        self.course_id = course_id


class InvalidCriteria(QuizEngineError):
    """Selection criteria or quiz configuration failed validation."""


class UnknownStrategy(QuizEngineError):
    """Requested selection strategy is not registered."""

    def __init__(self, name: str):
        super().__init__(f"Unknown question selection strategy: {name}")
        self.name = name


class MarksOutOfRange(QuizEngineError):
    """Manually supplied marks are negative or exceed the question's marks."""

    def __init__(self, question_id: str, marks: float, maximum: float):
        super().__init__(
            f"Marks for question {question_id} must be between 0 and {maximum}, got {marks}"
        )
        self.question_id = question_id
        self.marks = marks
        self.maximum = maximum


class AnswerNotFound(QuizEngineError):
    """No recorded answer (or selected question) for the given question id."""

    def __init__(self, question_id: str):
        super().__init__(f"Answer not found for question {question_id}")
        self.question_id = question_id


class SessionNotFound(QuizEngineError):
    """Quiz session does not exist."""

    def __init__(self, session_id: str):
        super().__init__(f"Session not found: {session_id}")
        self.session_id = session_id


class SessionStateError(QuizEngineError):
    """Operation is not allowed in the session's current status."""


class SessionExpired(SessionStateError):
    """The attempt's time window has closed."""


class AttemptsExhausted(QuizEngineError):
    """Student has used every attempt the quiz allows."""
