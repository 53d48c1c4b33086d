"""Quiz console served over a raw TCP socket."""

from .errors import (
    ConnectionLost,
    MissingParameter,
    NotANumber,
    QuizConsoleError,
    RecordNotFound,
    ValidationFailure,
)
from .session import (
    QuizSession,
    SessionEndReason,
    SessionOutcome,
    answers_match,
    normalize_answer,
    run_quiz_session,
)
from .store import QuizRecord, QuizStore
from .validation import validate_id

__all__ = [
    "QuizConsoleError",
    "MissingParameter",
    "NotANumber",
    "RecordNotFound",
    "ValidationFailure",
    "ConnectionLost",
    "QuizRecord",
    "QuizStore",
    "QuizSession",
    "SessionEndReason",
    "SessionOutcome",
    "normalize_answer",
    "answers_match",
    "run_quiz_session",
    "validate_id",
]
