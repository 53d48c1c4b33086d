"""Exception hierarchy for quiz-console."""

from __future__ import annotations

__all__ = [
    "QuizConsoleError",
    "CommandError",
    "MissingParameter",
    "NotANumber",
    "RecordNotFound",
    "ValidationFailure",
    "ConnectionLost",
    "ConfigError",
    "WorkspaceError",
]


class QuizConsoleError(RuntimeError):
    """Base class for every error raised by quiz-console."""


class CommandError(QuizConsoleError):
    """Raised for problems reported to the user at the command prompt."""


class MissingParameter(CommandError):
    """A required id argument was not supplied."""

    def __init__(self, name: str = "id") -> None:
        super().__init__(f"Missing parameter <{name}>.")
        self.name = name


class NotANumber(CommandError):
    """An id argument could not be parsed as an integer."""

    def __init__(self, raw: str) -> None:
        super().__init__(f"The value '{raw}' is not a number.")
        self.raw = raw


class RecordNotFound(CommandError):
    """No quiz is stored under the requested id."""

    def __init__(self, quiz_id: int) -> None:
        super().__init__(f"There is no quiz with id {quiz_id}.")
        self.quiz_id = quiz_id


class ValidationFailure(CommandError):
    """The store rejected a create or update."""


class ConnectionLost(QuizConsoleError):
    """The client connection closed or failed mid-exchange."""


class ConfigError(QuizConsoleError):
    """Raised when configuration parsing or validation fails."""


class WorkspaceError(QuizConsoleError):
    """Raised when the data home cannot be prepared."""
