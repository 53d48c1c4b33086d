"""Relational storage for quiz records."""

from .models import Base, Quiz, QuizRecord
from .repository import DEFAULT_QUIZZES, QuizStore

__all__ = [
    "Base",
    "Quiz",
    "QuizRecord",
    "QuizStore",
    "DEFAULT_QUIZZES",
]
