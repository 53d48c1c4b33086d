"""ORM mapping for the quizzes table."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

from sqlalchemy import DateTime, Integer, Text, func
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, validates

from quiz_console.errors import ValidationFailure


class Base(DeclarativeBase):
    pass


class Quiz(Base):
    __tablename__ = "quizzes"

    id: Mapped[int] = mapped_column(
        Integer, primary_key=True, autoincrement=True
    )
    question: Mapped[str] = mapped_column(Text, nullable=False)
    answer: Mapped[str] = mapped_column(Text, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )

    @validates("question", "answer")
    def _not_empty(self, key: str, value: str) -> str:
        if value is None or not str(value).strip():
            raise ValidationFailure(f"The {key} must not be empty.")
        return value

    def to_record(self) -> "QuizRecord":
        return QuizRecord(
            id=self.id, question=self.question, answer=self.answer
        )

    def __repr__(self) -> str:
        return f"<Quiz(id={self.id}, question={self.question!r})>"


@dataclass(frozen=True)
class QuizRecord:
    """Detached snapshot of a stored quiz."""

    id: int
    question: str
    answer: str
