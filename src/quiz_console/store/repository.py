"""Async repository over the quizzes table."""

from __future__ import annotations

import logging
from typing import Sequence

from sqlalchemy import delete, func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from quiz_console.errors import RecordNotFound, ValidationFailure

from .models import Base, Quiz, QuizRecord

__all__ = ["DEFAULT_QUIZZES", "QuizStore"]

logger = logging.getLogger(__name__)

# SQLite INTEGER is a signed 64-bit value.
_MIN_ID = -(2**63)
_MAX_ID = 2**63 - 1

DEFAULT_QUIZZES: Sequence[tuple[str, str]] = (
    ("Capital of Italy", "Rome"),
    ("Capital of France", "Paris"),
    ("Capital of Spain", "Madrid"),
    ("Capital of Portugal", "Lisbon"),
)


class QuizStore:
    """CRUD access to stored quizzes.

    Every method opens its own short-lived session and returns detached
    :class:`QuizRecord` snapshots, so callers never hold ORM state across
    awaits. Concurrent writers are not coordinated: the last write wins.
    """

    def __init__(self, engine: AsyncEngine) -> None:
        self._engine = engine
        self._sessions = async_sessionmaker(
            engine,
            class_=AsyncSession,
            expire_on_commit=False,
            autoflush=False,
        )

    @classmethod
    def open(cls, url: str, *, echo: bool = False) -> "QuizStore":
        return cls(create_async_engine(url, echo=echo))

    async def create_schema(self) -> None:
        async with self._engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    async def dispose(self) -> None:
        await self._engine.dispose()

    async def get_all(self) -> list[QuizRecord]:
        async with self._sessions() as session:
            rows = await session.scalars(select(Quiz).order_by(Quiz.id))
            return [row.to_record() for row in rows]

    async def get_by_id(self, quiz_id: int) -> QuizRecord | None:
        if not _storable_id(quiz_id):
            return None
        async with self._sessions() as session:
            row = await session.get(Quiz, quiz_id)
            return row.to_record() if row is not None else None

    async def require(self, quiz_id: int) -> QuizRecord:
        """Like :meth:`get_by_id` but raise :class:`RecordNotFound`."""

        record = await self.get_by_id(quiz_id)
        if record is None:
            raise RecordNotFound(quiz_id)
        return record

    async def count(self) -> int:
        async with self._sessions() as session:
            total = await session.scalar(
                select(func.count()).select_from(Quiz)
            )
            return int(total or 0)

    async def create(self, question: str, answer: str) -> QuizRecord:
        async with self._sessions() as session:
            try:
                async with session.begin():
                    row = Quiz(question=question, answer=answer)
                    session.add(row)
            except IntegrityError as exc:
                raise ValidationFailure(str(exc.orig)) from exc
            logger.debug("Created quiz", extra={"quiz_id": row.id})
            return row.to_record()

    async def update(
        self, quiz_id: int, question: str, answer: str
    ) -> QuizRecord:
        if not _storable_id(quiz_id):
            raise RecordNotFound(quiz_id)
        async with self._sessions() as session:
            try:
                async with session.begin():
                    row = await session.get(Quiz, quiz_id)
                    if row is None:
                        raise RecordNotFound(quiz_id)
                    row.question = question
                    row.answer = answer
            except IntegrityError as exc:
                raise ValidationFailure(str(exc.orig)) from exc
            logger.debug("Updated quiz", extra={"quiz_id": quiz_id})
            return QuizRecord(id=quiz_id, question=question, answer=answer)

    async def delete_by_id(self, quiz_id: int) -> None:
        if not _storable_id(quiz_id):
            raise RecordNotFound(quiz_id)
        async with self._sessions() as session:
            async with session.begin():
                result = await session.execute(
                    delete(Quiz).where(Quiz.id == quiz_id)
                )
            if not result.rowcount:
                raise RecordNotFound(quiz_id)
            logger.debug("Deleted quiz", extra={"quiz_id": quiz_id})

    async def seed_defaults(
        self, quizzes: Sequence[tuple[str, str]] = DEFAULT_QUIZZES
    ) -> int:
        """Insert ``quizzes`` when the table is empty; return rows added."""

        if await self.count():
            return 0
        async with self._sessions() as session:
            async with session.begin():
                session.add_all(
                    Quiz(question=question, answer=answer)
                    for question, answer in quizzes
                )
        logger.info("Seeded default quizzes", extra={"count": len(quizzes)})
        return len(quizzes)


def _storable_id(quiz_id: int) -> bool:
    return _MIN_ID <= quiz_id <= _MAX_ID
