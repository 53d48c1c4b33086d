"""Randomized play-through of every stored quiz.

A session asks each record at most once, in uniformly random order, and stops
at the first wrong answer or when nothing is left to ask. The session never
touches the store or the network directly: questions go out through an
``ask`` coroutine and status lines through a ``report`` callback, which keeps
the loop testable with scripted answers and a seeded RNG.
"""

from __future__ import annotations

import inspect
import random
from collections.abc import Sequence
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Awaitable, Callable, Literal, Optional, Protocol

from .errors import ConnectionLost
from .store.models import QuizRecord

__all__ = [
    "AskFn",
    "ReportFn",
    "ReportKind",
    "SessionEndReason",
    "SessionState",
    "SessionOutcome",
    "QuizSession",
    "normalize_answer",
    "answers_match",
    "run_quiz_session",
]

AskFn = Callable[[str], Awaitable[Optional[str]]]
ReportKind = Literal["info", "correct", "incorrect", "score"]
ReportFn = Callable[..., Any]


class RandomSource(Protocol):
    def randrange(self, stop: int) -> int: ...


class SessionEndReason(str, Enum):
    ENDED_EMPTY = "ended_empty"
    ENDED_WRONG_ANSWER = "ended_wrong_answer"
    ABORTED = "aborted"


class SessionState(str, Enum):
    SELECTING = "selecting"
    AWAITING_ANSWER = "awaiting_answer"
    SCORED_CONTINUE = "scored_continue"
    DONE = "done"


@dataclass(frozen=True)
class SessionOutcome:
    """Return value from ``run_quiz_session``."""

    final_score: int
    reason: SessionEndReason
    asked: tuple[int, ...] = ()


def normalize_answer(text: Optional[str]) -> str:
    return (text or "").strip().lower()


def answers_match(given: Optional[str], expected: str) -> bool:
    return normalize_answer(given) == normalize_answer(expected)


@dataclass
class QuizSession:
    """Mutable state of one play-through."""

    records: Sequence[QuizRecord]
    rng: RandomSource = field(default_factory=random.Random)
    pending: list[int] = field(init=False)
    asked: list[int] = field(init=False, default_factory=list)
    score: int = field(init=False, default=0)
    state: SessionState = field(init=False, default=SessionState.SELECTING)

    def __post_init__(self) -> None:
        self._by_id = {record.id: record for record in self.records}
        self.pending = [record.id for record in self.records]

    @property
    def total(self) -> int:
        return len(self.records)

    def next_record(self) -> QuizRecord | None:
        """Draw and remove a random pending record, or finish the session."""

        if self.state is not SessionState.SELECTING:
            raise RuntimeError(
                f"Cannot select a quiz while {self.state.value}."
            )
        if not self.pending:
            self.state = SessionState.DONE
            return None
        index = self.rng.randrange(len(self.pending))
        quiz_id = self.pending.pop(index)
        self.asked.append(quiz_id)
        self.state = SessionState.AWAITING_ANSWER
        return self._by_id[quiz_id]

    def submit(self, record: QuizRecord, answer: Optional[str]) -> bool:
        if self.state is not SessionState.AWAITING_ANSWER:
            raise RuntimeError("No question is awaiting an answer.")
        if answers_match(answer, record.answer):
            self.score += 1
            self.state = SessionState.SCORED_CONTINUE
            return True
        self.state = SessionState.DONE
        return False

    def resume(self) -> None:
        if self.state is SessionState.SCORED_CONTINUE:
            self.state = SessionState.SELECTING

    def abort(self) -> None:
        self.state = SessionState.DONE

    def outcome(self, reason: SessionEndReason) -> SessionOutcome:
        return SessionOutcome(
            final_score=self.score,
            reason=reason,
            asked=tuple(self.asked),
        )


async def run_quiz_session(
    records: Sequence[QuizRecord],
    ask: AskFn,
    report: ReportFn,
    *,
    rng: RandomSource | None = None,
) -> SessionOutcome:
    """Ask every record once in random order until a wrong answer.

    ``report`` is called as ``report(message, kind)`` and may return an
    awaitable. A :class:`ConnectionLost` or ``EOFError`` raised by ``ask``
    ends the session with ``ABORTED`` and no final report.
    """

    session = QuizSession(records, rng=rng or random.Random())

    while True:
        record = session.next_record()
        if record is None:
            await _emit(report, "Nothing left to ask.", "info")
            await _emit_final(report, session.score)
            return session.outcome(SessionEndReason.ENDED_EMPTY)

        try:
            answer = await ask(record.question)
        except (ConnectionLost, EOFError):
            session.abort()
            return session.outcome(SessionEndReason.ABORTED)

        if session.submit(record, answer):
            await _emit(
                report,
                f"CORRECT - {session.score} correct so far.",
                "correct",
            )
            session.resume()
            continue

        await _emit(report, "INCORRECT.", "incorrect")
        await _emit_final(report, session.score)
        return session.outcome(SessionEndReason.ENDED_WRONG_ANSWER)


async def _emit_final(report: ReportFn, score: int) -> None:
    await _emit(report, "End of the quiz. Correct answers:", "info")
    await _emit(report, str(score), "score")


async def _emit(report: ReportFn, message: str, kind: ReportKind) -> None:
    result = report(message, kind)
    if inspect.isawaitable(result):
        await result
