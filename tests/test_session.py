from __future__ import annotations

import asyncio
import random

import pytest

from quiz_console.errors import ConnectionLost
from quiz_console.session import (
    QuizSession,
    SessionEndReason,
    SessionState,
    answers_match,
    normalize_answer,
    run_quiz_session,
)
from quiz_console.store.models import QuizRecord

ARITHMETIC = QuizRecord(id=1, question="2+2?", answer="4")
PARIS = QuizRecord(id=2, question="Capital of France?", answer="Paris")


class Recorder:
    """Collect ``report`` calls and answer ``ask`` calls from a script."""

    def __init__(self, records, answers=None):
        self.by_question = {record.question: record for record in records}
        self.answers = answers
        self.asked: list[int] = []
        self.reports: list[tuple[str, str]] = []

    async def ask(self, question: str) -> str:
        record = self.by_question[question]
        self.asked.append(record.id)
        if self.answers is None:
            return record.answer
        return self.answers.pop(0)

    def report(self, message: str, kind: str) -> None:
        self.reports.append((message, kind))

    @property
    def messages(self) -> list[str]:
        return [message for message, _ in self.reports]


def test_normalization_trims_and_lowercases() -> None:
    assert normalize_answer("  Paris ") == "paris"
    assert answers_match("  Paris ", "paris")
    assert not answers_match("Paris!", "paris")
    assert not answers_match(None, "paris")


def test_empty_records_end_without_asking() -> None:
    recorder = Recorder([])

    outcome = asyncio.run(
        run_quiz_session([], recorder.ask, recorder.report)
    )

    assert outcome.reason is SessionEndReason.ENDED_EMPTY
    assert outcome.final_score == 0
    assert outcome.asked == ()
    assert recorder.asked == []
    assert "Nothing left to ask." in recorder.messages
    assert recorder.reports[-1] == ("0", "score")


def test_single_correct_answer_exhausts_records() -> None:
    recorder = Recorder([ARITHMETIC], answers=["4"])

    outcome = asyncio.run(
        run_quiz_session([ARITHMETIC], recorder.ask, recorder.report)
    )

    assert outcome.final_score == 1
    assert outcome.reason is SessionEndReason.ENDED_EMPTY
    assert recorder.messages[0] == "CORRECT - 1 correct so far."
    assert "Nothing left to ask." in recorder.messages
    assert recorder.reports[-1] == ("1", "score")


def test_first_wrong_answer_stops_session() -> None:
    records = [ARITHMETIC, PARIS]
    recorder = Recorder(records, answers=["wrong"])

    class FirstPick:
        def randrange(self, stop: int) -> int:
            return 0

    outcome = asyncio.run(
        run_quiz_session(
            records, recorder.ask, recorder.report, rng=FirstPick()
        )
    )

    assert outcome.final_score == 0
    assert outcome.reason is SessionEndReason.ENDED_WRONG_ANSWER
    assert recorder.asked == [1]
    assert outcome.asked == (1,)
    assert "INCORRECT." in recorder.messages
    assert "Nothing left to ask." not in recorder.messages


@pytest.mark.parametrize("seed", range(10))
def test_all_records_asked_once_when_answers_are_correct(seed: int) -> None:
    records = [
        QuizRecord(id=quiz_id, question=f"Q{quiz_id}", answer=f"A{quiz_id}")
        for quiz_id in range(1, 8)
    ]
    recorder = Recorder(records)

    outcome = asyncio.run(
        run_quiz_session(
            records,
            recorder.ask,
            recorder.report,
            rng=random.Random(seed),
        )
    )

    assert sorted(recorder.asked) == [record.id for record in records]
    assert len(set(recorder.asked)) == len(records)
    assert outcome.final_score == len(records)
    assert outcome.reason is SessionEndReason.ENDED_EMPTY


def test_seeded_rng_makes_order_reproducible() -> None:
    records = [
        QuizRecord(id=quiz_id, question=f"Q{quiz_id}", answer="x")
        for quiz_id in range(1, 6)
    ]
    first = Recorder(records)
    second = Recorder(records)

    asyncio.run(
        run_quiz_session(
            records, first.ask, first.report, rng=random.Random(42)
        )
    )
    asyncio.run(
        run_quiz_session(
            records, second.ask, second.report, rng=random.Random(42)
        )
    )

    assert first.asked == second.asked


def test_connection_loss_aborts_without_final_report() -> None:
    records = [ARITHMETIC, PARIS]
    reports: list[tuple[str, str]] = []
    calls = {"count": 0}

    async def ask(question: str) -> str:
        calls["count"] += 1
        if calls["count"] == 2:
            raise ConnectionLost("gone")
        return "4" if question == ARITHMETIC.question else "Paris"

    outcome = asyncio.run(
        run_quiz_session(
            records,
            ask,
            lambda message, kind: reports.append((message, kind)),
        )
    )

    assert outcome.reason is SessionEndReason.ABORTED
    assert outcome.final_score == 1
    assert len(outcome.asked) == 2
    assert all(kind != "score" for _, kind in reports)


def test_async_report_is_awaited() -> None:
    seen: list[str] = []

    async def report(message: str, kind: str) -> None:
        seen.append(message)

    async def ask(question: str) -> str:
        return "4"

    asyncio.run(run_quiz_session([ARITHMETIC], ask, report))

    assert seen[0] == "CORRECT - 1 correct so far."


def test_pending_set_invariant_holds_during_play() -> None:
    records = [
        QuizRecord(id=quiz_id, question=f"Q{quiz_id}", answer="ok")
        for quiz_id in range(1, 5)
    ]
    session = QuizSession(records, rng=random.Random(3))

    while True:
        assert len(session.pending) + len(session.asked) == session.total
        record = session.next_record()
        if record is None:
            break
        assert record.id not in session.pending
        assert session.state is SessionState.AWAITING_ANSWER
        assert session.submit(record, " OK ")
        session.resume()

    assert session.state is SessionState.DONE
    assert session.score == 4


def test_submit_requires_pending_question() -> None:
    session = QuizSession([ARITHMETIC])

    with pytest.raises(RuntimeError):
        session.submit(ARITHMETIC, "4")


def test_wrong_answer_moves_to_done() -> None:
    session = QuizSession([ARITHMETIC])
    record = session.next_record()

    assert record == ARITHMETIC
    assert session.submit(record, "5") is False
    assert session.state is SessionState.DONE
    with pytest.raises(RuntimeError):
        session.next_record()
