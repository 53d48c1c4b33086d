"""Line commands understood by the quiz console."""

from __future__ import annotations

import logging
import random
from dataclasses import dataclass
from typing import Awaitable, Callable, Mapping, Optional, Protocol, Sequence

from rich.text import Text

from .errors import CommandError, ConnectionLost
from .output import Formatter
from .session import (
    SessionEndReason,
    answers_match,
    run_quiz_session,
)
from .store import QuizStore
from .validation import validate_id

__all__ = [
    "LineChannel",
    "CommandContext",
    "CommandSpec",
    "COMMANDS",
    "COMPLETIONS",
    "complete_command",
    "dispatch_line",
]

logger = logging.getLogger(__name__)

CREDITS: Sequence[str] = (
    "Hans Huaita Loyola",
    "GitHub user: the2hl",
)


class LineChannel(Protocol):
    """Bidirectional line exchange with one client."""

    async def ask(self, prompt: str) -> str: ...


@dataclass
class CommandContext:
    """Per-connection state shared by every command handler."""

    store: QuizStore
    out: Formatter
    channel: LineChannel
    peer: str = "-"
    rng: Optional[random.Random] = None
    closed: bool = False

    async def ask(self, prompt: str, color: Optional[str] = "red") -> str:
        return await self.channel.ask(self.out.colorize(prompt, color))


CommandHandler = Callable[[CommandContext, Sequence[str]], Awaitable[None]]


@dataclass(frozen=True)
class CommandSpec:
    """A console command and the tokens that invoke it."""

    name: str
    aliases: tuple[str, ...]
    usage: str
    summary: str
    handler: CommandHandler


def _arg(args: Sequence[str]) -> Optional[str]:
    return args[0] if args else None


def _quiz_line(quiz_id: int, *parts: tuple[str, str] | str) -> Text:
    return Text.assemble("[", (str(quiz_id), "bold magenta"), "]: ", *parts)


async def _cmd_help(ctx: CommandContext, args: Sequence[str]) -> None:
    ctx.out.write("Commands:")
    for spec in _COMMAND_SPECS:
        ctx.out.write(f"  {spec.usage} - {spec.summary}")


async def _cmd_list(ctx: CommandContext, args: Sequence[str]) -> None:
    records = await ctx.store.get_all()
    if not records:
        ctx.out.write("No quizzes yet. Use add to create one.")
        return
    for record in records:
        ctx.out.write(_quiz_line(record.id, record.question))


async def _cmd_show(ctx: CommandContext, args: Sequence[str]) -> None:
    quiz_id = validate_id(_arg(args))
    record = await ctx.store.require(quiz_id)
    ctx.out.write(
        _quiz_line(
            record.id,
            f"{record.question} ",
            ("=>", "bold magenta"),
            f" {record.answer}",
        )
    )


async def _cmd_add(ctx: CommandContext, args: Sequence[str]) -> None:
    question = await ctx.ask("Question: ")
    answer = await ctx.ask("Answer: ")
    record = await ctx.store.create(question, answer)
    ctx.out.write(
        Text.assemble(
            ("Added", "bold magenta"),
            f": {record.question} ",
            ("=>", "bold magenta"),
            f" {record.answer}",
        )
    )


async def _cmd_delete(ctx: CommandContext, args: Sequence[str]) -> None:
    quiz_id = validate_id(_arg(args))
    await ctx.store.delete_by_id(quiz_id)
    ctx.out.write(
        Text.assemble("Deleted quiz ", (str(quiz_id), "bold magenta"), ".")
    )


async def _cmd_edit(ctx: CommandContext, args: Sequence[str]) -> None:
    quiz_id = validate_id(_arg(args))
    current = await ctx.store.require(quiz_id)
    ctx.out.write(
        Text.assemble(("Current question", "dim"), f": {current.question}")
    )
    question = await ctx.ask("Question: ")
    ctx.out.write(
        Text.assemble(("Current answer", "dim"), f": {current.answer}")
    )
    answer = await ctx.ask("Answer: ")
    record = await ctx.store.update(quiz_id, question, answer)
    ctx.out.write(
        Text.assemble(
            "Quiz ",
            (str(quiz_id), "bold magenta"),
            f" changed to: {record.question} ",
            ("=>", "bold magenta"),
            f" {record.answer}",
        )
    )


async def _cmd_test(ctx: CommandContext, args: Sequence[str]) -> None:
    quiz_id = validate_id(_arg(args))
    record = await ctx.store.require(quiz_id)
    given = await ctx.channel.ask(
        ctx.out.colorize(record.question, "red") + ": "
    )
    ctx.out.write("Your answer is:")
    if answers_match(given, record.answer):
        ctx.out.write("Correct", "green")
    else:
        ctx.out.write("Incorrect", "red")


async def _cmd_play(ctx: CommandContext, args: Sequence[str]) -> None:
    records = await ctx.store.get_all()

    async def ask(question: str) -> str:
        prompt = ctx.out.colorize(question, "red") + ": "
        return await ctx.channel.ask(prompt)

    def report(message: str, kind: str) -> None:
        if kind == "score":
            ctx.out.write_banner(message, "magenta")
        else:
            ctx.out.write(message)

    outcome = await run_quiz_session(records, ask, report, rng=ctx.rng)
    logger.info(
        "Quiz session finished",
        extra={
            "peer": ctx.peer,
            "score": outcome.final_score,
            "reason": outcome.reason.value,
            "asked": len(outcome.asked),
            "total": len(records),
        },
    )
    if outcome.reason is SessionEndReason.ABORTED:
        raise ConnectionLost("Connection lost during play.")


async def _cmd_credits(ctx: CommandContext, args: Sequence[str]) -> None:
    ctx.out.write("Author:")
    for line in CREDITS:
        ctx.out.write(line, "green")


async def _cmd_quit(ctx: CommandContext, args: Sequence[str]) -> None:
    ctx.closed = True


_COMMAND_SPECS: Sequence[CommandSpec] = (
    CommandSpec(
        "help", ("h", "help"), "h|help", "Show this help.", _cmd_help
    ),
    CommandSpec("list", ("list",), "list", "List all quizzes.", _cmd_list),
    CommandSpec(
        "show",
        ("show",),
        "show <id>",
        "Show the question and answer of the given quiz.",
        _cmd_show,
    ),
    CommandSpec("add", ("add",), "add", "Add a new quiz.", _cmd_add),
    CommandSpec(
        "delete",
        ("delete",),
        "delete <id>",
        "Delete the given quiz.",
        _cmd_delete,
    ),
    CommandSpec(
        "edit", ("edit",), "edit <id>", "Edit the given quiz.", _cmd_edit
    ),
    CommandSpec(
        "test", ("test",), "test <id>", "Test the given quiz.", _cmd_test
    ),
    CommandSpec(
        "play",
        ("p", "play"),
        "p|play",
        "Answer every quiz in random order.",
        _cmd_play,
    ),
    CommandSpec("credits", ("credits",), "credits", "Credits.", _cmd_credits),
    CommandSpec("quit", ("q", "quit"), "q|quit", "Quit.", _cmd_quit),
)

COMMANDS: Mapping[str, CommandSpec] = {
    alias: spec for spec in _COMMAND_SPECS for alias in spec.aliases
}

COMPLETIONS: tuple[str, ...] = tuple(
    alias for spec in _COMMAND_SPECS for alias in spec.aliases
)


def complete_command(line: str) -> tuple[list[str], str]:
    """Return the tokens starting with ``line``, or all of them."""

    hits = [token for token in COMPLETIONS if token.startswith(line)]
    return (hits or list(COMPLETIONS)), line


async def dispatch_line(ctx: CommandContext, line: str) -> None:
    """Run the command typed on ``line``.

    Command errors are reported as a single ``Error:`` line. Only
    :class:`ConnectionLost` escapes, so the caller can tear the
    connection down.
    """

    if line.endswith("\t"):
        hits, _ = complete_command(line.rstrip("\t").strip().lower())
        ctx.out.write("  ".join(hits))
        return

    args = line.split()
    if not args:
        return
    name = args[0].strip().lower()
    spec = COMMANDS.get(name)
    if spec is None:
        ctx.out.write(
            Text.assemble("Unknown command: '", (name, "bold red"), "'")
        )
        ctx.out.write(
            Text.assemble(
                "Use ",
                ("help", "bold green"),
                " to list all available commands.",
            )
        )
        return

    logger.info(
        "Command received",
        extra={"command": spec.name, "peer": ctx.peer},
    )
    try:
        await spec.handler(ctx, args[1:])
    except CommandError as exc:
        logger.info(
            "Command failed",
            extra={
                "command": spec.name,
                "peer": ctx.peer,
                "error": type(exc).__name__,
            },
        )
        ctx.out.write_error(str(exc))
    except ConnectionLost:
        raise
    except Exception:
        logger.exception(
            "Unexpected command failure",
            extra={"command": spec.name, "peer": ctx.peer},
        )
        ctx.out.write_error("Unexpected server error; see the server log.")
