"""Rich rendering of console output onto a pluggable text sink.

Nothing here knows about sockets: a :class:`Formatter` renders plain,
coloured, banner and error lines with Rich and hands the resulting text to an
:class:`OutputSink`. The server wires a :class:`StreamSink` around each client
writer, tests use :class:`BufferSink`.
"""

from __future__ import annotations

import asyncio
import io
from typing import Optional, Protocol, Union

from rich import box
from rich.console import Console, RenderableType
from rich.panel import Panel
from rich.text import Text

from .errors import ConnectionLost

__all__ = [
    "OutputSink",
    "BufferSink",
    "StreamSink",
    "Formatter",
    "Line",
]

Line = Union[str, Text]


class OutputSink(Protocol):
    """Anything that accepts rendered text."""

    def write(self, text: str) -> None: ...


class BufferSink:
    """Collect output in memory."""

    def __init__(self) -> None:
        self._parts: list[str] = []

    def write(self, text: str) -> None:
        self._parts.append(text)

    def getvalue(self) -> str:
        return "".join(self._parts)

    def clear(self) -> None:
        self._parts.clear()


class StreamSink:
    """Write UTF-8 text to an asyncio stream writer."""

    def __init__(self, writer: asyncio.StreamWriter) -> None:
        self._writer = writer

    def write(self, text: str) -> None:
        if self._writer.is_closing():
            raise ConnectionLost("Connection closed by peer.")
        self._writer.write(text.encode("utf-8"))


class Formatter:
    """Render console lines for one client."""

    def __init__(
        self,
        sink: OutputSink,
        *,
        color: bool = True,
        width: int = 80,
    ) -> None:
        self.sink = sink
        self.color = color
        self.width = width

    def colorize(self, text: str, color: Optional[str] = None) -> str:
        """Return ``text`` styled bold in ``color`` with no trailing newline."""

        return self._render(_styled(text, color), end="")

    def write(self, text: Line, color: Optional[str] = None) -> None:
        line = text if isinstance(text, Text) else _styled(text, color)
        self.sink.write(self._render(line))

    def write_banner(self, text: str, color: Optional[str] = None) -> None:
        panel = Panel(
            Text(text, style=_style_for(color), justify="center"),
            box=box.DOUBLE,
            expand=False,
            padding=(1, 4),
            border_style=color or "none",
        )
        self.sink.write(self._render(panel))

    def write_error(self, text: str) -> None:
        line = Text.assemble(
            ("Error", "bold red"),
            ": ",
            (text, "bold red on bright_yellow"),
        )
        self.sink.write(self._render(line))

    def _render(self, renderable: RenderableType, *, end: str = "\n") -> str:
        buffer = io.StringIO()
        console = Console(
            file=buffer,
            width=self.width,
            force_terminal=self.color,
            color_system="standard" if self.color else None,
            no_color=not self.color,
            highlight=False,
            markup=False,
            emoji=False,
        )
        # Text lines keep their length; panels wrap to ``width``.
        console.print(
            renderable, end=end, soft_wrap=isinstance(renderable, Text)
        )
        return buffer.getvalue()


def _style_for(color: Optional[str]) -> str:
    return f"bold {color}" if color else ""


def _styled(text: str, color: Optional[str]) -> Text:
    return Text(str(text), style=_style_for(color))
