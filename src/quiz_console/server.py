"""asyncio TCP server hosting one command loop per connection."""

from __future__ import annotations

import asyncio
import logging
import random
from typing import Any, Optional

from .commands import CommandContext, dispatch_line
from .errors import ConnectionLost
from .output import Formatter, StreamSink
from .store import QuizStore

__all__ = ["ClientConnection", "ConnectionHandler", "QuizServer"]

logger = logging.getLogger(__name__)

PROMPT = "quiz > "


class ClientConnection:
    """Line-oriented reads and flushed writes over one client stream."""

    def __init__(
        self, reader: asyncio.StreamReader, writer: asyncio.StreamWriter
    ) -> None:
        self._reader = reader
        self._writer = writer
        self.sink = StreamSink(writer)

    async def read_line(self) -> str:
        try:
            data = await self._reader.readline()
        except (ConnectionError, asyncio.IncompleteReadError) as exc:
            raise ConnectionLost(str(exc) or "Connection reset.") from exc
        except ValueError as exc:
            # StreamReader raises ValueError when a line exceeds its limit.
            raise ConnectionLost("Line too long.") from exc
        if not data:
            raise ConnectionLost("Connection closed by peer.")
        return data.decode("utf-8", errors="replace").rstrip("\r\n")

    async def flush(self) -> None:
        try:
            await self._writer.drain()
        except ConnectionError as exc:
            raise ConnectionLost(str(exc) or "Connection reset.") from exc

    async def ask(self, prompt: str) -> str:
        self.sink.write(prompt)
        await self.flush()
        return await self.read_line()

    async def close(self) -> None:
        self._writer.close()
        try:
            await self._writer.wait_closed()
        except ConnectionError:
            logger.debug("Connection already reset while closing")


class ConnectionHandler:
    """Serve commands for a single client until it quits or disconnects."""

    def __init__(
        self,
        connection: ClientConnection,
        store: QuizStore,
        *,
        banner: str = "Quiz Console",
        color: bool = True,
        peer: str = "-",
        rng: Optional[random.Random] = None,
    ) -> None:
        self.connection = connection
        self.banner = banner
        out = Formatter(connection.sink, color=color)
        self.context = CommandContext(
            store=store,
            out=out,
            channel=connection,
            peer=peer,
            rng=rng,
        )

    async def run(self) -> None:
        """Run the prompt loop; ``ConnectionLost`` propagates to the caller."""

        out = self.context.out
        out.write_banner(self.banner, "green")
        prompt = out.colorize(PROMPT, "blue")
        while not self.context.closed:
            line = await self.connection.ask(prompt)
            await dispatch_line(self.context, line)
        out.write("Bye!")
        await self.connection.flush()


class QuizServer:
    """Accept clients and run a :class:`ConnectionHandler` for each."""

    def __init__(
        self,
        store: QuizStore,
        *,
        host: str = "0.0.0.0",
        port: int = 3030,
        banner: str = "Quiz Console",
        color: bool = True,
        rng: Optional[random.Random] = None,
    ) -> None:
        self.store = store
        self.host = host
        self.port = port
        self.banner = banner
        self.color = color
        self.rng = rng
        self._server: Optional[asyncio.Server] = None
        self._clients: set[asyncio.Task[Any]] = set()

    @property
    def bound_port(self) -> int:
        """Port actually bound, useful when listening on port 0."""

        if self._server is None or not self._server.sockets:
            raise RuntimeError("Server is not listening.")
        return self._server.sockets[0].getsockname()[1]

    async def start(self) -> None:
        self._server = await asyncio.start_server(
            self._handle_client, self.host, self.port
        )
        logger.info(
            "Quiz server listening",
            extra={"host": self.host, "port": self.bound_port},
        )

    async def serve_forever(self) -> None:
        if self._server is None:
            await self.start()
        assert self._server is not None
        async with self._server:
            await self._server.serve_forever()

    async def close(self) -> None:
        if self._server is None:
            return
        self._server.close()
        for task in list(self._clients):
            task.cancel()
        await asyncio.gather(*self._clients, return_exceptions=True)
        await self._server.wait_closed()
        self._server = None
        logger.info("Quiz server stopped")

    async def _handle_client(
        self, reader: asyncio.StreamReader, writer: asyncio.StreamWriter
    ) -> None:
        task = asyncio.current_task()
        if task is not None:
            self._clients.add(task)
        peer = _format_peer(writer.get_extra_info("peername"))
        logger.info("Client connected", extra={"peer": peer})
        connection = ClientConnection(reader, writer)
        handler = ConnectionHandler(
            connection,
            self.store,
            banner=self.banner,
            color=self.color,
            peer=peer,
            rng=self.rng,
        )
        try:
            await handler.run()
        except ConnectionLost as exc:
            logger.info(
                "Client connection lost",
                extra={"peer": peer, "reason": str(exc)},
            )
        except Exception:
            logger.exception("Client handler crashed", extra={"peer": peer})
        finally:
            await connection.close()
            if task is not None:
                self._clients.discard(task)
            logger.info("Client disconnected", extra={"peer": peer})


def _format_peer(peername: Any) -> str:
    if isinstance(peername, (tuple, list)) and len(peername) >= 2:
        return f"{peername[0]}:{peername[1]}"
    return str(peername or "-")
