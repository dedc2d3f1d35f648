"""One TCP session with the clamd daemon.

Each session opens its own connection, lets the caller write a command (and,
for ``INSTREAM``, the framed payload) while the reply is read concurrently,
and closes the connection once the daemon has closed its side.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable, Optional

from clamd_sdk.exceptions import (
    ClamAVAbortedScanError,
    ClamAVConnectionError,
    ClamAVConnectTimeoutError,
    ClamAVTimeoutError,
)

logger = logging.getLogger(__name__)

READ_SIZE = 64 * 1024


class Session:
    """Write side of a session, handed to the ``write_body`` callback.

    Attributes:
        accepting_input: ``True`` until the daemon sends its first bytes. Any
            reply that arrives while the body is still being written means the
            daemon rejected or is terminating the stream, so producers must
            stop as soon as this turns ``False``.
        completed: Set by :meth:`complete` once the whole body was written.
        received: Reply bytes read so far.
    """

    def __init__(self, writer: asyncio.StreamWriter, loop: asyncio.AbstractEventLoop | None = None) -> None:
        self._writer = writer
        self._loop = loop or asyncio.get_running_loop()
        self.accepting_input = True
        self.completed = False
        self.received = bytearray()
        self.last_activity = self._loop.time()

    async def send(self, data: bytes) -> None:
        """Write *data* and wait until the transport buffer drained."""
        if not data:
            return
        try:
            self._writer.write(data)
            await self._writer.drain()
        except OSError as exc:
            raise ClamAVConnectionError(str(exc) or type(exc).__name__) from exc
        self.touch()

    def complete(self) -> None:
        self.completed = True

    def on_reply(self, data: bytes = b"") -> None:
        self.accepting_input = False
        self.received += data
        self.touch()

    def touch(self) -> None:
        self.last_activity = self._loop.time()


WriteBody = Callable[[Session], Awaitable[None]]
Executor = Callable[..., Awaitable[bytes]]


async def execute(
    host: str,
    port: int,
    timeout: Optional[float],
    write_body: WriteBody,
    read_all: bool = True,
) -> bytes:
    """Run one exchange with the daemon and return the raw reply.

    Args:
        host: Daemon host.
        port: Daemon TCP port.
        timeout: Connect timeout and idle timeout in seconds; ``None`` waits
            forever.
        write_body: Coroutine function writing the request through the
            :class:`Session`; it must call :meth:`Session.complete` once the
            request is fully written.
        read_all: Accumulate until the daemon closes the connection. When
            ``False`` the first inbound data is returned.

    Returns:
        The concatenated reply bytes.

    Raises:
        ClamAVConnectTimeoutError: If the connection is not established in time.
        ClamAVTimeoutError: If the session is idle for longer than *timeout*.
        ClamAVConnectionError: On any socket failure.
        ClamAVAbortedScanError: If the daemon closed or reset the connection
            before the request was completely written. Writing stops as soon
            as the reader sees the end of the connection.
    """
    reader, writer = await _connect(host, port, timeout)
    session = Session(writer)
    read_task = asyncio.ensure_future(_read_reply(reader, session, timeout, read_all))
    write_task = asyncio.ensure_future(write_body(session))
    try:
        pending = {read_task, write_task}
        while pending:
            done, pending = await asyncio.wait(pending, return_when=asyncio.FIRST_COMPLETED)
            if write_task in done and write_task.exception() is not None:
                exc = write_task.exception()
                if not isinstance(exc, ClamAVConnectionError):
                    raise exc
                # The reader reports how the daemon ended the session.
                logger.debug("Write to %s:%s failed: %s", host, port, exc)
            if read_task in done:
                break
        try:
            reply = read_task.result()
        except ClamAVConnectionError as exc:
            if not read_all or session.completed:
                raise
            logger.debug("Session with %s:%s reset before the request was sent: %s", host, port, exc)
            raise ClamAVAbortedScanError(bytes(session.received)) from exc
    finally:
        tasks = [task for task in (read_task, write_task) if not task.done()]
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        if write_task.done() and not write_task.cancelled():
            write_task.exception()
        await _close(writer)

    if read_all and not session.completed:
        logger.debug("Session with %s:%s closed by peer before the request was sent", host, port)
        raise ClamAVAbortedScanError(reply)
    return reply


async def _connect(
    host: str, port: int, timeout: Optional[float]
) -> tuple[asyncio.StreamReader, asyncio.StreamWriter]:
    logger.debug("Connecting to clamd at %s:%s", host, port)
    try:
        return await asyncio.wait_for(asyncio.open_connection(host, port), timeout)
    except asyncio.TimeoutError as exc:
        raise ClamAVConnectTimeoutError(f"Timeout connecting to server {host}:{port}") from exc
    except (OSError, UnicodeError) as exc:
        # UnicodeError: host name rejected by the IDNA codec.
        raise ClamAVConnectionError(str(exc) or type(exc).__name__) from exc


async def _read_reply(
    reader: asyncio.StreamReader,
    session: Session,
    timeout: Optional[float],
    read_all: bool,
) -> bytes:
    while True:
        data = await _read_idle(reader, session, timeout)
        if not data:
            break
        session.on_reply(data)
        if not read_all:
            break
    return bytes(session.received)


async def _read_idle(reader: asyncio.StreamReader, session: Session, timeout: Optional[float]) -> bytes:
    """Read once, failing when the session saw no traffic for *timeout*.

    Writes count as activity, so a long upload does not trip the timer.
    """
    read = asyncio.ensure_future(reader.read(READ_SIZE))
    loop = asyncio.get_running_loop()
    try:
        while True:
            remaining = None
            if timeout is not None:
                remaining = session.last_activity + timeout - loop.time()
                if remaining <= 0:
                    raise ClamAVTimeoutError(f"Session idle for more than {timeout} seconds")
            done, _ = await asyncio.wait({read}, timeout=remaining)
            if done:
                return read.result()
    except OSError as exc:
        raise ClamAVConnectionError(str(exc) or type(exc).__name__) from exc
    finally:
        if not read.done():
            read.cancel()


async def _close(writer: asyncio.StreamWriter) -> None:
    writer.close()
    try:
        await writer.wait_closed()
    except OSError as exc:
        logger.debug("Error while closing clamd connection: %s", exc)
