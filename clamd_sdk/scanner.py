"""Streaming scans over the ``INSTREAM`` command."""

from __future__ import annotations

import asyncio
import io
import logging
from typing import Any, BinaryIO, Optional

from clamd_sdk import transport
from clamd_sdk.config import resolve_chunk_size, resolve_timeout
from clamd_sdk.exceptions import ClamAVFileSystemError
from clamd_sdk.protocol import INSTREAM, FrameEncoder

logger = logging.getLogger(__name__)


class StreamScanner:
    """Scan a readable byte source through one ``INSTREAM`` session.

    The source is read chunk by chunk, each chunk is framed and written as
    soon as it is read. If the daemon replies before the source is exhausted
    (for instance ``INSTREAM size limit exceeded``) the source is not read
    again and the scan fails with :class:`ClamAVAbortedScanError`.

    Args:
        host: Daemon host.
        port: Daemon TCP port.
        execute: Session runner, :func:`clamd_sdk.transport.execute` by default.
    """

    def __init__(self, host: str, port: int, execute: Optional[transport.Executor] = None) -> None:
        self.host = host
        self.port = port
        self._execute = execute or transport.execute

    async def scan(
        self,
        source: BinaryIO,
        timeout: Any = None,
        chunk_size: Any = None,
    ) -> str:
        """Stream *source* to the daemon and return its reply text.

        Args:
            source: Binary file-like object; only ``read(size)`` is used.
            timeout: Session timeout in seconds (see :func:`resolve_timeout`).
            chunk_size: Read granularity in bytes, 64 KiB by default.

        Raises:
            ClamAVAbortedScanError: If the daemon closed the session early.
            ClamAVFileSystemError: If reading *source* fails.
        """
        timeout = resolve_timeout(timeout)
        chunk_size = resolve_chunk_size(chunk_size)
        # In-memory buffers are read inline, anything else may block on disk.
        inline = isinstance(source, io.BytesIO)

        async def write_body(session: transport.Session) -> None:
            encoder = FrameEncoder()
            await session.send(INSTREAM)
            while session.accepting_input:
                chunk = await _read(source, chunk_size, inline)
                if not session.accepting_input:
                    break
                if not chunk:
                    await session.send(encoder.terminate())
                    session.complete()
                    return
                await session.send(encoder.encode(chunk))
                # drain() only yields once the buffer is full, let an early reply through.
                await asyncio.sleep(0)
            logger.debug("Daemon replied before end of stream, stopped reading source")

        reply = await self._execute(self.host, self.port, timeout, write_body)
        return reply.decode("utf-8", errors="replace")


async def _read(source: BinaryIO, size: int, inline: bool) -> bytes:
    try:
        if inline:
            return source.read(size)
        return await asyncio.to_thread(source.read, size)
    except OSError as exc:
        name = getattr(source, "name", "")
        raise ClamAVFileSystemError(f"Error reading {name or 'stream'}: {exc}", str(name)) from exc


async def scan_file(
    host: str,
    port: int,
    path: str,
    timeout: Any = None,
    chunk_size: Any = None,
    execute: Optional[transport.Executor] = None,
) -> str:
    """Open *path* and scan it with a :class:`StreamScanner`.

    Raises:
        ClamAVFileSystemError: If the file cannot be opened or read.
    """
    try:
        fh = open(path, "rb")
    except OSError as exc:
        raise ClamAVFileSystemError(f"Cannot open {path}: {exc.strerror or exc}", path) from exc
    with fh:
        return await StreamScanner(host, port, execute).scan(fh, timeout, chunk_size)


async def scan_buffer(
    host: str,
    port: int,
    data: bytes,
    timeout: Any = None,
    chunk_size: Any = None,
    execute: Optional[transport.Executor] = None,
) -> str:
    """Scan in-memory *data* with a :class:`StreamScanner`."""
    return await StreamScanner(host, port, execute).scan(io.BytesIO(data), timeout, chunk_size)
