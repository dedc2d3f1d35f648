"""Asynchronous client for the clamd daemon."""

from __future__ import annotations

import dataclasses
import os
from pathlib import Path
from typing import Any, BinaryIO, Mapping, Optional, Union

from clamd_sdk import commands, scanner, transport
from clamd_sdk.config import ScanOptions, validate_address
from clamd_sdk.directory import DirectoryScanScheduler
from clamd_sdk.models import ScanReport
from clamd_sdk.scanner import StreamScanner


class AsyncClamdScanner:
    """Asynchronous scanner bound to one clamd daemon.

    Every call opens its own TCP connection; nothing is pooled, so one
    scanner can be shared freely between tasks.

    Args:
        host: Daemon host.
        port: Daemon TCP port.
        execute: Session runner, replaceable in tests.

    Example::

        scanner = create_scanner("localhost", 3310)
        reply = await scanner.scan_file("/tmp/sample.txt")
        print(is_clean_reply(reply))
    """

    def __init__(self, host: str, port: int, execute: Optional[transport.Executor] = None) -> None:
        validate_address(host, port)
        self.host = host
        self.port = port
        self._execute = execute

    async def scan_stream(self, source: BinaryIO, timeout: Any = None, chunk_size: Any = None) -> str:
        """Scan a readable binary stream.

        Args:
            source: Object with a ``read(size)`` method returning bytes.
            timeout: Session timeout in seconds, 5 by default, ``0`` for none.
            chunk_size: Chunk size in bytes, 64 KiB by default.

        Returns:
            The daemon's reply, e.g. ``"stream: OK\\0"``.

        Raises:
            ClamAVAbortedScanError: If the daemon rejected the stream.
            ClamAVConnectionError: If the daemon is unreachable.
            ClamAVTimeoutError: If the session timed out.
        """
        return await StreamScanner(self.host, self.port, self._execute).scan(source, timeout, chunk_size)

    async def scan_buffer(self, data: bytes, timeout: Any = None, chunk_size: Any = None) -> str:
        """Scan in-memory bytes."""
        return await scanner.scan_buffer(self.host, self.port, data, timeout, chunk_size, self._execute)

    async def scan_file(
        self, file_path: Union[str, Path], timeout: Any = None, chunk_size: Any = None
    ) -> str:
        """Scan a file on disk.

        Raises:
            ClamAVFileSystemError: If the file cannot be opened or read.
        """
        path = os.path.normpath(os.fspath(file_path))
        return await scanner.scan_file(self.host, self.port, path, timeout, chunk_size, self._execute)

    async def scan_directory(
        self,
        root_path: Union[str, Path],
        options: Union[ScanOptions, Mapping[str, Any], None] = None,
        **overrides: Any,
    ) -> ScanReport:
        """Scan every regular file below *root_path*.

        Args:
            root_path: Directory (or single regular file) to scan.
            options: :class:`ScanOptions` or a mapping of option names.
            **overrides: Individual options, e.g. ``max_concurrency=4``.

        Returns:
            A :class:`ScanReport`. Per-file errors are folded into the report
            unless ``continue_on_error`` is off.
        """
        if isinstance(options, ScanOptions) and not overrides:
            opts = options
        else:
            base = dataclasses.asdict(options) if isinstance(options, ScanOptions) else options
            opts = ScanOptions.from_mapping(base, **overrides)

        async def scan_one(path: str) -> str:
            return await scanner.scan_file(
                self.host, self.port, path, opts.timeout, opts.chunk_size, self._execute
            )

        root = os.path.normpath(os.fspath(root_path))
        return await DirectoryScanScheduler(scan_one, opts).run(root)

    async def ping(self, timeout: Any = None) -> bool:
        """Return ``True`` if the daemon answers ``PONG``."""
        return await commands.ping(self.host, self.port, timeout, self._execute)

    async def version(self, timeout: Any = None) -> str:
        """Return the daemon's version string."""
        return await commands.version(self.host, self.port, timeout, self._execute)


def create_scanner(host: str, port: int) -> AsyncClamdScanner:
    """Create an :class:`AsyncClamdScanner`.

    Raises:
        ValueError: If *host* or *port* is missing or invalid.
    """
    return AsyncClamdScanner(host, port)
