"""Synchronous client for the clamd daemon."""

from __future__ import annotations

import asyncio
import dataclasses
from pathlib import Path
from typing import Any, BinaryIO, Mapping, Union

from clamd_sdk.async_client import AsyncClamdScanner
from clamd_sdk.config import (
    DEFAULT_CHUNK_SIZE,
    DEFAULT_HOST,
    DEFAULT_PORT,
    DEFAULT_TIMEOUT,
    ClamdSettings,
    ScanOptions,
)
from clamd_sdk.models import ScanReport


class ClamdScanner:
    """Synchronous client for a clamd daemon.

    Each call runs its own event loop, so this client must not be used from
    inside a running loop; use :class:`AsyncClamdScanner` there.

    Args:
        host: Daemon host.
        port: Daemon TCP port.
        timeout: Default session timeout in seconds, ``0`` for none.
        chunk_size: Default INSTREAM chunk size in bytes.

    Example::

        scanner = ClamdScanner("localhost", 3310)
        if scanner.ping():
            print(scanner.scan_file("/tmp/sample.txt"))
    """

    def __init__(
        self,
        host: str = DEFAULT_HOST,
        port: int = DEFAULT_PORT,
        timeout: float = DEFAULT_TIMEOUT,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
    ) -> None:
        self._scanner = AsyncClamdScanner(host, port)
        self._timeout = timeout
        self._chunk_size = chunk_size

    @classmethod
    def from_env(cls) -> ClamdScanner:
        """Build a client from ``CLAMD_HOST``, ``CLAMD_PORT`` and ``CLAMD_TIMEOUT``."""
        settings = ClamdSettings.from_env()
        return cls(settings.host, settings.port, settings.timeout)

    @property
    def host(self) -> str:
        return self._scanner.host

    @property
    def port(self) -> int:
        return self._scanner.port

    def ping(self) -> bool:
        """Return ``True`` if the daemon answers ``PONG``.

        Raises:
            ClamAVConnectionError: If the daemon is unreachable.
        """
        return asyncio.run(self._scanner.ping(self._timeout))

    def version(self) -> str:
        """Return the daemon's version string."""
        return asyncio.run(self._scanner.version(self._timeout))

    def scan_file(self, file_path: Union[str, Path]) -> str:
        """Scan a file on disk and return the daemon's reply.

        Raises:
            ClamAVFileSystemError: If the file cannot be read.
            ClamAVAbortedScanError: If the daemon rejected the stream.
        """
        return asyncio.run(self._scanner.scan_file(file_path, self._timeout, self._chunk_size))

    def scan_bytes(self, data: bytes) -> str:
        """Scan in-memory bytes and return the daemon's reply."""
        return asyncio.run(self._scanner.scan_buffer(data, self._timeout, self._chunk_size))

    def scan_stream(self, data: BinaryIO) -> str:
        """Scan a readable binary stream and return the daemon's reply."""
        return asyncio.run(self._scanner.scan_stream(data, self._timeout, self._chunk_size))

    def scan_directory(
        self,
        root_path: Union[str, Path],
        options: Union[ScanOptions, Mapping[str, Any], None] = None,
        **overrides: Any,
    ) -> ScanReport:
        """Scan a directory tree; see :meth:`AsyncClamdScanner.scan_directory`.

        The client's ``timeout`` and ``chunk_size`` apply unless *options* or
        *overrides* set them.
        """
        merged: dict[str, Any] = {"timeout": self._timeout, "chunk_size": self._chunk_size}
        if isinstance(options, ScanOptions):
            merged.update(dataclasses.asdict(options))
        elif options is not None:
            merged.update(options)
        return asyncio.run(self._scanner.scan_directory(root_path, merged, **overrides))
