"""Recursive directory scans with a bounded number of concurrent sessions."""

from __future__ import annotations

import asyncio
import logging
import os
import stat
from collections import deque
from typing import Awaitable, Callable

from clamd_sdk.config import ScanOptions
from clamd_sdk.exceptions import (
    ClamAVError,
    ClamAVFileSystemError,
    ClamAVInvalidTargetError,
)
from clamd_sdk.models import ScanOutcome, ScanReport
from clamd_sdk.protocol import is_clean_reply

logger = logging.getLogger(__name__)

FileScanner = Callable[[str], Awaitable[str]]


class _ScanContext:
    """Mutable state of one ``run``; only touched from the scheduler task."""

    def __init__(self) -> None:
        self.files: deque[str] = deque()
        self.dirs: deque[str] = deque()
        self.in_flight: dict[asyncio.Task[str], str] = {}
        self.files_scanned = 0
        self.infected = 0
        self.errors = 0
        self.outcomes: list[ScanOutcome] = []

    @property
    def finished(self) -> bool:
        return not self.files and not self.dirs and not self.in_flight

    def report(self) -> ScanReport:
        return ScanReport(
            files_scanned=self.files_scanned,
            infected=self.infected,
            errors=self.errors,
            outcomes=tuple(self.outcomes),
        )


class DirectoryScanScheduler:
    """Walk a directory tree and scan every regular file in it.

    Files are scanned by up to ``options.max_concurrency`` sessions at a time.
    Queued files are always dispatched before the next directory is expanded;
    expanding a directory does not take a session slot, so it happens as soon
    as the file queue runs empty, even while every slot is busy.

    Symbolic links and special files are never followed or scanned.

    Args:
        scan_file: Coroutine function scanning one path and returning the
            daemon's reply text.
        options: Scan options.
    """

    def __init__(self, scan_file: FileScanner, options: ScanOptions | None = None) -> None:
        self._scan_file = scan_file
        self.options = options or ScanOptions()

    async def run(self, root: str) -> ScanReport:
        """Scan *root* and return the aggregated report.

        Raises:
            ClamAVInvalidTargetError: If *root* is not a regular file or a
                directory and ``continue_on_error`` is off.
            ClamAVFileSystemError: On traversal errors when
                ``continue_on_error`` is off.
            ClamAVError: The first per-file scan error when
                ``continue_on_error`` is off.
        """
        ctx = _ScanContext()
        try:
            self._discover(ctx, root)
            self._dispatch(ctx)
            while not ctx.finished:
                done, _ = await asyncio.wait(ctx.in_flight, return_when=asyncio.FIRST_COMPLETED)
                for task in done:
                    self._complete(ctx, task)
                self._dispatch(ctx)
        finally:
            await self._cancel(ctx)

        logger.debug(
            "Scanned %s: %d files, %d infected, %d errors",
            root,
            ctx.files_scanned,
            ctx.infected,
            ctx.errors,
        )
        return ctx.report()

    def _discover(self, ctx: _ScanContext, root: str) -> None:
        try:
            st = os.lstat(root)
        except OSError as exc:
            self._fail(ctx, root, _fs_error(root, exc))
            return
        if stat.S_ISDIR(st.st_mode):
            ctx.dirs.append(root)
        elif stat.S_ISREG(st.st_mode):
            ctx.files.append(root)
        else:
            self._fail(ctx, root, ClamAVInvalidTargetError(f"{root} is not a regular file or directory"))

    def _expand(self, ctx: _ScanContext, path: str) -> None:
        try:
            entries = sorted(os.listdir(path))
        except OSError as exc:
            self._fail(ctx, path, _fs_error(path, exc))
            return
        for entry in entries:
            full = os.path.join(path, entry)
            try:
                mode = os.lstat(full).st_mode
            except OSError as exc:
                self._fail(ctx, full, _fs_error(full, exc))
                continue
            if stat.S_ISDIR(mode):
                ctx.dirs.append(full)
            elif stat.S_ISREG(mode):
                ctx.files.append(full)

    def _dispatch(self, ctx: _ScanContext) -> None:
        limit = self.options.max_concurrency
        while True:
            while ctx.files and len(ctx.in_flight) < limit:
                path = ctx.files.popleft()
                ctx.in_flight[asyncio.ensure_future(self._scan_file(path))] = path
            if ctx.files or not ctx.dirs:
                return
            self._expand(ctx, ctx.dirs.popleft())

    def _complete(self, ctx: _ScanContext, task: asyncio.Task[str]) -> None:
        path = ctx.in_flight.pop(task)
        ctx.files_scanned += 1
        try:
            reply = task.result()
        except ClamAVError as exc:
            self._fail(ctx, path, exc)
            return
        clean = is_clean_reply(reply)
        if not clean:
            ctx.infected += 1
            logger.info("%s: %s", path, reply.rstrip("\0\n"))
        if self.options.detail or not clean:
            ctx.outcomes.append(ScanOutcome(target=path, reply=reply))

    def _fail(self, ctx: _ScanContext, path: str, exc: ClamAVError) -> None:
        if not self.options.continue_on_error:
            raise exc
        logger.warning("Error scanning %s: %s", path, exc)
        ctx.errors += 1
        ctx.outcomes.append(ScanOutcome(target=path, error=str(exc)))

    @staticmethod
    async def _cancel(ctx: _ScanContext) -> None:
        tasks = list(ctx.in_flight)
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)


def _fs_error(path: str, exc: OSError) -> ClamAVFileSystemError:
    err = ClamAVFileSystemError(f"{path}: {exc.strerror or exc}", path)
    err.__cause__ = exc
    return err
