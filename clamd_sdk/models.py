"""Data models for clamd scan results."""

from __future__ import annotations

from dataclasses import dataclass, field

from clamd_sdk.protocol import is_clean_reply


@dataclass(frozen=True, slots=True)
class ScanOutcome:
    """Outcome of one scan unit inside a directory scan.

    Attributes:
        target: Path of the file (or directory, for traversal errors).
        reply: Daemon reply text, e.g. ``"stream: OK"``.
        error: Error message when the unit failed.
    """

    target: str
    reply: str | None = None
    error: str | None = None

    def __post_init__(self) -> None:
        if (self.reply is None) == (self.error is None):
            raise ValueError("ScanOutcome needs exactly one of reply or error")

    @property
    def is_error(self) -> bool:
        return self.error is not None

    @property
    def is_clean(self) -> bool:
        return self.error is None and self.reply is not None and is_clean_reply(self.reply)


@dataclass(frozen=True, slots=True)
class ScanReport:
    """Aggregate result of a directory scan.

    Attributes:
        files_scanned: Number of file units that completed, successfully or not.
        infected: Number of files whose reply was not clean.
        errors: Number of error outcomes (files and directories).
        outcomes: Recorded outcomes in completion order. Clean outcomes are
            only present when the scan ran with ``detail=True``.
    """

    files_scanned: int = 0
    infected: int = 0
    errors: int = 0
    outcomes: tuple[ScanOutcome, ...] = field(default_factory=tuple)
