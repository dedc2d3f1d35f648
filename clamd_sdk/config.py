"""Defaults and option handling for clamd sessions."""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Any, Mapping

from clamd_sdk.protocol import MAX_FRAME_LENGTH

DEFAULT_HOST = "localhost"
DEFAULT_PORT = 3310
DEFAULT_TIMEOUT = 5.0
DEFAULT_CHUNK_SIZE = 64 * 1024
DEFAULT_MAX_CONCURRENCY = 10

# Legacy option names accepted by ScanOptions.from_mapping.
_ALIASES = {
    "chunkSize": "chunk_size",
    "maxConcurrency": "max_concurrency",
    "scanningFile": "max_concurrency",
    "continueOnError": "continue_on_error",
    "cont": "continue_on_error",
}


def normalize_timeout(value: Any) -> float:
    """Return *value* as seconds, or :data:`DEFAULT_TIMEOUT` if it is not a usable timeout.

    ``0`` is kept and means "no timeout".
    """
    if isinstance(value, bool) or not isinstance(value, (int, float)) or value < 0:
        return DEFAULT_TIMEOUT
    return float(value)


def resolve_timeout(value: Any) -> float | None:
    """Turn a user supplied timeout into what the transport expects.

    ``None`` means no timeout, which is what ``0`` asks for.
    """
    seconds = normalize_timeout(value)
    return seconds or None


def resolve_chunk_size(value: Any) -> int:
    """Normalise the INSTREAM chunk size in bytes."""
    if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
        return DEFAULT_CHUNK_SIZE
    if value > MAX_FRAME_LENGTH:
        raise ValueError(f"chunk_size must not exceed {MAX_FRAME_LENGTH} bytes")
    return value


def validate_address(host: Any, port: Any) -> None:
    """Raise ``ValueError`` unless *host* and *port* can address a daemon."""
    if not host or not isinstance(host, str):
        raise ValueError("must provide the host and port that the clamd server listens on")
    if isinstance(port, bool) or not isinstance(port, int) or not 0 < port < 65536:
        raise ValueError(f"invalid clamd port: {port!r}")


@dataclass(frozen=True, slots=True)
class ScanOptions:
    """Options of a directory scan.

    Attributes:
        timeout: Per-session timeout in seconds, ``0`` for none.
        chunk_size: INSTREAM chunk size in bytes.
        max_concurrency: Maximum number of files scanned at the same time.
        detail: Record clean outcomes in the report, not only failures.
        continue_on_error: Record per-file and per-directory errors and keep
            going instead of aborting the whole scan.
    """

    timeout: float = DEFAULT_TIMEOUT
    chunk_size: int = DEFAULT_CHUNK_SIZE
    max_concurrency: int = DEFAULT_MAX_CONCURRENCY
    detail: bool = True
    continue_on_error: bool = True

    def __post_init__(self) -> None:
        if isinstance(self.max_concurrency, bool) or not isinstance(self.max_concurrency, int):
            raise ValueError(f"max_concurrency must be an integer, got {self.max_concurrency!r}")
        if self.max_concurrency < 1:
            raise ValueError("max_concurrency must be at least 1")

    @classmethod
    def from_mapping(cls, options: Mapping[str, Any] | None = None, **overrides: Any) -> ScanOptions:
        """Build options from a mapping, normalising values and legacy names.

        Unknown keys raise ``TypeError``.
        """
        merged: dict[str, Any] = {}
        for key, value in {**(options or {}), **overrides}.items():
            merged[_ALIASES.get(key, key)] = value
        unknown = set(merged) - set(cls.__dataclass_fields__)
        if unknown:
            raise TypeError(f"unknown scan options: {', '.join(sorted(unknown))}")

        max_concurrency = merged.get("max_concurrency") or DEFAULT_MAX_CONCURRENCY
        return cls(
            timeout=normalize_timeout(merged.get("timeout", DEFAULT_TIMEOUT)),
            chunk_size=resolve_chunk_size(merged.get("chunk_size")),
            max_concurrency=max_concurrency,
            detail=merged.get("detail", True) is not False,
            continue_on_error=merged.get("continue_on_error", True) is not False,
        )


@dataclass(frozen=True, slots=True)
class ClamdSettings:
    """Address of a clamd daemon.

    Attributes:
        host: Daemon host name or IP address.
        port: Daemon TCP port.
        timeout: Default session timeout in seconds, ``0`` for none.
    """

    host: str = DEFAULT_HOST
    port: int = DEFAULT_PORT
    timeout: float = DEFAULT_TIMEOUT

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> ClamdSettings:
        """Read ``CLAMD_HOST``, ``CLAMD_PORT`` and ``CLAMD_TIMEOUT``."""
        env = os.environ if environ is None else environ
        timeout: Any = env.get("CLAMD_TIMEOUT")
        if timeout is not None:
            try:
                timeout = float(timeout)
            except ValueError:
                raise ValueError(f"CLAMD_TIMEOUT must be a number, got {timeout!r}") from None
        port = env.get("CLAMD_PORT", str(DEFAULT_PORT))
        try:
            port_number = int(port)
        except ValueError:
            raise ValueError(f"CLAMD_PORT must be an integer, got {port!r}") from None
        return cls(
            host=env.get("CLAMD_HOST", DEFAULT_HOST),
            port=port_number,
            timeout=normalize_timeout(DEFAULT_TIMEOUT if timeout is None else timeout),
        )
