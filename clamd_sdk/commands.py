"""Single-shot clamd commands (``PING``, ``VERSION``)."""

from __future__ import annotations

import logging
from typing import Any, Optional

from clamd_sdk import transport
from clamd_sdk.config import resolve_timeout, validate_address
from clamd_sdk.protocol import PING, PONG, VERSION

logger = logging.getLogger(__name__)


async def ping(
    host: str,
    port: int,
    timeout: Any = None,
    execute: Optional[transport.Executor] = None,
) -> bool:
    """Check the daemon's state.

    Returns:
        ``True`` when the daemon answered exactly ``PONG\\0``. Any other reply
        returns ``False``.

    Raises:
        ValueError: If *host* or *port* is missing or invalid.
        ClamAVConnectionError: If the daemon is unreachable.
        ClamAVTimeoutError: If the daemon does not answer in time.
    """
    validate_address(host, port)
    reply = await _command(host, port, timeout, PING, execute)
    if reply != PONG:
        logger.debug("Unexpected PING reply from %s:%s: %r", host, port, reply)
    return reply == PONG


async def version(
    host: str,
    port: int,
    timeout: Any = None,
    execute: Optional[transport.Executor] = None,
) -> str:
    """Get the daemon's version string, e.g. ``"ClamAV 1.3.0/27000/..."``.

    Raises:
        ValueError: If *host* or *port* is missing or invalid.
        ClamAVConnectionError: If the daemon is unreachable.
        ClamAVTimeoutError: If the daemon does not answer in time.
    """
    validate_address(host, port)
    reply = await _command(host, port, timeout, VERSION, execute)
    return reply.decode("utf-8", errors="replace").rstrip("\0\n")


async def _command(
    host: str,
    port: int,
    timeout: Any,
    command: bytes,
    execute: Optional[transport.Executor],
) -> bytes:
    async def write_body(session: transport.Session) -> None:
        await session.send(command)
        session.complete()

    run = execute or transport.execute
    return await run(host, port, resolve_timeout(timeout), write_body)
