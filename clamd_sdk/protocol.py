"""Wire format of the clamd ``z``-command protocol.

Commands are prefixed with ``z`` and terminated by a NUL byte. ``INSTREAM``
payloads are sent as a sequence of chunks, each prefixed by its length as an
unsigned 32-bit big-endian integer, and closed by a zero-length chunk::

    zINSTREAM\\0 <len><data> <len><data> ... <0000>
"""

from __future__ import annotations

import struct
from typing import Union

from clamd_sdk.exceptions import ClamAVProtocolError

INSTREAM = b"zINSTREAM\0"
PING = b"zPING\0"
VERSION = b"zVERSION\0"
PONG = b"PONG\0"

MAX_FRAME_LENGTH = 2**32 - 1

_LENGTH = struct.Struct("!I")
TERMINATOR = _LENGTH.pack(0)

Chunk = Union[bytes, bytearray, memoryview]


def encode_frame(chunk: Chunk) -> bytes:
    """Frame one chunk as ``<uint32 BE length><payload>``.

    Empty chunks produce no output, a zero length is reserved for the
    terminator.

    Raises:
        ClamAVProtocolError: If the chunk is longer than :data:`MAX_FRAME_LENGTH`.
    """
    length = len(chunk)
    if length == 0:
        return b""
    if length > MAX_FRAME_LENGTH:
        raise ClamAVProtocolError(
            f"Chunk of {length} bytes exceeds the maximum frame length of {MAX_FRAME_LENGTH}"
        )
    return _LENGTH.pack(length) + bytes(chunk)


class FrameEncoder:
    """Encode one INSTREAM payload.

    A fresh encoder is used per stream; it guarantees the terminator is
    emitted once, and only after the last data frame.

    Example::

        encoder = FrameEncoder()
        wire = b"".join(encoder.encode(c) for c in chunks) + encoder.terminate()
    """

    __slots__ = ("_terminated",)

    def __init__(self) -> None:
        self._terminated = False

    @property
    def terminated(self) -> bool:
        return self._terminated

    def encode(self, chunk: Chunk) -> bytes:
        if self._terminated:
            raise ClamAVProtocolError("Cannot encode a chunk after the terminator")
        return encode_frame(chunk)

    def terminate(self) -> bytes:
        if self._terminated:
            raise ClamAVProtocolError("Stream already terminated")
        self._terminated = True
        return TERMINATOR


def is_clean_reply(reply: Union[str, bytes]) -> bool:
    """Return ``True`` when a daemon reply reports a clean scan.

    A reply is clean when it contains ``OK`` and does not contain ``FOUND``.
    """
    if isinstance(reply, (bytes, bytearray)):
        return b"OK" in reply and b"FOUND" not in reply
    return "OK" in reply and "FOUND" not in reply
