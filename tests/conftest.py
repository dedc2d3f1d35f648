"""Shared test fixtures."""

from __future__ import annotations

import socket
import socketserver
import struct
import threading
import time
from dataclasses import dataclass, field

import pytest

EICAR = b"X5O!P%@AP[4\\PZX54(P^)7CC)7}$EICAR-STANDARD-ANTIVIRUS-TEST-FILE!$H+H*"


@pytest.fixture()
def sample_bytes() -> bytes:
    return b"Hello, ClamAV!"


@pytest.fixture()
def eicar_bytes() -> bytes:
    """EICAR anti-malware test string (safe; every AV recognises it)."""
    return EICAR


def read_frames(data: bytes) -> tuple[bytes, int]:
    """Decode INSTREAM frames; return the payload and the number of terminators."""
    payload = bytearray()
    terminators = 0
    offset = 0
    while offset < len(data):
        (length,) = struct.unpack_from("!I", data, offset)
        offset += 4
        if length == 0:
            terminators += 1
            continue
        payload += data[offset : offset + length]
        offset += length
    return bytes(payload), terminators


@dataclass
class FakeClamdConfig:
    """Behaviour of the fake daemon, tweakable from tests."""

    ping_reply: bytes = b"PONG\0"
    version_reply: bytes = b"ClamAV 1.3.0/27000/Mon Oct 19 08:00:00 2026\0"
    max_stream_length: int = 1024 * 1024
    reply_delay: float = 0.0
    silent: bool = False
    close_without_reply: bool = False
    streams: list[bytes] = field(default_factory=list)
    commands: list[bytes] = field(default_factory=list)


class _Handler(socketserver.BaseRequestHandler):
    def handle(self) -> None:
        config: FakeClamdConfig = self.server.config  # type: ignore[attr-defined]
        sock: socket.socket = self.request
        command = self._read_command(sock)
        config.commands.append(command)
        if config.silent:
            self._drain(sock)
            return
        if config.close_without_reply:
            sock.shutdown(socket.SHUT_WR)
            self._drain(sock)
            return
        if config.reply_delay:
            time.sleep(config.reply_delay)
        if command == b"zPING\0":
            sock.sendall(config.ping_reply)
        elif command == b"zVERSION\0":
            sock.sendall(config.version_reply)
        elif command == b"zINSTREAM\0":
            self._instream(sock, config)
        else:
            sock.sendall(b"UNKNOWN COMMAND\0")

    def _instream(self, sock: socket.socket, config: FakeClamdConfig) -> None:
        payload = bytearray()
        while True:
            header = self._read_exact(sock, 4)
            if len(header) < 4:
                return
            (length,) = struct.unpack("!I", header)
            if length == 0:
                break
            if len(payload) + length > config.max_stream_length:
                sock.sendall(b"INSTREAM size limit exceeded. ERROR\0")
                sock.shutdown(socket.SHUT_WR)
                # clamd stops reading the stream here; let the client see the reply first.
                time.sleep(0.2)
                self._drain(sock)
                return
            payload += self._read_exact(sock, length)
        config.streams.append(bytes(payload))
        if EICAR in payload:
            sock.sendall(b"stream: Eicar-Test-Signature FOUND\0")
        else:
            sock.sendall(b"stream: OK\0")

    @staticmethod
    def _read_command(sock: socket.socket) -> bytes:
        data = bytearray()
        while not data.endswith(b"\0"):
            byte = sock.recv(1)
            if not byte:
                break
            data += byte
        return bytes(data)

    @staticmethod
    def _read_exact(sock: socket.socket, size: int) -> bytes:
        data = bytearray()
        while len(data) < size:
            part = sock.recv(size - len(data))
            if not part:
                break
            data += part
        return bytes(data)

    @staticmethod
    def _drain(sock: socket.socket) -> None:
        sock.settimeout(5)
        try:
            while sock.recv(65536):
                pass
        except OSError:
            pass


class FakeClamd(socketserver.ThreadingTCPServer):
    daemon_threads = True
    allow_reuse_address = True

    def __init__(self) -> None:
        super().__init__(("127.0.0.1", 0), _Handler)
        self.config = FakeClamdConfig()

    @property
    def host(self) -> str:
        return "127.0.0.1"

    @property
    def port(self) -> int:
        return self.server_address[1]


@pytest.fixture()
def fake_clamd():
    """A clamd look-alike listening on an ephemeral localhost port."""
    server = FakeClamd()
    thread = threading.Thread(target=server.serve_forever, daemon=True)
    thread.start()
    yield server
    server.shutdown()
    server.server_close()


@pytest.fixture()
def unused_port() -> int:
    with socket.socket() as sock:
        sock.bind(("127.0.0.1", 0))
        return sock.getsockname()[1]
