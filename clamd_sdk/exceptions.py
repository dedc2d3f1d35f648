"""Exception hierarchy for the clamd SDK."""

from __future__ import annotations


class ClamAVError(Exception):
    """Base exception for all clamd SDK errors."""


class ClamAVConnectionError(ClamAVError):
    """Raised when a socket to the daemon fails (refused, reset, DNS, ...)."""


class ClamAVTimeoutError(ClamAVError):
    """Raised when a session stays idle longer than its timeout."""


class ClamAVConnectTimeoutError(ClamAVTimeoutError):
    """Raised when no connection is established within the timeout."""


class ClamAVAbortedScanError(ClamAVError):
    """Raised when the daemon closes the session before the stream was sent.

    Typically the daemon rejected the stream early, for example because it
    exceeded ``StreamMaxLength``.

    Attributes:
        reply: Whatever the daemon sent before closing the connection.
    """

    def __init__(self, reply: bytes = b"") -> None:
        self.reply = reply
        text = reply.decode("utf-8", errors="replace").rstrip("\0\n ")
        super().__init__(f"Scan aborted. Reply from server: {text}")


class ClamAVInvalidTargetError(ClamAVError):
    """Raised when a scan root is neither a regular file nor a directory."""


class ClamAVFileSystemError(ClamAVError):
    """Raised when a local file or directory cannot be stat'ed or read.

    Attributes:
        path: The path that failed.
    """

    def __init__(self, message: str, path: str = "") -> None:
        self.path = path
        super().__init__(message)


class ClamAVProtocolError(ClamAVError):
    """Raised when data cannot be represented in the INSTREAM wire format."""
