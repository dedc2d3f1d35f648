"""clamd SDK: asyncio client for the ClamAV daemon's TCP protocol."""

import logging

from clamd_sdk.async_client import AsyncClamdScanner, create_scanner
from clamd_sdk.client import ClamdScanner
from clamd_sdk.commands import ping, version
from clamd_sdk.config import ClamdSettings, ScanOptions
from clamd_sdk.exceptions import (
    ClamAVAbortedScanError,
    ClamAVConnectionError,
    ClamAVConnectTimeoutError,
    ClamAVError,
    ClamAVFileSystemError,
    ClamAVInvalidTargetError,
    ClamAVProtocolError,
    ClamAVTimeoutError,
)
from clamd_sdk.models import ScanOutcome, ScanReport
from clamd_sdk.protocol import is_clean_reply

logging.getLogger(__name__).addHandler(logging.NullHandler())

__all__ = [
    "AsyncClamdScanner",
    "ClamdScanner",
    "create_scanner",
    "ping",
    "version",
    "is_clean_reply",
    "ScanOptions",
    "ClamdSettings",
    "ScanOutcome",
    "ScanReport",
    "ClamAVError",
    "ClamAVConnectionError",
    "ClamAVTimeoutError",
    "ClamAVConnectTimeoutError",
    "ClamAVAbortedScanError",
    "ClamAVInvalidTargetError",
    "ClamAVFileSystemError",
    "ClamAVProtocolError",
]
