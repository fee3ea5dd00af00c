"""
Outbound events and persistence of discovered wallets.

Message formats (one JSON object per line):
- progress — {"type": "progress", "tid": int, "attempts": int}
- found    — {"type": "found", "address": str, "private_key": str, "attempts": int}
- rare     — {"type": "rare", "address": str, "private_key": str, "pattern": str, "attempts": int}
"""

import json
import logging
import multiprocessing
import os
import threading
from dataclasses import asdict, dataclass
from datetime import datetime, timezone
from typing import Optional, TextIO, Union

from solvanity.matcher import MatchResult

logger = logging.getLogger(__name__)

RARE_LOG_FILE = "rare_wallets.txt"
VANITY_LOG_FILE = "vanity_wallets.txt"


@dataclass(frozen=True)
class ProgressMessage:
    tid: int
    attempts: int
    type: str = "progress"


@dataclass(frozen=True)
class FoundMessage:
    address: str
    private_key: str
    attempts: int
    type: str = "found"


@dataclass(frozen=True)
class RareMessage:
    address: str
    private_key: str
    pattern: str
    attempts: int
    type: str = "rare"


OutputMessage = Union[ProgressMessage, FoundMessage, RareMessage]

_MESSAGE_TYPES = {
    "progress": ProgressMessage,
    "found": FoundMessage,
    "rare": RareMessage,
}


def to_json(message: OutputMessage) -> str:
    """Serialize a message to its single-line JSON form, type tag first."""
    fields = asdict(message)
    tag = fields.pop("type")
    return json.dumps({"type": tag, **fields}, separators=(",", ":"))


def parse_message(line: str) -> Optional[OutputMessage]:
    """Parse one output line. Returns None for anything unrecognised."""
    try:
        data = json.loads(line)
    except ValueError:
        return None
    if not isinstance(data, dict):
        return None
    cls = _MESSAGE_TYPES.get(data.pop("type", None))
    if cls is None:
        return None
    try:
        return cls(**data)
    except TypeError:
        return None


class RareWalletLog:
    """Append-only text log of rare finds.

    Each record is a Pattern/Address/Private Key block followed by a blank
    line. Records are written under one multiprocessing lock shared by every
    worker process.
    """

    def __init__(self, path: str = RARE_LOG_FILE):
        self.path = os.path.abspath(path)
        self._lock = multiprocessing.Lock()

    def append(self, pattern: str, address: str, private_key: str) -> bool:
        """Append one record. Returns False if the write failed."""
        record = f"Pattern: {pattern}\nAddress: {address}\nPrivate Key: {private_key}\n\n"
        with self._lock:
            try:
                with open(self.path, "a") as f:
                    f.write(record)
            except OSError as e:
                logger.warning(f"Could not append to {self.path}: {e}")
                return False
        return True


class ResultSink:
    """Receives search events. The base class discards everything."""

    def progress(self, tid: int, attempts: int) -> None:
        pass

    def found(self, result: MatchResult) -> None:
        pass

    def rare(self, result: MatchResult) -> None:
        pass


class JsonLineSink(ResultSink):
    """Writes events as JSON lines to a text stream (stdout by default)."""

    def __init__(self, stream: TextIO):
        self.stream = stream
        self._write_lock = threading.Lock()

    def emit(self, message: OutputMessage) -> None:
        line = to_json(message) + "\n"
        with self._write_lock:
            try:
                self.stream.write(line)
                self.stream.flush()
            except (OSError, ValueError) as e:
                # ValueError: stream already closed
                logger.debug(f"Dropped {message.type} message: {e}")

    def progress(self, tid: int, attempts: int) -> None:
        self.emit(ProgressMessage(tid=tid, attempts=attempts))

    def found(self, result: MatchResult) -> None:
        self.emit(FoundMessage(
            address=result.address,
            private_key=result.private_key,
            attempts=result.attempts,
        ))

    def rare(self, result: MatchResult) -> None:
        self.emit(RareMessage(
            address=result.address,
            private_key=result.private_key,
            pattern=result.pattern,
            attempts=result.attempts,
        ))


def save_vanity_wallet(
    address: str,
    private_key: str,
    attempts: int,
    elapsed: float,
    path: str = VANITY_LOG_FILE,
) -> str:
    """Append a found vanity wallet to a human-readable log.

    Returns the absolute path of the log file.
    """
    abs_path = os.path.abspath(path)
    os.makedirs(os.path.dirname(abs_path) or ".", exist_ok=True)
    rate = attempts / elapsed if elapsed > 0 else 0
    timestamp = datetime.now(timezone.utc).isoformat()
    entry = (
        f"[{timestamp}] Vanity Wallet Found!\n"
        f"Address: {address}\n"
        f"Private Key: {private_key}\n"
        f"Total Attempts: {attempts:,}\n"
        f"Time Elapsed: {elapsed:.2f}s\n"
        f"Wallets/Second: {rate:.0f}\n"
        "---\n\n"
    )
    with open(abs_path, "a") as f:
        f.write(entry)
    try:
        os.chmod(abs_path, 0o600)
    except OSError:
        pass  # Windows: chmod not fully supported
    return abs_path
