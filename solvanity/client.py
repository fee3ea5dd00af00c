"""
Driver for the search server running as a subprocess.
"""

import json
import logging
import subprocess
import sys
import time
from typing import Callable, Optional

from solvanity.export import FoundMessage, ProgressMessage, RareMessage, parse_message

logger = logging.getLogger(__name__)


class VanityClient:
    """Spawns `python -m solvanity serve` and runs one prefix search on it.

    Usage:
        client = VanityClient(server_args=["--workers", "4"])
        client.on_progress = lambda msg, elapsed: print(msg.attempts)
        client.on_rare = lambda msg: print(msg.address)
        found = client.search("abc")
    """

    def __init__(
        self,
        server_args: Optional[list[str]] = None,
        log_level: str = "WARNING",
        python: str = sys.executable,
    ):
        self.command = [
            python, "-m", "solvanity", "--log-level", log_level, "serve", *(server_args or []),
        ]

        # Callbacks
        self.on_progress: Optional[Callable[[ProgressMessage, float], None]] = None
        self.on_rare: Optional[Callable[[RareMessage], None]] = None

        self.start_time: float = 0
        self.elapsed: float = 0

    def search(self, prefix: str) -> Optional[FoundMessage]:
        """Run a search to completion. Returns None if the server exits first."""
        self.start_time = time.time()
        proc = subprocess.Popen(
            self.command,
            stdin=subprocess.PIPE,
            stdout=subprocess.PIPE,
            text=True,
            bufsize=1,
        )
        found = None
        try:
            try:
                proc.stdin.write(json.dumps({"prefix": prefix}) + "\n")
                proc.stdin.flush()
            except BrokenPipeError:
                logger.error("Search server exited before accepting the request")

            for line in proc.stdout:
                msg = parse_message(line)
                if msg is None:
                    if line.strip():
                        logger.warning(f"Unexpected server output: {line.strip()}")
                    continue
                if isinstance(msg, FoundMessage):
                    found = msg
                    break
                if isinstance(msg, RareMessage):
                    if self.on_rare:
                        self.on_rare(msg)
                elif self.on_progress:
                    self.on_progress(msg, time.time() - self.start_time)
        finally:
            self.elapsed = time.time() - self.start_time
            self._shutdown(proc)
        return found

    @staticmethod
    def _shutdown(proc: subprocess.Popen) -> None:
        try:
            proc.stdin.write("stop\n")
            proc.stdin.flush()
        except OSError:
            pass  # server already gone
        try:
            proc.stdin.close()
        except OSError:
            pass
        try:
            proc.wait(timeout=5.0)
        except subprocess.TimeoutExpired:
            proc.kill()
            proc.wait()
