"""
Line-delimited request protocol for the search server.

Inbound lines:
    stop                     cancel the active job and end the read loop
    {"prefix": "<string>"}   start a job once the previous one has joined

Anything else is ignored.
"""

import json
import logging
import queue
import threading
from dataclasses import dataclass
from typing import Iterable, Optional, Union

from solvanity.generator import SearchCoordinator, SearchJob
from solvanity.matcher import RarityRule, validate_base58_prefix

logger = logging.getLogger(__name__)

STOP_COMMAND = "stop"
WAIT_SLICE = 0.05   # seconds between stop checks while a job is running


@dataclass(frozen=True)
class StopRequest:
    pass


@dataclass(frozen=True)
class JobRequest:
    prefix: str


Request = Union[StopRequest, JobRequest]


def parse_request(line: str) -> Optional[Request]:
    """Parse one inbound line. Returns None for lines to ignore."""
    text = line.strip()
    if text == STOP_COMMAND:
        return StopRequest()
    try:
        data = json.loads(text)
    except ValueError:
        logger.debug(f"Ignoring unparseable line: {text!r}")
        return None
    if not isinstance(data, dict) or not isinstance(data.get("prefix"), str):
        logger.debug(f"Ignoring line without a prefix: {text!r}")
        return None
    return JobRequest(prefix=data["prefix"])


def serve(
    lines: Iterable[str],
    coordinator: SearchCoordinator,
    rules: tuple[RarityRule, ...] = (),
) -> None:
    """Read requests until 'stop' or end of input, running one job at a time.

    Lines are read on a separate thread so that 'stop' is seen while a job is
    running, even when further job requests are queued behind it. 'stop'
    cancels the active job and drops any queued requests. A new job waits for
    the previous job's workers to join before it starts. At end of input the
    active job runs to completion.
    """
    requests: "queue.Queue[Optional[Request]]" = queue.Queue()
    stop_requested = threading.Event()
    reader = threading.Thread(
        target=_read_requests,
        args=(lines, requests, stop_requested),
        daemon=True,
        name="solvanity-reader",
    )
    reader.start()

    while True:
        request = requests.get()
        if request is None:
            coordinator.wait()
            return

        if isinstance(request, StopRequest) or not _wait_for_previous(coordinator, stop_requested):
            logger.info("Stop requested")
            coordinator.cancel()
            return

        if request.prefix:
            try:
                validate_base58_prefix(request.prefix)
            except ValueError as e:
                logger.warning(f"{e} The search will never finish on its own.")

        coordinator.start(SearchJob(request.prefix, rules))


def _read_requests(lines: Iterable[str], requests: queue.Queue, stop_requested: threading.Event) -> None:
    """Feed parsed requests to the queue; None marks end of input."""
    try:
        for line in lines:
            request = parse_request(line)
            if request is None:
                continue
            if isinstance(request, StopRequest):
                stop_requested.set()
                requests.put(request)
                return
            requests.put(request)
    finally:
        requests.put(None)


def _wait_for_previous(coordinator: SearchCoordinator, stop_requested: threading.Event) -> bool:
    """Wait for the active job to join. Returns False if 'stop' arrived first."""
    while not coordinator.wait(WAIT_SLICE):
        if stop_requested.is_set():
            return False
    return not stop_requested.is_set()
