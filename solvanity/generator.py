"""
Search coordinator: manages worker processes, result routing, progress
reporting and job lifecycle.
"""

import logging
import os
import queue
import threading
import time
from dataclasses import dataclass
from multiprocessing import Event, Lock, Process, Queue, Value
from typing import Optional

from solvanity.export import RareWalletLog, ResultSink
from solvanity.matcher import MatchKind, MatchResult, RarityRule
from solvanity.worker import WorkerState, search_worker

logger = logging.getLogger(__name__)

POLL_INTERVAL = 0.05     # seconds between liveness checks
REPORT_INTERVAL = 0.25   # seconds between progress events


@dataclass(frozen=True)
class SearchJob:
    """One search request: a target prefix plus the rarity rules to apply."""
    target_prefix: str
    rarity_rules: tuple[RarityRule, ...] = ()


@dataclass(frozen=True)
class JobContext:
    """Worker-facing form of a SearchJob, compiled once at job start."""
    prefix_bytes: bytes
    rarity_rules: tuple[RarityRule, ...]

    @classmethod
    def from_job(cls, job: SearchJob) -> "JobContext":
        return cls(job.target_prefix.encode("utf-8"), tuple(job.rarity_rules))


class SharedSearchState:
    """Per-job shared-memory state for the coordinator and its workers.

    Each worker only ever writes its own counter, so the counters are created
    without locks. total() is a best-effort snapshot.
    """

    def __init__(self, num_workers: int):
        self.stop_event = Event()
        self.attempts = [Value("Q", 0, lock=False) for _ in range(num_workers)]
        self.stopped = [Value("b", 0, lock=False) for _ in range(num_workers)]
        self.results = Queue()
        self._found_claim = Lock()

    def total(self) -> int:
        return sum(c.value for c in self.attempts)

    def worker_state(self, tid: int) -> WorkerState:
        return WorkerState.STOPPED if self.stopped[tid].value else WorkerState.RUNNING

    def set_worker_state(self, tid: int, worker_state: WorkerState) -> None:
        self.stopped[tid].value = 1 if worker_state is WorkerState.STOPPED else 0

    def all_stopped(self) -> bool:
        return all(flag.value for flag in self.stopped)

    def claim_found(self) -> bool:
        """True for exactly one caller per job: the worker that reports the match."""
        return self._found_claim.acquire(False)

    def drain(self) -> list[MatchResult]:
        """Pop every result currently queued by the workers."""
        drained = []
        while True:
            try:
                drained.append(self.results.get_nowait())
            except queue.Empty:
                return drained


def default_worker_count() -> int:
    return os.cpu_count() or 1


class SearchCoordinator:
    """Runs one search job at a time across a pool of worker processes.

    Usage:
        coord = SearchCoordinator(JsonLineSink(sys.stdout))
        coord.start(SearchJob("abc"))
        # ... later, from any thread ...
        coord.cancel()
    """

    def __init__(
        self,
        sink: Optional[ResultSink] = None,
        num_workers: int = 0,
        rng: str = "chacha",
        rare_log: Optional[RareWalletLog] = None,
        poll_interval: float = POLL_INTERVAL,
        report_interval: float = REPORT_INTERVAL,
    ):
        self.sink = sink if sink is not None else ResultSink()
        self.num_workers = num_workers if num_workers > 0 else default_worker_count()
        self.rng = rng
        self.rare_log = rare_log
        self.poll_interval = poll_interval
        self.report_interval = report_interval

        # Internal state
        self._workers: list[Process] = []
        self._monitor: Optional[threading.Thread] = None
        self._state: Optional[SharedSearchState] = None
        self._job: Optional[SearchJob] = None
        self._done = threading.Event()
        self._done.set()
        self._start_time: float = 0
        self._last_total = 0

    @property
    def is_running(self) -> bool:
        return not self._done.is_set()

    @property
    def job(self) -> Optional[SearchJob]:
        return self._job

    @property
    def workers(self) -> list[Process]:
        return list(self._workers)

    @property
    def last_total(self) -> int:
        """Attempts counted by the most recent job (live while it runs)."""
        state = self._state
        if state is not None:
            return state.total()
        return self._last_total

    def start(self, job: SearchJob) -> None:
        """Start worker processes for a job (non-blocking)."""
        if self.is_running:
            raise RuntimeError("A search job is already running")

        context = JobContext.from_job(job)
        state = SharedSearchState(self.num_workers)
        self._job = job
        self._state = state
        self._start_time = time.monotonic()
        self._done.clear()

        logger.info(
            f"Starting search for prefix '{job.target_prefix}' with "
            f"{self.num_workers} workers and {len(context.rarity_rules)} rarity rules"
        )

        workers = []
        try:
            for tid in range(self.num_workers):
                p = Process(
                    target=search_worker,
                    args=(tid, context, state, self.rng, self.rare_log),
                    daemon=True,
                    name=f"solvanity-worker-{tid}",
                )
                p.start()
                workers.append(p)
        except BaseException:
            state.stop_event.set()
            for p in workers:
                p.join()
            self._state = None
            self._done.set()
            raise

        self._workers = workers
        self._monitor = threading.Thread(
            target=self._monitor_job,
            args=(state, workers),
            daemon=True,
            name="solvanity-monitor",
        )
        self._monitor.start()

    def _forward_results(self, state: SharedSearchState) -> None:
        for result in state.drain():
            if result.kind is MatchKind.PREFIX:
                logger.info(f"Found {result.address} after {result.attempts:,} attempts")
                self.sink.found(result)
            else:
                logger.info(f"Rare address {result.address} (pattern {result.pattern})")
                self.sink.rare(result)

    def _monitor_job(self, state: SharedSearchState, workers: list[Process]) -> None:
        try:
            last_report = time.monotonic()
            # A worker stays alive until its queued results are flushed, so
            # keep draining while any of them is running.
            while any(w.is_alive() for w in workers):
                time.sleep(self.poll_interval)
                self._forward_results(state)
                now = time.monotonic()
                if now - last_report >= self.report_interval:
                    self.sink.progress(0, state.total())
                    last_report = now

            state.stop_event.set()
            for w in workers:
                w.join()
            self._forward_results(state)

            total = state.total()
            self.sink.progress(0, total)
            elapsed = time.monotonic() - self._start_time
            logger.info(f"Search finished after {total:,} attempts in {elapsed:.2f}s")
        finally:
            self._last_total = state.total()
            self._state = None
            self._workers = []
            self._done.set()

    def wait(self, timeout: Optional[float] = None) -> bool:
        """Block until the active job (if any) has fully joined.

        Returns False if the timeout expired first.
        """
        return self._done.wait(timeout)

    def cancel(self, timeout: Optional[float] = None) -> bool:
        """Stop the active job and wait for its workers. Safe to call repeatedly."""
        state = self._state
        if state is not None:
            state.stop_event.set()
        return self.wait(timeout)

    def run_blocking(self, job: SearchJob) -> int:
        """Run a job to completion. Returns the total attempts counted."""
        self.start(job)
        try:
            self.wait()
        except KeyboardInterrupt:
            self.cancel()
        return self._last_total
