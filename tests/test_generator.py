import multiprocessing
import time

import pytest

from solvanity.export import RareWalletLog
from solvanity.generator import (
    JobContext,
    SearchCoordinator,
    SearchJob,
    SharedSearchState,
    default_worker_count,
)
from solvanity.matcher import PatternConfig, compile_rules, prefix_matches
from solvanity.worker import WorkerState

# "0" is not in the base-58 alphabet, so this prefix never matches
IMPOSSIBLE = "0"
UPPER_AND_DIGITS = "123456789ABCDEFGHJKLMNPQRSTUVWXYZ"


def coordinator(sink, workers=2, **kwargs):
    kwargs.setdefault("poll_interval", 0.01)
    kwargs.setdefault("report_interval", 0.02)
    return SearchCoordinator(sink, num_workers=workers, **kwargs)


def wait_for(condition, timeout=20):
    deadline = time.monotonic() + timeout
    while not condition():
        assert time.monotonic() < deadline, "condition not reached in time"
        time.sleep(0.01)


def test_job_context_encodes_prefix_once():
    rules = compile_rules([PatternConfig("a", 3)])
    ctx = JobContext.from_job(SearchJob("Sol", rules))
    assert ctx.prefix_bytes == b"Sol"
    assert ctx.rarity_rules == rules


def test_shared_state_starts_fresh():
    state = SharedSearchState(3)
    assert state.total() == 0
    assert not state.stop_event.is_set()
    assert not state.all_stopped()
    for tid in range(3):
        assert state.worker_state(tid) is WorkerState.RUNNING
        state.set_worker_state(tid, WorkerState.STOPPED)
    assert state.all_stopped()


def test_default_worker_count_positive():
    assert default_worker_count() >= 1
    assert SearchCoordinator().num_workers == default_worker_count()


def test_found_ends_job(sink):
    coord = coordinator(sink, workers=3)
    total = coord.run_blocking(SearchJob(""))

    assert not coord.is_running
    assert len(sink.found_results) == 1
    found = sink.found_results[0]
    assert prefix_matches(found.keypair.address, b"")
    assert total >= found.attempts
    # final progress snapshot carries the job-end total
    assert sink.progress_events[-1] == (0, total)


def test_single_char_prefix(sink):
    coord = coordinator(sink, workers=2)
    coord.run_blocking(SearchJob("2"))
    assert len(sink.found_results) == 1
    assert sink.found_results[0].address.startswith("2")


def test_progress_reported_while_running(sink):
    coord = coordinator(sink)
    coord.start(SearchJob(IMPOSSIBLE))
    wait_for(lambda: coord.last_total > 0)
    assert coord.is_running
    time.sleep(0.1)
    assert coord.cancel(timeout=20)

    attempts = [a for _, a in sink.progress_events]
    assert len(attempts) >= 3
    assert attempts == sorted(attempts)
    assert sink.found_results == []


def test_workers_are_processes(sink):
    coord = coordinator(sink, workers=2)
    coord.start(SearchJob(IMPOSSIBLE))
    try:
        workers = coord.workers
        assert len(workers) == 2
        assert all(isinstance(w, multiprocessing.Process) for w in workers)
        assert all(w.pid is not None for w in workers)
    finally:
        coord.cancel(timeout=20)


def test_cancel_joins_all_workers(sink):
    coord = coordinator(sink, workers=4)
    coord.start(SearchJob(IMPOSSIBLE))
    workers = coord.workers
    time.sleep(0.05)
    assert coord.cancel(timeout=20)
    assert not coord.is_running
    assert not any(w.is_alive() for w in workers)
    assert coord.workers == []


def test_cancel_is_idempotent(sink):
    coord = coordinator(sink)
    assert coord.cancel(timeout=1)

    coord.run_blocking(SearchJob(""))
    assert coord.cancel(timeout=1)
    assert coord.cancel(timeout=1)


def test_one_job_at_a_time(sink):
    coord = coordinator(sink)
    coord.start(SearchJob(IMPOSSIBLE))
    try:
        with pytest.raises(RuntimeError, match="already running"):
            coord.start(SearchJob(""))
    finally:
        coord.cancel(timeout=20)


def test_each_job_gets_fresh_counters(sink):
    coord = coordinator(sink)
    coord.run_blocking(SearchJob(""))
    coord.run_blocking(SearchJob(""))
    assert len(sink.found_results) == 2
    assert sink.found_results[-1].attempts <= coord.last_total
    assert coord.last_total <= coord.num_workers


def test_rare_events_routed_and_logged(sink, tmp_path):
    rules = compile_rules([PatternConfig(c, 1) for c in UPPER_AND_DIGITS])
    log_path = tmp_path / "rare.txt"
    coord = coordinator(sink, workers=1, rare_log=RareWalletLog(str(log_path)))
    coord.run_blocking(SearchJob("", rules))

    assert len(sink.rare_results) == 1
    rare = sink.rare_results[0]
    assert rare.pattern
    assert log_path.read_text() == (
        f"Pattern: {rare.pattern}\nAddress: {rare.address}\nPrivate Key: {rare.private_key}\n\n"
    )


def test_no_rules_no_rare_events(sink):
    coord = coordinator(sink)
    coord.start(SearchJob(IMPOSSIBLE, ()))
    time.sleep(0.2)
    coord.cancel(timeout=20)
    assert sink.rare_results == []


def test_dead_worker_does_not_stop_others(sink):
    coord = coordinator(sink, workers=2)
    coord.start(SearchJob(IMPOSSIBLE))
    first, second = coord.workers
    wait_for(lambda: coord.last_total > 0)

    first.terminate()
    first.join(timeout=20)
    before = coord.last_total
    wait_for(lambda: coord.last_total > before)
    assert coord.is_running
    assert second.is_alive()

    assert coord.cancel(timeout=20)
    assert not second.is_alive()
