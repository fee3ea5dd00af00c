"""
Multiprocessing worker for vanity address generation.

IMPORTANT: This module must contain only top-level importable functions.
On macOS/Windows, multiprocessing uses 'spawn' which requires worker
targets to be importable by name from a module.

Each worker owns its key generator and its own attempt counter. The stop
event is the only signal shared between workers.
"""

import logging
from enum import Enum

from solvanity.core import KeyCandidateGenerator
from solvanity.matcher import MatchKind, MatchResult, find_rare_pattern, prefix_matches

logger = logging.getLogger(__name__)


class WorkerState(Enum):
    RUNNING = "running"
    STOPPED = "stopped"


def search_worker(tid: int, context, state, rng: str = "chacha", rare_log=None) -> None:
    """Worker process: generate keys in a tight loop and check for matches.

    Runs until the prefix is found or the stop event is set. Matches are
    pushed onto state.results for the coordinator to forward.

    Args:
        tid: Worker index, also the index of this worker's attempt counter.
        context: JobContext with the encoded prefix and compiled rarity rules.
        state: SharedSearchState for the active job.
        rng: Entropy source name for this worker's KeyCandidateGenerator.
        rare_log: Optional RareWalletLog; rare finds are appended before
            they are queued.
    """
    state.set_worker_state(tid, WorkerState.RUNNING)
    try:
        generator = KeyCandidateGenerator(rng)
        prefix = context.prefix_bytes
        rules = context.rarity_rules
        counter = state.attempts[tid]
        stop_event = state.stop_event
        results = state.results

        while not stop_event.is_set():
            keypair = generator.next_keypair()
            counter.value += 1
            address = keypair.address

            if rules:
                pattern = find_rare_pattern(address, rules)
                if pattern is not None:
                    result = MatchResult(MatchKind.RARITY, keypair, state.total(), pattern)
                    if rare_log is not None:
                        rare_log.append(pattern, result.address, result.private_key)
                    results.put(result)

            if prefix_matches(address, prefix):
                if state.claim_found():
                    results.put(MatchResult(MatchKind.PREFIX, keypair, state.total()))
                stop_event.set()
                return
    except Exception:
        logger.exception(f"Worker {tid} crashed")
        raise
    finally:
        state.set_worker_state(tid, WorkerState.STOPPED)
