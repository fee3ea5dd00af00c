import threading

import pytest

from solvanity.export import ResultSink


class RecordingSink(ResultSink):
    """Collects every event for inspection."""

    def __init__(self):
        self.lock = threading.Lock()
        self.progress_events = []
        self.found_results = []
        self.rare_results = []

    def progress(self, tid, attempts):
        with self.lock:
            self.progress_events.append((tid, attempts))

    def found(self, result):
        with self.lock:
            self.found_results.append(result)

    def rare(self, result):
        with self.lock:
            self.rare_results.append(result)


@pytest.fixture
def sink():
    return RecordingSink()
