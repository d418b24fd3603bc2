"""
Unit tests for the dual-source fetcher.
"""

import os
import subprocess
import sys
import textwrap
import threading
import time
from pathlib import Path

import pytest

from logrecon.reconciliation.errors import FetchError, ReconciliationTimeoutError
from logrecon.reconciliation.fetcher import DualSourceFetcher
from logrecon.reconciliation.filters import LogFilter
from logrecon.reconciliation.models import Window

PROJECT_ROOT = Path(__file__).resolve().parents[2]

HANGING_RUN = textwrap.dedent("""
    import time

    from logrecon.reconciliation.driver import LogReconciler, ReconcileRequest
    from logrecon.reconciliation.errors import ReconciliationTimeoutError

    class HangingSource:
        name = "chain_1"

        def latest_block(self):
            return 1000

        def get_logs(self, log_filter, window):
            time.sleep(8)
            return []

    class EmptySource(HangingSource):
        name = "chain_2"

        def get_logs(self, log_filter, window):
            return []

    try:
        LogReconciler(HangingSource(), EmptySource()).reconcile(
            ReconcileRequest(from_block=1, to_block=10, timeout=0.3)
        )
    except ReconciliationTimeoutError:
        print("timed out")
""")


class SlowSource:
    """Source that blocks until released."""

    def __init__(self, name):
        self.name = name
        self.release = threading.Event()

    def get_logs(self, log_filter, window):
        self.release.wait(5)
        return []


@pytest.fixture(params=[True, False], ids=["parallel", "sequential"])
def parallel(request):
    return request.param


class TestDualSourceFetcher:
    """Test fetching one window from both chains."""

    def test_returns_logs_from_both_sources(self, parallel, static_source, log_factory):
        """Test that each side gets its own source's logs."""
        source_a = static_source("chain_1", [log_factory(block_number=5)])
        source_b = static_source("chain_2", [log_factory(block_number=5), log_factory(block_number=6)])

        with DualSourceFetcher(source_a, source_b, parallel=parallel) as fetcher:
            logs_a, logs_b = fetcher.fetch(Window(1, 10), LogFilter())

        assert len(logs_a) == 1
        assert len(logs_b) == 2

    def test_both_sources_get_the_same_window(self, parallel, static_source):
        source_a = static_source("chain_1")
        source_b = static_source("chain_2")

        with DualSourceFetcher(source_a, source_b, parallel=parallel) as fetcher:
            fetcher.fetch(Window(301, 600), LogFilter())

        assert source_a.requested == source_b.requested == [Window(301, 600)]

    def test_failure_on_chain_2_raises_fetch_error(self, parallel, static_source, failing_source):
        """Test that a provider error is wrapped with source and window."""
        cause = RuntimeError("query returned more than 10000 results")
        source_a = static_source("chain_1")
        source_b = failing_source("chain_2", fail_on={1: cause})

        with DualSourceFetcher(source_a, source_b, parallel=parallel) as fetcher:
            with pytest.raises(FetchError) as exc_info:
                fetcher.fetch(Window(1, 300), LogFilter())

        error = exc_info.value
        assert error.source == "chain_2"
        assert error.window == Window(1, 300)
        assert error.cause is cause
        assert "chain_2 get_logs [1..300]" in str(error)

    def test_chain_1_reported_when_both_fail(self, static_source, failing_source):
        """Test that chain 1's failure is reported when both sides fail."""
        source_a = failing_source("chain_1", fail_on={1: RuntimeError("a down")})
        source_b = failing_source("chain_2", fail_on={1: RuntimeError("b down")})

        with DualSourceFetcher(source_a, source_b, parallel=False) as fetcher:
            with pytest.raises(FetchError) as exc_info:
                fetcher.fetch(Window(1, 300), LogFilter())

        assert exc_info.value.source == "chain_1"

    def test_sequential_stops_after_first_failure(self, static_source, failing_source):
        source_a = failing_source("chain_1", fail_on={1: RuntimeError("down")})
        source_b = static_source("chain_2")

        with DualSourceFetcher(source_a, source_b, parallel=False) as fetcher:
            with pytest.raises(FetchError):
                fetcher.fetch(Window(1, 300), LogFilter())

        assert source_b.requested == []

    def test_expired_deadline_raises_timeout(self, parallel, static_source):
        """Test that an expired deadline aborts the fetch."""
        source_a = SlowSource("chain_1")
        source_b = static_source("chain_2")

        with DualSourceFetcher(source_a, source_b, parallel=parallel) as fetcher:
            try:
                with pytest.raises(ReconciliationTimeoutError) as exc_info:
                    fetcher.fetch(Window(1, 300), LogFilter(), deadline=time.monotonic() - 1)
            finally:
                source_a.release.set()

        assert exc_info.value.window == Window(1, 300)

    def test_slow_source_times_out_in_parallel(self, static_source):
        """Test that a hanging source is abandoned at the deadline."""
        source_a = SlowSource("chain_1")
        source_b = static_source("chain_2")

        with DualSourceFetcher(source_a, source_b, parallel=True) as fetcher:
            try:
                with pytest.raises(ReconciliationTimeoutError):
                    fetcher.fetch(Window(1, 300), LogFilter(), deadline=time.monotonic() + 0.2)
            finally:
                source_a.release.set()

    def test_timeout_is_a_timeout_error(self):
        assert issubclass(ReconciliationTimeoutError, TimeoutError)

    def test_abandoned_query_does_not_block_exit(self):
        """Test that a process with a hanging query exits right after the timeout."""
        env = dict(os.environ, PYTHONPATH=str(PROJECT_ROOT))

        started = time.monotonic()
        completed = subprocess.run(
            [sys.executable, "-c", HANGING_RUN],
            env=env,
            capture_output=True,
            text=True,
            timeout=30
        )
        elapsed = time.monotonic() - started

        assert completed.returncode == 0, completed.stderr
        assert "timed out" in completed.stdout
        assert elapsed < 6

    def test_abandoned_query_is_tracked(self, static_source):
        """Test that the fetcher counts queries left running at the deadline."""
        source_a = SlowSource("chain_1")
        source_b = static_source("chain_2")

        fetcher = DualSourceFetcher(source_a, source_b, parallel=True)
        with pytest.raises(ReconciliationTimeoutError):
            fetcher.fetch(Window(1, 300), LogFilter(), deadline=time.monotonic() + 0.1)

        assert fetcher.abandoned == 1
        source_a.release.set()
        fetcher.close()
        assert fetcher.abandoned == 0
