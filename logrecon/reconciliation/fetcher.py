"""
Dual-source log fetcher.

Issues the same filtered eth_getLogs query for one window against both
chains. The two queries are independent reads, so each runs on its own
daemon thread and both are joined before comparison. A query still running
at the deadline is abandoned and cannot keep the process alive.
"""

import logging
import queue
import threading
import time
from typing import List, Optional, Tuple

from logrecon.reconciliation.errors import FetchError, ReconciliationTimeoutError
from logrecon.reconciliation.filters import LogFilter
from logrecon.reconciliation.models import LogEvent, Window

logger = logging.getLogger(__name__)


class DualSourceFetcher:
    """
    Fetches one window from two sources.

    A source is anything with a name attribute and a
    get_logs(log_filter, window) method, such as ChainClient.
    """

    def __init__(self, source_a, source_b, parallel: bool = True):
        """
        Args:
            source_a: Chain 1 source
            source_b: Chain 2 source
            parallel: Run both queries concurrently
        """
        self.source_a = source_a
        self.source_b = source_b
        self.parallel = parallel
        self._abandoned: List[threading.Thread] = []

    def fetch(
        self,
        window: Window,
        log_filter: LogFilter,
        deadline: Optional[float] = None
    ) -> Tuple[List[LogEvent], List[LogEvent]]:
        """
        Fetch logs for a window from both sources.

        Args:
            window: Block range to query
            log_filter: Filter applied to both sources
            deadline: time.monotonic() value after which the fetch is abandoned

        Returns:
            (logs from chain 1, logs from chain 2), each in source order

        Raises:
            FetchError: If either source fails (chain 1 wins when both failures are in)
            ReconciliationTimeoutError: If the deadline passes first
        """
        if not self.parallel:
            return (
                self._fetch_one(self.source_a, window, log_filter, deadline),
                self._fetch_one(self.source_b, window, log_filter, deadline),
            )

        sources = (self.source_a, self.source_b)
        outcomes: "queue.Queue[Tuple[int, Optional[List[LogEvent]], Optional[BaseException]]]" = queue.Queue()
        threads = []
        for index, source in enumerate(sources):
            thread = threading.Thread(
                target=self._run_query,
                args=(index, source, log_filter, window, outcomes),
                name=f"logrecon-fetch-{source.name}",
                daemon=True,
            )
            thread.start()
            threads.append(thread)

        results: List[Optional[List[LogEvent]]] = [None, None]
        errors: List[Optional[BaseException]] = [None, None]
        pending = {0, 1}
        while pending:
            timeout = None if deadline is None else max(0.0, deadline - time.monotonic())
            try:
                index, logs, error = outcomes.get(timeout=timeout)
            except queue.Empty:
                break
            pending.discard(index)
            if error is not None:
                errors[index] = error
                break
            results[index] = logs

        # Collect a failure that landed alongside the first one
        while True:
            try:
                index, logs, error = outcomes.get_nowait()
            except queue.Empty:
                break
            pending.discard(index)
            if error is not None:
                errors[index] = error

        for index, source in enumerate(sources):
            if errors[index] is not None:
                self._abandon(threads, pending)
                raise self._fetch_error(source, window, errors[index])

        if pending:
            self._abandon(threads, pending)
            raise ReconciliationTimeoutError(
                f"timed out fetching logs [{window.start}..{window.end}]",
                window=window,
            )

        return results[0], results[1]

    @staticmethod
    def _run_query(index: int, source, log_filter: LogFilter, window: Window, outcomes) -> None:
        try:
            outcomes.put((index, source.get_logs(log_filter, window), None))
        except Exception as e:
            outcomes.put((index, None, e))

    def _abandon(self, threads: List[threading.Thread], pending) -> None:
        for index in pending:
            logger.warning(f"Abandoning in-flight query on {threads[index].name}")
            self._abandoned.append(threads[index])

    def _fetch_one(self, source, window: Window, log_filter: LogFilter, deadline: Optional[float]):
        if deadline is not None and time.monotonic() >= deadline:
            raise ReconciliationTimeoutError(
                f"timed out before fetching [{window.start}..{window.end}] from {source.name}",
                window=window,
            )
        try:
            return source.get_logs(log_filter, window)
        except Exception as e:
            raise self._fetch_error(source, window, e) from e

    @staticmethod
    def _fetch_error(source, window: Window, cause: BaseException) -> FetchError:
        logger.error(f"{source.name} get_logs [{window.start}..{window.end}] failed: {cause}")
        error = FetchError(source.name, window, cause)
        error.__cause__ = cause
        return error

    @property
    def abandoned(self) -> int:
        """Number of queries still running after being abandoned."""
        return sum(1 for thread in self._abandoned if thread.is_alive())

    def close(self) -> None:
        """Drop abandoned queries; their daemon threads end with the process."""
        if self.abandoned:
            logger.debug(f"{self.abandoned} abandoned log queries still running")
        self._abandoned = []

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
