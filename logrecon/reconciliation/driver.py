"""
Log Reconciliation Driver

Runs one reconciliation over a block range:

    RESOLVING   pick the effective end block (lesser chain head when unset)
    WINDOWING   split [from, end] into bounded windows
    FETCHING    query both chains for one window
    COMPARING   digest both log sets and record the verdict
    CONCLUDED   summary complete

Windows are processed strictly in ascending order. A mismatch is recorded
and the run continues; a fetch, connection or timeout failure aborts it.
"""

import logging
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional

from logrecon.reconciliation.comparer import LogComparer
from logrecon.reconciliation.errors import (
    InvalidRangeError,
    ReconciliationError,
    ReconciliationTimeoutError,
    SourceConnectionError,
    attach_partial_summary,
)
from logrecon.reconciliation.fetcher import DualSourceFetcher
from logrecon.reconciliation.filters import LogFilter
from logrecon.reconciliation.models import RunReport, RunSummary, Window, WindowResult
from logrecon.reconciliation.windower import MAX_BLOCKS_PER_REQUEST, BlockWindows
from logrecon.utils.correlation import RunIdContext

logger = logging.getLogger(__name__)


class RunState(Enum):
    RESOLVING = "resolving"
    WINDOWING = "windowing"
    FETCHING = "fetching"
    COMPARING = "comparing"
    CONCLUDED = "concluded"
    ABORTED = "aborted"


@dataclass(frozen=True)
class ReconcileRequest:
    """
    Caller parameters for one run.

    Attributes:
        from_block: First block, must be > 0
        to_block: Last block; 0 means each chain's latest
        log_filter: Address/topic filter applied to both chains
        ignore_order: Ignore log ordering differences
        timeout: Overall run timeout in seconds, None for no limit
        max_window_size: Maximum blocks per eth_getLogs call
    """

    from_block: int
    to_block: int = 0
    log_filter: LogFilter = field(default_factory=LogFilter)
    ignore_order: bool = True
    timeout: Optional[float] = 30.0
    max_window_size: int = MAX_BLOCKS_PER_REQUEST

    def validate(self) -> None:
        """
        Raises:
            InvalidRangeError: If any parameter is out of range
        """
        if self.from_block < 1:
            raise InvalidRangeError("from-block is required (must be > 0)")
        if self.to_block < 0:
            raise InvalidRangeError(f"to-block must be >= 0, got {self.to_block}")
        if self.to_block != 0 and self.to_block < self.from_block:
            raise InvalidRangeError(
                f"to-block ({self.to_block}) < from-block ({self.from_block})"
            )
        if self.max_window_size < 1:
            raise InvalidRangeError(f"window size must be >= 1, got {self.max_window_size}")
        if self.timeout is not None and self.timeout <= 0:
            raise InvalidRangeError(f"timeout must be > 0, got {self.timeout}")


@dataclass
class RunContext:
    """State owned by a single run; never shared between runs."""

    run_id: str
    request: ReconcileRequest
    started_at: float
    deadline: Optional[float] = None
    state: RunState = RunState.RESOLVING
    end_block: Optional[int] = None
    summary: RunSummary = field(default_factory=RunSummary)
    windows: List[WindowResult] = field(default_factory=list)

    def check_deadline(self, window: Optional[Window] = None) -> None:
        if self.deadline is not None and time.monotonic() >= self.deadline:
            where = f" at [{window.start}..{window.end}]" if window else ""
            raise ReconciliationTimeoutError(
                f"run timed out after {self.request.timeout}s{where}",
                window=window,
            )

    def elapsed(self) -> float:
        return time.monotonic() - self.started_at


class LogReconciler:
    """
    Reconciles event logs between two chains.

    Sources need name, latest_block() and get_logs(log_filter, window);
    ChainClient provides all three.
    """

    def __init__(
        self,
        source_a,
        source_b,
        comparer: Optional[LogComparer] = None,
        metrics=None,
        parallel_fetch: bool = True
    ):
        """
        Args:
            source_a: Chain 1 source
            source_b: Chain 2 source
            comparer: Digest comparer (default LogComparer)
            metrics: Optional ReconciliationMetrics
            parallel_fetch: Fetch both chains concurrently per window
        """
        self.source_a = source_a
        self.source_b = source_b
        self.comparer = comparer or LogComparer()
        self.metrics = metrics
        self.parallel_fetch = parallel_fetch

    def reconcile(self, request: ReconcileRequest, run_id: Optional[str] = None) -> RunReport:
        """
        Reconcile logs over the requested range.

        Args:
            request: Run parameters
            run_id: Optional run ID; generated when omitted

        Returns:
            RunReport; report.ok is False when any window mismatched

        Raises:
            InvalidRangeError: Bad input, raised before any window is fetched
            SourceConnectionError: A chain head could not be read
            FetchError: A windowed query failed
            ReconciliationTimeoutError: The run deadline expired
        """
        request.validate()

        with RunIdContext(run_id) as active_run_id:
            started_at = time.monotonic()
            ctx = RunContext(
                run_id=active_run_id,
                request=request,
                started_at=started_at,
                deadline=started_at + request.timeout if request.timeout else None,
            )

            try:
                report = self._run(ctx)
            except ReconciliationError as e:
                ctx.state = RunState.ABORTED
                status = "timeout" if isinstance(e, ReconciliationTimeoutError) else "failure"
                self._record_run(status, ctx)
                logger.error(
                    f"comparelogs aborted after {ctx.summary.total_windows} concluded ranges: {e}"
                )
                raise attach_partial_summary(e, ctx.summary)

            self._record_run("success" if report.ok else "mismatch", ctx)
            return report

    def _run(self, ctx: RunContext) -> RunReport:
        request = ctx.request

        ctx.state = RunState.RESOLVING
        ctx.end_block = self.resolve_end_block(request.from_block, request.to_block)
        ctx.check_deadline()

        ctx.state = RunState.WINDOWING
        windows = BlockWindows(request.from_block, ctx.end_block, request.max_window_size)
        logger.info(
            f"Comparing logs [{request.from_block}..{ctx.end_block}] in {len(windows)} "
            f"ranges of up to {request.max_window_size} blocks (ignore_order={request.ignore_order})"
        )

        with DualSourceFetcher(self.source_a, self.source_b, parallel=self.parallel_fetch) as fetcher:
            for window in windows:
                ctx.check_deadline(window)
                result = self._reconcile_window(ctx, fetcher, window)
                ctx.summary.record(result)
                ctx.windows.append(result)
                self._log_window(result)

        ctx.state = RunState.CONCLUDED
        summary = ctx.summary
        logger.info(
            f"comparelogs summary: ranges={summary.total_windows} ok={summary.equal_windows} "
            f"mismatch={summary.mismatched_windows} totalLogs(chain_1)={summary.total_logs_a} "
            f"totalLogs(chain_2)={summary.total_logs_b}",
            extra={"summary": summary.to_dict()},
        )
        if not summary.ok:
            logger.error(f"found {summary.mismatched_windows} mismatching ranges")

        return RunReport(
            run_id=ctx.run_id,
            from_block=request.from_block,
            to_block=ctx.end_block,
            summary=summary,
            windows=list(ctx.windows),
            duration_seconds=ctx.elapsed(),
        )

    def resolve_end_block(self, from_block: int, to_block: int) -> int:
        """
        Determine the effective end block.

        When to_block is 0 each chain's latest block is read and the lesser
        one is used, so every compared window exists on both chains.

        Raises:
            SourceConnectionError: If a chain head cannot be read
            InvalidRangeError: If from_block is beyond the effective end
        """
        if to_block != 0:
            return to_block

        latest_a = self._latest_block(self.source_a)
        latest_b = self._latest_block(self.source_b)

        if latest_a != latest_b:
            logger.warning(
                f"Chains latest blocks differ: {self.source_a.name}={latest_a} "
                f"{self.source_b.name}={latest_b}; comparing up to {min(latest_a, latest_b)}"
            )

        end_block = min(latest_a, latest_b)
        if from_block > end_block:
            raise InvalidRangeError(
                f"from-block ({from_block}) is greater than chain latest "
                f"({self.source_a.name}={latest_a} {self.source_b.name}={latest_b})"
            )
        return end_block

    @staticmethod
    def _latest_block(source) -> int:
        try:
            return int(source.latest_block())
        except SourceConnectionError:
            raise
        except Exception as e:
            logger.error(f"Failed to read latest block from {source.name}: {e}")
            raise SourceConnectionError(source.name, f"latest block: {e}") from e

    def _reconcile_window(self, ctx: RunContext, fetcher: DualSourceFetcher, window: Window) -> WindowResult:
        ctx.state = RunState.FETCHING
        fetch_started = time.monotonic()
        logs_a, logs_b = fetcher.fetch(window, ctx.request.log_filter, deadline=ctx.deadline)
        fetch_seconds = time.monotonic() - fetch_started

        ctx.state = RunState.COMPARING
        comparison = self.comparer.compare_logs(logs_a, logs_b, ignore_order=ctx.request.ignore_order)
        result = WindowResult(window=window, comparison=comparison)

        if self.metrics is not None:
            self.metrics.record_window(
                verdict="equal" if result.equal else "mismatch",
                count_a=comparison.count_a,
                count_b=comparison.count_b,
                fetch_seconds=fetch_seconds,
            )
        return result

    def _log_window(self, result: WindowResult) -> None:
        window = result.window
        comparison = result.comparison
        extra = {
            "window_start": window.start,
            "window_end": window.end,
            "verdict": "equal" if result.equal else "mismatch",
            "count_chain_1": comparison.count_a,
            "count_chain_2": comparison.count_b,
        }

        if result.equal:
            logger.info(
                f"[range {window}] Logs equal. count={comparison.count_a} sha256={comparison.digest_a}",
                extra={**extra, "digest": comparison.digest_a},
            )
            return

        logger.error(
            f"[range {window}] Logs differ (sha256 chain_1={comparison.digest_a} "
            f"chain_2={comparison.digest_b}) count(chain_1)={comparison.count_a} "
            f"count(chain_2)={comparison.count_b}",
            extra=extra,
        )

        discrepancy = comparison.discrepancy
        if discrepancy is None:
            return
        if discrepancy.kind == "value":
            logger.error(
                f"[range {window}] First mismatch at index {discrepancy.index}:\n"
                f"chain_1: {discrepancy.value_a}\nchain_2: {discrepancy.value_b}",
                extra={**extra, "first_mismatch": discrepancy.to_dict()},
            )
        else:
            logger.error(
                f"[range {window}] Log count differs: chain_1={discrepancy.count_a} "
                f"chain_2={discrepancy.count_b}",
                extra={**extra, "first_mismatch": discrepancy.to_dict()},
            )

    def _record_run(self, status: str, ctx: RunContext) -> None:
        if self.metrics is not None:
            self.metrics.record_run(
                status=status,
                duration_seconds=ctx.elapsed(),
                summary=ctx.summary,
            )
