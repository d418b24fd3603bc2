"""
Reconciliation Module for Chain Log Reconciliation

This module compares the event logs of two chains that should be identical,
window by window, and reports where they diverge.

Main components:
- windower: Splits a block range into provider-sized windows
- fetcher: Queries both chains for one window
- canonical: Encodes a log into a deterministic key
- comparer: Digest-based equality of two log sets
- differ: First-mismatch localization
- driver: Runs a full reconciliation

Usage:
    from logrecon.reconciliation import LogFilter, LogReconciler, ReconcileRequest

    reconciler = LogReconciler(chain_1_client, chain_2_client)
    report = reconciler.reconcile(ReconcileRequest(
        from_block=1000000,
        to_block=1000650,
        log_filter=LogFilter.build(address="0x...", topics=["0xddf2..."]),
    ))
    print(report.summary.to_dict())
"""

from logrecon.reconciliation.canonical import LogCanonicalizer
from logrecon.reconciliation.comparer import LogComparer
from logrecon.reconciliation.differ import LogDiffer
from logrecon.reconciliation.driver import LogReconciler, ReconcileRequest, RunState
from logrecon.reconciliation.errors import (
    FetchError,
    InvalidRangeError,
    ReconciliationError,
    ReconciliationTimeoutError,
    SourceConnectionError,
)
from logrecon.reconciliation.fetcher import DualSourceFetcher
from logrecon.reconciliation.filters import LogFilter
from logrecon.reconciliation.models import LogEvent, RunReport, RunSummary, Window
from logrecon.reconciliation.windower import MAX_BLOCKS_PER_REQUEST, BlockWindows

__all__ = [
    "BlockWindows",
    "DualSourceFetcher",
    "FetchError",
    "InvalidRangeError",
    "LogCanonicalizer",
    "LogComparer",
    "LogDiffer",
    "LogEvent",
    "LogFilter",
    "LogReconciler",
    "MAX_BLOCKS_PER_REQUEST",
    "ReconcileRequest",
    "ReconciliationError",
    "ReconciliationTimeoutError",
    "RunReport",
    "RunState",
    "RunSummary",
    "SourceConnectionError",
    "Window",
]

__version__ = "1.0.0"
