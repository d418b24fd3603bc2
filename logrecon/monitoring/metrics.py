"""
Prometheus Metrics for Chain Log Reconciliation

Tracks runs, window verdicts and fetched log volume. Metrics can be served
for scraping during long runs or pushed to a Pushgateway when a run ends.
"""

import logging
import time
from typing import Dict, Optional
from prometheus_client import (
    CollectorRegistry,
    Counter,
    Gauge,
    Histogram,
    Info,
    push_to_gateway,
    start_http_server,
)

logger = logging.getLogger(__name__)

SOURCE_LABELS = ("chain_1", "chain_2")


class ReconciliationMetrics:
    """Prometheus metrics for log reconciliation runs."""

    def __init__(
        self,
        namespace: str = "logrecon",
        registry: Optional[CollectorRegistry] = None
    ):
        """
        Initialize reconciliation metrics.

        Args:
            namespace: Metric name prefix
            registry: Prometheus registry (a fresh one if not provided)
        """
        self.namespace = namespace
        self.registry = registry or CollectorRegistry()

        # Run counter
        self.runs_total = Counter(
            f'{namespace}_runs_total',
            'Total number of reconciliation runs',
            ['status'],
            registry=self.registry
        )

        # Window verdicts
        self.windows_compared_total = Counter(
            f'{namespace}_windows_compared_total',
            'Total block windows compared by verdict',
            ['verdict'],
            registry=self.registry
        )

        # Logs fetched
        self.logs_fetched_total = Counter(
            f'{namespace}_logs_fetched_total',
            'Total logs fetched per source',
            ['source'],
            registry=self.registry
        )

        self.window_fetch_duration_seconds = Histogram(
            f'{namespace}_window_fetch_duration_seconds',
            'Time spent fetching one window from both sources',
            buckets=(0.05, 0.1, 0.25, 0.5, 1, 2.5, 5, 10, 30),
            registry=self.registry
        )

        self.run_duration_seconds = Histogram(
            f'{namespace}_run_duration_seconds',
            'Duration of reconciliation runs in seconds',
            buckets=(1, 5, 10, 30, 60, 120, 300, 600, 1800, 3600),
            registry=self.registry
        )

        self.last_run_mismatched_windows = Gauge(
            f'{namespace}_last_run_mismatched_windows',
            'Mismatched windows in the most recent run',
            registry=self.registry
        )

        self.last_success_timestamp_seconds = Gauge(
            f'{namespace}_last_success_timestamp_seconds',
            'Unix time of the last run that found no mismatch',
            registry=self.registry
        )

        self.info = Info(
            f'{namespace}_build',
            'Log reconciler build information',
            registry=self.registry
        )

        logger.debug(f"ReconciliationMetrics initialized with namespace: {namespace}")

    def set_build_info(self, info: Dict[str, str]) -> None:
        """Publish static build/run information."""
        self.info.info(info)

    def record_window(
        self,
        verdict: str,
        count_a: int,
        count_b: int,
        fetch_seconds: float
    ) -> None:
        """
        Record one compared window.

        Args:
            verdict: "equal" or "mismatch"
            count_a: Logs fetched from chain 1
            count_b: Logs fetched from chain 2
            fetch_seconds: Time spent fetching both sources
        """
        self.windows_compared_total.labels(verdict=verdict).inc()
        self.logs_fetched_total.labels(source=SOURCE_LABELS[0]).inc(count_a)
        self.logs_fetched_total.labels(source=SOURCE_LABELS[1]).inc(count_b)
        self.window_fetch_duration_seconds.observe(fetch_seconds)

    def record_run(self, status: str, duration_seconds: float, summary) -> None:
        """
        Record a finished or aborted run.

        Args:
            status: success, mismatch, failure or timeout
            duration_seconds: Run duration
            summary: RunSummary of the concluded windows
        """
        self.runs_total.labels(status=status).inc()
        self.run_duration_seconds.observe(duration_seconds)

        if status in ("success", "mismatch"):
            self.last_run_mismatched_windows.set(summary.mismatched_windows)
        if status == "success":
            self.last_success_timestamp_seconds.set(time.time())

        logger.debug(
            f"Recorded run metrics: status={status}, duration={duration_seconds:.2f}s, "
            f"windows={summary.total_windows}"
        )

    def start_server(self, port: int) -> None:
        """Start Prometheus metrics HTTP server."""
        try:
            start_http_server(port, registry=self.registry)
            logger.info(f"Metrics server started on port {port}")
        except OSError as e:
            if "Address already in use" in str(e):
                logger.warning(f"Metrics server already running on port {port}")
            else:
                raise

    def push(
        self,
        gateway_url: str,
        job_name: str = "logrecon",
        grouping_key: Optional[Dict[str, str]] = None
    ) -> None:
        """
        Push metrics to Prometheus Pushgateway.

        Raises:
            Exception: If push fails
        """
        try:
            push_to_gateway(
                gateway_url,
                job=job_name,
                registry=self.registry,
                grouping_key=grouping_key or {}
            )
            logger.info(f"Pushed metrics to gateway: {gateway_url}")
        except Exception as e:
            logger.error(f"Failed to push metrics to gateway: {e}")
            raise

    def get_sample(self, name: str, labels: Optional[Dict[str, str]] = None) -> Optional[float]:
        """Read a sample value from this registry (used by reports and tests)."""
        return self.registry.get_sample_value(name, labels or {})
