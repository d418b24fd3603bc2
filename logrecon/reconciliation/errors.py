"""
Exceptions raised by the log reconciliation engine.

Mismatching windows are not errors: they are recorded in the run summary
and reported as a failed verdict. Everything here aborts the run.
"""


class ReconciliationError(Exception):
    """Base class for fatal reconciliation failures."""


class InvalidRangeError(ReconciliationError, ValueError):
    """Caller input is invalid: block range, window size, address or topics."""


class SourceConnectionError(ReconciliationError, ConnectionError):
    """A source endpoint cannot be reached or queried for its head."""

    def __init__(self, source: str, message: str):
        self.source = source
        super().__init__(f"{source}: {message}")


class FetchError(ReconciliationError):
    """
    A windowed log query failed on one of the sources.

    Attributes:
        source: Name of the failing source
        window: Window being fetched
        cause: Underlying exception
        partial_summary: Summary of the windows concluded before the failure
    """

    def __init__(self, source: str, window, cause: BaseException):
        self.source = source
        self.window = window
        self.cause = cause
        self.partial_summary = None
        super().__init__(f"{source} get_logs [{window.start}..{window.end}]: {cause}")


class ReconciliationTimeoutError(ReconciliationError, TimeoutError):
    """The run deadline expired before every window was concluded."""

    def __init__(self, message: str, window=None):
        self.window = window
        self.partial_summary = None
        super().__init__(message)


def attach_partial_summary(error: ReconciliationError, summary) -> ReconciliationError:
    """Attach the summary of concluded windows to an aborting error."""
    if hasattr(error, "partial_summary"):
        error.partial_summary = summary
    return error


__all__ = [
    "ReconciliationError",
    "InvalidRangeError",
    "SourceConnectionError",
    "FetchError",
    "ReconciliationTimeoutError",
    "attach_partial_summary",
]
