"""
Run ID Utility for Chain Log Reconciliation

Tags every log record emitted during a reconciliation run with that run's
ID, so interleaved output from several runs can be told apart.
"""

import uuid
import contextvars
from typing import Optional
import logging

logger = logging.getLogger(__name__)

# Context variable for the active run ID
_run_id: contextvars.ContextVar[Optional[str]] = contextvars.ContextVar(
    'run_id',
    default=None
)


def generate_run_id() -> str:
    """
    Generate a new run ID using UUID4.

    Returns:
        String representation of a UUID4
    """
    return str(uuid.uuid4())


def get_run_id() -> Optional[str]:
    """Get the run ID of the current context, or None."""
    return _run_id.get()


def set_run_id(run_id: str) -> None:
    """
    Set the run ID in the current context.

    Args:
        run_id: Run ID to set

    Raises:
        ValueError: If run_id is empty or not a string
    """
    if not run_id or not isinstance(run_id, str):
        raise ValueError("Run ID must be a non-empty string")

    _run_id.set(run_id)


def clear_run_id() -> None:
    """Clear the run ID from context."""
    _run_id.set(None)


class RunIdContext:
    """
    Context manager scoping a run ID.

    Restores the previous run ID on exit, so nested runs do not leak IDs.
    """

    def __init__(self, run_id: Optional[str] = None):
        """
        Args:
            run_id: Run ID to use; a new one is generated when omitted
        """
        self.run_id = run_id
        self.previous_id = None

    def __enter__(self) -> str:
        self.previous_id = get_run_id()

        if not self.run_id:
            self.run_id = generate_run_id()
        set_run_id(self.run_id)

        logger.debug(f"Entered run context: {self.run_id}")
        return self.run_id

    def __exit__(self, exc_type, exc_val, exc_tb):
        if self.previous_id:
            set_run_id(self.previous_id)
        else:
            clear_run_id()


def run_id_filter(record):
    """
    Logging filter adding run_id to log records.

    Returns:
        True (always allow record)
    """
    record.run_id = get_run_id() or "N/A"
    return True


def setup_run_id_logging(handler: logging.Handler) -> None:
    """Attach the run ID filter to a handler."""
    handler.addFilter(run_id_filter)
