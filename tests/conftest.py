"""
Pytest configuration and shared fixtures.

Provides in-memory chain sources and a log factory so engine tests run
without RPC endpoints.
"""

import logging
import threading
from typing import Dict, List, Optional

import pytest

from logrecon.reconciliation.models import LogEvent, Window

ADDRESS = "0x5aAeb6053F3E94C9b9A09f33669435E7Ef1BeAed"
TRANSFER_TOPIC = "0xddf252ad1be2c89b69c2b068fc378daa952ba7f163c4a11628f55a4df523b3ef"


def make_log(
    block_number: int = 100,
    log_index: int = 0,
    transaction_index: int = 0,
    address: str = ADDRESS,
    data: bytes = b"\x01",
    topics: Optional[List[bytes]] = None,
    block_hash: Optional[bytes] = None,
    transaction_hash: Optional[bytes] = None
) -> LogEvent:
    """Build a LogEvent with hashes derived from its position."""
    return LogEvent(
        block_number=block_number,
        block_hash=block_hash or block_number.to_bytes(32, "big"),
        transaction_index=transaction_index,
        transaction_hash=transaction_hash or (block_number * 1000 + transaction_index).to_bytes(32, "big"),
        log_index=log_index,
        address=address,
        data=data,
        topics=tuple(topics) if topics is not None else (bytes.fromhex(TRANSFER_TOPIC[2:]),),
    )


class StaticLogSource:
    """
    Source serving logs from a fixed list.

    Records every window it was asked for; logs outside the window are
    filtered out the way a node would.
    """

    def __init__(self, name: str, logs: Optional[List[LogEvent]] = None, latest: int = 0):
        self.name = name
        self.logs = list(logs or [])
        self.latest = latest
        self.requested: List[Window] = []
        self._lock = threading.Lock()

    def latest_block(self) -> int:
        return self.latest

    def get_logs(self, log_filter, window: Window) -> List[LogEvent]:
        with self._lock:
            self.requested.append(window)
        return [
            log for log in self.logs
            if window.start <= log.block_number <= window.end
        ]


class FailingLogSource(StaticLogSource):
    """Source whose get_logs fails for chosen windows."""

    def __init__(self, name: str, fail_on: Dict[int, Exception], **kwargs):
        super().__init__(name, **kwargs)
        self.fail_on = fail_on

    def get_logs(self, log_filter, window: Window) -> List[LogEvent]:
        if window.start in self.fail_on:
            with self._lock:
                self.requested.append(window)
            raise self.fail_on[window.start]
        return super().get_logs(log_filter, window)


@pytest.fixture
def log_factory():
    """Factory for LogEvent objects."""
    return make_log


@pytest.fixture
def static_source():
    """Factory for StaticLogSource instances."""
    return StaticLogSource


@pytest.fixture
def failing_source():
    """Factory for FailingLogSource instances."""
    return FailingLogSource


@pytest.fixture(autouse=True)
def reset_logrecon_logging():
    """Undo configure_logging so caplog keeps seeing logrecon records."""
    yield
    root = logging.getLogger("logrecon")
    for handler in list(root.handlers):
        root.removeHandler(handler)
        handler.close()
    root.setLevel(logging.NOTSET)
    root.propagate = True
