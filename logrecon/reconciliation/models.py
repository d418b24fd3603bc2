"""
Data model for log reconciliation.

LogEvent is what a source returns for one emitted event, Window is one
bounded block range query, and RunSummary/RunReport carry the outcome
of a run.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Tuple, Union

from web3 import Web3

BytesLike = Union[bytes, bytearray, str]


def to_bytes(value: BytesLike) -> bytes:
    """Convert RPC hex strings or bytes-like values (HexBytes) to bytes."""
    if isinstance(value, str):
        text = value[2:] if value[:2] in ("0x", "0X") else value
        if len(text) % 2:
            text = "0" + text
        return bytes.fromhex(text)
    return bytes(value)


@dataclass(frozen=True)
class LogEvent:
    """A single event log as returned by eth_getLogs."""

    block_number: int
    block_hash: bytes
    transaction_index: int
    transaction_hash: bytes
    log_index: int
    address: str
    data: bytes = b""
    topics: Tuple[bytes, ...] = ()

    @classmethod
    def from_rpc(cls, log: Mapping[str, Any]) -> "LogEvent":
        """
        Build a LogEvent from a web3 log entry.

        Args:
            log: AttributeDict or plain dict with the JSON-RPC log fields

        Returns:
            LogEvent with bytes fields and a checksummed address
        """
        return cls(
            block_number=int(log["blockNumber"]),
            block_hash=to_bytes(log["blockHash"]),
            transaction_index=int(log["transactionIndex"]),
            transaction_hash=to_bytes(log["transactionHash"]),
            log_index=int(log["logIndex"]),
            address=Web3.to_checksum_address(log["address"]),
            data=to_bytes(log.get("data") or b""),
            topics=tuple(to_bytes(t) for t in log.get("topics", [])),
        )


@dataclass(frozen=True)
class Window:
    """Inclusive block range [start, end]."""

    start: int
    end: int

    @property
    def size(self) -> int:
        return self.end - self.start + 1

    def __str__(self) -> str:
        return f"{self.start}..{self.end}"


@dataclass(frozen=True)
class Discrepancy:
    """
    First point of divergence between two canonical key sequences.

    kind is "value" when both sides have a key at index that differs, and
    "length" when the common prefix matches but one side has more keys.
    """

    kind: str
    index: int
    value_a: Optional[str] = None
    value_b: Optional[str] = None
    count_a: int = 0
    count_b: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "kind": self.kind,
            "index": self.index,
            "chain_1": self.value_a,
            "chain_2": self.value_b,
            "count_chain_1": self.count_a,
            "count_chain_2": self.count_b,
        }


@dataclass(frozen=True)
class ComparisonResult:
    """Verdict of comparing two log sets."""

    equal: bool
    digest_a: str
    digest_b: str
    count_a: int
    count_b: int
    discrepancy: Optional[Discrepancy] = None
    only_in_a: Tuple[str, ...] = ()
    only_in_b: Tuple[str, ...] = ()


@dataclass(frozen=True)
class WindowResult:
    """Per-window record emitted by the driver."""

    window: Window
    comparison: ComparisonResult

    @property
    def equal(self) -> bool:
        return self.comparison.equal

    def to_dict(self) -> Dict[str, Any]:
        record: Dict[str, Any] = {
            "from_block": self.window.start,
            "to_block": self.window.end,
            "verdict": "equal" if self.equal else "mismatch",
            "count_chain_1": self.comparison.count_a,
            "count_chain_2": self.comparison.count_b,
        }
        if self.equal:
            record["sha256"] = self.comparison.digest_a
        else:
            record["sha256_chain_1"] = self.comparison.digest_a
            record["sha256_chain_2"] = self.comparison.digest_b
            if self.comparison.discrepancy is not None:
                record["first_mismatch"] = self.comparison.discrepancy.to_dict()
            record["only_in_chain_1"] = list(self.comparison.only_in_a)
            record["only_in_chain_2"] = list(self.comparison.only_in_b)
        return record


@dataclass
class RunSummary:
    """Aggregate counters for a run."""

    total_windows: int = 0
    equal_windows: int = 0
    mismatched_windows: int = 0
    total_logs_a: int = 0
    total_logs_b: int = 0

    def record(self, result: WindowResult) -> None:
        self.total_windows += 1
        if result.equal:
            self.equal_windows += 1
        else:
            self.mismatched_windows += 1
        self.total_logs_a += result.comparison.count_a
        self.total_logs_b += result.comparison.count_b

    @property
    def ok(self) -> bool:
        return self.mismatched_windows == 0

    def to_dict(self) -> Dict[str, int]:
        return {
            "ranges": self.total_windows,
            "ok": self.equal_windows,
            "mismatch": self.mismatched_windows,
            "total_logs_chain_1": self.total_logs_a,
            "total_logs_chain_2": self.total_logs_b,
        }


@dataclass
class RunReport:
    """Everything a completed run produced."""

    run_id: str
    from_block: int
    to_block: int
    summary: RunSummary
    windows: List[WindowResult] = field(default_factory=list)
    duration_seconds: float = 0.0

    @property
    def ok(self) -> bool:
        return self.summary.ok

    def to_dict(self) -> Dict[str, Any]:
        return {
            "run_id": self.run_id,
            "from_block": self.from_block,
            "to_block": self.to_block,
            "status": "ok" if self.ok else "mismatch",
            "duration_seconds": round(self.duration_seconds, 3),
            "summary": self.summary.to_dict(),
            "windows": [w.to_dict() for w in self.windows],
        }
