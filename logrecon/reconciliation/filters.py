"""
Log filter shared by both sources.

A single LogFilter builds the eth_getLogs parameters for every window on
both chains, so the two queries can never drift apart.
"""

import logging
import re
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Sequence, Tuple

from web3 import Web3

from logrecon.reconciliation.errors import InvalidRangeError
from logrecon.reconciliation.models import Window

logger = logging.getLogger(__name__)

_TOPIC_HASH = re.compile(r"^0[xX][0-9a-fA-F]{64}$")


def is_topic_hash(value: str) -> bool:
    """Return True for 0x followed by exactly 64 hex digits."""
    return bool(_TOPIC_HASH.match(value))


def parse_topics(raw: Optional[Sequence[str]]) -> Tuple[Optional[Tuple[str, ...]], ...]:
    """
    Parse per-position topic allow-lists.

    Each item of raw is one topic position holding a comma-separated
    OR-list of hashes. An empty item leaves that position unconstrained.

    Args:
        raw: e.g. ["0xddf2...,0x8c5b...", "", "0x0000..."]

    Returns:
        Tuple with one entry per position: None (wildcard) or a tuple of
        lowercase topic hashes

    Raises:
        InvalidRangeError: If any entry is not a 32-byte hex hash
    """
    if not raw:
        return ()

    positions: List[Optional[Tuple[str, ...]]] = []
    for position in raw:
        position = position.strip()
        if not position:
            positions.append(None)
            continue

        values = []
        for part in position.split(","):
            part = part.strip()
            if not part:
                continue
            if not is_topic_hash(part):
                raise InvalidRangeError(f"not a topic hash: {part}")
            values.append("0x" + part[2:].lower())
        positions.append(tuple(values) if values else None)

    return tuple(positions)


def normalize_address(address: Optional[str]) -> Optional[str]:
    """
    Checksum a contract address, treating blank input as no address.

    Raises:
        InvalidRangeError: If address is not a 20-byte hex address
    """
    if address is None or not address.strip():
        return None
    address = address.strip()
    if not Web3.is_address(address):
        raise InvalidRangeError(f"not a contract address: {address}")
    return Web3.to_checksum_address(address)


@dataclass(frozen=True)
class LogFilter:
    """Optional contract address plus per-position topic OR-sets."""

    address: Optional[str] = None
    topics: Tuple[Optional[Tuple[str, ...]], ...] = ()

    @classmethod
    def build(
        cls,
        address: Optional[str] = None,
        topics: Optional[Sequence[str]] = None
    ) -> "LogFilter":
        """Validate raw CLI-style inputs into a LogFilter."""
        log_filter = cls(address=normalize_address(address), topics=parse_topics(topics))
        logger.debug(f"Built log filter: address={log_filter.address}, topics={log_filter.topics}")
        return log_filter

    def to_params(self, window: Window) -> Dict[str, Any]:
        """
        Build eth_getLogs parameters for a window.

        Args:
            window: Block range to query

        Returns:
            Filter params dict accepted by web3's eth.get_logs
        """
        params: Dict[str, Any] = {
            "fromBlock": window.start,
            "toBlock": window.end,
        }
        if self.address is not None:
            params["address"] = self.address
        if self.topics:
            params["topics"] = [
                list(position) if position is not None else None
                for position in self.topics
            ]
        return params
