"""
Log Canonicalizer for Chain Log Reconciliation

Turns a LogEvent into a deterministic string key covering every field that
takes part in the log's identity or payload. Two logs are equal iff their
keys are equal.

Key layout:
    blockNumber|blockHash|txIndex|txHash|logIndex|address|dataHex|topic,topic
"""

import logging
from typing import Iterable, List

from logrecon.reconciliation.models import LogEvent

logger = logging.getLogger(__name__)

FIELD_SEPARATOR = "|"
TOPIC_SEPARATOR = ","
HASH_HEX_DIGITS = 64


class LogCanonicalizer:
    """
    Encodes logs into canonical keys.

    Hashes are rendered as fixed-width 0x-prefixed hex, the address in
    EIP-55 form and the payload as bare lowercase hex, so no encoded field
    can contain either separator.
    """

    def canonicalize(self, event: LogEvent) -> str:
        """
        Build the canonical key for one log.

        Args:
            event: Log to encode

        Returns:
            Canonical key string
        """
        topics = TOPIC_SEPARATOR.join(self._hash_hex(t) for t in event.topics)
        return FIELD_SEPARATOR.join((
            str(event.block_number),
            self._hash_hex(event.block_hash),
            str(event.transaction_index),
            self._hash_hex(event.transaction_hash),
            str(event.log_index),
            event.address,
            event.data.hex(),
            topics,
        ))

    def canonicalize_all(self, events: Iterable[LogEvent]) -> List[str]:
        """Canonicalize a sequence of logs, keeping their order."""
        return [self.canonicalize(event) for event in events]

    @staticmethod
    def _hash_hex(value: bytes) -> str:
        # Left-pad short values the way 32-byte hashes are padded on chain
        return "0x" + value.hex().rjust(HASH_HEX_DIGITS, "0")
