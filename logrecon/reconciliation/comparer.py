"""
Digest Comparer for Chain Log Reconciliation

Decides whether two log sets are equal by hashing their canonical keys.
The per-element scan in LogDiffer only runs once the digests disagree, so
the equal path costs one canonicalization and one hash per side.
"""

import hashlib
import logging
from typing import List, Optional, Sequence

from logrecon.reconciliation.canonical import LogCanonicalizer
from logrecon.reconciliation.differ import LogDiffer
from logrecon.reconciliation.models import ComparisonResult, LogEvent

logger = logging.getLogger(__name__)

KEY_SEPARATOR = "\n"


class LogComparer:
    """
    Compares log sets from two chains.

    With ignore_order the canonical keys are sorted before hashing, so a
    permutation of the same logs compares equal. Without it the fetch order
    of both sources must match exactly.
    """

    def __init__(
        self,
        canonicalizer: Optional[LogCanonicalizer] = None,
        differ: Optional[LogDiffer] = None
    ):
        """Initialize the log comparer."""
        self.canonicalizer = canonicalizer or LogCanonicalizer()
        self.differ = differ or LogDiffer()
        logger.debug("Initialized LogComparer")

    def canonical_keys(self, logs: Sequence[LogEvent], ignore_order: bool = True) -> List[str]:
        """
        Canonicalize logs, sorting the keys when order is ignored.

        Args:
            logs: Logs as returned by a source
            ignore_order: Sort keys lexicographically

        Returns:
            List of canonical keys
        """
        keys = self.canonicalizer.canonicalize_all(logs)
        if ignore_order:
            keys.sort()
        return keys

    @staticmethod
    def digest(keys: Sequence[str]) -> str:
        """SHA-256 hex digest of the newline-joined keys."""
        return hashlib.sha256(KEY_SEPARATOR.join(keys).encode("utf-8")).hexdigest()

    def compare_logs(
        self,
        logs_a: Sequence[LogEvent],
        logs_b: Sequence[LogEvent],
        ignore_order: bool = True
    ) -> ComparisonResult:
        """
        Compare two log sets.

        Args:
            logs_a: Logs from chain 1
            logs_b: Logs from chain 2
            ignore_order: Whether to ignore ordering differences

        Returns:
            ComparisonResult; discrepancy and only_in_* are filled on mismatch
        """
        if not ignore_order:
            self.check_source_order(logs_a, "chain_1")
            self.check_source_order(logs_b, "chain_2")

        keys_a = self.canonical_keys(logs_a, ignore_order)
        keys_b = self.canonical_keys(logs_b, ignore_order)

        digest_a = self.digest(keys_a)
        digest_b = self.digest(keys_b)

        if digest_a == digest_b:
            return ComparisonResult(
                equal=True,
                digest_a=digest_a,
                digest_b=digest_b,
                count_a=len(keys_a),
                count_b=len(keys_b),
            )

        discrepancy = self.differ.find_first_discrepancy(keys_a, keys_b)
        missing = self.differ.find_missing(keys_a, keys_b)

        return ComparisonResult(
            equal=False,
            digest_a=digest_a,
            digest_b=digest_b,
            count_a=len(keys_a),
            count_b=len(keys_b),
            discrepancy=discrepancy,
            only_in_a=tuple(missing["only_in_a"]),
            only_in_b=tuple(missing["only_in_b"]),
        )

    def check_source_order(self, logs: Sequence[LogEvent], source: str) -> bool:
        """
        Check that a source returned logs in (block, log index) order.

        Order-sensitive comparison assumes providers return logs ascending;
        an out-of-order source is reported but still compared as returned.

        Returns:
            True if ordered
        """
        for index in range(1, len(logs)):
            prev, curr = logs[index - 1], logs[index]
            if (curr.block_number, curr.log_index) < (prev.block_number, prev.log_index):
                logger.warning(
                    f"{source} returned logs out of order at index {index}: "
                    f"({prev.block_number}, {prev.log_index}) before "
                    f"({curr.block_number}, {curr.log_index})"
                )
                return False
        return True
