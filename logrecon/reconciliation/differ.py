"""
Log Differ for Chain Log Reconciliation

Localizes where two canonical key sequences diverge. Only called after a
digest mismatch has shown the sequences differ.
"""

import logging
from typing import Dict, List, Optional, Sequence

from logrecon.reconciliation.models import Discrepancy

logger = logging.getLogger(__name__)


class LogDiffer:
    """
    Finds discrepancies between two canonical key sequences.

    Identifies:
    - The first index where both sides hold a different key
    - A length difference when the common prefix is identical
    """

    def find_first_discrepancy(
        self,
        keys_a: Sequence[str],
        keys_b: Sequence[str]
    ) -> Optional[Discrepancy]:
        """
        Scan both sequences position by position up to the shorter length.

        Args:
            keys_a: Canonical keys from chain 1
            keys_b: Canonical keys from chain 2

        Returns:
            "value" discrepancy at the first differing index, else a
            "length" discrepancy if the lengths differ, else None
        """
        common = min(len(keys_a), len(keys_b))

        for index in range(common):
            if keys_a[index] != keys_b[index]:
                logger.debug(f"First mismatch at index {index}")
                return Discrepancy(
                    kind="value",
                    index=index,
                    value_a=keys_a[index],
                    value_b=keys_b[index],
                    count_a=len(keys_a),
                    count_b=len(keys_b),
                )

        if len(keys_a) != len(keys_b):
            logger.debug(f"Common prefix identical, counts differ: {len(keys_a)} vs {len(keys_b)}")
            return Discrepancy(
                kind="length",
                index=common,
                value_a=keys_a[common] if len(keys_a) > common else None,
                value_b=keys_b[common] if len(keys_b) > common else None,
                count_a=len(keys_a),
                count_b=len(keys_b),
            )

        return None

    def find_missing(
        self,
        keys_a: Sequence[str],
        keys_b: Sequence[str]
    ) -> Dict[str, List[str]]:
        """
        Split keys into those present on only one side.

        Duplicates are counted, so a key logged twice on chain 1 and once
        on chain 2 appears once under only_in_a.

        Args:
            keys_a: Canonical keys from chain 1
            keys_b: Canonical keys from chain 2

        Returns:
            Dictionary with sorted only_in_a and only_in_b lists
        """
        remaining: Dict[str, int] = {}
        for key in keys_b:
            remaining[key] = remaining.get(key, 0) + 1

        only_in_a = []
        for key in keys_a:
            if remaining.get(key, 0) > 0:
                remaining[key] -= 1
            else:
                only_in_a.append(key)

        only_in_b = []
        for key, count in remaining.items():
            only_in_b.extend([key] * count)

        return {
            "only_in_a": sorted(only_in_a),
            "only_in_b": sorted(only_in_b),
        }
