"""
Block range windowing.

Log providers cap how many blocks a single eth_getLogs call may scan, so a
requested range is split into consecutive windows of at most max_size
blocks.
"""

import logging
from typing import Iterator

from logrecon.reconciliation.errors import InvalidRangeError
from logrecon.reconciliation.models import Window

logger = logging.getLogger(__name__)

# Maximum block span per eth_getLogs call
MAX_BLOCKS_PER_REQUEST = 300


class BlockWindows:
    """
    Lazy, restartable sequence of windows covering [from_block, to_block].

    Each iteration starts again at from_block. Every window holds
    min(max_size, remaining) blocks.
    """

    def __init__(
        self,
        from_block: int,
        to_block: int,
        max_size: int = MAX_BLOCKS_PER_REQUEST
    ):
        """
        Args:
            from_block: First block (inclusive)
            to_block: Last block (inclusive)
            max_size: Maximum blocks per window

        Raises:
            InvalidRangeError: If from_block > to_block, a bound is negative,
                or max_size < 1
        """
        if from_block < 0 or to_block < 0:
            raise InvalidRangeError(
                f"block numbers must be >= 0 (from={from_block}, to={to_block})"
            )
        if from_block > to_block:
            raise InvalidRangeError(f"from-block ({from_block}) > to-block ({to_block})")
        if max_size < 1:
            raise InvalidRangeError(f"window size must be >= 1, got {max_size}")

        self.from_block = from_block
        self.to_block = to_block
        self.max_size = max_size

    def __iter__(self) -> Iterator[Window]:
        start = self.from_block
        while start <= self.to_block:
            end = min(start + self.max_size - 1, self.to_block)
            yield Window(start, end)
            start = end + 1

    def __len__(self) -> int:
        span = self.to_block - self.from_block + 1
        return -(-span // self.max_size)

    def __repr__(self) -> str:
        return (
            f"BlockWindows({self.from_block}, {self.to_block}, "
            f"max_size={self.max_size})"
        )
