"""
Balance Comparer

Compares the latest balance of a list of accounts on two chains. The
account file is a JSON array of hex addresses.
"""

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

from logrecon.reconciliation.filters import normalize_address

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class BalanceDifference:
    address: str
    balance_a: int
    balance_b: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            "address": self.address,
            "chain_1": str(self.balance_a),
            "chain_2": str(self.balance_b),
        }


@dataclass
class BalanceReport:
    checked: int = 0
    equal: int = 0
    differences: List[BalanceDifference] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.differences

    def to_dict(self) -> Dict[str, Any]:
        return {
            "checked": self.checked,
            "equal": self.equal,
            "different": len(self.differences),
            "differences": [d.to_dict() for d in self.differences],
        }


def load_accounts(path: Union[str, Path]) -> List[str]:
    """
    Load and checksum the addresses in an account file.

    Raises:
        ValueError: If the file is not a JSON array of addresses
    """
    path = Path(path)
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as e:
        raise ValueError(f"Failed to parse account file {path}: {e}") from e

    if not isinstance(data, list) or not all(isinstance(item, str) for item in data):
        raise ValueError(f"Account file {path} must contain a JSON array of addresses")

    return [normalize_address(item) for item in data]


class BalanceComparer:
    """Compares account balances between two chain clients."""

    def __init__(self, client_a, client_b):
        self.client_a = client_a
        self.client_b = client_b

    def compare(self, addresses: List[str], block: Optional[int] = None) -> BalanceReport:
        """
        Compare balances for every address.

        An RPC failure on either chain aborts the comparison.

        Args:
            addresses: Checksummed addresses
            block: Block number to read at; latest when None

        Returns:
            BalanceReport listing differing addresses
        """
        report = BalanceReport()

        for address in addresses:
            balance_a = self.client_a.get_balance(address, block)
            balance_b = self.client_b.get_balance(address, block)
            report.checked += 1

            if balance_a != balance_b:
                report.differences.append(BalanceDifference(address, balance_a, balance_b))
                logger.error(
                    f"Balance not equal for address: {address}, "
                    f"chain_1: {balance_a}, chain_2: {balance_b}"
                )
            else:
                report.equal += 1
                logger.info(f"Balance equal for address: {address}")

        logger.info(
            f"Balance comparison done: checked={report.checked} equal={report.equal} "
            f"different={len(report.differences)}"
        )
        return report
