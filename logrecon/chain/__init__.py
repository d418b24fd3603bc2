"""
Chain access for log reconciliation.

- client: web3.py wrapper around one RPC endpoint
- balances: account balance comparison across two chains
"""

from logrecon.chain.client import ChainClient
from logrecon.chain.balances import BalanceComparer, load_accounts

__all__ = [
    "ChainClient",
    "BalanceComparer",
    "load_accounts",
]
