"""
Chain Client for Log Reconciliation

Thin web3.py wrapper around one JSON-RPC endpoint. Provides the head block,
chain id, windowed eth_getLogs and balance lookups used by the
reconciliation driver and the balance comparer.
"""

import logging
import os
from typing import List, Optional

from web3 import Web3

from logrecon.reconciliation.errors import SourceConnectionError
from logrecon.reconciliation.filters import LogFilter
from logrecon.reconciliation.models import LogEvent, Window

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT_SECONDS = 30.0


def redact_endpoint(endpoint: str) -> str:
    """Hide the path of an endpoint URL, where providers put API keys."""
    if "://" not in endpoint:
        return endpoint
    scheme, rest = endpoint.split("://", 1)
    host = rest.split("/", 1)[0]
    suffix = "/***" if "/" in rest.rstrip("/") else ""
    return f"{scheme}://{host}{suffix}"


class ChainClient:
    """
    Client for one chain endpoint.

    Accepts http(s) URLs and IPC socket paths. The connection is checked on
    construction.
    """

    def __init__(
        self,
        name: str,
        endpoint: str,
        timeout: float = DEFAULT_TIMEOUT_SECONDS
    ):
        """
        Initialize chain client.

        Args:
            name: Label used in logs and errors (e.g. "chain_1")
            endpoint: RPC URL or IPC path
            timeout: Per-request timeout in seconds

        Raises:
            SourceConnectionError: If the endpoint is unsupported or unreachable
        """
        self.name = name
        self.endpoint = endpoint
        self.timeout = timeout

        if not endpoint:
            raise SourceConnectionError(name, "endpoint is required")

        try:
            self.w3 = Web3(self._make_provider(endpoint, timeout))
            connected = self.w3.is_connected()
        except SourceConnectionError:
            raise
        except Exception as e:
            logger.error(f"Failed to initialize {name} client: {e}")
            raise SourceConnectionError(name, f"dial {redact_endpoint(endpoint)}: {e}") from e

        if not connected:
            raise SourceConnectionError(name, f"failed to connect to {redact_endpoint(endpoint)}")

        logger.info(f"Connected {name} to {redact_endpoint(endpoint)}")

    def _make_provider(self, endpoint: str, timeout: float):
        if endpoint.startswith(("http://", "https://")):
            return Web3.HTTPProvider(endpoint, request_kwargs={"timeout": timeout})
        if endpoint.endswith(".ipc") or os.path.exists(endpoint):
            return Web3.IPCProvider(endpoint, timeout=timeout)
        raise SourceConnectionError(self.name, f"unsupported endpoint: {redact_endpoint(endpoint)}")

    def chain_id(self) -> int:
        """
        Get the endpoint's chain id.

        Raises:
            SourceConnectionError: If the call fails
        """
        try:
            return int(self.w3.eth.chain_id)
        except Exception as e:
            logger.error(f"Failed to read chain id from {self.name}: {e}")
            raise SourceConnectionError(self.name, f"chain id: {e}") from e

    def latest_block(self) -> int:
        """
        Get the endpoint's latest block number.

        Raises:
            SourceConnectionError: If the call fails
        """
        try:
            return int(self.w3.eth.block_number)
        except Exception as e:
            logger.error(f"Failed to read latest block from {self.name}: {e}")
            raise SourceConnectionError(self.name, f"latest block: {e}") from e

    def get_logs(self, log_filter: LogFilter, window: Window) -> List[LogEvent]:
        """
        Fetch logs for one window.

        Provider errors propagate unchanged; the fetcher wraps them.

        Args:
            log_filter: Filter shared by both chains
            window: Block range to query

        Returns:
            Logs in the order the provider returned them
        """
        params = log_filter.to_params(window)
        logger.debug(f"{self.name} eth_getLogs {params}")
        return [LogEvent.from_rpc(entry) for entry in self.w3.eth.get_logs(params)]

    def get_balance(self, address: str, block: Optional[int] = None) -> int:
        """
        Get an account balance in wei.

        Args:
            address: Checksummed account address
            block: Block number, latest when None

        Raises:
            SourceConnectionError: If the call fails
        """
        block_identifier = "latest" if block is None else block
        try:
            return int(self.w3.eth.get_balance(address, block_identifier))
        except Exception as e:
            logger.error(f"Failed to get balance of {address} from {self.name}: {e}")
            raise SourceConnectionError(self.name, f"balance of {address}: {e}") from e

    def close(self) -> None:
        """Release the client."""
        self.w3 = None
        logger.debug(f"{self.name} client closed")

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
