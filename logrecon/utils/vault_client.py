"""
Vault Client Utility for Chain Log Reconciliation

Reads RPC endpoint URLs from HashiCorp Vault. Provider URLs usually embed
API keys, so they are kept out of command lines and shell history.
"""

import os
from typing import Dict, Any, Optional, Tuple
from dataclasses import dataclass
import hvac
from hvac.exceptions import VaultError, InvalidPath
import logging

logger = logging.getLogger(__name__)

DEFAULT_ENDPOINTS_PATH = "logrecon/rpc-endpoints"


@dataclass
class HealthStatus:
    """
    Structured health status for Vault client.

    Attributes:
        healthy: Overall health status (True if healthy)
        authenticated: Whether client is authenticated
        sealed: Whether Vault is sealed
        error: Error message if health check failed
    """

    healthy: bool
    authenticated: bool
    sealed: bool
    error: Optional[str] = None

    def __bool__(self) -> bool:
        return self.healthy


class VaultClient:
    """Client for reading reconciliation secrets from a KV v2 engine."""

    def __init__(
        self,
        vault_url: Optional[str] = None,
        vault_token: Optional[str] = None,
        verify_ssl: bool = True,
        mount_point: str = "secret"
    ):
        """
        Initialize Vault client.

        Args:
            vault_url: Vault server URL (defaults to VAULT_ADDR env var)
            vault_token: Vault authentication token (defaults to VAULT_TOKEN env var)
            verify_ssl: Whether to verify SSL certificates
            mount_point: KV secrets engine mount point

        Raises:
            ValueError: If required parameters are missing
            VaultError: If connection to Vault fails
        """
        self.vault_url = vault_url or os.getenv("VAULT_ADDR")
        self.vault_token = vault_token or os.getenv("VAULT_TOKEN")
        self.mount_point = mount_point

        if not self.vault_url:
            raise ValueError("Vault URL must be provided via parameter or VAULT_ADDR environment variable")

        if not self.vault_token:
            raise ValueError("Vault token must be provided via parameter or VAULT_TOKEN environment variable")

        try:
            self.client = hvac.Client(
                url=self.vault_url,
                token=self.vault_token,
                verify=verify_ssl
            )

            if not self.client.is_authenticated():
                raise VaultError("Failed to authenticate with Vault")

            logger.info(f"Connected to Vault at {self.vault_url}")

        except Exception as e:
            logger.error(f"Failed to initialize Vault client: {e}")
            raise VaultError(f"Vault initialization failed: {e}")

    def get_secret(self, path: str) -> Dict[str, Any]:
        """
        Retrieve a secret from Vault.

        Args:
            path: Secret path relative to the mount point

        Returns:
            Dictionary containing secret data

        Raises:
            InvalidPath: If secret path does not exist
            VaultError: If retrieval fails
        """
        try:
            logger.debug(f"Retrieving secret from path: {self.mount_point}/data/{path}")
            response = self.client.secrets.kv.v2.read_secret_version(
                path=path,
                mount_point=self.mount_point
            )

            if not response or "data" not in response:
                raise InvalidPath(f"No data found at path: {path}")

            return response["data"].get("data", {})

        except InvalidPath:
            logger.error(f"Secret not found at path: {path}")
            raise
        except Exception as e:
            logger.error(f"Failed to retrieve secret from {path}: {e}")
            raise VaultError(f"Secret retrieval failed: {e}")

    def get_rpc_endpoints(self, path: str = DEFAULT_ENDPOINTS_PATH) -> Tuple[str, str]:
        """
        Retrieve the two chain endpoints.

        The secret must hold chain_1 and chain_2 keys.

        Args:
            path: Secret path

        Returns:
            (chain_1 endpoint, chain_2 endpoint)

        Raises:
            ValueError: If either key is missing or empty
        """
        secret = self.get_secret(path)

        missing = [key for key in ("chain_1", "chain_2") if not secret.get(key)]
        if missing:
            raise ValueError(f"Secret {path} is missing endpoint keys: {', '.join(missing)}")

        logger.info(f"Retrieved RPC endpoints from {path}")
        return secret["chain_1"], secret["chain_2"]

    def health_check(self) -> HealthStatus:
        """
        Check if Vault is accessible and authenticated.

        Returns:
            HealthStatus; truthy when healthy
        """
        try:
            if not self.client.is_authenticated():
                logger.warning("Vault authentication check failed")
                return HealthStatus(
                    healthy=False,
                    authenticated=False,
                    sealed=True,
                    error="Not authenticated"
                )

            health = self.client.sys.read_health_status()
            is_sealed = health.get("sealed", True)

            if is_sealed:
                logger.warning("Vault is sealed")

            return HealthStatus(
                healthy=not is_sealed,
                authenticated=True,
                sealed=is_sealed,
                error="Vault is sealed" if is_sealed else None
            )

        except Exception as e:
            logger.error(f"Vault health check failed: {e}")
            return HealthStatus(
                healthy=False,
                authenticated=False,
                sealed=True,
                error=str(e)
            )

    def close(self):
        """Close the Vault client connection."""
        self.client = None
        logger.debug("Vault client connection closed")

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
