"""
Unit tests for vault_client module.
"""

import pytest
from unittest.mock import MagicMock, patch
from hvac.exceptions import VaultError, InvalidPath

from logrecon.utils.vault_client import DEFAULT_ENDPOINTS_PATH, VaultClient


class TestVaultClient:
    """Test suite for VaultClient class."""

    @pytest.fixture
    def mock_hvac_client(self):
        """Mock hvac.Client for testing."""
        with patch('logrecon.utils.vault_client.hvac.Client') as mock:
            client_instance = MagicMock()
            client_instance.is_authenticated.return_value = True
            mock.return_value = client_instance
            yield mock

    @staticmethod
    def _secret(data):
        return {"data": {"data": data}}

    def test_init_with_parameters(self, mock_hvac_client):
        """Test VaultClient initialization with explicit parameters."""
        client = VaultClient(
            vault_url="http://test-vault:8200",
            vault_token="test-token"
        )

        assert client.vault_url == "http://test-vault:8200"
        assert client.vault_token == "test-token"
        assert client.mount_point == "secret"
        mock_hvac_client.assert_called_once()

    def test_init_with_env_vars(self, mock_hvac_client, monkeypatch):
        """Test VaultClient initialization with environment variables."""
        monkeypatch.setenv("VAULT_ADDR", "http://env-vault:8200")
        monkeypatch.setenv("VAULT_TOKEN", "env-token")

        client = VaultClient()

        assert client.vault_url == "http://env-vault:8200"
        assert client.vault_token == "env-token"

    def test_init_missing_url_raises_error(self, monkeypatch):
        """Test that missing Vault URL raises ValueError."""
        monkeypatch.delenv("VAULT_ADDR", raising=False)
        with pytest.raises(ValueError, match="Vault URL must be provided"):
            VaultClient(vault_token="test-token")

    def test_init_missing_token_raises_error(self, monkeypatch):
        """Test that missing Vault token raises ValueError."""
        monkeypatch.delenv("VAULT_TOKEN", raising=False)
        with pytest.raises(ValueError, match="Vault token must be provided"):
            VaultClient(vault_url="http://test:8200")

    def test_init_authentication_failure(self, mock_hvac_client):
        """Test that authentication failure raises VaultError."""
        mock_hvac_client.return_value.is_authenticated.return_value = False

        with pytest.raises(VaultError, match="Failed to authenticate"):
            VaultClient(vault_url="http://test:8200", vault_token="bad-token")

    def test_get_secret_success(self, mock_hvac_client):
        """Test successful secret retrieval."""
        mock_client = mock_hvac_client.return_value
        mock_client.secrets.kv.v2.read_secret_version.return_value = self._secret(
            {"chain_1": "http://a:8545"}
        )

        client = VaultClient(vault_url="http://test:8200", vault_token="test-token")
        secret = client.get_secret("rpc")

        assert secret == {"chain_1": "http://a:8545"}
        mock_client.secrets.kv.v2.read_secret_version.assert_called_once_with(
            path="rpc",
            mount_point="secret"
        )

    def test_get_secret_not_found(self, mock_hvac_client):
        """Test secret retrieval with invalid path."""
        mock_client = mock_hvac_client.return_value
        mock_client.secrets.kv.v2.read_secret_version.side_effect = InvalidPath("Not found")

        client = VaultClient(vault_url="http://test:8200", vault_token="test-token")

        with pytest.raises(InvalidPath):
            client.get_secret("nonexistent")

    def test_get_secret_empty_response(self, mock_hvac_client):
        """Test secret retrieval with empty response."""
        mock_client = mock_hvac_client.return_value
        mock_client.secrets.kv.v2.read_secret_version.return_value = {}

        client = VaultClient(vault_url="http://test:8200", vault_token="test-token")

        with pytest.raises(InvalidPath, match="No data found"):
            client.get_secret("empty-secret")

    def test_get_secret_other_failure(self, mock_hvac_client):
        mock_client = mock_hvac_client.return_value
        mock_client.secrets.kv.v2.read_secret_version.side_effect = RuntimeError("boom")

        client = VaultClient(vault_url="http://test:8200", vault_token="test-token")

        with pytest.raises(VaultError, match="Secret retrieval failed"):
            client.get_secret("rpc")

    def test_get_rpc_endpoints(self, mock_hvac_client):
        """Test retrieving both chain endpoints."""
        mock_client = mock_hvac_client.return_value
        mock_client.secrets.kv.v2.read_secret_version.return_value = self._secret({
            "chain_1": "https://mainnet.example/key-a",
            "chain_2": "https://mirror.example/key-b",
        })

        client = VaultClient(vault_url="http://test:8200", vault_token="test-token")

        assert client.get_rpc_endpoints() == (
            "https://mainnet.example/key-a",
            "https://mirror.example/key-b",
        )
        mock_client.secrets.kv.v2.read_secret_version.assert_called_once_with(
            path=DEFAULT_ENDPOINTS_PATH,
            mount_point="secret"
        )

    def test_get_rpc_endpoints_missing_key(self, mock_hvac_client):
        """Test that a secret without both endpoints is rejected."""
        mock_client = mock_hvac_client.return_value
        mock_client.secrets.kv.v2.read_secret_version.return_value = self._secret(
            {"chain_1": "https://mainnet.example"}
        )

        client = VaultClient(vault_url="http://test:8200", vault_token="test-token")

        with pytest.raises(ValueError, match="missing endpoint keys: chain_2"):
            client.get_rpc_endpoints("custom/path")

    def test_health_check_success(self, mock_hvac_client):
        """Test successful health check."""
        mock_client = mock_hvac_client.return_value
        mock_client.sys.read_health_status.return_value = {"sealed": False}

        client = VaultClient(vault_url="http://test:8200", vault_token="test-token")
        status = client.health_check()

        assert bool(status) is True
        assert status.authenticated is True
        assert status.error is None

    def test_health_check_not_authenticated(self, mock_hvac_client):
        """Test health check with failed authentication."""
        client = VaultClient(vault_url="http://test:8200", vault_token="test-token")
        mock_hvac_client.return_value.is_authenticated.return_value = False

        status = client.health_check()

        assert bool(status) is False
        assert status.error == "Not authenticated"

    def test_health_check_sealed(self, mock_hvac_client):
        """Test health check with sealed Vault."""
        mock_client = mock_hvac_client.return_value
        mock_client.sys.read_health_status.return_value = {"sealed": True}

        client = VaultClient(vault_url="http://test:8200", vault_token="test-token")
        status = client.health_check()

        assert bool(status) is False
        assert status.sealed is True

    def test_context_manager(self, mock_hvac_client):
        """Test VaultClient as context manager."""
        with VaultClient(vault_url="http://test:8200", vault_token="test-token") as client:
            assert client.client is not None

        assert client.client is None
