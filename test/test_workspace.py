"""Tests for workspace module."""

from unittest.mock import Mock, patch

import pytest
from databricks.sdk.errors import PermissionDenied

from databricks_client.config import AuthConfig
from databricks_client.errors import DatabricksApiError, DatabricksConfigError
from databricks_client.workspace import (
    ResourceClient,
    api_call,
    clear_workspace_clients,
    get_workspace_client,
)


class TestGetWorkspaceClient:
    """Test cases for get_workspace_client function."""

    def test_client_is_cached(self, auth_config):
        """Test that one client is created per (host, token)."""
        with patch("databricks_client.workspace.WorkspaceClient") as mock_client:
            mock_client.return_value = Mock()

            client1 = get_workspace_client(auth_config)
            client2 = get_workspace_client(auth_config)

            assert mock_client.call_count == 1
            assert client1 is client2

    def test_different_tokens_get_different_clients(self, auth_config):
        with patch("databricks_client.workspace.WorkspaceClient") as mock_client:
            mock_client.side_effect = lambda **kwargs: Mock()

            client1 = get_workspace_client(auth_config)
            client2 = get_workspace_client(AuthConfig(host=auth_config.host, token="other"))

            assert mock_client.call_count == 2
            assert client1 is not client2

    def test_clear_workspace_clients(self, auth_config):
        with patch("databricks_client.workspace.WorkspaceClient") as mock_client:
            mock_client.side_effect = lambda **kwargs: Mock()

            client1 = get_workspace_client(auth_config)
            clear_workspace_clients()
            client2 = get_workspace_client(auth_config)

            assert client1 is not client2

    def test_invalid_auth_rejected(self):
        with patch("databricks_client.workspace.WorkspaceClient") as mock_client:
            with pytest.raises(DatabricksConfigError):
                get_workspace_client(AuthConfig(host="https://x", token=""))
            mock_client.assert_not_called()


class _Probe(ResourceClient):
    @api_call("probe")
    def probe(self, error=None):
        if error is not None:
            raise error
        return "ok"


class TestApiCall:
    """Test cases for the api_call decorator."""

    def test_passes_results_through(self, workspace_client, auth_config):
        assert _Probe(auth_config).probe() == "ok"

    def test_sdk_error_is_converted_and_redacted(self, workspace_client, auth_config):
        error = PermissionDenied(
            f"User lacks access (token {auth_config.token})", error_code="PERMISSION_DENIED"
        )

        with pytest.raises(DatabricksApiError) as exc_info:
            _Probe(auth_config).probe(error)

        assert str(exc_info.value).startswith("probe failed:")
        assert auth_config.token not in str(exc_info.value)
        assert exc_info.value.error_code == "PERMISSION_DENIED"
        assert exc_info.value.__cause__ is error

    def test_other_errors_propagate(self, workspace_client, auth_config):
        with pytest.raises(KeyError):
            _Probe(auth_config).probe(KeyError("boom"))

    def test_auth_config_exposed(self, workspace_client, auth_config):
        assert _Probe(auth_config).auth_config is auth_config
