"""
Secret scope and secret operations.

NOTE: Only import from workspace and config (lower layers).
"""
import logging
from typing import List, Optional

from databricks.sdk.service.workspace import (
    AclItem,
    AzureKeyVaultSecretScopeMetadata,
    ScopeBackendType,
    SecretMetadata,
    SecretScope,
)

from .errors import DatabricksConfigError
from .workspace import ResourceClient, api_call

logger = logging.getLogger(__name__)


class Secrets(ResourceClient):
    """
    Thin wrapper over the Secrets API.

    Secret values are write-only here: list_secrets() returns metadata only.
    """

    @api_call("list_scopes")
    def list_scopes(self) -> List[SecretScope]:
        return list(self._client.secrets.list_scopes())

    @api_call("create_scope")
    def create_scope(
        self,
        scope: str,
        initial_manage_principal: Optional[str] = None,
        backend_type: ScopeBackendType = ScopeBackendType.DATABRICKS,
        azure_resource_id: Optional[str] = None,
        dns_name: Optional[str] = None,
    ) -> None:
        """
        Create a secret scope.

        Azure Key Vault backed scopes require azure_resource_id and dns_name.
        initial_manage_principal may only be "users" (grant MANAGE to all users)
        or None (creator only).
        """
        keyvault = None
        if backend_type == ScopeBackendType.AZURE_KEYVAULT:
            if not azure_resource_id or not dns_name:
                raise DatabricksConfigError(
                    "Azure resource_id and dns_name are required for AZURE_KEYVAULT backend"
                )
            keyvault = AzureKeyVaultSecretScopeMetadata(
                resource_id=azure_resource_id,
                dns_name=dns_name,
            )

        self._client.secrets.create_scope(
            scope=scope,
            initial_manage_principal=initial_manage_principal,
            scope_backend_type=backend_type,
            backend_azure_keyvault=keyvault,
        )
        logger.info(f"Created secret scope '{scope}' ({backend_type.value})")

    @api_call("delete_scope")
    def delete_scope(self, scope: str) -> None:
        """Delete a scope and every secret in it. Cannot be undone."""
        self._client.secrets.delete_scope(scope=scope)
        logger.info(f"Deleted secret scope '{scope}'")

    @api_call("list_secrets")
    def list_secrets(self, scope: str) -> List[SecretMetadata]:
        return list(self._client.secrets.list_secrets(scope=scope))

    @api_call("put_secret")
    def put_secret(self, scope: str, key: str, value: str) -> None:
        self._client.secrets.put_secret(scope=scope, key=key, string_value=value)
        logger.info(f"Stored secret '{key}' in scope '{scope}'")

    @api_call("delete_secret")
    def delete_secret(self, scope: str, key: str) -> None:
        self._client.secrets.delete_secret(scope=scope, key=key)
        logger.info(f"Deleted secret '{key}' from scope '{scope}'")

    @api_call("list_acls")
    def list_acls(self, scope: str) -> List[AclItem]:
        return list(self._client.secrets.list_acls(scope=scope))
