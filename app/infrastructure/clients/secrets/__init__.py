"""Secret store client contract and Azure Key Vault adapter."""

from infrastructure.clients.secrets.contracts import (
    SecretBundle,
    SecretReference,
    SecretStoreClient,
    parse_secret_reference,
    resolve_secret_reference,
    tenant_secret_name,
)
from infrastructure.clients.secrets.keyvault import KeyVaultSecretStore

__all__ = [
    "SecretBundle",
    "SecretReference",
    "SecretStoreClient",
    "parse_secret_reference",
    "resolve_secret_reference",
    "tenant_secret_name",
    "KeyVaultSecretStore",
]
