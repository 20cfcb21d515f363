"""External service clients: directory and secret vault."""

from infrastructure.clients.directory import (
    DirectoryClient,
    DirectoryUser,
    GraphDirectoryClient,
)
from infrastructure.clients.guarded import GuardedDirectoryClient, GuardedSecretStore
from infrastructure.clients.secrets import (
    KeyVaultSecretStore,
    SecretBundle,
    SecretReference,
    SecretStoreClient,
    parse_secret_reference,
    resolve_secret_reference,
    tenant_secret_name,
)

__all__ = [
    "DirectoryClient",
    "DirectoryUser",
    "GraphDirectoryClient",
    "GuardedDirectoryClient",
    "GuardedSecretStore",
    "KeyVaultSecretStore",
    "SecretBundle",
    "SecretReference",
    "SecretStoreClient",
    "parse_secret_reference",
    "resolve_secret_reference",
    "tenant_secret_name",
]
