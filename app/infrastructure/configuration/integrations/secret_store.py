"""Secret vault (Azure Key Vault) integration settings."""

from pydantic import Field

from infrastructure.configuration.base import IntegrationSettings


class SecretStoreSettings(IntegrationSettings):
    """Secret vault configuration.

    Credentials are resolved by ``DefaultAzureCredential`` so the usual
    AZURE_* environment variables or a managed identity apply.

    Environment Variables:
        KEY_VAULT_URL: Vault URL (e.g. https://my-vault.vault.azure.net)
    """

    KEY_VAULT_URL: str = Field(default="", alias="KEY_VAULT_URL")
