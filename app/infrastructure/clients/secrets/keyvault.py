"""Azure Key Vault secret store adapter."""

from typing import Optional, TYPE_CHECKING

from azure.core.exceptions import HttpResponseError, ResourceNotFoundError
from azure.keyvault.secrets.aio import SecretClient

from infrastructure.clients.secrets.contracts import SecretBundle
from infrastructure.logging import get_module_logger

if TYPE_CHECKING:
    from infrastructure.configuration.integrations import SecretStoreSettings

logger = get_module_logger()


def _is_disabled_error(exc: HttpResponseError) -> bool:
    code = getattr(getattr(exc, "error", None), "code", None) or ""
    return exc.status_code == 403 and (
        code == "SecretDisabled" or "disabled" in str(exc.message).lower()
    )


class KeyVaultSecretStore:
    """Secret store backed by ``azure.keyvault.secrets.aio.SecretClient``.

    Key Vault refuses to return the value of a disabled secret; in that
    case the bundle is built from the version's properties with
    ``value=None``.

    Args:
        client: Async Key Vault secret client
        credential: Credential to close together with the client, if owned
    """

    def __init__(self, client: SecretClient, credential=None):
        self._client = client
        self._credential = credential

    @classmethod
    def from_settings(cls, settings: "SecretStoreSettings") -> "KeyVaultSecretStore":
        from azure.identity.aio import DefaultAzureCredential

        credential = DefaultAzureCredential()
        client = SecretClient(vault_url=settings.KEY_VAULT_URL, credential=credential)
        return cls(client, credential=credential)

    async def get_secret(
        self, name: str, version: Optional[str] = None
    ) -> Optional[str]:
        try:
            secret = await self._client.get_secret(name, version)
        except ResourceNotFoundError:
            return None
        return secret.value

    async def get_secret_with_tags(
        self, name: str, version: Optional[str] = None
    ) -> Optional[SecretBundle]:
        try:
            secret = await self._client.get_secret(name, version)
        except ResourceNotFoundError:
            return None
        except HttpResponseError as exc:
            if not _is_disabled_error(exc):
                raise
            return await self._disabled_bundle(name, version)

        props = secret.properties
        return SecretBundle(
            name=secret.name or name,
            value=secret.value,
            tags=dict(props.tags or {}),
            enabled=props.enabled is not False,
            version=props.version,
        )

    async def _disabled_bundle(
        self, name: str, version: Optional[str]
    ) -> Optional[SecretBundle]:
        versions = [
            props
            async for props in self._client.list_properties_of_secret_versions(name)
        ]
        if version is not None:
            versions = [props for props in versions if props.version == version]
        if not versions:
            return None
        latest = max(versions, key=lambda props: props.updated_on or props.created_on)
        logger.debug(
            "secret_version_disabled", secret_name=name, version=latest.version
        )
        return SecretBundle(
            name=name,
            value=None,
            tags=dict(latest.tags or {}),
            enabled=False,
            version=latest.version,
        )

    async def set_secret(
        self, name: str, value: str, tags: Optional[dict[str, str]] = None
    ) -> str:
        secret = await self._client.set_secret(name, value, tags=tags, enabled=True)
        return secret.properties.version

    async def update_secret_tags(
        self,
        name: str,
        tags: dict[str, str],
        version: Optional[str] = None,
        enabled: Optional[bool] = None,
    ) -> None:
        kwargs = {"tags": tags}
        if enabled is not None:
            kwargs["enabled"] = enabled
        await self._client.update_secret_properties(name, version, **kwargs)

    async def delete_secret(self, name: str) -> bool:
        try:
            await self._client.delete_secret(name)
        except ResourceNotFoundError:
            return False
        return True

    async def purge_deleted_secret(self, name: str) -> None:
        try:
            await self._client.purge_deleted_secret(name)
        except ResourceNotFoundError:
            logger.debug("deleted_secret_not_found", secret_name=name)

    async def close(self) -> None:
        await self._client.close()
        if self._credential is not None:
            await self._credential.close()
