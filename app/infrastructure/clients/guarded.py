"""Policy-bound client wrappers.

Every directory and secret vault call made by the reconciler goes through
the service's ResiliencePolicy (timeout, retry, circuit breaker).
"""

from typing import Optional

from infrastructure.clients.directory.contracts import DirectoryClient, DirectoryUser
from infrastructure.clients.secrets.contracts import SecretBundle, SecretStoreClient
from infrastructure.resilience import ResiliencePolicy


class GuardedDirectoryClient:
    """DirectoryClient that applies a resilience policy to each call."""

    def __init__(self, inner: DirectoryClient, policy: ResiliencePolicy):
        self._inner = inner
        self._policy = policy

    async def get_user(self, user_id: str) -> Optional[DirectoryUser]:
        return await self._policy.execute(
            lambda: self._inner.get_user(user_id), "get_user"
        )

    async def find_user_by_email(self, email: str) -> Optional[DirectoryUser]:
        return await self._policy.execute(
            lambda: self._inner.find_user_by_email(email), "find_user_by_email"
        )

    async def group_exists(self, group_id: str) -> bool:
        return await self._policy.execute(
            lambda: self._inner.group_exists(group_id), "group_exists"
        )

    async def get_user_groups(self, user_id: str) -> list[str]:
        return await self._policy.execute(
            lambda: self._inner.get_user_groups(user_id), "get_user_groups"
        )

    async def get_group_members(self, group_id: str) -> list[str]:
        return await self._policy.execute(
            lambda: self._inner.get_group_members(group_id), "get_group_members"
        )

    async def add_user_to_group(self, user_id: str, group_id: str) -> None:
        await self._policy.execute(
            lambda: self._inner.add_user_to_group(user_id, group_id),
            "add_user_to_group",
        )

    async def remove_user_from_group(self, user_id: str, group_id: str) -> None:
        await self._policy.execute(
            lambda: self._inner.remove_user_from_group(user_id, group_id),
            "remove_user_from_group",
        )

    async def close(self) -> None:
        close = getattr(self._inner, "close", None)
        if close is not None:
            await close()


class GuardedSecretStore:
    """SecretStoreClient that applies a resilience policy to each call."""

    def __init__(self, inner: SecretStoreClient, policy: ResiliencePolicy):
        self._inner = inner
        self._policy = policy

    async def get_secret(
        self, name: str, version: Optional[str] = None
    ) -> Optional[str]:
        return await self._policy.execute(
            lambda: self._inner.get_secret(name, version), "get_secret"
        )

    async def get_secret_with_tags(
        self, name: str, version: Optional[str] = None
    ) -> Optional[SecretBundle]:
        return await self._policy.execute(
            lambda: self._inner.get_secret_with_tags(name, version),
            "get_secret_with_tags",
        )

    async def set_secret(
        self, name: str, value: str, tags: Optional[dict[str, str]] = None
    ) -> str:
        return await self._policy.execute(
            lambda: self._inner.set_secret(name, value, tags), "set_secret"
        )

    async def update_secret_tags(
        self,
        name: str,
        tags: dict[str, str],
        version: Optional[str] = None,
        enabled: Optional[bool] = None,
    ) -> None:
        await self._policy.execute(
            lambda: self._inner.update_secret_tags(name, tags, version, enabled),
            "update_secret_tags",
        )

    async def delete_secret(self, name: str) -> bool:
        return await self._policy.execute(
            lambda: self._inner.delete_secret(name), "delete_secret"
        )

    async def purge_deleted_secret(self, name: str) -> None:
        await self._policy.execute(
            lambda: self._inner.purge_deleted_secret(name), "purge_deleted_secret"
        )

    async def close(self) -> None:
        close = getattr(self._inner, "close", None)
        if close is not None:
            await close()
