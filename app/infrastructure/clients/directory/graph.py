"""Microsoft Graph directory adapter."""

import time
from typing import Any, AsyncIterator, Optional, TYPE_CHECKING

import httpx
from azure.core.credentials_async import AsyncTokenCredential

from infrastructure.clients.directory.contracts import DirectoryUser
from infrastructure.logging import get_module_logger

if TYPE_CHECKING:
    from infrastructure.configuration.integrations import DirectorySettings

logger = get_module_logger()

GROUP_ODATA_TYPE = "#microsoft.graph.group"
USER_SELECT = "id,mail,userPrincipalName,accountEnabled"
# Refresh the bearer token this many seconds before it expires
TOKEN_REFRESH_MARGIN_SECONDS = 120


class GraphDirectoryClient:
    """Directory client backed by the Microsoft Graph REST API.

    Args:
        credential: Async Azure credential used to obtain bearer tokens
        base_url: Graph API base URL
        scope: Token scope
        http_client: Optional pre-built httpx.AsyncClient (tests pass one
            with a MockTransport)
        timeout_seconds: Per-request HTTP timeout

    Example:
        client = GraphDirectoryClient.from_settings(settings.directory)
        if await client.group_exists(group_id):
            ...
        await client.close()
    """

    def __init__(
        self,
        credential: AsyncTokenCredential,
        base_url: str = "https://graph.microsoft.com/v1.0",
        scope: str = "https://graph.microsoft.com/.default",
        http_client: Optional[httpx.AsyncClient] = None,
        timeout_seconds: float = 30.0,
    ):
        self._credential = credential
        self._base_url = base_url.rstrip("/")
        self._scope = scope
        self._owns_http_client = http_client is None
        self._http = http_client or httpx.AsyncClient(timeout=timeout_seconds)
        self._token: Optional[str] = None
        self._token_expires_on = 0.0

    @classmethod
    def from_settings(cls, settings: "DirectorySettings") -> "GraphDirectoryClient":
        from azure.identity.aio import ClientSecretCredential

        credential = ClientSecretCredential(
            tenant_id=settings.GRAPH_TENANT_ID,
            client_id=settings.GRAPH_CLIENT_ID,
            client_secret=settings.GRAPH_CLIENT_SECRET or "",
        )
        return cls(
            credential=credential,
            base_url=settings.GRAPH_BASE_URL,
            scope=settings.GRAPH_SCOPE,
        )

    async def _auth_headers(self) -> dict[str, str]:
        if self._token is None or time.time() >= (
            self._token_expires_on - TOKEN_REFRESH_MARGIN_SECONDS
        ):
            access_token = await self._credential.get_token(self._scope)
            self._token = access_token.token
            self._token_expires_on = float(access_token.expires_on)
        return {"Authorization": f"Bearer {self._token}"}

    async def _request(
        self,
        method: str,
        url: str,
        json: Optional[dict[str, Any]] = None,
        params: Optional[dict[str, str]] = None,
    ) -> httpx.Response:
        if not url.startswith("http"):
            url = f"{self._base_url}{url}"
        headers = await self._auth_headers()
        return await self._http.request(
            method, url, headers=headers, json=json, params=params
        )

    async def _iter_pages(self, url: str) -> AsyncIterator[dict[str, Any]]:
        next_url: Optional[str] = url
        while next_url:
            response = await self._request("GET", next_url)
            response.raise_for_status()
            payload = response.json()
            for item in payload.get("value", []):
                yield item
            next_url = payload.get("@odata.nextLink")

    async def get_user(self, user_id: str) -> Optional[DirectoryUser]:
        response = await self._request(
            "GET", f"/users/{user_id}", params={"$select": USER_SELECT}
        )
        if response.status_code == 404:
            return None
        response.raise_for_status()
        return _to_directory_user(response.json())

    async def find_user_by_email(self, email: str) -> Optional[DirectoryUser]:
        """Look a user up by mail or user principal name."""
        quoted = email.replace("'", "''")
        response = await self._request(
            "GET",
            "/users",
            params={
                "$filter": f"mail eq '{quoted}' or userPrincipalName eq '{quoted}'",
                "$select": USER_SELECT,
            },
        )
        response.raise_for_status()
        matches = response.json().get("value", [])
        return _to_directory_user(matches[0]) if matches else None

    async def group_exists(self, group_id: str) -> bool:
        response = await self._request("GET", f"/groups/{group_id}?$select=id")
        if response.status_code == 404:
            return False
        response.raise_for_status()
        return True

    async def get_user_groups(self, user_id: str) -> list[str]:
        groups = []
        async for item in self._iter_pages(f"/users/{user_id}/memberOf?$select=id"):
            if item.get("@odata.type", GROUP_ODATA_TYPE) == GROUP_ODATA_TYPE:
                groups.append(item["id"])
        return groups

    async def get_group_members(self, group_id: str) -> list[str]:
        return [
            item["id"]
            async for item in self._iter_pages(f"/groups/{group_id}/members?$select=id")
        ]

    async def add_user_to_group(self, user_id: str, group_id: str) -> None:
        response = await self._request(
            "POST",
            f"/groups/{group_id}/members/$ref",
            json={"@odata.id": f"{self._base_url}/directoryObjects/{user_id}"},
        )
        if response.status_code == 400 and "already exist" in response.text:
            logger.debug(
                "directory_member_already_present", user_id=user_id, group_id=group_id
            )
            return
        response.raise_for_status()

    async def remove_user_from_group(self, user_id: str, group_id: str) -> None:
        response = await self._request(
            "DELETE", f"/groups/{group_id}/members/{user_id}/$ref"
        )
        if response.status_code == 404:
            logger.debug(
                "directory_member_already_absent", user_id=user_id, group_id=group_id
            )
            return
        response.raise_for_status()

    async def close(self) -> None:
        if self._owns_http_client:
            await self._http.aclose()
        close = getattr(self._credential, "close", None)
        if close is not None:
            await close()


def _to_directory_user(item: dict[str, Any]) -> DirectoryUser:
    return DirectoryUser(
        id=item["id"],
        mail=item.get("mail"),
        user_principal_name=item.get("userPrincipalName"),
        account_enabled=item.get("accountEnabled", True),
    )
