"""Directory client contract."""

from dataclasses import dataclass
from typing import Optional, Protocol


@dataclass(frozen=True)
class DirectoryUser:
    """A directory identity as the reconciler sees it."""

    id: str
    mail: Optional[str] = None
    user_principal_name: Optional[str] = None
    account_enabled: bool = True


class DirectoryClient(Protocol):
    """Capabilities the reconciler needs from the identity directory.

    Ids are directory object ids. Membership writes are idempotent: adding
    an existing member or removing an absent one is a no-op. User reads
    return None for an identity that does not exist.
    """

    async def get_user(self, user_id: str) -> Optional[DirectoryUser]: ...

    async def find_user_by_email(self, email: str) -> Optional[DirectoryUser]: ...

    async def group_exists(self, group_id: str) -> bool: ...

    async def get_user_groups(self, user_id: str) -> list[str]: ...

    async def get_group_members(self, group_id: str) -> list[str]: ...

    async def add_user_to_group(self, user_id: str, group_id: str) -> None: ...

    async def remove_user_from_group(self, user_id: str, group_id: str) -> None: ...
