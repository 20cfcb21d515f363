from typing import Dict, Iterable, List, Optional, Set

from infrastructure.clients.directory import DirectoryUser


class FakeDirectoryClient:
    """In-memory directory.

    ``groups`` maps group id to member ids. The user-to-groups read is
    derived from it, except that ``lagging`` memberships are hidden from
    the first N user-to-groups reads, which models a directory read path
    that trails writes.

    Every user id resolves to an identity unless it was removed with
    ``delete_user``. ``users_by_email`` backs the lookup by email.
    """

    def __init__(self, groups: Optional[Dict[str, Iterable[str]]] = None):
        self.groups: Dict[str, Set[str]] = {
            group_id: set(members) for group_id, members in (groups or {}).items()
        }
        self.lagging: Dict[tuple, int] = {}
        self.hidden: Set[tuple] = set()
        self.failures: Dict[str, Exception] = {}
        self.failing_ids: Dict[str, Exception] = {}
        self.deleted_users: Set[str] = set()
        self.disabled_users: Set[str] = set()
        self.users_by_email: Dict[str, str] = {}
        self.calls: List[tuple] = []

    def add_group(self, group_id: str, *members: str) -> None:
        self.groups.setdefault(group_id, set()).update(members)

    def delete_user(self, user_id: str) -> None:
        self.deleted_users.add(user_id)

    def disable_user(self, user_id: str) -> None:
        self.disabled_users.add(user_id)

    def register_email(self, email: str, user_id: str) -> None:
        self.users_by_email[email.lower()] = user_id

    def lag_membership(self, user_id: str, group_id: str, reads: int) -> None:
        self.lagging[(user_id, group_id)] = reads

    def hide_membership(self, user_id: str, group_id: str) -> None:
        """Hide a membership from the user-to-groups read permanently."""
        self.hidden.add((user_id, group_id))

    def fail(self, method: str, exc: Exception) -> None:
        self.failures[method] = exc

    def fail_for(self, object_id: str, exc: Exception) -> None:
        self.failing_ids[object_id] = exc

    def _check(self, method: str, object_id: str) -> None:
        self.calls.append((method, object_id))
        if method in self.failures:
            raise self.failures[method]
        if object_id in self.failing_ids:
            raise self.failing_ids[object_id]

    def call_count(self, method: str) -> int:
        return sum(1 for name, _ in self.calls if name == method)

    def _user(self, user_id: str) -> Optional[DirectoryUser]:
        if user_id in self.deleted_users:
            return None
        return DirectoryUser(
            id=user_id, account_enabled=user_id not in self.disabled_users
        )

    async def get_user(self, user_id: str) -> Optional[DirectoryUser]:
        self._check("get_user", user_id)
        return self._user(user_id)

    async def find_user_by_email(self, email: str) -> Optional[DirectoryUser]:
        self._check("find_user_by_email", email)
        user_id = self.users_by_email.get(email.lower())
        return self._user(user_id) if user_id is not None else None

    async def group_exists(self, group_id: str) -> bool:
        self._check("group_exists", group_id)
        return group_id in self.groups

    async def get_user_groups(self, user_id: str) -> List[str]:
        self._check("get_user_groups", user_id)
        visible = []
        for group_id, members in self.groups.items():
            if user_id not in members or (user_id, group_id) in self.hidden:
                continue
            remaining = self.lagging.get((user_id, group_id), 0)
            if remaining > 0:
                self.lagging[(user_id, group_id)] = remaining - 1
                continue
            visible.append(group_id)
        return visible

    async def get_group_members(self, group_id: str) -> List[str]:
        self._check("get_group_members", group_id)
        return sorted(self.groups.get(group_id, set()))

    async def add_user_to_group(self, user_id: str, group_id: str) -> None:
        self._check("add_user_to_group", group_id)
        self.groups.setdefault(group_id, set()).add(user_id)

    async def remove_user_from_group(self, user_id: str, group_id: str) -> None:
        self._check("remove_user_from_group", group_id)
        self.groups.get(group_id, set()).discard(user_id)
