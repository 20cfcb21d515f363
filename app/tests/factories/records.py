"""Factory functions for system-of-record test data."""

from typing import Any, List, Optional

from infrastructure.persistence import (
    Assignment,
    CapabilityType,
    CollaborationGroupCache,
    CredentialRecord,
    Tenant,
    User,
)


def make_tenant(
    name: str = "Contoso",
    canonical_group_id: Optional[str] = "grp-collab",
    **overrides: Any,
) -> Tenant:
    values = {"name": name, "canonical_group_id": canonical_group_id, "is_active": True}
    values.update(overrides)
    return Tenant(**values)


def make_user(
    external_id: str = "user-1",
    tenant_id: Optional[int] = None,
    capability_type_ids: Optional[List[int]] = None,
    **overrides: Any,
) -> User:
    values = {
        "external_id": external_id,
        "tenant_id": tenant_id,
        "email": f"{external_id}@example.com",
        "display_name": external_id.replace("-", " ").title(),
        "is_active": True,
        "status": "active",
        "capability_type_ids": list(capability_type_ids or []),
        "legacy_capability_types": [],
    }
    values.update(overrides)
    return User(**values)


def make_capability_type(
    name: str = "Reader",
    security_group_id: Optional[str] = "grp-reader",
    **overrides: Any,
) -> CapabilityType:
    values = {
        "name": name,
        "display_name": name,
        "security_group_id": security_group_id,
        "is_active": True,
        "display_order": 0,
    }
    values.update(overrides)
    return CapabilityType(**values)


def make_assignment(
    user_id: str,
    tenant_id: int,
    capability_type_id: int,
    security_group_id: Optional[str] = None,
    **overrides: Any,
) -> Assignment:
    values = {
        "user_id": user_id,
        "tenant_id": tenant_id,
        "capability_type_id": capability_type_id,
        "security_group_id": security_group_id,
        "is_active": True,
        "assigned_by": "admin@example.com",
    }
    values.update(overrides)
    return Assignment(**values)


def make_collaboration_cache(
    tenant_id: int, group_id: str = "grp-collab", **overrides: Any
) -> CollaborationGroupCache:
    values = {
        "tenant_id": tenant_id,
        "group_id": group_id,
        "display_name": "Collaboration",
        "is_active": True,
    }
    values.update(overrides)
    return CollaborationGroupCache(**values)


def make_credential(
    tenant_id: int,
    friendly_name: str = "reporting-db",
    password_secret_ref: str = "reporting-db-password",
    **overrides: Any,
) -> CredentialRecord:
    values = {
        "tenant_id": tenant_id,
        "friendly_name": friendly_name,
        "engine": "sqlserver",
        "password_secret_ref": password_secret_ref,
        "connection_string_secret_ref": None,
        "consolidated_secret_ref": None,
        "is_active": True,
    }
    values.update(overrides)
    return CredentialRecord(**values)


def seed(store, *records):
    """Insert ``records`` and return them with their ids populated.

    Returns a single record when one is given.
    """
    with store.session_scope() as session:
        session.add_all(records)
        session.flush()
    return records[0] if len(records) == 1 else records


def update_record(store, model, record_id, **values):
    """Apply ``values`` to a stored record, bypassing the async API."""
    with store.session_scope() as session:
        record = session.get(model, record_id)
        for key, value in values.items():
            setattr(record, key, value)
        session.flush()
    return record


def delete_record(store, model, record_id) -> None:
    with store.session_scope() as session:
        session.delete(session.get(model, record_id))
