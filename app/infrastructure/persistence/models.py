"""SQLAlchemy ORM models for the system of record."""

from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import (
    BOOLEAN,
    INTEGER,
    JSON,
    TEXT,
    TIMESTAMP,
    ForeignKey,
    Index,
    UniqueConstraint,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Base(DeclarativeBase):
    """Base class for all ORM models."""

    pass


class TimestampMixin:
    created_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True), nullable=False, default=_utcnow
    )
    updated_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True), nullable=False, default=_utcnow, onupdate=_utcnow
    )


class Tenant(TimestampMixin, Base):
    """Tenant (organization).

    ``canonical_group_id`` is the single source of truth for the tenant's
    collaboration group; every cached copy is repaired toward it.
    """

    __tablename__ = "tenants"

    id: Mapped[int] = mapped_column(INTEGER, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(TEXT, nullable=False)
    canonical_group_id: Mapped[Optional[str]] = mapped_column(TEXT, nullable=True)
    secret_prefix: Mapped[Optional[str]] = mapped_column(TEXT, nullable=True)
    is_active: Mapped[bool] = mapped_column(BOOLEAN, nullable=False, default=True)


class User(TimestampMixin, Base):
    """Platform identity bound to one directory identity and one tenant.

    Users are deactivated, never deleted.
    """

    __tablename__ = "users"

    id: Mapped[int] = mapped_column(INTEGER, primary_key=True, autoincrement=True)
    # Durable directory object id, set once at creation
    external_id: Mapped[str] = mapped_column(TEXT, nullable=False)
    tenant_id: Mapped[Optional[int]] = mapped_column(
        INTEGER, ForeignKey("tenants.id"), nullable=True
    )
    email: Mapped[Optional[str]] = mapped_column(TEXT, nullable=True)
    display_name: Mapped[Optional[str]] = mapped_column(TEXT, nullable=True)
    is_active: Mapped[bool] = mapped_column(BOOLEAN, nullable=False, default=True)
    status: Mapped[str] = mapped_column(TEXT, nullable=False, default="active")
    capability_type_ids: Mapped[list] = mapped_column(
        JSON, nullable=False, default=list
    )
    # Deprecated free-text capability names; coexists with capability_type_ids
    legacy_capability_types: Mapped[list] = mapped_column(
        JSON, nullable=False, default=list
    )

    __table_args__ = (
        UniqueConstraint("external_id", name="uq_users_external_id"),
        Index("idx_users_tenant", "tenant_id"),
    )


class CapabilityType(TimestampMixin, Base):
    """Named capability owning at most one directory security group."""

    __tablename__ = "capability_types"

    id: Mapped[int] = mapped_column(INTEGER, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(TEXT, nullable=False)
    display_name: Mapped[Optional[str]] = mapped_column(TEXT, nullable=True)
    security_group_id: Mapped[Optional[str]] = mapped_column(TEXT, nullable=True)
    is_active: Mapped[bool] = mapped_column(BOOLEAN, nullable=False, default=True)
    display_order: Mapped[int] = mapped_column(INTEGER, nullable=False, default=0)


class Assignment(TimestampMixin, Base):
    """Per (user, tenant, capability type) grant.

    ``security_group_id`` is a copy taken at assignment time; the source of
    truth is ``CapabilityType.security_group_id``.
    """

    __tablename__ = "assignments"

    id: Mapped[int] = mapped_column(INTEGER, primary_key=True, autoincrement=True)
    # The user's external_id
    user_id: Mapped[str] = mapped_column(TEXT, nullable=False)
    tenant_id: Mapped[int] = mapped_column(
        INTEGER, ForeignKey("tenants.id"), nullable=False
    )
    capability_type_id: Mapped[int] = mapped_column(
        INTEGER, ForeignKey("capability_types.id"), nullable=False
    )
    security_group_id: Mapped[Optional[str]] = mapped_column(TEXT, nullable=True)
    is_active: Mapped[bool] = mapped_column(BOOLEAN, nullable=False, default=True)
    assigned_by: Mapped[Optional[str]] = mapped_column(TEXT, nullable=True)

    __table_args__ = (
        Index("idx_assignments_user_tenant", "user_id", "tenant_id"),
        Index("idx_assignments_capability_type", "capability_type_id"),
    )


class CollaborationGroupCache(TimestampMixin, Base):
    """Denormalized per-tenant copy of the collaboration group id and metadata."""

    __tablename__ = "collaboration_groups"

    id: Mapped[int] = mapped_column(INTEGER, primary_key=True, autoincrement=True)
    tenant_id: Mapped[int] = mapped_column(
        INTEGER, ForeignKey("tenants.id"), nullable=False
    )
    group_id: Mapped[str] = mapped_column(TEXT, nullable=False)
    display_name: Mapped[Optional[str]] = mapped_column(TEXT, nullable=True)
    url: Mapped[Optional[str]] = mapped_column(TEXT, nullable=True)
    description: Mapped[Optional[str]] = mapped_column(TEXT, nullable=True)
    is_active: Mapped[bool] = mapped_column(BOOLEAN, nullable=False, default=True)

    __table_args__ = (Index("idx_collaboration_groups_tenant", "tenant_id"),)


class CredentialRecord(TimestampMixin, Base):
    """Database credential holding pointers into the secret vault.

    Secret references are vault identifiers
    (``https://<vault>/secrets/<name>/<version>``) or bare secret names.
    ``is_active`` is mirrored as a tag on every referenced secret.
    """

    __tablename__ = "credentials"

    id: Mapped[int] = mapped_column(INTEGER, primary_key=True, autoincrement=True)
    tenant_id: Mapped[int] = mapped_column(
        INTEGER, ForeignKey("tenants.id"), nullable=False
    )
    friendly_name: Mapped[str] = mapped_column(TEXT, nullable=False)
    engine: Mapped[str] = mapped_column(TEXT, nullable=False, default="sqlserver")
    password_secret_ref: Mapped[str] = mapped_column(TEXT, nullable=False)
    connection_string_secret_ref: Mapped[Optional[str]] = mapped_column(
        TEXT, nullable=True
    )
    consolidated_secret_ref: Mapped[Optional[str]] = mapped_column(
        TEXT, nullable=True
    )
    is_active: Mapped[bool] = mapped_column(BOOLEAN, nullable=False, default=True)

    __table_args__ = (Index("idx_credentials_tenant", "tenant_id"),)
