"""Record store accessor: ORM models, engine and async store."""

from infrastructure.persistence.engine import build_engine, build_sessionmaker
from infrastructure.persistence.models import (
    Assignment,
    Base,
    CapabilityType,
    CollaborationGroupCache,
    CredentialRecord,
    Tenant,
    User,
)
from infrastructure.persistence.store import RecordStore, SqlAlchemyRecordStore

__all__ = [
    "Assignment",
    "Base",
    "CapabilityType",
    "CollaborationGroupCache",
    "CredentialRecord",
    "Tenant",
    "User",
    "RecordStore",
    "SqlAlchemyRecordStore",
    "build_engine",
    "build_sessionmaker",
]
