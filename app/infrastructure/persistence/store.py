"""Record store accessor.

Typed async access to the system-of-record entities. SQLAlchemy work is
blocking, so every call runs on a worker thread; a SQLite store uses a
single worker which serializes access to the database file.
"""

import asyncio
from concurrent.futures import ThreadPoolExecutor
from contextlib import contextmanager
from typing import (
    Callable,
    Iterable,
    Iterator,
    Optional,
    Protocol,
    Sequence,
    TypeVar,
)

from sqlalchemy import Engine, select
from sqlalchemy.orm import Session

from infrastructure.logging import get_module_logger
from infrastructure.persistence.engine import (
    build_engine,
    build_sessionmaker,
    is_sqlite,
    mask_password,
)
from infrastructure.persistence.models import (
    Assignment,
    Base,
    CapabilityType,
    CollaborationGroupCache,
    CredentialRecord,
    Tenant,
    User,
)
from infrastructure.resilience import ResiliencePolicy

logger = get_module_logger()

T = TypeVar("T")


class RecordStore(Protocol):
    """Record store contract used by the reconciliation module."""

    async def get_tenant(self, tenant_id: int) -> Optional[Tenant]: ...

    async def list_active_tenant_ids(self) -> list[int]: ...

    async def get_user(self, user_id: int) -> Optional[User]: ...

    async def get_user_by_external_id(self, external_id: str) -> Optional[User]: ...

    async def list_active_users(self, tenant_id: int) -> list[User]: ...

    async def list_assignments(
        self, user_id: str, tenant_id: int, active_only: bool = True
    ) -> list[Assignment]: ...

    async def get_capability_types(
        self, capability_type_ids: Iterable[int]
    ) -> dict[int, CapabilityType]: ...

    async def list_capability_types(
        self, active_only: bool = True
    ) -> list[CapabilityType]: ...

    async def get_collaboration_cache(
        self, tenant_id: int
    ) -> Optional[CollaborationGroupCache]: ...

    async def list_credentials(
        self, tenant_id: int, active_only: bool = True
    ) -> list[CredentialRecord]: ...

    async def update_assignment_group(
        self, assignment_id: int, security_group_id: str
    ) -> bool: ...

    async def update_collaboration_cache_group(
        self, cache_id: int, group_id: str
    ) -> bool: ...

    async def create_collaboration_cache(
        self, tenant_id: int, group_id: str, display_name: Optional[str] = None
    ) -> CollaborationGroupCache: ...

    async def set_tenant_canonical_group(
        self, tenant_id: int, group_id: str
    ) -> bool: ...

    async def ensure_schema(self) -> None: ...


class SqlAlchemyRecordStore:
    """SQLAlchemy implementation of :class:`RecordStore`.

    Args:
        engine: SQLAlchemy engine
        policy: Optional resilience policy applied to every call
        executor: Optional executor for blocking work. Defaults to a
            single-worker pool for SQLite and the loop's default executor
            otherwise.

    Example:
        store = SqlAlchemyRecordStore.from_url("sqlite:///./reconciler.db")
        await store.ensure_schema()
        tenant = await store.get_tenant(1)
    """

    def __init__(
        self,
        engine: Engine,
        policy: Optional[ResiliencePolicy] = None,
        executor: Optional[ThreadPoolExecutor] = None,
    ):
        self._engine = engine
        self._session_factory = build_sessionmaker(engine)
        self._policy = policy
        self._owns_executor = False
        if executor is None and is_sqlite(str(engine.url)):
            executor = ThreadPoolExecutor(
                max_workers=1, thread_name_prefix="record-store"
            )
            self._owns_executor = True
        self._executor = executor
        self._schema_lock: Optional[asyncio.Lock] = None
        self._schema_ready = False

    @classmethod
    def from_url(
        cls,
        url: str,
        echo: bool = False,
        pool_size: int = 5,
        policy: Optional[ResiliencePolicy] = None,
    ) -> "SqlAlchemyRecordStore":
        logger.info("record_store_engine_created", url=mask_password(url))
        return cls(build_engine(url, echo=echo, pool_size=pool_size), policy=policy)

    @property
    def engine(self) -> Engine:
        return self._engine

    @contextmanager
    def session_scope(self) -> Iterator[Session]:
        """Provide a transactional session (blocking; commit on success)."""
        session = self._session_factory()
        try:
            yield session
            session.commit()
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    async def _run(self, fn: Callable[[Session], T], operation: str) -> T:
        loop = asyncio.get_running_loop()

        def work() -> T:
            with self.session_scope() as session:
                return fn(session)

        async def call() -> T:
            return await loop.run_in_executor(self._executor, work)

        if self._policy is None:
            return await call()
        return await self._policy.execute(call, operation_name=operation)

    # Schema

    def create_schema(self) -> None:
        """Create missing tables (blocking, idempotent)."""
        Base.metadata.create_all(self._engine)

    async def ensure_schema(self) -> None:
        """Create missing tables once per process, under a gate."""
        if self._schema_ready:
            return
        if self._schema_lock is None:
            self._schema_lock = asyncio.Lock()
        async with self._schema_lock:
            if self._schema_ready:
                return
            loop = asyncio.get_running_loop()
            await loop.run_in_executor(self._executor, self.create_schema)
            self._schema_ready = True
            logger.info("record_store_schema_ensured")

    # Reads

    async def get_tenant(self, tenant_id: int) -> Optional[Tenant]:
        return await self._run(lambda s: s.get(Tenant, tenant_id), "get_tenant")

    async def list_active_tenant_ids(self) -> list[int]:
        def query(session: Session) -> list[int]:
            stmt = (
                select(Tenant.id)
                .where(Tenant.is_active.is_(True))
                .order_by(Tenant.id)
            )
            return list(session.scalars(stmt))

        return await self._run(query, "list_active_tenant_ids")

    async def get_user(self, user_id: int) -> Optional[User]:
        return await self._run(lambda s: s.get(User, user_id), "get_user")

    async def get_user_by_external_id(self, external_id: str) -> Optional[User]:
        def query(session: Session) -> Optional[User]:
            stmt = select(User).where(User.external_id == external_id)
            return session.scalars(stmt).first()

        return await self._run(query, "get_user_by_external_id")

    async def list_active_users(self, tenant_id: int) -> list[User]:
        def query(session: Session) -> list[User]:
            stmt = (
                select(User)
                .where(User.tenant_id == tenant_id, User.is_active.is_(True))
                .order_by(User.id)
            )
            return list(session.scalars(stmt))

        return await self._run(query, "list_active_users")

    async def list_assignments(
        self, user_id: str, tenant_id: int, active_only: bool = True
    ) -> list[Assignment]:
        def query(session: Session) -> list[Assignment]:
            stmt = select(Assignment).where(
                Assignment.user_id == user_id, Assignment.tenant_id == tenant_id
            )
            if active_only:
                stmt = stmt.where(Assignment.is_active.is_(True))
            return list(session.scalars(stmt.order_by(Assignment.id)))

        return await self._run(query, "list_assignments")

    async def get_capability_types(
        self, capability_type_ids: Iterable[int]
    ) -> dict[int, CapabilityType]:
        ids: Sequence[int] = sorted(set(capability_type_ids))
        if not ids:
            return {}

        def query(session: Session) -> dict[int, CapabilityType]:
            stmt = select(CapabilityType).where(CapabilityType.id.in_(ids))
            return {ct.id: ct for ct in session.scalars(stmt)}

        return await self._run(query, "get_capability_types")

    async def list_capability_types(
        self, active_only: bool = True
    ) -> list[CapabilityType]:
        def query(session: Session) -> list[CapabilityType]:
            stmt = select(CapabilityType)
            if active_only:
                stmt = stmt.where(CapabilityType.is_active.is_(True))
            stmt = stmt.order_by(CapabilityType.display_order, CapabilityType.id)
            return list(session.scalars(stmt))

        return await self._run(query, "list_capability_types")

    async def get_collaboration_cache(
        self, tenant_id: int
    ) -> Optional[CollaborationGroupCache]:
        def query(session: Session) -> Optional[CollaborationGroupCache]:
            stmt = (
                select(CollaborationGroupCache)
                .where(CollaborationGroupCache.tenant_id == tenant_id)
                .order_by(
                    CollaborationGroupCache.is_active.desc(),
                    CollaborationGroupCache.id,
                )
            )
            return session.scalars(stmt).first()

        return await self._run(query, "get_collaboration_cache")

    async def list_credentials(
        self, tenant_id: int, active_only: bool = True
    ) -> list[CredentialRecord]:
        def query(session: Session) -> list[CredentialRecord]:
            stmt = select(CredentialRecord).where(
                CredentialRecord.tenant_id == tenant_id
            )
            if active_only:
                stmt = stmt.where(CredentialRecord.is_active.is_(True))
            return list(session.scalars(stmt.order_by(CredentialRecord.id)))

        return await self._run(query, "list_credentials")

    # Writes

    async def update_assignment_group(
        self, assignment_id: int, security_group_id: str
    ) -> bool:
        def write(session: Session) -> bool:
            assignment = session.get(Assignment, assignment_id)
            if assignment is None:
                return False
            assignment.security_group_id = security_group_id
            return True

        return await self._run(write, "update_assignment_group")

    async def update_collaboration_cache_group(
        self, cache_id: int, group_id: str
    ) -> bool:
        def write(session: Session) -> bool:
            cache = session.get(CollaborationGroupCache, cache_id)
            if cache is None:
                return False
            cache.group_id = group_id
            cache.is_active = True
            return True

        return await self._run(write, "update_collaboration_cache_group")

    async def create_collaboration_cache(
        self, tenant_id: int, group_id: str, display_name: Optional[str] = None
    ) -> CollaborationGroupCache:
        def write(session: Session) -> CollaborationGroupCache:
            cache = CollaborationGroupCache(
                tenant_id=tenant_id,
                group_id=group_id,
                display_name=display_name,
                is_active=True,
            )
            session.add(cache)
            session.flush()
            return cache

        return await self._run(write, "create_collaboration_cache")

    async def set_tenant_canonical_group(self, tenant_id: int, group_id: str) -> bool:
        def write(session: Session) -> bool:
            tenant = session.get(Tenant, tenant_id)
            if tenant is None:
                return False
            tenant.canonical_group_id = group_id
            return True

        return await self._run(write, "set_tenant_canonical_group")

    def close(self) -> None:
        """Dispose the engine and stop the owned worker thread."""
        self._engine.dispose()
        if self._owns_executor and self._executor is not None:
            self._executor.shutdown(wait=True)
