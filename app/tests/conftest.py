"""Shared fixtures for the state reconciler test suite."""

from types import SimpleNamespace

import pytest

from infrastructure.caching import InMemoryResultCache
from infrastructure.configuration import ReconciliationSettings
from infrastructure.persistence import SqlAlchemyRecordStore
from modules.reconciliation import (
    ReconciliationCoordinator,
    StateRepairer,
    StateValidator,
)
from tests.factories.records import (
    make_assignment,
    make_capability_type,
    make_collaboration_cache,
    make_credential,
    make_tenant,
    make_user,
    seed,
)
from tests.fixtures.directory_clients import FakeDirectoryClient
from tests.fixtures.secret_clients import FakeSecretStore


class RecordingSleep:
    """Awaitable stand-in for asyncio.sleep that records requested delays."""

    def __init__(self):
        self.delays = []

    async def __call__(self, seconds: float) -> None:
        self.delays.append(seconds)


@pytest.fixture
def record_store():
    store = SqlAlchemyRecordStore.from_url("sqlite:///:memory:")
    store.create_schema()
    yield store
    store.close()


@pytest.fixture
def directory():
    return FakeDirectoryClient()


@pytest.fixture
def secret_store():
    return FakeSecretStore()


@pytest.fixture
def sleep():
    return RecordingSleep()


@pytest.fixture
def reconciliation_settings():
    return ReconciliationSettings(
        membership_retry_attempts=3,
        membership_retry_delay_seconds=2,
        tenant_pause_seconds=1,
        max_concurrent_users=4,
        gate_wait_seconds=0.05,
        auto_repair=False,
    )


@pytest.fixture
def validator(record_store, directory, secret_store, reconciliation_settings, sleep):
    return StateValidator(
        record_store,
        directory,
        secret_store,
        settings=reconciliation_settings,
        sleep=sleep,
    )


@pytest.fixture
def repairer(record_store, directory, secret_store, reconciliation_settings):
    return StateRepairer(
        record_store, directory, secret_store, settings=reconciliation_settings
    )


@pytest.fixture
def result_cache():
    return InMemoryResultCache()


@pytest.fixture
def coordinator(
    validator, repairer, record_store, result_cache, reconciliation_settings, sleep
):
    return ReconciliationCoordinator(
        validator,
        repairer,
        record_store,
        result_cache,
        settings=reconciliation_settings,
        sleep=sleep,
    )


@pytest.fixture
def tenant_world(record_store, directory, secret_store):
    """A consistent tenant: one user, two capabilities, one credential.

    Every copy matches its canonical value, every group exists and the
    user is a member of both capability groups.
    """
    tenant = seed(record_store, make_tenant(canonical_group_id="grp-collab"))
    reader, writer = seed(
        record_store,
        make_capability_type("Reader", "grp-reader"),
        make_capability_type("Writer", "grp-writer", display_order=1),
    )
    user = seed(
        record_store,
        make_user("user-1", tenant.id, capability_type_ids=[reader.id, writer.id]),
    )
    reader_assignment, writer_assignment = seed(
        record_store,
        make_assignment("user-1", tenant.id, reader.id, "grp-reader"),
        make_assignment("user-1", tenant.id, writer.id, "grp-writer"),
    )
    cache = seed(record_store, make_collaboration_cache(tenant.id, "grp-collab"))
    credential = seed(
        record_store,
        make_credential(
            tenant.id,
            password_secret_ref="https://kv.vault.azure.net/secrets/reporting-pw/v1",
            connection_string_secret_ref="reporting-cs",
        ),
    )

    directory.add_group("grp-collab", "user-1")
    directory.add_group("grp-reader", "user-1")
    directory.add_group("grp-writer", "user-1")

    tags = {"org": str(tenant.id), "isActive": "true"}
    secret_store.put("reporting-pw", tags=tags)
    secret_store.put("reporting-cs", tags=tags)

    return SimpleNamespace(
        tenant=tenant,
        reader=reader,
        writer=writer,
        user=user,
        reader_assignment=reader_assignment,
        writer_assignment=writer_assignment,
        cache=cache,
        credential=credential,
    )
