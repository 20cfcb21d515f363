"""Unit tests for the state repairer."""

from unittest.mock import AsyncMock

import pytest

from infrastructure.operations import OperationStatus
from infrastructure.persistence import (
    Assignment,
    CapabilityType,
    CollaborationGroupCache,
    CredentialRecord,
    Tenant,
)
from modules.reconciliation import StateRepairer
from tests.factories.records import (
    delete_record,
    make_assignment,
    make_capability_type,
    seed,
    update_record,
)

pytestmark = pytest.mark.unit


@pytest.mark.asyncio
class TestRepairCollaborationGroup:
    async def test_consistent_tenant_needs_no_write(
        self, repairer, record_store, tenant_world, monkeypatch
    ):
        update = AsyncMock()
        monkeypatch.setattr(record_store, "update_collaboration_cache_group", update)

        result = await repairer.repair_collaboration_group(tenant_world.tenant.id)

        assert result.is_success
        assert result.data == "grp-collab"
        update.assert_not_awaited()

    async def test_divergent_cache_is_overwritten_from_tenant(
        self, repairer, record_store, tenant_world
    ):
        update_record(
            record_store,
            CollaborationGroupCache,
            tenant_world.cache.id,
            group_id="grp-old",
        )

        result = await repairer.repair_collaboration_group(tenant_world.tenant.id)

        assert result.is_success
        cache = await record_store.get_collaboration_cache(tenant_world.tenant.id)
        tenant = await record_store.get_tenant(tenant_world.tenant.id)
        assert cache.group_id == "grp-collab"
        assert tenant.canonical_group_id == "grp-collab"

    async def test_missing_cache_is_created(self, repairer, record_store, tenant_world):
        delete_record(record_store, CollaborationGroupCache, tenant_world.cache.id)

        result = await repairer.repair_collaboration_group(tenant_world.tenant.id)

        assert result.is_success
        cache = await record_store.get_collaboration_cache(tenant_world.tenant.id)
        assert cache.group_id == "grp-collab"
        assert cache.display_name == "Contoso"

    async def test_second_run_is_a_no_op(self, repairer, record_store, tenant_world):
        update_record(
            record_store,
            CollaborationGroupCache,
            tenant_world.cache.id,
            group_id="grp-old",
        )
        first = await repairer.repair_collaboration_group(tenant_world.tenant.id)

        record_store.update_collaboration_cache_group = AsyncMock()
        second = await repairer.repair_collaboration_group(tenant_world.tenant.id)

        assert first == second
        record_store.update_collaboration_cache_group.assert_not_awaited()

    async def test_canonical_group_missing_in_directory(
        self, repairer, directory, tenant_world
    ):
        del directory.groups["grp-collab"]

        result = await repairer.repair_collaboration_group(tenant_world.tenant.id)

        assert result.status == OperationStatus.NOT_FOUND
        assert result.error_code == "GROUP_NOT_FOUND"

    async def test_cached_group_is_promoted_when_tenant_has_none(
        self, repairer, record_store, tenant_world
    ):
        update_record(
            record_store, Tenant, tenant_world.tenant.id, canonical_group_id=None
        )

        result = await repairer.repair_collaboration_group(tenant_world.tenant.id)

        assert result.is_success
        assert result.data == "grp-collab"
        tenant = await record_store.get_tenant(tenant_world.tenant.id)
        assert tenant.canonical_group_id == "grp-collab"

    async def test_cached_group_gone_is_not_promoted(
        self, repairer, record_store, directory, tenant_world
    ):
        update_record(
            record_store, Tenant, tenant_world.tenant.id, canonical_group_id=None
        )
        del directory.groups["grp-collab"]

        result = await repairer.repair_collaboration_group(tenant_world.tenant.id)

        assert result.status == OperationStatus.NOT_FOUND
        tenant = await record_store.get_tenant(tenant_world.tenant.id)
        assert tenant.canonical_group_id is None

    async def test_failed_check_writes_nothing(
        self, repairer, record_store, directory, tenant_world
    ):
        update_record(
            record_store, Tenant, tenant_world.tenant.id, canonical_group_id=None
        )
        directory.fail("group_exists", ConnectionError("directory throttled"))

        result = await repairer.repair_collaboration_group(tenant_world.tenant.id)

        assert result.status == OperationStatus.TRANSIENT_ERROR
        assert result.is_transient
        tenant = await record_store.get_tenant(tenant_world.tenant.id)
        assert tenant.canonical_group_id is None

    async def test_nothing_to_repair_without_any_group(
        self, repairer, record_store, tenant_world
    ):
        update_record(
            record_store, Tenant, tenant_world.tenant.id, canonical_group_id=None
        )
        delete_record(record_store, CollaborationGroupCache, tenant_world.cache.id)

        result = await repairer.repair_collaboration_group(tenant_world.tenant.id)

        assert result.status == OperationStatus.NOT_FOUND
        assert result.error_code == "NO_COLLABORATION_GROUP"

    async def test_unknown_tenant(self, repairer):
        result = await repairer.repair_collaboration_group(404)

        assert result.status == OperationStatus.NOT_FOUND
        assert result.message == "Tenant 404 not found"

    async def test_record_store_failure_is_classified(
        self, repairer, record_store, monkeypatch
    ):
        monkeypatch.setattr(
            record_store,
            "get_tenant",
            AsyncMock(side_effect=ConnectionError("database unavailable")),
        )

        result = await repairer.repair_collaboration_group(1)

        assert result.status == OperationStatus.TRANSIENT_ERROR


@pytest.mark.asyncio
class TestRepairSecurityGroupReferences:
    async def test_stale_reference_is_replaced_with_canonical(
        self, repairer, record_store, tenant_world
    ):
        stale = tenant_world.reader_assignment
        update_record(record_store, Assignment, stale.id, security_group_id="grp-old")

        result = await repairer.repair_security_group_references(
            "user-1", tenant_world.tenant.id
        )

        assert result.is_valid
        assert result.repairs == [
            f"Assignment {stale.id} security group grp-old -> grp-reader"
        ]
        assert result.valid_group_ids == ["grp-reader", "grp-writer"]
        assignments = await record_store.list_assignments(
            "user-1", tenant_world.tenant.id
        )
        assert [a.security_group_id for a in assignments] == [
            "grp-reader",
            "grp-writer",
        ]

    async def test_repair_is_idempotent(self, repairer, record_store, tenant_world):
        update_record(
            record_store,
            Assignment,
            tenant_world.writer_assignment.id,
            security_group_id=None,
        )

        first = await repairer.repair_security_group_references(
            "user-1", tenant_world.tenant.id
        )
        record_store.update_assignment_group = AsyncMock()
        second = await repairer.repair_security_group_references(
            "user-1", tenant_world.tenant.id
        )

        assert len(first.repairs) == 1
        assert second.repairs == []
        assert second.valid_group_ids == first.valid_group_ids
        assert second.errors == first.errors
        record_store.update_assignment_group.assert_not_awaited()

    async def test_inactive_assignments_are_repaired_too(
        self, repairer, record_store, tenant_world
    ):
        update_record(
            record_store,
            Assignment,
            tenant_world.writer_assignment.id,
            is_active=False,
            security_group_id="grp-old",
        )

        result = await repairer.repair_security_group_references(
            "user-1", tenant_world.tenant.id
        )

        assert len(result.repairs) == 1

    async def test_capability_without_group_is_unrepairable(
        self, repairer, record_store, tenant_world
    ):
        auditor = seed(record_store, make_capability_type("Auditor", None))
        seed(
            record_store,
            make_assignment("user-1", tenant_world.tenant.id, auditor.id, None),
        )

        result = await repairer.repair_security_group_references(
            "user-1", tenant_world.tenant.id
        )

        assert not result.is_valid
        assert len(result.errors) == 1
        assert "cannot be repaired" in result.errors[0]
        assert result.valid_group_ids == ["grp-reader", "grp-writer"]

    async def test_existing_reference_kept_when_capability_has_no_group(
        self, repairer, record_store, tenant_world
    ):
        update_record(
            record_store, CapabilityType, tenant_world.writer.id, security_group_id=None
        )

        result = await repairer.repair_security_group_references(
            "user-1", tenant_world.tenant.id
        )

        assert not result.is_valid
        assert result.errors == [
            f"Assignment {tenant_world.writer_assignment.id} for capability Writer "
            "cannot be repaired: the capability type has no security group"
        ]
        assert result.warnings == []
        assert result.repairs == []
        assert result.valid_group_ids == ["grp-reader", "grp-writer"]

    async def test_nonexistent_group_is_excluded(
        self, repairer, directory, tenant_world
    ):
        del directory.groups["grp-writer"]

        result = await repairer.repair_security_group_references(
            "user-1", tenant_world.tenant.id
        )

        assert result.valid_group_ids == ["grp-reader"]
        assert result.errors == ["Group grp-writer does not exist in the directory"]

    async def test_failed_check_is_warning(self, repairer, directory, tenant_world):
        directory.fail_for("grp-writer", ConnectionError("timeout"))

        result = await repairer.repair_security_group_references(
            "user-1", tenant_world.tenant.id
        )

        assert result.is_valid
        assert result.valid_group_ids == ["grp-reader"]
        assert len(result.warnings) == 1
        assert result.warnings[0].startswith(
            "Could not verify existence of group grp-writer"
        )

    async def test_blank_ids_raise(self, repairer):
        with pytest.raises(ValueError):
            await repairer.repair_security_group_references("", 1)


@pytest.mark.asyncio
class TestRepairCredentialActivationTags:
    async def test_mismatched_tag_is_rewritten(
        self, repairer, secret_store, tenant_world
    ):
        secret_store.secrets["reporting-cs"].tags["isActive"] = "false"

        result = await repairer.repair_credential_activation_tags(
            tenant_world.tenant.id
        )

        assert result.repairs == ["Set isActive=true on reporting-cs"]
        name, tags, _, enabled = secret_store.tag_updates[0]
        assert name == "reporting-cs"
        assert tags == {"org": str(tenant_world.tenant.id), "isActive": "true"}
        assert enabled is True

    async def test_second_run_writes_nothing(
        self, repairer, secret_store, tenant_world
    ):
        secret_store.secrets["reporting-cs"].tags["isActive"] = "false"

        await repairer.repair_credential_activation_tags(tenant_world.tenant.id)
        second = await repairer.repair_credential_activation_tags(
            tenant_world.tenant.id
        )

        assert second.repairs == []
        assert len(secret_store.tag_updates) == 1

    async def test_bare_name_is_repaired_under_tenant_secret_prefix(
        self, repairer, record_store, secret_store, tenant_world
    ):
        tenant_id = tenant_world.tenant.id
        update_record(record_store, Tenant, tenant_id, secret_prefix="Contoso")
        secret_store.put(
            "contoso-reporting-cs", tags={"org": str(tenant_id), "isActive": "false"}
        )

        result = await repairer.repair_credential_activation_tags(tenant_id)

        assert result.repairs == ["Set isActive=true on contoso-reporting-cs"]
        assert secret_store.secrets["contoso-reporting-cs"].tags["isActive"] == "true"
        assert secret_store.secrets["reporting-cs"].tags["isActive"] == "true"
        assert [update[0] for update in secret_store.tag_updates] == [
            "contoso-reporting-cs"
        ]

    async def test_inactive_credential_is_tagged_false(
        self, repairer, record_store, secret_store, tenant_world
    ):
        update_record(
            record_store, CredentialRecord, tenant_world.credential.id, is_active=False
        )

        result = await repairer.repair_credential_activation_tags(
            tenant_world.tenant.id
        )

        assert len(result.repairs) == 2
        assert secret_store.secrets["reporting-pw"].tags["isActive"] == "false"
        assert secret_store.secrets["reporting-pw"].enabled is True

    async def test_disabled_secret_is_re_enabled(
        self, repairer, secret_store, tenant_world
    ):
        secret_store.secrets["reporting-pw"].enabled = False

        await repairer.repair_credential_activation_tags(tenant_world.tenant.id)

        assert secret_store.secrets["reporting-pw"].enabled is True

    async def test_missing_secret_is_error(self, repairer, secret_store, tenant_world):
        del secret_store.secrets["reporting-pw"]

        result = await repairer.repair_credential_activation_tags(
            tenant_world.tenant.id
        )

        assert not result.is_valid
        assert result.repairs == []

    async def test_requires_secret_store(self, record_store, directory):
        repairer = StateRepairer(record_store, directory)

        with pytest.raises(ValueError):
            await repairer.repair_credential_activation_tags(1)
