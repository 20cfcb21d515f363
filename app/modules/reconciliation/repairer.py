"""State repairer.

Writes only copies whose source of truth lives elsewhere in the record
store (or, for activation tags, in the credential record). Every repair
is idempotent: with no external change, a second run performs no writes
and returns the same result.
"""

import asyncio
from typing import Optional

from infrastructure.clients.directory import DirectoryClient
from infrastructure.clients.secrets import SecretStoreClient, resolve_secret_reference
from infrastructure.configuration import ReconciliationSettings
from infrastructure.logging import get_module_logger
from infrastructure.operations import OperationResult, classify_error
from infrastructure.persistence import RecordStore
from modules.reconciliation.models import RepairResult
from modules.reconciliation.validator import (
    credential_secret_roles,
    describe_failure,
    normalize_ref,
    ordered_unique,
    require_id,
)

logger = get_module_logger()


class StateRepairer:
    """Repairs stale references toward their canonical values.

    Args:
        record_store: System-of-record accessor
        directory: Directory client used for existence checks
        secret_store: Secret vault client, required for activation tag repair
        settings: Reconciliation settings
    """

    def __init__(
        self,
        record_store: RecordStore,
        directory: DirectoryClient,
        secret_store: Optional[SecretStoreClient] = None,
        settings: Optional[ReconciliationSettings] = None,
    ):
        self._store = record_store
        self._directory = directory
        self._secrets = secret_store
        self._settings = settings or ReconciliationSettings()

    async def repair_collaboration_group(self, tenant_id: int) -> OperationResult:
        """Align the collaboration cache with the tenant's canonical group.

        The tenant's canonical id wins: a divergent cache is overwritten and
        a missing cache is created. With no canonical id, a cached id that
        still exists in the directory is promoted into the tenant record.

        Returns:
            OperationResult with ``data`` set to the group id on success,
            NOT_FOUND for an unknown tenant or a group that no longer
            exists, and a transient error when the existence check fails.
        """
        require_id(tenant_id, "tenant_id")
        log = logger.bind(tenant_id=tenant_id)

        try:
            tenant = await self._store.get_tenant(tenant_id)
            if tenant is None:
                return OperationResult.not_found(f"Tenant {tenant_id} not found")
            cache = await self._store.get_collaboration_cache(tenant_id)
            canonical = normalize_ref(tenant.canonical_group_id)
            cached = normalize_ref(cache.group_id) if cache is not None else None

            if canonical is not None:
                if cache is None:
                    await self._store.create_collaboration_cache(
                        tenant_id, canonical, display_name=tenant.name
                    )
                    log.info("collaboration_cache_created", group_id=canonical)
                elif cached != canonical:
                    await self._store.update_collaboration_cache_group(
                        cache.id, canonical
                    )
                    log.info(
                        "collaboration_cache_overwritten",
                        previous_group_id=cached,
                        group_id=canonical,
                    )
                return await self._confirm_group(canonical)

            if cached is None:
                return OperationResult.not_found(
                    f"Tenant {tenant_id} has no collaboration group to repair",
                    error_code="NO_COLLABORATION_GROUP",
                )

            confirmed = await self._confirm_group(cached)
            if not confirmed.is_success:
                return confirmed
            await self._store.set_tenant_canonical_group(tenant_id, cached)
            log.info("collaboration_group_promoted", group_id=cached)
            return OperationResult.success(
                data=cached,
                message=f"Promoted cached group {cached} to tenant {tenant_id}",
            )
        except Exception as exc:
            log.error("collaboration_group_repair_failed", error=str(exc))
            return classify_error(exc)

    async def _confirm_group(self, group_id: str) -> OperationResult:
        try:
            exists = await self._directory.group_exists(group_id)
        except Exception as exc:
            logger.warning(
                "group_existence_check_failed", group_id=group_id, error=str(exc)
            )
            return OperationResult.transient_error(
                f"Could not verify existence of group {group_id}: "
                f"{describe_failure(exc)}",
                error_code="GROUP_CHECK_FAILED",
            )
        if not exists:
            return OperationResult.not_found(
                f"Group {group_id} does not exist in the directory",
                error_code="GROUP_NOT_FOUND",
            )
        return OperationResult.success(data=group_id)

    async def repair_security_group_references(
        self, user_id: str, tenant_id: int
    ) -> RepairResult:
        """Copy canonical group references onto the user's assignments.

        Assignments whose capability type has no canonical reference are
        unrepairable and reported as errors. Every resulting reference is
        then existence-checked; only confirmed ids land in
        ``valid_group_ids``.
        """
        require_id(user_id, "user_id")
        require_id(tenant_id, "tenant_id")
        result = RepairResult()

        try:
            assignments = await self._store.list_assignments(
                user_id, tenant_id, active_only=False
            )
            capability_types = await self._store.get_capability_types(
                {a.capability_type_id for a in assignments}
            )
        except Exception as exc:
            result.add_warning(
                f"Could not load assignments for user {user_id}: "
                f"{describe_failure(exc)}"
            )
            result.valid_group_ids = []
            return result.finalize("Security group repair")

        candidates: list[str] = []
        for assignment in assignments:
            current = normalize_ref(assignment.security_group_id)
            ct = capability_types.get(assignment.capability_type_id)
            if ct is None:
                result.add_error(
                    f"Assignment {assignment.id} references unknown capability "
                    f"type {assignment.capability_type_id}"
                )
                if current is not None:
                    candidates.append(current)
                continue

            canonical = normalize_ref(ct.security_group_id)
            if canonical is None:
                result.add_error(
                    f"Assignment {assignment.id} for capability {ct.name} cannot "
                    "be repaired: the capability type has no security group"
                )
                if current is not None:
                    candidates.append(current)
                continue

            if current != canonical:
                try:
                    updated = await self._store.update_assignment_group(
                        assignment.id, canonical
                    )
                except Exception as exc:
                    result.add_warning(
                        f"Could not update assignment {assignment.id}: "
                        f"{describe_failure(exc)}"
                    )
                    continue
                if updated:
                    result.record_repair(
                        f"Assignment {assignment.id} security group "
                        f"{current or 'none'} -> {canonical}"
                    )
                    logger.info(
                        "assignment_group_repaired",
                        assignment_id=assignment.id,
                        user_id=user_id,
                        previous_group_id=current,
                        group_id=canonical,
                    )
                else:
                    result.add_warning(
                        f"Assignment {assignment.id} disappeared before repair"
                    )
                    continue
            candidates.append(canonical)

        unique = ordered_unique(candidates)
        checks = await asyncio.gather(*(self._confirm_group(g) for g in unique))
        for group_id, check in zip(unique, checks):
            if check.is_success:
                result.valid_group_ids.append(group_id)
            elif check.is_transient:
                result.add_warning(check.message)
            else:
                result.add_error(check.message)

        result.add_diagnostic("assignments_checked", len(assignments))
        result.add_diagnostic("repaired_count", len(result.repairs))
        return result.finalize("Security group repair")

    async def repair_credential_activation_tags(self, tenant_id: int) -> RepairResult:
        """Rewrite activation tags that do not mirror ``is_active``.

        Secrets stay enabled; only the tag changes. Tags other than the
        activation tag are preserved.
        """
        require_id(tenant_id, "tenant_id")
        result = RepairResult()
        if self._secrets is None:
            raise ValueError("secret_store is required for activation tag repair")

        active_tag = self._settings.active_tag
        try:
            credentials = await self._store.list_credentials(
                tenant_id, active_only=False
            )
            tenant = await self._store.get_tenant(tenant_id)
        except Exception as exc:
            result.add_warning(
                f"Could not load credentials for tenant {tenant_id}: "
                f"{describe_failure(exc)}"
            )
            return result.finalize("Activation tag repair")

        secret_prefix = tenant.secret_prefix if tenant is not None else None
        for credential in credentials:
            expected = str(credential.is_active).lower()
            for role, reference, _ in credential_secret_roles(credential):
                label = f"{role} secret of credential '{credential.friendly_name}'"
                try:
                    ref = resolve_secret_reference(reference, secret_prefix)
                    bundle = await self._secrets.get_secret_with_tags(
                        ref.name, ref.version
                    )
                    if bundle is None:
                        result.add_error(f"The {label} does not exist")
                        continue
                    tags = dict(bundle.tags or {})
                    current = (tags.get(active_tag) or "").lower()
                    if current == expected and bundle.enabled:
                        continue
                    tags[active_tag] = expected
                    await self._secrets.update_secret_tags(
                        ref.name, tags, ref.version or bundle.version, enabled=True
                    )
                except ValueError:
                    result.add_error(f"The {label} reference is malformed")
                    continue
                except Exception as exc:
                    result.add_warning(
                        f"Could not repair the {label}: {describe_failure(exc)}"
                    )
                    continue

                result.record_repair(f"Set {active_tag}={expected} on {ref.name}")
                logger.info(
                    "secret_activation_tag_repaired",
                    tenant_id=tenant_id,
                    credential_id=credential.id,
                    secret_name=ref.name,
                    is_active=credential.is_active,
                )

        result.add_diagnostic("credentials_checked", len(credentials))
        return result.finalize("Activation tag repair")
