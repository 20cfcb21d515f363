"""State validator.

Read-only comparison of intended state (record store) with actual state
(directory, secret vault). Every check returns a ValidationResult:

- errors: confirmed drift (missing assignment, stale reference,
  nonexistent group, missing secret)
- warnings: soft drift (orphan grant, read-path lag, ambiguous legacy
  data) or a single item that could not be verified

Only invalid arguments raise (ValueError). External and record store
failures are caught at the smallest unit (one group, one secret, one
user) and recorded as "Could not verify ..." warnings.
"""

import asyncio
from dataclasses import dataclass, field
from typing import Awaitable, Callable, Iterable, Optional, Sequence

from infrastructure.clients.directory import DirectoryClient
from infrastructure.clients.secrets import SecretStoreClient, resolve_secret_reference
from infrastructure.configuration import ReconciliationSettings
from infrastructure.logging import get_module_logger
from infrastructure.operations import classify_error
from infrastructure.persistence import Assignment, CapabilityType, RecordStore, User
from modules.reconciliation.models import (
    ComprehensiveStateSyncResult,
    ValidationResult,
)

logger = get_module_logger()

USER_STATUS_ACTIVE = "active"


def require_id(value, name: str) -> None:
    """Raise ValueError for a missing or blank identifier."""
    if value is None or (isinstance(value, str) and not value.strip()):
        raise ValueError(f"{name} is required")


def normalize_ref(value: Optional[str]) -> Optional[str]:
    """Treat None and blank references as the same (absent) value."""
    if value is None:
        return None
    value = value.strip()
    return value or None


def ordered_unique(values: Iterable) -> list:
    return list(dict.fromkeys(v for v in values if v is not None))


def describe_failure(exc: Exception) -> str:
    return classify_error(exc).message


@dataclass
class _AssignmentState:
    user: Optional[User]
    assignments: list[Assignment] = field(default_factory=list)
    capability_types: dict[int, CapabilityType] = field(default_factory=dict)

    def name_of(self, capability_type_id: int) -> str:
        ct = self.capability_types.get(capability_type_id)
        return ct.name if ct else str(capability_type_id)


class StateValidator:
    """Validator for users, groups and credentials of a tenant.

    Args:
        record_store: System-of-record accessor
        directory: Directory client (usually policy-guarded)
        secret_store: Secret vault client (usually policy-guarded)
        settings: Reconciliation settings
        sleep: Awaitable sleep used between membership re-reads
    """

    def __init__(
        self,
        record_store: RecordStore,
        directory: DirectoryClient,
        secret_store: SecretStoreClient,
        settings: Optional[ReconciliationSettings] = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self._store = record_store
        self._directory = directory
        self._secrets = secret_store
        self._settings = settings or ReconciliationSettings()
        self._sleep = sleep

    # User category

    async def _load_assignment_state(
        self, user_id: str, tenant_id: int
    ) -> _AssignmentState:
        user = await self._store.get_user_by_external_id(user_id)
        if user is None:
            return _AssignmentState(user=None)
        assignments = await self._store.list_assignments(
            user_id, tenant_id, active_only=True
        )
        type_ids = set(user.capability_type_ids or []) | {
            a.capability_type_id for a in assignments
        }
        capability_types = await self._store.get_capability_types(type_ids)
        return _AssignmentState(user, assignments, capability_types)

    def _check_assignments(
        self, state: _AssignmentState, user_id: str, tenant_id: int
    ) -> ValidationResult:
        result = ValidationResult()
        user = state.user
        if user is None:
            result.add_error(f"User {user_id} not found")
            return result.finalize("User assignments")
        if user.tenant_id != tenant_id:
            result.add_error(
                f"User {user_id} belongs to tenant {user.tenant_id}, not {tenant_id}"
            )

        intended = ordered_unique(user.capability_type_ids or [])
        actual = ordered_unique(a.capability_type_id for a in state.assignments)
        missing = [ct_id for ct_id in intended if ct_id not in set(actual)]
        extra = [ct_id for ct_id in actual if ct_id not in set(intended)]

        for ct_id in missing:
            result.add_error(
                f"Missing assignment for capability {state.name_of(ct_id)}"
            )
        for ct_id in extra:
            result.add_warning(
                f"Extra assignment for capability {state.name_of(ct_id)} "
                "not in the user's intended capabilities"
            )

        stale_ids = []
        unrepairable_ids = []
        for assignment in state.assignments:
            ct = state.capability_types.get(assignment.capability_type_id)
            if ct is None:
                unrepairable_ids.append(assignment.id)
                result.add_error(
                    f"Assignment {assignment.id} references unknown capability "
                    f"type {assignment.capability_type_id}"
                )
                continue
            copied = normalize_ref(assignment.security_group_id)
            canonical = normalize_ref(ct.security_group_id)
            if canonical is None and copied is not None:
                unrepairable_ids.append(assignment.id)
                result.add_error(
                    f"Assignment {assignment.id} for capability {ct.name} cannot "
                    "be repaired: the capability type has no security group"
                )
            elif copied != canonical:
                stale_ids.append(assignment.id)
                result.add_error(
                    f"Stale group reference in assignment {assignment.id} for "
                    f"capability {ct.name}: has {copied or 'none'}, "
                    f"expected {canonical or 'none'}"
                )

        if missing:
            result.add_recommendation(
                f"Create the missing capability assignments for user {user_id}"
            )
        if stale_ids:
            result.add_recommendation(
                f"Run security group reference repair for user {user_id}"
            )

        result.add_diagnostic("database_assignments", actual)
        result.add_diagnostic("intended_assignments", intended)
        result.add_diagnostic("missing_count", len(missing))
        result.add_diagnostic("extra_count", len(extra))
        result.add_diagnostic("stale_assignment_ids", stale_ids)
        result.add_diagnostic("unrepairable_assignment_ids", unrepairable_ids)
        return result.finalize("User assignments")

    async def validate_user_assignments(
        self, user_id: str, tenant_id: int
    ) -> ValidationResult:
        """Compare a user's intended capability types with active assignments.

        Missing assignments and stale copied group references are errors;
        extra assignments are warnings.

        Raises:
            ValueError: If user_id or tenant_id is missing
        """
        require_id(user_id, "user_id")
        require_id(tenant_id, "tenant_id")

        try:
            state = await self._load_assignment_state(user_id, tenant_id)
        except Exception as exc:
            logger.warning(
                "assignment_state_load_failed",
                user_id=user_id,
                tenant_id=tenant_id,
                error=str(exc),
            )
            result = ValidationResult()
            result.add_warning(
                f"Could not verify assignments for user {user_id}: "
                f"{describe_failure(exc)}"
            )
            return result.finalize("User assignments")

        return self._check_assignments(state, user_id, tenant_id)

    async def validate_user_record(self, external_id: str) -> ValidationResult:
        """Check required fields, flag/status consistency and legacy data.

        Raises:
            ValueError: If external_id is missing
        """
        require_id(external_id, "external_id")
        result = ValidationResult()

        try:
            user = await self._store.get_user_by_external_id(external_id)
        except Exception as exc:
            result.add_warning(
                f"Could not verify user record {external_id}: {describe_failure(exc)}"
            )
            return result.finalize("User record")

        if user is None:
            result.add_error(f"User record not found for external id {external_id}")
            return result.finalize("User record")

        for field_name in ("email", "tenant_id", "external_id"):
            value = getattr(user, field_name)
            if value is None or (isinstance(value, str) and not value.strip()):
                result.add_error(
                    f"User {external_id} is missing required field {field_name}"
                )

        status_active = (user.status or "").lower() == USER_STATUS_ACTIVE
        if user.is_active != status_active:
            result.add_error(
                f"User {external_id} has is_active={user.is_active} "
                f"but status '{user.status}'"
            )

        current = user.capability_type_ids or []
        legacy = user.legacy_capability_types or []
        if legacy and not current:
            result.add_warning(
                f"User {external_id} has legacy capability types but no current "
                "capability assignments; migration intent is ambiguous"
            )
            result.add_recommendation(
                f"Review legacy capability types for user {external_id} and "
                "assign current capability types manually"
            )

        if not user.is_active:
            result.add_warning(f"User {external_id} is inactive")

        result.add_diagnostic("is_active", user.is_active)
        result.add_diagnostic("status", user.status)
        result.add_diagnostic("capability_type_count", len(current))
        result.add_diagnostic("legacy_capability_count", len(legacy))
        return result.finalize("User record")

    async def _check_identity(self, user: User) -> ValidationResult:
        result = ValidationResult()
        external_id = user.external_id
        email = normalize_ref(user.email)
        by_email = None
        try:
            identity = await self._directory.get_user(external_id)
            if identity is None and email is not None:
                by_email = await self._directory.find_user_by_email(email)
        except Exception as exc:
            logger.warning(
                "directory_identity_check_failed", user_id=external_id, error=str(exc)
            )
            result.add_warning(
                f"Could not verify directory identity of user {external_id}: "
                f"{describe_failure(exc)}"
            )
            result.add_diagnostic("identity_missing", False)
            return result.finalize("Directory identity")

        if identity is None and by_email is not None and by_email.id != external_id:
            result.add_error(
                f"User {external_id} has a mismatched directory object id: "
                f"{email} resolves to {by_email.id}"
            )
            result.add_recommendation(
                f"Update the external id of user {email} to {by_email.id}"
            )
        elif identity is None:
            result.add_error(f"User {external_id} not found in the directory")
            result.add_recommendation(
                f"Deactivate user {external_id} or check whether the directory "
                "identity was recreated"
            )
        elif not identity.account_enabled:
            result.add_warning(
                f"Directory account of user {external_id} is disabled but the "
                "user is active"
            )

        result.add_diagnostic("identity_missing", identity is None)
        return result.finalize("Directory identity")

    async def validate_directory_identity(self, external_id: str) -> ValidationResult:
        """Check the user's directory identity still exists under its object id.

        A missing identity is an error. When the user's email resolves to a
        different object id, the error names the mismatch instead.

        Raises:
            ValueError: If external_id is missing
        """
        require_id(external_id, "external_id")
        try:
            user = await self._store.get_user_by_external_id(external_id)
        except Exception as exc:
            result = ValidationResult()
            result.add_warning(
                f"Could not verify user record {external_id}: {describe_failure(exc)}"
            )
            return result.finalize("Directory identity")

        if user is None:
            result = ValidationResult()
            result.add_error(f"User record not found for external id {external_id}")
            return result.finalize("Directory identity")
        return await self._check_identity(user)

    async def validate_group_memberships(
        self, user_id: str, expected_group_ids: Sequence[str]
    ) -> ValidationResult:
        """Check a user belongs to every expected directory group.

        Missing memberships are re-read a fixed number of times with a
        fixed delay (directory reads lag writes). Groups still missing get
        a reverse check against the group's member list: present there is
        a warning, absent is an error.

        Raises:
            ValueError: If user_id is missing or expected_group_ids is None
        """
        require_id(user_id, "user_id")
        if expected_group_ids is None:
            raise ValueError("expected_group_ids is required")

        result = ValidationResult()
        expected = ordered_unique(normalize_ref(g) for g in expected_group_ids)
        result.add_diagnostic("expected_count", len(expected))
        if not expected:
            return result.finalize("Group memberships")

        forward_failed = False
        try:
            actual = set(await self._directory.get_user_groups(user_id))
            missing = [g for g in expected if g not in actual]
        except Exception as exc:
            forward_failed = True
            missing = list(expected)
            logger.warning(
                "membership_forward_read_failed", user_id=user_id, error=str(exc)
            )

        attempts = 0
        max_attempts = self._settings.membership_retry_attempts
        while missing and not forward_failed and attempts < max_attempts:
            attempts += 1
            await self._sleep(self._settings.membership_retry_delay_seconds)
            try:
                actual = set(await self._directory.get_user_groups(user_id))
            except Exception as exc:
                logger.warning(
                    "membership_retry_read_failed",
                    user_id=user_id,
                    attempt=attempts,
                    error=str(exc),
                )
                break
            missing = [g for g in missing if g not in actual]

        if attempts and not missing:
            logger.info(
                "memberships_resolved_after_retries",
                user_id=user_id,
                attempts=attempts,
            )

        for group_id in missing:
            try:
                members = await self._directory.get_group_members(group_id)
            except Exception as exc:
                result.add_warning(
                    f"Could not verify membership of user {user_id} in group "
                    f"{group_id}: {describe_failure(exc)}"
                )
                continue
            if user_id in members:
                result.add_warning(
                    f"Directory read-path inconsistency: user {user_id} is a member "
                    f"of group {group_id} but the group is missing from the "
                    "user's memberships"
                )
            else:
                result.add_error(
                    f"User {user_id} is not a member of expected group {group_id}"
                )

        result.add_diagnostic("retry_attempts", attempts)
        result.add_diagnostic("forward_read_failed", forward_failed)
        result.add_diagnostic("missing_after_retries", missing)
        return result.finalize("Group memberships")

    async def validate_user_state(
        self, user_id: str, tenant_id: int
    ) -> ValidationResult:
        """Record, assignment and membership checks for one user.

        The expected groups are the canonical security groups of the
        user's active assignments.
        """
        require_id(user_id, "user_id")
        require_id(tenant_id, "tenant_id")

        result = ValidationResult()
        result.merge(await self.validate_user_record(user_id))

        try:
            state = await self._load_assignment_state(user_id, tenant_id)
        except Exception as exc:
            result.add_warning(
                f"Could not verify assignments for user {user_id}: "
                f"{describe_failure(exc)}"
            )
            return result.finalize(f"User {user_id}")

        result.merge(self._check_assignments(state, user_id, tenant_id))

        identity_missing = False
        if state.user is not None and state.user.is_active:
            identity = await self._check_identity(state.user)
            identity_missing = identity.get_diagnostic("identity_missing", False)
            result.merge(identity, include_diagnostics=False)

        if (
            self._settings.verify_memberships
            and state.user is not None
            and state.user.is_active
            and not identity_missing
        ):
            expected = ordered_unique(
                normalize_ref(ct.security_group_id)
                for ct in (
                    state.capability_types.get(a.capability_type_id)
                    for a in state.assignments
                )
                if ct is not None
            )
            result.merge(
                await self.validate_group_memberships(user_id, expected),
                include_diagnostics=False,
            )

        stale = result.get_diagnostic("stale_assignment_ids", [])
        result.add_diagnostic("has_stale_references", bool(stale))
        result.add_diagnostic("directory_identity_missing", identity_missing)
        return result.finalize(f"User {user_id}")

    async def validate_user_state_for_tenant(self, tenant_id: int) -> ValidationResult:
        """Validate every active user of the tenant, bounded concurrency."""
        require_id(tenant_id, "tenant_id")
        result = ValidationResult()

        try:
            users = await self._store.list_active_users(tenant_id)
        except Exception as exc:
            result.add_warning(
                f"Could not load users for tenant {tenant_id}: {describe_failure(exc)}"
            )
            return result.finalize("User validation")

        semaphore = asyncio.Semaphore(self._settings.max_concurrent_users)

        async def check(user: User) -> tuple[User, Optional[ValidationResult], str]:
            async with semaphore:
                try:
                    checked = await self.validate_user_state(
                        user.external_id, tenant_id
                    )
                    return user, checked, ""
                except Exception as exc:
                    logger.warning(
                        "user_validation_failed",
                        user_id=user.external_id,
                        tenant_id=tenant_id,
                        error=str(exc),
                    )
                    return user, None, str(exc)

        outcomes = await asyncio.gather(*(check(user) for user in users))

        invalid_users: list[str] = []
        stale_users: list[str] = []
        missing_identities: list[str] = []
        for user, user_result, failure in outcomes:
            label = f"User {user.external_id or user.id}"
            if user_result is None:
                result.add_warning(f"Could not validate {label.lower()}: {failure}")
                continue
            result.merge(user_result, prefix=label, include_diagnostics=False)
            if not user_result.is_valid:
                invalid_users.append(user.external_id)
            if user_result.get_diagnostic("has_stale_references"):
                stale_users.append(user.external_id)
            if user_result.get_diagnostic("directory_identity_missing"):
                missing_identities.append(user.external_id)

        result.add_diagnostic("users_checked", len(users))
        result.add_diagnostic("invalid_users", invalid_users)
        result.add_diagnostic("stale_reference_users", stale_users)
        result.add_diagnostic("missing_identity_users", missing_identities)
        return result.finalize("User validation")

    # Group category

    async def validate_group_existence(
        self, group_ids: Sequence[str]
    ) -> ValidationResult:
        """Check each group exists in the directory.

        A failure checking one id is a warning for that id only; the other
        ids are still checked.

        Raises:
            ValueError: If group_ids is None or contains a blank id
        """
        if group_ids is None:
            raise ValueError("group_ids is required")
        for group_id in group_ids:
            require_id(group_id, "group_id")

        result = ValidationResult()
        unique_ids = ordered_unique(g.strip() for g in group_ids)

        async def check(group_id: str) -> tuple[str, Optional[bool], str]:
            try:
                return group_id, await self._directory.group_exists(group_id), ""
            except Exception as exc:
                logger.warning(
                    "group_existence_check_failed", group_id=group_id, error=str(exc)
                )
                return group_id, None, describe_failure(exc)

        existing: list[str] = []
        missing: list[str] = []
        unverified: list[str] = []
        for group_id, exists, failure in await asyncio.gather(
            *(check(g) for g in unique_ids)
        ):
            if exists is None:
                unverified.append(group_id)
                result.add_warning(
                    f"Could not verify existence of group {group_id}: {failure}"
                )
            elif exists:
                existing.append(group_id)
            else:
                missing.append(group_id)
                result.add_error(f"Group {group_id} does not exist in the directory")

        result.add_diagnostic("existing_groups", existing)
        result.add_diagnostic("missing_groups", missing)
        result.add_diagnostic("unverified_groups", unverified)
        return result.finalize("Group existence")

    async def validate_group_state(self, tenant_id: int) -> ValidationResult:
        """Capability-type groups, canonical collaboration group and its cache."""
        require_id(tenant_id, "tenant_id")
        result = ValidationResult()

        try:
            tenant = await self._store.get_tenant(tenant_id)
            capability_types = await self._store.list_capability_types(
                active_only=True
            )
            cache = await self._store.get_collaboration_cache(tenant_id)
        except Exception as exc:
            result.add_warning(
                f"Could not load group records for tenant {tenant_id}: "
                f"{describe_failure(exc)}"
            )
            return result.finalize("Group validation")

        if tenant is None:
            result.add_error(f"Tenant {tenant_id} not found")
            return result.finalize("Group validation")

        group_ids = []
        for ct in capability_types:
            group_id = normalize_ref(ct.security_group_id)
            if group_id is None:
                result.add_warning(
                    f"Capability type {ct.name} has no security group configured"
                )
            else:
                group_ids.append(group_id)

        canonical = normalize_ref(tenant.canonical_group_id)
        cached = normalize_ref(cache.group_id) if cache is not None else None
        if canonical is not None:
            group_ids.append(canonical)

        if group_ids:
            result.merge(await self.validate_group_existence(group_ids))

        drift = False
        if canonical is None:
            result.add_warning(
                f"Tenant {tenant_id} has no canonical collaboration group"
            )
            if cached is not None:
                drift = True
                result.add_recommendation(
                    f"Run collaboration group repair for tenant {tenant_id} "
                    "to promote the cached group id"
                )
        elif cache is None:
            drift = True
            result.add_warning(
                f"Collaboration group cache record is missing for tenant {tenant_id}"
            )
        elif cached != canonical:
            drift = True
            result.add_error(
                f"Collaboration group cache for tenant {tenant_id} holds "
                f"{cached or 'none'}, expected canonical {canonical}"
            )
            result.add_recommendation(
                f"Run collaboration group repair for tenant {tenant_id}"
            )

        result.add_diagnostic("capability_types_checked", len(capability_types))
        result.add_diagnostic("canonical_group_id", canonical)
        result.add_diagnostic("cached_group_id", cached)
        result.add_diagnostic("collaboration_cache_drift", drift)
        return result.finalize("Group validation")

    # Credential category

    async def _secret_prefix(self, tenant_id: int) -> Optional[str]:
        tenant = await self._store.get_tenant(tenant_id)
        return tenant.secret_prefix if tenant is not None else None

    async def validate_credential_secrets(self, tenant_id: int) -> ValidationResult:
        """Check every secret referenced by the tenant's active credentials.

        Missing secrets, tenant tag mismatches and missing consolidated
        sub-field tags are errors. An activation tag that does not mirror
        the credential and a disabled secret are warnings.
        """
        require_id(tenant_id, "tenant_id")
        result = ValidationResult()

        try:
            credentials = await self._store.list_credentials(
                tenant_id, active_only=True
            )
            secret_prefix = await self._secret_prefix(tenant_id)
        except Exception as exc:
            result.add_warning(
                f"Could not load credentials for tenant {tenant_id}: "
                f"{describe_failure(exc)}"
            )
            return result.finalize("Credential validation")

        tenant_tag = self._settings.tenant_tag
        active_tag = self._settings.active_tag
        secrets_checked = 0
        tag_mismatches: list[dict] = []

        for credential in credentials:
            label = f"credential '{credential.friendly_name}' ({credential.id})"
            expected_active = str(credential.is_active).lower()

            if not normalize_ref(credential.password_secret_ref):
                result.add_error(f"Password secret reference is missing for {label}")

            for role, reference, consolidated in credential_secret_roles(credential):
                try:
                    ref = resolve_secret_reference(reference, secret_prefix)
                except ValueError:
                    result.add_error(
                        f"{role.capitalize()} secret reference for {label} is malformed"
                    )
                    continue

                secrets_checked += 1
                try:
                    bundle = await self._secrets.get_secret_with_tags(
                        ref.name, ref.version
                    )
                except Exception as exc:
                    result.add_warning(
                        f"Could not verify {role} secret for {label}: "
                        f"{describe_failure(exc)}"
                    )
                    continue

                if bundle is None:
                    result.add_error(
                        f"{role.capitalize()} secret for {label} does not exist "
                        f"({ref.name})"
                    )
                    continue

                tags = bundle.tags or {}
                owner = tags.get(tenant_tag)
                if owner != str(tenant_id):
                    result.add_error(
                        f"{role.capitalize()} secret for {label} has {tenant_tag} tag "
                        f"{owner!r}, expected '{tenant_id}'"
                    )

                if consolidated:
                    for required in self._settings.consolidated_required_tags:
                        if required not in tags:
                            result.add_error(
                                f"Consolidated secret for {label} is missing "
                                f"required tag '{required}'"
                            )

                actual_active = tags.get(active_tag)
                if (actual_active or "").lower() != expected_active:
                    result.add_warning(
                        f"{role.capitalize()} secret for {label} has {active_tag}="
                        f"{actual_active!r}, expected '{expected_active}'"
                    )
                    tag_mismatches.append(
                        {"credential_id": credential.id, "role": role}
                    )

                if not bundle.enabled:
                    result.add_warning(
                        f"{role.capitalize()} secret for {label} is disabled in the "
                        "vault; entries stay enabled and activation is tag-driven"
                    )

        if tag_mismatches:
            result.add_recommendation(
                f"Run credential activation tag repair for tenant {tenant_id}"
            )

        result.add_diagnostic("credential_count", len(credentials))
        result.add_diagnostic("secrets_checked", secrets_checked)
        result.add_diagnostic("activation_tag_mismatches", tag_mismatches)
        return result.finalize("Credential validation")

    # Full sweep

    async def validate_all(self, tenant_id: int) -> ComprehensiveStateSyncResult:
        """Run the user, group and credential categories concurrently."""
        require_id(tenant_id, "tenant_id")

        users, groups, credentials = await asyncio.gather(
            self.validate_user_state_for_tenant(tenant_id),
            self.validate_group_state(tenant_id),
            self.validate_credential_secrets(tenant_id),
        )
        result = ComprehensiveStateSyncResult.from_categories(
            tenant_id, users, groups, credentials
        )
        logger.info(
            "tenant_validation_completed",
            tenant_id=tenant_id,
            overall_valid=result.overall_valid,
            errors=result.error_count,
            warnings=result.warning_count,
        )
        return result


def credential_secret_roles(credential) -> list[tuple[str, str, bool]]:
    """(role, reference, is_consolidated) for each secret a credential references."""
    roles = []
    if normalize_ref(credential.password_secret_ref):
        roles.append(("password", credential.password_secret_ref, False))
    if normalize_ref(credential.connection_string_secret_ref):
        roles.append(
            ("connection string", credential.connection_string_secret_ref, False)
        )
    if normalize_ref(credential.consolidated_secret_ref):
        roles.append(("consolidated", credential.consolidated_secret_ref, True))
    return roles
