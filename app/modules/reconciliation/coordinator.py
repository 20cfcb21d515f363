"""Reconciliation coordinator.

Owns the per-tenant sweep state machine::

    IDLE -> VALIDATING -> (REPAIRING -> VALIDATING) -> CACHED

A per-tenant asyncio.Lock gates sweeps so at most one runs per tenant.
The lock is not reentrant: a sweep must never start another sweep for
the same tenant.
"""

import asyncio
from typing import Any, Awaitable, Callable, Dict, Optional

from infrastructure.caching import CacheKeyBuilder, ResultCache
from infrastructure.configuration import ReconciliationSettings
from infrastructure.logging import bind_sweep_context, get_module_logger
from infrastructure.persistence import RecordStore
from modules.reconciliation.errors import SweepAlreadyRunningError
from modules.reconciliation.models import ComprehensiveStateSyncResult, SweepState
from modules.reconciliation.repairer import StateRepairer
from modules.reconciliation.validator import StateValidator, require_id

logger = get_module_logger()

CACHE_NAMESPACE = "state-validation"


class ReconciliationCoordinator:
    """Runs full sweeps per tenant, optionally repairs, and caches results."""

    def __init__(
        self,
        validator: StateValidator,
        repairer: StateRepairer,
        record_store: RecordStore,
        cache: ResultCache,
        settings: Optional[ReconciliationSettings] = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self._validator = validator
        self._repairer = repairer
        self._store = record_store
        self._cache = cache
        self._settings = settings or ReconciliationSettings()
        self._sleep = sleep
        self._keys = CacheKeyBuilder(CACHE_NAMESPACE)
        self._locks: Dict[int, asyncio.Lock] = {}
        # Callers holding or queued for each tenant gate
        self._claims: Dict[int, int] = {}
        self._states: Dict[int, SweepState] = {}

    def _lock_for(self, tenant_id: int) -> asyncio.Lock:
        lock = self._locks.get(tenant_id)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[tenant_id] = lock
        return lock

    async def ensure_schema(self) -> None:
        """Create missing record store tables once per process."""
        await self._store.ensure_schema()

    def get_cached_result(
        self, tenant_id: int
    ) -> Optional[ComprehensiveStateSyncResult]:
        return self._cache.get(self._keys.build(tenant_id))

    def get_state(self, tenant_id: int) -> SweepState:
        state = self._states.get(tenant_id, SweepState.IDLE)
        if state == SweepState.CACHED and self.get_cached_result(tenant_id) is None:
            return SweepState.IDLE
        return state

    async def run_full_sweep(
        self,
        tenant_id: int,
        wait: bool = False,
        repair: bool = False,
    ) -> ComprehensiveStateSyncResult:
        """Validate (and optionally repair) one tenant and cache the result.

        Args:
            tenant_id: Tenant to sweep
            wait: Queue behind an in-flight sweep for up to
                ``gate_wait_seconds`` instead of failing immediately
            repair: Run the repairer for flagged drift, then re-validate

        Raises:
            SweepAlreadyRunningError: If the tenant's gate is held
            ValueError: If tenant_id is missing
        """
        require_id(tenant_id, "tenant_id")
        lock = self._lock_for(tenant_id)

        # Checked and claimed without yielding: a waiter woken by a release
        # still counts until it has run.
        if not wait and (lock.locked() or self._claims.get(tenant_id)):
            raise SweepAlreadyRunningError(tenant_id)
        self._claims[tenant_id] = self._claims.get(tenant_id, 0) + 1

        try:
            if wait:
                timeout = self._settings.gate_wait_seconds
                try:
                    await asyncio.wait_for(lock.acquire(), timeout=timeout)
                except asyncio.TimeoutError as exc:
                    raise SweepAlreadyRunningError(tenant_id, timeout) from exc
            else:
                await lock.acquire()

            try:
                with bind_sweep_context(tenant_id=str(tenant_id)):
                    return await self._sweep(tenant_id, repair)
            finally:
                lock.release()
        finally:
            self._release_claim(tenant_id)

    def _release_claim(self, tenant_id: int) -> None:
        remaining = self._claims.get(tenant_id, 0) - 1
        if remaining > 0:
            self._claims[tenant_id] = remaining
        else:
            self._claims.pop(tenant_id, None)

    async def _sweep(
        self, tenant_id: int, repair: bool
    ) -> ComprehensiveStateSyncResult:
        logger.info("sweep_started", repair=repair)
        try:
            self._states[tenant_id] = SweepState.VALIDATING
            result = await self._validator.validate_all(tenant_id)

            repairs = []
            if repair and self._needs_repair(result):
                self._states[tenant_id] = SweepState.REPAIRING
                repairs = await self._repair(tenant_id, result)
                self._states[tenant_id] = SweepState.VALIDATING
                result = await self._validator.validate_all(tenant_id)
                result.repairs = repairs

            self._cache.set(
                self._keys.build(tenant_id),
                result,
                ttl_seconds=self._settings.cache_ttl_seconds,
            )
            self._states[tenant_id] = SweepState.CACHED
        except BaseException:
            self._states[tenant_id] = SweepState.IDLE
            raise

        logger.info(
            "sweep_completed",
            overall_valid=result.overall_valid,
            errors=result.error_count,
            warnings=result.warning_count,
            repairs=len(repairs),
        )
        return result

    @staticmethod
    def _needs_repair(result: ComprehensiveStateSyncResult) -> bool:
        users = result.user_validation
        groups = result.group_validation
        credentials = result.credential_validation
        return bool(
            users.get_diagnostic("stale_reference_users")
            or groups.get_diagnostic("collaboration_cache_drift")
            or credentials.get_diagnostic("activation_tag_mismatches")
        )

    async def _repair(
        self, tenant_id: int, result: ComprehensiveStateSyncResult
    ) -> list[str]:
        repairs: list[str] = []

        if result.group_validation.get_diagnostic("collaboration_cache_drift"):
            outcome = await self._repairer.repair_collaboration_group(tenant_id)
            if outcome.is_success:
                repairs.append(f"Collaboration group aligned to {outcome.data}")
            else:
                logger.warning(
                    "collaboration_group_repair_unresolved",
                    status=outcome.status.value,
                    message=outcome.message,
                )

        for user_id in result.user_validation.get_diagnostic(
            "stale_reference_users", []
        ):
            repaired = await self._repairer.repair_security_group_references(
                user_id, tenant_id
            )
            repairs.extend(f"User {user_id}: {entry}" for entry in repaired.repairs)
            if not repaired.is_valid:
                logger.warning(
                    "security_group_repair_unresolved",
                    user_id=user_id,
                    errors=repaired.errors,
                )

        if result.credential_validation.get_diagnostic("activation_tag_mismatches"):
            retagged = await self._repairer.repair_credential_activation_tags(
                tenant_id
            )
            repairs.extend(retagged.repairs)

        logger.info("sweep_repairs_applied", repairs=len(repairs))
        return repairs

    async def sweep_all_tenants(
        self, repair: Optional[bool] = None
    ) -> Dict[int, Any]:
        """Sweep every active tenant sequentially.

        A failure on one tenant is logged and does not stop the loop.

        Returns:
            Mapping of tenant id to its result, or to the error message
            for a tenant that failed or was skipped.
        """
        if repair is None:
            repair = self._settings.auto_repair

        tenant_ids = await self._store.list_active_tenant_ids()
        logger.info("sweep_cycle_started", tenants=len(tenant_ids), repair=repair)

        outcomes: Dict[int, Any] = {}
        for index, tenant_id in enumerate(tenant_ids):
            if index:
                await self._sleep(self._settings.tenant_pause_seconds)
            try:
                outcomes[tenant_id] = await self.run_full_sweep(
                    tenant_id, wait=False, repair=repair
                )
            except SweepAlreadyRunningError as exc:
                logger.info("sweep_skipped_in_progress", tenant_id=tenant_id)
                outcomes[tenant_id] = str(exc)
            except Exception as exc:
                logger.exception("tenant_sweep_failed", tenant_id=tenant_id)
                outcomes[tenant_id] = str(exc)

        logger.info("sweep_cycle_completed", tenants=len(tenant_ids))
        return outcomes
