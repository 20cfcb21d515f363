"""Reconciliation feature settings."""

import json
from typing import Annotated, Any

from pydantic import Field, field_validator
from pydantic_settings import NoDecode

from infrastructure.configuration.base import FeatureSettings


class ReconciliationSettings(FeatureSettings):
    """Configuration for the state reconciliation sweep.

    Environment Variables:
        RECONCILIATION_ENABLED: Run the background sweep loop
        RECONCILIATION_INTERVAL_SECONDS: Seconds between sweeps (default 600)
        RECONCILIATION_INITIAL_DELAY_SECONDS: Delay before the first sweep
        RECONCILIATION_TENANT_PAUSE_SECONDS: Pause between tenants in a sweep
        RECONCILIATION_CACHE_TTL_SECONDS: Lifetime of cached sweep results
        RECONCILIATION_MEMBERSHIP_RETRY_ATTEMPTS: Re-reads of a user's groups
            before falling back to the reverse membership check
        RECONCILIATION_MEMBERSHIP_RETRY_DELAY_SECONDS: Fixed delay between re-reads
        RECONCILIATION_MAX_CONCURRENT_USERS: Users validated in parallel
        RECONCILIATION_GATE_WAIT_SECONDS: How long a waiting sweep queues
        RECONCILIATION_TENANT_TAG: Secret tag naming the owning tenant
        RECONCILIATION_ACTIVE_TAG: Secret tag mirroring the credential's flag
        RECONCILIATION_CONSOLIDATED_REQUIRED_TAGS: Tags a consolidated
            secret must carry (JSON list)
        RECONCILIATION_AUTO_REPAIR: Repair stale references during the
            background sweep
        RECONCILIATION_VERIFY_MEMBERSHIPS: Include directory membership
            checks in the user category

    Example:
        ```python
        from infrastructure.services import get_settings

        settings = get_settings()

        if settings.reconciliation.auto_repair:
            ...
        ```
    """

    enabled: bool = Field(default=True, alias="RECONCILIATION_ENABLED")
    interval_seconds: float = Field(
        default=600.0, alias="RECONCILIATION_INTERVAL_SECONDS", gt=0
    )
    initial_delay_seconds: float = Field(
        default=60.0, alias="RECONCILIATION_INITIAL_DELAY_SECONDS", ge=0
    )
    tenant_pause_seconds: float = Field(
        default=1.0, alias="RECONCILIATION_TENANT_PAUSE_SECONDS", ge=0
    )
    cache_ttl_seconds: int = Field(
        default=300, alias="RECONCILIATION_CACHE_TTL_SECONDS", gt=0
    )
    membership_retry_attempts: int = Field(
        default=3, alias="RECONCILIATION_MEMBERSHIP_RETRY_ATTEMPTS", ge=0
    )
    membership_retry_delay_seconds: float = Field(
        default=2.0, alias="RECONCILIATION_MEMBERSHIP_RETRY_DELAY_SECONDS", ge=0
    )
    max_concurrent_users: int = Field(
        default=10, alias="RECONCILIATION_MAX_CONCURRENT_USERS", ge=1
    )
    gate_wait_seconds: float = Field(
        default=60.0, alias="RECONCILIATION_GATE_WAIT_SECONDS", ge=0
    )
    tenant_tag: str = Field(default="org", alias="RECONCILIATION_TENANT_TAG")
    active_tag: str = Field(default="isActive", alias="RECONCILIATION_ACTIVE_TAG")
    consolidated_required_tags: Annotated[list[str], NoDecode] = Field(
        default_factory=lambda: ["connectionString"],
        alias="RECONCILIATION_CONSOLIDATED_REQUIRED_TAGS",
    )
    auto_repair: bool = Field(default=False, alias="RECONCILIATION_AUTO_REPAIR")
    verify_memberships: bool = Field(
        default=True, alias="RECONCILIATION_VERIFY_MEMBERSHIPS"
    )

    @field_validator("consolidated_required_tags", mode="before")
    @classmethod
    def _parse_required_tags(cls, v: Any) -> Any:
        """Accept a list, a JSON array or a comma separated string."""
        if v is None:
            return []
        if isinstance(v, str):
            if v.strip().startswith("["):
                return json.loads(v)
            return [tag.strip() for tag in v.split(",") if tag.strip()]
        return v
