"""Errors for the reconciliation module."""

from typing import Optional


class ReconciliationError(Exception):
    """Base class for reconciliation errors."""


class SweepAlreadyRunningError(ReconciliationError):
    """Raised when a sweep for the tenant is already in flight.

    Attributes:
        tenant_id: Tenant whose gate is held
        waited_seconds: How long the caller queued before giving up
    """

    def __init__(self, tenant_id: int, waited_seconds: Optional[float] = None):
        self.tenant_id = tenant_id
        self.waited_seconds = waited_seconds
        message = f"Validation already in progress for tenant {tenant_id}"
        if waited_seconds:
            message += f" (waited {waited_seconds:g}s)"
        super().__init__(message)
