"""
Dependency injection services.

Provides process-wide provider functions for infrastructure and the
reconciliation coordinator.
"""

from infrastructure.services.providers import (
    get_coordinator,
    get_directory_client,
    get_record_store,
    get_repairer,
    get_resilience_service,
    get_result_cache,
    get_secret_store,
    get_settings,
    get_validator,
)

__all__ = [
    "get_settings",
    "get_resilience_service",
    "get_record_store",
    "get_directory_client",
    "get_secret_store",
    "get_result_cache",
    "get_validator",
    "get_repairer",
    "get_coordinator",
]
