"""
Factory functions for dependency injection.

Provides application-scoped singleton providers for core infrastructure services.
"""

from functools import lru_cache

from infrastructure.caching import InMemoryResultCache, ResultCache
from infrastructure.clients import (
    GraphDirectoryClient,
    GuardedDirectoryClient,
    GuardedSecretStore,
    KeyVaultSecretStore,
)
from infrastructure.configuration import Settings
from infrastructure.persistence import SqlAlchemyRecordStore
from infrastructure.resilience import ResilienceService
from modules.reconciliation import (
    ReconciliationCoordinator,
    StateRepairer,
    StateValidator,
)


@lru_cache
def get_settings() -> Settings:
    """
    Get application-scoped settings singleton.

    This is the single source of truth for settings across the entire application.
    The @lru_cache decorator ensures only ONE instance is created per process,
    even if called from multiple packages.

    Usage:
        from infrastructure.services import get_settings
        settings = get_settings()

    Returns:
        Settings: Cached settings instance loaded from environment.
    """
    return Settings()


@lru_cache
def get_resilience_service() -> ResilienceService:
    """Get the resilience service holding one policy per external service."""
    return ResilienceService(get_settings())


@lru_cache
def get_record_store() -> SqlAlchemyRecordStore:
    """Get the record store, guarded by the record_store policy."""
    settings = get_settings()
    return SqlAlchemyRecordStore.from_url(
        settings.database.url,
        echo=settings.database.echo,
        pool_size=settings.database.pool_size,
        policy=get_resilience_service().record_store,
    )


@lru_cache
def get_directory_client() -> GuardedDirectoryClient:
    """Get the Microsoft Graph directory client, guarded by the directory policy.

    Raises:
        ValueError: If the Graph credentials are not configured
    """
    settings = get_settings()
    if not settings.directory.is_configured:
        raise ValueError("GRAPH_TENANT_ID and GRAPH_CLIENT_ID must be configured")
    return GuardedDirectoryClient(
        GraphDirectoryClient.from_settings(settings.directory),
        get_resilience_service().directory,
    )


@lru_cache
def get_secret_store() -> GuardedSecretStore:
    """Get the Key Vault secret store, guarded by the secret_store policy.

    Raises:
        ValueError: If KEY_VAULT_URL is not configured
    """
    settings = get_settings()
    if not settings.secret_store.KEY_VAULT_URL:
        raise ValueError("KEY_VAULT_URL must be configured")
    return GuardedSecretStore(
        KeyVaultSecretStore.from_settings(settings.secret_store),
        get_resilience_service().secret_store,
    )


@lru_cache
def get_result_cache() -> ResultCache:
    """Get the process-wide sweep result cache."""
    return InMemoryResultCache()


@lru_cache
def get_validator() -> StateValidator:
    return StateValidator(
        record_store=get_record_store(),
        directory=get_directory_client(),
        secret_store=get_secret_store(),
        settings=get_settings().reconciliation,
    )


@lru_cache
def get_repairer() -> StateRepairer:
    return StateRepairer(
        record_store=get_record_store(),
        directory=get_directory_client(),
        secret_store=get_secret_store(),
        settings=get_settings().reconciliation,
    )


@lru_cache
def get_coordinator() -> ReconciliationCoordinator:
    """
    Get application-scoped reconciliation coordinator singleton.

    The coordinator owns the per-tenant gates and the result cache, so
    exactly one instance must exist per process.

    Returns:
        ReconciliationCoordinator: Coordinator wired to the guarded clients.
    """
    return ReconciliationCoordinator(
        validator=get_validator(),
        repairer=get_repairer(),
        record_store=get_record_store(),
        cache=get_result_cache(),
        settings=get_settings().reconciliation,
    )
