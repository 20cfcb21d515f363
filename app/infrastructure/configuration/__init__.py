"""Infrastructure configuration module - public API.

Centralized configuration for the state reconciler, built on Pydantic
BaseSettings and organized by concern.

Exports:
    Settings: Main settings class (for testing/overrides)
    ResilienceSettings: Resilience policy settings class (for testing)
    ReconciliationSettings: Sweep settings class (for testing)

Example:
    ```python
    from infrastructure.services import get_settings

    settings = get_settings()

    vault_url = settings.secret_store.KEY_VAULT_URL
    interval = settings.reconciliation.interval_seconds

    if settings.is_production:
        ...
    ```
"""

from infrastructure.configuration.settings import Settings
from infrastructure.configuration.features.reconciliation import (
    ReconciliationSettings,
)
from infrastructure.configuration.infrastructure.resilience import (
    ResilienceSettings,
)

__all__ = ["Settings", "ReconciliationSettings", "ResilienceSettings"]
