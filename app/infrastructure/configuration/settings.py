"""State reconciler configuration settings - main aggregator."""

from pydantic_settings import BaseSettings, SettingsConfigDict

# Integration settings
from infrastructure.configuration.integrations import (
    DirectorySettings,
    SecretStoreSettings,
)

# Feature settings
from infrastructure.configuration.features import ReconciliationSettings

# Infrastructure settings
from infrastructure.configuration.infrastructure import (
    DatabaseSettings,
    ResilienceSettings,
)


class Settings(BaseSettings):
    """State reconciler configuration settings - main aggregator.

    Aggregates all domain-specific settings into a single configuration object.
    Settings are organized by concern:

    - **Integrations**: External services (directory, secret vault)
    - **Features**: The reconciliation sweep
    - **Infrastructure**: Record store and resilience policies

    Environment Variables:
        PREFIX: Environment prefix; empty means production
        LOG_LEVEL: Logging level (DEBUG, INFO, WARNING, ERROR)
        GIT_SHA: Git commit SHA for deployment tracking

    Example:
        ```python
        from infrastructure.services import get_settings

        settings = get_settings()

        graph_url = settings.directory.GRAPH_BASE_URL
        if settings.reconciliation.auto_repair:
            ...
        ```
    """

    # Application-level settings
    PREFIX: str = ""
    LOG_LEVEL: str = "INFO"
    GIT_SHA: str = "Unknown"

    # Integration settings
    directory: DirectorySettings
    secret_store: SecretStoreSettings

    # Feature settings
    reconciliation: ReconciliationSettings

    # Infrastructure settings
    database: DatabaseSettings
    resilience: ResilienceSettings

    @property
    def is_production(self) -> bool:
        """Check if the application is running in production.

        Returns:
            True if PREFIX is empty (production), False otherwise.
        """
        return not bool(self.PREFIX)

    def __init__(self, **kwargs):
        """Initialize Settings with automatic subsettings instantiation.

        Args:
            **kwargs: Optional overrides for specific settings sections.
        """
        settings_map = {
            "directory": DirectorySettings,
            "secret_store": SecretStoreSettings,
            "reconciliation": ReconciliationSettings,
            "database": DatabaseSettings,
            "resilience": ResilienceSettings,
        }

        for setting_name, setting_class in settings_map.items():
            if setting_name not in kwargs:
                kwargs[setting_name] = setting_class()

        super().__init__(**kwargs)

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=True,
        extra="ignore",
    )
