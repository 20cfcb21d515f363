"""Directory (Microsoft Graph) integration settings."""

from pydantic import Field

from infrastructure.configuration.base import IntegrationSettings


class DirectorySettings(IntegrationSettings):
    """Directory service configuration.

    Environment Variables:
        GRAPH_TENANT_ID: Entra ID tenant that owns the directory
        GRAPH_CLIENT_ID: App registration client ID
        GRAPH_CLIENT_SECRET: App registration client secret
        GRAPH_BASE_URL: Graph API base URL (default: https://graph.microsoft.com/v1.0)
        GRAPH_SCOPE: Token scope requested for Graph calls

    Example:
        ```python
        from infrastructure.services import get_settings

        settings = get_settings()

        base_url = settings.directory.GRAPH_BASE_URL
        ```
    """

    GRAPH_TENANT_ID: str = Field(default="", alias="GRAPH_TENANT_ID")
    GRAPH_CLIENT_ID: str = Field(default="", alias="GRAPH_CLIENT_ID")
    GRAPH_CLIENT_SECRET: str | None = Field(default=None, alias="GRAPH_CLIENT_SECRET")
    GRAPH_BASE_URL: str = Field(
        default="https://graph.microsoft.com/v1.0", alias="GRAPH_BASE_URL"
    )
    GRAPH_SCOPE: str = Field(
        default="https://graph.microsoft.com/.default", alias="GRAPH_SCOPE"
    )

    @property
    def is_configured(self) -> bool:
        """Whether enough settings are present to authenticate against Graph."""
        return bool(
            self.GRAPH_TENANT_ID and self.GRAPH_CLIENT_ID and self.GRAPH_CLIENT_SECRET
        )
