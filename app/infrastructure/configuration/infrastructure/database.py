"""Record store (relational database) settings."""

from pydantic import Field

from infrastructure.configuration.base import InfrastructureSettings


class DatabaseSettings(InfrastructureSettings):
    """Relational system-of-record configuration.

    Environment Variables:
        DATABASE_URL: SQLAlchemy URL (default: sqlite:///./reconciler.db)
        DATABASE_ECHO: Echo SQL statements to the log (default: False)
        DATABASE_POOL_SIZE: Connection pool size for server databases
    """

    url: str = Field(
        default="sqlite:///./reconciler.db",
        alias="DATABASE_URL",
        description="SQLAlchemy database URL",
    )
    echo: bool = Field(
        default=False,
        alias="DATABASE_ECHO",
        description="Echo SQL statements",
    )
    pool_size: int = Field(
        default=5,
        alias="DATABASE_POOL_SIZE",
        description="Connection pool size (ignored for SQLite)",
    )
