"""Integration settings __init__ - exports all integration settings."""

from infrastructure.configuration.integrations.directory import DirectorySettings
from infrastructure.configuration.integrations.secret_store import (
    SecretStoreSettings,
)

__all__ = [
    "DirectorySettings",
    "SecretStoreSettings",
]
