"""Feature settings __init__ - exports all feature settings."""

from infrastructure.configuration.features.reconciliation import (
    ReconciliationSettings,
)

__all__ = [
    "ReconciliationSettings",
]
