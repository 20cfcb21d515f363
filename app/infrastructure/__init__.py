"""Infrastructure modules for the state reconciler.

Centralized infrastructure components:
- configuration: Settings management (Settings, ReconciliationSettings)
- logging: Structured logging (get_module_logger, bind_sweep_context)
- operations: Operation results and error classification
- resilience: Circuit breakers, retry and per-service policies
- caching: Time-bounded result cache
- persistence: Record store over SQLAlchemy
- clients: Directory (Microsoft Graph) and secret vault (Azure Key Vault)
- services: Dependency injection providers (get_settings, get_coordinator)
"""

# Configuration
from infrastructure.configuration import Settings

# Logging
from infrastructure.logging import get_module_logger

# Operations
from infrastructure.operations.result import OperationResult
from infrastructure.operations.status import OperationStatus

__all__ = [
    # Configuration
    "Settings",
    # Logging
    "get_module_logger",
    # Operations
    "OperationResult",
    "OperationStatus",
]
