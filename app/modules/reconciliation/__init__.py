"""Cross-system state reconciliation.

Validates the record store against the directory and the secret vault,
repairs stale copies toward their canonical values and caches one result
per tenant.
"""

from modules.reconciliation.coordinator import ReconciliationCoordinator
from modules.reconciliation.errors import (
    ReconciliationError,
    SweepAlreadyRunningError,
)
from modules.reconciliation.models import (
    ComprehensiveStateSyncResult,
    Diagnostic,
    RepairResult,
    SweepState,
    ValidationResult,
)
from modules.reconciliation.repairer import StateRepairer
from modules.reconciliation.validator import StateValidator

__all__ = [
    "ReconciliationCoordinator",
    "StateRepairer",
    "StateValidator",
    "ComprehensiveStateSyncResult",
    "Diagnostic",
    "RepairResult",
    "SweepState",
    "ValidationResult",
    "ReconciliationError",
    "SweepAlreadyRunningError",
]
