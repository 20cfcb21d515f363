"""Operation status enumeration.

Status codes for operation results. Reconciliation uses them to tell a
drift that needs attention (``NOT_FOUND``, ``PERMANENT_ERROR``) from a
check that could not be completed (``TRANSIENT_ERROR``).
"""

from enum import Enum


class OperationStatus(Enum):
    """Status codes for operation results.

    Attributes:
        SUCCESS: Operation completed successfully
        TRANSIENT_ERROR: Retryable error (network, timeout, throttling)
        PERMANENT_ERROR: Non-retryable error (validation, bad input)
        UNAUTHORIZED: Authentication or authorization failure
        NOT_FOUND: Record or external resource does not exist
    """

    SUCCESS = "success"
    TRANSIENT_ERROR = "transient_error"
    PERMANENT_ERROR = "permanent_error"
    UNAUTHORIZED = "unauthorized"
    NOT_FOUND = "not_found"

    @property
    def is_retryable(self) -> bool:
        return self is OperationStatus.TRANSIENT_ERROR
