"""Operation result types and status enums.

Standardized result types for reconciliation operations, plus error
classifiers for directory and secret vault exceptions.
"""

from infrastructure.operations.classifiers import (
    classify_azure_error,
    classify_database_error,
    classify_error,
    classify_http_error,
    is_transient_error,
)
from infrastructure.operations.result import OperationResult
from infrastructure.operations.status import OperationStatus

__all__ = [
    "OperationResult",
    "OperationStatus",
    "classify_http_error",
    "classify_azure_error",
    "classify_database_error",
    "classify_error",
    "is_transient_error",
]
