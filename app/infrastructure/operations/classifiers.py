"""Error classifiers for external-service exceptions.

Converts exceptions raised while talking to the directory (httpx against
Microsoft Graph) or the secret vault (Azure SDK) into standardized
OperationResult objects, and decides which exceptions are worth retrying.

Key Functions:
- classify_http_error(): httpx errors → OperationResult
- classify_azure_error(): azure-core errors → OperationResult
- classify_error(): dispatch to the right classifier
- classify_database_error(): SQLAlchemy errors → OperationResult
- is_transient_error(): retry predicate used by resilience policies

Usage:
    from infrastructure.operations.classifiers import classify_error

    try:
        exists = await directory.group_exists(group_id)
    except Exception as exc:
        return classify_error(exc)
"""

import asyncio
from typing import Optional

import httpx
from sqlalchemy import exc as sa_exc
from azure.core.exceptions import (
    ClientAuthenticationError,
    HttpResponseError,
    ResourceNotFoundError,
    ServiceRequestError,
    ServiceResponseError,
)

from infrastructure.operations.result import OperationResult
from infrastructure.operations.status import OperationStatus

DEFAULT_RETRY_AFTER_SECONDS = 60


def _retry_after(headers) -> int:
    if headers is None:
        return DEFAULT_RETRY_AFTER_SECONDS
    header_value = headers.get("retry-after")
    try:
        return int(header_value) if header_value else DEFAULT_RETRY_AFTER_SECONDS
    except (ValueError, TypeError):
        return DEFAULT_RETRY_AFTER_SECONDS


def _classify_status_code(
    status_code: Optional[int], service: str, detail: str, retry_after: int
) -> OperationResult:
    if status_code == 429:
        return OperationResult.error(
            OperationStatus.TRANSIENT_ERROR,
            f"{service} rate limited",
            error_code="RATE_LIMITED",
            retry_after=retry_after,
        )
    if status_code == 401:
        return OperationResult.error(
            OperationStatus.UNAUTHORIZED,
            f"{service} authentication failed",
            error_code="UNAUTHORIZED",
        )
    if status_code == 403:
        return OperationResult.error(
            OperationStatus.UNAUTHORIZED,
            f"{service} authorization denied",
            error_code="FORBIDDEN",
        )
    if status_code == 404:
        return OperationResult.not_found(f"{service} resource not found")
    if status_code in (408,) or (status_code and 500 <= status_code < 600):
        return OperationResult.transient_error(
            f"{service} server error ({status_code})",
            error_code="SERVER_ERROR",
        )
    if status_code and 400 <= status_code < 500:
        return OperationResult.permanent_error(
            f"{service} client error ({status_code}): {detail}",
            error_code="HTTP_ERROR",
        )
    return OperationResult.permanent_error(
        f"{service} error: {detail}",
        error_code="UNKNOWN_ERROR",
    )


def classify_http_error(exc: Exception) -> OperationResult:
    """Classify httpx errors raised by the directory adapter.

    Status Code Mapping:
    - 429: Rate limiting → TRANSIENT_ERROR with retry_after
    - 401/403: → UNAUTHORIZED
    - 404: → NOT_FOUND
    - 408, 5xx: → TRANSIENT_ERROR
    - Other 4xx: → PERMANENT_ERROR

    Transport failures (connect errors, read timeouts) are transient.

    Args:
        exc: Exception raised while calling the directory API

    Returns:
        OperationResult with appropriate status, message, error_code, and
        retry_after (if applicable)
    """
    if isinstance(exc, httpx.HTTPStatusError):
        response = exc.response
        return _classify_status_code(
            response.status_code,
            "Directory API",
            response.text[:200] if response is not None else str(exc),
            _retry_after(response.headers),
        )

    if isinstance(exc, (httpx.TransportError, asyncio.TimeoutError)):
        return OperationResult.transient_error(
            f"Connection error: {type(exc).__name__}: {str(exc)}",
            error_code="CONNECTION_ERROR",
        )

    return OperationResult.permanent_error(
        f"Directory API error: {type(exc).__name__}: {str(exc)}",
        error_code="UNKNOWN_ERROR",
    )


def classify_azure_error(exc: Exception) -> OperationResult:
    """Classify azure-core exceptions raised by the secret vault adapter.

    Error Mapping:
    - ResourceNotFoundError → NOT_FOUND
    - ClientAuthenticationError → UNAUTHORIZED
    - ServiceRequestError / ServiceResponseError → TRANSIENT_ERROR
    - HttpResponseError → by status code (429 and 5xx are transient)

    Args:
        exc: Exception raised by the Azure SDK

    Returns:
        OperationResult with appropriate status
    """
    if isinstance(exc, ResourceNotFoundError):
        return OperationResult.not_found("Secret vault resource not found")

    if isinstance(exc, ClientAuthenticationError):
        return OperationResult.error(
            OperationStatus.UNAUTHORIZED,
            "Secret vault authentication failed",
            error_code="UNAUTHORIZED",
        )

    if isinstance(
        exc, (ServiceRequestError, ServiceResponseError, asyncio.TimeoutError)
    ):
        return OperationResult.transient_error(
            f"Secret vault connection error: {type(exc).__name__}: {str(exc)}",
            error_code="CONNECTION_ERROR",
        )

    if isinstance(exc, HttpResponseError):
        response = getattr(exc, "response", None)
        headers = getattr(response, "headers", None)
        return _classify_status_code(
            exc.status_code, "Secret vault", str(exc.message), _retry_after(headers)
        )

    return OperationResult.permanent_error(
        f"Secret vault error: {type(exc).__name__}: {str(exc)}",
        error_code="UNKNOWN_ERROR",
    )


def classify_error(exc: Exception) -> OperationResult:
    """Classify any exception raised by an external call.

    Exceptions carrying an ``operation_result`` attribute (for example an
    open circuit) are returned as-is.
    """
    carried = getattr(exc, "operation_result", None)
    if isinstance(carried, OperationResult):
        return carried
    if isinstance(exc, (httpx.HTTPError, httpx.InvalidURL)):
        return classify_http_error(exc)
    if isinstance(
        exc,
        (
            HttpResponseError,
            ServiceRequestError,
            ServiceResponseError,
            ClientAuthenticationError,
        ),
    ):
        return classify_azure_error(exc)
    if isinstance(exc, sa_exc.SQLAlchemyError):
        return classify_database_error(exc)
    if isinstance(exc, (asyncio.TimeoutError, ConnectionError)):
        return OperationResult.transient_error(
            f"{type(exc).__name__}: {str(exc)}",
            error_code="CONNECTION_ERROR",
        )
    if getattr(exc, "retryable", False):
        return OperationResult.transient_error(str(exc), error_code="TRANSIENT")
    return OperationResult.permanent_error(
        f"{type(exc).__name__}: {str(exc)}", error_code="UNKNOWN_ERROR"
    )


def is_transient_error(exc: BaseException) -> bool:
    """Return True if ``exc`` should be retried by a resilience policy.

    Network errors, timeouts, HTTP 429/5xx and Azure service request or
    response errors are transient. Exceptions may opt in with a truthy
    ``retryable`` attribute.
    """
    if not isinstance(exc, Exception):
        return False
    if getattr(exc, "retryable", None) is not None:
        return bool(exc.retryable)
    return classify_error(exc).is_transient


def classify_database_error(exc: Exception) -> OperationResult:
    """Classify SQLAlchemy errors raised by the record store.

    Lost connections, locked databases and pool timeouts are transient;
    integrity and programming errors are permanent.
    """
    if isinstance(exc, sa_exc.DBAPIError) and exc.connection_invalidated:
        return OperationResult.transient_error(
            "Record store connection lost", error_code="CONNECTION_ERROR"
        )
    if isinstance(exc, (sa_exc.OperationalError, sa_exc.TimeoutError)):
        return OperationResult.transient_error(
            f"Record store unavailable: {type(exc).__name__}",
            error_code="DATABASE_UNAVAILABLE",
        )
    return OperationResult.permanent_error(
        f"Record store error: {type(exc).__name__}: {str(exc)}",
        error_code="DATABASE_ERROR",
    )
