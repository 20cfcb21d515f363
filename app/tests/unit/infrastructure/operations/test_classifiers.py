"""Unit tests for external error classification."""

import asyncio

import httpx
import pytest
from azure.core.exceptions import (
    ClientAuthenticationError,
    HttpResponseError,
    ResourceNotFoundError,
    ServiceRequestError,
)
from sqlalchemy import exc as sa_exc

from infrastructure.operations import (
    OperationResult,
    OperationStatus,
    classify_azure_error,
    classify_database_error,
    classify_error,
    classify_http_error,
    is_transient_error,
)


def http_status_error(
    status_code: int, headers=None, text=""
) -> httpx.HTTPStatusError:
    request = httpx.Request("GET", "https://graph.microsoft.com/v1.0/groups/g1")
    response = httpx.Response(
        status_code, headers=headers or {}, text=text, request=request
    )
    return httpx.HTTPStatusError("failed", request=request, response=response)


def azure_status_error(status_code: int, message="failed") -> HttpResponseError:
    error = HttpResponseError(message=message)
    error.status_code = status_code
    return error


@pytest.mark.unit
class TestClassifyHttpError:
    """Test suite for classify_http_error."""

    def test_rate_limit_uses_retry_after(self):
        result = classify_http_error(http_status_error(429, {"Retry-After": "7"}))

        assert result.status == OperationStatus.TRANSIENT_ERROR
        assert result.error_code == "RATE_LIMITED"
        assert result.retry_after == 7

    def test_rate_limit_defaults_retry_after(self):
        result = classify_http_error(http_status_error(429, {"Retry-After": "soon"}))

        assert result.retry_after == 60

    @pytest.mark.parametrize("status_code", [500, 502, 503, 504, 408])
    def test_server_errors_are_transient(self, status_code):
        result = classify_http_error(http_status_error(status_code))

        assert result.is_transient
        assert result.error_code == "SERVER_ERROR"

    @pytest.mark.parametrize(
        "status_code,error_code", [(401, "UNAUTHORIZED"), (403, "FORBIDDEN")]
    )
    def test_auth_failures(self, status_code, error_code):
        result = classify_http_error(http_status_error(status_code))

        assert result.status == OperationStatus.UNAUTHORIZED
        assert result.error_code == error_code

    def test_not_found(self):
        assert (
            classify_http_error(http_status_error(404)).status
            == OperationStatus.NOT_FOUND
        )

    def test_other_client_errors_are_permanent(self):
        result = classify_http_error(http_status_error(400, text="Invalid filter"))

        assert result.status == OperationStatus.PERMANENT_ERROR
        assert "Invalid filter" in result.message

    def test_transport_errors_are_transient(self):
        for exc in (httpx.ConnectError("refused"), httpx.ReadTimeout("slow")):
            result = classify_http_error(exc)
            assert result.is_transient
            assert result.error_code == "CONNECTION_ERROR"


@pytest.mark.unit
class TestClassifyAzureError:
    def test_not_found(self):
        result = classify_azure_error(ResourceNotFoundError("SecretNotFound"))

        assert result.status == OperationStatus.NOT_FOUND

    def test_authentication(self):
        result = classify_azure_error(ClientAuthenticationError("expired"))

        assert result.status == OperationStatus.UNAUTHORIZED

    def test_service_request_error_is_transient(self):
        assert classify_azure_error(ServiceRequestError("dns")).is_transient

    def test_throttling_is_transient(self):
        result = classify_azure_error(azure_status_error(429))

        assert result.is_transient
        assert result.error_code == "RATE_LIMITED"

    def test_forbidden_is_unauthorized(self):
        result = classify_azure_error(azure_status_error(403, "Access denied"))

        assert result.status == OperationStatus.UNAUTHORIZED


@pytest.mark.unit
class TestClassifyDatabaseError:
    def test_operational_error_is_transient(self):
        error = sa_exc.OperationalError("SELECT 1", {}, Exception("database is locked"))

        result = classify_database_error(error)

        assert result.is_transient
        assert result.error_code == "DATABASE_UNAVAILABLE"

    def test_invalidated_connection_is_transient(self):
        error = sa_exc.DBAPIError(
            "SELECT 1", {}, Exception("gone"), connection_invalidated=True
        )

        assert classify_database_error(error).error_code == "CONNECTION_ERROR"

    def test_integrity_error_is_permanent(self):
        error = sa_exc.IntegrityError("INSERT", {}, Exception("UNIQUE failed"))

        result = classify_database_error(error)

        assert result.status == OperationStatus.PERMANENT_ERROR
        assert result.error_code == "DATABASE_ERROR"


@pytest.mark.unit
class TestClassifyError:
    """Test suite for the classify_error dispatcher."""

    def test_carried_result_is_returned_as_is(self):
        carried = OperationResult.transient_error("open", error_code="CIRCUIT_OPEN")
        error = RuntimeError("circuit open")
        error.operation_result = carried

        assert classify_error(error) is carried

    def test_dispatches_by_library(self):
        assert classify_error(http_status_error(503)).error_code == "SERVER_ERROR"
        assert (
            classify_error(ResourceNotFoundError("x")).status
            == OperationStatus.NOT_FOUND
        )
        assert (
            classify_error(sa_exc.OperationalError("q", {}, Exception())).error_code
            == "DATABASE_UNAVAILABLE"
        )

    def test_builtin_timeouts_and_connection_errors(self):
        assert classify_error(asyncio.TimeoutError()).is_transient
        assert classify_error(ConnectionResetError("reset")).is_transient

    def test_retryable_attribute(self):
        error = RuntimeError("try later")
        error.retryable = True

        result = classify_error(error)

        assert result.is_transient
        assert result.message == "try later"

    def test_unknown_errors_are_permanent(self):
        result = classify_error(ValueError("bad"))

        assert result.status == OperationStatus.PERMANENT_ERROR
        assert result.message == "ValueError: bad"
        assert result.error_code == "UNKNOWN_ERROR"


@pytest.mark.unit
class TestIsTransientError:
    def test_retryable_attribute_wins(self):
        error = ConnectionError("reset")
        error.retryable = False

        assert is_transient_error(error) is False

    def test_classification_decides_otherwise(self):
        assert is_transient_error(http_status_error(502)) is True
        assert is_transient_error(http_status_error(404)) is False

    def test_base_exceptions_are_never_transient(self):
        assert is_transient_error(asyncio.CancelledError()) is False
