"""Unit tests for OperationResult and OperationStatus."""

import pytest

from infrastructure.operations import OperationResult, OperationStatus


@pytest.mark.unit
class TestOperationResult:
    def test_success(self):
        result = OperationResult.success(data="grp-1")

        assert result.is_success
        assert not result.is_transient
        assert result.data == "grp-1"
        assert result.message == "ok"

    def test_transient_error(self):
        result = OperationResult.transient_error(
            "throttled", error_code="RATE_LIMITED", retry_after=30
        )

        assert not result.is_success
        assert result.is_transient
        assert result.retry_after == 30

    def test_permanent_error(self):
        result = OperationResult.permanent_error("bad id", error_code="HTTP_ERROR")

        assert result.status == OperationStatus.PERMANENT_ERROR
        assert not result.is_transient

    def test_not_found_has_default_code(self):
        result = OperationResult.not_found("Tenant 9 not found")

        assert result.status == OperationStatus.NOT_FOUND
        assert result.error_code == "NOT_FOUND"

    def test_error_carries_payload(self):
        result = OperationResult.error(
            OperationStatus.UNAUTHORIZED, "denied", data={"scope": "Group.Read"}
        )

        assert result.data == {"scope": "Group.Read"}

    def test_results_compare_by_value(self):
        assert OperationResult.success("g") == OperationResult.success("g")


@pytest.mark.unit
@pytest.mark.parametrize(
    "status,retryable",
    [
        (OperationStatus.SUCCESS, False),
        (OperationStatus.TRANSIENT_ERROR, True),
        (OperationStatus.PERMANENT_ERROR, False),
        (OperationStatus.UNAUTHORIZED, False),
        (OperationStatus.NOT_FOUND, False),
    ],
)
def test_only_transient_status_is_retryable(status, retryable):
    assert status.is_retryable is retryable
