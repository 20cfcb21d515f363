"""Unit tests for sweep-scoped logging context."""

import pytest
import structlog

from infrastructure.logging.context import (
    bind_sweep_context,
    clear_sweep_context,
    get_correlation_id,
    set_correlation_id,
)


@pytest.fixture(autouse=True)
def clean_context():
    clear_sweep_context()
    yield
    clear_sweep_context()


@pytest.mark.unit
class TestBindSweepContext:
    """Test suite for bind_sweep_context."""

    def test_binds_tenant_and_generated_correlation_id(self):
        with bind_sweep_context(tenant_id="42") as correlation_id:
            ctx = structlog.contextvars.get_contextvars()

            assert ctx["tenant_id"] == "42"
            assert ctx["correlation_id"] == correlation_id
            assert len(correlation_id) == 36

    def test_unbinds_on_exit(self):
        with bind_sweep_context(tenant_id="42", phase="repair"):
            pass

        assert structlog.contextvars.get_contextvars() == {}

    def test_unbinds_on_error(self):
        with pytest.raises(RuntimeError):
            with bind_sweep_context(tenant_id="42"):
                raise RuntimeError("sweep failed")

        assert get_correlation_id() is None

    def test_explicit_correlation_id(self):
        with bind_sweep_context(correlation_id="sweep-1") as correlation_id:
            assert correlation_id == "sweep-1"
            assert "tenant_id" not in structlog.contextvars.get_contextvars()

    def test_nested_binding_restores_outer_values(self):
        with bind_sweep_context(tenant_id="1", correlation_id="outer"):
            with bind_sweep_context(tenant_id="2", correlation_id="inner"):
                assert get_correlation_id() == "inner"

            ctx = structlog.contextvars.get_contextvars()
            assert ctx["tenant_id"] == "1"
            assert ctx["correlation_id"] == "outer"

    def test_unrelated_context_is_preserved(self):
        structlog.contextvars.bind_contextvars(job="scheduled_sweep")

        with bind_sweep_context(tenant_id="42"):
            pass

        assert structlog.contextvars.get_contextvars() == {"job": "scheduled_sweep"}


@pytest.mark.unit
def test_set_and_clear_correlation_id():
    set_correlation_id("abc")
    assert get_correlation_id() == "abc"

    clear_sweep_context()

    assert get_correlation_id() is None
