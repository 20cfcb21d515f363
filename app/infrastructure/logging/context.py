"""Sweep context binding for structured logging.

Binds sweep-scoped context (tenant, correlation id) to structlog's context
variables so every log entry emitted while a tenant is being reconciled
carries the same identifiers.

Usage:
    from infrastructure.logging import bind_sweep_context

    with bind_sweep_context(tenant_id="42"):
        logger.info("validation_started")
"""

import uuid
from contextlib import contextmanager
from typing import Optional, Any, Generator
import structlog


@contextmanager
def bind_sweep_context(
    tenant_id: Optional[str] = None,
    correlation_id: Optional[str] = None,
    **extra_context: Any,
) -> Generator[str, None, None]:
    """Bind sweep-scoped context to all logs within the context manager.

    Args:
        tenant_id: Tenant being reconciled, if any.
        correlation_id: Sweep identifier. Auto-generated if not provided.
        **extra_context: Additional key-value pairs to include in logs.

    Yields:
        The correlation ID bound for the block.

    Example:
        with bind_sweep_context(tenant_id=tenant_id) as correlation_id:
            result = await validator.validate_all(tenant_id)
    """
    context: dict[str, Any] = {"correlation_id": correlation_id or str(uuid.uuid4())}

    if tenant_id is not None:
        context["tenant_id"] = tenant_id

    context.update(extra_context)

    previous = {
        key: value
        for key, value in structlog.contextvars.get_contextvars().items()
        if key in context
    }
    structlog.contextvars.bind_contextvars(**context)
    try:
        yield context["correlation_id"]
    finally:
        structlog.contextvars.unbind_contextvars(*context.keys())
        if previous:
            structlog.contextvars.bind_contextvars(**previous)


def get_correlation_id() -> Optional[str]:
    """Get the current correlation ID from the logging context."""
    ctx = structlog.contextvars.get_contextvars()
    return ctx.get("correlation_id")


def set_correlation_id(correlation_id: str) -> None:
    """Set the correlation ID in the current logging context."""
    structlog.contextvars.bind_contextvars(correlation_id=correlation_id)


def clear_sweep_context() -> None:
    """Clear all sweep-scoped context from the logging context.

    Example:
        try:
            await coordinator.sweep_all_tenants()
        finally:
            clear_sweep_context()
    """
    structlog.contextvars.clear_contextvars()
