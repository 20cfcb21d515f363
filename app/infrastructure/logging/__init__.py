"""Structured logging infrastructure.

Centralized structlog configuration and helpers for the state reconciler.

Public API:
    - configure_logging(): Initialize logging for the process
    - get_logger(): Get a logger instance with a specific name
    - get_module_logger(): Get a logger for the calling module
    - bind_sweep_context(): Context manager for sweep-scoped logging
    - get_correlation_id(): Get current correlation ID from context
    - set_correlation_id(): Set correlation ID in context
    - clear_sweep_context(): Clear all sweep context

Formatters:
    - add_app_info(): Processor to add app name/version
    - mask_sensitive_data(): Processor to redact sensitive fields
    - truncate_large_values(): Processor to limit string lengths
    - add_environment_info(): Processor to add environment name

Example:
    from infrastructure.logging import (
        configure_logging,
        get_module_logger,
        bind_sweep_context,
    )

    configure_logging()

    logger = get_module_logger()

    with bind_sweep_context(tenant_id="42"):
        logger.info("sweep_started")
"""

from infrastructure.logging.setup import (
    configure_logging,
    get_logger,
    get_module_logger,
)

from infrastructure.logging.context import (
    bind_sweep_context,
    get_correlation_id,
    set_correlation_id,
    clear_sweep_context,
)

from infrastructure.logging.formatters import (
    add_app_info,
    mask_sensitive_data,
    truncate_large_values,
    add_environment_info,
    SENSITIVE_PATTERNS,
)

__all__ = [
    # Setup
    "configure_logging",
    "get_logger",
    "get_module_logger",
    # Context
    "bind_sweep_context",
    "get_correlation_id",
    "set_correlation_id",
    "clear_sweep_context",
    # Formatters
    "add_app_info",
    "mask_sensitive_data",
    "truncate_large_values",
    "add_environment_info",
    "SENSITIVE_PATTERNS",
]
