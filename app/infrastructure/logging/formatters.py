"""Custom log processors for structured logging.

Each factory returns a structlog processor. ``configure_logging`` installs
them in the pipeline ahead of the renderer.

Usage:
    from infrastructure.logging.formatters import add_app_info, mask_sensitive_data
"""

from typing import Any


def add_app_info(app_name: str, app_version: str = "unknown"):
    """Create a processor that adds application name and version to log entries.

    Args:
        app_name: Name of the application.
        app_version: Version string, usually the deployed git SHA.

    Returns:
        A structlog processor function.
    """

    def processor(
        logger: Any, method_name: str, event_dict: dict[str, Any]
    ) -> dict[str, Any]:
        event_dict["app_name"] = app_name
        event_dict["app_version"] = app_version
        return event_dict

    return processor


# Key names (or key suffixes after an underscore) whose values are masked
SENSITIVE_PATTERNS = frozenset(
    {
        "password",
        "secret",
        "client_secret",
        "secret_value",
        "connection_string",
        "token",
        "access_token",
        "api_key",
        "apikey",
        "authorization",
        "private_key",
        "cookie",
        "jwt",
        "bearer",
    }
)


def _is_sensitive_key(key: str, patterns: frozenset[str]) -> bool:
    key_lower = key.lower()
    return any(
        key_lower == pattern or key_lower.endswith(f"_{pattern}")
        for pattern in patterns
    )


def mask_sensitive_data(
    mask_value: str = "***REDACTED***",
    additional_patterns: frozenset[str] | None = None,
):
    """Create a processor that masks sensitive values in log entries.

    A key is sensitive when it equals a pattern or ends with ``_<pattern>``
    (case-insensitive). Identifiers such as ``secret_name`` or
    ``credential_id`` stay readable; ``password`` or ``graph_client_secret``
    do not.

    Args:
        mask_value: The string to replace sensitive values with.
        additional_patterns: Extra patterns to consider sensitive.

    Returns:
        A structlog processor function.
    """
    patterns = SENSITIVE_PATTERNS
    if additional_patterns:
        patterns = patterns | additional_patterns

    def processor(
        logger: Any, method_name: str, event_dict: dict[str, Any]
    ) -> dict[str, Any]:
        masked_dict = {}
        for key, value in event_dict.items():
            if value is not None and _is_sensitive_key(key, patterns):
                masked_dict[key] = mask_value
            else:
                masked_dict[key] = value
        return masked_dict

    return processor


def truncate_large_values(max_length: int = 500):
    """Create a processor that truncates overly large string values.

    Args:
        max_length: Maximum string length before truncation.

    Returns:
        A structlog processor function.
    """

    def processor(
        logger: Any, method_name: str, event_dict: dict[str, Any]
    ) -> dict[str, Any]:
        for key, value in event_dict.items():
            if isinstance(value, str) and len(value) > max_length:
                event_dict[key] = (
                    value[:max_length] + f"...[truncated, {len(value)} chars total]"
                )
        return event_dict

    return processor


def add_environment_info(environment: str):
    """Create a processor that adds the environment name to log entries."""

    def processor(
        logger: Any, method_name: str, event_dict: dict[str, Any]
    ) -> dict[str, Any]:
        event_dict["environment"] = environment
        return event_dict

    return processor
