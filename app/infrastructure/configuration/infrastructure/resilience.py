"""Resilience policy settings for external calls."""

from pydantic import Field

from infrastructure.configuration.base import InfrastructureSettings


class ResilienceSettings(InfrastructureSettings):
    """Timeouts, retries and circuit breaker values per external service.

    Three services are protected: ``directory`` (Graph), ``secret_store``
    (Key Vault) and ``record_store`` (the relational database).

    Environment Variables:
        DIRECTORY_TIMEOUT_SECONDS: Per-attempt timeout for directory calls
        DIRECTORY_MAX_RETRIES: Retries after the first directory attempt
        DIRECTORY_RETRY_BASE_DELAY_SECONDS: Exponential backoff base
        DIRECTORY_RETRY_MAX_DELAY_SECONDS: Exponential backoff cap
        SECRET_STORE_TIMEOUT_SECONDS: Per-attempt timeout for vault calls
        SECRET_STORE_MAX_RETRIES: Retries after the first vault attempt
        SECRET_STORE_RETRY_DELAY_SECONDS: Linear delay between vault attempts
        RECORD_STORE_TIMEOUT_SECONDS: Per-attempt timeout for database work
        RECORD_STORE_MAX_RETRIES: Retries after the first database attempt
        RECORD_STORE_RETRY_BASE_DELAY_SECONDS: Exponential backoff base
        RECORD_STORE_RETRY_MAX_DELAY_SECONDS: Exponential backoff cap
        CIRCUIT_BREAKER_ENABLED: Enable circuit breakers
        CIRCUIT_BREAKER_FAILURE_RATIO: Failure ratio that opens the circuit
        CIRCUIT_BREAKER_SAMPLING_SECONDS: Sliding window for the ratio
        CIRCUIT_BREAKER_MINIMUM_THROUGHPUT: Calls required before opening
        CIRCUIT_BREAKER_BREAK_SECONDS: How long an open circuit stays open

    Example:
        ```python
        from infrastructure.services import get_settings

        settings = get_settings()

        timeout = settings.resilience.directory_timeout_seconds
        ```
    """

    directory_timeout_seconds: float = Field(
        default=45.0, alias="DIRECTORY_TIMEOUT_SECONDS"
    )
    directory_max_retries: int = Field(default=3, alias="DIRECTORY_MAX_RETRIES")
    directory_retry_base_delay_seconds: float = Field(
        default=1.0, alias="DIRECTORY_RETRY_BASE_DELAY_SECONDS"
    )
    directory_retry_max_delay_seconds: float = Field(
        default=30.0, alias="DIRECTORY_RETRY_MAX_DELAY_SECONDS"
    )

    secret_store_timeout_seconds: float = Field(
        default=30.0, alias="SECRET_STORE_TIMEOUT_SECONDS"
    )
    secret_store_max_retries: int = Field(default=2, alias="SECRET_STORE_MAX_RETRIES")
    secret_store_retry_delay_seconds: float = Field(
        default=2.0, alias="SECRET_STORE_RETRY_DELAY_SECONDS"
    )

    record_store_timeout_seconds: float = Field(
        default=30.0, alias="RECORD_STORE_TIMEOUT_SECONDS"
    )
    record_store_max_retries: int = Field(default=3, alias="RECORD_STORE_MAX_RETRIES")
    record_store_retry_base_delay_seconds: float = Field(
        default=1.0, alias="RECORD_STORE_RETRY_BASE_DELAY_SECONDS"
    )
    record_store_retry_max_delay_seconds: float = Field(
        default=10.0, alias="RECORD_STORE_RETRY_MAX_DELAY_SECONDS"
    )

    circuit_breaker_enabled: bool = Field(
        default=True, alias="CIRCUIT_BREAKER_ENABLED"
    )
    circuit_breaker_failure_ratio: float = Field(
        default=0.5, alias="CIRCUIT_BREAKER_FAILURE_RATIO", gt=0, le=1
    )
    circuit_breaker_sampling_seconds: float = Field(
        default=30.0, alias="CIRCUIT_BREAKER_SAMPLING_SECONDS"
    )
    circuit_breaker_minimum_throughput: int = Field(
        default=5, alias="CIRCUIT_BREAKER_MINIMUM_THROUGHPUT", ge=1
    )
    circuit_breaker_break_seconds: float = Field(
        default=60.0, alias="CIRCUIT_BREAKER_BREAK_SECONDS"
    )
