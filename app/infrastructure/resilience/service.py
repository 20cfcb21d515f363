"""Resilience service for dependency injection.

Builds one ResiliencePolicy per external service from settings and owns
their circuit breakers.
"""

from typing import Any, Dict, Optional, TYPE_CHECKING

from infrastructure.logging import get_module_logger
from infrastructure.operations import is_transient_error
from infrastructure.resilience.circuit_breaker import CircuitBreaker, CircuitState
from infrastructure.resilience.policies import ResiliencePolicy
from infrastructure.resilience.retry import BackoffStrategy, RetryConfig

if TYPE_CHECKING:
    from infrastructure.configuration import Settings

logger = get_module_logger()

DIRECTORY = "directory"
SECRET_STORE = "secret_store"
RECORD_STORE = "record_store"


class ResilienceService:
    """Class-based resilience service.

    Usage:
        from infrastructure.services import get_resilience_service

        resilience = get_resilience_service()
        policy = resilience.policy_for("directory")
        exists = await policy.execute(lambda: client.group_exists(group_id))
    """

    def __init__(self, settings: "Settings"):
        """Initialize resilience service.

        Args:
            settings: Settings instance (required, passed from provider).
        """
        self._settings = settings.resilience
        self._circuit_breakers: Dict[str, CircuitBreaker] = {}
        self._policies: Dict[str, ResiliencePolicy] = {}

        cfg = self._settings
        self._policies[DIRECTORY] = ResiliencePolicy(
            name=DIRECTORY,
            timeout_seconds=cfg.directory_timeout_seconds,
            retry=RetryConfig(
                max_retries=cfg.directory_max_retries,
                base_delay_seconds=cfg.directory_retry_base_delay_seconds,
                max_delay_seconds=cfg.directory_retry_max_delay_seconds,
                backoff=BackoffStrategy.EXPONENTIAL,
            ),
            breaker=self._breaker_for(DIRECTORY),
        )
        self._policies[SECRET_STORE] = ResiliencePolicy(
            name=SECRET_STORE,
            timeout_seconds=cfg.secret_store_timeout_seconds,
            retry=RetryConfig(
                max_retries=cfg.secret_store_max_retries,
                base_delay_seconds=cfg.secret_store_retry_delay_seconds,
                max_delay_seconds=(
                    cfg.secret_store_retry_delay_seconds
                    * max(cfg.secret_store_max_retries, 1)
                ),
                backoff=BackoffStrategy.LINEAR,
            ),
            breaker=self._breaker_for(SECRET_STORE),
        )
        self._policies[RECORD_STORE] = ResiliencePolicy(
            name=RECORD_STORE,
            timeout_seconds=cfg.record_store_timeout_seconds,
            retry=RetryConfig(
                max_retries=cfg.record_store_max_retries,
                base_delay_seconds=cfg.record_store_retry_base_delay_seconds,
                max_delay_seconds=cfg.record_store_retry_max_delay_seconds,
                backoff=BackoffStrategy.EXPONENTIAL,
            ),
            breaker=self._breaker_for(RECORD_STORE),
        )

    def _breaker_for(self, name: str) -> Optional[CircuitBreaker]:
        cfg = self._settings
        if not cfg.circuit_breaker_enabled:
            return None

        cb = CircuitBreaker(
            name=name,
            failure_ratio=cfg.circuit_breaker_failure_ratio,
            sampling_seconds=cfg.circuit_breaker_sampling_seconds,
            minimum_throughput=cfg.circuit_breaker_minimum_throughput,
            break_seconds=cfg.circuit_breaker_break_seconds,
            failure_predicate=is_transient_error,
        )
        self._circuit_breakers[name] = cb

        logger.info(
            "circuit_breaker_created",
            name=name,
            failure_ratio=cfg.circuit_breaker_failure_ratio,
            break_seconds=cfg.circuit_breaker_break_seconds,
        )
        return cb

    def policy_for(self, name: str) -> ResiliencePolicy:
        """Get the policy for a service.

        Raises:
            KeyError: If no policy is configured for ``name``
        """
        try:
            return self._policies[name]
        except KeyError:
            raise KeyError(f"No resilience policy configured for '{name}'") from None

    @property
    def directory(self) -> ResiliencePolicy:
        return self._policies[DIRECTORY]

    @property
    def secret_store(self) -> ResiliencePolicy:
        return self._policies[SECRET_STORE]

    @property
    def record_store(self) -> ResiliencePolicy:
        return self._policies[RECORD_STORE]

    def get_circuit_breaker(self, name: str) -> Optional[CircuitBreaker]:
        """Get a circuit breaker by name, or None if breakers are disabled."""
        return self._circuit_breakers.get(name)

    def get_all_circuit_breaker_stats(self) -> Dict[str, Dict[str, Any]]:
        """Get statistics for all circuit breakers owned by this service."""
        return {name: cb.get_stats() for name, cb in self._circuit_breakers.items()}

    def get_open_circuit_breakers(self) -> list[str]:
        """Get list of circuit breakers that are currently OPEN."""
        return [
            name
            for name, cb in self._circuit_breakers.items()
            if cb.state == CircuitState.OPEN
        ]

    def reset_circuit_breaker(self, name: str) -> None:
        """Manually reset a circuit breaker.

        Raises:
            KeyError: If circuit breaker not found
        """
        cb = self._circuit_breakers.get(name)
        if not cb:
            raise KeyError(f"Circuit breaker '{name}' not found")

        cb.reset()
