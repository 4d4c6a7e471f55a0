"""
Circuit breakers for external service calls.

- CLOSED: normal operation, calls pass through
- OPEN: too many consecutive failures, calls fail immediately
- HALF_OPEN: after reset_timeout one trial call decides whether to close again
"""

import logging

from pybreaker import CircuitBreaker, CircuitBreakerError, CircuitBreakerListener

logger = logging.getLogger(__name__)


class LoggingListener(CircuitBreakerListener):
    """Logs state changes so an opening circuit shows up in alerts."""

    def __init__(self, name: str) -> None:
        self.name = name

    def state_change(self, cb, old_state, new_state) -> None:
        logger.warning(
            "Circuit breaker state changed",
            extra={
                "breaker_name": self.name,
                "old_state": old_state.name if old_state else None,
                "new_state": new_state.name,
            },
        )


stripe_breaker = CircuitBreaker(
    fail_max=5,
    reset_timeout=60,
    name="stripe_circuit_breaker",
    listeners=[LoggingListener("stripe")],
)


__all__ = [
    "stripe_breaker",
    "CircuitBreakerError",
]
