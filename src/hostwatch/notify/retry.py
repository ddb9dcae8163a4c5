"""Retry and circuit breaker policies for the notification transport.

Requests are retried with exponential backoff on connection errors and
timeouts, and after the server-given delay on rate limits. Consecutive delivery failures open a circuit
breaker so a dead transport is not hammered on every tick.

Example usage:
    from hostwatch.notify.retry import create_retry_decorator

    retry = create_retry_decorator(max_retries=3)

    @retry
    def post_message():
        return client.post("/channels/1/messages", json=payload)
"""

import logging
from typing import Any, Callable

import httpx
import pybreaker
import structlog
from tenacity import (
    before_sleep_log,
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)
from tenacity.wait import wait_base

from hostwatch.notify.exceptions import RateLimitError

log = structlog.get_logger()

CIRCUIT_FAIL_MAX = 3  # open after 3 consecutive failures
CIRCUIT_RESET_TIMEOUT = 60  # try again after 60 seconds


class wait_retry_after(wait_base):
    """Wait as long as a 429 response asked, otherwise use the fallback."""

    def __init__(self, fallback: wait_base) -> None:
        self.fallback = fallback

    def __call__(self, retry_state: Any) -> float:
        outcome = retry_state.outcome
        error = outcome.exception() if outcome is not None else None
        if isinstance(error, RateLimitError):
            return max(0.0, error.retry_after)
        return self.fallback(retry_state)


def create_retry_decorator(
    max_retries: int = 3,
    min_wait: float = 1,
    max_wait: float = 10,
    log_level: int = logging.WARNING,
) -> Callable[[Callable[..., Any]], Callable[..., Any]]:
    """Create a tenacity retry decorator with exponential backoff.

    Args:
        max_retries: Maximum number of attempts.
        min_wait: Minimum wait time in seconds between retries.
        max_wait: Maximum wait time in seconds between retries.
        log_level: Log level for retry attempt messages.

    Returns:
        A tenacity retry decorator.

    Backoff sequence (with min=1, max=10):
        Attempt 1: immediate
        Attempt 2: wait 1-2 seconds
        Attempt 3: wait 2-4 seconds
        Capped at 10 seconds max.

    A rate-limited attempt waits for the retry_after Discord sent instead.
    """
    stdlib_logger = logging.getLogger(__name__)

    return retry(
        stop=stop_after_attempt(max_retries),
        wait=wait_retry_after(
            wait_exponential(multiplier=1, min=min_wait, max=max_wait)
        ),
        retry=retry_if_exception_type(
            (httpx.ConnectError, httpx.TimeoutException, RateLimitError)
        ),
        before_sleep=before_sleep_log(stdlib_logger, log_level),
        reraise=True,
    )


class CircuitBreakerLoggingListener(pybreaker.CircuitBreakerListener):
    """Logs circuit breaker state changes once, not on every skipped call."""

    def state_change(
        self,
        cb: pybreaker.CircuitBreaker,
        old_state: pybreaker.CircuitBreakerState,
        new_state: pybreaker.CircuitBreakerState,
    ) -> None:
        if new_state.name == "open":
            log.warning(
                "circuit_breaker_opened",
                transport=cb.name,
                failures=cb.fail_counter,
                reset_timeout=cb.reset_timeout,
                message=f"Delivery via {cb.name} paused for {cb.reset_timeout}s",
            )
        elif new_state.name == "closed":
            log.info(
                "circuit_breaker_closed",
                transport=cb.name,
                message=f"Delivery via {cb.name} recovered",
            )


def create_circuit_breaker(
    name: str,
    fail_max: int = CIRCUIT_FAIL_MAX,
    reset_timeout: int = CIRCUIT_RESET_TIMEOUT,
) -> pybreaker.CircuitBreaker:
    """Create a circuit breaker for a notification transport.

    Args:
        name: Transport name for logging context.
        fail_max: Consecutive failures before the circuit opens.
        reset_timeout: Seconds before a half-open trial call is allowed.

    Returns:
        Configured CircuitBreaker instance.
    """
    return pybreaker.CircuitBreaker(
        name=name,
        fail_max=fail_max,
        reset_timeout=reset_timeout,
        listeners=[CircuitBreakerLoggingListener()],
    )
