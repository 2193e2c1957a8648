"""
Resilience helpers for outbound inference calls.
Bounded retries with exponential backoff, and a circuit breaker that fails
fast while the inference provider is unhealthy.
"""

import threading
import time
from typing import Any, Callable, Optional, Tuple, Type

from meeting_knowledge.utils.logger import get_logger

logger = get_logger(__name__)


class CircuitOpenError(Exception):
    """Raised when a call is rejected because the circuit breaker is open."""
    pass


class RetryPolicy:
    """
    Retry a callable on transient errors with exponential backoff.

    The delay before retry ``n`` (1-based) is
    ``min(base_delay * backoff_factor ** (n - 1), max_delay)``.
    Errors not listed in ``retry_on`` propagate on the first occurrence.
    """

    def __init__(
        self,
        max_attempts: int = 3,
        base_delay: float = 1.0,
        max_delay: float = 30.0,
        backoff_factor: float = 2.0,
        retry_on: Tuple[Type[BaseException], ...] = (Exception,),
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        self.max_attempts = max_attempts
        self.base_delay = base_delay
        self.max_delay = max_delay
        self.backoff_factor = backoff_factor
        self.retry_on = retry_on
        self._sleep = sleep

    def delay_for(self, retry_number: int) -> float:
        """Backoff delay in seconds before the given retry (1-based)."""
        return min(self.base_delay * (self.backoff_factor ** (retry_number - 1)), self.max_delay)

    def execute(self, func: Callable[..., Any], *args: Any, operation: str = "call", **kwargs: Any) -> Any:
        """
        Execute ``func`` with retry logic.

        Args:
            func: Callable to invoke
            operation: Name used in log events
            *args, **kwargs: Passed through to ``func``

        Returns:
            Whatever ``func`` returns

        Raises:
            The last exception raised by ``func`` once attempts are exhausted
        """
        attempt = 1
        while True:
            try:
                return func(*args, **kwargs)
            except self.retry_on as e:
                if attempt >= self.max_attempts:
                    logger.error("Retries exhausted",
                                 operation=operation,
                                 attempts=attempt,
                                 error=str(e))
                    raise
                wait_time = self.delay_for(attempt)
                logger.warning("Transient failure, retrying",
                               operation=operation,
                               attempt=attempt,
                               max_attempts=self.max_attempts,
                               wait_seconds=wait_time,
                               error_type=type(e).__name__)
                self._sleep(wait_time)
                attempt += 1


class CircuitBreaker:
    """
    Circuit breaker shared by all calls to one external provider.

    States: ``closed`` (calls pass), ``open`` (calls fail fast with
    CircuitOpenError) and ``half-open`` (one trial call after
    ``recovery_timeout`` seconds; success closes, failure re-opens).
    """

    def __init__(
        self,
        failure_threshold: int = 5,
        recovery_timeout: float = 60.0,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.failure_threshold = failure_threshold
        self.recovery_timeout = recovery_timeout
        self.failure_count = 0
        self.state = "closed"
        self._opened_at: Optional[float] = None
        self._trial_in_flight = False
        self._clock = clock
        self._lock = threading.Lock()

    def call(self, func: Callable[..., Any], *args: Any, **kwargs: Any) -> Any:
        """Execute ``func`` with circuit breaker protection."""
        with self._lock:
            if self.state == "open":
                if self._opened_at is not None and self._clock() - self._opened_at >= self.recovery_timeout:
                    self.state = "half-open"
                    logger.info("Circuit breaker entering half-open state")
                else:
                    raise CircuitOpenError("Inference circuit breaker is open")
            if self.state == "half-open":
                # Only the trial call may reach the provider until it settles
                if self._trial_in_flight:
                    raise CircuitOpenError("Inference circuit breaker is half-open; trial call in progress")
                self._trial_in_flight = True

        try:
            result = func(*args, **kwargs)
        except Exception:
            self._on_failure()
            raise

        self._on_success()
        return result

    def _on_success(self) -> None:
        with self._lock:
            self._trial_in_flight = False
            self.failure_count = 0
            if self.state != "closed":
                self.state = "closed"
                self._opened_at = None
                logger.info("Circuit breaker closed after successful call")

    def _on_failure(self) -> None:
        with self._lock:
            self._trial_in_flight = False
            self.failure_count += 1
            if self.state == "half-open" or self.failure_count >= self.failure_threshold:
                self.state = "open"
                self._opened_at = self._clock()
                logger.error("Circuit breaker opened", failure_count=self.failure_count)
