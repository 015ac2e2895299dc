"""
Circuit breaker and timeout guard for collaborator calls.

Search and text generation are the only blocking network calls in the
context core. Both run under a bounded timeout and behind a breaker so a
degraded provider is skipped quickly instead of stalling every request.
"""

import logging
import time
from concurrent.futures import ThreadPoolExecutor
from concurrent.futures import TimeoutError as FutureTimeoutError
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Optional

logger = logging.getLogger(__name__)


class CircuitState(Enum):
    CLOSED = "closed"  # Normal operation
    OPEN = "open"  # Failing, reject requests
    HALF_OPEN = "half_open"  # Testing if service recovered


class CircuitOpenError(Exception):
    """Raised when circuit breaker is open."""

    pass


class CollaboratorTimeoutError(TimeoutError):
    """Raised when a collaborator call exceeds its time bound."""

    pass


def call_with_timeout(fn: Callable, timeout: Optional[float], *args, **kwargs) -> Any:
    """
    Run fn in a worker thread and wait at most timeout seconds.

    The worker is abandoned (not killed) on timeout; the caller gets
    CollaboratorTimeoutError right away.
    """
    if timeout is None:
        return fn(*args, **kwargs)

    executor = ThreadPoolExecutor(max_workers=1)
    try:
        future = executor.submit(fn, *args, **kwargs)
        try:
            return future.result(timeout=timeout)
        except FutureTimeoutError:
            raise CollaboratorTimeoutError(
                f"{getattr(fn, '__name__', 'call')} timed out after {timeout:.1f}s"
            )
    finally:
        executor.shutdown(wait=False)


@dataclass
class CircuitBreaker:
    """
    Circuit breaker for external service calls.

    States:
    - CLOSED: Normal operation, requests pass through
    - OPEN: Too many failures, requests rejected immediately
    - HALF_OPEN: Testing recovery, limited requests allowed

    Usage:
        breaker = CircuitBreaker(name="search", failure_threshold=5)
        hits = breaker.call(backend.search, requester, query, timeout=10.0)
    """

    name: str = "default"
    failure_threshold: int = 5
    reset_timeout: float = 60.0
    half_open_max_calls: int = 3

    # State tracking
    state: CircuitState = field(default=CircuitState.CLOSED)
    failures: int = field(default=0)
    successes: int = field(default=0)
    last_failure_time: Optional[float] = field(default=None)
    half_open_calls: int = field(default=0)

    def _should_allow_request(self) -> bool:
        """Check if request should be allowed based on circuit state."""
        if self.state == CircuitState.CLOSED:
            return True

        if self.state == CircuitState.OPEN:
            if (
                self.last_failure_time
                and (time.time() - self.last_failure_time) >= self.reset_timeout
            ):
                self._transition_to_half_open()
                return True
            return False

        return self.half_open_calls < self.half_open_max_calls

    def _transition_to_open(self):
        logger.warning(f"Circuit breaker '{self.name}' OPEN: {self.failures} failures in succession")
        self.state = CircuitState.OPEN
        self.last_failure_time = time.time()

    def _transition_to_half_open(self):
        logger.info(f"Circuit breaker '{self.name}' transitioning to HALF_OPEN")
        self.state = CircuitState.HALF_OPEN
        self.half_open_calls = 0
        self.successes = 0

    def _transition_to_closed(self):
        logger.info(f"Circuit breaker '{self.name}' CLOSED: service recovered")
        self.state = CircuitState.CLOSED
        self.failures = 0
        self.successes = 0
        self.half_open_calls = 0

    def _record_success(self):
        self.failures = 0

        if self.state == CircuitState.HALF_OPEN:
            self.successes += 1
            if self.successes >= self.half_open_max_calls:
                self._transition_to_closed()

    def _record_failure(self):
        self.failures += 1
        self.last_failure_time = time.time()

        if self.state == CircuitState.HALF_OPEN:
            self._transition_to_open()
        elif self.failures >= self.failure_threshold:
            self._transition_to_open()

    def call(self, fn: Callable, *args, timeout: Optional[float] = None, **kwargs) -> Any:
        """
        Execute a function with circuit breaker protection.

        Args:
            fn: Function to call
            *args, **kwargs: Arguments to pass to function
            timeout: Seconds to wait before giving up (None waits forever)

        Returns:
            Function result

        Raises:
            CircuitOpenError: If circuit is open
            CollaboratorTimeoutError: If the call exceeded timeout
            Exception: Original exception from function
        """
        if not self._should_allow_request():
            raise CircuitOpenError(
                f"Circuit '{self.name}' is {self.state.value}. "
                f"Wait {self.reset_timeout - (time.time() - (self.last_failure_time or 0)):.0f}s"
            )

        if self.state == CircuitState.HALF_OPEN:
            self.half_open_calls += 1

        try:
            result = call_with_timeout(fn, timeout, *args, **kwargs)
        except Exception:
            self._record_failure()
            raise

        self._record_success()
        return result

    def reset(self):
        """Force the breaker back to CLOSED."""
        self._transition_to_closed()
        self.last_failure_time = None

    def get_stats(self) -> dict:
        """Get circuit breaker statistics."""
        return {
            "name": self.name,
            "state": self.state.value,
            "failures": self.failures,
            "successes": self.successes,
            "last_failure_time": self.last_failure_time,
            "half_open_calls": self.half_open_calls,
        }


# Global circuit breakers for the two network collaborators
_search_breaker: Optional[CircuitBreaker] = None
_llm_breaker: Optional[CircuitBreaker] = None


def get_search_breaker() -> CircuitBreaker:
    """Get circuit breaker for search backend calls."""
    global _search_breaker
    if _search_breaker is None:
        _search_breaker = CircuitBreaker(
            name="search", failure_threshold=5, reset_timeout=30.0, half_open_max_calls=2
        )
    return _search_breaker


def get_llm_breaker() -> CircuitBreaker:
    """Get circuit breaker for LLM calls."""
    global _llm_breaker
    if _llm_breaker is None:
        _llm_breaker = CircuitBreaker(
            name="llm", failure_threshold=3, reset_timeout=30.0, half_open_max_calls=2
        )
    return _llm_breaker
