"""Circuit breaker for the WhatsApp Cloud API.

When the Graph API keeps failing, stop calling it for a cool-down period so a
burst of inbound webhooks does not pile up blocked sends.

States:
- CLOSED: calls pass through
- OPEN: calls fail immediately with CircuitBreakerOpen
- HALF_OPEN: one trial call decides between CLOSED and OPEN
"""
import logging
import threading
import time
from enum import Enum
from typing import Any, Callable, Optional

logger = logging.getLogger(__name__)


class CircuitState(Enum):
    CLOSED = "closed"
    OPEN = "open"
    HALF_OPEN = "half_open"


class CircuitBreakerOpen(Exception):
    """Raised when the breaker is open (fail fast)."""

    def __init__(self, name: str, retry_after: float):
        super().__init__(f"Circuit '{name}' is open. Retry after {retry_after:.1f}s")
        self.retry_after = retry_after


class CircuitBreaker:
    """Counts consecutive failures of a remote dependency."""

    def __init__(
        self,
        name: str,
        failure_threshold: int = 5,
        reset_timeout: float = 60,
        clock: Callable[[], float] = time.monotonic
    ):
        """
        Args:
            name: Dependency name used in logs
            failure_threshold: Consecutive failures before opening
            reset_timeout: Seconds to stay open before a trial call
            clock: Monotonic time source
        """
        self.name = name
        self.failure_threshold = failure_threshold
        self.reset_timeout = reset_timeout
        self.clock = clock
        self.failure_count = 0
        self.opened_at: Optional[float] = None
        self._state = CircuitState.CLOSED
        self._lock = threading.Lock()

    @property
    def state(self) -> str:
        return self._state.value

    def _retry_after(self) -> float:
        if self.opened_at is None:
            return 0.0
        return max(0.0, self.reset_timeout - (self.clock() - self.opened_at))

    def call(self, func: Callable, *args, **kwargs) -> Any:
        """
        Run func under breaker protection.

        Raises:
            CircuitBreakerOpen: If the breaker is open
            Exception: Whatever func raises (counted as a failure)
        """
        with self._lock:
            if self._state == CircuitState.OPEN:
                if self._retry_after() > 0:
                    raise CircuitBreakerOpen(self.name, self._retry_after())
                self._state = CircuitState.HALF_OPEN
                logger.info("Circuit %s half-open, sending trial request", self.name)

        try:
            result = func(*args, **kwargs)
        except Exception:
            self._record_failure()
            raise

        self._record_success()
        return result

    def _record_success(self):
        with self._lock:
            if self._state == CircuitState.HALF_OPEN:
                logger.info("Circuit %s closed after successful trial", self.name)
            self._state = CircuitState.CLOSED
            self.failure_count = 0
            self.opened_at = None

    def _record_failure(self):
        with self._lock:
            self.failure_count += 1
            if (
                self._state == CircuitState.HALF_OPEN
                or self.failure_count >= self.failure_threshold
            ):
                self._state = CircuitState.OPEN
                self.opened_at = self.clock()
                logger.error(
                    "Circuit %s opened after %d failures (cool-down %ss)",
                    self.name, self.failure_count, self.reset_timeout
                )
