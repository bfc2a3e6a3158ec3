"""
Bounded retry with exponential backoff for provider calls
"""

import logging
import random
import time
from dataclasses import dataclass, field
from typing import Any, Callable, List

from tenacity import RetryCallState, RetryError, Retrying, retry_if_exception, stop_after_attempt, wait_exponential

from ..errors import FinalError, ProviderError, RateLimited

logger = logging.getLogger(__name__)

DEFAULT_MAX_ATTEMPTS = 3
DEFAULT_BASE_DELAY = 1.0
DEFAULT_MAX_DELAY = 30.0
JITTER_SPREAD = 0.5


@dataclass
class RetryOutcome:
    """Value returned by the operation plus how it was obtained"""
    value: Any
    attempts: int
    delays: List[float] = field(default_factory=list)


def _is_retryable(error: BaseException) -> bool:
    return isinstance(error, ProviderError) and error.retryable


class RetryExecutor:
    """Runs an operation up to ``max_attempts`` times.

    The delay before attempt k (k >= 2) is ``base_delay * 2 ** (k - 2)``,
    capped at ``max_delay``. Jitter multiplies each delay by a factor in
    [1, 1.5), so uncapped delays still grow strictly. A rate limit with a
    Retry-After value never waits less than that value. Only errors marked
    retryable are retried; anything else propagates on the spot.

    The executor keeps no state between calls: every ``execute`` builds
    its own ``tenacity.Retrying``.
    """

    def __init__(self, max_attempts: int = DEFAULT_MAX_ATTEMPTS, base_delay: float = DEFAULT_BASE_DELAY,
                 max_delay: float = DEFAULT_MAX_DELAY, jitter: bool = False,
                 sleep: Callable[[float], None] = time.sleep,
                 retryable: Callable[[BaseException], bool] = _is_retryable):
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        if base_delay < 0 or max_delay < 0:
            raise ValueError("delays must not be negative")
        self.max_attempts = max_attempts
        self.base_delay = base_delay
        self.max_delay = max_delay
        self.jitter = jitter
        self.sleep = sleep
        self.retryable = retryable
        self._exponential = wait_exponential(multiplier=base_delay, max=max_delay)

    def _wait(self, retry_state: RetryCallState) -> float:
        delay = self._exponential(retry_state)
        if self.jitter:
            delay *= 1 + random.random() * JITTER_SPREAD
        error = retry_state.outcome.exception()
        if isinstance(error, RateLimited) and error.retry_after:
            delay = max(delay, error.retry_after)
        return min(delay, self.max_delay)

    def _log_retry(self, retry_state: RetryCallState):
        logger.warning(f"Attempt {retry_state.attempt_number}/{self.max_attempts} failed "
                       f"({retry_state.outcome.exception()}); retrying in {retry_state.next_action.sleep:.2f}s")

    def execute(self, operation: Callable[[], Any]) -> RetryOutcome:
        delays: List[float] = []
        attempts = 0

        def attempt():
            nonlocal attempts
            attempts += 1
            return operation()

        def sleep(delay: float):
            delays.append(delay)
            self.sleep(delay)

        retrying = Retrying(
            stop=stop_after_attempt(self.max_attempts),
            wait=self._wait,
            retry=retry_if_exception(self.retryable),
            sleep=sleep,
            before_sleep=self._log_retry,
        )
        try:
            value = retrying(attempt)
        except RetryError as e:
            last_error = e.last_attempt.exception()
            logger.error(f"Giving up after {attempts} attempts: {last_error}")
            raise FinalError(attempts, last_error) from last_error

        return RetryOutcome(value=value, attempts=attempts, delays=delays)
