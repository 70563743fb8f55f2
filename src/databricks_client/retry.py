"""
Error classification and exponential-backoff retry.
"""
import enum
import logging
import random
import time
from typing import Callable, Optional, Sequence, TypeVar

from .config import RetryConfig
from .errors import (
    DatabricksConfigError,
    ParameterBindingError,
    PoolShutdownError,
    PoolTimeoutError,
    RetryExhaustedError,
)
from .sanitize import redact

logger = logging.getLogger(__name__)

T = TypeVar("T")

JITTER_MIN = 0.75
JITTER_MAX = 1.25

# Checked first: these win over any transient indicator in the same message.
FATAL_PATTERNS = (
    "28000",  # invalid authorization
    "42000",  # syntax error or access violation
    "42S02",  # table not found
    "42S22",  # column not found
    "23000",  # integrity constraint violation
    "HY013",  # memory allocation error
    "authentication",
    "unauthorized",
    "permission denied",
    "permission_denied",
    "access denied",
)

TIMEOUT_PATTERNS = (
    "timeout",
    "timed out",
    "HYT00",
    "HYT01",
)

CONNECTION_LOST_PATTERNS = (
    "connection refused",
    "connection reset",
    "connection lost",
    "connection closed",
    "broken pipe",
    "no route to host",
    "network is unreachable",
    "08S01",  # communication link failure
    "08003",  # connection does not exist
    "08004",  # server rejected the connection
    "08006",  # connection failure
    "08007",  # connection failure during transaction
)

TRANSIENT_PATTERNS = (
    "service unavailable",
    "too many requests",
    "bad gateway",
    "gateway timeout",
    "429",
    "502",
    "503",
    "504",
    "HY000",  # general driver error, usually transport level
)

_NEVER_RETRIED = (DatabricksConfigError, ParameterBindingError, PoolShutdownError)


class ErrorClass(enum.Enum):
    RETRYABLE = "retryable"
    FATAL = "fatal"


def _matches(message: str, patterns: Sequence[str]) -> bool:
    lowered = message.lower()
    return any(p.lower() in lowered for p in patterns)


class RetryPolicy:
    """
    Decides whether a failure is transient and how long to wait before
    the next attempt.

    `sleep` and `rng` are injectable so tests can observe the schedule
    without waiting for it.
    """

    def __init__(
        self,
        config: Optional[RetryConfig] = None,
        sleep: Callable[[float], None] = time.sleep,
        rng: Optional[random.Random] = None,
        secrets: Sequence[str] = (),
    ):
        self.config = config or RetryConfig()
        self._sleep = sleep
        self._rng = rng or random.Random()
        self._secrets = tuple(secrets)

    def classify(self, error: BaseException) -> ErrorClass:
        """
        Classify an error as retryable or fatal.

        Typed errors are decided first; everything else is matched on its
        text. Unknown errors are fatal.
        """
        if isinstance(error, _NEVER_RETRIED):
            return ErrorClass.FATAL
        if isinstance(error, PoolTimeoutError):
            return ErrorClass.RETRYABLE if self.config.retry_on_timeout else ErrorClass.FATAL

        message = f"{type(error).__name__}: {error}"
        if _matches(message, FATAL_PATTERNS):
            return ErrorClass.FATAL
        if self.config.retry_on_timeout and _matches(message, TIMEOUT_PATTERNS):
            return ErrorClass.RETRYABLE
        if self.config.retry_on_connection_lost and _matches(message, CONNECTION_LOST_PATTERNS):
            return ErrorClass.RETRYABLE
        if _matches(message, TRANSIENT_PATTERNS):
            return ErrorClass.RETRYABLE
        return ErrorClass.FATAL

    def is_retryable(self, error: BaseException) -> bool:
        return self.classify(error) is ErrorClass.RETRYABLE

    def base_backoff(self, retry_index: int) -> float:
        """Capped, un-jittered delay in seconds before retry number `retry_index` (0-based)."""
        cfg = self.config
        delay_ms = min(
            cfg.initial_backoff_ms * (cfg.backoff_multiplier ** retry_index),
            cfg.max_backoff_ms,
        )
        return delay_ms / 1000.0

    def next_backoff(self, retry_index: int) -> float:
        """Jittered delay in seconds; the jitter factor is drawn fresh on every call."""
        return self.base_backoff(retry_index) * self._rng.uniform(JITTER_MIN, JITTER_MAX)

    def execute_with_retry(self, operation: Callable[[], T], operation_name: str) -> T:
        """
        Run `operation`, retrying transient failures.

        Fatal errors propagate unchanged after the first failure. When every
        attempt failed with a retryable error, raises RetryExhaustedError
        carrying the attempt count and the sanitized last message.
        """
        if not self.config.enabled:
            return operation()

        max_attempts = self.config.max_attempts
        attempt = 0
        while True:
            attempt += 1
            if attempt > 1:
                logger.debug(f"Retry attempt {attempt}/{max_attempts} for {operation_name}")
            try:
                return operation()
            except Exception as e:
                message = redact(str(e), *self._secrets)

                if not self.is_retryable(e):
                    logger.error(f"{operation_name} failed with non-retryable error: {message}")
                    raise

                if attempt >= max_attempts:
                    logger.error(
                        f"{operation_name} failed after {attempt} attempts: {message}"
                    )
                    raise RetryExhaustedError(operation_name, attempt, message) from e

                delay = self.next_backoff(attempt - 1)
                logger.warning(
                    f"{operation_name} attempt {attempt}/{max_attempts} failed: {message} "
                    f"- retrying in {int(delay * 1000)}ms"
                )
                self._sleep(delay)
