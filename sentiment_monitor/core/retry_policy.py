"""
Retry and backoff policy for sentiment fetch cycles

Decides, per failed attempt, whether the cycle may try again and how long to
wait first. Kept free of I/O and clocks so the schedule can be tested alone.
"""

from dataclasses import dataclass
from typing import Any, Dict

from sentiment_monitor.core.models import FailureKind


@dataclass(frozen=True)
class RetryPolicy:
    """Exponential backoff with a ceiling and per-kind retry rules"""

    max_attempts: int = 3
    base_delay: float = 1.0
    backoff_factor: float = 2.0
    max_delay: float = 30.0
    retry_fatal: bool = True  # any failure except a rate limit is retried

    @classmethod
    def from_settings(cls, retry_config: Dict[str, Any]) -> 'RetryPolicy':
        """Build from a RETRY_CONFIG style dict"""
        return cls(
            max_attempts=int(retry_config.get('max_attempts', 3)),
            base_delay=float(retry_config.get('base_delay', 1.0)),
            backoff_factor=float(retry_config.get('backoff_factor', 2.0)),
            max_delay=float(retry_config.get('max_delay', 30.0)),
            retry_fatal=bool(retry_config.get('retry_fatal', True)),
        )

    def delay_for(self, attempt_index: int) -> float:
        """
        Seconds to wait before the next attempt.

        Args:
            attempt_index: 0 for the first retry, 1 for the second...

        Returns:
            min(base_delay * backoff_factor ** attempt_index, max_delay)
        """
        if attempt_index < 0:
            attempt_index = 0
        return min(self.base_delay * (self.backoff_factor ** attempt_index), self.max_delay)

    def is_retryable(self, kind: FailureKind) -> bool:
        """Rate limits are never retried within a cycle; fatal failures only when retry_fatal is set"""
        if kind == FailureKind.RATE_LIMITED:
            return False
        if kind == FailureKind.FATAL:
            return self.retry_fatal
        return True

    def should_retry(self, kind: FailureKind, attempts_made: int) -> bool:
        """Check whether another attempt is allowed after `attempts_made` failures"""
        return self.is_retryable(kind) and attempts_made < self.max_attempts
