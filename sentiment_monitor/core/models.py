"""
Data model shared by the fetcher, extractor and polling cache.

All value objects are frozen so a committed CacheEntry can be handed to any
reader thread without copying.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional, Tuple

PLACEHOLDER_COMMENTARY = "Analysis pending..."


class FailureKind(Enum):
    """Classification of a failed fetch attempt"""

    RATE_LIMITED = "rate_limited"
    TRANSIENT = "transient"
    FATAL = "fatal"


class CacheStatus(Enum):
    """Status of the cached sentiment as seen by readers"""

    IDLE = "idle"
    LOADING = "loading"
    FRESH = "fresh"
    STALE = "stale"
    FAILED = "failed"


@dataclass(frozen=True)
class SentimentRecord:
    """Sentiment for a single instrument from one fetch cycle."""
    instrument: str
    bullish_score: float  # 0..100
    bearish_score: float  # 0..100
    commentary: str = PLACEHOLDER_COMMENTARY
    scores_estimated: bool = True  # placeholder scores, not parsed from the report

    @property
    def has_commentary(self) -> bool:
        return self.commentary != PLACEHOLDER_COMMENTARY


@dataclass(frozen=True)
class CacheEntry:
    """Snapshot of the cached sentiment set."""
    records: Tuple[SentimentRecord, ...] = ()
    fetched_at: Optional[float] = None  # epoch seconds of the last success
    status: CacheStatus = CacheStatus.IDLE
    last_error: Optional[FailureKind] = None
    error_message: str = ""

    def age_seconds(self, now: float) -> Optional[float]:
        if self.fetched_at is None:
            return None
        return max(0.0, now - self.fetched_at)

    def get_record(self, instrument: str) -> Optional[SentimentRecord]:
        for record in self.records:
            if record.instrument == instrument:
                return record
        return None


@dataclass(frozen=True)
class AlertEvent:
    """Event handed to the alert notifier."""
    kind: FailureKind
    message: str
    title: str = ""
