"""
Core components of the sentiment monitor.
Contains the data model, classified errors, retry policy, the polling cache and alerting.
"""

from .models import (
    AlertEvent,
    CacheEntry,
    CacheStatus,
    FailureKind,
    SentimentRecord,
    PLACEHOLDER_COMMENTARY,
)
from .errors import ReportFetchError, RateLimitedError, TransientFetchError, FatalFetchError
from .retry_policy import RetryPolicy
from .sentiment_cache import PollingSentimentCache, PollingSettings
from .alert_manager import AlertManager
from .colors import Colors

__all__ = [
    'AlertEvent',
    'CacheEntry',
    'CacheStatus',
    'FailureKind',
    'SentimentRecord',
    'PLACEHOLDER_COMMENTARY',
    'ReportFetchError',
    'RateLimitedError',
    'TransientFetchError',
    'FatalFetchError',
    'RetryPolicy',
    'PollingSentimentCache',
    'PollingSettings',
    'AlertManager',
    'Colors',
]
