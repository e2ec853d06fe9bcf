"""
Classified fetch errors.

The report fetcher raises exactly one of these per failed attempt. Only the
polling cache decides whether a failure is retried or surfaced.
"""

from typing import Optional

from sentiment_monitor.core.models import FailureKind


class ReportFetchError(Exception):
    """Base class for a failed report fetch"""

    kind = FailureKind.TRANSIENT

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code

    def __str__(self):
        base = super().__str__()
        if self.status_code is not None:
            return f"HTTP {self.status_code}: {base}"
        return base


class RateLimitedError(ReportFetchError):
    """Upstream throttled the request (HTTP 429)"""

    kind = FailureKind.RATE_LIMITED


class TransientFetchError(ReportFetchError):
    """Network, timeout, server or malformed-response failure"""

    kind = FailureKind.TRANSIENT


class FatalFetchError(ReportFetchError):
    """Unusable configuration, e.g. missing or rejected credentials"""

    kind = FailureKind.FATAL
