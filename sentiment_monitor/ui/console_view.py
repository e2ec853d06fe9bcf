"""
Console rendering of the cached sentiment set.

Read-only consumer of PollingSentimentCache.get_current(): formats the
entry as colored text, one block per instrument.
"""

from datetime import datetime
from typing import List, Optional

from sentiment_monitor.core.colors import Colors
from sentiment_monitor.core.models import CacheEntry, CacheStatus
from sentiment_monitor.utils.validators import clamp_score

BAR_WIDTH = 30


def score_bar(score: float, width: int = BAR_WIDTH) -> str:
    """Text progress bar for a 0-100 score"""
    filled = int(round(clamp_score(score) / 100 * width))
    return '#' * filled + '-' * (width - filled)


def format_age(entry: CacheEntry, now: float) -> str:
    age = entry.age_seconds(now)
    if age is None:
        return 'never'
    if age < 60:
        return f"{age:.0f}s ago"
    return f"{age / 60:.1f}m ago"


def render_entry(entry: CacheEntry, now: float, color: bool = True) -> str:
    """Format a cache entry for the terminal"""
    c = Colors if color else _NoColors
    status_color = c.for_status(entry.status)
    lines: List[str] = []

    header = f"MARKET SENTIMENT ANALYSIS  [{entry.status.value.upper()}]"
    lines.append(f"{c.HEADER}{'=' * 60}{c.RESET}")
    lines.append(f"{status_color}{header}{c.RESET}")

    if entry.fetched_at is not None:
        fetched = datetime.fromtimestamp(entry.fetched_at).strftime('%Y-%m-%d %H:%M:%S')
        lines.append(f"{c.DIM}Updated {fetched} ({format_age(entry, now)}){c.RESET}")

    if entry.status == CacheStatus.FAILED and entry.last_error is not None:
        lines.append(f"{c.ERROR}Last error: {entry.last_error.value} - {entry.error_message}{c.RESET}")

    lines.append(f"{c.HEADER}{'=' * 60}{c.RESET}")

    if not entry.records:
        if entry.status in (CacheStatus.IDLE, CacheStatus.LOADING):
            lines.append(f"{c.INFO}Loading sentiment...{c.RESET}")
        else:
            lines.append(f"{c.WARNING}No sentiment data available yet{c.RESET}")
        return '\n'.join(lines)

    for record in entry.records:
        estimated = ' (est.)' if record.scores_estimated else ''
        lines.append(f"{c.SUCCESS}{record.instrument}{c.RESET}  Score: {round(record.bullish_score)}%{estimated}")
        lines.append(f"  [{score_bar(record.bullish_score)}]")
        lines.append(f"  {record.commentary.strip()}")

    return '\n'.join(lines)


def print_entry(entry: CacheEntry, now: float, color: bool = True, out=None):
    """Print a cache entry (defaults to stdout)"""
    print(render_entry(entry, now, color=color), file=out)


class _NoColors:
    HEADER = SUCCESS = WARNING = ERROR = INFO = DIM = RESET = ''

    @classmethod
    def for_status(cls, status: Optional[CacheStatus]) -> str:
        return ''
