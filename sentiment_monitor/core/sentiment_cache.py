"""
Polling sentiment cache - owns the current sentiment set

The only time-aware component of the monitor:
- Decides when a fetch cycle runs (first start, refetch interval, manual refresh)
- Retries transient failures with capped exponential backoff
- Never retries a rate limit inside a cycle; alerts instead
- Keeps last-known-good records when a cycle fails
- Labels aging data as stale without discarding it

Readers call get_current() from any thread. Entries are immutable and are
swapped under a short lock, so a reader sees either the previous or the new
entry, never a mix.
"""

import logging
import threading
import time
from dataclasses import dataclass, field, replace
from typing import Callable, Optional, Sequence, Tuple

from sentiment_monitor.core.errors import ReportFetchError
from sentiment_monitor.core.models import (
    AlertEvent,
    CacheEntry,
    CacheStatus,
    FailureKind,
    SentimentRecord,
)
from sentiment_monitor.core.retry_policy import RetryPolicy

DEFAULT_INSTRUMENTS = ('EURUSD', 'GBPUSD', 'USDJPY', 'AUDUSD')

IDLE_WAIT = 0.1

RATE_LIMIT_TITLE = "Rate limit reached"
RATE_LIMIT_MESSAGE = "Sentiment analysis will resume shortly"


@dataclass(frozen=True)
class PollingSettings:
    """Scheduling and retry settings for one cache instance"""
    instruments: Tuple[str, ...] = DEFAULT_INSTRUMENTS
    refetch_interval: float = 300.0  # seconds between cycle starts
    stale_after: float = 240.0  # seconds until a fresh entry reads as stale
    retry: RetryPolicy = field(default_factory=RetryPolicy)

    @classmethod
    def from_config(cls, cfg) -> 'PollingSettings':
        """Create settings from a Config instance"""
        return cls(
            instruments=tuple(cfg.SENTIMENT_INSTRUMENTS),
            refetch_interval=cfg.REFETCH_INTERVAL,
            stale_after=cfg.STALE_AFTER,
            retry=RetryPolicy.from_settings(cfg.RETRY_CONFIG),
        )


class PollingSentimentCache:
    """
    Fetch-cache-retry controller for the market sentiment report.

    At most one cycle runs at a time. Triggers arriving while a cycle is in
    flight are ignored.
    """

    def __init__(self, fetcher, extractor, notifier=None,
                 settings: Optional[PollingSettings] = None,
                 clock: Callable[[], float] = time.time,
                 sleep: Callable[[float], None] = time.sleep):
        """
        Args:
            fetcher: Object with fetch() -> str raising ReportFetchError subclasses
            extractor: Object with extract(raw_text, instruments) -> list of SentimentRecord
            notifier: Optional object with notify(AlertEvent), told about rate limits
            settings: PollingSettings (defaults apply when omitted)
            clock: Returns current time in epoch seconds
            sleep: Blocks for the given seconds between retry attempts
        """
        self.fetcher = fetcher
        self.extractor = extractor
        self.notifier = notifier
        self.settings = settings or PollingSettings()
        self.clock = clock
        self.sleep = sleep

        self._entry = CacheEntry()
        self._state_lock = threading.Lock()
        self._cycle_lock = threading.Lock()
        self._in_flight = False
        self._last_cycle_started: Optional[float] = None
        self._refresh_requested = False

        self._running = False
        self._stop_event: Optional[threading.Event] = None
        self._wake_event = threading.Event()
        self._thread: Optional[threading.Thread] = None

        self.cycles_run = 0

    # =========================================================================
    # READ API
    # =========================================================================

    def get_current(self) -> CacheEntry:
        """Return the cached entry as it should be presented right now"""
        with self._state_lock:
            entry = self._entry
            in_flight = self._in_flight

        if in_flight:
            return replace(entry, status=CacheStatus.LOADING, last_error=None, error_message='')

        if entry.status == CacheStatus.FRESH and self._is_stale(entry):
            return replace(entry, status=CacheStatus.STALE)

        return entry

    @property
    def is_running(self) -> bool:
        return self._running

    @property
    def in_flight(self) -> bool:
        return self._in_flight

    def _is_stale(self, entry: CacheEntry) -> bool:
        age = entry.age_seconds(self.clock())
        return age is not None and age > self.settings.stale_after

    # =========================================================================
    # LIFECYCLE
    # =========================================================================

    def start(self):
        """Start background polling (no-op if already running)"""
        with self._state_lock:
            if self._running:
                logging.debug("[CACHE] start() called while already running")
                return
            self._running = True
            stop_event = threading.Event()
            self._stop_event = stop_event
            self._thread = threading.Thread(
                target=self._poll_loop, args=(stop_event,),
                name='sentiment-poller', daemon=True
            )

        self._thread.start()
        logging.info(
            f"[CACHE] Polling started - every {self.settings.refetch_interval:.0f}s, "
            f"stale after {self.settings.stale_after:.0f}s"
        )

    def stop(self, wait: bool = True, timeout: Optional[float] = 5.0):
        """
        Stop scheduling new cycles.

        An attempt already in flight is left to finish; no further cycle starts.

        Args:
            wait: Join the polling thread before returning
            timeout: Join timeout in seconds
        """
        with self._state_lock:
            if not self._running:
                return
            self._running = False
            stop_event = self._stop_event
            thread = self._thread

        if stop_event is not None:
            stop_event.set()
        self._wake_event.set()

        if wait and thread is not None and thread is not threading.current_thread():
            thread.join(timeout=timeout)

        logging.info("[CACHE] Polling stopped")

    def request_refresh(self):
        """Ask for a cycle as soon as possible (served by the polling thread)"""
        with self._state_lock:
            self._refresh_requested = True
        self._wake_event.set()
        logging.info("[CACHE] Manual refresh requested")

    # =========================================================================
    # SCHEDULING
    # =========================================================================

    def is_due(self, now: Optional[float] = None) -> bool:
        """Check whether a new cycle should start"""
        now = self.clock() if now is None else now
        with self._state_lock:
            if self._refresh_requested or self._last_cycle_started is None:
                return True
            return now - self._last_cycle_started >= self.settings.refetch_interval

    def seconds_until_due(self, now: Optional[float] = None) -> float:
        """Seconds until the next scheduled cycle (0 if one is due now)"""
        now = self.clock() if now is None else now
        with self._state_lock:
            if self._refresh_requested or self._last_cycle_started is None:
                return 0.0
            remaining = self._last_cycle_started + self.settings.refetch_interval - now

        return min(max(0.0, remaining), self.settings.refetch_interval)

    def tick(self) -> bool:
        """
        Make one scheduling decision.

        Returns:
            True if a cycle ran
        """
        if not self._running:
            return False
        if not self.is_due():
            return False
        return self.run_cycle() is not None

    def _poll_loop(self, stop_event: threading.Event):
        """Background loop (runs in the polling thread)"""
        while not stop_event.is_set():
            ran = False
            try:
                ran = self.tick()
            except Exception as e:
                logging.error(f"[CACHE] Polling loop error: {e}", exc_info=True)

            if stop_event.is_set():
                break

            timeout = self.seconds_until_due()
            if not ran and timeout == 0:
                timeout = IDLE_WAIT  # cycle held by another caller
            self._wake_event.wait(timeout)
            self._wake_event.clear()

    # =========================================================================
    # FETCH CYCLE
    # =========================================================================

    def run_cycle(self) -> Optional[CacheEntry]:
        """
        Run one fetch cycle in the calling thread.

        Returns:
            The committed entry, or None if another cycle was already in flight
        """
        if not self._cycle_lock.acquire(blocking=False):
            logging.info("[CACHE] Cycle already in flight - trigger ignored")
            return None

        new_entry = None
        try:
            with self._state_lock:
                self._in_flight = True
                self._last_cycle_started = self.clock()
                self._refresh_requested = False
                self.cycles_run += 1

            logging.info(f"[CACHE] Sentiment cycle #{self.cycles_run} started")
            new_entry = self._run_attempts()
            return new_entry
        finally:
            with self._state_lock:
                if new_entry is not None:
                    self._entry = new_entry
                self._in_flight = False
            self._cycle_lock.release()

    def _run_attempts(self) -> CacheEntry:
        """Attempt/retry state machine for one cycle"""
        policy = self.settings.retry
        attempts = 0

        while True:
            attempts += 1
            try:
                raw_text = self.fetcher.fetch()
                records = self._check_records(
                    self.extractor.extract(raw_text, self.settings.instruments)
                )
            except ReportFetchError as e:
                kind, error = e.kind, e
            except Exception as e:
                logging.error(f"[CACHE] Unexpected error during sentiment fetch: {e}", exc_info=True)
                kind, error = FailureKind.TRANSIENT, e
            else:
                logging.info(f"[CACHE] Sentiment refreshed for {len(records)} instruments (attempt {attempts})")
                return CacheEntry(
                    records=records,
                    fetched_at=self.clock(),
                    status=CacheStatus.FRESH,
                )

            if kind == FailureKind.RATE_LIMITED:
                logging.warning("[CACHE] Rate limited - keeping cached sentiment until next scheduled cycle")
                self._notify_rate_limited()
                return self._failed_entry(kind, error)

            if not policy.should_retry(kind, attempts):
                logging.error(
                    f"[CACHE] Sentiment cycle failed after {attempts} attempt(s) "
                    f"({kind.value}): {error}"
                )
                return self._failed_entry(kind, error)

            delay = policy.delay_for(attempts - 1)
            logging.warning(
                f"[CACHE] Attempt {attempts}/{policy.max_attempts} failed ({kind.value}): {error} "
                f"- retrying in {delay:.1f}s"
            )
            self.sleep(delay)

    def _check_records(self, records: Sequence[SentimentRecord]) -> Tuple[SentimentRecord, ...]:
        """Enforce one record per instrument in configured order"""
        records = tuple(records)
        got = [r.instrument for r in records]
        if got != list(self.settings.instruments):
            raise ValueError(f"Extractor returned {got}, expected {list(self.settings.instruments)}")
        return records

    def _failed_entry(self, kind: FailureKind, error: Exception) -> CacheEntry:
        # Only this cycle writes _entry, so reading it without the lock is safe
        return replace(self._entry, status=CacheStatus.FAILED, last_error=kind, error_message=str(error))

    def _notify_rate_limited(self):
        if self.notifier is None:
            return

        event = AlertEvent(kind=FailureKind.RATE_LIMITED, message=RATE_LIMIT_MESSAGE, title=RATE_LIMIT_TITLE)
        try:
            self.notifier.notify(event)
        except Exception as e:
            logging.error(f"[CACHE] Alert notifier failed: {e}")
