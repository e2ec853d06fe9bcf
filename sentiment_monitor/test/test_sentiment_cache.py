"""
Unit tests for the polling sentiment cache (fetch-cache-retry controller)
"""
import random
import threading
import pytest
from unittest.mock import Mock

from sentiment_monitor.analyzers.sentiment_extractor import SentimentExtractor
from sentiment_monitor.core.errors import FatalFetchError, RateLimitedError, TransientFetchError
from sentiment_monitor.core.models import AlertEvent, CacheStatus, FailureKind
from sentiment_monitor.core.retry_policy import RetryPolicy
from sentiment_monitor.core.sentiment_cache import PollingSentimentCache, PollingSettings

INSTRUMENTS = ('EURUSD', 'GBPUSD', 'USDJPY', 'AUDUSD')

REPORT = (
    "EURUSD: Bullish 62% / Bearish 38% - ECB hawkish tilt\n"
    "GBPUSD: Bullish 45% / Bearish 55% - BoE on hold\n"
    "USDJPY: Bullish 70% / Bearish 30% - yield gap persists\n"
    "AUDUSD: Bullish 40% / Bearish 60% - soft China data\n"
)

SECOND_REPORT = REPORT.replace("ECB hawkish tilt", "ECB dovish pivot")


class FakeClock:
    """Manually advanced clock"""

    def __init__(self, start: float = 1_700_000_000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float):
        self.now += seconds


def make_cache(side_effect, settings=None, notifier=None):
    """Build a cache around a scripted fetcher, fake clock and recording sleep"""
    clock = FakeClock()
    sleeps = []

    def fake_sleep(seconds):
        sleeps.append(seconds)
        clock.advance(seconds)

    fetcher = Mock()
    fetcher.fetch.side_effect = side_effect
    cache = PollingSentimentCache(
        fetcher=fetcher,
        extractor=SentimentExtractor(rng=random.Random(7)),
        notifier=notifier if notifier is not None else Mock(),
        settings=settings or PollingSettings(instruments=INSTRUMENTS),
        clock=clock,
        sleep=fake_sleep,
    )
    return cache, fetcher, clock, sleeps


class TestInitialState:
    """Cache state before any cycle"""

    def test_starts_idle_and_empty(self):
        """A new cache is idle with no records and no error"""
        cache, fetcher, _, _ = make_cache([])
        entry = cache.get_current()

        assert entry.status == CacheStatus.IDLE
        assert entry.records == ()
        assert entry.fetched_at is None
        assert entry.last_error is None
        fetcher.fetch.assert_not_called()

    def test_default_settings(self):
        """Defaults match the documented polling policy"""
        settings = PollingSettings()
        assert settings.instruments == INSTRUMENTS
        assert settings.refetch_interval == 300.0
        assert settings.stale_after == 240.0
        assert settings.retry.max_attempts == 3
        assert settings.retry.base_delay == 1.0
        assert settings.retry.max_delay == 30.0


class TestSuccessfulCycle:
    """Successful fetch cycles"""

    def test_success_commits_fresh_records_in_order(self):
        """One record per instrument, in configured order, marked fresh"""
        cache, fetcher, clock, sleeps = make_cache([REPORT])

        result = cache.run_cycle()
        entry = cache.get_current()

        assert result is not None
        assert entry.status == CacheStatus.FRESH
        assert [r.instrument for r in entry.records] == list(INSTRUMENTS)
        assert entry.fetched_at == clock.now
        assert entry.last_error is None
        assert fetcher.fetch.call_count == 1
        assert sleeps == []

    def test_success_uses_parsed_scores(self):
        """Explicit scores in the report are used as-is"""
        cache, _, _, _ = make_cache([REPORT])
        cache.run_cycle()

        eurusd = cache.get_current().get_record('EURUSD')
        assert eurusd.bullish_score == 62.0
        assert eurusd.bearish_score == 38.0
        assert eurusd.scores_estimated is False

    def test_new_success_supersedes_previous_entry(self):
        """A later success replaces records and fetched_at"""
        cache, _, clock, _ = make_cache([REPORT, SECOND_REPORT])
        cache.run_cycle()
        first = cache.get_current()

        clock.advance(300)
        cache.run_cycle()
        second = cache.get_current()

        assert second.fetched_at == first.fetched_at + 300
        assert "dovish" in second.get_record('EURUSD').commentary


class TestRateLimiting:
    """Rate limited cycles"""

    def test_rate_limit_not_retried_and_alerts_once(self):
        """429 on attempt 1: one alert, no more attempts, records kept"""
        notifier = Mock()
        cache, fetcher, _, sleeps = make_cache(
            [REPORT, RateLimitedError("slow down", status_code=429)],
            notifier=notifier,
        )
        cache.run_cycle()
        before = cache.get_current()

        cache.run_cycle()
        after = cache.get_current()

        assert fetcher.fetch.call_count == 2
        assert sleeps == []
        assert after.status == CacheStatus.FAILED
        assert after.last_error == FailureKind.RATE_LIMITED
        assert after.records == before.records
        assert after.fetched_at == before.fetched_at

        notifier.notify.assert_called_once()
        event = notifier.notify.call_args[0][0]
        assert isinstance(event, AlertEvent)
        assert event.kind == FailureKind.RATE_LIMITED
        assert event.message

    def test_notifier_failure_does_not_break_cycle(self):
        """An exploding notifier is logged, the cycle still fails cleanly"""
        notifier = Mock()
        notifier.notify.side_effect = RuntimeError("webhook down")
        cache, _, _, _ = make_cache([RateLimitedError("429")], notifier=notifier)

        cache.run_cycle()

        assert cache.get_current().status == CacheStatus.FAILED
        assert cache.get_current().last_error == FailureKind.RATE_LIMITED

    def test_no_notifier_configured(self):
        """Rate limit without a notifier still marks the cycle failed"""
        cache, _, _, _ = make_cache([RateLimitedError("429")])
        cache.notifier = None

        cache.run_cycle()

        assert cache.get_current().last_error == FailureKind.RATE_LIMITED


class TestRetryBackoff:
    """Transient and fatal failure handling"""

    def test_transient_twice_then_success(self):
        """Backoff waits of 1s then 2s, cycle ends fresh"""
        cache, fetcher, _, sleeps = make_cache([
            TransientFetchError("503", status_code=503),
            TransientFetchError("timeout"),
            REPORT,
        ])

        cache.run_cycle()

        assert sleeps == [1.0, 2.0]
        assert fetcher.fetch.call_count == 3
        assert cache.get_current().status == CacheStatus.FRESH

    def test_three_transients_keep_last_known_good(self):
        """Exhausted retries: failed, transient, records unchanged"""
        notifier = Mock()
        cache, fetcher, _, sleeps = make_cache(
            [REPORT] + [TransientFetchError("boom")] * 3,
            notifier=notifier,
        )
        cache.run_cycle()
        good = cache.get_current()

        cache.run_cycle()
        entry = cache.get_current()

        assert fetcher.fetch.call_count == 4
        assert sleeps == [1.0, 2.0]
        assert entry.status == CacheStatus.FAILED
        assert entry.last_error == FailureKind.TRANSIENT
        assert entry.records == good.records
        assert "boom" in entry.error_message
        notifier.notify.assert_not_called()

    def test_three_transients_without_prior_success_leave_records_empty(self):
        """No last-known-good yet: records stay empty"""
        cache, _, _, _ = make_cache([TransientFetchError("boom")] * 3)

        cache.run_cycle()
        entry = cache.get_current()

        assert entry.status == CacheStatus.FAILED
        assert entry.last_error == FailureKind.TRANSIENT
        assert entry.records == ()

    def test_fatal_failure_retried_by_default(self):
        """Fatal errors follow the transient schedule unless opted out"""
        cache, fetcher, _, sleeps = make_cache([FatalFetchError("401")] * 3)

        cache.run_cycle()

        assert fetcher.fetch.call_count == 3
        assert sleeps == [1.0, 2.0]
        assert cache.get_current().last_error == FailureKind.FATAL

    def test_fatal_failure_then_success(self):
        """A fatal error on one attempt does not end the cycle"""
        cache, fetcher, _, sleeps = make_cache([FatalFetchError("401"), REPORT])

        cache.run_cycle()

        assert fetcher.fetch.call_count == 2
        assert sleeps == [1.0]
        assert cache.get_current().status == CacheStatus.FRESH

    def test_fatal_failure_surfaced_immediately_when_disabled(self):
        """retry_fatal=False surfaces fatal errors after one attempt"""
        settings = PollingSettings(instruments=INSTRUMENTS, retry=RetryPolicy(retry_fatal=False))
        cache, fetcher, _, sleeps = make_cache([FatalFetchError("missing key")], settings=settings)

        cache.run_cycle()

        assert fetcher.fetch.call_count == 1
        assert sleeps == []
        assert cache.get_current().last_error == FailureKind.FATAL

    def test_unexpected_exception_treated_as_transient(self):
        """Non-classified errors are retried like transient ones"""
        cache, fetcher, _, sleeps = make_cache([KeyError("choices"), REPORT])

        cache.run_cycle()

        assert fetcher.fetch.call_count == 2
        assert sleeps == [1.0]
        assert cache.get_current().status == CacheStatus.FRESH

    def test_backoff_ceiling(self):
        """Delays are capped at max_delay"""
        settings = PollingSettings(
            instruments=INSTRUMENTS,
            retry=RetryPolicy(max_attempts=5, base_delay=10.0, max_delay=30.0),
        )
        cache, _, _, sleeps = make_cache([TransientFetchError("x")] * 5, settings=settings)

        cache.run_cycle()

        assert sleeps == [10.0, 20.0, 30.0, 30.0]


class TestFreshness:
    """Staleness decay"""

    def test_entry_goes_stale_after_threshold(self):
        """Reading at T + stale_after + 1 yields stale with same records"""
        cache, _, clock, _ = make_cache([REPORT])
        cache.run_cycle()
        fresh = cache.get_current()

        clock.advance(240)
        assert cache.get_current().status == CacheStatus.FRESH

        clock.advance(1)
        stale = cache.get_current()
        assert stale.status == CacheStatus.STALE
        assert stale.records == fresh.records
        assert stale.fetched_at == fresh.fetched_at

    def test_failed_entry_is_not_relabelled_stale(self):
        """Failure status wins over staleness"""
        cache, _, clock, _ = make_cache([REPORT, RateLimitedError("429")])
        cache.run_cycle()
        clock.advance(300)
        cache.run_cycle()

        clock.advance(1000)
        assert cache.get_current().status == CacheStatus.FAILED

    def test_new_success_clears_staleness(self):
        """A fresh result supersedes a stale one"""
        cache, _, clock, _ = make_cache([REPORT, SECOND_REPORT])
        cache.run_cycle()
        clock.advance(300)
        assert cache.get_current().status == CacheStatus.STALE

        cache.run_cycle()
        assert cache.get_current().status == CacheStatus.FRESH


class TestConcurrency:
    """Single in-flight cycle and reader safety"""

    def test_reader_sees_loading_overlay_with_previous_records(self):
        """During a cycle, readers get the prior records labelled loading"""
        seen = []
        cache, fetcher, _, _ = make_cache([REPORT])
        cache.run_cycle()
        previous = cache.get_current()

        def fetch():
            seen.append(cache.get_current())
            return SECOND_REPORT

        fetcher.fetch.side_effect = fetch
        cache.run_cycle()

        assert seen[0].status == CacheStatus.LOADING
        assert seen[0].records == previous.records
        assert seen[0].last_error is None
        assert cache.get_current().status == CacheStatus.FRESH

    def test_overlapping_cycle_is_ignored(self):
        """A trigger while a cycle is in flight does not start another"""
        nested = []
        cache, fetcher, _, _ = make_cache([])

        def fetch():
            nested.append(cache.run_cycle())
            return REPORT

        fetcher.fetch.side_effect = fetch
        cache.run_cycle()

        assert nested == [None]
        assert fetcher.fetch.call_count == 1
        assert cache.cycles_run == 1

    def test_extractor_mismatch_is_rejected(self):
        """Records not matching the instrument list fail the attempt"""
        cache, _, _, _ = make_cache([REPORT] * 3)
        cache.extractor = Mock()
        cache.extractor.extract.return_value = []

        cache.run_cycle()

        assert cache.get_current().status == CacheStatus.FAILED
        assert cache.get_current().last_error == FailureKind.TRANSIENT


class TestScheduling:
    """Trigger rules and start/stop lifecycle"""

    def test_due_when_never_run(self):
        """First cycle is due immediately"""
        cache, _, _, _ = make_cache([])
        assert cache.is_due() is True
        assert cache.seconds_until_due() == 0.0

    def test_due_after_refetch_interval(self):
        """Next cycle is due once refetch_interval has elapsed since the last start"""
        cache, _, clock, _ = make_cache([REPORT])
        start = clock.now
        cache.run_cycle()

        assert cache.is_due(start + 299) is False
        assert cache.seconds_until_due(start + 100) == pytest.approx(200.0)
        assert cache.is_due(start + 300) is True

    def test_interval_measured_from_cycle_start(self):
        """Backoff time inside a cycle counts toward the interval"""
        cache, _, clock, _ = make_cache([TransientFetchError("x"), REPORT])
        start = clock.now
        cache.run_cycle()

        assert clock.now == start + 1.0
        assert cache.is_due(start + 300) is True

    def test_manual_refresh_makes_cycle_due(self):
        """request_refresh triggers regardless of the interval"""
        cache, _, _, _ = make_cache([REPORT])
        cache.run_cycle()
        assert cache.is_due() is False

        cache.request_refresh()
        assert cache.is_due() is True

        cache.run_cycle()
        assert cache.is_due() is False

    def test_tick_does_nothing_when_not_started(self):
        """Without start(), tick never fetches"""
        cache, fetcher, _, _ = make_cache([REPORT])
        assert cache.tick() is False
        fetcher.fetch.assert_not_called()

    def test_start_polls_and_stop_prevents_further_cycles(self):
        """After stop(), reaching the refetch interval does not fetch"""
        fetched = threading.Event()
        cache, fetcher, clock, _ = make_cache([])

        def fetch():
            fetched.set()
            return REPORT

        fetcher.fetch.side_effect = fetch

        cache.start()
        assert fetched.wait(timeout=5)
        cache.stop(timeout=5)

        assert cache.is_running is False
        assert cache.get_current().status == CacheStatus.FRESH

        clock.advance(300)
        assert cache.tick() is False
        assert fetcher.fetch.call_count == 1

    def test_start_is_idempotent(self):
        """A second start() keeps the same polling thread"""
        cache, fetcher, _, _ = make_cache([])
        fetcher.fetch.return_value = REPORT
        fetcher.fetch.side_effect = None

        cache.start()
        thread = cache._thread
        cache.start()

        assert cache._thread is thread
        cache.stop(timeout=5)

    def test_manual_refresh_served_by_polling_thread(self):
        """request_refresh wakes the poller for an extra cycle"""
        calls = []
        second = threading.Event()
        cache, fetcher, _, _ = make_cache([])

        def fetch():
            calls.append(1)
            if len(calls) >= 2:
                second.set()
            return REPORT

        fetcher.fetch.side_effect = fetch

        cache.start()
        try:
            for _ in range(50):
                if calls:
                    break
                threading.Event().wait(0.05)
            cache.request_refresh()
            assert second.wait(timeout=5)
        finally:
            cache.stop(timeout=5)

        assert len(calls) >= 2

    def test_stop_when_not_started_is_noop(self):
        """stop() before start() does nothing"""
        cache, _, _, _ = make_cache([])
        cache.stop()
        assert cache.is_running is False


class TestSettingsFromConfig:
    """Mapping from Config to PollingSettings"""

    def test_from_config(self):
        """Config values flow into settings and retry policy"""
        cfg = Mock()
        cfg.SENTIMENT_INSTRUMENTS = ['EURUSD', 'USDCHF']
        cfg.REFETCH_INTERVAL = 120.0
        cfg.STALE_AFTER = 90.0
        cfg.RETRY_CONFIG = {'max_attempts': 4, 'base_delay': 0.5, 'backoff_factor': 2.0,
                            'max_delay': 10.0, 'retry_fatal': False}

        settings = PollingSettings.from_config(cfg)

        assert settings.instruments == ('EURUSD', 'USDCHF')
        assert settings.refetch_interval == 120.0
        assert settings.stale_after == 90.0
        assert settings.retry.max_attempts == 4
        assert settings.retry.delay_for(0) == 0.5


if __name__ == '__main__':
    pytest.main([__file__])
