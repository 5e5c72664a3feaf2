"""Tests for RefreshScheduler: timer, coalescing, backoff and stale results."""

from datetime import timedelta

import pytest

from ghdash.aggregator import AggregateResult
from ghdash.scheduler import RefreshScheduler, SchedulerState

from tests.fakes import BASE_TIME


NOW = BASE_TIME


@pytest.fixture
def scheduler():
    return RefreshScheduler(interval=60)


class TestPoll:
    """Timer-driven cycles."""

    def test_first_poll_starts_immediately(self, scheduler):
        assert scheduler.poll(NOW) == 1
        assert scheduler.state is SchedulerState.FETCHING

    def test_no_second_cycle_while_fetching(self, scheduler):
        scheduler.poll(NOW)
        assert scheduler.poll(NOW + timedelta(seconds=300)) is None
        assert scheduler.cycle_count == 1

    def test_interval_measured_from_completion(self, scheduler):
        cycle = scheduler.poll(NOW)
        done = NOW + timedelta(seconds=5)
        scheduler.complete(cycle, AggregateResult(), done)

        assert scheduler.state is SchedulerState.IDLE
        assert scheduler.poll(done + timedelta(seconds=59)) is None
        assert scheduler.poll(done + timedelta(seconds=60)) == 2

    def test_rejects_non_positive_interval(self):
        with pytest.raises(ValueError):
            RefreshScheduler(interval=0)


class TestManualRefresh:
    def test_refresh_when_idle_starts_cycle(self, scheduler):
        cycle = scheduler.poll(NOW)
        scheduler.complete(cycle, AggregateResult(), NOW)
        assert scheduler.request_refresh(NOW) == 2

    def test_refresh_while_fetching_is_coalesced(self, scheduler):
        scheduler.poll(NOW)
        assert scheduler.request_refresh(NOW) is None
        assert scheduler.request_refresh(NOW) is None
        assert scheduler.cycle_count == 1

    def test_each_cycle_increments_count_once(self, scheduler):
        for expected in range(1, 4):
            cycle = scheduler.request_refresh(NOW)
            assert cycle == expected
            scheduler.complete(cycle, AggregateResult(), NOW)
        assert scheduler.cycle_count == 3


class TestComplete:
    def test_stale_result_discarded(self, scheduler):
        cycle = scheduler.poll(NOW)
        assert scheduler.complete(cycle + 1, AggregateResult(), NOW) is False
        assert scheduler.fetching
        assert scheduler.complete(cycle, AggregateResult(), NOW) is True
        assert scheduler.complete(cycle, AggregateResult(), NOW) is False

    def test_result_after_cancel_discarded(self, scheduler):
        cycle = scheduler.poll(NOW)
        scheduler.cancel()
        assert scheduler.complete(cycle, AggregateResult(), NOW) is False
        assert scheduler.poll(NOW) is None
        assert scheduler.request_refresh(NOW) is None


class TestBackoff:
    """Rate limiting blocks both the timer and manual refresh."""

    def test_backoff_until_reset(self, scheduler):
        until = NOW + timedelta(minutes=5)
        cycle = scheduler.poll(NOW)
        scheduler.complete(cycle, AggregateResult(rate_limited_until=until), NOW)

        assert scheduler.in_backoff(NOW)
        assert scheduler.request_refresh(NOW + timedelta(minutes=1)) is None
        assert scheduler.poll(NOW + timedelta(minutes=4)) is None
        assert scheduler.poll(until) == 2

    def test_past_reset_means_no_backoff(self, scheduler):
        cycle = scheduler.poll(NOW)
        scheduler.complete(
            cycle, AggregateResult(rate_limited_until=NOW - timedelta(seconds=1)), NOW
        )
        assert not scheduler.in_backoff(NOW)
        assert scheduler.request_refresh(NOW) == 2
