"""Refresh scheduler: decides when an aggregation cycle may start.

    IDLE --(timer due | manual refresh)--> FETCHING --(complete)--> IDLE

At most one cycle is in flight. Refresh requests while FETCHING are
coalesced, and while the provider is rate limiting both the timer and manual
refreshes wait for the backoff to expire. The scheduler does no I/O and is
only ever driven from the render loop, so it needs no locking.
"""

import logging
from datetime import datetime, timedelta
from enum import Enum

from .aggregator import AggregateResult

logger = logging.getLogger(__name__)

DEFAULT_REFRESH_INTERVAL = 60.0


class SchedulerState(Enum):
    IDLE = "idle"
    FETCHING = "fetching"


class RefreshScheduler:
    """Idle/Fetching state machine with interval, coalescing and backoff.

    Args:
        interval: Seconds between the end of one cycle and the next timer-triggered one
    """

    def __init__(self, interval: float = DEFAULT_REFRESH_INTERVAL) -> None:
        if interval <= 0:
            raise ValueError("refresh interval must be positive")
        self.interval = timedelta(seconds=interval)
        self.state = SchedulerState.IDLE
        self.cycle_count = 0
        self.next_due: datetime | None = None  # None: due immediately
        self.backoff_until: datetime | None = None
        self.cancelled = False
        self._in_flight: int | None = None

    @property
    def fetching(self) -> bool:
        return self.state is SchedulerState.FETCHING

    def in_backoff(self, now: datetime) -> bool:
        return self.backoff_until is not None and now < self.backoff_until

    def poll(self, now: datetime) -> int | None:
        """Timer tick. Returns a new cycle id if a cycle should start now."""
        if self.state is not SchedulerState.IDLE or self.cancelled:
            return None
        if self.in_backoff(now):
            return None
        if self.next_due is not None and now < self.next_due:
            return None
        return self._start("timer")

    def request_refresh(self, now: datetime) -> int | None:
        """Manual refresh. Returns a new cycle id, or None if coalesced."""
        if self.cancelled:
            return None
        if self.state is SchedulerState.FETCHING:
            logger.debug("Manual refresh coalesced: cycle %s in flight", self._in_flight)
            return None
        if self.in_backoff(now):
            logger.debug("Manual refresh ignored: rate limited until %s", self.backoff_until)
            return None
        return self._start("manual")

    def complete(self, cycle_id: int, result: AggregateResult, now: datetime) -> bool:
        """Finish a cycle. Returns True if the result should be applied.

        Results of cycles that are not the one in flight (or that arrive
        after cancel()) are stale and must be discarded.
        """
        if self.cancelled or cycle_id != self._in_flight:
            logger.debug("Discarding stale result of cycle %s", cycle_id)
            return False

        self.state = SchedulerState.IDLE
        self._in_flight = None

        if result.rate_limited_until is not None and result.rate_limited_until > now:
            self.backoff_until = result.rate_limited_until
            self.next_due = result.rate_limited_until
            logger.warning("Rate limited; next refresh at %s", self.backoff_until.isoformat())
        else:
            self.backoff_until = None
            self.next_due = now + self.interval
        return True

    def cancel(self) -> None:
        """Stop scheduling; any in-flight result will be discarded."""
        self.cancelled = True
        self._in_flight = None
        self.state = SchedulerState.IDLE

    def _start(self, trigger: str) -> int:
        self.cycle_count += 1
        self._in_flight = self.cycle_count
        self.state = SchedulerState.FETCHING
        logger.debug("Starting cycle %d (%s)", self.cycle_count, trigger)
        return self.cycle_count
