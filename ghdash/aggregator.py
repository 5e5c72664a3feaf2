"""Aggregation cycle: fan out one fetch per repository spec, merge the results.

The cycle runs on a worker thread and builds its AggregateResult without
touching any shared state; the render loop receives it as a single value.
"""

import logging
import threading
import time
from concurrent.futures import FIRST_COMPLETED, Future, wait
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Callable, Iterable

from .errors import FetchError, RateLimitedError, TransientError, UnauthorizedError
from .fetcher import RunFetcher
from .models import RepositorySpec, Run, sort_runs

logger = logging.getLogger(__name__)

DEFAULT_FETCH_TIMEOUT = 30.0
DEFAULT_RATE_LIMIT_BACKOFF = 120.0

# How many per-spec errors the status line spells out before summarising
MAX_LISTED_ERRORS = 3

# How often a waiting cycle checks its caller's cancel event
CANCEL_POLL_SECONDS = 0.1

SpecKey = tuple[str, str, str | None, str | None]


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def submit_daemon(fn: Callable, *args) -> Future:
    """Run `fn(*args)` on a daemon thread and return a Future for its result.

    Nothing joins these threads, so an abandoned call cannot hold up
    interpreter exit.
    """
    future: Future = Future()

    def runner() -> None:
        if not future.set_running_or_notify_cancel():
            return
        try:
            result = fn(*args)
        except BaseException as exc:
            future.set_exception(exc)
        else:
            future.set_result(result)

    name = f"ghdash-fetch-{getattr(fn, '__name__', 'call')}"
    threading.Thread(target=runner, name=name, daemon=True).start()
    return future


def _unique(specs: Iterable[RepositorySpec]) -> list[RepositorySpec]:
    """Drop repeated specs, keeping the first of each key."""
    seen: dict[SpecKey, RepositorySpec] = {}
    for spec in specs:
        seen.setdefault(spec.key, spec)
    return list(seen.values())


@dataclass(frozen=True)
class AggregateResult:
    """Outcome of one aggregation cycle."""

    runs: tuple[Run, ...] = ()
    errors: dict[SpecKey, FetchError] = field(default_factory=dict)
    fatal: FetchError | None = None
    attempted: int = 0
    rate_limited_until: datetime | None = None

    @property
    def ok(self) -> bool:
        return not self.errors and self.fatal is None

    @property
    def all_failed(self) -> bool:
        """True when specs were configured and none of them produced data.

        An empty spec list is not a failure: it is "nothing configured".
        """
        if self.fatal is not None:
            return True
        return self.attempted > 0 and len(self.errors) >= self.attempted

    def summary(self) -> str | None:
        """One-line description of what went wrong, or None if nothing did."""
        if self.fatal is not None:
            return f"Credential rejected, check the configured token ({self.fatal})"
        if not self.errors:
            return None
        messages = [str(e) for e in self.errors.values()]
        shown = "; ".join(messages[:MAX_LISTED_ERRORS])
        if len(messages) > MAX_LISTED_ERRORS:
            shown += f"; and {len(messages) - MAX_LISTED_ERRORS} more"
        return f"{len(self.errors)} of {self.attempted} repositories failed: {shown}"


class Aggregator:
    """Runs aggregation cycles across all configured repository specs.

    Args:
        fetcher: RunFetcher used for every spec
        fetch_timeout: Seconds from cycle start after which an unfinished
            fetch is abandoned and recorded as transient
        rate_limit_backoff: Backoff used when the provider is rate limiting
            but gave no reset time
        clock: Returns the current aware datetime (injectable for tests)
    """

    def __init__(
        self,
        fetcher: RunFetcher,
        fetch_timeout: float = DEFAULT_FETCH_TIMEOUT,
        rate_limit_backoff: float = DEFAULT_RATE_LIMIT_BACKOFF,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self.fetcher = fetcher
        self.fetch_timeout = fetch_timeout
        self.rate_limit_backoff = rate_limit_backoff
        self._clock = clock

    def run_cycle(
        self,
        specs: Iterable[RepositorySpec],
        credential: str,
        cancel: threading.Event | None = None,
    ) -> AggregateResult:
        """Fetch every spec concurrently and merge the successes.

        Per-spec failures are collected in `errors`. An Unauthorized failure
        short-circuits the cycle: remaining fetches are abandoned and no runs
        are merged.

        Setting `cancel` (owned by the caller, e.g. on quit) makes the cycle
        return within CANCEL_POLL_SECONDS; unfinished fetches are recorded as
        cancelled and their threads are left to die on their own.
        """
        specs = _unique(specs)
        if not credential:
            raise ValueError("credential must be a non-empty token string")
        if not specs:
            return AggregateResult()

        # Stops retries in this cycle's fetch threads once the cycle is over
        stop = threading.Event()
        pending: dict[Future, RepositorySpec] = {
            submit_daemon(self.fetcher.fetch, spec, credential, stop): spec
            for spec in specs
        }

        collected: list[Run] = []
        errors: dict[SpecKey, FetchError] = {}
        fatal: UnauthorizedError | None = None
        deadline = time.monotonic() + self.fetch_timeout
        reason = f"timed out after {self.fetch_timeout:g}s"

        try:
            while pending and fatal is None:
                if cancel is not None and cancel.is_set():
                    reason = "cancelled"
                    break
                remaining = deadline - time.monotonic()
                if remaining <= 0:
                    break
                done, _ = wait(
                    list(pending),
                    timeout=min(remaining, CANCEL_POLL_SECONDS),
                    return_when=FIRST_COMPLETED,
                )
                for future in done:
                    spec = pending.pop(future)
                    fatal = self._collect(spec, future, collected, errors)
                    if fatal is not None:
                        break

            if fatal is None:
                for future, spec in pending.items():
                    if future.done():
                        fatal = self._collect(spec, future, collected, errors)
                        if fatal is not None:
                            break
                    else:
                        logger.warning("Fetch for %s abandoned: %s", spec.label, reason)
                        errors[spec.key] = TransientError(f"{spec.label}: {reason}")
        finally:
            stop.set()

        if fatal is not None:
            spec_key = next(k for k, v in errors.items() if v is fatal)
            logger.error("Cycle aborted: %s", fatal)
            return AggregateResult(
                errors={spec_key: fatal},
                fatal=fatal,
                attempted=len(specs),
            )

        result = AggregateResult(
            runs=sort_runs(collected),
            errors=errors,
            attempted=len(specs),
            rate_limited_until=self._backoff_until(errors),
        )
        logger.info(
            "Cycle finished: %d runs from %d/%d repositories",
            len(result.runs), len(specs) - len(errors), len(specs),
        )
        return result

    def _collect(
        self,
        spec: RepositorySpec,
        future: Future,
        collected: list[Run],
        errors: dict[SpecKey, FetchError],
    ) -> UnauthorizedError | None:
        """Fold one finished fetch into the accumulators; return it if fatal."""
        try:
            collected.extend(future.result())
        except UnauthorizedError as exc:
            errors[spec.key] = exc
            return exc
        except FetchError as exc:
            logger.warning("Fetch failed for %s: %s", spec.label, exc)
            errors[spec.key] = exc
        return None

    def _backoff_until(self, errors: dict[SpecKey, FetchError]) -> datetime | None:
        limited = [e for e in errors.values() if isinstance(e, RateLimitedError)]
        if not limited:
            return None
        fallback = self._clock() + timedelta(seconds=self.rate_limit_backoff)
        return max(e.retry_at or fallback for e in limited)
