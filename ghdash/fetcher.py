"""Run fetcher: one repository spec in, a filtered list of runs out.

Translates provider failures into FetchError kinds and retries transient
ones a bounded number of times. Holds no shared mutable state, so any number
of fetches can run concurrently against the same instance.
"""

import logging
import threading

import requests
from actions_sdk import (
    ActionsAPIError,
    ActionsAuthenticationError,
    ActionsNotFoundError,
    ActionsRateLimitError,
    ActionsServerError,
)

from .errors import (
    FetchError,
    NotFoundError,
    RateLimitedError,
    TransientError,
    UnauthorizedError,
)
from .models import Job, RepositorySpec, Run
from .sources import RunSource

logger = logging.getLogger(__name__)

DEFAULT_ATTEMPTS = 3
DEFAULT_RETRY_DELAY = 0.5


def newest_first(runs: list[Run]) -> list[Run]:
    """Sort runs by start time, newest first (ties by id, highest first)."""
    return sorted(runs, key=lambda r: (r.started_at, r.id), reverse=True)


class RunFetcher:
    """Fetches the latest runs for a repository spec.

    Args:
        source: Provider of raw runs (GitHub, demo or a test double)
        attempts: Total tries for transient failures (>= 1)
        retry_delay: Base delay between tries; the n-th retry waits n times this
    """

    def __init__(
        self,
        source: RunSource,
        attempts: int = DEFAULT_ATTEMPTS,
        retry_delay: float = DEFAULT_RETRY_DELAY,
    ) -> None:
        if attempts < 1:
            raise ValueError("attempts must be >= 1")
        self.source = source
        self.attempts = attempts
        self.retry_delay = retry_delay

    def fetch(
        self,
        spec: RepositorySpec,
        credential: str,
        cancel: threading.Event | None = None,
    ) -> list[Run]:
        """Return up to spec.count runs matching its branch and actor filters, newest first.

        An empty list means the provider has no matching runs; it is not an
        error.

        Raises:
            ValueError: If the credential is empty
            FetchError: Unauthorized, NotFound, RateLimited, or Transient once
                retries are exhausted (or the fetch was cancelled)
        """
        if not credential:
            raise ValueError("credential must be a non-empty token string")

        cancel = cancel or threading.Event()
        last_error: TransientError | None = None

        for attempt in range(1, self.attempts + 1):
            if cancel.is_set():
                raise TransientError(f"{spec.label}: cancelled")
            try:
                runs = self.source.list_runs(spec, credential, spec.count)
            except Exception as exc:
                error = _classify(spec.label, exc)
                if not isinstance(error, TransientError):
                    raise error from exc
                last_error = error
                if attempt < self.attempts:
                    logger.info(
                        "Transient failure for %s (attempt %d/%d): %s",
                        spec.label, attempt, self.attempts, exc,
                    )
                    # Event.wait doubles as an interruptible sleep
                    if cancel.wait(self.retry_delay * attempt):
                        raise TransientError(f"{spec.label}: cancelled") from exc
                    continue
                logger.warning("Giving up on %s after %d attempts: %s", spec.label, attempt, exc)
                raise error from exc
            return _select(spec, runs)

        # Only reachable when every attempt failed transiently
        raise last_error or TransientError(spec.label)

    def fetch_jobs(self, run: Run, credential: str) -> list[Job]:
        """Return the jobs of run. Single attempt; failures raise FetchError."""
        try:
            return self.source.list_jobs(run, credential)
        except Exception as exc:
            raise _classify(f"{run.owner}/{run.repo} run {run.id}", exc) from exc


def _select(spec: RepositorySpec, runs: list[Run]) -> list[Run]:
    """Apply branch and actor filters client-side, then order and truncate."""
    matching = [
        r for r in runs
        if (spec.branch is None or r.branch == spec.branch)
        and (spec.actor is None or r.actor.casefold() == spec.actor.casefold())
    ]
    return newest_first(matching)[: spec.count]


def _classify(label: str, exc: Exception) -> FetchError:
    """Map a provider exception onto a FetchError kind."""
    if isinstance(exc, FetchError):
        return exc
    if isinstance(exc, ActionsAuthenticationError):
        return UnauthorizedError(f"{label}: credential rejected ({exc})")
    if isinstance(exc, ActionsNotFoundError):
        return NotFoundError(f"{label}: repository or branch not found")
    if isinstance(exc, ActionsRateLimitError):
        return RateLimitedError(f"{label}: rate limited", retry_at=exc.reset_at)
    if isinstance(exc, ActionsServerError):
        return TransientError(f"{label}: server error {exc.status_code}")
    if isinstance(exc, ActionsAPIError):
        return TransientError(f"{label}: API error {exc.status_code}: {exc}")
    if isinstance(exc, (TimeoutError, requests.RequestException, OSError)):
        return TransientError(f"{label}: {exc}")
    # Unknown failures are treated as transient so one bad spec cannot
    # take down the cycle
    logger.exception("Unexpected error fetching %s", label)
    return TransientError(f"{label}: {exc}")
