"""Exception hierarchy for the dashboard.

ConfigError and CredentialError are fatal before the UI starts. FetchError
subclasses are per-cycle and only ever end up in the status line.
RenderError is best effort: the loop keeps going until too many happen in a
row.
"""

from datetime import datetime


class DashboardError(Exception):
    """Base exception for all dashboard errors."""

    pass


class ConfigError(DashboardError):
    """Configuration could not be read or is invalid."""

    pass


class CredentialError(DashboardError):
    """No usable GitHub token could be obtained."""

    pass


class RenderError(DashboardError):
    """Drawing the current view model failed."""

    pass


class FetchError(DashboardError):
    """Fetching runs for one repository spec failed.

    The concrete kinds are available both as module-level classes and as
    attributes of FetchError (FetchError.Unauthorized, FetchError.NotFound,
    FetchError.RateLimited, FetchError.Transient).
    """

    kind = "error"

    def __str__(self) -> str:
        message = super().__str__()
        return message or self.kind


class UnauthorizedError(FetchError):
    """The shared credential was rejected. Aborts the whole cycle."""

    kind = "unauthorized"


class NotFoundError(FetchError):
    """The repository or branch does not exist (or is not visible)."""

    kind = "not found"


class RateLimitedError(FetchError):
    """The API quota is exhausted until retry_at (None if unknown)."""

    kind = "rate limited"

    def __init__(self, message: str = "", retry_at: datetime | None = None):
        super().__init__(message)
        self.retry_at = retry_at


class TransientError(FetchError):
    """Network failure, timeout or 5xx. Retried before being reported."""

    kind = "transient"


FetchError.Unauthorized = UnauthorizedError
FetchError.NotFound = NotFoundError
FetchError.RateLimited = RateLimitedError
FetchError.Transient = TransientError
