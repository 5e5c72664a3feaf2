"""
GitHub Actions SDK exceptions
"""

from datetime import datetime


class ActionsError(Exception):
    """Base exception for all Actions SDK errors"""

    pass


class ActionsAPIError(ActionsError):
    """Raised when API request fails"""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


class ActionsNotFoundError(ActionsAPIError):
    """Raised when repository, branch or run is not found (404)"""

    def __init__(self, message: str):
        super().__init__(message, status_code=404)


class ActionsAuthenticationError(ActionsAPIError):
    """Raised when authentication fails (401)"""

    def __init__(self, message: str):
        super().__init__(message, status_code=401)


class ActionsRateLimitError(ActionsAPIError):
    """Raised when the API quota is exhausted (403/429)

    reset_at is the provider-supplied time at which requests may resume,
    or None when the response carried no usable hint.
    """

    def __init__(
        self,
        message: str,
        status_code: int = 403,
        reset_at: datetime | None = None,
    ):
        super().__init__(message, status_code=status_code)
        self.reset_at = reset_at


class ActionsServerError(ActionsAPIError):
    """Raised on 5xx responses"""

    pass
