"""
GitHub Actions SDK for Python

Read-only access to the workflow run, job and user endpoints of the GitHub
REST API.

Example:
    >>> from actions_sdk import ActionsSDK
    >>>
    >>> with ActionsSDK(base_url='https://api.github.com', token='ghp_...') as sdk:
    ...     runs = sdk.runs.list('octo-org', 'octo-repo', branch='main', per_page=3)
    ...     jobs = sdk.jobs.list('octo-org', 'octo-repo', runs[0]['id'])
"""

from .client import ActionsSDK, api_base_url
from .exceptions import (
    ActionsError,
    ActionsAPIError,
    ActionsNotFoundError,
    ActionsAuthenticationError,
    ActionsRateLimitError,
    ActionsServerError,
)

__version__ = "0.1.0"
__all__ = [
    "ActionsSDK",
    "api_base_url",
    "ActionsError",
    "ActionsAPIError",
    "ActionsNotFoundError",
    "ActionsAuthenticationError",
    "ActionsRateLimitError",
    "ActionsServerError",
]
