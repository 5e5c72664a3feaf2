"""
GitHub Actions SDK Client
Read-only API client for the GitHub Actions REST endpoints used by the dashboard
"""

import time
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional

import requests

from .exceptions import (
    ActionsAPIError,
    ActionsAuthenticationError,
    ActionsNotFoundError,
    ActionsRateLimitError,
    ActionsServerError,
)

API_VERSION = '2022-11-28'


def api_base_url(host: str) -> str:
    """Return the REST API root for a GitHub host.

    github.com uses the api. subdomain; GitHub Enterprise Server serves the
    API under /api/v3 on the instance host.
    """
    host = host.strip().rstrip('/')
    if host in ('github.com', 'api.github.com'):
        return 'https://api.github.com'
    if host.startswith('http://') or host.startswith('https://'):
        return f'{host}/api/v3'
    return f'https://{host}/api/v3'


class RunsAPI:
    """Workflow run endpoints"""

    def __init__(self, client: 'ActionsSDK'):
        self.client = client

    def list(
        self,
        owner: str,
        repo: str,
        branch: Optional[str] = None,
        actor: Optional[str] = None,
        per_page: int = 30,
    ) -> List[Dict[str, Any]]:
        """List the most recent workflow runs of a repository, newest first

        Args:
            owner: Repository owner (user or organisation login)
            repo: Repository name
            branch: Only runs for this head branch
            actor: Only runs triggered by this user login
            per_page: Page size (GitHub caps this at 100)

        Returns:
            List of workflow_run dictionaries
        """
        params: Dict[str, Any] = {'per_page': max(1, min(per_page, 100))}
        if branch:
            params['branch'] = branch
        if actor:
            params['actor'] = actor

        response = self.client._request(
            'GET', f'/repos/{owner}/{repo}/actions/runs', params=params
        )
        if isinstance(response, dict) and 'workflow_runs' in response:
            return response['workflow_runs']
        return []


class JobsAPI:
    """Workflow job endpoints"""

    def __init__(self, client: 'ActionsSDK'):
        self.client = client

    def list(self, owner: str, repo: str, run_id: int) -> List[Dict[str, Any]]:
        """List the jobs of a workflow run (latest attempt)"""
        response = self.client._request(
            'GET',
            f'/repos/{owner}/{repo}/actions/runs/{run_id}/jobs',
            params={'per_page': 100},
        )
        if isinstance(response, dict) and 'jobs' in response:
            return response['jobs']
        return []


class UserAPI:
    """Authenticated user endpoints"""

    def __init__(self, client: 'ActionsSDK'):
        self.client = client

    def current(self) -> Dict[str, Any]:
        """Get the user the token belongs to (used to validate the token)"""
        return self.client._request('GET', '/user')


class ActionsSDK:
    """
    Main GitHub Actions SDK client

    Usage:
        with ActionsSDK(base_url='https://api.github.com', token='ghp_...') as sdk:
            runs = sdk.runs.list('octo-org', 'octo-repo', branch='main', per_page=5)
    """

    def __init__(
        self,
        base_url: str = 'https://api.github.com',
        token: Optional[str] = None,
        timeout: float = 10,
    ):
        self.base_url = base_url.rstrip('/')
        self.token = token
        self.timeout = timeout
        self.session = requests.Session()
        self.session.headers['Accept'] = 'application/vnd.github+json'
        self.session.headers['X-GitHub-Api-Version'] = API_VERSION

        if token:
            self.session.headers['Authorization'] = f'Bearer {token}'

        # Initialize API endpoints
        self.runs = RunsAPI(self)
        self.jobs = JobsAPI(self)
        self.user = UserAPI(self)

    def _request(
        self,
        method: str,
        path: str,
        params: Optional[Dict] = None,
    ) -> Any:
        """Make HTTP request to API"""
        url = f'{self.base_url}{path}'

        try:
            response = self.session.request(
                method,
                url,
                params=params,
                timeout=self.timeout
            )
        except requests.Timeout:
            raise TimeoutError(f'Request to {url} timed out after {self.timeout}s')

        _raise_for_status(response, url)

        if response.status_code == 204:
            return None

        try:
            return response.json()
        except ValueError:
            return response.text

    def close(self):
        """Close the session"""
        self.session.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()


def _raise_for_status(response: requests.Response, url: str) -> None:
    """Translate an error response into the matching SDK exception."""
    status = response.status_code
    if status < 400:
        return

    message = _error_message(response) or f'HTTP {status} for {url}'

    if status == 401:
        raise ActionsAuthenticationError(message)
    if status == 404:
        raise ActionsNotFoundError(message)
    if status == 429 or (status == 403 and _is_rate_limited(response)):
        raise ActionsRateLimitError(
            message, status_code=status, reset_at=_rate_limit_reset(response)
        )
    if status >= 500:
        raise ActionsServerError(message, status_code=status)
    raise ActionsAPIError(message, status_code=status)


def _error_message(response: requests.Response) -> str:
    try:
        data = response.json()
    except ValueError:
        return response.text.strip()
    if isinstance(data, dict):
        return str(data.get('message') or '')
    return ''


def _is_rate_limited(response: requests.Response) -> bool:
    if response.headers.get('Retry-After') is not None:
        return True
    return response.headers.get('X-RateLimit-Remaining') == '0'


def _rate_limit_reset(response: requests.Response) -> Optional[datetime]:
    """Work out when requests may resume from Retry-After or X-RateLimit-Reset."""
    retry_after = response.headers.get('Retry-After')
    if retry_after is not None:
        try:
            return datetime.now(timezone.utc) + timedelta(seconds=int(retry_after))
        except (ValueError, TypeError):
            pass

    reset_hdr = response.headers.get('X-RateLimit-Reset')
    if reset_hdr is not None:
        try:
            reset_epoch = int(reset_hdr)
        except (ValueError, TypeError):
            return None
        # Guard against clock skew putting the reset in the past
        return datetime.fromtimestamp(max(reset_epoch, int(time.time())), tz=timezone.utc)

    return None
