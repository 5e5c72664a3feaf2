"""Run sources: the "list runs" capability the fetcher depends on.

RunSource is the seam between the polling engine and the network. The
production implementation wraps the Actions SDK; the demo source and the
test fake return canned data without any API calls.
"""

from abc import ABC, abstractmethod

from actions_sdk import ActionsSDK

from .models import Job, RepositorySpec, Run


class RunSource(ABC):
    """Abstract base class for workflow run providers.

    Implementations may raise actions_sdk exceptions, TimeoutError or
    requests exceptions; the RunFetcher translates them into FetchError.
    """

    @abstractmethod
    def list_runs(self, spec: RepositorySpec, credential: str, limit: int) -> list[Run]:
        """Return up to `limit` recent runs for the watched repository.

        Args:
            spec: Repository to query; branch and actor are passed as
                server-side filters when set
            credential: API token
            limit: Page size to request

        Returns:
            List of Run objects, in the order the provider returned them
        """
        ...

    @abstractmethod
    def list_jobs(self, run: Run, credential: str) -> list[Job]:
        """Return the jobs of a run."""
        ...

    def validate_credential(self, credential: str) -> str | None:
        """Check the credential against the provider.

        Returns the login it belongs to when known. Raises on rejection.
        """
        return None


class GitHubRunSource(RunSource):
    """Production implementation backed by the GitHub REST API.

    A client is created per call so concurrent fetches never share a
    requests session.
    """

    def __init__(self, base_url: str, timeout: float = 10) -> None:
        self._base_url = base_url
        self._timeout = timeout

    def _client(self, credential: str) -> ActionsSDK:
        return ActionsSDK(base_url=self._base_url, token=credential, timeout=self._timeout)

    def list_runs(self, spec: RepositorySpec, credential: str, limit: int) -> list[Run]:
        with self._client(credential) as sdk:
            payloads = sdk.runs.list(
                spec.owner,
                spec.name,
                branch=spec.branch,
                actor=spec.actor,
                per_page=limit,
            )
        return [Run.from_api(p) for p in payloads]

    def list_jobs(self, run: Run, credential: str) -> list[Job]:
        with self._client(credential) as sdk:
            payloads = sdk.jobs.list(run.owner, run.repo, run.id)
        return [Job.from_api(p) for p in payloads]

    def validate_credential(self, credential: str) -> str | None:
        with self._client(credential) as sdk:
            user = sdk.user.current()
        if isinstance(user, dict):
            return user.get("login")
        return None
