"""Demo data: a RunSource that makes up plausible runs, no network needed.

Used by `gh-dashboard --demo` to try the UI without a token or config.
"""

import random
import threading
from datetime import datetime, timedelta, timezone

from .models import Job, RepositorySpec, Run, RunConclusion, RunStatus
from .sources import RunSource

DEMO_TOKEN = "demo"

DEMO_REPOS = [
    RepositorySpec("octo-org", "api", branch="main", count=3),
    RepositorySpec("octo-org", "web", count=2),
    RepositorySpec("octo-org", "infra", branch="main", actor="hubot", count=2),
    RepositorySpec("octocat", "hello-world", count=1),
]

_WORKFLOWS = ["CI", "Lint", "Deploy", "Release", "Nightly"]
_ACTORS = ["octocat", "hubot", "monalisa", "dependabot[bot]"]
_BRANCHES = ["main", "develop", "feature/login", "fix/flaky-test"]
_COMMITS = [
    "Fix race in cache warmup",
    "Bump requests from 2.31.0 to 2.32.3",
    "Add pagination to the runs endpoint",
    "Refactor settings loader\n\nSplit env handling into its own function.",
    "Update README",
]
_JOBS = ["build", "test (3.11)", "test (3.12)", "lint", "deploy"]


class DemoRunSource(RunSource):
    """Random runs that drift a little on every refresh."""

    def __init__(self, seed: int | None = None) -> None:
        self._rng = random.Random(seed)
        self._next_id = 9_000_000
        # list_runs is called from several fetch threads at once
        self._lock = threading.Lock()

    def _status(self) -> tuple[RunStatus, RunConclusion | None]:
        roll = self._rng.random()
        if roll < 0.15:
            return RunStatus.QUEUED, None
        if roll < 0.35:
            return RunStatus.IN_PROGRESS, None
        conclusion = self._rng.choice(
            [RunConclusion.SUCCESS] * 6
            + [RunConclusion.FAILURE, RunConclusion.CANCELLED, RunConclusion.SKIPPED]
        )
        return RunStatus.COMPLETED, conclusion

    def list_runs(self, spec: RepositorySpec, credential: str, limit: int) -> list[Run]:
        now = datetime.now(timezone.utc)
        with self._lock:
            return [self._make_run(spec, now) for _ in range(limit)]

    def _make_run(self, spec: RepositorySpec, now: datetime) -> Run:
        self._next_id += self._rng.randint(1, 50)
        status, conclusion = self._status()
        run_id = self._next_id
        return Run(
            id=run_id,
            owner=spec.owner,
            repo=spec.name,
            workflow_name=self._rng.choice(_WORKFLOWS),
            branch=spec.branch or self._rng.choice(_BRANCHES),
            actor=spec.actor or self._rng.choice(_ACTORS),
            status=status,
            conclusion=conclusion,
            started_at=now - timedelta(minutes=self._rng.randint(0, 600)),
            url=f"https://github.com/{spec.owner}/{spec.name}/actions/runs/{run_id}",
            commit_message=self._rng.choice(_COMMITS),
            event=self._rng.choice(["push", "pull_request", "schedule"]),
            run_number=self._rng.randint(1, 2000),
        )

    def list_jobs(self, run: Run, credential: str) -> list[Job]:
        with self._lock:
            count = self._rng.randint(2, len(_JOBS))
            durations = [self._rng.randint(1, 9) for _ in range(count)]
        jobs = []
        start = run.started_at
        for offset, name in enumerate(_JOBS[:count]):
            started = start + timedelta(seconds=offset * 20)
            done = run.status is RunStatus.COMPLETED
            jobs.append(Job(
                id=run.id * 10 + offset,
                name=name,
                status=run.status,
                conclusion=run.conclusion if done else None,
                started_at=started,
                completed_at=started + timedelta(minutes=durations[offset]) if done else None,
                url=f"{run.url}/job/{run.id * 10 + offset}",
            ))
        return jobs
