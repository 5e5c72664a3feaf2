"""Domain types: watch targets, workflow runs and jobs.

All of these are immutable snapshots. A newer fetch produces new Run values
that replace the old ones by id; nothing is edited in place.
"""

from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Any

from .errors import ConfigError


EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)

_NOT_STARTED = {"queued", "waiting", "requested", "pending"}


class RunStatus(Enum):
    """Lifecycle status of a workflow run."""
    QUEUED = "queued"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    OTHER = "other"

    @classmethod
    def parse(cls, value: str | None) -> "RunStatus":
        """Map a GitHub status string onto the lifecycle states.

        GitHub also reports waiting, requested and pending; none of them has
        started executing, so they all count as queued.
        """
        if value == "in_progress":
            return cls.IN_PROGRESS
        if value == "completed":
            return cls.COMPLETED
        if not value or value in _NOT_STARTED:
            return cls.QUEUED
        return cls.OTHER

    @property
    def label(self) -> str:
        return {
            RunStatus.QUEUED: "Queued",
            RunStatus.IN_PROGRESS: "In Progress",
            RunStatus.COMPLETED: "Completed",
            RunStatus.OTHER: "Other",
        }[self]


class RunConclusion(Enum):
    """Outcome of a completed run or job."""
    SUCCESS = "success"
    FAILURE = "failure"
    CANCELLED = "cancelled"
    SKIPPED = "skipped"
    TIMED_OUT = "timed_out"
    ACTION_REQUIRED = "action_required"
    NEUTRAL = "neutral"
    STALE = "stale"
    OTHER = "other"

    @classmethod
    def parse(cls, value: str | None) -> "RunConclusion | None":
        if not value:
            return None
        try:
            return cls(value)
        except ValueError:
            return cls.OTHER

    @property
    def label(self) -> str:
        return _CONCLUSION_LABELS.get(self, self.value.replace("_", " ").title())


_CONCLUSION_LABELS = {
    RunConclusion.SUCCESS: "✅ Success",
    RunConclusion.FAILURE: "❌ Failure",
    RunConclusion.CANCELLED: "🛑 Cancelled",
    RunConclusion.SKIPPED: "⏩ Skipped",
    RunConclusion.TIMED_OUT: "⏱ Timed Out",
    RunConclusion.ACTION_REQUIRED: "Action Required",
}

PENDING_LABEL = "⌛ Pending"


def conclusion_label(conclusion: RunConclusion | None) -> str:
    """Display text for an optional conclusion (runs still going are pending)."""
    if conclusion is None:
        return PENDING_LABEL
    return conclusion.label


def parse_timestamp(value: str | None) -> datetime | None:
    """Parse a GitHub ISO-8601 timestamp into an aware UTC datetime."""
    if not value:
        return None
    try:
        dt = datetime.fromisoformat(str(value).replace("Z", "+00:00"))
    except (ValueError, TypeError):
        return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


@dataclass(frozen=True)
class RepositorySpec:
    """One watch target from the configuration.

    Two specs for the same repository with different filters are distinct
    entries; identity is (owner, name, branch, actor).
    """

    owner: str
    name: str
    branch: str | None = None
    actor: str | None = None
    count: int = 1

    def __post_init__(self) -> None:
        if not self.owner or not self.name:
            raise ConfigError("repository spec needs both 'owner' and 'name'")
        if isinstance(self.count, bool) or not isinstance(self.count, int) or self.count < 1:
            raise ConfigError(
                f"repository {self.owner}/{self.name}: 'count' must be an integer >= 1, "
                f"got {self.count!r}"
            )

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "RepositorySpec":
        """Create a RepositorySpec from a dict loaded from YAML."""
        if not isinstance(data, dict):
            raise ConfigError(f"repository entry must be a mapping, got {data!r}")
        unknown = set(data) - {"owner", "name", "branch", "actor", "count"}
        if unknown:
            raise ConfigError(
                f"repository entry has unknown keys: {', '.join(sorted(unknown))}"
            )
        return cls(
            owner=str(data.get("owner") or ""),
            name=str(data.get("name") or ""),
            branch=data.get("branch") or None,
            actor=data.get("actor") or None,
            count=data.get("count", 1),
        )

    @property
    def key(self) -> tuple[str, str, str | None, str | None]:
        return (self.owner, self.name, self.branch, self.actor)

    @property
    def label(self) -> str:
        """Short human-readable form, e.g. octo-org/api@main~alice."""
        text = f"{self.owner}/{self.name}"
        if self.branch:
            text += f"@{self.branch}"
        if self.actor:
            text += f"~{self.actor}"
        return text


@dataclass(frozen=True)
class Run:
    """A workflow run as it was at fetch time."""

    id: int
    owner: str
    repo: str
    workflow_name: str
    branch: str
    actor: str
    status: RunStatus
    conclusion: RunConclusion | None
    started_at: datetime
    url: str
    commit_message: str = ""
    event: str = ""
    run_number: int = 0

    @classmethod
    def from_api(cls, payload: dict[str, Any]) -> "Run":
        """Normalize a GitHub workflow_run object."""
        repository = payload.get("repository") or {}
        owner = (repository.get("owner") or {}).get("login") or ""
        actor = (payload.get("actor") or {}).get("login") or (
            (payload.get("triggering_actor") or {}).get("login") or ""
        )
        started_at = (
            parse_timestamp(payload.get("run_started_at"))
            or parse_timestamp(payload.get("created_at"))
            or EPOCH
        )
        return cls(
            id=int(payload["id"]),
            owner=owner,
            repo=repository.get("name") or "",
            workflow_name=payload.get("name") or payload.get("display_title") or "",
            branch=payload.get("head_branch") or "",
            actor=actor,
            status=RunStatus.parse(payload.get("status")),
            conclusion=RunConclusion.parse(payload.get("conclusion")),
            started_at=started_at,
            url=payload.get("html_url") or "",
            commit_message=(payload.get("head_commit") or {}).get("message") or "",
            event=payload.get("event") or "",
            run_number=int(payload.get("run_number") or 0),
        )

    @property
    def repository(self) -> tuple[str, str]:
        return (self.owner, self.repo)

    @property
    def commit_title(self) -> str:
        return self.commit_message.split("\n", 1)[0]

    def __str__(self) -> str:
        return (
            f"Run<id={self.id}, repo={self.owner}/{self.repo}, name={self.workflow_name}, "
            f"status={self.status.value}, conclusion={self.conclusion.value if self.conclusion else None}>"
        )


@dataclass(frozen=True)
class Job:
    """One job of a workflow run, shown in the detail panel."""

    id: int
    name: str
    status: RunStatus
    conclusion: RunConclusion | None
    started_at: datetime | None
    completed_at: datetime | None
    url: str

    @classmethod
    def from_api(cls, payload: dict[str, Any]) -> "Job":
        return cls(
            id=int(payload["id"]),
            name=payload.get("name") or "",
            status=RunStatus.parse(payload.get("status")),
            conclusion=RunConclusion.parse(payload.get("conclusion")),
            started_at=parse_timestamp(payload.get("started_at")),
            completed_at=parse_timestamp(payload.get("completed_at")),
            url=payload.get("html_url") or "",
        )


def display_order_key(run: Run) -> tuple:
    """Sort key: most recently started first, then owner, repo, workflow name.

    The id is the final tie-breaker so the order is total and re-renders are
    deterministic across refreshes.
    """
    return (-run.started_at.timestamp(), run.owner, run.repo, run.workflow_name, run.id)


def sort_runs(runs) -> tuple[Run, ...]:
    """De-duplicate runs by id and return them in display order.

    Copies of the same run fetched through overlapping specs are equal, so
    which one survives does not matter.
    """
    unique: dict[int, Run] = {}
    for run in runs:
        unique[run.id] = run
    return tuple(sorted(unique.values(), key=display_order_key))
