"""RunDetail widget: inline panel with the selected run's fields and jobs."""

from __future__ import annotations

from rich.text import Text
from textual.app import ComposeResult
from textual.containers import Horizontal, Vertical
from textual.widget import Widget
from textual.widgets import Label, Static

from ...models import Job, Run, conclusion_label
from ..utils import conclusion_style, format_duration, format_local, truncate
from .status_badge import StatusBadge


def job_lines(jobs: list[Job]) -> Text:
    """One line per job: name, started, completed, duration, status, conclusion."""
    text = Text()
    if not jobs:
        text.append("(no jobs)", style="dim")
        return text
    for index, job in enumerate(jobs):
        if index:
            text.append("\n")
        text.append(f"{truncate(job.name, 28):<28}  ")
        text.append(f"{format_local(job.started_at):<19}  ", style="dim")
        text.append(f"{format_local(job.completed_at):<19}  ", style="dim")
        text.append(f"{format_duration(job.started_at, job.completed_at):>8}  ")
        text.append(f"{job.status.label:<11}  ")
        text.append(
            conclusion_label(job.conclusion),
            style=conclusion_style(job.status, job.conclusion),
        )
    return text


class RunDetail(Widget):
    """Full-detail panel for a single run.

    Shows: repository, workflow, run number, branch, actor, event, start
    time, commit message and URL, followed by the run's jobs. The jobs are
    loaded by the app in a background thread and pushed in via show_jobs().
    """

    DEFAULT_CSS = """
    RunDetail {
        height: 14;
        border-top: solid $accent;
        padding: 0 1;
    }
    RunDetail .detail-section-header {
        text-style: bold;
        margin-top: 1;
    }
    RunDetail #detail-header {
        height: 1;
    }
    RunDetail #detail-badge {
        width: auto;
    }
    RunDetail #detail-title {
        width: 1fr;
        text-style: bold;
    }
    """

    def __init__(self, **kwargs: object) -> None:
        super().__init__(**kwargs)
        self.run_id: int | None = None

    def compose(self) -> ComposeResult:
        with Vertical():
            with Horizontal(id="detail-header"):
                yield Label("", id="detail-title")
                yield StatusBadge(id="detail-badge")
            yield Static("", id="detail-fields")
            yield Label("JOBS", classes="detail-section-header")
            yield Static("", id="detail-jobs")

    def show_run(self, run: Run) -> None:
        """Fill the panel from run; jobs show as loading until show_jobs()."""
        changed = run.id != self.run_id
        self.run_id = run.id
        self.query_one("#detail-title", Label).update(
            f"{run.owner}/{run.repo}  {run.workflow_name} #{run.run_number}"
        )
        self.query_one("#detail-badge", StatusBadge).set_run_state(run.status, run.conclusion)
        fields = [
            f"Branch:    {run.branch}",
            f"Actor:     {run.actor}",
            f"Event:     {run.event}",
            f"Started:   {format_local(run.started_at)}",
            f"Commit:    {run.commit_title}",
            f"URL:       {run.url}",
        ]
        self.query_one("#detail-fields", Static).update("\n".join(fields))
        if changed:
            self.query_one("#detail-jobs", Static).update(Text("Loading…", style="dim"))

    def show_jobs(self, run_id: int, jobs: list[Job]) -> None:
        if run_id != self.run_id:
            return
        self.query_one("#detail-jobs", Static).update(job_lines(jobs))

    def show_jobs_error(self, run_id: int, message: str) -> None:
        if run_id != self.run_id:
            return
        self.query_one("#detail-jobs", Static).update(
            Text(f"(could not load jobs: {message})", style="red")
        )
