"""GitHub Actions dashboard: Textual TUI app.

Launch with: gh-dashboard (or python -m ghdash)
"""

from __future__ import annotations

import logging
import threading
from datetime import datetime
from typing import Callable, Sequence

from rich.text import Text
from textual import work
from textual.app import App, ComposeResult
from textual.binding import Binding
from textual.widgets import DataTable, Footer, Header, Label
from textual.worker import get_current_worker

from ..aggregator import (
    CANCEL_POLL_SECONDS,
    DEFAULT_FETCH_TIMEOUT,
    AggregateResult,
    Aggregator,
    submit_daemon,
    utc_now,
)
from ..browser import open_url
from ..errors import FetchError, RenderError, TransientError
from ..fetcher import RunFetcher
from ..models import Job, RepositorySpec, Run, conclusion_label
from ..scheduler import DEFAULT_REFRESH_INTERVAL, RefreshScheduler
from ..sources import RunSource
from ..view_model import ViewModel
from .utils import conclusion_style, format_age, truncate
from .widgets.run_detail import RunDetail

logger = logging.getLogger(__name__)

# Consecutive failed renders before the app gives up
MAX_RENDER_FAILURES = 3

TICK_SECONDS = 1.0

COLUMNS = ("Project", "Branch", "Workflow", "Commit", "Started", "Status", "Conclusion")


class RunTable(DataTable, can_focus=False):
    """Run list. Never takes focus so every key reaches the app bindings."""


class RunDashboard(App):
    """Live list of the latest workflow runs across the configured repositories.

    All state the screen shows lives in one immutable ViewModel. Key presses,
    the timer tick and finished cycles each swap in a new snapshot, and the
    whole view is redrawn from it. Cycles run in a thread worker and their
    result comes back through call_from_thread.
    """

    TITLE = "GitHub Actions"
    SUB_TITLE = "Dashboard"

    # Nothing takes focus; the run list is driven by app bindings
    AUTO_FOCUS = None

    DEFAULT_CSS = """
    RunTable {
        height: 1fr;
    }
    #status {
        height: 1;
        width: 100%;
        padding: 0 1;
        background: $boost;
    }
    #status.status--error {
        color: $error;
    }
    """

    BINDINGS = [
        Binding("q", "quit", "Quit", show=True),
        Binding("r", "refresh", "Refresh", show=True),
        Binding("enter", "open_run", "Open", show=True),
        Binding("d", "toggle_detail", "Detail", show=True),
        Binding("escape", "close_detail", "Close detail", show=False),
        Binding("j", "cursor_down", "Down", show=False),
        Binding("down", "cursor_down", "Down", show=False),
        Binding("k", "cursor_up", "Up", show=False),
        Binding("up", "cursor_up", "Up", show=False),
    ]

    def __init__(
        self,
        source: RunSource,
        specs: Sequence[RepositorySpec],
        credential: str,
        refresh_interval: float = DEFAULT_REFRESH_INTERVAL,
        fetch_timeout: float = DEFAULT_FETCH_TIMEOUT,
        opener: Callable[[str], bool] = open_url,
        clock: Callable[[], datetime] = utc_now,
        **kwargs: object,
    ) -> None:
        super().__init__(**kwargs)
        self._specs = list(specs)
        self._credential = credential
        self._opener = opener
        self._clock = clock
        self._fetcher = RunFetcher(source)
        self._aggregator = Aggregator(self._fetcher, fetch_timeout=fetch_timeout, clock=clock)
        self.scheduler = RefreshScheduler(refresh_interval)
        self.view_model = ViewModel(configured=bool(self._specs))
        self._render_failures = 0
        self._drawn_runs: tuple[Run, ...] | None = None
        self._started_column = None
        # Set on quit; in-flight cycles and job loads stop waiting on it
        self.cancel_event = threading.Event()

    def compose(self) -> ComposeResult:
        yield Header()
        yield RunTable(id="runs", cursor_type="row", zebra_stripes=True)
        yield RunDetail(id="detail")
        yield Label("", id="status")
        yield Footer()

    def on_mount(self) -> None:
        keys = self.query_one(RunTable).add_columns(*COLUMNS)
        self._started_column = keys[COLUMNS.index("Started")]
        self._render_view()
        self._tick()
        self.set_interval(TICK_SECONDS, self._tick)

    # -- state -------------------------------------------------------------

    def _set_view(self, view_model: ViewModel) -> None:
        """Swap in a new snapshot and redraw from it."""
        previous = self.view_model
        self.view_model = view_model
        self._render_view()

        run = view_model.selected_run
        if view_model.detail_open and run is not None:
            if not previous.detail_open or previous.selected_run is None or (
                previous.selected_run.id != run.id
            ):
                self._load_jobs(run)

    def _tick(self) -> None:
        """Timer wake-up: start a cycle if one is due, refresh relative times."""
        if self._specs:
            cycle_id = self.scheduler.poll(self._clock())
            if cycle_id is not None:
                self._start_cycle(cycle_id)
                return
        self._render_view()

    def _start_cycle(self, cycle_id: int) -> None:
        self._set_view(self.view_model.begin_refresh())
        self._run_cycle(cycle_id)

    @work(thread=True, group="cycle", exit_on_error=False)
    def _run_cycle(self, cycle_id: int) -> None:
        """Run one aggregation cycle in a background thread."""
        try:
            result = self._aggregator.run_cycle(
                self._specs, self._credential, cancel=self.cancel_event
            )
        except Exception as exc:
            logger.exception("Cycle %d crashed", cycle_id)
            result = AggregateResult(
                errors={spec.key: TransientError(f"{spec.label}: {exc}") for spec in self._specs},
                attempted=len(self._specs),
            )
        if get_current_worker().is_cancelled:
            return
        self.call_from_thread(self._finish_cycle, cycle_id, result)

    def _finish_cycle(self, cycle_id: int, result: AggregateResult) -> None:
        """Apply a finished cycle (called on the UI thread)."""
        now = self._clock()
        if not self.scheduler.complete(cycle_id, result, now):
            return
        self._set_view(self.view_model.apply_aggregate(result, now))

    @work(thread=True, group="jobs", exclusive=True, exit_on_error=False)
    def _load_jobs(self, run: Run) -> None:
        """Fetch the selected run's jobs in a background thread.

        The request runs on a daemon thread. The worker stops waiting for it
        once cancelled or when the app quits.
        """
        worker = get_current_worker()
        future = submit_daemon(self._fetcher.fetch_jobs, run, self._credential)
        while not future.done():
            if worker.is_cancelled or self.cancel_event.wait(CANCEL_POLL_SECONDS):
                return
        try:
            jobs = future.result()
        except FetchError as exc:
            logger.warning("Could not load jobs for run %s: %s", run.id, exc)
            if not worker.is_cancelled:
                self.call_from_thread(self._show_jobs_error, run.id, str(exc))
            return
        if not worker.is_cancelled:
            self.call_from_thread(self._show_jobs, run.id, jobs)

    def _show_jobs(self, run_id: int, jobs: list[Job]) -> None:
        self.query_one(RunDetail).show_jobs(run_id, jobs)

    def _show_jobs_error(self, run_id: int, message: str) -> None:
        self.query_one(RunDetail).show_jobs_error(run_id, message)

    # -- rendering ---------------------------------------------------------

    def _render_view(self) -> None:
        """Redraw from the current snapshot; give up after repeated failures."""
        try:
            self._draw(self.view_model)
        except RenderError as exc:
            self._render_failures += 1
            logger.error("Render failed (%d in a row): %s", self._render_failures, exc)
            if self._render_failures >= MAX_RENDER_FAILURES:
                self._abandon_work()
                self.exit(return_code=1, message=f"Giving up after repeated render failures: {exc}")
            return
        self._render_failures = 0

    def _draw(self, vm: ViewModel) -> None:
        try:
            now = self._clock()
            table = self.query_one(RunTable)
            if vm.runs is not self._drawn_runs:
                self._fill_table(table, vm.runs, now)
                self._drawn_runs = vm.runs
            else:
                self._refresh_ages(table, vm.runs, now)
            if vm.selected_index >= 0:
                table.move_cursor(row=vm.selected_index)

            detail = self.query_one(RunDetail)
            detail.display = vm.detail_open
            if vm.detail_open and vm.selected_run is not None:
                detail.show_run(vm.selected_run)

            status = self.query_one("#status", Label)
            status.update(vm.status_text(now))
            status.set_class(bool(vm.last_error) or not vm.configured, "status--error")
        except Exception as exc:
            logger.exception("Error while drawing the dashboard")
            raise RenderError(str(exc)) from exc

    def _fill_table(self, table: DataTable, runs: tuple[Run, ...], now: datetime) -> None:
        table.clear()
        for run in runs:
            style = conclusion_style(run.status, run.conclusion)
            table.add_row(
                f"{run.owner}/{run.repo}",
                truncate(run.branch, 24),
                truncate(run.workflow_name, 24),
                truncate(run.commit_title, 40),
                format_age(run.started_at, now),
                Text(run.status.label, style=style),
                Text(conclusion_label(run.conclusion), style=style),
                key=str(run.id),
            )

    def _refresh_ages(self, table: DataTable, runs: tuple[Run, ...], now: datetime) -> None:
        """Rewrite the Started cells so ages keep moving between cycles."""
        for run in runs:
            table.update_cell(str(run.id), self._started_column, format_age(run.started_at, now))

    # -- actions -----------------------------------------------------------

    def action_cursor_down(self) -> None:
        self._set_view(self.view_model.move_selection(1))

    def action_cursor_up(self) -> None:
        self._set_view(self.view_model.move_selection(-1))

    def action_toggle_detail(self) -> None:
        self._set_view(self.view_model.toggle_detail())

    def action_close_detail(self) -> None:
        self._set_view(self.view_model.close_detail())

    def action_open_run(self) -> None:
        url = self.view_model.open_selected()
        if url is None:
            return
        if not self._opener(url):
            self.notify(f"Could not open {url}", severity="warning", timeout=4)

    def action_refresh(self) -> None:
        if not self._specs:
            return
        now = self._clock()
        cycle_id = self.scheduler.request_refresh(now)
        if cycle_id is None:
            if self.scheduler.in_backoff(now):
                self.notify("Rate limited, refresh postponed", timeout=3)
            return
        self._start_cycle(cycle_id)

    async def action_quit(self) -> None:
        """Quit immediately; the in-flight cycle is abandoned, not joined."""
        self._abandon_work()
        self.exit(return_code=0)

    def _abandon_work(self) -> None:
        self.scheduler.cancel()
        self.cancel_event.set()
        self.workers.cancel_group(self, "cycle")
        self.workers.cancel_group(self, "jobs")
