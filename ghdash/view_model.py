"""View model: the single snapshot the dashboard renders from.

ViewModel is frozen. Every transition below is pure and returns a new
instance; the render loop swaps its reference in one assignment, so it only
ever sees complete snapshots.
"""

from dataclasses import dataclass, replace
from datetime import datetime

from .aggregator import AggregateResult
from .models import Run, sort_runs

NO_SELECTION = -1

TIME_FORMAT = "%Y-%m-%d %H:%M:%S"


def _clamp(index: int, length: int) -> int:
    if length == 0:
        return NO_SELECTION
    return max(0, min(length - 1, index))


def _local(ts: datetime) -> str:
    return ts.astimezone().strftime(TIME_FORMAT)


@dataclass(frozen=True)
class ViewModel:
    """What to show: ordered runs, selection, detail flag and status."""

    runs: tuple[Run, ...] = ()
    selected_index: int = NO_SELECTION
    detail_open: bool = False
    last_error: str | None = None
    last_refreshed_at: datetime | None = None
    rate_limited_until: datetime | None = None
    refreshing: bool = False
    configured: bool = True

    @property
    def selected_run(self) -> Run | None:
        if not self.runs or self.selected_index == NO_SELECTION:
            return None
        return self.runs[self.selected_index]

    # -- selection ---------------------------------------------------------

    def move_selection(self, delta: int) -> "ViewModel":
        if not self.runs:
            return self
        return replace(self, selected_index=_clamp(self.selected_index + delta, len(self.runs)))

    def toggle_detail(self) -> "ViewModel":
        if not self.runs:
            return self
        return replace(self, detail_open=not self.detail_open)

    def close_detail(self) -> "ViewModel":
        if not self.detail_open:
            return self
        return replace(self, detail_open=False)

    def open_selected(self) -> str | None:
        """URL of the selected run, or None when there is nothing to open."""
        run = self.selected_run
        return run.url if run is not None else None

    # -- refresh -----------------------------------------------------------

    def begin_refresh(self) -> "ViewModel":
        return replace(self, refreshing=True)

    def apply_aggregate(self, result: AggregateResult, now: datetime) -> "ViewModel":
        """Fold a finished cycle into a new snapshot.

        The previously selected run is followed by id; if it is gone the old
        numeric position is clamped into the new list. When the cycle
        produced no usable data (credential rejected or every spec failed)
        the last good runs stay on screen and only the status changes.
        """
        status = dict(
            last_error=result.summary(),
            last_refreshed_at=now,
            rate_limited_until=result.rate_limited_until,
            refreshing=False,
        )
        if result.all_failed:
            return replace(self, **status)

        runs = sort_runs(result.runs)
        previous = self.selected_run
        index = NO_SELECTION
        if previous is not None:
            index = next((i for i, r in enumerate(runs) if r.id == previous.id), NO_SELECTION)
        if index == NO_SELECTION:
            index = _clamp(max(self.selected_index, 0), len(runs))

        return replace(
            self,
            runs=runs,
            selected_index=index,
            detail_open=self.detail_open and bool(runs),
            **status,
        )

    # -- status line -------------------------------------------------------

    def status_text(self, now: datetime) -> str:
        """Text for the status line, most urgent condition first."""
        if not self.configured:
            return "No repositories configured"
        if self.rate_limited_until is not None and now < self.rate_limited_until:
            return f"Rate limited, retry at {_local(self.rate_limited_until)}"
        if self.last_error:
            return f"Error: {self.last_error}"
        if self.refreshing:
            return "Loading…"
        if self.last_refreshed_at is None:
            return "Idle"
        return f"Last refreshed at {_local(self.last_refreshed_at)}"
