"""Status badge widget for displaying a run's lifecycle state."""

from textual.widgets import Static

from ...models import RunConclusion, RunStatus


SPINNER_FRAMES = "⠋⠙⠹⠸⠼⠴⠦⠧⠇⠏"


class StatusBadge(Static):
    """A colored inline badge showing run status.

    Possible badges:
    - in progress → "⠋ RUN"  (animated spinner, yellow)
    - queued      → "QUEUED" (cyan)
    - completed   → the conclusion, e.g. "SUCCESS" (green) or "FAILURE" (red)
    """

    def __init__(
        self,
        status: RunStatus = RunStatus.QUEUED,
        conclusion: RunConclusion | None = None,
        **kwargs: object,
    ) -> None:
        self._status = status
        self._conclusion = conclusion
        self._spinner_index = 0
        self._css_class = ""
        text, _ = badge_for(status, conclusion)
        super().__init__(text, **kwargs)
        self.add_class("status-badge")

    def on_mount(self) -> None:
        self._apply()
        self.set_interval(0.1, self._tick_spinner)

    def set_run_state(self, status: RunStatus, conclusion: RunConclusion | None) -> None:
        self._status = status
        self._conclusion = conclusion
        self._apply()

    def _apply(self) -> None:
        text, css_class = badge_for(self._status, self._conclusion)
        if self._css_class:
            self.remove_class(self._css_class)
        self._css_class = css_class
        self.add_class(css_class)
        self.update(text)

    def _tick_spinner(self) -> None:
        if self._status is not RunStatus.IN_PROGRESS:
            return
        self._spinner_index = (self._spinner_index + 1) % len(SPINNER_FRAMES)
        frame = SPINNER_FRAMES[self._spinner_index]
        self.update(f"{frame} RUN")


def badge_for(status: RunStatus, conclusion: RunConclusion | None) -> tuple[str, str]:
    """Return (badge_text, css_class) for a run's status and conclusion."""
    if status is RunStatus.IN_PROGRESS:
        return f"{SPINNER_FRAMES[0]} RUN", "badge--running"
    elif status is RunStatus.QUEUED or conclusion is None:
        return "QUEUED", "badge--queued"
    elif conclusion is RunConclusion.SUCCESS:
        return "SUCCESS", "badge--success"
    elif conclusion in (RunConclusion.FAILURE, RunConclusion.TIMED_OUT):
        return conclusion.value.upper().replace("_", " "), "badge--failure"
    else:
        return conclusion.value.upper().replace("_", " "), "badge--neutral"
