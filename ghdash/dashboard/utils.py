"""Shared formatting helpers for the dashboard package."""

from __future__ import annotations

from datetime import datetime, timezone

from ..models import RunConclusion, RunStatus


def format_age(ts: datetime | None, now: datetime | None = None) -> str:
    """Format a timestamp as a compact age like '2h', '15m'."""
    if ts is None:
        return ""
    now = now or datetime.now(timezone.utc)
    secs = (now - ts).total_seconds()
    if secs < 0:
        return "now"
    if secs < 60:
        return f"{int(secs)}s"
    if secs < 3600:
        return f"{int(secs // 60)}m"
    if secs < 86400:
        return f"{int(secs // 3600)}h"
    return f"{int(secs // 86400)}d"


def format_duration(start: datetime | None, end: datetime | None) -> str:
    """Elapsed time between two timestamps as '1m 05s'; empty if either is missing."""
    if start is None or end is None:
        return ""
    secs = max(0, int((end - start).total_seconds()))
    minutes, secs = divmod(secs, 60)
    if minutes >= 60:
        hours, minutes = divmod(minutes, 60)
        return f"{hours}h {minutes:02d}m"
    if minutes:
        return f"{minutes}m {secs:02d}s"
    return f"{secs}s"


def format_local(ts: datetime | None) -> str:
    """Render an aware timestamp in the local timezone."""
    if ts is None:
        return ""
    return ts.astimezone().strftime("%Y-%m-%d %H:%M:%S")


def truncate(text: str, width: int) -> str:
    """Cut text to width characters, marking the cut with an ellipsis."""
    if len(text) <= width:
        return text
    return text[: max(0, width - 1)] + "…"


CONCLUSION_STYLES = {
    RunConclusion.SUCCESS: "green",
    RunConclusion.FAILURE: "bold red",
    RunConclusion.TIMED_OUT: "red",
    RunConclusion.CANCELLED: "dim",
    RunConclusion.SKIPPED: "dim",
    RunConclusion.ACTION_REQUIRED: "yellow",
}


def conclusion_style(status: RunStatus, conclusion: RunConclusion | None) -> str:
    """Rich style for a status/conclusion cell."""
    if conclusion is None:
        return "yellow" if status is RunStatus.IN_PROGRESS else "cyan"
    return CONCLUSION_STYLES.get(conclusion, "")
