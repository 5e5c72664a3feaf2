"""Tests for dashboard formatting helpers and the status badge mapping."""

from datetime import timedelta

from ghdash.dashboard.utils import format_age, format_duration, truncate
from ghdash.dashboard.widgets.run_detail import job_lines
from ghdash.dashboard.widgets.status_badge import badge_for
from ghdash.models import RunConclusion, RunStatus

from tests.fakes import BASE_TIME, make_job

NOW = BASE_TIME


class TestFormatAge:
    """Tests for format_age()."""

    def test_none_returns_empty(self):
        assert format_age(None, NOW) == ""

    def test_seconds(self):
        assert format_age(NOW - timedelta(seconds=30), NOW) == "30s"

    def test_minutes(self):
        assert format_age(NOW - timedelta(minutes=5), NOW) == "5m"

    def test_hours(self):
        assert format_age(NOW - timedelta(hours=3), NOW) == "3h"

    def test_days(self):
        assert format_age(NOW - timedelta(days=2), NOW) == "2d"

    def test_future_returns_now(self):
        assert format_age(NOW + timedelta(hours=1), NOW) == "now"


class TestFormatDuration:
    def test_missing_end(self):
        assert format_duration(NOW, None) == ""

    def test_seconds_only(self):
        assert format_duration(NOW, NOW + timedelta(seconds=42)) == "42s"

    def test_minutes_and_seconds(self):
        assert format_duration(NOW, NOW + timedelta(minutes=1, seconds=5)) == "1m 05s"

    def test_hours(self):
        assert format_duration(NOW, NOW + timedelta(hours=2, minutes=3)) == "2h 03m"


class TestTruncate:
    def test_short_text_unchanged(self):
        assert truncate("main", 10) == "main"

    def test_long_text_ellipsis(self):
        assert truncate("feature/very-long-branch", 10) == "feature/v…"


class TestBadgeFor:
    def test_running(self):
        text, css = badge_for(RunStatus.IN_PROGRESS, None)
        assert text.endswith("RUN")
        assert css == "badge--running"

    def test_queued(self):
        assert badge_for(RunStatus.QUEUED, None) == ("QUEUED", "badge--queued")

    def test_success(self):
        assert badge_for(RunStatus.COMPLETED, RunConclusion.SUCCESS) == ("SUCCESS", "badge--success")

    def test_timed_out_is_failure(self):
        assert badge_for(RunStatus.COMPLETED, RunConclusion.TIMED_OUT) == ("TIMED OUT", "badge--failure")


class TestJobLines:
    def test_no_jobs(self):
        assert job_lines([]).plain == "(no jobs)"

    def test_one_line_per_job(self):
        text = job_lines([make_job(1, "build"), make_job(2, "test")]).plain
        lines = text.split("\n")
        assert len(lines) == 2
        assert lines[0].startswith("build")
        assert "2m 00s" in lines[0]
