"""Tests for RunDashboard using Textual Pilot."""

import time
from unittest.mock import patch

import pytest

from actions_sdk import ActionsNotFoundError
from ghdash.dashboard import RunDashboard
from ghdash.dashboard.app import MAX_RENDER_FAILURES, RunTable
from ghdash.dashboard.widgets.run_detail import RunDetail
from ghdash.errors import RenderError
from ghdash.models import RepositorySpec

from tests.fakes import FakeRunSource, make_job, make_run


API = RepositorySpec("octo-org", "api", count=2)
WEB = RepositorySpec("octo-org", "web", count=2)

API_RUN = make_run(101, repo="api", minutes_ago=5)
WEB_RUN = make_run(202, repo="web", minutes_ago=1)


class RecordingOpener:
    """Browser opener double that remembers every URL."""

    def __init__(self, result=True):
        self.urls = []
        self.result = result

    def __call__(self, url):
        self.urls.append(url)
        return self.result


def make_app(source, clock, specs=(API, WEB), opener=None, refresh_interval=60):
    return RunDashboard(
        source,
        list(specs),
        "token",
        refresh_interval=refresh_interval,
        fetch_timeout=5,
        opener=opener or RecordingOpener(),
        clock=clock,
    )


async def settle(app, pilot):
    """Wait for background cycles and job loads to land on the UI thread."""
    await app.workers.wait_for_complete()
    await pilot.pause()


@pytest.fixture
def two_repos():
    return FakeRunSource(
        runs={("octo-org", "api"): [API_RUN], ("octo-org", "web"): [WEB_RUN]},
        jobs={101: [make_job(1), make_job(2, "test")]},
    )


class TestRunDashboardLoading:
    """Tests for the first cycle and rendering."""

    @pytest.mark.asyncio
    async def test_first_cycle_on_mount(self, two_repos, clock):
        app = make_app(two_repos, clock)
        async with app.run_test() as pilot:
            await settle(app, pilot)

            assert two_repos.fetch_count == 2
            assert [r.id for r in app.view_model.runs] == [202, 101]
            assert app.query_one(RunTable).row_count == 2
            assert app.view_model.selected_index == 0
            assert app.scheduler.cycle_count == 1
            assert app.view_model.status_text(clock()).startswith("Last refreshed at")

    @pytest.mark.asyncio
    async def test_partial_failure_shows_error(self, clock):
        source = FakeRunSource(runs={
            ("octo-org", "api"): [API_RUN],
            ("octo-org", "web"): ActionsNotFoundError("Not Found"),
        })
        app = make_app(source, clock)
        async with app.run_test() as pilot:
            await settle(app, pilot)

            assert [r.id for r in app.view_model.runs] == [101]
            assert app.view_model.status_text(clock()).startswith(
                "Error: 1 of 2 repositories failed"
            )

    @pytest.mark.asyncio
    async def test_no_repositories_configured(self, clock):
        source = FakeRunSource()
        app = make_app(source, clock, specs=())
        async with app.run_test() as pilot:
            await pilot.pause()
            await pilot.press("r")
            await pilot.pause()

            assert source.fetch_count == 0
            assert app.view_model.status_text(clock()) == "No repositories configured"


class TestRunDashboardNavigation:
    """Tests for keyboard navigation and opening runs."""

    @pytest.mark.asyncio
    async def test_down_then_enter_opens_second_run(self, two_repos, clock):
        opener = RecordingOpener()
        app = make_app(two_repos, clock, opener=opener)
        async with app.run_test() as pilot:
            await settle(app, pilot)

            await pilot.press("down")
            assert app.view_model.selected_index == 1
            assert app.query_one(RunTable).cursor_row == 1

            await pilot.press("enter")
            assert opener.urls == [API_RUN.url]

    @pytest.mark.asyncio
    async def test_vim_keys_clamp(self, two_repos, clock):
        app = make_app(two_repos, clock)
        async with app.run_test() as pilot:
            await settle(app, pilot)

            await pilot.press("j", "j", "j")
            assert app.view_model.selected_index == 1
            await pilot.press("k", "k")
            assert app.view_model.selected_index == 0
            await pilot.press("up")
            assert app.view_model.selected_index == 0

    @pytest.mark.asyncio
    async def test_browser_failure_is_not_fatal(self, two_repos, clock):
        opener = RecordingOpener(result=False)
        app = make_app(two_repos, clock, opener=opener)
        async with app.run_test() as pilot:
            await settle(app, pilot)
            await pilot.press("enter")
            await pilot.pause()

            assert opener.urls == [WEB_RUN.url]
            assert app.is_running

    @pytest.mark.asyncio
    async def test_enter_with_no_runs_does_nothing(self, clock):
        opener = RecordingOpener()
        app = make_app(FakeRunSource(), clock, opener=opener)
        async with app.run_test() as pilot:
            await settle(app, pilot)
            await pilot.press("enter", "down", "d")

            assert opener.urls == []
            assert app.view_model.detail_open is False


class TestRunDashboardDetail:
    @pytest.mark.asyncio
    async def test_detail_loads_jobs(self, two_repos, clock):
        app = make_app(two_repos, clock)
        async with app.run_test() as pilot:
            await settle(app, pilot)
            await pilot.press("down", "d")
            await settle(app, pilot)

            detail = app.query_one(RunDetail)
            assert app.view_model.detail_open
            assert detail.display
            assert detail.run_id == API_RUN.id
            assert two_repos.job_calls == [API_RUN.id]

            await pilot.press("escape")
            assert not app.view_model.detail_open
            assert not detail.display

    @pytest.mark.asyncio
    async def test_d_toggles(self, two_repos, clock):
        app = make_app(two_repos, clock)
        async with app.run_test() as pilot:
            await settle(app, pilot)
            await pilot.press("d")
            assert app.view_model.detail_open
            await pilot.press("d")
            assert not app.view_model.detail_open
            await settle(app, pilot)


class TestRunDashboardRefresh:
    @pytest.mark.asyncio
    async def test_refresh_on_r(self, two_repos, clock):
        app = make_app(two_repos, clock)
        async with app.run_test() as pilot:
            await settle(app, pilot)
            initial = two_repos.fetch_count

            await pilot.press("r")
            await settle(app, pilot)

            assert two_repos.fetch_count == initial + 2
            assert app.scheduler.cycle_count == 2

    @pytest.mark.asyncio
    async def test_selection_survives_refresh(self, two_repos, clock):
        app = make_app(two_repos, clock)
        async with app.run_test() as pilot:
            await settle(app, pilot)
            await pilot.press("down")

            newer = make_run(303, repo="web", minutes_ago=-10)
            two_repos.set_runs(("octo-org", "web"), [newer, WEB_RUN])
            await pilot.press("r")
            await settle(app, pilot)

            assert app.view_model.selected_run.id == API_RUN.id
            assert app.view_model.selected_index == 2

    @pytest.mark.asyncio
    async def test_started_ages_advance_between_cycles(self, two_repos, clock):
        app = make_app(two_repos, clock, refresh_interval=3600)
        async with app.run_test() as pilot:
            await settle(app, pilot)
            table = app.query_one(RunTable)
            assert table.get_row(str(API_RUN.id))[4] == "5m"

            clock.advance(600)
            app._tick()
            await pilot.pause()

            assert app.scheduler.cycle_count == 1
            assert table.get_row(str(API_RUN.id))[4] == "15m"
            assert table.get_row(str(WEB_RUN.id))[4] == "11m"


class TestRunDashboardExit:
    @pytest.mark.asyncio
    async def test_quit_on_q(self, two_repos, clock):
        app = make_app(two_repos, clock)
        async with app.run_test() as pilot:
            await settle(app, pilot)
            await pilot.press("q")

        assert app.return_code == 0
        assert app.scheduler.cancelled

    @pytest.mark.asyncio
    async def test_quit_during_blocked_cycle_does_not_wait_for_it(self, clock):
        source = FakeRunSource(
            runs={("octo-org", "api"): [API_RUN], ("octo-org", "web"): TimeoutError("slow")},
            block={("octo-org", "web")},
        )
        app = make_app(source, clock)
        try:
            started = time.monotonic()
            async with app.run_test() as pilot:
                for _ in range(200):
                    if ("octo-org", "web") in source.threads:
                        break
                    await pilot.pause(0.01)
                assert app.scheduler.fetching
                await pilot.press("q")
            elapsed = time.monotonic() - started

            assert elapsed < 3
            assert app.return_code == 0
            assert app.cancel_event.is_set()
            fetch_thread = source.threads[("octo-org", "web")]
            assert fetch_thread.daemon
        finally:
            source.release()

        # The abandoned fetch sees the cancel and does not retry
        fetch_thread.join(1)
        assert not fetch_thread.is_alive()
        assert [spec.name for spec, _, _ in source.calls].count("web") == 1

    @pytest.mark.asyncio
    async def test_repeated_render_failures_exit_with_error(self, two_repos, clock):
        app = make_app(two_repos, clock)
        async with app.run_test() as pilot:
            await settle(app, pilot)
            with patch.object(app, "_draw", side_effect=RenderError("terminal gone")):
                for _ in range(MAX_RENDER_FAILURES):
                    app._render_view()

        assert app.return_code == 1

    @pytest.mark.asyncio
    async def test_single_render_failure_is_tolerated(self, two_repos, clock):
        app = make_app(two_repos, clock)
        async with app.run_test() as pilot:
            await settle(app, pilot)
            with patch.object(app, "_draw", side_effect=RenderError("glitch")):
                app._render_view()
            app._render_view()
            await pilot.pause()

            assert app.is_running
            assert app._render_failures == 0
