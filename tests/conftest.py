"""Shared test fixtures for dashboard tests."""

from datetime import timedelta

import pytest

from ghdash.aggregator import Aggregator
from ghdash.fetcher import RunFetcher
from ghdash.models import RepositorySpec

from tests.fakes import BASE_TIME, FakeRunSource


class FakeClock:
    """Manually advanced clock returning aware UTC datetimes."""

    def __init__(self, now=BASE_TIME):
        self.now = now

    def __call__(self):
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += timedelta(seconds=seconds)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def api_spec():
    return RepositorySpec("octo-org", "api", branch="main", count=2)


@pytest.fixture
def web_spec():
    return RepositorySpec("octo-org", "web", count=2)


@pytest.fixture
def source():
    return FakeRunSource()


@pytest.fixture
def fetcher(source):
    """RunFetcher over the fake source with no retry delay."""
    return RunFetcher(source, attempts=3, retry_delay=0)


@pytest.fixture
def aggregator(fetcher, clock):
    return Aggregator(fetcher, fetch_timeout=5, rate_limit_backoff=120, clock=clock)


@pytest.fixture
def clean_env(tmp_path, monkeypatch):
    """Isolated environment: XDG dirs under tmp_path, cwd in tmp_path, no tokens."""
    monkeypatch.chdir(tmp_path)
    for var in (
        "GH_DASHBOARD_CONFIG",
        "GH_DASHBOARD_HOST",
        "GH_DASHBOARD_REFRESH_INTERVAL",
        "GH_DASHBOARD_LOG_LEVEL",
        "GH_DASHBOARD_TOKEN",
        "GITHUB_TOKEN",
        "GH_PATH",
    ):
        monkeypatch.delenv(var, raising=False)
    env = {
        "XDG_CONFIG_HOME": str(tmp_path / "config"),
        "XDG_STATE_HOME": str(tmp_path / "state"),
    }
    return env
