"""Tests for the demo run source."""

from ghdash.demo import DEMO_REPOS, DemoRunSource
from ghdash.fetcher import RunFetcher
from ghdash.models import RunStatus


class TestDemoRunSource:
    def test_runs_match_spec(self):
        source = DemoRunSource(seed=1)
        spec = DEMO_REPOS[2]
        runs = RunFetcher(source).fetch(spec, "demo")
        assert len(runs) == spec.count
        for run in runs:
            assert (run.owner, run.repo) == (spec.owner, spec.name)
            assert run.branch == spec.branch
            assert run.actor == spec.actor

    def test_ids_unique_across_calls(self):
        source = DemoRunSource(seed=2)
        ids = [r.id for spec in DEMO_REPOS for r in source.list_runs(spec, "demo", 5)]
        assert len(ids) == len(set(ids))

    def test_jobs_follow_run_state(self):
        source = DemoRunSource(seed=3)
        for run in source.list_runs(DEMO_REPOS[0], "demo", 10):
            jobs = source.list_jobs(run, "demo")
            assert len(jobs) >= 2
            for job in jobs:
                assert job.status is run.status
                if run.status is not RunStatus.COMPLETED:
                    assert job.conclusion is None
                    assert job.completed_at is None
