# SPDX-License-Identifier: LGPL-3.0-or-later
import pytest

from hyperv2forklift.core.exceptions import ClusterError, MigrationFailedError, MigrationTimeoutError
from hyperv2forklift.forklift.monitor import (
    MigrationMonitor,
    MonitorState,
    is_plan_ready,
    wait_for_plan_ready,
)

RUNNING = {"status": {"vms": [{"name": "win2019", "phase": "CopyDisks"}]}}
SUCCEEDED = {"status": {"conditions": [{"type": "Succeeded", "status": "True"}]}}
FAILED = {"status": {"conditions": [{"type": "Failed", "status": "True", "message": "disk copy failed"}]}}


def _sequence(*objs):
    """Fetch that returns each object in turn, repeating the last."""
    calls = []

    def fetch():
        calls.append(1)
        return objs[min(len(calls), len(objs)) - 1]

    fetch.calls = calls
    return fetch


def _monitor(fetch, clock, logger, **kw):
    kw.setdefault("interval_s", 10)
    kw.setdefault("timeout_s", 30)
    return MigrationMonitor(fetch, "mtv", "hyperv-demo", clock=clock, sleep=clock.sleep, logger=logger, **kw)


class TestMigrationMonitor:
    def test_succeeds_after_progress(self, fake_clock, fake_logger):
        seen = []
        mon = _monitor(
            _sequence(RUNNING, SUCCEEDED),
            fake_clock,
            fake_logger,
            on_progress=lambda snap, text: seen.append(text),
        )
        res = mon.run()

        assert res.state is MonitorState.SUCCEEDED
        assert res.ok
        assert res.ticks == 2
        assert fake_clock.sleeps == [10, 10]
        assert seen == ["VM: win2019\n   Phase: CopyDisks\n"]

    def test_failed(self, fake_clock, fake_logger):
        res = _monitor(_sequence(FAILED), fake_clock, fake_logger).run()
        assert res.state is MonitorState.FAILED
        assert "disk copy failed" in res.message

    def test_succeeded_wins_over_failed(self, fake_clock, fake_logger):
        both = {"status": {"conditions": FAILED["status"]["conditions"] + SUCCEEDED["status"]["conditions"]}}
        assert _monitor(_sequence(both), fake_clock, fake_logger).run().state is MonitorState.SUCCEEDED

    def test_false_condition_keeps_polling(self, fake_clock, fake_logger):
        not_yet = {"status": {"conditions": [{"type": "Succeeded", "status": "False"}]}}
        res = _monitor(_sequence(not_yet), fake_clock, fake_logger).run()
        assert res.state is MonitorState.TIMED_OUT

    def test_times_out_without_sleeping_past_deadline(self, fake_clock, fake_logger):
        fetch = _sequence(RUNNING)
        res = _monitor(fetch, fake_clock, fake_logger, interval_s=10, timeout_s=25).run()

        assert res.state is MonitorState.TIMED_OUT
        assert len(fetch.calls) == 2
        assert fake_clock.sleeps == [10, 10, 5]
        assert "timeout" in res.message

    def test_progress_logged_by_default(self, fake_clock, fake_logger):
        _monitor(_sequence(RUNNING, SUCCEEDED), fake_clock, fake_logger).run()
        assert "VM: win2019" in fake_logger.messages("info")

    def test_fetch_error_propagates(self, fake_clock, fake_logger):
        def fetch():
            raise ClusterError(code=40, msg="kubectl failed")

        mon = _monitor(fetch, fake_clock, fake_logger)
        with pytest.raises(ClusterError):
            mon.run()
        assert mon.ticks == 0

    def test_terminal_state_is_sticky(self, fake_clock, fake_logger):
        fetch = _sequence(SUCCEEDED)
        mon = _monitor(fetch, fake_clock, fake_logger)
        assert mon.tick() is MonitorState.SUCCEEDED
        assert mon.tick() is MonitorState.SUCCEEDED
        assert len(fetch.calls) == 1

    def test_start_fixes_the_deadline_once(self, fake_clock, fake_logger):
        mon = _monitor(_sequence(RUNNING), fake_clock, fake_logger, timeout_s=30)
        first = mon.start()
        fake_clock.sleep(12)
        assert mon.start() == first
        assert mon.elapsed_s == 12

    def test_wait_raises_distinct_errors(self, fake_clock, fake_logger):
        with pytest.raises(MigrationFailedError) as failed:
            _monitor(_sequence(FAILED), fake_clock, fake_logger).wait()
        assert failed.value.code == 50
        assert failed.value.context["migration"] == "hyperv-demo"

        with pytest.raises(MigrationTimeoutError) as timed_out:
            _monitor(_sequence(RUNNING), fake_clock, fake_logger).wait()
        assert timed_out.value.code == 51

    def test_wait_returns_result(self, fake_clock, fake_logger):
        assert _monitor(_sequence(SUCCEEDED), fake_clock, fake_logger).wait().ok

    @pytest.mark.parametrize("kw", [{"interval_s": 0}, {"timeout_s": -1}])
    def test_bad_timing(self, fake_clock, fake_logger, kw):
        with pytest.raises(ValueError):
            _monitor(_sequence(RUNNING), fake_clock, fake_logger, **kw)


class TestPlanReady:
    @pytest.mark.parametrize(
        "plan,ready",
        [
            ({"status": {"phase": "Ready"}}, True),
            ({"status": {"conditions": [{"type": "Ready", "status": "True"}]}}, True),
            ({"status": {"conditions": [{"type": "Ready", "status": "False"}]}}, False),
            ({}, False),
            (None, False),
        ],
    )
    def test_is_plan_ready(self, plan, ready):
        assert is_plan_ready(plan) is ready

    def test_wait_until_ready(self, fake_clock, fake_logger):
        fetch = _sequence({}, {"status": {"phase": "Ready"}})
        plan = wait_for_plan_ready(fetch, "mtv", "p", 60, clock=fake_clock, sleep=fake_clock.sleep, logger=fake_logger)
        assert plan["status"]["phase"] == "Ready"
        assert fake_clock.sleeps == [5, 5]

    def test_timeout(self, fake_clock, fake_logger):
        with pytest.raises(MigrationTimeoutError) as ei:
            wait_for_plan_ready(_sequence({}), "mtv", "p", 12, clock=fake_clock, sleep=fake_clock.sleep, logger=fake_logger)
        assert ei.value.context == {"namespace": "mtv", "plan": "p"}
        assert fake_clock.sleeps == [5, 5, 2]
