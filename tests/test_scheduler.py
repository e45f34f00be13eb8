"""
Tests for the sync scheduler's tick and loop control.
"""

import asyncio

import pytest

from matchday_sync.errors import TransportError, UpstreamStatusError
from matchday_sync.orchestrator.scheduler import SyncScheduler
from matchday_sync.orchestrator.syncer import EntitySyncer
from tests.conftest import RecordingSleep, until


@pytest.fixture
def sleep():
    return RecordingSleep()


@pytest.fixture
def make_scheduler(upstream, repository, coordinator, sleep):
    def _make(**kwargs):
        syncer = EntitySyncer(upstream, repository, coordinator)
        kwargs.setdefault("competition_codes", ["PL", "BL1"])
        kwargs.setdefault("entity_delay_s", 2.0)
        return SyncScheduler(upstream, syncer, coordinator, sleep=sleep, **kwargs)
    return _make


class TestTick:

    @pytest.mark.asyncio
    async def test_entities_synced_in_order(self, make_scheduler):
        report = await make_scheduler().run_tick()
        assert [(r.entity_type, r.entity_key) for r in report.results] == [
            ("competition", "PL"), ("match", "PL"), ("standings", "PL"),
            ("competition", "BL1"), ("match", "BL1"), ("standings", "BL1"),
        ]
        assert report.synced == 6

    @pytest.mark.asyncio
    async def test_delay_after_each_upstream_entity(self, make_scheduler, sleep):
        await make_scheduler().run_tick()
        assert sleep.calls == [2.0] * 6

    @pytest.mark.asyncio
    async def test_fresh_entities_are_skipped(self, make_scheduler, upstream, sleep):
        scheduler = make_scheduler()
        await scheduler.run_tick()
        upstream.get_competition.reset_mock()
        sleep.calls.clear()

        report = await scheduler.run_tick()

        assert report.skipped == 6
        upstream.get_competition.assert_not_awaited()
        assert sleep.calls == []

    @pytest.mark.asyncio
    async def test_stale_entity_is_refetched(self, make_scheduler, upstream, wall_clock):
        scheduler = make_scheduler(competition_codes=["PL"])
        await scheduler.run_tick()
        wall_clock.advance(minutes=6)

        report = await scheduler.run_tick()

        statuses = {r.entity_type: r.status for r in report.results}
        assert statuses == {"competition": "skipped", "match": "synced", "standings": "skipped"}
        assert upstream.get_matches.await_count == 2

    @pytest.mark.asyncio
    async def test_one_failure_does_not_abort_tick(self, make_scheduler, upstream, coordinator):
        def competition(code):
            if code == "PL":
                raise UpstreamStatusError(500, "boom")
            return {"code": code}

        upstream.get_competition.side_effect = competition
        report = await make_scheduler().run_tick()

        failed = [r for r in report.results if r.status == "failed"]
        assert [(r.entity_type, r.entity_key) for r in failed] == [("competition", "PL")]
        assert report.synced == 5
        assert await coordinator.needs_refresh("competition", "PL") is True
        for entity_type in ("competition", "match", "standings"):
            assert await coordinator.needs_refresh(entity_type, "BL1") is False

    @pytest.mark.asyncio
    async def test_unexpected_exception_is_contained(self, make_scheduler, upstream):
        upstream.get_standings.side_effect = KeyError("standings")
        report = await make_scheduler(competition_codes=["PL"]).run_tick()
        assert report.failed == 1
        assert report.synced == 2

    @pytest.mark.asyncio
    async def test_discovers_competitions_when_none_configured(self, make_scheduler, upstream):
        upstream.get_competitions.return_value = [{"code": "SA"}, {"code": None}, {"name": "no code"}]
        report = await make_scheduler(competition_codes=[]).run_tick()
        assert report.competitions == ["SA"]
        upstream.get_competitions.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_configured_codes_skip_discovery(self, make_scheduler, upstream):
        await make_scheduler(competition_codes=["PL"]).run_tick()
        upstream.get_competitions.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_discovery_failure_ends_tick(self, make_scheduler, upstream):
        upstream.get_competitions.side_effect = TransportError("offline")
        report = await make_scheduler(competition_codes=[]).run_tick()
        assert report.results == []
        assert report.error == "offline"

    @pytest.mark.asyncio
    async def test_tracked_teams_synced_after_competitions(self, make_scheduler):
        report = await make_scheduler(competition_codes=["PL"], team_ids=[57]).run_tick()
        assert (report.results[-1].entity_type, report.results[-1].entity_key) == ("team", "57")

    @pytest.mark.asyncio
    async def test_tracked_matches_synced_as_head_to_head(self, make_scheduler, upstream, coordinator):
        scheduler = make_scheduler(competition_codes=["PL"], team_ids=[57], match_ids=[4242])
        report = await scheduler.run_tick()
        assert [(r.entity_type, r.entity_key) for r in report.results[-2:]] == [
            ("team", "57"), ("head-to-head", "4242"),
        ]
        upstream.get_head_to_head.assert_awaited_once_with("4242")
        assert await coordinator.needs_refresh("head-to-head", "4242") is False


class TestLoop:

    @pytest.mark.asyncio
    async def test_runs_immediately_then_stops_while_idle(self, make_scheduler):
        scheduler = make_scheduler(interval_s=3600)
        task = scheduler.start()
        await until(lambda: scheduler.status()["tick_count"] == 1)
        assert scheduler.status()["running"] is True

        scheduler.stop()
        await asyncio.wait_for(task, timeout=1)
        assert scheduler.status()["running"] is False

    @pytest.mark.asyncio
    async def test_ticks_repeat_on_interval(self, make_scheduler):
        scheduler = make_scheduler(interval_s=0.01)
        task = scheduler.start()
        for _ in range(200):
            if scheduler.status()["tick_count"] >= 2:
                break
            await asyncio.sleep(0.01)
        scheduler.stop()
        await asyncio.wait_for(task, timeout=1)
        assert scheduler.status()["tick_count"] >= 2

    @pytest.mark.asyncio
    async def test_stop_aborts_in_flight_tick(self, make_scheduler, upstream, coordinator):
        entered = asyncio.Event()

        async def hang(code):
            entered.set()
            await asyncio.Event().wait()

        upstream.get_competition.side_effect = hang
        scheduler = make_scheduler()
        task = scheduler.start()
        await asyncio.wait_for(entered.wait(), timeout=1)

        scheduler.stop()
        await asyncio.wait_for(task, timeout=1)

        assert scheduler.status()["tick_count"] == 0
        assert await coordinator.get_metadata("competition", "PL") is None
        assert await coordinator.get_metadata("match", "PL") is None

    @pytest.mark.asyncio
    async def test_cancelling_loop_propagates(self, make_scheduler):
        scheduler = make_scheduler(interval_s=3600)
        task = scheduler.start()
        await until(lambda: scheduler.status()["tick_count"] == 1)

        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task
        assert scheduler.status()["running"] is False

    @pytest.mark.asyncio
    async def test_start_twice_returns_same_task(self, make_scheduler):
        scheduler = make_scheduler(interval_s=3600)
        task = scheduler.start()
        assert scheduler.start() is task
        scheduler.stop()
        await asyncio.wait_for(task, timeout=1)

    @pytest.mark.asyncio
    async def test_stop_right_after_start_ends_loop(self, make_scheduler, upstream):
        scheduler = make_scheduler(interval_s=3600)
        task = scheduler.start()
        scheduler.stop()

        await asyncio.wait_for(task, timeout=1)

        assert scheduler.status()["tick_count"] == 0
        assert scheduler.status()["running"] is False
        upstream.get_competition.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_restart_after_stop_runs_again(self, make_scheduler):
        scheduler = make_scheduler(interval_s=3600)
        task = scheduler.start()
        scheduler.stop()
        await asyncio.wait_for(task, timeout=1)

        task = scheduler.start()
        await until(lambda: scheduler.status()["tick_count"] == 1)
        scheduler.stop()
        await asyncio.wait_for(task, timeout=1)

    @pytest.mark.asyncio
    async def test_status_reports_last_tick(self, make_scheduler):
        scheduler = make_scheduler(competition_codes=["PL"])
        await scheduler.trigger_now()
        status = scheduler.status()
        assert status["last_tick"]["synced"] == 3
        assert status["competitions"] == ["PL"]
