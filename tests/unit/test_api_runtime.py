"""Tests for the scheduler, message feed and game session."""

from __future__ import annotations

import asyncio
import logging
import random
from dataclasses import replace

import pytest

from tianming.api.runtime import GameSession, MessageFeed, TurnScheduler, scheduler_rules
from tianming.config import Settings
from tianming.domain import models as dm
from tianming.domain.enums import Faction, GameOutcome, GamePhase, MessageCategory
from tianming.domain.rules_config import DEFAULT_RULES
from tianming.errors import GameNotStartedError

FAST_RULES = replace(
    DEFAULT_RULES,
    scheduler=replace(
        DEFAULT_RULES.scheduler,
        base_interval_ms=20.0,
        message_base_delay_ms=0.0,
        message_stagger_ms=1.0,
        message_buffer_ms=0.0,
    ),
)


def _message(text: str) -> dm.TurnMessage:
    return dm.TurnMessage(category=MessageCategory.SYSTEM, message=text)


def _single_city_catalog() -> dm.ContentCatalog:
    return dm.ContentCatalog(
        cities=(dm.City(id=dm.CityID("solo"), name="Solo", faction=Faction.WEI),),
    )


async def _finish_draft(session: GameSession) -> None:
    while session.require_state().phase == GamePhase.SKILL_SELECTION:
        await session.skip_round()


class TestTurnScheduler:
    @pytest.mark.asyncio
    async def test_fires_once_after_delay(self):
        fired = asyncio.Event()
        calls = []

        async def callback():
            calls.append(1)
            fired.set()

        scheduler = TurnScheduler(callback)
        scheduler.schedule_next(5)
        assert scheduler.pending
        await asyncio.wait_for(fired.wait(), timeout=1)
        assert calls == [1]
        assert not scheduler.pending

    @pytest.mark.asyncio
    async def test_rescheduling_replaces_pending_timer(self):
        calls = []

        async def callback():
            calls.append(1)

        scheduler = TurnScheduler(callback)
        scheduler.schedule_next(1000)
        scheduler.schedule_next(5)
        await asyncio.sleep(0.1)
        assert calls == [1]
        await scheduler.stop()

    @pytest.mark.asyncio
    async def test_cancel_pending(self):
        calls = []

        async def callback():
            calls.append(1)

        scheduler = TurnScheduler(callback)
        scheduler.schedule_next(10)
        scheduler.cancel_pending()
        assert not scheduler.pending
        await asyncio.sleep(0.05)
        assert calls == []

    @pytest.mark.asyncio
    async def test_callback_can_schedule_next_timer(self):
        calls = []
        done = asyncio.Event()

        async def callback():
            calls.append(1)
            if len(calls) < 3:
                scheduler.schedule_next(1)
            else:
                done.set()

        scheduler = TurnScheduler(callback)
        scheduler.schedule_next(1)
        await asyncio.wait_for(done.wait(), timeout=1)
        assert len(calls) == 3

    @pytest.mark.asyncio
    async def test_failing_callback_is_logged(self, caplog):
        async def callback():
            raise RuntimeError("turn blew up")

        scheduler = TurnScheduler(callback)
        with caplog.at_level(logging.ERROR, logger="tianming.api.runtime"):
            scheduler.schedule_next(1)
            await asyncio.sleep(0.05)
        failures = [r for r in caplog.records if r.getMessage() == "scheduled turn failed"]
        assert len(failures) == 1
        assert failures[0].exc_info[0] is RuntimeError
        assert not scheduler.pending


class TestMessageFeed:
    def test_latest_and_retention(self):
        feed = MessageFeed(history_limit=3)
        assert feed.latest is None
        for turn in range(5):
            feed.publish(turn, [_message(f"t{turn}")], [0.0])
        assert [batch.turn for batch in feed.batches()] == [2, 3, 4]
        assert feed.latest.turn == 4

    def test_emits_immediately_without_event_loop(self, caplog):
        feed = MessageFeed()
        with caplog.at_level(logging.INFO, logger="tianming.feed"):
            feed.publish(7, [_message("first"), _message("second")], [0.0, 10.0])
        emitted = [r.getMessage() for r in caplog.records if r.name == "tianming.feed"]
        assert emitted == ["[turn 7] system: first", "[turn 7] system: second"]

    @pytest.mark.asyncio
    async def test_emits_at_display_offsets(self, caplog):
        feed = MessageFeed()
        with caplog.at_level(logging.INFO, logger="tianming.feed"):
            feed.publish(1, [_message("late")], [30.0])
            assert not [r for r in caplog.records if r.name == "tianming.feed"]
            await asyncio.sleep(0.1)
        assert [r.getMessage() for r in caplog.records if r.name == "tianming.feed"] == [
            "[turn 1] system: late"
        ]

    @pytest.mark.asyncio
    async def test_clear_drops_pending_emits(self, caplog):
        feed = MessageFeed()
        with caplog.at_level(logging.INFO, logger="tianming.feed"):
            feed.publish(1, [_message("never")], [20.0])
            feed.clear()
            await asyncio.sleep(0.05)
        assert feed.batches() == []
        assert not [r for r in caplog.records if r.name == "tianming.feed"]

    @pytest.mark.asyncio
    async def test_delivered_emits_are_released(self):
        feed = MessageFeed()
        for turn in range(50):
            feed.publish(turn, [_message("a"), _message("b")], [0.0, 0.0])
        assert feed.pending_emits == 100
        await asyncio.sleep(0.05)
        assert feed.pending_emits == 0
        feed.publish(50, [_message("late")], [1000.0])
        assert feed.pending_emits == 1
        feed.clear()
        assert feed.pending_emits == 0


def test_scheduler_rules_overlay_settings():
    settings = Settings(turn_interval_ms=1234.0, message_stagger_ms=10.0)
    rules = scheduler_rules(settings)
    assert rules.scheduler.base_interval_ms == 1234.0
    assert rules.scheduler.message_stagger_ms == 10.0
    assert rules.scheduler.anomaly_every == DEFAULT_RULES.scheduler.anomaly_every
    assert rules.combat == DEFAULT_RULES.combat


class TestGameSession:
    def test_commands_need_a_game(self, bundled_catalog):
        session = GameSession(bundled_catalog)
        with pytest.raises(GameNotStartedError):
            session.pause()
        with pytest.raises(GameNotStartedError):
            session.summary()

    def test_new_game_opens_draft(self, bundled_catalog):
        session = GameSession(bundled_catalog, rng_factory=lambda: random.Random(1))
        state = session.start_new_game(seed=42)
        assert state.phase == GamePhase.SKILL_SELECTION
        assert state.random_seed == 42
        assert len(state.draft.candidates) == 3
        assert not session.running

    def test_speed_is_clamped(self, bundled_catalog):
        session = GameSession(bundled_catalog, game_speed=10.0)
        session.start_new_game()
        assert session.require_state().settings.game_speed == 4.0
        assert session.set_speed(0.1) == 0.5
        assert session.set_speed(2.0) == 2.0

    @pytest.mark.asyncio
    async def test_draft_completion_starts_turn_loop(self, bundled_catalog):
        session = GameSession(bundled_catalog, rules=FAST_RULES, rng_factory=lambda: random.Random(3))
        session.start_new_game()
        await _finish_draft(session)

        assert session.running
        assert session.scheduler.pending
        assert session.feed.latest.turn == 0
        assert len(session.require_state().player_cities()) == 1

        await asyncio.sleep(0.2)
        assert session.require_state().current_turn >= 1
        await session.shutdown()
        assert not session.scheduler.pending

    @pytest.mark.asyncio
    async def test_pause_stops_the_loop_and_resume_runs_a_turn(self, bundled_catalog):
        session = GameSession(bundled_catalog, rules=FAST_RULES, rng_factory=lambda: random.Random(4))
        session.start_new_game()
        await _finish_draft(session)

        session.pause()
        assert not session.running
        assert not session.scheduler.pending
        turn = session.require_state().current_turn
        await asyncio.sleep(0.1)
        assert session.require_state().current_turn == turn

        await session.resume()
        assert session.running
        assert session.require_state().current_turn == turn + 1
        assert session.feed.latest.turn == turn + 1
        assert await session.toggle() is False
        await session.shutdown()

    @pytest.mark.asyncio
    async def test_manual_turn_while_paused(self, bundled_catalog):
        session = GameSession(bundled_catalog, rules=FAST_RULES, rng_factory=lambda: random.Random(5))
        session.start_new_game()
        await _finish_draft(session)
        session.pause()

        report = await session.execute_turn()

        assert report is not None
        assert report.messages[0].message == f"--- Turn {report.turn} begins ---"
        assert not session.scheduler.pending
        await session.shutdown()

    @pytest.mark.asyncio
    async def test_game_over_cancels_scheduling(self):
        session = GameSession(_single_city_catalog(), rules=FAST_RULES)
        session.start_new_game()
        await _finish_draft(session)

        report = await session.execute_turn()

        assert report.game_over
        assert report.outcome == GameOutcome.VICTORY
        assert not session.running
        assert not session.scheduler.pending
        assert await session.execute_turn() is None
        assert session.summary()["outcome"] == "victory"

    @pytest.mark.asyncio
    async def test_turns_are_not_run_during_draft(self, bundled_catalog):
        session = GameSession(bundled_catalog)
        session.start_new_game()
        assert await session.execute_turn() is None
        assert session.require_state().current_turn == 0

    @pytest.mark.asyncio
    async def test_new_game_discards_running_game(self, bundled_catalog):
        session = GameSession(bundled_catalog, rules=FAST_RULES)
        session.start_new_game()
        await _finish_draft(session)
        session.start_new_game()
        assert not session.running
        assert not session.scheduler.pending
        assert session.feed.batches() == []
        assert session.require_state().phase == GamePhase.SKILL_SELECTION
