"""Runtime primitives backing the Tianming HTTP API."""

from __future__ import annotations

import asyncio
import dataclasses
import itertools
import logging
import random
from collections import deque
from collections.abc import Awaitable, Callable
from contextlib import suppress
from dataclasses import dataclass, field
from datetime import UTC, datetime

from tianming.config import Settings, get_settings
from tianming.content import load_catalog
from tianming.domain import draft, tick
from tianming.domain import models as dm
from tianming.domain.enums import GamePhase
from tianming.domain.rules_config import DEFAULT_RULES, RulesConfig, SchedulerRules
from tianming.errors import GameNotStartedError
from tianming.utils.rng import clamp

logger = logging.getLogger(__name__)
feed_logger = logging.getLogger("tianming.feed")


class TurnScheduler:
    """Single-shot timer that runs a coroutine after a delay.

    At most one timer is pending at a time; scheduling again replaces it.
    """

    def __init__(self, callback: Callable[[], Awaitable[None]]) -> None:
        self._callback = callback
        self._task: asyncio.Task[None] | None = None

    @property
    def pending(self) -> bool:
        return self._task is not None and not self._task.done()

    def schedule_next(self, delay_ms: float) -> None:
        self.cancel_pending()
        loop = asyncio.get_running_loop()
        self._task = loop.create_task(self._fire(max(delay_ms, 0.0)), name="tianming-turn-timer")

    def cancel_pending(self) -> None:
        task = self._task
        self._task = None
        if task is not None and not task.done() and task is not asyncio.current_task():
            task.cancel()

    async def _fire(self, delay_ms: float) -> None:
        await asyncio.sleep(delay_ms / 1000)
        # Detach before running so the callback may schedule the next timer.
        self._task = None
        try:
            await self._callback()
        except Exception:
            logger.exception("scheduled turn failed")

    async def stop(self) -> None:
        task = self._task
        self.cancel_pending()
        if task is not None:
            with suppress(asyncio.CancelledError):
                await task


@dataclass(slots=True)
class PublishedBatch:
    """Messages of one turn together with their display offsets."""

    turn: int
    messages: list[dm.TurnMessage]
    display_offsets_ms: list[float]
    published_at: datetime = field(default_factory=lambda: datetime.now(UTC))


class MessageFeed:
    """Ordered outbound message channel.

    Each published batch replaces the latest batch, is retained for bulk
    queries up to ``history_limit`` batches, and is written to the
    ``tianming.feed`` logger message by message at its display offset.
    """

    def __init__(self, *, history_limit: int = 500) -> None:
        self._batches: deque[PublishedBatch] = deque(maxlen=history_limit)
        self._pending: dict[int, asyncio.TimerHandle] = {}
        self._keys = itertools.count()

    @property
    def latest(self) -> PublishedBatch | None:
        return self._batches[-1] if self._batches else None

    def batches(self) -> list[PublishedBatch]:
        return list(self._batches)

    @property
    def pending_emits(self) -> int:
        return len(self._pending)

    def publish(
        self, turn: int, messages: list[dm.TurnMessage], offsets_ms: list[float]
    ) -> PublishedBatch:
        batch = PublishedBatch(turn=turn, messages=list(messages), display_offsets_ms=list(offsets_ms))
        self._batches.append(batch)

        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            loop = None
        for message, offset in zip(batch.messages, batch.display_offsets_ms, strict=True):
            if loop is None:
                _emit(turn, message)
            else:
                key = next(self._keys)
                self._pending[key] = loop.call_later(
                    offset / 1000, self._deliver, key, turn, message
                )
        return batch

    def _deliver(self, key: int, turn: int, message: dm.TurnMessage) -> None:
        self._pending.pop(key, None)
        _emit(turn, message)

    def clear(self) -> None:
        for handle in self._pending.values():
            handle.cancel()
        self._pending.clear()
        self._batches.clear()


def _emit(turn: int, message: dm.TurnMessage) -> None:
    feed_logger.info("[turn %s] %s: %s", turn, message.category, message.message)


def scheduler_rules(settings: Settings, base: RulesConfig = DEFAULT_RULES) -> RulesConfig:
    """Overlay the timing settings onto the rule configuration."""

    timing: SchedulerRules = dataclasses.replace(
        base.scheduler,
        base_interval_ms=settings.turn_interval_ms,
        message_base_delay_ms=settings.message_base_delay_ms,
        message_stagger_ms=settings.message_stagger_ms,
        message_buffer_ms=settings.message_buffer_ms,
    )
    return dataclasses.replace(base, scheduler=timing)


class GameSession:
    """Owns the live game and drives it through the turn scheduler."""

    def __init__(
        self,
        catalog: dm.ContentCatalog,
        *,
        rules: RulesConfig = DEFAULT_RULES,
        game_speed: float = 1.0,
        history_limit: int = 500,
        rng_factory: Callable[[], random.Random] = random.Random,
    ) -> None:
        self.catalog = catalog
        self.rules = rules
        self.feed = MessageFeed(history_limit=history_limit)
        self.scheduler = TurnScheduler(self.execute_turn)
        self.state: dm.GameState | None = None
        self.running = False
        self._default_speed = game_speed
        self._rng_factory = rng_factory
        self._rng = rng_factory()
        self._turn_in_progress = False

    # --- Lifecycle -----------------------------------------------------------------

    def require_state(self) -> dm.GameState:
        if self.state is None:
            raise GameNotStartedError("no game has been started")
        return self.state

    def start_new_game(self, *, seed: int | None = None) -> dm.GameState:
        """Discard any live game and open a fresh skill draft."""

        self.scheduler.cancel_pending()
        self.running = False
        self.feed.clear()
        self._rng = self._rng_factory()
        recorded_seed = seed if seed is not None else random.getrandbits(32)
        self.state = dm.instantiate_state(
            self.catalog,
            started_at=datetime.now(UTC),
            random_seed=recorded_seed,
            settings=dm.GameSettings(game_speed=self._clamp_speed(self._default_speed)),
        )
        draft.start_draft(self.state, self.catalog, self._rng, rules=self.rules)
        logger.info("new game started (seed %s recorded)", recorded_seed)
        return self.state

    async def select_skill(self, skill_id: str) -> bool:
        state = self.require_state()
        if not draft.select_skill(state, skill_id, self.catalog, self._rng, rules=self.rules):
            return False
        if state.phase == GamePhase.PLAYING:
            await self._begin_campaign()
        return True

    async def skip_round(self) -> bool:
        """Skip the current draft round; True when the draft just completed."""

        state = self.require_state()
        completed = draft.skip_round(state, self.catalog, self._rng, rules=self.rules)
        if completed:
            await self._begin_campaign()
        return completed

    async def _begin_campaign(self) -> None:
        state = self.require_state()
        messages = tick.begin_campaign(state, self.catalog, self._rng, rules=self.rules)
        self._publish(state.current_turn, messages)
        self.running = True
        delay = tick.minimum_interval(len(messages), rules=self.rules)
        self.scheduler.schedule_next(delay / state.settings.game_speed)
        logger.info("campaign loop started")

    async def shutdown(self) -> None:
        self.running = False
        await self.scheduler.stop()
        self.feed.clear()

    # --- Controls ------------------------------------------------------------------

    def pause(self) -> None:
        self.require_state()
        if self.running:
            logger.info("game paused")
        self.running = False
        self.scheduler.cancel_pending()

    async def resume(self) -> None:
        state = self.require_state()
        if state.phase != GamePhase.PLAYING or self.running:
            return
        self.running = True
        logger.info("game resumed")
        await self.execute_turn()

    async def toggle(self) -> bool:
        if self.running:
            self.pause()
        else:
            await self.resume()
        return self.running

    def set_speed(self, speed: float) -> float:
        state = self.require_state()
        state.settings.game_speed = self._clamp_speed(speed)
        logger.info("game speed set to %s", state.settings.game_speed)
        return state.settings.game_speed

    def _clamp_speed(self, speed: float) -> float:
        cfg = self.rules.scheduler
        return clamp(speed, cfg.min_speed, cfg.max_speed)

    # --- Turn execution ------------------------------------------------------------

    async def execute_turn(self) -> tick.TurnReport | None:
        """Run one turn, publish its messages and schedule the next one."""

        state = self.require_state()
        if state.phase != GamePhase.PLAYING:
            return None
        if self._turn_in_progress:
            logger.debug("turn already in progress; ignoring trigger")
            return None

        self._turn_in_progress = True
        try:
            report = tick.run_turn(state, self.catalog, self._rng, rules=self.rules)
            timing = tick.compute_turn_timing(state, report, self._rng, rules=self.rules)
            self.feed.publish(report.turn, report.messages, timing.display_offsets_ms)
        finally:
            self._turn_in_progress = False

        if report.game_over:
            self.running = False
            self.scheduler.cancel_pending()
            logger.info("campaign finished: %s", report.outcome)
        elif self.running:
            self.scheduler.schedule_next(timing.delay_ms)
        return report

    def _publish(self, turn: int, messages: list[dm.TurnMessage]) -> None:
        state = self.require_state()
        offsets = [
            offset / state.settings.game_speed
            for offset in tick.message_offsets(len(messages), rules=self.rules)
        ]
        self.feed.publish(turn, messages, offsets)

    # --- Read models ---------------------------------------------------------------

    def summary(self) -> dict[str, object]:
        state = self.require_state()
        return {
            "phase": str(state.phase),
            "current_turn": state.current_turn,
            "running": self.running,
            "turn_pending": self.scheduler.pending,
            "game_speed": state.settings.game_speed,
            "season": str(state.season),
            "outcome": str(state.outcome) if state.outcome else None,
            "random_seed": state.random_seed,
            "started_at": state.started_at,
            "ended_at": state.ended_at,
            "city_count": self.catalog.city_count,
        }


# --- Serialisers ----------------------------------------------------------------------


def skill_dict(skill: dm.Skill) -> dict[str, object]:
    return {
        "id": skill.id,
        "name": skill.name,
        "star_cost": skill.star_cost,
        "type": str(skill.type),
        "description": skill.description,
    }


def equipment_dict(item: dm.Equipment | None) -> dict[str, object] | None:
    if item is None:
        return None
    return {
        "id": item.id,
        "name": item.name,
        "slot": str(item.slot),
        "rarity": str(item.rarity),
        "attribute_bonus": dict(item.attribute_bonus),
    }


def draft_dict(state: dm.GameState) -> dict[str, object]:
    current = state.draft
    return {
        "round": current.round,
        "max_rounds": current.max_rounds,
        "remaining_stars": current.remaining_stars,
        "finished": current.finished or state.phase != GamePhase.SKILL_SELECTION,
        "candidates": [skill_dict(skill) for skill in current.candidates],
        "selected": [skill_dict(skill) for skill in current.selected],
    }


def player_dict(player: dm.Player) -> dict[str, object]:
    return {
        "name": player.name,
        "level": player.level,
        "attributes": player.attributes.visible(),
        "skills": [skill_dict(skill) for skill in player.skills],
        "equipment": {str(slot): equipment_dict(item) for slot, item in player.equipment.items()},
        "gold": player.gold,
        "troops": player.troops,
        "max_troops": player.max_troops,
        "cities_controlled": player.cities_controlled,
        "battles_won": player.battles_won,
        "battles_lost": player.battles_lost,
        "generals_recruited": player.generals_recruited,
        "maintenance_cost": player.maintenance_cost,
    }


def city_dict(city: dm.City) -> dict[str, object]:
    return {
        "id": city.id,
        "name": city.name,
        "faction": str(city.faction),
        "garrison": list(city.garrison),
        "connections": sorted(city.connections),
        "gold_production": city.gold_production,
        "troop_production": city.troop_production,
        "defense_value": city.defense_value,
        "special_bonus": city.special_bonus,
    }


def general_dict(general: dm.General) -> dict[str, object]:
    return {
        "id": general.id,
        "name": general.name,
        "faction": str(general.faction),
        "status": str(general.status),
        "level": general.level,
        "attributes": general.attributes.visible(),
        "troops": general.troops,
        "max_troops": general.max_troops,
    }


def message_dict(message: dm.TurnMessage, offset_ms: float) -> dict[str, object]:
    return {
        "category": str(message.category),
        "message": message.message,
        "data": message.data,
        "display_offset_ms": offset_ms,
    }


def batch_dict(batch: PublishedBatch) -> dict[str, object]:
    return {
        "turn": batch.turn,
        "published_at": batch.published_at,
        "messages": [
            message_dict(message, offset)
            for message, offset in zip(batch.messages, batch.display_offsets_ms, strict=True)
        ],
    }


def history_dict(entry: dm.HistoryEntry) -> dict[str, object]:
    return {
        "turn": entry.turn,
        "event_id": entry.event_id,
        "outcome_id": entry.outcome_id,
        "timestamp": entry.timestamp,
        "description": entry.description,
    }


class ApiState:
    """Aggregated services shared by the FastAPI layer."""

    def __init__(
        self,
        *,
        settings: Settings | None = None,
        catalog: dm.ContentCatalog | None = None,
        rules: RulesConfig = DEFAULT_RULES,
        rng_factory: Callable[[], random.Random] = random.Random,
    ) -> None:
        self.settings = settings or get_settings()
        self.catalog = catalog or load_catalog(self.settings.content_dir)
        self.rules = scheduler_rules(self.settings, rules)
        self.session = GameSession(
            self.catalog,
            rules=self.rules,
            game_speed=self.settings.game_speed,
            history_limit=self.settings.history_limit,
            rng_factory=rng_factory,
        )

    async def shutdown(self) -> None:
        await self.session.shutdown()


def build_state() -> ApiState:
    """Factory used by the API to initialize state."""

    return ApiState()
