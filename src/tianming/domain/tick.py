"""Turn orchestration for Tianming campaigns."""

from __future__ import annotations

import logging
import random
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import UTC, datetime

from tianming.domain import battle, economy, events, leveling, recruitment
from tianming.domain.effects import apply_effect
from tianming.domain.enums import (
    Attribute,
    CityBonus,
    EffectKind,
    Faction,
    GameOutcome,
    GamePhase,
    MessageCategory,
    Season,
    TimeAnomaly,
    TurnStage,
)
from tianming.domain.models import ContentCatalog, Effect, GameState, TurnMessage
from tianming.domain.rules_config import DEFAULT_RULES, RulesConfig
from tianming.errors import PhaseTransitionError
from tianming.utils.rng import check_probability, random_choice, random_float, random_int

logger = logging.getLogger(__name__)

ALLOWED_TRANSITIONS: dict[GamePhase, set[GamePhase]] = {
    GamePhase.SKILL_SELECTION: {GamePhase.PLAYING},
    GamePhase.PLAYING: {GamePhase.GAME_OVER},
    GamePhase.GAME_OVER: set(),
}

Phase = Callable[[GameState, ContentCatalog, random.Random, RulesConfig], list[TurnMessage]]

STARTING_EVENTS: tuple[tuple[str, tuple[EffectKind, str | None, tuple[int, int]]], ...] = (
    ("Heavenly portent", (EffectKind.ATTRIBUTE_CHANGE, Attribute.DESTINY.value, (5, 15))),
    ("Volunteers rally to the banner", (EffectKind.GAIN_TROOPS, None, (50, 150))),
    ("A merchant sponsors the cause", (EffectKind.GAIN_GOLD, None, (200, 500))),
)
TUTOR_ATTRIBUTES = (Attribute.INTELLIGENCE, Attribute.POLITICS, Attribute.CHARISMA)


@dataclass(slots=True)
class TurnReport:
    """Everything a single turn produced."""

    turn: int
    messages: list[TurnMessage] = field(default_factory=list)
    failed_phase: TurnStage | None = None
    game_over: bool = False
    outcome: GameOutcome | None = None


@dataclass(slots=True)
class TurnTiming:
    """Delay before the next turn and display offsets for this turn's messages."""

    delay_ms: float
    interval_ms: float
    display_offsets_ms: list[float] = field(default_factory=list)
    anomaly: TimeAnomaly | None = None


def transition(state: GameState, target: GamePhase) -> None:
    """Move the phase machine forward; skipping or reversing is an error."""

    if target not in ALLOWED_TRANSITIONS[state.phase]:
        raise PhaseTransitionError(f"cannot move from {state.phase} to {target}")
    logger.info("phase %s -> %s", state.phase, target)
    state.phase = target


# --- Campaign start ---------------------------------------------------------------


def begin_campaign(
    state: GameState,
    catalog: ContentCatalog,
    rng: random.Random,
    *,
    rules: RulesConfig = DEFAULT_RULES,
) -> list[TurnMessage]:
    """Place the player in a starting city and roll the opening conditions."""

    cfg = rules.start
    messages: list[TurnMessage] = []

    start_id = random_choice(rng, cfg.preferred_start_cities)
    city = state.cities.get(start_id) or state.cities.get(cfg.fallback_start_city)
    if city is None and state.cities:
        city = next(iter(state.cities.values()))
    if city is not None:
        city.faction = Faction.PLAYER
        city.garrison.clear()
        messages.append(
            TurnMessage(
                category=MessageCategory.CAMPAIGN,
                message=f"The campaign begins in {city.name}",
                data={"city_id": city.id},
            )
        )
        messages.extend(_apply_city_bonus(state, city.special_bonus, rng))

    if check_probability(rng, cfg.starting_event_chance):
        messages.append(_starting_event(state, catalog, rng))

    messages.append(_apply_season(state, rng))
    economy.recalculate_troop_cap(state, rules=rules)
    return messages


def _apply_city_bonus(state: GameState, bonus: str | None, rng: random.Random) -> list[TurnMessage]:
    player = state.player
    if bonus == CityBonus.POLITICS:
        player.gold += random_int(rng, 100, 300)
        text = "Seat of government: extra gold"
    elif bonus == CityBonus.RECRUITMENT:
        player.troops += random_int(rng, 100, 200)
        text = "Recruiting ground: extra troops"
    elif bonus == CityBonus.TRADE:
        player.gold += random_int(rng, 150, 250)
        text = "Trade hub: extra gold"
    elif bonus == CityBonus.DEFENSE:
        player.attributes.adjust(Attribute.LEADERSHIP, random_int(rng, 3, 8))
        text = "Strategic stronghold: leadership improved"
    else:
        return []
    return [TurnMessage(category=MessageCategory.CAMPAIGN, message=text)]


def _starting_event(state: GameState, catalog: ContentCatalog, rng: random.Random) -> TurnMessage:
    index = random_int(rng, 0, len(STARTING_EVENTS))
    if index == len(STARTING_EVENTS):
        name = "Tutored by a renowned scholar"
        effect = Effect(
            kind=EffectKind.ATTRIBUTE_CHANGE,
            value=random_int(rng, 5, 10),
            target=random_choice(rng, TUTOR_ATTRIBUTES).value,
        )
    else:
        name, (kind, target, (low, high)) = STARTING_EVENTS[index]
        effect = Effect(kind=kind, value=random_int(rng, low, high), target=target)

    summary = apply_effect(state, effect, catalog=catalog, rng=rng)
    return TurnMessage(
        category=MessageCategory.CAMPAIGN,
        message=name + (f" ({summary})" if summary else ""),
    )


def _apply_season(state: GameState, rng: random.Random) -> TurnMessage:
    season = random_choice(rng, list(Season))
    state.season = season
    player = state.player
    if season == Season.SPRING:
        player.troops += random_int(rng, 20, 80)
        text = "Spring: recruits are plentiful"
    elif season == Season.SUMMER:
        player.gold += random_int(rng, 50, 150)
        text = "Summer: a rich harvest fills the treasury"
    elif season == Season.AUTUMN:
        player.attributes.adjust(Attribute.POLITICS, random_int(rng, 2, 6))
        text = "Autumn: a season for statecraft"
    else:
        player.attributes.adjust(Attribute.STRENGTH, random_int(rng, 2, 6))
        text = "Winter: the troops drill through the cold"
    return TurnMessage(category=MessageCategory.CAMPAIGN, message=text, data={"season": season})


# --- Turn pipeline ----------------------------------------------------------------


def _production(state, _catalog, _rng, rules) -> list[TurnMessage]:
    return economy.process_production(state, rules=rules)


def _events(state, catalog, rng, rules) -> list[TurnMessage]:
    return events.process_random_events(state, catalog, rng, rules=rules)


def _combat(state, _catalog, rng, rules) -> list[TurnMessage]:
    return battle.process_battle(state, rng, rules=rules)


def _recruitment(state, _catalog, rng, rules) -> list[TurnMessage]:
    return recruitment.process_recruitment(state, rng, rules=rules)


def _leveling(state, _catalog, rng, rules) -> list[TurnMessage]:
    return leveling.process_level_up(state, rng, rules=rules)


def _upkeep(state, _catalog, _rng, rules) -> list[TurnMessage]:
    return economy.process_upkeep(state, rules=rules)


TURN_PIPELINE: tuple[tuple[TurnStage, Phase], ...] = (
    (TurnStage.PRODUCTION, _production),
    (TurnStage.EVENTS, _events),
    (TurnStage.COMBAT, _combat),
    (TurnStage.RECRUITMENT, _recruitment),
    (TurnStage.LEVELING, _leveling),
    (TurnStage.UPKEEP, _upkeep),
)


def run_turn(
    state: GameState,
    catalog: ContentCatalog,
    rng: random.Random,
    *,
    rules: RulesConfig = DEFAULT_RULES,
    pipeline: tuple[tuple[TurnStage, Phase], ...] = TURN_PIPELINE,
) -> TurnReport:
    """Advance the campaign by one turn.

    A phase that raises ends the pipeline for this turn; the messages gathered
    before the failure are kept and the caller still schedules the next turn.
    """

    if state.phase != GamePhase.PLAYING:
        raise PhaseTransitionError(f"turns only run while playing, not {state.phase}")

    state.current_turn += 1
    report = TurnReport(turn=state.current_turn)
    report.messages.append(
        TurnMessage(
            category=MessageCategory.TURN,
            message=f"--- Turn {state.current_turn} begins ---",
        )
    )

    for stage, phase in pipeline:
        try:
            report.messages.extend(phase(state, catalog, rng, rules))
        except Exception:
            logger.exception("turn %s: %s phase failed", state.current_turn, stage)
            report.failed_phase = stage
            return report

    try:
        report.game_over = check_game_end(state, catalog)
    except Exception:
        logger.exception("turn %s: end-condition check failed", state.current_turn)
        report.failed_phase = TurnStage.END_CHECK
        return report

    report.outcome = state.outcome
    if report.game_over:
        report.messages.append(_final_message(state))
    return report


def check_game_end(state: GameState, catalog: ContentCatalog) -> bool:
    """Victory holds every catalog city; defeat needs no troops and no cities."""

    player = state.player
    if player.cities_controlled >= catalog.city_count:
        _end_game(state, GameOutcome.VICTORY)
        return True
    if player.troops <= 0 and player.cities_controlled <= 0:
        _end_game(state, GameOutcome.DEFEAT)
        return True
    return False


def _end_game(state: GameState, outcome: GameOutcome) -> None:
    transition(state, GamePhase.GAME_OVER)
    state.outcome = outcome
    state.ended_at = datetime.now(UTC)
    logger.info(
        "game over (%s) at turn %s: level %s, %s cities, %s victories",
        outcome,
        state.current_turn,
        state.player.level,
        state.player.cities_controlled,
        state.player.battles_won,
    )


def _final_message(state: GameState) -> TurnMessage:
    player = state.player
    headline = "Victory! All under heaven is united" if state.outcome == GameOutcome.VICTORY else "Defeat"
    return TurnMessage(
        category=MessageCategory.CAMPAIGN,
        message=f"{headline} (level {player.level}, {player.cities_controlled} cities, "
        f"{player.battles_won} victories)",
        data={"outcome": state.outcome},
    )


# --- Turn timing ------------------------------------------------------------------


def message_offsets(count: int, *, rules: RulesConfig = DEFAULT_RULES) -> list[float]:
    cfg = rules.scheduler
    return [cfg.message_base_delay_ms + index * cfg.message_stagger_ms for index in range(count)]


def display_window(count: int, *, rules: RulesConfig = DEFAULT_RULES) -> float:
    """Time needed for ``count`` staggered messages to finish displaying."""

    cfg = rules.scheduler
    if count <= 0:
        return 0.0
    return cfg.message_base_delay_ms + (count - 1) * cfg.message_stagger_ms + cfg.message_buffer_ms


def minimum_interval(count: int, *, rules: RulesConfig = DEFAULT_RULES) -> float:
    """The base interval, stretched when the batch needs longer to display."""

    return max(rules.scheduler.base_interval_ms, display_window(count, rules=rules))


def compute_turn_timing(
    state: GameState,
    report: TurnReport,
    rng: random.Random,
    *,
    rules: RulesConfig = DEFAULT_RULES,
) -> TurnTiming:
    """Work out when the next turn starts.

    The interval starts from :func:`minimum_interval` for the batch and is
    modulated by destiny jitter, a winning-streak speed-up and the occasional
    tempo anomaly (announced as an extra message in the batch).  The display
    window is enforced again after modulation so the batch always finishes
    before the next turn, then everything is divided by game speed.
    """

    cfg = rules.scheduler
    player = state.player
    factor = 1.0

    if player.attributes.destiny >= cfg.destiny_jitter_threshold:
        factor *= random_float(rng, *cfg.destiny_jitter)

    if player.battles_won > player.battles_lost + cfg.win_streak_margin:
        factor *= cfg.win_streak_factor

    anomaly: TimeAnomaly | None = None
    if state.current_turn % cfg.anomaly_every == 0 and check_probability(rng, cfg.anomaly_chance):
        anomaly = random_choice(rng, list(TimeAnomaly))
        if anomaly == TimeAnomaly.ACCELERATE:
            factor *= cfg.accelerate_factor
            text = "Time quickens; the next turn comes sooner"
        else:
            factor *= cfg.decelerate_factor
            text = "Time stands still; the next turn is delayed"
        report.messages.append(
            TurnMessage(category=MessageCategory.ANOMALY, message=text, data={"anomaly": anomaly})
        )

    count = len(report.messages)
    interval = max(minimum_interval(count, rules=rules) * factor, display_window(count, rules=rules))
    speed = max(state.settings.game_speed, cfg.min_speed)
    return TurnTiming(
        delay_ms=interval / speed,
        interval_ms=interval,
        display_offsets_ms=[offset / speed for offset in message_offsets(count, rules=rules)],
        anomaly=anomaly,
    )
