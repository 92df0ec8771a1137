"""Random event selection and resolution.

Each turn rolls how many events to attempt.  Every attempt scans the eligible
events in catalog order and takes the first whose (destiny-adjusted)
probability check passes, so earlier catalog entries are favoured.  That
ordering bias is kept as-is for compatibility with the existing content
balance.
"""

from __future__ import annotations

import logging
import operator
import random
from collections.abc import Callable
from dataclasses import dataclass
from datetime import UTC, datetime

from tianming.domain import formulas
from tianming.domain.effects import apply_effects
from tianming.domain.enums import Comparison, EventType, MessageCategory, RequirementType
from tianming.domain.models import (
    ContentCatalog,
    EventOutcome,
    EventRequirement,
    GameEvent,
    GameState,
    HistoryEntry,
    TurnMessage,
)
from tianming.domain.rules_config import DEFAULT_RULES, RulesConfig
from tianming.utils.rng import check_probability, random_choice, random_int, random_percent

logger = logging.getLogger(__name__)

_COMPARATORS: dict[Comparison, Callable[[float, float], bool]] = {
    Comparison.GE: operator.ge,
    Comparison.LE: operator.le,
    Comparison.GT: operator.gt,
    Comparison.LT: operator.lt,
    Comparison.EQ: operator.eq,
    Comparison.NE: operator.ne,
}

EVENT_TYPE_LABELS = {
    EventType.POSITIVE: "Fortune",
    EventType.NEGATIVE: "Misfortune",
    EventType.NEUTRAL: "Omen",
    EventType.CHOICE: "Dilemma",
}


@dataclass(slots=True)
class EventResolution:
    """An event together with the outcome that fired."""

    event: GameEvent
    outcome: EventOutcome
    changes: list[str]


def evaluate_condition(value: float, comparison: Comparison | str, target: float) -> bool:
    return _COMPARATORS[Comparison(comparison)](value, target)


def requirement_value(state: GameState, requirement: EventRequirement) -> float:
    player = state.player
    if requirement.type == RequirementType.LEVEL:
        return player.level
    if requirement.type == RequirementType.CITY_COUNT:
        return player.cities_controlled
    if requirement.target is None:
        raise ValueError("attribute requirement needs a target attribute")
    return player.attributes.get(requirement.target)


def requirements_met(state: GameState, event: GameEvent) -> bool:
    return all(
        evaluate_condition(requirement_value(state, req), req.operator, req.value)
        for req in event.requirements
    )


def select_event(
    state: GameState, catalog: ContentCatalog, rng: random.Random
) -> GameEvent | None:
    """First eligible event, in catalog order, whose probability check passes."""

    destiny = state.player.attributes.destiny
    for event in catalog.events:
        if not requirements_met(state, event):
            continue
        chance = formulas.event_probability(event.base_probability, event.destiny_modifier, destiny)
        if check_probability(rng, chance):
            return event
    return None


def select_outcome(event: GameEvent, rng: random.Random) -> EventOutcome | None:
    """Uniform pick for choice events; cumulative roll for probability events."""

    if event.is_choice:
        return random_choice(rng, event.outcomes)

    roll = random_percent(rng)
    cumulative = 0.0
    for outcome in event.outcomes:
        cumulative += outcome.probability
        if roll <= cumulative:
            return outcome
    return None


def execute_event(
    state: GameState,
    event: GameEvent,
    catalog: ContentCatalog,
    rng: random.Random,
    *,
    now: datetime | None = None,
) -> EventResolution | None:
    outcome = select_outcome(event, rng)
    if outcome is None:
        return None

    changes = apply_effects(state, outcome.effects, catalog=catalog, rng=rng)
    state.event_history.append(
        HistoryEntry(
            turn=state.current_turn,
            event_id=event.id,
            outcome_id=outcome.id,
            timestamp=now or datetime.now(UTC),
            description=f"{event.name} - {outcome.name}",
        )
    )
    logger.info("event %s resolved as %s", event.id, outcome.id)
    return EventResolution(event=event, outcome=outcome, changes=changes)


def resolution_message(resolution: EventResolution) -> TurnMessage:
    event, outcome = resolution.event, resolution.outcome
    label = EVENT_TYPE_LABELS.get(event.type, "Event")
    descriptions = [effect.description for effect in outcome.effects if effect.description]
    effect_text = f"; effects: {', '.join(descriptions)}" if descriptions else ""
    return TurnMessage(
        category=MessageCategory.EVENT,
        message=f"{label}: {event.name} - {outcome.name}{effect_text}",
        data={
            "event_id": event.id,
            "outcome_id": outcome.id,
            "changes": list(resolution.changes),
        },
    )


def roll_event_count(
    state: GameState, rng: random.Random, *, rules: RulesConfig = DEFAULT_RULES
) -> int:
    """How many event attempts this turn gets; updates the drought counter."""

    cfg = rules.events
    player = state.player
    if player.attributes.destiny >= cfg.high_destiny_threshold:
        count = random_int(rng, *cfg.high_destiny_count)
    elif player.level >= cfg.veteran_level_threshold:
        count = random_int(rng, *cfg.veteran_count)
    else:
        count = random_int(rng, *cfg.base_count)

    if state.turns_without_events >= cfg.drought_turns:
        count = max(count, 1)
        state.turns_without_events = 0

    if count == 0:
        state.turns_without_events += 1
    else:
        state.turns_without_events = 0
    return count


def process_random_events(
    state: GameState,
    catalog: ContentCatalog,
    rng: random.Random,
    *,
    rules: RulesConfig = DEFAULT_RULES,
) -> list[TurnMessage]:
    """Event phase."""

    messages: list[TurnMessage] = []
    for _ in range(roll_event_count(state, rng, rules=rules)):
        event = select_event(state, catalog, rng)
        if event is None:
            continue
        resolution = execute_event(state, event, catalog, rng)
        if resolution is not None:
            messages.append(resolution_message(resolution))
    return messages
