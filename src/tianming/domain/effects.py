"""Single entry point that applies skill, event and equipment effects."""

from __future__ import annotations

import logging
import random
from collections.abc import Callable, Iterable

from tianming.domain.enums import (
    ALL_ATTRIBUTES_TARGET,
    VISIBLE_ATTRIBUTES,
    Attribute,
    EffectKind,
    EquipmentRarity,
    Faction,
    GeneralStatus,
)
from tianming.domain.models import ContentCatalog, Effect, Equipment, GameState, General
from tianming.utils.rng import random_choice

logger = logging.getLogger(__name__)

Handler = Callable[[GameState, Effect, ContentCatalog, random.Random], str | None]

RARITY_ORDER = (EquipmentRarity.LEGENDARY, EquipmentRarity.RARE, EquipmentRarity.COMMON)


def apply_effect(
    state: GameState,
    effect: Effect,
    *,
    catalog: ContentCatalog,
    rng: random.Random,
) -> str | None:
    """Apply one effect to the player and return a short summary of the change.

    Passive kinds (combat bonuses, event modifiers, specials) change nothing
    here; resolvers read them from the player's skills and equipment.
    """

    handler = _EFFECT_HANDLERS[effect.kind]
    return handler(state, effect, catalog, rng)


def apply_effects(
    state: GameState,
    effects: Iterable[Effect],
    *,
    catalog: ContentCatalog,
    rng: random.Random,
) -> list[str]:
    summaries: list[str] = []
    for effect in effects:
        summary = apply_effect(state, effect, catalog=catalog, rng=rng)
        if summary:
            summaries.append(summary)
    return summaries


def passive_total(effects: Iterable[Effect], kinds: set[EffectKind], target: str | None = None) -> float:
    """Sum the values of passive effects of the given kinds (optionally by target)."""

    return sum(
        effect.value
        for effect in effects
        if effect.kind in kinds and (target is None or effect.target == target)
    )


def _attribute_targets(target: str | None) -> list[Attribute]:
    if target == ALL_ATTRIBUTES_TARGET:
        return list(VISIBLE_ATTRIBUTES)
    if target is None:
        raise ValueError("attribute effect requires a target")
    return [Attribute(target)]


def _apply_attribute(state: GameState, effect: Effect, _catalog, _rng) -> str | None:
    attributes = state.player.attributes
    changes: list[str] = []
    for attr in _attribute_targets(effect.target):
        applied = attributes.adjust(attr, int(effect.value))
        if applied:
            changes.append(f"{attr.value}{applied:+d}")
            logger.debug("effect %s on %s applied %+d", effect.kind, attr.value, applied)
    return ", ".join(changes) or None


def _passive(_state, _effect, _catalog, _rng) -> None:
    return None


def _gain_gold(state: GameState, effect: Effect, _catalog, _rng) -> str | None:
    player = state.player
    before = player.gold
    player.gold = max(0, player.gold + int(effect.value))
    delta = player.gold - before
    return f"gold{delta:+d}" if delta else None


def _lose_troops(state: GameState, effect: Effect, _catalog, _rng) -> str | None:
    player = state.player
    before = player.troops
    player.troops = max(0, player.troops - int(effect.value))
    lost = before - player.troops
    return f"troops-{lost}" if lost else None


def _gain_troops(state: GameState, effect: Effect, _catalog, _rng) -> str | None:
    player = state.player
    gained = max(0, int(effect.value))
    player.troops += gained
    return f"troops+{gained}" if gained else None


def _gain_equipment(
    state: GameState, effect: Effect, catalog: ContentCatalog, rng: random.Random
) -> str | None:
    item = select_equipment(state, catalog, effect.target, rng)
    if item is None:
        return None
    previous = state.player.equipment.get(item.slot)
    state.player.equipment[item.slot] = item
    if previous is not None:
        logger.info("replaced %s with %s in slot %s", previous.name, item.name, item.slot)
    return f"equipped {item.name}"


def _lose_city(state: GameState, _effect, _catalog, rng: random.Random) -> str | None:
    held = state.player_cities()
    if len(held) <= 1:
        return None
    city = random_choice(rng, held)
    city.faction = Faction.NEUTRAL
    state.player.cities_controlled = max(0, state.player.cities_controlled - 1)
    return f"lost {city.name}"


def _gain_general(state: GameState, _effect, _catalog, rng: random.Random) -> str | None:
    candidates = [
        g
        for g in state.generals.values()
        if g.status not in (GeneralStatus.ALLY, GeneralStatus.PLAYER)
    ]
    general = random_choice(rng, candidates)
    if general is None:
        return None
    enlist_general(state, general)
    return f"{general.name} joined"


def enlist_general(state: GameState, general: General) -> None:
    """Turn ``general`` into a player ally and pull them out of any garrison."""

    general.status = GeneralStatus.ALLY
    general.faction = Faction.PLAYER
    state.player.generals_recruited += 1
    for city in state.cities.values():
        if general.id in city.garrison:
            city.garrison.remove(general.id)


def select_equipment(
    state: GameState,
    catalog: ContentCatalog,
    target: str | None,
    rng: random.Random,
) -> Equipment | None:
    """Pick an obtainable item, narrowed by a rarity named in ``target``."""

    cities = state.player.cities_controlled
    pool = [
        item
        for item in catalog.equipment
        if item.min_city_count is None or cities >= item.min_city_count
    ]
    rarity = next((r for r in RARITY_ORDER if target and r.value in target), None)
    if rarity is not None:
        pool = [item for item in pool if item.rarity == rarity]
    else:
        pool = [item for item in pool if not item.event_only]
    return random_choice(rng, pool)


_EFFECT_HANDLERS: dict[EffectKind, Handler] = {
    EffectKind.ATTRIBUTE_BONUS: _apply_attribute,
    EffectKind.ATTRIBUTE_CHANGE: _apply_attribute,
    EffectKind.COMBAT_BONUS: _passive,
    EffectKind.EVENT_MODIFIER: _passive,
    EffectKind.SPECIAL: _passive,
    EffectKind.GAIN_GOLD: _gain_gold,
    EffectKind.LOSE_TROOPS: _lose_troops,
    EffectKind.GAIN_TROOPS: _gain_troops,
    EffectKind.GAIN_EQUIPMENT: _gain_equipment,
    EffectKind.LOSE_CITY: _lose_city,
    EffectKind.GAIN_GENERAL: _gain_general,
}
