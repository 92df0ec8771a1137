"""Battle resolution rules."""

from __future__ import annotations

import logging
import math
import random
from dataclasses import dataclass, field

from tianming.domain import formulas, recruitment
from tianming.domain.enums import EffectKind, Faction, GeneralStatus, MessageCategory
from tianming.domain.models import City, GameState, TurnMessage
from tianming.domain.rules_config import DEFAULT_RULES, RulesConfig
from tianming.utils.rng import check_probability, random_choice, random_int

logger = logging.getLogger(__name__)

POWER_SKILL_KINDS = {EffectKind.COMBAT_BONUS, EffectKind.ATTRIBUTE_BONUS}


@dataclass(slots=True)
class PlayerPower:
    """Breakdown of the attacking player's combat power."""

    base: float
    skill_bonus: float
    equipment_bonus: float
    troop_bonus: float
    total: int


@dataclass(slots=True)
class DefenderPower:
    """Breakdown of a defending city's combat power."""

    base: int
    garrison: float
    total: int


@dataclass(slots=True)
class BattleResult:
    """Summary of a resolved assault."""

    victory: bool
    win_probability: float
    casualties: int
    player_power: int
    enemy_power: int
    notes: list[str] = field(default_factory=list)


def select_target(state: GameState, rng: random.Random) -> City | None:
    """Choose uniformly among non-player cities adjacent to any player city."""

    targets: dict[str, City] = {}
    for city in state.player_cities():
        for neighbour_id in sorted(city.connections):
            neighbour = state.cities.get(neighbour_id)
            if neighbour is not None and neighbour.faction != Faction.PLAYER:
                targets.setdefault(neighbour.id, neighbour)
    return random_choice(rng, list(targets.values()))


def player_combat_power(state: GameState, *, rules: RulesConfig = DEFAULT_RULES) -> PlayerPower:
    cfg = rules.combat
    player = state.player
    attrs = player.attributes

    base = (
        attrs.strength * cfg.strength_weight
        + attrs.intelligence * cfg.intelligence_weight
        + attrs.leadership * cfg.leadership_weight
    )

    skill_bonus = sum(
        effect.value
        for skill in player.skills
        for effect in skill.effects
        if effect.kind in POWER_SKILL_KINDS
    )

    weights = {
        "strength": cfg.strength_weight,
        "intelligence": cfg.intelligence_weight,
        "leadership": cfg.leadership_weight,
    }
    equipment_bonus = sum(
        bonus * weights.get(attr, cfg.other_equipment_weight)
        for item in player.equipped()
        for attr, bonus in item.attribute_bonus.items()
    )

    troop_bonus = formulas.troop_power(player.troops, cfg.troop_power_factor)
    total = math.floor(base + skill_bonus + equipment_bonus + troop_bonus)
    return PlayerPower(
        base=base,
        skill_bonus=skill_bonus,
        equipment_bonus=equipment_bonus,
        troop_bonus=troop_bonus,
        total=total,
    )


def defender_combat_power(
    state: GameState, city: City, *, rules: RulesConfig = DEFAULT_RULES
) -> DefenderPower:
    cfg = rules.combat
    total = float(city.defense_value)
    for general_id in city.garrison:
        general = state.generals.get(general_id)
        if general is None:
            continue
        equipment = [item for item in general.equipment.values() if item is not None]
        total += formulas.general_combat_power(general.attributes, (), equipment)
        total += formulas.troop_power(
            general.troops or cfg.default_garrison_troops, cfg.garrison_troop_factor
        )
    return DefenderPower(
        base=city.defense_value,
        garrison=total - city.defense_value,
        total=math.floor(total),
    )


def resolve_battle(
    state: GameState,
    player_power: int,
    enemy_power: int,
    rng: random.Random,
    *,
    rules: RulesConfig = DEFAULT_RULES,
) -> BattleResult:
    """Roll the outcome and casualties; does not mutate state."""

    cfg = rules.combat
    chance = formulas.win_probability(player_power, enemy_power, rules=rules)
    victory = check_probability(rng, chance)

    low, high = cfg.victory_casualty_pct if victory else cfg.defeat_casualty_pct
    troops = state.player.troops
    casualties = math.floor(troops * random_int(rng, low, high) / 100)
    casualties = min(casualties, troops)

    return BattleResult(
        victory=victory,
        win_probability=chance,
        casualties=casualties,
        player_power=player_power,
        enemy_power=enemy_power,
    )


def capture_city(state: GameState, city: City) -> None:
    city.faction = Faction.PLAYER
    state.player.cities_controlled += 1


def process_battle(
    state: GameState, rng: random.Random, *, rules: RulesConfig = DEFAULT_RULES
) -> list[TurnMessage]:
    """Combat phase: attack one adjacent city if the army is large enough."""

    player = state.player
    if player.troops < rules.combat.min_troops_to_attack:
        return [
            TurnMessage(
                category=MessageCategory.BATTLE,
                message="Too few troops to campaign; holding position",
            )
        ]

    target = select_target(state, rng)
    if target is None:
        return [
            TurnMessage(
                category=MessageCategory.BATTLE,
                message="No adjacent city to attack",
            )
        ]

    attack = player_combat_power(state, rules=rules)
    defence = defender_combat_power(state, target, rules=rules)
    result = resolve_battle(state, attack.total, defence.total, rng, rules=rules)

    player.troops -= result.casualties
    outcome = "won" if result.victory else "lost"
    loss_text = f", {result.casualties} troops lost" if result.casualties > 0 else ""
    messages = [
        TurnMessage(
            category=MessageCategory.BATTLE,
            message=(
                f"Assault on {target.name} {outcome} "
                f"(power {attack.total} vs {defence.total}){loss_text}"
            ),
            data={
                "city_id": target.id,
                "victory": result.victory,
                "win_probability": round(result.win_probability),
                "casualties": result.casualties,
            },
        )
    ]

    if not result.victory:
        player.battles_lost += 1
        logger.info("assault on %s failed at %.0f%% odds", target.id, result.win_probability)
        return messages

    player.battles_won += 1
    capture_city(state, target)
    messages.append(
        TurnMessage(
            category=MessageCategory.CAPTURE,
            message=f"Captured {target.name}",
            data={"city_id": target.id},
        )
    )
    messages.extend(_process_captured_garrison(state, target, rng, rules=rules))
    return messages


def _process_captured_garrison(
    state: GameState, city: City, rng: random.Random, *, rules: RulesConfig
) -> list[TurnMessage]:
    messages: list[TurnMessage] = []
    for general_id in list(city.garrison):
        general = state.generals.get(general_id)
        if general is None or general.status == GeneralStatus.ALLY:
            continue
        attempt = recruitment.attempt_recruitment(state, general, rng, rules=rules)
        messages.append(recruitment.attempt_message(general, attempt))
    city.garrison.clear()
    return messages
