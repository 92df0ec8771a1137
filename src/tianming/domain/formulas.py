"""Derived-stat formulas shared by the resolvers.

All functions are pure; callers pass raw numbers or catalog objects and get a
number back.
"""

from __future__ import annotations

import math
from collections.abc import Iterable

from tianming.domain.enums import Attribute, SkillType
from tianming.domain.models import Attributes, Equipment, Skill
from tianming.domain.rules_config import DEFAULT_RULES, RulesConfig
from tianming.utils.rng import clamp

GENERAL_ATTRIBUTE_WEIGHTS: dict[Attribute, float] = {
    Attribute.STRENGTH: 1.2,
    Attribute.INTELLIGENCE: 1.0,
    Attribute.LEADERSHIP: 0.8,
    Attribute.POLITICS: 0.3,
    Attribute.CHARISMA: 0.5,
}
GENERAL_EQUIPMENT_WEIGHTS: dict[str, float] = {
    Attribute.STRENGTH.value: 1.2,
    Attribute.INTELLIGENCE.value: 1.0,
    Attribute.LEADERSHIP.value: 0.8,
}
GENERAL_OTHER_EQUIPMENT_WEIGHT = 0.5
COMBAT_SKILL_POWER_PER_STAR = 10


def event_probability(base: float, destiny_modifier: float, destiny: float = 0) -> float:
    """Every 10 destiny shifts the chance by ``destiny_modifier`` percent of a point."""

    destiny_effect = (destiny / 10) * (destiny_modifier / 100)
    return clamp(base + destiny_effect, 0, 100)


def recruitment_rate(
    charisma: float,
    general_level: int,
    *,
    skill_bonus: float = 0,
    equipment_bonus: float = 0,
    rules: RulesConfig = DEFAULT_RULES,
) -> float:
    """Chance (percent) that a general defects to the player."""

    cfg = rules.recruitment
    rate = charisma * cfg.charisma_factor - general_level * cfg.level_penalty
    rate += skill_bonus + equipment_bonus
    return clamp(rate, cfg.min_rate, cfg.max_rate)


def win_probability(
    player_power: float,
    enemy_power: float,
    *,
    rules: RulesConfig = DEFAULT_RULES,
) -> float:
    """Power share of the attacker, bounded to leave room for upsets."""

    total = player_power + enemy_power
    ratio = player_power / total if total > 0 else 0.5
    return clamp(
        ratio * 100,
        rules.combat.min_win_probability,
        rules.combat.max_win_probability,
    )


def general_combat_power(
    attributes: Attributes,
    skills: Iterable[Skill] = (),
    equipment: Iterable[Equipment] = (),
) -> int:
    """Rating of a general's personal fighting ability (rounded)."""

    power = sum(attributes.get(attr) * weight for attr, weight in GENERAL_ATTRIBUTE_WEIGHTS.items())

    for skill in skills:
        if skill.type == SkillType.COMBAT:
            power += skill.star_cost * COMBAT_SKILL_POWER_PER_STAR

    for item in equipment:
        for attr, bonus in item.attribute_bonus.items():
            power += bonus * GENERAL_EQUIPMENT_WEIGHTS.get(attr, GENERAL_OTHER_EQUIPMENT_WEIGHT)

    return math.floor(power + 0.5)


def troop_power(troops: int, factor: float) -> float:
    return math.sqrt(max(troops, 0)) * factor


def troop_cap(leadership: int, cities: int, *, rules: RulesConfig = DEFAULT_RULES) -> int:
    cfg = rules.economy
    return cfg.base_troop_cap + leadership * cfg.troop_cap_per_leadership + cities * cfg.troop_cap_per_city


def ally_troop_cap(leadership: int, *, rules: RulesConfig = DEFAULT_RULES) -> int:
    return math.floor(leadership * rules.economy.ally_troop_cap_per_leadership)


def upkeep_cost(cities: int, *, rules: RulesConfig = DEFAULT_RULES) -> int:
    return cities * rules.economy.upkeep_per_city
