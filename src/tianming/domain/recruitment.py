"""General recruitment (defection) rules."""

from __future__ import annotations

import logging
import math
import random
from dataclasses import dataclass

from tianming.domain import formulas
from tianming.domain.effects import enlist_general, passive_total
from tianming.domain.enums import EffectKind, GeneralStatus, MessageCategory
from tianming.domain.models import GameState, General, Player, TurnMessage
from tianming.domain.rules_config import DEFAULT_RULES, RulesConfig
from tianming.utils.rng import check_probability, random_choice

logger = logging.getLogger(__name__)

RECRUITMENT_TARGET = "recruitment"
BONUS_KINDS = {EffectKind.SPECIAL, EffectKind.EVENT_MODIFIER}


@dataclass(slots=True)
class RecruitmentBonuses:
    """Flat percentage bonuses added to the defection rate."""

    skill_bonus: float = 0
    equipment_bonus: float = 0


@dataclass(slots=True)
class RecruitmentAttempt:
    """Outcome of a single recruitment roll."""

    rate: float
    success: bool
    troops_allocated: int = 0


def recruitment_bonuses(player: Player) -> RecruitmentBonuses:
    """Collect skill and equipment effects that target recruitment."""

    skill_effects = [effect for skill in player.skills for effect in skill.effects]
    equipment_effects = [effect for item in player.equipped() for effect in item.special_effects]
    return RecruitmentBonuses(
        skill_bonus=passive_total(skill_effects, BONUS_KINDS, RECRUITMENT_TARGET),
        equipment_bonus=passive_total(equipment_effects, BONUS_KINDS, RECRUITMENT_TARGET),
    )


def recruitment_chance(
    player: Player, general: General, *, rules: RulesConfig = DEFAULT_RULES
) -> float:
    bonuses = recruitment_bonuses(player)
    return formulas.recruitment_rate(
        player.attributes.charisma,
        general.level,
        skill_bonus=bonuses.skill_bonus,
        equipment_bonus=bonuses.equipment_bonus,
        rules=rules,
    )


def attempt_recruitment(
    state: GameState,
    general: General,
    rng: random.Random,
    *,
    rules: RulesConfig = DEFAULT_RULES,
) -> RecruitmentAttempt:
    """Roll once against the defection rate and apply a successful conversion."""

    rate = recruitment_chance(state.player, general, rules=rules)
    if not check_probability(rng, rate):
        logger.debug("%s refused to defect at %.0f%%", general.id, rate)
        return RecruitmentAttempt(rate=rate, success=False)

    enlist_general(state, general)
    allocated = allocate_troops(state, general, rules=rules)
    logger.info("%s defected (rate %.0f%%, %s troops assigned)", general.id, rate, allocated)
    return RecruitmentAttempt(rate=rate, success=True, troops_allocated=allocated)


def allocate_troops(
    state: GameState, general: General, *, rules: RulesConfig = DEFAULT_RULES
) -> int:
    """Hand a share of the player's troops to a newly recruited general."""

    player = state.player
    available = math.floor(player.troops * rules.recruitment.troop_allocation_ratio)
    amount = min(available, general.max_troops)
    if amount <= 0:
        return 0
    general.troops = amount
    player.troops -= amount
    return amount


def attempt_message(general: General, attempt: RecruitmentAttempt) -> TurnMessage:
    result = "succeeded" if attempt.success else "failed"
    return TurnMessage(
        category=MessageCategory.RECRUITMENT,
        message=f"Recruiting {general.name} {result} (chance {round(attempt.rate)}%)",
        data={
            "general_id": general.id,
            "success": attempt.success,
            "rate": round(attempt.rate),
            "troops_allocated": attempt.troops_allocated,
        },
    )


def process_recruitment(
    state: GameState, rng: random.Random, *, rules: RulesConfig = DEFAULT_RULES
) -> list[TurnMessage]:
    """Recruitment phase: occasionally meet a wandering general and sway them."""

    if not check_probability(rng, rules.recruitment.encounter_chance):
        return []

    candidates = [
        general
        for general in state.generals.values()
        if general.status not in (GeneralStatus.ALLY, GeneralStatus.PLAYER)
    ]
    general = random_choice(rng, candidates)
    if general is None:
        return []

    attempt = attempt_recruitment(state, general, rng, rules=rules)
    return [attempt_message(general, attempt)]
