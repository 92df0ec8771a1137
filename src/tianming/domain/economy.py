"""Per-turn production, troop cap and upkeep rules."""

from __future__ import annotations

import logging
import math

from tianming.domain import formulas
from tianming.domain.enums import MessageCategory
from tianming.domain.models import GameState, TurnMessage
from tianming.domain.rules_config import DEFAULT_RULES, RulesConfig

logger = logging.getLogger(__name__)


def process_production(state: GameState, *, rules: RulesConfig = DEFAULT_RULES) -> list[TurnMessage]:
    """Collect gold and troops from every player-held city.

    Gold is scaled by politics per city.  Troops end at most at the current
    ``max_troops``; anything above the cap is discarded, including troops
    banked earlier from start or event bonuses.  The cap is recalculated
    afterwards so next turn sees the new city count.
    """

    player = state.player
    politics_bonus = player.attributes.politics / 100

    gold_gain = 0
    troop_gain = 0
    for city in state.player_cities():
        gold_gain += math.floor(city.gold_production * (1 + politics_bonus))
        troop_gain += city.troop_production

    player.gold += gold_gain
    new_troops = min(player.troops + troop_gain, player.max_troops)
    troops_gained = new_troops - player.troops
    player.troops = new_troops

    recalculate_troop_cap(state, rules=rules)

    messages: list[TurnMessage] = []
    if gold_gain > 0 or troops_gained != 0:
        messages.append(
            TurnMessage(
                category=MessageCategory.PRODUCTION,
                message=f"Cities produced gold +{gold_gain}, troops {troops_gained:+d}",
                data={"gold": gold_gain, "troops": troops_gained},
            )
        )
    logger.debug("production: gold +%s troops %+d (raw %s)", gold_gain, troops_gained, troop_gain)
    return messages


def recalculate_troop_cap(state: GameState, *, rules: RulesConfig = DEFAULT_RULES) -> None:
    """Refresh the player's and allied generals' troop caps."""

    player = state.player
    player.max_troops = formulas.troop_cap(
        player.attributes.leadership, player.cities_controlled, rules=rules
    )
    for general in state.allied_generals():
        general.max_troops = formulas.ally_troop_cap(general.attributes.leadership, rules=rules)


def process_upkeep(state: GameState, *, rules: RulesConfig = DEFAULT_RULES) -> list[TurnMessage]:
    """Charge city maintenance; a gold shortfall costs twice as many troops."""

    player = state.player
    cost = formulas.upkeep_cost(player.cities_controlled, rules=rules)
    player.maintenance_cost = cost

    if player.gold >= cost:
        player.gold -= cost
        if cost <= 0:
            return []
        return [
            TurnMessage(
                category=MessageCategory.UPKEEP,
                message=f"Paid {cost} gold in city upkeep",
                data={"cost": cost},
            )
        ]

    shortfall = cost - player.gold
    troop_loss = shortfall * rules.economy.shortfall_troop_penalty
    player.gold = 0
    player.troops = max(0, player.troops - troop_loss)
    logger.info("upkeep shortfall of %s gold; %s troops lost", shortfall, troop_loss)
    return [
        TurnMessage(
            category=MessageCategory.UPKEEP,
            message=f"Treasury short by {shortfall} gold; {troop_loss} troops deserted instead",
            data={"cost": cost, "shortfall": shortfall, "troop_loss": troop_loss},
        )
    ]
