"""Player level progression."""

from __future__ import annotations

import random

from tianming.domain.enums import VISIBLE_ATTRIBUTES, MessageCategory
from tianming.domain.models import GameState, TurnMessage
from tianming.domain.rules_config import DEFAULT_RULES, RulesConfig
from tianming.utils.rng import random_choice, random_int


def earned_level(battles_won: int, *, rules: RulesConfig = DEFAULT_RULES) -> int:
    cfg = rules.leveling
    return min(cfg.max_level, 1 + battles_won // cfg.wins_per_level)


def process_level_up(
    state: GameState, rng: random.Random, *, rules: RulesConfig = DEFAULT_RULES
) -> list[TurnMessage]:
    """Leveling phase: one level per two victories, at most one per turn."""

    player = state.player
    cfg = rules.leveling
    if player.battles_won <= 0 or player.battles_won % cfg.wins_per_level != 0:
        return []
    if player.level >= earned_level(player.battles_won, rules=rules):
        return []

    player.level += 1
    gains: dict[str, int] = {}
    for _ in range(random_int(rng, *cfg.attribute_gain)):
        attr = random_choice(rng, VISIBLE_ATTRIBUTES)
        if player.attributes.adjust(attr, 1):
            gains[attr.value] = gains.get(attr.value, 0) + 1

    gain_text = ", ".join(f"{name}+{value}" for name, value in gains.items())
    return [
        TurnMessage(
            category=MessageCategory.LEVEL_UP,
            message=f"Reached level {player.level}" + (f": {gain_text}" if gain_text else ""),
            data={"level": player.level, "gains": gains},
        )
    ]
