"""Pre-game skill draft.

The player gets a star budget and a fixed number of rounds.  Each round offers
up to three catalog skills; picking one spends its star cost and applies its
effects at once, skipping spends nothing.  After the last round any unspent
stars become attribute points and the campaign moves to the playing phase.
"""

from __future__ import annotations

import logging
import random
from dataclasses import dataclass, field

from tianming.domain.effects import apply_effects
from tianming.domain.enums import VISIBLE_ATTRIBUTES, Attribute, GamePhase
from tianming.domain.models import ContentCatalog, DraftState, GameState, Skill
from tianming.domain.rules_config import DEFAULT_RULES, RulesConfig
from tianming.domain.tick import transition
from tianming.utils.rng import (
    check_probability,
    random_choice,
    random_int,
    random_sample,
    weighted_choice,
)

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class DraftSummary:
    """What the unspent budget turned into."""

    stars: int
    points: int
    gains: dict[str, int] = field(default_factory=dict)
    lump_attribute: str | None = None
    lump_bonus: int = 0


def start_draft(
    state: GameState,
    catalog: ContentCatalog,
    rng: random.Random,
    *,
    rules: RulesConfig = DEFAULT_RULES,
) -> DraftState:
    cfg = rules.draft
    state.draft = DraftState(
        remaining_stars=cfg.starting_stars,
        round=1,
        max_rounds=cfg.max_rounds,
    )
    state.draft.candidates = generate_candidates(state, catalog, rng, rules=rules)
    logger.info(
        "draft started: %s rounds, %s stars", state.draft.max_rounds, state.draft.remaining_stars
    )
    return state.draft


def generate_candidates(
    state: GameState,
    catalog: ContentCatalog,
    rng: random.Random,
    *,
    rules: RulesConfig = DEFAULT_RULES,
) -> list[Skill]:
    """Offer up to three skills with a round-dependent rarity bias."""

    cfg = rules.draft
    draft = state.draft
    pool = list(catalog.skills)

    if draft.round == 1:
        pool = [skill for skill in pool if skill.star_cost <= cfg.low_cost_max]
    elif draft.round == 2:
        if check_probability(rng, cfg.round_two_low_cost_chance):
            pool = [skill for skill in pool if skill.star_cost <= cfg.low_cost_max]
    elif draft.remaining_stars >= cfg.round_three_high_cost_budget:
        high_cost = [skill for skill in pool if skill.star_cost >= cfg.high_cost_min]
        if len(high_cost) >= cfg.candidates_per_round:
            pool = high_cost

    taken = {skill.id for skill in draft.selected}
    pool = [skill for skill in pool if skill.id not in taken]
    if len(pool) < cfg.candidates_per_round:
        pool = [skill for skill in catalog.skills if skill.id not in taken]

    candidates = random_sample(rng, pool, cfg.candidates_per_round)
    logger.debug(
        "draft round %s offers %s", draft.round, [f"{s.id}({s.star_cost})" for s in candidates]
    )
    return candidates


def select_skill(
    state: GameState,
    skill_id: str,
    catalog: ContentCatalog,
    rng: random.Random,
    *,
    rules: RulesConfig = DEFAULT_RULES,
) -> bool:
    """Pick an offered skill; returns False without side effects if not allowed."""

    draft = state.draft
    if state.phase != GamePhase.SKILL_SELECTION:
        logger.warning("skill selection rejected: phase is %s", state.phase)
        return False

    skill = next((s for s in draft.candidates if s.id == skill_id), None)
    if skill is None:
        logger.warning("skill %s is not on offer this round", skill_id)
        return False
    if skill.star_cost > draft.remaining_stars:
        logger.warning(
            "skill %s costs %s stars, only %s left", skill_id, skill.star_cost, draft.remaining_stars
        )
        return False

    draft.remaining_stars -= skill.star_cost
    draft.selected.append(skill)
    state.player.skills.append(skill)
    apply_effects(state, skill.effects, catalog=catalog, rng=rng)
    logger.info("selected %s (-%s stars, %s left)", skill.id, skill.star_cost, draft.remaining_stars)

    _advance_round(state, catalog, rng, rules=rules)
    return True


def skip_round(
    state: GameState,
    catalog: ContentCatalog,
    rng: random.Random,
    *,
    rules: RulesConfig = DEFAULT_RULES,
) -> bool:
    """Pass on the current offer; returns True when this completed the draft."""

    if state.phase != GamePhase.SKILL_SELECTION:
        logger.warning("skip ignored: phase is %s", state.phase)
        return False
    logger.info("skipped draft round %s", state.draft.round)
    return _advance_round(state, catalog, rng, rules=rules)


def _advance_round(
    state: GameState,
    catalog: ContentCatalog,
    rng: random.Random,
    *,
    rules: RulesConfig,
) -> bool:
    draft = state.draft
    draft.round += 1
    if draft.finished:
        draft.candidates = []
        complete_draft(state, rng, rules=rules)
        return True
    draft.candidates = generate_candidates(state, catalog, rng, rules=rules)
    return False


def complete_draft(
    state: GameState, rng: random.Random, *, rules: RulesConfig = DEFAULT_RULES
) -> DraftSummary:
    """Convert leftover stars into attributes and enter the playing phase."""

    summary = convert_stars(state, rng, rules=rules)
    state.player.skills = list(state.draft.selected)
    transition(state, GamePhase.PLAYING)
    logger.info("draft complete: %s", state.player.attributes.visible())
    return summary


def convert_stars(
    state: GameState, rng: random.Random, *, rules: RulesConfig = DEFAULT_RULES
) -> DraftSummary:
    """Spread ``stars * 10`` points with a drifting weighted lottery.

    Each attribute starts with a random weight; after every tenth point one
    attribute has its weight re-rolled so no single attribute runs away with
    the budget.  Large leftovers also grant one lump bonus.
    """

    cfg = rules.draft
    stars = state.draft.remaining_stars
    points = stars * cfg.points_per_star
    attributes = state.player.attributes
    summary = DraftSummary(stars=stars, points=points)

    weights: dict[Attribute, int] = {
        attr: random_int(rng, *cfg.initial_weight) for attr in VISIBLE_ATTRIBUTES
    }
    for index in range(points):
        attr = weighted_choice(rng, weights)
        attributes.adjust(attr, 1)
        summary.gains[attr.value] = summary.gains.get(attr.value, 0) + 1
        if index % cfg.reroll_every == cfg.reroll_every - 1:
            weights[random_choice(rng, VISIBLE_ATTRIBUTES)] = random_int(rng, *cfg.reroll_weight)

    if stars >= cfg.lump_bonus_threshold:
        lump_attr = random_choice(rng, VISIBLE_ATTRIBUTES)
        bonus = random_int(rng, *cfg.lump_bonus)
        attributes.adjust(lump_attr, bonus)
        summary.lump_attribute = lump_attr.value
        summary.lump_bonus = bonus

    logger.info("converted %s stars into %s attribute points", stars, points)
    return summary
