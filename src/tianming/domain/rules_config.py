"""Declarative rule configuration for the Tianming domain layer."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class EconomyRules:
    """Production, troop cap and upkeep constants."""

    base_troop_cap: int = 500
    troop_cap_per_leadership: int = 10
    troop_cap_per_city: int = 200
    ally_troop_cap_per_leadership: int = 20
    upkeep_per_city: int = 20
    shortfall_troop_penalty: int = 2


@dataclass(frozen=True, slots=True)
class CombatRules:
    """Power weights, odds bounds and casualty ranges."""

    min_troops_to_attack: int = 50
    strength_weight: float = 1.5
    intelligence_weight: float = 1.2
    leadership_weight: float = 1.0
    other_equipment_weight: float = 0.8
    troop_power_factor: float = 2.0
    garrison_troop_factor: float = 1.5
    default_garrison_troops: int = 500
    min_win_probability: float = 15.0
    max_win_probability: float = 85.0
    victory_casualty_pct: tuple[int, int] = (5, 15)
    defeat_casualty_pct: tuple[int, int] = (20, 40)


@dataclass(frozen=True, slots=True)
class RecruitmentRules:
    """Defection odds and troop allocation."""

    charisma_factor: int = 2
    level_penalty: int = 5
    min_rate: float = 5.0
    max_rate: float = 95.0
    troop_allocation_ratio: float = 0.2
    encounter_chance: float = 20.0


@dataclass(frozen=True, slots=True)
class EventRules:
    """Per-turn event frequency."""

    high_destiny_threshold: int = 30
    high_destiny_count: tuple[int, int] = (1, 3)
    veteran_level_threshold: int = 5
    veteran_count: tuple[int, int] = (0, 3)
    base_count: tuple[int, int] = (0, 2)
    drought_turns: int = 3


@dataclass(frozen=True, slots=True)
class DraftRules:
    """Skill draft budget and star conversion."""

    starting_stars: int = 10
    max_rounds: int = 3
    candidates_per_round: int = 3
    low_cost_max: int = 2
    high_cost_min: int = 2
    round_two_low_cost_chance: float = 60.0
    round_three_high_cost_budget: int = 3
    points_per_star: int = 10
    initial_weight: tuple[int, int] = (1, 4)
    reroll_weight: tuple[int, int] = (1, 5)
    reroll_every: int = 10
    lump_bonus_threshold: int = 5
    lump_bonus: tuple[int, int] = (2, 5)


@dataclass(frozen=True, slots=True)
class LevelingRules:
    """Level-up pacing."""

    max_level: int = 10
    wins_per_level: int = 2
    attribute_gain: tuple[int, int] = (3, 8)


@dataclass(frozen=True, slots=True)
class SchedulerRules:
    """Turn timing and tempo modulation."""

    base_interval_ms: float = 3000.0
    message_base_delay_ms: float = 200.0
    message_stagger_ms: float = 2000.0
    message_buffer_ms: float = 500.0
    destiny_jitter_threshold: int = 25
    destiny_jitter: tuple[float, float] = (0.8, 1.2)
    win_streak_margin: int = 2
    win_streak_factor: float = 0.9
    anomaly_every: int = 10
    anomaly_chance: float = 25.0
    accelerate_factor: float = 0.5
    decelerate_factor: float = 1.5
    min_speed: float = 0.5
    max_speed: float = 4.0


@dataclass(frozen=True, slots=True)
class StartRules:
    """Campaign start conditions."""

    preferred_start_cities: tuple[str, ...] = (
        "jiangxia",
        "xuchang",
        "chengdu",
        "jianye",
        "luoyang",
    )
    fallback_start_city: str = "jiangxia"
    starting_event_chance: float = 30.0


@dataclass(frozen=True, slots=True)
class RulesConfig:
    """Top-level configuration container for all subsystems."""

    economy: EconomyRules = EconomyRules()
    combat: CombatRules = CombatRules()
    recruitment: RecruitmentRules = RecruitmentRules()
    events: EventRules = EventRules()
    draft: DraftRules = DraftRules()
    leveling: LevelingRules = LevelingRules()
    scheduler: SchedulerRules = SchedulerRules()
    start: StartRules = StartRules()


DEFAULT_RULES = RulesConfig()
