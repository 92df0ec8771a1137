"""Enumerations shared by the Tianming domain layer."""

from __future__ import annotations

from enum import StrEnum


class GamePhase(StrEnum):
    """Global phase machine: skill_selection -> playing -> game_over."""

    SKILL_SELECTION = "skill_selection"
    PLAYING = "playing"
    GAME_OVER = "game_over"


class GameOutcome(StrEnum):
    """How a finished campaign ended."""

    VICTORY = "victory"
    DEFEAT = "defeat"


class Faction(StrEnum):
    """Factions a city or general may belong to."""

    WEI = "wei"
    SHU = "shu"
    WU = "wu"
    OTHER = "other"
    NEUTRAL = "neutral"
    PLAYER = "player"


class GeneralStatus(StrEnum):
    """Relationship of a general to the player."""

    ENEMY = "enemy"
    NEUTRAL = "neutral"
    ALLY = "ally"
    PLAYER = "player"


class Attribute(StrEnum):
    """Player and general attributes; destiny is hidden."""

    STRENGTH = "strength"
    INTELLIGENCE = "intelligence"
    LEADERSHIP = "leadership"
    POLITICS = "politics"
    CHARISMA = "charisma"
    DESTINY = "destiny"


VISIBLE_ATTRIBUTES: tuple[Attribute, ...] = (
    Attribute.STRENGTH,
    Attribute.INTELLIGENCE,
    Attribute.LEADERSHIP,
    Attribute.POLITICS,
    Attribute.CHARISMA,
)

ALL_ATTRIBUTES_TARGET = "all_attributes"


class SkillType(StrEnum):
    """Skill families found in the catalog."""

    COMBAT = "combat"
    PASSIVE = "passive"
    ECONOMIC = "economic"
    SPECIAL = "special"


class EffectKind(StrEnum):
    """Closed set of effect variants shared by skills, events and equipment."""

    ATTRIBUTE_BONUS = "attribute_bonus"
    COMBAT_BONUS = "combat_bonus"
    EVENT_MODIFIER = "event_modifier"
    SPECIAL = "special"
    ATTRIBUTE_CHANGE = "attribute_change"
    GAIN_GOLD = "gain_gold"
    LOSE_TROOPS = "lose_troops"
    GAIN_TROOPS = "gain_troops"
    GAIN_EQUIPMENT = "gain_equipment"
    LOSE_CITY = "lose_city"
    GAIN_GENERAL = "gain_general"


class EquipmentSlot(StrEnum):
    """Equipment slots on players and generals."""

    WEAPON = "weapon"
    ARMOR = "armor"
    ACCESSORY = "accessory"
    MOUNT = "mount"


class EquipmentRarity(StrEnum):
    """Equipment rarity tiers."""

    COMMON = "common"
    RARE = "rare"
    LEGENDARY = "legendary"


class EventType(StrEnum):
    """Random event flavours."""

    POSITIVE = "positive"
    NEGATIVE = "negative"
    NEUTRAL = "neutral"
    CHOICE = "choice"


class RequirementType(StrEnum):
    """Predicates an event may require before it becomes eligible."""

    LEVEL = "level"
    CITY_COUNT = "city_count"
    ATTRIBUTE = "attribute"


class Comparison(StrEnum):
    """Operators allowed in event requirements."""

    GE = ">="
    LE = "<="
    GT = ">"
    LT = "<"
    EQ = "=="
    NE = "!="


class CityBonus(StrEnum):
    """Special bonus tags granted when a city is the starting city."""

    POLITICS = "politics"
    RECRUITMENT = "recruitment"
    TRADE = "trade"
    DEFENSE = "defense"


class Season(StrEnum):
    """Season rolled at campaign start."""

    SPRING = "spring"
    SUMMER = "summer"
    AUTUMN = "autumn"
    WINTER = "winter"


class TurnStage(StrEnum):
    """Phases of the per-turn pipeline, in execution order."""

    PRODUCTION = "production"
    EVENTS = "events"
    COMBAT = "combat"
    RECRUITMENT = "recruitment"
    LEVELING = "leveling"
    UPKEEP = "upkeep"
    END_CHECK = "end_check"


class MessageCategory(StrEnum):
    """Categories attached to per-turn display messages."""

    TURN = "turn"
    PRODUCTION = "production"
    EVENT = "event"
    BATTLE = "battle"
    CAPTURE = "capture"
    RECRUITMENT = "recruitment"
    LEVEL_UP = "level_up"
    UPKEEP = "upkeep"
    ANOMALY = "anomaly"
    CAMPAIGN = "campaign"
    SYSTEM = "system"


class TimeAnomaly(StrEnum):
    """Occasional tempo shifts applied to the turn interval."""

    ACCELERATE = "accelerate"
    DECELERATE = "decelerate"
