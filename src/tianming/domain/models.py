"""Dataclasses describing every Tianming game entity.

The domain layer only operates on these in-memory types.  Static content is
validated by :mod:`tianming.content` and converted into the frozen catalog
types below; live campaign state is then instantiated from that catalog as
independent copies so a running game never mutates its templates.
"""

from __future__ import annotations

import copy
from dataclasses import dataclass, field
from datetime import datetime
from typing import NewType

from .enums import (
    ALL_ATTRIBUTES_TARGET,
    VISIBLE_ATTRIBUTES,
    Attribute,
    Comparison,
    EffectKind,
    EquipmentRarity,
    EquipmentSlot,
    EventType,
    Faction,
    GameOutcome,
    GamePhase,
    GeneralStatus,
    RequirementType,
    Season,
    SkillType,
)

# --- Strongly typed identifiers -------------------------------------------------

SkillID = NewType("SkillID", str)
CityID = NewType("CityID", str)
GeneralID = NewType("GeneralID", str)
EquipmentID = NewType("EquipmentID", str)
EventID = NewType("EventID", str)
OutcomeID = NewType("OutcomeID", str)

ATTRIBUTE_MIN = 0
ATTRIBUTE_MAX = 100


# --- Catalog dataclasses ----------------------------------------------------------


@dataclass(slots=True)
class Attributes:
    """Five visible attributes plus the hidden destiny value."""

    strength: int = 10
    intelligence: int = 10
    leadership: int = 10
    politics: int = 10
    charisma: int = 10
    destiny: int = 0

    def get(self, attribute: Attribute | str) -> int:
        return getattr(self, Attribute(attribute).value)

    def set(self, attribute: Attribute | str, value: int) -> None:
        attribute = Attribute(attribute)
        if attribute is Attribute.DESTINY:
            value = max(ATTRIBUTE_MIN, value)
        else:
            value = max(ATTRIBUTE_MIN, min(ATTRIBUTE_MAX, value))
        setattr(self, attribute.value, value)

    def adjust(self, attribute: Attribute | str, delta: int) -> int:
        """Apply ``delta`` with clamping and return the applied change."""

        before = self.get(attribute)
        self.set(attribute, before + delta)
        return self.get(attribute) - before

    def visible(self) -> dict[str, int]:
        return {attr.value: self.get(attr) for attr in VISIBLE_ATTRIBUTES}


@dataclass(frozen=True, slots=True)
class Effect:
    """A single effect; interpreted by :func:`tianming.domain.effects.apply_effect`."""

    kind: EffectKind
    value: float = 0
    target: str | None = None
    description: str = ""

    def targets(self, attribute: Attribute) -> bool:
        return self.target in (attribute.value, ALL_ATTRIBUTES_TARGET)


@dataclass(frozen=True, slots=True)
class Skill:
    """Catalog entry for a draftable skill."""

    id: SkillID
    name: str
    star_cost: int
    type: SkillType
    effects: tuple[Effect, ...] = ()
    description: str = ""


@dataclass(frozen=True, slots=True)
class Equipment:
    """Catalog entry for an equippable item."""

    id: EquipmentID
    name: str
    slot: EquipmentSlot
    rarity: EquipmentRarity
    attribute_bonus: dict[str, int] = field(default_factory=dict)
    special_effects: tuple[Effect, ...] = ()
    description: str = ""
    min_city_count: int | None = None
    event_only: bool = False


@dataclass(frozen=True, slots=True)
class EventRequirement:
    """Predicate gating a random event."""

    type: RequirementType
    operator: Comparison
    value: float
    target: str | None = None


@dataclass(frozen=True, slots=True)
class EventOutcome:
    """One possible resolution of an event."""

    id: OutcomeID
    name: str
    probability: float
    effects: tuple[Effect, ...] = ()
    description: str = ""


@dataclass(frozen=True, slots=True)
class GameEvent:
    """Random event definition."""

    id: EventID
    name: str
    type: EventType
    base_probability: float
    destiny_modifier: float
    outcomes: tuple[EventOutcome, ...]
    requirements: tuple[EventRequirement, ...] = ()
    is_choice: bool = False
    description: str = ""


@dataclass(slots=True)
class General:
    """General available in the roster; mutable once instantiated for a run."""

    id: GeneralID
    name: str
    faction: Faction
    attributes: Attributes
    level: int = 1
    equipment: dict[EquipmentSlot, Equipment | None] = field(default_factory=dict)
    troops: int = 0
    max_troops: int = 0
    status: GeneralStatus = GeneralStatus.ENEMY


@dataclass(slots=True)
class City:
    """City node of the campaign map."""

    id: CityID
    name: str
    faction: Faction
    garrison: list[GeneralID] = field(default_factory=list)
    connections: set[CityID] = field(default_factory=set)
    gold_production: int = 0
    troop_production: int = 0
    defense_value: int = 0
    special_bonus: str | None = None


@dataclass(frozen=True, slots=True)
class ContentCatalog:
    """Read-only static content consumed by every resolver."""

    skills: tuple[Skill, ...] = ()
    cities: tuple[City, ...] = ()
    generals: tuple[General, ...] = ()
    equipment: tuple[Equipment, ...] = ()
    events: tuple[GameEvent, ...] = ()

    def skill(self, skill_id: str) -> Skill | None:
        return next((skill for skill in self.skills if skill.id == skill_id), None)

    @property
    def city_count(self) -> int:
        return len(self.cities)


# --- Live state -------------------------------------------------------------------


def _empty_slots() -> dict[EquipmentSlot, Equipment | None]:
    return {slot: None for slot in EquipmentSlot}


@dataclass(slots=True)
class Player:
    """The single player aggregate, mutated in place by every resolver."""

    name: str = "Player"
    level: int = 1
    attributes: Attributes = field(default_factory=Attributes)
    skills: list[Skill] = field(default_factory=list)
    equipment: dict[EquipmentSlot, Equipment | None] = field(default_factory=_empty_slots)
    gold: int = 200
    troops: int = 800
    max_troops: int = 1000
    cities_controlled: int = 1
    battles_won: int = 0
    battles_lost: int = 0
    generals_recruited: int = 0
    maintenance_cost: int = 0

    def equipped(self) -> list[Equipment]:
        return [item for item in self.equipment.values() if item is not None]


@dataclass(slots=True)
class DraftState:
    """Progress of the pre-game skill draft."""

    candidates: list[Skill] = field(default_factory=list)
    selected: list[Skill] = field(default_factory=list)
    remaining_stars: int = 10
    round: int = 1
    max_rounds: int = 3

    @property
    def finished(self) -> bool:
        return self.round > self.max_rounds


@dataclass(slots=True)
class GameSettings:
    """Per-run settings record."""

    game_speed: float = 1.0
    language: str = "en"


@dataclass(slots=True)
class HistoryEntry:
    """Append-only record of a resolved random event."""

    turn: int
    event_id: EventID
    outcome_id: OutcomeID
    timestamp: datetime
    description: str


@dataclass(slots=True)
class TurnMessage:
    """Human-readable result record emitted by a turn phase."""

    category: str
    message: str
    data: dict[str, object] | None = None


@dataclass(slots=True)
class GameState:
    """Root aggregate representing one live run."""

    player: Player
    cities: dict[CityID, City]
    generals: dict[GeneralID, General]
    started_at: datetime
    current_turn: int = 0
    phase: GamePhase = GamePhase.SKILL_SELECTION
    settings: GameSettings = field(default_factory=GameSettings)
    event_history: list[HistoryEntry] = field(default_factory=list)
    draft: DraftState = field(default_factory=DraftState)
    season: Season = Season.SPRING
    turns_without_events: int = 0
    random_seed: int = 0
    outcome: GameOutcome | None = None
    ended_at: datetime | None = None

    def player_cities(self) -> list[City]:
        return [city for city in self.cities.values() if city.faction == Faction.PLAYER]

    def allied_generals(self) -> list[General]:
        return [g for g in self.generals.values() if g.status == GeneralStatus.ALLY]


def instantiate_state(
    catalog: ContentCatalog,
    *,
    started_at: datetime,
    random_seed: int = 0,
    settings: GameSettings | None = None,
) -> GameState:
    """Create a fresh live state holding deep copies of the catalog templates."""

    cities = {city.id: copy.deepcopy(city) for city in catalog.cities}
    generals = {general.id: copy.deepcopy(general) for general in catalog.generals}
    return GameState(
        player=Player(),
        cities=cities,
        generals=generals,
        started_at=started_at,
        random_seed=random_seed,
        settings=settings or GameSettings(),
    )
