"""Pydantic models mirroring the catalog JSON files."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from tianming.domain.enums import (
    Comparison,
    EffectKind,
    EquipmentRarity,
    EquipmentSlot,
    EventType,
    Faction,
    GeneralStatus,
    RequirementType,
    SkillType,
)


class CatalogModel(BaseModel):
    """Shared config: camelCase keys in JSON, unknown keys rejected."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="forbid")


class EffectSchema(CatalogModel):
    type: EffectKind
    value: float = 0
    target: str | None = None
    description: str = ""


class SkillSchema(CatalogModel):
    id: str = Field(..., min_length=1)
    name: str
    description: str = ""
    type: SkillType
    star_cost: int = Field(..., ge=1, le=3)
    effects: list[EffectSchema] = Field(default_factory=list)


class AttributesSchema(CatalogModel):
    strength: int = Field(default=10, ge=0, le=100)
    intelligence: int = Field(default=10, ge=0, le=100)
    leadership: int = Field(default=10, ge=0, le=100)
    politics: int = Field(default=10, ge=0, le=100)
    charisma: int = Field(default=10, ge=0, le=100)
    destiny: int = Field(default=0, ge=0)


class EquipmentRequirementsSchema(CatalogModel):
    min_city_count: int | None = Field(default=None, ge=0)
    event_only: bool = False


class EquipmentSchema(CatalogModel):
    id: str = Field(..., min_length=1)
    name: str
    type: EquipmentSlot
    rarity: EquipmentRarity
    attribute_bonus: dict[str, int] = Field(default_factory=dict)
    special_effects: list[EffectSchema] = Field(default_factory=list)
    description: str = ""
    requirements: EquipmentRequirementsSchema = Field(default_factory=EquipmentRequirementsSchema)


class GeneralSchema(CatalogModel):
    id: str = Field(..., min_length=1)
    name: str
    faction: Faction
    attributes: AttributesSchema
    level: int = Field(default=1, ge=1, le=10)
    equipment: dict[EquipmentSlot, str] = Field(
        default_factory=dict, description="Equipment ids keyed by slot"
    )
    troops: int = Field(default=0, ge=0)
    max_troops: int = Field(default=0, ge=0)
    status: GeneralStatus = GeneralStatus.ENEMY
    biography: str = ""


class CitySchema(CatalogModel):
    id: str = Field(..., min_length=1)
    name: str
    faction: Faction
    garrison: list[str] = Field(default_factory=list, description="General ids")
    connections: list[str] = Field(default_factory=list, description="City ids")
    gold_production: int = Field(default=0, ge=0)
    troop_production: int = Field(default=0, ge=0)
    defense_value: int = Field(default=0, ge=0)
    special_bonus: str | None = None
    description: str = ""


class EventRequirementSchema(CatalogModel):
    type: RequirementType
    operator: Comparison
    value: float
    target: str | None = None


class EventOutcomeSchema(CatalogModel):
    id: str = Field(..., min_length=1)
    name: str
    description: str = ""
    probability: float = Field(..., ge=0, le=100)
    effects: list[EffectSchema] = Field(default_factory=list)


class EventSchema(CatalogModel):
    id: str = Field(..., min_length=1)
    name: str
    type: EventType
    description: str = ""
    base_probability: float = Field(..., ge=0, le=100)
    destiny_modifier: float = Field(default=0, ge=-50, le=50)
    requirements: list[EventRequirementSchema] = Field(default_factory=list)
    outcomes: list[EventOutcomeSchema] = Field(..., min_length=1)
    is_choice: bool = False
