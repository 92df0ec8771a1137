"""Load and validate the static content catalog."""

from __future__ import annotations

import logging
import math
from collections import Counter
from collections.abc import Iterable
from importlib import resources
from pathlib import Path
from typing import TypeVar

from pydantic import TypeAdapter, ValidationError

from tianming.content.schemas import (
    CitySchema,
    EffectSchema,
    EquipmentSchema,
    EventSchema,
    GeneralSchema,
    SkillSchema,
)
from tianming.domain import models as dm
from tianming.domain.enums import Attribute, CityBonus, RequirementType
from tianming.errors import ContentError

logger = logging.getLogger(__name__)

T = TypeVar("T")

CATALOG_FILES = {
    "skills": "skills.json",
    "cities": "cities.json",
    "generals": "generals.json",
    "equipment": "equipment.json",
    "events": "events.json",
}


def _read(directory: Path | None, filename: str) -> bytes:
    if directory is None:
        source = resources.files("tianming.content").joinpath("data", filename)
    else:
        source = directory / filename
    try:
        return source.read_bytes()
    except OSError as exc:
        raise ContentError(f"cannot read {filename}: {exc}") from exc


def _parse(raw: bytes, schema: type[T], filename: str) -> list[T]:
    try:
        return TypeAdapter(list[schema]).validate_json(raw)
    except ValidationError as exc:
        raise ContentError(f"{filename} is malformed: {exc}") from exc


def load_catalog(directory: Path | str | None = None) -> dm.ContentCatalog:
    """Read all five catalog files, validate them and build the domain catalog.

    ``directory`` defaults to the content bundled with the package.  Any
    missing file, schema violation or dangling reference raises
    :class:`ContentError` before a game can start.
    """

    base = Path(directory) if directory is not None else None
    skills = _parse(_read(base, CATALOG_FILES["skills"]), SkillSchema, "skills.json")
    cities = _parse(_read(base, CATALOG_FILES["cities"]), CitySchema, "cities.json")
    generals = _parse(_read(base, CATALOG_FILES["generals"]), GeneralSchema, "generals.json")
    equipment = _parse(
        _read(base, CATALOG_FILES["equipment"]), EquipmentSchema, "equipment.json"
    )
    events = _parse(_read(base, CATALOG_FILES["events"]), EventSchema, "events.json")

    validate_references(skills, cities, generals, equipment, events)
    catalog = build_catalog(skills, cities, generals, equipment, events)
    logger.info(
        "loaded catalog: %s skills, %s cities, %s generals, %s items, %s events",
        len(catalog.skills),
        len(catalog.cities),
        len(catalog.generals),
        len(catalog.equipment),
        len(catalog.events),
    )
    return catalog


# --- Integrity checks -------------------------------------------------------------


def _require_unique(kind: str, ids: Iterable[str]) -> None:
    duplicates = sorted(item for item, count in Counter(ids).items() if count > 1)
    if duplicates:
        raise ContentError(f"duplicate {kind} ids: {', '.join(duplicates)}")


def _require_attribute(name: str, where: str) -> None:
    try:
        Attribute(name)
    except ValueError as exc:
        raise ContentError(f"{where}: unknown attribute {name!r}") from exc


def _check_effects(effects: Iterable[EffectSchema], where: str) -> None:
    for effect in effects:
        if effect.type in ("attribute_bonus", "attribute_change"):
            if effect.target is None:
                raise ContentError(f"{where}: attribute effect without a target")
            if effect.target != "all_attributes":
                _require_attribute(effect.target, where)


def validate_references(
    skills: list[SkillSchema],
    cities: list[CitySchema],
    generals: list[GeneralSchema],
    equipment: list[EquipmentSchema],
    events: list[EventSchema],
) -> None:
    """Raise ContentError on duplicate ids, dangling references or bad odds."""

    _require_unique("skill", (s.id for s in skills))
    _require_unique("city", (c.id for c in cities))
    _require_unique("general", (g.id for g in generals))
    _require_unique("equipment", (e.id for e in equipment))
    _require_unique("event", (e.id for e in events))
    if not cities:
        raise ContentError("the catalog needs at least one city")

    city_ids = {c.id for c in cities}
    general_ids = {g.id for g in generals}
    equipment_by_id = {e.id: e for e in equipment}
    bonuses = {b.value for b in CityBonus}

    for skill in skills:
        _check_effects(skill.effects, f"skill {skill.id}")

    garrisoned: set[str] = set()
    for city in cities:
        for neighbour in city.connections:
            if neighbour not in city_ids:
                raise ContentError(f"city {city.id} connects to unknown city {neighbour}")
        for general_id in city.garrison:
            if general_id not in general_ids:
                raise ContentError(f"city {city.id} garrisons unknown general {general_id}")
            if general_id in garrisoned:
                raise ContentError(f"general {general_id} garrisons more than one city")
            garrisoned.add(general_id)
        if city.special_bonus is not None and city.special_bonus not in bonuses:
            raise ContentError(f"city {city.id} has unknown special bonus {city.special_bonus}")

    for item in equipment:
        for name in item.attribute_bonus:
            _require_attribute(name, f"equipment {item.id}")
        _check_effects(item.special_effects, f"equipment {item.id}")

    for general in generals:
        for slot, item_id in general.equipment.items():
            item = equipment_by_id.get(item_id)
            if item is None:
                raise ContentError(f"general {general.id} carries unknown equipment {item_id}")
            if item.type != slot:
                raise ContentError(f"general {general.id} wears {item_id} in the {slot} slot")

    for event in events:
        for requirement in event.requirements:
            if requirement.type == RequirementType.ATTRIBUTE:
                if requirement.target is None:
                    raise ContentError(f"event {event.id}: attribute requirement without target")
                _require_attribute(requirement.target, f"event {event.id}")
        _require_unique(f"outcome (event {event.id})", (o.id for o in event.outcomes))
        for outcome in event.outcomes:
            _check_effects(outcome.effects, f"event {event.id}/{outcome.id}")
        if not event.is_choice:
            total = sum(outcome.probability for outcome in event.outcomes)
            if not math.isclose(total, 100.0, abs_tol=1e-6):
                raise ContentError(f"event {event.id} outcome probabilities sum to {total}")


# --- Conversion -------------------------------------------------------------------


def _effects(effects: Iterable[EffectSchema]) -> tuple[dm.Effect, ...]:
    return tuple(
        dm.Effect(kind=e.type, value=e.value, target=e.target, description=e.description)
        for e in effects
    )


def _equipment(item: EquipmentSchema) -> dm.Equipment:
    return dm.Equipment(
        id=dm.EquipmentID(item.id),
        name=item.name,
        slot=item.type,
        rarity=item.rarity,
        attribute_bonus=dict(item.attribute_bonus),
        special_effects=_effects(item.special_effects),
        description=item.description,
        min_city_count=item.requirements.min_city_count,
        event_only=item.requirements.event_only,
    )


def build_catalog(
    skills: list[SkillSchema],
    cities: list[CitySchema],
    generals: list[GeneralSchema],
    equipment: list[EquipmentSchema],
    events: list[EventSchema],
) -> dm.ContentCatalog:
    items = {item.id: _equipment(item) for item in equipment}
    return dm.ContentCatalog(
        skills=tuple(
            dm.Skill(
                id=dm.SkillID(s.id),
                name=s.name,
                star_cost=s.star_cost,
                type=s.type,
                effects=_effects(s.effects),
                description=s.description,
            )
            for s in skills
        ),
        cities=tuple(
            dm.City(
                id=dm.CityID(c.id),
                name=c.name,
                faction=c.faction,
                garrison=[dm.GeneralID(g) for g in c.garrison],
                connections={dm.CityID(n) for n in c.connections},
                gold_production=c.gold_production,
                troop_production=c.troop_production,
                defense_value=c.defense_value,
                special_bonus=c.special_bonus,
            )
            for c in cities
        ),
        generals=tuple(
            dm.General(
                id=dm.GeneralID(g.id),
                name=g.name,
                faction=g.faction,
                attributes=dm.Attributes(**g.attributes.model_dump()),
                level=g.level,
                equipment={slot: items[item_id] for slot, item_id in g.equipment.items()},
                troops=g.troops,
                max_troops=g.max_troops,
                status=g.status,
            )
            for g in generals
        ),
        equipment=tuple(items.values()),
        events=tuple(
            dm.GameEvent(
                id=dm.EventID(e.id),
                name=e.name,
                type=e.type,
                base_probability=e.base_probability,
                destiny_modifier=e.destiny_modifier,
                outcomes=tuple(
                    dm.EventOutcome(
                        id=dm.OutcomeID(o.id),
                        name=o.name,
                        probability=o.probability,
                        effects=_effects(o.effects),
                        description=o.description,
                    )
                    for o in e.outcomes
                ),
                requirements=tuple(
                    dm.EventRequirement(
                        type=r.type, operator=r.operator, value=r.value, target=r.target
                    )
                    for r in e.requirements
                ),
                is_choice=e.is_choice,
                description=e.description,
            )
            for e in events
        ),
    )
