"""Tests for catalog loading and integrity checks."""

from __future__ import annotations

import json
from importlib import resources

import pytest

from tianming.content import CATALOG_FILES, load_catalog
from tianming.domain.enums import EquipmentSlot, Faction, GeneralStatus
from tianming.errors import ContentError


@pytest.fixture
def content_dir(tmp_path):
    """A writable copy of the bundled content."""

    data = resources.files("tianming.content").joinpath("data")
    for filename in CATALOG_FILES.values():
        (tmp_path / filename).write_bytes(data.joinpath(filename).read_bytes())
    return tmp_path


def _edit(directory, filename, mutate):
    path = directory / filename
    records = json.loads(path.read_text())
    mutate(records)
    path.write_text(json.dumps(records))


def _by_id(records, record_id):
    return next(record for record in records if record["id"] == record_id)


class TestBundledCatalog:
    def test_counts(self, bundled_catalog):
        assert len(bundled_catalog.cities) == 12
        assert len(bundled_catalog.generals) == 16
        assert len(bundled_catalog.skills) == 15
        assert len(bundled_catalog.equipment) == 12
        assert len(bundled_catalog.events) == 11

    def test_connections_are_symmetric(self, bundled_catalog):
        cities = {city.id: city for city in bundled_catalog.cities}
        for city in cities.values():
            for neighbour in city.connections:
                assert city.id in cities[neighbour].connections

    def test_general_equipment_resolved_to_catalog_items(self, bundled_catalog):
        items = {item.id: item for item in bundled_catalog.equipment}
        for general in bundled_catalog.generals:
            for slot, item in general.equipment.items():
                assert isinstance(slot, EquipmentSlot)
                assert items[item.id] == item
                assert item.slot == slot

    def test_neutral_general_is_unassigned(self, bundled_catalog):
        garrisoned = {g for city in bundled_catalog.cities for g in city.garrison}
        zhao_yun = next(g for g in bundled_catalog.generals if g.id == "zhao_yun")
        assert zhao_yun.faction == Faction.NEUTRAL
        assert zhao_yun.status == GeneralStatus.NEUTRAL
        assert zhao_yun.id not in garrisoned

    def test_skill_costs_within_range(self, bundled_catalog):
        assert {skill.star_cost for skill in bundled_catalog.skills} == {1, 2, 3}

    def test_event_only_items_flagged(self, bundled_catalog):
        flagged = {item.id for item in bundled_catalog.equipment if item.event_only}
        assert flagged == {"sky_piercer", "imperial_seal"}

    def test_directory_copy_matches_bundle(self, content_dir, bundled_catalog):
        assert load_catalog(content_dir) == bundled_catalog


class TestBrokenContent:
    def test_missing_directory(self, tmp_path):
        with pytest.raises(ContentError, match="cannot read"):
            load_catalog(tmp_path / "nowhere")

    def test_missing_file(self, content_dir):
        (content_dir / "events.json").unlink()
        with pytest.raises(ContentError, match="events.json"):
            load_catalog(content_dir)

    def test_invalid_json(self, content_dir):
        (content_dir / "skills.json").write_text("[{")
        with pytest.raises(ContentError, match="skills.json is malformed"):
            load_catalog(content_dir)

    def test_unknown_field_rejected(self, content_dir):
        _edit(content_dir, "skills.json", lambda skills: skills[0].update(power=9))
        with pytest.raises(ContentError, match="malformed"):
            load_catalog(content_dir)

    def test_star_cost_out_of_range(self, content_dir):
        _edit(content_dir, "skills.json", lambda skills: skills[0].update(starCost=4))
        with pytest.raises(ContentError, match="malformed"):
            load_catalog(content_dir)

    def test_duplicate_ids(self, content_dir):
        _edit(content_dir, "skills.json", lambda skills: skills.append(dict(skills[0])))
        with pytest.raises(ContentError, match="duplicate skill ids"):
            load_catalog(content_dir)

    def test_dangling_connection(self, content_dir):
        _edit(
            content_dir,
            "cities.json",
            lambda cities: _by_id(cities, "luoyang")["connections"].append("atlantis"),
        )
        with pytest.raises(ContentError, match="unknown city atlantis"):
            load_catalog(content_dir)

    def test_dangling_garrison(self, content_dir):
        _edit(
            content_dir,
            "cities.json",
            lambda cities: _by_id(cities, "luoyang")["garrison"].append("nobody"),
        )
        with pytest.raises(ContentError, match="unknown general nobody"):
            load_catalog(content_dir)

    def test_general_in_two_garrisons(self, content_dir):
        _edit(
            content_dir,
            "cities.json",
            lambda cities: _by_id(cities, "xuchang")["garrison"].append("dong_zhuo"),
        )
        with pytest.raises(ContentError, match="more than one city"):
            load_catalog(content_dir)

    def test_probabilities_must_sum_to_hundred(self, content_dir):
        def mutate(events):
            _by_id(events, "wandering_merchant")["outcomes"][0]["probability"] = 50

        _edit(content_dir, "events.json", mutate)
        with pytest.raises(ContentError, match="wandering_merchant"):
            load_catalog(content_dir)

    def test_unknown_effect_attribute(self, content_dir):
        def mutate(skills):
            skills[0]["effects"] = [{"type": "attribute_bonus", "value": 5, "target": "luck"}]

        _edit(content_dir, "skills.json", mutate)
        with pytest.raises(ContentError, match="unknown attribute 'luck'"):
            load_catalog(content_dir)

    def test_unknown_general_equipment(self, content_dir):
        def mutate(generals):
            _by_id(generals, "guan_yu")["equipment"] = {"weapon": "rubber_chicken"}

        _edit(content_dir, "generals.json", mutate)
        with pytest.raises(ContentError, match="rubber_chicken"):
            load_catalog(content_dir)
