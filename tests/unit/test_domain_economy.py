"""Tests for production, troop caps and upkeep."""

from __future__ import annotations

from datetime import UTC, datetime

from hypothesis import given
from hypothesis import strategies as st

from tianming.domain import economy
from tianming.domain import models as dm
from tianming.domain.enums import Faction, GeneralStatus, MessageCategory


def _state(player_cities: int = 1) -> dm.GameState:
    cities = {}
    for index in range(3):
        city_id = dm.CityID(f"c{index}")
        cities[city_id] = dm.City(
            id=city_id,
            name=f"City {index}",
            faction=Faction.PLAYER if index < player_cities else Faction.WU,
            gold_production=100,
            troop_production=50,
        )
    state = dm.GameState(
        player=dm.Player(cities_controlled=player_cities),
        cities=cities,
        generals={},
        started_at=datetime.now(UTC),
    )
    return state


class TestProduction:
    def test_politics_scales_gold_per_city(self):
        state = _state(player_cities=2)
        state.player.attributes.politics = 25
        state.player.gold = 0
        economy.process_production(state)
        # floor(100 * 1.25) per city
        assert state.player.gold == 250

    def test_troops_capped_at_current_maximum(self):
        state = _state(player_cities=1)
        state.player.troops = 980
        state.player.max_troops = 1000
        messages = economy.process_production(state)
        assert state.player.troops == 1000
        assert messages[0].category == MessageCategory.PRODUCTION
        assert messages[0].data["troops"] == 20

    def test_troops_above_cap_are_pulled_down(self):
        state = _state(player_cities=1)
        state.player.attributes.leadership = 10
        state.player.max_troops = 800
        state.player.troops = 1230
        messages = economy.process_production(state)
        assert state.player.troops == 800
        assert messages[0].data["troops"] == -430
        assert "troops -430" in messages[0].message

    @given(troops=st.integers(min_value=0, max_value=5000))
    def test_troops_never_exceed_cap_after_production(self, troops):
        state = _state(player_cities=2)
        state.player.max_troops = 900
        state.player.troops = troops
        economy.process_production(state)
        assert state.player.troops <= 900

    def test_cap_recalculated_after_production(self):
        state = _state(player_cities=2)
        state.player.attributes.leadership = 30
        economy.process_production(state)
        assert state.player.max_troops == 500 + 300 + 400

    def test_no_cities_no_message(self):
        state = _state(player_cities=0)
        assert economy.process_production(state) == []


def test_recalculate_troop_cap_updates_allies():
    state = _state()
    ally = dm.General(
        id=dm.GeneralID("ally"),
        name="Ally",
        faction=Faction.PLAYER,
        attributes=dm.Attributes(leadership=40),
        status=GeneralStatus.ALLY,
    )
    enemy = dm.General(
        id=dm.GeneralID("enemy"),
        name="Enemy",
        faction=Faction.WEI,
        attributes=dm.Attributes(leadership=40),
        max_troops=123,
    )
    state.generals = {ally.id: ally, enemy.id: enemy}
    economy.recalculate_troop_cap(state)
    assert ally.max_troops == 800
    assert enemy.max_troops == 123
    assert state.player.max_troops == 500 + 100 + 200


class TestUpkeep:
    def test_paid_from_treasury(self):
        state = _state(player_cities=2)
        state.player.gold = 100
        messages = economy.process_upkeep(state)
        assert state.player.gold == 60
        assert state.player.maintenance_cost == 40
        assert messages[0].data == {"cost": 40}

    def test_shortfall_costs_twice_in_troops(self):
        state = _state(player_cities=3)
        state.player.gold = 10
        state.player.troops = 800
        economy.process_upkeep(state)
        assert state.player.gold == 0
        assert state.player.troops == 700

    def test_troops_floor_at_zero(self):
        state = _state(player_cities=3)
        state.player.gold = 0
        state.player.troops = 50
        economy.process_upkeep(state)
        assert state.player.troops == 0

    def test_no_cities_is_silent(self):
        state = _state(player_cities=0)
        assert economy.process_upkeep(state) == []
        assert state.player.maintenance_cost == 0

    @given(
        cities=st.integers(min_value=0, max_value=20),
        gold=st.integers(min_value=0, max_value=1000),
        troops=st.integers(min_value=0, max_value=5000),
    )
    def test_upkeep_accounting(self, cities, gold, troops):
        state = _state()
        state.player.cities_controlled = cities
        state.player.gold = gold
        state.player.troops = troops
        economy.process_upkeep(state)

        cost = cities * 20
        assert state.player.maintenance_cost == cost
        if gold >= cost:
            assert state.player.gold == gold - cost
            assert state.player.troops == troops
        else:
            assert state.player.gold == 0
            assert state.player.troops == max(0, troops - 2 * (cost - gold))
