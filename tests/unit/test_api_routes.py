"""Tests for the FastAPI layer."""

from __future__ import annotations

import random

import pytest
from httpx import ASGITransport, AsyncClient

from tianming.api.app import create_app
from tianming.api.runtime import ApiState
from tianming.config import Settings


def _make_app(catalog):
    def factory() -> ApiState:
        settings = Settings(
            turn_interval_ms=50.0,
            message_base_delay_ms=0.0,
            message_stagger_ms=1.0,
            message_buffer_ms=0.0,
            history_limit=20,
        )
        return ApiState(settings=settings, catalog=catalog, rng_factory=lambda: random.Random(8))

    app = create_app(state_factory=factory)
    transport = ASGITransport(app=app)
    return app, transport


async def _start_playing(client: AsyncClient) -> None:
    response = await client.post("/game", json={"seed": 99})
    assert response.status_code == 201
    for _ in range(3):
        response = await client.post("/game/draft/skip")
        assert response.status_code == 200
    response = await client.post("/game/pause")
    assert response.status_code == 200


@pytest.mark.asyncio
async def test_health_reports_catalog(bundled_catalog):
    app, transport = _make_app(bundled_catalog)

    async with (
        app.router.lifespan_context(app),
        AsyncClient(transport=transport, base_url="http://test") as client,
    ):
        response = await client.get("/health")
        assert response.status_code == 200
        payload = response.json()
        assert payload["status"] == "ok"
        assert payload["game_loaded"] is False
        assert payload["turn_interval_ms"] == 50.0
        assert payload["catalog"]["cities"] == 12


@pytest.mark.asyncio
async def test_game_endpoints_need_a_game(bundled_catalog):
    app, transport = _make_app(bundled_catalog)

    async with (
        app.router.lifespan_context(app),
        AsyncClient(transport=transport, base_url="http://test") as client,
    ):
        for path in ("/game", "/game/draft", "/game/player", "/game/history"):
            response = await client.get(path)
            assert response.status_code == 409


@pytest.mark.asyncio
async def test_draft_via_api(bundled_catalog):
    app, transport = _make_app(bundled_catalog)

    async with (
        app.router.lifespan_context(app),
        AsyncClient(transport=transport, base_url="http://test") as client,
    ):
        response = await client.post("/game", json={"seed": 7})
        assert response.status_code == 201
        game = response.json()
        assert game["phase"] == "skill_selection"
        assert game["random_seed"] == 7
        assert game["city_count"] == 12

        response = await client.get("/game/draft")
        draft = response.json()
        assert draft["round"] == 1
        assert draft["remaining_stars"] == 10
        assert len(draft["candidates"]) == 3

        response = await client.post("/game/draft/select", json={"skill_id": "not_offered"})
        assert response.status_code == 400

        skill = draft["candidates"][0]
        response = await client.post("/game/draft/select", json={"skill_id": skill["id"]})
        assert response.status_code == 200
        draft = response.json()
        assert draft["round"] == 2
        assert draft["remaining_stars"] == 10 - skill["star_cost"]
        assert [s["id"] for s in draft["selected"]] == [skill["id"]]

        await client.post("/game/draft/skip")
        response = await client.post("/game/draft/skip")
        assert response.status_code == 200
        assert response.json()["finished"] is True

        response = await client.post("/game/draft/skip")
        assert response.status_code == 409

        response = await client.get("/game")
        assert response.json()["phase"] == "playing"

        response = await client.get("/game/player")
        player = response.json()
        assert [s["id"] for s in player["skills"]] == [skill["id"]]
        assert player["cities_controlled"] >= 1


@pytest.mark.asyncio
async def test_manual_turns_and_read_models(bundled_catalog):
    app, transport = _make_app(bundled_catalog)

    async with (
        app.router.lifespan_context(app),
        AsyncClient(transport=transport, base_url="http://test") as client,
    ):
        await _start_playing(client)

        response = await client.get("/game")
        game = response.json()
        assert game["running"] is False
        assert game["turn_pending"] is False
        turn = game["current_turn"]

        response = await client.post("/game/turn/advance")
        assert response.status_code == 200
        batch = response.json()
        assert batch["turn"] == turn + 1
        assert batch["messages"][0]["message"] == f"--- Turn {turn + 1} begins ---"
        offsets = [m["display_offset_ms"] for m in batch["messages"]]
        assert offsets == sorted(offsets)

        response = await client.get("/game/messages")
        assert response.json()["turn"] == turn + 1

        response = await client.get("/game/cities", params={"faction": "player"})
        owned = response.json()
        assert len(owned) >= 1
        assert all(city["faction"] == "player" for city in owned)

        response = await client.get(f"/game/cities/{owned[0]['id']}")
        assert response.status_code == 200
        assert response.json()["id"] == owned[0]["id"]

        response = await client.get("/game/cities/atlantis")
        assert response.status_code == 404

        response = await client.get("/game/generals", params={"status": "neutral"})
        assert all(general["status"] == "neutral" for general in response.json())

        response = await client.get("/game/history")
        history = response.json()
        assert history["batches"][-1]["turn"] == turn + 1


@pytest.mark.asyncio
async def test_speed_and_scheduling_controls(bundled_catalog):
    app, transport = _make_app(bundled_catalog)

    async with (
        app.router.lifespan_context(app),
        AsyncClient(transport=transport, base_url="http://test") as client,
    ):
        await _start_playing(client)

        response = await client.post("/game/speed", json={"speed": 9.0})
        assert response.json()["game_speed"] == 4.0
        response = await client.post("/game/speed", json={"speed": 0})
        assert response.status_code == 422

        response = await client.post("/game/resume")
        assert response.status_code == 200
        resumed = response.json()
        assert resumed["running"] is True

        response = await client.post("/game/turn/advance")
        assert response.status_code == 409

        response = await client.post("/game/pause")
        paused = response.json()
        assert paused["running"] is False
        assert paused["turn_pending"] is False
