"""HTTP routes for the Tianming API."""

from __future__ import annotations

from datetime import datetime
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Query, Request, status
from pydantic import BaseModel, Field

from tianming.api.runtime import (
    ApiState,
    GameSession,
    batch_dict,
    city_dict,
    draft_dict,
    general_dict,
    history_dict,
    player_dict,
)
from tianming.domain.enums import Faction, GamePhase, GeneralStatus
from tianming.errors import GameNotStartedError

router = APIRouter()


def get_state(request: Request) -> ApiState:
    state = getattr(request.app.state, "api_state", None)
    if state is None:  # pragma: no cover - FastAPI should always initialise state
        raise RuntimeError("API state not initialised")
    return state


ApiStateDep = Annotated[ApiState, Depends(get_state)]


def get_live_session(state: ApiStateDep) -> GameSession:
    try:
        state.session.require_state()
    except GameNotStartedError as exc:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc)) from exc
    return state.session


LiveSessionDep = Annotated[GameSession, Depends(get_live_session)]


class GameSummary(BaseModel):
    phase: str
    current_turn: int
    running: bool
    turn_pending: bool
    game_speed: float
    season: str
    outcome: str | None
    random_seed: int
    started_at: datetime
    ended_at: datetime | None
    city_count: int


class NewGameRequest(BaseModel):
    seed: int | None = Field(default=None, description="Recorded with the game; not used to seed")


class SkillSummary(BaseModel):
    id: str
    name: str
    star_cost: int
    type: str
    description: str


class DraftSummary(BaseModel):
    round: int
    max_rounds: int
    remaining_stars: int
    finished: bool
    candidates: list[SkillSummary]
    selected: list[SkillSummary]


class SelectSkillRequest(BaseModel):
    skill_id: str = Field(min_length=1)


class SpeedRequest(BaseModel):
    speed: float = Field(gt=0.0, description="Clamped to the supported speed range")


class PlayerSummary(BaseModel):
    name: str
    level: int
    attributes: dict[str, int]
    skills: list[SkillSummary]
    equipment: dict[str, dict[str, object] | None]
    gold: int
    troops: int
    max_troops: int
    cities_controlled: int
    battles_won: int
    battles_lost: int
    generals_recruited: int
    maintenance_cost: int


class CitySummary(BaseModel):
    id: str
    name: str
    faction: str
    garrison: list[str]
    connections: list[str]
    gold_production: int
    troop_production: int
    defense_value: int
    special_bonus: str | None


class GeneralSummary(BaseModel):
    id: str
    name: str
    faction: str
    status: str
    level: int
    attributes: dict[str, int]
    troops: int
    max_troops: int


class MessageSummary(BaseModel):
    category: str
    message: str
    data: dict[str, object] | None
    display_offset_ms: float


class BatchSummary(BaseModel):
    turn: int
    published_at: datetime
    messages: list[MessageSummary]


class HistoryEntrySummary(BaseModel):
    turn: int
    event_id: str
    outcome_id: str
    timestamp: datetime
    description: str


class HistoryResponse(BaseModel):
    events: list[HistoryEntrySummary]
    batches: list[BatchSummary]


def _summary(session: GameSession) -> GameSummary:
    return GameSummary.model_validate(session.summary())


@router.get("/health")
async def health(state: ApiStateDep) -> dict[str, object]:
    game = state.session.state
    return {
        "status": "ok",
        "game_loaded": game is not None,
        "phase": str(game.phase) if game is not None else None,
        "turn_interval_ms": state.rules.scheduler.base_interval_ms,
        "catalog": {
            "skills": len(state.catalog.skills),
            "cities": len(state.catalog.cities),
            "generals": len(state.catalog.generals),
            "equipment": len(state.catalog.equipment),
            "events": len(state.catalog.events),
        },
    }


@router.post("/game", response_model=GameSummary, status_code=status.HTTP_201_CREATED)
async def new_game(state: ApiStateDep, request: NewGameRequest | None = None) -> GameSummary:
    state.session.start_new_game(seed=request.seed if request is not None else None)
    return _summary(state.session)


@router.get("/game", response_model=GameSummary)
async def get_game(session: LiveSessionDep) -> GameSummary:
    return _summary(session)


@router.get("/game/draft", response_model=DraftSummary)
async def get_draft(session: LiveSessionDep) -> DraftSummary:
    return DraftSummary.model_validate(draft_dict(session.require_state()))


@router.post("/game/draft/select", response_model=DraftSummary)
async def select_skill(request: SelectSkillRequest, session: LiveSessionDep) -> DraftSummary:
    if not await session.select_skill(request.skill_id):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"skill {request.skill_id} cannot be selected",
        )
    return DraftSummary.model_validate(draft_dict(session.require_state()))


@router.post("/game/draft/skip", response_model=DraftSummary)
async def skip_round(session: LiveSessionDep) -> DraftSummary:
    if session.require_state().phase != GamePhase.SKILL_SELECTION:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="draft is over")
    await session.skip_round()
    return DraftSummary.model_validate(draft_dict(session.require_state()))


@router.post("/game/pause", response_model=GameSummary)
async def pause(session: LiveSessionDep) -> GameSummary:
    session.pause()
    return _summary(session)


@router.post("/game/resume", response_model=GameSummary)
async def resume(session: LiveSessionDep) -> GameSummary:
    if session.require_state().phase != GamePhase.PLAYING:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="game is not in play")
    await session.resume()
    return _summary(session)


@router.post("/game/speed", response_model=GameSummary)
async def set_speed(request: SpeedRequest, session: LiveSessionDep) -> GameSummary:
    session.set_speed(request.speed)
    return _summary(session)


@router.post("/game/turn/advance", response_model=BatchSummary)
async def advance_turn(session: LiveSessionDep) -> BatchSummary:
    if session.require_state().phase != GamePhase.PLAYING:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="game is not in play")
    if session.running:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT, detail="pause the game before advancing manually"
        )
    await session.execute_turn()
    latest = session.feed.latest
    if latest is None:  # pragma: no cover - a turn always publishes
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR)
    return BatchSummary.model_validate(batch_dict(latest))


@router.get("/game/player", response_model=PlayerSummary)
async def get_player(session: LiveSessionDep) -> PlayerSummary:
    return PlayerSummary.model_validate(player_dict(session.require_state().player))


@router.get("/game/cities", response_model=list[CitySummary])
async def list_cities(
    session: LiveSessionDep,
    faction: Annotated[Faction | None, Query()] = None,
) -> list[CitySummary]:
    cities = session.require_state().cities.values()
    if faction is not None:
        cities = [city for city in cities if city.faction == faction]
    return [CitySummary.model_validate(city_dict(city)) for city in cities]


@router.get("/game/cities/{city_id}", response_model=CitySummary)
async def get_city(city_id: str, session: LiveSessionDep) -> CitySummary:
    city = session.require_state().cities.get(city_id)
    if city is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="city not found")
    return CitySummary.model_validate(city_dict(city))


@router.get("/game/generals", response_model=list[GeneralSummary])
async def list_generals(
    session: LiveSessionDep,
    status_filter: Annotated[GeneralStatus | None, Query(alias="status")] = None,
) -> list[GeneralSummary]:
    generals = session.require_state().generals.values()
    if status_filter is not None:
        generals = [general for general in generals if general.status == status_filter]
    return [GeneralSummary.model_validate(general_dict(general)) for general in generals]


@router.get("/game/messages", response_model=BatchSummary | None)
async def latest_messages(session: LiveSessionDep) -> BatchSummary | None:
    latest = session.feed.latest
    return BatchSummary.model_validate(batch_dict(latest)) if latest is not None else None


@router.get("/game/history", response_model=HistoryResponse)
async def history(session: LiveSessionDep) -> HistoryResponse:
    game = session.require_state()
    return HistoryResponse(
        events=[HistoryEntrySummary.model_validate(history_dict(e)) for e in game.event_history],
        batches=[BatchSummary.model_validate(batch_dict(b)) for b in session.feed.batches()],
    )
