# main.py
from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, FastAPI, HTTPException, Request
from fastapi.responses import StreamingResponse
from pydantic import BaseModel, ConfigDict, Field

from live_score.config import DB_FILE, validate_config
from live_score.engine import InvalidReference, MatchEngine, MatchNotLive, NoActiveMatch
from live_score.logging_config import configure_logging
from live_score.store import JsonFileStore
from live_score.stream import SSE_HEADERS, event_stream

log = logging.getLogger("live_score.api")

router = APIRouter()


def get_engine(request: Request) -> MatchEngine:
    return request.app.state.engine


# -----------------------
# Health / public reads
# -----------------------
@router.get("/health")
def health_check(engine: MatchEngine = Depends(get_engine)):
    return {
        "status": "ok",
        "time": datetime.utcnow().isoformat() + "Z",
        "subscribers": engine.hub.subscriber_count(),
    }


@router.get("/api/public")
def get_public_state(engine: MatchEngine = Depends(get_engine)):
    return engine.snapshot()


@router.get("/api/score")
def get_scoreline(engine: MatchEngine = Depends(get_engine)):
    try:
        return engine.scoreline()
    except NoActiveMatch as e:
        raise HTTPException(status_code=404, detail=str(e))


# -----------------------
# Roster
# -----------------------
class AddTeamRequest(BaseModel):
    name: Optional[str] = None
    short: Optional[str] = None
    logo: Optional[str] = Field(None, description="Logo path or URL (uploads are handled elsewhere)")


@router.post("/api/admin/addTeam")
def add_team(req: AddTeamRequest, engine: MatchEngine = Depends(get_engine)):
    team = engine.add_team(name=req.name, short=req.short, logo=req.logo)
    return {"ok": True, "team": team}


class AddPlayerRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    name: Optional[str] = None
    role: Optional[str] = None
    jersey: Optional[str] = None
    team_id: Optional[str] = Field(None, alias="teamId")
    photo: Optional[str] = None


@router.post("/api/admin/addPlayer")
def add_player(req: AddPlayerRequest, engine: MatchEngine = Depends(get_engine)):
    player = engine.add_player(
        name=req.name,
        role=req.role,
        jersey=req.jersey,
        team_id=req.team_id,
        photo=req.photo,
    )
    return {"ok": True, "player": player}


# -----------------------
# Match lifecycle
# -----------------------
class CreateMatchRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    team_a_id: str = Field(..., alias="teamAId")
    team_b_id: str = Field(..., alias="teamBId")
    overs: Optional[int] = Field(None, ge=1, description="Overs limit (default 20)")


@router.post("/api/admin/createMatch")
def create_match(req: CreateMatchRequest, engine: MatchEngine = Depends(get_engine)):
    try:
        out = engine.create_match(req.team_a_id, req.team_b_id, req.overs)
    except InvalidReference:
        raise HTTPException(status_code=400, detail="invalid_teams")
    return {"ok": True, **out}


class StartInningsRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    batting_team: Optional[str] = Field(None, alias="battingTeam")


@router.post("/api/admin/startInnings")
def start_innings(req: StartInningsRequest, engine: MatchEngine = Depends(get_engine)):
    try:
        out = engine.start_innings(req.batting_team)
    except NoActiveMatch:
        raise HTTPException(status_code=400, detail="no_match")
    return {"ok": True, **out}


class AddBallRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    runs: int = Field(0, ge=0)
    is_wicket: bool = Field(False, alias="isWicket")
    extra: Optional[str] = Field("", description="'', 'wide', 'no-ball', 'bye', 'leg-bye', ...")


@router.post("/api/admin/addBall")
def add_ball(req: AddBallRequest, engine: MatchEngine = Depends(get_engine)):
    try:
        out = engine.record_ball(runs=req.runs, is_wicket=req.is_wicket, extra=req.extra)
    except MatchNotLive:
        raise HTTPException(status_code=400, detail="no_live_match")
    return {"ok": True, **out}


@router.post("/api/admin/resetMatch")
def reset_match(engine: MatchEngine = Depends(get_engine)):
    engine.reset_match()
    return {"ok": True}


# -----------------------
# Live stream (SSE)
# -----------------------
@router.get("/api/stream")
async def stream(request: Request, engine: MatchEngine = Depends(get_engine)):
    return StreamingResponse(
        event_stream(engine.hub, is_disconnected=request.is_disconnected),
        media_type="text/event-stream",
        headers=SSE_HEADERS,
    )


# -----------------------
# App
# -----------------------
def create_app(engine: Optional[MatchEngine] = None) -> FastAPI:
    app = FastAPI(
        title="Live Score API",
        version="0.1.0",
        description="Live cricket scoring: single current match, ball-by-ball updates pushed over SSE",
    )
    app.state.engine = engine if engine is not None else MatchEngine(JsonFileStore(DB_FILE))
    app.include_router(router)

    @app.on_event("startup")
    def on_startup():
        configure_logging()
        validate_config()
        state: Dict[str, Any] = app.state.engine.snapshot()
        log.info(
            "Live score API ready: %d teams, %d players, current match=%s",
            len(state["teams"]),
            len(state["players"]),
            (state["currentMatch"] or {}).get("id"),
        )

    @app.on_event("shutdown")
    def on_shutdown():
        app.state.engine.hub.close_all()

    return app


app = create_app()
