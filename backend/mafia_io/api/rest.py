from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException

from mafia_io.api.deps import get_dispatcher, get_registry
from mafia_io.core.errors import GameError, NotFound
from mafia_io.room.command_dispatcher import CommandDispatcher
from mafia_io.room.session_registry import SessionRegistry
from mafia_io.schemas import (
    CreateLobbyRequest,
    JoinLobbyRequest,
    JoinLobbyResponse,
    LobbyListResponse,
    LobbyStateResponse,
    LobbySummary,
    PlayerView,
)

router = APIRouter(prefix="/api", tags=["mafia"])


def _http_error(exc: GameError) -> HTTPException:
    status = 404 if isinstance(exc, NotFound) else 400
    return HTTPException(status_code=status, detail=exc.to_dict())


def _state_response(state: dict) -> LobbyStateResponse:
    return LobbyStateResponse(
        code=state["code"],
        name=state["name"],
        capacity=state["capacity"],
        phase=state["phase"],
        day_count=state["day_count"],
        started=state["started"],
        game_over=state["game_over"],
        winner=state["winner"],
        host_id=state["host_id"],
        players=[PlayerView(**p) for p in state["players"]],
        last_casualty=state["last_casualty"],
        last_eliminated=state["last_eliminated"],
        voted=state["voted"],
        you=state.get("you"),
    )


@router.get("/lobbies", response_model=LobbyListResponse)
def list_lobbies(registry: SessionRegistry = Depends(get_registry)) -> LobbyListResponse:
    return LobbyListResponse(lobbies=[LobbySummary(**s) for s in registry.list_sessions()])


@router.post("/lobbies", response_model=JoinLobbyResponse)
def create_lobby(
    req: CreateLobbyRequest,
    dispatcher: CommandDispatcher = Depends(get_dispatcher),
) -> JoinLobbyResponse:
    try:
        code = dispatcher.create_session(req.player_id, req.nickname, req.lobby_name, req.capacity)
    except GameError as exc:
        raise _http_error(exc) from exc
    return JoinLobbyResponse(code=code, player_id=req.player_id, host=True)


@router.post("/lobbies/join", response_model=JoinLobbyResponse)
def join_lobby(
    req: JoinLobbyRequest,
    dispatcher: CommandDispatcher = Depends(get_dispatcher),
) -> JoinLobbyResponse:
    try:
        joined = dispatcher.join_session(req.code.strip().upper(), req.player_id, req.nickname)
    except GameError as exc:
        raise _http_error(exc) from exc
    return JoinLobbyResponse(**joined)


@router.get("/lobbies/{code}", response_model=LobbyStateResponse)
def lobby_state(
    code: str,
    player_id: str | None = None,
    dispatcher: CommandDispatcher = Depends(get_dispatcher),
) -> LobbyStateResponse:
    try:
        return _state_response(dispatcher.state(code.upper(), viewer_id=player_id))
    except GameError as exc:
        raise _http_error(exc) from exc
