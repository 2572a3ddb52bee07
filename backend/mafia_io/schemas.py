from __future__ import annotations

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field


class CreateLobbyRequest(BaseModel):
    player_id: str = Field(min_length=1, max_length=64)
    nickname: str = Field(min_length=1, max_length=30)
    lobby_name: str = Field(default="", max_length=40)
    capacity: Optional[int] = Field(default=None, ge=1)


class JoinLobbyRequest(BaseModel):
    code: str = Field(min_length=1, max_length=12)
    player_id: str = Field(min_length=1, max_length=64)
    nickname: str = Field(min_length=1, max_length=30)


class LobbySummary(BaseModel):
    code: str
    name: str
    players: int
    capacity: int
    phase: str


class LobbyListResponse(BaseModel):
    lobbies: List[LobbySummary]


class JoinLobbyResponse(BaseModel):
    code: str
    player_id: str
    host: bool


class PlayerView(BaseModel):
    player_id: str
    nickname: str
    alive: bool
    ready: bool
    host: bool
    role: Optional[str] = None


class LobbyStateResponse(BaseModel):
    code: str
    name: str
    capacity: int
    phase: str
    day_count: int
    started: bool
    game_over: bool
    winner: Optional[str]
    host_id: Optional[str]
    players: List[PlayerView]
    last_casualty: Optional[str] = None
    last_eliminated: Optional[str] = None
    voted: List[str] = Field(default_factory=list)
    you: Optional[Dict[str, Any]] = None
