from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional


class Role(str, Enum):
    MAFIA = "mafia"
    DOCTOR = "doctor"
    DETECTIVE = "detective"
    VILLAGER = "villager"


class Team(str, Enum):
    MAFIA = "mafia"
    TOWN = "town"


class Phase(str, Enum):
    LOBBY = "lobby"
    NIGHT = "night"
    DAY = "day"
    ENDED = "ended"


class Winner(str, Enum):
    MAFIA = "mafia"
    TOWN = "town"


class MessageKind(str, Enum):
    SYSTEM = "system"
    CHAT = "chat"
    MAFIA = "mafia"


ROLE_TEAM_MAP: Dict[Role, Team] = {
    Role.MAFIA: Team.MAFIA,
    Role.DOCTOR: Team.TOWN,
    Role.DETECTIVE: Team.TOWN,
    Role.VILLAGER: Team.TOWN,
}


def team_of(role: Optional[Role]) -> Optional[Team]:
    if role is None:
        return None
    return ROLE_TEAM_MAP[role]


@dataclass(slots=True)
class PlayerState:
    player_id: str
    nickname: str
    role: Optional[Role] = None
    alive: bool = True
    ready: bool = False
    host: bool = False
    connected: bool = True


@dataclass(slots=True)
class NightActionSet:
    # actor -> target, insertion order is submission order
    mafia_votes: Dict[str, str] = field(default_factory=dict)
    doctor_target: Optional[str] = None
    detective_target: Optional[str] = None

    def clear(self) -> None:
        self.mafia_votes.clear()
        self.doctor_target = None
        self.detective_target = None


@dataclass(slots=True)
class ChatMessage:
    kind: MessageKind
    content: str
    sender_id: Optional[str] = None
    sender_name: Optional[str] = None
    ts: str = field(default_factory=lambda: datetime.utcnow().isoformat())

    def to_dict(self) -> Dict[str, Any]:
        return {
            "kind": self.kind.value,
            "content": self.content,
            "sender_id": self.sender_id,
            "sender_name": self.sender_name,
            "ts": self.ts,
        }


@dataclass(slots=True)
class SessionSnapshot:
    code: str
    name: str
    capacity: int
    players: Dict[str, PlayerState] = field(default_factory=dict)
    phase: Phase = Phase.LOBBY
    day_count: int = 0
    phase_epoch: int = 0
    votes: Dict[str, Optional[str]] = field(default_factory=dict)
    night_actions: NightActionSet = field(default_factory=NightActionSet)
    winner: Optional[Winner] = None
    last_casualty: Optional[str] = None
    last_eliminated: Optional[str] = None
    messages: List[ChatMessage] = field(default_factory=list)

    @property
    def started(self) -> bool:
        return self.phase != Phase.LOBBY

    @property
    def game_over(self) -> bool:
        return self.phase == Phase.ENDED
