from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, List, Optional


class NotificationKind(str, Enum):
    ROSTER_UPDATED = "rosterUpdated"
    GAME_STARTED = "gameStarted"
    ROLE_ASSIGNED = "roleAssigned"
    PHASE_CHANGED = "phaseChanged"
    NIGHT_RESOLVED = "nightResolved"
    INVESTIGATION_RESULT = "investigationResult"
    VOTE_RECORDED = "voteRecorded"
    DAY_RESOLVED = "dayResolved"
    GAME_ENDED = "gameEnded"
    CHAT_MESSAGE = "chatMessage"
    MESSAGE_HISTORY = "messageHistory"
    ERROR = "error"


@dataclass(slots=True)
class Notification:
    kind: NotificationKind
    session_code: str
    payload: Dict[str, Any] = field(default_factory=dict)
    # None means the whole session; otherwise a single player identity
    recipient: Optional[str] = None

    @property
    def private(self) -> bool:
        return self.recipient is not None


NotificationSink = Callable[[List[Notification]], None]


def discard_notifications(_: List[Notification]) -> None:
    return None
