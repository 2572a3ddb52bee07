from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from threading import RLock
from typing import Dict, List, Optional

from mafia_io.core.errors import AlreadyInSession, InvalidCommand, NotFound
from mafia_io.core.game_config import GameConfig, default_game_config
from mafia_io.engine.game_engine import GameEngine
from mafia_io.engine.randomness import RandomSource

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class Session:
    code: str
    engine: GameEngine
    lock: RLock = field(default_factory=RLock)
    created_at: float = field(default_factory=time.time)


class SessionRegistry:
    """Owns the live sessions and the identity -> session code index."""

    def __init__(self, config: Optional[GameConfig] = None, rng: Optional[RandomSource] = None) -> None:
        self._sessions: Dict[str, Session] = {}
        self._identity_index: Dict[str, str] = {}
        self._lock = RLock()
        self.config = config or default_game_config()
        self.rng = rng or RandomSource()

    def create_session(self, name: str, capacity: Optional[int] = None) -> str:
        lobby = self.config.lobby
        capacity = lobby.default_capacity if capacity is None else int(capacity)
        if not (self.config.min_players <= capacity <= lobby.max_capacity):
            raise InvalidCommand(
                f"capacity must be between {self.config.min_players} and {lobby.max_capacity}"
            )
        display_name = (name or "").strip() or "Mafia lobby"
        with self._lock:
            code = self.rng.new_code(self._sessions, length=lobby.code_length, alphabet=lobby.code_alphabet)
            engine = GameEngine(code=code, name=display_name, capacity=capacity, config=self.config, rng=self.rng)
            self._sessions[code] = Session(code=code, engine=engine)
        logger.info("[Registry] session %s created (%s, capacity=%d)", code, display_name, capacity)
        return code

    def get_session(self, code: str) -> Optional[Session]:
        with self._lock:
            return self._sessions.get(code)

    def must_get_session(self, code: str) -> Session:
        session = self.get_session(code)
        if not session:
            raise NotFound("session not found")
        return session

    def remove_session(self, code: str) -> None:
        with self._lock:
            session = self._sessions.pop(code, None)
            if session is None:
                return
            stale = [identity for identity, bound in self._identity_index.items() if bound == code]
            for identity in stale:
                del self._identity_index[identity]
        logger.info("[Registry] session %s removed", code)

    def bind_identity(self, identity: str, code: str) -> None:
        with self._lock:
            bound = self._identity_index.get(identity)
            if bound is not None and bound != code and bound in self._sessions:
                raise AlreadyInSession(f"player is already in session {bound}")
            self._identity_index[identity] = code

    def unbind_identity(self, identity: str, code: Optional[str] = None) -> None:
        with self._lock:
            if code is None or self._identity_index.get(identity) == code:
                self._identity_index.pop(identity, None)

    def session_code_for(self, identity: str) -> Optional[str]:
        with self._lock:
            return self._identity_index.get(identity)

    def codes(self) -> List[str]:
        with self._lock:
            return list(self._sessions)

    def list_sessions(self) -> List[dict]:
        with self._lock:
            sessions = list(self._sessions.values())
        return [
            {
                "code": s.code,
                "name": s.engine.snapshot.name,
                "players": len(s.engine.roster),
                "capacity": s.engine.snapshot.capacity,
                "phase": s.engine.snapshot.phase.value,
            }
            for s in sessions
        ]

    def health_summary(self) -> dict:
        with self._lock:
            sessions = list(self._sessions.values())
            identities = len(self._identity_index)

        by_phase: Dict[str, int] = {}
        for session in sessions:
            phase = session.engine.snapshot.phase.value
            by_phase[phase] = by_phase.get(phase, 0) + 1
        return {
            "sessions": len(sessions),
            "players": identities,
            "by_phase": by_phase,
        }

    def shutdown_cleanup(self) -> None:
        with self._lock:
            self._sessions.clear()
            self._identity_index.clear()
