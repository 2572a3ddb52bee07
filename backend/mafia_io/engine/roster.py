from __future__ import annotations

from typing import Dict, List, Optional

from mafia_io.core.errors import AlreadyInSession, Full, NotAlive, NotFound
from mafia_io.core.models import PlayerState


class Roster:
    """Join-ordered view over a session's players."""

    def __init__(self, players: Dict[str, PlayerState], capacity: int) -> None:
        self._players = players
        self.capacity = capacity

    def __len__(self) -> int:
        return len(self._players)

    def __contains__(self, player_id: object) -> bool:
        return player_id in self._players

    def __iter__(self):
        return iter(list(self._players.values()))

    @property
    def is_empty(self) -> bool:
        return not self._players

    def add(self, player_id: str, nickname: str) -> PlayerState:
        if player_id in self._players:
            raise AlreadyInSession("player already in session")
        if len(self._players) >= self.capacity:
            raise Full("session is full")
        player = PlayerState(player_id=player_id, nickname=nickname, host=not self._players)
        self._players[player_id] = player
        return player

    def remove(self, player_id: str) -> PlayerState:
        player = self._players.pop(player_id, None)
        if player is None:
            raise NotFound("player not found")
        if player.host:
            player.host = False
            successor = next(iter(self._players.values()), None)
            if successor is not None:
                successor.host = True
        return player

    def get(self, player_id: Optional[str]) -> Optional[PlayerState]:
        if player_id is None:
            return None
        return self._players.get(player_id)

    def must_get(self, player_id: Optional[str]) -> PlayerState:
        player = self.get(player_id)
        if not player:
            raise NotFound("player not found")
        return player

    def must_get_alive(self, player_id: Optional[str]) -> PlayerState:
        player = self.must_get(player_id)
        if not player.alive:
            raise NotAlive("player is not alive")
        return player

    @property
    def host(self) -> Optional[PlayerState]:
        for player in self._players.values():
            if player.host:
                return player
        return None

    def all_ready(self) -> bool:
        return bool(self._players) and all(p.ready for p in self._players.values())

    def public_view(self) -> List[dict]:
        return [
            {
                "player_id": p.player_id,
                "nickname": p.nickname,
                "alive": p.alive,
                "ready": p.ready,
                "host": p.host,
            }
            for p in self._players.values()
        ]

    def revealed_view(self) -> List[dict]:
        return [
            {
                "player_id": p.player_id,
                "nickname": p.nickname,
                "alive": p.alive,
                "ready": p.ready,
                "host": p.host,
                "role": p.role.value if p.role else None,
            }
            for p in self._players.values()
        ]
