from __future__ import annotations

from typing import Iterable, Optional

from mafia_io.core.models import PlayerState, Team, Winner, team_of


def evaluate_winner(players: Iterable[PlayerState]) -> Optional[Winner]:
    """Town wins with no live Mafia; Mafia wins once they match live Town."""
    alive_mafia = 0
    alive_town = 0
    for player in players:
        if not player.alive:
            continue
        if team_of(player.role) == Team.MAFIA:
            alive_mafia += 1
        else:
            alive_town += 1

    if alive_mafia == 0:
        return Winner.TOWN
    if alive_mafia >= alive_town:
        return Winner.MAFIA
    return None
