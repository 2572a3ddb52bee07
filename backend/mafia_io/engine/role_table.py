from __future__ import annotations

from typing import List

from mafia_io.core.errors import InsufficientPlayers
from mafia_io.core.models import Role

DEFAULT_MIN_PLAYERS = 3
DEFAULT_MAFIA_DIVISOR = 4


def mafia_count(player_count: int, mafia_divisor: int = DEFAULT_MAFIA_DIVISOR) -> int:
    return max(1, player_count // mafia_divisor)


def role_table(
    player_count: int,
    min_players: int = DEFAULT_MIN_PLAYERS,
    mafia_divisor: int = DEFAULT_MAFIA_DIVISOR,
) -> List[Role]:
    """Roles for ``player_count`` seats in canonical order (Mafia first).

    Mafia scale as ``max(1, n // mafia_divisor)``. A Doctor and a Detective
    join once at least two Town seats exist; every other seat is a Villager.
    """
    if player_count < min_players:
        raise InsufficientPlayers(f"at least {min_players} players required, got {player_count}")

    mafia = mafia_count(player_count, mafia_divisor)
    roles: List[Role] = [Role.MAFIA] * mafia
    town_seats = player_count - mafia
    if town_seats >= 2:
        roles.extend([Role.DOCTOR, Role.DETECTIVE])
    roles.extend([Role.VILLAGER] * (player_count - len(roles)))
    return roles
