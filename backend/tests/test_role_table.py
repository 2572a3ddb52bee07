from collections import Counter

import pytest

from mafia_io.core.errors import InsufficientPlayers
from mafia_io.core.models import Role
from mafia_io.engine.role_table import mafia_count, role_table


def test_five_players_get_one_of_each_power_role() -> None:
    roles = role_table(5)

    assert Counter(roles) == Counter(
        {Role.MAFIA: 1, Role.DOCTOR: 1, Role.DETECTIVE: 1, Role.VILLAGER: 2}
    )


@pytest.mark.parametrize("player_count", range(3, 21))
def test_role_table_shape_for_every_supported_size(player_count: int) -> None:
    roles = role_table(player_count)
    counts = Counter(roles)

    assert len(roles) == player_count
    assert counts[Role.MAFIA] == max(1, player_count // 4)
    assert counts[Role.DOCTOR] <= 1
    assert counts[Role.DETECTIVE] <= 1
    assert counts[Role.MAFIA] < player_count - counts[Role.MAFIA]


def test_role_table_is_canonical_mafia_first() -> None:
    roles = role_table(8)

    assert roles[:2] == [Role.MAFIA, Role.MAFIA]
    assert roles[2:4] == [Role.DOCTOR, Role.DETECTIVE]
    assert set(roles[4:]) == {Role.VILLAGER}


def test_role_table_below_quorum_raises() -> None:
    with pytest.raises(InsufficientPlayers):
        role_table(2)


def test_mafia_divisor_is_configurable() -> None:
    assert mafia_count(9, mafia_divisor=3) == 3
    assert Counter(role_table(9, mafia_divisor=3))[Role.MAFIA] == 3
