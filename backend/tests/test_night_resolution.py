from copy import deepcopy

import pytest

from mafia_io.core.errors import AlreadyActed, NotAlive, WrongPhase, WrongRole
from mafia_io.core.models import Phase, Role
from mafia_io.core.notifications import NotificationKind
from mafia_io.engine.game_engine import GameEngine
from mafia_io.engine.randomness import RandomSource
from mafia_io.roles.skills import resolve_mafia_target


def _make_started_game(player_count: int = 5) -> GameEngine:
    engine = GameEngine(code="ABCD", name="test", capacity=10, rng=RandomSource(seed=11))
    for i in range(1, player_count + 1):
        engine.add_player(f"p{i}", f"P{i}")
    engine.start_game("p1")

    # force deterministic roles for test readability
    role_map = {
        "p1": Role.MAFIA,
        "p2": Role.DOCTOR,
        "p3": Role.DETECTIVE,
    }
    for pid, player in engine.snapshot.players.items():
        player.role = role_map.get(pid, Role.VILLAGER)
    engine.drain_notifications()
    return engine


def test_mafia_kill_lands_when_doctor_protects_someone_else() -> None:
    engine = _make_started_game()

    assert engine.snapshot.phase == Phase.NIGHT
    engine.submit_night_action("p1", "p4")
    engine.submit_night_action("p2", "p5")
    assert engine.snapshot.phase == Phase.NIGHT
    engine.submit_night_action("p3", "p1")

    assert engine.snapshot.phase == Phase.DAY
    assert engine.snapshot.players["p4"].alive is False
    assert engine.snapshot.last_casualty == "p4"
    assert engine.snapshot.day_count == 1

    resolved = [n for n in engine.drain_notifications() if n.kind == NotificationKind.NIGHT_RESOLVED]
    assert resolved[0].payload["casualty"] == {"player_id": "p4", "nickname": "P4"}


def test_doctor_saves_mafia_target() -> None:
    engine = _make_started_game()

    engine.submit_night_action("p1", "p4")
    engine.submit_night_action("p2", "p4")
    engine.submit_night_action("p3", "p5")

    assert engine.snapshot.phase == Phase.DAY
    assert all(p.alive for p in engine.snapshot.players.values())
    assert engine.snapshot.last_casualty is None
    assert engine.snapshot.messages[-1].content == "No one died last night!"


def test_detective_result_is_private_to_the_detective() -> None:
    engine = _make_started_game()

    engine.submit_night_action("p3", "p1")

    notes = engine.drain_notifications()
    results = [n for n in notes if n.kind == NotificationKind.INVESTIGATION_RESULT]
    assert len(results) == 1
    assert results[0].recipient == "p3"
    assert results[0].payload == {"target_id": "p1", "target_name": "P1", "is_mafia": True}
    assert all(n.kind != NotificationKind.INVESTIGATION_RESULT or n.private for n in notes)


def test_detective_cannot_investigate_twice_in_one_night() -> None:
    engine = _make_started_game()
    engine.submit_night_action("p3", "p4")
    before = deepcopy(engine.snapshot)

    with pytest.raises(AlreadyActed):
        engine.submit_night_action("p3", "p1")

    assert engine.snapshot == before


def test_rejected_night_actions_leave_session_unchanged() -> None:
    engine = _make_started_game()
    engine.submit_night_action("p1", "p4")
    before = deepcopy(engine.snapshot)

    with pytest.raises(WrongRole):
        engine.submit_night_action("p4", "p5")
    with pytest.raises(WrongPhase):
        engine.cast_vote("p4", "p1")

    assert engine.snapshot == before


def test_dead_player_cannot_act_or_be_targeted() -> None:
    engine = _make_started_game()
    engine.submit_night_action("p1", "p3")
    engine.submit_night_action("p2", "p4")
    engine.submit_night_action("p3", "p5")
    assert engine.snapshot.players["p3"].alive is False

    for voter in ("p1", "p2", "p4", "p5"):
        engine.cast_vote(voter, None)
    assert engine.snapshot.phase == Phase.NIGHT

    with pytest.raises(NotAlive):
        engine.submit_night_action("p3", "p1")
    with pytest.raises(NotAlive):
        engine.submit_night_action("p2", "p3")


def test_mafia_can_change_vote_before_resolution() -> None:
    engine = _make_started_game(player_count=8)
    for pid in ("p1", "p4"):
        engine.snapshot.players[pid].role = Role.MAFIA

    engine.submit_night_action("p1", "p5")
    engine.submit_night_action("p4", "p6")
    engine.submit_night_action("p1", "p6")
    engine.submit_night_action("p2", "p7")
    engine.submit_night_action("p3", "p8")

    assert engine.snapshot.players["p6"].alive is False
    assert engine.snapshot.players["p5"].alive is True


def test_mafia_tie_goes_to_first_submission() -> None:
    votes = {"m1": "x", "m2": "y"}

    assert resolve_mafia_target(votes, ["m1", "m2"], ["x", "y", "m1", "m2"]) == "x"


def test_changed_mafia_vote_loses_its_place() -> None:
    engine = _make_started_game(player_count=8)
    for pid in ("p1", "p4"):
        engine.snapshot.players[pid].role = Role.MAFIA

    engine.submit_night_action("p1", "p5")
    engine.submit_night_action("p4", "p6")
    engine.submit_night_action("p1", "p7")

    assert list(engine.snapshot.night_actions.mafia_votes.items()) == [("p4", "p6"), ("p1", "p7")]


def test_mafia_votes_from_dead_members_are_ignored() -> None:
    votes = {"m1": "x", "m2": "y", "m3": "y"}

    assert resolve_mafia_target(votes, ["m1"], ["x", "y", "m1"]) == "x"
    assert resolve_mafia_target({}, ["m1"], ["x"]) is None


def test_departed_doctor_does_not_block_the_night() -> None:
    engine = _make_started_game()
    engine.submit_night_action("p1", "p4")
    engine.submit_night_action("p3", "p5")
    assert engine.snapshot.phase == Phase.NIGHT

    engine.remove_player("p2")

    assert engine.snapshot.phase == Phase.DAY
    assert engine.snapshot.players["p4"].alive is False


def test_night_timeout_resolves_with_partial_actions() -> None:
    engine = _make_started_game()
    engine.submit_night_action("p1", "p5")
    epoch = engine.snapshot.phase_epoch

    assert engine.expire_phase(epoch) is True

    assert engine.snapshot.phase == Phase.DAY
    assert engine.snapshot.players["p5"].alive is False


def test_stale_timer_is_a_no_op() -> None:
    engine = _make_started_game()
    stale_epoch = engine.snapshot.phase_epoch
    engine.submit_night_action("p1", "p4")
    engine.submit_night_action("p2", "p4")
    engine.submit_night_action("p3", "p5")
    before = deepcopy(engine.snapshot)

    assert engine.expire_phase(stale_epoch) is False
    assert engine.snapshot == before


def test_resolving_night_twice_changes_nothing() -> None:
    engine = _make_started_game()
    engine.submit_night_action("p1", "p4")
    engine.submit_night_action("p2", "p5")
    engine.submit_night_action("p3", "p1")
    before = deepcopy(engine.snapshot)

    assert engine.resolve_night() is None
    assert engine.snapshot == before
