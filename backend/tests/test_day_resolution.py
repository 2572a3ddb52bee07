from copy import deepcopy

import pytest

from mafia_io.core.errors import NotAlive, NotFound, WrongPhase
from mafia_io.core.models import Phase, Role, Winner
from mafia_io.core.notifications import NotificationKind
from mafia_io.engine.day_resolver import tally_votes
from mafia_io.engine.game_engine import GameEngine
from mafia_io.engine.randomness import RandomSource


def _make_day_game() -> GameEngine:
    """Five players reach Day 1 with nobody dead (the Doctor saved p4)."""
    engine = GameEngine(code="DAYS", name="test", capacity=10, rng=RandomSource(seed=5))
    for i in range(1, 6):
        engine.add_player(f"p{i}", f"P{i}")
    engine.start_game("p1")

    role_map = {
        "p1": Role.MAFIA,
        "p2": Role.DOCTOR,
        "p3": Role.DETECTIVE,
        "p4": Role.VILLAGER,
        "p5": Role.VILLAGER,
    }
    for pid, role in role_map.items():
        engine.snapshot.players[pid].role = role

    engine.submit_night_action("p1", "p4")
    engine.submit_night_action("p2", "p4")
    engine.submit_night_action("p3", "p5")
    assert engine.snapshot.phase == Phase.DAY
    engine.drain_notifications()
    return engine


def test_majority_vote_eliminates_last_mafia_and_town_wins() -> None:
    engine = _make_day_game()

    engine.cast_vote("p2", "p1")
    engine.cast_vote("p3", "p1")
    engine.cast_vote("p4", "p1")
    engine.cast_vote("p1", "p4")
    engine.cast_vote("p5", "p4")

    assert engine.snapshot.players["p1"].alive is False
    assert engine.snapshot.phase == Phase.ENDED
    assert engine.snapshot.winner == Winner.TOWN

    notes = engine.drain_notifications()
    kinds = [n.kind for n in notes]
    assert NotificationKind.GAME_ENDED in kinds
    phases = [n.payload["phase"] for n in notes if n.kind == NotificationKind.PHASE_CHANGED]
    assert phases == ["ended"]

    day = next(n for n in notes if n.kind == NotificationKind.DAY_RESOLVED)
    assert day.payload["eliminated"] == {"player_id": "p1", "nickname": "P1"}
    assert day.payload["revealed_role"] == "mafia"
    assert day.payload["tally"] == {"p1": 3, "p4": 2}

    ended = next(n for n in notes if n.kind == NotificationKind.GAME_ENDED)
    assert ended.payload["winner"] == "town"
    assert {p["player_id"]: p["role"] for p in ended.payload["players"]}["p2"] == "doctor"


def test_tied_vote_eliminates_nobody_and_night_follows() -> None:
    engine = _make_day_game()

    engine.cast_vote("p2", "p1")
    engine.cast_vote("p3", "p1")
    engine.cast_vote("p1", "p5")
    engine.cast_vote("p4", "p5")
    engine.cast_vote("p5", None)

    assert all(p.alive for p in engine.snapshot.players.values())
    assert engine.snapshot.phase == Phase.NIGHT
    assert engine.snapshot.last_eliminated is None

    day = next(n for n in engine.drain_notifications() if n.kind == NotificationKind.DAY_RESOLVED)
    assert day.payload["tied"] is True
    assert day.payload["eliminated"] is None

    engine.submit_night_action("p1", "p5")
    engine.submit_night_action("p2", "p4")
    engine.submit_night_action("p3", "p2")
    assert engine.snapshot.phase == Phase.DAY
    assert engine.snapshot.day_count == 2


def test_all_abstain_eliminates_nobody() -> None:
    outcome = tally_votes({"a": None, "b": None}, ["a", "b"])

    assert outcome.eliminated is None
    assert outcome.tied is False
    assert outcome.tally == {}


def test_unique_plurality_wins_without_majority() -> None:
    outcome = tally_votes({"a": "x", "b": "x", "c": "y", "d": None, "e": "z"}, ["x", "y", "z"])

    assert outcome.eliminated == "x"


def test_vote_can_be_changed_until_everyone_has_voted() -> None:
    engine = _make_day_game()

    engine.cast_vote("p2", "p5")
    engine.cast_vote("p2", "p1")

    assert engine.snapshot.votes == {"p2": "p1"}


def test_self_vote_is_allowed() -> None:
    engine = _make_day_game()

    engine.cast_vote("p4", "p4")

    assert engine.snapshot.votes["p4"] == "p4"


def test_rejected_votes_leave_session_unchanged() -> None:
    engine = _make_day_game()
    engine.cast_vote("p2", "p1")
    before = deepcopy(engine.snapshot)

    with pytest.raises(NotFound):
        engine.cast_vote("p2", "ghost")
    with pytest.raises(NotFound):
        engine.cast_vote("ghost", "p1")
    with pytest.raises(WrongPhase):
        engine.submit_night_action("p1", "p2")

    assert engine.snapshot == before


def test_dead_players_cannot_vote_or_be_voted_for() -> None:
    engine = _make_day_game()
    engine.snapshot.players["p5"].alive = False

    with pytest.raises(NotAlive):
        engine.cast_vote("p5", "p1")
    with pytest.raises(NotAlive):
        engine.cast_vote("p1", "p5")


def test_departed_voter_unblocks_the_day() -> None:
    engine = _make_day_game()
    for voter in ("p1", "p2", "p3", "p4"):
        engine.cast_vote(voter, "p4" if voter == "p1" else "p1")
    assert engine.snapshot.phase == Phase.DAY

    engine.remove_player("p5")

    assert engine.snapshot.phase == Phase.ENDED
    assert engine.snapshot.winner == Winner.TOWN


def test_resolving_day_twice_changes_nothing() -> None:
    engine = _make_day_game()
    for voter in ("p1", "p2", "p3", "p4", "p5"):
        engine.cast_vote(voter, None)
    before = deepcopy(engine.snapshot)

    assert engine.resolve_day() is None
    assert engine.snapshot == before
