from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, Iterable, Optional

from mafia_io.core.models import SessionSnapshot


@dataclass(slots=True)
class DayOutcome:
    eliminated: Optional[str] = None
    tally: Dict[str, int] = field(default_factory=dict)
    tied: bool = False


def counted_votes(snapshot: SessionSnapshot) -> Dict[str, Optional[str]]:
    """Votes from players who are still seated and alive."""
    return {
        voter_id: target
        for voter_id, target in snapshot.votes.items()
        if voter_id in snapshot.players and snapshot.players[voter_id].alive
    }


def day_ready(snapshot: SessionSnapshot) -> bool:
    alive = sum(1 for p in snapshot.players.values() if p.alive)
    return len(counted_votes(snapshot)) >= alive


def tally_votes(votes: Dict[str, Optional[str]], candidates: Iterable[str]) -> DayOutcome:
    """Unique plurality eliminates; a tie or an all-abstain day does not."""
    alive = set(candidates)
    tally: Dict[str, int] = {}
    for target in votes.values():
        if not target or target not in alive:
            continue
        tally[target] = tally.get(target, 0) + 1

    if not tally:
        return DayOutcome(tally=tally)

    max_votes = max(tally.values())
    leaders = [pid for pid, cnt in tally.items() if cnt == max_votes]
    if len(leaders) > 1:
        return DayOutcome(tally=tally, tied=True)
    return DayOutcome(eliminated=leaders[0], tally=tally)


def resolve_day_votes(snapshot: SessionSnapshot) -> DayOutcome:
    alive_ids = [p.player_id for p in snapshot.players.values() if p.alive]
    outcome = tally_votes(counted_votes(snapshot), alive_ids)
    if outcome.eliminated is not None:
        snapshot.players[outcome.eliminated].alive = False
    snapshot.votes.clear()
    return outcome
