from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from mafia_io.core.models import Role, SessionSnapshot
from mafia_io.roles.skills import SKILL_REGISTRY, resolve_mafia_target


@dataclass(slots=True)
class NightOutcome:
    casualty: Optional[str] = None
    mafia_target: Optional[str] = None
    protected: Optional[str] = None

    @property
    def saved(self) -> bool:
        return self.mafia_target is not None and self.casualty is None


def night_ready(snapshot: SessionSnapshot) -> bool:
    return all(skill.submitted(snapshot) for skill in SKILL_REGISTRY.values())


def mafia_target(snapshot: SessionSnapshot) -> Optional[str]:
    alive_mafia = [p.player_id for p in snapshot.players.values() if p.alive and p.role == Role.MAFIA]
    alive = [p.player_id for p in snapshot.players.values() if p.alive]
    return resolve_mafia_target(snapshot.night_actions.mafia_votes, alive_mafia, alive)


def resolve_night_actions(snapshot: SessionSnapshot) -> NightOutcome:
    """Apply the Mafia kill unless the Doctor protected the same player.

    Works on whatever has been submitted so far, so a timed-out night
    resolves with partial data. Clears the night action set.
    """
    target = mafia_target(snapshot)
    protected = snapshot.night_actions.doctor_target
    outcome = NightOutcome(mafia_target=target, protected=protected)

    if target is not None and target != protected:
        victim = snapshot.players.get(target)
        if victim is not None and victim.alive:
            victim.alive = False
            outcome.casualty = target

    snapshot.night_actions.clear()
    return outcome
