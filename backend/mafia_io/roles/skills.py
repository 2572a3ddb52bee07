from __future__ import annotations

from typing import Dict, Iterable, Optional

from mafia_io.core.errors import AlreadyActed, NotAlive, NotFound, WrongPhase, WrongRole
from mafia_io.core.models import Phase, Role, SessionSnapshot
from mafia_io.roles.base import SkillStrategy


def _assert_night_actor(snapshot: SessionSnapshot, actor_id: str, role: Role) -> None:
    if snapshot.phase != Phase.NIGHT:
        raise WrongPhase("night actions are only allowed at night")
    actor = snapshot.players.get(actor_id)
    if not actor:
        raise NotFound("player not found")
    if not actor.alive:
        raise NotAlive("dead players cannot act")
    if actor.role != role:
        raise WrongRole(f"only {role.value} can do this action")


def _assert_target_alive(snapshot: SessionSnapshot, target_id: Optional[str]) -> None:
    if not target_id:
        raise NotFound("target_id is required")
    target = snapshot.players.get(target_id)
    if not target:
        raise NotFound("target not found")
    if not target.alive:
        raise NotAlive("target is not alive")


def _alive_ids(snapshot: SessionSnapshot, role: Optional[Role] = None) -> list[str]:
    return [
        p.player_id
        for p in snapshot.players.values()
        if p.alive and (role is None or p.role == role)
    ]


class MafiaSkill(SkillStrategy):
    role = Role.MAFIA

    def validate(self, snapshot: SessionSnapshot, actor_id: str, target_id: Optional[str]) -> None:
        _assert_night_actor(snapshot, actor_id, self.role)
        _assert_target_alive(snapshot, target_id)

    def apply(self, snapshot: SessionSnapshot, actor_id: str, target_id: Optional[str]) -> Optional[dict]:
        self.validate(snapshot, actor_id, target_id)
        votes = snapshot.night_actions.mafia_votes
        if votes.get(actor_id) != target_id:
            # a changed vote counts as a fresh submission for tie-breaking
            votes.pop(actor_id, None)
            votes[actor_id] = target_id or ""
        return None

    def submitted(self, snapshot: SessionSnapshot) -> bool:
        alive_mafia = _alive_ids(snapshot, Role.MAFIA)
        if not alive_mafia:
            return True
        return resolve_mafia_target(snapshot.night_actions.mafia_votes, alive_mafia, _alive_ids(snapshot)) is not None


class DoctorSkill(SkillStrategy):
    role = Role.DOCTOR

    def validate(self, snapshot: SessionSnapshot, actor_id: str, target_id: Optional[str]) -> None:
        _assert_night_actor(snapshot, actor_id, self.role)
        _assert_target_alive(snapshot, target_id)

    def apply(self, snapshot: SessionSnapshot, actor_id: str, target_id: Optional[str]) -> Optional[dict]:
        self.validate(snapshot, actor_id, target_id)
        snapshot.night_actions.doctor_target = target_id
        return None

    def submitted(self, snapshot: SessionSnapshot) -> bool:
        if not _alive_ids(snapshot, self.role):
            return True
        return snapshot.night_actions.doctor_target is not None


class DetectiveSkill(SkillStrategy):
    role = Role.DETECTIVE

    def validate(self, snapshot: SessionSnapshot, actor_id: str, target_id: Optional[str]) -> None:
        _assert_night_actor(snapshot, actor_id, self.role)
        _assert_target_alive(snapshot, target_id)
        if snapshot.night_actions.detective_target is not None:
            raise AlreadyActed("detective already investigated tonight")

    def apply(self, snapshot: SessionSnapshot, actor_id: str, target_id: Optional[str]) -> Optional[dict]:
        self.validate(snapshot, actor_id, target_id)
        snapshot.night_actions.detective_target = target_id
        target = snapshot.players[target_id or ""]
        return {
            "target_id": target.player_id,
            "target_name": target.nickname,
            "is_mafia": target.role == Role.MAFIA,
        }

    def submitted(self, snapshot: SessionSnapshot) -> bool:
        if not _alive_ids(snapshot, self.role):
            return True
        return snapshot.night_actions.detective_target is not None


def resolve_mafia_target(
    votes: Dict[str, str],
    alive_mafia_ids: Iterable[str],
    alive_player_ids: Iterable[str],
) -> Optional[str]:
    """Plurality over live Mafia votes; ties go to the earliest submission."""
    voters = set(alive_mafia_ids)
    candidates = set(alive_player_ids)

    count: Dict[str, int] = {}
    for voter_id, target in votes.items():
        if voter_id not in voters or target not in candidates:
            continue
        # dict order keeps the first submission of each target
        count[target] = count.get(target, 0) + 1

    if not count:
        return None
    max_votes = max(count.values())
    return next(pid for pid, c in count.items() if c == max_votes)


SKILL_REGISTRY: Dict[Role, SkillStrategy] = {
    Role.MAFIA: MafiaSkill(),
    Role.DOCTOR: DoctorSkill(),
    Role.DETECTIVE: DetectiveSkill(),
}
