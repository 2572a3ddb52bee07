from __future__ import annotations

import logging
from typing import Callable, Dict, List, Optional

from mafia_io.core.errors import (
    InvalidCommand,
    NotHost,
    QuorumNotMet,
    WrongPhase,
    WrongRole,
)
from mafia_io.core.game_config import GameConfig
from mafia_io.core.models import (
    ChatMessage,
    MessageKind,
    Phase,
    PlayerState,
    Role,
    SessionSnapshot,
    Winner,
)
from mafia_io.core.notifications import Notification, NotificationKind
from mafia_io.engine.day_resolver import DayOutcome, day_ready, resolve_day_votes
from mafia_io.engine.night_resolver import NightOutcome, night_ready, resolve_night_actions
from mafia_io.engine.randomness import RandomSource
from mafia_io.engine.role_table import role_table
from mafia_io.engine.roster import Roster
from mafia_io.engine.states import STATE_REGISTRY
from mafia_io.engine.win_evaluator import evaluate_winner
from mafia_io.roles.skills import SKILL_REGISTRY

logger = logging.getLogger(__name__)


class GameEngine:
    """State machine for one session: Lobby -> Night -> Day -> ... -> Ended.

    Every public method either raises a ``GameError`` before touching the
    snapshot or applies its whole effect. Outbound notifications are queued
    on ``outbox`` and handed over by ``drain_notifications``.
    """

    def __init__(
        self,
        code: str,
        name: str,
        capacity: int,
        config: Optional[GameConfig] = None,
        rng: Optional[RandomSource] = None,
    ) -> None:
        self.snapshot = SessionSnapshot(code=code, name=name, capacity=capacity)
        self.config = config or GameConfig()
        self.rng = rng or RandomSource()
        self.roster = Roster(self.snapshot.players, capacity)
        self.outbox: List[Notification] = []
        self.hooks: Dict[str, List[Callable[[SessionSnapshot], None]]] = {
            "on_phase_start": [],
        }

    @property
    def code(self) -> str:
        return self.snapshot.code

    @property
    def phase(self) -> Phase:
        return self.snapshot.phase

    def register_hook(self, hook_name: str, callback: Callable[[SessionSnapshot], None]) -> None:
        if hook_name not in self.hooks:
            self.hooks[hook_name] = []
        self.hooks[hook_name].append(callback)

    def _trigger_hook(self, hook_name: str) -> None:
        for callback in self.hooks.get(hook_name, []):
            callback(self.snapshot)

    def drain_notifications(self) -> List[Notification]:
        drained, self.outbox = self.outbox, []
        return drained

    # lobby

    def add_player(self, player_id: str, nickname: str) -> PlayerState:
        if self.snapshot.phase != Phase.LOBBY:
            raise WrongPhase("game already started")
        player = self.roster.add(player_id, nickname)
        logger.info("[Session %s] %s joined (%d/%d)", self.code, player_id, len(self.roster), self.roster.capacity)
        self._system_message(f"{nickname} joined the lobby.")
        self._emit_roster()
        return player

    def remove_player(self, player_id: str) -> PlayerState:
        """Drop a player who left or disconnected.

        Once Ended the roster is kept for the result screen and the player is
        only marked disconnected.
        """
        player = self.roster.must_get(player_id)
        if self.snapshot.phase == Phase.ENDED:
            player.connected = False
            return player

        self.roster.remove(player_id)
        self.snapshot.votes.pop(player_id, None)
        self.snapshot.night_actions.mafia_votes.pop(player_id, None)
        logger.info("[Session %s] %s left during %s", self.code, player_id, self.snapshot.phase.value)
        if self.roster.is_empty:
            return player

        self._system_message(f"{player.nickname} left the game.")
        self._emit_roster()

        if self.snapshot.phase == Phase.LOBBY:
            self._maybe_auto_start()
            return player

        winner = evaluate_winner(self.roster)
        if winner is not None:
            self._finish(winner)
        elif self.snapshot.phase == Phase.NIGHT and night_ready(self.snapshot):
            self.resolve_night()
        elif self.snapshot.phase == Phase.DAY and day_ready(self.snapshot):
            self.resolve_day()
        return player

    def set_ready(self, player_id: str, ready: Optional[bool] = None) -> bool:
        if self.snapshot.phase != Phase.LOBBY:
            raise WrongPhase("ready is only allowed in the lobby")
        player = self.roster.must_get(player_id)
        player.ready = (not player.ready) if ready is None else bool(ready)
        self._emit_roster()
        self._maybe_auto_start()
        return player.ready

    def start_game(self, operator_id: str) -> None:
        if self.snapshot.phase != Phase.LOBBY:
            raise WrongPhase("game already started")
        operator = self.roster.must_get(operator_id)
        if not operator.host:
            raise NotHost("only the host can start the game")
        if len(self.roster) < self.config.min_players:
            raise QuorumNotMet(f"at least {self.config.min_players} players required")
        self._begin_game()

    def _maybe_auto_start(self) -> None:
        if self.roster.all_ready() and len(self.roster) >= self.config.min_players:
            self._begin_game()

    def _begin_game(self) -> None:
        roles = role_table(
            len(self.roster),
            min_players=self.config.rules.min_players,
            mafia_divisor=self.config.rules.mafia_divisor,
        )
        for player, role in zip(self.roster, self.rng.shuffle(roles)):
            player.role = role

        self.snapshot.night_actions.clear()
        self.snapshot.votes.clear()
        self.snapshot.day_count = 0
        logger.info("[Session %s] game started with %d players", self.code, len(self.roster))

        self._emit(NotificationKind.GAME_STARTED, {"players": self.roster.public_view()})
        mafia = [
            {"player_id": p.player_id, "nickname": p.nickname}
            for p in self.roster
            if p.role == Role.MAFIA
        ]
        for player in self.roster:
            payload: dict = {"player_id": player.player_id, "role": player.role.value if player.role else None}
            if player.role == Role.MAFIA:
                payload["teammates"] = [m for m in mafia if m["player_id"] != player.player_id]
            self._emit(NotificationKind.ROLE_ASSIGNED, payload, recipient=player.player_id)

        self._system_message("The game has started. Night falls.")
        self._goto_phase(Phase.NIGHT)

    # night

    def submit_night_action(self, actor_id: str, target_id: Optional[str]) -> None:
        if self.snapshot.phase != Phase.NIGHT:
            raise WrongPhase("night actions are only allowed at night")
        actor = self.roster.must_get_alive(actor_id)
        skill = SKILL_REGISTRY.get(actor.role) if actor.role else None
        if skill is None:
            raise WrongRole("your role has no night action")

        result = skill.apply(self.snapshot, actor_id, target_id)
        logger.debug("[Session %s] night action by %s (%s)", self.code, actor_id, skill.role.value)
        if result is not None:
            self._emit(NotificationKind.INVESTIGATION_RESULT, result, recipient=actor_id)

        if night_ready(self.snapshot):
            self.resolve_night()

    def resolve_night(self) -> Optional[NightOutcome]:
        if self.snapshot.phase != Phase.NIGHT:
            return None

        outcome = resolve_night_actions(self.snapshot)
        self.snapshot.last_casualty = outcome.casualty
        casualty = self.roster.get(outcome.casualty)
        if casualty is not None:
            self._system_message(f"{casualty.nickname} was killed during the night!")
        elif outcome.saved:
            self._system_message("No one died last night!")
        else:
            self._system_message("The night passed quietly.")

        self._emit(
            NotificationKind.NIGHT_RESOLVED,
            {
                "casualty": self._player_ref(casualty),
                "day_count": self.snapshot.day_count + 1,
            },
        )

        winner = evaluate_winner(self.roster)
        if winner is not None:
            self._finish(winner)
            return outcome

        self.snapshot.day_count += 1
        self.snapshot.votes.clear()
        self._goto_phase(Phase.DAY)
        return outcome

    # day

    def cast_vote(self, voter_id: str, target_id: Optional[str]) -> None:
        if self.snapshot.phase != Phase.DAY:
            raise WrongPhase("votes are only allowed during the day")
        self.roster.must_get_alive(voter_id)
        if target_id is not None:
            self.roster.must_get_alive(target_id)

        self.snapshot.votes[voter_id] = target_id
        logger.debug("[Session %s] vote %s -> %s", self.code, voter_id, target_id)
        self._emit(NotificationKind.VOTE_RECORDED, {"voter_id": voter_id, "target_id": target_id})

        if day_ready(self.snapshot):
            self.resolve_day()

    def resolve_day(self) -> Optional[DayOutcome]:
        if self.snapshot.phase != Phase.DAY:
            return None

        outcome = resolve_day_votes(self.snapshot)
        self.snapshot.last_eliminated = outcome.eliminated
        eliminated = self.roster.get(outcome.eliminated)
        revealed_role = None
        if eliminated is not None:
            if self.config.rules.reveal_role_on_elimination and eliminated.role:
                revealed_role = eliminated.role.value
            self._system_message(f"{eliminated.nickname} was eliminated by the vote!")
        else:
            self._system_message("No one was eliminated.")

        self._emit(
            NotificationKind.DAY_RESOLVED,
            {
                "eliminated": self._player_ref(eliminated),
                "revealed_role": revealed_role,
                "tally": outcome.tally,
                "tied": outcome.tied,
            },
        )

        winner = evaluate_winner(self.roster)
        if winner is not None:
            self._finish(winner)
            return outcome

        self.snapshot.night_actions.clear()
        self._goto_phase(Phase.NIGHT)
        return outcome

    def expire_phase(self, epoch: int) -> bool:
        """Timer callback: resolve the current phase with partial data.

        A timer scheduled for an earlier phase is ignored.
        """
        if epoch != self.snapshot.phase_epoch:
            return False
        if self.snapshot.phase == Phase.NIGHT:
            logger.info("[Session %s] night %d timed out", self.code, self.snapshot.day_count)
            return self.resolve_night() is not None
        if self.snapshot.phase == Phase.DAY:
            logger.info("[Session %s] day %d timed out", self.code, self.snapshot.day_count)
            return self.resolve_day() is not None
        return False

    # chat

    def send_chat(self, player_id: str, text: str, mafia_only: bool = False) -> ChatMessage:
        if self.snapshot.phase == Phase.ENDED:
            raise WrongPhase("game is over")
        player = self.roster.must_get_alive(player_id)
        content = (text or "").strip()
        if not content:
            raise InvalidCommand("message is empty")
        content = content[: self.config.lobby.max_chat_length]

        if mafia_only:
            if player.role != Role.MAFIA:
                raise WrongRole("only mafia can use the mafia channel")
            message = ChatMessage(
                kind=MessageKind.MAFIA,
                content=content,
                sender_id=player.player_id,
                sender_name=player.nickname,
            )
            for member in self.roster:
                if member.role == Role.MAFIA:
                    self._emit(NotificationKind.CHAT_MESSAGE, message.to_dict(), recipient=member.player_id)
            return message

        message = ChatMessage(
            kind=MessageKind.CHAT,
            content=content,
            sender_id=player.player_id,
            sender_name=player.nickname,
        )
        self._append_message(message)
        self._emit(NotificationKind.CHAT_MESSAGE, message.to_dict())
        return message

    def message_history(self) -> List[dict]:
        return [m.to_dict() for m in self.snapshot.messages]

    # internals

    def _finish(self, winner: Winner) -> None:
        self.snapshot.winner = winner
        self._system_message(f"{winner.value.capitalize()} wins!")
        logger.info("[Session %s] game over, winner=%s", self.code, winner.value)
        self._goto_phase(Phase.ENDED)
        self._emit(
            NotificationKind.GAME_ENDED,
            {"winner": winner.value, "players": self.roster.revealed_view()},
        )

    def _goto_phase(self, phase: Phase) -> None:
        current = STATE_REGISTRY[self.snapshot.phase]
        if not current.can_transition_to(phase):
            raise RuntimeError(f"illegal transition {self.snapshot.phase.value} -> {phase.value}")
        self.snapshot.phase = phase
        self.snapshot.phase_epoch += 1
        logger.info("[Session %s] phase -> %s (day %d)", self.code, phase.value, self.snapshot.day_count)
        self._emit(
            NotificationKind.PHASE_CHANGED,
            {"phase": phase.value, "day_count": self.snapshot.day_count},
        )
        self._trigger_hook("on_phase_start")

    def _emit(self, kind: NotificationKind, payload: dict, recipient: Optional[str] = None) -> None:
        self.outbox.append(
            Notification(kind=kind, session_code=self.code, payload=payload, recipient=recipient)
        )

    def _emit_roster(self) -> None:
        self._emit(NotificationKind.ROSTER_UPDATED, {"players": self.roster.public_view()})

    def _system_message(self, content: str) -> None:
        message = ChatMessage(kind=MessageKind.SYSTEM, content=content)
        self._append_message(message)
        self._emit(NotificationKind.CHAT_MESSAGE, message.to_dict())

    def _append_message(self, message: ChatMessage) -> None:
        limit = self.config.lobby.message_history_limit
        self.snapshot.messages.append(message)
        if len(self.snapshot.messages) > limit:
            del self.snapshot.messages[: len(self.snapshot.messages) - limit]

    @staticmethod
    def _player_ref(player: Optional[PlayerState]) -> Optional[dict]:
        if player is None:
            return None
        return {"player_id": player.player_id, "nickname": player.nickname}

    def public_state(self, viewer_id: Optional[str] = None) -> dict:
        snapshot = self.snapshot
        players = (
            self.roster.revealed_view()
            if snapshot.phase == Phase.ENDED
            else self.roster.public_view()
        )
        state = {
            "code": snapshot.code,
            "name": snapshot.name,
            "capacity": snapshot.capacity,
            "phase": snapshot.phase.value,
            "day_count": snapshot.day_count,
            "started": snapshot.started,
            "game_over": snapshot.game_over,
            "winner": snapshot.winner.value if snapshot.winner else None,
            "host_id": self.roster.host.player_id if self.roster.host else None,
            "players": players,
            "last_casualty": snapshot.last_casualty,
            "last_eliminated": snapshot.last_eliminated,
            "voted": sorted(snapshot.votes) if snapshot.phase == Phase.DAY else [],
        }
        viewer = self.roster.get(viewer_id)
        if viewer is not None:
            you: dict = {
                "player_id": viewer.player_id,
                "alive": viewer.alive,
                "role": viewer.role.value if viewer.role else None,
            }
            if viewer.role == Role.MAFIA:
                you["teammates"] = [
                    p.player_id for p in self.roster if p.role == Role.MAFIA and p.player_id != viewer.player_id
                ]
            state["you"] = you
        return state
