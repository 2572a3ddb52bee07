from __future__ import annotations

import logging
from typing import Callable, List, Optional, TypeVar

from mafia_io.core.errors import GameError
from mafia_io.core.models import Phase, SessionSnapshot
from mafia_io.core.notifications import (
    Notification,
    NotificationKind,
    NotificationSink,
    discard_notifications,
)
from mafia_io.engine.game_engine import GameEngine
from mafia_io.room.phase_timer import NullPhaseTimer, PhaseTimer
from mafia_io.room.session_registry import Session, SessionRegistry

logger = logging.getLogger(__name__)

T = TypeVar("T")


class CommandDispatcher:
    """Applies inbound player commands to sessions one at a time.

    Each command runs under its session's lock. Notifications produced by
    the command are handed to ``sink`` after the lock is released.
    """

    def __init__(
        self,
        registry: SessionRegistry,
        sink: Optional[NotificationSink] = None,
        timer: Optional[PhaseTimer] = None,
    ) -> None:
        self.registry = registry
        self.sink = sink or discard_notifications
        self.timer = timer or NullPhaseTimer()

    # commands

    def create_session(
        self,
        host_identity: str,
        host_name: str,
        lobby_name: str,
        capacity: Optional[int] = None,
    ) -> str:
        code = self.registry.create_session(lobby_name, capacity)
        session = self.registry.must_get_session(code)
        self._wire(session)

        existing = self.registry.session_code_for(host_identity)
        if existing is not None:
            # an identity is seated in at most one session
            self.leave_session(existing, host_identity)

        try:
            self.join_session(code, host_identity, host_name)
        except GameError:
            self.registry.remove_session(code)
            raise
        return code

    def join_session(self, code: str, identity: str, name: str) -> dict:
        session = self.registry.must_get_session(code)
        previous = self.registry.session_code_for(identity)
        self.registry.bind_identity(identity, code)
        nickname = (name or "").strip() or identity
        try:
            player = self._run(session, lambda engine: engine.add_player(identity, nickname))
        except GameError:
            if previous != code:
                self.registry.unbind_identity(identity, code)
            raise
        return {"code": code, "player_id": player.player_id, "host": player.host}

    def set_ready(self, code: str, identity: str, ready: Optional[bool] = None) -> bool:
        session = self.registry.must_get_session(code)
        return self._run(session, lambda engine: engine.set_ready(identity, ready))

    def start_game(self, code: str, identity: str) -> None:
        session = self.registry.must_get_session(code)
        self._run(session, lambda engine: engine.start_game(identity))

    def submit_night_action(self, code: str, identity: str, target_id: Optional[str]) -> None:
        session = self.registry.must_get_session(code)
        self._run(session, lambda engine: engine.submit_night_action(identity, target_id))

    def cast_vote(self, code: str, identity: str, target_id: Optional[str]) -> None:
        session = self.registry.must_get_session(code)
        self._run(session, lambda engine: engine.cast_vote(identity, target_id))

    def send_chat(self, code: str, identity: str, text: str, mafia_only: bool = False) -> None:
        session = self.registry.must_get_session(code)
        self._run(session, lambda engine: engine.send_chat(identity, text, mafia_only))

    def leave_session(self, code: str, identity: str) -> None:
        session = self.registry.get_session(code)
        self.registry.unbind_identity(identity, code)
        if session is None:
            return
        try:
            self._run(session, lambda engine: engine.remove_player(identity))
        except GameError:
            logger.debug("[Dispatcher] leave for unknown player %s in %s", identity, code)

    def disconnect(self, identity: str, code: Optional[str] = None) -> None:
        bound = self.registry.session_code_for(identity)
        if bound is None or (code is not None and bound != code):
            return
        self.leave_session(bound, identity)

    def subscribe(self, code: str, identity: str) -> dict:
        """Private catch-up for a (re)connecting socket."""
        session = self.registry.must_get_session(code)
        with session.lock:
            session.engine.roster.must_get(identity)
            state = session.engine.public_state(viewer_id=identity)
            history = session.engine.message_history()
        self._deliver(
            [
                Notification(
                    kind=NotificationKind.MESSAGE_HISTORY,
                    session_code=code,
                    payload={"messages": history},
                    recipient=identity,
                )
            ]
        )
        return state

    def state(self, code: str, viewer_id: Optional[str] = None) -> dict:
        session = self.registry.must_get_session(code)
        with session.lock:
            return session.engine.public_state(viewer_id=viewer_id)

    # timers

    def on_phase_timeout(self, code: str, epoch: int) -> bool:
        session = self.registry.get_session(code)
        if session is None:
            return False
        return self._run(session, lambda engine: engine.expire_phase(epoch))

    def expire_session(self, code: str) -> None:
        session = self.registry.get_session(code)
        if session is None:
            return
        with session.lock:
            if session.engine.phase != Phase.ENDED:
                return
        self._drop(code)

    # internals

    def _wire(self, session: Session) -> None:
        code = session.code
        config = self.registry.config.timeout

        def _on_phase_start(snapshot: SessionSnapshot) -> None:
            key = f"{code}:phase"
            self.timer.cancel(key)
            epoch = snapshot.phase_epoch
            delay = 0.0
            if snapshot.phase == Phase.NIGHT:
                delay = float(config.night_action_seconds)
            elif snapshot.phase == Phase.DAY:
                delay = float(config.day_vote_seconds)
            elif snapshot.phase == Phase.ENDED and config.ended_retention_seconds > 0:
                self.timer.schedule(
                    f"{code}:retention",
                    float(config.ended_retention_seconds),
                    lambda: self.expire_session(code),
                )
            if delay > 0:
                self.timer.schedule(key, delay, lambda: self.on_phase_timeout(code, epoch))

        session.engine.register_hook("on_phase_start", _on_phase_start)

    def _run(self, session: Session, command: Callable[[GameEngine], T]) -> T:
        with session.lock:
            engine = session.engine
            try:
                result = command(engine)
            except GameError as exc:
                logger.debug("[Dispatcher] %s rejected: %s", session.code, exc.code)
                raise
            notifications = engine.drain_notifications()
            drop = engine.roster.is_empty or (
                engine.phase == Phase.ENDED and not any(p.connected for p in engine.roster)
            )
        if drop:
            self._drop(session.code)
        self._deliver(notifications)
        return result

    def _drop(self, code: str) -> None:
        self.timer.cancel(f"{code}:phase")
        self.timer.cancel(f"{code}:retention")
        self.registry.remove_session(code)

    def _deliver(self, notifications: List[Notification]) -> None:
        if not notifications:
            return
        self.sink(notifications)
