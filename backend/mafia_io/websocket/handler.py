from __future__ import annotations

import asyncio
import json
import logging
from collections import defaultdict
from dataclasses import dataclass
from datetime import datetime
from typing import DefaultDict, Dict, Iterable, List, Optional, Set

from fastapi import WebSocket

from mafia_io.core.notifications import Notification

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class WSSubscriber:
    session_code: str
    player_id: str
    last_event_id: int = 0


class WSConnectionManager:
    """Routes notifications to every socket of a session or of one player."""

    def __init__(self) -> None:
        self._connections: DefaultDict[str, Set[WebSocket]] = defaultdict(set)
        self._subscribers: Dict[WebSocket, WSSubscriber] = {}
        # sockets dropped after a failed send, kept until their receive loop ends
        self._stale: Dict[WebSocket, WSSubscriber] = {}
        self._event_counter: int = 0
        self._lock = asyncio.Lock()
        self._send_lock = asyncio.Lock()
        self._loop: Optional[asyncio.AbstractEventLoop] = None

    def bind_loop(self, loop: asyncio.AbstractEventLoop) -> None:
        self._loop = loop

    async def connect(self, session_code: str, player_id: str, websocket: WebSocket) -> None:
        await websocket.accept()
        async with self._lock:
            self._connections[session_code].add(websocket)
            self._subscribers[websocket] = WSSubscriber(session_code=session_code, player_id=player_id)

    async def disconnect(self, session_code: str, websocket: WebSocket) -> bool:
        """Forget a socket. True when its player has no other open socket."""
        async with self._lock:
            sub = self._subscribers.pop(websocket, None) or self._stale.pop(websocket, None)
            conns = self._connections.get(session_code)
            if conns is not None:
                conns.discard(websocket)
                if not conns:
                    del self._connections[session_code]
            if sub is None:
                return False
            return not any(
                other.player_id == sub.player_id and other.session_code == session_code
                for other in self._subscribers.values()
            )

    def publish(self, notifications: List[Notification]) -> None:
        """Sink for the dispatcher: hand delivery to the event loop."""
        loop = self._loop
        if loop is None or loop.is_closed():
            logger.debug("[WS] no loop bound, dropping %d notifications", len(notifications))
            return
        coro = self.deliver(list(notifications))
        try:
            running = asyncio.get_running_loop()
        except RuntimeError:
            running = None
        if running is loop:
            loop.create_task(coro)
        else:
            asyncio.run_coroutine_threadsafe(coro, loop)

    async def deliver(self, notifications: Iterable[Notification]) -> None:
        async with self._send_lock:
            for note in notifications:
                if note.private:
                    await self.send_to_player(note.session_code, note.recipient, note.kind.value, note.payload)
                else:
                    await self.broadcast(note.session_code, note.kind.value, note.payload)

    async def send_event(self, websocket: WebSocket, event: str, payload: Dict) -> None:
        async with self._lock:
            event_id = self._next_event_id()
            sub = self._subscribers.get(websocket)
            if sub:
                sub.last_event_id = event_id
        await websocket.send_text(self._encode(event_id, event, payload))

    async def broadcast(self, session_code: str, event: str, payload: Dict) -> None:
        async with self._lock:
            event_id = self._next_event_id()
            conns = list(self._connections.get(session_code, set()))
        await self._send_all(session_code, conns, self._encode(event_id, event, payload))

    async def send_to_player(self, session_code: str, player_id: str, event: str, payload: Dict) -> None:
        async with self._lock:
            event_id = self._next_event_id()
            conns = [
                ws
                for ws in self._connections.get(session_code, set())
                if (sub := self._subscribers.get(ws)) and sub.player_id == player_id
            ]
        await self._send_all(session_code, conns, self._encode(event_id, event, payload))

    async def _send_all(self, session_code: str, conns: List[WebSocket], message: str) -> None:
        stale = []
        for ws in conns:
            try:
                await ws.send_text(message)
            except Exception:  # noqa: BLE001
                stale.append(ws)
        if stale:
            logger.info("[WS] dropping %d stale sockets in %s", len(stale), session_code)
            async with self._lock:
                live = self._connections.get(session_code)
                for ws in stale:
                    if live is not None:
                        live.discard(ws)
                    sub = self._subscribers.pop(ws, None)
                    if sub is not None:
                        self._stale[ws] = sub
                if live is not None and not live:
                    del self._connections[session_code]

    def _next_event_id(self) -> int:
        self._event_counter += 1
        return self._event_counter

    @staticmethod
    def _encode(event_id: int, event: str, payload: Dict) -> str:
        return json.dumps(
            {
                "event_id": event_id,
                "event": event,
                "payload": payload,
                "ts": datetime.utcnow().isoformat(),
            },
            ensure_ascii=False,
        )

    def connection_count(self, session_code: str) -> int:
        return len(self._connections.get(session_code, set()))
