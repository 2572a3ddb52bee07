from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from fastapi import Request, WebSocket

from mafia_io.core.game_config import GameConfig, default_game_config
from mafia_io.engine.randomness import RandomSource
from mafia_io.room.command_dispatcher import CommandDispatcher
from mafia_io.room.phase_timer import AsyncioPhaseTimer
from mafia_io.room.session_registry import SessionRegistry
from mafia_io.websocket.handler import WSConnectionManager


@dataclass(slots=True)
class Services:
    config: GameConfig
    registry: SessionRegistry
    dispatcher: CommandDispatcher
    ws_manager: WSConnectionManager
    timer: AsyncioPhaseTimer


def build_services(config: Optional[GameConfig] = None, rng: Optional[RandomSource] = None) -> Services:
    config = config or default_game_config()
    registry = SessionRegistry(config=config, rng=rng)
    ws_manager = WSConnectionManager()
    timer = AsyncioPhaseTimer()
    dispatcher = CommandDispatcher(registry, sink=ws_manager.publish, timer=timer)
    return Services(
        config=config,
        registry=registry,
        dispatcher=dispatcher,
        ws_manager=ws_manager,
        timer=timer,
    )


def get_dispatcher(request: Request) -> CommandDispatcher:
    return request.app.state.services.dispatcher


def get_registry(request: Request) -> SessionRegistry:
    return request.app.state.services.registry


def ws_services(websocket: WebSocket) -> Services:
    return websocket.app.state.services
