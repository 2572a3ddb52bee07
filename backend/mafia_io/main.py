from __future__ import annotations

import asyncio
import json
import logging
from typing import Optional

from fastapi import FastAPI, WebSocket, WebSocketDisconnect
from fastapi.middleware.cors import CORSMiddleware

from mafia_io.api.deps import Services, build_services, ws_services
from mafia_io.api.rest import router as rest_router
from mafia_io.core.errors import GameError, InvalidCommand
from mafia_io.core.game_config import GameConfig
from mafia_io.core.notifications import NotificationKind
from mafia_io.engine.randomness import RandomSource

logger = logging.getLogger(__name__)


def create_app(config: Optional[GameConfig] = None, rng: Optional[RandomSource] = None) -> FastAPI:
    app = FastAPI(
        title="Mafia Backend",
        version="0.1.0",
        description="Session-based Mafia game server: lobbies, night actions, day votes.",
    )
    app.state.services = build_services(config, rng)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=False,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(rest_router)

    @app.get("/health")
    def health() -> dict:
        services: Services = app.state.services
        return {
            "status": "ok",
            "service": "mafia-backend",
            "summary": services.registry.health_summary(),
            "config_warnings": services.config.warnings,
        }

    @app.on_event("startup")
    async def bind_event_loop() -> None:
        loop = asyncio.get_running_loop()
        services: Services = app.state.services
        services.timer.bind_loop(loop)
        services.ws_manager.bind_loop(loop)

    @app.on_event("shutdown")
    async def cleanup_on_shutdown() -> None:
        services: Services = app.state.services
        try:
            services.timer.cancel_all()
            services.registry.shutdown_cleanup()
            logger.info("graceful shutdown cleanup completed")
        except Exception as exc:  # noqa: BLE001
            logger.exception("shutdown cleanup failed: %s", exc)

    app.add_api_websocket_route("/ws/{code}/{player_id}", session_ws)
    return app


def _handle_event(services: Services, code: str, player_id: str, event: Optional[str], payload: dict) -> None:
    dispatcher = services.dispatcher
    if event == "ready":
        ready = payload.get("ready")
        dispatcher.set_ready(code, player_id, None if ready is None else bool(ready))
    elif event == "start":
        dispatcher.start_game(code, player_id)
    elif event == "vote":
        dispatcher.cast_vote(code, player_id, payload.get("target_id"))
    elif event == "night_action":
        dispatcher.submit_night_action(code, player_id, payload.get("target_id"))
    elif event == "chat":
        text = payload.get("text")
        if not isinstance(text, str):
            raise InvalidCommand("chat text must be a string")
        dispatcher.send_chat(code, player_id, text, bool(payload.get("mafia_only", False)))
    else:
        raise InvalidCommand(f"unknown event: {event}")


def _parse_frame(raw: str) -> tuple[Optional[str], dict]:
    try:
        msg = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise InvalidCommand("frame is not valid JSON") from exc
    if not isinstance(msg, dict):
        raise InvalidCommand("frame must be a JSON object")
    payload = msg.get("payload") or {}
    if not isinstance(payload, dict):
        raise InvalidCommand("payload must be a JSON object")
    return msg.get("event") or msg.get("type"), payload


async def session_ws(websocket: WebSocket, code: str, player_id: str) -> None:
    services = ws_services(websocket)
    ws_manager = services.ws_manager
    dispatcher = services.dispatcher
    code = code.upper()

    await ws_manager.connect(code, player_id, websocket)
    try:
        state = dispatcher.subscribe(code, player_id)
    except GameError as exc:
        await ws_manager.send_event(websocket, NotificationKind.ERROR.value, exc.to_dict())
        await ws_manager.disconnect(code, websocket)
        await websocket.close(code=4404)
        return

    await ws_manager.send_event(
        websocket,
        "subscribed",
        {"code": code, "player_id": player_id, "state": state},
    )

    try:
        while True:
            raw = await websocket.receive_text()
            try:
                event, payload = _parse_frame(raw)
                if event == "leave":
                    dispatcher.leave_session(code, player_id)
                    await ws_manager.disconnect(code, websocket)
                    await websocket.close()
                    return
                if event == "state":
                    await ws_manager.send_event(websocket, "state", dispatcher.state(code, viewer_id=player_id))
                    continue
                _handle_event(services, code, player_id, event, payload)
            except GameError as exc:
                await ws_manager.send_event(websocket, NotificationKind.ERROR.value, exc.to_dict())
    except WebSocketDisconnect:
        last_socket = await ws_manager.disconnect(code, websocket)
        if last_socket:
            dispatcher.disconnect(player_id, code)
    except Exception:  # noqa: BLE001
        logger.exception("websocket loop failed for %s in %s", player_id, code)
        if await ws_manager.disconnect(code, websocket):
            dispatcher.disconnect(player_id, code)


app = create_app()
