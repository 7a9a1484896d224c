"""
FastAPI web application for multiplayer chess rooms.

Exposes one WebSocket endpoint (/ws) that carries every room action and
event, plus a read-only REST endpoint (GET /api/rooms) with the room list.

Architecture notes:
- One connection is one identity ("conn-<n>"). It is registered with the
  notifier on connect and removed from its room on disconnect.
- Handler boundary: every RoomError or malformed message is answered with an
  errorMsg to the sender only. Unexpected exceptions are logged and reported
  as a generic server error; the socket stays open.
- The registry, notifier and scheduler live on app.state and belong to one
  app instance, so tests can build isolated apps with create_app().
- Computer searches run in worker threads (see rooms/scheduler.py); the event
  loop itself never blocks on a search.
"""

import itertools
import json
import logging
from contextlib import asynccontextmanager
from typing import Any

import uvicorn
from fastapi import FastAPI, WebSocket, WebSocketDisconnect
from pydantic import ValidationError

from rooms.errors import RoomError
from rooms.notifier import Notifier
from rooms.registry import SessionRegistry
from web.config import ServerSettings
from web.protocol import RoomSummary, dispatch

_log = logging.getLogger(__name__)


class WebSocketNotifier(Notifier):
    """Delivers events to connected WebSockets keyed by identity."""

    def __init__(self) -> None:
        self._sockets: dict[str, WebSocket] = {}

    def register(self, identity: str, ws: WebSocket) -> None:
        self._sockets[identity] = ws

    def unregister(self, identity: str) -> None:
        self._sockets.pop(identity, None)

    def connected(self) -> list[str]:
        return list(self._sockets)

    async def send(self, identity: str, event: str, payload: Any) -> None:
        ws = self._sockets.get(identity)
        if ws is None:
            return
        try:
            await ws.send_json({"type": event, "payload": payload})
        except Exception as exc:
            # The receive loop notices the disconnect and leaves the room.
            _log.warning("dropping %s after failed %s send: %s", identity, event, exc)
            self.unregister(identity)


def create_app(settings: ServerSettings | None = None) -> FastAPI:
    """
    Build an application with its own registry.

    Args:
        settings: Server settings; read from the environment when omitted.
    """
    settings = settings or ServerSettings.from_env()
    logging.basicConfig(level=settings.log_level)

    notifier = WebSocketNotifier()
    registry = SessionRegistry(notifier, ai_delay_ms=settings.ai_delay_ms)
    connection_ids = itertools.count(1)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        yield
        await registry.shutdown()

    app = FastAPI(title="Chess Rooms", version="1.0.0", lifespan=lifespan)
    app.state.settings = settings
    app.state.registry = registry
    app.state.notifier = notifier

    @app.get("/api/rooms", response_model=list[RoomSummary])
    def api_rooms() -> list[dict]:
        """List live rooms for discovery."""
        return registry.list_rooms()

    @app.websocket("/ws")
    async def ws_endpoint(ws: WebSocket) -> None:
        await ws.accept()
        identity = f"conn-{next(connection_ids)}"
        notifier.register(identity, ws)
        _log.info("%s connected", identity)
        await registry.send_room_list(identity)

        try:
            while True:
                message = await ws.receive()
                if message["type"] == "websocket.disconnect":
                    raise WebSocketDisconnect(message.get("code", 1000))
                text = message.get("text")
                if text is None:
                    # Binary frames carry no JSON message.
                    await notifier.send(identity, "errorMsg", "Malformed request.")
                    continue
                try:
                    raw = json.loads(text)
                    await dispatch(registry, identity, raw)
                except RoomError as exc:
                    await notifier.send(identity, "errorMsg", str(exc))
                except (json.JSONDecodeError, ValidationError):
                    await notifier.send(identity, "errorMsg", "Malformed request.")
                except Exception:
                    # Never crash the socket loop on handler errors.
                    _log.exception("handler failed for %s: %s", identity, text[:200])
                    await notifier.send(identity, "errorMsg", "Server error.")
        except WebSocketDisconnect:
            _log.info("%s disconnected", identity)
        finally:
            notifier.unregister(identity)
            await registry.disconnect(identity)

    return app


app = create_app()


def main() -> None:
    settings: ServerSettings = app.state.settings
    uvicorn.run(app, host=settings.host, port=settings.port, log_level=settings.log_level.lower())


if __name__ == "__main__":
    main()
