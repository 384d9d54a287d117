"""WebSocket endpoint for the live incident feed."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from fastapi import APIRouter, WebSocket, WebSocketDisconnect

if TYPE_CHECKING:
    from ..app import RuntimeState

LOGGER = logging.getLogger(__name__)


def _frame_text(message: dict) -> str | None:
    """Return the text of a receive event, decoding binary frames as UTF-8."""
    text = message.get("text")
    if text is not None:
        return text
    data = message.get("bytes")
    if data is None:
        return None
    try:
        return data.decode("utf-8")
    except UnicodeDecodeError:
        LOGGER.debug("Ignoring binary WS message that is not valid UTF-8")
        return None


def create_websocket_routes(state: RuntimeState) -> APIRouter:
    router = APIRouter()

    @router.websocket("/ws")
    async def ws_endpoint(ws: WebSocket) -> None:
        await ws.accept()
        await state.connect(ws)
        try:
            while True:
                message = await ws.receive()
                if message["type"] == "websocket.disconnect":
                    raise WebSocketDisconnect(message.get("code", 1000))
                text = _frame_text(message)
                if text is None:
                    continue
                state.handle_text(ws, text)
        except WebSocketDisconnect:
            LOGGER.debug("WebSocket client disconnected")
        except Exception:
            LOGGER.warning("WebSocket handler error", exc_info=True)
        finally:
            await state.ws_hub.remove(ws)

    return router
