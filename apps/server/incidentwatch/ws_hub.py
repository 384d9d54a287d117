from __future__ import annotations

import asyncio
import logging
import os
from dataclasses import dataclass

from fastapi import WebSocket

LOGGER = logging.getLogger(__name__)

_WS_DEBUG = os.environ.get("INCIDENTWATCH_WS_DEBUG", "0") == "1"


# Timing constants for WebSocket fan-out
_SEND_TIMEOUT_S: float = 0.5
"""Per-message send timeout; connections exceeding this are dropped."""

_OUTBOX_MAXSIZE: int = 256
"""Queued frames per connection before a slow viewer is dropped."""

_SEND_ERROR_LOG_INTERVAL_S: float = 10.0
"""Minimum interval between logged send-error warnings to avoid log spam."""

_DROP_CLOSE_CODE: int = 1013
"""Close code sent to a viewer that was dropped for falling behind."""


@dataclass(slots=True)
class WSConnection:
    websocket: WebSocket
    outbox: asyncio.Queue[str]
    sender_task: asyncio.Task[None] | None = None
    dropped: bool = False


class WebSocketHub:
    """Fan-out of serialised frames to every connected viewer.

    Each connection owns a bounded outbox drained by its own sender task, so
    enqueuing is synchronous and never waits on a socket.  Frames therefore
    reach every connection in the order they were committed, and a slow or
    dead viewer only ever loses its own connection.
    """

    def __init__(
        self,
        *,
        send_timeout_s: float = _SEND_TIMEOUT_S,
        outbox_maxsize: int = _OUTBOX_MAXSIZE,
    ):
        self._connections: dict[int, WSConnection] = {}
        self._send_timeout_s = send_timeout_s
        self._outbox_maxsize = max(1, outbox_maxsize)
        self._last_send_error_log_ts = 0.0
        self._send_error_log_interval_s = _SEND_ERROR_LOG_INTERVAL_S
        self._close_tasks: set[asyncio.Task[None]] = set()

    def __len__(self) -> int:
        return len(self._connections)

    async def add(self, websocket: WebSocket, initial: str | None = None) -> None:
        """Register *websocket*; *initial* is queued ahead of any broadcast."""
        conn = WSConnection(
            websocket=websocket,
            outbox=asyncio.Queue(maxsize=self._outbox_maxsize),
        )
        if initial is not None:
            conn.outbox.put_nowait(initial)
        self._connections[id(websocket)] = conn
        conn.sender_task = asyncio.create_task(
            self._pump(conn), name=f"ws-sender-{id(websocket):x}"
        )
        LOGGER.info("Viewer connected (%d open)", len(self._connections))

    async def remove(self, websocket: WebSocket) -> None:
        conn = self._connections.pop(id(websocket), None)
        if conn is None:
            return
        conn.dropped = True
        task = conn.sender_task
        if task is not None and task is not asyncio.current_task():
            task.cancel()
            await asyncio.gather(task, return_exceptions=True)
        LOGGER.info("Viewer disconnected (%d open)", len(self._connections))

    def _snapshot(self) -> list[WSConnection]:
        return list(self._connections.values())

    def _enqueue(self, conn: WSConnection, text: str) -> bool:
        if conn.dropped:
            return False
        try:
            conn.outbox.put_nowait(text)
        except asyncio.QueueFull:
            self._log_send_failure(
                "WebSocket outbox full (%d frames); dropping slow connection.",
                self._outbox_maxsize,
            )
            self._drop(conn)
            return False
        return True

    def _drop(self, conn: WSConnection) -> None:
        if self._connections.get(id(conn.websocket)) is not conn:
            return
        del self._connections[id(conn.websocket)]
        conn.dropped = True
        if conn.sender_task is not None and conn.sender_task is not asyncio.current_task():
            conn.sender_task.cancel()
        task = asyncio.create_task(self._close_dropped(conn.websocket))
        self._close_tasks.add(task)
        task.add_done_callback(self._close_tasks.discard)

    async def _close_dropped(self, websocket: WebSocket) -> None:
        try:
            await asyncio.wait_for(
                websocket.close(code=_DROP_CLOSE_CODE),
                timeout=self._send_timeout_s,
            )
        except Exception:
            LOGGER.debug("Closing dropped WebSocket failed", exc_info=True)

    def _log_send_failure(self, message: str, *args: object, exc_info: bool = False) -> None:
        now = asyncio.get_running_loop().time()
        if (now - self._last_send_error_log_ts) >= self._send_error_log_interval_s:
            self._last_send_error_log_ts = now
            LOGGER.warning(message, *args, exc_info=exc_info)

    async def _pump(self, conn: WSConnection) -> None:
        while True:
            text = await conn.outbox.get()
            try:
                await asyncio.wait_for(
                    conn.websocket.send_text(text),
                    timeout=self._send_timeout_s,
                )
            except Exception:
                self._log_send_failure(
                    "WebSocket send failed; connection will be removed.",
                    exc_info=True,
                )
                self._drop(conn)
                return
            finally:
                conn.outbox.task_done()

    def send(self, websocket: WebSocket, text: str) -> bool:
        """Queue *text* for a single connection.  Returns ``False`` if it is gone."""
        conn = self._connections.get(id(websocket))
        if conn is None:
            return False
        return self._enqueue(conn, text)

    def broadcast(self, text: str) -> int:
        """Queue *text* for every connection, the originator included.

        Returns the number of connections the frame was queued for.
        """
        conns = self._snapshot()
        delivered = sum(1 for conn in conns if self._enqueue(conn, text))
        if _WS_DEBUG:
            LOGGER.debug(
                "WS_DEBUG size_bytes=%d connections=%d queued=%d",
                len(text),
                len(conns),
                delivered,
            )
        return delivered

    async def flush(self, timeout_s: float = 1.0) -> None:
        """Wait until every outbox is drained (used on shutdown and in tests)."""
        conns = self._snapshot()
        if not conns:
            return
        waiters = [asyncio.ensure_future(conn.outbox.join()) for conn in conns]
        _, pending = await asyncio.wait(waiters, timeout=timeout_s)
        for waiter in pending:
            waiter.cancel()

    async def close(self) -> None:
        for conn in self._snapshot():
            await self.remove(conn.websocket)
