"""Socket-owning viewer client.

``IncidentViewerClient`` holds one WebSocket connection to the server,
validates every inbound frame, folds it into an immutable
:class:`~incidentwatch_viewer.state.ViewerState` and notifies the UI through
plain callbacks.  All state transitions go through the pure functions in
``reconcile`` and ``interval``; this module only adds I/O and timing.
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Callable
from dataclasses import replace
from typing import Any

import websockets
from pydantic import BaseModel
from websockets.exceptions import ConnectionClosed

from incidentwatch.constants import DEFAULT_READING_INTERVAL_MS, INTERVAL_ACK_TIMEOUT_MS
from incidentwatch.ws_models import (
    AddIncidentMessage,
    Incident,
    UpdateIncidentMessage,
    dump_message,
)

from .interval import ACK_TIMEOUT_MESSAGE, expire_pending, request_interval
from .reconcile import decode_server_frame, frame_warning, reduce, upsert
from .state import PendingInterval, ViewerState

LOGGER = logging.getLogger(__name__)

DEFAULT_URL = "ws://localhost:8080/ws"


def _log_connect() -> None:
    LOGGER.info("[ws] connected")


def _log_disconnect() -> None:
    LOGGER.info("[ws] disconnected")


def _log_error(message: str) -> None:
    LOGGER.warning("[ws] error: %s", message)


class IncidentViewerClient:
    """Keeps a local mirror of the server's incidents and reading interval.

    *connect* defaults to :func:`websockets.connect`; tests pass a factory
    returning any async context manager that yields an object with
    ``send``/``close`` and async iteration over incoming frames.
    """

    def __init__(
        self,
        url: str = DEFAULT_URL,
        *,
        reading_interval_ms: int = DEFAULT_READING_INTERVAL_MS,
        ack_timeout_s: float = INTERVAL_ACK_TIMEOUT_MS / 1000.0,
        on_connect: Callable[[], None] | None = None,
        on_disconnect: Callable[[], None] | None = None,
        on_error: Callable[[str], None] | None = None,
        on_change: Callable[[ViewerState], None] | None = None,
        connect: Callable[[str], Any] | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.url = url
        self._connect = connect or websockets.connect
        self._clock = clock
        self._ack_timeout_s = ack_timeout_s
        self._on_connect = on_connect or _log_connect
        self._on_disconnect = on_disconnect or _log_disconnect
        self._on_error = on_error or _log_error
        self._on_change = on_change
        self._state = ViewerState(reading_interval_ms=int(reading_interval_ms))
        self._ws: Any | None = None
        self._ack_task: asyncio.Task[None] | None = None

    @property
    def state(self) -> ViewerState:
        return self._state

    @property
    def connected(self) -> bool:
        return self._ws is not None

    # -- state plumbing --------------------------------------------------------

    def _call_hook(self, hook: Callable[..., None] | None, *args: Any) -> None:
        if hook is None:
            return
        try:
            hook(*args)
        except Exception:
            LOGGER.warning("Viewer hook %r failed", hook, exc_info=True)

    def _commit(self, next_state: ViewerState, warning: str | None = None) -> None:
        """Store *next_state*; *warning* reaches ``on_error`` every time it is given."""
        if next_state is not self._state:
            self._state = next_state
            self._call_hook(self._on_change, next_state)
        if warning:
            self._call_hook(self._on_error, warning)

    def handle_frame(self, raw: str | bytes) -> None:
        """Validate and apply one inbound frame; invalid frames are ignored."""
        message = decode_server_frame(raw)
        if message is None:
            return
        previous = self._state
        next_state = reduce(previous, message)
        self._commit(next_state, frame_warning(previous, message, next_state))
        if self._state.pending_interval is None:
            self._cancel_ack_timer()

    # -- ack timer -------------------------------------------------------------

    def _cancel_ack_timer(self) -> None:
        task, self._ack_task = self._ack_task, None
        if task is not None and task is not asyncio.current_task():
            task.cancel()

    def _arm_ack_timer(self, pending: PendingInterval) -> None:
        self._cancel_ack_timer()
        self._ack_task = asyncio.create_task(
            self._await_ack(pending), name="viewer-interval-ack"
        )

    async def _await_ack(self, pending: PendingInterval) -> None:
        await asyncio.sleep(max(0.0, pending.deadline - self._clock()))
        self._ack_task = None
        if self._state.pending_interval is pending:
            self._commit(expire_pending(self._state, pending.deadline), ACK_TIMEOUT_MESSAGE)

    # -- outbound --------------------------------------------------------------

    async def _send(self, message: BaseModel) -> bool:
        ws = self._ws
        if ws is None:
            LOGGER.debug("Not connected; dropping outbound %s", getattr(message, "type", "?"))
            return False
        try:
            await ws.send(dump_message(message))
        except ConnectionClosed:
            LOGGER.debug("Connection closed while sending", exc_info=True)
            return False
        return True

    async def send_incident(self, incident: Incident) -> bool:
        """Ask the server to add *incident*; the list changes on the echo."""
        return await self._send(AddIncidentMessage(incident=incident))

    async def update_incident(self, incident: Incident) -> bool:
        """Apply *incident* locally right away, then send it to the server."""
        self._commit(replace(self._state, incidents=upsert(self._state.incidents, incident)))
        return await self._send(UpdateIncidentMessage(incident=incident))

    async def set_reading_interval(self, interval_ms: int) -> bool:
        """Propose a new global reading interval.

        While disconnected the value is only kept locally and is proposed
        again when the next connection opens.
        """
        if self._ws is None:
            self._commit(replace(self._state, reading_interval_ms=int(interval_ms)))
            return False
        next_state, message = request_interval(
            self._state, interval_ms, self._clock(), timeout_s=self._ack_timeout_s
        )
        self._commit(next_state)
        if next_state.pending_interval is not None:
            self._arm_ack_timer(next_state.pending_interval)
        return await self._send(message)

    # -- connection lifecycle --------------------------------------------------

    async def run(self) -> None:
        """Connect once and process frames until the connection closes."""
        async with self._connect(self.url) as ws:
            self._ws = ws
            self._commit(replace(self._state, connection_status="connected", last_error=None))
            try:
                await self.set_reading_interval(self._state.reading_interval_ms)
                self._call_hook(self._on_connect)
                async for raw in ws:
                    self.handle_frame(raw)
            except ConnectionClosed:
                LOGGER.debug("Connection to %s closed", self.url, exc_info=True)
            finally:
                self._ws = None
                self._cancel_ack_timer()
                self._commit(
                    replace(self._state, connection_status="disconnected", pending_interval=None)
                )
                self._call_hook(self._on_disconnect)

    async def close(self) -> None:
        ws = self._ws
        self._cancel_ack_timer()
        if ws is not None:
            await ws.close()
