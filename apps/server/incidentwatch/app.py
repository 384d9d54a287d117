"""Runtime orchestration: inbound messages -> store -> broadcast.

Boundary note for maintainers:
- Keep this module focused on orchestration, not domain rules.
- Incident rules belong in `incident_store.py`, reading math in `readings.py`.
- Wire shapes belong in `ws_models.py`.

Every store mutation and the enqueue of the message it produces happen
without an intervening ``await``.  The event loop is therefore the single
writer, and each viewer receives frames in commit order.
"""

from __future__ import annotations

import argparse
import json
import logging
import os
from contextlib import asynccontextmanager
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import uvicorn
from fastapi import FastAPI, WebSocket
from pydantic import ValidationError

from .config import AppConfig, load_config
from .constants import ERROR_INVALID_MESSAGE, PROTOCOL_VERSION
from .errors import IncidentWatchError
from .incident_store import IncidentStore
from .reference_data import load_catalog, seed_incidents
from .routes import create_router
from .ticker import ReadingTicker
from .ws_hub import WebSocketHub
from .ws_models import (
    AddIncidentMessage,
    Catalog,
    ErrorMessage,
    IncidentAddedMessage,
    IncidentUpdatedMessage,
    InitMessage,
    ReadingIntervalUpdatedMessage,
    SetReadingIntervalMessage,
    UpdateIncidentMessage,
    dump_message,
    parse_client_message,
)

LOGGER = logging.getLogger(__name__)

_INVALID_MESSAGE_TEXT = "Message did not match the expected schema."


@dataclass(slots=True)
class RuntimeState:
    config: AppConfig
    store: IncidentStore
    catalog: Catalog
    ws_hub: WebSocketHub
    ticker: ReadingTicker | None = None
    messages_rejected: int = 0

    @property
    def reading_interval_ms(self) -> int:
        if self.ticker is None:
            return self.config.readings.default_interval_ms
        return self.ticker.interval_ms

    def build_init_message(self) -> InitMessage:
        return InitMessage(
            protocol_version=PROTOCOL_VERSION,
            incidents=self.store.snapshot(),
            catalog=self.catalog,
        )

    async def connect(self, websocket: WebSocket) -> None:
        """Register *websocket* with the snapshot queued as its first frame."""
        await self.ws_hub.add(websocket, initial=dump_message(self.build_init_message()))

    def on_tick(self) -> None:
        for incident in self.store.advance_readings():
            self.ws_hub.broadcast(dump_message(IncidentUpdatedMessage(incident=incident)))

    def _reject(self, websocket: WebSocket, code: str, message: str) -> None:
        self.messages_rejected += 1
        self.ws_hub.send(websocket, dump_message(ErrorMessage(code=code, message=message)))

    def handle_text(self, websocket: WebSocket, text: str) -> None:
        """Apply one inbound frame from *websocket*.

        Non-JSON frames are dropped; JSON that does not match the contract
        is answered with an ``error`` frame to the sender only.  Accepted
        changes are broadcast to every viewer, the sender included.
        """
        try:
            payload: Any = json.loads(text)
        except json.JSONDecodeError:
            LOGGER.debug("Ignoring malformed WS message (not valid JSON)")
            return
        try:
            message = parse_client_message(payload)
        except ValidationError as exc:
            LOGGER.debug("Rejecting WS message that failed validation: %s", exc)
            self._reject(websocket, ERROR_INVALID_MESSAGE, _INVALID_MESSAGE_TEXT)
            return
        try:
            self.apply(message)
        except IncidentWatchError as exc:
            LOGGER.info("Rejected %s: %s", message.type, exc.message)
            self._reject(websocket, exc.code, exc.message)

    def apply(self, message: Any) -> None:
        if isinstance(message, AddIncidentMessage):
            stored = self.store.add_incident(message.incident)
            self.ws_hub.broadcast(dump_message(IncidentAddedMessage(incident=stored)))
        elif isinstance(message, UpdateIncidentMessage):
            stored = self.store.upsert_incident(message.incident)
            self.ws_hub.broadcast(dump_message(IncidentUpdatedMessage(incident=stored)))
        elif isinstance(message, SetReadingIntervalMessage):
            self.set_reading_interval(message.interval_ms)

    def set_reading_interval(self, interval_ms: float) -> int:
        """Clamp, restart the tick timer, and announce the new global interval."""
        interval = self.config.readings.clamp_interval(interval_ms)
        if interval != interval_ms:
            LOGGER.info("Requested interval %s ms clamped to %d ms", interval_ms, interval)
        if self.ticker is not None:
            self.ticker.restart(interval)
        self.ws_hub.broadcast(dump_message(ReadingIntervalUpdatedMessage(interval_ms=interval)))
        return interval


def build_runtime(config: AppConfig) -> RuntimeState:
    catalog = load_catalog(config.catalog.path)
    seeds = (
        seed_incidents(history_length=config.readings.max_history)
        if config.catalog.seed_incidents
        else []
    )
    store = IncidentStore(seeds, max_readings=config.readings.max_history)
    ws_hub = WebSocketHub(
        send_timeout_s=config.hub.send_timeout_s,
        outbox_maxsize=config.hub.outbox_maxsize,
    )
    runtime = RuntimeState(config=config, store=store, catalog=catalog, ws_hub=ws_hub)
    runtime.ticker = ReadingTicker(runtime.on_tick, config.readings.default_interval_ms)
    LOGGER.info("Runtime ready with %d seeded incident(s)", len(store))
    return runtime


def create_app(config_path: Path | None = None) -> FastAPI:
    config = load_config(config_path)
    runtime = build_runtime(config)

    async def start_runtime() -> None:
        if runtime.ticker is not None:
            runtime.ticker.start()

    async def stop_runtime() -> None:
        if runtime.ticker is not None:
            await runtime.ticker.stop()
        try:
            await runtime.ws_hub.close()
        except Exception:
            LOGGER.warning("Error closing WebSocket connections", exc_info=True)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        await start_runtime()
        try:
            yield
        finally:
            await stop_runtime()

    app = FastAPI(title="IncidentWatch", lifespan=lifespan)
    app.state.runtime = runtime
    app.include_router(create_router(runtime))
    return app


app: FastAPI | None = (
    create_app()
    if __name__ != "__main__" and os.getenv("INCIDENTWATCH_DISABLE_AUTO_APP", "0") != "1"
    else None
)


def main() -> None:
    parser = argparse.ArgumentParser(description="Run the IncidentWatch server")
    parser.add_argument("--config", type=Path, default=None, help="Path to config YAML")
    args = parser.parse_args()

    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    runtime_app = create_app(config_path=args.config)
    runtime: RuntimeState = runtime_app.state.runtime
    level = runtime.config.logging.level
    logging.getLogger().setLevel(level)
    LOGGER.info(
        "Serving WebSocket on ws://%s:%d/ws",
        runtime.config.server.host,
        runtime.config.server.port,
    )
    uvicorn.run(
        runtime_app,
        host=runtime.config.server.host,
        port=runtime.config.server.port,
        log_level=level.lower(),
    )


if __name__ == "__main__":
    main()
