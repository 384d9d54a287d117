"""Health check endpoint."""

from __future__ import annotations

from typing import TYPE_CHECKING

from fastapi import APIRouter

from ..api_models import HealthResponse
from ..constants import PROTOCOL_VERSION

if TYPE_CHECKING:
    from ..app import RuntimeState


def create_health_routes(state: RuntimeState) -> APIRouter:
    router = APIRouter()

    @router.get("/api/health", response_model=HealthResponse)
    async def health() -> HealthResponse:
        return {
            "status": "ok",
            "protocol_version": PROTOCOL_VERSION,
            "connections": len(state.ws_hub),
            "incidents": len(state.store),
            "reading_interval_ms": state.reading_interval_ms,
            "messages_rejected": state.messages_rejected,
        }

    return router
