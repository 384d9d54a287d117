"""Route package: assembles the HTTP and WebSocket routers into one APIRouter.

Each sub-module defines a ``create_*_routes(state)`` function that returns
an ``APIRouter`` scoped to a single concern, so ``app.py`` only needs::

    from .routes import create_router
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from fastapi import APIRouter

from .health import create_health_routes
from .websocket import create_websocket_routes

if TYPE_CHECKING:
    from ..app import RuntimeState


def create_router(state: RuntimeState) -> APIRouter:
    """Assemble all route groups into one router."""
    router = APIRouter()
    router.include_router(create_health_routes(state))
    router.include_router(create_websocket_routes(state))
    return router
