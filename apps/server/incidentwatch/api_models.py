"""Pydantic response models for the IncidentWatch HTTP API."""

from __future__ import annotations

from pydantic import BaseModel


class HealthResponse(BaseModel):
    status: str
    protocol_version: str
    connections: int
    incidents: int
    reading_interval_ms: int
    messages_rejected: int
