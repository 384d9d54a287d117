"""Builders for incidents, readings and fake sockets used across the tests."""

from __future__ import annotations

import json
from collections.abc import Iterable
from typing import Any
from unittest.mock import AsyncMock

from incidentwatch.ws_models import Incident, Reading

CREATED_AT = "2025-01-01T12:00:00+00:00"


def make_reading(
    temperature: float = 72.0,
    pressure: float = 20.0,
    timestamp: str = CREATED_AT,
) -> Reading:
    return Reading(timestamp=timestamp, temperature=temperature, pressure=pressure)


def make_incident(
    incident_id: str = "test-incident",
    *,
    state_id: str = "OPEN",
    assigned_to: str | None = None,
    escalation_level_id: str = "esc-1",
    incident_type_ids: Iterable[str] = (),
    readings: Iterable[Reading] = (),
    priority: int = 3,
) -> Incident:
    return Incident(
        incident_id=incident_id,
        site_id="site-1",
        asset_id="asset-1",
        alarm_id="alarm-1",
        priority=priority,
        created_at=CREATED_AT,
        assigned_to=assigned_to,
        state_id=state_id,
        escalation_level_id=escalation_level_id,
        incident_type_ids=list(incident_type_ids),
        readings=list(readings),
    )


def incident_payload(incident_id: str = "test-incident", **overrides: Any) -> dict[str, Any]:
    """Wire-shaped (camelCase) incident dict, as a browser would send it."""
    payload: dict[str, Any] = {
        "incidentId": incident_id,
        "siteId": "site-1",
        "assetId": "asset-1",
        "alarmId": "alarm-1",
        "priority": 2,
        "createdAt": CREATED_AT,
        "assignedTo": None,
        "stateId": "OPEN",
        "escalationLevelId": "esc-1",
        "incidentTypeIds": ["type-electrical"],
    }
    payload.update(overrides)
    return payload


def make_ws() -> AsyncMock:
    """Create a mock WebSocket with ``send_text``."""
    ws = AsyncMock()
    ws.send_text = AsyncMock()
    return ws


def sent_frames(ws: AsyncMock) -> list[dict[str, Any]]:
    """Decode every frame sent to *ws* so far, in order."""
    return [json.loads(call.args[0]) for call in ws.send_text.await_args_list]
