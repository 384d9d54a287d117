"""Immutable viewer state shared by the reducer and the interval protocol."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Literal

from incidentwatch.constants import DEFAULT_READING_INTERVAL_MS
from incidentwatch.ws_models import Catalog, Incident

ConnectionStatus = Literal["connected", "disconnected"]


@dataclass(frozen=True, slots=True)
class PendingInterval:
    """An interval request still waiting for ``readingIntervalUpdated``.

    *deadline* is on the same monotonic clock the caller passes as ``now``.
    """

    value: int
    deadline: float


@dataclass(frozen=True, slots=True)
class ViewerState:
    incidents: tuple[Incident, ...] = ()
    catalog: Catalog = field(default_factory=Catalog)
    connection_status: ConnectionStatus = "disconnected"
    reading_interval_ms: int = DEFAULT_READING_INTERVAL_MS
    last_error: str | None = None
    pending_interval: PendingInterval | None = None

    def get(self, incident_id: str) -> Incident | None:
        for incident in self.incidents:
            if incident.incident_id == incident_id:
                return incident
        return None
