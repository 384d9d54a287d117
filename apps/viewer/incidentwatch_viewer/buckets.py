"""Board columns: split incidents into new, active and completed."""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from typing import Literal

from incidentwatch.ws_models import STATE_CLOSED, STATE_OPEN, Incident

IncidentBucket = Literal["new", "active", "completed"]
BUCKETS: tuple[IncidentBucket, ...] = ("new", "active", "completed")


def bucket_for(incident: Incident) -> IncidentBucket | None:
    """Column an incident belongs in; ``None`` only for an unknown state."""
    if incident.state_id == STATE_CLOSED:
        return "completed"
    if incident.state_id == STATE_OPEN:
        return "active" if incident.assigned_to else "new"
    return None


def _matches_filters(
    incident: Incident,
    escalation_level_id: str | None,
    incident_type_ids: Sequence[str] | None,
) -> bool:
    if escalation_level_id and incident.escalation_level_id != escalation_level_id:
        return False
    if incident_type_ids:
        wanted = set(incident_type_ids)
        if not wanted.intersection(incident.incident_type_ids):
            return False
    return True


def filter_incidents(
    incidents: Iterable[Incident],
    bucket: IncidentBucket,
    escalation_level_id: str | None = None,
    incident_type_ids: Sequence[str] | None = None,
) -> list[Incident]:
    """Incidents in *bucket* that pass the optional filters, order preserved.

    An escalation level filters by equality; a non-empty type list keeps
    incidents sharing at least one type with it.
    """
    return [
        incident
        for incident in incidents
        if _matches_filters(incident, escalation_level_id, incident_type_ids)
        and bucket_for(incident) == bucket
    ]


def group_by_bucket(
    incidents: Iterable[Incident],
    escalation_level_id: str | None = None,
    incident_type_ids: Sequence[str] | None = None,
) -> dict[IncidentBucket, list[Incident]]:
    grouped: dict[IncidentBucket, list[Incident]] = {bucket: [] for bucket in BUCKETS}
    for incident in incidents:
        if not _matches_filters(incident, escalation_level_id, incident_type_ids):
            continue
        bucket = bucket_for(incident)
        if bucket is not None:
            grouped[bucket].append(incident)
    return grouped
