"""Static reference data (catalog) and the startup incident seed.

The built-in catalog mirrors the demo plant: two sites, four assets, four
alarm definitions.  A deployment can point ``catalog.path`` at a YAML or JSON
file with the same shape to replace it; the file is read once at startup and
never mutated afterwards.
"""

from __future__ import annotations

import logging
import random
from datetime import UTC, datetime, timedelta
from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError

from .constants import MAX_READINGS
from .readings import seed_history
from .ws_models import Catalog, Incident

LOGGER = logging.getLogger(__name__)

DEFAULT_CATALOG_DATA: dict[str, list[dict[str, Any]]] = {
    "escalationLevels": [
        {"id": "esc-1", "name": "Level 1"},
        {"id": "esc-2", "name": "Level 2"},
    ],
    "incidentTypes": [
        {"id": "type-electrical", "name": "Electrical"},
        {"id": "type-cooling", "name": "Cooling"},
        {"id": "type-controls", "name": "Controls"},
        {"id": "type-facilities", "name": "Facilities"},
    ],
    "sites": [
        {"id": "site-1", "name": "North Campus Plant"},
        {"id": "site-2", "name": "Harbor District Facility"},
    ],
    "assets": [
        {
            "id": "asset-1",
            "siteId": "site-1",
            "displayName": "Chiller CH-11",
            "model": "Trane RTAC 250",
            "regionName": "Mechanical Room 3",
        },
        {
            "id": "asset-2",
            "siteId": "site-1",
            "displayName": "AHU AH-19",
            "model": "Carrier 39HQ",
            "regionName": "Roof Zone 2",
        },
        {
            "id": "asset-3",
            "siteId": "site-2",
            "displayName": "Boiler BL-03",
            "model": "Cleaver-Brooks CB-500",
            "regionName": "Basement Plant 5",
        },
        {
            "id": "asset-4",
            "siteId": "site-2",
            "displayName": "Cooling Tower CT-21",
            "model": "BAC FXV",
            "regionName": "South Yard 1",
        },
    ],
    "alarms": [
        {
            "alarmId": "alarm-100",
            "code": "HV-100",
            "description": "High condenser pressure",
            "legacyId": "100",
        },
        {
            "alarmId": "alarm-220",
            "code": "HV-220",
            "description": "Supply air temp deviation",
            "legacyId": "220",
        },
        {
            "alarmId": "alarm-310",
            "code": "HV-310",
            "description": "Boiler flame failure",
            "legacyId": "310",
        },
        {
            "alarmId": "alarm-420",
            "code": "HV-420",
            "description": "BAS comms loss",
            "legacyId": "420",
        },
    ],
}

# (incident fields, created minutes ago, updated minutes ago)
_SEED_INCIDENTS: tuple[tuple[dict[str, Any], int, int | None], ...] = (
    (
        {
            "incidentId": "inc-1001",
            "siteId": "site-1",
            "assetId": "asset-1",
            "alarmId": "alarm-100",
            "priority": 1,
            "stateId": "OPEN",
            "escalationLevelId": "esc-1",
            "incidentTypeIds": ["type-electrical"],
        },
        12,
        None,
    ),
    (
        {
            "incidentId": "inc-1002",
            "siteId": "site-2",
            "assetId": "asset-3",
            "alarmId": "alarm-310",
            "priority": 2,
            "assignedTo": "user-2",
            "stateId": "OPEN",
            "escalationLevelId": "esc-1",
            "incidentTypeIds": ["type-cooling"],
        },
        42,
        None,
    ),
    (
        {
            "incidentId": "inc-1003",
            "siteId": "site-2",
            "assetId": "asset-4",
            "alarmId": "alarm-420",
            "priority": 3,
            "assignedTo": "user-1",
            "stateId": "OPEN",
            "escalationLevelId": "esc-2",
            "incidentTypeIds": ["type-controls"],
        },
        90,
        None,
    ),
    (
        {
            "incidentId": "inc-1004",
            "siteId": "site-1",
            "assetId": "asset-2",
            "alarmId": "alarm-220",
            "priority": 1,
            "assignedTo": "user-1",
            "stateId": "CLOSED",
            "escalationLevelId": "esc-2",
            "incidentTypeIds": ["type-facilities"],
        },
        180,
        30,
    ),
)


def default_catalog() -> Catalog:
    return Catalog.model_validate(DEFAULT_CATALOG_DATA)


def load_catalog(path: Path | None) -> Catalog:
    """Return the catalog from *path*, or the built-in one.

    A missing or malformed file is logged and the built-in catalog is used,
    so a bad reference file never keeps the server from starting.
    """
    if path is None:
        return default_catalog()
    try:
        with path.open("r", encoding="utf-8") as fh:
            raw = yaml.safe_load(fh) or {}
        catalog = Catalog.model_validate(raw)
    except (OSError, yaml.YAMLError, ValidationError) as exc:
        LOGGER.warning("Could not load catalog from %s, using built-in catalog: %s", path, exc)
        return default_catalog()
    LOGGER.info(
        "Loaded catalog from %s: %d sites, %d assets, %d alarms",
        path,
        len(catalog.sites),
        len(catalog.assets),
        len(catalog.alarms),
    )
    return catalog


def seed_incidents(
    *,
    history_length: int = MAX_READINGS,
    now: datetime | None = None,
    rng: random.Random | None = None,
) -> list[Incident]:
    """Return the demo incidents, newest first, each with a full reading history."""
    now = now or datetime.now(UTC)
    incidents: list[Incident] = []
    for fields, created_ago_min, updated_ago_min in _SEED_INCIDENTS:
        data = dict(fields)
        data["createdAt"] = (now - timedelta(minutes=created_ago_min)).isoformat()
        if updated_ago_min is not None:
            data["updatedAt"] = (now - timedelta(minutes=updated_ago_min)).isoformat()
        incident = Incident.model_validate(data)
        incident.readings = seed_history(history_length, rng=rng)
        incidents.append(incident)
    return incidents
