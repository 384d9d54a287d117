"""Pydantic models for the WebSocket message contract.

These models define the versioned schema for both directions of the live
connection: client→server requests and server→client events.  Each message
is a JSON object discriminated by its ``type`` field.  Wire names are
camelCase; Python attributes are snake_case.

The ``protocolVersion`` carried by ``init`` lets the viewer and the server
evolve independently while catching drift via the exported JSON Schema
artifact (see ``ws_schema_export``).
"""

from __future__ import annotations

from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter
from pydantic.alias_generators import to_camel

from .constants import PROTOCOL_VERSION

IncidentState = Literal["OPEN", "CLOSED"]
STATE_OPEN: IncidentState = "OPEN"
STATE_CLOSED: IncidentState = "CLOSED"


class WireModel(BaseModel):
    """Base for every contract model: camelCase wire names, finite floats only."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        allow_inf_nan=False,
    )


# ---------------------------------------------------------------------------
# Data model
# ---------------------------------------------------------------------------


class Reading(WireModel):
    """One timestamped temperature/pressure sample."""

    model_config = ConfigDict(frozen=True)

    timestamp: str
    temperature: float
    pressure: float


class Incident(WireModel):
    incident_id: str
    site_id: str
    asset_id: str
    alarm_id: str
    priority: int
    created_at: str
    updated_at: str | None = None
    assigned_to: str | None = None
    state_id: IncidentState
    escalation_level_id: str
    incident_type_ids: list[str] = []
    readings: list[Reading] = []

    @property
    def last_reading(self) -> Reading | None:
        return self.readings[-1] if self.readings else None


class EscalationLevel(WireModel):
    id: str
    name: str


class IncidentType(WireModel):
    id: str
    name: str


class Site(WireModel):
    id: str
    name: str


class Asset(WireModel):
    id: str
    site_id: str
    display_name: str
    model: str
    region_name: str


class Alarm(WireModel):
    alarm_id: str
    code: str
    description: str
    legacy_id: str | None = None


class Catalog(WireModel):
    """Static reference data.  Every list defaults to empty, never missing."""

    escalation_levels: list[EscalationLevel] = []
    incident_types: list[IncidentType] = []
    sites: list[Site] = []
    assets: list[Asset] = []
    alarms: list[Alarm] = []


# ---------------------------------------------------------------------------
# Client → server
# ---------------------------------------------------------------------------


class AddIncidentMessage(WireModel):
    type: Literal["addIncident"] = "addIncident"
    incident: Incident


class UpdateIncidentMessage(WireModel):
    type: Literal["updateIncident"] = "updateIncident"
    incident: Incident


class SetReadingIntervalMessage(WireModel):
    type: Literal["setReadingInterval"] = "setReadingInterval"
    # Fractional milliseconds are accepted and rounded when the server clamps.
    interval_ms: int | float


ClientMessage = Annotated[
    Union[AddIncidentMessage, UpdateIncidentMessage, SetReadingIntervalMessage],
    Field(discriminator="type"),
]

# ---------------------------------------------------------------------------
# Server → client
# ---------------------------------------------------------------------------


class InitMessage(WireModel):
    """Full snapshot sent once, immediately after the connection opens."""

    type: Literal["init"] = "init"
    protocol_version: str | None = PROTOCOL_VERSION
    incidents: list[Incident] | None = None
    catalog: Catalog | None = None


class IncidentAddedMessage(WireModel):
    type: Literal["incidentAdded"] = "incidentAdded"
    incident: Incident


class IncidentUpdatedMessage(WireModel):
    type: Literal["incidentUpdated"] = "incidentUpdated"
    incident: Incident


class ReadingIntervalUpdatedMessage(WireModel):
    type: Literal["readingIntervalUpdated"] = "readingIntervalUpdated"
    interval_ms: int


class ErrorMessage(WireModel):
    type: Literal["error"] = "error"
    code: str | None = None
    message: str | None = None


ServerMessage = Annotated[
    Union[
        InitMessage,
        IncidentAddedMessage,
        IncidentUpdatedMessage,
        ReadingIntervalUpdatedMessage,
        ErrorMessage,
    ],
    Field(discriminator="type"),
]

CLIENT_MESSAGE_ADAPTER: TypeAdapter[ClientMessage] = TypeAdapter(ClientMessage)
SERVER_MESSAGE_ADAPTER: TypeAdapter[ServerMessage] = TypeAdapter(ServerMessage)


def parse_client_message(payload: Any) -> ClientMessage:
    """Validate a decoded JSON value as a client message.

    Raises ``pydantic.ValidationError`` for anything that is not one of the
    known client message shapes (including non-objects and unknown types).
    """
    return CLIENT_MESSAGE_ADAPTER.validate_python(payload)


def parse_server_message(payload: Any) -> ServerMessage:
    """Validate a decoded JSON value as a server message."""
    return SERVER_MESSAGE_ADAPTER.validate_python(payload)


def dump_message(message: BaseModel) -> str:
    """Serialise a contract model to its compact wire form."""
    return message.model_dump_json(by_alias=True, exclude_none=True)
