"""Tests for the WebSocket message contract models."""

from __future__ import annotations

import json

import pytest
from builders import incident_payload, make_incident, make_reading
from pydantic import ValidationError

from incidentwatch.constants import PROTOCOL_VERSION
from incidentwatch.ws_models import (
    AddIncidentMessage,
    ErrorMessage,
    IncidentUpdatedMessage,
    InitMessage,
    ReadingIntervalUpdatedMessage,
    SetReadingIntervalMessage,
    UpdateIncidentMessage,
    dump_message,
    parse_client_message,
    parse_server_message,
)


def test_parse_add_incident_from_wire_names() -> None:
    message = parse_client_message({"type": "addIncident", "incident": incident_payload("abc-1")})
    assert isinstance(message, AddIncidentMessage)
    assert message.incident.incident_id == "abc-1"
    assert message.incident.escalation_level_id == "esc-1"
    assert message.incident.incident_type_ids == ["type-electrical"]
    assert message.incident.readings == []


def test_parse_update_incident() -> None:
    message = parse_client_message(
        {"type": "updateIncident", "incident": incident_payload("x", assignedTo="user-1")}
    )
    assert isinstance(message, UpdateIncidentMessage)
    assert message.incident.assigned_to == "user-1"


@pytest.mark.parametrize("value", [1000, 1000.0])
def test_parse_set_reading_interval(value) -> None:
    message = parse_client_message({"type": "setReadingInterval", "intervalMs": value})
    assert isinstance(message, SetReadingIntervalMessage)
    assert message.interval_ms == 1000


def test_parse_fractional_reading_interval() -> None:
    message = parse_client_message({"type": "setReadingInterval", "intervalMs": 1000.5})
    assert message.interval_ms == 1000.5


@pytest.mark.parametrize(
    "payload",
    [
        [],
        "addIncident",
        42,
        {},
        {"type": "deleteIncident", "incidentId": "inc-1001"},
        {"type": "setReadingInterval"},
        {"type": "setReadingInterval", "intervalMs": "fast"},
        {"type": "addIncident"},
        {"type": "addIncident", "incident": {"incidentId": "abc"}},
        {"type": "updateIncident", "incident": incident_payload(stateId="PENDING")},
    ],
)
def test_invalid_client_messages_are_rejected(payload) -> None:
    with pytest.raises(ValidationError):
        parse_client_message(payload)


def test_non_finite_reading_values_are_rejected() -> None:
    incident = incident_payload(
        readings=[{"timestamp": "t", "temperature": float("nan"), "pressure": 20.0}]
    )
    with pytest.raises(ValidationError):
        parse_client_message({"type": "updateIncident", "incident": incident})


def test_unknown_fields_are_ignored() -> None:
    message = parse_client_message(
        {"type": "addIncident", "incident": incident_payload(color="red"), "extra": True}
    )
    assert isinstance(message, AddIncidentMessage)


def test_reading_is_immutable() -> None:
    reading = make_reading()
    with pytest.raises(ValidationError):
        reading.temperature = 99.0


def test_dump_uses_camel_case_and_omits_none() -> None:
    incident = make_incident("abc-1", readings=[make_reading()])
    data = json.loads(dump_message(IncidentUpdatedMessage(incident=incident)))
    assert data["type"] == "incidentUpdated"
    assert data["incident"]["incidentId"] == "abc-1"
    assert data["incident"]["escalationLevelId"] == "esc-1"
    assert data["incident"]["readings"][0]["temperature"] == 72.0
    assert "assignedTo" not in data["incident"]
    assert "updatedAt" not in data["incident"]


def test_interval_and_error_messages_dump() -> None:
    assert json.loads(dump_message(ReadingIntervalUpdatedMessage(interval_ms=250))) == {
        "type": "readingIntervalUpdated",
        "intervalMs": 250,
    }
    assert json.loads(dump_message(ErrorMessage(code="INVALID_MESSAGE", message="bad"))) == {
        "type": "error",
        "code": "INVALID_MESSAGE",
        "message": "bad",
    }


def test_init_defaults_protocol_version() -> None:
    data = json.loads(dump_message(InitMessage(incidents=[], catalog=None)))
    assert data == {"type": "init", "protocolVersion": PROTOCOL_VERSION, "incidents": []}


def test_server_init_catalog_lists_default_to_empty() -> None:
    message = parse_server_message(
        {"type": "init", "catalog": {"sites": [{"id": "site-1", "name": "Plant"}]}}
    )
    assert isinstance(message, InitMessage)
    assert message.incidents is None
    assert [site.id for site in message.catalog.sites] == ["site-1"]
    assert message.catalog.assets == []
    assert message.catalog.alarms == []
    assert message.catalog.escalation_levels == []
    assert message.catalog.incident_types == []


def test_server_error_fields_are_optional() -> None:
    message = parse_server_message({"type": "error"})
    assert isinstance(message, ErrorMessage)
    assert message.code is None
    assert message.message is None


def test_server_message_round_trip_through_dump() -> None:
    message = IncidentUpdatedMessage(incident=make_incident("abc-1", readings=[make_reading()]))
    parsed = parse_server_message(json.loads(dump_message(message)))
    assert parsed == message
