"""Viewer reducer: applying server messages to ViewerState."""

from __future__ import annotations

import json

import pytest
from builders import incident_payload, make_incident

from incidentwatch.ws_models import (
    ErrorMessage,
    IncidentAddedMessage,
    IncidentUpdatedMessage,
    InitMessage,
    ReadingIntervalUpdatedMessage,
    parse_server_message,
)
from incidentwatch_viewer.reconcile import (
    DEFAULT_SERVER_ERROR,
    apply_frame,
    decode_server_frame,
    frame_warning,
    reduce,
    upsert,
)
from incidentwatch_viewer.state import PendingInterval, ViewerState


def _ids(state: ViewerState) -> list[str]:
    return [item.incident_id for item in state.incidents]


def _state(*ids: str) -> ViewerState:
    return ViewerState(incidents=tuple(make_incident(i) for i in ids))


def test_initial_state() -> None:
    state = ViewerState()
    assert state.incidents == ()
    assert state.catalog.sites == []
    assert state.connection_status == "disconnected"
    assert state.reading_interval_ms == 2000
    assert state.last_error is None
    assert state.pending_interval is None


def test_init_replaces_incidents_and_catalog() -> None:
    message = parse_server_message(
        {
            "type": "init",
            "protocolVersion": "1",
            "incidents": [incident_payload("inc-9"), incident_payload("inc-8")],
            "catalog": {"escalationLevels": [{"id": "esc-1", "name": "Level 1"}]},
        }
    )
    state = reduce(_state("old-1"), message)
    assert _ids(state) == ["inc-9", "inc-8"]
    assert [level.id for level in state.catalog.escalation_levels] == ["esc-1"]
    assert state.catalog.sites == []
    assert state.catalog.alarms == []
    assert state.last_error is None


def test_init_without_incidents_keeps_current_list() -> None:
    state = reduce(_state("keep-1"), InitMessage(incidents=None, catalog=None))
    assert _ids(state) == ["keep-1"]


def test_init_protocol_mismatch_warns_but_applies() -> None:
    message = parse_server_message(
        {"type": "init", "protocolVersion": "2", "incidents": [incident_payload("inc-1")]}
    )
    state = reduce(ViewerState(), message)
    assert _ids(state) == ["inc-1"]
    assert state.last_error == "Protocol mismatch: expected 1, got 2."


def test_incident_added_prepends_unconditionally() -> None:
    state = reduce(_state("inc-1"), IncidentAddedMessage(incident=make_incident("inc-2")))
    assert _ids(state) == ["inc-2", "inc-1"]
    state = reduce(state, IncidentAddedMessage(incident=make_incident("inc-1")))
    assert _ids(state) == ["inc-1", "inc-2", "inc-1"]


def test_incident_updated_replaces_in_place() -> None:
    updated = make_incident("inc-2", assigned_to="user-1")
    state = reduce(_state("inc-1", "inc-2", "inc-3"), IncidentUpdatedMessage(incident=updated))
    assert _ids(state) == ["inc-1", "inc-2", "inc-3"]
    assert state.get("inc-2").assigned_to == "user-1"


def test_incident_updated_unknown_id_prepends() -> None:
    state = reduce(_state("inc-1"), IncidentUpdatedMessage(incident=make_incident("inc-7")))
    assert _ids(state) == ["inc-7", "inc-1"]


@pytest.mark.parametrize("start", [(), ("inc-1",), ("inc-0", "inc-1", "inc-2")])
def test_incident_updated_is_idempotent(start) -> None:
    message = IncidentUpdatedMessage(incident=make_incident("inc-1", priority=5))
    once = reduce(_state(*start), message)
    twice = reduce(once, message)
    assert twice == once


def test_error_message_sets_last_error() -> None:
    state = reduce(ViewerState(), ErrorMessage(code="INVALID_INCIDENT_ID", message="Bad id."))
    assert state.last_error == "Bad id."


def test_error_without_message_uses_default() -> None:
    state = reduce(ViewerState(), ErrorMessage())
    assert state.last_error == DEFAULT_SERVER_ERROR == "Unexpected server error."


def test_reduce_does_not_mutate_input() -> None:
    before = _state("inc-1")
    reduce(before, IncidentAddedMessage(incident=make_incident("inc-2")))
    assert _ids(before) == ["inc-1"]


@pytest.mark.parametrize(
    "raw",
    [
        "not json",
        b"\xff\xfe",
        json.dumps([1, 2]),
        json.dumps({"type": "mystery"}),
        json.dumps({"type": "incidentAdded"}),
        json.dumps({"type": "readingIntervalUpdated", "intervalMs": "slow"}),
    ],
)
def test_bad_frames_are_discarded(raw) -> None:
    assert decode_server_frame(raw) is None
    state = _state("inc-1")
    assert apply_frame(state, raw) is state


def test_apply_frame_decodes_and_reduces() -> None:
    raw = json.dumps({"type": "incidentAdded", "incident": incident_payload("inc-5")})
    assert _ids(apply_frame(ViewerState(), raw)) == ["inc-5"]


def test_upsert_helper_preserves_order() -> None:
    incidents = tuple(make_incident(i) for i in ("a-1", "b-2", "c-3"))
    result = upsert(incidents, make_incident("b-2", priority=1))
    assert [item.incident_id for item in result] == ["a-1", "b-2", "c-3"]
    assert result[1].priority == 1


def _warning(state: ViewerState, message) -> str | None:
    return frame_warning(state, message, reduce(state, message))


def test_repeated_error_is_a_new_warning_each_time() -> None:
    message = ErrorMessage(code="INVALID_INCIDENT_ID", message="bad id")
    state = ViewerState(last_error="bad id")
    assert _warning(state, message) == "bad id"


def test_init_warns_only_on_protocol_mismatch() -> None:
    stale = ViewerState(last_error="older warning")
    assert _warning(stale, InitMessage(protocol_version="1", incidents=[])) is None
    assert _warning(stale, InitMessage(protocol_version="2")) == (
        "Protocol mismatch: expected 1, got 2."
    )


def test_interval_ack_warns_only_on_discrepancy() -> None:
    pending = ViewerState(pending_interval=PendingInterval(value=100, deadline=5.0))
    clamped = ReadingIntervalUpdatedMessage(interval_ms=250)
    assert _warning(pending, clamped) == "Server interval is 250ms, expected 100ms."
    assert _warning(pending, ReadingIntervalUpdatedMessage(interval_ms=100)) is None
    # Changes made by another viewer are adopted without a warning.
    assert _warning(ViewerState(), clamped) is None
    assert _warning(ViewerState(), IncidentAddedMessage(incident=make_incident("x-1"))) is None
