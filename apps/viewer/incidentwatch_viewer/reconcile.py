"""Pure reducer applying server messages to a :class:`ViewerState`.

The reducer never touches a socket.  Feed it every validated server message
in arrival order; frames that are not JSON or do not match the contract are
discarded by :func:`decode_server_frame` before they get here.
"""

from __future__ import annotations

import json
import logging
from dataclasses import replace

from pydantic import ValidationError

from incidentwatch.constants import PROTOCOL_VERSION
from incidentwatch.ws_models import (
    ErrorMessage,
    Incident,
    IncidentAddedMessage,
    IncidentUpdatedMessage,
    InitMessage,
    ReadingIntervalUpdatedMessage,
    ServerMessage,
    parse_server_message,
)

from .interval import apply_interval_ack
from .state import ViewerState

LOGGER = logging.getLogger(__name__)

DEFAULT_SERVER_ERROR = "Unexpected server error."


def upsert(incidents: tuple[Incident, ...], incident: Incident) -> tuple[Incident, ...]:
    """Replace the incident with the same id in place, or prepend it."""
    for index, item in enumerate(incidents):
        if item.incident_id == incident.incident_id:
            return (*incidents[:index], incident, *incidents[index + 1 :])
    return (incident, *incidents)


def _protocol_mismatch(message: InitMessage) -> bool:
    return bool(message.protocol_version) and message.protocol_version != PROTOCOL_VERSION


def _apply_init(state: ViewerState, message: InitMessage) -> ViewerState:
    changes: dict[str, object] = {}
    if _protocol_mismatch(message):
        changes["last_error"] = (
            f"Protocol mismatch: expected {PROTOCOL_VERSION}, got {message.protocol_version}."
        )
    if message.incidents is not None:
        changes["incidents"] = tuple(message.incidents)
    if message.catalog is not None:
        changes["catalog"] = message.catalog
    return replace(state, **changes) if changes else state


def reduce(state: ViewerState, message: ServerMessage) -> ViewerState:
    if isinstance(message, InitMessage):
        return _apply_init(state, message)
    if isinstance(message, IncidentAddedMessage):
        return replace(state, incidents=(message.incident, *state.incidents))
    if isinstance(message, IncidentUpdatedMessage):
        return replace(state, incidents=upsert(state.incidents, message.incident))
    if isinstance(message, ReadingIntervalUpdatedMessage):
        return apply_interval_ack(state, message.interval_ms)
    if isinstance(message, ErrorMessage):
        return replace(state, last_error=message.message or DEFAULT_SERVER_ERROR)
    return state


def frame_warning(
    previous: ViewerState, message: ServerMessage, current: ViewerState
) -> str | None:
    """Return the warning *message* raised when it took *previous* to *current*.

    Every warning-producing frame counts, even when its text repeats the
    previous warning.
    """
    if isinstance(message, ErrorMessage):
        return current.last_error
    if isinstance(message, InitMessage) and _protocol_mismatch(message):
        return current.last_error
    if isinstance(message, ReadingIntervalUpdatedMessage):
        pending = previous.pending_interval
        if pending is not None and message.interval_ms != pending.value:
            return current.last_error
    return None


def decode_server_frame(text: str | bytes) -> ServerMessage | None:
    """Parse one raw frame, or return ``None`` when it should be ignored."""
    try:
        payload = json.loads(text)
    except (json.JSONDecodeError, UnicodeDecodeError):
        LOGGER.debug("Ignoring non-JSON frame from server")
        return None
    try:
        return parse_server_message(payload)
    except ValidationError as exc:
        LOGGER.debug("Ignoring frame that failed validation: %s", exc)
        return None


def apply_frame(state: ViewerState, text: str | bytes) -> ViewerState:
    message = decode_server_frame(text)
    if message is None:
        return state
    return reduce(state, message)
