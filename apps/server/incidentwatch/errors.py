"""Domain exceptions raised by the incident store."""

from __future__ import annotations

from .constants import ERROR_DUPLICATE_INCIDENT_ID, ERROR_INVALID_INCIDENT_ID


class IncidentWatchError(Exception):
    """Base class for errors that are reported back to a viewer.

    ``code`` is the machine-readable value sent in the ``error`` message.
    """

    code: str = "INTERNAL_ERROR"

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class InvalidIncidentIdError(IncidentWatchError):
    code = ERROR_INVALID_INCIDENT_ID

    def __init__(self, incident_id: str) -> None:
        super().__init__("Incident ID must be 3-32 characters: letters, numbers, or hyphens.")
        self.incident_id = incident_id


class DuplicateIncidentIdError(IncidentWatchError):
    code = ERROR_DUPLICATE_INCIDENT_ID

    def __init__(self, incident_id: str) -> None:
        super().__init__(f"Incident {incident_id!r} already exists; use updateIncident instead.")
        self.incident_id = incident_id
