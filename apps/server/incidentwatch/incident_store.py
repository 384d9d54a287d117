"""Authoritative in-memory incident list.

``IncidentStore`` is the single writer of incident state.  Every public
method is one atomic mutation under the store lock and hands back deep
copies, so callers can serialise and broadcast the result without racing
the next mutation.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable
from threading import RLock

from .constants import INCIDENT_ID_PATTERN, MAX_READINGS
from .errors import DuplicateIncidentIdError, InvalidIncidentIdError
from .readings import create_reading
from .ws_models import Incident, Reading

LOGGER = logging.getLogger(__name__)

ReadingFactory = Callable[[Reading | None], Reading]


def is_valid_incident_id(incident_id: str) -> bool:
    return INCIDENT_ID_PATTERN.fullmatch(incident_id) is not None


class IncidentStore:
    def __init__(
        self,
        incidents: Iterable[Incident] = (),
        *,
        max_readings: int = MAX_READINGS,
        reading_factory: ReadingFactory | None = None,
    ) -> None:
        self._lock = RLock()
        self._max_readings = max(1, int(max_readings))
        self._reading_factory: ReadingFactory = reading_factory or create_reading
        self._incidents: list[Incident] = []
        for incident in incidents:
            if self._index_of(incident.incident_id) is not None:
                LOGGER.warning("Skipping duplicate seed incident %s", incident.incident_id)
                continue
            self._incidents.append(self._admit(incident))

    @property
    def max_readings(self) -> int:
        return self._max_readings

    def __len__(self) -> int:
        with self._lock:
            return len(self._incidents)

    # -- internals -------------------------------------------------------------

    def _index_of(self, incident_id: str) -> int | None:
        for index, item in enumerate(self._incidents):
            if item.incident_id == incident_id:
                return index
        return None

    def _admit(self, incident: Incident) -> Incident:
        """Private copy of *incident* with its history trimmed to the bound."""
        stored = incident.model_copy(deep=True)
        if len(stored.readings) > self._max_readings:
            stored.readings = stored.readings[-self._max_readings :]
        return stored

    # -- queries ---------------------------------------------------------------

    def snapshot(self) -> list[Incident]:
        """Ordered deep copy of every incident, newest first."""
        with self._lock:
            return [item.model_copy(deep=True) for item in self._incidents]

    def get(self, incident_id: str) -> Incident | None:
        with self._lock:
            index = self._index_of(incident_id)
            if index is None:
                return None
            return self._incidents[index].model_copy(deep=True)

    # -- mutations -------------------------------------------------------------

    def add_incident(self, incident: Incident) -> Incident:
        """Insert a new incident at the head of the list.

        Raises ``InvalidIncidentIdError`` when the id breaks the identifier
        pattern and ``DuplicateIncidentIdError`` when the id is already
        stored; in both cases the store is left untouched.
        """
        if not is_valid_incident_id(incident.incident_id):
            raise InvalidIncidentIdError(incident.incident_id)
        with self._lock:
            if self._index_of(incident.incident_id) is not None:
                raise DuplicateIncidentIdError(incident.incident_id)
            stored = self._admit(incident)
            if not stored.readings:
                stored.readings = [self._reading_factory(None)]
            self._incidents.insert(0, stored)
            LOGGER.info("Added incident %s", stored.incident_id)
            return stored.model_copy(deep=True)

    def upsert_incident(self, incident: Incident) -> Incident:
        """Replace the incident with the same id in place, or prepend it.

        Never rejects: an unknown id is inserted as-is, without the
        identifier check applied by :meth:`add_incident`.
        """
        with self._lock:
            stored = self._admit(incident)
            index = self._index_of(stored.incident_id)
            if index is None:
                self._incidents.insert(0, stored)
                LOGGER.info("Inserted incident %s via update", stored.incident_id)
            else:
                self._incidents[index] = stored
                LOGGER.debug("Updated incident %s", stored.incident_id)
            return stored.model_copy(deep=True)

    def advance_readings(self) -> list[Incident]:
        """Append one generated reading to every incident.

        Each new reading derives from the incident's latest one; the history
        is then truncated from the front to the configured maximum.  Returns
        copies of every mutated incident in list order.
        """
        with self._lock:
            for item in self._incidents:
                next_reading = self._reading_factory(item.last_reading)
                item.readings = [*item.readings, next_reading][-self._max_readings :]
            return [item.model_copy(deep=True) for item in self._incidents]
