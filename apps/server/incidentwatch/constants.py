"""Protocol and runtime constants shared by the server and the viewer.

Every literal that both sides of the WebSocket contract depend on lives here
so that a change only needs to happen in one place.
"""

from __future__ import annotations

import re
from typing import Final

# ---------------------------------------------------------------------------
# Wire contract
# ---------------------------------------------------------------------------
PROTOCOL_VERSION: Final[str] = "1"
"""Bump when the message shapes change in a backwards-incompatible way."""

INCIDENT_ID_PATTERN: Final[re.Pattern[str]] = re.compile(r"^[a-z0-9-]{3,32}$", re.IGNORECASE)
"""Identifier rule enforced on ``addIncident``."""

# ---------------------------------------------------------------------------
# Reading cadence and history
# ---------------------------------------------------------------------------
MAX_READINGS: Final[int] = 24
"""Readings retained per incident; older entries drop off the front."""

DEFAULT_READING_INTERVAL_MS: Final[int] = 2000
MIN_READING_INTERVAL_MS: Final[int] = 250

INTERVAL_ACK_TIMEOUT_MS: Final[int] = 1500
"""How long a viewer waits for ``readingIntervalUpdated`` before warning."""

# ---------------------------------------------------------------------------
# Reading random walk
# ---------------------------------------------------------------------------
SEED_TEMPERATURE_RANGE: Final[tuple[float, float]] = (68.0, 80.0)
SEED_PRESSURE_RANGE: Final[tuple[float, float]] = (18.0, 24.0)
TEMPERATURE_STEP: Final[float] = 2.0
PRESSURE_STEP: Final[float] = 1.0

# ---------------------------------------------------------------------------
# Transport
# ---------------------------------------------------------------------------
DEFAULT_WS_PORT: Final[int] = 8080
WS_PORT_ENV: Final[str] = "WS_PORT"

# ---------------------------------------------------------------------------
# Error codes carried by ``error`` messages
# ---------------------------------------------------------------------------
ERROR_INVALID_MESSAGE: Final[str] = "INVALID_MESSAGE"
ERROR_INVALID_INCIDENT_ID: Final[str] = "INVALID_INCIDENT_ID"
ERROR_DUPLICATE_INCIDENT_ID: Final[str] = "DUPLICATE_INCIDENT_ID"
