"""Synthetic sensor readings: a bounded random walk per incident.

The first reading of a series is seeded from independent uniform draws;
every later one drifts from its predecessor by at most ``TEMPERATURE_STEP``
degrees and ``PRESSURE_STEP`` units, rounded to display precision.
"""

from __future__ import annotations

import math
import random
from datetime import UTC, datetime

from .constants import (
    PRESSURE_STEP,
    SEED_PRESSURE_RANGE,
    SEED_TEMPERATURE_RANGE,
    TEMPERATURE_STEP,
)
from .ws_models import Reading


def utc_now_iso() -> str:
    return datetime.now(UTC).isoformat()


def _drift(previous: float, step: float, decimals: int, draw: random.Random) -> float:
    """Random step of at most *step* from *previous*, rounded to *decimals*.

    Rounding never carries the result past the step bound, even when
    *previous* itself has more precision than *decimals*.
    """
    scale = 10**decimals
    value = round(previous + draw.uniform(-step, step), decimals)
    if value > previous + step:
        value = math.floor((previous + step) * scale) / scale
    elif value < previous - step:
        value = math.ceil((previous - step) * scale) / scale
    return value


def create_reading(
    previous: Reading | None = None,
    *,
    rng: random.Random | None = None,
    now: str | None = None,
) -> Reading:
    """Return the next reading after *previous* (or a fresh seed when ``None``).

    *rng* and *now* exist for tests; production callers use the module
    random generator and the wall clock.
    """
    draw = rng or random
    timestamp = now or utc_now_iso()
    if previous is None:
        low_t, high_t = SEED_TEMPERATURE_RANGE
        low_p, high_p = SEED_PRESSURE_RANGE
        # Truncate rather than round so the seed stays inside the half-open range.
        return Reading(
            timestamp=timestamp,
            temperature=math.floor((low_t + draw.random() * (high_t - low_t)) * 10) / 10,
            pressure=math.floor((low_p + draw.random() * (high_p - low_p)) * 100) / 100,
        )
    return Reading(
        timestamp=timestamp,
        temperature=_drift(previous.temperature, TEMPERATURE_STEP, 1, draw),
        pressure=_drift(previous.pressure, PRESSURE_STEP, 2, draw),
    )


def seed_history(count: int, *, rng: random.Random | None = None) -> list[Reading]:
    """Build a chained history of *count* readings, oldest first."""
    history: list[Reading] = []
    for _ in range(max(0, count)):
        history.append(create_reading(history[-1] if history else None, rng=rng))
    return history
