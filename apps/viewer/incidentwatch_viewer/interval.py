"""Reading-interval negotiation.

The viewer proposes an interval, the server clamps and applies it, then
announces the result to everyone.  The server value always wins: a viewer
adopts whatever ``readingIntervalUpdated`` carries and only warns when it
differs from what this viewer asked for.  At most one request is pending;
a newer request replaces it.
"""

from __future__ import annotations

from dataclasses import replace

from incidentwatch.constants import INTERVAL_ACK_TIMEOUT_MS
from incidentwatch.ws_models import SetReadingIntervalMessage

from .state import PendingInterval, ViewerState

ACK_TIMEOUT_MESSAGE = "Server did not confirm the reading interval change."


def request_interval(
    state: ViewerState,
    value: int,
    now: float,
    *,
    timeout_s: float = INTERVAL_ACK_TIMEOUT_MS / 1000.0,
) -> tuple[ViewerState, SetReadingIntervalMessage]:
    """Record a pending request for *value* and return the message to send."""
    pending = PendingInterval(value=int(value), deadline=now + timeout_s)
    next_state = replace(state, reading_interval_ms=pending.value, pending_interval=pending)
    return next_state, SetReadingIntervalMessage(interval_ms=pending.value)


def apply_interval_ack(state: ViewerState, interval_ms: int) -> ViewerState:
    pending = state.pending_interval
    if pending is not None and interval_ms != pending.value:
        return replace(
            state,
            reading_interval_ms=interval_ms,
            pending_interval=None,
            last_error=f"Server interval is {interval_ms}ms, expected {pending.value}ms.",
        )
    # Matching ack, or a change made by another viewer: adopt without a new request.
    return replace(state, reading_interval_ms=interval_ms, pending_interval=None, last_error=None)


def expire_pending(state: ViewerState, now: float) -> ViewerState:
    """Give up on a pending request whose deadline has passed."""
    pending = state.pending_interval
    if pending is None or now < pending.deadline:
        return state
    return replace(state, pending_interval=None, last_error=ACK_TIMEOUT_MESSAGE)
