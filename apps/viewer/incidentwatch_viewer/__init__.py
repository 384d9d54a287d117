"""Viewer-side sync for the IncidentWatch live feed."""

from __future__ import annotations

from .buckets import bucket_for, filter_incidents, group_by_bucket
from .client import IncidentViewerClient
from .reconcile import reduce
from .state import PendingInterval, ViewerState

__all__ = [
    "IncidentViewerClient",
    "PendingInterval",
    "ViewerState",
    "bucket_for",
    "filter_incidents",
    "group_by_bucket",
    "reduce",
]
