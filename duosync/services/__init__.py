"""Service layer: timeline computation and interval management."""
from duosync.services.interval_service import IntervalService
from duosync.services.timeline_service import TimelineService

__all__ = [
    "IntervalService",
    "TimelineService",
]
