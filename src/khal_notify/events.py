"""
khal-notify — Event Filter
"""

from __future__ import annotations

from collections.abc import Iterable

from khal_notify.models import CalendarEvent


def filter_events(events: Iterable[CalendarEvent], include_all_day: bool = False) -> list[CalendarEvent]:
    """Drop all-day events unless ``include_all_day`` is set. Order is preserved."""
    if include_all_day:
        return list(events)
    return [event for event in events if not event.is_all_day]
