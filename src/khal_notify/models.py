"""
khal-notify — Data Models

The objects that flow through one run:

    TimeTarget             — the instant khal is asked about
    CalendarEvent          — one event as khal reported it
    FormattedNotification  — what the user actually sees
    DispatchResult         — outcome of one notification task
    RunReport              — everything a run did, plus its exit status

All of them are frozen: a task gets its own event and never mutates it.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any

from khal_notify.errors import MalformedSourceOutput

# khal JSON field names, in the order they are requested
JSON_FIELDS: tuple[str, ...] = (
    "title",
    "description",
    "start-end-time-style",
    "repeat-symbol",
    "all-day",
)

_TRUE_STRINGS = {"true", "1", "yes"}
_FALSE_STRINGS = {"false", "0", "no", ""}


# ═══════════════════════════════════════════════════════════════════════════
# Time target
# ═══════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True)
class TimeTarget:
    """An absolute instant together with the UTC offset it was resolved in.

    ``datetime.timezone`` rejects offsets of exactly ±24h, so the local
    wall-clock time is derived naively instead of through an aware datetime.
    """

    instant: datetime
    utc_offset_hours: int

    @property
    def local(self) -> datetime:
        """Naive wall-clock time at ``utc_offset_hours``."""
        utc = self.instant.astimezone(timezone.utc).replace(tzinfo=None)
        return utc + timedelta(hours=self.utc_offset_hours)

    def format(self, pattern: str) -> str:
        return self.local.strftime(pattern)


# ═══════════════════════════════════════════════════════════════════════════
# Calendar event
# ═══════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True)
class CalendarEvent:
    """A calendar event as reported by ``khal at --json``."""

    title: str
    description: str = ""
    time_range_label: str = ""
    repeat_marker: str = ""
    is_all_day: bool = False

    @property
    def display_title(self) -> str:
        if not self.repeat_marker:
            return self.title
        return f"{self.title} {self.repeat_marker}"

    @classmethod
    def from_dict(cls, data: Any) -> CalendarEvent:
        """Build an event from one khal JSON object.

        Raises:
            MalformedSourceOutput: A field is missing or has the wrong type.
        """
        if not isinstance(data, dict):
            raise MalformedSourceOutput(f"expected an event object, got {type(data).__name__}")
        missing = [key for key in JSON_FIELDS if key not in data]
        if missing:
            raise MalformedSourceOutput(f"event is missing fields: {', '.join(missing)}")

        text_fields = {}
        for key in JSON_FIELDS[:4]:
            value = data[key]
            if not isinstance(value, str):
                raise MalformedSourceOutput(f"field {key!r} is not a string: {value!r}")
            text_fields[key] = value

        return cls(
            title=text_fields["title"],
            description=text_fields["description"],
            time_range_label=text_fields["start-end-time-style"],
            repeat_marker=text_fields["repeat-symbol"],
            is_all_day=_parse_flag(data["all-day"]),
        )


def _parse_flag(value: Any) -> bool:
    """khal emits all-day either as a JSON bool or as ``"True"``/``"False"``."""
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in _TRUE_STRINGS:
            return True
        if lowered in _FALSE_STRINGS:
            return False
    raise MalformedSourceOutput(f"field 'all-day' is not a boolean: {value!r}")


# ═══════════════════════════════════════════════════════════════════════════
# Notifications
# ═══════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True)
class FormattedNotification:
    """Display-ready text for one event."""

    display_title: str
    display_body: str
    extracted_links: tuple[str, ...] = ()

    @property
    def actions(self) -> list[tuple[int, str]]:
        """Numbered link actions; the index is the position in ``extracted_links``."""
        return list(enumerate(self.extracted_links))


@dataclass(frozen=True)
class DispatchResult:
    """Outcome of one notification task."""

    title: str
    chosen_link: str | None = None
    error: BaseException | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass
class RunReport:
    """Summary of a single run, from resolved target to dispatch outcomes."""

    target: TimeTarget
    fetched: int = 0
    dispatched: int = 0
    results: list[DispatchResult] = field(default_factory=list)

    @property
    def failures(self) -> list[DispatchResult]:
        return [r for r in self.results if not r.ok]

    @property
    def exit_code(self) -> int:
        return 1 if self.failures else 0
