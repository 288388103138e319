"""
khal-notify — Time Target Resolver

Turns the ``AT`` argument into the instant khal is queried for:

    "10"                → now + 10 minutes
    "2024-05-01 09:30"  → that wall-clock time at the given UTC offset
"""

from __future__ import annotations

import re
from datetime import datetime, timedelta, timezone

from khal_notify.errors import InvalidDateTime, InvalidOffset, InvalidOffsetMinutes
from khal_notify.models import TimeTarget

ABSOLUTE_FORMAT = "%Y-%m-%d %H:%M"
MAX_OFFSET_HOURS = 24

_OFFSET_RE = re.compile(r"^[+-]?\d{1,2}$")


def parse_utc_offset(text: str | int) -> int:
    """Parse ``"+9"``, ``"-5"`` or ``"9"`` into whole hours.

    Raises:
        InvalidOffset: Not an integer, or outside -24..24.
    """
    if isinstance(text, bool):
        raise InvalidOffset(f"utc offset of unexpected format: {text!r}")
    if isinstance(text, int):
        hours = text
    else:
        cleaned = str(text).strip()
        if not _OFFSET_RE.match(cleaned):
            raise InvalidOffset(f"utc offset of unexpected format: {text!r}")
        hours = int(cleaned)
    if not -MAX_OFFSET_HOURS <= hours <= MAX_OFFSET_HOURS:
        raise InvalidOffset(f"utc offset must be within ±{MAX_OFFSET_HOURS} hours, got {hours}")
    return hours


def resolve_time_target(
    at: str,
    utc_offset_hours: int,
    now: datetime | None = None,
) -> TimeTarget:
    """Resolve a relative-minutes or absolute date-time token.

    Args:
        at: Space-joined ``AT`` tokens.
        utc_offset_hours: Offset of the user's local time, -24..24.
        now: Current instant (aware); defaults to the system clock.

    Raises:
        InvalidOffset: Bad ``utc_offset_hours``.
        InvalidDateTime: Absolute token that is not ``YYYY-MM-DD HH:MM``.
        InvalidOffsetMinutes: Relative token that is not a non-negative integer.
    """
    offset = parse_utc_offset(utc_offset_hours)

    if ":" in at or " " in at:
        try:
            local = datetime.strptime(at.strip(), ABSOLUTE_FORMAT)
        except ValueError as e:
            raise InvalidDateTime(f"datetime of unexpected format {at!r}: {e}") from e
        try:
            instant = (local - timedelta(hours=offset)).replace(tzinfo=timezone.utc)
        except OverflowError as e:
            raise InvalidDateTime(f"datetime out of range at UTC{offset:+d}: {at!r}") from e
        return TimeTarget(instant=instant, utc_offset_hours=offset)

    if not (at.isascii() and at.isdigit()):
        raise InvalidOffsetMinutes(f"offset is not a number of minutes: {at!r}")

    if now is None:
        now = datetime.now(timezone.utc)
    elif now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)
    # int() refuses very long digit strings with ValueError; local must fit as well
    try:
        instant = now.astimezone(timezone.utc) + timedelta(minutes=int(at))
        target = TimeTarget(instant=instant, utc_offset_hours=offset)
        _ = target.local
    except (OverflowError, ValueError) as e:
        raise InvalidOffsetMinutes(f"offset of {at[:20]} minutes is out of range") from e
    return target
