"""
khal-notify — Pipeline

One run, strictly left to right:

    resolve time → fetch events → filter → format → dispatch

Everything up to formatting happens before the first notification is shown;
dispatch then fans out and joins. Source errors propagate and abort the run,
dispatch errors end up in the RunReport.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import datetime, timezone
from typing import Protocol

from khal_notify.dispatcher import NotificationDispatcher
from khal_notify.events import filter_events
from khal_notify.formatter import DescriptionFormatter
from khal_notify.models import CalendarEvent, FormattedNotification, RunReport, TimeTarget
from khal_notify.timetarget import resolve_time_target

logger = logging.getLogger("khal_notify.pipeline")

Clock = Callable[[], datetime]


class EventSource(Protocol):
    def fetch_events(self, target: TimeTarget) -> list[CalendarEvent]: ...


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class NotificationPipeline:
    """Wires the stages together; every collaborator is injectable for tests."""

    def __init__(
        self,
        source: EventSource,
        formatter: DescriptionFormatter,
        dispatcher: NotificationDispatcher,
        utc_offset_hours: int,
        include_all_day: bool = False,
        clock: Clock = utc_now,
    ) -> None:
        self.source = source
        self.formatter = formatter
        self.dispatcher = dispatcher
        self.utc_offset_hours = utc_offset_hours
        self.include_all_day = include_all_day
        self.clock = clock

    def prepare(self, at: str) -> tuple[RunReport, list[FormattedNotification]]:
        """Resolve, fetch, filter and format; everything short of notifying.

        Raises:
            ConfigurationError: ``at`` or the offset is invalid.
            SourceError: khal could not be queried.
        """
        target = resolve_time_target(at, self.utc_offset_hours, now=self.clock())
        logger.debug(f"Resolved {at!r} to {target.local:%Y-%m-%d %H:%M} (UTC{target.utc_offset_hours:+d})")

        events = self.source.fetch_events(target)
        kept = filter_events(events, self.include_all_day)
        if len(kept) != len(events):
            logger.info(f"Skipped {len(events) - len(kept)} all-day event(s)")

        notifications = [self.formatter.format(event) for event in kept]
        return RunReport(target=target, fetched=len(events)), notifications

    async def run(self, at: str) -> RunReport:
        """Run once and report; ``report.exit_code`` is non-zero if any task failed."""
        report, notifications = self.prepare(at)
        report.results = await self.dispatcher.dispatch_all(notifications)
        report.dispatched = len(report.results)

        if report.failures:
            logger.warning(f"{len(report.failures)} of {report.dispatched} notification(s) failed")
        else:
            logger.info(f"Sent {report.dispatched} notification(s)")
        return report
