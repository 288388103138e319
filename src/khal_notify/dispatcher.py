"""
khal-notify — Notification Dispatcher

Fans formatted notifications out to the notifier, one asyncio task each,
and joins them all before returning.

Process model:
    dispatch_all()
    ├── task: notify(event 1) → [user picks link] → open_link
    ├── task: notify(event 2)
    └── ...   (gather, return_exceptions=True)

A failing task only marks its own DispatchResult; siblings keep running.
Tasks share nothing mutable: each owns its notification and subprocess.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
from collections.abc import Callable, Sequence

from khal_notify.errors import DispatchError
from khal_notify.integrations.notifier import Notifier, open_link
from khal_notify.models import DispatchResult, FormattedNotification

logger = logging.getLogger("khal_notify.dispatcher")

LinkOpener = Callable[[str], object]


class NotificationDispatcher:
    """Concurrent, failure-isolated notification fan-out.

    Args:
        notifier: Shows notifications and reports chosen actions.
        opener: Called with the chosen link (default: system browser).
        link_actions: Offer harvested links as selectable actions. When off,
            every notification is fire-and-forget.
        max_concurrency: Cap on simultaneous notifier processes (None = one
            per notification).
        timeout: Seconds a single task may wait, including on the user.
    """

    def __init__(
        self,
        notifier: Notifier,
        opener: LinkOpener = open_link,
        link_actions: bool = False,
        max_concurrency: int | None = None,
        timeout: float | None = None,
    ) -> None:
        self.notifier = notifier
        self.opener = opener
        self.link_actions = link_actions
        self.max_concurrency = max_concurrency if max_concurrency and max_concurrency > 0 else None
        self.timeout = timeout if timeout and timeout > 0 else None

    async def dispatch(self, notification: FormattedNotification) -> DispatchResult:
        """Show one notification and open the link the user picks, if any."""
        actions = notification.actions if self.link_actions else []
        choice = await self.notifier.notify(
            notification.display_title, notification.display_body, actions,
        )
        if choice is None:
            return DispatchResult(title=notification.display_title)

        link = notification.extracted_links[choice]
        logger.info(f"Opening {link} for {notification.display_title!r}")
        await asyncio.to_thread(self.opener, link)
        return DispatchResult(title=notification.display_title, chosen_link=link)

    async def _run_task(
        self,
        notification: FormattedNotification,
        semaphore: asyncio.Semaphore | None,
    ) -> DispatchResult:
        async with (semaphore if semaphore is not None else contextlib.nullcontext()):
            if self.timeout is None:
                return await self.dispatch(notification)
            try:
                async with asyncio.timeout(self.timeout):
                    return await self.dispatch(notification)
            except TimeoutError as e:
                raise DispatchError(f"notification timed out after {self.timeout:g}s") from e

    async def dispatch_all(self, notifications: Sequence[FormattedNotification]) -> list[DispatchResult]:
        """Dispatch every notification concurrently and wait for all of them.

        Returns:
            One DispatchResult per notification, in input order.
        """
        if not notifications:
            return []

        semaphore = asyncio.Semaphore(self.max_concurrency) if self.max_concurrency else None
        outcomes = await asyncio.gather(
            *(self._run_task(n, semaphore) for n in notifications),
            return_exceptions=True,
        )

        results: list[DispatchResult] = []
        for notification, outcome in zip(notifications, outcomes):
            if isinstance(outcome, BaseException):
                logger.error(f"Notification for {notification.display_title!r} failed: {outcome}")
                results.append(DispatchResult(title=notification.display_title, error=outcome))
            else:
                results.append(outcome)
        return results
