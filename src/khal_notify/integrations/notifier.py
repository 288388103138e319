"""
khal-notify — Desktop Notifier

Process adapter for ``notify-send`` plus the default link opener.

Protocol with the notifier:
    - no actions   → fire and forget; wait for exit, ignore stdout
    - with actions → ``--action=<index>=<label>`` per link and ``--wait``;
                     the first stdout line is the chosen index, or empty
                     (the dismissed sentinel) when the user closed it
"""

from __future__ import annotations

import asyncio
import logging
import webbrowser
from collections.abc import Sequence
from typing import Protocol

from khal_notify.errors import DispatchError, InvalidNotifierResponse, NotifierUnavailable

logger = logging.getLogger("khal_notify.integrations.notifier")


class Notifier(Protocol):
    """Anything that can show a notification and report the chosen action."""

    async def notify(
        self,
        title: str,
        body: str,
        actions: Sequence[tuple[int, str]] = (),
    ) -> int | None: ...


def parse_action_response(output: str, action_count: int, dismissed_sentinel: str = "") -> int | None:
    """Read the chosen action index from the notifier's stdout.

    Returns:
        The index in ``0..action_count-1``, or None if the notification was
        dismissed without choosing.

    Raises:
        InvalidNotifierResponse: Non-numeric or out-of-range identifier.
    """
    lines = output.splitlines()
    first = lines[0].strip() if lines else ""
    if first == dismissed_sentinel.strip() or not first:
        return None
    if not (first.isascii() and first.isdigit()):
        raise InvalidNotifierResponse(f"notifier returned a non-numeric action id: {first!r}")
    index = int(first)
    if index >= action_count:
        raise InvalidNotifierResponse(
            f"notifier returned action {index}, but only {action_count} action(s) were offered"
        )
    return index


class NotifySendNotifier:
    """``notify-send`` (libnotify) wrapper.

    Usage:
        notifier = NotifySendNotifier()
        choice = await notifier.notify("Standup", "Room 4\\n10:00-10:15", [(0, "https://...")])
    """

    def __init__(
        self,
        executable: str = "notify-send",
        app_name: str = "khal-notify",
        dismissed_sentinel: str = "",
        extra_args: Sequence[str] = (),
    ) -> None:
        self.executable = executable
        self.app_name = app_name
        self.dismissed_sentinel = dismissed_sentinel
        self.extra_args = tuple(extra_args)

    def build_command(
        self,
        title: str,
        body: str,
        actions: Sequence[tuple[int, str]] = (),
    ) -> list[str]:
        cmd = [self.executable, f"--app-name={self.app_name}", *self.extra_args]
        for index, label in actions:
            cmd.append(f"--action={index}={label}")
        if actions:
            cmd.append("--wait")
        cmd.extend(["--", title, body])
        return cmd

    async def notify(
        self,
        title: str,
        body: str,
        actions: Sequence[tuple[int, str]] = (),
    ) -> int | None:
        """Show one notification; returns the chosen action index, if any.

        Raises:
            NotifierUnavailable: The executable could not be started.
            DispatchError: The notifier exited with an error.
            InvalidNotifierResponse: The reported action was never offered.
        """
        cmd = self.build_command(title, body, actions)
        try:
            proc = await asyncio.create_subprocess_exec(
                *cmd,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except OSError as e:
            raise NotifierUnavailable(f"could not create notification with {self.executable}: {e}") from e

        try:
            stdout, stderr = await proc.communicate()
        finally:
            # cancelled (timeout) while waiting on the user: never leak the child
            if proc.returncode is None:
                proc.kill()
                await proc.wait()

        if proc.returncode != 0:
            message = stderr.decode(errors="replace").strip()
            raise DispatchError(
                f"{self.executable} exited with status {proc.returncode}: {message or 'no output'}"
            )

        if not actions:
            return None
        return parse_action_response(
            stdout.decode(errors="replace"), len(actions), self.dismissed_sentinel,
        )


def open_link(url: str) -> bool:
    """Open ``url`` with the desktop's default handler.

    Links found in plain text often lack a scheme; those are opened as https.
    """
    if "://" not in url:
        url = f"https://{url}"
    opened = webbrowser.open(url)
    if not opened:
        logger.warning(f"No browser available to open {url}")
    return opened
