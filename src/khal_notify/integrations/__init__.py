"""khal-notify integrations — external process adapters.

Available integrations:
    khal      — KhalEventSource, queries ``khal at --json``
    notifier  — NotifySendNotifier and the default link opener
"""

from khal_notify.integrations.khal import KhalEventSource, parse_events
from khal_notify.integrations.notifier import (
    Notifier,
    NotifySendNotifier,
    open_link,
    parse_action_response,
)

__all__ = [
    "KhalEventSource",
    "Notifier",
    "NotifySendNotifier",
    "open_link",
    "parse_action_response",
    "parse_events",
]
