"""
khal-notify — Errors

Three families, matching how far a failure reaches:

    ConfigurationError  — bad user input, raised before any event is touched
    SourceError         — khal could not be queried; the whole run aborts
    DispatchError       — one notification failed; sibling tasks carry on
"""

from __future__ import annotations


class KhalNotifyError(Exception):
    """Base class for every error raised by khal-notify."""


# ═══════════════════════════════════════════════════════════════════════════
# Configuration
# ═══════════════════════════════════════════════════════════════════════════


class ConfigurationError(KhalNotifyError):
    """Invalid option value."""


class InvalidOffset(ConfigurationError):
    """UTC offset is not a whole number of hours in -24..24."""


class InvalidDateTime(ConfigurationError):
    """Absolute target does not match ``YYYY-MM-DD HH:MM``."""


class InvalidOffsetMinutes(ConfigurationError):
    """Relative target is not a non-negative number of minutes."""


class InvalidPattern(ConfigurationError):
    """A strip or link regex failed to compile."""

    def __init__(self, pattern: str, reason: str) -> None:
        super().__init__(f"invalid regex {pattern!r}: {reason}")
        self.pattern = pattern


# ═══════════════════════════════════════════════════════════════════════════
# Event source
# ═══════════════════════════════════════════════════════════════════════════


class SourceError(KhalNotifyError):
    """The calendar query failed as a whole."""


class ExternalToolUnavailable(SourceError):
    """The calendar executable could not be started."""


class MalformedSourceOutput(SourceError):
    """The calendar output is not the expected JSON structure."""


# ═══════════════════════════════════════════════════════════════════════════
# Dispatch
# ═══════════════════════════════════════════════════════════════════════════


class DispatchError(KhalNotifyError):
    """A single notification could not be delivered."""


class NotifierUnavailable(DispatchError):
    """The notifier executable could not be started."""


class InvalidNotifierResponse(DispatchError):
    """The notifier reported an action id that was never offered."""
