"""
khal-notify — Description Formatter

Turns a CalendarEvent into the text of its notification:

    1. strip every configured regex from the description, in order
    2. cut it to N grapheme clusters, appending "..." when anything was cut
    3. harvest links from the cut-away tail so they stay reachable
    4. append the event's time range (timed events only)

Grapheme clusters come from the ``regex`` module's ``\\X``; a flag emoji or
an accented letter built from combining marks is never split.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Sequence
from html import escape

import regex

from khal_notify.errors import InvalidPattern
from khal_notify.models import CalendarEvent, FormattedNotification

logger = logging.getLogger("khal_notify.formatter")

URL_PATTERN = (
    r"(https?://(www\.)?)?[-a-zA-Z0-9@:%._\+~#=]{1,256}\.[a-zA-Z0-9()]{1,6}\b"
    r"([-a-zA-Z0-9()@:%_\+.~#?&//=]*)"
)
ELLIPSIS = "..."
DEFAULT_CHAR_LIMIT = 200

_GRAPHEME = regex.compile(r"\X")


def compile_pattern(pattern: str) -> regex.Pattern:
    try:
        return regex.compile(pattern)
    except regex.error as e:
        raise InvalidPattern(pattern, str(e)) from e


def compile_patterns(patterns: Iterable[str]) -> list[regex.Pattern]:
    """Compile cleanup patterns, failing on the first bad one.

    Raises:
        InvalidPattern: A pattern does not compile.
    """
    return [compile_pattern(p) for p in patterns]


def split_graphemes(text: str, limit: int) -> tuple[str, str]:
    """Split ``text`` after ``limit`` grapheme clusters → (kept, tail)."""
    clusters = _GRAPHEME.findall(text)
    limit = max(0, limit)
    return "".join(clusters[:limit]), "".join(clusters[limit:])


def find_links(pattern: regex.Pattern, text: str) -> list[str]:
    """Unique matches of ``pattern`` in ``text``, sorted."""
    return sorted({m.group(0) for m in pattern.finditer(text)})


def render_link(url: str) -> str:
    """Minimal markup notification daemons render as a clickable link."""
    return f'<a href="{escape(url, quote=True)}"></a>'


class DescriptionFormatter:
    """Formats events for display. Safe to share between tasks: it holds only
    compiled patterns and the limit, none of which change after construction.

    Usage:
        formatter = DescriptionFormatter(compile_patterns([r"-::~:~::~.*"]), 200)
        notification = formatter.format(event)
    """

    def __init__(
        self,
        strip_patterns: Sequence[regex.Pattern | str] = (),
        char_limit: int = DEFAULT_CHAR_LIMIT,
        link_pattern: regex.Pattern | str = URL_PATTERN,
    ) -> None:
        self.strip_patterns: tuple[regex.Pattern, ...] = tuple(
            compile_pattern(p) if isinstance(p, str) else p for p in strip_patterns
        )
        self.char_limit = max(0, char_limit)
        self.link_pattern = compile_pattern(link_pattern) if isinstance(link_pattern, str) else link_pattern

    def clean(self, description: str) -> str:
        for pattern in self.strip_patterns:
            description = pattern.sub("", description)
        return description

    def shorten(self, description: str) -> tuple[str, list[str]]:
        """Truncate to the limit. Returns (body, links harvested from the cut tail)."""
        kept, tail = split_graphemes(description, self.char_limit)
        if not tail:
            return description, []

        links = find_links(self.link_pattern, tail)
        body = kept + ELLIPSIS + "".join(render_link(url) for url in links)
        return body, links

    def format(self, event: CalendarEvent) -> FormattedNotification:
        body, links = self.shorten(self.clean(event.description))

        if not event.is_all_day:
            if not body.endswith("\n"):
                body += "\n"
            body += event.time_range_label

        if links:
            logger.debug(f"{event.title!r}: {len(links)} link(s) recovered from truncated description")

        return FormattedNotification(
            display_title=event.display_title,
            display_body=body,
            extracted_links=tuple(links),
        )
