"""
khal-notify — Entry Point

Usage:
    khal-notify                          # events starting in 10 minutes
    khal-notify 30                       # ... in 30 minutes
    khal-notify 2024-05-01 09:30         # ... at that local time
    khal-notify -a -l 120 15             # include all-day events, 120 chars
    khal-notify -s '-::~.*'              # strip text (patterns may start with '-')
    khal-notify --link-actions           # offer truncated links as actions
    khal-notify --dry-run                # print instead of notifying
    khal-notify --version                # Show version
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys

from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.text import Text

from khal_notify import __description__, __version__
from khal_notify.config import KhalNotifyConfig
from khal_notify.dispatcher import NotificationDispatcher
from khal_notify.errors import ConfigurationError, SourceError
from khal_notify.formatter import DescriptionFormatter, compile_patterns
from khal_notify.integrations.khal import KhalEventSource
from khal_notify.integrations.notifier import NotifySendNotifier
from khal_notify.models import FormattedNotification
from khal_notify.pipeline import NotificationPipeline
from khal_notify.timetarget import parse_utc_offset

logger = logging.getLogger("khal_notify.cli")

DEFAULT_AT = "10"

EXIT_OK = 0
EXIT_FAILURE = 1
EXIT_CONFIG = 2

HYPHEN_VALUE_FLAGS = ("-s", "--strip-regex")


def attach_hyphen_values(argv: list[str]) -> list[str]:
    """Glue each ``-s``/``--strip-regex`` to its value.

    argparse reads a separate value starting with ``-`` as another option, so
    ``-s -::~.*`` becomes ``--strip-regex=-::~.*`` before parsing.
    """
    attached: list[str] = []
    items = iter(argv)
    for item in items:
        if item == "--":
            attached.append(item)
            attached.extend(items)
            break
        if item in HYPHEN_VALUE_FLAGS:
            value = next(items, None)
            if value is None:
                attached.append(item)
                break
            attached.append(f"--strip-regex={value}")
            continue
        attached.append(item)
    return attached


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="khal-notify", description=__description__)
    parser.add_argument("--version", action="version", version=f"khal-notify {__version__}")
    parser.add_argument("--verbose", action="store_true", help="Enable debug logging")

    parser.add_argument("-c", "--config", metavar="FILE", help="khal config location")
    parser.add_argument("-l", "--desc-length", metavar="CHARS", type=int,
                        help="character limit for event description (default: 200)")
    parser.add_argument("-a", "--all-day", action="store_true", default=None,
                        help="include all day events")
    parser.add_argument("-d", "--date-format", metavar="FORMAT",
                        help="date format expected by khal (default: %%Y-%%m-%%d)")
    parser.add_argument("-t", "--time-format", metavar="FORMAT",
                        help="time format expected by khal (default: %%H:%%M)")
    parser.add_argument("-z", "--timezone", metavar="HOURS",
                        help="utc offset of local timezone (default: +9)")
    parser.add_argument("-s", "--strip-regex", metavar="REGEX", action="append",
                        help="regex for text to strip from event descriptions (repeatable)")

    parser.add_argument("--link-actions", action="store_true", default=None,
                        help="offer links cut from descriptions as notification actions")
    parser.add_argument("--max-workers", type=int, metavar="N",
                        help="max notifications shown at once (default: unbounded)")
    parser.add_argument("--timeout", type=float, metavar="SECONDS",
                        help="give up on a notification after this long (default: never)")
    parser.add_argument("--dry-run", action="store_true",
                        help="print notifications instead of sending them")

    parser.add_argument("at", nargs="*", metavar="AT",
                        help="minutes in the future or datetime (YYYY-mm-dd HH:MM) to check for events "
                             f"(default: {DEFAULT_AT})")
    return parser


def main(argv: list[str] | None = None) -> int:
    """Main entry point for the khal-notify CLI."""
    args = build_parser().parse_args(attach_hyphen_values(sys.argv[1:] if argv is None else argv))
    err_console = Console(stderr=True)

    try:
        config = KhalNotifyConfig()
        _setup_logging("DEBUG" if args.verbose else config.log_level)
        logger.debug(f"Loaded {config!r}")
        pipeline = build_pipeline(args, config)
    except ConfigurationError as e:
        err_console.print(f"[bold red]Configuration error:[/] {escape(str(e))}")
        return EXIT_CONFIG

    at = " ".join(args.at) if args.at else DEFAULT_AT

    try:
        if args.dry_run:
            _, notifications = pipeline.prepare(at)
            _print_notifications(Console(), notifications)
            return EXIT_OK
        report = asyncio.run(pipeline.run(at))
    except ConfigurationError as e:
        err_console.print(f"[bold red]Configuration error:[/] {escape(str(e))}")
        return EXIT_CONFIG
    except SourceError as e:
        err_console.print(f"[bold red]khal query failed:[/] {escape(str(e))}")
        return EXIT_FAILURE

    for failure in report.failures:
        err_console.print(f"[bold red]Notification failed[/] {escape(failure.title)}: {escape(str(failure.error))}")
    return report.exit_code


def build_pipeline(args: argparse.Namespace, config: KhalNotifyConfig) -> NotificationPipeline:
    """Merge CLI flags over config and assemble the pipeline.

    Raises:
        ConfigurationError: Bad offset, pattern or numeric option.
    """
    utc_offset = parse_utc_offset(args.timezone) if args.timezone is not None else config.utc_offset
    desc_length = args.desc_length if args.desc_length is not None else config.desc_length
    if desc_length < 0:
        raise ConfigurationError(f"description length must not be negative, got {desc_length}")
    strip_patterns = compile_patterns(args.strip_regex if args.strip_regex else config.strip_regex)

    max_workers = args.max_workers if args.max_workers is not None else config.max_workers
    timeout = args.timeout if args.timeout is not None else config.timeout
    if max_workers < 0 or timeout < 0:
        raise ConfigurationError("--max-workers and --timeout must not be negative")

    source = KhalEventSource(
        config_path=args.config or config.khal_config,
        date_format=args.date_format or config.date_format,
        time_format=args.time_format or config.time_format,
        executable=config.khal_bin,
    )
    dispatcher = NotificationDispatcher(
        NotifySendNotifier(
            executable=config.notifier_bin,
            dismissed_sentinel=config.dismissed_sentinel,
        ),
        link_actions=args.link_actions if args.link_actions is not None else config.link_actions,
        max_concurrency=max_workers or None,
        timeout=timeout or None,
    )
    return NotificationPipeline(
        source=source,
        formatter=DescriptionFormatter(strip_patterns, desc_length),
        dispatcher=dispatcher,
        utc_offset_hours=utc_offset,
        include_all_day=args.all_day if args.all_day is not None else config.include_all_day,
    )


def _print_notifications(console: Console, notifications: list[FormattedNotification]) -> None:
    if not notifications:
        console.print("[dim]No upcoming events.[/]")
        return
    for n in notifications:
        body = Text(n.display_body)
        for index, link in n.actions:
            body.append(f"\n[{index}] {link}", style="cyan")
        console.print(Panel(body, title=escape(n.display_title), title_align="left", border_style="cyan"))


def _setup_logging(level: str) -> None:
    """Log to stderr under the ``khal_notify`` logger."""
    root_logger = logging.getLogger("khal_notify")
    root_logger.setLevel(getattr(logging, level.upper(), logging.WARNING))
    if not root_logger.handlers:
        console_handler = logging.StreamHandler(sys.stderr)
        console_handler.setFormatter(logging.Formatter(
            "%(asctime)s [%(name)s] %(levelname)s: %(message)s",
            datefmt="%H:%M:%S",
        ))
        root_logger.addHandler(console_handler)


if __name__ == "__main__":
    sys.exit(main())
