"""
khal-notify — khal Event Source

Runs ``khal at`` once for the resolved target and parses its JSON output.

Architecture:
    KhalEventSource (this file)
    └── subprocess.run(["khal", "--config", ..., "at", DATE, TIME, ...])
    └── returns CalendarEvent dataclasses, in khal's order
"""

from __future__ import annotations

import json
import logging
import subprocess
from pathlib import Path
from typing import Any

from khal_notify.errors import ExternalToolUnavailable, MalformedSourceOutput
from khal_notify.models import JSON_FIELDS, CalendarEvent, TimeTarget

logger = logging.getLogger("khal_notify.integrations.khal")


class KhalEventSource:
    """Fetches upcoming events from khal.

    Usage:
        source = KhalEventSource("~/.config/khal/config", "%Y-%m-%d", "%H:%M")
        for event in source.fetch_events(target):
            print(event.display_title, event.time_range_label)
    """

    def __init__(
        self,
        config_path: str | Path,
        date_format: str = "%Y-%m-%d",
        time_format: str = "%H:%M",
        executable: str = "khal",
    ) -> None:
        self.config_path = str(config_path)
        self.date_format = date_format
        self.time_format = time_format
        self.executable = executable

    def build_command(self, target: TimeTarget) -> list[str]:
        """khal invocation for events not yet started at ``target``."""
        cmd = [
            self.executable,
            "--config", self.config_path,
            "at",
            target.format(self.date_format),
            target.format(self.time_format),
            "--notstarted",
        ]
        for name in JSON_FIELDS:
            cmd.extend(["--json", name])
        return cmd

    def fetch_events(self, target: TimeTarget) -> list[CalendarEvent]:
        """Query khal once and return its events.

        Raises:
            ExternalToolUnavailable: khal could not be started.
            MalformedSourceOutput: khal failed or printed something unparsable.
        """
        cmd = self.build_command(target)
        logger.debug(f"Running {' '.join(cmd)}")

        try:
            proc = subprocess.run(cmd, capture_output=True, text=True, check=False)
        except OSError as e:
            raise ExternalToolUnavailable(f"could not execute {self.executable}: {e}") from e

        stderr = (proc.stderr or "").strip()
        if proc.returncode != 0:
            logger.warning(f"{self.executable} exited with {proc.returncode}: {stderr}")
            if not proc.stdout.strip():
                raise MalformedSourceOutput(
                    f"{self.executable} exited with status {proc.returncode}: {stderr or 'no output'}"
                )
        elif stderr:
            logger.debug(f"{self.executable} stderr: {stderr}")

        events = parse_events(proc.stdout)
        logger.info(f"khal returned {len(events)} event(s)")
        return events


def parse_events(raw: str | bytes) -> list[CalendarEvent]:
    """Parse ``khal --json`` output.

    khal prints one JSON array per day it covers; a single-day query prints
    exactly one. Blank output means no events.

    Raises:
        MalformedSourceOutput: Output is not a sequence of event arrays.
    """
    if isinstance(raw, bytes):
        try:
            raw = raw.decode("utf-8")
        except UnicodeDecodeError as e:
            raise MalformedSourceOutput(f"khal output is not UTF-8: {e}") from e

    if not raw.strip():
        return []

    try:
        chunks: list[Any] = [json.loads(raw)]
    except json.JSONDecodeError:
        chunks = []
        for lineno, line in enumerate(raw.splitlines(), 1):
            if not line.strip():
                continue
            try:
                chunks.append(json.loads(line))
            except json.JSONDecodeError as e:
                raise MalformedSourceOutput(f"khal output of unexpected format (line {lineno}): {e}") from e

    events: list[CalendarEvent] = []
    for chunk in chunks:
        if not isinstance(chunk, list):
            raise MalformedSourceOutput(f"expected a JSON array of events, got {type(chunk).__name__}")
        events.extend(CalendarEvent.from_dict(item) for item in chunk)
    return events
