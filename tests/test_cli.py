"""
Tests for the khal-notify CLI.

Tests the entry point via subprocess and main() directly, with khal and
notify-send replaced by mocks.
"""

from __future__ import annotations

import json
import subprocess
import sys
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from khal_notify.__main__ import EXIT_CONFIG, EXIT_FAILURE, EXIT_OK, attach_hyphen_values, build_parser, main
from khal_notify.config import KhalNotifyConfig

KHAL_RUN = "khal_notify.integrations.khal.subprocess.run"

EVENTS = [
    {
        "title": "Standup",
        "description": "Daily sync",
        "start-end-time-style": "10:00-10:15",
        "repeat-symbol": "",
        "all-day": False,
    },
    {
        "title": "Holiday",
        "description": "",
        "start-end-time-style": "",
        "repeat-symbol": "",
        "all-day": True,
    },
]


# ═══════════════════════════════════════════════════════════════════════════
# Fixtures
# ═══════════════════════════════════════════════════════════════════════════


@pytest.fixture(autouse=True)
def isolated_config(monkeypatch, tmp_path):
    for key in KhalNotifyConfig.DEFAULTS:
        monkeypatch.delenv(key, raising=False)
    monkeypatch.setenv("KHAL_NOTIFY_CONFIG_DIR", str(tmp_path / "khal-notify"))
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "xdg"))


def _khal(stdout: str = "[]", returncode: int = 0) -> MagicMock:
    return MagicMock(return_value=subprocess.CompletedProcess(["khal"], returncode, stdout=stdout, stderr=""))


def _notify_proc(stdout: bytes = b"", returncode: int = 0) -> MagicMock:
    proc = MagicMock()
    proc.returncode = returncode
    proc.communicate = AsyncMock(return_value=(stdout, b""))
    proc.wait = AsyncMock(return_value=returncode)
    return proc


# ═══════════════════════════════════════════════════════════════════════════
# CLI Subprocess Tests
# ═══════════════════════════════════════════════════════════════════════════


class TestCLIVersion:
    def test_version_flag(self):
        result = subprocess.run(
            [sys.executable, "-m", "khal_notify", "--version"],
            capture_output=True, text=True, timeout=10,
        )
        assert result.returncode == 0
        assert "khal-notify" in result.stdout

    def test_help_flag(self):
        result = subprocess.run(
            [sys.executable, "-m", "khal_notify", "--help"],
            capture_output=True, text=True, timeout=10,
        )
        assert result.returncode == 0
        assert "--strip-regex" in result.stdout


# ═══════════════════════════════════════════════════════════════════════════
# Argument parsing
# ═══════════════════════════════════════════════════════════════════════════


class TestParser:
    def test_at_tokens_collected(self):
        args = build_parser().parse_args(["2024-05-01", "09:30"])
        assert args.at == ["2024-05-01", "09:30"]

    def test_repeatable_strip_regex(self):
        args = build_parser().parse_args(["-s", "foo", "--strip-regex=-::~.*"])
        assert args.strip_regex == ["foo", "-::~.*"]

    def test_strip_regex_value_may_start_with_hyphen(self):
        args = build_parser().parse_args(attach_hyphen_values(["-s", "-::~:~::~.*", "15"]))
        assert args.strip_regex == ["-::~:~::~.*"]
        assert args.at == ["15"]

    def test_long_flag_value_may_start_with_hyphen(self):
        args = build_parser().parse_args(attach_hyphen_values(["--strip-regex", "-x", "-s", "y"]))
        assert args.strip_regex == ["-x", "y"]

    def test_attach_leaves_other_arguments_alone(self):
        argv = ["-a", "-l", "50", "--", "-s", "2024-05-01"]
        assert attach_hyphen_values(argv) == argv

    def test_unset_flags_defer_to_config(self):
        args = build_parser().parse_args([])
        assert args.all_day is None
        assert args.desc_length is None
        assert args.link_actions is None


# ═══════════════════════════════════════════════════════════════════════════
# main()
# ═══════════════════════════════════════════════════════════════════════════


class TestMain:
    def test_sends_one_notification_per_timed_event(self):
        khal = _khal(json.dumps(EVENTS))
        spawn = AsyncMock(return_value=_notify_proc())
        with patch(KHAL_RUN, khal), patch("asyncio.create_subprocess_exec", spawn):
            assert main(["-c", "/tmp/khal.conf", "15"]) == EXIT_OK

        cmd = khal.call_args.args[0]
        assert cmd[:3] == ["khal", "--config", "/tmp/khal.conf"]
        assert spawn.await_count == 1
        assert spawn.call_args.args[-2:] == ("Standup", "Daily sync\n10:00-10:15")

    def test_all_day_flag(self):
        spawn = AsyncMock(return_value=_notify_proc())
        with patch(KHAL_RUN, _khal(json.dumps(EVENTS))), patch("asyncio.create_subprocess_exec", spawn):
            assert main(["-a"]) == EXIT_OK
        assert spawn.await_count == 2

    def test_absolute_time_passed_to_khal(self):
        khal = _khal()
        with patch(KHAL_RUN, khal):
            assert main(["-z", "+2", "2024-05-01", "09:30"]) == EXIT_OK
        assert khal.call_args.args[0][4:6] == ["2024-05-01", "09:30"]

    def test_dry_run_prints_without_notifying(self, capsys):
        spawn = AsyncMock()
        with patch(KHAL_RUN, _khal(json.dumps(EVENTS))), patch("asyncio.create_subprocess_exec", spawn):
            assert main(["--dry-run"]) == EXIT_OK
        spawn.assert_not_awaited()
        assert "Standup" in capsys.readouterr().out

    def test_bad_offset_exits_before_khal(self):
        khal = _khal()
        with patch(KHAL_RUN, khal):
            assert main(["-z", "+30"]) == EXIT_CONFIG
        khal.assert_not_called()

    def test_bad_regex_exits_before_khal(self):
        khal = _khal()
        with patch(KHAL_RUN, khal):
            assert main(["-s", "(unclosed"]) == EXIT_CONFIG
        khal.assert_not_called()

    def test_hyphen_strip_regex_applied(self):
        events = [dict(EVENTS[0], description="Daily sync\n-::~:~::~:~::~:~::~ Join the call")]
        spawn = AsyncMock(return_value=_notify_proc())
        with patch(KHAL_RUN, _khal(json.dumps(events))), patch("asyncio.create_subprocess_exec", spawn):
            assert main(["-s", "-::~:~::~.*", "15"]) == EXIT_OK
        assert spawn.call_args.args[-1] == "Daily sync\n10:00-10:15"

    def test_time_beyond_calendar_is_config_error(self):
        khal = _khal()
        with patch(KHAL_RUN, khal):
            assert main(["99999999999"]) == EXIT_CONFIG
            assert main(["0001-01-01", "00:00"]) == EXIT_CONFIG
        khal.assert_not_called()

    def test_bad_time_token(self):
        khal = _khal()
        with patch(KHAL_RUN, khal):
            assert main(["soon"]) == EXIT_CONFIG
        khal.assert_not_called()

    def test_missing_khal(self, capsys):
        with patch(KHAL_RUN, side_effect=FileNotFoundError("khal")):
            assert main([]) == EXIT_FAILURE
        assert "khal" in capsys.readouterr().err

    def test_malformed_khal_output(self):
        with patch(KHAL_RUN, _khal("Error: no calendars")):
            assert main([]) == EXIT_FAILURE

    def test_notifier_failure_is_non_zero(self):
        spawn = AsyncMock(side_effect=FileNotFoundError("notify-send"))
        with patch(KHAL_RUN, _khal(json.dumps(EVENTS))), patch("asyncio.create_subprocess_exec", spawn):
            assert main(["-a"]) == EXIT_FAILURE
        assert spawn.await_count == 2

    def test_link_actions_open_chosen_link(self):
        events = [dict(EVENTS[0], description="x" * 30 + " https://example.com/doc")]
        spawn = AsyncMock(return_value=_notify_proc(stdout=b"0\n"))
        with patch(KHAL_RUN, _khal(json.dumps(events))), \
                patch("asyncio.create_subprocess_exec", spawn), \
                patch("khal_notify.integrations.notifier.webbrowser.open", return_value=True) as browser:
            assert main(["--link-actions", "-l", "10"]) == EXIT_OK

        assert "--action=0=https://example.com/doc" in spawn.call_args.args
        browser.assert_called_once_with("https://example.com/doc")
