"""
Tests for KhalNotifyConfig — defaults, YAML file, environment overrides.
"""

from __future__ import annotations

from pathlib import Path

import pytest
import yaml

from khal_notify.config import KhalNotifyConfig, default_khal_config
from khal_notify.errors import ConfigurationError, InvalidOffset


@pytest.fixture(autouse=True)
def clean_env(monkeypatch, tmp_path):
    for key in KhalNotifyConfig.DEFAULTS:
        monkeypatch.delenv(key, raising=False)
    monkeypatch.delenv("KHAL_NOTIFY_CONFIG_DIR", raising=False)
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "xdg"))


@pytest.fixture
def config_dir(tmp_path: Path) -> Path:
    d = tmp_path / "khal-notify"
    d.mkdir()
    return d


def _write_yaml(config_dir: Path, data: dict) -> None:
    (config_dir / "config.yaml").write_text(yaml.safe_dump(data))


class TestDefaults:
    def test_documented_defaults(self, config_dir):
        config = KhalNotifyConfig(config_dir, load_env=False)
        assert config.desc_length == 200
        assert config.utc_offset == 9
        assert config.date_format == "%Y-%m-%d"
        assert config.time_format == "%H:%M"
        assert config.include_all_day is False
        assert config.strip_regex == []
        assert config.link_actions is False
        assert config.max_workers == 0
        assert config.timeout == 0
        assert config.khal_bin == "khal"
        assert config.notifier_bin == "notify-send"
        assert config.log_level == "WARNING"

    def test_khal_config_follows_xdg(self, config_dir, tmp_path):
        config = KhalNotifyConfig(config_dir, load_env=False)
        assert config.khal_config == tmp_path / "xdg" / "khal" / "config"
        assert default_khal_config() == config.khal_config

    def test_config_dir_from_env(self, monkeypatch, tmp_path):
        monkeypatch.setenv("KHAL_NOTIFY_CONFIG_DIR", str(tmp_path / "elsewhere"))
        assert KhalNotifyConfig(load_env=False).config_file == tmp_path / "elsewhere" / "config.yaml"


class TestYaml:
    def test_yaml_values(self, config_dir):
        _write_yaml(config_dir, {
            "KHAL_NOTIFY_DESC_LENGTH": 80,
            "KHAL_NOTIFY_UTC_OFFSET": -5,
            "KHAL_NOTIFY_STRIP_REGEX": ["-::~:~::~.*", "^\\s+"],
            "KHAL_NOTIFY_LINK_ACTIONS": True,
        })
        config = KhalNotifyConfig(config_dir, load_env=False)
        assert config.desc_length == 80
        assert config.utc_offset == -5
        assert config.strip_regex == ["-::~:~::~.*", "^\\s+"]
        assert config.link_actions is True

    def test_unknown_keys_ignored(self, config_dir):
        _write_yaml(config_dir, {"SOMETHING_ELSE": 1})
        assert KhalNotifyConfig(config_dir, load_env=False).get("SOMETHING_ELSE") is None

    def test_not_a_mapping(self, config_dir):
        (config_dir / "config.yaml").write_text("- just\n- a list\n")
        with pytest.raises(ConfigurationError):
            KhalNotifyConfig(config_dir, load_env=False)

    def test_broken_yaml(self, config_dir):
        (config_dir / "config.yaml").write_text("key: [unclosed\n")
        with pytest.raises(ConfigurationError):
            KhalNotifyConfig(config_dir, load_env=False)


class TestEnvironment:
    def test_env_overrides_yaml(self, config_dir, monkeypatch):
        _write_yaml(config_dir, {"KHAL_NOTIFY_DESC_LENGTH": 80})
        monkeypatch.setenv("KHAL_NOTIFY_DESC_LENGTH", "120")
        assert KhalNotifyConfig(config_dir, load_env=False).desc_length == 120

    def test_env_strip_regex_one_per_line(self, config_dir, monkeypatch):
        monkeypatch.setenv("KHAL_NOTIFY_STRIP_REGEX", "foo\nbar\n")
        assert KhalNotifyConfig(config_dir, load_env=False).strip_regex == ["foo", "bar"]

    @pytest.mark.parametrize("raw, expected", [("true", True), ("1", True), ("yes", True), ("false", False), ("0", False)])
    def test_env_booleans(self, config_dir, monkeypatch, raw, expected):
        monkeypatch.setenv("KHAL_NOTIFY_ALL_DAY", raw)
        assert KhalNotifyConfig(config_dir, load_env=False).include_all_day is expected

    def test_bad_number(self, config_dir, monkeypatch):
        monkeypatch.setenv("KHAL_NOTIFY_DESC_LENGTH", "lots")
        with pytest.raises(ConfigurationError):
            KhalNotifyConfig(config_dir, load_env=False).desc_length

    def test_negative_length(self, config_dir, monkeypatch):
        monkeypatch.setenv("KHAL_NOTIFY_DESC_LENGTH", "-1")
        with pytest.raises(ConfigurationError):
            KhalNotifyConfig(config_dir, load_env=False).desc_length

    def test_bad_offset(self, config_dir, monkeypatch):
        monkeypatch.setenv("KHAL_NOTIFY_UTC_OFFSET", "+30")
        with pytest.raises(InvalidOffset):
            KhalNotifyConfig(config_dir, load_env=False).utc_offset

    def test_khal_config_expands_user(self, config_dir, monkeypatch):
        monkeypatch.setenv("KHAL_NOTIFY_KHAL_CONFIG", "~/khal.conf")
        assert KhalNotifyConfig(config_dir, load_env=False).khal_config == Path("~/khal.conf").expanduser()
