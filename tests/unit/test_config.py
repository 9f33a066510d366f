"""
Unit tests: config.py
"""
from __future__ import annotations

from pathlib import Path

import pytest

from apk_ledger.config import DEFAULT_HISTORY_CAPACITY, LedgerConfig, load_config


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for key in ("APK_LEDGER_HOME", "APK_LEDGER_CAPACITY", "APK_LEDGER_ENGINE", "APK_LEDGER_LOG_LEVEL"):
        monkeypatch.delenv(key, raising=False)


class TestLoadConfig:

    def test_defaults(self):
        config = load_config()
        assert config.history_capacity == DEFAULT_HISTORY_CAPACITY == 10
        assert config.data_dir == Path.home() / ".apk-ledger"
        assert config.engine is None
        assert config.log_level == "WARNING"

    def test_environment(self, monkeypatch, tmp_path):
        monkeypatch.setenv("APK_LEDGER_HOME", str(tmp_path))
        monkeypatch.setenv("APK_LEDGER_CAPACITY", "25")
        monkeypatch.setenv("APK_LEDGER_ENGINE", "engine_mod:analyze")
        config = load_config()
        assert config.data_dir == tmp_path
        assert config.history_capacity == 25
        assert config.engine == "engine_mod:analyze"

    def test_overrides_beat_environment(self, monkeypatch):
        monkeypatch.setenv("APK_LEDGER_CAPACITY", "25")
        assert load_config(history_capacity=3).history_capacity == 3

    def test_none_overrides_are_ignored(self, monkeypatch):
        monkeypatch.setenv("APK_LEDGER_CAPACITY", "25")
        assert load_config(history_capacity=None).history_capacity == 25

    def test_bad_capacity_env(self, monkeypatch):
        monkeypatch.setenv("APK_LEDGER_CAPACITY", "lots")
        with pytest.raises(ValueError, match="APK_LEDGER_CAPACITY"):
            load_config()

    def test_capacity_must_be_positive(self):
        with pytest.raises(ValueError):
            load_config(history_capacity=0)

    def test_unknown_override(self):
        with pytest.raises(ValueError, match="Unknown config option"):
            load_config(colour="blue")

    def test_string_data_dir_becomes_path(self, tmp_path):
        assert LedgerConfig(data_dir=str(tmp_path)).data_dir == tmp_path
