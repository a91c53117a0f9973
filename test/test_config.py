"""Tests for .env parsing helpers in config."""

import pytest

import config


class TestParsers:
    def test_int_list_plain_and_bracketed(self):
        assert config._parse_int_list("1, 2,3") == [1, 2, 3]
        assert config._parse_int_list("[4,5]") == [4, 5]
        assert config._parse_int_list("") == []
        assert config._parse_int_list(None) == []

    def test_int_list_drops_malformed(self, caplog):
        assert config._parse_int_list("15,abc, 30") == [15, 30]
        assert "abc" in caplog.text

    def test_clock_list_drops_malformed(self):
        assert config._parse_clock_list("8:00, 18:30,25:00,noon") == ["08:00", "18:30"]

    @pytest.mark.parametrize("value, expected", [("true", True), ("ON", True), ("0", False), (None, False)])
    def test_bool(self, value, expected):
        assert config._parse_bool(value) is expected

    def test_int_falls_back_on_garbage(self, monkeypatch):
        monkeypatch.setenv("DEFAULT_GAP_MINUTES", "lots")
        assert config._parse_int("DEFAULT_GAP_MINUTES", 15) == 15

    def test_float_reads_env(self, monkeypatch):
        monkeypatch.setenv("TICK_INTERVAL_SECONDS", "0.5")
        assert config._parse_float("TICK_INTERVAL_SECONDS", 1.0) == 0.5

    def test_get_required_missing(self, monkeypatch):
        monkeypatch.delenv("BOT_TOKEN", raising=False)
        with pytest.raises(ValueError):
            config.get_required("BOT_TOKEN")

    def test_defaults(self):
        assert all(m > 0 for m in config.GAP_PRESETS)
        assert all(len(clock) == 5 for clock in config.WAIT_PRESETS)
