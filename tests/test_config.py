"""Tests for environment-driven settings."""

from __future__ import annotations

import logging

import pytest

from linkpreview.config import Settings


class TestLogLevel:
    def test_default_is_info(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.delenv("LOG_LEVEL", raising=False)
        assert Settings().log_level == "INFO"

    def test_lowercase_name_is_accepted(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("LOG_LEVEL", "debug")
        assert Settings().log_level == "DEBUG"

    def test_alias_is_normalised(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("LOG_LEVEL", "warn")
        assert Settings().log_level == "WARNING"

    def test_unknown_name_falls_back_to_info(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("LOG_LEVEL", "verbose")
        level = Settings().log_level
        assert level == "INFO"
        # Must be usable by the logging module without raising.
        logging.getLogger("linkpreview.test").setLevel(level)
