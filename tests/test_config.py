"""Config module tests.

Tests PROCFLOW_* environment variable parsing and configuration management.
"""

from __future__ import annotations

import os
from pathlib import Path
from unittest import mock

import pytest

from procflow.config import (
    DEFAULT_CHUNK_SIZE,
    DEFAULT_IO_WORKERS,
    Config,
    get_config,
    load_config,
    reload_config,
)


class TestDefaults:
    """Defaults when nothing is set."""

    def test_defaults(self):
        config = load_config()

        assert config.encoding == "utf-8"
        assert config.force_kill is False
        assert config.io_workers == DEFAULT_IO_WORKERS
        assert config.chunk_size == DEFAULT_CHUNK_SIZE
        assert config.log_debug is False
        assert config.log_file is None


class TestParseEncoding:
    """Encoding parsing."""

    def test_known_codec_is_normalized(self):
        with mock.patch.dict(os.environ, {"PROCFLOW_ENCODING": "UTF16"}, clear=False):
            assert load_config().encoding == "utf-16"

    def test_unknown_codec_falls_back(self):
        with mock.patch.dict(os.environ, {"PROCFLOW_ENCODING": "no-such-codec"}, clear=False):
            assert load_config().encoding == "utf-8"

    def test_blank_falls_back(self):
        with mock.patch.dict(os.environ, {"PROCFLOW_ENCODING": "  "}, clear=False):
            assert load_config().encoding == "utf-8"


class TestParseBool:
    """Boolean parsing."""

    @pytest.mark.parametrize("value", ["true", "True", "TRUE", "1", "yes", "Yes", "on"])
    def test_true_values(self, value):
        with mock.patch.dict(os.environ, {"PROCFLOW_FORCE_KILL": value}, clear=False):
            assert load_config().force_kill is True

    @pytest.mark.parametrize("value", ["false", "False", "FALSE", "0", "no", "No", "off", ""])
    def test_false_values(self, value):
        with mock.patch.dict(os.environ, {"PROCFLOW_FORCE_KILL": value}, clear=False):
            assert load_config().force_kill is False


class TestParseInt:
    """Integer parsing and clamping."""

    def test_io_workers(self):
        with mock.patch.dict(os.environ, {"PROCFLOW_IO_WORKERS": "8"}, clear=False):
            assert load_config().io_workers == 8

    def test_io_workers_clamped(self):
        with mock.patch.dict(os.environ, {"PROCFLOW_IO_WORKERS": "0"}, clear=False):
            assert load_config().io_workers == 1
        with mock.patch.dict(os.environ, {"PROCFLOW_IO_WORKERS": "1000"}, clear=False):
            assert load_config().io_workers == 64

    def test_chunk_size_clamped(self):
        with mock.patch.dict(os.environ, {"PROCFLOW_CHUNK_SIZE": "10"}, clear=False):
            assert load_config().chunk_size == 1024

    def test_invalid_falls_back(self):
        with mock.patch.dict(os.environ, {"PROCFLOW_CHUNK_SIZE": "lots"}, clear=False):
            assert load_config().chunk_size == DEFAULT_CHUNK_SIZE


class TestLogDebug:
    """Debug logging configuration."""

    def test_log_file_generated(self):
        with mock.patch.dict(os.environ, {"PROCFLOW_LOG_DEBUG": "1"}, clear=False):
            config = load_config()

        assert config.log_debug is True
        assert config.log_file is not None
        assert Path(config.log_file).parent.name == "procflow"


class TestGlobalConfig:
    """Cached global configuration."""

    def test_get_config_is_cached(self):
        assert get_config() is get_config()

    def test_reload_config(self):
        before = get_config()
        with mock.patch.dict(os.environ, {"PROCFLOW_IO_WORKERS": "12"}, clear=False):
            after = reload_config()

        assert after is not before
        assert after.io_workers == 12
        assert get_config() is after

    def test_repr(self):
        assert "encoding=utf-8" in repr(Config())
