"""Tests for the logging setup."""

from __future__ import annotations

import json
import logging
import os
from unittest.mock import patch

import pytest
import structlog

from ntrn.core.logging import setup_logging


@pytest.fixture(autouse=True)
def restore_logging():
    yield
    with patch.dict(os.environ, {"NTRN_LOG_LEVEL": "WARNING"}):
        setup_logging()


def _flush():
    for handler in logging.getLogger().handlers:
        handler.flush()


class TestSetupLogging:
    def test_level_from_env(self):
        with patch.dict(os.environ, {"NTRN_LOG_LEVEL": "error"}):
            setup_logging(verbose=True)
        assert logging.getLogger().level == logging.ERROR
        assert logging.getLogger("ntrn").level == logging.ERROR

    def test_verbose_defaults_to_debug(self):
        with patch.dict(os.environ, {}, clear=True):
            setup_logging(verbose=True)
        assert logging.getLogger("ntrn").level == logging.DEBUG
        assert logging.getLogger("httpx").level == logging.WARNING

    def test_log_file_gets_json_lines(self, tmp_path):
        log_file = tmp_path / "logs" / "ntrn.log"
        with patch.dict(os.environ, {}, clear=True):
            setup_logging(log_file=log_file)
        structlog.get_logger("ntrn.test").info("converter.file_done", path="pages/about.tsx")
        _flush()

        records = [json.loads(line) for line in log_file.read_text().splitlines()]
        assert records[-1]["event"] == "converter.file_done"
        assert records[-1]["path"] == "pages/about.tsx"
        assert records[-1]["level"] == "info"

    def test_log_file_from_env(self, tmp_path):
        log_file = tmp_path / "env.log"
        with patch.dict(os.environ, {"NTRN_LOG_FILE": str(log_file)}, clear=True):
            setup_logging()
        assert any(isinstance(h, logging.FileHandler) for h in logging.getLogger().handlers)

    def test_no_file_handler_by_default(self):
        with patch.dict(os.environ, {}, clear=True):
            setup_logging()
        assert not any(isinstance(h, logging.FileHandler) for h in logging.getLogger().handlers)
