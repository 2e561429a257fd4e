"""
Tests for logging helpers

Author: Olivier Vitrac, PhD, HDR | olivier.vitrac@adservio.fr | Adservio | 2026-10-19
"""

import io
import logging

from callgraph_core.logging_utils import LogLevel, configure_logging, log_duration, parse_level


class TestParseLevel:

    def test_case_insensitive(self):
        assert parse_level("debug") is LogLevel.DEBUG

    def test_unknown_falls_back_to_info(self):
        assert parse_level("chatty") is LogLevel.INFO
        assert parse_level(None) is LogLevel.INFO


class TestConfigureLogging:
    """Tests for the package console handler."""

    def test_single_handler(self):
        stream = io.StringIO()
        logger = configure_logging("DEBUG", stream=stream)
        configure_logging("DEBUG", stream=stream)
        names = [h.get_name() for h in logger.handlers]
        assert names.count("callgraph-console") == 1

        logging.getLogger("callgraph_core.test").warning("hello")
        assert "hello" in stream.getvalue()

    def test_level_updated(self):
        logger = configure_logging("ERROR", stream=io.StringIO())
        assert logger.level == logging.ERROR

    def test_log_duration(self):
        stream = io.StringIO()
        configure_logging("DEBUG", stream=stream)
        logger = logging.getLogger("callgraph_core.timing")
        with log_duration(logger, "collapse", node="main"):
            pass
        assert "collapse completed in" in stream.getvalue()
        assert "node=main" in stream.getvalue()
