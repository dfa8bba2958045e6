"""Tests for logging configuration."""

import logging

import pytest
import structlog

from withdrawal_monitor.core.logging import configure_logging


@pytest.fixture(autouse=True)
def restore_logging():
    yield
    configure_logging("development")


class TestConfigureLogging:
    def test_production_renders_json(self):
        configure_logging("production")
        processors = structlog.get_config()["processors"]
        assert isinstance(processors[-1], structlog.processors.JSONRenderer)

    def test_development_renders_for_console(self):
        configure_logging("development")
        processors = structlog.get_config()["processors"]
        assert isinstance(processors[-1], structlog.dev.ConsoleRenderer)

    def test_transport_loggers_are_quieted(self):
        configure_logging("development", debug=True)
        assert logging.getLogger("web3").level == logging.WARNING
        assert logging.getLogger("httpx").level == logging.WARNING
