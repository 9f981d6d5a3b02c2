"""Tests for loguru setup and the stdlib logging bridge."""

from __future__ import annotations

import logging

import pytest
from loguru import logger

from tfcleanup.audit.log import GIT_LOGGER, QUIET_LOGGERS, setup_logging


@pytest.fixture
def captured():
    messages: list = []
    yield messages
    logger.remove()
    logging.basicConfig(handlers=[logging.NullHandler()], force=True)


def _capture(messages: list, level: str = "DEBUG") -> None:
    logger.add(lambda message: messages.append(message.record), level=level, format="{message}")


def test_stdlib_records_reach_loguru(captured: list) -> None:
    setup_logging("INFO")
    _capture(captured)

    logging.getLogger("tfcleanup.example").warning("clone of %s failed", "infra")

    assert [(r["level"].name, r["message"]) for r in captured] == [("WARNING", "clone of infra failed")]


def test_http_libraries_are_quiet(captured: list) -> None:
    setup_logging("DEBUG")
    _capture(captured)

    for name in QUIET_LOGGERS:
        assert logging.getLogger(name).level == logging.WARNING
    logging.getLogger("httpx").info("HTTP Request: GET https://app.terraform.io")

    assert captured == []


def test_git_commands_logged_only_when_debugging(captured: list) -> None:
    setup_logging("INFO")
    assert logging.getLogger(GIT_LOGGER).level == logging.WARNING

    setup_logging("debug")
    _capture(captured)
    logging.getLogger("git.cmd").debug("Popen(['git', 'clone', 'file:///srv/infra'])")

    assert logging.getLogger(GIT_LOGGER).level == logging.DEBUG
    assert [r["message"] for r in captured] == ["Popen(['git', 'clone', 'file:///srv/infra'])"]
