"""Tests for logging setup."""

from __future__ import annotations

import io
import logging

import pytest

from archivist.log import configure_logging, get_logger


@pytest.fixture(autouse=True)
def _restore_root_logger():
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield
    root.handlers[:] = handlers
    root.setLevel(level)


def _archivist_handlers():
    return [h for h in logging.getLogger().handlers if getattr(h, "_archivist", False)]


def test_get_logger_uses_name():
    assert get_logger("archivist.pipeline").name == "archivist.pipeline"


def test_configure_logging_adds_one_handler():
    configure_logging(logging.INFO)
    configure_logging(logging.DEBUG)
    assert len(_archivist_handlers()) == 1
    assert logging.getLogger().level == logging.DEBUG


def test_configure_logging_formats_records():
    for h in _archivist_handlers():
        logging.getLogger().removeHandler(h)
    stream = io.StringIO()
    configure_logging(logging.INFO, stream=stream)
    get_logger("archivist.test").info("hello %s", "there")
    assert "[INFO] archivist.test: hello there" in stream.getvalue()
