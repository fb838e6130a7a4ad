"""
Unit tests for the middleware pipeline and command logging.
"""

import json
import logging

import pytest

from molecule.dispatcher import Command
from molecule.middleware import (
    CommandLoggingMiddleware,
    Middleware,
    MiddlewarePipeline,
)
from molecule.protocol import ErrorCode, response
from molecule.protocol import commands as cmd


def ok_handler(command):
    return response.value([])


class TestMiddlewarePipeline:
    """Tests for MiddlewarePipeline."""

    def test_empty_pipeline_returns_handler(self):
        pipeline = MiddlewarePipeline()
        assert pipeline.wrap(ok_handler) is ok_handler

    def test_order(self):
        """First added runs outermost."""
        calls = []

        class Tracing(Middleware):
            def __init__(self, label):
                self.label = label

            def __call__(self, command, next):
                calls.append(f"{self.label}:before")
                result = next(command)
                calls.append(f"{self.label}:after")
                return result

        pipeline = MiddlewarePipeline().add(Tracing("outer")).add(Tracing("inner"))
        pipeline.wrap(ok_handler)(Command(cmd.ListCollections()))

        assert calls == ["outer:before", "inner:before", "inner:after", "outer:after"]
        assert len(pipeline) == 2
        assert [m.label for m in pipeline] == ["outer", "inner"]
        assert list(pipeline)[0].name == "Tracing"


class TestCommandLoggingMiddleware:
    """Tests for CommandLoggingMiddleware."""

    def test_logs_text(self, caplog):
        mw = CommandLoggingMiddleware()

        with caplog.at_level(logging.INFO, logger="molecule.commands"):
            mw(Command(cmd.ListCollections(), client="abc"), ok_handler)

        assert len(caplog.records) == 1
        message = caplog.records[0].getMessage()
        assert "COLLECTIONS_LIST" in message
        assert "[abc]" in message
        assert "-> value" in message

    def test_logs_json(self, caplog):
        mw = CommandLoggingMiddleware(log_format="json")

        with caplog.at_level(logging.INFO, logger="molecule.commands"):
            mw(
                Command(cmd.GetRecord("c", "r")),
                lambda c: response.value(None),
            )

        entry = json.loads(caplog.records[0].getMessage())
        assert entry["keyword"] == "REC_GET"
        assert entry["outcome"] == "absent"
        assert entry["source"] == "socket"

    def test_logs_error_code(self, caplog):
        mw = CommandLoggingMiddleware()

        with caplog.at_level(logging.INFO, logger="molecule.commands"):
            mw(
                Command(cmd.CreateRecord("c", {})),
                lambda c: response.error(ErrorCode.DUPLICATE_RECORD_ID),
            )

        assert "duplicate_record_id" in caplog.records[0].getMessage()

    def test_skips_noop(self, caplog):
        mw = CommandLoggingMiddleware()

        with caplog.at_level(logging.INFO, logger="molecule.commands"):
            mw(Command(cmd.NoOp()), lambda c: response.empty())

        assert caplog.records == []

    def test_failure_is_logged_and_reraised(self, caplog):
        mw = CommandLoggingMiddleware()

        def failing(command):
            raise RuntimeError("disk on fire")

        with caplog.at_level(logging.INFO, logger="molecule.commands"):
            with pytest.raises(RuntimeError):
                mw(Command(cmd.ListCollections()), failing)

        assert caplog.records[0].levelno == logging.ERROR
        assert "disk on fire" in caplog.records[0].getMessage()
