"""Tests for log formatting and LogContext."""

import json
import logging

from app.core.logging import DevelopmentFormatter, LogContext, StructuredFormatter


def _record(message="Wizard saved"):
    return logging.getLogRecordFactory()(
        "opsconsole.test", logging.INFO, __file__, 1, message, None, None
    )


def test_context_reaches_structured_output():
    with LogContext(session_id="s-1", step=6, user_id=None):
        record = _record()

    data = json.loads(StructuredFormatter().format(record))

    assert data["session_id"] == "s-1"
    assert data["step"] == 6
    assert "user_id" not in data
    assert data["message"] == "Wizard saved"


def test_nested_contexts_combine_and_restore():
    original = logging.getLogRecordFactory()

    with LogContext(session_id="s-1"):
        with LogContext(company_id="c-acme"):
            record = _record()
        assert logging.getLogRecordFactory() is not original

    assert logging.getLogRecordFactory() is original
    line = DevelopmentFormatter().format(record)
    assert "session=s-1" in line
    assert "company=c-acme" in line


def test_no_context_outside_block():
    line = DevelopmentFormatter().format(_record())
    assert "[session=" not in line
