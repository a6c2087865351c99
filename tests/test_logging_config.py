import json
import logging

import pytest
import structlog

from payflow.logging_config import (
    bind_payment_context,
    clear_payment_context,
    order_payment_context,
    setup_logging,
)


@pytest.fixture
def restore_root_logger():
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield root
    root.handlers[:] = handlers
    root.setLevel(level)
    clear_payment_context()
    structlog.reset_defaults()


def test_payment_identifiers_are_ordered_first():
    event = {"event": "submitted", "level": "info", "route_id": "r1", "run_id": "run_1"}

    ordered = order_payment_context(None, "info", event)

    assert list(ordered) == ["run_id", "route_id", "event", "level"]


def test_event_without_payment_context_is_unchanged():
    event = {"event": "startup", "level": "info"}

    assert order_payment_context(None, "info", dict(event)) == event


def test_stdlib_records_carry_bound_payment_context(restore_root_logger):
    setup_logging("INFO")
    formatter = restore_root_logger.handlers[0].formatter
    bind_payment_context(run_id="run_abc", invoice_id="inv_7", route_id=None)
    record = logging.LogRecord("payflow.core.payments.executor", logging.INFO, __file__, 1, "Run started", None, None)

    line = json.loads(formatter.format(record))

    assert list(line)[:2] == ["run_id", "invoice_id"]
    assert line["run_id"] == "run_abc"
    assert line["event"] == "Run started"
    assert "route_id" not in line
