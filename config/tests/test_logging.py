import json
import logging
import sys

import pytest
from config.logging import JsonFormatter, SamplingFilter


def _record(msg, level=logging.INFO, exc_info=None, **extra):
    record = logging.LogRecord("opsdesk.orders", level, __file__, 1, msg, None, exc_info)
    for key, value in extra.items():
        setattr(record, key, value)
    return record


def test_json_formatter_merges_extra_fields():
    record = _record("order.created", event="order.created", order_id=7, total_amount="12.50", when=object())

    payload = json.loads(JsonFormatter().format(record))

    assert payload["level"] == "INFO"
    assert payload["name"] == "opsdesk.orders"
    assert payload["message"] == "order.created"
    assert payload["event"] == "order.created"
    assert payload["order_id"] == 7
    assert payload["total_amount"] == "12.50"
    assert isinstance(payload["when"], str)
    assert payload["time"].endswith("Z")


def test_json_formatter_parses_json_messages_and_exceptions():
    try:
        raise ValueError("boom")
    except ValueError:
        record = _record('{"event": "order.deleted", "order_id": 3}', level=logging.ERROR, exc_info=sys.exc_info())

    payload = json.loads(JsonFormatter().format(record))

    assert payload["event"] == "order.deleted"
    assert payload["order_id"] == 3
    assert "ValueError: boom" in payload["exc"]


@pytest.mark.parametrize(
    "record, expected",
    [
        (_record("order.status_changed", event="order.status_changed"), True),
        (_record("order.deleted"), True),
        (_record("order.created", event="order.created"), False),
        (_record("order.stock_restore_skipped", level=logging.WARNING), True),
    ],
)
def test_sampling_filter_keeps_allowed_events(record, expected):
    sampler = SamplingFilter(rate=0.0, levels=["INFO"], allow_events=["order.status_changed", "order.deleted"])

    assert sampler.filter(record) is expected


def test_sampling_filter_rate_bounds():
    record = _record("order.created")

    assert SamplingFilter(rate=1.0).filter(record) is True
    assert SamplingFilter(rate="not-a-number").filter(record) is True
    assert SamplingFilter(rate=0).filter(record) is False
