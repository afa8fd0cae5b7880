import json
import logging

from admin_gateway.logging_config import JsonFormatter, _request_id


def _record(**extra) -> logging.LogRecord:
    record = logging.LogRecord("admin_gateway", logging.INFO, __file__, 1, "applied", None, None)
    for key, value in extra.items():
        setattr(record, key, value)
    return record


def test_json_formatter_carries_request_id_and_payment_fields():
    token = _request_id.set("req-42")
    try:
        line = JsonFormatter().format(
            _record(pf_payment_id="1089250", outcome="applied", unrelated="dropped")
        )
    finally:
        _request_id.reset(token)

    entry = json.loads(line)
    assert entry["service"] == "admin_gateway"
    assert entry["environment"] == "testing"
    assert entry["request_id"] == "req-42"
    assert entry["pf_payment_id"] == "1089250"
    assert entry["outcome"] == "applied"
    assert "unrelated" not in entry


def test_json_formatter_omits_request_id_outside_a_request():
    entry = json.loads(JsonFormatter().format(_record()))

    assert "request_id" not in entry
    assert entry["message"] == "applied"
