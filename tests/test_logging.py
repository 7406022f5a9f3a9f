import json
import logging
import sys

from inventory_service.core.logging_config import (
    SecurityFilter,
    StructuredFormatter,
    correlation_id_var,
    get_logger,
    request_id_var,
)


def _record(msg, args=None, exc_info=None, **extra):
    record = logging.LogRecord("inventory", logging.INFO, __file__, 10, msg, args, exc_info)
    for key, value in extra.items():
        setattr(record, key, value)
    return record


def test_formatter_emits_json_with_service_metadata():
    formatter = StructuredFormatter("inventory-service", "test", "9.9.9")
    record = _record("Created product %s", (3,), extra_fields={"id": 3}, duration_ms=1.5)

    payload = json.loads(formatter.format(record))

    assert payload["message"] == "Created product 3"
    assert payload["service"] == "inventory-service"
    assert payload["environment"] == "test"
    assert payload["version"] == "9.9.9"
    assert payload["level"] == "INFO"
    assert payload["custom"] == {"id": 3}
    assert payload["performance"] == {"duration_ms": 1.5}
    assert "trace" not in payload


def test_formatter_includes_request_context_and_errors():
    formatter = StructuredFormatter("inventory-service")
    token = request_id_var.set("req-1")
    corr = correlation_id_var.set("corr-1")
    try:
        try:
            raise RuntimeError("boom")
        except RuntimeError:
            record = _record("failed", exc_info=sys.exc_info())
        payload = json.loads(formatter.format(record))
    finally:
        request_id_var.reset(token)
        correlation_id_var.reset(corr)

    assert payload["trace"] == {"request_id": "req-1", "correlation_id": "corr-1"}
    assert payload["error"]["type"] == "RuntimeError"
    assert payload["error"]["message"] == "boom"


def test_security_filter_redacts():
    record = _record("user password leaked")
    assert SecurityFilter().filter(record) is True
    assert "password=***REDACTED***" in record.msg


def test_logger_adapter_injects_request_id():
    token = request_id_var.set("abc")
    try:
        _, kwargs = get_logger("x").process("msg", {})
    finally:
        request_id_var.reset(token)
    assert kwargs["extra"]["request_id"] == "abc"


def test_request_id_is_echoed(client):
    resp = client.get("/health/live", headers={"X-Request-ID": "fixed-id"})
    assert resp.headers["X-Request-ID"] == "fixed-id"
    assert client.get("/health/live").headers["X-Request-ID"]
