from __future__ import annotations

import json
import logging

from geo_incident_service.common.logging import JsonFormatter, get_component_logger


def _record(**extra) -> logging.LogRecord:
    record = logging.LogRecord(
        name="geo-incident-service.worker",
        level=logging.WARNING,
        pathname=__file__,
        lineno=1,
        msg="task_requeued",
        args=(),
        exc_info=None,
    )
    for k, v in extra.items():
        setattr(record, k, v)
    return record


def test_json_formatter_includes_service_and_payload() -> None:
    fmt = JsonFormatter(service="worker-webhook")
    out = json.loads(fmt.format(_record(payload={"task_id": "t1", "retry_count": 1})))
    assert out["level"] == "WARNING"
    assert out["service"] == "worker-webhook"
    assert out["msg"] == "task_requeued"
    assert out["logger"] == "geo-incident-service.worker"
    assert out["payload"] == {"task_id": "t1", "retry_count": 1}
    assert out["ts"].endswith("Z")


def test_json_formatter_uses_record_time() -> None:
    record = _record()
    record.created = 0.0
    out = json.loads(JsonFormatter().format(record))
    assert out["ts"] == "1970-01-01T00:00:00.000Z"
    assert out["service"] is None


def test_json_formatter_skips_non_dict_payload() -> None:
    out = json.loads(JsonFormatter().format(_record(payload="raw")))
    assert "payload" not in out


def test_component_logger_is_child_of_project_logger() -> None:
    assert get_component_logger("worker").name == "geo-incident-service.worker"
    assert get_component_logger("delivery").name == "geo-incident-service.delivery"
