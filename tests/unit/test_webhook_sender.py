from __future__ import annotations

from datetime import datetime

import requests

from geo_incident_service.common.config import get_settings
from geo_incident_service.delivery.webhook import (
    RETRYABLE_HTTP_STATUS_CODES,
    WebhookClientConfig,
    WebhookSender,
    build_payload,
    build_retry_session,
)
from geo_incident_service.domain.models import DeliveryTask

URL = "http://hooks.local/incident"


class _FakeResponse:
    def __init__(self, status_code: int, text: str = "") -> None:
        self.status_code = status_code
        self.text = text
        self.closed = False

    def close(self) -> None:
        self.closed = True


class _FakeSession:
    def __init__(self, response: _FakeResponse | None = None, exc: Exception | None = None):
        self.response = response
        self.exc = exc
        self.calls: list[dict] = []
        self.closed = False

    def post(self, url, *, json, headers, timeout):
        self.calls.append({"url": url, "json": json, "headers": headers, "timeout": timeout})
        if self.exc is not None:
            raise self.exc
        return self.response

    def close(self) -> None:
        self.closed = True


def _task() -> DeliveryTask:
    return DeliveryTask(name="Пожар", user_id="u1", incident_id="z1")


def _cfg() -> WebhookClientConfig:
    return WebhookClientConfig(retry_max=2, wait_min_sec=0.5, wait_max_sec=4.0, timeout_sec=3.0)


def test_payload_shape() -> None:
    task = _task()
    payload = build_payload(task)
    assert set(payload) == {"name", "incident_id", "user_id", "timestamp"}
    assert payload["name"] == "Пожар"
    assert payload["incident_id"] == "z1"
    assert payload["user_id"] == "u1"
    assert payload["timestamp"].endswith("Z")
    datetime.fromisoformat(payload["timestamp"].replace("Z", "+00:00"))


def test_2xx_is_success() -> None:
    resp = _FakeResponse(204)
    session = _FakeSession(resp)
    result = WebhookSender(_cfg(), session=session).send(_task(), URL)

    assert result.ok is True
    assert result.status_code == 204
    assert resp.closed is True
    call = session.calls[0]
    assert call["url"] == URL
    assert call["headers"] == {"Content-Type": "application/json"}
    assert call["timeout"] == 3.0


def test_non_2xx_is_failure_with_body_head() -> None:
    session = _FakeSession(_FakeResponse(302, "moved\nsomewhere"))
    result = WebhookSender(_cfg(), session=session).send(_task(), URL)

    assert result.ok is False
    assert result.status_code == 302
    assert "302" in (result.error or "")
    assert result.meta == {"text_head": "moved somewhere"}


def test_transport_error_never_raises() -> None:
    session = _FakeSession(exc=requests.ConnectionError("refused"))
    result = WebhookSender(_cfg(), session=session).send(_task(), URL)

    assert result.ok is False
    assert result.status_code is None
    assert "refused" in (result.error or "")


def test_retry_session_mounts_adapter_with_backoff_window() -> None:
    session = build_retry_session(_cfg())
    retry = session.get_adapter("https://hooks.local").max_retries

    assert retry.total == 2
    assert retry.backoff_factor == 0.5
    assert retry.backoff_max == 4.0
    assert set(retry.status_forcelist) == set(RETRYABLE_HTTP_STATUS_CODES)
    assert "POST" in retry.allowed_methods
    assert retry.raise_on_status is False
    session.close()


def test_config_from_settings() -> None:
    s = get_settings()
    snapshot = (s.webhook_retry_max, s.webhook_retry_wait_min_sec, s.webhook_timeout_sec)
    try:
        s.webhook_retry_max = 5
        s.webhook_retry_wait_min_sec = 0.2
        s.webhook_timeout_sec = 7
        cfg = WebhookClientConfig.from_settings()
        assert cfg.retry_max == 5
        assert cfg.wait_min_sec == 0.2
        assert cfg.timeout_sec == 7.0
    finally:
        (s.webhook_retry_max, s.webhook_retry_wait_min_sec, s.webhook_timeout_sec) = snapshot


def test_close_closes_session() -> None:
    session = _FakeSession(_FakeResponse(200))
    WebhookSender(_cfg(), session=session).close()
    assert session.closed is True
