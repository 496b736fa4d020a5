from __future__ import annotations

import pytest

from geo_incident_service.common.config import Settings


def test_defaults_match_queue_and_cache_layout(monkeypatch) -> None:
    for name in ("ZONE_CACHE_KEY", "QUEUE_PENDING_KEY", "QUEUE_DEAD_KEY", "QUEUE_TASK_TTL_SEC"):
        monkeypatch.delenv(name, raising=False)
    s = Settings(_env_file=None)
    assert s.zone_cache_key == "incidents:active"
    assert s.zone_cache_ttl_sec == 60
    assert s.zone_fetch_limit == 1000
    assert s.queue_task_key_prefix == "webhook:task:"
    assert s.queue_pending_key == "webhook:pending"
    assert s.queue_dead_key == "webhook:queue:dead"
    assert s.queue_task_ttl_sec == 86_400


def test_env_aliases(monkeypatch) -> None:
    monkeypatch.setenv("WORKER_MAX_RETRIES", "5")
    monkeypatch.setenv("WEBHOOK_URL", "http://hooks.local/")
    monkeypatch.setenv("WORKER_EMBEDDED", "false")
    s = Settings(_env_file=None)
    assert s.worker_max_retries == 5
    assert s.webhook_url == "http://hooks.local/"
    assert s.worker_embedded is False


def test_file_override_reads_secret(monkeypatch, tmp_path) -> None:
    secret = tmp_path / "api_keys"
    secret.write_text("k1\nk2\n", encoding="utf-8")
    monkeypatch.setenv("API_KEYS_FILE", str(secret))
    s = Settings(_env_file=None)
    assert s.api_keys == "k1,k2"


def test_file_override_missing_file_fails(monkeypatch, tmp_path) -> None:
    monkeypatch.setenv("WEBHOOK_URL_FILE", str(tmp_path / "nope"))
    with pytest.raises(RuntimeError, match="WEBHOOK_URL_FILE"):
        Settings(_env_file=None)
