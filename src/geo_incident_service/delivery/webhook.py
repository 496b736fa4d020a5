"""
Отправка вебхуков о попадании пользователя в опасную зону.

Два независимых уровня повторов:
- транспортный (здесь): urllib3 Retry внутри одной попытки — сетевые ошибки,
  429 и 5xx, экспоненциальный backoff в окне [wait_min, wait_max]
- очередной (воркер): повтор попытки целиком через pending-список

Успех — только 2xx. Любой другой итоговый статус — неудача попытки,
даже если транспорт в итоге получил ответ.
"""

from __future__ import annotations

from dataclasses import dataclass

import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from geo_incident_service.common.config import Settings, get_settings
from geo_incident_service.common.logging import get_component_logger
from geo_incident_service.common.time import utc_now_rfc3339
from geo_incident_service.domain.models import DeliveryTask

from .base import DeliveryResult

log = get_component_logger("delivery")

PROVIDER = "webhook"
RETRYABLE_HTTP_STATUS_CODES = (429, 500, 502, 503, 504)


@dataclass
class WebhookClientConfig:
    """Настройки HTTP-клиента вебхуков."""

    retry_max: int = 3
    wait_min_sec: float = 1.0
    wait_max_sec: float = 30.0
    timeout_sec: float = 10.0

    @classmethod
    def from_settings(cls, settings: Settings | None = None) -> WebhookClientConfig:
        s = settings or get_settings()
        return cls(
            retry_max=max(0, int(s.webhook_retry_max)),
            wait_min_sec=max(0.0, float(s.webhook_retry_wait_min_sec)),
            wait_max_sec=max(0.0, float(s.webhook_retry_wait_max_sec)),
            timeout_sec=max(0.1, float(s.webhook_timeout_sec)),
        )


def build_retry_session(cfg: WebhookClientConfig) -> requests.Session:
    """
    requests.Session с транспортными ретраями на уровне адаптера.
    """
    retry = Retry(
        total=cfg.retry_max,
        connect=cfg.retry_max,
        read=cfg.retry_max,
        status=cfg.retry_max,
        backoff_factor=cfg.wait_min_sec,
        backoff_max=max(cfg.wait_min_sec, cfg.wait_max_sec),
        status_forcelist=RETRYABLE_HTTP_STATUS_CODES,
        allowed_methods=frozenset({"POST"}),
        raise_on_status=False,
        respect_retry_after_header=True,
    )
    adapter = HTTPAdapter(max_retries=retry)
    session = requests.Session()
    session.mount("http://", adapter)
    session.mount("https://", adapter)
    return session


def build_payload(task: DeliveryTask) -> dict[str, str]:
    return {
        "name": task.name,
        "incident_id": task.incident_id,
        "user_id": task.user_id,
        "timestamp": utc_now_rfc3339(),
    }


class WebhookSender:
    def __init__(
        self,
        cfg: WebhookClientConfig | None = None,
        *,
        session: requests.Session | None = None,
    ) -> None:
        self.cfg = cfg or WebhookClientConfig.from_settings()
        self.session = session or build_retry_session(self.cfg)

    def send(self, task: DeliveryTask, target_url: str) -> DeliveryResult:
        payload = build_payload(task)
        try:
            resp = self.session.post(
                target_url,
                json=payload,
                headers={"Content-Type": "application/json"},
                timeout=self.cfg.timeout_sec,
            )
        except requests.RequestException as e:
            log.warning(
                "webhook_http_error",
                extra={"payload": {"task_id": task.id, "err": str(e)[:200]}},
            )
            return DeliveryResult(ok=False, provider=PROVIDER, error=str(e)[:500])

        try:
            status_code = int(resp.status_code)
            if 200 <= status_code < 300:
                return DeliveryResult(ok=True, provider=PROVIDER, status_code=status_code)

            body_head = (resp.text or "").strip().replace("\n", " ")[:300]
            return DeliveryResult(
                ok=False,
                provider=PROVIDER,
                status_code=status_code,
                error=f"webhook вернул неверный статус: {status_code}",
                meta={"text_head": body_head},
            )
        finally:
            resp.close()

    def close(self) -> None:
        self.session.close()
