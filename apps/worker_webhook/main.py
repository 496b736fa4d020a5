"""
Worker Webhook.

Алгоритм:
- BRPOP id задачи из webhook:pending (короткими интервалами, с учётом stop)
- POST на WEBHOOK_URL (транспортные ретраи внутри попытки)
- успех -> ack; неудача -> retry_count += 1 -> повтор или DLQ

Остановка по SIGINT/SIGTERM: текущая задача дорабатывается, цикл выходит.
"""

from __future__ import annotations

import signal
import threading

from geo_incident_service.common.config import get_settings
from geo_incident_service.common.logging import get_component_logger, setup_logging
from geo_incident_service.delivery.webhook import WebhookClientConfig, WebhookSender
from geo_incident_service.queue.redis import RedisResource
from geo_incident_service.queue.task_store import TaskStore
from geo_incident_service.queue.worker import SERVICE, DeliveryWorker
from geo_incident_service.services.readiness_service import enforce_startup_readiness

log = get_component_logger("worker")


def _install_signal_handlers(stop: threading.Event) -> None:
    def _handle(signum, _frame) -> None:
        log.info("worker_webhook_signal", extra={"payload": {"signal": signum}})
        stop.set()

    signal.signal(signal.SIGINT, _handle)
    signal.signal(signal.SIGTERM, _handle)


def run(stop: threading.Event) -> None:
    settings = get_settings()
    redis_res = RedisResource.from_settings(settings)
    sender = WebhookSender(WebhookClientConfig.from_settings(settings))
    try:
        store = TaskStore.from_settings(redis_res.connect(), settings)
        worker = DeliveryWorker(
            store,
            sender,
            webhook_url=settings.webhook_url,
            max_retries=settings.worker_max_retries,
            error_backoff_sec=settings.worker_error_backoff_sec,
        )
        worker.run(stop)
    finally:
        sender.close()
        redis_res.close()


def main() -> None:
    setup_logging(service=SERVICE)
    enforce_startup_readiness(service_name=SERVICE)
    stop = threading.Event()
    _install_signal_handlers(stop)
    run(stop)


if __name__ == "__main__":
    main()
