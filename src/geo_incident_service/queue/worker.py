"""
Воркер доставки вебхуков.

Машина состояний задачи (старт — задача только что извлечена):
- send ok      -> ack                          -> delivered
- send failed  -> retry_count += 1
    - retry_count > max_retries -> move_to_dlq -> dead
    - иначе                     -> update + enqueue -> retried

Цикл: dequeue (с учётом stop) -> один проход машины состояний.
Ошибка обработки отдельной задачи логируется и не останавливает цикл.
"""

from __future__ import annotations

import threading

from geo_incident_service.common.errors import ErrCode, QueueError
from geo_incident_service.common.logging import get_component_logger
from geo_incident_service.common.metrics import QUEUE_TASKS_TOTAL, track_delivery_latency
from geo_incident_service.delivery.base import DeliveryProvider
from geo_incident_service.domain.enums import DeliveryOutcome
from geo_incident_service.domain.models import DeliveryTask

from .task_store import TaskStore

log = get_component_logger("worker")

SERVICE = "worker-webhook"


class DeliveryWorker:
    def __init__(
        self,
        store: TaskStore,
        sender: DeliveryProvider,
        *,
        webhook_url: str,
        max_retries: int,
        error_backoff_sec: float = 1.0,
    ) -> None:
        self.store = store
        self.sender = sender
        self.webhook_url = webhook_url
        self.max_retries = max(0, int(max_retries))
        self.error_backoff_sec = max(0.0, float(error_backoff_sec))

    # =========================================================================
    # ОДНА ЗАДАЧА
    # =========================================================================
    def process_task(self, task: DeliveryTask) -> DeliveryOutcome:
        with track_delivery_latency() as latency:
            result = self.sender.send(task, self.webhook_url)
            if result.ok:
                latency["result"] = "ok"

        if result.ok:
            log.info(
                "webhook_delivered",
                extra={"payload": {"task_id": task.id, "status_code": result.status_code}},
            )
            try:
                self.store.ack(task.id)
            except QueueError as e:
                # доставка уже состоялась; blob истечёт по TTL
                log.error(
                    "task_ack_failed", extra={"payload": {"task_id": task.id, "err": e.message}}
                )
            self._count(DeliveryOutcome.delivered)
            return DeliveryOutcome.delivered

        task.retry_count += 1

        if task.retry_count > self.max_retries:
            log.error(
                "task_moved_to_dlq",
                extra={
                    "payload": {
                        "task_id": task.id,
                        "retry_count": task.retry_count,
                        "max_retries": self.max_retries,
                        "err": result.error,
                    }
                },
            )
            try:
                self.store.move_to_dlq(task)
            except QueueError as e:
                log.error(
                    "task_move_to_dlq_failed",
                    extra={"payload": {"task_id": task.id, "err": e.message}},
                )
            self._count(DeliveryOutcome.dead)
            return DeliveryOutcome.dead

        log.warning(
            "task_requeued",
            extra={
                "payload": {
                    "task_id": task.id,
                    "retry_count": task.retry_count,
                    "max_retries": self.max_retries,
                    "status_code": result.status_code,
                    "err": result.error,
                }
            },
        )
        try:
            self.store.update(task)
        except QueueError as e:
            log.error(
                "task_update_failed", extra={"payload": {"task_id": task.id, "err": e.message}}
            )
        try:
            self.store.enqueue(task)
        except QueueError as e:
            log.error(
                "task_requeue_failed", extra={"payload": {"task_id": task.id, "err": e.message}}
            )
        self._count(DeliveryOutcome.retried)
        return DeliveryOutcome.retried

    # =========================================================================
    # ЦИКЛ
    # =========================================================================
    def run_once(
        self,
        *,
        stop: threading.Event | None = None,
        timeout_sec: float | None = None,
    ) -> DeliveryOutcome | None:
        """
        Один dequeue + один проход. None — задачи не было (stop/таймаут)
        или её не удалось извлечь.
        """
        try:
            task = self.store.dequeue(stop=stop, timeout_sec=timeout_sec)
        except QueueError as e:
            log.error(
                "task_dequeue_failed",
                extra={"payload": {"code": e.code, "err": e.message, "details": e.details}},
            )
            QUEUE_TASKS_TOTAL.labels(
                service=SERVICE, queue=self.store.pending_key, result="error"
            ).inc()
            raise

        if task is None:
            return None

        try:
            return self.process_task(task)
        except Exception as e:
            log.exception(
                "worker_task_error",
                extra={"payload": {"task_id": task.id, "err": str(e)[:200]}},
            )
            QUEUE_TASKS_TOTAL.labels(
                service=SERVICE, queue=self.store.pending_key, result="error"
            ).inc()
            return None

    def run(self, stop: threading.Event) -> None:
        log.info(
            "worker_webhook_started",
            extra={"payload": {"queue": self.store.pending_key, "max_retries": self.max_retries}},
        )
        while not stop.is_set():
            try:
                self.run_once(stop=stop)
            except QueueError as e:
                # битая задача уже снята со списка; при ошибке Redis пауза перед повтором
                if e.code == ErrCode.QUEUE_ERROR:
                    stop.wait(self.error_backoff_sec)
            except Exception as e:
                log.exception("worker_loop_error", extra={"payload": {"err": str(e)[:200]}})
                stop.wait(self.error_backoff_sec)
        log.info("worker_webhook_stopped")

    def _count(self, outcome: DeliveryOutcome) -> None:
        QUEUE_TASKS_TOTAL.labels(
            service=SERVICE, queue=self.store.pending_key, result=outcome.value
        ).inc()
