"""
Диспетчер постановки задач доставки.

Назначение:
- запрос проверки локации не ждёт записи в Redis (fire-and-forget)
- ограниченный буфер между обработчиком запроса и TaskStore.enqueue
- переполнение буфера: задача отбрасывается и логируется (память ограничена)
- ошибка записи в Redis только логируется: уведомление best-effort

Один фоновый поток разбирает буфер и пишет задачи в TaskStore.
"""

from __future__ import annotations

import queue
import threading

from geo_incident_service.common.logging import get_project_logger
from geo_incident_service.common.metrics import (
    DISPATCH_DROPPED_TOTAL,
    DISPATCH_ENQUEUE_ERRORS_TOTAL,
)
from geo_incident_service.domain.models import DeliveryTask

from .task_store import TaskStore

log = get_project_logger()

_POLL_SEC = 0.5


class EnqueueDispatcher:
    def __init__(self, store: TaskStore, *, buffer_size: int = 1000) -> None:
        self.store = store
        self._buffer: queue.Queue[DeliveryTask] = queue.Queue(maxsize=max(1, int(buffer_size)))
        self._stop = threading.Event()
        self._thread: threading.Thread | None = None

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        if self.running:
            return
        self._stop.clear()
        self._thread = threading.Thread(
            target=self._run, name="webhook-enqueue-dispatcher", daemon=True
        )
        self._thread.start()
        log.info("enqueue_dispatcher_started", extra={"payload": {"buffer": self._buffer.maxsize}})

    def stop(self, timeout_sec: float = 5.0) -> None:
        """
        Останавливает поток и best-effort дописывает то, что осталось в буфере.
        """
        self._stop.set()
        if self._thread is not None:
            self._thread.join(timeout=timeout_sec)
            self._thread = None
        flushed = self._drain()
        log.info("enqueue_dispatcher_stopped", extra={"payload": {"flushed": flushed}})

    def submit(self, task: DeliveryTask) -> bool:
        """
        Никогда не блокирует. False — буфер полон, задача отброшена.
        """
        try:
            self._buffer.put_nowait(task)
        except queue.Full:
            DISPATCH_DROPPED_TOTAL.inc()
            log.warning(
                "webhook_enqueue_dropped",
                extra={
                    "payload": {
                        "task_id": task.id,
                        "incident_id": task.incident_id,
                        "user_id": task.user_id,
                        "reason": "buffer_full",
                    }
                },
            )
            return False
        return True

    def pending(self) -> int:
        return self._buffer.qsize()

    def _run(self) -> None:
        while not self._stop.is_set():
            try:
                task = self._buffer.get(timeout=_POLL_SEC)
            except queue.Empty:
                continue
            self._enqueue(task)

    def _drain(self) -> int:
        count = 0
        while True:
            try:
                task = self._buffer.get_nowait()
            except queue.Empty:
                return count
            self._enqueue(task)
            count += 1

    def _enqueue(self, task: DeliveryTask) -> None:
        try:
            self.store.enqueue(task)
        except Exception as e:
            DISPATCH_ENQUEUE_ERRORS_TOTAL.inc()
            log.error(
                "webhook_enqueue_failed",
                extra={"payload": {"task_id": task.id, "err": str(e)[:200]}},
            )
            return
        log.info(
            "webhook_enqueued",
            extra={"payload": {"task_id": task.id, "incident_id": task.incident_id}},
        )
