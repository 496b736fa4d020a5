"""
Хранилище задач доставки вебхуков поверх Redis.

Раскладка ключей:
- webhook:task:<id>    — JSON задачи (TTL 24ч; в DLQ — без TTL)
- webhook:pending      — список id, ожидающих доставки (LPUSH -> BRPOP = FIFO)
- webhook:queue:dead   — DLQ, список id исчерпавших попытки

Ограничения (осознанные):
- enqueue/move_to_dlq — конвейер без MULTI: падение между записями может
  оставить "висящий" id в списке или blob без id
- состояние "в работе" не сохраняется: если воркер упал между dequeue и ack,
  задача теряется
- повторная попытка кладётся в тот же конец списка, что и новые задачи,
  поэтому ретраи перемешиваются со свежими задачами
"""

from __future__ import annotations

import threading
import time
from collections.abc import Iterator
from contextlib import contextmanager

import redis

from geo_incident_service.common.config import Settings, get_settings
from geo_incident_service.common.errors import QueueError, TaskDecodeError, TaskNotFoundError
from geo_incident_service.common.logging import get_project_logger
from geo_incident_service.domain.models import DeliveryTask

log = get_project_logger()


class TaskStore:
    def __init__(
        self,
        client: redis.Redis,
        *,
        key_prefix: str = "webhook:task:",
        pending_key: str = "webhook:pending",
        dead_key: str = "webhook:queue:dead",
        task_ttl_sec: int = 86_400,
        poll_timeout_sec: float = 1.0,
    ) -> None:
        self.client = client
        self.key_prefix = key_prefix
        self.pending_key = pending_key
        self.dead_key = dead_key
        self.task_ttl_sec = task_ttl_sec
        # timeout=0 у BRPOP означает "ждать вечно", stop бы не проверялся
        self.poll_timeout_sec = poll_timeout_sec if poll_timeout_sec > 0 else 1

    @classmethod
    def from_settings(cls, client: redis.Redis, settings: Settings | None = None) -> TaskStore:
        s = settings or get_settings()
        return cls(
            client,
            key_prefix=s.queue_task_key_prefix,
            pending_key=s.queue_pending_key,
            dead_key=s.queue_dead_key,
            task_ttl_sec=s.queue_task_ttl_sec,
            poll_timeout_sec=s.queue_poll_timeout_sec,
        )

    def task_key(self, task_id: str) -> str:
        return f"{self.key_prefix}{task_id}"

    # =========================================================================
    # ОСНОВНЫЕ ОПЕРАЦИИ
    # =========================================================================
    def enqueue(self, task: DeliveryTask) -> None:
        """
        blob с TTL + id в pending одним конвейером.
        """
        pipe = self.client.pipeline(transaction=False)
        pipe.set(self.task_key(task.id), task.to_json(), ex=self.task_ttl_sec)
        pipe.lpush(self.pending_key, task.id)
        try:
            pipe.execute()
        except redis.RedisError as e:
            log.error(
                "task_enqueue_failed",
                extra={"payload": {"task_id": task.id, "err": str(e)[:200]}},
            )
            raise QueueError("Не удалось добавить задачу в очередь", {"task_id": task.id}) from e

    def dequeue(
        self,
        *,
        stop: threading.Event | None = None,
        timeout_sec: float | None = None,
    ) -> DeliveryTask | None:
        """
        Блокирующее извлечение задачи.

        BRPOP выполняется короткими интервалами (poll_timeout_sec), чтобы
        между ними проверять stop и дедлайн. Возвращает None, если вызов
        отменён через stop или истёк timeout_sec. Без stop и timeout_sec
        ждёт, пока не появится задача.

        Если id снят со списка, а blob отсутствует или битый, задача
        потеряна: поднимается TaskNotFoundError / TaskDecodeError.
        """
        deadline = time.monotonic() + timeout_sec if timeout_sec is not None else None

        while stop is None or not stop.is_set():
            wait = self.poll_timeout_sec
            if deadline is not None:
                left = deadline - time.monotonic()
                if left <= 0:
                    return None
                wait = min(wait, left)

            try:
                popped = self.client.brpop([self.pending_key], timeout=_brpop_timeout(wait))
            except redis.RedisError as e:
                raise QueueError(
                    "Не удалось получить задачу из очереди", {"err": str(e)[:200]}
                ) from e

            if popped:
                _, task_id = popped
                return self._load(task_id)

        return None

    def ack(self, task_id: str) -> None:
        """
        Удаляет blob задачи. Повторный ack не ошибка.
        """
        try:
            self.client.delete(self.task_key(task_id))
        except redis.RedisError as e:
            raise QueueError("Не удалось подтвердить задачу", {"task_id": task_id}) from e

    def update(self, task: DeliveryTask) -> None:
        """
        Перезаписывает blob (новый retry_count) и обновляет TTL.
        """
        try:
            self.client.set(self.task_key(task.id), task.to_json(), ex=self.task_ttl_sec)
        except redis.RedisError as e:
            raise QueueError("Не удалось обновить задачу", {"task_id": task.id}) from e

    def move_to_dlq(self, task: DeliveryTask) -> None:
        """
        id в DLQ + blob без TTL (хранится до ручного разбора) одним конвейером.
        SET без EX снимает TTL и сохраняет финальный retry_count.
        """
        pipe = self.client.pipeline(transaction=False)
        pipe.set(self.task_key(task.id), task.to_json())
        pipe.lpush(self.dead_key, task.id)
        try:
            pipe.execute()
        except redis.RedisError as e:
            log.error(
                "task_move_to_dlq_failed",
                extra={"payload": {"task_id": task.id, "err": str(e)[:200]}},
            )
            raise QueueError("Не удалось перенести задачу в DLQ", {"task_id": task.id}) from e

    # =========================================================================
    # ИНСПЕКЦИЯ / DLQ
    # =========================================================================
    def get(self, task_id: str) -> DeliveryTask | None:
        with self._redis_errors("Не удалось прочитать задачу", task_id=task_id):
            raw = self.client.get(self.task_key(task_id))
        if raw is None:
            return None
        return self._decode(task_id, raw)

    def ttl(self, task_id: str) -> int:
        """
        TTL blob'а в секундах: -1 — без срока, -2 — ключа нет.
        """
        with self._redis_errors("Не удалось прочитать TTL задачи", task_id=task_id):
            return int(self.client.ttl(self.task_key(task_id)))

    def pending_ids(self) -> list[str]:
        # LPUSH кладёт слева, BRPOP берёт справа: справа ближайшие к выдаче
        with self._redis_errors("Не удалось прочитать очередь", queue=self.pending_key):
            return list(reversed(self.client.lrange(self.pending_key, 0, -1)))

    def dead_ids(self, limit: int = 100) -> list[str]:
        with self._redis_errors("Не удалось прочитать DLQ", queue=self.dead_key):
            return list(self.client.lrange(self.dead_key, 0, max(0, limit - 1)))

    def pending_count(self) -> int:
        with self._redis_errors("Не удалось прочитать очередь", queue=self.pending_key):
            return int(self.client.llen(self.pending_key))

    def dead_count(self) -> int:
        with self._redis_errors("Не удалось прочитать DLQ", queue=self.dead_key):
            return int(self.client.llen(self.dead_key))

    def requeue_dead(self, task_id: str) -> DeliveryTask:
        """
        Ручной повтор задачи из DLQ: обнулить счётчик и поставить снова.

        Постановка в pending и снятие id из DLQ идут одной транзакцией
        (MULTI/EXEC): при ошибке Redis задача остаётся в DLQ как была.
        """
        with self._redis_errors("Не удалось прочитать DLQ", task_id=task_id):
            in_dead = self.client.lpos(self.dead_key, task_id) is not None
        if not in_dead:
            raise TaskNotFoundError(task_id)

        task = self.get(task_id)
        if task is None:
            raise TaskNotFoundError(task_id)

        task.retry_count = 0
        pipe = self.client.pipeline(transaction=True)
        pipe.set(self.task_key(task.id), task.to_json(), ex=self.task_ttl_sec)
        pipe.lpush(self.pending_key, task.id)
        pipe.lrem(self.dead_key, 0, task.id)
        try:
            pipe.execute()
        except redis.RedisError as e:
            log.error(
                "task_requeue_from_dlq_failed",
                extra={"payload": {"task_id": task_id, "err": str(e)[:200]}},
            )
            raise QueueError("Не удалось вернуть задачу из DLQ", {"task_id": task_id}) from e

        log.info("task_requeued_from_dlq", extra={"payload": {"task_id": task_id}})
        return task

    # =========================================================================
    # ВНУТРЕННЕЕ
    # =========================================================================
    @staticmethod
    @contextmanager
    def _redis_errors(message: str, **details: str) -> Iterator[None]:
        try:
            yield
        except redis.RedisError as e:
            raise QueueError(message, {**details, "err": str(e)[:200]}) from e

    def _load(self, task_id: str) -> DeliveryTask:
        try:
            raw = self.client.get(self.task_key(task_id))
        except redis.RedisError as e:
            raise QueueError("Не удалось прочитать задачу", {"task_id": task_id}) from e
        if raw is None:
            raise TaskNotFoundError(task_id)
        return self._decode(task_id, raw)

    @staticmethod
    def _decode(task_id: str, raw: str | bytes) -> DeliveryTask:
        try:
            return DeliveryTask.from_json(raw)
        except (ValueError, KeyError, TypeError) as e:
            raise TaskDecodeError(task_id, str(e)) from e


def _brpop_timeout(wait: float) -> float | int:
    # целые секунды отдаём как int: "1", а не "1.0"
    return int(wait) if float(wait).is_integer() else wait
