"""
Сборка зависимостей процесса API.

Один контейнер на процесс: Redis-клиент, хранилище задач, диспетчер,
кэш зон, сервисы и (опционально) встроенный воркер доставки.
start()/stop() вызываются из lifespan приложения.
"""

from __future__ import annotations

import threading
from dataclasses import dataclass, field

from geo_incident_service.cache.zone_cache import ZoneCache
from geo_incident_service.common.config import Settings, get_settings
from geo_incident_service.common.logging import get_project_logger
from geo_incident_service.delivery.webhook import WebhookClientConfig, WebhookSender
from geo_incident_service.queue.dispatcher import EnqueueDispatcher
from geo_incident_service.queue.redis import RedisResource
from geo_incident_service.queue.task_store import TaskStore
from geo_incident_service.queue.worker import DeliveryWorker
from geo_incident_service.storage import db
from geo_incident_service.storage.repositories import SqlLocationCheckSink, SqlZoneSource

from .health_service import HealthService
from .location_service import LocationService
from .zone_service import ZoneService

log = get_project_logger()


@dataclass
class ServiceContainer:
    store: TaskStore
    dispatcher: EnqueueDispatcher
    zone_cache: ZoneCache
    location_service: LocationService
    zone_service: ZoneService
    health_service: HealthService
    worker: DeliveryWorker | None = None
    sender: WebhookSender | None = None
    redis: RedisResource | None = None

    _worker_stop: threading.Event = field(default_factory=threading.Event, repr=False)
    _worker_thread: threading.Thread | None = field(default=None, repr=False)

    def start(self) -> None:
        self.dispatcher.start()
        if self.worker is None:
            return
        self._worker_stop.clear()
        self._worker_thread = threading.Thread(
            target=self.worker.run,
            args=(self._worker_stop,),
            name="webhook-delivery-worker",
            daemon=True,
        )
        self._worker_thread.start()

    def stop(self, timeout_sec: float = 5.0) -> None:
        self._worker_stop.set()
        if self._worker_thread is not None:
            self._worker_thread.join(timeout=timeout_sec)
            self._worker_thread = None
        self.dispatcher.stop(timeout_sec=timeout_sec)
        if self.sender is not None:
            self.sender.close()
        if self.redis is not None:
            self.redis.close()
        db.dispose()


def build_container(settings: Settings | None = None) -> ServiceContainer:
    s = settings or get_settings()

    redis_res = RedisResource.from_settings(s)
    client = redis_res.connect()

    store = TaskStore.from_settings(client, s)
    dispatcher = EnqueueDispatcher(store, buffer_size=s.dispatch_buffer_size)
    zone_cache = ZoneCache.from_settings(client, SqlZoneSource(limit=s.zone_fetch_limit), s)

    sender: WebhookSender | None = None
    worker: DeliveryWorker | None = None
    if s.worker_embedded:
        if (s.webhook_url or "").strip():
            sender = WebhookSender(WebhookClientConfig.from_settings(s))
            worker = DeliveryWorker(
                store,
                sender,
                webhook_url=s.webhook_url,
                max_retries=s.worker_max_retries,
                error_backoff_sec=s.worker_error_backoff_sec,
            )
        else:
            log.warning(
                "embedded_worker_disabled", extra={"payload": {"reason": "webhook_url_empty"}}
            )

    return ServiceContainer(
        store=store,
        dispatcher=dispatcher,
        zone_cache=zone_cache,
        location_service=LocationService(zone_cache, SqlLocationCheckSink(), dispatcher),
        zone_service=ZoneService(cache=zone_cache, stats_window_minutes=s.stats_window_minutes),
        health_service=HealthService({"postgres": db.ping, "redis": redis_res.ping}),
        worker=worker,
        sender=sender,
        redis=redis_res,
    )
