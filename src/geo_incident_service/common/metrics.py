"""
Метрики Prometheus для сервиса.

Назначение:
- Экспорт /metrics
- Счётчики проверок локации, кэша зон, очереди вебхуков и доставки
- Используется API Gateway и воркером
"""

from __future__ import annotations

import time
from collections.abc import Callable, Iterator
from contextlib import contextmanager

from fastapi import FastAPI, Request
from fastapi.responses import Response
from prometheus_client import CONTENT_TYPE_LATEST, Counter, Gauge, Histogram, generate_latest

# =============================================================================
# СЧЁТЧИКИ И МЕТРИКИ
# =============================================================================

# Общее количество HTTP-запросов
REQUESTS_TOTAL = Counter(
    "geo_requests_total",
    "Общее количество HTTP запросов",
    ["service", "route", "method", "status"],
)

HTTP_REQUEST_LATENCY_MS = Histogram(
    "geo_http_request_latency_ms",
    "Задержка HTTP запроса (мс)",
    ["service", "route", "method"],
    buckets=(5, 10, 25, 50, 100, 250, 500, 1000, 2500, 5000, 10000),
)

LOCATION_CHECKS_TOTAL = Counter(
    "geo_location_checks_total",
    "Количество проверок локации",
    ["result"],  # danger|safe
)

ZONE_CACHE_LOOKUPS_TOTAL = Counter(
    "geo_zone_cache_lookups_total",
    "Обращения к кэшу активных зон",
    ["result"],  # hit|miss|error
)

# Обработка задач очереди вебхуков
QUEUE_TASKS_TOTAL = Counter(
    "geo_queue_tasks_total",
    "Количество обработанных задач очереди",
    ["service", "queue", "result"],  # delivered|retried|dead|error
)

DISPATCH_DROPPED_TOTAL = Counter(
    "geo_dispatch_dropped_total",
    "Задачи, отброшенные из-за переполнения буфера постановки",
)

DISPATCH_ENQUEUE_ERRORS_TOTAL = Counter(
    "geo_dispatch_enqueue_errors_total",
    "Ошибки постановки задач в Redis из фонового диспетчера",
)

WEBHOOK_DELIVERY_LATENCY_MS = Histogram(
    "geo_webhook_delivery_latency_ms",
    "Длительность одной попытки доставки вебхука (мс), включая транспортные ретраи",
    ["result"],  # ok|failed
    buckets=(10, 25, 50, 100, 250, 500, 1000, 2500, 5000, 10000, 30000),
)

QUEUE_DEPTH = Gauge(
    "geo_queue_depth",
    "Текущая длина pending-списка",
    ["queue"],
)

DLQ_DEPTH = Gauge(
    "geo_dlq_depth",
    "Текущая длина DLQ-списка",
    ["queue"],
)

METRICS_COLLECTION_ERRORS_TOTAL = Counter(
    "geo_metrics_collection_errors_total",
    "Ошибки сборки служебных метрик",
    ["source"],
)


@contextmanager
def track_delivery_latency() -> Iterator[dict[str, str]]:
    """
    Внутри блока выставить state["result"] = "ok"|"failed".
    """
    state = {"result": "failed"}
    started = time.perf_counter()
    try:
        yield state
    finally:
        elapsed_ms = (time.perf_counter() - started) * 1000
        WEBHOOK_DELIVERY_LATENCY_MS.labels(result=state["result"]).observe(elapsed_ms)


def refresh_queue_metrics(store) -> None:
    try:
        QUEUE_DEPTH.labels(queue=store.pending_key).set(store.pending_count())
        DLQ_DEPTH.labels(queue=store.dead_key).set(store.dead_count())
    except Exception:
        METRICS_COLLECTION_ERRORS_TOTAL.labels(source="queue_metrics").inc()


# =============================================================================
# ENDPOINT /metrics
# =============================================================================
def setup_metrics_endpoint(
    app: FastAPI,
    *,
    service: str = "api-gateway",
    refreshers: list[Callable[[], None]] | None = None,
) -> None:
    """
    Регистрирует endpoint /metrics для Prometheus.
    refreshers вызываются перед каждой выдачей (gauges по Redis и т.п.).
    """

    @app.middleware("http")
    async def http_metrics(request: Request, call_next):
        route = request.url.path
        method = request.method
        started = time.perf_counter()

        response = await call_next(request)
        elapsed_ms = (time.perf_counter() - started) * 1000
        status_code = str(response.status_code)

        REQUESTS_TOTAL.labels(
            service=service,
            route=route,
            method=method,
            status=status_code,
        ).inc()
        HTTP_REQUEST_LATENCY_MS.labels(
            service=service,
            route=route,
            method=method,
        ).observe(elapsed_ms)
        return response

    @app.get("/metrics")
    def metrics() -> Response:
        for refresh in refreshers or []:
            refresh()
        return Response(generate_latest(), media_type=CONTENT_TYPE_LATEST)
