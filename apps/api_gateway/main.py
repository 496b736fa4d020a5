"""
API Gateway (FastAPI).

Функции:
- /health
- /metrics
- /api/v1: проверка локации, зоны (инциденты), состояние системы, DLQ вебхуков

Архитектурно:
- lifespan собирает контейнер: Redis, TaskStore, диспетчер постановки, кэш зон
- проверка локации ставит задачу вебхука через диспетчер, не дожидаясь Redis
- встроенный воркер доставки (WORKER_EMBEDDED=true) работает в фоновом потоке
"""

from __future__ import annotations

from collections.abc import AsyncIterator, Callable
from contextlib import asynccontextmanager
from typing import Any

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

from apps.api_gateway.routers.admin import router as admin_router
from apps.api_gateway.routers.location import router as location_router
from apps.api_gateway.routers.system import router as system_router
from apps.api_gateway.routers.zones import router as zones_router
from geo_incident_service.common.errors import AppError, ErrCode
from geo_incident_service.common.logging import get_project_logger, setup_logging
from geo_incident_service.common.metrics import refresh_queue_metrics, setup_metrics_endpoint
from geo_incident_service.contracts.http_api import ErrorResponse
from geo_incident_service.services.container import ServiceContainer, build_container
from geo_incident_service.services.readiness_service import enforce_startup_readiness

log = get_project_logger()

API_PREFIX = "/api/v1"

_STATUS_BY_CODE = {
    ErrCode.VALIDATION: 400,
    ErrCode.UNAUTHORIZED: 401,
    ErrCode.NOT_FOUND: 404,
    ErrCode.TASK_NOT_FOUND: 404,
    ErrCode.DB_ERROR: 503,
    ErrCode.REDIS_ERROR: 503,
    ErrCode.QUEUE_ERROR: 503,
}


def _app_error_status(code: str) -> int:
    return _STATUS_BY_CODE.get(code, 500)


def _create_app(container_factory: Callable[[], ServiceContainer] = build_container) -> FastAPI:
    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        container = container_factory()
        app.state.container = container
        container.start()
        log.info("api_gateway_started")
        try:
            yield
        finally:
            container.stop()
            log.info("api_gateway_stopped")

    app = FastAPI(title="Geo Incident Service", version="0.1.0", lifespan=lifespan)

    def _refresh_queue_gauges() -> None:
        container = getattr(app.state, "container", None)
        if container is not None:
            refresh_queue_metrics(container.store)

    setup_metrics_endpoint(app, refreshers=[_refresh_queue_gauges])

    @app.exception_handler(AppError)
    async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
        status_code = _app_error_status(exc.code)
        if status_code >= 500:
            log.error(
                "request_failed",
                extra={
                    "payload": {
                        "path": request.url.path,
                        "code": exc.code,
                        "err": exc.message,
                    }
                },
            )
        return JSONResponse(
            status_code=status_code,
            content=ErrorResponse(
                code=exc.code, message=exc.message, details=exc.details or {}
            ).model_dump(),
        )

    @app.exception_handler(SQLAlchemyError)
    async def db_error_handler(request: Request, exc: SQLAlchemyError) -> JSONResponse:
        log.error(
            "request_db_failed",
            extra={"payload": {"path": request.url.path, "err": str(exc)[:200]}},
        )
        return JSONResponse(
            status_code=503,
            content=ErrorResponse(
                code=ErrCode.DB_ERROR, message="База данных недоступна"
            ).model_dump(),
        )

    @app.get("/health")
    def health() -> dict[str, Any]:
        return {"ok": True}

    app.include_router(location_router, prefix=API_PREFIX)
    app.include_router(zones_router, prefix=API_PREFIX)
    app.include_router(system_router, prefix=API_PREFIX)
    app.include_router(admin_router, prefix=API_PREFIX)

    return app


setup_logging(service="api-gateway")
enforce_startup_readiness(service_name="api-gateway")

app = _create_app()
