"""
Состояние зависимостей сервиса.

- GET /api/v1/system/health
"""

from __future__ import annotations

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from apps.api_gateway.deps import auth_dep, get_container
from geo_incident_service.common.security import AuthContext
from geo_incident_service.contracts.http_api import SystemHealthResponse
from geo_incident_service.domain.enums import HealthStatus
from geo_incident_service.services.container import ServiceContainer

router = APIRouter()


@router.get("/system/health", response_model=SystemHealthResponse)
def system_health(
    _: AuthContext = Depends(auth_dep),
    container: ServiceContainer = Depends(get_container),
):
    report = container.health_service.check()
    body = SystemHealthResponse(
        status=report.status.value,
        components=report.components,
        uptime_sec=report.uptime_sec,
        timestamp=report.timestamp,
    )
    status_code = 200 if report.status == HealthStatus.ok else 503
    return JSONResponse(status_code=status_code, content=body.model_dump(mode="json"))
