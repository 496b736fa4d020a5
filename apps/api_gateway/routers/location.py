"""
Проверка локации пользователя.

- POST /api/v1/location/check

Без авторизации: вызывается клиентскими приложениями.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends

from apps.api_gateway.deps import get_container
from geo_incident_service.contracts.http_api import (
    CheckLocationRequest,
    CheckLocationResponse,
    LocationIncident,
)
from geo_incident_service.services.container import ServiceContainer

router = APIRouter()


@router.post("/location/check", response_model=CheckLocationResponse)
def check_location(
    req: CheckLocationRequest,
    container: ServiceContainer = Depends(get_container),
) -> CheckLocationResponse:
    result = container.location_service.check_location(
        user_id=req.user_id,
        lat=req.user_location.lat,
        lon=req.user_location.lon,
    )
    return CheckLocationResponse(
        is_danger=result.is_danger,
        incidents=[
            LocationIncident(id=z.id, name=z.name, description=z.description) for z in result.zones
        ],
    )
