"""
HTTP роуты для опасных зон (инцидентов).

- POST   /api/v1/incidents
- GET    /api/v1/incidents
- GET    /api/v1/incidents/stats
- GET    /api/v1/incidents/{incident_id}
- PUT    /api/v1/incidents/{incident_id}
- DELETE /api/v1/incidents/{incident_id}   (деактивация)

Авторизация: Depends(auth_dep)
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query, status

from apps.api_gateway.deps import auth_dep, get_container
from geo_incident_service.common.security import AuthContext
from geo_incident_service.contracts.http_api import (
    CreateIncidentRequest,
    IncidentListResponse,
    IncidentResponse,
    IncidentStatsItem,
    IncidentStatsResponse,
    UpdateIncidentRequest,
)
from geo_incident_service.services.container import ServiceContainer

router = APIRouter()


@router.post(
    "/incidents",
    response_model=IncidentResponse,
    status_code=status.HTTP_201_CREATED,
)
def create_incident(
    req: CreateIncidentRequest,
    _: AuthContext = Depends(auth_dep),
    container: ServiceContainer = Depends(get_container),
) -> IncidentResponse:
    zone = container.zone_service.create(
        name=req.name,
        description=req.description,
        area=req.area.to_domain(),
    )
    return IncidentResponse.of(zone)


@router.get("/incidents", response_model=IncidentListResponse)
def list_incidents(
    limit: int = Query(default=100, ge=1, le=1000),
    offset: int = Query(default=0, ge=0),
    _: AuthContext = Depends(auth_dep),
    container: ServiceContainer = Depends(get_container),
) -> IncidentListResponse:
    zones = container.zone_service.list(limit=limit, offset=offset)
    return IncidentListResponse(
        incidents=[IncidentResponse.of(z) for z in zones],
        limit=limit,
        offset=offset,
    )


# /incidents/stats объявлен до /incidents/{incident_id}
@router.get("/incidents/stats", response_model=IncidentStatsResponse)
def incident_stats(
    _: AuthContext = Depends(auth_dep),
    container: ServiceContainer = Depends(get_container),
) -> IncidentStatsResponse:
    stats = container.zone_service.stats()
    return IncidentStatsResponse(
        window_minutes=container.zone_service.stats_window_minutes,
        stats=[
            IncidentStatsItem(incident_id=s.incident_id, name=s.name, user_count=s.user_count)
            for s in stats
        ],
    )


@router.get("/incidents/{incident_id}", response_model=IncidentResponse)
def get_incident(
    incident_id: str,
    _: AuthContext = Depends(auth_dep),
    container: ServiceContainer = Depends(get_container),
) -> IncidentResponse:
    return IncidentResponse.of(container.zone_service.get(incident_id))


@router.put("/incidents/{incident_id}", response_model=IncidentResponse)
def update_incident(
    incident_id: str,
    req: UpdateIncidentRequest,
    _: AuthContext = Depends(auth_dep),
    container: ServiceContainer = Depends(get_container),
) -> IncidentResponse:
    zone = container.zone_service.update(
        incident_id,
        name=req.name,
        description=req.description,
        area=req.area.to_domain() if req.area is not None else None,
    )
    return IncidentResponse.of(zone)


@router.delete("/incidents/{incident_id}", response_model=IncidentResponse)
def delete_incident(
    incident_id: str,
    _: AuthContext = Depends(auth_dep),
    container: ServiceContainer = Depends(get_container),
) -> IncidentResponse:
    return IncidentResponse.of(container.zone_service.delete(incident_id))
