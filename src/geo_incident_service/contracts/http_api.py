"""
HTTP API контракты (Pydantic-модели).

Назначение:
- валидация входа/выхода на уровне FastAPI
- стабильные структуры для клиентов
"""

from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field

from geo_incident_service.domain.models import HazardZone, Polygon


# =============================================================================
# ОБЩЕЕ
# =============================================================================
class PolygonModel(BaseModel):
    type: str = Field(default="Polygon")
    # [[[lon, lat], ...], ...]
    coordinates: list[list[list[float]]] = Field(default_factory=list)

    def to_domain(self) -> Polygon:
        return Polygon.from_dict(self.model_dump())


class ErrorResponse(BaseModel):
    code: str
    message: str
    details: dict[str, Any] = Field(default_factory=dict)


# =============================================================================
# ПРОВЕРКА ЛОКАЦИИ
# =============================================================================
class UserLocation(BaseModel):
    lat: float
    lon: float


class CheckLocationRequest(BaseModel):
    user_id: str = Field(min_length=1, max_length=128)
    user_location: UserLocation


class LocationIncident(BaseModel):
    id: str
    name: str
    description: str = ""


class CheckLocationResponse(BaseModel):
    is_danger: bool
    incidents: list[LocationIncident] = Field(default_factory=list)


# =============================================================================
# ЗОНЫ (ИНЦИДЕНТЫ)
# =============================================================================
class CreateIncidentRequest(BaseModel):
    name: str = Field(min_length=1, max_length=255)
    description: str = ""
    area: PolygonModel


class UpdateIncidentRequest(BaseModel):
    name: str | None = Field(default=None, max_length=255)
    description: str | None = None
    area: PolygonModel | None = None


class IncidentResponse(BaseModel):
    id: str
    name: str
    description: str
    area: PolygonModel
    is_active: bool
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @classmethod
    def of(cls, zone: HazardZone) -> IncidentResponse:
        return cls(
            id=zone.id,
            name=zone.name,
            description=zone.description,
            area=PolygonModel(type=zone.area.type, coordinates=zone.area.coordinates),
            is_active=zone.is_active,
            created_at=zone.created_at,
            updated_at=zone.updated_at,
        )


class IncidentListResponse(BaseModel):
    incidents: list[IncidentResponse]
    limit: int
    offset: int


class IncidentStatsItem(BaseModel):
    incident_id: str
    name: str
    user_count: int


class IncidentStatsResponse(BaseModel):
    window_minutes: int
    stats: list[IncidentStatsItem]


# =============================================================================
# СИСТЕМА / АДМИН
# =============================================================================
class SystemHealthResponse(BaseModel):
    status: str
    components: dict[str, str]
    uptime_sec: int
    timestamp: datetime


class DeadTaskItem(BaseModel):
    id: str
    name: str | None = None
    user_id: str | None = None
    incident_id: str | None = None
    retry_count: int | None = None
    created_at: datetime | None = None
    error: str | None = None


class DeadTaskListResponse(BaseModel):
    total: int
    tasks: list[DeadTaskItem]


class RequeueResponse(BaseModel):
    id: str
    requeued: bool
