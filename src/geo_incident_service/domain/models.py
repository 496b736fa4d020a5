"""
Доменные модели сервиса.

- HazardZone / Polygon — опасная зона и её GeoJSON-полигон
- ZoneSummary — краткое описание зоны в ответе проверки локации
- DeliveryTask — задача доставки вебхука (живёт в Redis)
- LocationCheckRecord — результат проверки для журнала проверок
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from geo_incident_service.common.ids import new_uuid
from geo_incident_service.common.time import parse_rfc3339, to_rfc3339, utc_now

Ring = list[list[float]]  # [[lon, lat], ...]


# =============================================================================
# ЗОНЫ
# =============================================================================
@dataclass(frozen=True)
class Polygon:
    """
    GeoJSON Polygon: coordinates[0] — внешний контур, остальные — дыры.
    """

    coordinates: list[Ring]
    type: str = "Polygon"

    @property
    def exterior(self) -> Ring:
        return self.coordinates[0] if self.coordinates else []

    def to_dict(self) -> dict[str, Any]:
        return {"type": self.type, "coordinates": self.coordinates}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Polygon:
        coords = data.get("coordinates") or []
        rings = [[[float(p[0]), float(p[1])] for p in ring] for ring in coords]
        return cls(coordinates=rings, type=str(data.get("type") or "Polygon"))


@dataclass(frozen=True)
class HazardZone:
    id: str
    name: str
    area: Polygon
    description: str = ""
    is_active: bool = True
    created_at: datetime | None = None
    updated_at: datetime | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "area": self.area.to_dict(),
            "is_active": self.is_active,
            "created_at": to_rfc3339(self.created_at) if self.created_at else None,
            "updated_at": to_rfc3339(self.updated_at) if self.updated_at else None,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> HazardZone:
        created_at = data.get("created_at")
        updated_at = data.get("updated_at")
        return cls(
            id=str(data["id"]),
            name=str(data["name"]),
            description=str(data.get("description") or ""),
            area=Polygon.from_dict(data.get("area") or {}),
            is_active=bool(data.get("is_active", True)),
            created_at=parse_rfc3339(created_at) if created_at else None,
            updated_at=parse_rfc3339(updated_at) if updated_at else None,
        )


@dataclass(frozen=True)
class ZoneSummary:
    id: str
    name: str
    description: str = ""

    @classmethod
    def of(cls, zone: HazardZone) -> ZoneSummary:
        return cls(id=zone.id, name=zone.name, description=zone.description)


# =============================================================================
# ПРОВЕРКА ЛОКАЦИИ
# =============================================================================
@dataclass
class LocationCheckRecord:
    user_id: str
    lat: float
    lon: float
    is_danger: bool
    incident_id: str | None = None
    created_at: datetime = field(default_factory=utc_now)


@dataclass
class CheckLocationResult:
    is_danger: bool
    zones: list[ZoneSummary]


@dataclass
class ZoneStats:
    incident_id: str
    name: str
    user_count: int


# =============================================================================
# ЗАДАЧА ДОСТАВКИ ВЕБХУКА
# =============================================================================
@dataclass
class DeliveryTask:
    """
    Неизменяема, кроме retry_count (его увеличивает только воркер).
    """

    name: str
    user_id: str
    incident_id: str
    id: str = field(default_factory=new_uuid)
    created_at: datetime = field(default_factory=utc_now)
    retry_count: int = 0

    @classmethod
    def for_match(cls, *, zone: ZoneSummary, user_id: str) -> DeliveryTask:
        return cls(name=zone.name, user_id=user_id, incident_id=zone.id)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "user_id": self.user_id,
            "incident_id": self.incident_id,
            "created_at": to_rfc3339(self.created_at),
            "retry_count": self.retry_count,
        }

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), ensure_ascii=False)

    @classmethod
    def from_json(cls, raw: str | bytes) -> DeliveryTask:
        data = json.loads(raw)
        return cls(
            id=str(data["id"]),
            name=str(data["name"]),
            user_id=str(data["user_id"]),
            incident_id=str(data["incident_id"]),
            created_at=parse_rfc3339(str(data["created_at"])),
            retry_count=int(data.get("retry_count", 0)),
        )
