"""
Управление опасными зонами (CRUD + статистика).

Любая запись сбрасывает кэш активных зон, чтобы проверки локации
увидели изменения, не дожидаясь TTL.
"""

from __future__ import annotations

from typing import Protocol

from geo_incident_service.common.errors import NotFoundError, ValidationError
from geo_incident_service.common.ids import parse_uuid
from geo_incident_service.common.logging import get_project_logger
from geo_incident_service.domain.models import HazardZone, Polygon, ZoneStats
from geo_incident_service.domain.validation import validate_polygon
from geo_incident_service.storage.db import db_session
from geo_incident_service.storage.repositories import (
    SessionFactory,
    ZoneRepository,
    incident_to_domain,
)

log = get_project_logger()

MAX_PAGE_SIZE = 1000


class CacheInvalidator(Protocol):
    def invalidate(self) -> None: ...


class ZoneService:
    def __init__(
        self,
        session_factory: SessionFactory = db_session,
        *,
        cache: CacheInvalidator | None = None,
        stats_window_minutes: int = 60,
    ) -> None:
        self.session_factory = session_factory
        self.cache = cache
        self.stats_window_minutes = stats_window_minutes

    def create(self, *, name: str, area: Polygon, description: str = "") -> HazardZone:
        name = (name or "").strip()
        if not name:
            raise ValidationError("Название зоны обязательно")
        validate_polygon(area)

        with self.session_factory() as session:
            row = ZoneRepository(session).create(name=name, description=description, area=area)
            zone = incident_to_domain(row)

        self._invalidate()
        log.info("zone_created", extra={"payload": {"id": zone.id, "name": zone.name}})
        return zone

    def get(self, zone_id: str) -> HazardZone:
        zid = parse_uuid(zone_id)
        with self.session_factory() as session:
            row = ZoneRepository(session).find_by_id(zid)
            if row is None:
                raise NotFoundError("Инцидент не найден", {"id": zid})
            return incident_to_domain(row)

    def list(self, *, limit: int = 100, offset: int = 0) -> list[HazardZone]:
        if limit < 1 or limit > MAX_PAGE_SIZE:
            raise ValidationError("Некорректный limit", {"limit": limit, "max": MAX_PAGE_SIZE})
        if offset < 0:
            raise ValidationError("Некорректный offset", {"offset": offset})
        with self.session_factory() as session:
            rows = ZoneRepository(session).find_all(limit=limit, offset=offset)
            return [incident_to_domain(r) for r in rows]

    def update(
        self,
        zone_id: str,
        *,
        name: str | None = None,
        description: str | None = None,
        area: Polygon | None = None,
    ) -> HazardZone:
        zid = parse_uuid(zone_id)
        if name is None and description is None and area is None:
            raise ValidationError("Не указаны поля для обновления")
        if name is not None and not name.strip():
            raise ValidationError("Название зоны не может быть пустым")
        if area is not None:
            validate_polygon(area)

        with self.session_factory() as session:
            repo = ZoneRepository(session)
            row = repo.find_by_id(zid)
            if row is None:
                raise NotFoundError("Инцидент не найден", {"id": zid})
            repo.update(
                row,
                name=name.strip() if name is not None else None,
                description=description,
                area=area,
            )
            zone = incident_to_domain(row)

        self._invalidate()
        log.info("zone_updated", extra={"payload": {"id": zid}})
        return zone

    def delete(self, zone_id: str) -> HazardZone:
        zid = parse_uuid(zone_id)
        with self.session_factory() as session:
            zone = incident_to_domain(ZoneRepository(session).delete(zid))

        self._invalidate()
        log.info("zone_deactivated", extra={"payload": {"id": zid}})
        return zone

    def stats(self) -> list[ZoneStats]:
        with self.session_factory() as session:
            return ZoneRepository(session).stats(window_minutes=self.stats_window_minutes)

    def _invalidate(self) -> None:
        if self.cache is not None:
            self.cache.invalidate()
