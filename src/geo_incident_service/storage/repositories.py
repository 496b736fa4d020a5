"""
Репозитории (DAO слой).

Правила:
- Никакой бизнес-логики
- Только CRUD и запросы
- Транзакцией управляет вызывающий (db_session)
"""

from __future__ import annotations

from collections.abc import Callable
from contextlib import AbstractContextManager
from datetime import timedelta

from sqlalchemy import desc, func
from sqlalchemy.orm import Session

from geo_incident_service.common.errors import NotFoundError
from geo_incident_service.domain.models import (
    HazardZone,
    LocationCheckRecord,
    Polygon,
    ZoneStats,
)

from .db import db_session
from .models import Incident, LocationCheck, _utcnow

SessionFactory = Callable[[], AbstractContextManager[Session]]


def incident_to_domain(row: Incident) -> HazardZone:
    return HazardZone(
        id=row.id,
        name=row.name,
        description=row.description or "",
        area=Polygon.from_dict(row.area or {}),
        is_active=bool(row.is_active),
        created_at=row.created_at,
        updated_at=row.updated_at,
    )


# =============================================================================
# ZONE (INCIDENT) REPOSITORY
# =============================================================================
class ZoneRepository:
    def __init__(self, session: Session) -> None:
        self.session = session

    def find_all(self, *, limit: int = 1000, offset: int = 0) -> list[Incident]:
        """Активные зоны, новые первыми."""
        return (
            self.session.query(Incident)
            .filter(Incident.is_active.is_(True))
            .order_by(desc(Incident.created_at), Incident.id)
            .limit(max(1, limit))
            .offset(max(0, offset))
            .all()
        )

    def find_by_id(self, incident_id: str) -> Incident | None:
        return self.session.get(Incident, incident_id)

    def create(self, *, name: str, description: str, area: Polygon) -> Incident:
        row = Incident(name=name, description=description, area=area.to_dict(), is_active=True)
        self.session.add(row)
        self.session.flush()
        return row

    def update(
        self,
        row: Incident,
        *,
        name: str | None = None,
        description: str | None = None,
        area: Polygon | None = None,
    ) -> Incident:
        if name is not None:
            row.name = name
        if description is not None:
            row.description = description
        if area is not None:
            row.area = area.to_dict()
        row.updated_at = _utcnow()
        self.session.flush()
        return row

    def delete(self, incident_id: str) -> Incident:
        """Мягкое удаление: зона деактивируется."""
        row = self.find_by_id(incident_id)
        if row is None:
            raise NotFoundError("Инцидент не найден", {"id": incident_id})
        row.is_active = False
        row.updated_at = _utcnow()
        self.session.flush()
        return row

    def stats(self, *, window_minutes: int = 60) -> list[ZoneStats]:
        """
        Число уникальных пользователей с danger-проверками по каждой активной
        зоне за последние window_minutes. Зоны без пользователей не попадают.
        """
        cutoff = _utcnow() - timedelta(minutes=max(1, window_minutes))
        user_count = func.count(func.distinct(LocationCheck.user_id)).label("user_count")
        rows = (
            self.session.query(Incident.id, Incident.name, user_count)
            .join(LocationCheck, LocationCheck.incident_id == Incident.id)
            .filter(
                Incident.is_active.is_(True),
                LocationCheck.is_danger.is_(True),
                LocationCheck.created_at > cutoff,
            )
            .group_by(Incident.id, Incident.name)
            .order_by(desc(user_count), Incident.name)
            .all()
        )
        return [ZoneStats(incident_id=r[0], name=r[1], user_count=int(r[2])) for r in rows]


# =============================================================================
# LOCATION CHECK REPOSITORY
# =============================================================================
class LocationCheckRepository:
    def __init__(self, session: Session) -> None:
        self.session = session

    def save(self, check: LocationCheckRecord) -> LocationCheck:
        row = LocationCheck(
            user_id=check.user_id,
            lat=check.lat,
            lon=check.lon,
            is_danger=check.is_danger,
            incident_id=check.incident_id,
            created_at=check.created_at.replace(tzinfo=None),
        )
        self.session.add(row)
        return row


# =============================================================================
# АДАПТЕРЫ ДЛЯ СЕРВИСОВ (своя сессия на вызов)
# =============================================================================
class SqlZoneSource:
    """Источник активных зон для ZoneCache."""

    def __init__(self, session_factory: SessionFactory = db_session, *, limit: int = 1000) -> None:
        self.session_factory = session_factory
        self.limit = limit

    def list_active(self) -> list[HazardZone]:
        with self.session_factory() as session:
            rows = ZoneRepository(session).find_all(limit=self.limit, offset=0)
            return [incident_to_domain(r) for r in rows]


class SqlLocationCheckSink:
    """Запись результата проверки локации в журнал."""

    def __init__(self, session_factory: SessionFactory = db_session) -> None:
        self.session_factory = session_factory

    def record(self, check: LocationCheckRecord) -> None:
        with self.session_factory() as session:
            LocationCheckRepository(session).save(check)
