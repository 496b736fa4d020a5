"""
ORM-модели базы данных.

Назначение:
- Хранение опасных зон (инцидентов) с GeoJSON-полигоном
- Журнал проверок локации (основа статистики по зонам)
"""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import JSON, Boolean, DateTime, Float, Index, Integer, String, Text
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

from geo_incident_service.common.ids import new_uuid
from geo_incident_service.common.time import utc_now


def _utcnow() -> datetime:
    # в БД храним naive UTC
    return utc_now().replace(tzinfo=None)


# =============================================================================
# BASE
# =============================================================================
class Base(DeclarativeBase):
    pass


# =============================================================================
# INCIDENT
# =============================================================================
class Incident(Base):
    """
    Опасная зона. Удаление — мягкое (is_active=false).
    """

    __tablename__ = "incidents"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_uuid)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str] = mapped_column(Text, default="", nullable=False)

    # GeoJSON Polygon: {"type": "Polygon", "coordinates": [[[lon, lat], ...], ...]}
    area: Mapped[dict] = mapped_column(JSON, nullable=False)

    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=_utcnow, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, default=_utcnow, onupdate=_utcnow, nullable=False
    )

    __table_args__ = (Index("ix_incidents_active_created", "is_active", "created_at"),)


# =============================================================================
# LOCATION CHECKS
# =============================================================================
class LocationCheck(Base):
    __tablename__ = "location_checks"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[str] = mapped_column(String(128), nullable=False)
    lat: Mapped[float] = mapped_column(Float, nullable=False)
    lon: Mapped[float] = mapped_column(Float, nullable=False)
    is_danger: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    incident_id: Mapped[str | None] = mapped_column(String(36), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=_utcnow, nullable=False)

    __table_args__ = (
        Index("ix_location_checks_incident_created", "incident_id", "created_at"),
    )
