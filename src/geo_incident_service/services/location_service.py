"""
Проверка локации пользователя.

Путь запроса:
- валидация координат
- активные зоны из кэша (промах -> БД)
- геозонирование по внешним контурам
- запись результата в журнал проверок
- при попадании: задача вебхука по основной (первой) зоне уходит в диспетчер

Ответ не ждёт записи задачи в Redis: доставка best-effort.
"""

from __future__ import annotations

from typing import Protocol

from geo_incident_service.common.errors import ValidationError
from geo_incident_service.common.logging import get_project_logger
from geo_incident_service.common.metrics import LOCATION_CHECKS_TOTAL
from geo_incident_service.domain.geofence import match_zones, primary_zone
from geo_incident_service.domain.models import (
    CheckLocationResult,
    DeliveryTask,
    HazardZone,
    LocationCheckRecord,
)
from geo_incident_service.domain.validation import validate_location

log = get_project_logger()


class ActiveZones(Protocol):
    def get_active_zones(self) -> list[HazardZone]: ...


class LocationCheckSink(Protocol):
    def record(self, check: LocationCheckRecord) -> None: ...


class TaskSubmitter(Protocol):
    def submit(self, task: DeliveryTask) -> bool: ...


class LocationService:
    def __init__(
        self,
        zones: ActiveZones,
        sink: LocationCheckSink,
        dispatcher: TaskSubmitter,
    ) -> None:
        self.zones = zones
        self.sink = sink
        self.dispatcher = dispatcher

    def check_location(self, *, user_id: str, lat: float, lon: float) -> CheckLocationResult:
        user_id = (user_id or "").strip()
        if not user_id:
            raise ValidationError("user_id обязателен")
        validate_location(lat, lon)

        matches = match_zones(lat, lon, self.zones.get_active_zones())
        primary = primary_zone(matches)
        is_danger = primary is not None

        # ошибка записи журнала пробрасывается: проверка не считается выполненной
        self.sink.record(
            LocationCheckRecord(
                user_id=user_id,
                lat=lat,
                lon=lon,
                is_danger=is_danger,
                incident_id=primary.id if primary else None,
            )
        )

        LOCATION_CHECKS_TOTAL.labels(result="danger" if is_danger else "safe").inc()

        if primary is not None:
            task = DeliveryTask.for_match(zone=primary, user_id=user_id)
            accepted = self.dispatcher.submit(task)
            log.info(
                "location_danger_detected",
                extra={
                    "payload": {
                        "user_id": user_id,
                        "incident_id": primary.id,
                        "matches": len(matches),
                        "task_id": task.id,
                        "task_accepted": accepted,
                    }
                },
            )

        return CheckLocationResult(is_danger=is_danger, zones=matches)
