"""
Валидация геоданных на входе (зоны и координаты пользователя).

Некорректный полигон — ошибка вызывающей стороны: ничего не "чиним" молча.
"""

from __future__ import annotations

from geo_incident_service.common.errors import ValidationError

from .models import Polygon

MIN_EXTERIOR_POINTS = 4


def _check_lat_lon(lat: float, lon: float) -> None:
    if lat < -90 or lat > 90:
        raise ValidationError("Некорректная широта", {"lat": lat})
    if lon < -180 or lon > 180:
        raise ValidationError("Некорректная долгота", {"lon": lon})


def validate_location(lat: float, lon: float) -> None:
    _check_lat_lon(lat, lon)


def validate_polygon(area: Polygon) -> None:
    """
    Правила:
    - type == "Polygon"
    - есть хотя бы один контур, внешний — минимум 4 точки
    - внешний контур замкнут (первая точка == последней)
    - все координаты в допустимых диапазонах
    """
    if area.type != "Polygon":
        raise ValidationError("Ожидается GeoJSON type=Polygon", {"type": area.type})

    if not area.coordinates:
        raise ValidationError("Полигон должен содержать хотя бы один контур")

    exterior = area.exterior
    if len(exterior) < MIN_EXTERIOR_POINTS:
        raise ValidationError(
            "Внешний контур должен содержать минимум 4 точки",
            {"points": len(exterior)},
        )

    first, last = exterior[0], exterior[-1]
    if first[0] != last[0] or first[1] != last[1]:
        raise ValidationError(
            "Полигон должен быть замкнут",
            {"first": list(first), "last": list(last)},
        )

    for ring in area.coordinates:
        for point in ring:
            if len(point) < 2:
                raise ValidationError("Точка контура должна быть парой [lon, lat]")
            _check_lat_lon(point[1], point[0])
