"""
Геозонирование: попадание точки в полигоны опасных зон.

Алгоритм:
- чётно-нечётный ray casting по ВНЕШНЕМУ контуру (coordinates[0])
- дыры (внутренние контуры) не вычитаются — известное упрощение
- точка на границе: результат определяется арифметикой ray casting
  (нижняя/левая граница обычно внутри, верхняя/правая — снаружи)

Координаты контуров в порядке GeoJSON: [lon, lat].
"""

from __future__ import annotations

from collections.abc import Iterable

from .models import HazardZone, Polygon, Ring, ZoneSummary


def ring_contains(ring: Ring, lat: float, lon: float) -> bool:
    """
    Чётно-нечётный тест для одного замкнутого контура.
    """
    inside = False
    n = len(ring)
    if n == 0:
        return False

    j = n - 1
    for i in range(n):
        xi, yi = ring[i][0], ring[i][1]
        xj, yj = ring[j][0], ring[j][1]
        # (yi > lat) != (yj > lat) гарантирует yi != yj, деления на ноль нет
        if (yi > lat) != (yj > lat) and lon < (xj - xi) * (lat - yi) / (yj - yi) + xi:
            inside = not inside
        j = i

    return inside


def polygon_contains(area: Polygon, lat: float, lon: float) -> bool:
    if not area.coordinates:
        return False
    return ring_contains(area.exterior, lat, lon)


def match_zones(lat: float, lon: float, zones: Iterable[HazardZone]) -> list[ZoneSummary]:
    """
    Все зоны, внешний контур которых содержит точку, в порядке входа.
    """
    return [ZoneSummary.of(z) for z in zones if polygon_contains(z.area, lat, lon)]


def primary_zone(matches: list[ZoneSummary]) -> ZoneSummary | None:
    """
    Первая совпавшая зона — основная для постановки задачи доставки.
    """
    return matches[0] if matches else None
