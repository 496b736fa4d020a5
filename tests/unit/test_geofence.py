from __future__ import annotations

from geo_incident_service.domain.geofence import (
    match_zones,
    polygon_contains,
    primary_zone,
    ring_contains,
)
from geo_incident_service.domain.models import HazardZone, Polygon

SQUARE = [[37.0, 55.0], [38.0, 55.0], [38.0, 56.0], [37.0, 56.0], [37.0, 55.0]]


def _zone(zone_id: str, ring: list[list[float]], *, holes: list | None = None) -> HazardZone:
    return HazardZone(
        id=zone_id,
        name=f"zone-{zone_id}",
        description="",
        area=Polygon(coordinates=[ring, *(holes or [])]),
    )


def test_point_inside_square_matches() -> None:
    matches = match_zones(55.5, 37.5, [_zone("a", SQUARE)])
    assert [m.id for m in matches] == ["a"]
    assert matches[0].name == "zone-a"


def test_point_far_outside_matches_nothing() -> None:
    assert match_zones(10.0, 10.0, [_zone("a", SQUARE)]) == []


def test_coordinates_are_lon_lat_ordered() -> None:
    # lat=37.5, lon=55.5 - перевёрнутая пара, вне квадрата
    assert match_zones(37.5, 55.5, [_zone("a", SQUARE)]) == []


def test_matches_preserve_input_order_and_primary_is_first() -> None:
    big = [[36.0, 54.0], [39.0, 54.0], [39.0, 57.0], [36.0, 57.0], [36.0, 54.0]]
    zones = [
        _zone("small", SQUARE),
        _zone("other", [[0, 0], [1, 0], [1, 1], [0, 0]]),
        _zone("big", big),
    ]
    matches = match_zones(55.5, 37.5, zones)
    assert [m.id for m in matches] == ["small", "big"]
    assert primary_zone(matches).id == "small"


def test_primary_zone_of_empty_is_none() -> None:
    assert primary_zone([]) is None


def test_zone_without_rings_never_matches() -> None:
    empty = HazardZone(id="e", name="empty", area=Polygon(coordinates=[]))
    hollow = HazardZone(id="h", name="hollow", area=Polygon(coordinates=[[]]))
    assert match_zones(55.5, 37.5, [empty, hollow]) == []


def test_holes_are_not_subtracted() -> None:
    hole = [[37.4, 55.4], [37.6, 55.4], [37.6, 55.6], [37.4, 55.6], [37.4, 55.4]]
    zone = _zone("a", SQUARE, holes=[hole])
    assert polygon_contains(zone.area, 55.5, 37.5) is True


def test_concave_polygon() -> None:
    # "П"-образный контур: выемка сверху посередине
    ring = [
        [0.0, 0.0],
        [3.0, 0.0],
        [3.0, 3.0],
        [2.0, 3.0],
        [2.0, 1.0],
        [1.0, 1.0],
        [1.0, 3.0],
        [0.0, 3.0],
        [0.0, 0.0],
    ]
    assert ring_contains(ring, 2.0, 0.5) is True  # левая ножка
    assert ring_contains(ring, 2.0, 2.5) is True  # правая ножка
    assert ring_contains(ring, 2.0, 1.5) is False  # выемка
    assert ring_contains(ring, 0.5, 1.5) is True  # перемычка


def test_unclosed_ring_is_implicitly_closed() -> None:
    open_ring = SQUARE[:-1]
    assert ring_contains(open_ring, 55.5, 37.5) is True
    assert ring_contains(open_ring, 56.5, 37.5) is False


def test_boundary_membership_is_documented() -> None:
    # Граница определяется арифметикой ray casting: фиксируем текущее поведение
    zone = [_zone("a", SQUARE)]
    assert [m.id for m in match_zones(55.0, 37.5, zone)] == ["a"]  # нижняя грань
    assert [m.id for m in match_zones(55.5, 37.0, zone)] == ["a"]  # левая грань
    assert match_zones(56.0, 37.5, zone) == []  # верхняя грань
    assert match_zones(55.5, 38.0, zone) == []  # правая грань
