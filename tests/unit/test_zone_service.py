from __future__ import annotations

import pytest

from geo_incident_service.common.errors import NotFoundError, ValidationError
from geo_incident_service.domain.models import LocationCheckRecord, Polygon
from geo_incident_service.services.zone_service import ZoneService
from geo_incident_service.storage.repositories import LocationCheckRepository

SQUARE = [[37.0, 55.0], [38.0, 55.0], [38.0, 56.0], [37.0, 56.0], [37.0, 55.0]]
MISSING_ID = "00000000-0000-0000-0000-000000000000"


class _FakeCache:
    def __init__(self) -> None:
        self.invalidations = 0

    def invalidate(self) -> None:
        self.invalidations += 1


@pytest.fixture()
def cache() -> _FakeCache:
    return _FakeCache()


@pytest.fixture()
def svc(session_factory, cache) -> ZoneService:
    return ZoneService(session_factory, cache=cache, stats_window_minutes=60)


def test_create_get_list(svc, cache) -> None:
    zone = svc.create(name=" Пожар ", description="склад", area=Polygon([SQUARE]))

    assert zone.name == "Пожар"
    assert zone.is_active is True
    assert cache.invalidations == 1
    assert svc.get(zone.id.upper()).id == zone.id
    assert [z.id for z in svc.list(limit=10, offset=0)] == [zone.id]


def test_create_rejects_invalid_polygon_and_empty_name(svc, cache) -> None:
    with pytest.raises(ValidationError):
        svc.create(name="A", area=Polygon([SQUARE[:3]]))
    with pytest.raises(ValidationError):
        svc.create(name="", area=Polygon([SQUARE]))
    assert cache.invalidations == 0


def test_get_validates_uuid_and_existence(svc) -> None:
    with pytest.raises(ValidationError):
        svc.get("42")
    with pytest.raises(NotFoundError):
        svc.get(MISSING_ID)


def test_update_requires_a_field(svc) -> None:
    zone = svc.create(name="A", area=Polygon([SQUARE]))
    with pytest.raises(ValidationError, match="поля"):
        svc.update(zone.id)


def test_update_changes_fields_and_invalidates(svc, cache) -> None:
    zone = svc.create(name="A", area=Polygon([SQUARE]))
    shifted = [[lon + 1, lat] for lon, lat in SQUARE]

    updated = svc.update(zone.id, name="B", area=Polygon([shifted]))

    assert updated.name == "B"
    assert updated.area.exterior == shifted
    assert cache.invalidations == 2
    with pytest.raises(NotFoundError):
        svc.update(MISSING_ID, name="C")


def test_delete_deactivates(svc, cache) -> None:
    zone = svc.create(name="A", area=Polygon([SQUARE]))

    deleted = svc.delete(zone.id)

    assert deleted.is_active is False
    assert svc.list(limit=10, offset=0) == []
    assert svc.get(zone.id).is_active is False
    assert cache.invalidations == 2
    with pytest.raises(NotFoundError):
        svc.delete(MISSING_ID)


def test_list_rejects_bad_paging(svc) -> None:
    with pytest.raises(ValidationError):
        svc.list(limit=0, offset=0)
    with pytest.raises(ValidationError):
        svc.list(limit=10, offset=-1)


def test_stats(svc, session_factory) -> None:
    zone = svc.create(name="A", area=Polygon([SQUARE]))
    with session_factory() as s:
        repo = LocationCheckRepository(s)
        for user in ("u1", "u2", "u1"):
            repo.save(
                LocationCheckRecord(
                    user_id=user, lat=55.5, lon=37.5, is_danger=True, incident_id=zone.id
                )
            )

    stats = svc.stats()

    assert [(x.incident_id, x.user_count) for x in stats] == [(zone.id, 2)]
