"""
Кэш активных опасных зон (cache-aside поверх Redis).

Один общий ключ со списком зон в JSON и коротким TTL.
Кэш — только ускорение: любая проблема с ним (промах, битые данные,
недоступный Redis) сводится к чтению из источника. Ошибка источника
пробрасывается: без зон на проверку локации ответить нельзя.

Параллельные промахи могут одновременно сходить в источник и перезаписать
ключ — это допустимо.
"""

from __future__ import annotations

import json
from typing import Protocol

import redis

from geo_incident_service.common.config import Settings, get_settings
from geo_incident_service.common.logging import get_project_logger
from geo_incident_service.common.metrics import ZONE_CACHE_LOOKUPS_TOTAL
from geo_incident_service.domain.models import HazardZone

log = get_project_logger()


class ZoneSource(Protocol):
    """Источник истины по активным зонам."""

    def list_active(self) -> list[HazardZone]: ...


class ZoneCache:
    def __init__(
        self,
        client: redis.Redis,
        source: ZoneSource,
        *,
        key: str = "incidents:active",
        ttl_sec: int = 60,
    ) -> None:
        self.client = client
        self.source = source
        self.key = key
        self.ttl_sec = max(1, int(ttl_sec))

    @classmethod
    def from_settings(
        cls, client: redis.Redis, source: ZoneSource, settings: Settings | None = None
    ) -> ZoneCache:
        s = settings or get_settings()
        return cls(client, source, key=s.zone_cache_key, ttl_sec=s.zone_cache_ttl_sec)

    def get_active_zones(self) -> list[HazardZone]:
        cached = self._read()
        if cached:
            ZONE_CACHE_LOOKUPS_TOTAL.labels(result="hit").inc()
            return cached

        ZONE_CACHE_LOOKUPS_TOTAL.labels(result="miss").inc()
        zones = self.source.list_active()
        self._write(zones)
        return zones

    def invalidate(self) -> None:
        try:
            self.client.delete(self.key)
        except redis.RedisError as e:
            log.warning("zone_cache_invalidate_failed", extra={"payload": {"err": str(e)[:200]}})

    # =========================================================================
    # ВНУТРЕННЕЕ
    # =========================================================================
    def _read(self) -> list[HazardZone] | None:
        """
        None — промах или непригодные данные. Пустой список в кэше тоже
        считается промахом: его не отличить от "ещё не загружено".
        """
        try:
            raw = self.client.get(self.key)
        except redis.RedisError as e:
            ZONE_CACHE_LOOKUPS_TOTAL.labels(result="error").inc()
            log.warning("zone_cache_read_failed", extra={"payload": {"err": str(e)[:200]}})
            return None

        if raw is None:
            return None

        try:
            items = json.loads(raw)
            return [HazardZone.from_dict(item) for item in items]
        except (ValueError, KeyError, TypeError) as e:
            ZONE_CACHE_LOOKUPS_TOTAL.labels(result="error").inc()
            log.warning(
                "zone_cache_decode_failed",
                extra={"payload": {"key": self.key, "err": str(e)[:200]}},
            )
            return None

    def _write(self, zones: list[HazardZone]) -> None:
        try:
            data = json.dumps([z.to_dict() for z in zones], ensure_ascii=False)
            self.client.set(self.key, data, ex=self.ttl_sec)
        except (redis.RedisError, TypeError, ValueError) as e:
            log.warning(
                "zone_cache_write_failed",
                extra={"payload": {"key": self.key, "zones": len(zones), "err": str(e)[:200]}},
            )
