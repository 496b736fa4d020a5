"""
Redis-клиент для очереди вебхуков и кэша зон.

Назначение:
- единая точка подключения к Redis
- явный жизненный цикл: connect() на старте процесса, close() на остановке
- клиент передаётся компонентам через конструктор (никаких глобальных синглтонов)
"""

from __future__ import annotations

import redis

from geo_incident_service.common.config import Settings, get_settings
from geo_incident_service.common.logging import get_project_logger

log = get_project_logger()


class RedisResource:
    """
    Владелец Redis connection pool.

    Использование:
        res = RedisResource.from_settings()
        client = res.connect()
        ...
        res.close()
    """

    def __init__(
        self,
        url: str,
        *,
        socket_timeout_sec: float | None = None,
        max_connections: int | None = None,
    ) -> None:
        self.url = url
        self.socket_timeout_sec = socket_timeout_sec
        self.max_connections = max_connections
        self._client: redis.Redis | None = None

    @classmethod
    def from_settings(cls, settings: Settings | None = None) -> RedisResource:
        s = settings or get_settings()
        return cls(
            s.redis_url,
            socket_timeout_sec=s.redis_socket_timeout_sec,
            max_connections=s.redis_max_connections,
        )

    @property
    def client(self) -> redis.Redis:
        if self._client is None:
            raise RuntimeError("Redis не подключен: вызови connect()")
        return self._client

    def connect(self) -> redis.Redis:
        if self._client is None:
            self._client = redis.Redis.from_url(
                self.url,
                decode_responses=True,
                socket_timeout=self.socket_timeout_sec,
                max_connections=self.max_connections,
                health_check_interval=30,
            )
            log.info("redis_connected", extra={"payload": {"url": _safe_url(self.url)}})
        return self._client

    def ping(self) -> bool:
        return bool(self.client.ping())

    def close(self) -> None:
        if self._client is None:
            return
        try:
            self._client.close()
        except redis.RedisError as e:
            log.warning("redis_close_failed", extra={"payload": {"err": str(e)[:200]}})
        finally:
            self._client = None
        log.info("redis_closed")


def _safe_url(url: str) -> str:
    # пароль из redis://:pass@host не пишем в лог
    if "@" not in url:
        return url
    scheme, _, rest = url.partition("://")
    return f"{scheme}://***@{rest.split('@', 1)[1]}"
