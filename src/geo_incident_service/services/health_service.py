"""
Проверка состояния зависимостей (postgres, redis).
"""

from __future__ import annotations

import time
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime

from geo_incident_service.common.logging import get_project_logger
from geo_incident_service.common.time import utc_now
from geo_incident_service.domain.enums import HealthStatus

log = get_project_logger()

HealthCheck = Callable[[], object]


@dataclass
class HealthReport:
    status: HealthStatus
    components: dict[str, str]
    uptime_sec: int
    timestamp: datetime = field(default_factory=utc_now)


class HealthService:
    def __init__(self, checks: dict[str, HealthCheck]) -> None:
        self.checks = checks
        self._started = time.monotonic()

    def check(self) -> HealthReport:
        components: dict[str, str] = {}
        for name, run_check in self.checks.items():
            try:
                run_check()
                components[name] = "ok"
            except Exception as e:
                components[name] = f"error: {str(e)[:200]}"
                log.warning(
                    "health_check_failed",
                    extra={"payload": {"component": name, "err": str(e)[:200]}},
                )

        ok = all(v == "ok" for v in components.values())
        return HealthReport(
            status=HealthStatus.ok if ok else HealthStatus.error,
            components=components,
            uptime_sec=int(time.monotonic() - self._started),
        )
