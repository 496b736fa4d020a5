"""
Базовые интерфейсы доставки.

Назначение:
- единый контракт отправителя уведомлений для воркера
- в тестах отправитель подменяется фейком с тем же методом send()
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Protocol

from geo_incident_service.domain.models import DeliveryTask


@dataclass
class DeliveryResult:
    """
    Результат одной попытки доставки.
    """

    ok: bool
    provider: str
    status_code: int | None = None
    error: str | None = None
    meta: dict[str, Any] | None = None


class DeliveryProvider(Protocol):
    """
    Контракт провайдера доставки.
    """

    def send(self, task: DeliveryTask, target_url: str) -> DeliveryResult: ...
