"""
Доменные перечисления (enum).
"""

from __future__ import annotations

import enum


class DeliveryOutcome(str, enum.Enum):
    """
    Итог одного прохода машины состояний задачи доставки.
    """

    delivered = "delivered"  # ack, задача удалена
    retried = "retried"  # счётчик увеличен, задача снова в pending
    dead = "dead"  # исчерпан лимит попыток, задача в DLQ


class HealthStatus(str, enum.Enum):
    ok = "ok"
    error = "error"
