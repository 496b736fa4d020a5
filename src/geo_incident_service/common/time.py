"""
Утилиты времени.

Назначение:
- единый формат времени (RFC3339 UTC)
"""

from __future__ import annotations

from datetime import UTC, datetime


def utc_now() -> datetime:
    """
    Текущее время в UTC (datetime).
    """
    return datetime.now(UTC)


def to_rfc3339(value: datetime) -> str:
    """
    datetime -> RFC3339 строка с суффиксом Z.
    Naive datetime считаем UTC.
    """
    if value.tzinfo is None:
        value = value.replace(tzinfo=UTC)
    return value.astimezone(UTC).isoformat().replace("+00:00", "Z")


def parse_rfc3339(raw: str) -> datetime:
    """
    RFC3339 строка -> aware datetime (UTC).
    """
    value = datetime.fromisoformat(raw.strip().replace("Z", "+00:00"))
    if value.tzinfo is None:
        value = value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


def utc_now_rfc3339() -> str:
    return to_rfc3339(utc_now())
