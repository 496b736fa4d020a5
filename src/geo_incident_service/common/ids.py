"""
Генерация и разбор идентификаторов.

Назначение:
- id задач доставки и зон (UUIDv4)
- разбор id из URL/тела запроса
"""

from __future__ import annotations

import uuid

from .errors import ValidationError


def new_uuid() -> str:
    """UUIDv4 строкой."""
    return str(uuid.uuid4())


def parse_uuid(raw: str, *, field: str = "id") -> str:
    """
    Нормализует UUID (нижний регистр, с дефисами).
    Некорректное значение -> ValidationError.
    """
    try:
        return str(uuid.UUID(str(raw).strip()))
    except (ValueError, AttributeError) as e:
        raise ValidationError("Некорректный UUID", {"field": field, "value": str(raw)[:64]}) from e
