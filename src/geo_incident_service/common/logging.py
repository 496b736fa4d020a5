"""
Логирование сервиса.

- логирование в stdout (Docker-friendly)
- JSON по умолчанию, LOG_FORMAT=text для локальной отладки
- структурные поля передаются через extra={"payload": {...}}
- каждая запись помечена процессом (api-gateway / worker-webhook / webhook-stub),
  компоненты пишут в дочерние логгеры geo-incident-service.<component>
"""

from __future__ import annotations

import json
import logging
import sys
from datetime import UTC, datetime
from typing import Any

from geo_incident_service.common.config import get_settings

PROJECT_LOGGER = "geo-incident-service"


class JsonFormatter(logging.Formatter):
    def __init__(self, service: str | None = None) -> None:
        super().__init__()
        self.service = service

    def format(self, record: logging.LogRecord) -> str:
        entry: dict[str, Any] = {
            "ts": datetime.fromtimestamp(record.created, UTC)
            .isoformat(timespec="milliseconds")
            .replace("+00:00", "Z"),
            "level": record.levelname,
            "service": self.service,
            "logger": record.name,
            "msg": record.getMessage(),
        }
        payload = getattr(record, "payload", None)
        if isinstance(payload, dict):
            entry["payload"] = payload
        if record.exc_info:
            entry["exc_info"] = self.formatException(record.exc_info)
        # datetime и прочее несериализуемое в payload уходит строкой
        return json.dumps(entry, ensure_ascii=False, default=str)


def _build_formatter(service: str) -> logging.Formatter:
    s = get_settings()
    if (s.log_format or "").lower() == "text":
        return logging.Formatter(
            fmt=f"%(asctime)s %(levelname)s [{service}] %(name)s: %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )
    return JsonFormatter(service=service)


def setup_logging(service: str | None = None) -> None:
    """
    Настраивает root-логгер процесса. Повторный вызов меняет только уровень.
    service по умолчанию берётся из SERVICE_NAME.
    """
    s = get_settings()
    root = logging.getLogger()
    level = getattr(logging, (s.log_level or "INFO").upper(), logging.INFO)
    root.setLevel(level)

    if root.handlers:
        return

    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(level)
    handler.setFormatter(_build_formatter(service or s.service_name))
    root.addHandler(handler)

    logging.getLogger("uvicorn.error").setLevel(level)
    logging.getLogger("uvicorn.access").setLevel(level)


def get_project_logger(name: str = PROJECT_LOGGER) -> logging.Logger:
    return logging.getLogger(name)


def get_component_logger(component: str) -> logging.Logger:
    """Дочерний логгер: worker, delivery, webhook-stub."""
    return logging.getLogger(f"{PROJECT_LOGGER}.{component}")
