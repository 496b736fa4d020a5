"""
Заглушка получателя вебхуков для локального прогона.

POST / принимает JSON уведомления и пишет его в лог.
Запуск: uvicorn apps.webhook_stub.main:app --port 9090
"""

from __future__ import annotations

import json
from typing import Any

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from geo_incident_service.common.logging import get_component_logger, setup_logging

log = get_component_logger("webhook-stub")


def _create_app() -> FastAPI:
    app = FastAPI(title="Webhook Stub", version="0.1.0")

    @app.post("/")
    async def receive(request: Request) -> JSONResponse:
        raw = await request.body()
        try:
            payload: Any = json.loads(raw)
        except ValueError:
            log.warning("webhook_stub_invalid_json", extra={"payload": {"size": len(raw)}})
            return JSONResponse(status_code=400, content={"error": "invalid json"})

        log.info("webhook_stub_received", extra={"payload": {"body": payload}})
        return JSONResponse(status_code=200, content={"ok": True})

    return app


setup_logging(service="webhook-stub")

app = _create_app()
