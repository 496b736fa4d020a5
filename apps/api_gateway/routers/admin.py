"""
Admin endpoints для разбора DLQ вебхуков.

Назначение:
- просмотр задач, исчерпавших попытки доставки
- ручной повтор задачи из DLQ (счётчик попыток обнуляется)
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query

from apps.api_gateway.deps import auth_dep, get_container
from geo_incident_service.common.errors import QueueError
from geo_incident_service.common.logging import get_project_logger
from geo_incident_service.common.security import AuthContext
from geo_incident_service.contracts.http_api import (
    DeadTaskItem,
    DeadTaskListResponse,
    RequeueResponse,
)
from geo_incident_service.services.container import ServiceContainer

log = get_project_logger()

router = APIRouter()


@router.get("/admin/webhooks/dead", response_model=DeadTaskListResponse)
def list_dead_tasks(
    limit: int = Query(default=100, ge=1, le=1000),
    _: AuthContext = Depends(auth_dep),
    container: ServiceContainer = Depends(get_container),
) -> DeadTaskListResponse:
    store = container.store
    items: list[DeadTaskItem] = []
    for task_id in store.dead_ids(limit):
        try:
            task = store.get(task_id)
        except QueueError as e:
            items.append(DeadTaskItem(id=task_id, error=e.code))
            continue
        if task is None:
            items.append(DeadTaskItem(id=task_id, error="blob_missing"))
            continue
        items.append(
            DeadTaskItem(
                id=task.id,
                name=task.name,
                user_id=task.user_id,
                incident_id=task.incident_id,
                retry_count=task.retry_count,
                created_at=task.created_at,
            )
        )
    return DeadTaskListResponse(total=store.dead_count(), tasks=items)


@router.post("/admin/webhooks/dead/{task_id}/requeue", response_model=RequeueResponse)
def requeue_dead_task(
    task_id: str,
    ctx: AuthContext = Depends(auth_dep),
    container: ServiceContainer = Depends(get_container),
) -> RequeueResponse:
    task = container.store.requeue_dead(task_id)
    log.info(
        "admin_dlq_requeue",
        extra={"payload": {"task_id": task.id, "subject": ctx.subject}},
    )
    return RequeueResponse(id=task.id, requeued=True)
