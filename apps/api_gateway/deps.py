"""
FastAPI Depends.

Сюда выносим:
- проверку авторизации (X-API-Key)
- доступ к контейнеру сервисов процесса
"""

from __future__ import annotations

from fastapi import Header, HTTPException, Request, status

from geo_incident_service.common.errors import UnauthorizedError
from geo_incident_service.common.logging import get_project_logger
from geo_incident_service.common.security import AuthContext, require_auth
from geo_incident_service.services.container import ServiceContainer

log = get_project_logger()


def _request_meta(request: Request | None) -> tuple[str, str, str | None]:
    if request is None:
        return "unknown", "UNKNOWN", None
    endpoint = request.url.path
    method = request.method
    client_ip = request.client.host if request.client else None
    return endpoint, method, client_ip


def _audit_deny(*, request: Request | None, reason: str, error_code: str) -> None:
    endpoint, method, client_ip = _request_meta(request)
    log.warning(
        "security_audit_deny",
        extra={
            "payload": {
                "endpoint": endpoint,
                "method": method,
                "status_code": status.HTTP_401_UNAUTHORIZED,
                "reason": reason,
                "error_code": error_code,
                "client_ip": client_ip,
            }
        },
    )


def auth_dep(
    request: Request,
    x_api_key: str | None = Header(default=None, alias="X-API-Key"),
) -> AuthContext:
    """
    Проверка авторизации для HTTP.
    """
    try:
        return require_auth(x_api_key=x_api_key)
    except UnauthorizedError as e:
        _audit_deny(request=request, reason=e.message, error_code=e.code)
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail={"code": e.code, "message": e.message},
            headers={"WWW-Authenticate": "ApiKey"},
        ) from e


def get_container(request: Request) -> ServiceContainer:
    return request.app.state.container
