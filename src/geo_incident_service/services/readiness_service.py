"""
Runtime readiness checks for production rollout.
"""

from __future__ import annotations

from dataclasses import dataclass

from geo_incident_service.common.config import get_settings
from geo_incident_service.common.logging import get_project_logger
from geo_incident_service.common.security import is_prod_env

log = get_project_logger()


@dataclass
class ReadinessIssue:
    severity: str  # error|warning
    code: str
    message: str


@dataclass
class ReadinessState:
    ready: bool
    issues: list[ReadinessIssue]


def evaluate_readiness() -> ReadinessState:
    s = get_settings()
    issues: list[ReadinessIssue] = []
    is_prod = is_prod_env(s.app_env)
    auth_mode = (s.auth_mode or "").strip().lower()
    webhook_url = (s.webhook_url or "").strip()

    if auth_mode == "api_key" and not (s.api_keys or "").strip():
        issues.append(
            ReadinessIssue(
                severity="error",
                code="auth_api_keys_empty",
                message="AUTH_MODE=api_key требует непустой API_KEYS",
            )
        )

    if not webhook_url:
        issues.append(
            ReadinessIssue(
                severity="error",
                code="webhook_url_empty",
                message="WEBHOOK_URL не задан, уведомления не будут доставляться",
            )
        )
    elif not webhook_url.lower().startswith(("http://", "https://")):
        issues.append(
            ReadinessIssue(
                severity="error",
                code="webhook_url_invalid",
                message="WEBHOOK_URL должен начинаться с http:// или https://",
            )
        )

    if int(s.worker_max_retries) < 0:
        issues.append(
            ReadinessIssue(
                severity="error",
                code="worker_max_retries_negative",
                message="WORKER_MAX_RETRIES не может быть отрицательным",
            )
        )

    # BRPOP держит сокет poll-интервал; socket_timeout должен быть больше
    socket_timeout = s.redis_socket_timeout_sec
    if socket_timeout and float(s.queue_poll_timeout_sec) >= float(socket_timeout):
        issues.append(
            ReadinessIssue(
                severity="error",
                code="queue_poll_exceeds_socket_timeout",
                message="QUEUE_POLL_TIMEOUT_SEC должен быть меньше REDIS_SOCKET_TIMEOUT_SEC",
            )
        )

    if float(s.webhook_retry_wait_min_sec) > float(s.webhook_retry_wait_max_sec):
        issues.append(
            ReadinessIssue(
                severity="warning",
                code="webhook_backoff_window_inverted",
                message="WEBHOOK_RETRY_WAIT_MIN_SEC больше WEBHOOK_RETRY_WAIT_MAX_SEC",
            )
        )

    if is_prod:
        if auth_mode == "none":
            issues.append(
                ReadinessIssue(
                    severity="error",
                    code="auth_none_in_prod",
                    message="AUTH_MODE=none запрещен в prod",
                )
            )
        if webhook_url.lower().startswith("http://"):
            issues.append(
                ReadinessIssue(
                    severity="warning",
                    code="webhook_url_not_https",
                    message="В prod WEBHOOK_URL лучше отдавать по https://",
                )
            )

    ready = all(i.severity != "error" for i in issues)
    return ReadinessState(ready=ready, issues=issues)


def enforce_startup_readiness(*, service_name: str) -> ReadinessState:
    s = get_settings()
    state = evaluate_readiness()
    errors = [i for i in state.issues if i.severity == "error"]

    if errors:
        log.error(
            "startup_readiness_failed",
            extra={
                "payload": {
                    "service": service_name,
                    "app_env": s.app_env,
                    "error_codes": [e.code for e in errors],
                }
            },
        )
    else:
        log.info(
            "startup_readiness_ok",
            extra={"payload": {"service": service_name, "app_env": s.app_env}},
        )

    should_fail_fast = is_prod_env(s.app_env) and bool(s.readiness_fail_fast_in_prod)
    if should_fail_fast and errors:
        msg = ", ".join(e.code for e in errors)
        raise RuntimeError(f"startup readiness failed for {service_name}: {msg}")
    return state
