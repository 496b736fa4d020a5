"""
Утилиты авторизации.

Поддерживаемые режимы (AUTH_MODE):
- api_key — проверка X-API-Key по списку API_KEYS
- none    — без авторизации (ТОЛЬКО dev)
"""

from __future__ import annotations

import hmac
from dataclasses import dataclass

from .config import get_settings
from .errors import UnauthorizedError


def _parse_api_keys(raw: str) -> set[str]:
    """
    Разбор строки API_KEYS из ENV в множество.
    """
    return {k.strip() for k in (raw or "").split(",") if k.strip()}


def is_prod_env(app_env: str | None) -> bool:
    env = (app_env or "").strip().lower()
    return env in {"prod", "production"}


@dataclass(frozen=True)
class AuthContext:
    subject: str
    auth_type: str


def _key_matches(candidate: str, keys: set[str]) -> bool:
    # compare_digest по всем ключам, чтобы не давать тайминг-подсказок
    matched = False
    for key in keys:
        if hmac.compare_digest(candidate.encode("utf-8"), key.encode("utf-8")):
            matched = True
    return matched


def require_auth(*, x_api_key: str | None) -> AuthContext:
    """
    Проверка авторизации:
    - AUTH_MODE=none: без проверки (dev)
    - AUTH_MODE=api_key: X-API-Key должен входить в API_KEYS
    """
    settings = get_settings()
    mode = (settings.auth_mode or "api_key").lower().strip()

    if mode == "none":
        if is_prod_env(settings.app_env):
            raise UnauthorizedError("AUTH_MODE=none запрещён в APP_ENV=prod")
        return AuthContext(subject="anonymous", auth_type="none")

    if mode != "api_key":
        raise UnauthorizedError("Неизвестный режим авторизации")

    if not x_api_key:
        raise UnauthorizedError("Требуется заголовок X-API-Key")

    if not _key_matches(x_api_key, _parse_api_keys(settings.api_keys)):
        raise UnauthorizedError("Неверный API ключ")
    return AuthContext(subject="api_key", auth_type="api_key")
