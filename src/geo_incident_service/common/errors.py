"""
Единые ошибки и коды ошибок.

Назначение:
- предсказуемые коды для HTTP/очередей/DLQ
- единый стиль исключений по проекту
"""

from __future__ import annotations

from dataclasses import dataclass


class ErrCode:
    # Общие
    UNKNOWN = "unknown"
    VALIDATION = "validation"
    UNAUTHORIZED = "unauthorized"
    NOT_FOUND = "not_found"

    # Инфра/хранилища
    DB_ERROR = "db_error"
    REDIS_ERROR = "redis_error"
    QUEUE_ERROR = "queue_error"
    TASK_NOT_FOUND = "task_not_found"
    TASK_DECODE_ERROR = "task_decode_error"


@dataclass
class AppError(Exception):
    """
    Базовая ошибка приложения.
    - code: стабильный код ошибки
    - message: безопасное сообщение
    - details: доп. данные (без секретов/PII)
    """

    code: str
    message: str
    details: dict | None = None

    def __str__(self) -> str:  # pragma: no cover
        return f"{self.code}: {self.message}"


class ValidationError(AppError):
    def __init__(self, message: str = "Ошибка валидации", details: dict | None = None) -> None:
        super().__init__(ErrCode.VALIDATION, message, details)


class UnauthorizedError(AppError):
    def __init__(self, message: str = "Не авторизован", details: dict | None = None) -> None:
        super().__init__(ErrCode.UNAUTHORIZED, message, details)


class NotFoundError(AppError):
    def __init__(self, message: str = "Не найдено", details: dict | None = None) -> None:
        super().__init__(ErrCode.NOT_FOUND, message, details)


class QueueError(AppError):
    """Ошибка Redis-бэкенда очереди (enqueue/dequeue/ack)."""

    def __init__(
        self,
        message: str = "Ошибка очереди",
        details: dict | None = None,
        code: str = ErrCode.QUEUE_ERROR,
    ) -> None:
        super().__init__(code, message, details)


class TaskNotFoundError(QueueError):
    """id снят со списка, но blob задачи отсутствует (истёк TTL или удалён)."""

    def __init__(self, task_id: str) -> None:
        super().__init__(
            "Задача не найдена в хранилище",
            {"task_id": task_id},
            code=ErrCode.TASK_NOT_FOUND,
        )


class TaskDecodeError(QueueError):
    """blob задачи не десериализуется."""

    def __init__(self, task_id: str, err: str) -> None:
        super().__init__(
            "Не удалось десериализовать задачу",
            {"task_id": task_id, "err": err[:200]},
            code=ErrCode.TASK_DECODE_ERROR,
        )
